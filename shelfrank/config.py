"""
Configuration for the co-borrowing recommender.
"""
import os
from pathlib import Path
from typing import Literal, Optional
import yaml
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "SHELFRANK_"


class RecommenderConfig(BaseModel):
    """Construction-time parameters for graph building, ranking and output."""

    model_config = ConfigDict(allow_inf_nan=False)

    # Subgraph construction
    decay_rate: float = Field(0.05, gt=0)  # per day
    behavior_weight: float = Field(1.0, gt=0)
    max_co_borrowers: Optional[int] = Field(None, ge=1)

    # Personalized PageRank
    restart_probability: float = Field(0.15, gt=0, lt=1)
    max_iterations: int = Field(30, ge=1)
    tolerance: float = Field(1e-6, gt=0)
    max_seconds: Optional[float] = Field(None, gt=0)
    dangling: Literal["restart", "drop"] = "restart"

    # Output
    top_n: int = Field(10, ge=1)

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_yaml(cls, path: Path) -> "RecommenderConfig":
        """Load configuration from YAML file."""
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    @classmethod
    def from_env(cls) -> "RecommenderConfig":
        """Load configuration from ``SHELFRANK_*`` environment variables."""
        values = {}
        for name in cls.model_fields:
            raw = os.getenv(ENV_PREFIX + name.upper())
            if raw not in (None, ""):
                values[name] = raw
        return cls(**values)

    @classmethod
    def default(cls) -> "RecommenderConfig":
        """Use ``shelfrank.yaml`` from the working directory if present, else the environment."""
        config_path = Path("shelfrank.yaml")
        if config_path.exists():
            return cls.from_yaml(config_path)
        return cls.from_env()
