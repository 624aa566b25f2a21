from .api import ShelfRank
from .config import RecommenderConfig
from .core.connection import DuckDBConnection
from .core.repository import BorrowRepository, DuckDBBorrowRepository, BorrowRecord, CoBorrower, BookMetadata
from .graph import GraphModel, NodeId, NodeKind
from .recommenders.subgraph import SubgraphBuilder
from .recommenders.ppr import PPREngine, PPRResult, RankStatus
from .recommenders.explanation import ExplanationBuilder, ExplanationPath, PathKind, RecommendationExplanation
from .recommenders.graph import GraphRecommender
from .datasets import generate_library_borrows, generate_library_catalogue

def load(borrows, books=None, **kwargs) -> ShelfRank:
    engine = ShelfRank(**kwargs)
    engine.load_borrows(borrows)
    if books is not None:
        engine.load_books(books)
    return engine

def connect(database=":memory:", **kwargs) -> ShelfRank:
    return ShelfRank(database=database, **kwargs)

__all__ = [
    "ShelfRank",
    "load",
    "connect",
    "RecommenderConfig",
    "DuckDBConnection",
    "BorrowRepository",
    "DuckDBBorrowRepository",
    "BorrowRecord",
    "CoBorrower",
    "BookMetadata",
    "GraphModel",
    "NodeId",
    "NodeKind",
    "SubgraphBuilder",
    "PPREngine",
    "PPRResult",
    "RankStatus",
    "ExplanationBuilder",
    "ExplanationPath",
    "PathKind",
    "RecommendationExplanation",
    "GraphRecommender",
    # Datasets
    "generate_library_borrows",
    "generate_library_catalogue",
]
