from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Union
import pyarrow as pa
from shelfrank.config import RecommenderConfig
from shelfrank.core.connection import DuckDBConnection
from shelfrank.core.ingestion import load_borrows, load_books
from shelfrank.core.repository import DuckDBBorrowRepository
from shelfrank.graph import GraphModel
from shelfrank.recommenders.explanation import RecommendationExplanation
from shelfrank.recommenders.graph import GraphRecommender, to_arrow

class ShelfRank:
    """Co-borrowing book recommendations over a DuckDB-backed borrow log."""

    def __init__(
        self,
        database: Union[str, Path] = ":memory:",
        config: Optional[RecommenderConfig] = None,
        memory_limit: Optional[str] = None,
        threads: Optional[int] = None,
    ) -> None:
        self.conn = DuckDBConnection(database=database, memory_limit=memory_limit, threads=threads)
        self.borrows_table, self.books_table = "borrows", "books"
        self.config = config or RecommenderConfig()
        self._repository = DuckDBBorrowRepository(self.conn, self.borrows_table, self.books_table)
        self._recommender = GraphRecommender(self._repository, self.config)

    @property
    def repository(self) -> DuckDBBorrowRepository: return self._repository
    @property
    def recommender(self) -> GraphRecommender: return self._recommender

    def load_borrows(self, data: Any, **kwargs) -> int:
        return load_borrows(self.conn, data, table_name=self.borrows_table, **kwargs)

    def load_books(self, data: Any, **kwargs) -> int:
        return load_books(self.conn, data, table_name=self.books_table, **kwargs)

    def _require_borrows(self):
        if not self.conn.table_exists(self.borrows_table): raise RuntimeError("Call load_borrows() first.")

    def build_graph(self, user_id: Any, now: Optional[datetime] = None) -> GraphModel:
        self._require_borrows()
        return self._recommender.build_graph(user_id, now=now)

    def explain(self, user_id: Any, n: Optional[int] = None, now: Optional[datetime] = None) -> List[RecommendationExplanation]:
        self._require_borrows()
        return self._recommender.recommend(user_id, n=n, now=now)

    def recommend(self, user_id: Any, n: Optional[int] = None, now: Optional[datetime] = None) -> pa.Table:
        return to_arrow(self.explain(user_id, n=n, now=now))

    def sql(self, query: str) -> pa.Table: return self.conn.query(query)
    def close(self): self.conn.close()
    def __enter__(self): return self
    def __exit__(self, *_): self.close()
    def __repr__(self) -> str: return f"ShelfRank(database={self.conn._database!r})"
