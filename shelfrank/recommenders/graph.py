from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, List, Optional
import pyarrow as pa
from shelfrank.config import RecommenderConfig
from shelfrank.core.repository import BorrowRepository
from shelfrank.graph import GraphModel, NodeId
from shelfrank.recommenders.explanation import ExplanationBuilder, RecommendationExplanation
from shelfrank.recommenders.ppr import PPREngine, top_books
from shelfrank.recommenders.subgraph import SubgraphBuilder

logger = logging.getLogger(__name__)

PATH_TYPE = pa.struct([
    ("kind", pa.string()),
    ("source_book_id", pa.string()),
    ("source_book_title", pa.string()),
    ("target_book_id", pa.string()),
    ("target_book_title", pa.string()),
    ("contribution", pa.float64()),
])

RECOMMENDATION_SCHEMA = pa.schema([
    ("book_id", pa.string()),
    ("title", pa.string()),
    ("author", pa.string()),
    ("category", pa.string()),
    ("publisher", pa.string()),
    ("description", pa.string()),
    ("available_count", pa.int64()),
    ("score", pa.float64()),
    ("reason", pa.string()),
    ("paths", pa.list_(PATH_TYPE)),
])


class GraphRecommender:
    """Co-borrowing recommender: build ego-network, rank by PPR, explain."""

    def __init__(self, repository: BorrowRepository, config: Optional[RecommenderConfig] = None):
        self.repository = repository
        self.config = config or RecommenderConfig()
        c = self.config
        self.builder = SubgraphBuilder(repository, c.decay_rate, c.behavior_weight, c.max_co_borrowers)
        self.engine = PPREngine(c.restart_probability, c.max_iterations, c.tolerance, c.max_seconds, c.dangling)
        self.explainer = ExplanationBuilder(repository)

    def build_graph(self, user_id: Any, now: Optional[datetime] = None) -> GraphModel:
        return self.builder.build(user_id, now=now)

    def recommend(self, user_id: Any, n: Optional[int] = None, now: Optional[datetime] = None) -> List[RecommendationExplanation]:
        n = self.config.top_n if n is None else n
        if n < 1: raise ValueError("n must be at least 1")
        graph = self.build_graph(user_id, now=now)
        source = NodeId.user(user_id)
        if not graph.neighbors(source):
            return []

        result = self.engine.propagate(source, graph)
        # Over-fetch so candidates dropped for missing metadata can be backfilled.
        ranked = top_books(result, graph, len(graph))
        out: List[RecommendationExplanation] = []
        for book_id, score in ranked:
            explanation = self.explainer.explain(user_id, book_id, graph, score)
            if explanation is None: continue
            out.append(explanation)
            if len(out) >= n: break

        logger.info("Recommended %d books for user %s (%s after %d iterations)", len(out), user_id, result.status.value, result.iterations)
        return out

    def recommend_table(self, user_id: Any, n: Optional[int] = None, now: Optional[datetime] = None) -> pa.Table:
        return to_arrow(self.recommend(user_id, n=n, now=now))


def to_arrow(explanations: List[RecommendationExplanation]) -> pa.Table:
    rows = []
    for e in explanations:
        meta = e.metadata
        rows.append({
            "book_id": e.book_id,
            "title": e.title,
            "author": meta.author if meta else None,
            "category": meta.category if meta else None,
            "publisher": meta.publisher if meta else None,
            "description": meta.description if meta else None,
            "available_count": meta.available_count if meta else None,
            "score": e.score,
            "reason": e.summary,
            "paths": [p.to_dict() for p in e.paths],
        })
    return pa.Table.from_pylist(rows, schema=RECOMMENDATION_SCHEMA)
