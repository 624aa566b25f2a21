from __future__ import annotations
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional, Set
from shelfrank.core.repository import BorrowRepository
from shelfrank.graph import GraphModel, NodeId

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


def _as_naive_utc(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(tzinfo=None) if dt.tzinfo is not None else dt


def days_between(then: datetime, now: datetime) -> float:
    """Elapsed fractional days from ``then`` to ``now``; never negative.

    When only one side carries a timezone, the naive side is read as UTC.
    """
    if (then.tzinfo is None) != (now.tzinfo is None):
        then, now = _as_naive_utc(then), _as_naive_utc(now)
    return max((now - then).total_seconds() / SECONDS_PER_DAY, 0.0)


class SubgraphBuilder:
    """Builds the ego-network around one reader from their borrowing history.

    The graph holds the reader, the books they borrowed, every co-borrower of
    those books (reached through the first shared book found), and every book
    those co-borrowers borrowed. Edge weights decay exponentially with the age
    of the borrow event.
    """

    def __init__(
        self,
        repository: BorrowRepository,
        decay_rate: float = 0.05,
        behavior_weight: float = 1.0,
        max_co_borrowers: Optional[int] = None,
    ):
        if not (0 < decay_rate < math.inf): raise ValueError("decay_rate must be positive and finite")
        if not (0 < behavior_weight < math.inf): raise ValueError("behavior_weight must be positive and finite")
        if max_co_borrowers is not None and max_co_borrowers < 1:
            raise ValueError("max_co_borrowers must be at least 1")
        self.repository = repository
        self.decay_rate, self.behavior_weight = decay_rate, behavior_weight
        self.max_co_borrowers = max_co_borrowers

    def decay_weight(self, borrow_time: datetime, now: datetime) -> float:
        return self.behavior_weight * math.exp(-self.decay_rate * days_between(borrow_time, now))

    def build(self, user_id: Any, now: Optional[datetime] = None) -> GraphModel:
        now = now or datetime.now()
        graph = GraphModel()
        user = graph.add_node(NodeId.user(user_id)).id

        history = self.repository.find_borrow_history(user_id)
        if not history:
            logger.info("No borrow history for user %s; returning empty subgraph", user_id)
            return graph

        borrowed = []
        for record in history:
            book = graph.add_node(NodeId.book(record.book_id)).id
            graph.add_edge(user, book, self.decay_weight(record.borrow_time, now))
            if book not in borrowed: borrowed.append(book)

        processed: Set[str] = {user.key}
        for book in borrowed:
            if self._budget_spent(processed): break
            for co in self.repository.find_co_borrowers(book.key):
                other_key = str(co.user_id)
                if other_key in processed: continue
                if self._budget_spent(processed): break
                processed.add(other_key)
                other = graph.add_node(NodeId.user(other_key)).id
                graph.add_edge(book, other, self.decay_weight(co.borrow_time, now))
                self._expand_co_borrower(graph, other, now)

        logger.info("Built subgraph for user %s: %d nodes, %d edges", user_id, graph.node_count(), graph.edge_count())
        return graph

    def _budget_spent(self, processed: Set[str]) -> bool:
        # ``processed`` always holds the target reader
        return self.max_co_borrowers is not None and len(processed) - 1 >= self.max_co_borrowers

    def _expand_co_borrower(self, graph: GraphModel, other: NodeId, now: datetime):
        for record in self.repository.find_borrow_history(other.key):
            book = graph.add_node(NodeId.book(record.book_id)).id
            graph.add_edge(other, book, self.decay_weight(record.borrow_time, now))
