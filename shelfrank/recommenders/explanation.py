from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from shelfrank.core.repository import BookMetadata, BorrowRepository
from shelfrank.graph import GraphModel, NodeId

logger = logging.getLogger(__name__)


class PathKind(str, Enum):
    CO_BORROWED = "co_borrowed"    # User -> Book -> User -> Book
    SIMILAR_USER = "similar_user"  # generic fallback


@dataclass(frozen=True)
class ExplanationPath:
    kind: PathKind
    target_book_id: str
    target_book_title: str
    contribution: float
    source_book_id: Optional[str] = None
    source_book_title: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "source_book_id": self.source_book_id,
            "source_book_title": self.source_book_title,
            "target_book_id": self.target_book_id,
            "target_book_title": self.target_book_title,
            "contribution": self.contribution,
        }


def summarize(path: ExplanationPath) -> str:
    if path.kind is PathKind.CO_BORROWED:
        return (f'You borrowed "{path.source_book_title}"; readers who borrowed it '
                f'also borrowed "{path.target_book_title}".')
    return f'Readers with borrowing habits similar to yours borrowed "{path.target_book_title}".'


@dataclass(frozen=True)
class RecommendationExplanation:
    """A ranked book together with the paths that justify it."""
    book_id: str
    score: float
    paths: Tuple[ExplanationPath, ...]
    summary: str
    metadata: Optional[BookMetadata] = field(default=None, compare=False)

    @property
    def title(self) -> str:
        return self.paths[0].target_book_title

    @property
    def main_path(self) -> ExplanationPath:
        return self.paths[0]


class ExplanationBuilder:
    """Recovers co-borrow chains ``reader -> b1 -> other reader -> target``.

    Only the reader's direct book neighbours are inspected; this is a bounded
    lookup, not a path search over the whole graph.
    """

    def __init__(self, repository: BorrowRepository):
        self.repository = repository

    def explain(self, user_id: Any, target_book_id: Any, graph: GraphModel, score: float) -> Optional[RecommendationExplanation]:
        target_meta = self.repository.find_book_metadata(target_book_id)
        if target_meta is None:
            logger.warning("No metadata for book %s; dropping it from recommendations", target_book_id)
            return None

        paths = self._co_borrow_paths(NodeId.user(user_id), NodeId.book(target_book_id), graph, target_meta)
        if not paths:
            paths = [ExplanationPath(PathKind.SIMILAR_USER, target_meta.book_id, target_meta.title, score)]
        paths.sort(key=lambda p: p.contribution, reverse=True)
        return RecommendationExplanation(target_meta.book_id, score, tuple(paths), summarize(paths[0]), target_meta)

    def _co_borrow_paths(self, user: NodeId, target: NodeId, graph: GraphModel, target_meta: BookMetadata) -> List[ExplanationPath]:
        paths: List[ExplanationPath] = []
        titles: Dict[NodeId, Optional[BookMetadata]] = {}
        for b1, w1 in graph.neighbors(user).items():
            if not b1.is_book or not graph.has_node(b1): continue
            for u2, w2 in graph.neighbors(b1).items():
                if not u2.is_user or u2 == user or not graph.has_node(u2): continue
                w3 = graph.neighbors(u2).get(target)
                if w3 is None: continue
                if b1 not in titles: titles[b1] = self.repository.find_book_metadata(b1.key)
                source_meta = titles[b1]
                if source_meta is None: continue
                paths.append(ExplanationPath(
                    PathKind.CO_BORROWED,
                    target_book_id=target_meta.book_id,
                    target_book_title=target_meta.title,
                    contribution=(w1 + w2 + w3) / 3.0,
                    source_book_id=source_meta.book_id,
                    source_book_title=source_meta.title,
                ))
        return paths
