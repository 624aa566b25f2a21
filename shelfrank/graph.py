"""
shelfrank.graph — Weighted, directed User/Book graph container.

Nodes are keyed by a tagged ``NodeId`` rather than prefixed strings, so
readers never need to parse identities back out of keys.
"""
from __future__ import annotations
import math
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, NamedTuple, Optional


class NodeKind(str, Enum):
    USER = "user"
    BOOK = "book"


class NodeId(NamedTuple):
    """Tagged node identity. Orders by kind, then key."""
    kind: NodeKind
    key: str

    @classmethod
    def user(cls, user_id: Any) -> NodeId:
        return cls(NodeKind.USER, str(user_id))

    @classmethod
    def book(cls, book_id: Any) -> NodeId:
        return cls(NodeKind.BOOK, str(book_id))

    @property
    def is_user(self) -> bool: return self.kind is NodeKind.USER
    @property
    def is_book(self) -> bool: return self.kind is NodeKind.BOOK

    def __repr__(self) -> str:
        return f"{self.kind.value.capitalize()}({self.key!r})"


class Node:
    __slots__ = ("id", "edges")

    def __init__(self, node_id: NodeId):
        self.id = node_id
        self.edges: Dict[NodeId, float] = {}

    def add_edge(self, target: NodeId, weight: float):
        self.edges[target] = self.edges.get(target, 0.0) + weight

    @property
    def total_weight(self) -> float:
        return sum(self.edges.values())

    def __repr__(self) -> str:
        return f"Node({self.id!r}, out={len(self.edges)})"


class GraphModel:
    """Directed weighted graph keyed by ``NodeId``.

    Mutations never raise: adding an existing node is a no-op, and an edge
    whose source is unknown (or whose weight is negative or not finite) is
    dropped.
    Edge targets are not validated, so readers must check ``has_node``
    before following an edge.
    """

    def __init__(self):
        self._nodes: Dict[NodeId, Node] = {}

    def add_node(self, node_id: NodeId) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            node = self._nodes[node_id] = Node(node_id)
        return node

    def add_edge(self, source: NodeId, target: NodeId, weight: float) -> bool:
        node = self._nodes.get(source)
        if node is None or not (0 <= weight < math.inf): return False
        node.add_edge(target, float(weight))
        return True

    def get_node(self, node_id: NodeId) -> Optional[Node]:
        return self._nodes.get(node_id)

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._nodes

    def neighbors(self, node_id: NodeId) -> Mapping[NodeId, float]:
        node = self._nodes.get(node_id)
        return node.edges if node is not None else {}

    def edge_weight(self, source: NodeId, target: NodeId) -> float:
        return self.neighbors(source).get(target, 0.0)

    def total_out_weight(self, node_id: NodeId) -> float:
        node = self._nodes.get(node_id)
        return node.total_weight if node is not None else 0.0

    def all_node_ids(self) -> List[NodeId]:
        return list(self._nodes)

    def book_ids(self) -> List[NodeId]:
        return [n for n in self._nodes if n.is_book]

    def user_ids(self) -> List[NodeId]:
        return [n for n in self._nodes if n.is_user]

    def node_count(self) -> int:
        return len(self._nodes)

    def edge_count(self) -> int:
        return sum(len(n.edges) for n in self._nodes.values())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[NodeId]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"GraphModel(nodes={self.node_count()}, edges={self.edge_count()})"
