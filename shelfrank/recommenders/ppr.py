"""
shelfrank.recommenders.ppr — Personalized PageRank by power iteration.

The subgraph is indexed in sorted ``NodeId`` order and turned into a
column-stochastic ``scipy.sparse`` transition matrix, each column holding a
node's out-edges normalised by its total out-weight. Each iteration
teleports ``restart_probability`` of the walk back to the source reader and
spreads the remainder along that matrix. Iteration stops when the L1 change
between successive score vectors drops below ``tolerance`` (CONVERGED) or
when the iteration cap or the optional wall-clock bound is hit (EXHAUSTED).
Both outcomes return the current scores; the loop itself has no failure
state.

Nodes whose total out-weight is zero cannot spread their mass. With
``dangling="restart"`` that mass goes back to the source, which keeps the
total at 1.0; with ``dangling="drop"`` it is lost.
"""
from __future__ import annotations
import logging
import math
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import numpy as np
from scipy import sparse
from shelfrank.graph import GraphModel, NodeId

logger = logging.getLogger(__name__)


class RankStatus(str, Enum):
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass
class PPRResult:
    source: NodeId
    scores: Dict[NodeId, float] = field(default_factory=dict)
    iterations: int = 0
    status: RankStatus = RankStatus.EXHAUSTED
    residual: float = 0.0

    def score(self, node_id: NodeId) -> float:
        return self.scores.get(node_id, 0.0)

    @property
    def total_mass(self) -> float:
        return math.fsum(self.scores.values())

    @property
    def converged(self) -> bool:
        return self.status is RankStatus.CONVERGED


def indexed_nodes(graph: GraphModel) -> List[NodeId]:
    """Every node and edge target in the graph, sorted."""
    nodes = set(graph.all_node_ids())
    for node_id in graph.all_node_ids():
        nodes.update(graph.neighbors(node_id))
    return sorted(nodes)


def transition_matrix(graph: GraphModel, nodes: List[NodeId]) -> Tuple[sparse.csr_matrix, np.ndarray]:
    """
    Column-stochastic transition matrix over ``nodes`` and the dead-end mask.

    Column ``j`` holds node ``j``'s out-edges divided by its total out-weight.
    Nodes with no positive out-weight get an empty column and are flagged in
    the returned boolean mask.
    """
    index = {node_id: i for i, node_id in enumerate(nodes)}
    rows: List[int] = []
    cols: List[int] = []
    data: List[float] = []
    dangling = np.zeros(len(nodes), dtype=bool)

    for j, node_id in enumerate(nodes):
        total = graph.total_out_weight(node_id)
        if total <= 0:
            dangling[j] = True
            continue
        for target, weight in sorted(graph.neighbors(node_id).items()):
            rows.append(index[target])
            cols.append(j)
            data.append(weight / total)

    shape = (len(nodes), len(nodes))
    matrix = sparse.csr_matrix(
        (np.asarray(data, dtype=float), (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64))),
        shape=shape,
    )
    return matrix, dangling


class PPREngine:
    DANGLING_POLICIES = ("restart", "drop")

    def __init__(
        self,
        restart_probability: float = 0.15,
        max_iterations: int = 30,
        tolerance: float = 1e-6,
        max_seconds: Optional[float] = None,
        dangling: str = "restart",
    ):
        _check_restart(restart_probability)
        _check_iterations(max_iterations)
        if not (0 < tolerance < math.inf): raise ValueError("tolerance must be positive and finite")
        if max_seconds is not None and not (0 < max_seconds < math.inf):
            raise ValueError("max_seconds must be positive and finite")
        if dangling not in self.DANGLING_POLICIES:
            raise ValueError(f"dangling must be one of {self.DANGLING_POLICIES}")
        self.restart_probability, self.max_iterations = restart_probability, max_iterations
        self.tolerance, self.max_seconds, self.dangling = tolerance, max_seconds, dangling

    def propagate(
        self,
        source: NodeId,
        graph: GraphModel,
        restart_probability: Optional[float] = None,
        max_iterations: Optional[int] = None,
    ) -> PPRResult:
        r = self.restart_probability if restart_probability is None else _check_restart(restart_probability)
        cap = self.max_iterations if max_iterations is None else _check_iterations(max_iterations)
        if not graph.has_node(source):
            return PPRResult(source)

        nodes = indexed_nodes(graph)
        s = nodes.index(source)
        matrix, dangling = transition_matrix(graph, nodes)
        restart = np.zeros(len(nodes))
        restart[s] = 1.0
        deadline = time.monotonic() + self.max_seconds if self.max_seconds else None

        x = restart.copy()
        residual, iterations, status = math.inf, 0, RankStatus.EXHAUSTED
        while iterations < cap:
            walk = (1.0 - r) * (matrix @ x)
            if self.dangling == "restart" and dangling.any():
                walk[s] += (1.0 - r) * x[dangling].sum()
            x_new = r * restart + walk
            residual = float(np.abs(x_new - x).sum())
            x = x_new
            iterations += 1
            if residual < self.tolerance:
                status = RankStatus.CONVERGED
                break
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning("PPR for %r stopped by time bound after %d iterations (residual=%.3g)", source, iterations, residual)
                break

        if status is RankStatus.CONVERGED:
            logger.debug("PPR for %r converged at iteration %d (residual=%.3g)", source, iterations, residual)
        elif iterations >= cap:
            logger.debug("PPR for %r stopped at the %d-iteration cap (residual=%.3g)", source, cap, residual)
        scores = {node_id: float(x[i]) for i, node_id in enumerate(nodes)}
        return PPRResult(source, scores, iterations, status, residual)

    def rank(
        self,
        user_id: Any,
        graph: GraphModel,
        restart_probability: Optional[float] = None,
        max_iterations: Optional[int] = None,
        top_n: int = 10,
    ) -> List[Tuple[str, float]]:
        """Top ``top_n`` (book_id, score) pairs for a reader, best first.

        Books the reader already borrowed are excluded; equal scores are
        ordered by book id.
        """
        if top_n < 0: raise ValueError("top_n must be non-negative")
        source = NodeId.user(user_id)
        if not graph.has_node(source):
            logger.info("User %s is not in the graph; nothing to rank", user_id)
            return []
        result = self.propagate(source, graph, restart_probability, max_iterations)
        return top_books(result, graph, top_n)

    def __repr__(self) -> str:
        return f"PPREngine(restart_probability={self.restart_probability}, max_iterations={self.max_iterations})"


def top_books(result: PPRResult, graph: GraphModel, top_n: int) -> List[Tuple[str, float]]:
    borrowed = {n for n in graph.neighbors(result.source) if n.is_book}
    candidates = [(n, result.score(n)) for n in graph.book_ids() if n not in borrowed]
    candidates.sort(key=lambda c: (-c[1], c[0]))
    return [(n.key, s) for n, s in candidates[:top_n]]


def _check_restart(p: float) -> float:
    if not (0 < p < 1): raise ValueError("restart_probability must be in (0, 1)")
    return p


def _check_iterations(n: int) -> int:
    if n < 1: raise ValueError("max_iterations must be at least 1")
    return n
