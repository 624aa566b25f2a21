"""Tests for the personalized PageRank engine."""

import itertools
import logging
import math
from unittest.mock import patch

import pytest
from shelfrank.graph import GraphModel, NodeId
from shelfrank.recommenders.ppr import PPREngine, RankStatus, indexed_nodes, top_books, transition_matrix
from shelfrank.recommenders.subgraph import SubgraphBuilder

U, B = NodeId.user, NodeId.book


def make_graph(edges, extra_nodes=()):
    g = GraphModel()
    for src, dst, _ in edges:
        g.add_node(src)
        g.add_node(dst)
    for n in extra_nodes:
        g.add_node(n)
    for src, dst, w in edges:
        g.add_edge(src, dst, w)
    return g


@pytest.fixture
def closed_graph():
    """Every node has at least one out-edge."""
    return make_graph([
        (U("U1"), B("B1"), 1.0),
        (B("B1"), U("U2"), 0.8),
        (U("U2"), B("B1"), 0.8),
        (U("U2"), B("B2"), 0.5),
        (B("B2"), U("U2"), 0.5),
    ])


class TestPropagate:

    def test_isolated_source_converges_in_one_iteration(self):
        g = make_graph([], extra_nodes=[U("U1")])
        result = PPREngine().propagate(U("U1"), g)
        assert result.iterations == 1
        assert result.status is RankStatus.CONVERGED
        assert result.score(U("U1")) == pytest.approx(1.0)

    def test_isolated_source_with_drop_policy_leaks(self):
        g = make_graph([], extra_nodes=[U("U1")])
        result = PPREngine(dangling="drop").propagate(U("U1"), g)
        assert result.converged
        assert result.iterations == 2
        assert result.score(U("U1")) == pytest.approx(0.15)

    @pytest.mark.parametrize("dangling", ["restart", "drop"])
    def test_mass_conserved_without_sinks(self, closed_graph, dangling):
        result = PPREngine(max_iterations=200, dangling=dangling).propagate(U("U1"), closed_graph)
        assert result.converged
        assert result.total_mass == pytest.approx(1.0, abs=1e-9)
        assert all(s >= 0 for s in result.scores.values())

    def test_mass_leaks_at_sinks_only_with_drop(self):
        g = make_graph([(U("U1"), B("B1"), 1.0)])
        dropped = PPREngine(max_iterations=2, dangling="drop").propagate(U("U1"), g)
        kept = PPREngine(max_iterations=2).propagate(U("U1"), g)
        assert dropped.total_mass == pytest.approx(0.15 + 0.85 * 0.15)
        assert kept.total_mass == pytest.approx(1.0)

    def test_absent_source_returns_empty(self, closed_graph):
        result = PPREngine().propagate(U("nobody"), closed_graph)
        assert result.scores == {}
        assert result.iterations == 0

    def test_iteration_cap_exhausts(self, closed_graph):
        result = PPREngine(max_iterations=1).propagate(U("U1"), closed_graph)
        assert result.status is RankStatus.EXHAUSTED
        assert result.iterations == 1
        assert result.residual > 1e-6

    def test_per_call_overrides(self, closed_graph):
        engine = PPREngine(max_iterations=100)
        assert engine.propagate(U("U1"), closed_graph, max_iterations=2).iterations == 2
        low = engine.propagate(U("U1"), closed_graph, restart_probability=0.05)
        high = engine.propagate(U("U1"), closed_graph, restart_probability=0.9)
        assert high.score(U("U1")) > low.score(U("U1"))

    def test_time_bound_stops_iteration(self, closed_graph):
        clock = itertools.chain([0.0], itertools.repeat(10.0))
        with patch("shelfrank.recommenders.ppr.time.monotonic", side_effect=clock):
            result = PPREngine(max_iterations=1000, max_seconds=1.0).propagate(U("U1"), closed_graph)
        assert result.iterations == 1
        assert result.status is RankStatus.EXHAUSTED

    def test_phantom_targets_absorb_no_ranking(self):
        g = make_graph([(U("U1"), B("B1"), 1.0)])
        g.add_edge(U("U1"), B("ghost"), 1.0)
        result = PPREngine().propagate(U("U1"), g)
        assert result.score(B("ghost")) > 0
        assert result.total_mass == pytest.approx(1.0)
        assert top_books(result, g, 10) == []

    @pytest.mark.parametrize("kwargs", [
        {"restart_probability": 0}, {"restart_probability": 1}, {"max_iterations": 0},
        {"tolerance": 0}, {"max_seconds": 0}, {"dangling": "teleport"},
        {"tolerance": math.nan}, {"max_seconds": math.inf}, {"restart_probability": math.nan},
    ])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ValueError):
            PPREngine(**kwargs)

    def test_iteration_cap_is_not_a_warning(self, closed_graph, caplog):
        with caplog.at_level(logging.DEBUG, logger="shelfrank.recommenders.ppr"):
            result = PPREngine(max_iterations=1).propagate(U("U1"), closed_graph)
        assert result.status is RankStatus.EXHAUSTED
        assert "iteration cap" in caplog.text
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_time_bound_logs_warning(self, closed_graph, caplog):
        clock = itertools.chain([0.0], itertools.repeat(10.0))
        with patch("shelfrank.recommenders.ppr.time.monotonic", side_effect=clock):
            PPREngine(max_iterations=1000, max_seconds=1.0).propagate(U("U1"), closed_graph)
        assert any(r.levelno == logging.WARNING and "time bound" in r.getMessage() for r in caplog.records)


class TestTransitionMatrix:

    def test_columns_are_normalised_out_weights(self, closed_graph):
        nodes = indexed_nodes(closed_graph)
        assert nodes == [B("B1"), B("B2"), U("U1"), U("U2")]
        matrix, dangling = transition_matrix(closed_graph, nodes)
        dense = matrix.toarray()
        assert dense[:, 3].tolist() == pytest.approx([0.8 / 1.3, 0.5 / 1.3, 0.0, 0.0])
        assert dense.sum(axis=0).tolist() == pytest.approx([1.0, 1.0, 1.0, 1.0])
        assert not dangling.any()

    def test_sinks_and_phantom_targets_are_dangling(self):
        g = make_graph([(U("U1"), B("B1"), 1.0)])
        g.add_edge(U("U1"), B("ghost"), 3.0)
        nodes = indexed_nodes(g)
        assert nodes == [B("B1"), B("ghost"), U("U1")]
        matrix, dangling = transition_matrix(g, nodes)
        assert dangling.tolist() == [True, True, False]
        assert matrix.toarray()[:, 2].tolist() == pytest.approx([0.25, 0.75, 0.0])


class TestRank:

    def test_worked_example(self, example_repository, now):
        g = SubgraphBuilder(example_repository, decay_rate=0.1).build("U1", now=now)
        g.add_node(B("unreachable"))
        ranked = PPREngine().rank("U1", g, 0.15, 50, 5)
        ids = [book for book, _ in ranked]
        assert "B1" not in ids
        assert ids == ["B2", "unreachable"]
        assert ranked[0][1] > ranked[1][1] == 0.0

    def test_never_returns_borrowed_books(self, repository, borrows_df, now):
        builder, engine = SubgraphBuilder(repository), PPREngine()
        for user, rows in borrows_df.groupby("user_id"):
            ranked = engine.rank(user, builder.build(user, now=now), top_n=20)
            assert not {b for b, _ in ranked} & set(rows["book_id"])

    def test_scores_sorted_and_truncated(self, repository, now):
        g = SubgraphBuilder(repository).build("R9", now=now)
        ranked = PPREngine().rank("R9", g, top_n=3)
        assert len(ranked) == 3
        scores = [s for _, s in ranked]
        assert scores == sorted(scores, reverse=True)

    def test_ties_broken_by_book_id(self):
        edges = [
            (U("U1"), B("B1"), 1.0),
            (B("B1"), U("U3"), 1.0), (B("B1"), U("U2"), 1.0),
            (U("U3"), B("B3"), 1.0), (U("U2"), B("B2"), 1.0),
        ]
        forward, backward = make_graph(edges), make_graph(list(reversed(edges)))
        engine = PPREngine()
        first = engine.rank("U1", forward)
        assert [b for b, _ in first] == ["B2", "B3"]
        assert first[0][1] == first[1][1]
        assert engine.rank("U1", backward) == first

    def test_deterministic_across_calls(self, repository, now):
        g = SubgraphBuilder(repository).build("R9", now=now)
        engine = PPREngine()
        assert engine.rank("R9", g, top_n=10) == engine.rank("R9", g, top_n=10)

    def test_unknown_user_ranks_nothing(self, closed_graph):
        assert PPREngine().rank("nobody", closed_graph) == []

    def test_negative_top_n_rejected(self, closed_graph):
        with pytest.raises(ValueError):
            PPREngine().rank("U1", closed_graph, top_n=-1)
