"""Unit tests for centrality analysis."""

import logging

import pytest

from causalid.causal.centrality import (
    CentralityAnalyzer,
    CentralityConfig,
    CentralityMeasure,
    NodeScore,
    compute_all_centrality,
)


class TestDegreeCentrality:
    """Tests for degree measures."""

    def test_normalized_degrees(self, confounded_graph):
        analyzer = CentralityAnalyzer(confounded_graph)

        assert analyzer.out_degree() == {"U": 1.0, "X": 0.5, "Y": 0.0}
        assert analyzer.in_degree() == {"U": 0.0, "X": 0.5, "Y": 1.0}
        assert analyzer.degree() == {"U": 1.0, "X": 1.0, "Y": 1.0}

    def test_raw_degrees(self, confounded_graph):
        analyzer = CentralityAnalyzer(confounded_graph, CentralityConfig(normalize=False))

        assert analyzer.out_degree()["U"] == 2

    def test_bidirected_edges_count_both_ways(self, bidirected_graph):
        analyzer = CentralityAnalyzer(bidirected_graph)

        assert analyzer.out_degree() == {"X": 2.0, "Y": 1.0}
        assert analyzer.in_degree() == {"X": 1.0, "Y": 2.0}
        assert analyzer.degree() == {"X": 3.0, "Y": 3.0}


class TestPathCentrality:
    """Tests for betweenness and closeness."""

    def test_chain_middle_is_between(self, chain_graph):
        scores = CentralityAnalyzer(chain_graph).betweenness()

        assert scores["B"] == pytest.approx(1.0)
        assert scores["A"] == 0.0

    def test_closeness_ignores_direction(self, chain_graph):
        scores = CentralityAnalyzer(chain_graph).closeness()

        assert scores["B"] == pytest.approx(1.0)
        assert scores["A"] == pytest.approx(scores["C"])


class TestIterativeCentrality:
    """Tests for PageRank, eigenvector and Katz centrality."""

    def test_pagerank_favors_outcome(self, confounded_graph):
        scores = CentralityAnalyzer(confounded_graph).pagerank()

        assert sum(scores.values()) == pytest.approx(1.0)
        assert scores["Y"] > scores["X"] > scores["U"]

    def test_katz_scaled_to_max(self, confounded_graph):
        scores = CentralityAnalyzer(confounded_graph).katz()

        assert scores["Y"] == pytest.approx(1.0)
        assert scores["X"] == pytest.approx(1.1 / 1.21)
        assert scores["U"] == pytest.approx(1.0 / 1.21)

    def test_eigenvector_symmetric_triangle(self, confounded_graph):
        scores = CentralityAnalyzer(confounded_graph).eigenvector()

        assert scores["U"] == pytest.approx(scores["X"])
        assert scores["X"] == pytest.approx(scores["Y"])

    def test_non_convergence_reports_zeros(self, confounded_graph, caplog):
        analyzer = CentralityAnalyzer(confounded_graph, CentralityConfig(max_iterations=1))

        with caplog.at_level(logging.WARNING, logger="causalid.causal.centrality"):
            scores = analyzer.pagerank()

        assert scores == {"U": 0.0, "X": 0.0, "Y": 0.0}
        assert "did not converge" in caplog.text


class TestComputeAll:
    """Tests for aggregate centrality analysis."""

    def test_default_measures(self, confounded_graph):
        result = compute_all_centrality(confounded_graph)

        assert CentralityMeasure.KATZ not in result.measures
        assert len(result.measures) == 7
        assert result.computation_time_ms >= 0

    def test_top_nodes_ranked(self, confounded_graph):
        config = CentralityConfig(measures=["out_degree", "katz"], top_n=2)
        result = CentralityAnalyzer(confounded_graph, config).compute_all()

        assert result.top_nodes[CentralityMeasure.OUT_DEGREE] == [
            NodeScore("U", 1.0),
            NodeScore("X", 0.5),
        ]
        assert result.top_nodes[CentralityMeasure.KATZ][0].node_id == "Y"

    def test_empty_graph(self, empty_graph):
        result = compute_all_centrality(empty_graph)

        assert all(scores == {} for scores in result.measures.values())
        assert result.top_nodes == {}


class TestMostCentralNode:
    """Tests for get_most_central_node."""

    def test_by_measure(self, confounded_graph):
        analyzer = CentralityAnalyzer(confounded_graph)

        assert analyzer.get_most_central_node("out_degree") == NodeScore("U", 1.0)
        assert analyzer.get_most_central_node().node_id == "Y"

    def test_ties_go_to_smallest_id(self, confounded_graph):
        assert CentralityAnalyzer(confounded_graph).get_most_central_node("degree").node_id == "U"

    def test_unknown_measure(self, confounded_graph):
        assert CentralityAnalyzer(confounded_graph).get_most_central_node("fame") is None

    def test_empty_graph(self, empty_graph):
        assert CentralityAnalyzer(empty_graph).get_most_central_node() is None
