"""Unit tests for d-separation.

These tests use the classic chain, fork and collider structures, and
cross-check the path-based analysis against NetworkX on DAGs.
"""

from itertools import combinations

import networkx as nx
import pytest

from causalid.causal.dseparation import (
    DSeparationAnalyzer,
    DSeparationConfig,
    DSeparationQuery,
    check_d_separation,
    compute_markov_blanket,
    find_minimal_separator,
    get_implied_independencies,
    is_valid_backdoor_adjustment,
)
from causalid.core.edges import create_undirected_edge
from causalid.core.graph import CausalGraph


class TestDSeparationChain:
    """Tests for d-separation in chains (A → B → C)."""

    def test_unconditional_d_connection(self, chain_graph):
        """In a chain, A and C are d-connected unconditionally."""
        analyzer = DSeparationAnalyzer(chain_graph)

        assert analyzer.is_d_separated({"A"}, {"C"}) is False

    def test_d_separation_by_mediator(self, chain_graph):
        """In a chain, A and C are d-separated by B."""
        analyzer = DSeparationAnalyzer(chain_graph)

        assert analyzer.is_d_separated({"A"}, {"C"}, {"B"}) is True

    def test_d_connection_helper(self, chain_graph):
        """is_d_connected is inverse of is_d_separated."""
        analyzer = DSeparationAnalyzer(chain_graph)

        assert analyzer.is_d_connected({"A"}, {"C"}) is True
        assert analyzer.is_d_connected({"A"}, {"C"}, {"B"}) is False


class TestDSeparationFork:
    """Tests for d-separation in forks (A ← C → B)."""

    def test_unconditional_d_connection(self, fork_graph):
        """In a fork, A and B are d-connected through the common cause."""
        result = check_d_separation(fork_graph, DSeparationQuery(x={"A"}, y={"B"}))

        assert result.separated is False
        assert result.explanation == "1 of 1 path(s) remain open after conditioning on {}"

    def test_d_separation_by_common_cause(self, fork_graph):
        """In a fork, A and B are d-separated by the common cause C."""
        result = check_d_separation(fork_graph, DSeparationQuery(x={"A"}, y={"B"}, z={"C"}))

        assert result.separated is True
        assert result.conditioning_set == ["C"]
        assert result.explanation == "All 1 path(s) are blocked by conditioning on {C}"


class TestDSeparationCollider:
    """Tests for d-separation in colliders (A → C ← B).

    Colliders exhibit the 'explaining away' phenomenon where
    conditioning on the collider opens the path between causes.
    """

    def test_unconditional_d_separation(self, collider_graph):
        """In a collider, A and B are d-separated unconditionally."""
        analyzer = DSeparationAnalyzer(collider_graph)

        assert analyzer.is_d_separated({"A"}, {"B"}) is True

    def test_d_connection_when_conditioning_on_collider(self, collider_graph):
        """Conditioning on the collider opens the path."""
        analyzer = DSeparationAnalyzer(collider_graph)

        assert analyzer.is_d_separated({"A"}, {"B"}, {"C"}) is False

    def test_conditioning_on_collider_descendant(self, make_graph):
        """A conditioned descendant of the collider also opens the path."""
        graph = make_graph(("A", "C"), ("B", "C"), ("C", "D"))
        analyzer = DSeparationAnalyzer(graph)

        assert analyzer.is_d_separated({"A"}, {"B"}, {"D"}) is False

    def test_bidirected_edges_form_colliders(self, make_graph):
        """A ↔ C ↔ B has a collider at C."""
        graph = make_graph(bidirected=[("A", "C"), ("C", "B")])
        analyzer = DSeparationAnalyzer(graph)

        assert analyzer.is_d_separated({"A"}, {"B"}) is True
        assert analyzer.is_d_separated({"A"}, {"B"}, {"C"}) is False

    def test_undirected_edges_never_form_colliders(self):
        graph = CausalGraph.from_edges(
            [create_undirected_edge("A", "C"), create_undirected_edge("C", "B")]
        )
        analyzer = DSeparationAnalyzer(graph)

        assert analyzer.is_d_separated({"A"}, {"B"}) is False
        assert analyzer.is_d_separated({"A"}, {"B"}, {"C"}) is True


class TestPathBlocking:
    """Tests for single-path blocking diagnostics."""

    def test_collider_reason(self, collider_graph):
        analyzer = DSeparationAnalyzer(collider_graph)
        (path,) = analyzer.paths.find_all_paths({"A"}, {"B"})

        assert analyzer.is_collider(path, 1)
        result = analyzer.is_path_blocked(path, set())
        assert result.blocked
        assert result.reason == "Collider C is not conditioned on and has no conditioned descendant"

    def test_non_collider_reason(self, chain_graph):
        analyzer = DSeparationAnalyzer(chain_graph)
        (path,) = analyzer.paths.find_all_paths({"A"}, {"C"})

        result = analyzer.is_path_blocked(path, {"B"})
        assert result.blocked
        assert result.reason == "Non-collider B is conditioned on"

    def test_direct_edge_never_blocked(self, simple_graph):
        analyzer = DSeparationAnalyzer(simple_graph)
        (path,) = analyzer.paths.find_all_paths({"X"}, {"Y"})

        result = analyzer.is_path_blocked(path, {"X", "Y"})
        assert not result.blocked
        assert result.reason == "Direct edge cannot be blocked"

    def test_activated_collider_reason(self, collider_graph):
        analyzer = DSeparationAnalyzer(collider_graph)
        (path,) = analyzer.paths.find_all_paths({"A"}, {"B"})

        result = analyzer.is_path_blocked(path, {"C"})
        assert not result.blocked
        assert "activated" in result.reason

    def test_endpoints_are_not_colliders(self, collider_graph):
        analyzer = DSeparationAnalyzer(collider_graph)
        (path,) = analyzer.paths.find_all_paths({"A"}, {"B"})

        assert not analyzer.is_collider(path, 0)
        assert not analyzer.is_collider(path, 2)


class TestCheckDSeparation:
    """Tests for full d-separation queries."""

    def test_disconnected_sets_are_separated(self, isolated_graph):
        result = check_d_separation(isolated_graph, DSeparationQuery(x={"A", "B"}, y={"C"}))

        assert result.separated
        assert result.explanation == "No paths exist between {A, B} and {C}"

    def test_path_details(self, confounded_graph):
        config = DSeparationConfig(include_path_details=True)
        query = DSeparationQuery(x="X", y="Y", z="U")
        result = check_d_separation(confounded_graph, query, config)

        assert not result.separated
        assert [p.nodes for p in result.open_paths] == [["X", "Y"]]
        assert [p.nodes for p in result.blocking_paths] == [["X", "U", "Y"]]
        assert result.blocking_paths[0].blocking_reason == "Non-collider U is conditioned on"

    def test_path_details_omitted_by_default(self, confounded_graph):
        result = check_d_separation(confounded_graph, DSeparationQuery(x="X", y="Y"))

        assert result.blocking_paths == []
        assert result.open_paths == []

    def test_query_normalizes_strings(self):
        query = DSeparationQuery(x="X", y=["Y", "W"])

        assert query.x == frozenset({"X"})
        assert query.y == frozenset({"Y", "W"})
        assert query.z == frozenset()


class TestNetworkXAgreement:
    """Cross-checks against networkx.is_d_separator on DAGs."""

    @pytest.fixture
    def dag_edges(self):
        return [
            ("A", "B"),
            ("A", "C"),
            ("B", "D"),
            ("C", "D"),
            ("D", "E"),
            ("F", "C"),
            ("F", "E"),
        ]

    def test_agrees_on_all_small_queries(self, make_graph, dag_edges):
        graph = make_graph(*dag_edges)
        analyzer = DSeparationAnalyzer(graph)
        reference = nx.DiGraph(dag_edges)
        nodes = sorted(reference.nodes)

        for x, y in combinations(nodes, 2):
            others = [n for n in nodes if n not in (x, y)]
            for size in range(3):
                for z in combinations(others, size):
                    expected = nx.is_d_separator(reference, {x}, {y}, set(z))
                    assert analyzer.is_d_separated({x}, {y}, z) == expected, (x, y, z)


class TestMarkovBlanket:
    """Tests for Markov blanket computation."""

    def test_blanket_includes_spouses(self, make_graph):
        graph = make_graph(("P", "V"), ("V", "C"), ("S", "C"), ("C", "G"))

        assert compute_markov_blanket(graph, "V") == ["C", "P", "S"]

    def test_blanket_excludes_node_itself(self, make_graph):
        graph = make_graph(("V", "V"), ("V", "C"))

        assert compute_markov_blanket(graph, "V") == ["C"]

    def test_unknown_node_has_empty_blanket(self, chain_graph):
        assert compute_markov_blanket(chain_graph, "Q") == []


class TestMinimalSeparator:
    """Tests for minimal separator search."""

    def test_chain_separator(self, make_graph):
        graph = make_graph(("A", "B"), ("B", "C"), ("C", "D"))

        assert find_minimal_separator(graph, {"A"}, {"D"}) == ["B"]

    def test_empty_separator_for_collider(self, collider_graph):
        assert find_minimal_separator(collider_graph, {"A"}, {"B"}) == []

    def test_adjacent_nodes_cannot_be_separated(self, simple_graph):
        assert find_minimal_separator(simple_graph, {"X"}, {"Y"}) is None

    def test_separator_actually_separates(self, make_graph):
        graph = make_graph(("U", "X"), ("U", "W"), ("W", "Y"), ("X", "M"), ("M", "Y"))
        separator = find_minimal_separator(graph, {"X"}, {"Y"})

        assert separator is not None
        assert DSeparationAnalyzer(graph).is_d_separated({"X"}, {"Y"}, separator)
        assert len(separator) == 2

    def test_separator_through_undirected_edges(self):
        """X — W — Y: W is no ancestor of X or Y but still separates them."""
        graph = CausalGraph.from_edges(
            [create_undirected_edge("X", "W"), create_undirected_edge("W", "Y")]
        )

        assert check_d_separation(graph, DSeparationQuery(x={"X"}, y={"Y"}, z={"W"})).separated
        assert find_minimal_separator(graph, {"X"}, {"Y"}) == ["W"]


class TestImpliedIndependencies:
    """Tests for implied conditional independencies."""

    def test_chain_independencies(self, chain_graph):
        independencies = get_implied_independencies(chain_graph)

        assert [str(i) for i in independencies] == ["A ⊥ C | B"]

    def test_collider_independencies(self, collider_graph):
        independencies = get_implied_independencies(collider_graph)

        assert [str(i) for i in independencies] == ["A ⊥ B"]

    def test_adjacent_pairs_skipped(self, simple_graph):
        assert get_implied_independencies(simple_graph) == []


class TestBackdoorAdjustment:
    """Tests for the backdoor criterion."""

    def test_confounder_is_valid_adjustment(self, confounded_graph):
        assert is_valid_backdoor_adjustment(confounded_graph, "X", "Y", {"U"}) is True

    def test_empty_set_invalid_with_confounding(self, confounded_graph):
        assert is_valid_backdoor_adjustment(confounded_graph, "X", "Y", set()) is False

    def test_empty_set_valid_without_confounding(self, simple_graph):
        assert is_valid_backdoor_adjustment(simple_graph, "X", "Y", set()) is True

    def test_descendant_not_valid_adjustment(self, make_graph):
        """Any set containing a descendant of treatment is invalid."""
        graph = make_graph(("U", "X"), ("U", "Y"), ("X", "M"), ("M", "Y"), ("X", "D"))

        assert is_valid_backdoor_adjustment(graph, "X", "Y", {"U"}) is True
        assert is_valid_backdoor_adjustment(graph, "X", "Y", {"U", "D"}) is False
        assert is_valid_backdoor_adjustment(graph, "X", "Y", {"U", "M"}) is False

    def test_bidirected_confounding_cannot_be_adjusted(self, bidirected_graph):
        assert is_valid_backdoor_adjustment(bidirected_graph, "X", "Y", set()) is False


class TestVStructures:
    """Tests for v-structure detection."""

    def test_collider_is_v_structure(self, collider_graph):
        (v,) = DSeparationAnalyzer(collider_graph).find_v_structures()

        assert (v.parent1, v.collider, v.parent2) == ("A", "C", "B")

    def test_shielded_collider_is_not_v_structure(self, confounded_graph):
        assert DSeparationAnalyzer(confounded_graph).find_v_structures() == []
