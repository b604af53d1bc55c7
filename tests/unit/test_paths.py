"""Unit tests for simple-path enumeration."""

from causalid.causal.paths import Direction, PathEnumerator, find_all_paths


class TestPathEnumeration:
    """Tests for find_all_paths."""

    def test_paths_in_confounded_graph(self, confounded_graph):
        """Both the direct and the backdoor path are found."""
        paths = find_all_paths(confounded_graph, {"X"}, {"Y"})

        assert sorted(p.nodes for p in paths) == [["X", "U", "Y"], ["X", "Y"]]

    def test_edges_traversed_against_direction(self, fork_graph):
        """Paths follow edges in either direction."""
        (path,) = find_all_paths(fork_graph, {"A"}, {"B"})

        assert path.nodes == ["A", "C", "B"]
        assert path.edges[0].direction == Direction.BACKWARD
        assert path.edges[1].direction == Direction.FORWARD
        assert path.length == 2

    def test_disconnected_sets_have_no_paths(self, isolated_graph):
        assert find_all_paths(isolated_graph, {"A"}, {"C"}) == []
        assert find_all_paths(isolated_graph, {"A"}, {"E"}) == []

    def test_unknown_source_has_no_paths(self, chain_graph):
        assert find_all_paths(chain_graph, {"Q"}, {"C"}) == []

    def test_max_length_caps_search(self, confounded_graph):
        paths = find_all_paths(confounded_graph, {"X"}, {"Y"}, max_length=1)

        assert [p.nodes for p in paths] == [["X", "Y"]]

    def test_paths_are_simple(self, make_graph):
        """No path repeats a node, even in a cyclic graph."""
        graph = make_graph(("A", "B"), ("B", "C"), ("C", "A"), ("C", "D"))

        for path in find_all_paths(graph, {"A"}, {"D"}):
            assert len(path.nodes) == len(set(path.nodes))

    def test_path_stops_at_first_target(self, chain_graph):
        """A path ends at the first target it reaches."""
        paths = find_all_paths(chain_graph, {"A"}, {"B", "C"})

        assert [p.nodes for p in paths] == [["A", "B"]]

    def test_parallel_edges_give_distinct_paths(self, bidirected_graph):
        paths = find_all_paths(bidirected_graph, {"X"}, {"Y"})

        assert len(paths) == 2
        assert sorted(str(p) for p in paths) == ["X --> Y", "X <-> Y"]


class TestBackdoorPaths:
    """Tests for paths that start with an arrow into the source."""

    def test_backdoor_paths(self, confounded_graph):
        enumerator = PathEnumerator(confounded_graph.index())
        paths = enumerator.find_backdoor_paths({"X"}, {"Y"})

        assert [p.nodes for p in paths] == [["X", "U", "Y"]]
        assert str(paths[0]) == "X <-- U --> Y"

    def test_bidirected_edge_is_backdoor(self, bidirected_graph):
        enumerator = PathEnumerator(bidirected_graph.index())
        paths = enumerator.find_backdoor_paths({"X"}, {"Y"})

        assert [str(p) for p in paths] == ["X <-> Y"]

    def test_no_backdoor_paths_without_parents(self, simple_graph):
        enumerator = PathEnumerator(simple_graph.index())

        assert enumerator.find_backdoor_paths({"X"}, {"Y"}) == []
