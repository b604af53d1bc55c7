"""
Simple-path enumeration for d-separation analysis.

Paths are searched in the undirected sense: an edge can be walked from
either end, and each step remembers which way it was walked so that
colliders can be recognised afterwards.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from causalid.core.edges import EdgeKind, GraphEdge
from causalid.core.graph import CausalGraph, GraphIndex
from causalid.core.nodes import NodeId


class Direction(str, Enum):
    """Whether an edge was walked from its source (forward) or its target."""

    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True)
class PathEdge:
    """An edge as traversed along a path.

    Attributes:
        edge: The underlying graph edge
        start: Node the step leaves
        end: Node the step arrives at
        direction: FORWARD if start is the edge's source
    """

    edge: GraphEdge
    start: NodeId
    end: NodeId
    direction: Direction

    @property
    def kind(self) -> EdgeKind:
        return self.edge.kind

    def points_into(self, node_id: NodeId) -> bool:
        """True if the edge has an arrowhead at node_id."""
        return self.edge.has_arrowhead_at(node_id)


@dataclass
class Path:
    """A simple path through the graph.

    Attributes:
        nodes: Ordered node ids, first to last
        edges: Traversed edges; edges[i] joins nodes[i] and nodes[i + 1]
        is_blocked: Set by d-separation analysis
        blocking_reason: Why the path is blocked, if it is
    """

    nodes: list[NodeId]
    edges: list[PathEdge] = field(default_factory=list)
    is_blocked: bool | None = None
    blocking_reason: str | None = None

    @property
    def length(self) -> int:
        """Number of edges on the path."""
        return len(self.edges)

    @property
    def source(self) -> NodeId:
        return self.nodes[0]

    @property
    def target(self) -> NodeId:
        return self.nodes[-1]

    def interior(self) -> list[tuple[int, NodeId]]:
        """(position, node) pairs for every non-endpoint node."""
        return list(enumerate(self.nodes))[1:-1]

    def __str__(self) -> str:
        if not self.edges:
            return self.nodes[0] if self.nodes else ""
        parts = [self.nodes[0]]
        for step in self.edges:
            left = "<" if step.points_into(step.start) else "-"
            right = ">" if step.points_into(step.end) else "-"
            parts.append(f" {left}-{right} {step.end}")
        return "".join(parts)


class PathEnumerator:
    """Enumerates simple paths over a GraphIndex.

    The search is exhaustive: every simple path (no repeated node) from a
    source to a target is produced. A path ends at the first target it
    reaches. Worst-case cost is exponential, which is acceptable for the
    small, hand-authored graphs this package is meant for; ``max_length``
    caps the search.

    Example:
        >>> enumerator = PathEnumerator(graph.index())
        >>> sorted(p.nodes for p in enumerator.find_all_paths({"X"}, {"Y"}))
        [['X', 'U', 'Y'], ['X', 'Y']]
    """

    def __init__(self, index: GraphIndex):
        self.index = index

    def iter_paths(
        self,
        sources: Iterable[NodeId],
        targets: Iterable[NodeId],
        max_length: int | None = None,
        first_step_into_source: bool = False,
    ) -> Iterator[Path]:
        """Lazily yield simple paths from any source to any target.

        Args:
            sources: Start nodes
            targets: End nodes
            max_length: Maximum number of edges per path (None = unbounded)
            first_step_into_source: Only follow first edges that point into
                the source (backdoor paths)

        Yields:
            Path objects in depth-first order
        """
        target_set = set(targets)

        for source in dict.fromkeys(sources):
            if not self.index.has_node(source):
                continue
            yield from self._dfs(
                source,
                target_set,
                max_length,
                first_step_into_source,
                visited={source},
                nodes=[source],
                steps=[],
            )

    def _dfs(
        self,
        current: NodeId,
        targets: set[NodeId],
        max_length: int | None,
        backdoor_only: bool,
        visited: set[NodeId],
        nodes: list[NodeId],
        steps: list[PathEdge],
    ) -> Iterator[Path]:
        if steps and current in targets:
            yield Path(nodes=list(nodes), edges=list(steps))
            return
        if max_length is not None and len(steps) >= max_length:
            return

        for neighbor, edge in self.index.incident(current):
            if neighbor in visited:
                continue
            if backdoor_only and not steps and not edge.has_arrowhead_at(current):
                continue

            direction = Direction.FORWARD if edge.source == current else Direction.BACKWARD
            visited.add(neighbor)
            nodes.append(neighbor)
            steps.append(PathEdge(edge=edge, start=current, end=neighbor, direction=direction))

            yield from self._dfs(
                neighbor, targets, max_length, backdoor_only, visited, nodes, steps
            )

            steps.pop()
            nodes.pop()
            visited.discard(neighbor)

    def find_all_paths(
        self,
        sources: Iterable[NodeId],
        targets: Iterable[NodeId],
        max_length: int | None = None,
    ) -> list[Path]:
        """Find every simple path between two node sets."""
        return list(self.iter_paths(sources, targets, max_length))

    def find_backdoor_paths(
        self,
        treatments: Iterable[NodeId],
        outcomes: Iterable[NodeId],
        max_length: int | None = None,
    ) -> list[Path]:
        """Find all backdoor paths from treatment to outcome.

        A backdoor path starts with an edge pointing INTO the treatment
        (a directed edge from a parent, or a bidirected edge). These are
        the confounding paths that need to be blocked for causal
        identification.
        """
        return list(
            self.iter_paths(treatments, outcomes, max_length, first_step_into_source=True)
        )


def find_all_paths(
    graph: CausalGraph,
    sources: Iterable[NodeId],
    targets: Iterable[NodeId],
    max_length: int | None = None,
) -> list[Path]:
    """Find every simple path between two node sets of a graph.

    Args:
        graph: The graph to search
        sources: Start nodes
        targets: End nodes
        max_length: Maximum number of edges per path (None = unbounded)

    Returns:
        All simple paths, possibly empty
    """
    return PathEnumerator(GraphIndex(graph)).find_all_paths(sources, targets, max_length)
