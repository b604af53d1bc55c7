"""
D-separation algorithms for conditional independence testing.

D-separation (directed separation) is a criterion for determining
conditional independence relationships in causal graphs. It is
fundamental to Pearl's causal inference framework.

Unlike NetworkX's ``is_d_separator``, the analysis here works path by
path so that it can explain which node blocks which path, and it
accepts bidirected edges, undirected edges and cycles.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from itertools import combinations

from causalid.causal.paths import Path, PathEnumerator
from causalid.core.edges import EdgeKind
from causalid.core.graph import CausalGraph, GraphIndex
from causalid.core.nodes import NodeId, as_node_set, format_nodes

logger = logging.getLogger(__name__)


@dataclass
class DSeparationConfig:
    """Configuration for d-separation analysis.

    Attributes:
        max_path_length: Maximum path length (edges) to consider; None = unbounded
        include_path_details: Whether results list the blocked and open paths
    """

    max_path_length: int | None = None
    include_path_details: bool = False


@dataclass
class DSeparationQuery:
    """A d-separation question: is X ⊥ Y | Z?

    Sets are expected to be pairwise disjoint; this is not enforced.
    """

    x: frozenset[NodeId]
    y: frozenset[NodeId]
    z: frozenset[NodeId] = frozenset()

    def __post_init__(self) -> None:
        self.x = as_node_set(self.x)
        self.y = as_node_set(self.y)
        self.z = as_node_set(self.z)


@dataclass
class PathBlockingResult:
    """Whether a single path is blocked, and which node decides it."""

    blocked: bool
    reason: str


@dataclass
class DSeparationResult:
    """Result of a d-separation query.

    Attributes:
        separated: True if every path between X and Y is blocked
        conditioning_set: The conditioning set used, sorted
        blocking_paths: Blocked paths (only with include_path_details)
        open_paths: Open paths (only with include_path_details)
        explanation: Human-readable summary
    """

    separated: bool
    conditioning_set: list[NodeId]
    blocking_paths: list[Path] = field(default_factory=list)
    open_paths: list[Path] = field(default_factory=list)
    explanation: str = ""


@dataclass
class ImpliedIndependence:
    """A conditional independence X ⊥ Y | Z implied by the graph."""

    x: NodeId
    y: NodeId
    z: list[NodeId]

    def __str__(self) -> str:
        if not self.z:
            return f"{self.x} ⊥ {self.y}"
        return f"{self.x} ⊥ {self.y} | {', '.join(self.z)}"


@dataclass
class VStructure:
    """A collider parent1 → collider ← parent2 with non-adjacent parents."""

    parent1: NodeId
    collider: NodeId
    parent2: NodeId
    activated_when_conditioned: bool = True


class DSeparationAnalyzer:
    """Implements d-separation algorithms for conditional independence testing.

    D-separation is the key graphical criterion for determining when
    variables are conditionally independent given a set of observed variables.

    Two nodes X and Y are d-separated by a set Z if all paths between X and Y
    are "blocked" by Z. A path is blocked if it contains:
    1. A chain (A→B→C) or fork (A←B→C) whose middle node B is in Z
    2. A collider (A→B←C) where B is NOT in Z and no descendant of B is in Z

    A node is a collider on a path when both path edges have an arrowhead at
    it; bidirected edges have arrowheads at both ends, undirected edges at
    neither.

    Example:
        >>> analyzer = DSeparationAnalyzer(graph)
        >>> # Check if X and Y are independent given Z
        >>> analyzer.is_d_separated({"X"}, {"Y"}, {"Z"})
        True
    """

    def __init__(self, graph: CausalGraph, config: DSeparationConfig | None = None):
        """Initialize the analyzer with a graph.

        Args:
            graph: The CausalGraph to analyze
            config: Optional analysis configuration
        """
        self.graph = graph
        self.config = config or DSeparationConfig()
        self.index = GraphIndex(graph)
        self.paths = PathEnumerator(self.index)

    # --- Path Blocking ---

    def is_collider(self, path: Path, position: int) -> bool:
        """Check if the node at a position is a collider on the path.

        Endpoints are never colliders.
        """
        if position <= 0 or position >= len(path.nodes) - 1:
            return False
        node = path.nodes[position]
        return path.edges[position - 1].points_into(node) and path.edges[position].points_into(
            node
        )

    def is_path_blocked(
        self,
        path: Path,
        conditioning_set: Iterable[NodeId] | None = None,
    ) -> PathBlockingResult:
        """Check if a path is blocked by a conditioning set.

        Only interior nodes decide blocking; a direct edge is never blocked.

        Args:
            path: The path to test
            conditioning_set: Nodes conditioned on

        Returns:
            PathBlockingResult naming the node that blocks the path, or the
            collider that opens it
        """
        z = as_node_set(conditioning_set)
        activated: list[NodeId] = []

        for position, node in path.interior():
            if self.is_collider(path, position):
                if node in z:
                    activated.append(node)
                    continue
                conditioned = sorted(self.index.descendants(node) & z)
                if not conditioned:
                    return PathBlockingResult(
                        blocked=True,
                        reason=f"Collider {node} is not conditioned on and has no conditioned descendant",
                    )
                activated.append(node)
            elif node in z:
                return PathBlockingResult(
                    blocked=True,
                    reason=f"Non-collider {node} is conditioned on",
                )

        if not path.interior():
            return PathBlockingResult(blocked=False, reason="Direct edge cannot be blocked")
        if activated:
            return PathBlockingResult(
                blocked=False,
                reason=f"Collider(s) {', '.join(activated)} activated by conditioning",
            )
        return PathBlockingResult(
            blocked=False, reason="No non-collider on the path is conditioned on"
        )

    # --- D-Separation Queries ---

    def check_d_separation(self, query: DSeparationQuery) -> DSeparationResult:
        """Check d-separation between X and Y given Z.

        Args:
            query: The (x, y, z) sets to test

        Returns:
            DSeparationResult with an explanation and, if configured, the
            blocked and open paths
        """
        all_paths = self.paths.find_all_paths(
            query.x, query.y, self.config.max_path_length
        )

        blocking_paths: list[Path] = []
        open_paths: list[Path] = []
        for path in all_paths:
            outcome = self.is_path_blocked(path, query.z)
            path.is_blocked = outcome.blocked
            path.blocking_reason = outcome.reason if outcome.blocked else None
            if outcome.blocked:
                blocking_paths.append(path)
            else:
                open_paths.append(path)

        separated = not open_paths
        z_str = format_nodes(query.z)

        if not all_paths:
            explanation = (
                f"No paths exist between {{{format_nodes(query.x)}}} "
                f"and {{{format_nodes(query.y)}}}"
            )
        elif separated:
            explanation = f"All {len(all_paths)} path(s) are blocked by conditioning on {{{z_str}}}"
        else:
            explanation = (
                f"{len(open_paths)} of {len(all_paths)} path(s) remain open "
                f"after conditioning on {{{z_str}}}"
            )

        details = self.config.include_path_details
        return DSeparationResult(
            separated=separated,
            conditioning_set=sorted(query.z),
            blocking_paths=blocking_paths if details else [],
            open_paths=open_paths if details else [],
            explanation=explanation,
        )

    def is_d_separated(
        self,
        x: Iterable[NodeId],
        y: Iterable[NodeId],
        z: Iterable[NodeId] | None = None,
    ) -> bool:
        """Test if X and Y are d-separated given Z.

        Stops at the first open path.

        Example:
            >>> # In a chain A → B → C, A and C are d-separated by B
            >>> analyzer.is_d_separated({"A"}, {"C"}, {"B"})
            True
            >>> # But not without conditioning on B
            >>> analyzer.is_d_separated({"A"}, {"C"})
            False
        """
        conditioning = as_node_set(z)
        for path in self.paths.iter_paths(
            as_node_set(x), as_node_set(y), self.config.max_path_length
        ):
            if not self.is_path_blocked(path, conditioning).blocked:
                return False
        return True

    def is_d_connected(
        self,
        x: Iterable[NodeId],
        y: Iterable[NodeId],
        z: Iterable[NodeId] | None = None,
    ) -> bool:
        """Test if X and Y are d-connected given Z (the negation of d-separation)."""
        return not self.is_d_separated(x, y, z)

    # --- Derived Sets ---

    def compute_markov_blanket(self, node_id: NodeId) -> list[NodeId]:
        """Compute the Markov blanket of a node.

        The blanket is parents ∪ children ∪ parents of children, without the
        node itself. Only directed edges contribute.
        """
        blanket = self.index.parents(node_id) | self.index.children(node_id)
        for child in self.index.children(node_id):
            blanket |= self.index.parents(child)
        blanket.discard(node_id)
        return sorted(blanket)

    def get_implied_independencies(
        self,
        max_set_size: int = 3,
    ) -> list[ImpliedIndependence]:
        """Get all conditional independencies implied by the graph.

        Every non-adjacent pair is tested against each conditioning set of
        up to ``max_set_size`` other nodes.

        Args:
            max_set_size: Largest conditioning set to try

        Returns:
            Independencies in node order, smaller conditioning sets first
        """
        node_ids = self.index.node_ids
        independencies: list[ImpliedIndependence] = []

        for x, y in combinations(node_ids, 2):
            if self.index.is_adjacent(x, y):
                continue
            others = [n for n in node_ids if n not in (x, y)]
            for size in range(0, min(max_set_size, len(others)) + 1):
                for subset in combinations(others, size):
                    if self.is_d_separated({x}, {y}, subset):
                        independencies.append(ImpliedIndependence(x=x, y=y, z=list(subset)))

        return independencies

    def find_minimal_separator(
        self,
        x: Iterable[NodeId],
        y: Iterable[NodeId],
        max_set_size: int | None = None,
    ) -> list[NodeId] | None:
        """Find a smallest set that d-separates X from Y.

        Candidates are the ancestors of X ∪ Y outside X ∪ Y, extended through
        undirected edges. Sets are tried by increasing size, lexicographically
        within a size.

        Args:
            x: Source node set
            y: Target node set
            max_set_size: Largest separator to try (None = all candidates)

        Returns:
            A minimal separating set, or None if X and Y cannot be separated
            (e.g. they are joined by a direct edge)
        """
        x_set, y_set = as_node_set(x), as_node_set(y)
        candidates = self._get_candidate_separator_nodes(x_set, y_set)
        limit = len(candidates) if max_set_size is None else min(max_set_size, len(candidates))

        for size in range(0, limit + 1):
            for subset in combinations(candidates, size):
                if self.is_d_separated(x_set, y_set, subset):
                    return list(subset)

        logger.debug("No separator of size <= %d between %s and %s", limit, x_set, y_set)
        return None

    def _get_candidate_separator_nodes(
        self,
        x: frozenset[NodeId],
        y: frozenset[NodeId],
    ) -> list[NodeId]:
        """Get nodes that could potentially be in a d-separator.

        Candidates are nodes outside X and Y that reach X or Y by walking
        directed edges backwards and undirected edges either way. On a DAG
        these are exactly the ancestors of X ∪ Y.
        """
        seen = set(x | y)
        stack = list(seen)
        while stack:
            node = stack.pop()
            for neighbor, edge in self.index.incident(node):
                if neighbor in seen:
                    continue
                if (edge.is_directed and edge.target == node) or edge.kind == EdgeKind.UNDIRECTED:
                    seen.add(neighbor)
                    stack.append(neighbor)
        return sorted(seen - x - y)

    # --- Backdoor Criterion ---

    def find_backdoor_paths(
        self,
        treatment: NodeId | Iterable[NodeId],
        outcome: NodeId | Iterable[NodeId],
    ) -> list[Path]:
        """Find all paths from treatment to outcome that begin with an arrow into treatment."""
        return self.paths.find_backdoor_paths(
            as_node_set(treatment), as_node_set(outcome), self.config.max_path_length
        )

    def is_valid_backdoor_adjustment(
        self,
        treatment: NodeId | Iterable[NodeId],
        outcome: NodeId | Iterable[NodeId],
        adjustment_set: Iterable[NodeId],
    ) -> bool:
        """Check if a set is a valid adjustment set (backdoor criterion).

        An adjustment set Z is valid if:
        1. Z does not include any descendant of treatment
        2. Z blocks all backdoor paths from treatment to outcome

        Args:
            treatment: The treatment variable(s)
            outcome: The outcome variable(s)
            adjustment_set: The proposed adjustment set

        Returns:
            True if the adjustment set satisfies the backdoor criterion
        """
        x = as_node_set(treatment)
        z = as_node_set(adjustment_set)

        if z & self.index.descendants_of(x):
            return False
        return self.blocks_backdoor_paths(x, outcome, z)

    def blocks_backdoor_paths(
        self,
        treatment: NodeId | Iterable[NodeId],
        outcome: NodeId | Iterable[NodeId],
        conditioning_set: Iterable[NodeId] | None = None,
    ) -> bool:
        """Check that every backdoor path from treatment to outcome is blocked."""
        z = as_node_set(conditioning_set)
        for path in self.paths.iter_paths(
            as_node_set(treatment),
            as_node_set(outcome),
            self.config.max_path_length,
            first_step_into_source=True,
        ):
            if not self.is_path_blocked(path, z).blocked:
                return False
        return True

    # --- Structure ---

    def find_v_structures(self) -> list[VStructure]:
        """Find all v-structures (colliders with non-adjacent parents)."""
        v_structures: list[VStructure] = []

        for node_id in self.index.node_ids:
            parents = sorted(self.index.parents(node_id))
            for p1, p2 in combinations(parents, 2):
                if not self.index.is_adjacent(p1, p2):
                    v_structures.append(VStructure(parent1=p1, collider=node_id, parent2=p2))

        return v_structures


def check_d_separation(
    graph: CausalGraph,
    query: DSeparationQuery,
    config: DSeparationConfig | None = None,
) -> DSeparationResult:
    """Check whether query.x and query.y are d-separated by query.z in a graph."""
    return DSeparationAnalyzer(graph, config).check_d_separation(query)


def is_valid_backdoor_adjustment(
    graph: CausalGraph,
    treatment: NodeId | Iterable[NodeId],
    outcome: NodeId | Iterable[NodeId],
    adjustment_set: Iterable[NodeId],
) -> bool:
    """Check the backdoor criterion for an adjustment set in a graph."""
    return DSeparationAnalyzer(graph).is_valid_backdoor_adjustment(
        treatment, outcome, adjustment_set
    )


def find_minimal_separator(
    graph: CausalGraph,
    x: Iterable[NodeId],
    y: Iterable[NodeId],
    max_set_size: int | None = None,
) -> list[NodeId] | None:
    """Find a smallest d-separating set between x and y, or None."""
    return DSeparationAnalyzer(graph).find_minimal_separator(x, y, max_set_size)


def compute_markov_blanket(graph: CausalGraph, node_id: NodeId) -> list[NodeId]:
    """Compute the Markov blanket of a node in a graph."""
    return DSeparationAnalyzer(graph).compute_markov_blanket(node_id)


def get_implied_independencies(
    graph: CausalGraph,
    max_set_size: int = 3,
) -> list[ImpliedIndependence]:
    """List the conditional independencies implied by a graph."""
    return DSeparationAnalyzer(graph).get_implied_independencies(max_set_size)
