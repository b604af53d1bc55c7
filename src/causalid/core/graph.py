"""
Causal graph implementation.

This module provides the immutable CausalGraph value, the GraphIndex
adjacency index built over it with NetworkX, and the graph surgery
operations used by the do-operator and do-calculus.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import networkx as nx
from pydantic import BaseModel, Field

from causalid.core.edges import (
    EdgeKind,
    GraphEdge,
    create_bidirected_edge,
    create_directed_edge,
)
from causalid.core.nodes import GraphNode, NodeId, create_node

logger = logging.getLogger(__name__)


class CausalGraph(BaseModel):
    """A causal graph given as node and edge lists.

    The graph is a value: it is never edited in place, and every surgery
    method returns a new CausalGraph. Cycles, self-loops and bidirected
    edges are accepted as given; acyclicity is not checked.

    Attributes:
        id: Graph identifier
        nodes: Variables of the graph (ids unique)
        edges: Edges between variables
        metadata: Free-form metadata (surgery records what it changed here)

    Example:
        >>> graph = CausalGraph.from_edges([
        ...     create_directed_edge("U", "X"),
        ...     create_directed_edge("U", "Y"),
        ...     create_directed_edge("X", "Y"),
        ... ])
        >>> sorted(graph.get_parent_ids("Y"))
        ['U', 'X']
    """

    id: str = "graph"
    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True

    @classmethod
    def from_edges(
        cls,
        edges: Iterable[GraphEdge],
        node_names: dict[NodeId, str] | None = None,
        graph_id: str = "graph",
        extra_nodes: Iterable[NodeId] = (),
    ) -> CausalGraph:
        """Build a graph whose nodes are the edge endpoints.

        Args:
            edges: Edges of the graph
            node_names: Optional id→name mapping. If absent, name == id.
            graph_id: Identifier for the new graph
            extra_nodes: Isolated node ids to include as well

        Returns:
            A new CausalGraph with nodes in first-seen order
        """
        edges = list(edges)
        names = node_names or {}

        node_ids: dict[NodeId, None] = {}
        for edge in edges:
            node_ids.setdefault(edge.source)
            node_ids.setdefault(edge.target)
        for node_id in extra_nodes:
            node_ids.setdefault(node_id)

        return cls(
            id=graph_id,
            nodes=[create_node(nid, names.get(nid)) for nid in node_ids],
            edges=edges,
        )

    # --- Node and Edge Queries ---

    @property
    def node_ids(self) -> list[NodeId]:
        """Node ids in graph order."""
        return [node.id for node in self.nodes]

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def has_node(self, node_id: NodeId) -> bool:
        """Check if a node exists in the graph."""
        return any(node.id == node_id for node in self.nodes)

    def get_node(self, node_id: NodeId) -> GraphNode | None:
        """Retrieve a node by ID, or None if it is not in the graph."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def has_edge(
        self,
        source: NodeId,
        target: NodeId,
        kind: EdgeKind = EdgeKind.DIRECTED,
    ) -> bool:
        """Check if an edge of the given kind exists from source to target."""
        return any(
            e.source == source and e.target == target and e.kind == kind
            for e in self.edges
        )

    def has_bidirected_edges(self) -> bool:
        """Check whether any latent confounding is encoded in the graph."""
        return any(e.is_bidirected for e in self.edges)

    def index(self) -> GraphIndex:
        """Build an adjacency index over the current edges."""
        return GraphIndex(self)

    def get_parent_ids(self, node_id: NodeId) -> set[NodeId]:
        """Get ids of all direct causes of a node."""
        return self.index().parents(node_id)

    def get_children_ids(self, node_id: NodeId) -> set[NodeId]:
        """Get ids of all direct effects of a node."""
        return self.index().children(node_id)

    def get_ancestors(self, node_id: NodeId) -> set[NodeId]:
        """Get all ancestors of a node (recursive parents)."""
        return self.index().ancestors(node_id)

    def get_descendants(self, node_id: NodeId) -> set[NodeId]:
        """Get all descendants of a node (recursive children)."""
        return self.index().descendants(node_id)

    # --- Graph Surgery for Do-Calculus ---

    def get_mutilated_graph(self, intervention_nodes: Iterable[NodeId]) -> CausalGraph:
        """Create G_X̄ - graph with incoming edges to intervention nodes removed.

        This simulates the effect of do(X) by removing all arrows into X:
        directed edges targeting X (self-loops included) and bidirected
        edges touching X. Edges leaving X are preserved. Undirected edges
        carry no arrowhead and are kept whichever way they are listed.

        Args:
            intervention_nodes: Ids of the variables being intervened upon

        Returns:
            A new CausalGraph with incoming edges to intervention nodes removed
        """
        intervened = set(intervention_nodes)
        kept = [
            e
            for e in self.edges
            if not any(e.has_arrowhead_at(n) for n in (e.source, e.target) if n in intervened)
        ]

        names = ", ".join(sorted(intervened))
        return self.model_copy(
            update={
                "id": f"{self.id}_mutilated",
                "nodes": list(self.nodes),
                "edges": kept,
                "metadata": {
                    **self.metadata,
                    "intervened_variables": sorted(intervened),
                    "description": f"Mutilated graph with interventions on: {names}",
                },
            }
        )

    def get_edge_deleted_graph(self, observation_nodes: Iterable[NodeId]) -> CausalGraph:
        """Create G_Z̲ - graph with outgoing edges from observation nodes removed.

        Used as part of Rule 2 of do-calculus and by the instrumental
        variable check. Bidirected edges point into both endpoints and
        are not outgoing, so they are kept. Undirected edges have a tail
        at both ends and are removed whenever either end is cut.

        Args:
            observation_nodes: Ids of the variables whose outgoing edges to remove

        Returns:
            A new CausalGraph with outgoing edges from observation nodes removed
        """
        cut = set(observation_nodes)
        kept = [
            e
            for e in self.edges
            if e.is_bidirected
            or (e.is_directed and e.source not in cut)
            or (e.kind == EdgeKind.UNDIRECTED and not {e.source, e.target} & cut)
        ]

        return self.model_copy(
            update={
                "id": f"{self.id}_edge_deleted",
                "nodes": list(self.nodes),
                "edges": kept,
                "metadata": {**self.metadata, "outgoing_cut": sorted(cut)},
            }
        )

    def get_double_mutilated_graph(
        self,
        intervention_nodes: Iterable[NodeId],
        observation_nodes: Iterable[NodeId],
    ) -> CausalGraph:
        """Create G_X̄,Z̲ - incoming edges to X removed and outgoing from Z removed.

        Used for Rule 2 of do-calculus:
        P(y|do(x),do(z),w) = P(y|do(x),z,w) if Y⊥Z|X,W in G_X̄,Z̲
        """
        return self.get_mutilated_graph(intervention_nodes).get_edge_deleted_graph(
            observation_nodes
        )

    def get_marginalized_graph(self, variable: NodeId) -> CausalGraph:
        """Create a graph with one variable eliminated.

        The variable and all its incident edges are removed. Each parent
        of the variable is connected to each of its children by a
        directed edge, and each node sharing a bidirected edge with the
        variable is joined to each of its children by a bidirected edge.
        No self-loops are created and existing edges are not repeated.
        Undirected edges touching the variable are dropped.

        Args:
            variable: Id of the node to remove

        Returns:
            A new CausalGraph without the variable
        """
        parents: dict[NodeId, None] = {}
        children: dict[NodeId, None] = {}
        spouses: dict[NodeId, None] = {}
        kept: list[GraphEdge] = []

        for edge in self.edges:
            if variable not in (edge.source, edge.target):
                kept.append(edge)
                continue
            if edge.is_self_loop:
                continue
            other = edge.other_end(variable)
            if edge.is_bidirected:
                spouses.setdefault(other)
            elif edge.is_directed and edge.target == variable:
                parents.setdefault(other)
            elif edge.is_directed:
                children.setdefault(other)

        directed = {(e.source, e.target) for e in kept if e.is_directed}
        confounded = {frozenset((e.source, e.target)) for e in kept if e.is_bidirected}
        for parent in parents:
            for child in children:
                if parent != child and (parent, child) not in directed:
                    kept.append(create_directed_edge(parent, child))
                    directed.add((parent, child))
        for spouse in spouses:
            for child in children:
                pair = frozenset((spouse, child))
                if spouse != child and pair not in confounded:
                    kept.append(create_bidirected_edge(spouse, child))
                    confounded.add(pair)

        return self.model_copy(
            update={
                "id": f"{self.id}_marginalized_{variable}",
                "nodes": [n for n in self.nodes if n.id != variable],
                "edges": kept,
                "metadata": {**self.metadata, "marginalized_variable": variable},
            }
        )

    # --- Serialization ---

    def to_networkx(self) -> nx.MultiDiGraph:
        """Get a NetworkX copy of the graph with edge kinds as attributes."""
        return self.index().to_networkx()

    def __len__(self) -> int:
        """Return the number of nodes in the graph."""
        return self.node_count

    def __contains__(self, node_id: object) -> bool:
        """Check if a node is in the graph."""
        return isinstance(node_id, str) and self.has_node(node_id)

    def __repr__(self) -> str:
        """String representation of the graph."""
        return f"CausalGraph(id={self.id!r}, nodes={self.node_count}, edges={self.edge_count})"


class GraphIndex:
    """Adjacency index over a CausalGraph, backed by NetworkX.

    Built once per analysis so that neighbor lookups are O(1). Edges whose
    endpoints are not declared nodes are left out of the index, so unknown
    ids behave as isolated, edge-less variables. Ancestry only follows
    directed edges, and self-loops never make a node its own parent,
    child, ancestor or descendant.
    """

    def __init__(self, graph: CausalGraph):
        self.graph = graph
        self._multi = nx.MultiDiGraph()
        self._directed = nx.DiGraph()
        self._multi.add_nodes_from(node.id for node in graph.nodes)
        self._directed.add_nodes_from(self._multi.nodes)

        for position, edge in enumerate(graph.edges):
            if edge.source not in self._multi or edge.target not in self._multi:
                logger.debug("Skipping edge %s: endpoint not in graph %s", edge, graph.id)
                continue
            self._multi.add_edge(edge.source, edge.target, key=position, edge=edge)
            if edge.is_directed and not edge.is_self_loop:
                self._directed.add_edge(edge.source, edge.target)

    @property
    def node_ids(self) -> list[NodeId]:
        return list(self._multi.nodes)

    def has_node(self, node_id: NodeId) -> bool:
        return node_id in self._multi

    def parents(self, node_id: NodeId) -> set[NodeId]:
        if node_id not in self._directed:
            return set()
        return set(self._directed.predecessors(node_id))

    def children(self, node_id: NodeId) -> set[NodeId]:
        if node_id not in self._directed:
            return set()
        return set(self._directed.successors(node_id))

    def ancestors(self, node_id: NodeId) -> set[NodeId]:
        if node_id not in self._directed:
            return set()
        return nx.ancestors(self._directed, node_id)

    def descendants(self, node_id: NodeId) -> set[NodeId]:
        if node_id not in self._directed:
            return set()
        return nx.descendants(self._directed, node_id)

    def ancestors_of(self, node_ids: Iterable[NodeId]) -> set[NodeId]:
        """Union of the ancestors of every node in the set."""
        result: set[NodeId] = set()
        for node_id in node_ids:
            result |= self.ancestors(node_id)
        return result

    def descendants_of(self, node_ids: Iterable[NodeId]) -> set[NodeId]:
        """Union of the descendants of every node in the set."""
        result: set[NodeId] = set()
        for node_id in node_ids:
            result |= self.descendants(node_id)
        return result

    def incident(self, node_id: NodeId) -> list[tuple[NodeId, GraphEdge]]:
        """Get (neighbor, edge) pairs for every edge touching a node.

        Both directions are included, ordered by position in the edge list.
        """
        if node_id not in self._multi:
            return []

        entries = [
            (key, target, data["edge"])
            for _, target, key, data in self._multi.out_edges(node_id, keys=True, data=True)
        ]
        entries += [
            (key, source, data["edge"])
            for source, _, key, data in self._multi.in_edges(node_id, keys=True, data=True)
        ]
        entries.sort(key=lambda entry: entry[0])
        return [(neighbor, edge) for _, neighbor, edge in entries]

    def is_adjacent(self, a: NodeId, b: NodeId) -> bool:
        """Check if any edge of any kind joins a and b."""
        if a not in self._multi or b not in self._multi:
            return False
        return self._multi.has_edge(a, b) or self._multi.has_edge(b, a)

    def reaches(
        self,
        source: NodeId,
        targets: Iterable[NodeId],
        avoiding: Iterable[NodeId] = (),
    ) -> bool:
        """Check for a directed path from source to any target.

        Args:
            source: Start of the directed path
            targets: Acceptable end points
            avoiding: Nodes the path may not pass through

        Returns:
            True if some target is reachable through directed edges
        """
        if source not in self._directed:
            return False
        blocked = set(avoiding) - {source}
        view = nx.restricted_view(self._directed, blocked, [])
        reachable = nx.descendants(view, source)
        return any(t in reachable for t in targets)

    def to_networkx(self) -> nx.MultiDiGraph:
        """Get a copy of the underlying NetworkX multigraph."""
        return self._multi.copy()
