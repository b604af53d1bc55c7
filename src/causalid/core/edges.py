"""
Causal graph edge types.

Edges carry an explicit kind: directed edges encode direct causation,
bidirected edges encode a latent common cause, and undirected edges
encode an association of unknown direction.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from causalid.core.nodes import NodeId


class EdgeKind(str, Enum):
    """Kinds of edges in a causal graph.

    Each kind determines where the edge carries arrowheads:
    - DIRECTED: A → B, arrowhead at B only
    - BIDIRECTED: A ↔ B, arrowheads at both ends (latent confounder)
    - UNDIRECTED: A — B, no arrowheads
    """

    DIRECTED = "directed"
    BIDIRECTED = "bidirected"
    UNDIRECTED = "undirected"


class GraphEdge(BaseModel):
    """An edge between two variables of a causal graph.

    The serialized form uses ``from``/``to`` keys; the Python attributes
    are ``source``/``target``.

    Attributes:
        source: Id of the source node
        target: Id of the target node
        kind: Edge kind (directed, bidirected, undirected)
        weight: Optional edge strength in [0, 1]
        observed: Whether the edge is observed or hypothesized
        properties: Free-form caller metadata

    Example:
        >>> edge = GraphEdge.model_validate({"from": "X", "to": "Y"})
        >>> edge.kind
        <EdgeKind.DIRECTED: 'directed'>
    """

    source: NodeId = Field(alias="from")
    target: NodeId = Field(alias="to")
    kind: EdgeKind = EdgeKind.DIRECTED
    weight: float | None = None
    observed: bool = True
    properties: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True
        populate_by_name = True

    @property
    def is_directed(self) -> bool:
        return self.kind == EdgeKind.DIRECTED

    @property
    def is_bidirected(self) -> bool:
        return self.kind == EdgeKind.BIDIRECTED

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    def has_arrowhead_at(self, node_id: NodeId) -> bool:
        """Check whether this edge points into the given endpoint.

        Args:
            node_id: One of the edge's endpoints

        Returns:
            True if the edge has an arrowhead at node_id
        """
        if self.kind == EdgeKind.BIDIRECTED:
            return node_id in (self.source, self.target)
        if self.kind == EdgeKind.DIRECTED:
            return node_id == self.target
        return False

    def other_end(self, node_id: NodeId) -> NodeId:
        """Return the endpoint opposite to node_id."""
        return self.target if node_id == self.source else self.source

    def __hash__(self) -> int:
        """Hash based on endpoints and kind for set/dict usage."""
        return hash((self.source, self.target, self.kind))

    def __eq__(self, other: object) -> bool:
        """Equality based on endpoints and kind."""
        if not isinstance(other, GraphEdge):
            return False
        return (
            self.source == other.source
            and self.target == other.target
            and self.kind == other.kind
        )

    def __str__(self) -> str:
        arrow = {
            EdgeKind.DIRECTED: "→",
            EdgeKind.BIDIRECTED: "↔",
            EdgeKind.UNDIRECTED: "—",
        }[self.kind]
        return f"{self.source} {arrow} {self.target}"


def create_directed_edge(source: NodeId, target: NodeId) -> GraphEdge:
    """Create a directed (causal) edge source → target."""
    return GraphEdge(source=source, target=target, kind=EdgeKind.DIRECTED)


def create_bidirected_edge(a: NodeId, b: NodeId) -> GraphEdge:
    """Create a bidirected edge a ↔ b.

    Bidirected edges stand in for an unobserved common cause of
    both endpoints.
    """
    return GraphEdge(source=a, target=b, kind=EdgeKind.BIDIRECTED)


def create_undirected_edge(a: NodeId, b: NodeId) -> GraphEdge:
    """Create an undirected edge a — b."""
    return GraphEdge(source=a, target=b, kind=EdgeKind.UNDIRECTED)
