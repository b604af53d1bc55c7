"""
Causal graph node types and data structures.

This module defines the variables of a causal graph. Nodes are
identified by a string id that must be unique within a graph.
"""

from collections.abc import Iterable
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

NodeId = str


def as_node_set(nodes: NodeId | Iterable[NodeId] | None) -> frozenset[NodeId]:
    """Normalize a single id, an iterable of ids, or None to a frozenset."""
    if nodes is None:
        return frozenset()
    if isinstance(nodes, str):
        return frozenset({nodes})
    return frozenset(nodes)


def format_nodes(nodes: Iterable[NodeId], sep: str = ", ") -> str:
    """Render node ids in sorted order for explanations and formulas."""
    return sep.join(sorted(nodes))


class NodeType(str, Enum):
    """Role of a variable in the causal graph.

    - OBSERVED: Measured variable, usable for adjustment
    - LATENT: Unmeasured variable (e.g. a hidden confounder)
    - INTERVENTION: Variable targeted by a do() operation
    - OUTCOME: Variable whose distribution is queried
    """

    OBSERVED = "observed"
    LATENT = "latent"
    INTERVENTION = "intervention"
    OUTCOME = "outcome"


class GraphNode(BaseModel):
    """A variable in a causal graph.

    Attributes:
        id: Unique identifier within the graph
        name: Display name
        description: Optional human-readable description
        type: Role of the variable
        properties: Free-form caller metadata

    Example:
        >>> node = GraphNode(id="X", name="Smoking")
        >>> node.type
        <NodeType.OBSERVED: 'observed'>
    """

    id: NodeId
    name: str
    description: str | None = None
    type: NodeType = NodeType.OBSERVED
    properties: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True  # Immutable after creation

    @property
    def is_latent(self) -> bool:
        """True if the variable is unobserved."""
        return self.type == NodeType.LATENT

    def with_type(self, node_type: NodeType) -> "GraphNode":
        """Create a copy of this node with a new type."""
        return self.model_copy(update={"type": node_type})

    def __hash__(self) -> int:
        """Hash based on node ID for set/dict usage."""
        return hash(self.id)

    def __eq__(self, other: object) -> bool:
        """Equality based on node ID."""
        if not isinstance(other, GraphNode):
            return False
        return self.id == other.id


def create_node(node_id: NodeId, name: str | None = None, **properties: Any) -> GraphNode:
    """Factory function to create an observed variable."""
    return GraphNode(id=node_id, name=name or node_id, properties=properties)


def create_latent_node(node_id: NodeId, name: str | None = None) -> GraphNode:
    """Factory function to create an unobserved (latent) variable."""
    return GraphNode(id=node_id, name=name or node_id, type=NodeType.LATENT)
