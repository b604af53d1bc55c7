"""Core graph models for causalid."""

from causalid.core.nodes import GraphNode, NodeId, NodeType, create_node, create_latent_node
from causalid.core.edges import (
    GraphEdge,
    EdgeKind,
    create_directed_edge,
    create_bidirected_edge,
    create_undirected_edge,
)
from causalid.core.graph import CausalGraph, GraphIndex

__all__ = [
    "GraphNode",
    "NodeId",
    "NodeType",
    "create_node",
    "create_latent_node",
    "GraphEdge",
    "EdgeKind",
    "create_directed_edge",
    "create_bidirected_edge",
    "create_undirected_edge",
    "CausalGraph",
    "GraphIndex",
]
