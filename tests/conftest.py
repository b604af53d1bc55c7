"""Pytest configuration and fixtures for causalid tests."""

import pytest

from causalid.core.edges import create_bidirected_edge, create_directed_edge
from causalid.core.graph import CausalGraph
from causalid.core.nodes import create_latent_node, create_node


def build_graph(*pairs, bidirected=(), graph_id="graph"):
    """Build a graph from (source, target) pairs and bidirected (a, b) pairs."""
    edges = [create_directed_edge(s, t) for s, t in pairs]
    edges += [create_bidirected_edge(a, b) for a, b in bidirected]
    return CausalGraph.from_edges(edges, graph_id=graph_id)


@pytest.fixture
def make_graph():
    """Factory fixture for ad-hoc graphs built from edge pairs."""
    return build_graph


@pytest.fixture
def empty_graph():
    """Create an empty CausalGraph."""
    return CausalGraph()


@pytest.fixture
def simple_graph():
    """Create an unconfounded graph: X → Y."""
    return build_graph(("X", "Y"))


@pytest.fixture
def chain_graph():
    """Create a simple chain: A → B → C.

    This is useful for testing basic d-separation in chains.
    """
    return build_graph(("A", "B"), ("B", "C"))


@pytest.fixture
def fork_graph():
    """Create a fork: A ← C → B.

    This is useful for testing d-separation with common causes.
    """
    return build_graph(("C", "A"), ("C", "B"))


@pytest.fixture
def collider_graph():
    """Create a collider: A → C ← B.

    This is useful for testing the 'explaining away' phenomenon.
    """
    return build_graph(("A", "C"), ("B", "C"))


@pytest.fixture
def confounded_graph():
    """Create a confounding graph: U → X, U → Y, X → Y.

    This is the classic confounding scenario where U confounds
    the treatment X and outcome Y relationship.
    """
    return build_graph(("U", "X"), ("U", "Y"), ("X", "Y"))


@pytest.fixture
def frontdoor_graph():
    """Create a front-door graph: U → X, U → Y, X → M, M → Y.

    This is useful for testing the front-door criterion.
    """
    return build_graph(("U", "X"), ("U", "Y"), ("X", "M"), ("M", "Y"))


@pytest.fixture
def latent_frontdoor_graph():
    """Create the smoking-tar-cancer graph with an unobserved confounder U.

    U is latent, so the backdoor path X ← U → Y cannot be adjusted for and
    only the mediator M identifies the effect.
    """
    graph = build_graph(("U", "X"), ("U", "Y"), ("X", "M"), ("M", "Y"))
    nodes = [create_latent_node("U") if n.id == "U" else n for n in graph.nodes]
    return graph.model_copy(update={"nodes": nodes})


@pytest.fixture
def iv_graph():
    """Create an instrumental variable graph: Z → X, U → X, U → Y, X → Y."""
    return build_graph(("Z", "X"), ("U", "X"), ("U", "Y"), ("X", "Y"))


@pytest.fixture
def bidirected_graph():
    """Create a graph with latent confounding: X → Y, X ↔ Y.

    The effect of X on Y is not identifiable.
    """
    return build_graph(("X", "Y"), bidirected=[("X", "Y")])


@pytest.fixture
def isolated_graph():
    """Create a graph with two disconnected components: A → B, C → D."""
    graph = build_graph(("A", "B"), ("C", "D"))
    return graph.model_copy(update={"nodes": graph.nodes + [create_node("E")]})
