"""
causalid: Causal effect identification on causal graphs

Graph-theoretic core of Pearl's causal inference framework: d-separation,
graph surgery for the do() operator, the three rules of do-calculus, and
identification of P(Y|do(X)) by backdoor, frontdoor, instrumental variable
or do-calculus derivation, with the matching adjustment formula.
"""

__version__ = "0.1.0"

from causalid.core.nodes import GraphNode, NodeType
from causalid.core.edges import GraphEdge, EdgeKind
from causalid.core.graph import CausalGraph
from causalid.causal.analysis import analyze_intervention, InterventionAnalysisResult
from causalid.causal.identification import is_identifiable, IdentifiabilityResult

__all__ = [
    "GraphNode",
    "GraphEdge",
    "CausalGraph",
    "NodeType",
    "EdgeKind",
    "analyze_intervention",
    "InterventionAnalysisResult",
    "is_identifiable",
    "IdentifiabilityResult",
]
