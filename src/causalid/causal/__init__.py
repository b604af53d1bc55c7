"""Causal inference engine implementing Pearl's do-calculus."""

from causalid.causal.paths import Path, PathEnumerator, find_all_paths
from causalid.causal.dseparation import (
    DSeparationAnalyzer,
    DSeparationConfig,
    DSeparationQuery,
    DSeparationResult,
    check_d_separation,
)
from causalid.causal.docalculus import DoCalculusEngine, DoCalculusRule, RuleApplicationResult
from causalid.causal.interventions import (
    Intervention,
    InterventionRequest,
    InterventionType,
    create_mutilated_graph,
    create_marginalized_graph,
)
from causalid.causal.identification import (
    AdjustmentFormula,
    IdentificationConfig,
    IdentificationEngine,
    IdentificationFailure,
    IdentificationMethod,
    IdentifiabilityResult,
)
from causalid.causal.analysis import InterventionAnalyzer, InterventionAnalysisResult
from causalid.causal.centrality import CentralityAnalyzer, CentralityConfig, CentralityMeasure

__all__ = [
    "Path",
    "PathEnumerator",
    "find_all_paths",
    "DSeparationAnalyzer",
    "DSeparationConfig",
    "DSeparationQuery",
    "DSeparationResult",
    "check_d_separation",
    "DoCalculusEngine",
    "DoCalculusRule",
    "RuleApplicationResult",
    "Intervention",
    "InterventionRequest",
    "InterventionType",
    "create_mutilated_graph",
    "create_marginalized_graph",
    "AdjustmentFormula",
    "IdentificationConfig",
    "IdentificationEngine",
    "IdentificationFailure",
    "IdentificationMethod",
    "IdentifiabilityResult",
    "InterventionAnalyzer",
    "InterventionAnalysisResult",
    "CentralityAnalyzer",
    "CentralityConfig",
    "CentralityMeasure",
]
