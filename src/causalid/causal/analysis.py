"""
Intervention analysis.

Top-level entry point: given a graph and an intervention request, decide
whether the interventional distribution is identifiable and, if it is,
produce the adjustment formula that computes it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from causalid.causal.identification import (
    AdjustmentFormula,
    IdentificationConfig,
    IdentificationEngine,
    IdentificationFailure,
    IdentificationMethod,
    IdentifiabilityResult,
    generate_backdoor_formula,
    generate_do_calculus_formula,
    generate_frontdoor_formula,
    generate_iv_formula,
)
from causalid.causal.interventions import InterventionRequest
from causalid.core.graph import CausalGraph
from causalid.core.nodes import format_nodes

logger = logging.getLogger(__name__)


@dataclass
class InterventionAnalysisResult:
    """Result of analyzing an intervention request.

    Attributes:
        identifiable: Whether the interventional distribution is identifiable
        original_distribution: Pre-intervention notation, e.g. ``P(Y)``
        interventional_query: The query, e.g. ``P(Y | do(X=1))``
        method: Strategy that identified the effect
        adjustment: Formula computing the effect from observational data
        estimand: LaTeX form of the adjustment formula
        non_identifiable_reason: Most specific diagnostic when not identifiable
        failure: Failure kind when not identifiable
    """

    identifiable: bool
    original_distribution: str
    interventional_query: str
    method: IdentificationMethod | None = None
    adjustment: AdjustmentFormula | None = None
    estimand: str | None = None
    non_identifiable_reason: str | None = None
    failure: IdentificationFailure | None = None


class InterventionAnalyzer:
    """Answers intervention requests against a causal graph.

    Example:
        >>> analyzer = InterventionAnalyzer(graph)
        >>> request = InterventionRequest(
        ...     interventions=[Intervention("X", 1)], outcomes=["Y"]
        ... )
        >>> analyzer.analyze(request).estimand
        'P(Y | do(X)) = P(Y | X)'
    """

    def __init__(self, graph: CausalGraph, config: IdentificationConfig | None = None):
        self.graph = graph
        self.engine = IdentificationEngine(graph, config)

    def analyze(self, request: InterventionRequest) -> InterventionAnalysisResult:
        """Analyze an intervention request. Never raises for well-formed graphs."""
        outcomes = list(dict.fromkeys(request.outcomes))
        treatments = request.treatment_ids

        original = f"P({', '.join(outcomes)})" if outcomes else "P()"
        actions = ", ".join(i.assignment for i in request.interventions)
        query = f"P({', '.join(outcomes)} | do({actions}))"

        if not treatments or not outcomes:
            return InterventionAnalysisResult(
                identifiable=False,
                original_distribution=original,
                interventional_query=query,
                non_identifiable_reason="Missing treatment or outcome variable",
                failure=IdentificationFailure.MISSING_VARIABLES,
            )

        if request.covariates is not None and self._covariates_valid(request):
            logger.debug("Using caller covariates %s as adjustment set", request.covariates)
            adjustment = generate_backdoor_formula(treatments, outcomes, request.covariates)
            return InterventionAnalysisResult(
                identifiable=True,
                original_distribution=original,
                interventional_query=query,
                method=IdentificationMethod.BACKDOOR,
                adjustment=adjustment,
                estimand=adjustment.latex,
            )

        result = self.engine.is_identifiable(treatments, outcomes)
        if not result.identifiable:
            return InterventionAnalysisResult(
                identifiable=False,
                original_distribution=original,
                interventional_query=query,
                non_identifiable_reason=result.reason,
                failure=result.failure,
            )

        adjustment = self._build_formula(treatments, outcomes, result)
        return InterventionAnalysisResult(
            identifiable=True,
            original_distribution=original,
            interventional_query=query,
            method=result.method,
            adjustment=adjustment,
            estimand=adjustment.latex,
        )

    def _covariates_valid(self, request: InterventionRequest) -> bool:
        covariates = set(request.covariates or ())
        known = set(self.engine.index.node_ids)
        targets = set(request.treatment_ids) | set(request.outcomes)
        if not covariates <= known or covariates & targets or not targets <= known:
            logger.debug(
                "Ignoring covariates {%s}: unknown or overlapping variables",
                format_nodes(covariates),
            )
            return False
        return self.engine.dsep.is_valid_backdoor_adjustment(
            request.treatment_ids, request.outcomes, covariates
        )

    def _build_formula(
        self,
        treatments: list[str],
        outcomes: list[str],
        result: IdentifiabilityResult,
    ) -> AdjustmentFormula:
        if result.method == IdentificationMethod.FRONTDOOR:
            return generate_frontdoor_formula(treatments[0], outcomes[0], result.adjustment_set)
        if result.method == IdentificationMethod.INSTRUMENTAL:
            return generate_iv_formula(treatments[0], outcomes[0], result.adjustment_set[0])
        if result.method == IdentificationMethod.DO_CALCULUS and result.derivation is not None:
            return generate_do_calculus_formula(treatments, outcomes, result.derivation)
        return generate_backdoor_formula(treatments, outcomes, result.adjustment_set)


def analyze_intervention(
    graph: CausalGraph,
    request: InterventionRequest,
    config: IdentificationConfig | None = None,
) -> InterventionAnalysisResult:
    """Analyze an intervention request against a graph."""
    return InterventionAnalyzer(graph, config).analyze(request)
