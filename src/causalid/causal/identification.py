"""
Causal effect identification.

Decides whether P(Y|do(X)) can be computed from observational data,
trying in turn the backdoor criterion, the frontdoor criterion, an
instrumental variable and do-calculus derivations, and produces the
matching adjustment formula.

Candidate sets are searched by increasing size and, within a size, in
lexicographic order of node ids, so results are deterministic. Latent
variables are never proposed for adjustment, as mediators or as
instruments.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from itertools import combinations

from causalid.causal.docalculus import DerivationResult, DoCalculusEngine
from causalid.causal.dseparation import DSeparationAnalyzer, DSeparationConfig
from causalid.core.graph import CausalGraph
from causalid.core.nodes import NodeId, as_node_set, format_nodes

logger = logging.getLogger(__name__)


class IdentificationMethod(str, Enum):
    """Strategy that identified a causal effect."""

    BACKDOOR = "backdoor"
    FRONTDOOR = "frontdoor"
    INSTRUMENTAL = "instrumental"
    DO_CALCULUS = "do_calculus"


class IdentificationFailure(str, Enum):
    """Why a causal effect could not be identified.

    - UNKNOWN_VARIABLE: Treatment or outcome id is not a node of the graph
    - MISSING_VARIABLES: No treatment or no outcome was given
    - INVALID_QUERY: Treatment and outcome sets overlap
    - LATENT_CONFOUNDING: An unblockable confounding path exists
    - NO_STRATEGY: No identification strategy succeeded
    """

    UNKNOWN_VARIABLE = "unknown_variable"
    MISSING_VARIABLES = "missing_variables"
    INVALID_QUERY = "invalid_query"
    LATENT_CONFOUNDING = "latent_confounding"
    NO_STRATEGY = "no_strategy"


@dataclass
class IdentificationConfig:
    """Configuration for identification search.

    Attributes:
        max_backdoor_set_size: Largest adjustment set to try (None = unbounded)
        max_frontdoor_set_size: Largest mediator set to try
        max_path_length: Path length cap for d-separation (None = unbounded)
        use_do_calculus: Whether to fall back to do-calculus derivations
    """

    max_backdoor_set_size: int | None = 5
    max_frontdoor_set_size: int = 2
    max_path_length: int | None = None
    use_do_calculus: bool = True


@dataclass
class AdjustmentFormula:
    """An adjustment formula for causal effect estimation.

    Attributes:
        type: Strategy the formula comes from
        adjustment_set: Variables adjusted for (mediators, instrument, ...)
        latex: LaTeX representation of the formula
        plain_text: Plain text representation
        is_valid: Whether this is a valid adjustment
    """

    type: IdentificationMethod
    adjustment_set: list[NodeId]
    latex: str
    plain_text: str
    is_valid: bool = True


@dataclass
class FrontdoorResult:
    """Outcome of a frontdoor criterion check."""

    satisfied: bool
    mediators: list[NodeId] = field(default_factory=list)


@dataclass
class IdentifiabilityResult:
    """Whether P(Y|do(X)) is identifiable, and how.

    Attributes:
        identifiable: True if some strategy succeeded
        reason: Human-readable reason or diagnostic
        method: Strategy that succeeded
        adjustment_set: Backdoor set, mediators or instrument used
        failure: Failure kind when not identifiable
        derivation: Rule applications when identified by do-calculus
    """

    identifiable: bool
    reason: str
    method: IdentificationMethod | None = None
    adjustment_set: list[NodeId] = field(default_factory=list)
    failure: IdentificationFailure | None = None
    derivation: DerivationResult | None = None


class IdentificationEngine:
    """Finds identification strategies for causal effects.

    Example:
        >>> engine = IdentificationEngine(graph)
        >>> result = engine.is_identifiable("X", "Y")
        >>> result.method, result.adjustment_set
        (<IdentificationMethod.BACKDOOR: 'backdoor'>, ['U'])
    """

    def __init__(self, graph: CausalGraph, config: IdentificationConfig | None = None):
        """Initialize the engine with a graph.

        Args:
            graph: The CausalGraph to analyze
            config: Search limits and fallbacks
        """
        self.graph = graph
        self.config = config or IdentificationConfig()

        dsep_config = DSeparationConfig(max_path_length=self.config.max_path_length)
        self.dsep = DSeparationAnalyzer(graph, dsep_config)
        self.index = self.dsep.index
        self.do_calculus = DoCalculusEngine(graph, dsep_config)
        self._latent = {node.id for node in graph.nodes if node.is_latent}

    # --- Backdoor Criterion ---

    def find_all_backdoor_sets(
        self,
        treatment: NodeId | Iterable[NodeId],
        outcome: NodeId | Iterable[NodeId],
        max_size: int | None = None,
    ) -> list[list[NodeId]]:
        """Find all valid backdoor adjustment sets up to a maximum size.

        Args:
            treatment: The treatment variable(s)
            outcome: The outcome variable(s)
            max_size: Largest set to consider (defaults to the configured cap)

        Returns:
            Valid adjustment sets, smallest first, the empty set included
            when it is valid
        """
        return list(self._iter_backdoor_sets(treatment, outcome, max_size))

    def find_backdoor_adjustment_set(
        self,
        treatment: NodeId | Iterable[NodeId],
        outcome: NodeId | Iterable[NodeId],
        max_size: int | None = None,
    ) -> list[NodeId] | None:
        """Find the first valid backdoor adjustment set, or None."""
        return next(self._iter_backdoor_sets(treatment, outcome, max_size), None)

    def _iter_backdoor_sets(
        self,
        treatment: NodeId | Iterable[NodeId],
        outcome: NodeId | Iterable[NodeId],
        max_size: int | None,
        min_size: int = 0,
    ) -> Iterator[list[NodeId]]:
        x, y = as_node_set(treatment), as_node_set(outcome)
        # Candidates are observed non-descendants of treatment
        excluded = x | y | self.index.descendants_of(x) | self._latent
        candidates = [n for n in sorted(self.index.node_ids) if n not in excluded]

        if max_size is None:
            max_size = self.config.max_backdoor_set_size
        limit = len(candidates) if max_size is None else min(max_size, len(candidates))

        for size in range(min_size, limit + 1):
            for subset in combinations(candidates, size):
                if self.dsep.blocks_backdoor_paths(x, y, subset):
                    yield list(subset)

    # --- Frontdoor Criterion ---

    def check_frontdoor_criterion(self, treatment: NodeId, outcome: NodeId) -> FrontdoorResult:
        """Check if the frontdoor criterion is satisfied.

        A mediator set M satisfies the criterion relative to (X, Y) if:
        1. M intercepts all directed paths from X to Y
        2. There is no unblocked backdoor path from X to M
        3. All backdoor paths from M to Y are blocked by X

        Args:
            treatment: The treatment variable
            outcome: The outcome variable

        Returns:
            FrontdoorResult with the first mediator set found
        """
        if treatment == outcome or not (
            self.index.has_node(treatment) and self.index.has_node(outcome)
        ):
            return FrontdoorResult(satisfied=False)
        if not self.index.reaches(treatment, {outcome}):
            return FrontdoorResult(satisfied=False)

        # Potential mediators lie on directed paths from X to Y
        on_paths = self.index.descendants(treatment) & self.index.ancestors(outcome)
        candidates = sorted(on_paths - {treatment, outcome} - self._latent)
        limit = min(self.config.max_frontdoor_set_size, len(candidates))

        for size in range(1, limit + 1):
            for subset in combinations(candidates, size):
                if self._is_frontdoor_set(treatment, outcome, set(subset)):
                    return FrontdoorResult(satisfied=True, mediators=list(subset))

        return FrontdoorResult(satisfied=False)

    def _is_frontdoor_set(self, treatment: NodeId, outcome: NodeId, mediators: set[NodeId]) -> bool:
        if self.index.reaches(treatment, {outcome}, avoiding=mediators):
            return False
        if not self.dsep.blocks_backdoor_paths(treatment, mediators):
            return False
        return all(
            self.dsep.blocks_backdoor_paths(m, outcome, {treatment}) for m in sorted(mediators)
        )

    # --- Instrumental Variables ---

    def find_instrumental_variable(self, treatment: NodeId, outcome: NodeId) -> NodeId | None:
        """Find an instrumental variable for the effect of treatment on outcome.

        Z is an instrument if:
        1. Z is an ancestor of X (relevance)
        2. Z is not a descendant of X
        3. Z ⊥ Y in the graph with edges out of X removed: every path from
           Z to Y goes through X (exclusion) and Z shares no open
           confounding path with Y (exogeneity)

        Returns:
            The first instrument in id order, or None
        """
        if treatment == outcome or not (
            self.index.has_node(treatment) and self.index.has_node(outcome)
        ):
            return None

        ancestors = self.index.ancestors(treatment)
        descendants = self.index.descendants(treatment)
        candidates = sorted(ancestors - descendants - {outcome} - self._latent)
        if not candidates:
            return None

        cut = DSeparationAnalyzer(
            self.graph.get_edge_deleted_graph({treatment}), self.dsep.config
        )
        for candidate in candidates:
            if cut.is_d_separated({candidate}, {outcome}):
                return candidate
            logger.debug("%s fails exclusion for %s → %s", candidate, treatment, outcome)

        return None

    # --- Identifiability ---

    def is_identifiable(
        self,
        treatment: NodeId | Iterable[NodeId],
        outcome: NodeId | Iterable[NodeId],
    ) -> IdentifiabilityResult:
        """Check if causal effect P(Y|do(X)) is identifiable from observational data.

        Strategies are tried in order: empty backdoor set, backdoor set
        search, frontdoor criterion, instrumental variable, do-calculus.
        The first success wins. Frontdoor and instrumental variables are
        only attempted for a single treatment and a single outcome.

        Args:
            treatment: Treatment variable(s)
            outcome: Outcome variable(s)

        Returns:
            IdentifiabilityResult; never raises for well-formed graphs
        """
        x, y = as_node_set(treatment), as_node_set(outcome)

        if not x or not y:
            return IdentifiabilityResult(
                identifiable=False,
                reason="Missing treatment or outcome variable",
                failure=IdentificationFailure.MISSING_VARIABLES,
            )

        unknown = sorted((x | y) - set(self.index.node_ids))
        if unknown:
            return IdentifiabilityResult(
                identifiable=False,
                reason=f"Variable(s) not in graph: {', '.join(unknown)}",
                failure=IdentificationFailure.UNKNOWN_VARIABLE,
            )

        if x & y:
            return IdentifiabilityResult(
                identifiable=False,
                reason=f"Treatment and outcome overlap: {format_nodes(x & y)}",
                failure=IdentificationFailure.INVALID_QUERY,
            )

        label = f"P({format_nodes(y)}|do({format_nodes(x)}))"

        if self.dsep.is_valid_backdoor_adjustment(x, y, ()):
            return self._success(
                label, IdentificationMethod.BACKDOOR, [], "Backdoor criterion satisfied by the empty set"
            )

        backdoor_set = next(self._iter_backdoor_sets(x, y, None, min_size=1), None)
        if backdoor_set is not None:
            return self._success(
                label,
                IdentificationMethod.BACKDOOR,
                backdoor_set,
                f"Backdoor criterion satisfied by adjusting for {{{', '.join(backdoor_set)}}}",
            )

        if len(x) == 1 and len(y) == 1:
            (t,), (o,) = x, y

            frontdoor = self.check_frontdoor_criterion(t, o)
            if frontdoor.satisfied:
                return self._success(
                    label,
                    IdentificationMethod.FRONTDOOR,
                    frontdoor.mediators,
                    f"Frontdoor criterion satisfied through {{{', '.join(frontdoor.mediators)}}}",
                )

            instrument = self.find_instrumental_variable(t, o)
            if instrument is not None:
                return self._success(
                    label,
                    IdentificationMethod.INSTRUMENTAL,
                    [instrument],
                    f"Instrumental variable {instrument} available",
                )

        if self.config.use_do_calculus:
            derivation = self.do_calculus.find_identifying_sequence(y, x)
            if derivation is not None:
                result = self._success(
                    label,
                    IdentificationMethod.DO_CALCULUS,
                    derivation.adjustment_set,
                    f"Identifiable via do-calculus: {label} = {derivation.estimand}",
                )
                result.derivation = derivation
                return result

        return self._diagnose_failure(x, y)

    def _success(
        self,
        label: str,
        method: IdentificationMethod,
        adjustment_set: list[NodeId],
        reason: str,
    ) -> IdentifiabilityResult:
        logger.info("%s identified via %s", label, method.value)
        return IdentifiabilityResult(
            identifiable=True,
            reason=reason,
            method=method,
            adjustment_set=adjustment_set,
        )

    def _diagnose_failure(
        self,
        x: frozenset[NodeId],
        y: frozenset[NodeId],
    ) -> IdentifiabilityResult:
        """Find the most specific reason no strategy applied."""
        for path in self.dsep.find_backdoor_paths(x, y):
            interior = [node for _, node in path.interior()]
            if not interior and path.edges[0].edge.is_bidirected:
                reason = (
                    f"Latent confounding between {path.source} and {path.target}: "
                    f"backdoor path {path} cannot be blocked by any adjustment set"
                )
                return self._failure(reason, IdentificationFailure.LATENT_CONFOUNDING)
            if not interior:
                reason = (
                    f"{path.target} directly causes {path.source}: "
                    f"backdoor path {path} cannot be blocked"
                )
                return self._failure(reason, IdentificationFailure.NO_STRATEGY)
            if set(interior) <= self._latent and not self.dsep.is_path_blocked(path).blocked:
                reason = (
                    f"Latent confounding: backdoor path {path} runs only through "
                    f"unobserved variables and no mediator or instrument was found"
                )
                return self._failure(reason, IdentificationFailure.LATENT_CONFOUNDING)

        return self._failure(
            "No valid adjustment set found, frontdoor criterion not satisfied "
            "and no instrumental variable available",
            IdentificationFailure.NO_STRATEGY,
        )

    def _failure(self, reason: str, failure: IdentificationFailure) -> IdentifiabilityResult:
        logger.info("Not identifiable (%s): %s", failure.value, reason)
        return IdentifiabilityResult(identifiable=False, reason=reason, failure=failure)


# --- Formula Generation ---


def generate_backdoor_formula(
    treatment: NodeId | Iterable[NodeId],
    outcome: NodeId | Iterable[NodeId],
    adjustment_set: Iterable[NodeId],
) -> AdjustmentFormula:
    """Generate the backdoor adjustment formula.

    P(Y|do(X)) = Σ_z P(Y|X,Z=z) P(Z=z), which collapses to P(Y|X) when the
    adjustment set is empty.
    """
    x = format_nodes(as_node_set(treatment))
    y = format_nodes(as_node_set(outcome))
    z_set = list(adjustment_set)

    if not z_set:
        latex = f"P({y} | do({x})) = P({y} | {x})"
        plain_text = f"P({y}|do({x})) = P({y}|{x})"
    else:
        z_list = ", ".join(z_set)
        z_plain = ",".join(z_set)
        latex = f"P({y} | do({x})) = \\sum_{{{z_list}}} P({y} | {x}, {z_list}) P({z_list})"
        plain_text = f"P({y}|do({x})) = Σ_{{{z_plain}}} P({y}|{x},{z_plain}) P({z_plain})"

    return AdjustmentFormula(
        type=IdentificationMethod.BACKDOOR,
        adjustment_set=z_set,
        latex=latex,
        plain_text=plain_text,
    )


def generate_frontdoor_formula(
    treatment: NodeId,
    outcome: NodeId,
    mediators: NodeId | Iterable[NodeId],
) -> AdjustmentFormula:
    """Generate the frontdoor adjustment formula.

    P(Y|do(X)) = Σ_m P(m|X) Σ_x' P(Y|m,x') P(x')
    """
    m_set = sorted(as_node_set(mediators))
    m_list = ", ".join(m_set)
    m_plain = ",".join(m_set)
    x, y = treatment, outcome

    latex = (
        f"P({y} | do({x})) = \\sum_{{{m_list}}} P({m_list} | {x}) "
        f"\\sum_{{{x}'}} P({y} | {m_list}, {x}') P({x}')"
    )
    plain_text = (
        f"P({y}|do({x})) = Σ_{{{m_plain}}} P({m_plain}|{x}) "
        f"Σ_{{{x}'}} P({y}|{m_plain},{x}') P({x}')"
    )

    return AdjustmentFormula(
        type=IdentificationMethod.FRONTDOOR,
        adjustment_set=m_set,
        latex=latex,
        plain_text=plain_text,
    )


def generate_iv_formula(treatment: NodeId, outcome: NodeId, instrument: NodeId) -> AdjustmentFormula:
    """Generate the instrumental variable (Wald) estimand Cov(Z,Y) / Cov(Z,X)."""
    x, y, z = treatment, outcome, instrument
    latex = f"\\beta_{{{x} \\to {y}}} = \\frac{{Cov({z}, {y})}}{{Cov({z}, {x})}}"
    plain_text = f"β_{{{x}→{y}}} = Cov({z},{y}) / Cov({z},{x})"

    return AdjustmentFormula(
        type=IdentificationMethod.INSTRUMENTAL,
        adjustment_set=[z],
        latex=latex,
        plain_text=plain_text,
    )


def generate_do_calculus_formula(
    treatment: NodeId | Iterable[NodeId],
    outcome: NodeId | Iterable[NodeId],
    derivation: DerivationResult,
) -> AdjustmentFormula:
    """Generate the formula obtained from a do-calculus derivation."""
    x = format_nodes(as_node_set(treatment))
    y = format_nodes(as_node_set(outcome))
    estimand_latex = derivation.estimand.replace("Σ_", "\\sum_")
    plain_text = f"P({y}|do({x})) = {derivation.estimand}"
    latex = f"P({y} | do({x})) = {estimand_latex}"

    return AdjustmentFormula(
        type=IdentificationMethod.DO_CALCULUS,
        adjustment_set=list(derivation.adjustment_set),
        latex=latex,
        plain_text=plain_text,
    )


# --- Functional Entry Points ---


def is_identifiable(
    graph: CausalGraph,
    treatment: NodeId | Iterable[NodeId],
    outcome: NodeId | Iterable[NodeId],
    config: IdentificationConfig | None = None,
) -> IdentifiabilityResult:
    """Check if P(outcome|do(treatment)) is identifiable in a graph."""
    return IdentificationEngine(graph, config).is_identifiable(treatment, outcome)


def find_all_backdoor_sets(
    graph: CausalGraph,
    treatment: NodeId | Iterable[NodeId],
    outcome: NodeId | Iterable[NodeId],
    max_size: int | None = None,
) -> list[list[NodeId]]:
    """Find all valid backdoor adjustment sets in a graph."""
    return IdentificationEngine(graph).find_all_backdoor_sets(treatment, outcome, max_size)


def check_frontdoor_criterion(
    graph: CausalGraph,
    treatment: NodeId,
    outcome: NodeId,
) -> FrontdoorResult:
    """Check the frontdoor criterion in a graph."""
    return IdentificationEngine(graph).check_frontdoor_criterion(treatment, outcome)


def find_instrumental_variable(
    graph: CausalGraph,
    treatment: NodeId,
    outcome: NodeId,
) -> NodeId | None:
    """Find an instrumental variable in a graph, or None."""
    return IdentificationEngine(graph).find_instrumental_variable(treatment, outcome)
