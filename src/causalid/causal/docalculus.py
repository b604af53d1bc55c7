"""
Pearl's Do-Calculus implementation.

The do-calculus consists of three rules that allow transforming
interventional distributions P(Y|do(X),Z) into observational
distributions P(Y|X,Z) under certain graphical conditions.

These rules are sound and complete for causal inference.

Reference: Pearl, J. (2009). Causality (2nd ed.). Cambridge University Press.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from causalid.causal.dseparation import DSeparationAnalyzer, DSeparationConfig
from causalid.core.graph import CausalGraph, GraphIndex
from causalid.core.nodes import NodeId, as_node_set, format_nodes

logger = logging.getLogger(__name__)


class DoCalculusRule(Enum):
    """The three rules of do-calculus."""

    RULE_1 = "insertion_deletion_observations"
    RULE_2 = "action_observation_exchange"
    RULE_3 = "insertion_deletion_interventions"


@dataclass
class RuleApplicationResult:
    """Result of attempting to apply a do-calculus rule.

    Attributes:
        rule: Which rule was attempted
        applicable: Whether the rule can be applied
        original_expression: The original probabilistic expression
        transformed_expression: The transformed expression (if applicable)
        d_separation_holds: Whether the required d-separation condition holds
        modified_graph_type: Description of the graph modification used
        explanation: Human-readable explanation of the result
    """

    rule: DoCalculusRule
    applicable: bool
    original_expression: str
    transformed_expression: str | None
    d_separation_holds: bool
    modified_graph_type: str
    explanation: str

    @property
    def result(self) -> str | None:
        """The rewritten expression, or None if the rule does not apply."""
        return self.transformed_expression

    def __str__(self) -> str:
        """String representation of the result."""
        if self.applicable:
            return (
                f"{self.rule.value}: APPLICABLE\n"
                f"  {self.original_expression} = {self.transformed_expression}\n"
                f"  {self.explanation}"
            )
        return (
            f"{self.rule.value}: NOT APPLICABLE\n"
            f"  {self.original_expression}\n"
            f"  {self.explanation}"
        )


@dataclass
class DerivationResult:
    """A sequence of rule applications that identifies P(Y|do(X)).

    Attributes:
        steps: The rule applications used, in order
        estimand: The resulting do-free expression
        adjustment_set: Variables summed over in the estimand
    """

    steps: list[RuleApplicationResult] = field(default_factory=list)
    estimand: str = ""
    adjustment_set: list[NodeId] = field(default_factory=list)


def format_expression(
    outcomes: Iterable[NodeId],
    actions: Iterable[NodeId] = (),
    *observations: Iterable[NodeId],
) -> str:
    """Render P(y | do(x), z, ...) with empty parts left out."""
    terms = []
    actions = list(actions)
    if actions:
        terms.append(f"do({format_nodes(actions)})")
    terms.extend(format_nodes(obs) for obs in observations if obs)

    if not terms:
        return f"P({format_nodes(outcomes)})"
    return f"P({format_nodes(outcomes)} | {', '.join(terms)})"


class DoCalculusEngine:
    """Implements the three rules of do-calculus for causal inference.

    Do-calculus provides a complete set of inference rules for determining
    when causal effects can be identified from observational data and the
    causal graph.

    The three rules are:
    - Rule 1: Insertion/deletion of observations
    - Rule 2: Action/observation exchange
    - Rule 3: Insertion/deletion of interventions

    Every rule takes disjoint sets Y (outcomes), X (already intervened),
    Z (the variables being rewritten) and W (other observations). Overlapping
    sets make the rule inapplicable rather than raising.

    Example:
        >>> engine = DoCalculusEngine(graph)
        >>> # Check if we can remove observation Z
        >>> result = engine.apply_rule_1(y={"Y"}, x={"X"}, z={"Z"})
        >>> if result.applicable:
        ...     print(f"Can simplify: {result.transformed_expression}")

    Reference:
        Pearl, J. (2009). Causality (2nd ed.). Chapter 3.
    """

    def __init__(self, graph: CausalGraph, config: DSeparationConfig | None = None):
        """Initialize the engine with a graph.

        Args:
            graph: The CausalGraph to analyze
            config: D-separation settings used for every rule check
        """
        self.graph = graph
        self.config = config or DSeparationConfig()

    def apply_rule_1(
        self,
        y: Iterable[NodeId],
        x: Iterable[NodeId],
        z: Iterable[NodeId],
        w: Iterable[NodeId] | None = None,
    ) -> RuleApplicationResult:
        """Rule 1: Insertion/deletion of observations.

        P(y | do(x), z, w) = P(y | do(x), w)

        Condition: Y ⊥ Z | X, W in G_X̄
        (graph with incoming edges to X removed)

        Args:
            y: Outcome variables
            x: Intervention variables (do(x))
            z: Variables to insert/delete from observations
            w: Additional conditioning variables (optional)

        Returns:
            RuleApplicationResult indicating if the rule applies
        """
        y, x, z, w = as_node_set(y), as_node_set(x), as_node_set(z), as_node_set(w)
        original = format_expression(y, x, z, w)
        graph_type = "G_X̄ (incoming edges to X removed)"

        overlap = _overlap(y, x, z, w)
        if overlap:
            return _disjointness_failure(DoCalculusRule.RULE_1, original, graph_type, overlap)

        mutilated = self.graph.get_mutilated_graph(x)
        holds = DSeparationAnalyzer(mutilated, self.config).is_d_separated(y, z, x | w)

        return RuleApplicationResult(
            rule=DoCalculusRule.RULE_1,
            applicable=holds,
            original_expression=original,
            transformed_expression=format_expression(y, x, w) if holds else None,
            d_separation_holds=holds,
            modified_graph_type=graph_type,
            explanation=self._explain_rule_1(holds),
        )

    def apply_rule_2(
        self,
        y: Iterable[NodeId],
        x: Iterable[NodeId],
        z: Iterable[NodeId],
        w: Iterable[NodeId] | None = None,
    ) -> RuleApplicationResult:
        """Rule 2: Action/observation exchange.

        P(y | do(x), do(z), w) = P(y | do(x), z, w)

        Condition: Y ⊥ Z | X, W in G_X̄,Z̲
        (graph with incoming edges to X removed AND outgoing edges from Z removed)

        Args:
            y: Outcome variables
            x: Intervention variables (do(x))
            z: Variables for action/observation exchange
            w: Additional conditioning variables (optional)

        Returns:
            RuleApplicationResult indicating if the rule applies
        """
        y, x, z, w = as_node_set(y), as_node_set(x), as_node_set(z), as_node_set(w)
        original = _with_actions(y, x, z, w)
        graph_type = "G_X̄,Z̲ (incoming to X and outgoing from Z removed)"

        overlap = _overlap(y, x, z, w)
        if overlap:
            return _disjointness_failure(DoCalculusRule.RULE_2, original, graph_type, overlap)

        double_mutilated = self.graph.get_double_mutilated_graph(x, z)
        holds = DSeparationAnalyzer(double_mutilated, self.config).is_d_separated(y, z, x | w)

        return RuleApplicationResult(
            rule=DoCalculusRule.RULE_2,
            applicable=holds,
            original_expression=original,
            transformed_expression=format_expression(y, x, z, w) if holds else None,
            d_separation_holds=holds,
            modified_graph_type=graph_type,
            explanation=self._explain_rule_2(holds),
        )

    def apply_rule_3(
        self,
        y: Iterable[NodeId],
        x: Iterable[NodeId],
        z: Iterable[NodeId],
        w: Iterable[NodeId] | None = None,
    ) -> RuleApplicationResult:
        """Rule 3: Insertion/deletion of interventions.

        P(y | do(x), do(z), w) = P(y | do(x), w)

        Condition: Y ⊥ Z | X, W in G_X̄,Z̄(W)
        where Z(W) is the set of Z-nodes that are not ancestors of any
        W-node in G_X̄. The graph has incoming edges to X and to Z(W) removed.

        Args:
            y: Outcome variables
            x: Intervention variables (do(x))
            z: Intervention to potentially remove (do(z))
            w: Additional conditioning variables (optional)

        Returns:
            RuleApplicationResult indicating if the rule applies
        """
        y, x, z, w = as_node_set(y), as_node_set(x), as_node_set(z), as_node_set(w)
        original = _with_actions(y, x, z, w)
        graph_type = "G_X̄,Z̄(W) (incoming to X and to Z-nodes not ancestors of W removed)"

        overlap = _overlap(y, x, z, w)
        if overlap:
            return _disjointness_failure(DoCalculusRule.RULE_3, original, graph_type, overlap)

        g_x = self.graph.get_mutilated_graph(x)
        z_w = z - GraphIndex(g_x).ancestors_of(w)
        modified = self.graph.get_mutilated_graph(x | z_w)
        holds = DSeparationAnalyzer(modified, self.config).is_d_separated(y, z, x | w)

        return RuleApplicationResult(
            rule=DoCalculusRule.RULE_3,
            applicable=holds,
            original_expression=original,
            transformed_expression=format_expression(y, x, w) if holds else None,
            d_separation_holds=holds,
            modified_graph_type=graph_type,
            explanation=self._explain_rule_3(holds),
        )

    def find_identifying_sequence(
        self,
        y: Iterable[NodeId],
        x: Iterable[NodeId],
    ) -> DerivationResult | None:
        """Attempt to find a sequence of rule applications that identifies P(Y|do(X)).

        Three derivations are tried in order:
        1. Rule 3 removes do(X) entirely: P(y|do(x)) = P(y)
        2. Rule 2 exchanges do(X) for X: P(y|do(x)) = P(y|x)
        3. Conditioning on the observed parents W of X, then Rule 2 on
           P(y|do(x),w) and Rule 3 on P(w|do(x)):
           P(y|do(x)) = Σ_w P(y|x,w) P(w)

        This is not the complete ID algorithm; it covers effects that are
        identifiable by these standard derivations.

        Args:
            y: Outcome variables
            x: Intervention variables

        Returns:
            DerivationResult if found, None if not identified this way
        """
        y, x = as_node_set(y), as_node_set(x)
        if not y or not x or (x & y):
            return None

        rule3 = self.apply_rule_3(y, set(), x)
        if rule3.applicable:
            logger.debug("do(%s) has no effect on %s by Rule 3", format_nodes(x), format_nodes(y))
            return DerivationResult(steps=[rule3], estimand=rule3.transformed_expression or "")

        rule2 = self.apply_rule_2(y, set(), x)
        if rule2.applicable:
            return DerivationResult(steps=[rule2], estimand=rule2.transformed_expression or "")

        index = GraphIndex(self.graph)
        parents: set[NodeId] = set()
        for node_id in x:
            parents |= index.parents(node_id)
        latent = {n.id for n in self.graph.nodes if n.is_latent}
        w = parents - x - y - latent
        if not w:
            return None

        exchange = self.apply_rule_2(y, set(), x, w)
        if not exchange.applicable:
            return None
        removal = self.apply_rule_3(w, set(), x)
        if not removal.applicable:
            return None

        w_str = format_nodes(w)
        estimand = f"Σ_{{{w_str}}} {format_expression(y, (), x, w)} P({w_str})"
        return DerivationResult(
            steps=[exchange, removal],
            estimand=estimand,
            adjustment_set=sorted(w),
        )

    def _explain_rule_1(self, holds: bool) -> str:
        """Generate explanation for Rule 1 result."""
        if holds:
            return (
                "Rule 1 applies: Y and Z are d-separated given X and W "
                "in graph G_X̄. The observation Z can be removed from the expression "
                "because it provides no additional information about Y once we "
                "intervene on X and condition on W."
            )
        return (
            "Rule 1 does not apply: Y and Z are NOT d-separated given X and W "
            "in graph G_X̄. There exists an open (unblocked) path between Y and Z, "
            "so Z contains information about Y that cannot be removed."
        )

    def _explain_rule_2(self, holds: bool) -> str:
        """Generate explanation for Rule 2 result."""
        if holds:
            return (
                "Rule 2 applies: Y and Z are d-separated given X and W "
                "in graph G_X̄,Z̲. The intervention do(Z) can be replaced with "
                "observation Z because only Z's causal effect connects it to Y."
            )
        return (
            "Rule 2 does not apply: Y and Z are NOT d-separated given X and W "
            "in graph G_X̄,Z̲. The intervention do(Z) and observation Z are not "
            "exchangeable because there exists an unblocked non-causal path."
        )

    def _explain_rule_3(self, holds: bool) -> str:
        """Generate explanation for Rule 3 result."""
        if holds:
            return (
                "Rule 3 applies: Y and Z are d-separated in G_X̄,Z̄(W). "
                "The intervention do(Z) can be removed entirely because "
                "Z has no causal effect on Y in this modified graph."
            )
        return (
            "Rule 3 does not apply: There exist paths from Z to Y "
            "that cannot be blocked. The intervention do(Z) is required "
            "and cannot be removed from the expression."
        )


def _with_actions(
    y: frozenset[NodeId],
    x: frozenset[NodeId],
    z: frozenset[NodeId],
    w: frozenset[NodeId],
) -> str:
    """Render P(y | do(x), do(z), w) keeping the two interventions apart."""
    terms = [f"do({format_nodes(s)})" for s in (x, z) if s]
    if w:
        terms.append(format_nodes(w))
    if not terms:
        return f"P({format_nodes(y)})"
    return f"P({format_nodes(y)} | {', '.join(terms)})"


def _overlap(*sets: frozenset[NodeId]) -> set[NodeId]:
    """Ids that appear in more than one of the given sets."""
    seen: set[NodeId] = set()
    shared: set[NodeId] = set()
    for s in sets:
        shared |= seen & s
        seen |= s
    return shared


def _disjointness_failure(
    rule: DoCalculusRule,
    original: str,
    graph_type: str,
    overlap: set[NodeId],
) -> RuleApplicationResult:
    logger.debug("%s not applicable: overlapping variables %s", rule.value, sorted(overlap))
    return RuleApplicationResult(
        rule=rule,
        applicable=False,
        original_expression=original,
        transformed_expression=None,
        d_separation_holds=False,
        modified_graph_type=graph_type,
        explanation=(
            "Rule requires disjoint Y, X, Z and W; "
            f"overlapping variables: {format_nodes(overlap)}"
        ),
    )
