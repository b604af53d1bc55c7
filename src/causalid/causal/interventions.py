"""
Intervention operations for the do() operator.

This module defines interventions and intervention queries, and the
graph surgery that turns an observational graph into the graph of an
intervened system.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from causalid.core.graph import CausalGraph
from causalid.core.nodes import NodeId


class InterventionType(str, Enum):
    """Kinds of intervention.

    - ATOMIC: do(X=x), X set to a fixed value
    - STOCHASTIC: X drawn from a distribution independent of its causes
    - CONDITIONAL: X set as a function of other variables
    """

    ATOMIC = "atomic"
    STOCHASTIC = "stochastic"
    CONDITIONAL = "conditional"


@dataclass
class Intervention:
    """Represents a do() intervention on a causal graph.

    An intervention do(X=x) fixes variable X to value x, breaking
    all causal influences on X while preserving X's influence on descendants.

    Attributes:
        variable: Id of the node being intervened upon
        value: The value being set (None when left symbolic)
        type: Kind of intervention
        distribution: Distribution parameters for stochastic interventions
    """

    variable: NodeId
    value: Any = None
    type: InterventionType = InterventionType.ATOMIC
    distribution: dict[str, Any] | None = None

    @property
    def assignment(self) -> str:
        """The intervened variable with its value, e.g. ``X=1``."""
        if self.value is None:
            return self.variable
        return f"{self.variable}={self.value}"

    def __str__(self) -> str:
        """String representation of the intervention."""
        return f"do({self.assignment})"


@dataclass
class InterventionRequest:
    """A query for the effect of interventions on outcomes.

    Attributes:
        interventions: The intervention(s) to apply
        outcomes: Ids of the outcome variables
        covariates: Optional caller-proposed adjustment set
    """

    interventions: list[Intervention] = field(default_factory=list)
    outcomes: list[NodeId] = field(default_factory=list)
    covariates: list[NodeId] | None = None

    @property
    def treatment_ids(self) -> list[NodeId]:
        """Intervened variable ids, de-duplicated, in request order."""
        return list(dict.fromkeys(i.variable for i in self.interventions))


def create_mutilated_graph(
    graph: CausalGraph,
    interventions: Iterable[Intervention],
) -> CausalGraph:
    """Get the graph with the given interventions applied.

    Returns G with incoming edges to all intervened nodes removed.
    This is the mutilated graph used for causal effect computation.

    Args:
        graph: The observational graph (left unchanged)
        interventions: Interventions to apply

    Returns:
        A new CausalGraph with interventions applied
    """
    return graph.get_mutilated_graph(i.variable for i in interventions)


def create_marginalized_graph(graph: CausalGraph, variable: NodeId) -> CausalGraph:
    """Get the graph with one variable removed and its parents and spouses wired to its children."""
    return graph.get_marginalized_graph(variable)
