"""
Centrality measures for causal graphs.

Ranks variables by structural importance using NetworkX: degree (total,
in and out), betweenness, closeness, PageRank, eigenvector and Katz
centrality. Bidirected and undirected edges count in both directions.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

import networkx as nx

from causalid.core.graph import CausalGraph
from causalid.core.nodes import NodeId

logger = logging.getLogger(__name__)


class CentralityMeasure(str, Enum):
    """Supported centrality measures."""

    DEGREE = "degree"
    IN_DEGREE = "in_degree"
    OUT_DEGREE = "out_degree"
    BETWEENNESS = "betweenness"
    CLOSENESS = "closeness"
    PAGERANK = "pagerank"
    EIGENVECTOR = "eigenvector"
    KATZ = "katz"


DEFAULT_MEASURES = [
    CentralityMeasure.DEGREE,
    CentralityMeasure.IN_DEGREE,
    CentralityMeasure.OUT_DEGREE,
    CentralityMeasure.BETWEENNESS,
    CentralityMeasure.CLOSENESS,
    CentralityMeasure.PAGERANK,
    CentralityMeasure.EIGENVECTOR,
]


@dataclass
class CentralityConfig:
    """Configuration for centrality analysis.

    Attributes:
        measures: Which measures compute_all() computes
        damping_factor: PageRank damping factor
        max_iterations: Iteration cap for PageRank, eigenvector and Katz
        tolerance: Convergence tolerance for iterative measures
        normalize: Whether to scale scores to comparable ranges
        top_n: Number of top nodes reported per measure
    """

    measures: list[CentralityMeasure] = field(default_factory=lambda: list(DEFAULT_MEASURES))
    damping_factor: float = 0.85
    max_iterations: int = 100
    tolerance: float = 1e-6
    normalize: bool = True
    top_n: int = 5


@dataclass(frozen=True)
class NodeScore:
    """A node and its score under one measure."""

    node_id: NodeId
    score: float


@dataclass
class CentralityResult:
    """Scores per measure, top nodes per measure and elapsed time."""

    measures: dict[CentralityMeasure, dict[NodeId, float]]
    top_nodes: dict[CentralityMeasure, list[NodeScore]]
    computation_time_ms: float


class CentralityAnalyzer:
    """Computes centrality measures over a causal graph.

    Example:
        >>> analyzer = CentralityAnalyzer(graph)
        >>> analyzer.get_most_central_node("out_degree")
        NodeScore(node_id='U', score=1.0)
    """

    def __init__(self, graph: CausalGraph, config: CentralityConfig | None = None):
        self.graph = graph
        self.config = config or CentralityConfig()
        self._multi = self._build_multigraph(graph)
        self._directed = nx.DiGraph(self._multi)
        self._undirected = self._directed.to_undirected()

    @staticmethod
    def _build_multigraph(graph: CausalGraph) -> nx.MultiDiGraph:
        multi = nx.MultiDiGraph()
        multi.add_nodes_from(graph.node_ids)
        known = set(graph.node_ids)
        for edge in graph.edges:
            if edge.source not in known or edge.target not in known:
                continue
            multi.add_edge(edge.source, edge.target)
            if not edge.is_directed:
                multi.add_edge(edge.target, edge.source)
        return multi

    # --- Individual Measures ---

    def degree(self) -> dict[NodeId, float]:
        return self._degree(lambda n: self._multi.in_degree(n) + self._multi.out_degree(n))

    def in_degree(self) -> dict[NodeId, float]:
        return self._degree(self._multi.in_degree)

    def out_degree(self) -> dict[NodeId, float]:
        return self._degree(self._multi.out_degree)

    def _degree(self, count: Callable[[NodeId], int]) -> dict[NodeId, float]:
        n = self._multi.number_of_nodes()
        factor = n - 1 if self.config.normalize and n > 1 else 1
        return {node: count(node) / factor for node in self._multi.nodes}

    def betweenness(self) -> dict[NodeId, float]:
        """Betweenness over the undirected skeleton."""
        return nx.betweenness_centrality(self._undirected, normalized=self.config.normalize)

    def closeness(self) -> dict[NodeId, float]:
        """Closeness over the undirected skeleton."""
        return nx.closeness_centrality(self._undirected)

    def pagerank(self) -> dict[NodeId, float]:
        if self._directed.number_of_nodes() == 0:
            return {}
        return self._iterative(
            CentralityMeasure.PAGERANK,
            lambda: nx.pagerank(
                self._directed,
                alpha=self.config.damping_factor,
                max_iter=self.config.max_iterations,
                tol=self.config.tolerance,
            ),
        )

    def eigenvector(self) -> dict[NodeId, float]:
        """Eigenvector centrality over the undirected skeleton."""
        if self._undirected.number_of_nodes() == 0:
            return {}
        return self._iterative(
            CentralityMeasure.EIGENVECTOR,
            lambda: nx.eigenvector_centrality(
                self._undirected,
                max_iter=self.config.max_iterations,
                tol=self.config.tolerance,
            ),
        )

    def katz(self, alpha: float = 0.1, beta: float = 1.0) -> dict[NodeId, float]:
        """Katz centrality over incoming directed edges, scaled so the maximum is 1."""
        if self._directed.number_of_nodes() == 0:
            return {}
        scores = self._iterative(
            CentralityMeasure.KATZ,
            lambda: nx.katz_centrality(
                self._directed,
                alpha=alpha,
                beta=beta,
                max_iter=self.config.max_iterations,
                tol=self.config.tolerance,
                normalized=False,
            ),
        )
        top = max(scores.values(), default=0.0)
        if self.config.normalize and top > 0:
            return {node: score / top for node, score in scores.items()}
        return scores

    def _iterative(
        self,
        measure: CentralityMeasure,
        compute: Callable[[], dict[NodeId, float]],
    ) -> dict[NodeId, float]:
        try:
            return compute()
        except nx.PowerIterationFailedConvergence:
            logger.warning(
                "%s did not converge in %d iterations; reporting zeros",
                measure.value,
                self.config.max_iterations,
            )
            return {node: 0.0 for node in self._directed.nodes}

    # --- Aggregate ---

    def compute(self, measure: CentralityMeasure | str) -> dict[NodeId, float]:
        """Compute a single measure by name."""
        dispatch = {
            CentralityMeasure.DEGREE: self.degree,
            CentralityMeasure.IN_DEGREE: self.in_degree,
            CentralityMeasure.OUT_DEGREE: self.out_degree,
            CentralityMeasure.BETWEENNESS: self.betweenness,
            CentralityMeasure.CLOSENESS: self.closeness,
            CentralityMeasure.PAGERANK: self.pagerank,
            CentralityMeasure.EIGENVECTOR: self.eigenvector,
            CentralityMeasure.KATZ: self.katz,
        }
        return dispatch[CentralityMeasure(measure)]()

    def compute_all(self) -> CentralityResult:
        """Compute every configured measure and rank the top nodes for each."""
        start = time.perf_counter()

        measures: dict[CentralityMeasure, dict[NodeId, float]] = {}
        top_nodes: dict[CentralityMeasure, list[NodeScore]] = {}
        for measure in dict.fromkeys(CentralityMeasure(m) for m in self.config.measures):
            scores = self.compute(measure)
            measures[measure] = scores
            if scores:
                top_nodes[measure] = _rank(scores)[: self.config.top_n]

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug("Computed %d centrality measures in %.2f ms", len(measures), elapsed_ms)
        return CentralityResult(
            measures=measures,
            top_nodes=top_nodes,
            computation_time_ms=elapsed_ms,
        )

    def get_most_central_node(
        self,
        measure: CentralityMeasure | str = CentralityMeasure.PAGERANK,
    ) -> NodeScore | None:
        """Get the highest-scoring node for a measure.

        Ties go to the smallest node id. Returns None for an empty graph or
        an unknown measure name.
        """
        try:
            measure = CentralityMeasure(measure)
        except ValueError:
            logger.debug("Unknown centrality measure %r", measure)
            return None
        ranked = _rank(self.compute(measure))
        return ranked[0] if ranked else None


def _rank(scores: dict[NodeId, float]) -> list[NodeScore]:
    ordered = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
    return [NodeScore(node_id=node, score=score) for node, score in ordered]


def compute_all_centrality(
    graph: CausalGraph,
    config: CentralityConfig | None = None,
) -> CentralityResult:
    """Compute all configured centrality measures for a graph."""
    return CentralityAnalyzer(graph, config).compute_all()
