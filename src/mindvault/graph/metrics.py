"""Structural metrics for the knowledge graph."""

from __future__ import annotations

import logging
import random
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from mindvault.config import ClusterMethod, settings
from mindvault.models import GraphEdge, GraphNode

logger = logging.getLogger(__name__)

MAX_CENTRAL_NODES = 5
CENTRAL_FRACTION_DIVISOR = 10  # ceil(N / 10) == ceil(0.1 * N) without float error
LABEL_PROPAGATION_MAX_ITERATIONS = 15


def _ceil_div(a: int, b: int) -> int:
    return -(-a // b)


@dataclass
class GraphMetrics:
    """Derived metrics for one built graph. Read-only to consumers."""

    total_nodes: int = 0
    total_edges: int = 0
    density: float = 0.0
    avg_degree: float = 0.0
    cluster_estimate: int = 0
    central_nodes: list[GraphNode] = field(default_factory=list)
    isolated_nodes: list[GraphNode] = field(default_factory=list)

    degrees: dict[str, int] = field(default_factory=dict)  # node id -> degree
    max_degree: int = 0
    edges_by_kind: dict[str, int] = field(default_factory=dict)

    def to_dict(self, precision: int | None = None) -> dict:
        """Convert to the camelCase shape used by reporting and export.

        Args:
            precision: round density/avgDegree to this many decimals
        """
        density = self.density
        avg_degree = self.avg_degree
        if precision is not None:
            density = round(density, precision)
            avg_degree = round(avg_degree, precision)

        return {
            "totalNodes": self.total_nodes,
            "totalEdges": self.total_edges,
            "density": density,
            "avgDegree": avg_degree,
            "clusterEstimate": self.cluster_estimate,
            "maxDegree": self.max_degree,
            "edgesByKind": dict(self.edges_by_kind),
            "centralNodes": [_node_summary(n, self.degrees) for n in self.central_nodes],
            "isolatedNodes": [_node_summary(n, self.degrees) for n in self.isolated_nodes],
        }


def _node_summary(node: GraphNode, degrees: dict[str, int]) -> dict:
    return {"id": node.id, "label": node.label, "degree": degrees.get(node.id, 0)}


class MetricsAnalyzer:
    """Computes degree-based metrics over nodes and edges. O(N + E)."""

    def __init__(
        self,
        cluster_method: ClusterMethod | None = None,
        seed: int | None = None,
    ) -> None:
        self.cluster_method = cluster_method or settings.cluster_method
        self.seed = seed if seed is not None else settings.layout_seed

    def analyze(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> GraphMetrics:
        """Compute all metrics. Does not modify nodes or edges."""
        total_nodes = len(nodes)
        if total_nodes == 0:
            return GraphMetrics()

        degrees: dict[str, int] = {node.id: 0 for node in nodes}
        edges_by_kind: dict[str, int] = defaultdict(int)
        counted: list[GraphEdge] = []

        for edge in edges:
            if edge.source_id not in degrees or edge.target_id not in degrees:
                logger.warning(
                    f"Ignoring edge with unknown endpoint: {edge.source_id} - {edge.target_id}"
                )
                continue
            degrees[edge.source_id] += 1
            degrees[edge.target_id] += 1
            edges_by_kind[edge.kind.value] += 1
            counted.append(edge)

        total_edges = len(counted)
        density = (
            (2 * total_edges) / (total_nodes * (total_nodes - 1))
            if total_nodes > 1
            else 0.0
        )
        avg_degree = (2 * total_edges) / total_nodes

        # sorted() is stable, so ties keep input order
        central_count = min(
            MAX_CENTRAL_NODES, _ceil_div(total_nodes, CENTRAL_FRACTION_DIVISOR)
        )
        by_degree = sorted(nodes, key=lambda n: degrees[n.id], reverse=True)
        central_nodes = by_degree[:central_count]

        isolated_nodes = [node for node in nodes if degrees[node.id] == 0]

        metrics = GraphMetrics(
            total_nodes=total_nodes,
            total_edges=total_edges,
            density=density,
            avg_degree=avg_degree,
            cluster_estimate=self.estimate_clusters(nodes, counted),
            central_nodes=central_nodes,
            isolated_nodes=isolated_nodes,
            degrees=degrees,
            max_degree=max(degrees.values()),
            edges_by_kind=dict(edges_by_kind),
        )

        logger.debug(
            f"Metrics: {total_nodes} nodes, {total_edges} edges, "
            f"density={density:.3f}, clusters={metrics.cluster_estimate}"
        )
        return metrics

    def estimate_clusters(self, nodes: Sequence[GraphNode], edges: Sequence[GraphEdge]) -> int:
        """Cluster count using the configured method."""
        if not nodes:
            return 0
        if self.cluster_method == "label_propagation":
            return len(set(label_propagation(nodes, edges, seed=self.seed).values()))
        if self.cluster_method == "louvain":
            return louvain_cluster_count(nodes, edges, seed=self.seed)
        return max(1, _ceil_div(len(nodes), CENTRAL_FRACTION_DIVISOR))


def label_propagation(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    seed: int = 42,
    max_iterations: int = LABEL_PROPAGATION_MAX_ITERATIONS,
) -> dict[str, int]:
    """Assign a community label to every node by label propagation.

    Isolated nodes keep their own label.
    """
    adj: dict[str, list[str]] = defaultdict(list)
    for edge in edges:
        adj[edge.source_id].append(edge.target_id)
        adj[edge.target_id].append(edge.source_id)

    labels = {node.id: i for i, node in enumerate(nodes)}
    rng = random.Random(seed)
    order = [node.id for node in nodes]

    for _ in range(max_iterations):
        changed = False
        rng.shuffle(order)

        for nid in order:
            neighbors = adj[nid]
            if not neighbors:
                continue

            # Count neighbor labels
            label_count: dict[int, int] = defaultdict(int)
            for neighbor_id in neighbors:
                if neighbor_id in labels:
                    label_count[labels[neighbor_id]] += 1

            if label_count:
                # Most common label, lowest label wins ties
                max_label = min(label_count.items(), key=lambda x: (-x[1], x[0]))[0]
                if labels[nid] != max_label:
                    labels[nid] = max_label
                    changed = True

        if not changed:
            break

    return labels


def louvain_cluster_count(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    seed: int = 42,
) -> int:
    """Count Louvain communities, weighting edges by strength."""
    import networkx as nx

    G = nx.Graph()
    G.add_nodes_from(node.id for node in nodes)
    for edge in edges:
        if edge.source_id in G.nodes and edge.target_id in G.nodes:
            G.add_edge(edge.source_id, edge.target_id, weight=edge.strength)

    try:
        communities = nx.community.louvain_communities(G, weight="weight", seed=seed)
        return len(communities)
    except Exception as e:
        logger.warning(f"Community detection failed: {e}, using connected components")
        return nx.number_connected_components(G)


def annotate_nodes(nodes: Sequence[GraphNode], metrics: GraphMetrics) -> None:
    """Copy derived degree and centrality onto the nodes."""
    central_ids = {node.id for node in metrics.central_nodes}
    for node in nodes:
        node.degree = metrics.degrees.get(node.id, 0)
        node.is_central = node.id in central_ids


def format_report(metrics: GraphMetrics) -> str:
    """Format metrics as a human-readable string."""
    lines = [
        "=== Knowledge Graph Report ===",
        "",
        "Structure:",
        f"  Notes: {metrics.total_nodes}",
        f"  Connections: {metrics.total_edges}",
        f"  Density: {metrics.density:.2f}",
        f"  Average degree: {metrics.avg_degree:.2f}",
        f"  Max degree: {metrics.max_degree}",
        f"  Clusters: {metrics.cluster_estimate}",
        "",
        "  Connections by kind:",
    ]

    for kind, count in sorted(metrics.edges_by_kind.items()):
        lines.append(f"    {kind}: {count}")

    lines.extend([
        "",
        "Central notes:",
    ])
    for node in metrics.central_nodes:
        lines.append(f"  {node.label} ({metrics.degrees.get(node.id, 0)} connections)")

    lines.extend([
        "",
        f"Isolated notes: {len(metrics.isolated_nodes)}",
    ])
    for node in metrics.isolated_nodes[:10]:
        lines.append(f"  {node.label}")

    return "\n".join(lines)
