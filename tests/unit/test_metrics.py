"""Unit tests for graph metrics."""

import pytest

from mindvault.graph.builder import build_graph
from mindvault.graph.metrics import (
    GraphMetrics,
    MetricsAnalyzer,
    annotate_nodes,
    format_report,
    label_propagation,
    louvain_cluster_count,
)
from mindvault.models import EdgeKind, Graph, GraphEdge, GraphNode, NoteRef


def make_nodes(*ids: str) -> list[GraphNode]:
    return [
        GraphNode(id=i, label=i.upper(), radius=10.0, color_key="other", note=NoteRef(id=i))
        for i in ids
    ]


def link(a: str, b: str, strength: float = 0.5) -> GraphEdge:
    return GraphEdge(a, b, EdgeKind.CONTENT, strength)


@pytest.fixture
def analyzer() -> MetricsAnalyzer:
    return MetricsAnalyzer(cluster_method="estimate", seed=7)


class TestMetricsAnalyzer:
    """Tests for MetricsAnalyzer.analyze."""

    def test_sample_graph(self, analyzer: MetricsAnalyzer, sample_graph: Graph) -> None:
        """Test metrics of the six-note sample."""
        m = analyzer.analyze(sample_graph.nodes, sample_graph.edges)
        assert m.total_nodes == 6
        assert m.total_edges == 3
        assert m.density == pytest.approx(0.2)
        assert m.avg_degree == pytest.approx(1.0)
        assert m.cluster_estimate == 1
        assert [n.id for n in m.central_nodes] == ["n2"]
        assert [n.id for n in m.isolated_nodes] == ["n6"]
        assert m.max_degree == 2
        assert m.edges_by_kind == {"category": 1, "emotion": 1, "content": 1}

    def test_two_work_notes(self, analyzer: MetricsAnalyzer) -> None:
        """Test a and b sharing category Work: density 1, avgDegree 1."""
        graph = build_graph([
            NoteRef(id="a", category="Work", sentiment="joy", content="alpha beta gamma"),
            NoteRef(id="b", category="Work", sentiment="joy", content="delta epsilon zeta"),
        ])
        m = analyzer.analyze(graph.nodes, graph.edges)
        assert m.total_nodes == 2
        assert m.total_edges == 1
        assert m.density == pytest.approx(1.0)
        assert m.avg_degree == pytest.approx(1.0)
        assert m.isolated_nodes == []

    def test_low_overlap_both_isolated(self, analyzer: MetricsAnalyzer) -> None:
        """Test two notes with 0.10 overlap are both isolated."""
        graph = build_graph([
            NoteRef(id="a", content="shared apple banana cherry dates"),
            NoteRef(id="b", content="shared eagle falcon goose heron hawks"),
        ])
        m = analyzer.analyze(graph.nodes, graph.edges)
        assert m.total_edges == 0
        assert [n.id for n in m.isolated_nodes] == ["a", "b"]

    def test_empty_graph(self, analyzer: MetricsAnalyzer) -> None:
        """Test every metric is zero for no nodes."""
        m = analyzer.analyze([], [])
        assert m.total_nodes == 0
        assert m.total_edges == 0
        assert m.density == 0.0
        assert m.avg_degree == 0.0
        assert m.cluster_estimate == 0
        assert m.central_nodes == []
        assert m.isolated_nodes == []

    def test_single_node(self, analyzer: MetricsAnalyzer) -> None:
        """Test one node: density 0, one cluster, central and isolated."""
        nodes = make_nodes("a")
        m = analyzer.analyze(nodes, [])
        assert m.density == 0.0
        assert m.avg_degree == 0.0
        assert m.cluster_estimate == 1
        assert m.central_nodes == nodes
        assert m.isolated_nodes == nodes

    def test_degree_sum_is_twice_edges(self, analyzer: MetricsAnalyzer, sample_graph: Graph) -> None:
        """Test handshake lemma and avgDegree consistency."""
        m = analyzer.analyze(sample_graph.nodes, sample_graph.edges)
        assert sum(m.degrees.values()) == 2 * m.total_edges
        assert m.avg_degree == pytest.approx(sum(m.degrees.values()) / m.total_nodes)
        assert 0.0 <= m.density <= 1.0
        isolated = {node.id for node in m.isolated_nodes}
        assert isolated == {nid for nid, degree in m.degrees.items() if degree == 0}

    def test_central_count_caps_at_five(self, analyzer: MetricsAnalyzer) -> None:
        """Test min(5, ceil(0.1 * N)) central nodes."""
        ids = [f"n{i:02d}" for i in range(60)]
        m = analyzer.analyze(make_nodes(*ids), [])
        assert len(m.central_nodes) == 5

        m = analyzer.analyze(make_nodes(*ids[:11]), [])
        assert len(m.central_nodes) == 2

    def test_central_ties_keep_input_order(self, analyzer: MetricsAnalyzer) -> None:
        """Test equal degrees keep the original node order."""
        nodes = make_nodes(*[f"n{i:02d}" for i in range(20)])
        edges = [link("n05", "n10"), link("n03", "n15")]
        m = analyzer.analyze(nodes, edges)
        assert [n.id for n in m.central_nodes] == ["n03", "n05"]

    def test_unknown_endpoint_ignored(self, analyzer: MetricsAnalyzer) -> None:
        """Test edges to nodes outside the set are skipped."""
        m = analyzer.analyze(make_nodes("a", "b"), [link("a", "b"), link("a", "ghost")])
        assert m.total_edges == 1
        assert m.degrees == {"a": 1, "b": 1}

    def test_does_not_mutate_nodes(self, analyzer: MetricsAnalyzer, sample_graph: Graph) -> None:
        """Test analysis is pure."""
        analyzer.analyze(sample_graph.nodes, sample_graph.edges)
        assert all(node.degree == 0 for node in sample_graph.nodes)

    def test_cluster_estimate_placeholder(self, analyzer: MetricsAnalyzer) -> None:
        """Test the default estimate is ceil(N / 10)."""
        m = analyzer.analyze(make_nodes(*[f"n{i}" for i in range(21)]), [])
        assert m.cluster_estimate == 3


class TestCommunityDetection:
    """Tests for the optional cluster methods."""

    @pytest.fixture
    def two_triangles(self) -> tuple[list[GraphNode], list[GraphEdge]]:
        nodes = make_nodes("a", "b", "c", "x", "y", "z")
        edges = [
            link("a", "b"), link("b", "c"), link("a", "c"),
            link("x", "y"), link("y", "z"), link("x", "z"),
        ]
        return nodes, edges

    def test_label_propagation(self, two_triangles) -> None:
        """Test two disconnected triangles form two communities."""
        nodes, edges = two_triangles
        labels = label_propagation(nodes, edges, seed=7)
        assert labels["a"] == labels["b"] == labels["c"]
        assert labels["x"] == labels["y"] == labels["z"]
        assert labels["a"] != labels["x"]

    def test_label_propagation_isolated_keep_own_label(self) -> None:
        """Test isolated nodes are their own community."""
        labels = label_propagation(make_nodes("a", "b"), [], seed=7)
        assert len(set(labels.values())) == 2

    def test_label_propagation_method(self, two_triangles) -> None:
        """Test the analyzer uses label propagation when configured."""
        nodes, edges = two_triangles
        m = MetricsAnalyzer(cluster_method="label_propagation", seed=7).analyze(nodes, edges)
        assert m.cluster_estimate == 2

    def test_louvain(self, two_triangles) -> None:
        """Test Louvain finds both triangles."""
        nodes, edges = two_triangles
        assert louvain_cluster_count(nodes, edges, seed=7) == 2
        m = MetricsAnalyzer(cluster_method="louvain", seed=7).analyze(nodes, edges)
        assert m.cluster_estimate == 2


class TestReporting:
    """Tests for annotation, serialisation and the text report."""

    def test_annotate_nodes(self, analyzer: MetricsAnalyzer, sample_graph: Graph) -> None:
        """Test degree and centrality are copied onto nodes."""
        m = analyzer.analyze(sample_graph.nodes, sample_graph.edges)
        annotate_nodes(sample_graph.nodes, m)
        by_id = sample_graph.node_index()
        assert by_id["n2"].degree == 2
        assert by_id["n2"].is_central
        assert not by_id["n1"].is_central

    def test_to_dict_precision(self) -> None:
        """Test optional rounding of float metrics."""
        m = GraphMetrics(total_nodes=3, total_edges=1, density=1 / 3, avg_degree=2 / 3)
        assert m.to_dict()["density"] == pytest.approx(1 / 3)
        rounded = m.to_dict(precision=2)
        assert rounded["density"] == 0.33
        assert rounded["avgDegree"] == 0.67
        assert rounded["totalNodes"] == 3

    def test_format_report(self, analyzer: MetricsAnalyzer, sample_graph: Graph) -> None:
        """Test the human-readable report."""
        report = format_report(analyzer.analyze(sample_graph.nodes, sample_graph.edges))
        assert "Notes: 6" in report
        assert "Connections: 3" in report
        assert "Standup (2 connections)" in report
        assert "Isolated notes: 1" in report
        assert "Groceries" in report
