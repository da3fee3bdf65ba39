"""Knowledge graph engine for MindVault notes.

Provides:
- Lexical similarity scoring between notes
- Graph building with typed, weighted edges (category, emotion, content)
- Structural metrics (degree, density, central and isolated notes, clusters)
- Force-directed layout with drag, zoom and hover interaction
"""

from mindvault.graph.builder import COLOR_PALETTE, GraphBuilder, build_graph
from mindvault.graph.config import BuilderConfig, ForceConfig, GraphEngineConfig, InteractionConfig
from mindvault.graph.engine import KnowledgeGraphEngine, RenderEdge, RenderFrame, RenderNode
from mindvault.graph.export import build_export, category_stats, export_filename, export_json
from mindvault.graph.interaction import (
    DragEnd,
    DragMove,
    DragStart,
    HighlightSet,
    Hover,
    InteractionController,
    Pan,
    Search,
    ViewTransform,
    Zoom,
    ZoomIn,
    ZoomOut,
    ZoomToFit,
)
from mindvault.graph.layout import ForceLayoutEngine, LayoutPhase
from mindvault.graph.metrics import GraphMetrics, MetricsAnalyzer, annotate_nodes, format_report
from mindvault.graph.similarity import SimilarityScorer, jaccard_similarity

__all__ = [
    # Config
    "BuilderConfig",
    "ForceConfig",
    "InteractionConfig",
    "GraphEngineConfig",
    # Building
    "SimilarityScorer",
    "jaccard_similarity",
    "GraphBuilder",
    "build_graph",
    "COLOR_PALETTE",
    # Metrics
    "GraphMetrics",
    "MetricsAnalyzer",
    "annotate_nodes",
    "format_report",
    # Layout
    "ForceLayoutEngine",
    "LayoutPhase",
    # Interaction
    "InteractionController",
    "ViewTransform",
    "HighlightSet",
    "Zoom",
    "ZoomIn",
    "ZoomOut",
    "ZoomToFit",
    "Pan",
    "DragStart",
    "DragMove",
    "DragEnd",
    "Hover",
    "Search",
    # Engine
    "KnowledgeGraphEngine",
    "RenderFrame",
    "RenderNode",
    "RenderEdge",
    # Export
    "build_export",
    "export_json",
    "export_filename",
    "category_stats",
]
