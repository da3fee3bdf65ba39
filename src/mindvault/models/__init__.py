"""MindVault data models."""

from mindvault.models.graph import EdgeKind, EdgeStyle, Graph, GraphEdge, GraphNode, Point
from mindvault.models.note import NoteRef

__all__ = [
    "NoteRef",
    "Point",
    "EdgeKind",
    "EdgeStyle",
    "GraphNode",
    "GraphEdge",
    "Graph",
]
