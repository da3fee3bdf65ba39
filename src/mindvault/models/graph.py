"""Graph models - nodes, typed edges and the built graph."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

from mindvault.models.note import NoteRef


class Point(NamedTuple):
    """A 2D coordinate or vector."""

    x: float
    y: float


@dataclass(frozen=True)
class EdgeStyle:
    """How the renderer should stroke an edge of a given kind."""

    stroke: str
    opacity: float
    dash: str | None = None


class EdgeKind(str, Enum):
    """Why two notes are connected."""

    CATEGORY = "category"  # Shared category
    EMOTION = "emotion"  # Shared sentiment
    CONTENT = "content"  # Lexical overlap

    @property
    def base_strength(self) -> float | None:
        """Fixed strength for metadata edges; content edges use the similarity score."""
        return _BASE_STRENGTH[self]

    @property
    def style(self) -> EdgeStyle:
        return _EDGE_STYLES[self]


_BASE_STRENGTH: dict[EdgeKind, float | None] = {
    EdgeKind.CATEGORY: 0.8,
    EdgeKind.EMOTION: 0.6,
    EdgeKind.CONTENT: None,
}

_EDGE_STYLES: dict[EdgeKind, EdgeStyle] = {
    EdgeKind.CATEGORY: EdgeStyle(stroke="#3b82f6", opacity=0.8),
    EdgeKind.EMOTION: EdgeStyle(stroke="#ec4899", opacity=0.6, dash="5,5"),
    EdgeKind.CONTENT: EdgeStyle(stroke="#94a3b8", opacity=0.4),
}


@dataclass
class GraphNode:
    """
    One note in the graph.

    Position and velocity belong to the layout engine, except while the
    node is pinned by an active drag.
    """

    id: str  # Same as NoteRef.id
    label: str
    radius: float
    color_key: str
    note: NoteRef

    # Derived by metrics
    degree: int = 0
    is_central: bool = False

    # Simulation state
    position: Point | None = None
    velocity: Point = Point(0.0, 0.0)
    pinned: bool = False

    def to_dict(self) -> dict:
        """Convert to a plain dict for API responses."""
        return {
            "id": self.id,
            "label": self.label,
            "radius": self.radius,
            "colorKey": self.color_key,
            "degree": self.degree,
            "isCentral": self.is_central,
            "x": self.position.x if self.position else None,
            "y": self.position.y if self.position else None,
            "pinned": self.pinned,
        }


@dataclass(frozen=True)
class GraphEdge:
    """
    Undirected, weighted connection between two notes.

    Example: note-a --category--> note-b (strength: 0.8)
    """

    source_id: str
    target_id: str
    kind: EdgeKind
    strength: float  # (0.0, 1.0]

    def __post_init__(self) -> None:
        if self.source_id == self.target_id:
            raise ValueError(f"Self-loop on {self.source_id!r}")
        if not (0.0 < self.strength <= 1.0) or math.isnan(self.strength):
            raise ValueError(f"Edge strength out of range: {self.strength}")

    @property
    def key(self) -> tuple[str, str]:
        """Order-independent identity of the node pair."""
        return (
            (self.source_id, self.target_id)
            if self.source_id <= self.target_id
            else (self.target_id, self.source_id)
        )

    @property
    def stroke_width(self) -> float:
        return math.sqrt(self.strength * 4)

    def touches(self, node_id: str) -> bool:
        return node_id in (self.source_id, self.target_id)

    def other(self, node_id: str) -> str:
        """Return the endpoint opposite to node_id."""
        return self.target_id if node_id == self.source_id else self.source_id

    def to_dict(self) -> dict:
        return {
            "sourceId": self.source_id,
            "targetId": self.target_id,
            "kind": self.kind.value,
            "strength": self.strength,
        }


@dataclass
class Graph:
    """A built graph: one node per note, at most one edge per node pair."""

    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node_index(self) -> dict[str, GraphNode]:
        """Map node id -> node."""
        return {node.id: node for node in self.nodes}

    def adjacency(self) -> dict[str, set[str]]:
        """Map node id -> ids of its direct neighbours."""
        adj: dict[str, set[str]] = {node.id: set() for node in self.nodes}
        for edge in self.edges:
            adj.setdefault(edge.source_id, set()).add(edge.target_id)
            adj.setdefault(edge.target_id, set()).add(edge.source_id)
        return adj
