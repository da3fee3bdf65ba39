"""Pointer and gesture handling for the graph view.

Events are plain dataclasses dispatched into InteractionController. The
controller only touches the view transform, the highlight set and the
pin state of the node being dragged; node positions otherwise stay with
the layout engine.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from mindvault.graph.config import InteractionConfig
from mindvault.graph.layout import ForceLayoutEngine, is_finite_point
from mindvault.models import Graph, Point

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewTransform:
    """Scale-then-translate transform from graph space to screen space."""

    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, point: Point) -> Point:
        return Point(point[0] * self.k + self.x, point[1] * self.k + self.y)

    def invert(self, point: Point) -> Point:
        return Point((point[0] - self.x) / self.k, (point[1] - self.y) / self.k)

    def scaled(self, k: float, focal_point: Point) -> "ViewTransform":
        """Rescale to k keeping focal_point (screen space) fixed."""
        ratio = k / self.k
        fx, fy = focal_point
        return ViewTransform(
            k=k,
            x=fx - (fx - self.x) * ratio,
            y=fy - (fy - self.y) * ratio,
        )

    def to_dict(self) -> dict:
        return {"k": self.k, "x": self.x, "y": self.y}


# ============================================================================
# Events
# ============================================================================


@dataclass(frozen=True)
class Zoom:
    """Wheel/pinch zoom. Positive delta zooms out, negative zooms in."""

    delta: float
    focal_point: Point


@dataclass(frozen=True)
class ZoomIn:
    pass


@dataclass(frozen=True)
class ZoomOut:
    pass


@dataclass(frozen=True)
class ZoomToFit:
    pass


@dataclass(frozen=True)
class Pan:
    dx: float
    dy: float


@dataclass(frozen=True)
class DragStart:
    node_id: str


@dataclass(frozen=True)
class DragMove:
    node_id: str
    position: Point  # Graph space


@dataclass(frozen=True)
class DragEnd:
    node_id: str


@dataclass(frozen=True)
class Hover:
    node_id: str | None  # None clears the hover


@dataclass(frozen=True)
class Search:
    term: str


InteractionEvent = Zoom | ZoomIn | ZoomOut | ZoomToFit | Pan | DragStart | DragMove | DragEnd | Hover | Search


@dataclass(frozen=True)
class HighlightSet:
    """What the renderer should emphasise. dimmed=False means nothing is dimmed."""

    focus: str | None
    node_ids: frozenset[str] = field(default_factory=frozenset)
    edge_keys: frozenset[tuple[str, str]] = field(default_factory=frozenset)
    dimmed: bool = False

    def is_highlighted(self, node_id: str) -> bool:
        return not self.dimmed or node_id in self.node_ids

    def edge_highlighted(self, key: tuple[str, str]) -> bool:
        return not self.dimmed or key in self.edge_keys

    def to_dict(self) -> dict:
        return {
            "focus": self.focus,
            "nodeIds": sorted(self.node_ids),
            "edges": [list(key) for key in sorted(self.edge_keys)],
            "dimmed": self.dimmed,
        }


# ============================================================================
# Controller
# ============================================================================


class InteractionController:
    """Applies interaction events to view and simulation state."""

    def __init__(
        self,
        layout: ForceLayoutEngine,
        config: InteractionConfig | None = None,
        viewport: tuple[float, float] = (800.0, 600.0),
    ) -> None:
        self.layout = layout
        self.config = config or InteractionConfig()
        self.viewport = viewport

        self.transform = ViewTransform()
        self.dragging: str | None = None

        self._graph = Graph()
        self._neighbors: dict[str, set[str]] = {}
        self._incident: dict[str, set[tuple[str, str]]] = {}
        self.highlight = HighlightSet(focus=None)

    def bind(self, graph: Graph) -> None:
        """Index a freshly built graph. Any active drag or hover is dropped."""
        self._graph = graph
        self._neighbors = graph.adjacency()
        incident: dict[str, set[tuple[str, str]]] = defaultdict(set)
        for edge in graph.edges:
            incident[edge.source_id].add(edge.key)
            incident[edge.target_id].add(edge.key)
        self._incident = dict(incident)

        if self.dragging is not None:
            logger.debug(f"Dropping drag of {self.dragging!r} on rebuild")
        self.dragging = None
        self.highlight = self._full_set()

    def dispatch(self, event: InteractionEvent):
        """Route an event object to its handler."""
        if isinstance(event, Zoom):
            return self.on_zoom(event.delta, event.focal_point)
        if isinstance(event, ZoomIn):
            return self.zoom_in()
        if isinstance(event, ZoomOut):
            return self.zoom_out()
        if isinstance(event, ZoomToFit):
            return self.zoom_to_fit()
        if isinstance(event, Pan):
            return self.pan(event.dx, event.dy)
        if isinstance(event, DragStart):
            return self.on_drag_start(event.node_id)
        if isinstance(event, DragMove):
            return self.on_drag_move(event.node_id, event.position)
        if isinstance(event, DragEnd):
            return self.on_drag_end(event.node_id)
        if isinstance(event, Hover):
            return self.on_hover(event.node_id)
        if isinstance(event, Search):
            return self.on_search(event.term)
        raise TypeError(f"Unsupported interaction event: {type(event).__name__}")

    # ------------------------------------------------------------------
    # View transform
    # ------------------------------------------------------------------

    def _clamp_scale(self, k: float) -> float:
        return max(self.config.scale_min, min(self.config.scale_max, k))

    def _viewport_center(self) -> Point:
        return Point(self.viewport[0] / 2, self.viewport[1] / 2)

    def on_zoom(self, delta: float, focal_point: Point) -> ViewTransform:
        """Wheel zoom about focal_point, clamped to the scale range."""
        factor = 2 ** (-delta * self.config.wheel_sensitivity)
        return self.zoom_by(factor, focal_point)

    def zoom_by(self, factor: float, focal_point: Point | None = None) -> ViewTransform:
        k = self._clamp_scale(self.transform.k * factor)
        self.transform = self.transform.scaled(k, focal_point or self._viewport_center())
        return self.transform

    def zoom_in(self) -> ViewTransform:
        return self.zoom_by(self.config.zoom_step)

    def zoom_out(self) -> ViewTransform:
        return self.zoom_by(1 / self.config.zoom_step)

    def zoom_to_fit(self) -> ViewTransform:
        """Fit every node circle into the viewport with some padding."""
        bounds = self.layout.bounds()
        if bounds is None:
            self.transform = ViewTransform()
            return self.transform

        min_x, min_y, max_x, max_y = bounds
        width, height = max_x - min_x, max_y - min_y
        full_w, full_h = self.viewport

        if width <= 0 or height <= 0:
            k = 1.0
        else:
            k = self.config.fit_padding * min(full_w / width, full_h / height)
        k = self._clamp_scale(k)

        self.transform = ViewTransform(
            k=k,
            x=full_w / 2 - k * (min_x + width / 2),
            y=full_h / 2 - k * (min_y + height / 2),
        )
        return self.transform

    def pan(self, dx: float, dy: float) -> ViewTransform:
        t = self.transform
        self.transform = ViewTransform(k=t.k, x=t.x + dx, y=t.y + dy)
        return self.transform

    # ------------------------------------------------------------------
    # Drag
    # ------------------------------------------------------------------

    def on_drag_start(self, node_id: str) -> bool:
        """Pin the node where it is and re-energise the layout."""
        if self.dragging is not None and self.dragging != node_id:
            self.on_drag_end(self.dragging)

        if not self.layout.pin(node_id):
            logger.debug(f"Ignoring drag start for unknown node {node_id!r}")
            return False

        self.dragging = node_id
        self.layout.reheat()
        return True

    def on_drag_move(self, node_id: str, position: Point) -> bool:
        """Move the dragged node to exactly position."""
        if node_id != self.dragging:
            logger.debug(f"Ignoring drag move for {node_id!r}; dragging {self.dragging!r}")
            return False
        target = Point(float(position[0]), float(position[1]))
        if not is_finite_point(target):
            logger.debug(f"Ignoring drag move for {node_id!r} to non-finite {target}")
            return False
        return self.layout.move_pinned(node_id, target)

    def on_drag_end(self, node_id: str) -> bool:
        """Hand the node back to the simulation."""
        if node_id != self.dragging:
            logger.debug(f"Ignoring drag end for {node_id!r}; dragging {self.dragging!r}")
            return False
        self.layout.unpin(node_id)
        self.layout.release()
        self.dragging = None
        return True

    # ------------------------------------------------------------------
    # Highlighting
    # ------------------------------------------------------------------

    def _full_set(self) -> HighlightSet:
        return HighlightSet(
            focus=None,
            node_ids=frozenset(self._neighbors),
            edge_keys=frozenset(edge.key for edge in self._graph.edges),
            dimmed=False,
        )

    def neighbors(self, node_id: str) -> set[str]:
        """1-hop neighbourhood of a node (empty for unknown ids)."""
        return set(self._neighbors.get(node_id, ()))

    def on_hover(self, node_id: str | None) -> HighlightSet:
        """Highlight a node and its neighbours, or clear with None."""
        if node_id is None:
            self.highlight = self._full_set()
            return self.highlight

        if node_id not in self._neighbors:
            logger.debug(f"Hover on unknown node {node_id!r}; clearing highlight")
            self.highlight = self._full_set()
            return self.highlight

        self.highlight = HighlightSet(
            focus=node_id,
            node_ids=frozenset({node_id} | self._neighbors[node_id]),
            edge_keys=frozenset(self._incident.get(node_id, ())),
            dimmed=True,
        )
        return self.highlight

    def on_search(self, term: str) -> HighlightSet:
        """Highlight notes whose title, content or category contain term."""
        needle = term.strip().lower()
        if not needle:
            self.highlight = self._full_set()
            return self.highlight

        matches = {
            node.id
            for node in self._graph.nodes
            if needle in node.label.lower()
            or needle in node.note.content.lower()
            or needle in (node.note.category or "").lower()
        }
        self.highlight = HighlightSet(
            focus=None,
            node_ids=frozenset(matches),
            edge_keys=frozenset(
                edge.key
                for edge in self._graph.edges
                if edge.source_id in matches and edge.target_id in matches
            ),
            dimmed=True,
        )
        return self.highlight
