"""Knowledge graph engine - one instance per visualisation.

Pipeline:
1. rebuild(notes): build graph -> metrics -> fresh layout simulation
2. tick(dt) / scheduler: advance the layout
3. handle(event): zoom, pan, drag, hover, search
4. frame(): renderable positions, styles and highlight state

The rendering layer owns the engine's lifetime. Rebuilding or destroying
cancels any scheduled ticks before new state is installed.
"""

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from mindvault.config import settings
from mindvault.graph.builder import COLOR_PALETTE, GraphBuilder
from mindvault.graph.config import GraphEngineConfig
from mindvault.graph.export import build_export, category_stats
from mindvault.graph.interaction import HighlightSet, InteractionController, InteractionEvent, ViewTransform
from mindvault.graph.layout import ForceLayoutEngine, LayoutPhase
from mindvault.graph.metrics import GraphMetrics, MetricsAnalyzer, annotate_nodes
from mindvault.models import Graph, GraphEdge, GraphNode, NoteRef, Point

logger = logging.getLogger(__name__)


@dataclass
class RenderNode:
    id: str
    x: float
    y: float
    radius: float
    color_key: str
    color: str
    label: str
    opacity: float = 1.0
    pinned: bool = False
    is_central: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            "radius": self.radius,
            "colorKey": self.color_key,
            "color": self.color,
            "label": self.label,
            "opacity": self.opacity,
            "pinned": self.pinned,
            "isCentral": self.is_central,
        }


@dataclass
class RenderEdge:
    source_id: str
    target_id: str
    kind: str
    strength: float
    stroke: str
    stroke_width: float
    opacity: float
    dash: str | None = None

    def to_dict(self) -> dict:
        return {
            "sourceId": self.source_id,
            "targetId": self.target_id,
            "kind": self.kind,
            "strength": self.strength,
            "stroke": self.stroke,
            "strokeWidth": self.stroke_width,
            "opacity": self.opacity,
            "dash": self.dash,
        }


@dataclass
class RenderFrame:
    """Everything the renderer needs for one frame."""

    generation: int
    phase: LayoutPhase
    alpha: float
    ticks: int
    transform: ViewTransform
    nodes: list[RenderNode] = field(default_factory=list)
    edges: list[RenderEdge] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "generation": self.generation,
            "phase": self.phase.value,
            "alpha": self.alpha,
            "ticks": self.ticks,
            "transform": self.transform.to_dict(),
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


def truncate_label(label: str, max_length: int) -> str:
    return label if len(label) <= max_length else label[:max_length] + "..."


class KnowledgeGraphEngine:
    """Owns the graph, its metrics, the layout simulation and interaction state."""

    def __init__(self, config: GraphEngineConfig | None = None) -> None:
        self.config = config or GraphEngineConfig.from_settings(settings)

        self.builder = GraphBuilder(self.config.builder)
        self.analyzer = MetricsAnalyzer(self.config.cluster_method, seed=self.config.seed)
        self.layout = ForceLayoutEngine(
            self.config.forces,
            center=self.config.center,
            seed=self.config.seed,
        )
        self.controller = InteractionController(
            self.layout,
            self.config.interaction,
            viewport=(self.config.viewport_width, self.config.viewport_height),
        )

        self.graph = Graph()
        self.metrics = GraphMetrics()

        self._autorun = False
        self._on_frame: Callable[[RenderFrame], None] | None = None
        self._task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Graph lifecycle
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> list[GraphNode]:
        return self.graph.nodes

    @property
    def edges(self) -> list[GraphEdge]:
        return self.graph.edges

    def rebuild(self, notes: Iterable[NoteRef | dict]) -> GraphMetrics:
        """
        Replace the note snapshot.

        Cancels pending ticks, builds a new graph and starts a new
        simulation. Nodes that survive the rebuild keep their positions.
        """
        self._cancel_task()
        previous = self.layout.positions()

        graph = self.builder.build(notes)
        metrics = self.analyzer.analyze(graph.nodes, graph.edges)
        annotate_nodes(graph.nodes, metrics)

        self.graph = graph
        self.metrics = metrics
        self.layout.load(graph.nodes, graph.edges, previous)
        self.controller.bind(graph)

        self._schedule()
        return metrics

    def destroy(self) -> None:
        """Stop ticking and drop all graph state."""
        self._autorun = False
        self._cancel_task()
        self.layout.stop()
        self.graph = Graph()
        self.metrics = GraphMetrics()
        self.controller.bind(self.graph)

    def resize(self, width: float, height: float) -> None:
        """Move the layout centre to the middle of a new viewport."""
        self.config.viewport_width = width
        self.config.viewport_height = height
        self.layout.center = Point(width / 2, height / 2)
        self.controller.viewport = (width, height)
        self.layout.restart(self.config.forces.drag_alpha_target)
        self._schedule()

    # ------------------------------------------------------------------
    # Simulation and interaction
    # ------------------------------------------------------------------

    def tick(self, dt: float = 1.0) -> bool:
        return self.layout.tick(dt)

    def handle(self, event: InteractionEvent) -> HighlightSet | ViewTransform | bool:
        """Dispatch an interaction event; resumes ticking if it perturbed the layout."""
        result = self.controller.dispatch(event)
        self._schedule()
        return result

    def frame(self) -> RenderFrame:
        """Snapshot of current positions and styles for the renderer."""
        interaction = self.config.interaction
        highlight = self.controller.highlight

        nodes = []
        for node in self.graph.nodes:
            position = node.position or self.layout.center
            nodes.append(RenderNode(
                id=node.id,
                x=position.x,
                y=position.y,
                radius=node.radius,
                color_key=node.color_key,
                color=COLOR_PALETTE[node.color_key],
                label=truncate_label(node.label, interaction.label_max_length),
                opacity=1.0 if highlight.is_highlighted(node.id) else interaction.dim_opacity,
                pinned=node.pinned,
                is_central=node.is_central,
            ))

        edges = []
        for edge in self.graph.edges:
            style = edge.kind.style
            edges.append(RenderEdge(
                source_id=edge.source_id,
                target_id=edge.target_id,
                kind=edge.kind.value,
                strength=edge.strength,
                stroke=style.stroke,
                stroke_width=edge.stroke_width,
                opacity=style.opacity if highlight.edge_highlighted(edge.key) else 0.1,
                dash=style.dash,
            ))

        return RenderFrame(
            generation=self.layout.generation,
            phase=self.layout.phase,
            alpha=self.layout.alpha,
            ticks=self.layout.ticks,
            transform=self.controller.transform,
            nodes=nodes,
            edges=edges,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def export_snapshot(self, timestamp: datetime | None = None) -> dict:
        return build_export(self.graph.nodes, self.metrics, timestamp)

    def category_stats(self) -> dict:
        return category_stats(self.graph.nodes)

    # ------------------------------------------------------------------
    # Cooperative tick scheduling
    # ------------------------------------------------------------------

    @property
    def is_scheduled(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, on_frame: Callable[[RenderFrame], None] | None = None) -> None:
        """Tick automatically on the running event loop while the layout is active."""
        self._autorun = True
        self._on_frame = on_frame
        self._schedule()

    def stop(self) -> None:
        """Stop automatic ticking. Manual tick() still works."""
        self._autorun = False
        self._cancel_task()

    def _schedule(self) -> None:
        if not self._autorun or self.is_scheduled or not self.layout.is_active:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; ticks must be driven manually")
            return
        self._task = loop.create_task(self._run(self.layout.generation))
        self._task.add_done_callback(self._log_task_failure)

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Tick loop failed: {error}", exc_info=error)

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, generation: int) -> None:
        """One tick per frame until Idle or the simulation is replaced."""
        while self.layout.is_active and self.layout.generation == generation:
            self.layout.tick()
            if self._on_frame is not None:
                self._on_frame(self.frame())
            await asyncio.sleep(self.config.frame_interval)
        logger.debug(f"Tick loop for generation {generation} finished ({self.layout.phase.value})")
