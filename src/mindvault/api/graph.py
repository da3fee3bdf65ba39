"""Knowledge graph endpoints.

Provides:
- /health for liveness
- /graph/notes to rebuild the graph from a note snapshot
- /graph/frame and /graph/tick to drive and read the layout
- /graph/events for zoom, pan, drag, hover and search
- /graph/metrics, /graph/export and /graph/categories for reporting
"""

import logging
from typing import Any, Literal

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mindvault.graph import (
    DragEnd,
    DragMove,
    DragStart,
    Hover,
    KnowledgeGraphEngine,
    Pan,
    Search,
    Zoom,
    ZoomIn,
    ZoomOut,
    ZoomToFit,
    format_report,
)
from mindvault.graph.interaction import InteractionEvent
from mindvault.models import NoteRef, Point

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request / Response Models
# ============================================================================


class NotePayload(BaseModel):
    """A note as sent by the storage layer (camelCase or snake_case)."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    id: str | None = None
    title: str | None = None
    content: str | None = None
    category: str | None = None
    sentiment: str | None = None
    word_count: int = Field(default=0, ge=0, alias="wordCount")
    is_favorite: bool = Field(default=False, alias="isFavorite")


class RebuildRequest(BaseModel):
    """Replace the current note snapshot. Each note is validated on its own."""

    notes: list[Any]


class RebuildResponse(BaseModel):
    """Result of a rebuild."""

    generation: int
    nodes: int
    edges: int
    skipped: int
    metrics: dict


class EventRequest(BaseModel):
    """One interaction event from the renderer."""

    type: Literal[
        "zoom",
        "zoom_in",
        "zoom_out",
        "zoom_fit",
        "pan",
        "drag_start",
        "drag_move",
        "drag_end",
        "hover",
        "search",
    ]
    node_id: str | None = None
    delta: float = 0.0
    dx: float = 0.0
    dy: float = 0.0
    x: float | None = None
    y: float | None = None
    term: str = ""


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    nodes: int
    phase: str
    version: str = "0.1.0"


# ============================================================================
# Helper Functions
# ============================================================================


def get_engine(request: Request) -> KnowledgeGraphEngine:
    """Get graph engine from app state."""
    return request.app.state.engine


def _point(body: EventRequest) -> Point:
    if body.x is None or body.y is None:
        raise HTTPException(status_code=422, detail=f"'{body.type}' requires x and y")
    return Point(body.x, body.y)


def _node_id(body: EventRequest) -> str:
    if not body.node_id:
        raise HTTPException(status_code=422, detail=f"'{body.type}' requires node_id")
    return body.node_id


def to_event(body: EventRequest) -> InteractionEvent:
    """Translate a request body into an interaction event object."""
    if body.type == "zoom":
        return Zoom(delta=body.delta, focal_point=_point(body))
    if body.type == "zoom_in":
        return ZoomIn()
    if body.type == "zoom_out":
        return ZoomOut()
    if body.type == "zoom_fit":
        return ZoomToFit()
    if body.type == "pan":
        return Pan(dx=body.dx, dy=body.dy)
    if body.type == "drag_start":
        return DragStart(node_id=_node_id(body))
    if body.type == "drag_move":
        return DragMove(node_id=_node_id(body), position=_point(body))
    if body.type == "drag_end":
        return DragEnd(node_id=_node_id(body))
    if body.type == "hover":
        return Hover(node_id=body.node_id)
    return Search(term=body.term)


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint."""
    engine = get_engine(request)
    return HealthResponse(
        status="healthy",
        nodes=len(engine.graph),
        phase=engine.layout.phase.value,
    )


@router.post("/graph/notes", response_model=RebuildResponse)
async def rebuild_graph(request: Request, body: RebuildRequest) -> RebuildResponse:
    """
    Rebuild the graph from a full note snapshot.

    Invalid notes (no id, wrong field types, negative word count) are
    skipped; the rest of the snapshot still builds.
    """
    engine = get_engine(request)

    notes: list[NoteRef] = []
    skipped = 0
    for position, raw in enumerate(body.notes):
        try:
            payload = NotePayload.model_validate(raw)
            notes.append(NoteRef.from_dict(payload.model_dump()))
        except (ValidationError, ValueError) as e:
            logger.warning(f"Rejecting note at index {position}: {e}")
            skipped += 1

    metrics = engine.rebuild(notes)
    skipped += len(notes) - metrics.total_nodes

    return RebuildResponse(
        generation=engine.layout.generation,
        nodes=metrics.total_nodes,
        edges=metrics.total_edges,
        skipped=skipped,
        metrics=metrics.to_dict(),
    )


@router.get("/graph/frame")
async def get_frame(request: Request) -> dict:
    """Current positions, styles and highlight state."""
    return get_engine(request).frame().to_dict()


@router.post("/graph/tick")
async def tick(request: Request, steps: int = 1) -> dict:
    """Advance the simulation by up to `steps` ticks and return the frame."""
    if steps < 1 or steps > 1000:
        raise HTTPException(status_code=422, detail="steps must be between 1 and 1000")

    engine = get_engine(request)
    advanced = 0
    for _ in range(steps):
        if not engine.tick():
            break
        advanced += 1

    frame = engine.frame().to_dict()
    frame["advanced"] = advanced
    return frame


@router.post("/graph/events")
async def handle_event(request: Request, body: EventRequest) -> dict:
    """Apply one interaction event."""
    engine = get_engine(request)
    result = engine.handle(to_event(body))

    response: dict = {
        "type": body.type,
        "transform": engine.controller.transform.to_dict(),
        "highlight": engine.controller.highlight.to_dict(),
        "phase": engine.layout.phase.value,
    }
    if isinstance(result, bool):
        response["accepted"] = result
    return response


@router.get("/graph/metrics")
async def get_metrics(request: Request) -> dict:
    """Metrics of the current graph."""
    return get_engine(request).metrics.to_dict()


@router.get("/graph/metrics/report", response_class=PlainTextResponse)
async def get_metrics_report(request: Request) -> str:
    """Human-readable metrics report."""
    return format_report(get_engine(request).metrics)


@router.get("/graph/export")
async def export_graph(request: Request) -> dict:
    """Snapshot document with note summaries, rounded metrics and a timestamp."""
    return get_engine(request).export_snapshot()


@router.get("/graph/categories")
async def get_categories(request: Request) -> dict:
    """Note counts per category plus favourite and sentiment totals."""
    return get_engine(request).category_stats()


@router.get("/graph/nodes/{node_id}/neighbors")
async def get_neighbors(request: Request, node_id: str) -> dict:
    """Direct neighbours of a node."""
    engine = get_engine(request)
    node = engine.graph.node_index().get(node_id)
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")

    neighbor_ids = sorted(engine.controller.neighbors(node_id))
    return {
        "node": node.to_dict(),
        "neighbors": neighbor_ids,
        "edges": [edge.to_dict() for edge in engine.graph.edges if edge.touches(node_id)],
    }
