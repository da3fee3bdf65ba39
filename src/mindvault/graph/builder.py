"""Graph builder - turns a note snapshot into nodes and typed edges.

Edge derivation visits every unordered pair once, so building is O(N²)
in the number of notes. That is fine for hundreds of notes and is the
known scaling limit for much larger vaults.
"""

import logging
import time
from collections.abc import Iterable, Sequence
from itertools import combinations

from mindvault.graph.config import BuilderConfig
from mindvault.graph.similarity import SimilarityScorer
from mindvault.models import EdgeKind, Graph, GraphEdge, GraphNode, NoteRef

logger = logging.getLogger(__name__)

# Colour keys
UNCATEGORIZED = "uncategorized"
OTHER = "other"
FAVORITE = "favorite"

CATEGORY_COLORS: dict[str, str] = {
    "work": "#3b82f6",  # Blue
    "personal": "#10b981",  # Green
    "ideas": "#8b5cf6",  # Purple
    "research": "#f97316",  # Orange
    "learning": "#06b6d4",  # Cyan
    "health": "#84cc16",  # Lime
    "finance": "#eab308",  # Yellow
    "travel": "#ec4899",  # Pink
}

COLOR_PALETTE: dict[str, str] = {
    **CATEGORY_COLORS,
    OTHER: "#64748b",  # Slate
    UNCATEGORIZED: "#6b7280",  # Gray
    FAVORITE: "#f59e0b",  # Amber
}

UNTITLED = "Untitled"


def color_key_for(note: NoteRef) -> str:
    """Pick the palette key for a note. Favourites override the category."""
    if note.is_favorite:
        return FAVORITE
    if not note.category:
        return UNCATEGORIZED
    key = note.category.lower()
    return key if key in CATEGORY_COLORS else OTHER


def radius_for(note: NoteRef, config: BuilderConfig) -> float:
    """Node radius from note size, clamped to [min_radius, max_radius]."""
    size = max(note.word_count, note.content_length / config.chars_per_word)
    return max(config.min_radius, min(config.max_radius, size / config.radius_divisor))


class GraphBuilder:
    """Builds a relationship graph from a snapshot of notes."""

    def __init__(
        self,
        config: BuilderConfig | None = None,
        scorer: SimilarityScorer | None = None,
    ) -> None:
        self.config = config or BuilderConfig()
        self.scorer = scorer or SimilarityScorer(self.config.min_token_length)

    def build(self, notes: Iterable[NoteRef | dict]) -> Graph:
        """
        Build nodes and edges for a note snapshot.

        Malformed notes are skipped with a warning rather than failing
        the whole graph.

        Args:
            notes: NoteRef instances or raw storage records

        Returns:
            Graph with one node per valid note and at most one edge per pair
        """
        started = time.perf_counter()
        valid_notes = self._coerce_notes(notes)

        nodes = [self._make_node(note) for note in valid_notes]
        edges = self._derive_edges(valid_notes)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"Built graph: {len(nodes)} nodes, {len(edges)} edges in {elapsed_ms:.1f}ms"
        )
        return Graph(nodes=nodes, edges=edges)

    def _coerce_notes(self, notes: Iterable[NoteRef | dict]) -> list[NoteRef]:
        """Validate input, dropping notes without ids and duplicate ids."""
        valid: list[NoteRef] = []
        seen: set[str] = set()

        for position, raw in enumerate(notes):
            if isinstance(raw, NoteRef):
                note = raw
            else:
                try:
                    note = NoteRef.from_dict(raw)
                except (ValueError, TypeError, AttributeError) as e:
                    logger.warning(f"Skipping malformed note at index {position}: {e}")
                    continue

            if not note.id:
                logger.warning(f"Skipping note at index {position}: empty id")
                continue
            if note.id in seen:
                logger.warning(f"Skipping duplicate note id {note.id!r} at index {position}")
                continue

            seen.add(note.id)
            valid.append(note)

        return valid

    def _make_node(self, note: NoteRef) -> GraphNode:
        return GraphNode(
            id=note.id,
            label=note.title or UNTITLED,
            radius=radius_for(note, self.config),
            color_key=color_key_for(note),
            note=note,
        )

    def _derive_edges(self, notes: Sequence[NoteRef]) -> list[GraphEdge]:
        tokens = {note.id: self.scorer.tokenize(note.content) for note in notes}

        edges: list[GraphEdge] = []
        for note_a, note_b in combinations(notes, 2):
            edge = self.classify_pair(note_a, note_b, tokens[note_a.id], tokens[note_b.id])
            if edge is not None:
                edges.append(edge)
        return edges

    def classify_pair(
        self,
        note_a: NoteRef,
        note_b: NoteRef,
        tokens_a: frozenset[str] | None = None,
        tokens_b: frozenset[str] | None = None,
    ) -> GraphEdge | None:
        """
        Decide the single edge (if any) between two notes.

        Priority: shared category, then shared sentiment, then content
        overlap above the threshold. First match wins.
        """
        if note_a.category and note_b.category and note_a.category == note_b.category:
            return GraphEdge(
                source_id=note_a.id,
                target_id=note_b.id,
                kind=EdgeKind.CATEGORY,
                strength=EdgeKind.CATEGORY.base_strength,
            )

        if note_a.sentiment and note_b.sentiment and note_a.sentiment == note_b.sentiment:
            return GraphEdge(
                source_id=note_a.id,
                target_id=note_b.id,
                kind=EdgeKind.EMOTION,
                strength=EdgeKind.EMOTION.base_strength,
            )

        if tokens_a is None:
            tokens_a = self.scorer.tokenize(note_a.content)
        if tokens_b is None:
            tokens_b = self.scorer.tokenize(note_b.content)

        similarity = self.scorer.score_tokens(tokens_a, tokens_b)
        if similarity > self.config.content_threshold and similarity > 0:
            return GraphEdge(
                source_id=note_a.id,
                target_id=note_b.id,
                kind=EdgeKind.CONTENT,
                strength=similarity,
            )

        return None


def build_graph(notes: Iterable[NoteRef | dict], config: BuilderConfig | None = None) -> Graph:
    """
    Convenience function for one-off graph building.
    """
    return GraphBuilder(config=config).build(notes)
