"""Unit tests for data models."""

import math

import pytest

from mindvault.models import EdgeKind, Graph, GraphEdge, GraphNode, NoteRef, Point


class TestNoteRef:
    """Tests for NoteRef model."""

    def test_create_note(self) -> None:
        """Test creating a note with defaults."""
        note = NoteRef(id="a")
        assert note.title == ""
        assert note.category is None
        assert note.word_count == 0
        assert note.is_favorite is False
        assert note.content_length == 0

    def test_from_dict_camel_case(self) -> None:
        """Test storage records with camelCase keys."""
        note = NoteRef.from_dict({
            "id": "x1",
            "title": "Trip",
            "content": "pack bags",
            "category": "Travel",
            "sentiment": "excited",
            "wordCount": 2,
            "isFavorite": True,
        })
        assert note.id == "x1"
        assert note.category == "Travel"
        assert note.word_count == 2
        assert note.is_favorite is True

    def test_from_dict_snake_case(self) -> None:
        """Test storage records with snake_case keys."""
        note = NoteRef.from_dict({"id": 7, "word_count": 15, "is_favorite": False})
        assert note.id == "7"
        assert note.word_count == 15

    def test_from_dict_missing_id(self) -> None:
        """Test a record without an id is rejected."""
        with pytest.raises(ValueError):
            NoteRef.from_dict({"title": "orphan"})

    def test_from_dict_blank_id(self) -> None:
        """Test a whitespace id is rejected."""
        with pytest.raises(ValueError):
            NoteRef.from_dict({"id": "  "})

    def test_to_dict_roundtrip_keys(self) -> None:
        """Test export shape uses camelCase."""
        data = NoteRef(id="a", word_count=3, is_favorite=True).to_dict()
        assert data["wordCount"] == 3
        assert data["isFavorite"] is True

    def test_is_frozen(self) -> None:
        """Test the engine cannot mutate a note."""
        note = NoteRef(id="a")
        with pytest.raises(AttributeError):
            note.title = "changed"  # type: ignore[misc]


class TestGraphEdge:
    """Tests for GraphEdge model."""

    def test_key_is_order_independent(self) -> None:
        """Test (a, b) and (b, a) share a key."""
        ab = GraphEdge("a", "b", EdgeKind.CATEGORY, 0.8)
        ba = GraphEdge("b", "a", EdgeKind.CATEGORY, 0.8)
        assert ab.key == ba.key == ("a", "b")

    def test_self_loop_rejected(self) -> None:
        """Test an edge cannot join a node to itself."""
        with pytest.raises(ValueError):
            GraphEdge("a", "a", EdgeKind.CONTENT, 0.5)

    @pytest.mark.parametrize("strength", [0.0, -0.1, 1.01, math.nan])
    def test_strength_out_of_range(self, strength: float) -> None:
        """Test strength must lie in (0, 1]."""
        with pytest.raises(ValueError):
            GraphEdge("a", "b", EdgeKind.CONTENT, strength)

    def test_other_endpoint(self) -> None:
        """Test other() and touches()."""
        edge = GraphEdge("a", "b", EdgeKind.EMOTION, 0.6)
        assert edge.other("a") == "b"
        assert edge.other("b") == "a"
        assert edge.touches("a")
        assert not edge.touches("c")

    def test_stroke_width(self) -> None:
        """Test stroke width is sqrt(strength * 4)."""
        assert GraphEdge("a", "b", EdgeKind.CATEGORY, 1.0).stroke_width == pytest.approx(2.0)

    def test_to_dict(self) -> None:
        """Test converting an edge to a dict."""
        data = GraphEdge("a", "b", EdgeKind.EMOTION, 0.6).to_dict()
        assert data == {"sourceId": "a", "targetId": "b", "kind": "emotion", "strength": 0.6}


class TestEdgeKind:
    """Tests for EdgeKind strengths and styles."""

    def test_base_strengths(self) -> None:
        """Test fixed strengths for metadata edges."""
        assert EdgeKind.CATEGORY.base_strength == 0.8
        assert EdgeKind.EMOTION.base_strength == 0.6
        assert EdgeKind.CONTENT.base_strength is None

    def test_styles(self) -> None:
        """Test emotion edges are dashed and the others solid."""
        assert EdgeKind.EMOTION.style.dash == "5,5"
        assert EdgeKind.CATEGORY.style.dash is None
        assert EdgeKind.CONTENT.style.opacity == 0.4


class TestGraph:
    """Tests for Graph container."""

    def test_adjacency_includes_isolated(self) -> None:
        """Test isolated nodes appear with no neighbours."""
        nodes = [
            GraphNode(id=i, label=i, radius=10, color_key="other", note=NoteRef(id=i))
            for i in ("a", "b", "c")
        ]
        graph = Graph(nodes=nodes, edges=[GraphEdge("a", "b", EdgeKind.CATEGORY, 0.8)])
        adj = graph.adjacency()
        assert adj == {"a": {"b"}, "b": {"a"}, "c": set()}
        assert len(graph) == 3
        assert not graph.is_empty

    def test_node_to_dict_without_position(self) -> None:
        """Test nodes not yet laid out report null coordinates."""
        node = GraphNode(id="a", label="A", radius=10, color_key="work", note=NoteRef(id="a"))
        data = node.to_dict()
        assert data["x"] is None
        assert data["colorKey"] == "work"

    def test_point_unpacks(self) -> None:
        """Test Point behaves like an (x, y) tuple."""
        x, y = Point(1.5, 2.5)
        assert (x, y) == (1.5, 2.5)
