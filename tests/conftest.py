"""Pytest configuration and fixtures."""

import pytest

from mindvault.config import Settings, get_test_settings
from mindvault.graph import (
    ForceLayoutEngine,
    GraphBuilder,
    GraphEngineConfig,
    InteractionController,
    KnowledgeGraphEngine,
)
from mindvault.models import Graph, NoteRef


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with a fixed seed and no frame delay."""
    return get_test_settings()


@pytest.fixture
def engine_config(test_settings: Settings) -> GraphEngineConfig:
    """Engine config derived from test settings."""
    return GraphEngineConfig.from_settings(test_settings)


@pytest.fixture
def sample_notes() -> list[NoteRef]:
    """
    Six notes with one edge of each kind and one isolated note.

    n1 -category- n2 -emotion- n3, n4 -content- n5, n6 alone.
    """
    return [
        NoteRef(
            id="n1",
            title="Roadmap",
            content="quarterly roadmap planning",
            category="Work",
            sentiment="focused",
            word_count=120,
        ),
        NoteRef(
            id="n2",
            title="Standup",
            content="daily standup blockers",
            category="Work",
            sentiment="joy",
            word_count=40,
        ),
        NoteRef(
            id="n3",
            title="Weekend hike",
            content="mountain trail sunrise",
            category="Personal",
            sentiment="joy",
            word_count=300,
            is_favorite=True,
        ),
        NoteRef(
            id="n4",
            title="Neural nets",
            content="neural networks learn representations",
            category="Ideas",
        ),
        NoteRef(
            id="n5",
            title="Reading list",
            content="neural networks need data",
            category="Research",
        ),
        NoteRef(
            id="n6",
            title="Groceries",
            content="milk eggs bread",
            sentiment="calm",
        ),
    ]


@pytest.fixture
def sample_graph(sample_notes: list[NoteRef], engine_config: GraphEngineConfig) -> Graph:
    """Graph built from sample_notes."""
    return GraphBuilder(engine_config.builder).build(sample_notes)


@pytest.fixture
def layout(engine_config: GraphEngineConfig) -> ForceLayoutEngine:
    """Layout engine centred in the default viewport."""
    return ForceLayoutEngine(engine_config.forces, center=engine_config.center, seed=engine_config.seed)


@pytest.fixture
def controller(
    layout: ForceLayoutEngine,
    sample_graph: Graph,
    engine_config: GraphEngineConfig,
) -> InteractionController:
    """Controller bound to a loaded sample graph."""
    layout.load(sample_graph.nodes, sample_graph.edges)
    ctrl = InteractionController(
        layout,
        engine_config.interaction,
        viewport=(engine_config.viewport_width, engine_config.viewport_height),
    )
    ctrl.bind(sample_graph)
    return ctrl


@pytest.fixture
def engine(engine_config: GraphEngineConfig) -> KnowledgeGraphEngine:
    """Fresh engine with test configuration."""
    return KnowledgeGraphEngine(engine_config)
