"""FastAPI application for the MindVault knowledge graph.

Serves one graph engine per process. Clients push note snapshots,
drive the layout with explicit ticks and send interaction events.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mindvault import __version__
from mindvault.api.graph import router as graph_router
from mindvault.config import settings
from mindvault.graph import GraphEngineConfig, KnowledgeGraphEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan - startup and shutdown."""
    # Startup
    logger.info("Starting MindVault graph API...")
    logger.info(
        f"Viewport: {settings.viewport_width:.0f}x{settings.viewport_height:.0f}, "
        f"cluster method: {settings.cluster_method}"
    )

    app.state.engine = KnowledgeGraphEngine(GraphEngineConfig.from_settings(settings))

    yield

    # Shutdown
    logger.info("Shutting down MindVault graph API...")
    app.state.engine.destroy()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="MindVault Graph",
        description="Relationship graph, metrics and force layout for personal notes",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(graph_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "mindvault.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_debug,
    )
