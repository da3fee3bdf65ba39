"""Configuration management using Pydantic Settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ClusterMethod = Literal["estimate", "label_propagation", "louvain"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = "INFO"

    # Viewport (layout centre is the viewport centre)
    viewport_width: float = 800.0
    viewport_height: float = 600.0

    # Similarity / edge building
    similarity_min_token_length: int = Field(
        default=3,
        description="Tokens of this length or shorter are discarded as stop words"
    )
    content_similarity_threshold: float = Field(
        default=0.15,
        description="Content edges are created only above this Jaccard score"
    )

    # Metrics
    cluster_method: ClusterMethod = Field(
        default="estimate",
        description="'estimate' keeps ceil(N/10); the others run real community detection"
    )

    # Simulation
    layout_seed: int = Field(
        default=42,
        description="Seed for jitter and label propagation RNGs"
    )
    frame_interval: float = Field(
        default=1 / 60,
        description="Seconds between scheduled simulation ticks"
    )

    # Zoom
    zoom_scale_min: float = 0.1
    zoom_scale_max: float = 10.0

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False


def get_dev_settings() -> Settings:
    """Get development environment settings."""
    return Settings(
        log_level="DEBUG",
        api_debug=True,
    )


def get_test_settings() -> Settings:
    """Get test environment settings."""
    return Settings(
        log_level="DEBUG",
        cluster_method="estimate",
        layout_seed=7,
        frame_interval=0.0,
    )


# Global settings instance
settings = Settings()
