"""Configuration for graph building, layout and interaction."""

from dataclasses import dataclass, field

from mindvault.config import ClusterMethod, Settings


@dataclass
class BuilderConfig:
    """Configuration for edge derivation."""

    min_token_length: int = 3  # Tokens this short or shorter are ignored
    content_threshold: float = 0.15  # Content edge only when similarity > this

    # Node sizing
    min_radius: float = 10.0
    max_radius: float = 30.0
    radius_divisor: float = 8.0
    chars_per_word: float = 10.0  # content length / this approximates word count


@dataclass
class ForceConfig:
    """Physics constants for the force simulation."""

    # Link (spring) force
    link_distance: float = 30.0
    link_strength_scale: float = 0.5  # Multiplied by edge strength

    # Many-body repulsion
    charge_strength: float = -400.0
    charge_distance_min: float = 1.0
    charge_distance_max: float = float("inf")

    # Centering
    center_strength: float = 1.0  # Translates the centre of mass onto the viewport centre
    gravity_strength: float = 0.1  # Per-node pull toward the centre (x and y)

    # Collision
    collision_padding: float = 8.0
    collision_strength: float = 1.0
    collision_iterations: int = 1

    # Integration / cooling
    velocity_decay: float = 0.4
    alpha_start: float = 1.0
    alpha_min: float = 0.001
    alpha_decay: float = 1 - 0.001 ** (1 / 300)  # ~300 ticks to cool
    settling_alpha: float = 0.05  # Below this the layout is Settling
    drag_alpha_target: float = 0.3

    # Seeding and divergence recovery
    initial_radius: float = 10.0
    jitter: float = 1e-6
    coincidence_epsilon: float = 1e-9


@dataclass
class InteractionConfig:
    """Configuration for zoom, pan, drag and hover."""

    scale_min: float = 0.1
    scale_max: float = 10.0
    zoom_step: float = 1.5  # zoom_in / zoom_out factor
    wheel_sensitivity: float = 0.002  # scale *= 2 ** (-delta * sensitivity)
    fit_padding: float = 0.8
    label_max_length: int = 15
    dim_opacity: float = 0.3


@dataclass
class GraphEngineConfig:
    """Combined configuration for the knowledge graph engine."""

    builder: BuilderConfig = field(default_factory=BuilderConfig)
    forces: ForceConfig = field(default_factory=ForceConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)

    viewport_width: float = 800.0
    viewport_height: float = 600.0
    cluster_method: ClusterMethod = "estimate"
    seed: int = 42
    frame_interval: float = 1 / 60

    @property
    def center(self) -> tuple[float, float]:
        return (self.viewport_width / 2, self.viewport_height / 2)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GraphEngineConfig":
        """Build engine config from environment-level settings."""
        return cls(
            builder=BuilderConfig(
                min_token_length=settings.similarity_min_token_length,
                content_threshold=settings.content_similarity_threshold,
            ),
            interaction=InteractionConfig(
                scale_min=settings.zoom_scale_min,
                scale_max=settings.zoom_scale_max,
            ),
            viewport_width=settings.viewport_width,
            viewport_height=settings.viewport_height,
            cluster_method=settings.cluster_method,
            seed=settings.layout_seed,
            frame_interval=settings.frame_interval,
        )
