"""Force-directed layout simulation.

Each tick computes velocity changes for every node from one snapshot of
positions and velocities, then applies them all at once:

1. Link force: springs along edges toward link_distance, scaled by edge strength
2. Charge force: all-pairs inverse-square repulsion
3. Gravity: weak per-node pull toward the viewport centre
4. Collision: pushes apart circles (radius + padding) that overlap
5. Integrate: velocity decay, position += velocity, centre-of-mass recentring

Alpha ("temperature") scales links, charge and gravity and decays every
tick toward alpha_target. Below alpha_min the simulation goes Idle and
stops accepting ticks until it is reheated.

Repulsion and collision are evaluated exactly, O(N²) per tick. A
Barnes-Hut quadtree would be the internal optimisation for large vaults.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

import numpy as np

from mindvault.graph.config import ForceConfig
from mindvault.models import GraphEdge, GraphNode, Point

logger = logging.getLogger(__name__)

GOLDEN_ANGLE = math.pi * (3 - math.sqrt(5))


def is_finite_point(position: Sequence[float]) -> bool:
    """True if both coordinates are finite numbers."""
    return math.isfinite(position[0]) and math.isfinite(position[1])


class LayoutPhase(str, Enum):
    """Lifecycle of one simulation instance."""

    INITIALIZING = "initializing"
    RUNNING = "running"
    SETTLING = "settling"
    IDLE = "idle"


@dataclass
class _Simulation:
    """Index-based simulation state for one graph. Edges refer to node rows."""

    generation: int
    nodes: list[GraphNode]
    index: dict[str, int]

    pos: np.ndarray  # (N, 2)
    vel: np.ndarray  # (N, 2)
    radii: np.ndarray  # (N,)
    pinned: np.ndarray  # (N,) bool
    fixed: np.ndarray  # (N, 2) target positions of pinned rows

    src: np.ndarray  # (E,) int
    tgt: np.ndarray  # (E,) int
    link_strength: np.ndarray  # (E,)
    bias: np.ndarray  # (E,) share of the correction applied to the source

    alpha: float
    alpha_target: float = 0.0
    ticks: int = 0

    @property
    def size(self) -> int:
        return len(self.nodes)


class ForceLayoutEngine:
    """
    Iterative physical layout for a node/edge set.

    Owns every node's position and velocity except for pinned nodes,
    which follow the coordinates given to move_pinned().
    """

    def __init__(
        self,
        config: ForceConfig | None = None,
        center: tuple[float, float] = (400.0, 300.0),
        seed: int = 42,
    ) -> None:
        self.config = config or ForceConfig()
        self.center = Point(*center)
        self._rng = np.random.default_rng(seed)
        self._state: _Simulation | None = None
        self._generation = 0
        self._phase = LayoutPhase.IDLE

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def phase(self) -> LayoutPhase:
        return self._phase

    @property
    def generation(self) -> int:
        """Incremented whenever the simulation instance is replaced or torn down."""
        return self._generation

    @property
    def alpha(self) -> float:
        return self._state.alpha if self._state else 0.0

    @property
    def alpha_target(self) -> float:
        return self._state.alpha_target if self._state else 0.0

    @property
    def ticks(self) -> int:
        return self._state.ticks if self._state else 0

    @property
    def is_active(self) -> bool:
        """True while the layout still wants ticks."""
        return self._phase in (LayoutPhase.RUNNING, LayoutPhase.SETTLING)

    def load(
        self,
        nodes: Sequence[GraphNode],
        edges: Sequence[GraphEdge],
        previous: Mapping[str, Point] | None = None,
    ) -> int:
        """
        Tear down any current simulation and start a new one.

        Nodes whose id appears in previous (or that already carry a
        position) keep it; the rest are seeded on a spiral around the
        centre. All velocities start at zero.

        Returns:
            The new generation number
        """
        self._generation += 1
        self._phase = LayoutPhase.INITIALIZING
        previous = previous or {}

        node_list = list(nodes)
        n = len(node_list)
        index = {node.id: i for i, node in enumerate(node_list)}

        pos = np.zeros((n, 2), dtype=float)
        seeded = 0
        for i, node in enumerate(node_list):
            prior = previous.get(node.id) or node.position
            if prior is not None and is_finite_point(prior):
                pos[i] = prior
            else:
                pos[i] = self._seed_position(i)
                seeded += 1

        src, tgt, strength = [], [], []
        for edge in edges:
            s = index.get(edge.source_id)
            t = index.get(edge.target_id)
            if s is None or t is None:
                logger.debug(f"Layout ignoring edge with unknown endpoint: {edge.key}")
                continue
            src.append(s)
            tgt.append(t)
            strength.append(edge.strength * self.config.link_strength_scale)

        src_arr = np.asarray(src, dtype=int)
        tgt_arr = np.asarray(tgt, dtype=int)
        counts = np.bincount(np.concatenate([src_arr, tgt_arr]), minlength=n).astype(float)
        if len(src_arr):
            bias = counts[src_arr] / (counts[src_arr] + counts[tgt_arr])
        else:
            bias = np.zeros(0, dtype=float)

        self._state = _Simulation(
            generation=self._generation,
            nodes=node_list,
            index=index,
            pos=pos,
            vel=np.zeros((n, 2), dtype=float),
            radii=np.asarray([node.radius for node in node_list], dtype=float),
            pinned=np.zeros(n, dtype=bool),
            fixed=np.zeros((n, 2), dtype=float),
            src=src_arr,
            tgt=tgt_arr,
            link_strength=np.asarray(strength, dtype=float),
            bias=bias,
            alpha=self.config.alpha_start,
        )
        self._write_back(self._state)

        self._phase = LayoutPhase.RUNNING if n else LayoutPhase.IDLE
        logger.debug(
            f"Layout generation {self._generation}: {n} nodes "
            f"({seeded} seeded, {n - seeded} retained), {len(src_arr)} links"
        )
        return self._generation

    def stop(self) -> None:
        """Tear down the current simulation. Pending ticks become no-ops."""
        self._generation += 1
        self._state = None
        self._phase = LayoutPhase.IDLE

    def reheat(self, alpha_target: float | None = None) -> None:
        """Re-energise the simulation and resume ticking."""
        state = self._state
        if state is None or state.size == 0:
            return
        target = self.config.drag_alpha_target if alpha_target is None else alpha_target
        state.alpha_target = target
        state.alpha = max(state.alpha, target)
        self._phase = self._phase_for(state)

    def release(self) -> None:
        """Let alpha decay back toward zero so the layout can settle."""
        if self._state is not None:
            self._state.alpha_target = 0.0

    def restart(self, alpha: float = 1.0) -> None:
        """Raise alpha without changing its target, e.g. after the centre moved."""
        state = self._state
        if state is None or state.size == 0:
            return
        state.alpha = max(state.alpha, alpha)
        self._phase = self._phase_for(state)

    def _seed_position(self, i: int) -> np.ndarray:
        radius = self.config.initial_radius * math.sqrt(0.5 + i)
        angle = i * GOLDEN_ANGLE
        return np.array([
            self.center.x + radius * math.cos(angle),
            self.center.y + radius * math.sin(angle),
        ])

    # ------------------------------------------------------------------
    # Pinning (driven by the interaction controller)
    # ------------------------------------------------------------------

    def pin(self, node_id: str, position: Point | None = None) -> bool:
        """Pin a node at position (default: where it is now)."""
        state = self._state
        row = state.index.get(node_id) if state else None
        if row is None:
            return False
        if position is not None and not is_finite_point(position):
            logger.debug(f"Refusing to pin {node_id} at non-finite position {position}")
            return False
        target = np.asarray(position if position is not None else state.pos[row], dtype=float)
        state.pinned[row] = True
        state.fixed[row] = target
        state.pos[row] = target
        state.vel[row] = 0.0
        self._write_row(state, row)
        return True

    def move_pinned(self, node_id: str, position: Point) -> bool:
        """Place a pinned node exactly at position."""
        state = self._state
        row = state.index.get(node_id) if state else None
        if row is None or not state.pinned[row]:
            return False
        if not is_finite_point(position):
            logger.debug(f"Ignoring non-finite position {position} for {node_id}")
            return False
        state.fixed[row] = position
        state.pos[row] = position
        state.vel[row] = 0.0
        self._write_row(state, row)
        return True

    def unpin(self, node_id: str) -> bool:
        """Return a node to simulation control."""
        state = self._state
        row = state.index.get(node_id) if state else None
        if row is None or not state.pinned[row]:
            return False
        state.pinned[row] = False
        state.nodes[row].pinned = False
        return True

    def is_pinned(self, node_id: str) -> bool:
        state = self._state
        row = state.index.get(node_id) if state else None
        return bool(row is not None and state.pinned[row])

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def tick(self, dt: float = 1.0) -> bool:
        """
        Advance the simulation by one step.

        Args:
            dt: step length in frames (1.0 = one nominal tick)

        Returns:
            True if the simulation advanced, False if it is Idle
        """
        state = self._state
        if state is None or not self.is_active:
            return False

        cfg = self.config
        state.alpha += (state.alpha_target - state.alpha) * cfg.alpha_decay
        alpha = state.alpha

        self._separate_coincident(state)

        # Snapshot: every force below reads only these arrays
        pos = state.pos.copy()
        vel = state.vel.copy()

        dv = np.zeros_like(pos)
        dv += self._link_force(state, pos, vel, alpha)
        dv += self._charge_force(pos, alpha)
        dv += self._gravity_force(pos, alpha)
        dv += self._collision_force(state, pos, vel)

        new_vel = (vel + dv) * (1.0 - cfg.velocity_decay)
        new_pos = pos + new_vel * dt

        free = ~state.pinned
        if cfg.center_strength and free.any():
            shift = (np.asarray(self.center) - pos.mean(axis=0)) * cfg.center_strength
            new_pos[free] += shift

        new_pos[state.pinned] = state.fixed[state.pinned]
        new_vel[state.pinned] = 0.0

        self._recover_divergence(state, new_pos, new_vel)

        state.pos = new_pos
        state.vel = new_vel
        state.ticks += 1
        self._write_back(state)

        previous_phase = self._phase
        self._phase = self._phase_for(state)
        if self._phase is LayoutPhase.IDLE and previous_phase is not LayoutPhase.IDLE:
            logger.info(f"Layout settled after {state.ticks} ticks (alpha={alpha:.4f})")
        return True

    def run(self, max_ticks: int = 1000, dt: float = 1.0) -> int:
        """Tick until Idle or max_ticks. Returns the number of ticks run."""
        count = 0
        while count < max_ticks and self.tick(dt):
            count += 1
        return count

    def _phase_for(self, state: _Simulation) -> LayoutPhase:
        cfg = self.config
        if state.size == 0:
            return LayoutPhase.IDLE
        if state.alpha < cfg.alpha_min and state.alpha_target < cfg.alpha_min:
            return LayoutPhase.IDLE
        if state.alpha < cfg.settling_alpha and state.alpha_target < cfg.settling_alpha:
            return LayoutPhase.SETTLING
        return LayoutPhase.RUNNING

    def _link_force(
        self, state: _Simulation, pos: np.ndarray, vel: np.ndarray, alpha: float
    ) -> np.ndarray:
        dv = np.zeros_like(pos)
        if not len(state.src):
            return dv

        s, t = state.src, state.tgt
        delta = (pos[t] + vel[t]) - (pos[s] + vel[s])
        length = np.hypot(delta[:, 0], delta[:, 1])
        zero = length == 0
        if zero.any():
            delta[zero] = self._jiggle((int(zero.sum()), 2))
            length = np.hypot(delta[:, 0], delta[:, 1])

        k = (length - self.config.link_distance) / length * alpha * state.link_strength
        correction = delta * k[:, None]
        np.add.at(dv, t, -correction * state.bias[:, None])
        np.add.at(dv, s, correction * (1.0 - state.bias)[:, None])
        return dv

    def _charge_force(self, pos: np.ndarray, alpha: float) -> np.ndarray:
        cfg = self.config
        n = len(pos)
        if n < 2 or cfg.charge_strength == 0:
            return np.zeros_like(pos)

        diff = pos[None, :, :] - pos[:, None, :]  # diff[i, j] = pos[j] - pos[i]
        dist2 = np.einsum("ijk,ijk->ij", diff, diff)

        active = ~np.eye(n, dtype=bool)
        if math.isfinite(cfg.charge_distance_max):
            active &= dist2 < cfg.charge_distance_max ** 2

        min2 = cfg.charge_distance_min ** 2
        dist2 = np.where(dist2 < min2, np.sqrt(min2 * dist2), dist2)
        with np.errstate(divide="ignore", invalid="ignore"):
            weight = np.where(active & (dist2 > 0), cfg.charge_strength * alpha / dist2, 0.0)
        return np.einsum("ij,ijk->ik", weight, diff)

    def _gravity_force(self, pos: np.ndarray, alpha: float) -> np.ndarray:
        strength = self.config.gravity_strength
        if not strength:
            return np.zeros_like(pos)
        return (np.asarray(self.center) - pos) * strength * alpha

    def _collision_force(
        self, state: _Simulation, pos: np.ndarray, vel: np.ndarray
    ) -> np.ndarray:
        cfg = self.config
        n = len(pos)
        dv = np.zeros_like(pos)
        if n < 2 or cfg.collision_strength == 0:
            return dv

        r = state.radii + cfg.collision_padding
        r2 = r * r
        reach = r[:, None] + r[None, :]
        share = r2[None, :] / (r2[:, None] + r2[None, :])  # j's weight pushing i

        for _ in range(max(1, cfg.collision_iterations)):
            predicted = pos + vel + dv
            diff = predicted[:, None, :] - predicted[None, :, :]  # p[i] - p[j]
            dist2 = np.einsum("ijk,ijk->ij", diff, diff)
            overlap = (dist2 < reach * reach) & ~np.eye(n, dtype=bool)
            if not overlap.any():
                break

            dist = np.sqrt(dist2)
            with np.errstate(divide="ignore", invalid="ignore"):
                k = np.where(
                    overlap & (dist > 0),
                    (reach - dist) / dist * cfg.collision_strength,
                    0.0,
                )
            dv = dv + np.einsum("ij,ijk->ik", k * share, diff)
        return dv

    # ------------------------------------------------------------------
    # Numerical safety
    # ------------------------------------------------------------------

    def _jiggle(self, shape: tuple[int, ...]) -> np.ndarray:
        return (self._rng.random(shape) - 0.5) * self.config.jitter

    def _separate_coincident(self, state: _Simulation) -> None:
        """Nudge a free node of every pair that shares a position."""
        n = state.size
        if n < 2:
            return
        diff = state.pos[:, None, :] - state.pos[None, :, :]
        dist2 = np.einsum("ijk,ijk->ij", diff, diff)
        close = np.triu(dist2 <= self.config.coincidence_epsilon, k=1)
        if not close.any():
            return

        first, second = np.nonzero(close)
        # Move the later node of each pair unless it is pinned, then the earlier one
        rows = np.where(state.pinned[second], first, second)
        rows = np.unique(rows[~state.pinned[rows]])
        if len(rows):
            state.pos[rows] += self._jiggle((len(rows), 2))
            logger.debug(f"Jittered {len(rows)} coincident nodes")

    def _recover_divergence(
        self, state: _Simulation, pos: np.ndarray, vel: np.ndarray
    ) -> None:
        bad = ~(np.isfinite(pos).all(axis=1) & np.isfinite(vel).all(axis=1))
        if not bad.any():
            return
        rows = np.nonzero(bad)[0]
        logger.warning(
            f"Simulation diverged for {len(rows)} nodes; re-seeding near the centre"
        )
        spread = self.config.initial_radius
        pos[rows] = np.asarray(self.center) + (self._rng.random((len(rows), 2)) - 0.5) * spread
        vel[rows] = 0.0
        pinned_rows = rows[state.pinned[rows]]
        pos[pinned_rows] = state.fixed[pinned_rows]

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _write_row(self, state: _Simulation, row: int) -> None:
        node = state.nodes[row]
        node.position = Point(float(state.pos[row, 0]), float(state.pos[row, 1]))
        node.velocity = Point(float(state.vel[row, 0]), float(state.vel[row, 1]))
        node.pinned = bool(state.pinned[row])

    def _write_back(self, state: _Simulation) -> None:
        for row in range(state.size):
            self._write_row(state, row)

    def positions(self) -> dict[str, Point]:
        """Current position of every node, keyed by id."""
        state = self._state
        if state is None:
            return {}
        return {
            node.id: Point(float(state.pos[i, 0]), float(state.pos[i, 1]))
            for i, node in enumerate(state.nodes)
        }

    def bounds(self) -> tuple[float, float, float, float] | None:
        """Bounding box (min_x, min_y, max_x, max_y) of all node circles."""
        state = self._state
        if state is None or state.size == 0:
            return None
        lo = state.pos - state.radii[:, None]
        hi = state.pos + state.radii[:, None]
        return (
            float(lo[:, 0].min()),
            float(lo[:, 1].min()),
            float(hi[:, 0].max()),
            float(hi[:, 1].max()),
        )
