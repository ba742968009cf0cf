from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Any, Dict, List

from pygame.math import Vector2

from ...errors import WorldBoundsError
from .agent import Boid
from .config import SimulationConfig, SimulationSettings
from .rng import DeterministicRng
from ..systems import metrics as metrics_system, movement, neighbors, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import _heading_from_velocity

logger = logging.getLogger(__name__)


def _validate_bounds(bounds: Any) -> tuple[float, float]:
    if bounds is None:
        raise WorldBoundsError(bounds, "no viewport size available")
    try:
        width, height = bounds
        width = float(width)
        height = float(height)
    except (TypeError, ValueError) as exc:
        raise WorldBoundsError(bounds, "expected a (width, height) pair of numbers") from exc
    if not (math.isfinite(width) and math.isfinite(height)):
        raise WorldBoundsError(bounds, "width and height must be finite")
    if width <= 0.0 or height <= 0.0:
        raise WorldBoundsError(bounds, "width and height must be positive")
    return width, height


class World:
    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._bounds = _validate_bounds((config.world_width, config.world_height))
        self._agents: List[Boid] = []
        self._metrics: TickMetrics | None = None
        self._tick_count = 0
        self._bootstrap_population()

    @property
    def agents(self) -> List[Boid]:
        return self._agents

    @property
    def settings(self) -> SimulationSettings:
        return self._config.settings

    @property
    def bounds(self) -> tuple[float, float]:
        return self._bounds

    @property
    def visual_scale(self) -> float:
        return self._config.settings.visual_scale

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def tick_count(self) -> int:
        return self._tick_count

    def reset(self) -> None:
        self._agents.clear()
        self._rng.reset()
        self._metrics = None
        self._tick_count = 0
        self._bootstrap_population()

    def resize(self, bounds: Any) -> None:
        validated = _validate_bounds(bounds)
        if validated != self._bounds:
            logger.debug("World bounds changed from %s to %s", self._bounds, validated)
            self._bounds = validated

    def tick(self, elapsed: float, bounds: Any = None) -> None:
        start = perf_counter()
        if bounds is not None:
            self.resize(bounds)
        settings = self._config.settings
        pair_checks = 0
        neighbor_pairs = 0
        paused = settings.paused
        if not paused:
            width, height = self._bounds
            pair_checks, neighbor_pairs = neighbors.scan_neighbors(self._agents, settings.vision_distance)
            for agent in self._agents:
                steering.blend_steering(agent, settings, elapsed)
                movement.integrate(agent, settings.move_speed, elapsed)
                movement.wrap_borders(agent.position, width, height)

        elapsed_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            self._tick_count, self._agents, pair_checks, neighbor_pairs, paused, elapsed_ms
        )
        self._tick_count += 1

    def step(self) -> TickMetrics:
        """Advance one fixed ``time_step`` using the current bounds."""
        self.tick(self._config.time_step)
        return self._metrics

    def snapshot(self, tick: int | None = None) -> Snapshot:
        tick = self._tick_count if tick is None else tick
        metrics = self._metrics if self._metrics is not None else self._snapshot_metrics_from_state(tick)
        appearance = self._config.appearance
        metadata = SnapshotMetadata(
            sim_dt=self._config.time_step,
            tick_rate=0.0 if self._config.time_step <= 0 else 1.0 / self._config.time_step,
            seed=self._config.seed,
            config_version=self._config.config_version,
            color=appearance.color,
            sprite_size=appearance.sprite_size,
        )
        width, height = self._bounds
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            world=SnapshotWorld(width=width, height=height),
            metadata=metadata,
        )

    def _bootstrap_population(self) -> None:
        width, height = self._bounds
        half_w = width / 2.0
        half_h = height / 2.0
        for index in range(self._config.settings.target_boid_count):
            position = Vector2(
                self._rng.next_range(-half_w, half_w),
                self._rng.next_range(-half_h, half_h),
            )
            self._agents.append(Boid(id=index, position=position, velocity=self._rng.next_unit_circle()))
        logger.info("Spawned %d boids in a %.0fx%.0f world", len(self._agents), width, height)

    def _snapshot_metrics_from_state(self, tick: int) -> TickMetrics:
        return metrics_system.create_metrics(tick, self._agents, 0, 0, self._config.settings.paused, 0.0)

    def _agent_snapshot(self, agent: Boid) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "heading": _heading_from_velocity(agent.velocity),
            "scale": self._config.settings.visual_scale,
        }
