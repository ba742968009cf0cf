from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    pair_checks: int
    neighbor_pairs: int
    average_neighbors: float
    alignment: float
    average_speed: float
    paused: bool
    tick_duration_ms: float = 0.0
