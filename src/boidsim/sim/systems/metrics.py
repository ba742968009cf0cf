from __future__ import annotations

import math
from typing import List

from ..core.agent import Boid
from ..types.metrics import TickMetrics


def polarization(agents: List[Boid]) -> float:
    """Length of the mean unit heading: 1.0 for a fully aligned flock, ~0 for disorder."""
    if not agents:
        return 0.0
    sum_x = 0.0
    sum_y = 0.0
    for agent in agents:
        vx = agent.velocity.x
        vy = agent.velocity.y
        length = math.hypot(vx, vy)
        if length < 1e-12:
            continue
        sum_x += vx / length
        sum_y += vy / length
    return math.hypot(sum_x, sum_y) / len(agents)


def average_speed(agents: List[Boid]) -> float:
    if not agents:
        return 0.0
    return sum(math.hypot(agent.velocity.x, agent.velocity.y) for agent in agents) / len(agents)


def create_metrics(
    tick: int,
    agents: List[Boid],
    pair_checks: int,
    neighbor_pairs: int,
    paused: bool,
    duration_ms: float,
) -> TickMetrics:
    population = len(agents)
    average_neighbors = 0.0 if population == 0 else 2.0 * neighbor_pairs / population
    return TickMetrics(
        tick=tick,
        population=population,
        pair_checks=pair_checks,
        neighbor_pairs=neighbor_pairs,
        average_neighbors=average_neighbors,
        alignment=polarization(agents),
        average_speed=average_speed(agents),
        paused=paused,
        tick_duration_ms=duration_ms,
    )
