from __future__ import annotations

from typing import List

from ..core.agent import Boid


def scan_neighbors(agents: List[Boid], vision_distance: float) -> tuple[int, int]:
    """Accumulate cohesion, alignment and separation terms for every visible pair.

    Each unordered pair is evaluated once and, when the two boids are strictly
    closer than ``vision_distance``, both of them receive the other's
    contribution. Returns ``(pair_checks, neighbor_pairs)``.
    """
    count = len(agents)
    pair_checks = count * (count - 1) // 2
    if not vision_distance > 0.0:
        return pair_checks, 0
    vision_sq = vision_distance * vision_distance
    neighbor_pairs = 0
    for i in range(count):
        first = agents[i]
        first_x = first.position.x
        first_y = first.position.y
        for j in range(i + 1, count):
            second = agents[j]
            away_x = first_x - second.position.x
            away_y = first_y - second.position.y
            dist_sq = away_x * away_x + away_y * away_y
            if not dist_sq < vision_sq:
                continue
            neighbor_pairs += 1
            _accumulate(first, second, away_x, away_y, dist_sq)
            _accumulate(second, first, -away_x, -away_y, dist_sq)
    return pair_checks, neighbor_pairs


def _accumulate(agent: Boid, other: Boid, away_x: float, away_y: float, dist_sq: float) -> None:
    agent.neighbor_count += 1
    agent.cohesion += other.position
    agent.alignment += other.velocity
    if dist_sq > 0.0:
        # unit vector away from ``other`` scaled by 1 / distance
        agent.separation.x += away_x / dist_sq
        agent.separation.y += away_y / dist_sq
