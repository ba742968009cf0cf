from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2


@dataclass(slots=True)
class Boid:
    id: int
    position: Vector2
    velocity: Vector2
    cohesion: Vector2 = field(default_factory=Vector2)
    alignment: Vector2 = field(default_factory=Vector2)
    separation: Vector2 = field(default_factory=Vector2)
    neighbor_count: int = 0

    def reset_accumulators(self) -> None:
        self.cohesion.update(0.0, 0.0)
        self.alignment.update(0.0, 0.0)
        self.separation.update(0.0, 0.0)
        self.neighbor_count = 0
