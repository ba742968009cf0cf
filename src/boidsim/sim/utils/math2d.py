from __future__ import annotations

import math

from pygame.math import Vector2


def _safe_normalize(vector: Vector2) -> Vector2:
    return _safe_normalize_xy(vector.x, vector.y)


def _safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-10:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def _lerp(a: Vector2, b: Vector2, t: float) -> Vector2:
    # Vector2.lerp rejects t outside [0, 1]; gains may push past either end.
    return Vector2(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)


def _heading_from_velocity(vector: Vector2) -> float:
    if vector.length_squared() < 1e-12:
        return 0.0
    return math.atan2(vector.y, vector.x)
