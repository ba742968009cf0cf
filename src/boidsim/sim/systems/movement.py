from __future__ import annotations

from pygame.math import Vector2

from ..core.agent import Boid
from ..utils.math2d import _safe_normalize

WRAP_INSET = 1.0


def integrate(agent: Boid, move_speed: float, dt: float) -> None:
    direction = _safe_normalize(agent.velocity)
    step = move_speed * dt
    agent.position.update(
        agent.position.x + direction.x * step,
        agent.position.y + direction.y * step,
    )


def wrap_borders(position: Vector2, width: float, height: float) -> bool:
    """Re-enter a boid that left the viewport through the opposite edge.

    The viewport is centred on the origin. A wrapped coordinate lands
    ``WRAP_INSET`` inside the far edge so it cannot trip the opposite check.
    Returns whether either axis wrapped.
    """
    half_w = width / 2.0
    half_h = height / 2.0
    wrapped = False
    if position.x >= half_w:
        position.x = -half_w + WRAP_INSET
        wrapped = True
    elif position.x <= -half_w:
        position.x = half_w - WRAP_INSET
        wrapped = True
    if position.y >= half_h:
        position.y = -half_h + WRAP_INSET
        wrapped = True
    elif position.y <= -half_h:
        position.y = half_h - WRAP_INSET
        wrapped = True
    return wrapped
