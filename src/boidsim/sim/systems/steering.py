from __future__ import annotations

from pygame.math import Vector2

from ..core.agent import Boid
from ..core.config import SimulationSettings
from ..utils.math2d import _lerp, _safe_normalize

GAIN_DIVISOR = 10.0


def blend_steering(agent: Boid, settings: SimulationSettings, dt: float) -> bool:
    """Fold the accumulated influences into ``agent.velocity`` and clear them.

    Cohesion, alignment and separation are applied in that order. Each one
    lerps the velocity toward its target by ``dt * gain / GAIN_DIVISOR``. The
    result is renormalized only when some influence applied; returns whether
    one did.
    """
    velocity = agent.velocity
    steered = False

    if agent.neighbor_count > 0 and settings.cohesion_gain != 0.0:
        target = agent.cohesion / agent.neighbor_count - agent.position
        if target.length_squared() > 0.0:
            velocity = _lerp(velocity, target, dt * settings.cohesion_gain / GAIN_DIVISOR)
            steered = True

    if settings.alignment_gain != 0.0 and agent.alignment.length_squared() > 0.0:
        heading = _safe_normalize(agent.alignment)
        velocity = _lerp(velocity, heading, dt * settings.alignment_gain / GAIN_DIVISOR)
        steered = True

    if settings.separation_gain != 0.0 and agent.separation.length_squared() > 0.0:
        away = _safe_normalize(agent.separation)
        velocity = _lerp(velocity, away, dt * settings.separation_gain / GAIN_DIVISOR)
        steered = True

    if steered:
        direction = _safe_normalize(velocity)
        if direction != Vector2():
            agent.velocity = direction
    agent.reset_accumulators()
    return steered
