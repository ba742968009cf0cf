from __future__ import annotations

import math

import pytest
from pygame.math import Vector2
from pytest import approx

from boidsim.errors import ConfigurationError, WorldBoundsError
from boidsim.sim.core.config import SimulationConfig, SimulationSettings
from boidsim.sim.core.world import World


def _config(count: int = 3, **settings) -> SimulationConfig:
    return SimulationConfig(
        seed=11,
        world_width=1000.0,
        world_height=600.0,
        settings=SimulationSettings(target_boid_count=count, **settings),
    )


def _state(world: World) -> list[tuple[float, float, float, float]]:
    return [(a.position.x, a.position.y, a.velocity.x, a.velocity.y) for a in world.agents]


def run_ticks(config: SimulationConfig, elapsed: list[float]):
    world = World(config)
    for dt in elapsed:
        world.tick(dt)
    return _state(world)


def test_bootstrap_spawns_target_count_inside_bounds():
    world = World(_config(count=50))

    assert len(world.agents) == 50
    assert [a.id for a in world.agents] == list(range(50))
    for agent in world.agents:
        assert -500.0 <= agent.position.x <= 500.0
        assert -300.0 <= agent.position.y <= 300.0
        assert agent.velocity.length() == approx(1.0)


def test_deterministic_replay():
    elapsed = [0.016, 0.02, 0.01, 0.033] * 10
    settings = {"cohesion_gain": 2.0, "alignment_gain": 1.0, "separation_gain": 1.5}
    result_a = run_ticks(_config(count=40, **settings), elapsed)
    # recreate config to ensure RNG resets
    result_b = run_ticks(_config(count=40, **settings), elapsed)
    assert result_a == result_b


def test_reset_respawns_identical_population():
    world = World(_config(count=20))
    initial = _state(world)
    for _ in range(5):
        world.tick(0.05)

    world.reset()

    assert _state(world) == initial
    assert world.tick_count == 0
    assert world.metrics is None


def test_reset_uses_current_target_count():
    world = World(_config(count=5))
    world.settings.target_boid_count = 8

    world.reset()

    assert len(world.agents) == 8


def test_pause_freezes_every_boid():
    world = World(_config(count=25, cohesion_gain=1.0, separation_gain=1.0))
    world.settings.paused = True
    before = _state(world)

    for _ in range(10):
        world.tick(0.1)

    assert _state(world) == before
    assert world.metrics.paused
    assert world.metrics.pair_checks == 0
    assert world.tick_count == 10


def test_population_never_changes():
    world = World(_config(count=30, cohesion_gain=3.0, separation_gain=2.0))
    ids = [a.id for a in world.agents]

    for tick in range(20):
        world.tick(0.05)
        assert world.metrics.tick == tick
        assert world.metrics.population == 30

    assert [a.id for a in world.agents] == ids


def test_isolated_boid_keeps_direction():
    world = World(_config(count=2, vision_distance=10.0, cohesion_gain=5.0, alignment_gain=5.0, separation_gain=5.0))
    world.agents[0].position = Vector2(-200.0, 0.0)
    world.agents[0].velocity = Vector2(0.6, 0.8)
    world.agents[1].position = Vector2(200.0, 0.0)

    world.tick(0.1)

    assert world.agents[0].velocity == Vector2(0.6, 0.8)
    assert world.metrics.neighbor_pairs == 0


def test_speed_invariance_without_gains():
    world = World(_config(count=4, move_speed=80.0, cohesion_gain=0.0, alignment_gain=0.0, separation_gain=0.0))
    headings = [Vector2(1.0, 0.0), Vector2(0.0, -1.0), Vector2(0.6, 0.8), Vector2(-0.8, 0.6)]
    for index, (agent, heading) in enumerate(zip(world.agents, headings)):
        agent.position = Vector2(index * 5.0, 0.0)
        agent.velocity = heading

    for _ in range(3):
        starts = [Vector2(agent.position) for agent in world.agents]
        world.tick(0.25)
        for agent, start, heading in zip(world.agents, starts, headings):
            assert agent.velocity == heading
            assert (agent.position - start).length() == approx(80.0 * 0.25)


def test_neighbor_accumulation_is_symmetric_in_a_tick():
    world = World(_config(count=2, vision_distance=60.0, alignment_gain=0.0))
    world.agents[0].position = Vector2(0.0, 0.0)
    world.agents[1].position = Vector2(30.0, 40.0)

    world.tick(0.0)

    assert world.metrics.neighbor_pairs == 1
    assert world.metrics.average_neighbors == approx(1.0)
    # accumulators never outlive the tick
    assert all(a.neighbor_count == 0 for a in world.agents)
    assert all(a.cohesion == Vector2() for a in world.agents)


def test_tick_wraps_boid_leaving_the_viewport():
    world = World(_config(count=1, move_speed=60.0))
    agent = world.agents[0]
    agent.position = Vector2(499.5, 10.0)
    agent.velocity = Vector2(1.0, 0.0)

    world.tick(1.0 / 60.0)

    assert agent.position.x == -499.0
    assert agent.position.y == approx(10.0)


def test_tick_applies_new_bounds():
    world = World(_config(count=1, move_speed=0.0))
    agent = world.agents[0]
    agent.position = Vector2(120.0, 0.0)

    world.tick(0.1, (200.0, 200.0))

    assert world.bounds == (200.0, 200.0)
    assert agent.position.x == -99.0


@pytest.mark.parametrize(
    "bounds",
    [(0.0, 100.0), (100.0, -1.0), (math.inf, 10.0), (math.nan, 10.0), (100.0,), "wide", (None, 5.0)],
)
def test_invalid_bounds_rejected(bounds):
    world = World(_config(count=1))

    with pytest.raises(WorldBoundsError):
        world.tick(0.1, bounds)


def test_invalid_startup_bounds_fail_construction():
    with pytest.raises(ConfigurationError):
        World(SimulationConfig(world_width=0.0))


def test_visual_scale_reaches_snapshot():
    world = World(_config(count=3))
    world.settings.visual_scale = 2.5

    snapshot = world.snapshot()

    assert world.visual_scale == 2.5
    assert all(payload["scale"] == 2.5 for payload in snapshot.agents)


def test_snapshot_contains_metadata_and_agent_signals():
    config = _config(count=2)
    config.time_step = 0.5
    world = World(config)
    world.agents[0].velocity = Vector2(0.0, 1.0)

    world.step()
    snapshot = world.snapshot()

    assert snapshot.tick == 1
    assert snapshot.world.width == approx(1000.0)
    assert snapshot.world.height == approx(600.0)
    assert snapshot.metadata.sim_dt == approx(0.5)
    assert snapshot.metadata.tick_rate == approx(2.0)
    assert snapshot.metadata.seed == 11
    assert snapshot.metadata.color == (0.25, 0.25, 0.75)
    assert snapshot.metrics.population == 2

    payload = snapshot.agents[0]
    for key in ["id", "x", "y", "vx", "vy", "heading", "scale"]:
        assert key in payload
    assert payload["heading"] == approx(math.atan2(payload["vy"], payload["vx"]))


def test_alignment_metric_for_parallel_flock():
    world = World(_config(count=4, vision_distance=0.0))
    for agent in world.agents:
        agent.velocity = Vector2(0.0, 1.0)

    world.tick(0.01)

    assert world.metrics.alignment == approx(1.0)


def test_average_speed_metric_is_mean_velocity_length():
    world = World(_config(count=2, paused=True))
    world.agents[0].velocity = Vector2(3.0, 4.0)
    world.agents[1].velocity = Vector2(0.0, 2.0)

    world.tick(0.01)

    assert world.metrics.average_speed == approx(3.5)


def test_average_speed_of_unit_headings():
    world = World(_config(count=5))

    world.tick(0.01)

    assert world.metrics.average_speed == approx(1.0)
