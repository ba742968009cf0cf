from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from boidsim.app.server import SimulationController, create_app
from boidsim.sim.core.config import SimulationConfig, SimulationSettings


@pytest.fixture
def controller() -> SimulationController:
    return SimulationController(SimulationConfig(settings=SimulationSettings(target_boid_count=6)))


@pytest.fixture
def client(controller: SimulationController) -> TestClient:
    # no context manager: the background tick loop stays off
    return TestClient(create_app(controller))


def test_get_settings_lists_every_field(client: TestClient):
    response = client.get("/api/settings")

    assert response.status_code == 200
    assert set(response.json()) == {
        "move_speed",
        "vision_distance",
        "visual_scale",
        "separation_gain",
        "cohesion_gain",
        "alignment_gain",
        "target_boid_count",
        "paused",
    }


def test_patch_settings_updates_shared_record(client: TestClient, controller: SimulationController):
    response = client.patch("/api/settings", json={"cohesion_gain": 4, "vision_distance": 25.5})

    assert response.status_code == 200
    assert response.json()["cohesion_gain"] == 4.0
    assert controller.world.settings.cohesion_gain == 4.0
    assert controller.world.settings.vision_distance == 25.5


def test_patch_settings_rejects_bad_values(client: TestClient, controller: SimulationController):
    response = client.patch("/api/settings", json={"move_speed": "warp"})

    assert response.status_code == 422
    assert controller.world.settings.move_speed == 100.0


def test_pause_toggles(client: TestClient, controller: SimulationController):
    assert client.post("/api/control/pause").json() == {"paused": True}
    assert controller.world.settings.paused
    assert client.post("/api/control/pause").json() == {"paused": False}


def test_bounds_update_and_validation(client: TestClient, controller: SimulationController):
    response = client.post("/api/bounds", json={"width": 640, "height": 480})
    assert response.status_code == 200
    assert controller.world.bounds == (640.0, 480.0)

    response = client.post("/api/bounds", json={"width": -5, "height": 480})
    assert response.status_code == 422
    assert controller.world.bounds == (640.0, 480.0)


def test_status_reports_population(client: TestClient):
    payload = client.get("/api/status").json()

    assert payload["population"] == 6
    assert payload["running"] is False
    assert payload["paused"] is False
    assert payload["bounds"] == {"width": 1600.0, "height": 900.0}
    assert payload["metrics"]["population"] == 6


def test_speed_multiplier_is_clamped(client: TestClient):
    assert client.post("/api/control/speed", json={"multiplier": 50}).json() == {"multiplier": 5.0}
    assert client.post("/api/control/speed", json={"multiplier": 0}).json() == {"multiplier": 0.1}


@pytest.mark.parametrize("multiplier", ["fast", None, [2], "nan"])
def test_speed_multiplier_rejects_non_numbers(client: TestClient, controller: SimulationController, multiplier):
    response = client.post("/api/control/speed", json={"multiplier": multiplier})

    assert response.status_code == 422
    assert controller.speed_multiplier == 1.0


def test_reset_respawns_with_new_target_count(client: TestClient, controller: SimulationController):
    client.patch("/api/settings", json={"target_boid_count": 3})

    response = client.post("/api/control/reset")

    assert response.status_code == 200
    assert len(controller.world.agents) == 3
