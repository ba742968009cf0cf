from __future__ import annotations

import asyncio
import json
import logging
import math
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, Dict, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..errors import ConfigurationError
from ..sim.core.config import AppConfig, SimulationConfig, apply_settings_update
from ..sim.core.world import World

logger = logging.getLogger(__name__)

_MAX_QUEUED_SNAPSHOTS = 256


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=_MAX_QUEUED_SNAPSHOTS)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def shutdown(self) -> None:
        self.running = False
        if self._broadcast_task is not None:
            self._broadcast_task.cancel()
            try:
                await self._broadcast_task
            except asyncio.CancelledError:
                pass
            self._broadcast_task = None

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        logger.info("Simulation reset with %d boids", len(self.world.agents))
        await self._broadcast_snapshot()

    async def update_settings(self, values: Dict[str, Any]) -> Dict[str, Any]:
        async with self._lock:
            apply_settings_update(self.world.settings, values)
            settings = asdict(self.world.settings)
        logger.info("Settings updated: %s", sorted(values))
        return settings

    async def toggle_pause(self) -> bool:
        async with self._lock:
            settings = self.world.settings
            settings.paused = not settings.paused
            paused = settings.paused
        logger.info("Simulation %s", "paused" if paused else "resumed")
        return paused

    async def resize(self, width: Any, height: Any) -> tuple[float, float]:
        async with self._lock:
            self.world.resize((width, height))
            return self.world.bounds

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.world.step()
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


def create_app(controller: SimulationController) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        await controller.start()
        try:
            yield
        finally:
            await controller.shutdown()

    app = FastAPI(title="Boids Simulation", lifespan=lifespan)

    @app.get("/api/status")
    async def status() -> JSONResponse:
        snapshot = controller.world.snapshot(controller.tick)
        width, height = controller.world.bounds
        return JSONResponse(
            {
                "running": controller.running,
                "paused": controller.world.settings.paused,
                "tick": controller.tick,
                "population": len(controller.world.agents),
                "bounds": {"width": width, "height": height},
                "metrics": asdict(snapshot.metrics),
            }
        )

    @app.get("/api/settings")
    async def get_settings() -> JSONResponse:
        return JSONResponse(asdict(controller.world.settings))

    @app.patch("/api/settings")
    async def patch_settings(payload: dict) -> JSONResponse:
        try:
            settings = await controller.update_settings(payload)
        except ConfigurationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return JSONResponse(settings)

    @app.post("/api/control/start")
    async def start_simulation() -> JSONResponse:
        controller.running = True
        return JSONResponse({"running": True})

    @app.post("/api/control/stop")
    async def stop_simulation() -> JSONResponse:
        controller.running = False
        return JSONResponse({"running": False})

    @app.post("/api/control/pause")
    async def pause_simulation() -> JSONResponse:
        paused = await controller.toggle_pause()
        return JSONResponse({"paused": paused})

    @app.post("/api/control/reset")
    async def reset_simulation() -> JSONResponse:
        await controller.reset()
        return JSONResponse({"running": controller.running, "tick": controller.tick})

    @app.post("/api/control/speed")
    async def set_speed(payload: dict) -> JSONResponse:
        try:
            speed = float(payload.get("multiplier", 1.0))
        except (TypeError, ValueError) as exc:
            raise HTTPException(status_code=422, detail="multiplier must be a number") from exc
        if not math.isfinite(speed):
            raise HTTPException(status_code=422, detail="multiplier must be finite")
        controller.speed_multiplier = max(0.1, min(5.0, speed))
        return JSONResponse({"multiplier": controller.speed_multiplier})

    @app.post("/api/bounds")
    async def set_bounds(payload: dict) -> JSONResponse:
        try:
            width, height = await controller.resize(payload.get("width"), payload.get("height"))
        except ConfigurationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return JSONResponse({"width": width, "height": height})

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        controller.clients.add(websocket)
        controller._client_last_sent[websocket] = -1
        await controller._send_pending_snapshots(websocket)
        try:
            while True:
                message = await websocket.receive_text()
                try:
                    payload = json.loads(message)
                except json.JSONDecodeError:
                    continue
                if isinstance(payload, dict) and payload.get("type") == "ack":
                    tick = payload.get("tick")
                    if isinstance(tick, int):
                        await controller.acknowledge(tick)
        except WebSocketDisconnect:
            controller.clients.discard(websocket)
            controller._client_last_sent.pop(websocket, None)

    return app


app_config = AppConfig()
controller = SimulationController(app_config.simulation, app_config.broadcast_interval)
app = create_app(controller)


__all__ = ["app", "controller", "create_app", "SimulationController"]
