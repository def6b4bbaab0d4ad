from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from time import perf_counter
from typing import Any, Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger(__name__)


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
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None
        self._frames = 0

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
            logger.info("Simulation loop started with %d fish", len(self.world.agents))
        self.running = True

    async def connect(self, client: WebSocket) -> None:
        self.clients.add(client)
        self._client_last_sent[client] = -1
        await self._send_pending_snapshots(client)
        logger.info("Client connected (%d open)", len(self.clients))

    def disconnect(self, client: WebSocket) -> None:
        self.clients.discard(client)
        self._client_last_sent.pop(client, None)
        logger.info("Client disconnected (%d open)", len(self.clients))

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def configure(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        speed = payload.get("speed")
        count = payload.get("target_fish_count")
        gain = payload.get("gain")
        async with self._lock:
            self.world.configure(
                speed=None if speed is None else float(speed),
                target_fish_count=None if count is None else int(count),
                gain=None if gain is None else float(gain),
            )
        return {
            "speed": self.config.speed,
            "target_fish_count": self.config.target_fish_count,
            "gain": self.config.gain,
        }

    async def _loop(self) -> None:
        last = perf_counter()
        while True:
            await asyncio.sleep(self.config.time_step)
            now = perf_counter()
            elapsed = now - last
            last = now
            if not self.running:
                continue
            async with self._lock:
                steps = self.world.advance(elapsed)
            if steps == 0:
                continue
            self._frames += 1
            if self._frames % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def handle_message(self, payload: Dict[str, Any]) -> None:
        kind = payload.get("type")
        if kind == "ack":
            tick = payload.get("tick")
            if isinstance(tick, int):
                await self.acknowledge(tick)
        elif kind == "pointer":
            x = payload.get("x")
            y = payload.get("y")
            if isinstance(x, (int, float)) and isinstance(y, (int, float)):
                async with self._lock:
                    self.world.move_pointer(float(x), float(y))
        elif kind == "click":
            x = payload.get("x")
            y = payload.get("y")
            if isinstance(x, (int, float)) and isinstance(y, (int, float)):
                async with self._lock:
                    self.world.click(float(x), float(y))
        elif kind == "resize":
            width = payload.get("width")
            height = payload.get("height")
            if isinstance(width, (int, float)) and isinstance(height, (int, float)):
                async with self._lock:
                    self.world.resize(float(width), float(height))

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot()
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "agents": snapshot.agents,
                "pointer": snapshot.pointer,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
                "migration": snapshot.migration,
                "predator": snapshot.predator,
                "events": snapshot.events,
                "cues": snapshot.cues,
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
            self.disconnect(client)


app = FastAPI(title="Shoal Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    metrics = controller.world.metrics
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.world.tick,
            "population": len(controller.world.agents),
            "metrics": None if metrics is None else asdict(metrics),
        }
    )


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.world.tick})


@app.post("/api/control/config")
async def configure_simulation(payload: dict) -> JSONResponse:
    return JSONResponse(await controller.configure(payload))


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    await controller.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if isinstance(payload, dict):
                await controller.handle_message(payload)
    except WebSocketDisconnect:
        controller.disconnect(websocket)


__all__ = ["app", "controller"]
