"""
Live frame driver for the flock.

Every published frame carries one render row per boid: the three triangle
corners followed by the velocity tint, so a canvas client can draw the flock
without redoing any geometry. A viewer that falls behind only ever receives
the newest frame.

Needs the ``server`` extra; launch with
``FLOCKING_CONFIG=configs/default.yaml uvicorn flocking.app.server:app``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Sequence, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response

from ..sim.core.agent import Boid
from ..sim.core.config import AppConfig, AppearanceConfig, SimulationConfig
from ..sim.core.simulator import FlockSimulator
from ..sim.systems.appearance import glyph_vertices, velocity_color

logger = logging.getLogger(__name__)

# tip, left, right corners (x, y each) then r, g, b
ROW_FIELDS = ("tip_x", "tip_y", "left_x", "left_y", "right_x", "right_y", "red", "green", "blue")


def render_rows(agents: Sequence[Boid], appearance: AppearanceConfig) -> List[List[float]]:
    rows: List[List[float]] = []
    for agent in agents:
        tip, left, right = glyph_vertices(agent.position, agent.heading, appearance.boid_base, appearance.boid_height)
        red, green, blue = velocity_color(agent.velocity)
        rows.append(
            [
                round(tip.x, 2),
                round(tip.y, 2),
                round(left.x, 2),
                round(left.y, 2),
                round(right.x, 2),
                round(right.y, 2),
                round(red, 3),
                round(green, 3),
                round(blue, 3),
            ]
        )
    return rows


def encode_frame(simulator: FlockSimulator, tick: int) -> str:
    config = simulator.config
    metrics = simulator.metrics
    frame: Dict[str, Any] = {
        "type": "frame",
        "tick": tick,
        "surface": [config.width, config.height],
        "fields": list(ROW_FIELDS),
        "boids": render_rows(simulator.agents, config.appearance),
    }
    if metrics is not None:
        frame["average_speed"] = round(metrics.average_speed, 4)
        frame["average_neighbors"] = round(metrics.average_neighbors, 3)
    return json.dumps(frame, separators=(",", ":"))


class FrameMailbox:
    """Holds the newest unread frame for one viewer; older unread frames are dropped."""

    def __init__(self) -> None:
        self._frame: str | None = None
        self._ready = asyncio.Event()
        self.dropped = 0

    def put(self, frame: str) -> None:
        if self._frame is not None:
            self.dropped += 1
        self._frame = frame
        self._ready.set()

    def pending(self) -> bool:
        return self._frame is not None

    async def get(self) -> str:
        await self._ready.wait()
        frame = self._frame
        self._frame = None
        self._ready.clear()
        return frame


class FlockDriver:
    def __init__(self, config: SimulationConfig, frame_every: int = 1):
        self.simulator = FlockSimulator(config)
        self.frame_every = max(1, frame_every)
        self.tick = 0
        self.paused = False
        self.viewers: Set[FrameMailbox] = set()
        self._latest_frame = encode_frame(self.simulator, self.tick)
        self._task: asyncio.Task | None = None

    @property
    def latest_frame(self) -> str:
        return self._latest_frame

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def shutdown(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        period = self.simulator.config.time_step
        while True:
            await asyncio.sleep(period)
            if not self.paused:
                self.advance()

    def advance(self) -> None:
        self.simulator.step(self.tick)
        self.tick += 1
        if self.tick % self.frame_every == 0:
            self.publish()

    def publish(self) -> None:
        self._latest_frame = encode_frame(self.simulator, self.tick)
        for mailbox in self.viewers:
            mailbox.put(self._latest_frame)

    def restart(self) -> None:
        self.simulator.reset()
        self.tick = 0
        logger.info("flock restarted with %d boids", len(self.simulator.agents))
        self.publish()

    def subscribe(self) -> FrameMailbox:
        mailbox = FrameMailbox()
        mailbox.put(self._latest_frame)
        self.viewers.add(mailbox)
        logger.debug("viewer joined, %d watching", len(self.viewers))
        return mailbox

    def unsubscribe(self, mailbox: FrameMailbox) -> None:
        self.viewers.discard(mailbox)
        if mailbox.dropped:
            logger.debug("viewer left after skipping %d frames", mailbox.dropped)

    def status(self) -> Dict[str, Any]:
        snapshot = self.simulator.snapshot(self.tick)
        grid = self.simulator.grid
        return {
            "tick": self.tick,
            "paused": self.paused,
            "viewers": len(self.viewers),
            "interaction_radius": self.simulator.max_interaction_radius,
            "grid": {"cols": grid.cols, "rows": grid.rows, "cell_size": grid.cell_size},
            "metrics": asdict(snapshot.metrics),
            "metadata": asdict(snapshot.metadata),
        }


def _load_app_config() -> AppConfig:
    config_path = os.environ.get("FLOCKING_CONFIG")
    simulation = SimulationConfig.from_yaml(Path(config_path)) if config_path else SimulationConfig()
    return AppConfig(simulation=simulation)


app_config = _load_app_config()
driver = FlockDriver(app_config.simulation, frame_every=app_config.broadcast_interval)


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    await driver.start()
    yield
    await driver.shutdown()


app = FastAPI(title="Flocking", lifespan=_lifespan)


@app.get("/api/flock")
async def flock_status() -> JSONResponse:
    return JSONResponse(driver.status())


@app.get("/api/flock/state")
async def flock_state() -> JSONResponse:
    """Raw per-boid state; heavier than a frame, meant for debugging."""
    snapshot = driver.simulator.snapshot(driver.tick)
    return JSONResponse({"tick": snapshot.tick, "world": asdict(snapshot.world), "boids": snapshot.agents})


@app.get("/api/frame")
async def current_frame() -> Response:
    return Response(content=driver.latest_frame, media_type="application/json")


@app.post("/api/flock/{action}")
async def control_flock(action: str) -> JSONResponse:
    if action == "pause":
        driver.paused = True
    elif action == "resume":
        driver.paused = False
    elif action == "restart":
        driver.restart()
    else:
        raise HTTPException(status_code=404, detail=f"unknown action {action!r}")
    return JSONResponse({"tick": driver.tick, "paused": driver.paused})


@app.websocket("/ws")
async def stream_frames(websocket: WebSocket) -> None:
    await websocket.accept()
    mailbox = driver.subscribe()
    try:
        while True:
            await websocket.send_text(await mailbox.get())
    except WebSocketDisconnect:
        pass
    finally:
        driver.unsubscribe(mailbox)


__all__ = ["app", "driver", "encode_frame", "render_rows", "FlockDriver", "FrameMailbox"]
