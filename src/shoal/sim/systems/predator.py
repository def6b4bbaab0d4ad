from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.agent import Agent
from ..core.config import PredatorConfig
from ..core.pointer import PointerState
from ..core.rng import SimRng
from ..types.audio import AudioCue
from ..utils.math2d import _lerp, ease_out, hash2

logger = logging.getLogger(__name__)


class PredatorPhase(str, Enum):
    IDLE = "idle"
    APPROACHING = "approaching"
    FLEEING = "fleeing"


@dataclass(slots=True)
class LightWave:
    x: float
    y: float
    age: float = 0.0


@dataclass(slots=True)
class Shark:
    x: float
    y: float
    entry_x: float
    entry_y: float
    dir_x: float
    dir_y: float
    target_x: float
    target_y: float
    life_elapsed: float = 0.0
    progress: float = 0.0
    flee_meter: float = 0.0
    flee_progress: float = 0.0
    flee_start_x: float = 0.0
    flee_start_y: float = 0.0
    exit_x: float = 0.0
    exit_y: float = 0.0
    repelled: bool = False


@dataclass(slots=True)
class PredatorState:
    timer: float
    phase: PredatorPhase = PredatorPhase.IDLE
    shark: Optional[Shark] = None
    light_waves: List[LightWave] = field(default_factory=list)
    spawns: int = 0

    @property
    def active(self) -> bool:
        return self.phase is not PredatorPhase.IDLE

    def to_payload(self) -> Optional[Dict[str, Any]]:
        if self.shark is None:
            return None
        shark = self.shark
        return {
            "phase": self.phase.value,
            "x": shark.x,
            "y": shark.y,
            "heading": math.atan2(shark.dir_y, shark.dir_x),
            "flee_meter": shark.flee_meter,
            "life_elapsed": shark.life_elapsed,
            "light_waves": [{"x": w.x, "y": w.y, "age": w.age} for w in self.light_waves],
        }


def init_predator(config: PredatorConfig, rng: SimRng) -> PredatorState:
    return PredatorState(timer=rng.next_range(*config.idle_seconds))


def spawn_shark(width: float, height: float, config: PredatorConfig, rng: SimRng) -> Shark:
    margin = config.spawn_margin
    edge = rng.next_int(4)
    if edge == 0:
        entry_x, entry_y, dir_x, dir_y = -margin, rng.next_range(0.2, 0.8) * height, 1.0, 0.0
        span = width
    elif edge == 1:
        entry_x, entry_y, dir_x, dir_y = width + margin, rng.next_range(0.2, 0.8) * height, -1.0, 0.0
        span = width
    elif edge == 2:
        entry_x, entry_y, dir_x, dir_y = rng.next_range(0.2, 0.8) * width, -margin, 0.0, 1.0
        span = height
    else:
        entry_x, entry_y, dir_x, dir_y = rng.next_range(0.2, 0.8) * width, height + margin, 0.0, -1.0
        span = height
    # Tilt the entry vector so sharks do not always cross perpendicular to the edge.
    tilt = rng.next_range(-0.35, 0.35)
    cos_t = math.cos(tilt)
    sin_t = math.sin(tilt)
    dir_x, dir_y = dir_x * cos_t - dir_y * sin_t, dir_x * sin_t + dir_y * cos_t
    depth = margin + span * rng.next_range(*config.penetration)
    return Shark(
        x=entry_x,
        y=entry_y,
        entry_x=entry_x,
        entry_y=entry_y,
        dir_x=dir_x,
        dir_y=dir_y,
        target_x=entry_x + dir_x * depth,
        target_y=entry_y + dir_y * depth,
    )


def _begin_flee(shark: Shark, config: PredatorConfig) -> None:
    shark.flee_start_x = shark.x
    shark.flee_start_y = shark.y
    travelled = math.hypot(shark.x - shark.entry_x, shark.y - shark.entry_y)
    retreat = travelled + config.retreat_margin
    shark.exit_x = shark.x - shark.dir_x * retreat
    shark.exit_y = shark.y - shark.dir_y * retreat
    shark.flee_progress = 0.0


def update_predator(
    state: PredatorState,
    pointer: PointerState,
    events_active: bool,
    width: float,
    height: float,
    dt: float,
    config: PredatorConfig,
    rng: SimRng,
) -> List[AudioCue]:
    cues: List[AudioCue] = []
    for wave in state.light_waves:
        wave.age += dt
    state.light_waves = [w for w in state.light_waves if w.age < config.light_wave_seconds]

    if state.phase is PredatorPhase.IDLE:
        state.timer = max(0.0, state.timer - dt)
        if state.timer <= 0.0 and not events_active:
            state.shark = spawn_shark(width, height, config, rng)
            state.phase = PredatorPhase.APPROACHING
            state.spawns += 1
            cues.append(AudioCue.PREDATOR_SPAWN)
            logger.debug("Predator spawned at (%.1f, %.1f)", state.shark.x, state.shark.y)
        return cues

    shark = state.shark
    if shark is None:
        state.phase = PredatorPhase.IDLE
        return cues
    shark.life_elapsed += dt

    if state.phase is PredatorPhase.APPROACHING:
        shark.progress = min(1.0, shark.progress + dt / config.approach_seconds)
        eased = ease_out(shark.progress)
        shark.x = _lerp(shark.entry_x, shark.target_x, eased)
        shark.y = _lerp(shark.entry_y, shark.target_y, eased)
        if shark.progress > config.meter_start_progress:
            dist = math.hypot(pointer.x - shark.x, pointer.y - shark.y)
            if dist < config.light_radius:
                closeness = 1.0 - dist / config.light_radius
                shark.flee_meter = min(1.0, shark.flee_meter + closeness * closeness * config.flee_meter_rate * dt)
                if rng.next_float() < config.light_wave_chance:
                    state.light_waves.append(LightWave(x=pointer.x, y=pointer.y))
        if shark.flee_meter >= 1.0:
            shark.repelled = True
            _begin_flee(shark, config)
            state.phase = PredatorPhase.FLEEING
            cues.append(AudioCue.PREDATOR_VICTORY)
            logger.debug("Predator repelled after %.1fs", shark.life_elapsed)
        elif shark.life_elapsed >= config.max_life_seconds:
            _begin_flee(shark, config)
            state.phase = PredatorPhase.FLEEING
            logger.debug("Predator gave up after %.1fs", shark.life_elapsed)
        return cues

    shark.flee_progress = min(1.0, shark.flee_progress + dt / config.flee_seconds)
    eased = shark.flee_progress * shark.flee_progress
    shark.x = _lerp(shark.flee_start_x, shark.exit_x, eased)
    shark.y = _lerp(shark.flee_start_y, shark.exit_y, eased)
    if shark.flee_progress >= 1.0:
        state.shark = None
        state.phase = PredatorPhase.IDLE
        state.timer = rng.next_range(*config.idle_seconds)
        logger.debug("Predator despawned; next in %.1fs", state.timer)
    return cues


def predator_force(state: PredatorState, agent: Agent, config: PredatorConfig) -> tuple[float, float]:
    shark = state.shark
    if shark is None or state.phase is PredatorPhase.IDLE:
        return 0.0, 0.0
    dx = agent.position.x - shark.x
    dy = agent.position.y - shark.y
    dist = math.hypot(dx, dy) + 0.001
    far = max(0.0, 1.0 - dist / config.far_radius)
    near = max(0.0, 1.0 - dist / config.near_radius)
    magnitude = far * config.far_weight + near * near * config.near_weight
    if magnitude <= 0.0:
        return 0.0, 0.0
    if state.phase is PredatorPhase.FLEEING:
        magnitude *= 1.0 - shark.flee_progress
    # Rotate by a per-agent angle so the scatter is not perfectly radial.
    jitter = (hash2(agent.id * 0.137, 7.31) - 0.5) * config.jitter_angle
    cos_j = math.cos(jitter)
    sin_j = math.sin(jitter)
    ux = dx / dist
    uy = dy / dist
    return (ux * cos_j - uy * sin_j) * magnitude, (ux * sin_j + uy * cos_j) * magnitude
