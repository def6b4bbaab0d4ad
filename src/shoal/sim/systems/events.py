from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional

from ..core.agent import Agent
from ..core.config import EventConfig
from ..core.rng import SimRng
from ..utils.math2d import ease_in_out, ease_out
from .migration import MigrationState

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    VORTEX = "vortex"
    PRESSURE_WAVE = "pressure_wave"
    MIGRATION_BURST = "migration_burst"
    DEPTH_SHIFT = "depth_shift"
    SPLIT = "split"


@dataclass(slots=True)
class Event:
    kind: ClassVar[EventKind]
    max_life: float
    rise_time: float
    fade_time: float
    strength: float
    life: float = 0.0
    intensity: float = 0.0

    @property
    def finished(self) -> bool:
        return self.life >= self.max_life

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind.value}
        for item in fields(self):
            payload[item.name] = getattr(self, item.name)
        return payload


@dataclass(slots=True)
class VortexEvent(Event):
    kind: ClassVar[EventKind] = EventKind.VORTEX
    center_x: float = 0.0
    center_y: float = 0.0
    radius: float = 300.0
    rotation: float = 1.0


@dataclass(slots=True)
class PressureWaveEvent(Event):
    kind: ClassVar[EventKind] = EventKind.PRESSURE_WAVE
    origin_x: float = 0.0
    origin_y: float = 0.0
    dir_x: float = 1.0
    dir_y: float = 0.0
    speed: float = 150.0
    radius: float = 180.0

    @property
    def compression_phase(self) -> float:
        return self.life / self.max_life if self.max_life > 0.0 else 1.0

    def front(self) -> tuple[float, float]:
        travelled = self.speed * self.life
        return self.origin_x + self.dir_x * travelled, self.origin_y + self.dir_y * travelled


@dataclass(slots=True)
class MigrationBurstEvent(Event):
    kind: ClassVar[EventKind] = EventKind.MIGRATION_BURST
    dir_x: float = 1.0
    dir_y: float = 0.0


@dataclass(slots=True)
class DepthShiftEvent(Event):
    kind: ClassVar[EventKind] = EventKind.DEPTH_SHIFT
    direction: float = 1.0


@dataclass(slots=True)
class SplitEvent(Event):
    kind: ClassVar[EventKind] = EventKind.SPLIT
    centers: List[tuple[float, float]] = field(default_factory=list)
    cap_radius: float = 200.0


@dataclass(slots=True)
class EventState:
    window: float
    cooldown: float = 0.0
    since_last: float = 0.0
    events: List[Event] = field(default_factory=list)
    created: int = 0

    @property
    def active(self) -> bool:
        return bool(self.events)

    def to_payload(self) -> List[Dict[str, Any]]:
        return [event.to_payload() for event in self.events]


def envelope(life: float, max_life: float, rise_time: float, fade_time: float) -> float:
    """Ease-out rise, full sustain, ease-in-out fade to zero at ``max_life``."""
    if life >= max_life:
        return 0.0
    if rise_time > 0.0 and life < rise_time:
        return ease_out(life / rise_time)
    fade_start = max_life - fade_time
    if fade_time > 0.0 and life > fade_start:
        return ease_in_out((max_life - life) / fade_time)
    return 1.0


def init_events(config: EventConfig, rng: SimRng) -> EventState:
    return EventState(window=rng.next_range(*config.window_seconds))


def should_spawn(state: EventState, pointer_idle: float, predator_active: bool, config: EventConfig) -> bool:
    if predator_active or state.cooldown > 0.0:
        return False
    if pointer_idle > config.idle_trigger_seconds and not state.events:
        return True
    return state.since_last > state.window and len(state.events) < config.max_active


def create_event(
    kind: EventKind,
    migration: MigrationState,
    width: float,
    height: float,
    config: EventConfig,
    rng: SimRng,
) -> Event:
    if kind is EventKind.VORTEX:
        return VortexEvent(
            max_life=rng.next_range(*config.vortex_life),
            rise_time=1.5,
            fade_time=2.0,
            strength=rng.next_range(*config.vortex_strength),
            center_x=rng.next_range(0.2, 0.8) * width,
            center_y=rng.next_range(0.2, 0.8) * height,
            radius=rng.next_range(*config.vortex_radius),
            rotation=rng.next_sign(),
        )
    if kind is EventKind.PRESSURE_WAVE:
        direction = rng.next_unit_circle()
        return PressureWaveEvent(
            max_life=rng.next_range(*config.wave_life),
            rise_time=0.6,
            fade_time=1.5,
            strength=rng.next_range(*config.wave_strength),
            origin_x=migration.center_x - direction.x * width * 0.3,
            origin_y=migration.center_y - direction.y * height * 0.3,
            dir_x=direction.x,
            dir_y=direction.y,
            speed=rng.next_range(*config.wave_speed),
            radius=rng.next_range(*config.wave_radius),
        )
    if kind is EventKind.MIGRATION_BURST:
        direction = rng.next_unit_circle()
        return MigrationBurstEvent(
            max_life=rng.next_range(*config.burst_life),
            rise_time=1.2,
            fade_time=2.0,
            strength=rng.next_range(*config.burst_strength),
            dir_x=direction.x,
            dir_y=direction.y,
        )
    if kind is EventKind.DEPTH_SHIFT:
        return DepthShiftEvent(
            max_life=rng.next_range(*config.depth_life),
            rise_time=1.5,
            fade_time=2.5,
            strength=rng.next_range(*config.depth_strength),
            direction=rng.next_sign(),
        )
    axis = rng.next_angle()
    offset = rng.next_range(*config.split_offset)
    perp_x = -math.sin(axis) * offset
    perp_y = math.cos(axis) * offset
    return SplitEvent(
        max_life=rng.next_range(*config.split_life),
        rise_time=1.5,
        fade_time=2.5,
        strength=rng.next_range(*config.split_strength),
        centers=[
            (migration.center_x + perp_x, migration.center_y + perp_y),
            (migration.center_x - perp_x, migration.center_y - perp_y),
        ],
        cap_radius=config.split_cap_radius,
    )


def pick_kind(config: EventConfig, rng: SimRng) -> Optional[EventKind]:
    kinds = list(EventKind)
    return rng.weighted_choice(kinds, [config.weights.get(kind.value, 0.0) for kind in kinds])


def update_events(
    state: EventState,
    pointer_idle: float,
    predator_active: bool,
    migration: MigrationState,
    width: float,
    height: float,
    dt: float,
    config: EventConfig,
    rng: SimRng,
) -> Optional[Event]:
    """Advance timers and lifetimes; returns the event created this tick, if any."""
    state.cooldown = max(0.0, state.cooldown - dt)
    state.since_last += dt

    for event in state.events:
        event.life += dt
        event.intensity = envelope(event.life, event.max_life, event.rise_time, event.fade_time)
    expired = [event for event in state.events if event.finished]
    if expired:
        state.events = [event for event in state.events if not event.finished]
        for event in expired:
            logger.debug("Event %s expired", event.kind.value)

    if not should_spawn(state, pointer_idle, predator_active, config):
        return None
    kind = pick_kind(config, rng)
    if kind is None:
        return None
    event = create_event(kind, migration, width, height, config, rng)
    state.events.append(event)
    state.created += 1
    state.cooldown = rng.next_range(*config.cooldown_seconds)
    state.since_last = 0.0
    state.window = rng.next_range(*config.window_seconds)
    logger.debug("Event %s started (life %.1fs)", kind.value, event.max_life)
    return event


def _vortex_force(event: VortexEvent, agent: Agent) -> tuple[float, float]:
    dx = agent.position.x - event.center_x
    dy = agent.position.y - event.center_y
    dist = math.hypot(dx, dy) + 0.001
    if dist >= event.radius:
        return 0.0, 0.0
    magnitude = (1.0 - dist / event.radius) * event.intensity * event.strength
    ux = dx / dist
    uy = dy / dist
    tangent_x = -uy * event.rotation
    tangent_y = ux * event.rotation
    return (tangent_x - ux * 0.35) * magnitude, (tangent_y - uy * 0.35) * magnitude


def _pressure_wave_force(event: PressureWaveEvent, agent: Agent) -> tuple[float, float]:
    front_x, front_y = event.front()
    dx = agent.position.x - front_x
    dy = agent.position.y - front_y
    dist = math.hypot(dx, dy) + 0.001
    if dist >= event.radius:
        return 0.0, 0.0
    magnitude = (1.0 - dist / event.radius) * event.intensity * event.strength
    if event.compression_phase >= 0.5:
        magnitude *= -0.35
    return dx / dist * magnitude, dy / dist * magnitude


def _migration_burst_force(event: MigrationBurstEvent, agent: Agent) -> tuple[float, float]:
    magnitude = event.intensity * event.strength
    return event.dir_x * magnitude, event.dir_y * magnitude


def _depth_shift_force(event: DepthShiftEvent, agent: Agent) -> tuple[float, float]:
    magnitude = event.intensity * event.strength
    sway = math.sin(agent.position.y * 0.01 + event.life * 2.0) * magnitude * 0.4
    return sway, event.direction * magnitude


def _split_force(event: SplitEvent, agent: Agent) -> tuple[float, float]:
    if not event.centers:
        return 0.0, 0.0
    best_dx = 0.0
    best_dy = 0.0
    best_dist = math.inf
    for cx, cy in event.centers:
        dx = cx - agent.position.x
        dy = cy - agent.position.y
        dist = math.hypot(dx, dy)
        if dist < best_dist:
            best_dx, best_dy, best_dist = dx, dy, dist
    best_dist += 0.001
    magnitude = event.intensity * event.strength * min(1.0, best_dist / event.cap_radius)
    return best_dx / best_dist * magnitude, best_dy / best_dist * magnitude


_FORCES: Dict[EventKind, Callable[[Any, Agent], tuple[float, float]]] = {
    EventKind.VORTEX: _vortex_force,
    EventKind.PRESSURE_WAVE: _pressure_wave_force,
    EventKind.MIGRATION_BURST: _migration_burst_force,
    EventKind.DEPTH_SHIFT: _depth_shift_force,
    EventKind.SPLIT: _split_force,
}


def single_event_force(event: Event, agent: Agent) -> tuple[float, float]:
    if event.intensity <= 0.0:
        return 0.0, 0.0
    return _FORCES[event.kind](event, agent)


def event_force(state: EventState, agent: Agent) -> tuple[float, float]:
    ax = 0.0
    ay = 0.0
    for event in state.events:
        fx, fy = single_event_force(event, agent)
        ax += fx
        ay += fy
    return ax, ay
