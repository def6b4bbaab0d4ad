from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.agent import Agent
from ..core.config import FlockConfig, SimulationConfig
from ..core.rng import SimRng
from ..utils.math2d import _clamp_length_xy_f, _wrap_angle


@dataclass(slots=True)
class ForceBreakdown:
    flock: tuple[float, float] = (0.0, 0.0)
    pointer: tuple[float, float] = (0.0, 0.0)
    wander: tuple[float, float] = (0.0, 0.0)
    migration: tuple[float, float] = (0.0, 0.0)
    predator: tuple[float, float] = (0.0, 0.0)
    events: tuple[float, float] = (0.0, 0.0)

    def total(self) -> tuple[float, float]:
        ax = self.flock[0] + self.pointer[0] + self.wander[0] + self.migration[0] + self.predator[0] + self.events[0]
        ay = self.flock[1] + self.pointer[1] + self.wander[1] + self.migration[1] + self.predator[1] + self.events[1]
        return ax, ay


def max_speed(agent: Agent, pointer_distance: float, config: SimulationConfig) -> float:
    limit = config.max_speed_large if agent.is_large else config.max_speed
    limit *= config.speed
    if pointer_distance < config.pointer.startle_radius:
        limit *= config.pointer.startle_multiplier
    return limit


def integrate(
    agent: Agent,
    ax: float,
    ay: float,
    dt: float,
    pointer_distance: float,
    speed_modifier: float,
    config: SimulationConfig,
) -> None:
    gain = dt * config.accel * config.speed * speed_modifier
    drag = config.drag_large if agent.is_large else config.drag
    vx = (agent.velocity.x + ax * gain) * drag
    vy = (agent.velocity.y + ay * gain) * drag
    vx, vy = _clamp_length_xy_f(vx, vy, max_speed(agent, pointer_distance, config))
    agent.velocity.update(vx, vy)
    agent.position.x += vx * dt * config.position_scale
    agent.position.y += vy * dt * config.position_scale


def cap_velocity(agent: Agent, pointer_distance: float, config: SimulationConfig) -> None:
    """Clamp velocity to the cap for the agent's current pointer distance."""
    vx, vy = _clamp_length_xy_f(agent.velocity.x, agent.velocity.y, max_speed(agent, pointer_distance, config))
    agent.velocity.update(vx, vy)


def wrap_position(agent: Agent, width: float, height: float, margin: float) -> bool:
    """Toroidal wrap once an agent is ``margin`` past an edge; returns True if it wrapped."""
    pos = agent.position
    wrapped = False
    if pos.x < -margin:
        pos.x = width + margin
        wrapped = True
    elif pos.x > width + margin:
        pos.x = -margin
        wrapped = True
    if pos.y < -margin:
        pos.y = height + margin
        wrapped = True
    elif pos.y > height + margin:
        pos.y = -margin
        wrapped = True
    return wrapped


def update_cosmetics(agent: Agent, dt: float, wander_phase_rate: float) -> None:
    speed = agent.velocity.length()
    if speed > 1e-6:
        target = math.atan2(agent.velocity.y, agent.velocity.x)
        agent.heading = _wrap_angle(agent.heading + _wrap_angle(target - agent.heading) * agent.angle_smoothing)
    agent.body_phase += agent.body_wave_speed * dt * (1.0 + speed * 0.45)
    agent.wander_phase += dt * wander_phase_rate


def update_breakout(agent: Agent, dt: float, rng: SimRng, config: FlockConfig) -> None:
    if agent.breakout_timer > 0.0:
        agent.breakout_timer = max(0.0, agent.breakout_timer - dt)
    elif rng.next_float() < config.breakout_chance:
        agent.breakout_timer = rng.next_range(*config.breakout_seconds)
