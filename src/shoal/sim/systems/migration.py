from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..core.agent import Agent
from ..core.config import MigrationConfig
from ..core.rng import SimRng
from ..utils.math2d import _lerp, _wrap_angle


@dataclass(slots=True)
class SubSchool:
    x: float
    y: float
    vx: float
    vy: float
    base_radius: float
    radius: float
    strength: float
    phase: float


@dataclass(slots=True)
class MigrationState:
    angle: float
    target_angle: float
    center_x: float
    center_y: float
    breath_phase: float = 0.0
    speed_phase: float = 0.0
    speed_modifier: float = 1.0
    wave_time: float = 0.0
    flash_intensity: float = 0.0
    sub_schools: List[SubSchool] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "angle": self.angle,
            "target_angle": self.target_angle,
            "center": [self.center_x, self.center_y],
            "breath_phase": self.breath_phase,
            "speed_modifier": self.speed_modifier,
            "flash_intensity": self.flash_intensity,
            "sub_schools": [
                {"x": s.x, "y": s.y, "radius": s.radius, "strength": s.strength} for s in self.sub_schools
            ],
        }


def init_migration(width: float, height: float, config: MigrationConfig, rng: SimRng) -> MigrationState:
    state = MigrationState(
        angle=rng.next_angle(),
        target_angle=rng.next_angle(),
        center_x=width * 0.5,
        center_y=height * 0.5,
    )
    reseed_sub_schools(state, width, height, config, rng)
    return state


def reseed_sub_schools(
    state: MigrationState, width: float, height: float, config: MigrationConfig, rng: SimRng
) -> None:
    state.sub_schools.clear()
    for _ in range(config.sub_school_count):
        radius = rng.next_range(*config.sub_school_radius)
        state.sub_schools.append(
            SubSchool(
                x=rng.next_range(width * 0.2, width * 0.8),
                y=rng.next_range(height * 0.2, height * 0.8),
                vx=rng.next_range(-config.sub_school_speed, config.sub_school_speed),
                vy=rng.next_range(-config.sub_school_speed, config.sub_school_speed),
                base_radius=radius,
                radius=radius,
                strength=rng.next_range(*config.sub_school_strength),
                phase=rng.next_angle(),
            )
        )


def speed_modifier(phase: float) -> float:
    # Three incommensurate sinusoids so the pace never visibly repeats.
    return (
        0.72
        + 0.2 * math.sin(phase)
        + 0.08 * math.sin(phase * 2.3 + 1.1)
        + 0.04 * math.sin(phase * 0.37 + 2.7)
    )


def update_migration(
    state: MigrationState,
    agents: Sequence[Agent],
    width: float,
    height: float,
    dt: float,
    config: MigrationConfig,
    rng: SimRng,
) -> None:
    if rng.next_float() < config.retarget_chance:
        state.target_angle = rng.next_angle()
    diff = _wrap_angle(state.target_angle - state.angle)
    state.angle = _wrap_angle(state.angle + diff * config.turn_rate * dt)
    if abs(diff) > config.flash_threshold:
        state.flash_intensity = min(1.0, state.flash_intensity + dt * config.flash_rise)
    else:
        state.flash_intensity *= config.flash_decay

    state.breath_phase += config.breath_speed * dt
    state.speed_phase += config.speed_phase_rate * dt
    state.speed_modifier = speed_modifier(state.speed_phase)
    state.wave_time += config.wave_rate * dt

    if agents:
        sum_x = 0.0
        sum_y = 0.0
        for agent in agents:
            sum_x += agent.position.x
            sum_y += agent.position.y
        inv = 1.0 / len(agents)
        state.center_x = _lerp(state.center_x, sum_x * inv, config.center_smoothing)
        state.center_y = _lerp(state.center_y, sum_y * inv, config.center_smoothing)

    _advance_sub_schools(state, width, height, dt, config, rng)


def _advance_sub_schools(
    state: MigrationState,
    width: float,
    height: float,
    dt: float,
    config: MigrationConfig,
    rng: SimRng,
) -> None:
    bias_x = math.cos(state.angle) * config.sub_school_bias
    bias_y = math.sin(state.angle) * config.sub_school_bias
    margin_x = width * config.sub_school_margin
    margin_y = height * config.sub_school_margin
    limit = config.sub_school_speed
    jitter = config.sub_school_jitter
    for school in state.sub_schools:
        school.vx += ((rng.next_float() - 0.5) * jitter + bias_x) * dt
        school.vy += ((rng.next_float() - 0.5) * jitter + bias_y) * dt
        if school.x < margin_x:
            school.vx += limit * dt
        elif school.x > width - margin_x:
            school.vx -= limit * dt
        if school.y < margin_y:
            school.vy += limit * dt
        elif school.y > height - margin_y:
            school.vy -= limit * dt
        speed = math.hypot(school.vx, school.vy)
        if speed > limit:
            school.vx *= limit / speed
            school.vy *= limit / speed
        school.x += school.vx * dt
        school.y += school.vy * dt
        school.phase += config.sub_school_breath_rate * dt
        school.radius = school.base_radius * (1.0 + config.sub_school_breath_depth * math.sin(school.phase))


def migration_force(
    state: MigrationState,
    agent: Agent,
    width: float,
    height: float,
    config: MigrationConfig,
) -> tuple[float, float]:
    cos_a = math.cos(state.angle)
    sin_a = math.sin(state.angle)
    drift = config.strength * config.drift_weight
    ax = cos_a * drift
    ay = sin_a * drift

    dx = state.center_x - agent.position.x
    dy = state.center_y - agent.position.y
    dist = math.hypot(dx, dy) + 0.001

    wave = math.sin(dist * config.wave_frequency - state.wave_time) * config.strength * config.wave_weight
    ax += -sin_a * wave
    ay += cos_a * wave

    breath = math.sin(state.breath_phase) * config.strength * config.breath_weight
    ax += dx / dist * breath
    ay += dy / dist * breath

    # First containing sub-school wins, not the nearest.
    for school in state.sub_schools:
        sx = school.x - agent.position.x
        sy = school.y - agent.position.y
        sub_dist = math.hypot(sx, sy)
        if sub_dist < school.radius:
            pull = school.strength * (1.0 - sub_dist / school.radius) * config.sub_school_pull
            sub_dist += 0.001
            ax += sx / sub_dist * pull
            ay += sy / sub_dist * pull
            break

    independence = min(1.0, dist / (0.5 * max(width, height, 1.0))) * config.jitter_weight
    ax += math.sin(agent.wander_phase * 1.7 + agent.wander_seed * 13.0) * independence
    ay += math.cos(agent.wander_phase * 1.3 + agent.wander_seed * 7.0) * independence
    return ax, ay
