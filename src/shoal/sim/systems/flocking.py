from __future__ import annotations

import math
from typing import List, Sequence

from ..core.agent import Agent
from ..core.config import FlockConfig, PointerConfig
from ..core.pointer import PointerState
from ..utils.math2d import TAU, fbm


def flock_force(
    agent: Agent,
    agents: Sequence[Agent],
    neighbor_indices: List[int],
    config: FlockConfig,
) -> tuple[float, float]:
    """Alignment, cohesion and separation from the gathered neighbors."""
    count = len(neighbor_indices)
    if count == 0:
        return 0.0, 0.0
    pos_x = agent.position.x
    pos_y = agent.position.y
    personal = config.personal_radius_large if agent.is_large else config.personal_radius
    avg_vx = 0.0
    avg_vy = 0.0
    center_x = 0.0
    center_y = 0.0
    sep_x = 0.0
    sep_y = 0.0
    for index in neighbor_indices:
        other = agents[index]
        dx = other.position.x - pos_x
        dy = other.position.y - pos_y
        dist = math.sqrt(dx * dx + dy * dy) + 0.001
        avg_vx += other.velocity.x
        avg_vy += other.velocity.y
        center_x += other.position.x
        center_y += other.position.y
        if dist < personal:
            push = (personal - dist) / personal
            sep_x -= (dx / dist) * push
            sep_y -= (dy / dist) * push

    inv = 1.0 / count
    social = config.breakout_damping if agent.breakout_timer > 0.0 else 1.0
    align = config.alignment_weight * social
    cohere = config.cohesion_weight * social
    ax = (avg_vx * inv - agent.velocity.x) * align
    ay = (avg_vy * inv - agent.velocity.y) * align
    ax += (center_x * inv - pos_x) * cohere
    ay += (center_y * inv - pos_y) * cohere
    ax += sep_x * config.separation_weight
    ay += sep_y * config.separation_weight
    return ax, ay


def pointer_distance(agent: Agent, pointer: PointerState) -> float:
    return max(1.0, math.hypot(pointer.x - agent.position.x, pointer.y - agent.position.y))


def pointer_force(
    agent: Agent,
    pointer: PointerState,
    width: float,
    height: float,
    config: PointerConfig,
) -> tuple[float, float]:
    """Attraction toward the pointer; boosted inside the herding radius."""
    dx = pointer.x - agent.position.x
    dy = pointer.y - agent.position.y
    dist = max(1.0, math.hypot(dx, dy))
    heat = math.exp(-dist / config.falloff) * config.heat_near
    heat += config.heat_far * max(0.0, 1.0 - dist / max(width, height, 1.0))
    boost = 1.0
    if dist < config.herding_radius:
        boost += (config.herding_radius - dist) / config.herding_softness
    scale = heat * config.force * boost / dist
    return dx * scale, dy * scale


def wander_force(agent: Agent, sim_time: float, config: FlockConfig) -> tuple[float, float]:
    noise = fbm(
        agent.position.x * config.noise_scale + sim_time * config.noise_drift[0],
        agent.position.y * config.noise_scale + sim_time * config.noise_drift[1],
    )
    wiggle = math.sin(agent.wander_phase + agent.wander_seed * TAU) + (noise - 0.5)
    wiggle *= config.wander_weight * agent.wander
    return wiggle, -wiggle * 0.65
