from __future__ import annotations

from typing import Callable, List

from pygame.math import Vector2

from ..core.agent import Agent, DepthLayer
from ..core.rng import SimRng

_SILVER_HUES = ((204.0, (6.0, 18.0)), (212.0, (8.0, 22.0)), (196.0, (4.0, 16.0)))


def assign_depth_layer(agent: Agent, rng: SimRng) -> None:
    roll = rng.next_float()
    if roll < 0.15:
        agent.depth_layer = DepthLayer.FOREGROUND
        agent.depth_scale = rng.next_range(1.18, 1.35)
        agent.depth_alpha = 1.0
    elif roll < 0.85:
        agent.depth_layer = DepthLayer.MIDGROUND
        agent.depth_scale = rng.next_range(0.92, 1.08)
        agent.depth_alpha = rng.next_range(0.8, 1.0)
    else:
        agent.depth_layer = DepthLayer.BACKGROUND
        agent.depth_scale = rng.next_range(0.65, 0.82)
        agent.depth_alpha = rng.next_range(0.4, 0.62)


def spawn_agent(agent_id: int, width: float, height: float, rng: SimRng) -> Agent:
    roll = rng.next_float()
    is_colorful = roll < 0.04
    is_large = 0.04 <= roll < 0.11
    if is_colorful:
        hue = 35.0
    else:
        hue = _SILVER_HUES[rng.next_int(len(_SILVER_HUES))][0]
    agent = Agent(
        id=agent_id,
        position=Vector2(rng.next_float() * width, rng.next_float() * height),
        velocity=Vector2(rng.next_range(-1.0, 1.0), rng.next_range(-1.0, 1.0)),
        size=rng.next_range(5.0, 8.0) if is_large else rng.next_range(3.4, 5.2),
        is_large=is_large,
        is_colorful=is_colorful,
        angle_smoothing=rng.next_range(0.04, 0.07),
        body_phase=rng.next_angle(),
        body_wave_speed=rng.next_range(9.0, 14.0),
        wander_phase=rng.next_range(0.0, 1000.0),
        wander_seed=rng.next_float(),
        wander=rng.next_range(0.8, 1.2),
        base_hue=hue + rng.next_range(-6.0, 6.0),
        body_tone=rng.next_range(-6.0, 6.0),
        scale_shimmer=rng.next_range(0.85, 1.15),
    )
    assign_depth_layer(agent, rng)
    return agent


def reconcile(
    agents: List[Agent],
    target: int,
    batch: int,
    factory: Callable[[], Agent],
) -> tuple[int, int]:
    """Move the population at most ``batch`` agents toward ``target``; oldest go first."""
    delta = target - len(agents)
    if delta > 0:
        count = min(delta, batch)
        for _ in range(count):
            agents.append(factory())
        return count, 0
    if delta < 0:
        count = min(-delta, batch)
        del agents[:count]
        return 0, count
    return 0, 0
