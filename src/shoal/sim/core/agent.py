from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from pygame.math import Vector2


class DepthLayer(str, Enum):
    BACKGROUND = "background"
    MIDGROUND = "midground"
    FOREGROUND = "foreground"


@dataclass(slots=True)
class Agent:
    id: int
    position: Vector2
    velocity: Vector2
    size: float
    is_large: bool = False
    is_colorful: bool = False
    heading: float = 0.0
    angle_smoothing: float = 0.05
    body_phase: float = 0.0
    body_wave_speed: float = 11.0
    wander_phase: float = 0.0
    wander_seed: float = 0.0
    wander: float = 1.0
    breakout_timer: float = 0.0
    depth_layer: DepthLayer = DepthLayer.MIDGROUND
    depth_scale: float = 1.0
    depth_alpha: float = 1.0
    base_hue: float = 204.0
    body_tone: float = 0.0
    scale_shimmer: float = 1.0
    last_neighbors: int = field(default=0, compare=False)

    def core_state(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "x": self.position.x,
            "y": self.position.y,
            "vx": self.velocity.x,
            "vy": self.velocity.y,
            "size": self.size,
            "is_large": self.is_large,
            "is_colorful": self.is_colorful,
            "wander_phase": self.wander_phase,
            "wander_seed": self.wander_seed,
            "wander": self.wander,
            "breakout_timer": self.breakout_timer,
        }

    @classmethod
    def from_core_state(cls, state: Dict[str, Any]) -> "Agent":
        return cls(
            id=int(state["id"]),
            position=Vector2(state["x"], state["y"]),
            velocity=Vector2(state["vx"], state["vy"]),
            size=float(state["size"]),
            is_large=bool(state["is_large"]),
            is_colorful=bool(state["is_colorful"]),
            wander_phase=float(state.get("wander_phase", 0.0)),
            wander_seed=float(state.get("wander_seed", 0.0)),
            wander=float(state.get("wander", 1.0)),
            breakout_timer=float(state.get("breakout_timer", 0.0)),
        )
