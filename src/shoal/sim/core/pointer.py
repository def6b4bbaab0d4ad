from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(slots=True)
class PointerState:
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    idle: float = 0.0
    target_x: float = 0.0
    target_y: float = 0.0

    @classmethod
    def centered(cls, width: float, height: float) -> "PointerState":
        return cls(x=width * 0.5, y=height * 0.5, target_x=width * 0.5, target_y=height * 0.5)

    def move_to(self, x: float, y: float) -> None:
        self.target_x = x
        self.target_y = y
        self.idle = 0.0

    def advance(self, dt: float, smoothing: float) -> None:
        prev_x = self.x
        prev_y = self.y
        self.x += (self.target_x - self.x) * smoothing
        self.y += (self.target_y - self.y) * smoothing
        if dt > 0.0:
            self.vx = (self.x - prev_x) / dt
            self.vy = (self.y - prev_y) / dt
        self.idle += dt

    def to_payload(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "vx": self.vx, "vy": self.vy, "idle": self.idle}
