from __future__ import annotations

import math
import random
from typing import Optional, Sequence, TypeVar

from pygame.math import Vector2

T = TypeVar("T")


class SimRng:
    """Random source for the simulation; a ``None`` seed draws from OS entropy."""

    def __init__(self, seed: Optional[int] = None):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_int(self, max_value: int) -> int:
        return self._random.randrange(max_value)

    def next_sign(self) -> float:
        return 1.0 if self._random.random() < 0.5 else -1.0

    def next_angle(self) -> float:
        return self._random.uniform(0.0, 2.0 * math.pi)

    def next_unit_circle(self) -> Vector2:
        vector = Vector2()
        vector.from_polar((1, math.degrees(self.next_angle())))
        return vector

    def weighted_choice(self, items: Sequence[T], weights: Sequence[float]) -> Optional[T]:
        total = sum(max(0.0, w) for w in weights)
        if not items or total <= 0.0:
            return None
        roll = self._random.random() * total
        for item, weight in zip(items, weights):
            roll -= max(0.0, weight)
            if roll < 0.0:
                return item
        return items[-1]
