from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    spawned: int
    removed: int
    average_speed: float
    average_neighbors: float
    active_events: int
    predator_phase: str
    tick_duration_ms: float = 0.0
