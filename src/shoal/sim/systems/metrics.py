from __future__ import annotations

from ..types.metrics import TickMetrics


def create_metrics(
    tick: int,
    spawned: int,
    removed: int,
    duration_ms: float,
    stats: tuple[int, float, float],
    active_events: int,
    predator_phase: str,
) -> TickMetrics:
    population, avg_speed, avg_neighbors = stats
    return TickMetrics(
        tick=tick,
        population=population,
        spawned=spawned,
        removed=removed,
        average_speed=avg_speed,
        average_neighbors=avg_neighbors,
        active_events=active_events,
        predator_phase=predator_phase,
        tick_duration_ms=duration_ms,
    )
