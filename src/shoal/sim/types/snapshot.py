from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    pointer: Dict[str, Any]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    migration: Dict[str, Any]
    predator: Optional[Dict[str, Any]]
    events: List[Dict[str, Any]]
    cues: List[str]


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float
    density_glow: float


@dataclass(slots=True)
class SnapshotMetadata:
    sim_dt: float
    tick_rate: float
    speed: float
    target_fish_count: int
    gain: float
    config_version: str
