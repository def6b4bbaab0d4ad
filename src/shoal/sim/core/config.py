from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

SPEED_RANGE = (0.25, 4.0)
FISH_COUNT_RANGE = (200, 2500)
GAIN_RANGE = (0.0, 1.0)


@dataclass
class FlockConfig:
    neighbor_radius: float = 65.0
    neighbor_cap: int = 18
    personal_radius: float = 28.0
    personal_radius_large: float = 48.0
    alignment_weight: float = 0.38
    cohesion_weight: float = 0.00015
    separation_weight: float = 0.98
    breakout_chance: float = 0.0006
    breakout_seconds: tuple[float, float] = (0.3, 0.9)
    # Alignment/cohesion multiplier while an agent is breaking out of the school.
    breakout_damping: float = 0.25
    wander_weight: float = 0.2
    wander_phase_rate: float = 2.2
    noise_scale: float = 0.004
    noise_drift: tuple[float, float] = (0.08, 0.06)


@dataclass
class PointerConfig:
    falloff: float = 620.0
    heat_near: float = 0.75
    heat_far: float = 0.38
    force: float = 4.6
    herding_radius: float = 260.0
    herding_softness: float = 85.0
    smoothing: float = 0.35
    startle_radius: float = 380.0
    startle_multiplier: float = 2.0


@dataclass
class MigrationConfig:
    strength: float = 0.16
    drift_weight: float = 0.35
    retarget_chance: float = 0.0012
    turn_rate: float = 0.15
    flash_threshold: float = 0.32
    flash_rise: float = 2.2
    flash_decay: float = 0.985
    breath_speed: float = 0.8
    speed_phase_rate: float = 0.35
    wave_rate: float = 2.2
    wave_frequency: float = 0.01
    wave_weight: float = 0.25
    breath_weight: float = 0.2
    center_smoothing: float = 0.025
    jitter_weight: float = 0.08
    sub_school_count: int = 4
    sub_school_radius: tuple[float, float] = (180.0, 320.0)
    sub_school_strength: tuple[float, float] = (0.35, 0.65)
    sub_school_speed: float = 15.0
    sub_school_jitter: float = 30.0
    sub_school_bias: float = 6.0
    sub_school_breath_rate: float = 0.5
    sub_school_breath_depth: float = 0.15
    sub_school_pull: float = 0.5
    sub_school_margin: float = 0.1


@dataclass
class PredatorConfig:
    idle_seconds: tuple[float, float] = (30.0, 55.0)
    spawn_margin: float = 120.0
    penetration: tuple[float, float] = (0.35, 0.6)
    approach_seconds: float = 7.0
    max_life_seconds: float = 18.0
    flee_seconds: float = 2.5
    retreat_margin: float = 200.0
    light_radius: float = 250.0
    flee_meter_rate: float = 0.9
    meter_start_progress: float = 0.45
    light_wave_chance: float = 0.15
    light_wave_seconds: float = 1.2
    far_radius: float = 900.0
    far_weight: float = 1.8
    near_radius: float = 260.0
    near_weight: float = 6.0
    jitter_angle: float = 0.6


@dataclass
class EventConfig:
    idle_trigger_seconds: float = 5.0
    window_seconds: tuple[float, float] = (15.0, 25.0)
    cooldown_seconds: tuple[float, float] = (6.0, 10.0)
    max_active: int = 2
    weights: dict[str, float] = field(
        default_factory=lambda: {
            "vortex": 30.0,
            "pressure_wave": 25.0,
            "migration_burst": 20.0,
            "depth_shift": 15.0,
            "split": 10.0,
        }
    )
    vortex_radius: tuple[float, float] = (220.0, 380.0)
    vortex_strength: tuple[float, float] = (2.5, 4.0)
    vortex_life: tuple[float, float] = (8.0, 12.0)
    wave_speed: tuple[float, float] = (120.0, 200.0)
    wave_radius: tuple[float, float] = (140.0, 220.0)
    wave_strength: tuple[float, float] = (3.0, 5.0)
    wave_life: tuple[float, float] = (6.0, 9.0)
    burst_strength: tuple[float, float] = (1.2, 2.0)
    burst_life: tuple[float, float] = (6.0, 9.0)
    depth_strength: tuple[float, float] = (0.8, 1.4)
    depth_life: tuple[float, float] = (7.0, 10.0)
    split_offset: tuple[float, float] = (200.0, 320.0)
    split_strength: tuple[float, float] = (1.5, 2.5)
    split_life: tuple[float, float] = (8.0, 12.0)
    split_cap_radius: float = 200.0


@dataclass
class SimulationConfig:
    width: float = 1280.0
    height: float = 720.0
    time_step: float = 1.0 / 60.0
    max_frame_time: float = 0.06
    cell_size: float = 100.0
    speed: float = 0.4
    target_fish_count: int = 1350
    gain: float = 1.0
    reconcile_batch: int = 50
    accel: float = 145.0
    position_scale: float = 105.0
    drag: float = 0.957
    drag_large: float = 0.963
    max_speed: float = 19.0
    max_speed_large: float = 17.0
    wrap_margin: float = 70.0
    seed: Optional[int] = None
    config_version: str = "v1"
    flock: FlockConfig = field(default_factory=FlockConfig)
    pointer: PointerConfig = field(default_factory=PointerConfig)
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    predator: PredatorConfig = field(default_factory=PredatorConfig)
    events: EventConfig = field(default_factory=EventConfig)

    def __post_init__(self) -> None:
        self.speed = clamp_speed(self.speed)
        self.target_fish_count = clamp_fish_count(self.target_fish_count)
        self.gain = clamp_gain(self.gain)
        if self.flock.neighbor_radius > self.cell_size:
            raise ValueError(
                f"flock.neighbor_radius ({self.flock.neighbor_radius}) must not exceed cell_size ({self.cell_size})"
            )

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


def clamp_speed(value: float) -> float:
    low, high = SPEED_RANGE
    return max(low, min(high, float(value)))


def clamp_fish_count(value: int) -> int:
    low, high = FISH_COUNT_RANGE
    return max(low, min(high, int(value)))


def clamp_gain(value: float) -> float:
    low, high = GAIN_RANGE
    return max(low, min(high, float(value)))


def _pairs(values: dict) -> dict:
    # YAML has no tuple type; range settings arrive as two-element lists.
    return {
        key: (float(value[0]), float(value[1])) if isinstance(value, list) and len(value) == 2 else value
        for key, value in values.items()
    }


def load_config(raw: dict) -> SimulationConfig:
    sections = {"flock", "pointer", "migration", "predator", "events"}
    flock = FlockConfig(**_pairs(raw.get("flock") or {}))
    pointer = PointerConfig(**(raw.get("pointer") or {}))
    migration = MigrationConfig(**_pairs(raw.get("migration") or {}))
    predator = PredatorConfig(**_pairs(raw.get("predator") or {}))
    events_raw = dict(raw.get("events") or {})
    weights = events_raw.pop("weights", None)
    events = EventConfig(**_pairs(events_raw))
    if weights:
        events.weights.update({str(k): float(v) for k, v in weights.items()})
    sim_values = {k: v for k, v in raw.items() if k not in sections}
    return SimulationConfig(
        flock=flock,
        pointer=pointer,
        migration=migration,
        predator=predator,
        events=events,
        **sim_values,
    )
