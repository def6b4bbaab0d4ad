from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Any, Dict, List, Optional

from .agent import Agent
from .config import SimulationConfig, clamp_fish_count, clamp_gain, clamp_speed
from .pointer import PointerState
from .rng import SimRng
from .spatial_grid import SpatialGrid
from ..systems import events as event_system
from ..systems import metrics as metrics_system
from ..systems import migration as migration_system
from ..systems import population
from ..systems import predator as predator_system
from ..systems.flocking import flock_force, pointer_distance, pointer_force, wander_force
from ..systems.integrator import (
    ForceBreakdown,
    cap_velocity,
    integrate,
    update_breakout,
    update_cosmetics,
    wrap_position,
)
from ..types.audio import AudioCue, AudioSink
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import _lerp

logger = logging.getLogger(__name__)

_CLICK_RADIUS = 30.0
_SCATTER_RADIUS = 90.0
_SCATTER_IMPULSE = 6.0


class World:
    def __init__(self, config: SimulationConfig, audio_sink: Optional[AudioSink] = None):
        self._config = config
        self._audio_sink = audio_sink
        self._rng = SimRng(config.seed)
        self._grid = SpatialGrid(config.width, config.height, config.cell_size)
        self._agents: List[Agent] = []
        self._neighbor_indices: List[int] = []
        self._neighbor_dist_sq: List[float] = []
        self._pending_cues: List[AudioCue] = []
        self._metrics: TickMetrics | None = None
        self._init_state()
        self._bootstrap_population()

    @property
    def agents(self) -> List[Agent]:
        return self._agents

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def pointer(self) -> PointerState:
        return self._pointer

    @property
    def migration(self) -> migration_system.MigrationState:
        return self._migration

    @property
    def predator(self) -> predator_system.PredatorState:
        return self._predator

    @property
    def events(self) -> event_system.EventState:
        return self._events

    @property
    def density_glow(self) -> float:
        return self._density_glow

    def _init_state(self) -> None:
        config = self._config
        self._tick = 0
        self._sim_time = 0.0
        self._accumulator = 0.0
        self._density_glow = 0.0
        self._next_id = 0
        self._pointer = PointerState.centered(config.width, config.height)
        self._migration = migration_system.init_migration(config.width, config.height, config.migration, self._rng)
        self._predator = predator_system.init_predator(config.predator, self._rng)
        self._events = event_system.init_events(config.events, self._rng)

    def reset(self) -> None:
        self._agents.clear()
        self._grid.clear()
        self._pending_cues.clear()
        self._rng.reset()
        self._metrics = None
        self._init_state()
        self._bootstrap_population()

    def configure(
        self,
        speed: float | None = None,
        target_fish_count: int | None = None,
        gain: float | None = None,
    ) -> None:
        config = self._config
        if speed is not None:
            config.speed = clamp_speed(speed)
        if target_fish_count is not None:
            config.target_fish_count = clamp_fish_count(target_fish_count)
        if gain is not None:
            config.gain = clamp_gain(gain)
        logger.info(
            "Configuration updated: speed=%.2f target_fish_count=%d gain=%.2f",
            config.speed,
            config.target_fish_count,
            config.gain,
        )

    def resize(self, width: float, height: float) -> None:
        config = self._config
        config.width = max(1.0, float(width))
        config.height = max(1.0, float(height))
        self._grid.resize(config.width, config.height)
        migration_system.reseed_sub_schools(
            self._migration, config.width, config.height, config.migration, self._rng
        )
        logger.info("Viewport resized to %.0fx%.0f", config.width, config.height)

    def move_pointer(self, x: float, y: float) -> None:
        self._pointer.move_to(x, y)

    def click(self, x: float, y: float) -> AudioCue:
        """Collect the fish under the pointer and scatter its neighbors; bubbles otherwise."""
        self._grid.rebuild(self._agents)
        found = self._grid.collect_neighbors(
            self._agents, x, y, _CLICK_RADIUS, self._neighbor_indices, self._neighbor_dist_sq, len(self._agents)
        )
        if not found:
            self._emit(AudioCue.BUBBLE)
            return AudioCue.BUBBLE
        nearest = min(zip(self._neighbor_indices, self._neighbor_dist_sq), key=lambda item: item[1])[0]
        agents = self._agents
        config = self._config
        pointer = self._pointer

        def scatter(index: int, _dist_sq: float) -> None:
            other = agents[index]
            dx = other.position.x - x
            dy = other.position.y - y
            dist = math.hypot(dx, dy) + 0.001
            other.velocity.x += dx / dist * _SCATTER_IMPULSE
            other.velocity.y += dy / dist * _SCATTER_IMPULSE
            cap_velocity(other, pointer_distance(other, pointer), config)

        radius = min(_SCATTER_RADIUS, self._grid.cell_size)
        self._grid.for_each_neighbor(agents, nearest, radius, scatter, len(agents))
        self._emit(AudioCue.COLLECT)
        return AudioCue.COLLECT

    def advance(self, elapsed: float) -> int:
        """Drain wall-clock time in fixed steps; returns the number of ticks run."""
        config = self._config
        self._accumulator += max(0.0, min(elapsed, config.max_frame_time))
        steps = 0
        while self._accumulator >= config.time_step:
            self.step()
            self._accumulator -= config.time_step
            steps += 1
        return steps

    def compute_forces(self, index: int) -> tuple[ForceBreakdown, float]:
        """Force contributions for ``agents[index]`` against the current grid and subsystem state."""
        config = self._config
        agent = self._agents[index]
        self._grid.collect_neighbors(
            self._agents,
            agent.position.x,
            agent.position.y,
            config.flock.neighbor_radius,
            self._neighbor_indices,
            self._neighbor_dist_sq,
            config.flock.neighbor_cap,
            exclude=index,
        )
        agent.last_neighbors = len(self._neighbor_indices)
        forces = ForceBreakdown(
            flock=flock_force(agent, self._agents, self._neighbor_indices, config.flock),
            pointer=pointer_force(agent, self._pointer, config.width, config.height, config.pointer),
            wander=wander_force(agent, self._sim_time, config.flock),
            migration=migration_system.migration_force(
                self._migration, agent, config.width, config.height, config.migration
            ),
            predator=predator_system.predator_force(self._predator, agent, config.predator),
            events=event_system.event_force(self._events, agent),
        )
        return forces, pointer_distance(agent, self._pointer)

    def step(self) -> TickMetrics:
        start = perf_counter()
        config = self._config
        dt = config.time_step
        width = config.width
        height = config.height
        rng = self._rng

        self._pointer.advance(dt, config.pointer.smoothing)
        self._grid.rebuild(self._agents)
        migration_system.update_migration(
            self._migration, self._agents, width, height, dt, config.migration, rng
        )
        for cue in predator_system.update_predator(
            self._predator, self._pointer, self._events.active, width, height, dt, config.predator, rng
        ):
            self._emit(cue)
        event_system.update_events(
            self._events,
            self._pointer.idle,
            self._predator.active,
            self._migration,
            width,
            height,
            dt,
            config.events,
            rng,
        )

        speed_modifier = self._migration.speed_modifier
        neighbor_total = 0
        speed_total = 0.0
        for index, agent in enumerate(self._agents):
            update_breakout(agent, dt, rng, config.flock)
            forces, distance = self.compute_forces(index)
            ax, ay = forces.total()
            integrate(agent, ax, ay, dt, distance, speed_modifier, config)
            wrap_position(agent, width, height, config.wrap_margin)
            cap_velocity(agent, pointer_distance(agent, self._pointer), config)
            update_cosmetics(agent, dt, config.flock.wander_phase_rate)
            neighbor_total += agent.last_neighbors
            speed_total += agent.velocity.length()

        count = len(self._agents)
        avg_neighbors = neighbor_total / count if count else 0.0
        avg_speed = speed_total / count if count else 0.0
        self._density_glow = _lerp(self._density_glow, 1.0 if avg_neighbors > 6.0 else 0.0, 0.05)

        spawned, removed = population.reconcile(
            self._agents, config.target_fish_count, config.reconcile_batch, self._spawn_agent
        )
        if spawned or removed:
            logger.debug("Reconciled population: +%d -%d -> %d", spawned, removed, len(self._agents))

        self._tick += 1
        self._sim_time += dt
        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            self._tick,
            spawned,
            removed,
            elapsed_ms,
            (len(self._agents), avg_speed, avg_neighbors),
            len(self._events.events),
            self._predator.phase.value,
        )
        self._metrics = metrics
        return metrics

    def snapshot(self) -> Snapshot:
        config = self._config
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(
                self._tick,
                0,
                0,
                0.0,
                (len(self._agents), 0.0, 0.0),
                len(self._events.events),
                self._predator.phase.value,
            )
        cues = [cue.value for cue in self._pending_cues]
        self._pending_cues.clear()
        return Snapshot(
            tick=self._tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            pointer=self._pointer.to_payload(),
            world=SnapshotWorld(width=config.width, height=config.height, density_glow=self._density_glow),
            metadata=SnapshotMetadata(
                sim_dt=config.time_step,
                tick_rate=0.0 if config.time_step <= 0 else 1.0 / config.time_step,
                speed=config.speed,
                target_fish_count=config.target_fish_count,
                gain=config.gain,
                config_version=config.config_version,
            ),
            migration=self._migration.to_payload(),
            predator=self._predator.to_payload(),
            events=self._events.to_payload(),
            cues=cues,
        )

    def _emit(self, cue: AudioCue) -> None:
        self._pending_cues.append(cue)
        if self._audio_sink is not None:
            self._audio_sink(cue)

    def _spawn_agent(self) -> Agent:
        agent = population.spawn_agent(self._next_id, self._config.width, self._config.height, self._rng)
        self._next_id += 1
        return agent

    def _bootstrap_population(self) -> None:
        for _ in range(self._config.target_fish_count):
            self._agents.append(self._spawn_agent())

    @staticmethod
    def _agent_snapshot(agent: Agent) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "speed": agent.velocity.length(),
            "heading": agent.heading,
            "size": agent.size,
            "is_large": agent.is_large,
            "is_colorful": agent.is_colorful,
            "depth_layer": agent.depth_layer.value,
            "depth_scale": agent.depth_scale,
            "depth_alpha": agent.depth_alpha,
            "body_phase": agent.body_phase,
            "base_hue": agent.base_hue,
            "body_tone": agent.body_tone,
            "scale_shimmer": agent.scale_shimmer,
            "breakout": agent.breakout_timer > 0.0,
        }
