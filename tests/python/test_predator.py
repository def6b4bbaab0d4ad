from __future__ import annotations

import math

from pygame.math import Vector2

from shoal.sim.core.agent import Agent
from shoal.sim.core.config import PredatorConfig
from shoal.sim.core.pointer import PointerState
from shoal.sim.core.rng import SimRng
from shoal.sim.systems.predator import (
    PredatorPhase,
    PredatorState,
    predator_force,
    update_predator,
)
from shoal.sim.types.audio import AudioCue

DT = 1.0 / 60.0
WIDTH = 1000.0
HEIGHT = 700.0


def _run_until(state, pointer, config, rng, phase, max_seconds, follow=False):
    cues = []
    for _ in range(int(max_seconds / DT)):
        if follow and state.shark is not None:
            pointer.x = state.shark.x
            pointer.y = state.shark.y
        cues.extend(update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng))
        if state.phase is phase:
            break
    return cues


def test_idle_waits_for_events_to_clear():
    config = PredatorConfig()
    state = PredatorState(timer=0.0)
    pointer = PointerState(x=0, y=0)
    rng = SimRng(1)

    cues = update_predator(state, pointer, True, WIDTH, HEIGHT, DT, config, rng)
    assert cues == []
    assert state.phase is PredatorPhase.IDLE
    assert state.shark is None

    cues = update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)
    assert cues == [AudioCue.PREDATOR_SPAWN]
    assert state.phase is PredatorPhase.APPROACHING
    assert state.shark is not None
    assert state.shark.flee_meter == 0.0
    assert state.spawns == 1


def test_pointer_light_repels_shark():
    config = PredatorConfig()
    state = PredatorState(timer=0.0)
    pointer = PointerState(x=-5000, y=-5000)
    rng = SimRng(2)
    update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)

    meter_history = []
    cues = []
    for _ in range(int(config.max_life_seconds / DT)):
        pointer.x = state.shark.x
        pointer.y = state.shark.y
        cues.extend(update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng))
        if state.phase is not PredatorPhase.APPROACHING:
            break
        meter_history.append(state.shark.flee_meter)

    assert state.phase is PredatorPhase.FLEEING
    assert AudioCue.PREDATOR_VICTORY in cues
    assert state.shark.repelled
    assert state.shark.flee_meter >= 1.0
    assert all(b >= a for a, b in zip(meter_history, meter_history[1:]))
    assert state.shark.life_elapsed < config.max_life_seconds


def test_meter_ignores_pointer_before_penetration_threshold():
    config = PredatorConfig()
    state = PredatorState(timer=0.0)
    pointer = PointerState(x=0, y=0)
    rng = SimRng(3)
    update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)
    ticks = int(config.approach_seconds * config.meter_start_progress / DT) - 2
    for _ in range(ticks):
        pointer.x = state.shark.x
        pointer.y = state.shark.y
        update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)
    assert state.shark.flee_meter == 0.0


def test_shark_gives_up_then_retreats_and_despawns():
    config = PredatorConfig()
    state = PredatorState(timer=0.0)
    pointer = PointerState(x=-5000, y=-5000)
    rng = SimRng(4)
    update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)

    cues = _run_until(state, pointer, config, rng, PredatorPhase.FLEEING, config.max_life_seconds + 1)
    assert state.phase is PredatorPhase.FLEEING
    assert AudioCue.PREDATOR_VICTORY not in cues
    assert not state.shark.repelled

    _run_until(state, pointer, config, rng, PredatorPhase.IDLE, config.flee_seconds + 1)
    assert state.phase is PredatorPhase.IDLE
    assert state.shark is None
    low, high = config.idle_seconds
    assert low <= state.timer <= high


def test_retreat_reverses_entry_vector():
    config = PredatorConfig()
    state = PredatorState(timer=0.0)
    pointer = PointerState(x=-5000, y=-5000)
    rng = SimRng(6)
    update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)
    _run_until(state, pointer, config, rng, PredatorPhase.FLEEING, config.max_life_seconds + 1)
    shark = state.shark
    update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)
    moved_x = shark.x - shark.flee_start_x
    moved_y = shark.y - shark.flee_start_y
    assert moved_x * shark.dir_x + moved_y * shark.dir_y < 0.0


def test_respawn_resets_flee_meter():
    config = PredatorConfig(idle_seconds=(0.1, 0.2))
    state = PredatorState(timer=0.0)
    pointer = PointerState(x=0, y=0)
    rng = SimRng(7)
    update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)
    _run_until(state, pointer, config, rng, PredatorPhase.FLEEING, config.max_life_seconds + 1, follow=True)
    assert state.shark.flee_meter > 0.0
    _run_until(state, pointer, config, rng, PredatorPhase.IDLE, config.flee_seconds + 1)
    cues = _run_until(state, pointer, config, rng, PredatorPhase.APPROACHING, 1.0)
    assert cues == [AudioCue.PREDATOR_SPAWN]
    assert state.shark.flee_meter == 0.0
    assert state.spawns == 2


def test_force_repels_agents_and_weakens_while_fleeing():
    config = PredatorConfig()
    state = PredatorState(timer=0.0)
    pointer = PointerState(x=-5000, y=-5000)
    rng = SimRng(8)
    agent = Agent(id=42, position=Vector2(0, 0), velocity=Vector2(), size=4.0)
    assert predator_force(state, agent, config) == (0.0, 0.0)

    update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)
    shark = state.shark
    agent.position.update(shark.x + 100, shark.y)
    ax, ay = predator_force(state, agent, config)
    assert ax > 0.0
    approach_mag = math.hypot(ax, ay)

    _run_until(state, pointer, config, rng, PredatorPhase.FLEEING, config.max_life_seconds + 1)
    for _ in range(30):
        update_predator(state, pointer, False, WIDTH, HEIGHT, DT, config, rng)
    shark = state.shark
    agent.position.update(shark.x + 100, shark.y)
    flee_mag = math.hypot(*predator_force(state, agent, config))
    assert flee_mag < approach_mag


def test_jitter_is_stable_per_agent():
    config = PredatorConfig()
    state = PredatorState(timer=0.0)
    rng = SimRng(9)
    update_predator(state, PointerState(x=0, y=0), False, WIDTH, HEIGHT, DT, config, rng)
    shark = state.shark
    first = Agent(id=1, position=Vector2(shark.x + 50, shark.y), velocity=Vector2(), size=4.0)
    second = Agent(id=2, position=Vector2(shark.x + 50, shark.y), velocity=Vector2(), size=4.0)
    assert predator_force(state, first, config) == predator_force(state, first, config)
    assert predator_force(state, first, config) != predator_force(state, second, config)
