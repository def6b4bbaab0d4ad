from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from shoal.sim.core.agent import Agent
from shoal.sim.core.config import EventConfig
from shoal.sim.core.rng import SimRng
from shoal.sim.systems.events import (
    DepthShiftEvent,
    EventKind,
    EventState,
    MigrationBurstEvent,
    PressureWaveEvent,
    SplitEvent,
    VortexEvent,
    envelope,
    event_force,
    pick_kind,
    should_spawn,
    single_event_force,
    update_events,
)
from shoal.sim.systems.migration import MigrationState

DT = 1.0 / 60.0


def _agent(x: float, y: float) -> Agent:
    return Agent(id=0, position=Vector2(x, y), velocity=Vector2(), size=4.0)


def _migration() -> MigrationState:
    return MigrationState(angle=0.0, target_angle=0.0, center_x=500.0, center_y=350.0)


def test_envelope_rises_sustains_and_fades():
    assert envelope(0.0, 10.0, 2.0, 3.0) == 0.0
    rising = [envelope(t * 0.1, 10.0, 2.0, 3.0) for t in range(21)]
    assert all(b >= a for a, b in zip(rising, rising[1:]))
    assert envelope(2.0, 10.0, 2.0, 3.0) == 1.0
    assert envelope(5.0, 10.0, 2.0, 3.0) == 1.0
    assert envelope(8.5, 10.0, 2.0, 3.0) == approx(0.5)
    fading = [envelope(7.0 + t * 0.1, 10.0, 2.0, 3.0) for t in range(31)]
    assert all(b <= a for a, b in zip(fading, fading[1:]))
    assert envelope(10.0, 10.0, 2.0, 3.0) == 0.0


def test_idle_pointer_triggers_only_without_active_events():
    config = EventConfig()
    state = EventState(window=20.0)
    assert should_spawn(state, pointer_idle=6.0, predator_active=False, config=config)
    assert not should_spawn(state, pointer_idle=4.0, predator_active=False, config=config)
    state.events.append(MigrationBurstEvent(max_life=5, rise_time=1, fade_time=1, strength=1))
    assert not should_spawn(state, pointer_idle=6.0, predator_active=False, config=config)


def test_window_trigger_allows_a_second_event_but_not_a_third():
    config = EventConfig()
    state = EventState(window=15.0, since_last=16.0)
    state.events.append(MigrationBurstEvent(max_life=5, rise_time=1, fade_time=1, strength=1))
    assert should_spawn(state, pointer_idle=0.0, predator_active=False, config=config)
    state.events.append(MigrationBurstEvent(max_life=5, rise_time=1, fade_time=1, strength=1))
    assert not should_spawn(state, pointer_idle=0.0, predator_active=False, config=config)


def test_cooldown_and_predator_block_spawning():
    config = EventConfig()
    state = EventState(window=15.0, since_last=30.0)
    assert not should_spawn(state, pointer_idle=60.0, predator_active=True, config=config)
    state.cooldown = 1.0
    assert not should_spawn(state, pointer_idle=60.0, predator_active=False, config=config)


def test_director_never_exceeds_two_events():
    config = EventConfig(window_seconds=(0.5, 1.0), cooldown_seconds=(0.1, 0.2))
    rng = SimRng(12)
    state = EventState(window=0.5)
    migration = _migration()
    for _ in range(20_000):
        update_events(state, 100.0, False, migration, 1000, 700, DT, config, rng)
        assert len(state.events) <= 2
        for event in state.events:
            assert 0.0 <= event.intensity <= 1.0
            assert event.life < event.max_life
    assert state.created > 10


def test_director_stays_quiet_while_predator_is_active():
    config = EventConfig(window_seconds=(0.5, 1.0), cooldown_seconds=(0.1, 0.2))
    rng = SimRng(13)
    state = EventState(window=0.5)
    for _ in range(5_000):
        assert update_events(state, 100.0, True, _migration(), 1000, 700, DT, config, rng) is None
    assert state.created == 0
    assert state.events == []


def test_new_event_sets_cooldown():
    config = EventConfig()
    rng = SimRng(14)
    state = EventState(window=20.0)
    event = update_events(state, 10.0, False, _migration(), 1000, 700, DT, config, rng)
    assert event is not None
    low, high = config.cooldown_seconds
    assert low <= state.cooldown <= high
    assert state.since_last == 0.0


def test_events_expire_at_max_life():
    config = EventConfig()
    rng = SimRng(15)
    state = EventState(window=1_000.0, cooldown=1_000.0)
    state.events.append(MigrationBurstEvent(max_life=1.0, rise_time=0.2, fade_time=0.2, strength=1.0))
    for _ in range(59):
        update_events(state, 0.0, False, _migration(), 1000, 700, DT, config, rng)
    assert len(state.events) == 1
    for _ in range(3):
        update_events(state, 0.0, False, _migration(), 1000, 700, DT, config, rng)
    assert state.events == []


def test_weighted_pick_respects_zero_weights():
    config = EventConfig(weights={"vortex": 0.0, "pressure_wave": 0.0, "migration_burst": 0.0, "depth_shift": 0.0, "split": 1.0})
    rng = SimRng(16)
    assert {pick_kind(config, rng) for _ in range(200)} == {EventKind.SPLIT}


def test_vortex_spins_inside_radius_only():
    vortex = VortexEvent(max_life=10, rise_time=1, fade_time=1, strength=2.0, center_x=0, center_y=0, radius=100, rotation=1.0)
    vortex.intensity = 1.0
    ax, ay = single_event_force(vortex, _agent(50, 0))
    assert ay > 0.0
    assert ax < 0.0
    vortex.rotation = -1.0
    _, ay_reversed = single_event_force(vortex, _agent(50, 0))
    assert ay_reversed == approx(-ay)
    assert single_event_force(vortex, _agent(150, 0)) == (0.0, 0.0)


def test_pressure_wave_pushes_out_then_draws_in():
    wave = PressureWaveEvent(
        max_life=10, rise_time=0.5, fade_time=0.5, strength=4.0, origin_x=0, origin_y=0, dir_x=1, dir_y=0, speed=0, radius=100
    )
    wave.intensity = 1.0
    wave.life = 2.0
    out_ax, _ = single_event_force(wave, _agent(40, 0))
    wave.life = 7.0
    in_ax, _ = single_event_force(wave, _agent(40, 0))
    assert out_ax > 0.0
    assert in_ax < 0.0
    assert abs(in_ax) < abs(out_ax)


def test_pressure_wave_front_travels():
    wave = PressureWaveEvent(
        max_life=10, rise_time=0.5, fade_time=0.5, strength=4.0, origin_x=0, origin_y=0, dir_x=0, dir_y=1, speed=100, radius=50
    )
    wave.life = 3.0
    assert wave.front() == (approx(0.0), approx(300.0))
    assert wave.compression_phase == approx(0.3)


def test_burst_is_uniform_across_positions():
    burst = MigrationBurstEvent(max_life=5, rise_time=1, fade_time=1, strength=1.5, dir_x=0.6, dir_y=0.8)
    burst.intensity = 0.5
    assert single_event_force(burst, _agent(0, 0)) == single_event_force(burst, _agent(900, 500))
    assert single_event_force(burst, _agent(0, 0)) == (approx(0.45), approx(0.6))


def test_depth_shift_drives_along_one_axis():
    shift = DepthShiftEvent(max_life=5, rise_time=1, fade_time=1, strength=2.0, direction=-1.0)
    shift.intensity = 1.0
    ax, ay = single_event_force(shift, _agent(100, 0))
    assert ay == approx(-2.0)
    assert abs(ax) <= 0.8 + 1e-9


def test_split_pulls_toward_nearest_center_with_capped_force():
    split = SplitEvent(max_life=5, rise_time=1, fade_time=1, strength=2.0, centers=[(0.0, 0.0), (1000.0, 0.0)], cap_radius=200)
    split.intensity = 1.0
    ax, _ = single_event_force(split, _agent(300, 0))
    assert ax < 0.0
    ax, _ = single_event_force(split, _agent(700, 0))
    assert ax > 0.0
    close = math.hypot(*single_event_force(split, _agent(50, 0)))
    far = math.hypot(*single_event_force(split, _agent(400, 0)))
    assert close < far
    assert far == approx(2.0, rel=1e-3)


def test_event_forces_sum_without_interaction():
    first = MigrationBurstEvent(max_life=5, rise_time=1, fade_time=1, strength=1.0, dir_x=1, dir_y=0)
    second = DepthShiftEvent(max_life=5, rise_time=1, fade_time=1, strength=1.0, direction=1.0)
    first.intensity = second.intensity = 1.0
    state = EventState(window=10.0, events=[first, second])
    agent = _agent(10, 0)
    fx, fy = single_event_force(first, agent)
    sx, sy = single_event_force(second, agent)
    assert event_force(state, agent) == (approx(fx + sx), approx(fy + sy))


def test_event_payload_names_its_kind():
    vortex = VortexEvent(max_life=10, rise_time=1, fade_time=1, strength=2.0)
    payload = vortex.to_payload()
    assert payload["kind"] == "vortex"
    assert payload["radius"] == vortex.radius
    assert payload["max_life"] == 10
