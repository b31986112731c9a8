import itertools
import math

import numpy as np
import pytest

from junction_sim.config import SimulationConfig
from junction_sim.metrics.stats import SimulationStats
from junction_sim.model.geometry import distance
from junction_sim.model.roundabout import EXIT_MARGIN
from junction_sim.model.simulation import Simulation, find_leaders_kernel
from junction_sim.model.types import Direction, VehicleState
from junction_sim.model.vehicles import ACCELERATION, FRAME_MS, LEADER_CONE, MIN_GAP


def _run(sim, frames, parallel=False):
    for _ in range(frames):
        if parallel:
            sim.tick_openmp(FRAME_MS)
        else:
            sim.tick(FRAME_MS)


def _positions(sim):
    return [(round(v.x, 9), round(v.y, 9)) for v in sim.vehicles]


def test_reset_is_idempotent():
    sim = Simulation(SimulationConfig(intersection_type="traffic-light", spawn_rate=3.0))
    _run(sim, 300)
    assert sim.vehicles

    sim.reset()
    first = sim.snapshot()
    sim.reset()
    second = sim.snapshot()

    assert first == second
    assert first.vehicles == ()
    assert first.time == 0.0
    assert sim.stats == SimulationStats()
    assert sim.control.phase == 0
    assert sim.control.elapsed == 0.0
    assert sim.spawn_timer == 0.0
    assert len(sim.throughput_window) == 0


def test_reset_replays_the_same_run():
    cfg = SimulationConfig(spawn_rate=2.0, random_seed=11)
    sim = Simulation(cfg)
    _run(sim, 200)
    sim.reset()
    _run(sim, 200)

    fresh = Simulation(cfg)
    _run(fresh, 200)

    assert _positions(sim) == _positions(fresh)
    # ids keep counting up across resets
    assert sim.vehicles[0].id > fresh.vehicles[0].id


def test_same_seed_same_run():
    cfg = SimulationConfig(spawn_rate=1.5, random_seed=7)
    a = Simulation(cfg)
    b = Simulation(cfg)
    _run(a, 300)
    _run(b, 300)
    assert _positions(a) == _positions(b)


@pytest.mark.parametrize("kind", ["roundabout", "traffic-light"])
def test_zero_spawn_rate_spawns_nothing(kind):
    sim = Simulation(SimulationConfig(intersection_type=kind, spawn_rate=0.0))
    _run(sim, 600)
    assert sim.vehicles == []
    assert sim.stats.total_vehicles == 0
    assert sim.stats.efficiency == 100.0


def test_spawn_rate_dropped_to_zero_builds_no_backlog():
    sim = Simulation(SimulationConfig(spawn_rate=1.0))
    sim.set_spawn_rate(0)
    _run(sim, 600)
    sim.set_spawn_rate(1.0)
    sim.tick(FRAME_MS)
    assert sim.stats.total_vehicles == 0


def test_throughput_counts_trailing_minute(quiet_config):
    sim = Simulation(quiet_config)
    sim.time = 70_000.0
    for t in (0.0, 5_000.0, 20_000.0, 40_000.0, 70_000.0):
        sim.throughput_window.record(t)

    sim.tick(FRAME_MS)

    assert sim.stats.throughput == 3
    assert list(sim.throughput_window) == [20_000.0, 40_000.0, 70_000.0]


def test_paused_tick_is_noop():
    sim = Simulation(SimulationConfig(spawn_rate=5.0))
    sim.set_paused(True)
    _run(sim, 120)
    assert sim.time == 0.0
    assert sim.vehicles == []

    sim.set_paused(False)
    sim.tick(FRAME_MS)
    assert sim.time == pytest.approx(FRAME_MS)


def test_speed_multiplier_scales_time(quiet_config):
    sim = Simulation(quiet_config)
    sim.set_simulation_speed(2)
    sim.tick(FRAME_MS)
    assert sim.time == pytest.approx(2 * FRAME_MS)

    sim.set_simulation_speed(0)
    sim.tick(FRAME_MS)
    assert sim.time == pytest.approx(2 * FRAME_MS)


def test_long_frames_are_split(quiet_config):
    sim = Simulation(quiet_config)
    assert sim._substeps(200.0) == [50.0, 50.0, 50.0, 50.0]
    assert sim._substeps(math.nan) == []

    sim.tick(200.0)
    assert sim.time == pytest.approx(200.0)


@pytest.mark.parametrize("bad", ["fast", None, True, [1]])
def test_setters_reject_non_numbers(quiet_config, bad):
    sim = Simulation(quiet_config)
    with pytest.raises(TypeError):
        sim.set_spawn_rate(bad)
    with pytest.raises(TypeError):
        sim.set_simulation_speed(bad)
    with pytest.raises(TypeError):
        sim.set_green_duration(bad)


def test_green_duration_survives_reset():
    sim = Simulation(SimulationConfig(intersection_type="traffic-light"))
    sim.set_green_duration(2000)
    assert sim.control.green_duration == 2000
    sim.reset()
    assert sim.control.green_duration == 2000
    assert sim.control.red_duration == 2000


def test_green_duration_on_roundabout_is_ignored(quiet_config):
    sim = Simulation(quiet_config)
    sim.set_green_duration(2000)
    assert sim.control.kind == "roundabout"


def test_vehicle_cap():
    sim = Simulation(SimulationConfig(spawn_rate=100.0, max_vehicles=3))
    _run(sim, 60)
    assert len(sim.vehicles) == 3
    assert sim.stats.total_vehicles == 3
    assert sim.stats.spawns_skipped > 0
    assert sim.get_debug_stats()["spawns_skipped"] == sim.stats.spawns_skipped


def test_spawned_vehicle_starts_on_its_path(quiet_config):
    sim = Simulation(quiet_config)
    for _ in range(20):
        v = sim.spawn_vehicle()
        assert v.entry != v.exit
        assert (v.x, v.y) == tuple(v.path[0])
        assert 1.8 <= v.max_speed < 2.2
        assert v.speed == 0.0


@pytest.mark.parametrize("kind", ["roundabout", "traffic-light"])
def test_completed_vehicle_is_retired(kind):
    sim = Simulation(SimulationConfig(intersection_type=kind, spawn_rate=0.0))
    v = sim.spawn_vehicle()
    v.total_wait_time = 1500.0
    v.waypoint_index = len(v.path)
    if kind == "roundabout":
        sim.control.register(v)

    sim.tick(FRAME_MS)

    assert sim.vehicles == []
    assert sim.stats.completed_vehicles == 1
    assert sim.stats.avg_wait_time == pytest.approx(1.5)
    assert sim.stats.throughput == 1
    if kind == "roundabout":
        assert not sim.control.circulating


@pytest.mark.parametrize("kind", ["roundabout", "traffic-light"])
def test_traffic_flows_through(kind):
    sim = Simulation(SimulationConfig(intersection_type=kind, spawn_rate=1.0))
    for _ in range(60 * 60):
        sim.tick(FRAME_MS)
        stats = sim.stats
        assert 0.0 <= stats.efficiency <= 100.0
        assert stats.queue_length <= len(sim.vehicles)

    assert sim.stats.completed_vehicles > 0
    assert sim.stats.throughput > 0
    summary = sim.get_metrics_summary(sim.time)
    assert summary[0] == sim.stats.completed_vehicles


def test_ring_registry_only_holds_live_nearby_vehicles():
    sim = Simulation(SimulationConfig(spawn_rate=2.0))
    limit = sim.control.outer_radius + EXIT_MARGIN
    for _ in range(30 * 60):
        sim.tick(FRAME_MS)
        for vid in sim.control.circulating:
            v = sim.arena[vid]
            assert not v.completed
            assert distance(0.0, 0.0, v.x, v.y) <= limit


def test_parallel_tick_runs(quiet_config):
    sim = Simulation(SimulationConfig(spawn_rate=2.0))
    _run(sim, 600, parallel=True)
    assert sim.stats.total_vehicles > 0
    assert sim.time == pytest.approx(600 * FRAME_MS)


def test_leader_kernel_matches_scalar_scan(make_vehicle):
    vehicles = [
        make_vehicle(vid=0),
        make_vehicle(vid=1, x=20.0, y=20.0),
        make_vehicle(vid=2, x=0.0, y=20.0),
        make_vehicle(vid=3, x=20.0, heading=3.14159),
        make_vehicle(vid=4, x=30.0, y=2.0, heading=0.3),
        make_vehicle(vid=5, x=30.0, y=2.0, heading=0.3),
        make_vehicle(vid=6, x=90.0),
    ]
    n = len(vehicles)
    out_dist = np.empty(n)
    out_speed = np.empty(n)
    for i, v in enumerate(vehicles):
        v.speed = 0.1 * i

    find_leaders_kernel(
        np.array([v.x for v in vehicles]),
        np.array([v.y for v in vehicles]),
        np.array([v.heading for v in vehicles]),
        np.array([v.speed for v in vehicles]),
        np.array([v.id for v in vehicles], dtype=np.int64),
        np.array([v.leader_range for v in vehicles]),
        LEADER_CONE,
        out_dist,
        out_speed,
    )

    for i, v in enumerate(vehicles):
        expected = v.find_leader(vehicles)
        if expected.found:
            assert out_dist[i] == pytest.approx(expected.distance)
            assert out_speed[i] == pytest.approx(expected.speed)
        else:
            assert math.isinf(out_dist[i])


@pytest.mark.parametrize("kind", ["roundabout", "traffic-light"])
def test_vehicles_in_the_junction_never_overlap(kind):
    sim = Simulation(SimulationConfig(intersection_type=kind, spawn_rate=1.5))
    radius = 120.0
    half_length = MIN_GAP / 2

    for _ in range(60 * 60):
        sim.tick(FRAME_MS)
        inside = [v for v in sim.vehicles if distance(0.0, 0.0, v.x, v.y) < radius]
        for a, b in itertools.combinations(inside, 2):
            assert distance(a.x, a.y, b.x, b.y) >= half_length, (sim.time, a.id, b.id)

    assert sim.stats.completed_vehicles > 0


def _from_north_in_stop_band(make_vehicle, y, speed):
    # entering from the north, heading south through the box
    return make_vehicle(vid=0, x=7.0, y=y, heading=math.pi / 2, path=((7.0, 300.0),),
                        speed=speed, entry=Direction.NORTH, exit=Direction.SOUTH)


def test_light_turning_green_releases_waiting_vehicle_same_tick(make_vehicle):
    sim = Simulation(SimulationConfig(intersection_type="traffic-light", spawn_rate=0.0))
    signal = sim.control
    for dt in (4000.0, 1000.0, 4000.0):
        signal.advance(dt)
    assert signal.phase == 3
    signal.advance(1000.0 - FRAME_MS / 2)

    v = _from_north_in_stop_band(make_vehicle, y=-68.0, speed=0.0)
    sim.add_vehicle(v)
    assert not signal.is_green_for(Direction.NORTH)

    sim.tick(FRAME_MS)

    assert signal.phase == 0
    assert v.committed
    assert v.state is VehicleState.IN_CONTROLLED_ZONE
    assert v.speed == pytest.approx(ACCELERATION)
    assert v.y > -68.0
    assert v.total_wait_time == 0.0


def test_light_turning_red_holds_vehicle_same_tick(make_vehicle):
    sim = Simulation(SimulationConfig(intersection_type="traffic-light", spawn_rate=0.0))
    signal = sim.control
    signal.advance(4000.0)
    assert signal.phase == 1
    signal.advance(1000.0 - FRAME_MS / 2)

    v = _from_north_in_stop_band(make_vehicle, y=-73.5, speed=1.0)
    sim.add_vehicle(v)
    # still yellow: this vehicle would be let through
    assert signal.is_yellow_for(Direction.NORTH)

    sim.tick(FRAME_MS)

    assert signal.phase == 2
    assert not v.committed
    assert v.state is VehicleState.WAITING
    assert v.total_wait_time == pytest.approx(FRAME_MS)
    assert v.speed < 1.0


def test_add_vehicle_counts_as_spawn(quiet_config, make_vehicle):
    sim = Simulation(quiet_config)
    sim.add_vehicle(make_vehicle(vid=5))
    assert sim.stats.total_vehicles == 1
    assert [v.id for v in sim.vehicles] == [5]

    with pytest.raises(ValueError):
        sim.add_vehicle(make_vehicle(vid=5))

    assert sim.spawn_vehicle().id == 6
