from __future__ import annotations

import math
import random
from numbers import Real
from types import MappingProxyType
from typing import Dict, List, Mapping, Tuple

import numpy as np
from numba import njit, prange

from junction_sim.config import SimulationConfig
from junction_sim.io.logging_utils import logger
from junction_sim.io.snapshots import SimulationSnapshot, build_snapshot
from junction_sim.metrics.stats import SimulationStats, ThroughputWindow

from . import control as ctl
from .geometry import angle_between, random_range
from .roundabout import ROUNDABOUT_KIND
from .types import Direction, Leader
from .vehicles import LEADER_CONE, MAX_MAX_SPEED, MIN_MAX_SPEED, Vehicle


@njit(inline="always")
def _angle_gap(a: float, b: float) -> float:
    d = abs(a - b) % (2.0 * math.pi)
    if d > math.pi:
        return 2.0 * math.pi - d
    return d


@njit(parallel=True)
def find_leaders_kernel(
    xs: np.ndarray,
    ys: np.ndarray,
    headings: np.ndarray,
    speeds: np.ndarray,
    ids: np.ndarray,
    scan_ranges: np.ndarray,
    cone: float,
    out_dist: np.ndarray,
    out_speed: np.ndarray,
) -> None:
    """
    Numba-parallel leader scan over one position snapshot.

    For every vehicle i, out_dist[i] / out_speed[i] receive the distance and
    speed of the nearest vehicle ahead (inf / 0 when there is none). Same
    rules as Vehicle.find_leader.
    """
    n = xs.shape[0]

    for i in prange(n):
        best = np.inf
        best_speed = 0.0

        for j in range(n):
            if j == i:
                continue

            dx = xs[j] - xs[i]
            dy = ys[j] - ys[i]
            d = math.sqrt(dx * dx + dy * dy)
            if d > scan_ranges[i]:
                continue

            if d < 1e-9:
                # coincident spawn: the older vehicle is ahead
                if ids[j] > ids[i]:
                    continue
            else:
                bearing = math.atan2(dy, dx)
                if _angle_gap(bearing, headings[i]) >= cone:
                    continue

            if d < best:
                best = d
                best_speed = speeds[j]

        out_dist[i] = best
        out_speed[i] = best_speed


def _require_number(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, Real):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")


class Simulation:
    """
    Owns the whole state of one junction run:
    - the control structure (signal or roundabout)
    - live vehicles, keyed by id in spawn order
    - spawning
    - statistics and the throughput window

    Driven by `tick(dt)` (sequential, every vehicle sees the current
    positions of the ones updated before it) or `tick_openmp(dt)` (leaders
    found for all vehicles from one snapshot by a Numba kernel).
    """

    def __init__(self, config: SimulationConfig | None = None) -> None:
        self.config = config or SimulationConfig()
        cfg = self.config

        self.intersection_type = cfg.intersection_type
        self.spawn_rate: float = cfg.spawn_rate
        self.simulation_speed: float = cfg.simulation_speed
        self.paused: bool = False
        self.green_duration: float = cfg.green_duration

        # ids keep growing across resets
        self._next_vehicle_id: int = 0

        self._reset_state()

    # ------------------------ PUBLIC API ------------------------

    @property
    def vehicles(self) -> List[Vehicle]:
        """Live vehicles in spawn order."""
        return list(self._vehicles.values())

    @property
    def arena(self) -> Mapping[int, Vehicle]:
        return MappingProxyType(self._vehicles)

    def tick(self, dt: float) -> None:
        """Advance by dt [ms] of wall time, scaled by the speed multiplier."""
        if self.paused:
            return
        for step in self._substeps(dt):
            self._step(step, parallel=False)

    def tick_openmp(self, dt: float) -> None:
        """
        Like `tick`, but leaders are computed up-front for all vehicles from
        the positions at the start of each sub-step. Following distances are
        therefore judged against last-step positions, which is slightly
        tighter at high density than the sequential update.
        """
        if self.paused:
            return
        for step in self._substeps(dt):
            self._step(step, parallel=True)

    def spawn_vehicle(self) -> Vehicle | None:
        """
        Spawn one vehicle on a random arm heading to a random other arm.
        Returns None when the live count is already at max_vehicles.
        """
        if len(self._vehicles) >= self.config.max_vehicles:
            self.stats.spawns_skipped += 1
            return None

        entry = self.rng.choice(list(Direction))
        exit = self.rng.choice([d for d in Direction if d != entry])
        path = ctl.generate_path(self.control, entry, exit)
        start, nxt = path[0], path[1]

        vid = self._next_vehicle_id
        self._next_vehicle_id += 1

        v = Vehicle(
            id=vid,
            x=start.x,
            y=start.y,
            heading=angle_between(start.x, start.y, nxt.x, nxt.y),
            path=tuple(path),
            max_speed=random_range(self.rng, MIN_MAX_SPEED, MAX_MAX_SPEED),
            entry=entry,
            exit=exit,
        )
        self.add_vehicle(v)

        logger.debug(f"t={self.time:.0f} ms: spawned vehicle {vid} {entry.name} -> {exit.name}")
        return v

    def add_vehicle(self, vehicle: Vehicle) -> None:
        """Put an already built vehicle on the road. Counts as a spawn."""
        if vehicle.id in self._vehicles:
            raise ValueError(f"Vehicle {vehicle.id} is already live")

        self._vehicles[vehicle.id] = vehicle
        self._next_vehicle_id = max(self._next_vehicle_id, vehicle.id + 1)
        self.stats.record_spawned()

    def reset(self) -> None:
        """
        Drop every vehicle and all statistics and rebuild the control
        structure. Spawn rate, speed multiplier, pause flag and green
        duration are kept.
        """
        self._reset_state()
        logger.debug(f"Simulation reset ({self.intersection_type})")

    def set_spawn_rate(self, rate: float) -> None:
        _require_number("spawn rate", rate)
        self.spawn_rate = rate

    def set_simulation_speed(self, multiplier: float) -> None:
        _require_number("simulation speed", multiplier)
        self.simulation_speed = multiplier

    def set_paused(self, paused: bool) -> None:
        self.paused = bool(paused)

    def set_green_duration(self, duration: float) -> None:
        _require_number("green duration", duration)
        self.green_duration = duration
        ctl.set_green_duration(self.control, duration)

    def snapshot(self) -> SimulationSnapshot:
        return build_snapshot(self)

    def get_metrics_summary(self, total_sim_time: float) -> Tuple[int, float, float]:
        """Return the aggregated simulation metrics."""
        return self.stats.compute_summary(total_sim_time)

    def get_debug_stats(self) -> Dict[str, int]:
        """
        Return simple debug stats:
        - total spawned vehicles
        - how many vehicles are still in the world
        - spawns dropped by the vehicle cap
        - vehicles registered on the ring (0 at a signal)
        """
        circulating = len(self.control.circulating) if self.control.kind == ROUNDABOUT_KIND else 0
        return {
            "total_spawned": self.stats.total_vehicles,
            "vehicles_in_world_end": len(self._vehicles),
            "spawns_skipped": self.stats.spawns_skipped,
            "circulating": circulating,
        }

    # ------------------------ INTERNAL LOGIC ------------------------

    def _reset_state(self) -> None:
        cfg = self.config

        self.time: float = 0.0
        self.spawn_timer: float = 0.0
        self._vehicles: Dict[int, Vehicle] = {}

        self.stats = SimulationStats()
        self.throughput_window = ThroughputWindow(cfg.throughput_horizon)

        self.rng = random.Random(cfg.random_seed)
        self.control = ctl.make_control(
            self.intersection_type,
            green_duration=self.green_duration,
            yellow_duration=cfg.yellow_duration,
        )

    def _substeps(self, dt: float) -> List[float]:
        """
        Split the scaled step into equal pieces no longer than max_step, so a
        vehicle never moves past a waypoint's capture radius in one update.
        """
        effective = dt * self.simulation_speed
        if not math.isfinite(effective) or effective <= 0.0:
            return []

        n = max(1, math.ceil(effective / self.config.max_step))
        return [effective / n] * n

    def _step(self, dt: float, parallel: bool) -> None:
        self.time += dt

        # the control structure moves first, vehicles see this step's phase
        ctl.advance_control(self.control, dt)

        self._spawn_vehicles(dt)

        if parallel:
            self._update_vehicles_openmp(dt)
        else:
            self._update_vehicles_sequential(dt)

        ctl.sweep_registry(self.control, self._vehicles)
        self._remove_finished_and_update_metrics()

        self.throughput_window.purge(self.time)
        self.stats.refresh(self._vehicles.values(), len(self.throughput_window))

    def _spawn_vehicles(self, dt: float) -> None:
        """
        Spawn timer: every 1000 / spawn_rate ms one vehicle is due. A rate
        of zero or less never spawns and builds up no backlog.
        """
        if self.spawn_rate <= 0:
            self.spawn_timer = 0.0
            return

        interval = 1000.0 / self.spawn_rate
        self.spawn_timer += dt
        while self.spawn_timer >= interval:
            self.spawn_timer -= interval
            self.spawn_vehicle()

    # ---------- Sequential update ----------

    def _update_vehicles_sequential(self, dt: float) -> None:
        arena = self.arena
        for v in list(self._vehicles.values()):
            v.advance(dt, arena, self.control)

    # ---------- OpenMP-like update using Numba ----------

    def _compute_leaders(self) -> Dict[int, Leader]:
        vehicles = list(self._vehicles.values())
        n = len(vehicles)
        if n == 0:
            return {}

        xs = np.empty(n, dtype=np.float64)
        ys = np.empty(n, dtype=np.float64)
        headings = np.empty(n, dtype=np.float64)
        speeds = np.empty(n, dtype=np.float64)
        ids = np.empty(n, dtype=np.int64)
        scan_ranges = np.empty(n, dtype=np.float64)

        for i, v in enumerate(vehicles):
            xs[i] = v.x
            ys[i] = v.y
            headings[i] = v.heading
            speeds[i] = v.speed
            ids[i] = v.id
            scan_ranges[i] = v.leader_range

        out_dist = np.empty(n, dtype=np.float64)
        out_speed = np.empty(n, dtype=np.float64)

        find_leaders_kernel(
            xs,
            ys,
            headings,
            speeds,
            ids,
            scan_ranges,
            LEADER_CONE,
            out_dist,
            out_speed,
        )

        leaders: Dict[int, Leader] = {}
        for i, v in enumerate(vehicles):
            d = float(out_dist[i])
            leaders[v.id] = Leader(d, float(out_speed[i])) if math.isfinite(d) else Leader.none()
        return leaders

    def _update_vehicles_openmp(self, dt: float) -> None:
        leaders = self._compute_leaders()
        arena = self.arena
        for v in list(self._vehicles.values()):
            v.advance(dt, arena, self.control, leader=leaders[v.id])

    # ---------- Finish handling ----------

    def _remove_finished_and_update_metrics(self) -> None:
        finished = [v for v in self._vehicles.values() if v.completed]

        for v in finished:
            self.stats.record_completed(v)
            self.throughput_window.record(self.time)
            ctl.release_vehicle(self.control, v)
            del self._vehicles[v.id]

            logger.debug(
                f"t={self.time:.0f} ms: vehicle {v.id} done, waited {v.total_wait_time:.0f} ms"
            )
