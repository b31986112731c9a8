from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Deque, Iterable, Iterator, Tuple

from junction_sim.model.vehicles import STOPPED_SPEED

if TYPE_CHECKING:
    from junction_sim.model.vehicles import Vehicle


class ThroughputWindow:
    """
    Completion timestamps [ms] inside a trailing horizon.
    Timestamps are recorded in non-decreasing order.
    """

    def __init__(self, horizon: float = 60_000.0) -> None:
        self.horizon = horizon
        self._timestamps: Deque[float] = deque()

    def record(self, t: float) -> None:
        self._timestamps.append(t)

    def purge(self, now: float) -> int:
        """Drop entries at least `horizon` old. Returns how many were dropped."""
        dropped = 0
        while self._timestamps and now - self._timestamps[0] >= self.horizon:
            self._timestamps.popleft()
            dropped += 1
        return dropped

    def clear(self) -> None:
        self._timestamps.clear()

    def __len__(self) -> int:
        return len(self._timestamps)

    def __iter__(self) -> Iterator[float]:
        return iter(self._timestamps)


@dataclass
class SimulationStats:
    # instantaneous
    throughput: int = 0            # completions in the trailing window [veh/min for 60 s]
    avg_wait_time: float = 0.0     # [s]
    queue_length: int = 0
    efficiency: float = 100.0      # [%] moving / present

    # cumulative
    total_vehicles: int = 0        # spawned
    completed_vehicles: int = 0
    total_wait_time: float = 0.0   # [ms]
    spawns_skipped: int = 0        # spawns dropped by the max_vehicles cap

    def record_spawned(self, n: int = 1) -> None:
        self.total_vehicles += n

    def record_completed(self, v: "Vehicle") -> None:
        self.completed_vehicles += 1
        self.total_wait_time += v.total_wait_time

    def refresh(self, vehicles: Iterable["Vehicle"], throughput: int) -> None:
        """Recompute the instantaneous figures from the live vehicles."""
        self.throughput = throughput

        if self.completed_vehicles > 0:
            self.avg_wait_time = self.total_wait_time / self.completed_vehicles / 1000.0

        total = 0
        moving = 0
        queued = 0
        for v in vehicles:
            total += 1
            if v.is_moving:
                moving += 1
            elif v.speed < STOPPED_SPEED:
                queued += 1

        # a vehicle at exactly STOPPED_SPEED is neither moving nor queued
        self.queue_length = queued
        self.efficiency = moving / total * 100.0 if total > 0 else 100.0

    def compute_summary(self, total_sim_time: float) -> Tuple[int, float, float]:
        """
        - total completed vehicles
        - average wait time [s]
        - throughput over the whole run [veh/min]
        """
        if self.completed_vehicles == 0 or total_sim_time <= 0:
            return self.completed_vehicles, 0.0, 0.0

        avg_wait = self.total_wait_time / self.completed_vehicles / 1000.0
        throughput_per_min = self.completed_vehicles / (total_sim_time / 60_000.0)
        return self.completed_vehicles, avg_wait, throughput_per_min
