from abc import ABC, abstractmethod
from dataclasses import asdict

from junction_sim.config import SimulationConfig
from junction_sim.metrics.types import SimulationResult
from junction_sim.model.simulation import Simulation


class SimulationBackend(ABC):
    """
    Abstract base for all backends (Sequential, OpenMP).
    """

    name: str = "base"

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.sim = Simulation(config)

    @property
    def frame_dt(self) -> float:
        # a frame never advances more than max_frame_time
        return min(self.config.dt, self.config.max_frame_time)

    @property
    def steps(self) -> int:
        if self.frame_dt <= 0:
            return 0
        return int(self.config.total_time / self.frame_dt)

    @abstractmethod
    def run(self) -> SimulationResult:
        """
        Runs simulation and returns results.
        """
        raise NotImplementedError

    def _result(self, wall_time: float) -> SimulationResult:
        cfg = self.config
        simulated = self.sim.time

        vehicles_completed, avg_wait, throughput = self.sim.get_metrics_summary(simulated)
        stats = self.sim.stats

        return SimulationResult(
            backend=self.name,
            intersection_type=cfg.intersection_type,
            config=asdict(cfg),
            wall_time_seconds=wall_time,
            total_simulated_time=simulated,
            vehicles_spawned=stats.total_vehicles,
            vehicles_completed=vehicles_completed,
            avg_wait_time=avg_wait,
            throughput_veh_per_min=throughput,
            final_queue_length=stats.queue_length,
            final_efficiency=stats.efficiency,
            extra_stats=self.sim.get_debug_stats(),
        )
