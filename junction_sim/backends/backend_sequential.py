from junction_sim.backends.base_backend import SimulationBackend
from junction_sim.metrics.types import SimulationResult
from junction_sim.metrics.timers import Timer


class SequentialBackend(SimulationBackend):
    """
    Sequential implementation of the simulation.
    Used as a reference for speedup measurements.
    """

    name = "sequential"

    def run(self) -> SimulationResult:
        dt = self.frame_dt

        with Timer() as t:
            for _ in range(self.steps):
                self.sim.tick(dt)

        return self._result(t.elapsed)
