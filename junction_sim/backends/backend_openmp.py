from numba import config as numba_config, set_num_threads

from junction_sim.backends.base_backend import SimulationBackend
from junction_sim.config import SimulationConfig
from junction_sim.metrics.types import SimulationResult
from junction_sim.metrics.timers import Timer


class OpenMPBackend(SimulationBackend):
    """
    OpenMP-like backend using Numba's parallel CPU execution.
    It uses the same Simulation model, but calls tick_openmp()
    which finds every vehicle's leader via a Numba @njit(parallel=True) kernel.
    """

    name = "openmp"

    def __init__(self, config: SimulationConfig):
        super().__init__(config)

        # Configure the number of threads used by Numba
        if self.config.num_threads > 0:
            set_num_threads(min(self.config.num_threads, numba_config.NUMBA_NUM_THREADS))

    def run(self) -> SimulationResult:
        dt = self.frame_dt
        steps = self.steps

        # Warm-up step to trigger Numba JIT compilation (not measured)
        if steps > 0:
            self.sim.tick_openmp(dt)

        with Timer() as t:
            for _ in range(steps - 1):
                self.sim.tick_openmp(dt)

        return self._result(t.elapsed)
