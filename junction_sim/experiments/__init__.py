from junction_sim.config import SimulationConfig
from junction_sim.backends import get_backend, BACKENDS


__all__ = ["SimulationConfig", "get_backend", "BACKENDS"]
