from typing import Dict, Type

from junction_sim.backends.base_backend import SimulationBackend
from junction_sim.backends.backend_sequential import SequentialBackend
from junction_sim.backends.backend_openmp import OpenMPBackend


BACKENDS: Dict[str, Type[SimulationBackend]] = {
    SequentialBackend.name: SequentialBackend,
    OpenMPBackend.name: OpenMPBackend,
}


def get_backend(name: str) -> Type[SimulationBackend]:
    try:
        return BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown backend '{name}'. Available: {', '.join(BACKENDS.keys())}"
        )
