from dataclasses import replace
from typing import Dict, Iterable, List

from junction_sim.backends import get_backend
from junction_sim.config import SimulationConfig
from junction_sim.io.logging_utils import logger
from junction_sim.metrics.types import SimulationResult
from junction_sim.model.control import INTERSECTION_TYPES


def run_single(config: SimulationConfig) -> SimulationResult:
    BackendCls = get_backend(config.backend)
    backend = BackendCls(config)
    return backend.run()


def run_comparison(config: SimulationConfig) -> Dict[str, SimulationResult]:
    """
    Same demand and seed on every junction type, keyed by type.
    """
    results: Dict[str, SimulationResult] = {}
    for kind in INTERSECTION_TYPES:
        cfg = replace(config, intersection_type=kind)
        logger.info(f"Running '{kind}' with backend='{cfg.backend}'")
        results[kind] = run_single(cfg)
    return results


def run_scaling_experiment(
    base_config: SimulationConfig,
    backend_name: str,
    param_name: str,
    values: Iterable[int | float]
) -> List[SimulationResult]:
    """
    Helper: changes one parameter (e.g num_threads, spawn_rate) and runs backend
    """
    results: List[SimulationResult] = []
    for v in values:
        cfg_dict = base_config.to_dict()
        cfg_dict["backend"] = backend_name
        cfg_dict[param_name] = v
        cfg = SimulationConfig(**cfg_dict)  # type: ignore[arg-type]
        res = run_single(cfg)
        results.append(res)
    return results
