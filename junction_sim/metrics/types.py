from dataclasses import dataclass, field
from typing import Dict, Any


@dataclass
class SimulationResult:
    backend: str
    intersection_type: str
    config: Dict[str, Any]

    # total time
    wall_time_seconds: float
    total_simulated_time: float     # [ms]

    # traffic statistics
    vehicles_spawned: int
    vehicles_completed: int
    avg_wait_time: float            # [s]
    # [veh/min]
    throughput_veh_per_min: float

    # state at the end of the run
    final_queue_length: int
    final_efficiency: float

    # anything else (debug counters, skipped spawns, ...)
    extra_stats: Dict[str, Any] = field(default_factory=dict)
