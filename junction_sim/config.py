from dataclasses import dataclass, asdict
from typing import Literal, Optional


IntersectionType = Literal["roundabout", "traffic-light"]
BackendName = Literal["sequential", "openmp"]


@dataclass
class SimulationConfig:
    intersection_type: IntersectionType = "roundabout"

    # total time of simulation (ms)
    total_time: float = 120_000.0
    # time step (ms), one display frame at 60 Hz
    dt: float = 1000.0 / 60.0
    # a single frame never advances more than this (ms)
    max_frame_time: float = 100.0
    # longest internal sub-step (ms)
    max_step: float = 50.0

    # vehicles/s, all arms together
    spawn_rate: float = 1.5
    simulation_speed: float = 1.0
    max_vehicles: int = 500
    random_seed: int = 42

    # signal timing (ms)
    green_duration: float = 4000.0
    yellow_duration: float = 1000.0

    # trailing window for the throughput figure (ms)
    throughput_horizon: float = 60_000.0

    backend: BackendName = "sequential"

    # openMP
    num_threads: int = 1

    # scenario desc
    label: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)
