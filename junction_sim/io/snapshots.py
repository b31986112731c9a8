"""
Read-only views of a simulation, taken between ticks.

Everything here is a copy; nothing refers back to live simulation objects,
so a renderer can hold on to a snapshot while the simulation keeps running.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple, Union

from junction_sim.model.roundabout import ROUNDABOUT_KIND, Roundabout
from junction_sim.model.traffic_lights import SignalIntersection
from junction_sim.model.types import Waypoint

if TYPE_CHECKING:
    from junction_sim.model.simulation import Simulation
    from junction_sim.model.vehicles import Vehicle


@dataclass(frozen=True)
class VehicleView:
    id: int
    x: float
    y: float
    heading: float
    speed: float
    color: Tuple[int, int, int]
    trail: Tuple[Waypoint, ...]
    state: str


@dataclass(frozen=True)
class SignalView:
    kind: str
    x: float
    y: float
    size: float
    ns_light: str
    ew_light: str
    phase: int
    elapsed: float


@dataclass(frozen=True)
class RoundaboutView:
    kind: str
    x: float
    y: float
    outer_radius: float
    inner_radius: float
    outer_lane_radius: float
    inner_lane_radius: float


ControlView = Union[SignalView, RoundaboutView]


@dataclass(frozen=True)
class StatsSnapshot:
    throughput: int
    avg_wait_time: float
    queue_length: int
    efficiency: float
    total_vehicles: int
    completed_vehicles: int


@dataclass(frozen=True)
class SimulationSnapshot:
    time: float
    paused: bool
    intersection_type: str
    vehicles: Tuple[VehicleView, ...]
    control: ControlView
    stats: StatsSnapshot


def vehicle_view(v: Vehicle) -> VehicleView:
    return VehicleView(
        id=v.id,
        x=v.x,
        y=v.y,
        heading=v.heading,
        speed=v.speed,
        color=v.color(),
        trail=tuple(v.trail),
        state=v.state.value,
    )


def control_view(control: Union[SignalIntersection, Roundabout]) -> ControlView:
    if control.kind == ROUNDABOUT_KIND:
        return RoundaboutView(
            kind=control.kind,
            x=control.x,
            y=control.y,
            outer_radius=control.outer_radius,
            inner_radius=control.inner_radius,
            outer_lane_radius=control.outer_lane_radius,
            inner_lane_radius=control.inner_lane_radius,
        )
    return SignalView(
        kind=control.kind,
        x=control.x,
        y=control.y,
        size=control.size,
        ns_light=control.ns_light.value,
        ew_light=control.ew_light.value,
        phase=control.phase,
        elapsed=control.elapsed,
    )


def build_snapshot(sim: Simulation) -> SimulationSnapshot:
    st = sim.stats
    return SimulationSnapshot(
        time=sim.time,
        paused=sim.paused,
        intersection_type=sim.intersection_type,
        vehicles=tuple(vehicle_view(v) for v in sim.vehicles),
        control=control_view(sim.control),
        stats=StatsSnapshot(
            throughput=st.throughput,
            avg_wait_time=st.avg_wait_time,
            queue_length=st.queue_length,
            efficiency=st.efficiency,
            total_vehicles=st.total_vehicles,
            completed_vehicles=st.completed_vehicles,
        ),
    )
