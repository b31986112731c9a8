"""
Right-of-way for the active junction.

The control structure is one of two unrelated types tagged by `kind`;
every behaviour that differs between them is dispatched here on that tag.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, List, Mapping, Optional, Union

from .geometry import distance
from .roundabout import (
    COMMIT_DELAY,
    EXIT_MARGIN,
    ROUNDABOUT_KIND,
    YIELD_INNER,
    YIELD_OUTER,
    Roundabout,
    RoundaboutConfig,
)
from .traffic_lights import SIGNAL_KIND, STOP_BAND, SignalIntersection, TrafficLightConfig
from .types import Direction, VehicleState, Waypoint

if TYPE_CHECKING:
    from .vehicles import Vehicle


ControlStructure = Union[SignalIntersection, Roundabout]

INTERSECTION_TYPES = (ROUNDABOUT_KIND, SIGNAL_KIND)


def make_control(
    kind: str,
    green_duration: float = 4000.0,
    yellow_duration: float = 1000.0,
) -> ControlStructure:
    """Build a fresh control structure of the given kind at the origin."""
    if kind == SIGNAL_KIND:
        return SignalIntersection(config=TrafficLightConfig(green=green_duration, yellow=yellow_duration))
    if kind == ROUNDABOUT_KIND:
        return Roundabout(config=RoundaboutConfig())
    raise ValueError(
        f"Unknown intersection type '{kind}'. Available: {', '.join(INTERSECTION_TYPES)}"
    )


def advance_control(control: ControlStructure, dt: float) -> None:
    control.advance(dt)


def generate_path(control: ControlStructure, entry: Direction, exit: Direction) -> List[Waypoint]:
    return control.generate_path(entry, exit)


def set_green_duration(control: ControlStructure, duration: float) -> None:
    # roundabouts have no signal timing
    if control.kind == SIGNAL_KIND:
        control.set_green_duration(duration)


def release_vehicle(control: ControlStructure, vehicle: Vehicle) -> None:
    """Forget a retired vehicle."""
    if control.kind == ROUNDABOUT_KIND:
        control.unregister(vehicle)


def sweep_registry(control: ControlStructure, arena: Mapping[int, Vehicle]) -> List[int]:
    if control.kind == ROUNDABOUT_KIND:
        return control.release_departed(arena)
    return []


def can_proceed(
    vehicle: Vehicle,
    control: Optional[ControlStructure],
    dt: float,
    arena: Mapping[int, Vehicle],
) -> bool:
    """
    Whether the vehicle may keep moving this tick. May commit the vehicle,
    register/unregister it at a roundabout and update its state.
    """
    if control is None:
        return True
    if control.kind == SIGNAL_KIND:
        return _signal_can_proceed(vehicle, control)
    if control.kind == ROUNDABOUT_KIND:
        return _yield_can_proceed(vehicle, control, dt, arena)
    raise ValueError(f"Unknown control kind '{control.kind}'")


def _signal_can_proceed(vehicle: Vehicle, signal: SignalIntersection) -> bool:
    if vehicle.committed:
        return True

    dist = distance(vehicle.x, vehicle.y, signal.x, signal.y)

    # never stop inside the box
    if dist <= signal.size:
        _commit(vehicle)
        return True

    if dist < signal.size + STOP_BAND:
        # yellow still lets a driver past the decision point through
        if signal.is_green_for(vehicle.entry) or signal.is_yellow_for(vehicle.entry):
            _commit(vehicle)
            return True
        vehicle.state = VehicleState.WAITING
        return False

    return True


def _yield_can_proceed(
    vehicle: Vehicle,
    roundabout: Roundabout,
    dt: float,
    arena: Mapping[int, Vehicle],
) -> bool:
    dist = roundabout.distance_from_center(vehicle)
    exit_limit = roundabout.outer_radius + EXIT_MARGIN

    if roundabout.is_registered(vehicle):
        if dist > exit_limit:
            roundabout.unregister(vehicle)
            vehicle.state = VehicleState.DRIVING
        return True

    if vehicle.committed:
        # departed, or released by the registry sweep
        if dist > exit_limit:
            vehicle.state = VehicleState.DRIVING
        return True

    if roundabout.outer_radius - YIELD_INNER < dist < roundabout.outer_radius + YIELD_OUTER:
        if roundabout.has_conflicting_vehicle(vehicle, arena):
            vehicle.commit_timer = 0.0
            vehicle.state = VehicleState.WAITING
            return False

        vehicle.commit_timer += dt
        if vehicle.commit_timer >= COMMIT_DELAY:
            _enter_ring(vehicle, roundabout)
        return True

    if dist <= roundabout.outer_radius - YIELD_INNER:
        # reached the ring before the confirmation finished
        _enter_ring(vehicle, roundabout)

    return True


def _commit(vehicle: Vehicle) -> None:
    vehicle.committed = True
    vehicle.state = VehicleState.IN_CONTROLLED_ZONE


def _enter_ring(vehicle: Vehicle, roundabout: Roundabout) -> None:
    roundabout.register(vehicle)
    _commit(vehicle)
