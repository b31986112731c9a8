from __future__ import annotations

from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Deque, Iterable, Optional, Tuple

from .control import can_proceed
from .geometry import (
    angle_between,
    angle_difference,
    clamp,
    distance,
    heading_vector,
    speed_to_color,
    wrap_angle,
)
from .types import Direction, Leader, VehicleState, Waypoint

if TYPE_CHECKING:
    from .control import ControlStructure


# reference frame [ms]; speeds are expressed in units per frame
FRAME_MS = 1000.0 / 60.0

# per-frame rate limits; braking is roughly twice as hard as accelerating
ACCELERATION = 0.08
DECELERATION = 0.15
MIN_MAX_SPEED = 1.8
MAX_MAX_SPEED = 2.2

STEERING_GAIN = 0.15
CAPTURE_RADIUS = 10.0

SAFE_DISTANCE = 22.0
MIN_GAP = 10.0                  # bumper-to-bumper, i.e. one vehicle length
LEADER_CONE = 1.0471975511965976        # pi / 3

TURN_LOOKAHEAD = 30.0
TURN_THRESHOLD = 0.5
TURN_FACTOR = 0.6

# below this speed a vehicle counts as queued
STOPPED_SPEED = 0.5

TRAIL_LENGTH = 8
TRAIL_SPACING = 4.0


@dataclass
class Vehicle:
    id: int
    x: float
    y: float
    heading: float               # [rad]
    path: Tuple[Waypoint, ...]   # fixed at spawn
    max_speed: float             # [units/frame]
    entry: Direction
    exit: Direction

    speed: float = 0.0
    acceleration: float = ACCELERATION
    deceleration: float = DECELERATION
    safe_distance: float = SAFE_DISTANCE

    waypoint_index: int = 0
    state: VehicleState = VehicleState.DRIVING
    total_wait_time: float = 0.0     # [ms]
    committed: bool = False          # past the stop / yield line
    commit_timer: float = 0.0        # [ms] clear-gap time before entering a roundabout
    completed: bool = False

    # display only
    trail: Deque[Waypoint] = field(default_factory=lambda: deque(maxlen=TRAIL_LENGTH))

    def __post_init__(self) -> None:
        self.path = tuple(Waypoint(*p) for p in self.path)

    @property
    def current_waypoint(self) -> Optional[Waypoint]:
        if self.waypoint_index < len(self.path):
            return self.path[self.waypoint_index]
        return None

    @property
    def is_moving(self) -> bool:
        return self.speed > STOPPED_SPEED

    @property
    def leader_range(self) -> float:
        return 2.0 * self.safe_distance

    def color(self) -> Tuple[int, int, int]:
        return speed_to_color(self.speed, self.max_speed)

    def advance(
        self,
        dt: float,
        neighbors: Mapping[int, Vehicle] | Iterable[Vehicle],
        control: Optional[ControlStructure] = None,
        leader: Optional[Leader] = None,
    ) -> None:
        """
        One update of this vehicle.

        :param dt: elapsed time [ms]
        :param neighbors: live vehicles (this one may be included), keyed by id
        :param control: active junction control, None for free driving
        :param leader: precomputed leader; scanned from neighbors when None
        """
        if self.completed:
            return

        if not isinstance(neighbors, Mapping):
            neighbors = {v.id: v for v in neighbors}

        frame = dt / FRAME_MS
        self._record_trail()

        wp = self.current_waypoint
        if wp is None:
            self.completed = True
            return

        if distance(self.x, self.y, wp.x, wp.y) < CAPTURE_RADIUS:
            self.waypoint_index += 1
            wp = self.current_waypoint
            if wp is None:
                self.completed = True
                return

        # Damped steering: only part of the error is corrected per frame
        target_angle = angle_between(self.x, self.y, wp.x, wp.y)
        gain = min(1.0, STEERING_GAIN * frame)
        self.heading = wrap_angle(self.heading + wrap_angle(target_angle - self.heading) * gain)

        if leader is None:
            leader = self.find_leader(neighbors.values())

        target = self.target_speed(leader)

        # Denial overrides whatever the leader allows
        if not can_proceed(self, control, dt, neighbors):
            target = 0.0
            self.total_wait_time += dt

        target *= self._turn_factor(wp, target_angle)

        if self.speed < target:
            self.speed = min(target, self.speed + self.acceleration * frame)
        else:
            self.speed = max(target, self.speed - self.deceleration * frame)
        self.speed = clamp(self.speed, 0.0, self.max_speed)

        hx, hy = heading_vector(self.heading)
        self.x += hx * self.speed * frame
        self.y += hy * self.speed * frame

    def target_speed(self, leader: Leader) -> float:
        """
        Cruise speed, capped only once a leader is closer than the safe
        distance. The cap is then under the leader's speed and falls by a
        full max speed at the bumper gap.
        """
        if leader.distance >= self.safe_distance:
            return self.max_speed

        closing = (leader.distance - self.safe_distance) / (self.safe_distance - MIN_GAP)
        return min(self.max_speed, max(0.0, leader.speed + closing * self.max_speed))

    def find_leader(self, neighbors: Iterable[Vehicle]) -> Leader:
        """
        Nearest vehicle ahead: inside the forward cone and within twice the
        safe distance, whatever its heading.
        """
        best = Leader.none()
        for other in neighbors:
            if other.id == self.id or other.completed:
                continue

            dist = distance(self.x, self.y, other.x, other.y)
            if dist > self.leader_range:
                continue

            if dist < 1e-9:
                # coincident spawn: the older vehicle is ahead
                if other.id > self.id:
                    continue
            else:
                bearing = angle_between(self.x, self.y, other.x, other.y)
                if angle_difference(bearing, self.heading) >= LEADER_CONE:
                    continue

            if dist < best.distance:
                best = Leader(dist, other.speed)

        return best

    def _turn_factor(self, wp: Waypoint, target_angle: float) -> float:
        nxt_index = self.waypoint_index + 1
        if nxt_index >= len(self.path):
            return 1.0
        if distance(self.x, self.y, wp.x, wp.y) >= TURN_LOOKAHEAD:
            return 1.0

        nxt = self.path[nxt_index]
        next_angle = angle_between(wp.x, wp.y, nxt.x, nxt.y)
        if angle_difference(next_angle, target_angle) > TURN_THRESHOLD:
            return TURN_FACTOR
        return 1.0

    def _record_trail(self) -> None:
        if not self.trail or distance(self.x, self.y, *self.trail[0]) > TRAIL_SPACING:
            self.trail.appendleft(Waypoint(self.x, self.y))
