import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Literal, Mapping, Set

from .geometry import distance
from .road_network import APPROACH_DISTANCE, SPAWN_DISTANCE, RoadNetwork
from .types import Direction, Waypoint

if TYPE_CHECKING:
    from .vehicles import Vehicle


ROUNDABOUT_KIND: Literal["roundabout"] = "roundabout"

# gap acceptance
CONFLICT_DISTANCE = 18.0
COMMIT_DELAY = 50.0          # [ms] clear gap needed before entering
YIELD_INNER = 5.0            # yield band is (outer - 5, outer + 12)
YIELD_OUTER = 12.0
# a vehicle leaves the ring once it is this far beyond the outer radius;
# must not be smaller than YIELD_OUTER, registration happens inside the band
EXIT_MARGIN = 12.0

# lane-change timing relative to the last exit a vehicle skips [rad]
PAST_EXIT_OFFSET = 0.2
LANE_CHANGE_OFFSET = 0.3
ARC_STEP = math.pi / 3


@dataclass
class RoundaboutConfig:
    outer_radius: float = 70.0
    inner_radius: float = 30.0


class Roundabout:
    """
    Two-lane roundabout circulating clockwise (increasing angle, y south).

    Keeps a registry of ids of vehicles currently on the ring. The registry
    never owns vehicles; ids are resolved through the simulation's arena.
    """

    kind = ROUNDABOUT_KIND

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        config: RoundaboutConfig | None = None,
    ) -> None:
        cfg = config or RoundaboutConfig()
        self.x = x
        self.y = y
        self.outer_radius = cfg.outer_radius
        self.inner_radius = cfg.inner_radius

        self.lane_width = (self.outer_radius - self.inner_radius) / 2.0
        self.outer_lane_radius = self.outer_radius - self.lane_width / 2.0
        self.inner_lane_radius = self.inner_radius + self.lane_width / 2.0

        self.circulating: Set[int] = set()
        self.network = RoadNetwork(x, y)

    def advance(self, dt: float) -> None:
        """Nothing is timed at a roundabout."""

    # ------------------------ registry ------------------------

    def register(self, vehicle: "Vehicle") -> None:
        self.circulating.add(vehicle.id)

    def unregister(self, vehicle: "Vehicle") -> None:
        self.circulating.discard(vehicle.id)

    def is_registered(self, vehicle: "Vehicle") -> bool:
        return vehicle.id in self.circulating

    def distance_from_center(self, vehicle: "Vehicle") -> float:
        return distance(self.x, self.y, vehicle.x, vehicle.y)

    def has_conflicting_vehicle(self, candidate: "Vehicle", arena: Mapping[int, "Vehicle"]) -> bool:
        """True if any other circulating vehicle is closer than CONFLICT_DISTANCE."""
        for vid in self.circulating:
            if vid == candidate.id:
                continue
            other = arena.get(vid)
            if other is None or other.completed:
                continue
            if distance(candidate.x, candidate.y, other.x, other.y) < CONFLICT_DISTANCE:
                return True
        return False

    def release_departed(self, arena: Mapping[int, "Vehicle"]) -> List[int]:
        """
        Drop ids that are no longer live, have completed, or are beyond the
        exit margin. Returns the released ids.
        """
        limit = self.outer_radius + EXIT_MARGIN
        stale = []
        for vid in self.circulating:
            v = arena.get(vid)
            if v is None or v.completed or self.distance_from_center(v) > limit:
                stale.append(vid)
        self.circulating.difference_update(stale)
        return sorted(stale)

    # ------------------------ paths ------------------------

    def exit_number(self, entry: Direction, exit: Direction) -> int:
        return RoadNetwork.exit_number(entry, exit)

    def generate_path(self, entry: Direction, exit: Direction) -> List[Waypoint]:
        """
        1st exit: outer lane all the way round.
        Later exits: inner lane, moving out to the outer lane just after the
        last exit that is skipped.
        """
        net = self.network
        spawn_dist = self.outer_radius + SPAWN_DISTANCE
        approach_dist = self.outer_radius + APPROACH_DISTANCE

        entry_angle = net.arm(entry).angle
        exit_angle = net.arm(exit).angle
        exit_number = self.exit_number(entry, exit)

        points = [
            net.inbound_point(entry, spawn_dist),
            net.inbound_point(entry, approach_dist),
        ]

        if exit_number == 1:
            points.append(net.ring_point(entry_angle, self.outer_lane_radius))
            self._add_arc_points(points, entry_angle, exit_angle, self.outer_lane_radius)
        else:
            last_skipped = Direction((int(entry) + exit_number - 1) % 4)
            past_angle = self._angle_past_exit(entry_angle, net.arm(last_skipped).angle)
            change_angle = past_angle + LANE_CHANGE_OFFSET

            points.append(net.ring_point(entry_angle, self.inner_lane_radius))
            self._add_arc_points(points, entry_angle, past_angle, self.inner_lane_radius)
            points.append(net.ring_point(change_angle, self.outer_lane_radius))
            self._add_arc_points(points, change_angle, exit_angle, self.outer_lane_radius)

        points += [
            net.outbound_point(exit, approach_dist),
            net.outbound_point(exit, spawn_dist),
        ]
        return points

    @staticmethod
    def _angle_past_exit(start_angle: float, exit_angle: float) -> float:
        angle = exit_angle
        while angle <= start_angle:
            angle += 2.0 * math.pi
        return angle + PAST_EXIT_OFFSET

    def _add_arc_points(
        self,
        points: List[Waypoint],
        start_angle: float,
        end_angle: float,
        radius: float,
    ) -> None:
        end = end_angle
        while end <= start_angle:
            end += 2.0 * math.pi

        arc = end - start_angle
        steps = max(2, math.ceil(arc / ARC_STEP))
        for i in range(1, steps + 1):
            points.append(self.network.ring_point(start_angle + arc * i / steps, radius))
