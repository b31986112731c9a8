import math
from dataclasses import dataclass
from typing import Dict

from .types import Direction, TurnChoice, Waypoint


# lateral offset of a lane centre from the road axis
LANE_WIDTH = 7.0

# distance beyond the junction edge where vehicles appear / disappear
SPAWN_DISTANCE = 80.0
# distance beyond the junction edge of the stop / yield line
APPROACH_DISTANCE = 8.0


@dataclass(frozen=True)
class ArmGeometry:
    dx: float           # unit vector from junction centre towards the arm
    dy: float
    lane_dx: float      # offset of the inbound lane (outbound lane is negated)
    lane_dy: float
    angle: float        # compass angle of the arm as seen from the centre [rad]


class RoadNetwork:
    """
    Four straight arms meeting at (x, y). y grows to the south.
    Traffic keeps left: a vehicle coming from the north drives on the east
    side of the north arm, and the clockwise-next arm is the short turn.
    """

    def __init__(self, x: float = 0.0, y: float = 0.0) -> None:
        self.x = x
        self.y = y

        self.arms: Dict[Direction, ArmGeometry] = {
            Direction.NORTH: ArmGeometry(0.0, -1.0, LANE_WIDTH, 0.0, -math.pi / 2),
            Direction.EAST: ArmGeometry(1.0, 0.0, 0.0, LANE_WIDTH, 0.0),
            Direction.SOUTH: ArmGeometry(0.0, 1.0, -LANE_WIDTH, 0.0, math.pi / 2),
            Direction.WEST: ArmGeometry(-1.0, 0.0, 0.0, -LANE_WIDTH, math.pi),
        }

    def arm(self, direction: Direction) -> ArmGeometry:
        """Return geometry of the arm on the given side of the junction."""
        return self.arms[direction]

    def inbound_point(self, direction: Direction, dist: float) -> Waypoint:
        """Point on the inbound lane of an arm, `dist` from the centre."""
        a = self.arms[direction]
        return Waypoint(self.x + a.dx * dist + a.lane_dx, self.y + a.dy * dist + a.lane_dy)

    def outbound_point(self, direction: Direction, dist: float) -> Waypoint:
        """Point on the outbound lane of an arm, `dist` from the centre."""
        a = self.arms[direction]
        return Waypoint(self.x + a.dx * dist - a.lane_dx, self.y + a.dy * dist - a.lane_dy)

    def ring_point(self, angle: float, radius: float) -> Waypoint:
        return Waypoint(self.x + math.cos(angle) * radius, self.y + math.sin(angle) * radius)

    @staticmethod
    def exit_number(entry: Direction, exit: Direction) -> int:
        """
        Clockwise count of arms from entry to exit:
        1, 2 or 3 for the 1st/2nd/3rd exit and 4 for a U-turn.
        """
        diff = (int(exit) - int(entry)) % 4
        return 4 if diff == 0 else diff

    @classmethod
    def turn_choice(cls, entry: Direction, exit: Direction) -> TurnChoice:
        n = cls.exit_number(entry, exit)
        if n == 1:
            return "left"
        if n == 2:
            return "straight"
        if n == 3:
            return "right"
        return "uturn"
