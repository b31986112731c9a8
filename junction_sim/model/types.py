import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Literal, NamedTuple


class Direction(IntEnum):
    # clockwise order; arithmetic on the values counts exits
    NORTH = 0
    EAST = 1
    SOUTH = 2
    WEST = 3

    @property
    def is_north_south(self) -> bool:
        return self in (Direction.NORTH, Direction.SOUTH)


TurnChoice = Literal["straight", "left", "right", "uturn"]


class VehicleState(Enum):
    DRIVING = "driving"
    WAITING = "waiting"
    IN_CONTROLLED_ZONE = "in_controlled_zone"


class Waypoint(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class Leader:
    distance: float     # centre-to-centre distance [units]
    speed: float        # [units/frame]

    @classmethod
    def none(cls) -> "Leader":
        return cls(math.inf, 0.0)

    @property
    def found(self) -> bool:
        return math.isfinite(self.distance)
