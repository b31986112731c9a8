from dataclasses import dataclass
from enum import Enum
from typing import List, Literal, Tuple

from .road_network import APPROACH_DISTANCE, SPAWN_DISTANCE, RoadNetwork
from .types import Direction, Waypoint


SIGNAL_KIND: Literal["traffic-light"] = "traffic-light"

# depth of the band outside the box where vehicles decide on the light
STOP_BAND = 15.0


class LightState(Enum):
    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"


# (NS light, EW light) for each phase of the cycle
PHASE_LIGHTS: Tuple[Tuple[LightState, LightState], ...] = (
    (LightState.GREEN, LightState.RED),
    (LightState.YELLOW, LightState.RED),
    (LightState.RED, LightState.GREEN),
    (LightState.RED, LightState.YELLOW),
)


@dataclass
class TrafficLightConfig:
    green: float = 4000.0    # [ms] green for either axis; red mirrors it
    yellow: float = 1000.0   # [ms] fixed
    size: float = 60.0       # half-size of the box


class SignalIntersection:
    """
    Fixed-time 4-phase controller:
    - phase 0: NS green,  EW red
    - phase 1: NS yellow, EW red
    - phase 2: NS red,    EW green
    - phase 3: NS red,    EW yellow
    """

    kind = SIGNAL_KIND

    def __init__(
        self,
        x: float = 0.0,
        y: float = 0.0,
        config: TrafficLightConfig | None = None,
    ) -> None:
        cfg = config or TrafficLightConfig()
        self.x = x
        self.y = y
        self.size = cfg.size

        self.green_duration = cfg.green
        self.yellow_duration = cfg.yellow
        self.red_duration = cfg.green

        self.phase = 0
        self.elapsed = 0.0
        self.ns_light, self.ew_light = PHASE_LIGHTS[0]

        self.network = RoadNetwork(x, y)

    @property
    def phase_durations(self) -> Tuple[float, float, float, float]:
        return (
            self.green_duration,
            self.yellow_duration,
            self.red_duration,
            self.yellow_duration,
        )

    @property
    def cycle_duration(self) -> float:
        return sum(self.phase_durations)

    def advance(self, dt: float) -> None:
        """Advance the phase clock; at most one phase change per call."""
        self.elapsed += dt
        if self.elapsed >= self.phase_durations[self.phase]:
            self.elapsed = 0.0
            self.phase = (self.phase + 1) % 4
            self.ns_light, self.ew_light = PHASE_LIGHTS[self.phase]

    def light_for(self, direction: Direction) -> LightState:
        return self.ns_light if direction.is_north_south else self.ew_light

    def is_green_for(self, direction: Direction) -> bool:
        return self.light_for(direction) is LightState.GREEN

    def is_yellow_for(self, direction: Direction) -> bool:
        return self.light_for(direction) is LightState.YELLOW

    def set_green_duration(self, duration: float) -> None:
        self.green_duration = duration
        self.red_duration = duration

    def generate_path(self, entry: Direction, exit: Direction) -> List[Waypoint]:
        """
        Spawn point -> stop line -> into the box -> turn waypoint(s) ->
        out of the box -> past the far stop line -> departure point.
        """
        net = self.network
        spawn_dist = self.size + SPAWN_DISTANCE
        stop_dist = self.size + APPROACH_DISTANCE
        box_dist = self.size * 0.5

        points = [
            net.inbound_point(entry, spawn_dist),
            net.inbound_point(entry, stop_dist),
            net.inbound_point(entry, box_dist),
        ]

        a_in = net.arm(entry)
        a_out = net.arm(exit)
        turn = net.turn_choice(entry, exit)

        if turn == "left":
            # short turn, cut the near corner
            corner = self.size * 0.3
            points.append(Waypoint(
                self.x + (a_in.dx + a_out.dx) * corner + a_in.lane_dx - a_out.lane_dx,
                self.y + (a_in.dy + a_out.dy) * corner + a_in.lane_dy - a_out.lane_dy,
            ))
        elif turn in ("right", "uturn"):
            # where the inbound and outbound lane axes cross
            points.append(Waypoint(
                self.x + a_in.lane_dx - a_out.lane_dx,
                self.y + a_in.lane_dy - a_out.lane_dy,
            ))

        points += [
            net.outbound_point(exit, box_dist),
            net.outbound_point(exit, stop_dist),
            net.outbound_point(exit, spawn_dist),
        ]
        return points
