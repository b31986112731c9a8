import math
import random
from typing import Tuple


TWO_PI = 2.0 * math.pi

Color = Tuple[int, int, int]


def distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Euclidean distance between two points."""
    return math.hypot(x2 - x1, y2 - y1)


def angle_between(x1: float, y1: float, x2: float, y2: float) -> float:
    """Heading [rad] of the vector pointing from (x1, y1) to (x2, y2)."""
    return math.atan2(y2 - y1, x2 - x1)


def normalize_angle(angle: float) -> float:
    """Map an angle into [0, 2*pi)."""
    angle = math.fmod(angle, TWO_PI)
    if angle < 0.0:
        angle += TWO_PI
    # fmod of a tiny negative number can round up to exactly 2*pi
    if angle >= TWO_PI:
        angle -= TWO_PI
    return angle


def wrap_angle(angle: float) -> float:
    """Map an angle into [-pi, pi)."""
    return normalize_angle(angle + math.pi) - math.pi


def angle_difference(a: float, b: float) -> float:
    """Absolute angular distance between two headings, in [0, pi]."""
    d = math.fmod(abs(a - b), TWO_PI)
    return TWO_PI - d if d > math.pi else d


def heading_vector(angle: float) -> Tuple[float, float]:
    return math.cos(angle), math.sin(angle)


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def clamp(value: float, lo: float, hi: float) -> float:
    return lo if value < lo else hi if value > hi else value


def random_range(rng: random.Random, lo: float, hi: float) -> float:
    """Uniform sample from [lo, hi) drawn from the given generator."""
    return lo + rng.random() * (hi - lo)


def speed_to_color(speed: float, max_speed: float) -> Color:
    """
    Display colour for a vehicle:
    red (stopped) -> yellow -> green -> cyan (cruising).
    """
    ratio = clamp(speed / max_speed, 0.0, 1.0) if max_speed > 0 else 0.0

    if ratio > 0.6:
        t = (ratio - 0.6) / 0.4
        return (
            round(lerp(0, 100, 1 - t)),
            round(lerp(200, 255, t)),
            round(lerp(150, 220, t)),
        )
    if ratio > 0.3:
        t = (ratio - 0.3) / 0.3
        return (round(lerp(255, 0, t)), 200, round(lerp(50, 150, t)))

    t = ratio / 0.3
    return (255, round(lerp(80, 200, t)), round(lerp(80, 50, t)))
