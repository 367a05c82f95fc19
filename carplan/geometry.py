"""
Planar pose and angle helpers.

Poses are used both in world units (meters) and in normalized units where
distances are divided by the vehicle turning radius, so that every turn is an
arc on a unit circle.
"""

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

TWO_PI = 2.0 * math.pi

# Arc angles closer than this to a full turn are treated as no turn at all
FULL_TURN_SNAP = 1e-9


def mod2pi(angle: float) -> float:
    """Wrap angle to [0, 2*pi)."""
    value = math.fmod(angle, TWO_PI)
    if value < 0.0:
        value += TWO_PI
    if value >= TWO_PI - FULL_TURN_SNAP:
        value = 0.0
    return value


def wrap_angle(angle: float) -> float:
    """Wrap angle to [-pi, pi)."""
    return (angle + math.pi) % TWO_PI - math.pi


def polar(x: float, y: float) -> Tuple[float, float]:
    """Cartesian to polar, returns (rho, theta)."""
    return math.hypot(x, y), math.atan2(y, x)


@dataclass(frozen=True)
class Pose:
    """
    Oriented point in the plane.

    Heading ``theta`` is measured counter-clockwise from +x in radians and is
    normalized to [0, 2*pi) on construction.
    """

    x: float = 0.0
    y: float = 0.0
    theta: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "theta", mod2pi(float(self.theta)))

    @property
    def position(self) -> np.ndarray:
        return np.array([self.x, self.y])

    @property
    def xy(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def heading_vector(self) -> np.ndarray:
        return np.array([math.cos(self.theta), math.sin(self.theta)])

    def rotate(self, angle: float) -> "Pose":
        """Rotate about the origin by ``angle``."""
        c, s = math.cos(angle), math.sin(angle)
        return Pose(c * self.x - s * self.y, s * self.x + c * self.y, self.theta + angle)

    def translate(self, dx: float, dy: float) -> "Pose":
        return Pose(self.x + dx, self.y + dy, self.theta)

    def scaled(self, factor: float) -> "Pose":
        """Scale the position, heading unchanged."""
        return Pose(self.x * factor, self.y * factor, self.theta)

    def distance_to(self, other: "Pose") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def relative_to(self, origin: "Pose") -> "Pose":
        """Express this pose in the frame of ``origin``."""
        dx = self.x - origin.x
        dy = self.y - origin.y
        c, s = math.cos(origin.theta), math.sin(origin.theta)
        return Pose(dx * c + dy * s, -dx * s + dy * c, self.theta - origin.theta)

    def with_heading(self, theta: float) -> "Pose":
        return Pose(self.x, self.y, theta)

    def is_close(self, other: "Pose", pos_tol: float = 1e-6, heading_tol: float = 1e-6) -> bool:
        return (
            self.distance_to(other) <= pos_tol
            and abs(wrap_angle(self.theta - other.theta)) <= heading_tol
        )


def advance(
    x0: float,
    y0: float,
    theta0: float,
    steering: int,
    gear: int,
    distances: np.ndarray,
    turning_radius: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Poses reached by driving from (x0, y0, theta0) along one element.

    Args:
        steering: +1 left, 0 straight, -1 right
        gear: +1 forward, -1 backward
        distances: Normalized arc positions (world distance / turning_radius)
        turning_radius: Radius of the steering circle in world units

    Returns:
        x, y, theta arrays, theta not wrapped
    """
    d = np.asarray(distances, dtype=float)
    R = turning_radius
    if steering == 0:
        x = x0 + gear * d * R * math.cos(theta0)
        y = y0 + gear * d * R * math.sin(theta0)
        theta = np.full_like(d, theta0)
        return x, y, theta

    # exact circle parametrization about the turning centre
    theta = theta0 + steering * gear * d
    x = x0 + steering * R * (np.sin(theta) - math.sin(theta0))
    y = y0 - steering * R * (np.cos(theta) - math.cos(theta0))
    return x, y, theta
