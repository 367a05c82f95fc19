"""
Vehicle and world snapshot types consumed by the planner.
"""

import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Sequence, Tuple, Union


class Kinematics(Enum):
    """Kinematic model of the vehicle."""

    REEDS_SHEPP = auto()  # forward and reverse
    DUBINS = auto()  # forward only


@dataclass(frozen=True)
class VehicleSpec:
    """
    Vehicle parameters relevant to planning.

    Attributes:
        turning_radius: Minimum turning radius (m), must be positive
        max_speed: Maximum speed (m/s)
        kinematics: Curve family the vehicle can follow
        name: Display name
        length: Body length (m)
        width: Body width (m)
    """

    turning_radius: float
    max_speed: float = 1.0
    kinematics: Kinematics = Kinematics.REEDS_SHEPP
    name: str = "vehicle"
    length: float = 0.0
    width: float = 0.0

    def __post_init__(self):
        if not self.turning_radius > 0:
            raise ValueError(f"turning_radius must be positive, got {self.turning_radius}")

    @property
    def allow_reverse(self) -> bool:
        return self.kinematics == Kinematics.REEDS_SHEPP


@dataclass(frozen=True)
class Cylinder:
    """Vertical cylinder obstacle, seen from above as a disc."""

    center: Tuple[float, float]
    radius: float

    def __post_init__(self):
        if self.radius < 0:
            raise ValueError(f"radius must be non-negative, got {self.radius}")


@dataclass(frozen=True)
class Aabb:
    """Axis-aligned box obstacle, seen from above as a rectangle."""

    center: Tuple[float, float]
    half_extents: Tuple[float, float]

    def __post_init__(self):
        if min(self.half_extents) < 0:
            raise ValueError(f"half_extents must be non-negative, got {self.half_extents}")

    @classmethod
    def from_corners(cls, lo: Tuple[float, float], hi: Tuple[float, float]) -> "Aabb":
        return cls(
            ((lo[0] + hi[0]) / 2, (lo[1] + hi[1]) / 2),
            (abs(hi[0] - lo[0]) / 2, abs(hi[1] - lo[1]) / 2),
        )


Obstacle = Union[Cylinder, Aabb]


@dataclass(frozen=True)
class WorldState:
    """
    Snapshot of the arena the planner works in.

    Attributes:
        obstacles: Cylinders and boxes
        arena_radius: Radius of the circular arena wall (m), infinite disables the wall
    """

    obstacles: Sequence[Obstacle] = field(default_factory=tuple)
    arena_radius: float = math.inf

    def __post_init__(self):
        object.__setattr__(self, "obstacles", tuple(self.obstacles))
        if not self.arena_radius > 0:
            raise ValueError(f"arena_radius must be positive, got {self.arena_radius}")
