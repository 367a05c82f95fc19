"""
Path elements and symbolic paths.

A symbolic path is a word of arcs and straights expressed in normalized units
(turning radius 1), starting implicitly at the origin with heading 0.
"""

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, Sequence, Tuple

import numpy as np

from ..geometry import Pose, advance

# Elements shorter than this are dropped from a path
ZERO_LENGTH = 1e-10


class Steering(IntEnum):
    LEFT = 1
    STRAIGHT = 0
    RIGHT = -1


class Gear(IntEnum):
    FORWARD = 1
    BACKWARD = -1


_STEERING_SYMBOL = {Steering.LEFT: "L", Steering.STRAIGHT: "S", Steering.RIGHT: "R"}


@dataclass(frozen=True)
class PathElement:
    """
    One arc or straight of a symbolic path.

    ``length`` is the normalized arc length (radians for arcs) and is never
    negative; the direction of travel is carried by ``gear``.
    """

    length: float
    steering: Steering
    gear: Gear = Gear.FORWARD

    def __post_init__(self):
        if not math.isfinite(self.length) or self.length < 0.0:
            raise ValueError(f"element length must be finite and non-negative, got {self.length}")
        object.__setattr__(self, "length", float(self.length))

    @classmethod
    def create(cls, length: float, steering: Steering, gear: Gear = Gear.FORWARD) -> "PathElement":
        """Build an element from a signed length, a negative length flips the gear."""
        if length < 0.0:
            return cls(-length, steering, Gear(-gear))
        return cls(length, steering, gear)

    def reverse_gear(self) -> "PathElement":
        return PathElement(self.length, self.steering, Gear(-self.gear))

    def reverse_steering(self) -> "PathElement":
        return PathElement(self.length, Steering(-self.steering), self.gear)

    @property
    def symbol(self) -> str:
        return _STEERING_SYMBOL[self.steering] + ("+" if self.gear == Gear.FORWARD else "-")

    def __repr__(self):
        return f"{self.symbol}({self.length:.4f})"


@dataclass(frozen=True)
class SymbolicPath:
    """
    Ordered elements of one curve family word.

    Attributes:
        elements: Path elements in driving order
        family: "dubins" or "reeds_shepp"
        formula: Name of the closed-form word that produced the path
    """

    elements: Tuple[PathElement, ...]
    family: str = "reeds_shepp"
    formula: str = ""

    @classmethod
    def from_lengths(
        cls,
        lengths: Sequence[float],
        template: Sequence[Tuple[Steering, Gear]],
        family: str,
        formula: str = "",
    ) -> "SymbolicPath":
        """
        Build a path from signed element lengths and a (steering, gear) template.

        Zero-length elements are dropped; if nothing remains the path is a
        single zero-length straight so that start == goal is still a path.
        """
        elements = [
            PathElement.create(float(length), steering, gear)
            for length, (steering, gear) in zip(lengths, template)
        ]
        kept = tuple(e for e in elements if e.length >= ZERO_LENGTH)
        if not kept:
            kept = (PathElement(0.0, Steering.STRAIGHT, Gear.FORWARD),)
        return cls(kept, family, formula)

    @property
    def length(self) -> float:
        return sum(e.length for e in self.elements)

    @property
    def word(self) -> str:
        return "".join(e.symbol for e in self.elements)

    @property
    def has_reverse(self) -> bool:
        return any(e.gear == Gear.BACKWARD for e in self.elements)

    def timeflip(self) -> "SymbolicPath":
        return SymbolicPath(tuple(e.reverse_gear() for e in self.elements), self.family, self.formula)

    def reflect(self) -> "SymbolicPath":
        return SymbolicPath(tuple(e.reverse_steering() for e in self.elements), self.family, self.formula)

    def end_pose(self, start: Pose = Pose(), turning_radius: float = 1.0) -> Pose:
        """Closed-form pose reached after driving the whole path from ``start``."""
        x, y, theta = start.x, start.y, start.theta
        for e in self.elements:
            xs, ys, ths = advance(x, y, theta, e.steering, e.gear, np.array([e.length]), turning_radius)
            x, y, theta = float(xs[0]), float(ys[0]), float(ths[0])
        return Pose(x, y, theta)

    def __iter__(self) -> Iterator[PathElement]:
        return iter(self.elements)

    def __len__(self):
        return len(self.elements)
