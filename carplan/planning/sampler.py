"""
Path sampler.

Turns a symbolic path into world poses spaced at most ``step_size`` apart along
each element, tagged with the gear the vehicle is in.
"""

import math
from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from ..geometry import Pose, advance
from .elements import SymbolicPath


@dataclass
class PosePath:
    """
    Sampled world-space path.

    Attributes:
        poses: Ordered poses
        gears: +1 forward, -1 backward, one per pose
    """

    poses: List[Pose] = field(default_factory=list)
    gears: List[int] = field(default_factory=list)

    def __post_init__(self):
        if len(self.poses) != len(self.gears):
            raise ValueError(f"{len(self.poses)} poses but {len(self.gears)} gears")

    def __len__(self):
        return len(self.poses)

    def __iter__(self):
        return iter(zip(self.poses, self.gears))

    def __getitem__(self, index: int) -> Tuple[Pose, int]:
        return self.poses[index], self.gears[index]

    @property
    def positions(self) -> np.ndarray:
        """Sample positions as an (N, 2) array."""
        return np.array([[p.x, p.y] for p in self.poses]).reshape(-1, 2)

    @property
    def headings(self) -> np.ndarray:
        return np.array([p.theta for p in self.poses])

    @property
    def length(self) -> float:
        """Polyline length through the samples."""
        if len(self.poses) < 2:
            return 0.0
        return float(np.sum(np.linalg.norm(np.diff(self.positions, axis=0), axis=1)))

    @property
    def first(self) -> Pose:
        return self.poses[0]

    @property
    def last(self) -> Pose:
        return self.poses[-1]

    def concat(self, other: "PosePath") -> "PosePath":
        """Append ``other``, dropping its first sample when it repeats our last one."""
        if not self.poses:
            return PosePath(list(other.poses), list(other.gears))
        start = 0
        if other.poses and other.poses[0].is_close(self.poses[-1], pos_tol=1e-6, heading_tol=1e-6):
            start = 1
        return PosePath(self.poses + other.poses[start:], self.gears + other.gears[start:])


def sample(path: SymbolicPath, step_size: float, turning_radius: float, start: Pose) -> PosePath:
    """
    Sample a symbolic path in world coordinates.

    Each element of normalized length L is sampled at 0, s, 2s, ..., L with
    s = step_size / turning_radius, so it contributes ceil(L / s) + 1 poses.
    The joint pose shared by consecutive elements is kept once.

    Args:
        path: Normalized symbolic path
        step_size: Maximum spacing between samples (m)
        turning_radius: Vehicle turning radius (m)
        start: World pose the path starts from

    Returns:
        PosePath ending at path.end_pose(start, turning_radius)
    """
    if step_size <= 0:
        raise ValueError(f"step_size must be positive, got {step_size}")
    if turning_radius <= 0:
        raise ValueError(f"turning_radius must be positive, got {turning_radius}")

    step = step_size / turning_radius
    poses = []
    gears = []
    x, y, theta = start.x, start.y, start.theta

    for i, element in enumerate(path.elements):
        n = max(int(math.ceil(element.length / step - 1e-9)), 0)
        distances = np.minimum(np.arange(n + 1) * step, element.length)
        xs, ys, ths = advance(x, y, theta, element.steering, element.gear, distances, turning_radius)

        first = 0 if i == 0 else 1
        for k in range(first, n + 1):
            poses.append(Pose(xs[k], ys[k], ths[k]))
            gears.append(int(element.gear))

        x, y, theta = float(xs[-1]), float(ys[-1]), float(ths[-1])

    return PosePath(poses, gears)
