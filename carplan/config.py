"""Planner configuration.

All tunables of the hybrid planner live in one dataclass. Each field carries a
human-readable description in its metadata, in the same way model fields do.
"""

import math
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping

__all__ = ["PlannerConfig"]


def param(default: Any, desc: str = ""):
    """Create a config field with a description."""
    return field(default=default, metadata={"desc": desc})


@dataclass(frozen=True)
class PlannerConfig:
    """Tunables of the hybrid planner.

    Examples
    --------
    >>> from carplan.config import PlannerConfig
    >>> cfg = PlannerConfig(sample_step_meters=0.1)
    >>> cfg.max_subdivision_depth
    5
    """

    sample_step_meters: float = param(0.25, "spacing between sampled poses (m)")
    grid_cell_size: float = param(0.25, "occupancy grid cell edge (m)")
    grid_extent_cells: int = param(60, "grid spans [-extent, extent] cells on each axis")
    obstacle_buffer_meters: float = param(0.5, "clearance added around every obstacle (m)")
    wall_buffer_meters: float = param(0.1, "clearance kept from the arena wall (m)")
    max_subdivision_depth: int = param(5, "bisection depth when no waypoint is reachable")
    collinear_angle_threshold_radians: float = param(
        math.radians(5.0), "turns smaller than this are removed from grid polylines (rad)"
    )
    min_grid_points: int = param(3, "grid polylines shorter than this are not stitched")
    turning_clearance: bool = param(False, "reject paths ending while turning into a cylinder")
    turning_clearance_tolerance: float = param(0.48, "bearing window of the turning clearance test (rad)")
    goal_nudge_epsilon: float = param(0.05, "extra distance when pushing a goal out of an obstacle (m)")
    resimplify: bool = param(True, "merge consecutive stitched segments when a longer curve is valid")

    def __post_init__(self):
        positive = [
            "sample_step_meters",
            "grid_cell_size",
            "grid_extent_cells",
            "min_grid_points",
        ]
        for name in positive:
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        non_negative = [
            "obstacle_buffer_meters",
            "wall_buffer_meters",
            "max_subdivision_depth",
            "collinear_angle_threshold_radians",
            "turning_clearance_tolerance",
            "goal_nudge_epsilon",
        ]
        for name in non_negative:
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "PlannerConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"unknown planner config keys: {unknown}")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def describe(cls) -> Dict[str, str]:
        """Field name to description."""
        return {f.name: f.metadata.get("desc", "") for f in fields(cls)}
