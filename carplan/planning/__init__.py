"""
Planning Module
===============

Path planning for car-like vehicles.

Available components:
- dubins: Forward-only, unit turn radius curve words
- reeds_shepp: Forward and reverse, unit turn radius curve words
- solver: Shortest or all feasible words between two poses
- sampler: World poses along a symbolic path
- validity: Obstacle and arena wall checks
- grid: Occupancy grid with A* search
- hybrid: Curves stitched through grid waypoints
"""

from .dubins import derive_dubins
from .elements import Gear, PathElement, Steering, SymbolicPath
from .grid import GridStore, OccupancyGrid
from .hybrid import HybridPlanner, PlanResult, PlanStatus, simplify_polyline
from .plot import plot_pose_path
from .reeds_shepp import derive_reeds_shepp
from .sampler import PosePath, sample
from .solver import solve, solve_all, solve_world
from .validity import clearance_bonus, is_site_valid, is_valid, snap_outside_buffer

__all__ = [
    "derive_dubins",
    "derive_reeds_shepp",
    "Gear",
    "PathElement",
    "Steering",
    "SymbolicPath",
    "GridStore",
    "OccupancyGrid",
    "HybridPlanner",
    "PlanResult",
    "PlanStatus",
    "simplify_polyline",
    "plot_pose_path",
    "PosePath",
    "sample",
    "solve",
    "solve_all",
    "solve_world",
    "clearance_bonus",
    "is_site_valid",
    "is_valid",
    "snap_outside_buffer",
]
