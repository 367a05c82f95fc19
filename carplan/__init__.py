"""
Carplan - Hybrid curve/grid path planning for car-like vehicles

Shortest Dubins and Reeds-Shepp curves derived with CasADi, exact pose
sampling, obstacle validity checks and an A* grid fallback stitched together
into a single planner.
"""

from beartype import BeartypeConf
from beartype.claw import beartype_package

beartype_package(__name__, conf=BeartypeConf(is_pep484_tower=True))

__version__ = "0.1.0"

from .geometry import Pose
from .world import Aabb, Cylinder, Kinematics, VehicleSpec, WorldState
from .config import PlannerConfig
from .planning import (
    HybridPlanner,
    OccupancyGrid,
    PlanResult,
    PlanStatus,
    PosePath,
    SymbolicPath,
    is_valid,
    sample,
    solve,
    solve_all,
)

__all__ = [
    "__version__",
    "Pose",
    "Aabb",
    "Cylinder",
    "Kinematics",
    "VehicleSpec",
    "WorldState",
    "PlannerConfig",
    "HybridPlanner",
    "OccupancyGrid",
    "PlanResult",
    "PlanStatus",
    "PosePath",
    "SymbolicPath",
    "is_valid",
    "sample",
    "solve",
    "solve_all",
]
