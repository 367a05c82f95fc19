"""
Hybrid curve/grid planner.

The shortest curve between start and goal is tried first. When it collides,
an A* polyline over the occupancy grid is simplified into waypoints and curves
are stitched through them, reaching as far along the polyline as possible with
each segment and bisecting segments that cannot be driven directly.

Soft failures (no grid route, stitching aborted) never raise: the planner logs
and returns the direct curve.

Usage:
    >>> from carplan import HybridPlanner, Pose, VehicleSpec, WorldState
    >>> planner = HybridPlanner()
    >>> path = planner.plan(Pose(0, 0, 0), Pose(5, 0, 0), VehicleSpec(turning_radius=2.0), WorldState())
    >>> len(path)
    21
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config import PlannerConfig
from ..geometry import Pose
from ..world import VehicleSpec, WorldState
from .elements import SymbolicPath
from .grid import GridStore, OccupancyGrid
from .sampler import PosePath, sample
from .solver import solve_world
from .validity import is_site_valid, is_valid, snap_outside_buffer

logger = logging.getLogger(__name__)


class PlanStatus(Enum):
    DIRECT = auto()  # shortest curve was collision free
    STITCHED = auto()  # curves stitched through grid waypoints
    FALLBACK = auto()  # no collision free route found, direct curve returned


@dataclass
class PlanResult:
    """
    Outcome of a planning request.

    Attributes:
        path: Sampled world path, never empty
        status: How the path was obtained
        goal: Goal actually planned to, after nudging it out of obstacles
        segments: Symbolic curves making up the path with their start poses
        waypoints: Simplified grid waypoints, empty for direct paths
    """

    path: PosePath
    status: PlanStatus
    goal: Pose
    segments: List[Tuple[Pose, SymbolicPath]] = field(default_factory=list)
    waypoints: List[Tuple[float, float]] = field(default_factory=list)


def simplify_polyline(points: Sequence[Tuple[float, float]], angle_threshold: float) -> List[Tuple[float, float]]:
    """
    Drop polyline vertices where the direction changes by less than ``angle_threshold``.

    The first and last points are always kept; the turn angle at a vertex is
    measured from the last kept point.
    """
    if len(points) <= 2:
        return list(points)
    kept = [points[0]]
    for i in range(1, len(points) - 1):
        prev = np.asarray(kept[-1], dtype=float)
        curr = np.asarray(points[i], dtype=float)
        nxt = np.asarray(points[i + 1], dtype=float)
        v1 = curr - prev
        v2 = nxt - curr
        n1, n2 = np.linalg.norm(v1), np.linalg.norm(v2)
        if n1 < 1e-12 or n2 < 1e-12:
            continue
        angle = math.acos(float(np.clip(np.dot(v1, v2) / (n1 * n2), -1.0, 1.0)))
        if angle > angle_threshold:
            kept.append(points[i])
    kept.append(points[-1])
    return kept


def chord_heading(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    return math.atan2(b[1] - a[1], b[0] - a[0])


class HybridPlanner:
    """
    Plans sampled paths for a car-like vehicle around obstacles.

    Args:
        config: Planner tunables, defaults used when None
        grid_store: Shared grid holder; when it holds a grid it is used for
            every request that does not pass one explicitly
    """

    def __init__(self, config: Optional[PlannerConfig] = None, grid_store: Optional[GridStore] = None):
        self.config = config if config is not None else PlannerConfig()
        self.grid_store = grid_store if grid_store is not None else GridStore()

    # ==========================================================================
    # Building Blocks
    # ==========================================================================

    def build_grid(self, world: WorldState) -> OccupancyGrid:
        cfg = self.config
        return OccupancyGrid.build(
            world.obstacles, cfg.grid_cell_size, cfg.grid_extent_cells, cfg.obstacle_buffer_meters
        )

    def sample(self, path: SymbolicPath, start: Pose, spec: VehicleSpec) -> PosePath:
        return sample(path, self.config.sample_step_meters, spec.turning_radius, start)

    def check(self, path: PosePath, spec: VehicleSpec, world: WorldState) -> bool:
        cfg = self.config
        return is_valid(
            path,
            world.obstacles,
            world.arena_radius,
            cfg.wall_buffer_meters,
            cfg.obstacle_buffer_meters,
            turning_radius=spec.turning_radius if cfg.turning_clearance else None,
            clearance_tolerance=cfg.turning_clearance_tolerance,
        )

    def connect(
        self, start: Pose, goal: Pose, spec: VehicleSpec, world: WorldState
    ) -> Optional[Tuple[SymbolicPath, PosePath]]:
        """Shortest valid curve from ``start`` to ``goal``, trying every candidate word in length order."""
        for candidate in solve_world(start, goal, spec.turning_radius, spec.allow_reverse):
            samples = self.sample(candidate, start, spec)
            if self.check(samples, spec, world):
                return candidate, samples
        return None

    def chord_path(self, start: Pose, goal: Pose) -> PosePath:
        """Straight line samples from start to goal, used when no curve word is feasible."""
        n = max(int(math.ceil(start.distance_to(goal) / self.config.sample_step_meters)), 1)
        heading = chord_heading(start.xy, goal.xy)
        poses = [Pose(start.x + (goal.x - start.x) * k / n, start.y + (goal.y - start.y) * k / n, heading) for k in range(n)]
        poses.append(goal)
        return PosePath(poses, [1] * len(poses))

    def nudge_goal(self, goal: Pose, world: WorldState) -> Pose:
        """Move a goal that sits inside an inflated obstacle just outside it, keeping its heading."""
        cfg = self.config
        if is_site_valid(goal.xy, world.obstacles, cfg.obstacle_buffer_meters):
            return goal
        x, y = snap_outside_buffer(goal.xy, world.obstacles, cfg.obstacle_buffer_meters, cfg.goal_nudge_epsilon)
        logger.warning("goal (%.2f, %.2f) is inside an obstacle buffer, moved to (%.2f, %.2f)", goal.x, goal.y, x, y)
        if not is_site_valid((x, y), world.obstacles, cfg.obstacle_buffer_meters):
            logger.warning("moved goal (%.2f, %.2f) is still inside an obstacle buffer", x, y)
        elif math.hypot(x, y) > world.arena_radius - cfg.wall_buffer_meters:
            logger.warning("moved goal (%.2f, %.2f) is outside the arena wall buffer", x, y)
        return Pose(x, y, goal.theta)

    # ==========================================================================
    # Stitching
    # ==========================================================================

    def subdivide(
        self, start: Pose, target: Pose, spec: VehicleSpec, world: WorldState, depth: int
    ) -> Optional[List[Tuple[Pose, SymbolicPath, PosePath]]]:
        """Reach ``target`` by recursive bisection, None when the depth limit is hit."""
        if depth > self.config.max_subdivision_depth:
            return None
        mid_xy = ((start.x + target.x) / 2, (start.y + target.y) / 2)
        mid = Pose(mid_xy[0], mid_xy[1], chord_heading(start.xy, mid_xy))
        logger.debug("subdividing at depth %d via (%.2f, %.2f)", depth, mid.x, mid.y)

        pieces = []
        for a, b in ((start, mid), (mid, target)):
            hop = self.connect(a, b, spec, world)
            if hop is not None:
                pieces.append((a, hop[0], hop[1]))
                continue
            deeper = self.subdivide(a, b, spec, world, depth + 1)
            if deeper is None:
                return None
            pieces.extend(deeper)
        return pieces

    def stitch(
        self, start: Pose, goal: Pose, waypoints: Sequence[Tuple[float, float]], spec: VehicleSpec, world: WorldState
    ) -> Optional[List[Tuple[Pose, SymbolicPath, PosePath]]]:
        """
        Connect start to goal through ``waypoints`` with valid curves.

        From the current pose the waypoints are scanned from the last one back
        and the farthest reachable one is taken. When none is reachable the
        next waypoint is reached by bisection.

        Returns:
            (start pose, curve, samples) per segment, None when stitching aborts
        """
        points = list(waypoints)
        last = len(points) - 1

        def pose_at(j, origin):
            if j == last:
                return goal
            return Pose(points[j][0], points[j][1], chord_heading(origin.xy, points[j]))

        pieces = []
        current = start
        idx = 0
        while idx < last:
            reached = None
            for j in range(last, idx, -1):
                target = pose_at(j, current)
                hop = self.connect(current, target, spec, world)
                if hop is not None:
                    reached = (j, target, hop)
                    break

            if reached is not None:
                j, target, (curve, samples) = reached
                logger.debug("waypoint %d -> %d with %s", idx, j, curve.word)
                pieces.append((current, curve, samples))
                current, idx = target, j
                continue

            target = pose_at(idx + 1, current)
            sub = self.subdivide(current, target, spec, world, depth=1)
            if sub is None:
                logger.warning("could not reach waypoint %d of %d, stitching aborted", idx + 1, last)
                return None
            pieces.extend(sub)
            current, idx = target, idx + 1

        return pieces

    def resimplify(
        self, pieces: List[Tuple[Pose, SymbolicPath, PosePath]], goal: Pose, spec: VehicleSpec, world: WorldState
    ) -> List[Tuple[Pose, SymbolicPath, PosePath]]:
        """Replace runs of consecutive segments by one valid curve, farthest first."""
        nodes = [p[0] for p in pieces] + [goal]
        merged = []
        cur = 0
        while cur < len(pieces):
            replaced = False
            for j in range(len(nodes) - 1, cur + 1, -1):
                hop = self.connect(nodes[cur], nodes[j], spec, world)
                if hop is not None:
                    merged.append((nodes[cur], hop[0], hop[1]))
                    cur = j
                    replaced = True
                    break
            if not replaced:
                merged.append(pieces[cur])
                cur += 1
        return merged

    # ==========================================================================
    # Public API
    # ==========================================================================

    def plan_detailed(
        self,
        start: Pose,
        goal: Pose,
        spec: VehicleSpec,
        world: WorldState,
        grid: Optional[OccupancyGrid] = None,
    ) -> PlanResult:
        """
        Plan from ``start`` to ``goal`` and report how the path was obtained.

        Args:
            start: World start pose
            goal: World goal pose, nudged out of inflated obstacles first
            spec: Vehicle, its turning radius and kinematics select the curves
            world: Obstacles and arena
            grid: Prebuilt grid; otherwise the store's grid or one built for ``world``

        Returns:
            PlanResult with a non-empty path
        """
        cfg = self.config
        goal = self.nudge_goal(goal, world)

        candidates = solve_world(start, goal, spec.turning_radius, spec.allow_reverse)
        if candidates:
            direct_curve = candidates[0]
            direct = self.sample(direct_curve, start, spec)
            direct_segments = [(start, direct_curve)]
        else:
            logger.warning("no feasible curve from %s to %s, using the straight chord", start, goal)
            direct = self.chord_path(start, goal)
            direct_segments = []

        if not world.obstacles or (candidates and self.check(direct, spec, world)):
            return PlanResult(direct, PlanStatus.DIRECT, goal, direct_segments)

        def fallback(waypoints=()):
            return PlanResult(direct, PlanStatus.FALLBACK, goal, direct_segments, list(waypoints))

        if grid is None:
            grid = self.grid_store.current
        if grid is None:
            grid = self.build_grid(world)

        route = grid.query(start.xy, goal.xy)
        if len(route) < cfg.min_grid_points:
            logger.warning("grid route has %d points, returning the direct curve", len(route))
            return fallback(route)

        waypoints = simplify_polyline(route, cfg.collinear_angle_threshold_radians)
        waypoints[0] = start.xy
        waypoints[-1] = goal.xy

        pieces = self.stitch(start, goal, waypoints, spec, world)
        if pieces is None:
            logger.warning("no collision free route through %d waypoints, returning the direct curve", len(waypoints))
            return fallback(waypoints)

        if cfg.resimplify and len(pieces) > 1:
            pieces = self.resimplify(pieces, goal, spec, world)

        path = PosePath()
        for _, _, samples in pieces:
            path = path.concat(samples)
        logger.debug("stitched %d segments through %d waypoints", len(pieces), len(waypoints))
        return PlanResult(
            path, PlanStatus.STITCHED, goal, [(p[0], p[1]) for p in pieces], list(waypoints)
        )

    def plan(
        self,
        start: Pose,
        goal: Pose,
        spec: VehicleSpec,
        world: WorldState,
        grid: Optional[OccupancyGrid] = None,
    ) -> PosePath:
        """Sampled path from ``start`` to ``goal``, see plan_detailed."""
        return self.plan_detailed(start, goal, spec, world, grid).path

    def plan_batch(
        self,
        requests: Sequence[Tuple[Pose, Pose, VehicleSpec]],
        world: WorldState,
        grid: Optional[OccupancyGrid] = None,
        max_workers: Optional[int] = None,
    ) -> List[PlanResult]:
        """Plan independent (start, goal, spec) requests concurrently against one shared grid."""
        if grid is None and world.obstacles:
            grid = self.grid_store.current or self.build_grid(world)
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(self.plan_detailed, s, g, v, world, grid) for s, g, v in requests]
            return [f.result() for f in futures]
