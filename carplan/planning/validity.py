"""
Obstacle and boundary validity checks.

Obstacles are inflated by a buffer before testing, the arena wall is pulled in
by its own buffer. All tests short-circuit on the first violation.
"""

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from ..world import Cylinder, Obstacle
from .sampler import PosePath


def is_valid(
    path: PosePath,
    obstacles: Sequence[Obstacle],
    arena_radius: float = math.inf,
    wall_buffer: float = 0.0,
    obstacle_buffer: float = 0.0,
    turning_radius: Optional[float] = None,
    clearance_tolerance: float = 0.48,
) -> bool:
    """
    Check a sampled path against the arena wall and inflated obstacles.

    Args:
        path: Sampled world path
        obstacles: Cylinders and boxes
        arena_radius: Wall radius, samples farther than arena_radius - wall_buffer fail
        wall_buffer: Clearance from the wall (m)
        obstacle_buffer: Clearance added to every obstacle (m)
        turning_radius: When given, also reject a path whose samples come within
            radius + turning_radius of a cylinder lying ahead along the terminal heading
        clearance_tolerance: Bearing window of the turning clearance test (rad)

    Returns:
        True when no sample violates any constraint
    """
    if len(path) == 0:
        return True
    pts = path.positions

    if math.isfinite(arena_radius):
        if np.any(np.linalg.norm(pts, axis=1) > arena_radius - wall_buffer):
            return False

    for obstacle in obstacles:
        if isinstance(obstacle, Cylinder):
            d = np.linalg.norm(pts - np.asarray(obstacle.center), axis=1)
            if np.any(d < obstacle.radius + obstacle_buffer):
                return False
        else:
            off = np.abs(pts - np.asarray(obstacle.center))
            hx = obstacle.half_extents[0] + obstacle_buffer
            hy = obstacle.half_extents[1] + obstacle_buffer
            if np.any((off[:, 0] <= hx) & (off[:, 1] <= hy)):
                return False

    if turning_radius is not None:
        heading = path.last.theta
        for obstacle in obstacles:
            if not isinstance(obstacle, Cylinder):
                continue
            rel = np.asarray(obstacle.center) - pts
            near = np.linalg.norm(rel, axis=1) < obstacle.radius + turning_radius
            if not np.any(near):
                continue
            bearing = np.arctan2(rel[near, 1], rel[near, 0])
            diff = np.abs((bearing - heading + np.pi) % (2 * np.pi) - np.pi)
            if np.any(diff < clearance_tolerance):
                return False

    return True


def is_site_valid(point: Tuple[float, float], obstacles: Sequence[Obstacle], inflation: float) -> bool:
    """True if ``point`` lies outside every obstacle inflated by ``inflation``."""
    px, py = point
    for o in obstacles:
        if isinstance(o, Cylinder):
            if math.hypot(px - o.center[0], py - o.center[1]) <= o.radius + inflation:
                return False
        else:
            hx = o.half_extents[0] + inflation
            hy = o.half_extents[1] + inflation
            if abs(px - o.center[0]) <= hx and abs(py - o.center[1]) <= hy:
                return False
    return True


def penetration(point: Tuple[float, float], obstacle: Obstacle, inflation: float) -> float:
    """Depth of ``point`` inside the inflated obstacle, negative when outside."""
    px, py = point
    if isinstance(obstacle, Cylinder):
        return obstacle.radius + inflation - math.hypot(px - obstacle.center[0], py - obstacle.center[1])
    ex = abs(px - obstacle.center[0]) - (obstacle.half_extents[0] + inflation)
    ey = abs(py - obstacle.center[1]) - (obstacle.half_extents[1] + inflation)
    if ex <= 0 and ey <= 0:
        return -max(ex, ey)
    return -math.hypot(max(ex, 0.0), max(ey, 0.0))


def snap_outside_buffer(
    point: Tuple[float, float],
    obstacles: Sequence[Obstacle],
    inflation: float,
    epsilon: float = 0.05,
) -> Tuple[float, float]:
    """
    Push ``point`` just outside the inflated obstacle it penetrates most.

    A cylinder pushes the point radially to radius + inflation + epsilon (along
    +x when the point sits exactly on the centre); a box pushes it onto the
    nearest face of the box inflated by inflation + epsilon. Points outside
    every obstacle are returned unchanged.
    """
    best = None
    best_depth = 0.0
    for o in obstacles:
        depth = penetration(point, o, inflation)
        if depth >= 0 and (best is None or depth > best_depth):
            best, best_depth = o, depth
    if best is None:
        return (float(point[0]), float(point[1]))

    px, py = point
    cx, cy = best.center
    if isinstance(best, Cylinder):
        dx, dy = px - cx, py - cy
        d = math.hypot(dx, dy)
        if d < 1e-6:
            dx, dy, d = 1.0, 0.0, 1.0
        target = best.radius + inflation + epsilon
        return (cx + dx / d * target, cy + dy / d * target)

    hx = best.half_extents[0] + inflation + epsilon
    hy = best.half_extents[1] + inflation + epsilon
    # faces: left, right, bottom, top
    gaps = [abs(px - (cx - hx)), abs(px - (cx + hx)), abs(py - (cy - hy)), abs(py - (cy + hy))]
    face = int(np.argmin(gaps))
    if face == 0:
        return (cx - hx, float(py))
    if face == 1:
        return (cx + hx, float(py))
    if face == 2:
        return (float(px), cy - hy)
    return (float(px), cy + hy)


def clearance_bonus(
    point: Tuple[float, float], obstacles: Sequence[Obstacle], inflation: float, window: float = 2.0
) -> float:
    """Score in [0, 1] for how far ``point`` is outside the nearest inflated obstacle, within ``window``."""
    if not obstacles:
        return 1.0
    margin = min(-penetration(point, o, inflation) for o in obstacles)
    return float(np.clip(margin / window, 0.0, 1.0))
