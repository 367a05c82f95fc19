"""
Plotting utilities for planned paths.
"""

import numpy as np

from .sampler import PosePath


def path_data(path):
    """Plain dict of sampled path values."""
    return {
        "x": [p.x for p in path.poses],
        "y": [p.y for p in path.poses],
        "theta": [p.theta for p in path.poses],
        "gear": list(path.gears),
        "length": path.length,
    }


def plot_pose_path(path: PosePath, world=None, grid=None, ax=None, arrow_every=10):
    """
    Plot a sampled path with the world it was planned in.

    Args:
        path: Sampled path
        world: WorldState, obstacles and arena wall are drawn when given
        grid: OccupancyGrid, blocked cells are drawn when given
        ax: Matplotlib axis (creates new if None)
        arrow_every: Draw a heading arrow every this many samples

    Returns:
        ax: Matplotlib axis
        path_data: Dict with path information
    """
    import matplotlib.pyplot as plt
    from matplotlib.patches import Circle, Rectangle

    from ..world import Cylinder

    if ax is None:
        fig, ax = plt.subplots(figsize=(10, 10))

    if grid is not None:
        pts = grid.centers[grid.blocked.ravel()]
        ax.plot(pts[:, 0], pts[:, 1], "s", color="lightgray", markersize=2, zorder=0)

    if world is not None:
        for o in world.obstacles:
            if isinstance(o, Cylinder):
                ax.add_patch(Circle(o.center, o.radius, color="gray", alpha=0.6))
            else:
                hx, hy = o.half_extents
                ax.add_patch(Rectangle((o.center[0] - hx, o.center[1] - hy), 2 * hx, 2 * hy, color="gray", alpha=0.6))
        if np.isfinite(world.arena_radius):
            ax.add_patch(Circle((0, 0), world.arena_radius, fill=False, color="black", linestyle="--"))

    data = path_data(path)
    x = np.array(data["x"])
    y = np.array(data["y"])
    gear = np.array(data["gear"])

    # forward samples blue, reverse samples red
    ax.plot(np.where(gear > 0, x, np.nan), np.where(gear > 0, y, np.nan), "b.-", linewidth=2, alpha=0.8)
    ax.plot(np.where(gear < 0, x, np.nan), np.where(gear < 0, y, np.nan), "r.-", linewidth=2, alpha=0.8)

    for p in path.poses[:: max(arrow_every, 1)]:
        ax.arrow(p.x, p.y, 0.2 * np.cos(p.theta), 0.2 * np.sin(p.theta), color="green", width=0.01, alpha=0.7)

    if len(path):
        ax.plot(path.first.x, path.first.y, "go", markersize=6)
        ax.plot(path.last.x, path.last.y, "ro", markersize=6)

    ax.axis("equal")
    ax.grid(True, alpha=0.3)
    return ax, data
