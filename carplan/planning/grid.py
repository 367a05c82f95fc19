"""
Occupancy grid and A* search used when the direct curve is blocked.

The grid covers [-extent, extent] cells on each axis around the origin. Cells
close to an inflated obstacle are blocked, free cells are 8-connected with
Euclidean edge weights stored in a sparse adjacency matrix. A grid is never
modified after it is built; a GridStore publishes rebuilt grids by swapping
its reference.
"""

import heapq
import itertools
import logging
import math
import threading
from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy.sparse import csr_matrix
from scipy.spatial import cKDTree

from ..world import Cylinder, Obstacle

logger = logging.getLogger(__name__)

NEIGHBOR_OFFSETS = [(-1, -1), (-1, 0), (-1, 1), (0, -1), (0, 1), (1, -1), (1, 0), (1, 1)]


def blocked_cells(
    xs: np.ndarray, obstacles: Sequence[Obstacle], cell_size: float, obstacle_buffer: float
) -> np.ndarray:
    """
    Boolean mask of blocked cells for cell centre coordinates ``xs`` on both axes.

    A cell is blocked when its centre is within radius + buffer + half a cell
    diagonal of a cylinder, or inside a box inflated by the buffer plus the same
    half diagonal.
    """
    X, Y = np.meshgrid(xs, xs, indexing="ij")
    blocked = np.zeros(X.shape, dtype=bool)
    half_diag = math.sqrt(2.0) * cell_size / 2.0
    for o in obstacles:
        cx, cy = o.center
        if isinstance(o, Cylinder):
            blocked |= np.hypot(X - cx, Y - cy) <= o.radius + obstacle_buffer + half_diag
        else:
            hx = o.half_extents[0] + obstacle_buffer + half_diag
            hy = o.half_extents[1] + obstacle_buffer + half_diag
            blocked |= (np.abs(X - cx) <= hx) & (np.abs(Y - cy) <= hy)
    return blocked


def build_adjacency(free: np.ndarray, cell_size: float) -> csr_matrix:
    """8-connected adjacency between free cells of an (n, n) mask, flattened row-major."""
    n = free.shape[0]
    index = np.arange(n * n).reshape(n, n)
    rows, cols, weights = [], [], []
    for di, dj in NEIGHBOR_OFFSETS:
        i0, i1 = max(0, -di), n - max(0, di)
        j0, j1 = max(0, -dj), n - max(0, dj)
        src = index[i0:i1, j0:j1]
        dst = index[i0 + di : i1 + di, j0 + dj : j1 + dj]
        ok = free[i0:i1, j0:j1] & free[i0 + di : i1 + di, j0 + dj : j1 + dj]
        rows.append(src[ok])
        cols.append(dst[ok])
        weights.append(np.full(int(ok.sum()), cell_size * math.hypot(di, dj)))
    return csr_matrix(
        (np.concatenate(weights), (np.concatenate(rows), np.concatenate(cols))),
        shape=(n * n, n * n),
    )


class OccupancyGrid:
    """
    Immutable 8-connected occupancy grid.

    Use OccupancyGrid.build to create one from a set of obstacles.
    """

    def __init__(self, blocked: np.ndarray, cell_size: float, extent_cells: int):
        self.cell_size = cell_size
        self.extent_cells = extent_cells
        self.blocked = blocked
        self.blocked.setflags(write=False)
        self.coords = (np.arange(2 * extent_cells + 1) - extent_cells) * cell_size
        self.adjacency = build_adjacency(~blocked, cell_size)

        X, Y = np.meshgrid(self.coords, self.coords, indexing="ij")
        self.centers = np.column_stack([X.ravel(), Y.ravel()])
        self.free_indices = np.flatnonzero(~blocked.ravel())
        self._tree = cKDTree(self.centers[self.free_indices]) if len(self.free_indices) else None

    @classmethod
    def build(
        cls,
        obstacles: Sequence[Obstacle],
        cell_size: float = 0.25,
        extent_cells: int = 60,
        obstacle_buffer: float = 0.5,
    ) -> "OccupancyGrid":
        """Block cells around every inflated obstacle and connect the rest."""
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        if extent_cells < 0:
            raise ValueError(f"extent_cells must be non-negative, got {extent_cells}")
        coords = (np.arange(2 * extent_cells + 1) - extent_cells) * cell_size
        blocked = blocked_cells(coords, obstacles, cell_size, obstacle_buffer)
        grid = cls(blocked, cell_size, extent_cells)
        logger.info(
            "built %dx%d grid (cell %.3f m): %d blocked, %d edges",
            blocked.shape[0],
            blocked.shape[1],
            cell_size,
            int(blocked.sum()),
            grid.adjacency.nnz,
        )
        return grid

    @property
    def shape(self) -> Tuple[int, int]:
        return self.blocked.shape

    @property
    def free_count(self) -> int:
        return len(self.free_indices)

    def is_blocked(self, point: Tuple[float, float]) -> bool:
        """Whether the cell containing ``point`` is blocked; points off the grid count as blocked."""
        i = int(round(point[0] / self.cell_size)) + self.extent_cells
        j = int(round(point[1] / self.cell_size)) + self.extent_cells
        n = self.blocked.shape[0]
        if not (0 <= i < n and 0 <= j < n):
            return True
        return bool(self.blocked[i, j])

    def nearest_free(self, point: Tuple[float, float]) -> Optional[int]:
        """Index of the free cell closest to ``point``, None if every cell is blocked."""
        if self._tree is None:
            return None
        _, k = self._tree.query([point[0], point[1]])
        return int(self.free_indices[k])

    def cell_center(self, index: int) -> Tuple[float, float]:
        x, y = self.centers[index]
        return (float(x), float(y))

    def neighbors(self, index: int):
        start, end = self.adjacency.indptr[index], self.adjacency.indptr[index + 1]
        return zip(self.adjacency.indices[start:end], self.adjacency.data[start:end])

    def query(self, start: Tuple[float, float], goal: Tuple[float, float]) -> List[Tuple[float, float]]:
        """
        Shortest 8-connected cell path between two world points.

        Both endpoints snap to their nearest free cell first.

        Returns:
            Cell centres from start to goal, empty when no path exists
        """
        src = self.nearest_free(start)
        dst = self.nearest_free(goal)
        if src is None or dst is None:
            logger.debug("grid query %s -> %s: no free cell", start, goal)
            return []

        cells = self.astar(src, dst)
        return [self.cell_center(c) for c in cells]

    def astar(self, src: int, dst: int) -> List[int]:
        """A* over the adjacency with a Euclidean heuristic."""
        goal_xy = self.centers[dst]

        def h(node):
            return float(np.hypot(*(self.centers[node] - goal_xy)))

        counter = itertools.count()
        open_heap = [(h(src), 0.0, next(counter), src)]
        g_score = {src: 0.0}
        came_from = {}
        closed = set()

        while open_heap:
            _, g, _, node = heapq.heappop(open_heap)
            if node in closed:
                continue
            if node == dst:
                path = [node]
                while node in came_from:
                    node = came_from[node]
                    path.append(node)
                return path[::-1]
            closed.add(node)

            for nbr, w in self.neighbors(node):
                nbr = int(nbr)
                if nbr in closed:
                    continue
                tentative = g + float(w)
                if tentative < g_score.get(nbr, math.inf):
                    g_score[nbr] = tentative
                    came_from[nbr] = node
                    heapq.heappush(open_heap, (tentative + h(nbr), tentative, next(counter), nbr))

        return []


class GridStore:
    """
    Holds the current grid shared by planners.

    Rebuilds construct a new grid and then swap the reference, so a reader
    always sees either the old or the new grid in full.
    """

    def __init__(self, grid: Optional[OccupancyGrid] = None):
        self._grid = grid
        self._lock = threading.Lock()

    @property
    def current(self) -> Optional[OccupancyGrid]:
        return self._grid

    def publish(self, grid: OccupancyGrid) -> None:
        with self._lock:
            self._grid = grid

    def rebuild(
        self,
        obstacles: Sequence[Obstacle],
        cell_size: float = 0.25,
        extent_cells: int = 60,
        obstacle_buffer: float = 0.5,
    ) -> OccupancyGrid:
        with self._lock:
            grid = OccupancyGrid.build(obstacles, cell_size, extent_cells, obstacle_buffer)
            self._grid = grid
        return grid
