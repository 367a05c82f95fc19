"""
Pytest unit tests for the occupancy grid and A* search
Run with: pytest tests/test_grid.py -v
"""

import math
import threading

import numpy as np
import pytest

from carplan.planning import GridStore, OccupancyGrid
from carplan.world import Aabb, Cylinder


@pytest.fixture(scope="module")
def cylinder_grid():
    return OccupancyGrid.build([Cylinder((2.5, 0.0), 1.0)], cell_size=0.25, extent_cells=60, obstacle_buffer=0.5)


class TestBuild:
    def test_shape(self, cylinder_grid):
        assert cylinder_grid.shape == (121, 121)
        assert cylinder_grid.centers.shape == (121 * 121, 2)

    def test_cylinder_blocking(self, cylinder_grid):
        assert cylinder_grid.is_blocked((2.5, 0.0))
        assert cylinder_grid.is_blocked((2.5, 1.5))
        assert not cylinder_grid.is_blocked((0.0, 0.0))
        assert not cylinder_grid.is_blocked((2.5, 2.0))

    def test_aabb_blocking(self):
        grid = OccupancyGrid.build([Aabb((0.0, 0.0), (1.0, 0.5))], cell_size=0.5, extent_cells=10, obstacle_buffer=0.5)
        assert grid.is_blocked((1.5, 0.0))
        assert grid.is_blocked((0.0, 1.0))
        assert not grid.is_blocked((2.0, 0.0))
        assert not grid.is_blocked((0.0, 1.5))

    def test_off_grid_is_blocked(self, cylinder_grid):
        assert cylinder_grid.is_blocked((100.0, 0.0))

    def test_adjacency_weights(self):
        grid = OccupancyGrid.build([], cell_size=0.5, extent_cells=1)
        center = 4  # middle of the 3x3 grid
        nbrs = dict((int(k), float(w)) for k, w in grid.neighbors(center))
        assert len(nbrs) == 8
        assert sorted(set(round(w, 9) for w in nbrs.values())) == [0.5, round(0.5 * math.sqrt(2), 9)]
        corner = dict(grid.neighbors(0))
        assert len(corner) == 3

    def test_blocked_cells_have_no_edges(self, cylinder_grid):
        blocked = np.flatnonzero(cylinder_grid.blocked.ravel())
        adj = cylinder_grid.adjacency
        assert adj[blocked].nnz == 0
        assert adj[:, blocked].nnz == 0

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            OccupancyGrid.build([], cell_size=0.0)
        with pytest.raises(ValueError):
            OccupancyGrid.build([], extent_cells=-1)


class TestQuery:
    def test_route_around_cylinder(self, cylinder_grid):
        route = cylinder_grid.query((0.0, 0.0), (5.0, 0.0))
        assert len(route) >= 3
        assert route[0] == pytest.approx((0.0, 0.0))
        assert route[-1] == pytest.approx((5.0, 0.0))
        pts = np.array(route)
        assert np.all(np.hypot(pts[:, 0] - 2.5, pts[:, 1]) >= 1.5)
        steps = np.linalg.norm(np.diff(pts, axis=0), axis=1)
        assert np.all(steps <= 0.25 * math.sqrt(2) + 1e-9)

    def test_deterministic(self, cylinder_grid):
        a = cylinder_grid.query((-3.0, 1.0), (6.0, -0.5))
        b = cylinder_grid.query((-3.0, 1.0), (6.0, -0.5))
        assert a == b

    def test_open_grid_route_is_optimal(self):
        grid = OccupancyGrid.build([], cell_size=1.0, extent_cells=5)
        route = grid.query((0.0, 0.0), (3.0, 2.0))
        length = sum(math.dist(a, b) for a, b in zip(route, route[1:]))
        assert length == pytest.approx(1.0 + 2 * math.sqrt(2))

    def test_endpoint_snaps_to_free_cell(self, cylinder_grid):
        route = cylinder_grid.query((0.0, 0.0), (2.5, 0.0))
        assert route
        end = route[-1]
        assert math.hypot(end[0] - 2.5, end[1]) > 1.5

    def test_enclosed_goal_has_no_route(self):
        ring = [Cylinder((2.0 * math.cos(a), 2.0 * math.sin(a)), 0.6) for a in np.linspace(0, 2 * math.pi, 16, endpoint=False)]
        grid = OccupancyGrid.build(ring, cell_size=0.25, extent_cells=20, obstacle_buffer=0.3)
        assert not grid.is_blocked((0.0, 0.0))
        assert grid.query((4.5, 0.0), (0.0, 0.0)) == []

    def test_fully_blocked(self):
        grid = OccupancyGrid.build([Cylinder((0.0, 0.0), 50.0)], cell_size=1.0, extent_cells=3)
        assert grid.free_count == 0
        assert grid.query((0.0, 0.0), (1.0, 1.0)) == []


class TestGridStore:
    def test_publish_and_rebuild(self):
        store = GridStore()
        assert store.current is None
        first = store.rebuild([], cell_size=0.5, extent_cells=4)
        assert store.current is first
        second = OccupancyGrid.build([Cylinder((0.0, 0.0), 1.0)], cell_size=0.5, extent_cells=4)
        store.publish(second)
        assert store.current is second

    def test_readers_see_whole_grids(self):
        store = GridStore(OccupancyGrid.build([], cell_size=0.5, extent_cells=8))
        seen = []

        def reader():
            for _ in range(50):
                grid = store.current
                seen.append(grid.adjacency.shape[0] == grid.centers.shape[0])

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for k in range(5):
            store.rebuild([Cylinder((float(k), 0.0), 1.0)], cell_size=0.5, extent_cells=8)
        for t in threads:
            t.join()
        assert all(seen)

    def test_grid_is_read_only(self, cylinder_grid):
        with pytest.raises(ValueError):
            cylinder_grid.blocked[0, 0] = True
