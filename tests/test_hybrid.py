"""
Pytest unit tests for the hybrid planner
Run with: pytest tests/test_hybrid.py -v
"""

import logging
import math

import numpy as np
import pytest

from carplan import Aabb, Cylinder, HybridPlanner, Kinematics, PlannerConfig, Pose, VehicleSpec, WorldState
from carplan.planning import OccupancyGrid, PlanStatus, is_valid, simplify_polyline, solve_world
from common import max_gap


@pytest.fixture(scope="module")
def planner():
    return HybridPlanner()


@pytest.fixture(scope="module")
def blocked_world():
    return WorldState(obstacles=[Cylinder((2.5, 0.0), 1.0)], arena_radius=20.0)


def check(planner, path, world):
    cfg = planner.config
    return is_valid(path, world.obstacles, world.arena_radius, cfg.wall_buffer_meters, cfg.obstacle_buffer_meters)


class TestDirect:
    def test_straight_no_obstacles(self, planner):
        result = planner.plan_detailed(Pose(0, 0, 0), Pose(5, 0, 0), VehicleSpec(turning_radius=2.0), WorldState())
        assert result.status == PlanStatus.DIRECT
        assert len(result.path) == 21
        assert result.path.last.is_close(Pose(5, 0, 0), pos_tol=1e-9, heading_tol=1e-9)
        assert len(result.segments) == 1
        assert result.segments[0][1].word == "S+"

    def test_clear_curve_with_obstacles(self, planner):
        world = WorldState(obstacles=[Cylinder((0.0, 10.0), 1.0)])
        result = planner.plan_detailed(Pose(0, 0, 0), Pose(5, 0, 0), VehicleSpec(turning_radius=2.0), world)
        assert result.status == PlanStatus.DIRECT

    def test_plan_returns_path(self, planner):
        path = planner.plan(Pose(0, 0, 0), Pose(3, 3, math.pi / 2), VehicleSpec(turning_radius=1.0), WorldState())
        assert len(path) > 1
        assert path.last.distance_to(Pose(3, 3, math.pi / 2)) < 1e-6

    def test_dubins_vehicle_never_reverses(self, planner):
        spec = VehicleSpec(turning_radius=1.0, kinematics=Kinematics.DUBINS)
        path = planner.plan(Pose(0, 0, 0), Pose(-2, 0, 0), spec, WorldState())
        assert all(g == 1 for g in path.gears)


class TestStitched:
    """Cylinder (2.5, 0) r=1 between start (0,0,0) and goal (5,0,0)."""

    @pytest.fixture(scope="class")
    def result(self, planner, blocked_world):
        return planner.plan_detailed(Pose(0, 0, 0), Pose(5, 0, 0), VehicleSpec(turning_radius=1.0), blocked_world)

    def test_direct_blocked(self, planner, blocked_world):
        curve = solve_world(Pose(0, 0, 0), Pose(5, 0, 0), 1.0)[0]
        direct = planner.sample(curve, Pose(0, 0, 0), VehicleSpec(turning_radius=1.0))
        assert not check(planner, direct, blocked_world)

    def test_status(self, result):
        assert result.status == PlanStatus.STITCHED

    def test_valid(self, planner, result, blocked_world):
        assert check(planner, result.path, blocked_world)

    def test_reaches_goal(self, result):
        assert result.path.first.is_close(Pose(0, 0, 0), pos_tol=1e-9, heading_tol=1e-9)
        assert result.path.last.distance_to(Pose(5, 0, 0)) < 1e-6

    def test_samples_dense(self, planner, result):
        assert max_gap(result.path) <= planner.config.sample_step_meters + 1e-6

    def test_waypoints_keep_clearance(self, result):
        pts = np.array(result.waypoints)
        assert len(pts) >= 2
        assert np.all(np.hypot(pts[:, 0] - 2.5, pts[:, 1]) >= 1.5 - 1e-9)

    def test_prebuilt_grid_gives_same_path(self, planner, result, blocked_world):
        cfg = planner.config
        grid = OccupancyGrid.build(
            blocked_world.obstacles, cfg.grid_cell_size, cfg.grid_extent_cells, cfg.obstacle_buffer_meters
        )
        again = planner.plan_detailed(Pose(0, 0, 0), Pose(5, 0, 0), VehicleSpec(turning_radius=1.0), blocked_world, grid)
        assert np.allclose(again.path.positions, result.path.positions)

    def test_without_resimplify(self, blocked_world):
        planner = HybridPlanner(PlannerConfig(resimplify=False))
        result = planner.plan_detailed(Pose(0, 0, 0), Pose(5, 0, 0), VehicleSpec(turning_radius=1.0), blocked_world)
        assert result.status == PlanStatus.STITCHED
        assert check(planner, result.path, blocked_world)


class TestGoalNudge:
    def test_goal_inside_obstacle_is_moved(self, planner, blocked_world, caplog):
        with caplog.at_level(logging.WARNING, logger="carplan.planning.hybrid"):
            result = planner.plan_detailed(Pose(0, 0, 0), Pose(2.5, 0, 0), VehicleSpec(turning_radius=1.0), blocked_world)
        assert math.hypot(result.goal.x - 2.5, result.goal.y) == pytest.approx(1.5 + 0.05)
        assert result.goal.theta == pytest.approx(0.0)
        assert "inside an obstacle buffer" in caplog.text
        assert len(result.path) > 0

    def test_overlapping_obstacle_is_reported(self, planner, caplog):
        world = WorldState(obstacles=[Cylinder((0.0, 0.0), 1.0), Cylinder((1.6, 0.0), 0.5)])
        with caplog.at_level(logging.WARNING, logger="carplan.planning.hybrid"):
            goal = planner.nudge_goal(Pose(0, 0, 0), world)
        assert goal.x == pytest.approx(1.55)
        assert "still inside an obstacle buffer" in caplog.text

    def test_moved_past_wall_is_reported(self, planner, caplog):
        world = WorldState(obstacles=[Cylinder((2.0, 0.0), 0.5)], arena_radius=3.0)
        with caplog.at_level(logging.WARNING, logger="carplan.planning.hybrid"):
            goal = planner.nudge_goal(Pose(2, 0, 0), world)
        assert goal.x == pytest.approx(3.05)
        assert "outside the arena wall buffer" in caplog.text

    def test_clean_nudge_logs_once(self, planner, blocked_world, caplog):
        with caplog.at_level(logging.WARNING, logger="carplan.planning.hybrid"):
            planner.nudge_goal(Pose(2.5, 0.5, 0), blocked_world)
        assert len(caplog.records) == 1


class TestBoxObstacle:
    """Box (2.5, 0) half extents 0.5 between start (0,0,0) and goal (5,0,0)."""

    @pytest.fixture(scope="class")
    def box_world(self):
        return WorldState(obstacles=[Aabb((2.5, 0.0), (0.5, 0.5))], arena_radius=20.0)

    @pytest.fixture(scope="class")
    def result(self, planner, box_world):
        return planner.plan_detailed(Pose(0, 0, 0), Pose(5, 0, 0), VehicleSpec(turning_radius=0.5), box_world)

    def test_status(self, result):
        assert result.status == PlanStatus.STITCHED

    def test_valid(self, planner, result, box_world):
        assert check(planner, result.path, box_world)

    def test_reaches_goal(self, result):
        assert result.path.last.distance_to(Pose(5, 0, 0)) < 1e-6


class TestTurningClearance:
    """Turning clearance is only applied when enabled in the config."""

    @pytest.fixture(scope="class")
    def clearance_planner(self):
        return HybridPlanner(PlannerConfig(turning_clearance=True))

    def test_clear_path_passes(self, clearance_planner):
        world = WorldState(obstacles=[Cylinder((2.5, 3.0), 0.5)])
        result = clearance_planner.plan_detailed(Pose(0, 0, 0), Pose(5, 0, 0), VehicleSpec(turning_radius=1.0), world)
        cfg = clearance_planner.config
        assert result.status == PlanStatus.DIRECT
        assert is_valid(
            result.path,
            world.obstacles,
            obstacle_buffer=cfg.obstacle_buffer_meters,
            turning_radius=1.0,
            clearance_tolerance=cfg.turning_clearance_tolerance,
        )

    def test_goal_facing_cylinder_is_rejected(self, planner, clearance_planner, caplog):
        # goal clears the buffer but ends heading straight at the cylinder
        world = WorldState(obstacles=[Cylinder((4.2, 0.0), 0.5)])
        spec = VehicleSpec(turning_radius=1.0)
        plain = planner.plan_detailed(Pose(0, 0, 0), Pose(3, 0, 0), spec, world)
        assert plain.status == PlanStatus.DIRECT

        with caplog.at_level(logging.WARNING, logger="carplan.planning.hybrid"):
            result = clearance_planner.plan_detailed(Pose(0, 0, 0), Pose(3, 0, 0), spec, world)
        assert result.status == PlanStatus.FALLBACK
        assert result.path.last.distance_to(Pose(3, 0, 0)) < 1e-6
        assert not is_valid(result.path, world.obstacles, obstacle_buffer=0.5, turning_radius=1.0)
        assert caplog.records


class TestFallback:
    def test_enclosed_goal_terminates(self, caplog):
        ring = [Cylinder((2.0 * math.cos(a), 2.0 * math.sin(a)), 0.6) for a in np.linspace(0, 2 * math.pi, 16, endpoint=False)]
        world = WorldState(obstacles=ring, arena_radius=12.0)
        planner = HybridPlanner(PlannerConfig(grid_extent_cells=24, obstacle_buffer_meters=0.3))
        with caplog.at_level(logging.WARNING):
            result = planner.plan_detailed(Pose(5, 0, 0), Pose(0, 0, 0), VehicleSpec(turning_radius=1.0), world)
        assert result.status == PlanStatus.FALLBACK
        assert len(result.path) > 0
        assert result.path.last.distance_to(Pose(0, 0, 0)) < 1e-6
        assert caplog.records


class TestBatch:
    def test_batch_matches_single(self, planner, blocked_world):
        spec = VehicleSpec(turning_radius=1.0)
        requests = [
            (Pose(0, 0, 0), Pose(5, 0, 0), spec),
            (Pose(0, 3, 0), Pose(5, 3, 0), spec),
            (Pose(-2, -2, 1.0), Pose(4, 2, 0.5), spec),
        ]
        results = planner.plan_batch(requests, blocked_world, max_workers=3)
        assert len(results) == 3
        for (s, g, v), r in zip(requests, results):
            single = planner.plan_detailed(s, g, v, blocked_world)
            assert r.status == single.status
            assert np.allclose(r.path.positions, single.path.positions)


class TestSimplify:
    def test_collinear_points_removed(self):
        pts = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0), (3.0, 1.0), (4.0, 2.0)]
        assert simplify_polyline(pts, math.radians(5)) == [(0.0, 0.0), (2.0, 0.0), (4.0, 2.0)]

    def test_short_polylines_unchanged(self):
        assert simplify_polyline([(0.0, 0.0), (1.0, 1.0)], 0.1) == [(0.0, 0.0), (1.0, 1.0)]

    def test_endpoints_kept(self):
        pts = [(float(i), 0.0) for i in range(10)]
        assert simplify_polyline(pts, math.radians(5)) == [(0.0, 0.0), (9.0, 0.0)]
