import numpy as np

from carplan.geometry import Pose, wrap_angle


def random_pose_pairs(n=20, seed=42, span=10.0):
    """Random (start, goal) pose pairs in a square of side ``span``."""
    rng = np.random.default_rng(seed)
    pairs = []
    for _ in range(n):
        start = Pose(*(rng.random(2) * span), rng.uniform(-np.pi, np.pi))
        goal = Pose(*(rng.random(2) * span), rng.uniform(-np.pi, np.pi))
        pairs.append((start, goal))
    return pairs


def heading_error(a, b):
    return abs(wrap_angle(a - b))


def max_gap(path):
    """Largest distance between consecutive samples."""
    pts = path.positions
    if len(pts) < 2:
        return 0.0
    return float(np.max(np.linalg.norm(np.diff(pts, axis=0), axis=1)))
