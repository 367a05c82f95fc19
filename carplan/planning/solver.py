"""
Curve family solver.

Enumerates the Dubins or Reeds-Shepp words between two poses given in
normalized units and returns the feasible ones ordered by length.
"""

from typing import List, Optional

from ..geometry import Pose
from .dubins import dubins_words
from .elements import SymbolicPath
from .reeds_shepp import reeds_shepp_words

DUBINS = "dubins"
REEDS_SHEPP = "reeds_shepp"


def solve_all(start: Pose, goal: Pose, allow_reverse: bool = True) -> List[SymbolicPath]:
    """
    Every feasible word from ``start`` to ``goal``, shortest first.

    Both poses are in normalized units (world distances divided by the turning
    radius). Ties keep the word enumeration order.

    Args:
        start: Start pose
        goal: Goal pose
        allow_reverse: Reeds-Shepp words when True, forward-only Dubins words otherwise

    Returns:
        List of SymbolicPath sorted by total length
    """
    local = goal.relative_to(start)
    if allow_reverse:
        family, words = REEDS_SHEPP, reeds_shepp_words(local.x, local.y, local.theta)
    else:
        family, words = DUBINS, dubins_words(local.x, local.y, local.theta)

    paths = [
        SymbolicPath.from_lengths(lengths, template, family, name)
        for name, lengths, feasible, template in words
        if feasible
    ]
    return sorted(paths, key=lambda p: p.length)


def solve(start: Pose, goal: Pose, allow_reverse: bool = True) -> Optional[SymbolicPath]:
    """Shortest feasible word from ``start`` to ``goal``, None if no word is feasible."""
    paths = solve_all(start, goal, allow_reverse)
    if not paths:
        return None
    return paths[0]


def solve_world(start: Pose, goal: Pose, turning_radius: float, allow_reverse: bool = True) -> List[SymbolicPath]:
    """Like solve_all, for poses in world units."""
    if turning_radius <= 0:
        raise ValueError(f"turning_radius must be positive, got {turning_radius}")
    return solve_all(start.scaled(1.0 / turning_radius), goal.scaled(1.0 / turning_radius), allow_reverse)
