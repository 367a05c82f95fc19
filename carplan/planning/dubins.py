"""
Dubins Curves for Forward-Only Vehicles
=======================================

Forward-only, 2D, unit turn radius words.

The goal is given in the frame of the start pose and normalized by the turn
radius, so the start is always (0, 0, 0) and every turn is a unit circle.
All six words (LSL, RSR, LSR, RSL, LRL, RLR) are written once as CasADi
expressions and compiled into a single function returning the element lengths
of every word together with a feasibility flag.

Usage:
    >>> from carplan.planning.dubins import derive_dubins
    >>> words = derive_dubins()
    >>> lengths, feasible = words(2.5, 0.0, 0.0)
    >>> lengths.shape
    (6, 3)

Functions:
    - derive_dubins() -> casadi.Function (x, y, phi) -> (lengths, feasible)
    - dubins_words(x, y, phi) -> list of (name, lengths, feasible)
"""

import functools

import casadi as ca
import numpy as np

from .elements import Gear, Steering

L, S, R = Steering.LEFT, Steering.STRAIGHT, Steering.RIGHT
F = Gear.FORWARD

# ==============================================================================
# Core Utilities
# ==============================================================================


def mod2pi(x):
    """Wrap angle to [0, 2*pi), values within 1e-9 of a full turn snap to 0."""
    y = x - 2 * ca.pi * ca.floor(x / (2 * ca.pi))
    return ca.if_else(y >= 2 * ca.pi - 1e-9, 0, y)


def polar(x, y):
    """Cartesian to polar (rho, theta)."""
    return ca.sqrt(x**2 + y**2), ca.atan2(y, x)


def clamp_unit(x):
    """Clamp an acos/asin argument into [-1, 1]."""
    return ca.fmin(ca.fmax(x, -1), 1)


def casadi_min_with_cargo(costs, cargos):
    """Select minimum cost and return its cargo (branch-free CasADi)."""
    current_min_cost = costs[0]
    current_min_cargo = cargos[0]

    for i in range(1, len(costs)):
        is_lower = costs[i] < current_min_cost
        current_min_cost = ca.if_else(is_lower, costs[i], current_min_cost)
        current_min_cargo = ca.if_else(is_lower, cargos[i], current_min_cargo)

    return current_min_cost, current_min_cargo


# ==============================================================================
# Left-Handed Words
# ==============================================================================


def compute_lsl(x, y, phi):
    """
    Left-Straight-Left.
    Both circles turn the same way, so the straight runs along the line of centers.
    """
    u, t = polar(x - ca.sin(phi), y - 1 + ca.cos(phi))
    t = mod2pi(t)
    v = mod2pi(phi - t)
    return ca.vertcat(t, u, v), ca.SX(1)


def compute_lsr(x, y, phi):
    """
    Left-Straight-Right.
    Internal tangent, only exists when the circles do not overlap.
    """
    rho, t1 = polar(x + ca.sin(phi), y - 1 - ca.cos(phi))
    feasible = rho >= 2
    u = ca.sqrt(ca.fmax(rho**2 - 4, 0))
    t = mod2pi(t1 + ca.atan2(2, u))
    v = mod2pi(t - phi)
    return ca.vertcat(t, u, v), feasible


def compute_lrl(x, y, phi):
    """
    Left-Right-Left.
    The middle circle touches both end circles; of the two tangent options
    the shorter one is kept.
    """
    rho, theta = polar(x - ca.sin(phi), y - 1 + ca.cos(phi))
    feasible = rho <= 4
    A = ca.acos(clamp_unit(rho / 4))

    # Two tangent options
    t_up = mod2pi(theta + A + ca.pi / 2)
    u_up = mod2pi(ca.pi + 2 * A)
    v_up = mod2pi(phi - theta + A + ca.pi / 2)

    t_down = mod2pi(theta - A + ca.pi / 2)
    u_down = mod2pi(ca.pi - 2 * A)
    v_down = mod2pi(phi - theta - A + ca.pi / 2)

    _, lengths = casadi_min_with_cargo(
        costs=[t_up + u_up + v_up, t_down + u_down + v_down],
        cargos=[ca.vertcat(t_up, u_up, v_up), ca.vertcat(t_down, u_down, v_down)],
    )
    return lengths, feasible


# ==============================================================================
# Main API
# ==============================================================================

# (name, left-handed formula, reflected, template)
DUBINS_WORDS = [
    ("LSL", compute_lsl, False, ((L, F), (S, F), (L, F))),
    ("RSR", compute_lsl, True, ((R, F), (S, F), (R, F))),
    ("LSR", compute_lsr, False, ((L, F), (S, F), (R, F))),
    ("RSL", compute_lsr, True, ((R, F), (S, F), (L, F))),
    ("LRL", compute_lrl, False, ((L, F), (R, F), (L, F))),
    ("RLR", compute_lrl, True, ((R, F), (L, F), (R, F))),
]


@functools.lru_cache(maxsize=None)
def derive_dubins():
    """
    Create the CasADi function evaluating every Dubins word.

    Right-handed words are the left-handed formulas evaluated on the goal
    mirrored about the x axis, (x, -y, -phi).

    Returns:
        dubins_words: Function
            Inputs: x, y, phi (goal in the normalized start frame)
            Outputs: lengths[6x3], feasible[6]
    """
    x = ca.SX.sym("x")
    y = ca.SX.sym("y")
    phi = ca.SX.sym("phi")

    rows = []
    flags = []
    for _, formula, reflected, _ in DUBINS_WORDS:
        if reflected:
            lengths, feasible = formula(x, -y, -phi)
        else:
            lengths, feasible = formula(x, y, phi)
        rows.append(lengths.T)
        flags.append(feasible)

    return ca.Function(
        "dubins_words",
        [x, y, phi],
        [ca.vertcat(*rows), ca.vertcat(*flags)],
        ["x", "y", "phi"],
        ["lengths", "feasible"],
    )


def dubins_words(x, y, phi):
    """
    Evaluate every Dubins word for a normalized goal.

    Returns:
        list of (name, lengths, feasible, template)
    """
    lengths, feasible = derive_dubins()(x, y, phi)
    lengths = np.array(lengths)
    feasible = np.array(feasible).flatten()
    out = []
    for i, (name, _, _, template) in enumerate(DUBINS_WORDS):
        row = lengths[i]
        ok = bool(feasible[i]) and bool(np.all(np.isfinite(row)))
        out.append((name, row.tolist(), ok, template))
    return out
