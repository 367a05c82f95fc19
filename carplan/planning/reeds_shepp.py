"""
Reeds-Shepp Curves for Vehicles with Reverse Gear
=================================================

Shortest paths for a car that can drive both forwards and backwards with a
unit turn radius (Reeds & Shepp, 1990).

Twelve base formulas cover the families CSC, C|C|C, C|CC, CC|C, CCu|CuC,
C|CuCu|C, C|C[pi/2]SC, CSC[pi/2]|C and C|C[pi/2]SC[pi/2]|C. Each one is
evaluated under four symmetries of the goal pose:

    identity          (x, y, phi)
    timeflip          (-x, y, -phi)    every gear reversed
    reflect           (x, -y, -phi)    every steering mirrored
    reflect+timeflip  (-x, -y, phi)    both

which gives 48 candidate words. Arc parameters are wrapped to [-pi, pi) and a
negative parameter means the element is driven in the opposite gear.

Usage:
    >>> from carplan.planning.reeds_shepp import derive_reeds_shepp
    >>> words = derive_reeds_shepp()
    >>> lengths, feasible = words(2.5, 0.0, 0.0)
    >>> lengths.shape
    (48, 5)
"""

import functools

import casadi as ca
import numpy as np

from .elements import Gear, Steering

L, S, R = Steering.LEFT, Steering.STRAIGHT, Steering.RIGHT
F, B = Gear.FORWARD, Gear.BACKWARD

MAX_ELEMENTS = 5

# ==============================================================================
# Core Utilities
# ==============================================================================


def wrap_angle(x):
    """Wrap angle to [-pi, pi]."""
    return ca.atan2(ca.sin(x), ca.cos(x))


def polar(x, y):
    """Cartesian to polar (rho, theta)."""
    return ca.sqrt(x**2 + y**2), ca.atan2(y, x)


def safe_acos(x):
    return ca.acos(ca.fmin(ca.fmax(x, -1), 1))


def safe_asin(x):
    return ca.asin(ca.fmin(ca.fmax(x, -1), 1))


def safe_sqrt(x):
    return ca.sqrt(ca.fmax(x, 0))


def safe_rho(rho):
    """Keep divisions by rho finite at the origin."""
    return ca.fmax(rho, 1e-10)


def always():
    return ca.SX(1)


# ==============================================================================
# Base Formulas
# ==============================================================================
#
# Each formula takes the goal (x, y, phi) in the normalized start frame and
# returns (signed element parameters, feasible).


def csc_same(x, y, phi):
    """L+ S+ L+"""
    u, t = polar(x - ca.sin(phi), y - 1 + ca.cos(phi))
    v = wrap_angle(phi - t)
    return [t, u, v], always()


def csc_opposite(x, y, phi):
    """L+ S+ R+"""
    phi = wrap_angle(phi)
    rho, t1 = polar(x + ca.sin(phi), y - 1 - ca.cos(phi))
    feasible = rho**2 >= 4
    u = safe_sqrt(rho**2 - 4)
    t = wrap_angle(t1 + ca.atan2(2, u))
    v = wrap_angle(t - phi)
    return [t, u, v], feasible


def c_c_c(x, y, phi):
    """L+ R- L+"""
    rho, theta = polar(x - ca.sin(phi), y - 1 + ca.cos(phi))
    feasible = rho <= 4
    A = safe_acos(rho / 4)
    t = wrap_angle(theta + ca.pi / 2 + A)
    u = wrap_angle(ca.pi - 2 * A)
    v = wrap_angle(phi - t - u)
    return [t, u, v], feasible


def c_cc(x, y, phi):
    """L+ R- L-"""
    rho, theta = polar(x - ca.sin(phi), y - 1 + ca.cos(phi))
    feasible = rho <= 4
    A = safe_acos(rho / 4)
    t = wrap_angle(theta + ca.pi / 2 + A)
    u = wrap_angle(ca.pi - 2 * A)
    v = wrap_angle(t + u - phi)
    return [t, u, v], feasible


def cc_c(x, y, phi):
    """L+ R+ L-"""
    rho, theta = polar(x - ca.sin(phi), y - 1 + ca.cos(phi))
    feasible = rho <= 4
    u = safe_acos(1 - rho**2 / 8)
    A = safe_asin(2 * ca.sin(u) / safe_rho(rho))
    t = wrap_angle(theta + ca.pi / 2 - A)
    v = wrap_angle(t - u - phi)
    return [t, u, v], feasible


def ccu_cuc(x, y, phi):
    """L+ R+ L- R-, the two middle arcs share length u"""
    rho, theta = polar(x + ca.sin(phi), y - 1 - ca.cos(phi))
    feasible = rho <= 4
    near = rho <= 2

    A_near = safe_acos((rho + 2) / 4)
    t_near = wrap_angle(theta + ca.pi / 2 + A_near)
    u_near = wrap_angle(A_near)

    A_far = safe_acos((rho - 2) / 4)
    t_far = wrap_angle(theta + ca.pi / 2 - A_far)
    u_far = wrap_angle(ca.pi - A_far)

    t = ca.if_else(near, t_near, t_far)
    u = ca.if_else(near, u_near, u_far)
    v = wrap_angle(phi - t + 2 * u)
    return [t, u, u, v], feasible


def c_cucu_c(x, y, phi):
    """L+ R- L- R+, the two middle arcs share length u"""
    rho, theta = polar(x + ca.sin(phi), y - 1 - ca.cos(phi))
    u1 = (20 - rho**2) / 16
    feasible = ca.logic_and(rho <= 6, ca.logic_and(u1 >= 0, u1 <= 1))
    u = safe_acos(u1)
    A = safe_asin(2 * ca.sin(u) / safe_rho(rho))
    t = wrap_angle(theta + ca.pi / 2 + A)
    v = wrap_angle(t - phi)
    return [t, u, u, v], feasible


def c_c90_s_c_left(x, y, phi):
    """L+ R-[pi/2] S- L-"""
    rho, theta = polar(x - ca.sin(phi), y - 1 + ca.cos(phi))
    feasible = rho >= 2
    u = safe_sqrt(rho**2 - 4) - 2
    A = ca.atan2(2, u + 2)
    t = wrap_angle(theta + ca.pi / 2 + A)
    v = wrap_angle(t - phi + ca.pi / 2)
    return [t, ca.pi / 2, u, v], feasible


def c_s_c90_c_left(x, y, phi):
    """L+ S+ R+[pi/2] L-"""
    rho, theta = polar(x - ca.sin(phi), y - 1 + ca.cos(phi))
    feasible = rho >= 2
    u = safe_sqrt(rho**2 - 4) - 2
    A = ca.atan2(u + 2, 2)
    t = wrap_angle(theta + ca.pi / 2 - A)
    v = wrap_angle(t - phi - ca.pi / 2)
    return [t, u, ca.pi / 2, v], feasible


def c_c90_s_c_right(x, y, phi):
    """L+ R-[pi/2] S- R-"""
    rho, theta = polar(x + ca.sin(phi), y - 1 - ca.cos(phi))
    feasible = rho >= 2
    t = wrap_angle(theta + ca.pi / 2)
    u = rho - 2
    v = wrap_angle(phi - t - ca.pi / 2)
    return [t, ca.pi / 2, u, v], feasible


def c_s_c90_c_right(x, y, phi):
    """L+ S+ L+[pi/2] R-"""
    rho, theta = polar(x + ca.sin(phi), y - 1 - ca.cos(phi))
    feasible = rho >= 2
    t = wrap_angle(theta)
    u = rho - 2
    v = wrap_angle(phi - t - ca.pi / 2)
    return [t, u, ca.pi / 2, v], feasible


def c_c90_s_c90_c(x, y, phi):
    """L+ R-[pi/2] S- L-[pi/2] R+"""
    rho, theta = polar(x + ca.sin(phi), y - 1 - ca.cos(phi))
    feasible = rho >= 4
    u = safe_sqrt(rho**2 - 4) - 4
    A = ca.atan2(2, u + 4)
    t = wrap_angle(theta + ca.pi / 2 + A)
    v = wrap_angle(t - phi)
    return [t, ca.pi / 2, u, ca.pi / 2, v], feasible


# (name, formula, template)
BASE_WORDS = [
    ("CSC_same", csc_same, ((L, F), (S, F), (L, F))),
    ("CSC_opposite", csc_opposite, ((L, F), (S, F), (R, F))),
    ("C|C|C", c_c_c, ((L, F), (R, B), (L, F))),
    ("C|CC", c_cc, ((L, F), (R, B), (L, B))),
    ("CC|C", cc_c, ((L, F), (R, F), (L, B))),
    ("CCu|CuC", ccu_cuc, ((L, F), (R, F), (L, B), (R, B))),
    ("C|CuCu|C", c_cucu_c, ((L, F), (R, B), (L, B), (R, F))),
    ("C|C2SC_left", c_c90_s_c_left, ((L, F), (R, B), (S, B), (L, B))),
    ("CSC2|C_left", c_s_c90_c_left, ((L, F), (S, F), (R, F), (L, B))),
    ("C|C2SC_right", c_c90_s_c_right, ((L, F), (R, B), (S, B), (R, B))),
    ("CSC2|C_right", c_s_c90_c_right, ((L, F), (S, F), (L, F), (R, B))),
    ("C|C2SC2|C", c_c90_s_c90_c, ((L, F), (R, B), (S, B), (L, B), (R, F))),
]

# (name, goal transform, reverse gears, mirror steering)
SYMMETRIES = [
    ("", lambda x, y, phi: (x, y, phi), False, False),
    ("timeflip", lambda x, y, phi: (-x, y, -phi), True, False),
    ("reflect", lambda x, y, phi: (x, -y, -phi), False, True),
    ("timeflip+reflect", lambda x, y, phi: (-x, -y, phi), True, True),
]


def apply_symmetry(template, timeflip, reflect):
    """Transform a (steering, gear) template the same way as the path."""
    out = []
    for steering, gear in template:
        if timeflip:
            gear = Gear(-gear)
        if reflect:
            steering = Steering(-steering)
        out.append((steering, gear))
    return tuple(out)


def candidate_words():
    """All (name, formula, symmetry transform, template) combinations, in evaluation order."""
    words = []
    for name, formula, template in BASE_WORDS:
        for sym_name, transform, timeflip, reflect in SYMMETRIES:
            label = f"{name}/{sym_name}" if sym_name else name
            words.append((label, formula, transform, apply_symmetry(template, timeflip, reflect)))
    return words


REEDS_SHEPP_WORDS = candidate_words()


# ==============================================================================
# Main API
# ==============================================================================


@functools.lru_cache(maxsize=None)
def derive_reeds_shepp():
    """
    Create the CasADi function evaluating every Reeds-Shepp candidate word.

    Returns:
        reeds_shepp_words: Function
            Inputs: x, y, phi (goal in the normalized start frame)
            Outputs: lengths[48x5] (signed, zero padded), feasible[48]
    """
    x = ca.SX.sym("x")
    y = ca.SX.sym("y")
    phi = ca.SX.sym("phi")

    rows = []
    flags = []
    for _, formula, transform, _ in REEDS_SHEPP_WORDS:
        params, feasible = formula(*transform(x, y, phi))
        params = [ca.SX(p) for p in params]
        params += [ca.SX(0)] * (MAX_ELEMENTS - len(params))
        rows.append(ca.horzcat(*params))
        flags.append(feasible)

    return ca.Function(
        "reeds_shepp_words",
        [x, y, phi],
        [ca.vertcat(*rows), ca.vertcat(*flags)],
        ["x", "y", "phi"],
        ["lengths", "feasible"],
    )


def reeds_shepp_words(x, y, phi):
    """
    Evaluate every Reeds-Shepp candidate for a normalized goal.

    Returns:
        list of (name, signed lengths, feasible, template)
    """
    lengths, feasible = derive_reeds_shepp()(x, y, phi)
    lengths = np.array(lengths)
    feasible = np.array(feasible).flatten()
    out = []
    for i, (name, _, _, template) in enumerate(REEDS_SHEPP_WORDS):
        row = lengths[i, : len(template)]
        ok = bool(feasible[i]) and bool(np.all(np.isfinite(row)))
        out.append((name, row.tolist(), ok, template))
    return out
