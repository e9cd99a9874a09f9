# orrery/physics/kepler.py
from __future__ import annotations

import math
from typing import NamedTuple, Optional

import numpy as np

from orrery.config import settings
from orrery.models.orbital_elements import OrbitalElements


class KeplerSolution(NamedTuple):
    E: float           # eccentric anomaly (rad)
    iterations: int
    converged: bool


def solve_kepler(
    M: float,
    e: float,
    tol: Optional[float] = None,
    max_iter: Optional[int] = None,
    method: str = "fixed_point",
) -> KeplerSolution:
    """
    Solve Kepler's equation M = E - e*sin(E) for the eccentric anomaly E.

    method="fixed_point": E_k = M + e*sin(E_{k-1}) from E_0 = M.
    method="newton": Newton-Raphson, E_0 = M for e < 0.8 else pi.

    Stops when |E_k - E_{k-1}| < tol or after max_iter iterations. Hitting the
    cap is not an error: the last iterate is returned with converged=False.
    """
    tol = float(getattr(settings, "KEPLER_TOLERANCE", 1e-6) if tol is None else tol)
    max_iter = int(getattr(settings, "KEPLER_MAX_ITER", 10) if max_iter is None else max_iter)
    M = float(M)
    e = float(e)

    if method == "fixed_point":
        E = M
        for k in range(1, max_iter + 1):
            E_new = M + e * math.sin(E)
            if abs(E_new - E) < tol:
                return KeplerSolution(E_new, k, True)
            E = E_new
        return KeplerSolution(E, max_iter, False)

    if method == "newton":
        E = M if e < 0.8 else math.pi
        for k in range(1, max_iter + 1):
            f = E - e * math.sin(E) - M
            fp = 1.0 - e * math.cos(E)
            if fp == 0.0:
                return KeplerSolution(E, k, False)
            E_new = E - f / fp
            if abs(E_new - E) < tol:
                return KeplerSolution(E_new, k, True)
            E = E_new
        return KeplerSolution(E, max_iter, False)

    raise ValueError(f"Unknown Kepler method: {method}")


def true_anomaly(E: float, e: float) -> float:
    # 2*atan(sqrt((1+e)/(1-e)) * tan(E/2)), written with atan2 so E = pi stays finite
    return 2.0 * math.atan2(
        math.sqrt(max(0.0, 1.0 + e)) * math.sin(E / 2.0),
        math.sqrt(max(0.0, 1.0 - e)) * math.cos(E / 2.0),
    )


def solve_position(elements: OrbitalElements, elapsed_days: float = 0.0) -> np.ndarray:
    """
    Heliocentric position (same distance units as elements.a) after elapsed_days.
    Degenerate records (a = 0, T = 0) give the origin instead of raising.
    """
    e = float(elements.e)
    n = 2.0 * math.pi / elements.T if elements.T > 0 else 0.0
    M = math.radians(elements.M0) + n * float(elapsed_days)

    E = solve_kepler(M, e).E
    f = true_anomaly(E, e)
    r = elements.a * (1.0 - e * math.cos(E))

    om = math.radians(elements.om)
    w = math.radians(elements.w)
    inc = math.radians(elements.i)

    cos_u, sin_u = math.cos(w + f), math.sin(w + f)
    cos_om, sin_om = math.cos(om), math.sin(om)
    cos_i, sin_i = math.cos(inc), math.sin(inc)

    x = r * (cos_u * cos_om - sin_u * cos_i * sin_om)
    y = r * (cos_u * sin_om + sin_u * cos_i * cos_om)
    z = r * sin_u * sin_i
    return np.array([x, y, z], dtype=float)
