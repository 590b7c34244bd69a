"""
Slant-Path Optical Depth
========================

Optical depth along a ray crossing a spherically symmetric atmosphere,
as a function of the ray's impact parameter.

Two ray solutions are provided:

- straight rays, with constant refractive index, integrated over the
  path length measured from the tangent point
- bent rays, with a radius-dependent refractive index, integrated over
  radius with the refraction-corrected path element

Both treat a ray whose tangent point lies above the sampled atmosphere as
crossing nothing (zero optical depth).
"""

import logging
from enum import Enum
from typing import Tuple, Union

import numpy as np
from scipy.integrate import trapezoid
from scipy.interpolate import CubicSpline

from transit_rt.core.constants import MAX_TANGENT_ITERATIONS, TANGENT_RTOL
from transit_rt.core.errors import ConvergenceFailure, TangentRadiusError

logger = logging.getLogger(__name__)


class RaySolution(Enum):
    """Ray-path model used for the optical depth."""
    STRAIGHT = "straight"
    BENT = "bent"


def _check_inner(r0: float, radius: np.ndarray, b: float) -> None:
    if r0 < radius[0]:
        raise TangentRadiusError(
            f"Tangent radius {r0:.6g} of impact parameter {b:.6g} is below the "
            f"sampled radius range ({radius[0]:.6g} - {radius[-1]:.6g})"
        )


def _parabolic_value(r: np.ndarray, e: np.ndarray, x: float) -> float:
    """Value at ``x`` of the parabola (or line, for two points) through (r, e)."""
    if len(r) == 2:
        return float(e[0] + (e[1] - e[0]) * (x - r[0]) / (r[1] - r[0]))
    r_0, r_1, r_2 = r[:3]
    e_0, e_1, e_2 = e[:3]
    return float(
        e_0 * (x - r_1) * (x - r_2) / ((r_0 - r_1) * (r_0 - r_2))
        + e_1 * (x - r_0) * (x - r_2) / ((r_1 - r_0) * (r_1 - r_2))
        + e_2 * (x - r_0) * (x - r_1) / ((r_2 - r_0) * (r_2 - r_1))
    )


def _tangent_segment_integral(
    r0: float, r_a: float, e_a: float, r_b: float, e_b: float
) -> float:
    """
    Exact one-sided path integral from the tangent point out to ``r_b``.

    Extinction is taken linear in radius through (r_a, e_a) and (r_b, e_b),
    and integrated over the straight path length s = sqrt(r^2 - r0^2).

    Parameters
    ----------
    r0 : float
        Tangent radius, r_a <= r0 < r_b
    r_a, e_a : float
        Inner sample radius and extinction
    r_b, e_b : float
        Outer sample radius and extinction

    Returns
    -------
    float
        Integral of extinction over path length
    """
    slope = (e_b - e_a) / (r_b - r_a)
    e0 = e_a + slope * (r0 - r_a)
    half_chord = np.sqrt((r_b - r0) * (r_b + r0))
    res = (e0 - slope * r0) * half_chord
    if slope != 0.0:
        res += 0.5 * slope * (half_chord * r_b + r0 * r0 * np.log((half_chord + r_b) / r0))
    return float(res)


def total_tau_straight(
    impact_parameter: float,
    radius: np.ndarray,
    refractivity: Union[float, np.ndarray],
    extinction: np.ndarray,
) -> float:
    """
    Optical depth of a straight ray.

    Parameters
    ----------
    impact_parameter : float
        Ray impact parameter in cm
    radius : ndarray
        Layer radii in cm, increasing
    refractivity : float or ndarray
        Refractive index; only the first value is used
    extinction : ndarray
        Extinction per layer in cm^-1 at one wavenumber

    Returns
    -------
    float
        Optical depth through both halves of the ray

    Raises
    ------
    TangentRadiusError
        If the tangent radius is below the innermost layer
    """
    n = float(np.atleast_1d(refractivity)[0])
    r0 = impact_parameter / n
    if r0 >= radius[-1]:
        return 0.0
    _check_inner(r0, radius, impact_parameter)

    nrad = len(radius)
    rs = int(np.searchsorted(radius, r0, side="right")) - 1

    # Work on a copy of the bracket window; the shared arrays stay untouched
    r = radius[rs:].copy()
    ex = extinction[rs:].astype(np.float64, copy=True)
    if r0 != r[0]:
        if len(r) > 2:
            ex[0] = _parabolic_value(r, ex, r0)
        elif nrad > 2:
            ex[0] = _parabolic_value(radius[rs - 1:], extinction[rs - 1:], r0)
        else:
            ex[0] = _parabolic_value(r, ex, r0)
        r[0] = r0

    if len(r) > 2:
        s = np.sqrt((r - r0) * (r + r0))
        s[0] = 0.0
        res = CubicSpline(s, ex, bc_type="natural").integrate(0.0, s[-1])
    else:
        res = _tangent_segment_integral(r0, r0, ex[0], r[1], ex[1])

    return 2.0 * float(res)


def find_tangent_radius(
    impact_parameter: float,
    radius: np.ndarray,
    refractivity: np.ndarray,
    max_iterations: int = MAX_TANGENT_ITERATIONS,
    rtol: float = TANGENT_RTOL,
) -> Tuple[float, int]:
    """
    Closest-approach radius of a refracted ray.

    Solves n(r0) * r0 = b by fixed-point iteration starting from r0 = b,
    with n linearly interpolated in radius.

    Parameters
    ----------
    impact_parameter : float
        Ray impact parameter in cm
    radius : ndarray
        Layer radii in cm, increasing
    refractivity : ndarray
        Refractive index per layer
    max_iterations : int
        Iteration cap
    rtol : float
        Relative convergence tolerance

    Returns
    -------
    tuple
        (tangent radius, number of iterations)

    Raises
    ------
    ConvergenceFailure
        If the iteration does not converge within ``max_iterations``
    """
    b = impact_parameter
    r0_prev = b
    for iteration in range(1, max_iterations + 1):
        r0 = b / np.interp(r0_prev, radius, refractivity)
        if abs(r0 - r0_prev) <= rtol * abs(r0):
            return float(r0), iteration
        r0_prev = r0

    raise ConvergenceFailure(
        f"Tangent radius of impact parameter {b:.6g} did not converge in "
        f"{max_iterations} iterations (r0={r0:.9g}, previous {r0_prev:.9g})"
    )


def _path_factor(r, n, r0, b, g0):
    """
    Bent-to-straight path element ratio n s / sqrt((n r)^2 - b^2).

    Samples within the tangent tolerance of r0 take the tangent limit g0.
    """
    s = np.sqrt((r - r0) * (r + r0))
    x2 = (n * r - b) * (n * r + b)
    near = (r - r0) <= 4.0 * TANGENT_RTOL * r0
    assert np.all(x2[~near] > 0.0), f"b/(n r) = {(b / (n * r)).max():g} >= 1"
    g = np.full(len(r), g0)
    g[~near] = n[~near] * s[~near] / np.sqrt(x2[~near])
    return g, s


def total_tau_bent(
    impact_parameter: float,
    radius: np.ndarray,
    refractivity: np.ndarray,
    extinction: np.ndarray,
) -> float:
    """
    Optical depth of a refracted ray.

    The segment next to the tangent point is integrated analytically as a
    straight path, scaled by the refraction factor. The remainder integrates
    e / sqrt(1 - (b / (n r))^2) dr, rewritten over the straight path length
    s = sqrt(r^2 - r0^2) so the integrand stays finite when a sample sits
    just above the tangent point.

    Parameters
    ----------
    impact_parameter : float
        Ray impact parameter in cm
    radius : ndarray
        Layer radii in cm, increasing
    refractivity : ndarray
        Refractive index per layer
    extinction : ndarray
        Extinction per layer in cm^-1 at one wavenumber

    Returns
    -------
    float
        Optical depth through both halves of the ray

    Raises
    ------
    ConvergenceFailure
        If the tangent radius iteration does not converge
    TangentRadiusError
        If the tangent radius is below the innermost layer
    """
    b = impact_parameter
    r0, _ = find_tangent_radius(b, radius, refractivity)
    if r0 >= radius[-1]:
        return 0.0
    _check_inner(r0, radius, b)

    # First sample strictly above the tangent point
    rs = int(np.searchsorted(radius, r0, side="right"))

    # Limit of the path factor at the tangent point: sqrt(n / (n + r dn/dr))
    dn = (refractivity[rs] - refractivity[rs - 1]) / (radius[rs] - radius[rs - 1])
    n0 = float(np.interp(r0, radius, refractivity))
    assert n0 + r0 * dn > 0.0, f"Ray trapped at r0={r0:.6g} (n={n0:.9g}, dn/dr={dn:.6g})"
    g0 = np.sqrt(n0 / (n0 + r0 * dn))

    r = radius[rs:]
    g, s = _path_factor(r, refractivity[rs:], r0, b, g0)
    dt = extinction[rs:] * g

    res = 0.5 * (g0 + g[0]) * _tangent_segment_integral(
        r0, radius[rs - 1], extinction[rs - 1], radius[rs], extinction[rs]
    )
    if len(r) > 2:
        res += CubicSpline(s, dt, bc_type="natural").integrate(s[0], s[-1])
    elif len(r) == 2:
        res += trapezoid(dt, x=s)

    return 2.0 * float(res)


def total_tau(
    solution: RaySolution,
    impact_parameter: float,
    radius: np.ndarray,
    refractivity: np.ndarray,
    extinction: np.ndarray,
) -> float:
    """Optical depth of one ray with the selected ray solution."""
    if solution is RaySolution.STRAIGHT:
        return total_tau_straight(impact_parameter, radius, refractivity, extinction)
    if solution is RaySolution.BENT:
        return total_tau_bent(impact_parameter, radius, refractivity, extinction)
    raise ValueError(f"Unknown ray solution: {solution}")
