"""
Transit modulation from optical depth vs. impact parameter.

For a planet in front of a uniformly bright stellar disk, the fraction of
stellar flux received at one wavenumber is

    M = [ 2 * integral(exp(-tau(b)) b db) + Rs^2 - b_out^2 + exp(-toomuch) b_in^2 ] / Rs^2

where the integral covers the sampled impact parameters, b_out is the
outermost sampled ray, and the disk inside the innermost ray b_in is
treated as transmitting exp(-toomuch).
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy.interpolate import CubicSpline

from transit_rt.core.constants import DEFAULT_TOOMUCH, MIN_IMPACT_PARAMETERS
from transit_rt.core.errors import InsufficientSamplesError
from transit_rt.core.slantpath import RaySolution, total_tau

logger = logging.getLogger(__name__)


@dataclass
class OpticalDepthCurve:
    """Optical depth per impact parameter at one wavenumber.

    Attributes:
        impact_parameter: Impact parameters, descending [cm]
        tau: Optical depth of rays 0..last
        last: Index of the last evaluated ray
    """
    impact_parameter: np.ndarray
    tau: np.ndarray
    last: int


def optical_depth_curve(
    solution: RaySolution,
    impact_parameter: np.ndarray,
    radius: np.ndarray,
    refractivity: np.ndarray,
    extinction: np.ndarray,
    toomuch: float = DEFAULT_TOOMUCH,
) -> OpticalDepthCurve:
    """Optical depth from the outermost ray inward.

    Evaluation stops at the first ray whose optical depth exceeds
    ``toomuch``; rays further in are considered opaque.

    Args:
        solution: Ray solution
        impact_parameter: Impact parameters, descending [cm]
        radius: Layer radii, increasing [cm]
        refractivity: Refractive index per layer
        extinction: Extinction per layer at one wavenumber [cm^-1]
        toomuch: Optical depth beyond which rays are opaque

    Returns:
        OpticalDepthCurve
    """
    n_ip = len(impact_parameter)
    tau = np.zeros(n_ip)
    last = n_ip - 1
    for i in range(n_ip):
        tau[i] = total_tau(solution, impact_parameter[i], radius, refractivity, extinction)
        if tau[i] > toomuch:
            last = i
            break
    return OpticalDepthCurve(
        impact_parameter=impact_parameter, tau=tau[:last + 1], last=last
    )


def modulation(
    tau: np.ndarray,
    last: int,
    toomuch: float,
    impact_parameter: np.ndarray,
    star_radius: float,
) -> float:
    """Fraction of stellar flux transmitted during transit.

    Up to two impact parameters inside ``last`` are appended with zero
    transmission so the spline ends cleanly on the opaque core.

    Args:
        tau: Optical depth of rays 0..last
        last: Index of the last evaluated ray
        toomuch: Optical depth treated as opaque
        impact_parameter: Impact parameters, descending [cm]
        star_radius: Stellar radius [cm]

    Returns:
        Transmitted fraction of the stellar flux

    Raises:
        InsufficientSamplesError: If fewer than 3 points can be integrated
    """
    n_ip = len(impact_parameter)
    n_used = min(last + 3, n_ip)
    if n_used < MIN_IMPACT_PARAMETERS:
        raise InsufficientSamplesError(
            f"Only {n_used} impact parameters available for the radial "
            f"integration (last={last}, {n_ip} sampled); "
            f"at least {MIN_IMPACT_PARAMETERS} are required"
        )

    b = np.asarray(impact_parameter[:n_used], dtype=np.float64)
    integrand = np.zeros(n_used)
    integrand[:last + 1] = np.exp(-np.asarray(tau[:last + 1])) * b[:last + 1]

    # Ascending abscissa for the spline
    b_asc = b[::-1]
    spline = CubicSpline(b_asc, integrand[::-1], bc_type="natural")
    res = spline.integrate(b_asc[0], b_asc[-1])

    b_out = b[0]
    b_in = b[-1]
    res = 2.0 * res + star_radius**2 - b_out**2 + np.exp(-toomuch) * b_in**2
    return float(res / star_radius**2)
