"""
Voigt line-profile generation and the profile cache.

Line widths of many transitions fall in a narrow range, so profiles are
computed once on a grid of (Doppler, Lorentz) half widths and every line is
assigned the profile of its nearest grid pair.

The accurate profile uses Humlicek's W4 rational approximation of the
Faddeeva function (Humlicek 1982, JQSRT 27, 437). Very broad profiles
switch to a pseudo-Voigt approximation (Thompson, Cox & Hastings 1987,
J. Appl. Cryst. 20, 79), trading accuracy for speed.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np
from numba import jit

from transit_rt.core.constants import (
    DEFAULT_TIMES_ALPHA,
    SQRT_LN2,
    VOIGT_QUICK_THRESHOLD,
)
from transit_rt.core.errors import InvalidWidthError

logger = logging.getLogger(__name__)


# =============================================================================
# Numba-accelerated line shape functions
# =============================================================================

@jit(nopython=True, cache=True, nogil=True)
def voigt_humlicek(x: np.ndarray, y: float) -> np.ndarray:
    """Compute the area-normalized Voigt function with Humlicek's W4 algorithm.

    Args:
        x: Dimensionless offset from line center, sqrt(ln2)*(nu-nu0)/alpha_D
        y: Ratio sqrt(ln2)*alpha_L/alpha_D

    Returns:
        Re[w(x + iy)] / sqrt(pi), which integrates to 1 over x
    """
    n = len(x)
    result = np.zeros(n)
    sqrt_pi = np.sqrt(np.pi)

    for i in range(n):
        ax = np.abs(x[i])
        t = y - 1j * x[i]
        u = t * t
        s = ax + y

        if s >= 15.0:
            # Region I: asymptotic
            w = t * 0.5641896 / (0.5 + u)
        elif s >= 5.5:
            # Region II
            w = t * (1.410474 + u * 0.5641896) / (0.75 + u * (3.0 + u))
        elif y >= 0.195 * ax - 0.176:
            # Region III
            w = (16.4955 + t * (20.20933 + t * (11.96482 +
                 t * (3.778987 + t * 0.5642236)))) / \
                (16.4955 + t * (38.82363 + t * (39.27121 +
                 t * (21.69274 + t * (6.699398 + t)))))
        else:
            # Region IV: small y, moderate x
            w = np.exp(u) - t * (36183.31 - u * (3321.9905 - u * (1540.787 -
                u * (219.0313 - u * (35.76683 - u * (1.320522 - u * 0.56419)))))) / \
                (32066.6 - u * (24322.84 - u * (9022.228 - u * (2186.181 -
                 u * (364.2191 - u * (61.57037 - u * (1.841439 - u)))))))

        result[i] = w.real / sqrt_pi

    return result


@jit(nopython=True, cache=True, nogil=True)
def pseudo_voigt(offset: np.ndarray, doppler: float, lorentz: float) -> np.ndarray:
    """Quick pseudo-Voigt approximation.

    Args:
        offset: Wavenumber offsets from line center [cm^-1]
        doppler: Doppler half width at half maximum [cm^-1]
        lorentz: Lorentz half width at half maximum [cm^-1]

    Returns:
        Profile [cm], normalized to unit area
    """
    fg = 2.0 * doppler
    fl = 2.0 * lorentz
    f = (fg**5 + 2.69269 * fg**4 * fl + 2.42843 * fg**3 * fl**2 +
         4.47163 * fg**2 * fl**3 + 0.07842 * fg * fl**4 + fl**5) ** 0.2
    q = fl / f
    eta = 1.36603 * q - 0.47719 * q * q + 0.11116 * q * q * q

    hw = 0.5 * f
    ln2 = np.log(2.0)
    n = len(offset)
    result = np.zeros(n)
    for i in range(n):
        d2 = offset[i] * offset[i]
        lorentzian = hw / (np.pi * (d2 + hw * hw))
        gaussian = np.sqrt(ln2 / np.pi) / hw * np.exp(-ln2 * d2 / (hw * hw))
        result[i] = eta * lorentzian + (1.0 - eta) * gaussian
    return result


@jit(nopython=True, cache=True, nogil=True)
def voigt_samples(
    num_samples: int,
    spacing: float,
    doppler: float,
    lorentz: float,
    quick: bool,
) -> np.ndarray:
    """Evaluate a Voigt profile on ``num_samples`` points centered on the line.

    Args:
        num_samples: Odd number of samples
        spacing: Sample spacing [cm^-1]
        doppler: Doppler HWHM [cm^-1]
        lorentz: Lorentz HWHM [cm^-1]
        quick: Use the pseudo-Voigt approximation

    Returns:
        Profile values [cm]
    """
    half = num_samples // 2
    offset = np.empty(num_samples)
    for i in range(num_samples):
        offset[i] = (i - half) * spacing

    if quick:
        return pseudo_voigt(offset, doppler, lorentz)

    scale = SQRT_LN2 / doppler
    return voigt_humlicek(offset * scale, lorentz * scale) * scale


@jit(nopython=True, cache=True, nogil=True)
def nearest_index(samples: np.ndarray, value: float) -> int:
    """Index of the sample closest to ``value`` in an increasing array."""
    n = len(samples)
    if value <= samples[0]:
        return 0
    if value >= samples[n - 1]:
        return n - 1
    lo = 0
    hi = n - 1
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if samples[mid] > value:
            hi = mid
        else:
            lo = mid
    if value - samples[lo] <= samples[hi] - value:
        return lo
    return hi


def profile_size(
    doppler_width: float,
    lorentz_width: float,
    sample_spacing: float,
    widths_in_alpha: float,
    max_half_size: int,
) -> int:
    """Number of samples of a Voigt profile.

    Either width may be zero (a vacuum layer has no collisional broadening),
    but not both.

    Raises:
        InvalidWidthError: For negative or non-finite widths, or a
            non-positive sample count
    """
    if not (np.isfinite(doppler_width) and np.isfinite(lorentz_width)
            and doppler_width >= 0 and lorentz_width >= 0):
        raise InvalidWidthError(
            f"Invalid line width. Doppler width: {doppler_width:g}, "
            f"Lorentz width: {lorentz_width:g}"
        )
    half_width = max(doppler_width, lorentz_width) * widths_in_alpha
    num_samples = 2 * int(half_width / sample_spacing + 0.5) + 1
    if half_width <= 0 or num_samples <= 0:
        raise InvalidWidthError(
            f"Voigt profile size is not positive (half width {half_width:g}, {num_samples} samples). "
            f"Doppler width: {doppler_width:g}, Lorentz width: {lorentz_width:g}"
        )
    if num_samples < 3:
        num_samples = 3
    if num_samples > 2 * max_half_size + 1:
        num_samples = 2 * max_half_size + 1
    return num_samples


def voigt_profile(
    doppler_width: float,
    lorentz_width: float,
    sample_spacing: float,
    widths_in_alpha: float = DEFAULT_TIMES_ALPHA,
    max_half_size: int = 100000,
    quick_threshold: int = VOIGT_QUICK_THRESHOLD,
) -> Tuple[np.ndarray, int]:
    """Compute a discretized Voigt profile.

    The profile extends ``widths_in_alpha`` times the largest of the two
    widths on each side of the line center, with at least 3 and at most
    ``2*max_half_size + 1`` samples.

    Args:
        doppler_width: Doppler HWHM [cm^-1]
        lorentz_width: Lorentz HWHM [cm^-1]
        sample_spacing: Sample spacing [cm^-1]
        widths_in_alpha: Profile half extent in units of the largest width
        max_half_size: Maximum profile half size [samples]
        quick_threshold: Sample count above which the quick approximation is used

    Returns:
        Tuple of (profile [cm], half size), len(profile) == 2*half_size + 1

    Raises:
        InvalidWidthError: For negative, non-finite or all-zero widths
    """
    num_samples = profile_size(
        doppler_width, lorentz_width, sample_spacing, widths_in_alpha, max_half_size
    )
    # The Humlicek scaling needs a Doppler width; pseudo-Voigt reduces to a Lorentzian
    quick = num_samples > quick_threshold or doppler_width == 0
    profile = voigt_samples(
        num_samples, sample_spacing, doppler_width, lorentz_width, quick
    )
    # Enforce exact symmetry about the center sample
    profile = 0.5 * (profile + profile[::-1])
    return profile, num_samples // 2


@dataclass(frozen=True)
class VoigtProfileTable:
    """Precomputed Voigt profiles on a grid of (Doppler, Lorentz) widths.

    Profiles are stored back to back in ``profiles``; the profile for the
    width pair (i, j) starts at ``offsets[i, j]`` and has
    ``2*half_sizes[i, j] + 1`` samples. The table is immutable once built
    and safe to share between layer computations.

    Attributes:
        doppler: Doppler width samples, increasing [cm^-1]
        lorentz: Lorentz width samples, increasing [cm^-1]
        spacing: Sample spacing of every profile [cm^-1]
        profiles: Concatenated profile samples [cm]
        offsets: Start index of each profile, shape (n_doppler, n_lorentz)
        half_sizes: Half size of each profile, shape (n_doppler, n_lorentz)
    """
    doppler: np.ndarray
    lorentz: np.ndarray
    spacing: float
    profiles: np.ndarray
    offsets: np.ndarray
    half_sizes: np.ndarray

    @classmethod
    def build(
        cls,
        doppler_widths: np.ndarray,
        lorentz_widths: np.ndarray,
        spacing: float,
        widths_in_alpha: float = DEFAULT_TIMES_ALPHA,
        max_half_size: int = 100000,
        quick_threshold: int = VOIGT_QUICK_THRESHOLD,
    ) -> "VoigtProfileTable":
        """Compute every profile of a width grid.

        Args:
            doppler_widths: Doppler width samples [cm^-1]
            lorentz_widths: Lorentz width samples [cm^-1]
            spacing: Profile sample spacing [cm^-1]
            widths_in_alpha: Profile half extent in units of the largest width
            max_half_size: Maximum profile half size [samples]
            quick_threshold: Sample count above which the quick approximation is used

        Returns:
            VoigtProfileTable
        """
        doppler = np.sort(np.asarray(doppler_widths, dtype=np.float64))
        lorentz = np.sort(np.asarray(lorentz_widths, dtype=np.float64))
        n_dop, n_lor = len(doppler), len(lorentz)

        chunks = []
        offsets = np.zeros((n_dop, n_lor), dtype=np.int64)
        half_sizes = np.zeros((n_dop, n_lor), dtype=np.int64)
        start = 0
        for i in range(n_dop):
            for j in range(n_lor):
                profile, half = voigt_profile(
                    doppler[i], lorentz[j], spacing,
                    widths_in_alpha, max_half_size, quick_threshold,
                )
                offsets[i, j] = start
                half_sizes[i, j] = half
                chunks.append(profile)
                start += len(profile)

        profiles = np.concatenate(chunks)
        profiles.setflags(write=False)
        offsets.setflags(write=False)
        half_sizes.setflags(write=False)

        logger.info(
            f"Computed {n_dop}x{n_lor} Voigt profiles "
            f"({profiles.size} samples, spacing {spacing:.3g} cm^-1)"
        )
        return cls(
            doppler=doppler,
            lorentz=lorentz,
            spacing=spacing,
            profiles=profiles,
            offsets=offsets,
            half_sizes=half_sizes,
        )

    @classmethod
    def for_widths(
        cls,
        doppler_range: Tuple[float, float],
        lorentz_range: Tuple[float, float],
        spacing: float,
        n_doppler: int = 40,
        n_lorentz: int = 40,
        **kwargs,
    ) -> "VoigtProfileTable":
        """Build a table over log-spaced width samples.

        Args:
            doppler_range: (min, max) Doppler width [cm^-1]
            lorentz_range: (min, max) Lorentz width [cm^-1]
            spacing: Profile sample spacing [cm^-1]
            n_doppler: Number of Doppler samples
            n_lorentz: Number of Lorentz samples
            **kwargs: Passed to ``build``

        Returns:
            VoigtProfileTable
        """
        return cls.build(
            _width_samples(doppler_range, n_doppler, "Doppler"),
            _width_samples(lorentz_range, n_lorentz, "Lorentz"),
            spacing,
            **kwargs,
        )

    @property
    def shape(self) -> Tuple[int, int]:
        """(number of Doppler samples, number of Lorentz samples)."""
        return len(self.doppler), len(self.lorentz)

    def nearest_doppler(self, width: float) -> int:
        """Index of the Doppler sample closest to ``width``."""
        return int(nearest_index(self.doppler, width))

    def nearest_lorentz(self, width: float) -> int:
        """Index of the Lorentz sample closest to ``width``."""
        return int(nearest_index(self.lorentz, width))

    def profile(self, i_doppler: int, i_lorentz: int) -> np.ndarray:
        """Read-only view of one profile."""
        start = self.offsets[i_doppler, i_lorentz]
        size = 2 * self.half_sizes[i_doppler, i_lorentz] + 1
        return self.profiles[start:start + size]


def _width_samples(width_range: Tuple[float, float], num: int, kind: str) -> np.ndarray:
    w_min, w_max = width_range
    if not (w_min > 0 and w_max >= w_min):
        raise InvalidWidthError(
            f"Invalid {kind} width range: ({w_min:g}, {w_max:g})"
        )
    if num < 1:
        raise ValueError(f"Number of {kind} width samples must be >= 1")
    if num == 1 or w_max == w_min:
        return np.array([w_min])
    return np.geomspace(w_min, w_max, num)
