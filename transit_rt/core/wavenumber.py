"""
Nested wavenumber grids for line-by-line extinction.

Three grids share the same initial wavenumber:

- output grid: spacing ``spacing``, where extinction is reported
- oversampled grid: spacing ``spacing / oversampling``, where line centers
  and Voigt profiles are placed
- dynamic grid: oversampled spacing times a per-layer factor that divides
  ``oversampling``; the line sum is accumulated here and then downsampled
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List


@dataclass
class WavenumberGrid:
    """Output, oversampled and dynamic wavenumber sampling.

    Attributes:
        initial: First output wavenumber [cm^-1]
        final: Requested last output wavenumber [cm^-1]
        spacing: Output grid spacing [cm^-1]
        oversampling: Integer oversampling factor of the fine grid
    """
    initial: float
    final: float
    spacing: float
    oversampling: int = 1
    num_points: int = field(init=False)

    def __post_init__(self):
        if self.spacing <= 0:
            raise ValueError(f"Wavenumber spacing must be positive, got {self.spacing}")
        if self.final <= self.initial:
            raise ValueError(
                f"Final wavenumber ({self.final}) must exceed initial ({self.initial})"
            )
        if int(self.oversampling) != self.oversampling or self.oversampling < 1:
            raise ValueError(
                f"Oversampling must be a positive integer, got {self.oversampling}"
            )
        self.oversampling = int(self.oversampling)
        self.num_points = int(np.floor((self.final - self.initial) / self.spacing + 0.5)) + 1
        if self.num_points < 2:
            raise ValueError("At least 2 output wavenumber samples are required")

    @property
    def values(self) -> np.ndarray:
        """Output wavenumbers [cm^-1]."""
        return self.initial + self.spacing * np.arange(self.num_points)

    @property
    def oversampled_spacing(self) -> float:
        """Spacing of the oversampled grid [cm^-1]."""
        return self.spacing / self.oversampling

    @property
    def num_oversampled(self) -> int:
        """Number of oversampled wavenumbers."""
        return (self.num_points - 1) * self.oversampling + 1

    @property
    def oversampled_values(self) -> np.ndarray:
        """Oversampled wavenumbers [cm^-1]."""
        return self.initial + self.oversampled_spacing * np.arange(self.num_oversampled)

    @property
    def last_oversampled(self) -> float:
        """Last wavenumber of the oversampled grid [cm^-1]."""
        return self.initial + self.oversampled_spacing * (self.num_oversampled - 1)

    def divisors(self) -> List[int]:
        """Admissible dynamic-grid factors (divisors of the oversampling), ascending."""
        return [d for d in range(1, self.oversampling + 1) if self.oversampling % d == 0]

    def dynamic_factor(self, min_width: float) -> int:
        """Choose the dynamic-grid factor for a layer.

        The dynamic spacing must resolve the narrowest line of the layer:
        the largest admissible divisor ``f`` with
        ``f * oversampled_spacing <= 0.5 * min_width`` is returned, or the
        smallest divisor when none qualifies.

        Args:
            min_width: Narrowest line half width of the layer [cm^-1]

        Returns:
            Dynamic oversampling factor
        """
        divisors = self.divisors()
        factor = divisors[0]
        for d in divisors:
            if d * self.oversampled_spacing <= 0.5 * min_width:
                factor = d
        return factor

    def num_dynamic(self, factor: int) -> int:
        """Number of dynamic-grid samples for a factor."""
        return 1 + (self.num_oversampled - 1) // factor


def downsample(values: np.ndarray, scale: int) -> np.ndarray:
    """Area-preserving decimation by an integer factor.

    Each output sample is the boxcar average of ``scale`` input intervals
    centered on it (half weights at both ends for even ``scale``). Windows
    truncated at the edges are renormalized.

    Args:
        values: Input samples
        scale: Decimation factor

    Returns:
        Samples at every ``scale``-th input position
    """
    values = np.asarray(values, dtype=np.float64)
    if scale < 1:
        raise ValueError(f"Downsampling scale must be >= 1, got {scale}")
    if scale == 1:
        return values.copy()

    half = scale // 2
    weights = np.ones(2 * half + 1)
    if scale % 2 == 0:
        weights[0] = weights[-1] = 0.5

    total = np.convolve(values, weights, mode="same")
    norm = np.convolve(np.ones_like(values), weights, mode="same")
    return (total / norm)[::scale]
