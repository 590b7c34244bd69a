"""
Line-by-line extinction-coefficient builder.

For every atmospheric layer the contributions of all line transitions are
summed with Voigt profiles taken from a precomputed `VoigtProfileTable`.
The sum is accumulated on a per-layer dynamic wavenumber grid whose
resolution follows the narrowest line width of the layer, then
downsampled to the output grid.

Line strength per unit number density of the absorbing molecule:

    k = ratio * SIGCTE * gf * exp(-c2 E_low / T) * (1 - exp(-c2 nu / T)) / Z(T)

with SIGCTE = pi e^2 / (m_e c^2).
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
from numba import jit

from transit_rt.core.atmosphere import AtmosphereLayers, Isotopes
from transit_rt.core.constants import (
    AMU,
    BOLTZMANN_CONSTANT,
    C2_RADIATION,
    DEFAULT_ETHRESH,
    DOPPLER_REBIN_RATIO,
    LINE_STRENGTH_CONSTANT,
    SPEED_OF_LIGHT,
    SQRT_LN2,
)
from transit_rt.core.errors import AllocationError, InvalidWidthError
from transit_rt.core.lines import LineTransitions
from transit_rt.core.voigt import VoigtProfileTable, nearest_index
from transit_rt.core.wavenumber import WavenumberGrid, downsample

logger = logging.getLogger(__name__)


@dataclass
class LayerStatistics:
    """Bookkeeping of one layer's extinction computation.

    Attributes:
        layer: Layer index
        n_lines: Lines inside the oversampled wavenumber range
        n_coadded: Lines merged into a neighbouring line of the same isotope
        n_skipped: Lines (after co-adding) below the strength threshold
        factor: Dynamic oversampling factor used
        kmin: Weakest line strength in range [cm^-1]
        kmax: Strongest line strength in range [cm^-1]
        min_width: Narrowest line half width of the layer [cm^-1]
    """
    layer: int
    n_lines: int = 0
    n_coadded: int = 0
    n_skipped: int = 0
    factor: int = 1
    kmin: float = 0.0
    kmax: float = 0.0
    min_width: float = 0.0

    @property
    def n_evaluated(self) -> int:
        """Lines whose profile was added to the extinction."""
        return self.n_lines - self.n_coadded - self.n_skipped


class ExtinctionGrid:
    """Extinction coefficient per layer and output wavenumber.

    Rows are published whole, together with their ``computed`` flag,
    under an internal lock so concurrent layer workers never expose a
    partially written row.
    """

    def __init__(self, extinction: np.ndarray, computed: np.ndarray):
        self.extinction = extinction
        self.computed = computed
        self._lock = threading.Lock()

    @classmethod
    def allocate(cls, num_layers: int, num_wavenumbers: int, num_isotopes: int = 1) -> "ExtinctionGrid":
        """Allocate a zeroed grid.

        Args:
            num_layers: Number of atmospheric layers
            num_wavenumbers: Number of output wavenumbers
            num_isotopes: Number of isotopes contributing lines

        Returns:
            ExtinctionGrid with no computed rows

        Raises:
            ValueError: For fewer than 1 layer, 2 wavenumbers or 1 isotope
            AllocationError: If the arrays cannot be allocated
        """
        if num_layers < 1:
            raise ValueError(f"Number of layers ({num_layers}) must be at least 1")
        if num_wavenumbers < 2:
            raise ValueError(
                f"Number of wavenumbers ({num_wavenumbers}) must be at least 2"
            )
        if num_isotopes < 1:
            raise ValueError(f"Number of isotopes ({num_isotopes}) must be at least 1")
        try:
            extinction = np.zeros((num_layers, num_wavenumbers), dtype=np.float64)
            computed = np.zeros(num_layers, dtype=bool)
        except MemoryError as e:
            raise AllocationError(
                f"Cannot allocate extinction grid of {num_layers}x{num_wavenumbers}"
            ) from e
        return cls(extinction, computed)

    @property
    def shape(self) -> Tuple[int, int]:
        """(number of layers, number of wavenumbers)."""
        return self.extinction.shape

    @property
    def num_layers(self) -> int:
        return self.extinction.shape[0]

    @property
    def num_wavenumbers(self) -> int:
        return self.extinction.shape[1]

    def write_row(self, layer: int, values: np.ndarray) -> None:
        """Store a complete layer row and mark it computed."""
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.num_wavenumbers,):
            raise ValueError(
                f"Row for layer {layer} has shape {values.shape}, "
                f"expected ({self.num_wavenumbers},)"
            )
        with self._lock:
            self.extinction[layer, :] = values
            self.computed[layer] = True

    def snapshot(self) -> Tuple[np.ndarray, np.ndarray]:
        """Consistent copies of (extinction, computed)."""
        with self._lock:
            return self.extinction.copy(), self.computed.copy()

    def load(self, extinction: np.ndarray, computed: np.ndarray) -> None:
        """Replace the whole grid content."""
        if extinction.shape != self.extinction.shape or computed.shape != self.computed.shape:
            raise ValueError(
                f"Cannot load grid of shape {extinction.shape} into {self.extinction.shape}"
            )
        with self._lock:
            self.extinction[:, :] = extinction
            self.computed[:] = computed

    def missing_layers(self) -> List[int]:
        """Indices of layers not computed yet."""
        with self._lock:
            return [int(r) for r in np.flatnonzero(~self.computed)]

    def wavenumber_column(self, index: int) -> np.ndarray:
        """Extinction of every layer at one output wavenumber (a copy)."""
        return self.extinction[:, index].copy()


def layer_widths(
    atmosphere: AtmosphereLayers,
    isotopes: Isotopes,
    layer: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """Lorentz and Doppler half widths of every isotope in a layer.

    The Lorentz width comes from collisions with every species of the
    atmosphere (hard-sphere kinetic theory); the Doppler width scales with
    wavenumber and is returned per unit wavenumber.

    Args:
        atmosphere: Atmospheric layers
        isotopes: Isotope table
        layer: Layer index

    Returns:
        Tuple of (lorentz [cm^-1], doppler per unit wavenumber [dimensionless])
    """
    molecules = atmosphere.molecules
    temperature = atmosphere.temperature[layer]
    density = molecules.density[:, layer]

    # Collision diameter and reduced-mass factor for each (isotope, partner) pair
    parent_radius = molecules.radius[isotopes.molecule]
    diameter = parent_radius[:, None] + molecules.radius[None, :]
    mass_factor = np.sqrt(1.0 / isotopes.mass[:, None] + 1.0 / molecules.mass[None, :])
    collisions = np.sum(density[None, :] * diameter**2 * mass_factor, axis=1)

    lorentz = (
        np.sqrt(2.0 * BOLTZMANN_CONSTANT * temperature / (np.pi * AMU))
        / SPEED_OF_LIGHT * collisions
    )
    doppler = (
        np.sqrt(2.0 * BOLTZMANN_CONSTANT * temperature / AMU)
        * SQRT_LN2 / SPEED_OF_LIGHT / np.sqrt(isotopes.mass)
    )
    return lorentz, doppler


# =============================================================================
# Numba-accelerated line accumulation
# =============================================================================

@jit(nopython=True, cache=True, nogil=True)
def accumulate_lines(
    line_wavenumber: np.ndarray,
    line_isotope: np.ndarray,
    line_strength: np.ndarray,
    initial: float,
    oversampled_spacing: float,
    num_oversampled: int,
    factor: int,
    threshold: float,
    lorentz: np.ndarray,
    doppler_per_wn: np.ndarray,
    doppler_index: np.ndarray,
    lorentz_index: np.ndarray,
    doppler_samples: np.ndarray,
    profiles: np.ndarray,
    offsets: np.ndarray,
    half_sizes: np.ndarray,
    rebin_ratio: float,
    accumulator: np.ndarray,
) -> Tuple[int, int]:
    """Add every line profile into the dynamic-grid accumulator.

    Lines must be sorted by wavenumber and lie inside the oversampled grid.
    Consecutive lines of the same isotope closer than one oversampled
    spacing to the first one's sample are merged into a single profile.

    Returns:
        Tuple of (number of co-added lines, number of skipped lines)
    """
    n_lines = len(line_wavenumber)
    n_dynamic = len(accumulator)
    n_coadded = 0
    n_skipped = 0

    i = 0
    while i < n_lines:
        wavn = line_wavenumber[i]
        iso = line_isotope[i]
        k = line_strength[i]

        iown = int((wavn - initial) / oversampled_spacing + 0.5)
        if iown > num_oversampled - 1:
            iown = num_oversampled - 1
        center = initial + iown * oversampled_spacing

        while (i + 1 < n_lines and line_isotope[i + 1] == iso
               and np.abs(line_wavenumber[i + 1] - center) < oversampled_spacing):
            i += 1
            k += line_strength[i]
            n_coadded += 1

        if k < threshold:
            n_skipped += 1
            i += 1
            continue

        idop = doppler_index[iso]
        doppler = doppler_per_wn[iso] * wavn
        if doppler >= rebin_ratio * lorentz[iso]:
            idop = nearest_index(doppler_samples, doppler)
        ilor = lorentz_index[iso]
        start = offsets[idop, ilor]
        psize = half_sizes[idop, ilor]

        # Profile sample index of dynamic point j: factor*j - offset
        idwn = iown // factor
        subw = iown - idwn * factor
        offset = factor * idwn - psize + subw
        minj = idwn - (psize - subw) // factor
        maxj = idwn + (psize + subw) // factor
        if minj < 0:
            minj = 0
        if maxj > n_dynamic - 1:
            maxj = n_dynamic - 1

        for j in range(minj, maxj + 1):
            accumulator[j] += k * profiles[start + factor * j - offset]

        i += 1

    return n_coadded, n_skipped


class OpacityGridBuilder:
    """Line-by-line extinction for each atmospheric layer.

    Example:
        >>> builder = OpacityGridBuilder(atmosphere, isotopes, lines, grid, table)
        >>> extinction = ExtinctionGrid.allocate(atmosphere.num_layers, grid.num_points)
        >>> stats = builder.compute_layer_extinction(0, extinction)
    """

    def __init__(
        self,
        atmosphere: AtmosphereLayers,
        isotopes: Isotopes,
        lines: LineTransitions,
        grid: WavenumberGrid,
        profiles: VoigtProfileTable,
        ethresh: float = DEFAULT_ETHRESH,
    ):
        """Initialize the builder.

        Args:
            atmosphere: Atmospheric layers and molecule densities
            isotopes: Isotope table
            lines: Sorted line transitions
            grid: Wavenumber sampling
            profiles: Voigt profiles sampled at the oversampled spacing
            ethresh: Lines weaker than ethresh times the strongest are skipped
        """
        if not np.isclose(profiles.spacing, grid.oversampled_spacing, rtol=1e-9, atol=0.0):
            raise ValueError(
                f"Voigt profiles are sampled at {profiles.spacing:g} cm^-1, "
                f"expected the oversampled spacing {grid.oversampled_spacing:g} cm^-1"
            )
        if lines.num_lines and (lines.isotope.min() < 0 or
                                lines.isotope.max() >= isotopes.num_isotopes):
            raise ValueError("Line isotope indices out of range of the isotope table")

        self.atmosphere = atmosphere
        self.isotopes = isotopes
        self.lines = lines
        self.grid = grid
        self.profiles = profiles
        self.ethresh = ethresh

        start, stop = lines.index_range((grid.initial, grid.last_oversampled))
        self._line_slice = slice(start, stop)
        logger.debug(f"{stop - start} of {lines.num_lines} lines inside the wavenumber range")

    def line_strengths(self, layer: int) -> np.ndarray:
        """Strength of every in-range line in a layer [cm^-1 * cm].

        Integrating the Voigt profile (unit area) times this strength over
        wavenumber gives the line's contribution to the extinction.
        """
        sl = self._line_slice
        iso = self.lines.isotope[sl]
        wavn = self.lines.wavenumber[sl]
        temperature = self.atmosphere.temperature[layer]

        partition = self.isotopes.partition_function(temperature)
        density = self.atmosphere.molecules.density[self.isotopes.molecule, layer]

        return (
            density[iso] * self.isotopes.ratio[iso] * LINE_STRENGTH_CONSTANT
            * self.lines.gf[sl]
            * np.exp(-C2_RADIATION * self.lines.lower_energy[sl] / temperature)
            * (1.0 - np.exp(-C2_RADIATION * wavn / temperature))
            / partition[iso]
        )

    def compute_layer_extinction(self, layer: int, extinction: ExtinctionGrid) -> LayerStatistics:
        """Compute and store the extinction of one layer.

        Args:
            layer: Layer index
            extinction: Grid receiving the row

        Returns:
            LayerStatistics of the computation

        Raises:
            InvalidWidthError: For negative line widths, or a line with no width at all
            AllocationError: If the work arrays cannot be allocated
        """
        grid = self.grid
        table = self.profiles
        stats = LayerStatistics(layer=layer)

        lorentz, doppler_per_wn = layer_widths(self.atmosphere, self.isotopes, layer)
        widths = np.maximum(lorentz, doppler_per_wn * grid.initial)
        if (np.any(~np.isfinite(lorentz)) or np.any(lorentz < 0)
                or np.any(~(widths > 0))):
            raise InvalidWidthError(
                f"Invalid line widths in layer {layer} "
                f"(T={self.atmosphere.temperature[layer]:.1f}K): Lorentz {lorentz}, "
                f"Doppler {doppler_per_wn * grid.initial}"
            )

        stats.min_width = float(widths.min())
        stats.factor = grid.dynamic_factor(stats.min_width)

        try:
            accumulator = np.zeros(grid.num_dynamic(stats.factor))
        except MemoryError as e:
            raise AllocationError(
                f"Cannot allocate dynamic grid for layer {layer} (factor {stats.factor})"
            ) from e

        sl = self._line_slice
        strength = self.line_strengths(layer)
        stats.n_lines = len(strength)

        if stats.n_lines:
            stats.kmin = float(strength.min())
            stats.kmax = float(strength.max())

            doppler_index = np.array(
                [table.nearest_doppler(d * grid.initial) for d in doppler_per_wn],
                dtype=np.int64,
            )
            lorentz_index = np.array(
                [table.nearest_lorentz(w) for w in lorentz], dtype=np.int64
            )

            stats.n_coadded, stats.n_skipped = accumulate_lines(
                self.lines.wavenumber[sl],
                self.lines.isotope[sl],
                strength,
                grid.initial,
                grid.oversampled_spacing,
                grid.num_oversampled,
                stats.factor,
                self.ethresh * stats.kmax,
                lorentz,
                doppler_per_wn,
                doppler_index,
                lorentz_index,
                table.doppler,
                table.profiles,
                table.offsets,
                table.half_sizes,
                DOPPLER_REBIN_RATIO,
                accumulator,
            )

        row = downsample(accumulator, grid.oversampling // stats.factor)
        extinction.write_row(layer, row)

        logger.debug(
            f"Layer {layer}: factor={stats.factor}, lines={stats.n_lines}, "
            f"coadded={stats.n_coadded}, skipped={stats.n_skipped}, "
            f"kmin={stats.kmin:.3e}, kmax={stats.kmax:.3e}"
        )
        return stats
