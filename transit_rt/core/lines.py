"""
Line-transition list used by the extinction builder.

The builder co-adds neighbouring lines and compares each line against the
strongest line of the layer, both of which assume the list is sorted by
increasing wavenumber. Unsorted input is rejected rather than silently
processed.
"""

import numpy as np
from dataclasses import dataclass
from typing import Tuple


@dataclass
class LineTransitions:
    """Container for line-transition data.

    Attributes:
        wavenumber: Line center wavenumbers, increasing [cm^-1]
        lower_energy: Lower-state energies [cm^-1]
        log_gf: Base-10 logarithm of the weighted oscillator strength
        isotope: Index of each line's isotope in `Isotopes`
    """
    wavenumber: np.ndarray
    lower_energy: np.ndarray
    log_gf: np.ndarray
    isotope: np.ndarray

    def __post_init__(self):
        self.wavenumber = np.asarray(self.wavenumber, dtype=np.float64)
        self.lower_energy = np.asarray(self.lower_energy, dtype=np.float64)
        self.log_gf = np.asarray(self.log_gf, dtype=np.float64)
        self.isotope = np.asarray(self.isotope, dtype=np.int64)

        n_lines = len(self.wavenumber)
        for attr_name in ["lower_energy", "log_gf", "isotope"]:
            if len(getattr(self, attr_name)) != n_lines:
                raise ValueError(f"{attr_name} must have {n_lines} elements")
        if n_lines > 1 and np.any(np.diff(self.wavenumber) < 0):
            raise ValueError(
                "Line transitions must be sorted by increasing wavenumber; "
                "use LineTransitions.from_unsorted() to sort them"
            )

    @classmethod
    def from_unsorted(
        cls,
        wavenumber: np.ndarray,
        lower_energy: np.ndarray,
        log_gf: np.ndarray,
        isotope: np.ndarray,
    ) -> "LineTransitions":
        """Create a line list, stably sorting it by wavenumber.

        Args:
            wavenumber: Line center wavenumbers [cm^-1]
            lower_energy: Lower-state energies [cm^-1]
            log_gf: log10(gf)
            isotope: Isotope indices

        Returns:
            Sorted LineTransitions
        """
        order = np.argsort(np.asarray(wavenumber), kind="stable")
        return cls(
            wavenumber=np.asarray(wavenumber)[order],
            lower_energy=np.asarray(lower_energy)[order],
            log_gf=np.asarray(log_gf)[order],
            isotope=np.asarray(isotope)[order],
        )

    @property
    def num_lines(self) -> int:
        """Number of line transitions."""
        return len(self.wavenumber)

    @property
    def gf(self) -> np.ndarray:
        """Weighted oscillator strengths."""
        return 10.0 ** self.log_gf

    def index_range(self, wavenumber_range: Tuple[float, float]) -> Tuple[int, int]:
        """Slice bounds of the lines inside a wavenumber range (inclusive).

        Args:
            wavenumber_range: (min, max) wavenumber [cm^-1]

        Returns:
            (start, stop) indices
        """
        wn_min, wn_max = wavenumber_range
        start = int(np.searchsorted(self.wavenumber, wn_min, side="left"))
        stop = int(np.searchsorted(self.wavenumber, wn_max, side="right"))
        return start, stop
