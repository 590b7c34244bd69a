"""
Atmospheric layer, molecule and isotope definitions for transit calculations.

These containers are produced by the atmosphere and line-list readers and
are treated as read-only by the extinction and slant-path engines.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Molecules:
    """Species present in the atmosphere.

    Every species acts as a collision partner for the Lorentz width of
    every isotope, so the full set is needed even when only a few of them
    carry line transitions.

    Attributes:
        names: Species names (e.g., 'H2O', 'H2')
        mass: Molecular masses [amu]
        radius: Collision radii [cm]
        density: Number densities per layer, shape (n_molecules, n_layers) [cm^-3]
    """
    names: List[str]
    mass: np.ndarray
    radius: np.ndarray
    density: np.ndarray

    def __post_init__(self):
        self.mass = np.asarray(self.mass, dtype=np.float64)
        self.radius = np.asarray(self.radius, dtype=np.float64)
        self.density = np.atleast_2d(np.asarray(self.density, dtype=np.float64))

        n_mol = len(self.names)
        for attr_name in ["mass", "radius"]:
            if len(getattr(self, attr_name)) != n_mol:
                raise ValueError(f"{attr_name} must have {n_mol} elements")
        if self.density.shape[0] != n_mol:
            raise ValueError(
                f"density must have shape (n_molecules={n_mol}, n_layers), "
                f"got {self.density.shape}"
            )
        if np.any(self.mass <= 0):
            raise ValueError("Molecular masses must be positive")
        if np.any(self.density < 0):
            raise ValueError("Number densities cannot be negative")

    @property
    def num_molecules(self) -> int:
        """Number of species."""
        return len(self.names)

    def index(self, name: str) -> int:
        """Index of a species by name."""
        try:
            return self.names.index(name)
        except ValueError:
            raise KeyError(f"Molecule not in atmosphere: {name}") from None


@dataclass
class Isotopes:
    """Isotope table with partition functions.

    Attributes:
        names: Isotope names
        mass: Isotope masses [amu]
        ratio: Abundance ratio of each isotope within its molecule
        molecule: Index of the parent molecule in `Molecules`
        temperature: Temperature grid of the partition functions [K]
        partition: Partition function samples, shape (n_isotopes, n_temperatures)
    """
    names: List[str]
    mass: np.ndarray
    ratio: np.ndarray
    molecule: np.ndarray
    temperature: np.ndarray
    partition: np.ndarray

    def __post_init__(self):
        self.mass = np.asarray(self.mass, dtype=np.float64)
        self.ratio = np.asarray(self.ratio, dtype=np.float64)
        self.molecule = np.asarray(self.molecule, dtype=np.int64)
        self.temperature = np.asarray(self.temperature, dtype=np.float64)
        self.partition = np.atleast_2d(np.asarray(self.partition, dtype=np.float64))

        n_iso = len(self.names)
        for attr_name in ["mass", "ratio", "molecule"]:
            if len(getattr(self, attr_name)) != n_iso:
                raise ValueError(f"{attr_name} must have {n_iso} elements")
        if self.partition.shape != (n_iso, len(self.temperature)):
            raise ValueError(
                f"partition must have shape ({n_iso}, {len(self.temperature)}), "
                f"got {self.partition.shape}"
            )
        if len(self.temperature) > 1 and np.any(np.diff(self.temperature) <= 0):
            raise ValueError("Partition-function temperatures must be increasing")
        if np.any(self.mass <= 0):
            raise ValueError("Isotope masses must be positive")

    @property
    def num_isotopes(self) -> int:
        """Number of isotopes."""
        return len(self.names)

    def partition_function(self, temperature: float) -> np.ndarray:
        """Partition function of every isotope at a temperature.

        Linear interpolation in the tabulated temperature grid; values are
        held constant beyond the grid ends.

        Args:
            temperature: Temperature [K]

        Returns:
            Partition function per isotope
        """
        return np.array([
            np.interp(temperature, self.temperature, self.partition[i])
            for i in range(self.num_isotopes)
        ])


@dataclass
class AtmosphereLayers:
    """Radial atmosphere sampling.

    Layers are stored with radius increasing; a decreasing input is
    reversed together with every per-layer array.

    Attributes:
        radius: Layer radii [cm]
        temperature: Layer temperatures [K]
        molecules: Species and their number densities per layer
        refractivity: Refractive index per layer (defaults to 1)
    """
    radius: np.ndarray
    temperature: np.ndarray
    molecules: Molecules
    refractivity: Optional[np.ndarray] = field(default=None)

    def __post_init__(self):
        self.radius = np.asarray(self.radius, dtype=np.float64)
        self.temperature = np.asarray(self.temperature, dtype=np.float64)
        if self.refractivity is None:
            self.refractivity = np.ones_like(self.radius)
        self.refractivity = np.asarray(self.refractivity, dtype=np.float64)

        n_layers = len(self.radius)
        if n_layers < 1:
            raise ValueError("At least one atmospheric layer is required")
        for attr_name in ["temperature", "refractivity"]:
            if len(getattr(self, attr_name)) != n_layers:
                raise ValueError(f"{attr_name} must have {n_layers} elements")
        if self.molecules.density.shape[1] != n_layers:
            raise ValueError(
                f"Molecule densities have {self.molecules.density.shape[1]} "
                f"layers, expected {n_layers}"
            )
        if np.any(self.temperature <= 0):
            raise ValueError("Layer temperatures must be positive")

        if n_layers > 1:
            dr = np.diff(self.radius)
            if np.all(dr < 0):
                self._reverse()
            elif not np.all(dr > 0):
                raise ValueError("Layer radii must be strictly monotonic")

    def _reverse(self) -> None:
        self.radius = self.radius[::-1].copy()
        self.temperature = self.temperature[::-1].copy()
        self.refractivity = self.refractivity[::-1].copy()
        self.molecules.density = self.molecules.density[:, ::-1].copy()

    @property
    def num_layers(self) -> int:
        """Number of layers."""
        return len(self.radius)

    @property
    def is_equispaced(self) -> bool:
        """Whether the radii are evenly spaced."""
        if self.num_layers < 3:
            return True
        dr = np.diff(self.radius)
        return bool(np.allclose(dr, dr[0], rtol=1e-8, atol=0.0))

    def density(self, molecule: int) -> np.ndarray:
        """Number density profile of one molecule [cm^-3]."""
        return self.molecules.density[molecule]
