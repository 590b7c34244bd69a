"""
Precomputed opacity table stored in HDF5.

The table holds per-molecule extinction cross sections tabulated on a
temperature grid, for every atmospheric layer and output wavenumber:

    /opacity          float64 (n_molecules, n_temperatures, n_layers, n_wavenumbers) [cm^2]
    /temperature      float64 (n_temperatures,) [K], increasing
    /wavenumber       float64 (n_wavenumbers,) [cm^-1]
    /molecules        attribute, list of molecule names
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Union

import h5py
import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class OpacityTable:
    """Tabulated cross sections for the grid-interpolation extinction mode.

    Attributes:
        molecules: Molecule names, in the order of the first table axis
        temperature: Temperature grid [K], strictly increasing
        wavenumber: Output wavenumber grid [cm^-1]
        opacity: Cross sections, shape (n_molecules, n_temperatures, n_layers, n_wavenumbers) [cm^2]
    """
    molecules: List[str]
    temperature: np.ndarray
    wavenumber: np.ndarray
    opacity: np.ndarray

    def __post_init__(self):
        self.molecules = [str(m) for m in self.molecules]
        self.temperature = np.asarray(self.temperature, dtype=np.float64)
        self.wavenumber = np.asarray(self.wavenumber, dtype=np.float64)
        self.opacity = np.asarray(self.opacity, dtype=np.float64)

        if self.opacity.ndim != 4:
            raise ValueError(
                f"Opacity table must be 4-dimensional, got shape {self.opacity.shape}"
            )
        n_mol, n_temp, _, n_wn = self.opacity.shape
        if n_mol != len(self.molecules):
            raise ValueError(f"Opacity table has {n_mol} molecules, names give {len(self.molecules)}")
        if n_temp != len(self.temperature):
            raise ValueError(
                f"Opacity table has {n_temp} temperatures, grid has {len(self.temperature)}"
            )
        if n_wn != len(self.wavenumber):
            raise ValueError(
                f"Opacity table has {n_wn} wavenumbers, grid has {len(self.wavenumber)}"
            )
        if n_temp > 1 and np.any(np.diff(self.temperature) <= 0):
            raise ValueError("Opacity table temperatures must be strictly increasing")

    @property
    def num_layers(self) -> int:
        """Number of tabulated layers."""
        return self.opacity.shape[2]

    @property
    def temperature_range(self):
        """(min, max) tabulated temperature [K]."""
        return float(self.temperature[0]), float(self.temperature[-1])

    def check_compatible(self, num_layers: int, num_wavenumbers: int) -> None:
        """Verify the table matches a run's layer and wavenumber counts.

        Raises:
            ValueError: On any mismatch
        """
        if self.num_layers != num_layers:
            raise ValueError(
                f"Opacity table has {self.num_layers} layers, atmosphere has {num_layers}"
            )
        if len(self.wavenumber) != num_wavenumbers:
            raise ValueError(
                f"Opacity table has {len(self.wavenumber)} wavenumbers, "
                f"run uses {num_wavenumbers}"
            )

    @classmethod
    def from_hdf5(cls, path: Union[str, Path]) -> "OpacityTable":
        """Read a table from an HDF5 file.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Opacity table not found: {path}")

        with h5py.File(path, 'r') as f:
            molecules = f.attrs["molecules"]
            table = cls(
                molecules=[m.decode() if isinstance(m, bytes) else m for m in molecules],
                temperature=f["temperature"][:],
                wavenumber=f["wavenumber"][:],
                opacity=f["opacity"][:],
            )

        logger.info(
            f"Loaded opacity table {path.name}: {len(table.molecules)} molecules, "
            f"{len(table.temperature)} temperatures "
            f"({table.temperature[0]:.0f}-{table.temperature[-1]:.0f}K), "
            f"{table.num_layers} layers, {len(table.wavenumber)} wavenumbers"
        )
        return table

    def to_hdf5(self, path: Union[str, Path], compression: str = "gzip") -> None:
        """Write the table to an HDF5 file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with h5py.File(path, 'w') as f:
            f.create_dataset("opacity", data=self.opacity, compression=compression)
            f.create_dataset("temperature", data=self.temperature)
            f.create_dataset("wavenumber", data=self.wavenumber)
            f.attrs["molecules"] = self.molecules

        logger.info(f"Opacity table written to {path}")
