"""
Output writers for transit results.

- Extinction table: one layer's extinction per wavenumber, with wavelength
  and cross section, in fixed-width columns
- Modulation spectrum: modulation per wavenumber
- JSON: full result with metadata and configuration
"""

import json
import logging
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Union

import numpy as np

from transit_rt.core.constants import wavenumber_to_wavelength_nm

logger = logging.getLogger(__name__)

EXTINCTION_HEADER = (
    "#wavenumber[cm-1]   wavelength[nm]   extinction[cm-1]   cross-section[cm2]\n"
)
EXTINCTION_FORMAT = "%12.6f%14.6f%17.7g%17.7g\n"


@contextmanager
def _open_output(path: Union[str, Path]):
    """Open a file for writing; "-" means standard output."""
    if str(path) == "-":
        yield sys.stdout
    else:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            yield f


def write_extinction_table(
    path: Union[str, Path],
    wavenumber: np.ndarray,
    extinction: np.ndarray,
    density: float,
) -> None:
    """Write a layer's extinction per wavenumber.

    Args:
        path: Output file, or "-" for standard output
        wavenumber: Wavenumbers [cm^-1]
        extinction: Extinction [cm^-1]
        density: Total number density of the layer [cm^-3], for the cross section
    """
    wavelength = wavenumber_to_wavelength_nm(np.asarray(wavenumber, dtype=np.float64))
    cross_section = np.asarray(extinction) / density if density > 0 else np.zeros(len(wavenumber))

    with _open_output(path) as f:
        f.write(EXTINCTION_HEADER)
        for wn, wl, ex, cs in zip(wavenumber, wavelength, extinction, cross_section):
            f.write(EXTINCTION_FORMAT % (wn, wl, ex, cs))

    logger.info(f"Saved extinction table to {path}")


def write_modulation_spectrum(
    path: Union[str, Path],
    wavenumber: np.ndarray,
    modulation: np.ndarray,
) -> None:
    """Write the modulation spectrum, one row per wavenumber."""
    with _open_output(path) as f:
        f.write("#wavenumber[cm-1]   wavelength[nm]   modulation\n")
        for wn, mod in zip(wavenumber, modulation):
            f.write("%12.6f%14.6f%17.9g\n" % (wn, 1e7 / wn, mod))

    logger.info(f"Saved modulation spectrum to {path}")


def save_result_json(result, output_path: Union[str, Path], indent: int = 2) -> str:
    """Save a TransitResult to JSON.

    Args:
        result: TransitResult
        output_path: Output file path
        indent: JSON indentation

    Returns:
        Path to saved file
    """
    data = {
        "metadata": {
            "format_version": "1.0",
            "created": datetime.now().isoformat(),
            "software": "transit-rt",
            **result.metadata,
        },
        "spectral": {
            "wavenumber_cm1": result.wavenumber.tolist(),
            "wavelength_nm": wavenumber_to_wavelength_nm(result.wavenumber).tolist(),
        },
        "results": {
            "modulation": result.modulation.tolist(),
            "transit_depth": result.transit_depth.tolist(),
        },
        "layers": [
            {
                "layer": s.layer,
                "factor": s.factor,
                "lines": s.n_lines,
                "coadded": s.n_coadded,
                "skipped": s.n_skipped,
            }
            for s in result.layer_statistics
        ],
        "configuration": result.config.to_dict(),
    }

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(data, f, indent=indent)

    logger.info(f"Saved JSON output to {output_path}")
    return str(output_path)
