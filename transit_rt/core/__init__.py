"""
Core computational modules for transit calculations.

This module contains the physics engines:
- OpacityGridBuilder: Line-by-line extinction per layer
- VoigtProfileTable: Precomputed Voigt profiles
- Slant-path optical depth and transit modulation integrators
"""

from transit_rt.core.extinction import ExtinctionGrid, LayerStatistics, OpacityGridBuilder
from transit_rt.core.voigt import VoigtProfileTable, voigt_profile
from transit_rt.core.wavenumber import WavenumberGrid
from transit_rt.core.slantpath import RaySolution, total_tau
from transit_rt.core.modulation import OpticalDepthCurve, modulation, optical_depth_curve

__all__ = [
    "ExtinctionGrid",
    "LayerStatistics",
    "OpacityGridBuilder",
    "VoigtProfileTable",
    "voigt_profile",
    "WavenumberGrid",
    "RaySolution",
    "total_tau",
    "OpticalDepthCurve",
    "modulation",
    "optical_depth_curve",
]
