"""
transit-rt: Transit spectra of planetary atmospheres.

Computes the wavenumber-dependent extinction of an atmosphere from a list
of line transitions and integrates it along ray paths across the planet's
limb into a transit modulation spectrum.

Modules
-------
core.voigt
    Voigt line profiles and the precomputed profile table
core.extinction
    Line-by-line extinction per atmospheric layer
core.interpolation
    Extinction from a precomputed opacity table
core.checkpoint
    Binary checkpoint of the extinction grid
core.slantpath
    Optical depth along straight and refracted rays
core.modulation
    Transit modulation from optical depth vs. impact parameter
core.simulation
    Run orchestration
config
    Run configuration (YAML/JSON)
"""

__version__ = "0.1.0"
__author__ = "transit-rt Contributors"

from transit_rt.core.atmosphere import AtmosphereLayers, Isotopes, Molecules
from transit_rt.core.lines import LineTransitions
from transit_rt.core.simulation import TransitResult, TransitSimulation
from transit_rt.config.settings import TransitConfig

__all__ = [
    "__version__",
    "TransitConfig",
    "AtmosphereLayers",
    "Isotopes",
    "Molecules",
    "LineTransitions",
    "TransitSimulation",
    "TransitResult",
]
