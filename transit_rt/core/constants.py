"""
Physical constants and tunable defaults for transit calculations.

All units are cgs unless otherwise noted.
Line strengths follow the oscillator-strength (gf) convention.
"""

import numpy as np

# =============================================================================
# Fundamental Physical Constants (cgs)
# =============================================================================

# Speed of light in vacuum [cm/s]
SPEED_OF_LIGHT = 2.99792458e10

# Planck constant [erg·s]
PLANCK_CONSTANT = 6.62607015e-27

# Boltzmann constant [erg/K]
BOLTZMANN_CONSTANT = 1.380649e-16

# Atomic mass unit [g]
AMU = 1.66053906660e-24

# Elementary charge [statC]
ELECTRON_CHARGE = 4.80320471e-10

# Electron mass [g]
ELECTRON_MASS = 9.1093837015e-28

# Second radiation constant c2 = hc/k [cm·K]
# Exponent factor for level populations with energies in cm^-1
C2_RADIATION = 1.4387769

# Classical line-strength constant pi e^2 / (m_e c^2) [cm]
# Multiplies gf to give the integrated cross-section per molecule
LINE_STRENGTH_CONSTANT = (
    np.pi * ELECTRON_CHARGE**2 / (ELECTRON_MASS * SPEED_OF_LIGHT**2)
)

SQRT_LN2 = np.sqrt(np.log(2.0))

# =============================================================================
# Astronomical Constants
# =============================================================================

# Nominal solar radius [cm] (IAU 2015 B3)
SOLAR_RADIUS = 6.957e10

# =============================================================================
# Spectroscopic Conversions
# =============================================================================

def wavenumber_to_wavelength_nm(wavenumber_cm1: np.ndarray) -> np.ndarray:
    """Convert wavenumber [cm^-1] to wavelength [nm]."""
    return 1e7 / wavenumber_cm1


def wavelength_nm_to_wavenumber(wavelength_nm: np.ndarray) -> np.ndarray:
    """Convert wavelength [nm] to wavenumber [cm^-1]."""
    return 1e7 / wavelength_nm


# =============================================================================
# Voigt Profile Defaults
# =============================================================================

# Profile half width in units of the largest of the Doppler/Lorentz widths
DEFAULT_TIMES_ALPHA = 50.0

# Above this many samples a profile is evaluated with the quick approximation
VOIGT_QUICK_THRESHOLD = 10000

# Number of Doppler and Lorentz width samples in the profile table
DEFAULT_N_DOPPLER = 40
DEFAULT_N_LORENTZ = 40

# Doppler width is re-binned at the line wavenumber above this ratio to
# the Lorentz width
DOPPLER_REBIN_RATIO = 0.1

# =============================================================================
# Extinction Defaults
# =============================================================================

# Lines weaker than ETHRESH * (strongest line in the layer) are skipped
DEFAULT_ETHRESH = 1e-6

# Optical depth above which a ray is considered fully opaque
DEFAULT_TOOMUCH = 10.0

# =============================================================================
# Slant Path
# =============================================================================

# Iteration cap for the bent-ray tangent radius search
MAX_TANGENT_ITERATIONS = 50

# Relative tolerance of the bent-ray tangent radius search
TANGENT_RTOL = 1e-12

# Fewest impact parameters the radial modulation integral can use
MIN_IMPACT_PARAMETERS = 3

# =============================================================================
# Checkpoint Format
# =============================================================================

CHECKPOINT_MAGIC = b"@E@S@"

# Plausibility limits on checkpoint metadata
CHECKPOINT_MAX_ISOTOPES = 10000
CHECKPOINT_MAX_SAMPLES = 10000000
