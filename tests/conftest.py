"""Shared fixtures: a small single-species atmosphere and its line list."""

import numpy as np
import pytest

from transit_rt.core.atmosphere import AtmosphereLayers, Isotopes, Molecules
from transit_rt.core.lines import LineTransitions


def make_atmosphere(radius, temperature=300.0, density=1e19, refractivity=None):
    """Water-like single-species atmosphere."""
    radius = np.asarray(radius, dtype=float)
    n_layers = len(radius)
    molecules = Molecules(
        names=["H2O"],
        mass=np.array([18.0]),
        radius=np.array([1.5e-8]),
        density=np.broadcast_to(np.asarray(density, dtype=float), (1, n_layers)).copy(),
    )
    return AtmosphereLayers(
        radius=radius,
        temperature=np.full(n_layers, temperature, dtype=float),
        molecules=molecules,
        refractivity=refractivity,
    )


def make_isotopes(n_isotopes=1):
    """Isotopes of the single species with a flat partition function."""
    return Isotopes(
        names=[f"iso{i}" for i in range(n_isotopes)],
        mass=np.full(n_isotopes, 18.0),
        ratio=np.full(n_isotopes, 1.0 / n_isotopes),
        molecule=np.zeros(n_isotopes, dtype=int),
        temperature=np.array([100.0, 1000.0]),
        partition=np.ones((n_isotopes, 2)),
    )


def make_lines(wavenumber, log_gf=0.0, lower_energy=0.0, isotope=0):
    wavenumber = np.atleast_1d(np.asarray(wavenumber, dtype=float))
    n = len(wavenumber)
    return LineTransitions(
        wavenumber=wavenumber,
        lower_energy=np.broadcast_to(lower_energy, (n,)).astype(float),
        log_gf=np.broadcast_to(log_gf, (n,)).astype(float),
        isotope=np.broadcast_to(isotope, (n,)).astype(int),
    )


@pytest.fixture
def two_layer_atmosphere():
    """Two isothermal layers with different densities."""
    return make_atmosphere(
        radius=[7.0e9, 7.5e9], temperature=300.0, density=[1e19, 5e18]
    )


@pytest.fixture
def isotopes():
    return make_isotopes(1)


@pytest.fixture
def atmosphere_factory():
    return make_atmosphere


@pytest.fixture
def isotopes_factory():
    return make_isotopes


@pytest.fixture
def lines_factory():
    return make_lines
