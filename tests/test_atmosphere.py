"""Tests for atmosphere, isotope and line-transition containers."""

import numpy as np
import pytest

from transit_rt.core.atmosphere import AtmosphereLayers, Isotopes, Molecules
from transit_rt.core.lines import LineTransitions


class TestMolecules:
    """Tests for the species container."""

    @pytest.fixture
    def molecules(self):
        return Molecules(
            names=["H2", "H2O"],
            mass=[2.016, 18.015],
            radius=[1.445e-8, 1.6e-8],
            density=[[1e19, 1e18, 1e17], [1e15, 1e14, 1e13]],
        )

    def test_shape(self, molecules):
        assert molecules.num_molecules == 2
        assert molecules.density.shape == (2, 3)

    def test_index(self, molecules):
        assert molecules.index("H2O") == 1
        with pytest.raises(KeyError, match="CO2"):
            molecules.index("CO2")

    def test_density_shape_mismatch(self):
        with pytest.raises(ValueError, match="density"):
            Molecules(names=["H2"], mass=[2.0], radius=[1e-8], density=[[1.0], [2.0]])

    def test_negative_density(self):
        with pytest.raises(ValueError):
            Molecules(names=["H2"], mass=[2.0], radius=[1e-8], density=[[-1.0]])


class TestIsotopes:
    """Tests for the isotope table."""

    def test_partition_function_interpolation(self):
        isotopes = Isotopes(
            names=["1H2-16O", "1H2-18O"],
            mass=[18.0, 20.0],
            ratio=[0.997, 0.002],
            molecule=[0, 0],
            temperature=[100.0, 200.0, 400.0],
            partition=[[10.0, 20.0, 60.0], [12.0, 24.0, 72.0]],
        )
        z = isotopes.partition_function(300.0)
        assert np.allclose(z, [40.0, 48.0])
        assert isotopes.num_isotopes == 2

    def test_partition_shape_mismatch(self):
        with pytest.raises(ValueError, match="partition"):
            Isotopes(
                names=["a"], mass=[1.0], ratio=[1.0], molecule=[0],
                temperature=[100.0, 200.0], partition=[[1.0, 2.0, 3.0]],
            )


class TestAtmosphereLayers:
    """Tests for the radial layer sampling."""

    def _molecules(self, densities):
        return Molecules(names=["H2"], mass=[2.0], radius=[1e-8], density=[densities])

    def test_descending_input_reversed(self):
        """Descending radii are stored ascending with every array flipped."""
        atm = AtmosphereLayers(
            radius=[3.0, 2.0, 1.0],
            temperature=[100.0, 200.0, 300.0],
            molecules=self._molecules([1.0, 2.0, 3.0]),
            refractivity=[1.0, 1.1, 1.2],
        )
        assert np.array_equal(atm.radius, [1.0, 2.0, 3.0])
        assert np.array_equal(atm.temperature, [300.0, 200.0, 100.0])
        assert np.array_equal(atm.refractivity, [1.2, 1.1, 1.0])
        assert np.array_equal(atm.density(0), [3.0, 2.0, 1.0])

    def test_default_refractivity(self):
        atm = AtmosphereLayers(
            radius=[1.0, 2.0], temperature=[100.0, 100.0],
            molecules=self._molecules([1.0, 1.0]),
        )
        assert np.array_equal(atm.refractivity, [1.0, 1.0])
        assert atm.num_layers == 2

    def test_non_monotonic_raises(self):
        with pytest.raises(ValueError, match="monotonic"):
            AtmosphereLayers(
                radius=[1.0, 3.0, 2.0], temperature=[100.0] * 3,
                molecules=self._molecules([1.0] * 3),
            )

    def test_layer_count_mismatch(self):
        with pytest.raises(ValueError):
            AtmosphereLayers(
                radius=[1.0, 2.0], temperature=[100.0] * 2,
                molecules=self._molecules([1.0] * 3),
            )

    def test_equispaced(self):
        atm = AtmosphereLayers(
            radius=np.linspace(1.0, 2.0, 11), temperature=np.full(11, 100.0),
            molecules=self._molecules(np.ones(11)),
        )
        assert atm.is_equispaced


class TestLineTransitions:
    """Tests for the line list."""

    def test_unsorted_rejected(self):
        with pytest.raises(ValueError, match="from_unsorted"):
            LineTransitions(
                wavenumber=[1002.0, 1001.0],
                lower_energy=[0.0, 0.0],
                log_gf=[0.0, 0.0],
                isotope=[0, 0],
            )

    def test_from_unsorted_stable(self):
        lines = LineTransitions.from_unsorted(
            wavenumber=[1003.0, 1001.0, 1003.0, 1002.0],
            lower_energy=[1.0, 2.0, 3.0, 4.0],
            log_gf=[0.0, -1.0, -2.0, -3.0],
            isotope=[0, 1, 2, 3],
        )
        assert np.array_equal(lines.wavenumber, [1001.0, 1002.0, 1003.0, 1003.0])
        assert np.array_equal(lines.isotope, [1, 3, 0, 2])
        assert np.array_equal(lines.lower_energy, [2.0, 4.0, 1.0, 3.0])

    def test_gf(self):
        lines = LineTransitions([1.0, 2.0], [0.0, 0.0], [0.0, -2.0], [0, 0])
        assert np.allclose(lines.gf, [1.0, 0.01])

    def test_index_range(self):
        lines = LineTransitions(
            [999.0, 1000.0, 1005.0, 1010.0, 1011.0], np.zeros(5), np.zeros(5), np.zeros(5)
        )
        start, stop = lines.index_range((1000.0, 1010.0))
        assert (start, stop) == (1, 4)

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="log_gf"):
            LineTransitions([1.0, 2.0], [0.0, 0.0], [0.0], [0, 0])
