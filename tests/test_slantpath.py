"""Tests for slant-path optical depths."""

import numpy as np
import pytest
from scipy.integrate import quad

from transit_rt.core.errors import ConvergenceFailure, TangentRadiusError
from transit_rt.core.slantpath import (
    RaySolution,
    find_tangent_radius,
    total_tau,
    total_tau_bent,
    total_tau_straight,
)


def chord_tau(extinction, outer_radius, b):
    """Optical depth of a straight chord through a uniform sphere."""
    return 2.0 * extinction * np.sqrt(outer_radius**2 - b**2)


class TestStraightPath:
    """Tests for straight rays."""

    @pytest.fixture
    def radius(self):
        return np.linspace(1.0, 2.0, 50)

    @pytest.mark.parametrize("b", [1.0, 1.3, 1.77, 1.99])
    def test_uniform_extinction(self, radius, b):
        extinction = np.full(len(radius), 0.5)
        tau = total_tau_straight(b, radius, 1.0, extinction)
        assert np.isclose(tau, chord_tau(0.5, 2.0, b), rtol=1e-6)

    def test_ray_above_atmosphere(self, radius):
        assert total_tau_straight(2.0, radius, 1.0, np.ones(len(radius))) == 0.0
        assert total_tau_straight(2.5, radius, 1.0, np.ones(len(radius))) == 0.0

    def test_ray_below_atmosphere(self, radius):
        with pytest.raises(TangentRadiusError, match="below"):
            total_tau_straight(0.9, radius, 1.0, np.ones(len(radius)))

    def test_inputs_not_modified(self, radius):
        extinction = np.linspace(1.0, 0.0, len(radius))
        radius_before = radius.copy()
        extinction_before = extinction.copy()
        total_tau_straight(1.234, radius, 1.0, extinction)
        assert np.array_equal(radius, radius_before)
        assert np.array_equal(extinction, extinction_before)

    def test_two_layer_linear_integral(self):
        """With two radii the segment integral is exact for linear extinction."""
        radius = np.array([1.0, 2.0])
        extinction = np.array([3.0, 1.0])
        b = 1.2

        def integrand(s):
            r = np.sqrt(s * s + b * b)
            return 3.0 - 2.0 * (r - 1.0)

        expected, _ = quad(integrand, 0.0, np.sqrt(4.0 - b * b))
        tau = total_tau_straight(b, radius, 1.0, extinction)
        assert np.isclose(tau, 2.0 * expected, rtol=1e-10)

    def test_two_layer_uniform_closed_form(self):
        """Two radii with equal extinction give the chord 2 e sqrt(r1^2 - r0^2)."""
        radius = np.array([1.0, 2.0])
        extinction = np.array([0.7, 0.7])
        for b in [1.0, 1.2, 1.9]:
            tau = total_tau_straight(b, radius, 1.0, extinction)
            assert np.isclose(tau, chord_tau(0.7, 2.0, b), rtol=1e-12)
            assert np.isclose(total_tau_bent(b, radius, np.ones(2), extinction), tau, rtol=1e-12)

    def test_refractivity_scales_tangent_radius(self, radius):
        extinction = np.full(len(radius), 0.5)
        tau = total_tau_straight(1.3 * 1.01, radius, np.full(len(radius), 1.01), extinction)
        assert np.isclose(tau, chord_tau(0.5, 2.0, 1.3), rtol=1e-6)

    def test_decreasing_with_impact_parameter(self, radius):
        extinction = np.exp(-(radius - 1.0) / 0.1)
        b = np.linspace(1.0, 1.99, 30)
        tau = [total_tau_straight(x, radius, 1.0, extinction) for x in b]
        assert all(t > 0 for t in tau)
        assert all(a > c for a, c in zip(tau, tau[1:]))


class TestTangentRadius:
    """Tests for the refracted closest approach."""

    def test_unit_refractivity(self):
        radius = np.linspace(1.0, 2.0, 10)
        r0, iterations = find_tangent_radius(1.5, radius, np.ones(10))
        assert r0 == 1.5
        assert iterations == 1

    def test_solves_fixed_point(self):
        radius = np.linspace(1.0, 2.0, 10)
        refractivity = np.linspace(1.001, 1.0, 10)
        b = 1.4
        r0, iterations = find_tangent_radius(b, radius, refractivity)
        assert np.isclose(np.interp(r0, radius, refractivity) * r0, b, rtol=1e-11)
        assert r0 < b
        assert iterations > 1

    def test_convergence_failure(self):
        radius = np.linspace(1.0, 2.0, 10)
        refractivity = np.linspace(1.01, 1.0, 10)
        with pytest.raises(ConvergenceFailure, match="did not converge"):
            find_tangent_radius(1.4, radius, refractivity, max_iterations=1)


class TestBentPath:
    """Tests for refracted rays."""

    @pytest.fixture
    def radius(self):
        return np.linspace(1.0, 1.1, 100)

    def test_matches_straight_without_refraction(self, radius):
        extinction = np.full(100, 2.0)
        b = 1.0305
        bent = total_tau_bent(b, radius, np.ones(100), extinction)
        straight = total_tau_straight(b, radius, np.ones(100), extinction)
        assert np.isclose(bent, chord_tau(2.0, 1.1, b), rtol=1e-9)
        assert np.isclose(bent, straight, rtol=1e-9)

    def test_unit_refractivity_sweep(self, radius):
        """Every grid interval, including tangent points just below a sample."""
        extinction = np.full(100, 2.0)
        dr = radius[1] - radius[0]
        fractions = [0.0, 1e-6, 0.25, 0.5, 0.999, 1.0 - 1e-6]
        for k in range(len(radius) - 1):
            for fraction in fractions:
                b = radius[k] + fraction * dr
                bent = total_tau_bent(b, radius, np.ones(100), extinction)
                straight = total_tau_straight(b, radius, np.ones(100), extinction)
                assert np.isclose(bent, straight, rtol=1e-9), (k, fraction)
                assert np.isclose(bent, chord_tau(2.0, 1.1, b), rtol=1e-9), (k, fraction)

    def test_tangent_just_below_sample(self, radius):
        extinction = np.full(100, 2.0)
        b = radius[50] - 1e-6 * (radius[1] - radius[0])
        bent = total_tau_bent(b, radius, np.ones(100), extinction)
        assert np.isclose(bent, chord_tau(2.0, 1.1, b), rtol=1e-9)

    def test_smooth_extinction_sweep(self, radius):
        """Non-uniform extinction agrees with the straight ray away from the top."""
        extinction = np.exp(-(radius - 1.0) / 0.02)
        b = np.linspace(1.0, 1.08, 97)
        bent = np.array([total_tau_bent(x, radius, np.ones(100), extinction) for x in b])
        straight = np.array([total_tau_straight(x, radius, 1.0, extinction) for x in b])
        assert np.allclose(bent, straight, rtol=1e-2)

    def test_ray_above_atmosphere(self):
        radius = np.linspace(1.0, 1.1, 20)
        assert total_tau_bent(1.2, radius, np.ones(20), np.ones(20)) == 0.0

    def test_ray_below_atmosphere(self):
        radius = np.linspace(1.0, 1.1, 20)
        with pytest.raises(TangentRadiusError):
            total_tau_bent(0.95, radius, np.ones(20), np.ones(20))

    def test_refraction_deepens_ray(self, radius):
        """A ray bent toward the planet reaches denser layers."""
        extinction = np.exp(-(radius - 1.0) / 0.01)
        b = 1.05
        flat = total_tau_bent(b, radius, np.ones(100), extinction)
        refracted = total_tau_bent(b, radius, np.linspace(1.001, 1.0, 100), extinction)
        assert refracted > flat
        assert np.all(np.isfinite([flat, refracted]))

    def test_refracted_sweep_finite(self, radius):
        """No spikes when refracted tangent points approach a sample."""
        extinction = np.full(100, 2.0)
        refractivity = np.linspace(1.0001, 1.0, 100)
        b = np.linspace(radius[40], radius[60], 401) * 1.00005
        tau = np.array([total_tau_bent(x, radius, refractivity, extinction) for x in b])
        straight = chord_tau(2.0, 1.1, b)
        assert np.all(np.isfinite(tau))
        assert np.allclose(tau, straight, rtol=0.05)


class TestTotalTau:
    """Tests for ray-solution dispatch."""

    def test_dispatch(self):
        radius = np.linspace(1.0, 2.0, 50)
        extinction = np.full(50, 0.5)
        for solution in RaySolution:
            tau = total_tau(solution, 1.5, radius, np.ones(50), extinction)
            assert np.isclose(tau, chord_tau(0.5, 2.0, 1.5), rtol=0.03)

    def test_unknown_solution(self):
        with pytest.raises(ValueError, match="Unknown ray solution"):
            total_tau("curved", 1.5, np.linspace(1.0, 2.0, 5), np.ones(5), np.ones(5))
