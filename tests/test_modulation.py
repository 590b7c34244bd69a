"""Tests for the transit modulation integral."""

import numpy as np
import pytest

from transit_rt.core.errors import InsufficientSamplesError
from transit_rt.core.modulation import modulation, optical_depth_curve
from transit_rt.core.slantpath import RaySolution

STAR_RADIUS = 10.0
TOOMUCH = 10.0


@pytest.fixture
def impact_parameter():
    return np.linspace(2.0, 1.0, 21)


class TestModulation:
    """Tests for the flux fraction."""

    def test_transparent_atmosphere(self, impact_parameter):
        """Only the opaque core inside the innermost ray blocks light."""
        tau = np.zeros(21)
        result = modulation(tau, 20, TOOMUCH, impact_parameter, STAR_RADIUS)
        expected = 1.0 - (1.0 - np.exp(-TOOMUCH)) * 1.0**2 / STAR_RADIUS**2
        assert np.isclose(result, expected, rtol=1e-12)

    def test_opaque_atmosphere(self, impact_parameter):
        """A ray opaque at the top hides the whole sampled disk."""
        tau = np.array([np.inf])
        result = modulation(tau, 0, TOOMUCH, impact_parameter, STAR_RADIUS)
        b_inner = impact_parameter[2]
        expected = (
            STAR_RADIUS**2 - 2.0**2 + np.exp(-TOOMUCH) * b_inner**2
        ) / STAR_RADIUS**2
        assert np.isclose(result, expected, rtol=1e-12)
        assert np.isclose(result, 1.0 - (2.0 / STAR_RADIUS) ** 2, rtol=1e-3)

    def test_absorption_lowers_modulation(self, impact_parameter):
        clear = modulation(np.zeros(21), 20, TOOMUCH, impact_parameter, STAR_RADIUS)
        hazy = modulation(np.full(21, 0.5), 20, TOOMUCH, impact_parameter, STAR_RADIUS)
        assert hazy < clear
        assert 0.0 < hazy < 1.0

    def test_padding_uses_zero_transmission(self, impact_parameter):
        """Rays past the opaque one contribute nothing."""
        tau = np.concatenate([np.zeros(10), [TOOMUCH + 1.0]])
        padded = modulation(tau, 10, TOOMUCH, impact_parameter, STAR_RADIUS)
        # Same curve with the two padding points explicitly opaque
        explicit = modulation(
            np.concatenate([tau, [np.inf, np.inf]]), 12, TOOMUCH,
            impact_parameter[:13], STAR_RADIUS,
        )
        assert np.isclose(padded, explicit, rtol=1e-12)

    def test_padding_limited_by_samples(self):
        """Near the innermost ray fewer than two padding points exist."""
        b = np.linspace(2.0, 1.0, 5)
        result = modulation(np.zeros(4), 3, TOOMUCH, b, STAR_RADIUS)
        assert 0.0 < result < 1.0

    @pytest.mark.parametrize("n_ip", [1, 2])
    def test_insufficient_samples(self, n_ip):
        b = np.linspace(2.0, 1.0, n_ip)
        with pytest.raises(InsufficientSamplesError, match="at least 3"):
            modulation(np.zeros(n_ip), n_ip - 1, TOOMUCH, b, STAR_RADIUS)


class TestOpticalDepthCurve:
    """Tests for the per-ray optical depth scan."""

    @pytest.fixture
    def radius(self):
        return np.linspace(1.0, 2.0, 50)

    def test_stops_at_first_opaque_ray(self, radius):
        extinction = 200.0 * np.exp(-(radius - 1.0) / 0.1)
        b = np.linspace(1.99, 1.0, 40)
        curve = optical_depth_curve(RaySolution.STRAIGHT, b, radius, np.ones(50), extinction)

        assert curve.last < 39
        assert len(curve.tau) == curve.last + 1
        assert curve.tau[-1] > TOOMUCH
        assert np.all(curve.tau[:-1] <= TOOMUCH)

    def test_transparent_scans_every_ray(self, radius):
        b = np.linspace(1.99, 1.0, 40)
        curve = optical_depth_curve(RaySolution.STRAIGHT, b, radius, np.ones(50), np.zeros(50))
        assert curve.last == 39
        assert not curve.tau.any()
        assert curve.impact_parameter is b
