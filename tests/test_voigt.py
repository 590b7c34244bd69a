"""Tests for Voigt profiles and the profile table."""

import numpy as np
import pytest

from transit_rt.core.errors import InvalidWidthError
from transit_rt.core.voigt import (
    VoigtProfileTable,
    nearest_index,
    profile_size,
    voigt_humlicek,
    voigt_profile,
)


class TestVoigtProfile:
    """Tests for single profile generation."""

    @pytest.mark.parametrize("doppler,lorentz,spacing", [
        (1e-3, 1e-3, 1e-4),
        (1e-2, 1e-4, 1e-3),
        (1e-4, 1e-2, 1e-3),
        (1e-6, 1e-6, 1e-2),
        (0.05, 0.2, 0.01),
    ])
    def test_symmetric_odd_at_least_three(self, doppler, lorentz, spacing):
        """Profiles are exactly symmetric with an odd sample count >= 3."""
        profile, half = voigt_profile(doppler, lorentz, spacing)
        assert len(profile) == 2 * half + 1
        assert len(profile) % 2 == 1
        assert len(profile) >= 3
        assert np.array_equal(profile, profile[::-1])

    def test_narrow_profile_raised_to_three_samples(self):
        """A profile narrower than one sample still has 3 samples."""
        profile, half = voigt_profile(1e-6, 1e-6, 1.0)
        assert half == 1
        assert len(profile) == 3

    def test_size_capped(self):
        """Sample count never exceeds 2*max_half_size + 1."""
        profile, half = voigt_profile(1.0, 1.0, 1e-3, max_half_size=5)
        assert half == 5
        assert len(profile) == 11

    def test_unit_area(self):
        """A well sampled Doppler-dominated profile integrates to ~1."""
        spacing = 1e-4
        profile, _ = voigt_profile(1e-2, 1e-5, spacing, widths_in_alpha=10)
        assert np.isclose(profile.sum() * spacing, 1.0, rtol=1e-2)

    def test_gaussian_limit(self):
        """Negligible Lorentz width gives the Gaussian peak sqrt(ln2/pi)/alpha_D."""
        doppler = 1e-2
        profile, half = voigt_profile(doppler, 1e-8, 1e-4, widths_in_alpha=5)
        expected = np.sqrt(np.log(2) / np.pi) / doppler
        assert np.isclose(profile[half], expected, rtol=1e-3)

    def test_lorentz_limit(self):
        """Negligible Doppler width gives the Lorentz peak 1/(pi alpha_L)."""
        lorentz = 1e-2
        profile, half = voigt_profile(1e-6, lorentz, 1e-3)
        assert np.isclose(profile[half], 1.0 / (np.pi * lorentz), rtol=1e-3)

    def test_quick_approximation_close_to_accurate(self):
        """Pseudo-Voigt stays within a few percent of Humlicek at the peak."""
        accurate, half = voigt_profile(1e-2, 1e-2, 1e-3, quick_threshold=10**9)
        quick, half_q = voigt_profile(1e-2, 1e-2, 1e-3, quick_threshold=0)
        assert half == half_q
        assert np.isclose(quick[half], accurate[half], rtol=0.03)

    def test_zero_lorentz_is_gaussian(self):
        """A vacuum layer has no collisional width; the profile is Doppler only."""
        doppler = 1e-2
        profile, half = voigt_profile(doppler, 0.0, 1e-3)
        assert np.isclose(profile[half], np.sqrt(np.log(2.0) / np.pi) / doppler, rtol=1e-4)
        assert np.isclose(profile.sum() * 1e-3, 1.0, rtol=1e-3)

    def test_zero_doppler_is_lorentzian(self):
        lorentz = 1e-2
        profile, half = voigt_profile(0.0, lorentz, 1e-3)
        assert np.all(np.isfinite(profile))
        assert np.isclose(profile[half], 1.0 / (np.pi * lorentz), rtol=1e-6)

    @pytest.mark.parametrize("doppler,lorentz", [
        (0.0, 0.0),
        (-1e-3, 1e-3),
        (1e-3, -1e-3),
        (np.nan, 1e-3),
        (1e-3, np.inf),
    ])
    def test_invalid_widths_raise(self, doppler, lorentz):
        """Negative, non-finite or all-zero widths raise InvalidWidthError."""
        with pytest.raises(InvalidWidthError, match="width"):
            voigt_profile(doppler, lorentz, 1e-3)

    def test_invalid_width_is_value_error(self):
        with pytest.raises(ValueError):
            profile_size(-1.0, -1.0, 1e-3, 50.0, 100)

    def test_humlicek_regions_continuous(self):
        """The rational approximation has no jumps between its regions."""
        x = np.linspace(0.0, 20.0, 20001)
        for y in [0.01, 0.1, 1.0, 5.0]:
            values = voigt_humlicek(x, y)
            assert np.all(values > 0)
            jumps = np.abs(np.diff(values)) / values[:-1]
            assert jumps.max() < 0.01


class TestVoigtProfileTable:
    """Tests for the precomputed profile table."""

    @pytest.fixture
    def table(self):
        return VoigtProfileTable.for_widths(
            (1e-3, 1e-2), (1e-4, 1e-2), spacing=1e-3, n_doppler=4, n_lorentz=3,
            widths_in_alpha=20,
        )

    def test_shape_and_samples(self, table):
        assert table.shape == (4, 3)
        assert np.isclose(table.doppler[0], 1e-3)
        assert np.isclose(table.doppler[-1], 1e-2)
        assert np.all(np.diff(table.lorentz) > 0)

    def test_profiles_match_direct_computation(self, table):
        for i in range(4):
            for j in range(3):
                expected, half = voigt_profile(
                    table.doppler[i], table.lorentz[j], 1e-3, widths_in_alpha=20
                )
                assert table.half_sizes[i, j] == half
                assert np.array_equal(table.profile(i, j), expected)

    def test_profiles_read_only(self, table):
        with pytest.raises(ValueError):
            table.profile(0, 0)[0] = 1.0

    def test_nearest_bins(self, table):
        assert table.nearest_doppler(1e-9) == 0
        assert table.nearest_doppler(1.0) == 3
        assert table.nearest_lorentz(table.lorentz[1] * 1.01) == 1

    def test_single_width_range(self):
        table = VoigtProfileTable.for_widths((2e-3, 2e-3), (1e-3, 1e-3), spacing=1e-3)
        assert table.shape == (1, 1)

    def test_invalid_range_raises(self):
        with pytest.raises(InvalidWidthError):
            VoigtProfileTable.for_widths((0.0, 1e-3), (1e-3, 1e-2), spacing=1e-3)


class TestNearestIndex:
    """Tests for the nearest-sample search."""

    def test_nearest(self):
        samples = np.array([1.0, 2.0, 4.0, 8.0])
        assert nearest_index(samples, 0.0) == 0
        assert nearest_index(samples, 2.9) == 1
        assert nearest_index(samples, 3.1) == 2
        assert nearest_index(samples, 100.0) == 3
