"""
Tests for shared geographic functions.

Tests the haversine distance used for course distance.
"""

import pytest

from raceplanner.shared.geo import haversine
from raceplanner.shared.constants import EARTH_RADIUS_KM


# =============================================================================
# Test Haversine Distance
# =============================================================================

class TestHaversine:
    """Tests for haversine function."""

    def test_same_point(self):
        """Distance between same point should be 0."""
        assert haversine(45.92, 6.87, 45.92, 6.87) == 0.0

    def test_known_distance_chamonix_courmayeur(self):
        """Chamonix to Courmayeur is ~15 km as the crow flies."""
        dist = haversine(45.9237, 6.8694, 45.7969, 6.9706)
        assert 14 < dist < 18

    def test_small_distance(self):
        """0.001 degree latitude is ~111 meters."""
        dist = haversine(45.0, 6.0, 45.001, 6.0)
        assert dist == pytest.approx(0.1112, abs=0.001)

    def test_symmetry(self):
        """Distance A->B should equal B->A."""
        assert haversine(45.0, 6.0, 46.0, 7.0) == pytest.approx(
            haversine(46.0, 7.0, 45.0, 6.0), rel=1e-9
        )

    def test_one_degree_along_equator(self):
        """One degree of longitude at the equator is 2*pi*R/360."""
        expected = 2 * 3.141592653589793 * EARTH_RADIUS_KM / 360
        assert haversine(0.0, 0.0, 0.0, 1.0) == pytest.approx(expected, rel=1e-9)

    def test_earth_radius_constant(self):
        """Earth radius is 6,371 km."""
        assert EARTH_RADIUS_KM == 6371.0

    def test_cross_hemisphere(self):
        """90 degrees of latitude is a quarter meridian (~10,000 km)."""
        dist = haversine(45.0, 0.0, -45.0, 0.0)
        assert 9900 < dist < 10100
