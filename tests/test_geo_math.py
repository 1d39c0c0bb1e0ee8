"""
test_geo_math.py — haversine distance and coordinate validation.
"""

import math

import pytest

from app.services.geo_math import EARTH_RADIUS_KM, haversine_km, is_valid_coordinate

POINTS = [
    (12.9700, 77.5900),
    (12.9790, 77.5900),
    (51.5074, -0.1278),
    (-33.8688, 151.2093),
    (0.0, 0.0),
    (89.9, 179.9),
]


class TestHaversine:

    @pytest.mark.parametrize("a", POINTS)
    @pytest.mark.parametrize("b", POINTS)
    def test_symmetric(self, a, b):
        assert haversine_km(*a, *b) == pytest.approx(haversine_km(*b, *a), rel=1e-12, abs=1e-12)

    @pytest.mark.parametrize("a", POINTS)
    def test_zero_for_identical_points(self, a):
        assert haversine_km(*a, *a) == 0.0

    def test_one_hundredth_degree_of_latitude(self):
        """0.01° of latitude is ~1.11 km on a 6371 km sphere."""
        d = haversine_km(12.97, 77.59, 12.98, 77.59)
        assert d == pytest.approx(EARTH_RADIUS_KM * math.radians(0.01), rel=1e-9)
        assert 1.10 < d < 1.12

    def test_monotonic_with_separation(self):
        distances = [haversine_km(0.0, 0.0, 0.0, lng) for lng in (0.001, 0.01, 0.1, 1, 10, 90, 180)]
        assert distances == sorted(distances)
        assert len(set(distances)) == len(distances)

    def test_antipodal_is_half_circumference(self):
        assert haversine_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * EARTH_RADIUS_KM)


class TestIsValidCoordinate:

    @pytest.mark.parametrize("lat,lng", [(0, 0), (90, 180), (-90, -180), (12.97, 77.59)])
    def test_valid(self, lat, lng):
        assert is_valid_coordinate(lat, lng)

    @pytest.mark.parametrize("lat,lng", [
        (90.0001, 0),
        (0, -180.5),
        (float("nan"), 0),
        (0, float("inf")),
        (None, 0),
        ("12.9", "77.5"),
        (True, 0),
    ])
    def test_invalid(self, lat, lng):
        assert not is_valid_coordinate(lat, lng)
