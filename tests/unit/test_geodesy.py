"""Tests for haversine distance and speed derivation."""
import math

import pytest

from surftrack.analysis.geodesy import EARTH_RADIUS_KM, distance_km, speed_from_distance_time


class TestDistanceKm:
    def test_coincident_points_are_zero(self):
        assert distance_km((21.6649, -158.0539), (21.6649, -158.0539)) == 0.0

    def test_one_degree_of_latitude(self):
        d = distance_km((0.0, 0.0), (1.0, 0.0))
        assert d == pytest.approx(EARTH_RADIUS_KM * math.pi / 180.0, rel=1e-9)

    def test_one_degree_of_longitude_shrinks_with_latitude(self):
        at_equator = distance_km((0.0, 0.0), (0.0, 1.0))
        at_60 = distance_km((60.0, 0.0), (60.0, 1.0))
        assert at_60 == pytest.approx(at_equator / 2, rel=1e-3)

    def test_antipodal_points_are_half_circumference(self):
        d = distance_km((0.0, 0.0), (0.0, 180.0))
        assert d == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-9)

    def test_pole_to_pole(self):
        d = distance_km((90.0, 0.0), (-90.0, 0.0))
        assert math.isfinite(d)
        assert d == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-9)

    def test_symmetric(self):
        a = (21.6649, -158.0539)
        b = (21.6701, -158.0480)
        assert distance_km(a, b) == pytest.approx(distance_km(b, a))

    def test_short_surf_distance(self):
        # ~0.0001 deg of latitude ≈ 11 m
        d = distance_km((21.6649, -158.0539), (21.6650, -158.0539))
        assert d * 1000 == pytest.approx(11.12, abs=0.05)


class TestSpeedFromDistanceTime:
    def test_one_km_in_an_hour(self):
        assert speed_from_distance_time(1.0, 3600.0) == pytest.approx(1.0)

    def test_hundred_metres_in_ten_seconds(self):
        assert speed_from_distance_time(0.1, 10.0) == pytest.approx(36.0)

    def test_zero_seconds_returns_zero(self):
        assert speed_from_distance_time(0.5, 0.0) == 0.0

    def test_negative_seconds_returns_zero(self):
        assert speed_from_distance_time(0.5, -2.0) == 0.0

    def test_zero_distance_returns_zero(self):
        assert speed_from_distance_time(0.0, 5.0) == 0.0

    def test_never_infinite_or_nan(self):
        for seconds in (0.0, -0.0, 1e-300, float("inf"), float("nan")):
            result = speed_from_distance_time(0.01, seconds)
            assert math.isfinite(result) or result == 0.0
            assert not math.isnan(result)
