import math

import pytest

from cities_api.geometry.distance import GeoPoint, distance_between

LONDON = GeoPoint(lat=51.5074, lon=-0.1278)
PARIS = GeoPoint(lat=48.8566, lon=2.3522)
SYDNEY = GeoPoint(lat=-33.8688, lon=151.2093)


def test_london_paris_distance():
    assert distance_between(LONDON, PARIS) / 1000 == pytest.approx(343.56, abs=0.5)


def test_distance_is_symmetric():
    for a, b in [(LONDON, PARIS), (PARIS, SYDNEY), (SYDNEY, LONDON)]:
        assert distance_between(a, b) == pytest.approx(distance_between(b, a))


def test_distance_to_self_is_zero():
    assert distance_between(LONDON, LONDON) == 0
    assert distance_between(SYDNEY, SYDNEY) == 0


def test_antipodal_points_are_half_circumference_apart():
    d = distance_between(GeoPoint(lat=0, lon=0), GeoPoint(lat=0, lon=180))
    assert d == pytest.approx(math.pi * 6_371_000)


def test_nan_coordinates_propagate():
    assert math.isnan(distance_between(GeoPoint(lat=math.nan, lon=0), LONDON))
