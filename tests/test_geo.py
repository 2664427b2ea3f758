import math
import random

import pytest

from fog_explore.geo import (
    EARTH_CIRCUMFERENCE_M,
    destination_point,
    distance_m,
    haversine_m,
    meters_to_pixels,
)
from fog_explore.models import GeoPoint


def test_distance_is_symmetric():
    rng = random.Random(1)
    for _ in range(200):
        a = GeoPoint(rng.uniform(-80, 80), rng.uniform(-180, 180))
        b = GeoPoint(rng.uniform(-80, 80), rng.uniform(-180, 180))
        assert distance_m(a, b) == distance_m(b, a)


def test_distance_to_self_is_zero(origin):
    assert distance_m(origin, origin) == 0.0
    assert haversine_m(0.0, 0.0, 0.0, 0.0) == 0.0


def test_known_distance_one_degree_latitude():
    # 1 degree of arc on the 6371 km sphere
    assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_194.93, abs=0.01)


def test_antipodal_and_near_identical_are_finite():
    d = haversine_m(0.0, 0.0, 0.0, 180.0)
    assert math.isfinite(d)
    assert d == pytest.approx(math.pi * 6_371_000.0, rel=1e-9)

    tiny = haversine_m(45.0, 45.0, 45.0 + 1e-12, 45.0)
    assert math.isfinite(tiny)
    assert 0.0 <= tiny < 1e-3


def test_moving_away_strictly_increases_distance(origin):
    previous = 0.0
    for step in range(1, 50):
        d = distance_m(origin, destination_point(origin, step * 25.0, 37.0))
        assert d > previous
        previous = d


def test_destination_point_round_trips_distance(origin):
    for bearing in (0.0, 45.0, 90.0, 180.0, 271.0):
        target = destination_point(origin, 60.0, bearing)
        assert distance_m(origin, target) == pytest.approx(60.0, abs=1e-6)


def test_destination_point_wraps_longitude():
    p = destination_point(GeoPoint(0.0, 179.9999), 100.0, 90.0)
    assert -180.0 <= p.longitude < 180.0
    assert p.longitude < 0


def test_meters_to_pixels_at_equator():
    assert meters_to_pixels(0.0, 1.0, 0) == pytest.approx(256 / EARTH_CIRCUMFERENCE_M)
    # each zoom level doubles the scale
    assert meters_to_pixels(0.0, 50.0, 17) == pytest.approx(2 * meters_to_pixels(0.0, 50.0, 16))


def test_meters_to_pixels_grows_with_latitude():
    assert meters_to_pixels(60.0, 50.0, 16) == pytest.approx(2 * meters_to_pixels(0.0, 50.0, 16))
