import math
import random

import pytest

from fog_explore.coverage import OVERLAP_SHRINK, CoverageIndex, CoverageParams
from fog_explore.geo import destination_point, distance_m
from fog_explore.grid import cell_extent_deg, cell_key_of
from fog_explore.models import Bounds, GeoPoint, RevealedPoint, TrackPoint


def _scatter(rng: random.Random, center: GeoPoint, n: int, half_side_m: float) -> list[GeoPoint]:
    out = []
    for _ in range(n):
        north = destination_point(center, rng.uniform(-half_side_m, half_side_m), 0.0)
        out.append(destination_point(north, rng.uniform(-half_side_m, half_side_m), 90.0))
    return out


def _greedy_quadratic(points: list[GeoPoint], radius: float) -> list[GeoPoint]:
    used = [False] * len(points)
    out = []
    for i, p in enumerate(points):
        if used[i]:
            continue
        used[i] = True
        out.append(p)
        for j in range(i + 1, len(points)):
            if not used[j] and distance_m(p, points[j]) < radius:
                used[j] = True
    return out


def test_derived_parameters(params):
    assert params.save_threshold_m == pytest.approx(34.8)
    assert params.grid_cell_m == pytest.approx(34.8)
    assert params.cluster_radius_m == pytest.approx(28.0)
    assert OVERLAP_SHRINK == 0.26


def test_overlap_shrink_is_overridable():
    params = CoverageParams(clear_radius_m=40.0, max_overlap_fraction=0.5, overlap_shrink=0.5)
    assert params.save_threshold_m == pytest.approx(30.0)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"clear_radius_m": 0.0},
        {"clear_radius_m": -5.0},
        {"clear_radius_m": math.nan},
        {"max_overlap_fraction": -0.1},
        {"max_overlap_fraction": 1.5},
        {"overlap_shrink": 1.0},
        {"cluster_radius_factor": 0.0},
        {"cell_size_m": 0.0},
    ],
)
def test_invalid_configuration_is_rejected(kwargs):
    with pytest.raises(ValueError):
        CoverageParams(**kwargs)


def test_empty_index_never_reports_revealed(index, origin):
    assert index.is_location_revealed(origin) is False
    assert index.is_location_revealed(GeoPoint(-45.0, 170.0)) is False
    assert len(index) == 0


def test_exact_duplicate_is_revealed(index, origin):
    index.insert(origin)
    assert index.is_location_revealed(GeoPoint(origin.latitude, origin.longitude))


def test_tel_aviv_scenario(index, origin):
    index.insert(origin)
    assert index.is_location_revealed(origin)
    assert index.is_location_revealed(destination_point(origin, 5.0, 123.0))

    b = destination_point(origin, 60.0, 200.0)
    assert not index.is_location_revealed(b)

    index.insert(b)
    assert index.is_location_revealed(destination_point(b, 5.0, 10.0))
    assert index.is_location_revealed(destination_point(origin, 5.0, 300.0))
    assert len(index) == 2


@pytest.mark.parametrize("bearing", [0.0, 45.0, 90.0, 135.0, 180.0, 225.0, 270.0, 315.0])
def test_threshold_boundary(index, origin, bearing):
    threshold = index.params.save_threshold_m
    eps = threshold * 0.001
    index.insert(origin)
    assert index.is_location_revealed(destination_point(origin, threshold - eps, bearing))
    assert not index.is_location_revealed(destination_point(origin, threshold + eps, bearing))


def test_point_across_cell_boundary_is_found(index, origin):
    cell = index.params.grid_cell_m
    size_lat, size_lng = cell_extent_deg(origin.latitude, cell)
    cx, cy = cell_key_of(origin, cell)

    edge_lon = (cx + 1) * size_lng
    west = GeoPoint(origin.latitude, edge_lon - 1e-5)
    east = GeoPoint(origin.latitude, edge_lon + 1e-5)
    assert cell_key_of(west, cell) != cell_key_of(east, cell)
    index.insert(west)
    assert index.is_location_revealed(east)

    edge_lat = (cy + 1) * size_lat
    south = GeoPoint(edge_lat - 1e-5, origin.longitude)
    north = GeoPoint(edge_lat + 1e-5, origin.longitude)
    assert cell_key_of(south, cell)[1] != cell_key_of(north, cell)[1]
    other = CoverageIndex(index.params)
    other.insert(south)
    assert other.is_location_revealed(north)


@pytest.mark.parametrize("center", [GeoPoint(32.0853, 34.7818), GeoPoint(61.2, 170.5), GeoPoint(-33.9, -70.6)])
def test_index_agrees_with_brute_force(params, center):
    rng = random.Random(7)
    stored = _scatter(rng, center, 150, 300.0)
    index = CoverageIndex(params)
    index.build_from_points(stored)

    threshold = params.save_threshold_m
    for query in _scatter(rng, center, 400, 320.0):
        expected = any(distance_m(query, s) < threshold for s in stored)
        assert index.is_location_revealed(query) is expected


def test_rebuild_is_idempotent(params, origin):
    rng = random.Random(3)
    pts = _scatter(rng, origin, 80, 400.0)
    queries = pts + [destination_point(p, d, rng.uniform(0, 360)) for p in pts for d in (10.0, 33.0, 36.0, 80.0)]

    index = CoverageIndex(params)
    index.build_from_points(pts)
    first = [index.is_location_revealed(q) for q in queries]
    cells = index.cell_count
    index.build_from_points(pts)
    assert [index.is_location_revealed(q) for q in queries] == first
    assert index.cell_count == cells
    assert len(index) == len(pts)


def test_build_replaces_previous_points(index, origin):
    index.insert(origin)
    far = destination_point(origin, 5_000.0, 0.0)
    index.build_from_points([far])
    assert not index.is_location_revealed(origin)
    assert index.is_location_revealed(far)
    assert index.all_points == (far,)


def test_build_accepts_revealed_and_track_points(index, origin):
    index.build_from_points(
        [
            RevealedPoint(origin.latitude, origin.longitude, timestamp_ms=1, point_id=9),
            TrackPoint(geo_time_ms=2, latitude=origin.latitude + 0.01, longitude=origin.longitude),
        ]
    )
    assert len(index) == 2
    assert all(isinstance(p, GeoPoint) for p in index.all_points)


@pytest.mark.parametrize(
    "bad",
    [
        GeoPoint(math.nan, 34.0),
        GeoPoint(32.0, math.inf),
        GeoPoint(91.0, 34.0),
        GeoPoint(32.0, -180.5),
    ],
)
def test_malformed_points_are_rejected(index, origin, bad):
    index.insert(origin)
    with pytest.raises(ValueError):
        index.insert(bad)
    with pytest.raises(ValueError):
        index.is_location_revealed(bad)
    assert len(index) == 1


def test_bad_point_in_bulk_build_keeps_old_contents(index, origin):
    index.insert(origin)
    with pytest.raises(ValueError):
        index.build_from_points([origin, GeoPoint(math.nan, 0.0)])
    assert index.all_points == (origin,)


def test_points_in_bounds(index, origin):
    inside = destination_point(origin, 100.0, 45.0)
    outside = destination_point(origin, 10_000.0, 0.0)
    index.build_from_points([origin, inside, outside])
    bounds = Bounds(
        north=origin.latitude + 0.01,
        south=origin.latitude - 0.01,
        east=origin.longitude + 0.01,
        west=origin.longitude - 0.01,
    )
    assert index.points_in_bounds(bounds) == [origin, inside]


def test_points_in_bounds_across_antimeridian(index):
    east_side = GeoPoint(10.0, 179.9)
    west_side = GeoPoint(10.0, -179.9)
    greenwich = GeoPoint(10.0, 0.0)
    index.build_from_points([east_side, west_side, greenwich])
    bounds = Bounds(north=11.0, south=9.0, east=-179.0, west=179.0)
    assert index.points_in_bounds(bounds) == [east_side, west_side]


def test_reveal_across_antimeridian(index):
    index.insert(GeoPoint(10.0, 179.99999))
    assert index.is_location_revealed(GeoPoint(10.0, -179.99999))
    assert index.is_location_revealed(GeoPoint(10.0, 180.0))
    assert not index.is_location_revealed(GeoPoint(10.0, -179.99))

    index.build_from_points([GeoPoint(-45.0, -180.0)])
    assert index.is_location_revealed(GeoPoint(-45.0, 179.9999))


def test_clusters_merge_across_antimeridian(index):
    index.build_from_points([GeoPoint(10.0, 179.99999), GeoPoint(10.0, -179.99999)])
    assert index.clustered_points() == [GeoPoint(10.0, 179.99999)]


def test_clear(index, origin):
    index.insert(origin)
    index.clear()
    assert len(index) == 0
    assert index.cell_count == 0
    assert not index.is_location_revealed(origin)


def test_clustered_points_empty(index):
    assert index.clustered_points() == []


def test_clustering_covers_every_point(origin):
    params = CoverageParams(clear_radius_m=200.0, max_overlap_fraction=0.5)
    rng = random.Random(11)
    pts = _scatter(rng, origin, 100, 500.0)
    index = CoverageIndex(params)
    index.build_from_points(pts)

    reps = index.clustered_points()
    assert 0 < len(reps) < 100
    radius = params.cluster_radius_m
    for p in pts:
        assert p in reps or any(distance_m(p, r) < radius for r in reps)


def test_clustering_keeps_insertion_order_representatives(index, origin):
    near = destination_point(origin, 10.0, 90.0)
    far = destination_point(origin, 500.0, 90.0)
    index.build_from_points([origin, near, far])
    assert index.clustered_points() == [origin, far]


def test_clustering_matches_quadratic_greedy(params):
    rng = random.Random(5)
    center = GeoPoint(48.8566, 2.3522)
    pts = _scatter(rng, center, 300, 250.0)
    index = CoverageIndex(params)
    index.build_from_points(pts)
    assert index.clustered_points() == _greedy_quadratic(pts, params.cluster_radius_m)
