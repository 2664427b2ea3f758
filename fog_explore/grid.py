"""Uniform lat/lon grid hashing (no external dependencies)."""

from __future__ import annotations

import math
from typing import Final

from fog_explore.geo import EARTH_RADIUS_M
from fog_explore.models import GeoPoint

METERS_PER_DEGREE_LAT: Final[float] = 111_320.0
# 极点附近 cos(lat) -> 0，经度格宽会爆掉；这里给个下限
_MIN_COS_LAT: Final[float] = 1e-6

CellKey = tuple[int, int]


def _cos_lat(latitude: float) -> float:
    return max(math.cos(math.radians(latitude)), _MIN_COS_LAT)


def cell_extent_deg(latitude: float, cell_size_m: float) -> tuple[float, float]:
    """Return (cell_size_lat_deg, cell_size_lng_deg) for a metric cell size.

    The longitude extent widens with latitude, so cells are only roughly
    square and adjacency is approximate near the poles.
    """

    if not cell_size_m > 0:
        raise ValueError(f"cell_size_m 必须为正数：{cell_size_m!r}")
    return cell_size_m / METERS_PER_DEGREE_LAT, cell_size_m / (METERS_PER_DEGREE_LAT * _cos_lat(latitude))


def cell_key_of(point: GeoPoint, cell_size_m: float) -> CellKey:
    """Compute the (cell_x, cell_y) key of the cell containing a point.

    Args:
        point: Location to hash.
        cell_size_m: Cell edge length in meters.

    Returns:
        (floor(lon / cell_lng), floor(lat / cell_lat)).
    """

    size_lat, size_lng = cell_extent_deg(point.latitude, cell_size_m)
    return math.floor(point.longitude / size_lng), math.floor(point.latitude / size_lat)


def _block(center: CellKey, rings_x: int, rings_y: int) -> set[CellKey]:
    cx, cy = center
    return {(cx + dx, cy + dy) for dx in range(-rings_x, rings_x + 1) for dy in range(-rings_y, rings_y + 1)}


def neighbor_cell_keys(point: GeoPoint, cell_size_m: float, rings: int = 1) -> set[CellKey]:
    """Return the point's own cell plus every cell within ``rings`` of it.

    ``rings=1`` yields the 3x3 block of 9 keys; a point close to a cell edge
    can be within range of points stored on the other side of it.
    """

    if rings < 0:
        raise ValueError(f"rings 不能为负数：{rings!r}")
    return _block(cell_key_of(point, cell_size_m), rings, rings)


def _lat_band(latitude: float, radius_m: float) -> tuple[float, float, float]:
    """(dlat_deg, lo, hi): the latitude band within ``radius_m`` of ``latitude``."""

    dlat_deg = math.degrees(radius_m / EARTH_RADIUS_M)
    return dlat_deg, max(-90.0, latitude - dlat_deg), min(90.0, latitude + dlat_deg)


def _lon_reach_deg(far_lat: float, radius_m: float) -> float:
    # haversine: sin(dlon/2) <= sin(r / 2R) / cos(lat) for both endpoints in the band
    s = math.sin(radius_m / (2.0 * EARTH_RADIUS_M)) / _cos_lat(far_lat)
    return 180.0 if s >= 1.0 else math.degrees(2.0 * math.asin(s))


def search_rings(point: GeoPoint, cell_size_m: float, radius_m: float) -> tuple[int, int]:
    """Rings (x, y) that hold every stored point within ``radius_m`` of ``point``.

    Two effects push a nearby point further than one cell away:

    - distances are haversine on the 6,371 km sphere, while cells assume
      111,320 m per degree, so ``radius_m`` spans slightly more than
      ``radius_m`` worth of cells;
    - a stored point is hashed with the longitude width of *its own*
      latitude. Far from the prime meridian a few meters of latitude shift
      its column index by a sizeable fraction of a cell.
    """

    size_lat, _ = cell_extent_deg(point.latitude, cell_size_m)
    dlat_deg, lo, hi = _lat_band(point.latitude, radius_m)
    rings_y = max(1, math.ceil(dlat_deg / size_lat))

    far_lat = max(abs(lo), abs(hi))
    near_lat = 0.0 if lo <= 0.0 <= hi else min(abs(lo), abs(hi))
    dlon_deg = _lon_reach_deg(far_lat, radius_m)

    # column index is lon * k(lat), k(lat) = 111320 * cos(lat) / cell
    k_p = METERS_PER_DEGREE_LAT * _cos_lat(point.latitude) / cell_size_m
    k_max = METERS_PER_DEGREE_LAT * _cos_lat(near_lat) / cell_size_m
    k_spread = max(abs(METERS_PER_DEGREE_LAT * _cos_lat(x) / cell_size_m - k_p) for x in (lo, hi, near_lat))
    reach_x = dlon_deg * k_max + (abs(point.longitude) + dlon_deg) * k_spread
    rings_x = max(1, math.ceil(reach_x))
    return rings_x, rings_y


def search_cell_keys(point: GeoPoint, cell_size_m: float, radius_m: float) -> set[CellKey]:
    """Cells to scan to find every stored point within ``radius_m`` of ``point``.

    Columns never wrap, so when the search reaches past ±180° the block around
    the same spot expressed on the other side of the antimeridian is scanned too.
    """

    rings_x, rings_y = search_rings(point, cell_size_m, radius_m)
    keys = _block(cell_key_of(point, cell_size_m), rings_x, rings_y)

    _, lo, hi = _lat_band(point.latitude, radius_m)
    dlon_deg = _lon_reach_deg(max(abs(lo), abs(hi)), radius_m)
    if point.longitude + dlon_deg >= 180.0:
        mirrored = GeoPoint(point.latitude, point.longitude - 360.0)
        keys |= _block(cell_key_of(mirrored, cell_size_m), rings_x, rings_y)
    if point.longitude - dlon_deg <= -180.0:
        mirrored = GeoPoint(point.latitude, point.longitude + 360.0)
        keys |= _block(cell_key_of(mirrored, cell_size_m), rings_x, rings_y)
    return keys
