"""Geospatial math: great-circle distance and map projection helpers."""

from __future__ import annotations

import math
from typing import Final

from fog_explore.models import GeoPoint

EARTH_RADIUS_M: Final[float] = 6_371_000.0  # mean Earth radius in meters
EARTH_CIRCUMFERENCE_M: Final[float] = 40_075_016.686  # equatorial, Web Mercator
TILE_SIZE_PX: Final[int] = 256


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # 浮点误差可能让 a 略超出 [0, 1]（对跖点/极近点），必须截断
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points, in meters."""

    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def destination_point(origin: GeoPoint, distance: float, bearing_deg: float) -> GeoPoint:
    """Point reached by travelling along a great circle.

    Args:
        origin: Start point.
        distance: Distance to travel in meters.
        bearing_deg: Initial bearing, degrees clockwise from north.

    Returns:
        Destination point, longitude normalized to [-180, 180).
    """

    delta = distance / EARTH_RADIUS_M
    theta = math.radians(bearing_deg)
    phi1 = math.radians(origin.latitude)
    lam1 = math.radians(origin.longitude)

    sin_phi2 = math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    phi2 = math.asin(min(1.0, max(-1.0, sin_phi2)))
    lam2 = lam1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    lon = (math.degrees(lam2) + 540.0) % 360.0 - 180.0
    return GeoPoint(latitude=math.degrees(phi2), longitude=lon)


def pixels_per_meter(latitude: float, zoom: float) -> float:
    """Web Mercator scale at a latitude and zoom level."""

    return (TILE_SIZE_PX * 2.0**zoom) / (EARTH_CIRCUMFERENCE_M * math.cos(math.radians(latitude)))


def meters_to_pixels(latitude: float, meters: float, zoom: float) -> float:
    """Convert a ground distance to screen pixels at a given zoom level.

    The fog renderer sizes every revealed circle with this, so the on-screen
    hole matches the distance semantics of the coverage index.
    """

    return meters * pixels_per_meter(latitude, zoom)
