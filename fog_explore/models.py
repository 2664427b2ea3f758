"""Data models for location fixes and revealed points."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Final, Protocol


class HasLatLon(Protocol):
    """Anything carrying decimal-degree coordinates."""

    @property
    def latitude(self) -> float: ...

    @property
    def longitude(self) -> float: ...


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees.

    Note:
        Never compare two GeoPoints with ``==`` to decide whether they are
        "the same place"; use a distance threshold instead.
    """

    latitude: float
    longitude: float

    @classmethod
    def of(cls, point: HasLatLon) -> GeoPoint:
        """Build a validated GeoPoint from any object with latitude/longitude."""

        if isinstance(point, GeoPoint):
            return validate_point(point)
        return validate_point(cls(latitude=float(point.latitude), longitude=float(point.longitude)))


def validate_point(point: GeoPoint) -> GeoPoint:
    """Reject non-finite or out-of-range coordinates.

    Raises:
        ValueError: If latitude/longitude is NaN, infinite or out of range.
    """

    lat = point.latitude
    lon = point.longitude
    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValueError(f"坐标必须是有限数值：latitude={lat!r}, longitude={lon!r}")
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"纬度超出范围 [-90, 90]：{lat!r}")
    if not -180.0 <= lon <= 180.0:
        raise ValueError(f"经度超出范围 [-180, 180]：{lon!r}")
    return point


@dataclass(frozen=True, slots=True)
class RevealedPoint:
    """A location accepted as new territory.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        timestamp_ms: Capture time, Unix epoch milliseconds.
        point_id: Identifier assigned by the point store, if any.
    """

    latitude: float
    longitude: float
    timestamp_ms: int
    point_id: int | None = None

    @property
    def geo(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class TrackPoint:
    """A single location sample.

    Attributes:
        geo_time_ms: Unix epoch milliseconds.
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        altitude_m: Altitude in meters. May be 0.0 depending on device/app.
        speed_mps: Speed in meters/second. Some rows may use -1.0 as sentinel.
        horizontal_accuracy_m: Horizontal accuracy in meters. Some rows use -1.0.
        location_type: App-specific integer describing the positioning source.
    """

    geo_time_ms: int
    latitude: float
    longitude: float
    altitude_m: float = 0.0
    speed_mps: float = -1.0
    horizontal_accuracy_m: float = -1.0
    location_type: int = 0

    @property
    def geo_time_s(self) -> float:
        """Unix epoch seconds as float."""

        return self.geo_time_ms / 1000.0

    @property
    def geo(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class Bounds:
    """A map viewport, in decimal degrees. `west > east` wraps the antimeridian."""

    north: float
    south: float
    east: float
    west: float

    def contains(self, point: HasLatLon) -> bool:
        if not self.south <= point.latitude <= self.north:
            return False
        if self.west <= self.east:
            return self.west <= point.longitude <= self.east
        # viewport crosses the antimeridian
        return point.longitude >= self.west or point.longitude <= self.east


DEFAULT_TZ: Final[str] = "UTC"
