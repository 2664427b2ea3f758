"""Renderer feed: which circles to punch out of the fog, and how big."""

from __future__ import annotations

from dataclasses import dataclass

from fog_explore.coverage import CoverageIndex
from fog_explore.geo import meters_to_pixels
from fog_explore.models import Bounds


@dataclass(frozen=True, slots=True)
class FogCircle:
    """One soft-edged hole in the fog overlay."""

    latitude: float
    longitude: float
    radius_m: float
    radius_px: float


def fog_circles(
    index: CoverageIndex,
    zoom: float,
    bounds: Bounds | None = None,
    clustered: bool = True,
) -> list[FogCircle]:
    """Circles to draw for the current viewport.

    Args:
        index: Coverage index of the session.
        zoom: Current map zoom level.
        bounds: Optional viewport; circles outside it are dropped.
        clustered: Use cluster representatives (default) or every raw point.
    """

    radius_m = index.params.clear_radius_m
    points = index.clustered_points() if clustered else list(index.all_points)
    if bounds is not None:
        points = [p for p in points if bounds.contains(p)]
    return [
        FogCircle(
            latitude=p.latitude,
            longitude=p.longitude,
            radius_m=radius_m,
            radius_px=meters_to_pixels(p.latitude, radius_m, zoom),
        )
        for p in points
    ]
