import csv
from pathlib import Path

import pytest

from fog_explore.coverage import CoverageIndex, CoverageParams
from fog_explore.geo import destination_point
from fog_explore.models import GeoPoint

TEL_AVIV = GeoPoint(32.0853, 34.7818)


@pytest.fixture
def origin() -> GeoPoint:
    return TEL_AVIV


@pytest.fixture
def params() -> CoverageParams:
    # save threshold = 40 * (1 - 0.5 * 0.26) = 34.8 m
    return CoverageParams(clear_radius_m=40.0, max_overlap_fraction=0.5)


@pytest.fixture
def index(params) -> CoverageIndex:
    return CoverageIndex(params)


@pytest.fixture
def write_track(tmp_path):
    """Write a track CSV from (seconds, GeoPoint[, accuracy]) tuples."""

    def _write(rows, name="Path.csv", start_ms=1_700_000_000_000) -> Path:
        path = tmp_path / name
        with path.open("w", encoding="utf-8", newline="") as f:
            w = csv.DictWriter(f, fieldnames=["geoTime", "latitude", "longitude", "horizontalAccuracy"])
            w.writeheader()
            for row in rows:
                seconds, point = row[0], row[1]
                accuracy = row[2] if len(row) > 2 else 5.0
                w.writerow(
                    {
                        "geoTime": start_ms + int(seconds * 1000),
                        "latitude": f"{point.latitude:.9f}",
                        "longitude": f"{point.longitude:.9f}",
                        "horizontalAccuracy": accuracy,
                    }
                )
        return path

    return _write


def walk_east(start: GeoPoint, step_m: float, steps: int) -> list[GeoPoint]:
    """Points every ``step_m`` meters along one great circle heading east."""

    return [destination_point(start, step_m * i, 90.0) for i in range(steps)]
