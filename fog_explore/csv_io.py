"""CSV input/output: exported track files, revealed points, fog circles."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Iterable, Sequence

from fog_explore.models import RevealedPoint, TrackPoint
from fog_explore.render import FogCircle
from fog_explore.timeutils import dt_from_epoch_ms

logger = logging.getLogger(__name__)

REVEALED_FIELDS: Final[tuple[str, ...]] = ("point_id", "timestamp_ms", "latitude", "longitude")


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_int(value: str) -> int:
    return int(value.strip())


def _parse_float(value: str) -> float:
    return float(value.strip())


def load_track_points(csv_path: str | Path) -> tuple[list[TrackPoint], CsvSummary]:
    """Load all points of an exported track CSV into memory.

    The export uses these columns (observed):
      - geoTime: epoch milliseconds
      - latitude/longitude: decimal degrees
      - altitude/speed/horizontalAccuracy/locationType (optional)

    Args:
        csv_path: Path to the exported CSV.

    Returns:
        (points, summary)

    Raises:
        KeyError: If the header lacks geoTime/latitude/longitude.
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[TrackPoint] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        missing = [name for name in ("geoTime", "latitude", "longitude") if name not in fieldnames]
        if fieldnames and missing:
            raise KeyError(f"CSV缺少必要字段：{missing}. 实际字段：{list(fieldnames)}")
        for row in reader:
            rows_total += 1
            try:
                parsed.append(
                    TrackPoint(
                        geo_time_ms=_parse_int(row["geoTime"]),
                        latitude=_parse_float(row["latitude"]),
                        longitude=_parse_float(row["longitude"]),
                        altitude_m=_parse_float(row.get("altitude", "0") or "0"),
                        speed_mps=_parse_float(row.get("speed", "-1") or "-1"),
                        horizontal_accuracy_m=_parse_float(row.get("horizontalAccuracy", "-1") or "-1"),
                        location_type=_parse_int(row.get("locationType", "0") or "0"),
                    )
                )
            except (ValueError, TypeError, AttributeError):
                # 某些行可能损坏/空行，直接跳过
                continue

    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("CSV中有 %s 行解析失败已跳过", summary.rows_skipped)
    return parsed, summary


def read_revealed_csv(csv_path: str | Path) -> list[RevealedPoint]:
    """Read revealed points written by :func:`append_revealed_csv`.

    A missing file is an empty history, not an error.
    """

    p = Path(csv_path)
    if not p.exists():
        return []
    out: list[RevealedPoint] = []
    skipped = 0
    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            try:
                point_id = (row.get("point_id") or "").strip()
                out.append(
                    RevealedPoint(
                        latitude=_parse_float(row["latitude"]),
                        longitude=_parse_float(row["longitude"]),
                        timestamp_ms=_parse_int(row["timestamp_ms"]),
                        point_id=int(point_id) if point_id else None,
                    )
                )
            except (KeyError, ValueError, TypeError, AttributeError):
                skipped += 1
    if skipped:
        logger.warning("%s 中有 %s 行已跳过", p, skipped)
    return out


def write_revealed_csv(points: Iterable[RevealedPoint], csv_path: str | Path) -> None:
    """Rewrite the whole revealed-point file."""

    p = Path(csv_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=list(REVEALED_FIELDS))
        w.writeheader()
        for pt in points:
            w.writerow(_revealed_row(pt))


def append_revealed_csv(point: RevealedPoint, csv_path: str | Path) -> None:
    """Append one revealed point, writing the header if the file is new."""

    p = Path(csv_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    is_new = not p.exists() or p.stat().st_size == 0
    with p.open("a", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=list(REVEALED_FIELDS))
        if is_new:
            w.writeheader()
        w.writerow(_revealed_row(point))


def _revealed_row(pt: RevealedPoint) -> dict[str, object]:
    return {
        "point_id": "" if pt.point_id is None else pt.point_id,
        "timestamp_ms": pt.timestamp_ms,
        "latitude": pt.latitude,
        "longitude": pt.longitude,
    }


def write_circles_csv(
    circles: Iterable[FogCircle],
    out_path: str | Path,
) -> int:
    """Export the renderer feed. Returns the number of rows written."""

    p = Path(out_path)
    n = 0
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["latitude", "longitude", "radius_m", "radius_px"])
        w.writeheader()
        for c in circles:
            w.writerow(
                {
                    "latitude": c.latitude,
                    "longitude": c.longitude,
                    "radius_m": c.radius_m,
                    "radius_px": f"{c.radius_px:.2f}",
                }
            )
            n += 1
    return n


def export_readable_csv(points: Iterable[RevealedPoint], out_path: str | Path, tz_name: str) -> None:
    """Export revealed points with a local-time column for humans."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["time_local", *REVEALED_FIELDS])
        w.writeheader()
        for pt in points:
            w.writerow({"time_local": dt_from_epoch_ms(pt.timestamp_ms, tz_name).isoformat(sep=" "), **_revealed_row(pt)})
