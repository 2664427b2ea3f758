"""Point stores: durable owners of revealed points.

The coverage index never reads a store per lookup. A store is read once at
session start (and after bulk changes) and written to when a fix is accepted.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from fog_explore.csv_io import append_revealed_csv, read_revealed_csv, write_revealed_csv
from fog_explore.models import GeoPoint, RevealedPoint

logger = logging.getLogger(__name__)


class PointStore(Protocol):
    """What the explorer needs from a point store."""

    def add(self, point: GeoPoint, timestamp_ms: int) -> RevealedPoint: ...

    def all(self) -> list[RevealedPoint]: ...

    def get(self, point_id: int) -> RevealedPoint | None: ...

    def delete(self, point_id: int) -> bool: ...

    def clear(self) -> None: ...

    def count(self) -> int: ...


class MemoryPointStore:
    """Process-local store with incrementing ids."""

    def __init__(self, points: list[RevealedPoint] | None = None) -> None:
        points = list(points or [])
        self._points: list[RevealedPoint] = []
        # ids missing from the input are numbered after every id already present
        self._next_id = max((p.point_id for p in points if p.point_id is not None), default=0) + 1
        self.assigned_ids = sum(1 for p in points if p.point_id is None)
        for pt in points:
            self._append(pt)

    def _append(self, pt: RevealedPoint) -> RevealedPoint:
        if pt.point_id is None:
            pt = RevealedPoint(pt.latitude, pt.longitude, pt.timestamp_ms, self._next_id)
        self._next_id = max(self._next_id, pt.point_id + 1)
        self._points.append(pt)
        return pt

    def add(self, point: GeoPoint, timestamp_ms: int) -> RevealedPoint:
        return self._append(RevealedPoint(point.latitude, point.longitude, int(timestamp_ms)))

    def all(self) -> list[RevealedPoint]:
        return list(self._points)

    def get(self, point_id: int) -> RevealedPoint | None:
        return next((p for p in self._points if p.point_id == point_id), None)

    def delete(self, point_id: int) -> bool:
        before = len(self._points)
        self._points = [p for p in self._points if p.point_id != point_id]
        return len(self._points) < before

    def clear(self) -> None:
        self._points.clear()

    def count(self) -> int:
        return len(self._points)


class CsvPointStore(MemoryPointStore):
    """Store backed by one CSV file (``point_id,timestamp_ms,latitude,longitude``).

    Adds are appended immediately; deletes and clears rewrite the file.
    """

    def __init__(self, csv_path: str | Path) -> None:
        self.path = Path(csv_path)
        super().__init__(read_revealed_csv(self.path))
        if self.assigned_ids:
            # write the assigned ids back
            write_revealed_csv(self.all(), self.path)
            logger.warning("assigned ids to %s revealed points in %s", self.assigned_ids, self.path)
        logger.info("loaded %s revealed points from %s", self.count(), self.path)

    def add(self, point: GeoPoint, timestamp_ms: int) -> RevealedPoint:
        stored = super().add(point, timestamp_ms)
        append_revealed_csv(stored, self.path)
        return stored

    def delete(self, point_id: int) -> bool:
        removed = super().delete(point_id)
        if removed:
            write_revealed_csv(self.all(), self.path)
        return removed

    def clear(self) -> None:
        super().clear()
        write_revealed_csv([], self.path)
