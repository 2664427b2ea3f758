"""Coverage index: which places are already revealed.

The index buckets every revealed point into a uniform lat/lon grid whose cell
size equals the save threshold. A lookup then only has to measure distances
to the points in the surrounding cells, which keeps ``is_location_revealed``
roughly constant-time no matter how much history has accumulated.

The grid is a runtime acceleration structure only. The point store owns the
authoritative point list; the index is rebuilt from it at session start and
after bulk changes.
"""

from __future__ import annotations

import logging
import math
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Final, Iterable

from fog_explore.geo import distance_m
from fog_explore.grid import CellKey, cell_key_of, search_cell_keys
from fog_explore.models import Bounds, GeoPoint, HasLatLon

logger = logging.getLogger(__name__)

# Empirical tuning constant: how much the overlap fraction shrinks the save
# threshold. saveThreshold = clearRadius * (1 - overlap * OVERLAP_SHRINK)
OVERLAP_SHRINK: Final[float] = 0.26
CLUSTER_RADIUS_FACTOR: Final[float] = 0.7


@dataclass(frozen=True, slots=True)
class CoverageParams:
    """Parameters of a coverage index.

    Attributes:
        clear_radius_m: Radius of the circle revealed around each point.
        max_overlap_fraction: 0..1, how much neighbouring revealed circles may
            overlap before a new sample counts as redundant.
        overlap_shrink: Factor relating overlap to save-threshold shrinkage.
        cluster_radius_factor: Cluster radius as a fraction of clear radius.
        cell_size_m: Grid cell size override. Defaults to the save threshold.
    """

    clear_radius_m: float = 50.0
    max_overlap_fraction: float = 0.65
    overlap_shrink: float = OVERLAP_SHRINK
    cluster_radius_factor: float = CLUSTER_RADIUS_FACTOR
    cell_size_m: float | None = None

    def __post_init__(self) -> None:
        if not (math.isfinite(self.clear_radius_m) and self.clear_radius_m > 0):
            raise ValueError(f"clear_radius_m 必须为正数：{self.clear_radius_m!r}")
        if not (math.isfinite(self.max_overlap_fraction) and 0.0 <= self.max_overlap_fraction <= 1.0):
            raise ValueError(f"max_overlap_fraction 必须在 [0, 1] 内：{self.max_overlap_fraction!r}")
        if not (math.isfinite(self.overlap_shrink) and 0.0 <= self.overlap_shrink < 1.0):
            raise ValueError(f"overlap_shrink 必须在 [0, 1) 内：{self.overlap_shrink!r}")
        if not (math.isfinite(self.cluster_radius_factor) and self.cluster_radius_factor > 0):
            raise ValueError(f"cluster_radius_factor 必须为正数：{self.cluster_radius_factor!r}")
        if self.cell_size_m is not None and not (math.isfinite(self.cell_size_m) and self.cell_size_m > 0):
            raise ValueError(f"cell_size_m 必须为正数：{self.cell_size_m!r}")

    @property
    def save_threshold_m(self) -> float:
        """Minimum distance to every known point for a fix to count as new."""

        return self.clear_radius_m * (1.0 - self.max_overlap_fraction * self.overlap_shrink)

    @property
    def grid_cell_m(self) -> float:
        return self.cell_size_m if self.cell_size_m is not None else self.save_threshold_m

    @property
    def cluster_radius_m(self) -> float:
        return self.clear_radius_m * self.cluster_radius_factor


class CoverageIndex:
    """Grid-backed index over revealed points.

    All operations are serialized behind one lock; the buckets themselves are
    plain lists and must never be touched concurrently.
    """

    def __init__(self, params: CoverageParams | None = None) -> None:
        self.params = params or CoverageParams()
        self._grid: dict[CellKey, list[GeoPoint]] = {}
        self._points: list[GeoPoint] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._points)

    @property
    def all_points(self) -> tuple[GeoPoint, ...]:
        """Every indexed point, in insertion order."""

        with self._lock:
            return tuple(self._points)

    @property
    def cell_count(self) -> int:
        return len(self._grid)

    def clear(self) -> None:
        with self._lock:
            self._grid.clear()
            self._points.clear()

    def build_from_points(self, points: Iterable[HasLatLon]) -> None:
        """Replace the whole index with ``points``.

        Validates everything before touching the grid, so a bad point leaves
        the previous contents intact.
        """

        validated = [GeoPoint.of(p) for p in points]
        with self._lock:
            self._grid.clear()
            self._points = []
            for p in validated:
                self._add(p)
            cells = len(self._grid)
        logger.info(
            "coverage index rebuilt: points=%s cells=%s save_threshold_m=%.2f",
            len(validated),
            cells,
            self.params.save_threshold_m,
        )

    def insert(self, point: HasLatLon) -> GeoPoint:
        """Add one point to the index and return it as a GeoPoint."""

        p = GeoPoint.of(point)
        with self._lock:
            self._add(p)
        return p

    def _add(self, p: GeoPoint) -> None:
        key = cell_key_of(p, self.params.grid_cell_m)
        self._grid.setdefault(key, []).append(p)
        self._points.append(p)

    def is_location_revealed(self, point: HasLatLon) -> bool:
        """True when ``point`` lies strictly within the save threshold of a known point."""

        p = GeoPoint.of(point)
        threshold = self.params.save_threshold_m
        with self._lock:
            if not self._grid:
                return False
            for key in search_cell_keys(p, self.params.grid_cell_m, threshold):
                for candidate in self._grid.get(key, ()):
                    if distance_m(p, candidate) < threshold:
                        return True
        return False

    def points_in_bounds(self, bounds: Bounds) -> list[GeoPoint]:
        """Indexed points inside a viewport, in insertion order."""

        with self._lock:
            return [p for p in self._points if bounds.contains(p)]

    def clustered_points(self) -> list[GeoPoint]:
        """Greedy cluster representatives for the fog renderer.

        Walks the points in insertion order. Each point not yet covered becomes
        a representative and covers every later uncovered point closer than
        ``cluster_radius_m``. Only points from nearby cells of a secondary grid
        are measured, so this stays close to linear.

        The result depends on insertion order. The guarantee is coverage: each
        point is a representative or lies within the cluster radius of one.
        """

        radius = self.params.cluster_radius_m
        with self._lock:
            points = list(self._points)
        if not points:
            return []

        cells: dict[CellKey, list[int]] = defaultdict(list)
        for i, p in enumerate(points):
            cells[cell_key_of(p, radius)].append(i)

        covered = [False] * len(points)
        representatives: list[GeoPoint] = []
        for i, p in enumerate(points):
            if covered[i]:
                continue
            covered[i] = True
            representatives.append(p)
            for key in search_cell_keys(p, radius, radius):
                for j in cells.get(key, ()):
                    if j > i and not covered[j] and distance_m(p, points[j]) < radius:
                        covered[j] = True

        logger.debug("clustered %s points into %s representatives", len(points), len(representatives))
        return representatives
