"""The sampling loop: decide which location fixes reveal new territory."""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Sequence

from fog_explore.coverage import CoverageIndex
from fog_explore.models import GeoPoint, HasLatLon, RevealedPoint, TrackPoint
from fog_explore.store import PointStore
from fog_explore.timeutils import now_ms

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReplayParams:
    """Parameters of a track replay."""

    # The live client samples on a fixed timer; replay keeps at most one fix per tick.
    sample_interval_s: float = 5.0
    # Fixes reporting a worse horizontal accuracy are dropped. None disables the filter.
    max_accuracy_m: float | None = None

    def __post_init__(self) -> None:
        if not (math.isfinite(self.sample_interval_s) and self.sample_interval_s >= 0):
            raise ValueError(f"sample_interval_s 必须为非负有限数：{self.sample_interval_s!r}")
        if self.max_accuracy_m is not None and not (math.isfinite(self.max_accuracy_m) and self.max_accuracy_m > 0):
            raise ValueError(f"max_accuracy_m 必须为正数：{self.max_accuracy_m!r}")


@dataclass(slots=True)
class ReplayStats:
    """Counters collected while replaying a track."""

    fixes: int = 0
    sampled: int = 0
    invalid: int = 0
    inaccurate: int = 0
    accepted: int = 0
    already_revealed: int = 0


class Explorer:
    """Ties a coverage index to a point store for one session.

    Every accepted fix is handed to the store first and then inserted into the
    index, so the index never holds a point the store does not know about.
    """

    def __init__(
        self,
        index: CoverageIndex,
        store: PointStore,
        max_accuracy_m: float | None = None,
    ) -> None:
        self.index = index
        self.store = store
        self.max_accuracy_m = max_accuracy_m
        self._lock = threading.Lock()

    def start_session(self) -> int:
        """Load the store's history into the index. Returns the point count."""

        history = self.store.all()
        self.index.build_from_points(history)
        return len(history)

    @staticmethod
    def _too_inaccurate(fix: HasLatLon, limit_m: float | None) -> bool:
        if limit_m is None:
            return False
        accuracy = getattr(fix, "horizontal_accuracy_m", None)
        # 负数表示设备未提供精度，不过滤
        return accuracy is not None and accuracy >= 0 and accuracy > limit_m

    def offer_fix(self, fix: HasLatLon, captured_at_ms: int | None = None) -> RevealedPoint | None:
        """Offer one location fix.

        Returns:
            The stored point when the fix revealed new territory, else None.

        Raises:
            ValueError: If the fix has non-finite or out-of-range coordinates.
        """

        point = GeoPoint.of(fix)
        if self._too_inaccurate(fix, self.max_accuracy_m):
            logger.debug("fix dropped, accuracy worse than %.1fm: %s", self.max_accuracy_m, point)
            return None

        if captured_at_ms is None:
            captured_at_ms = getattr(fix, "geo_time_ms", None)
        if captured_at_ms is None:
            captured_at_ms = now_ms()
        return self._reveal(point, captured_at_ms)

    def _reveal(self, point: GeoPoint, captured_at_ms: int) -> RevealedPoint | None:
        with self._lock:
            if self.index.is_location_revealed(point):
                return None
            stored = self.store.add(point, captured_at_ms)
            self.index.insert(point)
        logger.debug("new territory: %s (id=%s)", point, stored.point_id)
        return stored

    def delete_point(self, point_id: int) -> bool:
        """Delete one stored point and rebuild the index from the store."""

        with self._lock:
            removed = self.store.delete(point_id)
            if removed:
                self.index.build_from_points(self.store.all())
        return removed

    def reset(self) -> None:
        """Forget everything (fog reset / logout)."""

        with self._lock:
            self.store.clear()
            self.index.clear()
        logger.info("fog reset")

    def replay(self, points: Sequence[TrackPoint], params: ReplayParams | None = None) -> ReplayStats:
        """Replay a recorded track as if it were sampled live.

        Args:
            points: Track points (can be unsorted).
            params: Sampling parameters. Accuracy filtering uses the explorer's
                own ``max_accuracy_m`` unless ``params`` sets one.

        Returns:
            Counters describing what happened to each fix.
        """

        params = params or ReplayParams()
        limit_m = params.max_accuracy_m if params.max_accuracy_m is not None else self.max_accuracy_m
        interval_ms = params.sample_interval_s * 1000.0

        stats = ReplayStats()
        last_tick_ms: int | None = None
        for pt in sorted(points, key=lambda p: p.geo_time_ms):
            stats.fixes += 1
            if last_tick_ms is not None and pt.geo_time_ms - last_tick_ms < interval_ms:
                continue
            last_tick_ms = pt.geo_time_ms
            stats.sampled += 1

            if self._too_inaccurate(pt, limit_m):
                stats.inaccurate += 1
                continue
            try:
                stored = self._reveal(GeoPoint.of(pt), pt.geo_time_ms)
            except ValueError as exc:
                stats.invalid += 1
                logger.debug("fix skipped: %s", exc)
                continue
            if stored is None:
                stats.already_revealed += 1
            else:
                stats.accepted += 1

        logger.info(
            "replay finished: fixes=%s sampled=%s accepted=%s revealed=%s inaccurate=%s invalid=%s",
            stats.fixes,
            stats.sampled,
            stats.accepted,
            stats.already_revealed,
            stats.inaccurate,
            stats.invalid,
        )
        return stats
