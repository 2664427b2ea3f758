from __future__ import annotations

import argparse
import csv
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Final

from zoneinfo import ZoneInfo

from fog_explore.geo import destination_point
from fog_explore.models import GeoPoint


TZ: Final[str] = "Asia/Jerusalem"


@dataclass(frozen=True, slots=True)
class Area:
    name: str
    lat: float
    lon: float


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def generate_points(
    *,
    rows: int,
    seed: int,
    start_local: datetime,
    areas: list[Area],
) -> list[dict[str, str]]:
    """Generate fake track rows: walks with stops, occasional relocation."""

    rng = random.Random(seed)
    cur = start_local.replace(tzinfo=ZoneInfo(TZ))
    area = rng.choice(areas)
    pos = GeoPoint(area.lat, area.lon)
    bearing = rng.uniform(0, 360)

    out: list[dict[str, str]] = []
    for _ in range(rows):
        # Occasionally jump to another area (drive / transit)
        if rng.random() < 0.01:
            area = rng.choice(areas)
            pos = GeoPoint(area.lat, area.lon)

        # Mostly walking 1-2 m/s, sometimes standing still
        step_s = rng.uniform(1, 10)
        speed = 0.0 if rng.random() < 0.2 else rng.uniform(1.0, 2.0)
        bearing = (bearing + rng.gauss(0, 25)) % 360
        pos = destination_point(pos, speed * step_s, bearing)
        cur = cur + timedelta(seconds=step_s)

        # GPS jitter
        jitter = destination_point(pos, abs(rng.gauss(0, 3)), rng.uniform(0, 360))
        hacc = rng.choice([3.0, 5.0, 8.0, 12.0, 20.0, 65.0])

        out.append(
            {
                "geoTime": str(_epoch_ms(cur)),
                "latitude": f"{jitter.latitude:.7f}",
                "longitude": f"{jitter.longitude:.7f}",
                "altitude": f"{rng.uniform(0, 40):.1f}",
                "horizontalAccuracy": f"{hacc:.1f}",
                "speed": f"{speed:.1f}",
                "locationType": str(rng.choice([0, 1])),
            }
        )

    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a fake track CSV for demo/testing (privacy-safe).")
    p.add_argument("--out", type=str, default="sample_data/Path.csv", help="Output CSV path")
    p.add_argument("--rows", type=int, default=2000, help="Number of rows")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument(
        "--start",
        type=str,
        default="2025-01-01 08:00:00",
        help="Start local time in Asia/Jerusalem, e.g. '2025-01-01 08:00:00'",
    )
    args = p.parse_args()

    areas = [
        Area("tel_aviv_center", 32.0853, 34.7818),
        Area("jaffa", 32.0540, 34.7510),
        Area("ramat_gan", 32.0684, 34.8248),
    ]
    rows = generate_points(
        rows=args.rows,
        seed=args.seed,
        start_local=datetime.fromisoformat(args.start),
        areas=areas,
    )
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = ["geoTime", "latitude", "longitude", "altitude", "horizontalAccuracy", "speed", "locationType"]
    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        w.writeheader()
        w.writerows(rows)

    print(f"Generated: {out_path} (rows={len(rows)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
