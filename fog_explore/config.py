"""Configuration file support (YAML)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from fog_explore.coverage import CLUSTER_RADIUS_FACTOR, OVERLAP_SHRINK, CoverageParams
from fog_explore.explorer import ReplayParams
from fog_explore.models import DEFAULT_TZ


@dataclass(frozen=True)
class AppConfig:
    """Aggregated configuration model."""

    coverage: CoverageParams = field(default_factory=CoverageParams)
    replay: ReplayParams = field(default_factory=ReplayParams)
    tz_name: str = DEFAULT_TZ


def load_config(path: str | Path | None) -> AppConfig:
    """Parse a YAML config file into an AppConfig dataclass.

    Example::

        tz: Asia/Jerusalem
        coverage:
          clear_radius_m: 40
          max_overlap_fraction: 0.5
        replay:
          sample_interval_s: 5
          max_accuracy_m: 50

    ``None`` yields the defaults. Invalid values raise ValueError.
    """

    if path is None:
        return AppConfig()

    raw = _load_yaml(path)
    coverage_cfg = _section(raw, "coverage", path)
    replay_cfg = _section(raw, "replay", path)

    coverage = CoverageParams(
        clear_radius_m=_number(coverage_cfg, "clear_radius_m", 50.0),
        max_overlap_fraction=_number(coverage_cfg, "max_overlap_fraction", 0.65),
        overlap_shrink=_number(coverage_cfg, "overlap_shrink", OVERLAP_SHRINK),
        cluster_radius_factor=_number(coverage_cfg, "cluster_radius_factor", CLUSTER_RADIUS_FACTOR),
        cell_size_m=_number(coverage_cfg, "cell_size_m", None),
    )
    replay = ReplayParams(
        sample_interval_s=_number(replay_cfg, "sample_interval_s", 5.0),
        max_accuracy_m=_number(replay_cfg, "max_accuracy_m", None),
    )
    return AppConfig(coverage=coverage, replay=replay, tz_name=str(raw.get("tz", DEFAULT_TZ)))


def _section(raw: dict[str, Any], name: str, path: str | Path) -> dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config file {path}: section '{name}' must be a mapping.")
    return section


def _number(section: dict[str, Any], key: str, default: float | None) -> float | None:
    value = section.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{key} must be a number, got {value!r}") from exc


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Config file {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a top-level mapping.")
    return data
