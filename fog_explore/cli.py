"""Command-line interface for fog_explore.

Run:
    python -m fog_explore replay --csv Path.csv --store revealed.csv
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace

from fog_explore.config import AppConfig, load_config
from fog_explore.coverage import CoverageIndex
from fog_explore.csv_io import export_readable_csv, load_track_points, write_circles_csv
from fog_explore.explorer import Explorer
from fog_explore.models import GeoPoint
from fog_explore.render import fog_circles
from fog_explore.store import CsvPointStore
from fog_explore.timeutils import epoch_ms_from_dt, parse_dt


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    """Config file first, then any explicit command-line overrides."""

    cfg = load_config(args.config)
    coverage_overrides = {
        name: value
        for name, value in (
            ("clear_radius_m", args.clear_radius_m),
            ("max_overlap_fraction", args.max_overlap),
        )
        if value is not None
    }
    replay_overrides = {
        name: value
        for name, value in (
            ("sample_interval_s", getattr(args, "sample_interval_s", None)),
            ("max_accuracy_m", getattr(args, "max_accuracy_m", None)),
        )
        if value is not None
    }
    return replace(
        cfg,
        coverage=replace(cfg.coverage, **coverage_overrides),
        replay=replace(cfg.replay, **replay_overrides),
        tz_name=args.tz or cfg.tz_name,
    )


def _open_session(args: argparse.Namespace, cfg: AppConfig) -> Explorer:
    store = CsvPointStore(args.store)
    explorer = Explorer(CoverageIndex(cfg.coverage), store, max_accuracy_m=cfg.replay.max_accuracy_m)
    explorer.start_session()
    return explorer


def _cmd_replay(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args)
    points, summary = load_track_points(args.csv)
    print(f"total_rows={summary.rows_total}, parsed={summary.rows_parsed}, skipped={summary.rows_skipped}")

    if args.range_start is not None:
        start_ms = epoch_ms_from_dt(parse_dt(args.range_start, cfg.tz_name))
        points = [p for p in points if p.geo_time_ms >= start_ms]
    if args.range_end is not None:
        end_ms = epoch_ms_from_dt(parse_dt(args.range_end, cfg.tz_name))
        points = [p for p in points if p.geo_time_ms <= end_ms]

    explorer = _open_session(args, cfg)
    before = len(explorer.index)
    stats = explorer.replay(points, cfg.replay)

    print(
        f"clear_radius={cfg.coverage.clear_radius_m}m, save_threshold={cfg.coverage.save_threshold_m:.2f}m, "
        f"sample_interval={cfg.replay.sample_interval_s}s"
    )
    print(
        f"fixes={stats.fixes}, sampled={stats.sampled}, accepted={stats.accepted}, "
        f"already_revealed={stats.already_revealed}, inaccurate={stats.inaccurate}, invalid={stats.invalid}"
    )
    print(f"已揭开点数：{before} -> {len(explorer.index)}，已写入：{args.store}")
    if args.readable_out:
        export_readable_csv(explorer.store.all(), args.readable_out, cfg.tz_name)
        print(f"已导出：{args.readable_out}")
    return 0


def _cmd_check(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args)
    explorer = _open_session(args, cfg)
    revealed = explorer.index.is_location_revealed(GeoPoint(args.lat, args.lon))
    print(f"revealed={str(revealed).lower()} (points={len(explorer.index)}, save_threshold={cfg.coverage.save_threshold_m:.2f}m)")
    return 0


def _cmd_clusters(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args)
    explorer = _open_session(args, cfg)
    n = write_circles_csv(fog_circles(explorer.index, args.zoom, clustered=not args.raw), args.out)
    print(f"points={len(explorer.index)}, circles={n}, zoom={args.zoom}")
    print(f"已导出：{args.out}")
    return 0


def _cmd_stats(args: argparse.Namespace) -> int:
    cfg = _resolve_config(args)
    explorer = _open_session(args, cfg)
    index = explorer.index
    params = cfg.coverage
    print(f"points={len(index)}, cells={index.cell_count}, clusters={len(index.clustered_points())}")
    print(
        f"clear_radius={params.clear_radius_m}m, max_overlap={params.max_overlap_fraction}, "
        f"save_threshold={params.save_threshold_m:.2f}m, cell_size={params.grid_cell_m:.2f}m, "
        f"cluster_radius={params.cluster_radius_m:.2f}m"
    )
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--store", type=str, default="revealed.csv", help="已揭开点的CSV存储路径")
    p.add_argument("--config", type=str, default=None, help="YAML 配置文件（命令行参数优先）")
    p.add_argument("--clear-radius-m", type=float, default=None, help="每个点揭开的圆半径（米）")
    p.add_argument("--max-overlap", type=float, default=None, help="相邻圆允许的最大重叠比例 0..1")
    p.add_argument("--tz", type=str, default=None, help="时区（IANA），默认 UTC")


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="fog_explore")
    p.add_argument("-v", "--verbose", action="store_true", help="输出调试日志")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_rep = sub.add_parser("replay", help="按采样节拍回放轨迹CSV，记录新揭开的点")
    p_rep.add_argument("--csv", type=str, default="Path.csv", help="输入轨迹CSV路径")
    _add_common(p_rep)
    p_rep.add_argument("--sample-interval-s", type=float, default=None, help="采样间隔（秒），默认 5")
    p_rep.add_argument("--max-accuracy-m", type=float, default=None, help="丢弃水平精度差于该值的定位点")
    p_rep.add_argument("--range-start", type=str, default=None, help="仅回放该时间之后的数据（例如 2025-12-01 00:00:00）")
    p_rep.add_argument("--range-end", type=str, default=None, help="仅回放该时间之前的数据")
    p_rep.add_argument("--readable-out", type=str, default=None, help="额外导出带本地时间的已揭开点CSV")
    p_rep.set_defaults(func=_cmd_replay)

    p_chk = sub.add_parser("check", help="判断某个位置是否已被揭开")
    _add_common(p_chk)
    p_chk.add_argument("--lat", type=float, required=True, help="纬度")
    p_chk.add_argument("--lon", type=float, required=True, help="经度")
    p_chk.set_defaults(func=_cmd_check)

    p_cl = sub.add_parser("clusters", help="导出迷雾渲染用的圆（聚类代表点 + 像素半径）")
    _add_common(p_cl)
    p_cl.add_argument("--zoom", type=float, default=16.0, help="地图缩放等级")
    p_cl.add_argument("--raw", action="store_true", help="不聚类，导出全部点")
    p_cl.add_argument("--out", type=str, default="clusters.csv", help="输出CSV路径")
    p_cl.set_defaults(func=_cmd_clusters)

    p_st = sub.add_parser("stats", help="查看索引统计与派生参数")
    _add_common(p_st)
    p_st.set_defaults(func=_cmd_stats)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(args.func(args))
    except (ValueError, KeyError, OSError) as exc:
        print(f"错误：{exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
