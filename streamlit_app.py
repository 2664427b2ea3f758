from __future__ import annotations

from pathlib import Path

import streamlit as st

from fog_explore.coverage import CoverageIndex, CoverageParams
from fog_explore.csv_io import load_track_points
from fog_explore.explorer import Explorer, ReplayParams, ReplayStats
from fog_explore.models import TrackPoint
from fog_explore.render import fog_circles
from fog_explore.store import MemoryPointStore


@st.cache_data(show_spinner=False)
def _load_track(path_csv: str, mtime: float) -> list[TrackPoint]:
    # mtime 只用于让缓存在文件更新后失效
    points, _ = load_track_points(path_csv)
    return points


def _replay(
    points: list[TrackPoint],
    params: CoverageParams,
    replay_params: ReplayParams,
) -> tuple[Explorer, ReplayStats]:
    explorer = Explorer(CoverageIndex(params), MemoryPointStore())
    stats = explorer.replay(points, replay_params)
    return explorer, stats


def main() -> None:
    st.set_page_config(page_title="迷雾探索：足迹揭开", layout="wide")
    st.title("迷雾探索：回放轨迹，揭开走过的区域")

    with st.sidebar:
        st.subheader("数据")
        path_csv = st.text_input("轨迹 CSV 路径", value="Path.csv")

        st.subheader("揭开参数")
        clear_radius_m = st.number_input("clear_radius_m（米）", value=50.0, min_value=1.0, step=5.0)
        max_overlap = st.slider("max_overlap_fraction", min_value=0.0, max_value=1.0, value=0.65, step=0.05)

        with st.expander("回放参数", expanded=False):
            sample_interval_s = st.number_input("sample_interval_s（秒）", value=5.0, min_value=0.0, step=1.0)
            use_accuracy = st.checkbox("按精度过滤", value=False)
            max_accuracy_m = st.number_input("max_accuracy_m（米）", value=50.0, min_value=1.0, step=5.0)

        zoom = st.slider("缩放等级 zoom", min_value=10, max_value=20, value=16)
        show_raw = st.checkbox("显示全部点（不聚类）", value=False)

    p = Path(path_csv)
    if not p.exists():
        st.error(f"找不到文件：{path_csv!r}。可以用 scripts/generate_sample_path_csv.py 生成示例数据。")
        return

    try:
        params = CoverageParams(clear_radius_m=float(clear_radius_m), max_overlap_fraction=float(max_overlap))
        replay_params = ReplayParams(
            sample_interval_s=float(sample_interval_s),
            max_accuracy_m=float(max_accuracy_m) if use_accuracy else None,
        )
        points = _load_track(path_csv, p.stat().st_mtime)
    except (ValueError, KeyError) as exc:
        st.exception(exc)
        return

    with st.spinner("正在回放轨迹……"):
        explorer, stats = _replay(points, params, replay_params)
    circles = fog_circles(explorer.index, zoom, clustered=not show_raw)

    st.subheader("汇总")
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("定位点", str(stats.fixes))
    c2.metric("采样点", str(stats.sampled))
    c3.metric("新揭开点", str(stats.accepted))
    c4.metric("渲染圆数", str(len(circles)))
    st.caption(
        f"save_threshold={params.save_threshold_m:.2f}m，cell_size={params.grid_cell_m:.2f}m，"
        f"cluster_radius={params.cluster_radius_m:.2f}m"
    )

    if not circles:
        st.info("没有揭开任何区域。")
        return

    st.subheader("已揭开区域")
    st.map(
        [{"latitude": c.latitude, "longitude": c.longitude} for c in circles],
        latitude="latitude",
        longitude="longitude",
        size=params.clear_radius_m,
        zoom=zoom,
    )
    with st.expander("渲染圆明细", expanded=False):
        rows = [
            {
                "latitude": c.latitude,
                "longitude": c.longitude,
                "radius_m": c.radius_m,
                "radius_px": round(c.radius_px, 2),
            }
            for c in circles
        ]
        st.dataframe(rows, use_container_width=True, height=360)

    st.caption("说明：每个圆对应一个聚类代表点，半径即 clear_radius；像素半径按当前缩放等级的 Web Mercator 比例换算。")


if __name__ == "__main__":
    main()
