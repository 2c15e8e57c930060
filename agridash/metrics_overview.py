from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd

from agridash.aggregate import compute_stats, compute_stats_raw, compute_trend, regional_average, stats_dict
from agridash.charts import to_vega_spec
from agridash.data import format_compact, round_half_up
from agridash.datasets import DATASET_ORDER, DATASETS
from agridash.filters import Selection

KPI_SUFFIX = {"water": "M", "nutrient": "", "energy": "K", "agricultural": "K"}


def _kpi(key: str, selection: Selection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    cfg = DATASETS[key]
    filtered: pd.DataFrame = ctx["filtered"][key]
    full: pd.DataFrame = ctx["datasets"].get(key, pd.DataFrame())
    suffix = KPI_SUFFIX.get(key, "")

    stats = compute_stats_raw(filtered)
    current = stats.average if stats is not None else None
    trend = compute_trend(filtered)
    regional = regional_average(full, selection.year) if not full.empty else None

    if trend is None:
        trend_text = "Insufficient data for trend"
    else:
        trend_text = f"{'+' if trend > 0 else ''}{trend:.1f}% trend"

    return {
        "dataset": key,
        "label": f"{cfg.name} ({cfg.unit})",
        "value": current,
        "value_text": format_compact(current) + suffix,
        "trend_pct": round_half_up(trend, 1) if trend is not None else None,
        "trend_text": trend_text,
        "trend_direction": None if trend is None else ("up" if trend > 0 else "down"),
        "regional_average": regional,
        "regional_average_text": f"{format_compact(regional)}{suffix} {cfg.unit}" if regional is not None else None,
    }


def _yearly_totals(frames: Dict[str, pd.DataFrame]) -> pd.DataFrame:
    parts: List[pd.DataFrame] = []
    for key in DATASET_ORDER:
        df = frames.get(key, pd.DataFrame())
        if df.empty:
            continue
        totals = df.groupby("year", as_index=False)["value"].sum()
        totals["dataset"] = DATASETS[key].name
        parts.append(totals)
    if not parts:
        return pd.DataFrame(columns=["year", "value", "dataset"])
    return pd.concat(parts, ignore_index=True).sort_values(["dataset", "year"])


def _country_comparison(frames: Dict[str, pd.DataFrame], year: Optional[int]) -> pd.DataFrame:
    if year is None:
        return pd.DataFrame(columns=["country", "dataset", "value"])
    parts: List[pd.DataFrame] = []
    for key in DATASET_ORDER:
        df = frames.get(key, pd.DataFrame())
        if df.empty:
            continue
        df = df[df["year"] == year]
        totals = df.groupby("country", as_index=False)["value"].sum()
        totals["dataset"] = DATASETS[key].name
        parts.append(totals)
    if not parts:
        return pd.DataFrame(columns=["country", "dataset", "value"])
    long_df = pd.concat(parts, ignore_index=True)
    has_positive = long_df.groupby("country")["value"].transform(lambda s: (s > 0).any())
    return long_df[has_positive].sort_values(["country", "dataset"]).reset_index(drop=True)


def compute_overview(selection: Selection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    cards = []
    for key in DATASET_ORDER:
        cfg = DATASETS[key]
        stats = compute_stats(ctx["filtered"][key])
        cards.append(
            {
                "dataset": key,
                "name": cfg.name,
                "unit": cfg.unit,
                "description": cfg.description,
                "icon": cfg.icon,
                "active": key == selection.dataset,
                "stats": stats_dict(stats),
                "message": None if stats is not None else "No data for current filters",
            }
        )

    kpis = {key: _kpi(key, selection, ctx) for key in DATASET_ORDER}

    charts: Dict[str, Any] = {}
    trend = _yearly_totals(ctx["by_country"])
    if not trend.empty:
        hover = alt.selection_point(fields=["dataset"], on="mouseover", empty="all")
        line = (
            alt.Chart(trend)
            .mark_line(point={"filled": True, "size": 60})
            .encode(
                x=alt.X("year:O", title="Year", axis=alt.Axis(format="d", grid=False)),
                y=alt.Y("value:Q", title="Total", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
                color=alt.Color("dataset:N", title="Dataset"),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
                tooltip=["dataset", "year", alt.Tooltip("value:Q", format=",.2f")],
            )
            .add_params(hover)
            .properties(height=260)
        )
        charts["totals_trend"] = to_vega_spec(line)

    comparison = _country_comparison(ctx["datasets"], selection.year)
    if not comparison.empty:
        bars = (
            alt.Chart(comparison)
            .mark_bar()
            .encode(
                x=alt.X("country:N", title="Country", sort="ascending", axis=alt.Axis(labelAngle=-45)),
                y=alt.Y("value:Q", title="Total", axis=alt.Axis(format="~s")),
                color=alt.Color("dataset:N", title="Dataset"),
                xOffset="dataset:N",
                tooltip=["country", "dataset", alt.Tooltip("value:Q", format=",.2f")],
            )
            .properties(height=300)
        )
        charts["country_comparison"] = to_vega_spec(bars)

    return {
        "selection": asdict(selection),
        "label": selection.label(),
        "cards": cards,
        "kpis": kpis,
        "totals_trend": trend.to_dict(orient="records"),
        "country_comparison": comparison.to_dict(orient="records"),
        "charts": charts,
    }
