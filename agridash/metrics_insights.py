from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd
import plotly.graph_objects as go

from agridash.aggregate import compute_stats, group_total, stats_dict
from agridash.charts import placeholder, to_plotly_json, to_vega_spec
from agridash.data import format_value
from agridash.datasets import DATASETS
from agridash.filters import Selection

PALETTE = ["#6366f1", "#10b981", "#0ea5e9", "#f59e0b", "#eab308"]


def top_country_share(df: pd.DataFrame, top_n: int) -> pd.DataFrame:
    totals = group_total(df, by="country")
    if totals.empty:
        return pd.DataFrame(columns=["name", "value"])
    totals = totals.sort_values("value", ascending=False).head(top_n).rename(columns={"country": "name"})
    return totals.reset_index(drop=True)


def radar_series(df: pd.DataFrame, top_n: int) -> pd.DataFrame:
    """Yearly totals for the leading `top_n` countries, one column per country."""
    if df.empty:
        return pd.DataFrame(columns=["year"])
    leaders = group_total(df, by="country").sort_values("value", ascending=False).head(top_n)["country"].tolist()
    subset = df[df["country"].isin(leaders)]
    wide = subset.pivot_table(index="year", columns="country", values="value", aggfunc="sum", fill_value=0.0)
    wide = wide.reindex(columns=leaders).fillna(0.0).sort_index()
    return wide.reset_index()


def insight_text(selection: Selection, pie: pd.DataFrame, stats: Optional[Dict[str, Any]]) -> str:
    cfg = DATASETS[selection.dataset]
    if not stats or pie.empty:
        return "No data available for the current selection."
    top_country = pie.iloc[0]["name"]
    top_value = pie.iloc[0]["value"]
    if selection.dataset == "nutrient":
        return (
            f"Nutrient balance analysis reveals {top_country} leads with {format_value(top_value)} kg/ha. "
            f"This indicates the country's agricultural efficiency in nutrient management, with an average "
            f"balance of {format_value(stats['average'])} kg/ha across all regions."
        )
    return (
        f"{cfg.name} analysis shows {top_country} has the highest consumption at {format_value(top_value)} {cfg.unit}. "
        f"The average across all regions is {format_value(stats['average'])} {cfg.unit}, with significant "
        f"variation indicating different resource management strategies."
    )


def radar_figure(radar: pd.DataFrame, unit: str) -> go.Figure:
    fig = go.Figure()
    theta = [str(y) for y in radar["year"].tolist()]
    countries: List[str] = [c for c in radar.columns if c != "year"]
    for i, country in enumerate(countries):
        fig.add_trace(
            go.Scatterpolar(
                r=radar[country].tolist(),
                theta=theta,
                fill="toself",
                name=country,
                line={"color": PALETTE[i % len(PALETTE)], "width": 2},
                opacity=0.6,
                hovertemplate=f"%{{theta}}<br>{country}: %{{r:,.2f}} {unit}<extra></extra>",
            )
        )
    fig.update_layout(title="Multi-Year Comparison", polar={"radialaxis": {"visible": True}}, showlegend=True)
    return fig


def compute_insights(selection: Selection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    cfg = DATASETS[selection.dataset]
    df: pd.DataFrame = ctx["filtered"][selection.dataset]
    limits = selection.limits

    stats = stats_dict(compute_stats(df))
    pie = top_country_share(df, limits.top_pie)
    radar = radar_series(df, limits.top_radar)

    charts: Dict[str, Any] = {}
    if pie.empty:
        charts["pie"] = placeholder("Top Countries Distribution")
    else:
        donut = (
            alt.Chart(pie)
            .mark_arc(innerRadius=60, outerRadius=120, padAngle=0.05)
            .encode(
                theta=alt.Theta("value:Q"),
                color=alt.Color("name:N", title="Country", scale=alt.Scale(range=PALETTE), sort=pie["name"].tolist()),
                tooltip=["name", alt.Tooltip("value:Q", format=",.2f", title=cfg.unit)],
            )
            .properties(title="Top Countries Distribution")
        )
        charts["pie"] = to_vega_spec(donut)

    if radar.empty or len(radar.columns) <= 1:
        charts["radar"] = placeholder("Multi-Year Comparison")
    else:
        charts["radar"] = to_plotly_json(radar_figure(radar, cfg.unit))

    return {
        "selection": asdict(selection),
        "label": selection.label(),
        "title": f"Key Insights: {cfg.name}",
        "stats": stats,
        "pie": pie.to_dict(orient="records"),
        "radar": radar.to_dict(orient="records"),
        "insight": insight_text(selection, pie, stats),
        "charts": charts,
    }
