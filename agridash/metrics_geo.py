from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

import pandas as pd
import plotly.graph_objects as go

from agridash.aggregate import color_intensity
from agridash.charts import placeholder, to_plotly_json
from agridash.countries import is_iso3, to_iso3
from agridash.datasets import DATASETS
from agridash.filters import Selection

COLORSCALES = {
    "water": [[0, "#a5f3fc"], [0.5, "#0ea5e9"], [1, "#1e3a8a"]],
    "nutrient": [[0, "#fef08a"], [0.5, "#84cc16"], [1, "#166534"]],
    "energy": [[0, "#fde68a"], [0.5, "#f97316"], [1, "#7c2d12"]],
    "agricultural": [[0, "#ddd6fe"], [0.5, "#8b5cf6"], [1, "#4c1d95"]],
}


def _resolve_iso3(name: str, code: str) -> Optional[str]:
    iso = to_iso3(name)
    if iso is None and is_iso3(code):
        iso = code
    return iso


def country_means(df: pd.DataFrame) -> pd.DataFrame:
    """Mean per country with its ISO-3 location; regional aggregates are skipped."""
    if df.empty:
        return pd.DataFrame(columns=["country", "countryCode", "iso3", "value"])
    means = df.groupby("countryCode", as_index=False).agg(value=("value", "mean"), country=("country", "first"))
    means["iso3"] = [_resolve_iso3(n, c) for n, c in zip(means["country"], means["countryCode"])]
    means = means.dropna(subset=["iso3", "value"])
    return means[["country", "countryCode", "iso3", "value"]].reset_index(drop=True)


def heat_tree(df: pd.DataFrame, top_n: int) -> pd.DataFrame:
    """Country tiles ranked by mean value, with intensity relative to the raw value range."""
    if df.empty:
        return pd.DataFrame(columns=["code", "name", "value", "intensity", "size"])
    lo = float(df["value"].min())
    hi = float(df["value"].max())
    tiles = df.groupby("countryCode", as_index=False).agg(value=("value", "mean"), name=("country", "first"))
    tiles = tiles.rename(columns={"countryCode": "code"})
    tiles["intensity"] = tiles["value"].map(lambda v: color_intensity(float(v), lo, hi))
    tiles["size"] = tiles["intensity"].map(lambda i: max(20.0, i * 100))
    tiles = tiles.sort_values("value", ascending=False).head(top_n).reset_index(drop=True)
    return tiles[["code", "name", "value", "intensity", "size"]]


def choropleth_figure(means: pd.DataFrame, selection: Selection) -> go.Figure:
    cfg = DATASETS[selection.dataset]
    fig = go.Figure(
        go.Choropleth(
            locations=means["iso3"].tolist(),
            z=means["value"].tolist(),
            text=means["country"].tolist(),
            locationmode="ISO-3",
            colorscale=COLORSCALES[selection.dataset],
            zmin=float(means["value"].min()),
            zmax=float(means["value"].max()),
            colorbar={"title": {"text": cfg.unit}},
            hovertemplate=f"%{{text}}<br>%{{z:.1f}} {cfg.unit}<extra></extra>",
        )
    )
    if not selection.all_countries and not selection.all_years:
        highlight = means[means["countryCode"] == selection.country]
        if not highlight.empty:
            fig.add_trace(
                go.Choropleth(
                    locations=highlight["iso3"].tolist(),
                    z=[0] * len(highlight),
                    locationmode="ISO-3",
                    colorscale=[[0, "rgba(255,255,255,0)"], [1, "rgba(255,255,255,0)"]],
                    marker={"line": {"color": "black", "width": 0.5}},
                    showscale=False,
                    hoverinfo="skip",
                )
            )
    fig.update_layout(
        title="Global Resource Distribution",
        geo={
            "showframe": False,
            "projection": {"type": "natural earth"},
            "showcoastlines": True,
            "coastlinecolor": "white",
            "coastlinewidth": 0.5,
        },
        margin={"t": 40, "b": 20, "l": 20, "r": 20},
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
    )
    return fig


def compute_geo(selection: Selection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    cfg = DATASETS[selection.dataset]
    year_df: pd.DataFrame = ctx["by_year"][selection.dataset]

    means = country_means(year_df)
    charts: Dict[str, Any] = {}
    if means.empty:
        charts["choropleth"] = placeholder("Global Resource Distribution")
    else:
        charts["choropleth"] = to_plotly_json(choropleth_figure(means, selection))

    tiles = heat_tree(year_df, selection.limits.top_treemap)
    return {
        "selection": asdict(selection),
        "label": selection.label(),
        "dataset": {"key": cfg.key, "name": cfg.name, "unit": cfg.unit},
        "choropleth": means.to_dict(orient="records"),
        "heat_tree": tiles.to_dict(orient="records"),
        "heat_tree_message": None if not tiles.empty else "No data available for current filter selection",
        "charts": charts,
    }
