from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from agridash.charts import NO_DATA, placeholder, to_vega_spec
from agridash.datasets import DATASETS
from agridash.filters import Selection

STACK_DATASETS = ("water", "energy")


def _name_map(*frames: pd.DataFrame) -> Dict[str, str]:
    names: Dict[str, str] = {}
    for df in frames:
        if df.empty:
            continue
        for code, name in zip(df["countryCode"], df["country"]):
            names.setdefault(str(code), str(name))
    return names


def top_country_series(df: pd.DataFrame, top_n: int) -> pd.DataFrame:
    """Year-ordered rows for the `top_n` countries with the highest mean value."""
    if df.empty:
        return pd.DataFrame(columns=["country", "countryCode", "year", "value"])
    ranking = (
        df.groupby("countryCode")["value"].mean().sort_values(ascending=False).head(top_n).index.tolist()
    )
    series = (
        df[df["countryCode"].isin(ranking)]
        .groupby(["countryCode", "year"], as_index=False)
        .agg(value=("value", "mean"), country=("country", "first"))
    )
    order = {code: i for i, code in enumerate(ranking)}
    series["rank"] = series["countryCode"].map(order) + 1
    return series.sort_values(["rank", "year"]).reset_index(drop=True)[["country", "countryCode", "year", "value", "rank"]]


def top_country_bars(df: pd.DataFrame, top_n: int) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=["rank", "country", "countryCode", "value"])
    bars = (
        df.groupby("countryCode", as_index=False)
        .agg(value=("value", "mean"), country=("country", "first"))
        .sort_values("value", ascending=False)
        .head(top_n)
        .reset_index(drop=True)
    )
    bars.insert(0, "rank", bars.index + 1)
    return bars[["rank", "country", "countryCode", "value"]]


def resource_composition(frames: Dict[str, pd.DataFrame], selection: Selection, top_n: int) -> pd.DataFrame:
    """Per-country mean of water and energy, top countries by combined score.

    The selected country is appended when it falls outside the top list.
    """
    water = frames.get("water", pd.DataFrame())
    energy = frames.get("energy", pd.DataFrame())
    names = _name_map(water, energy)
    if not names:
        return pd.DataFrame(columns=["country", "countryCode", "dataset", "value", "highlight"])

    means = {}
    for key, df in (("water", water), ("energy", energy)):
        means[key] = df.groupby("countryCode")["value"].mean() if not df.empty else pd.Series(dtype=float)
    scores = pd.DataFrame(means).reindex(list(names)).fillna(0.0)
    scores["score"] = scores["water"] + scores["energy"]
    top: List[str] = scores.sort_values("score", ascending=False).head(top_n).index.tolist()
    if not selection.all_countries and selection.country not in top and selection.country in scores.index:
        top.append(selection.country)

    rows = []
    for code in top:
        for key in STACK_DATASETS:
            rows.append(
                {
                    "country": names.get(code, code),
                    "countryCode": code,
                    "dataset": DATASETS[key].name,
                    "value": float(scores.loc[code, key]),
                    "highlight": selection.all_countries or code == selection.country,
                }
            )
    return pd.DataFrame(rows)


def compute_trends(selection: Selection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    cfg = DATASETS[selection.dataset]
    limits = selection.limits
    charts: Dict[str, Any] = {}

    series = top_country_series(ctx["by_country"][selection.dataset], limits.top_series)
    if series.empty:
        charts["time_series"] = placeholder("Resource Consumption Trends")
    else:
        hover = alt.selection_point(fields=["country"], on="mouseover", empty="all")
        line = (
            alt.Chart(series)
            .mark_line(point={"filled": True, "size": 60}, interpolate="monotone")
            .encode(
                x=alt.X("year:O", title="Year", axis=alt.Axis(format="d", grid=False)),
                y=alt.Y("value:Q", title=cfg.unit, axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
                color=alt.Color("country:N", title="Country", sort=alt.SortField("rank")),
                opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
                tooltip=["country", "year", alt.Tooltip("value:Q", format=",.1f", title=cfg.unit)],
            )
            .add_params(hover)
            .properties(title="Resource Consumption Trends", height=260)
        )
        charts["time_series"] = to_vega_spec(line)

    bars = top_country_bars(ctx["filtered"][selection.dataset], limits.top_bar)
    if bars.empty:
        charts["bar"] = placeholder("Country Comparison")
    else:
        bar = (
            alt.Chart(bars)
            .mark_bar(color=cfg.color)
            .encode(
                x=alt.X("country:N", title="Country", sort="-y", axis=alt.Axis(labelAngle=45)),
                y=alt.Y("value:Q", title=cfg.unit, axis=alt.Axis(format="~s")),
                tooltip=["country", alt.Tooltip("value:Q", format=",.1f", title=cfg.unit), alt.Tooltip("rank:Q", title="Rank")],
            )
            .properties(title="Country Comparison", height=280)
        )
        charts["bar"] = to_vega_spec(bar)

    composition = resource_composition(ctx["by_year"], selection, limits.top_bar)
    if composition.empty:
        charts["stacked_bar"] = placeholder("Resource Composition")
    else:
        stacked = (
            alt.Chart(composition)
            .mark_bar()
            .encode(
                x=alt.X("country:N", title="Country", sort=None, axis=alt.Axis(labelAngle=45)),
                y=alt.Y("value:Q", title="Value", stack="zero"),
                color=alt.Color("dataset:N", title="Resource"),
                opacity=alt.condition(alt.datum.highlight, alt.value(1.0), alt.value(0.3)),
                tooltip=["country", "dataset", alt.Tooltip("value:Q", format=",.1f")],
            )
            .properties(title="Resource Composition", height=280)
        )
        charts["stacked_bar"] = to_vega_spec(stacked)

    return {
        "selection": asdict(selection),
        "label": selection.label(),
        "dataset": {"key": cfg.key, "name": cfg.name, "unit": cfg.unit},
        "time_series": series.to_dict(orient="records"),
        "bar": bars.to_dict(orient="records"),
        "stacked_bar": composition.to_dict(orient="records"),
        "charts": charts,
        "message": None if not series.empty or not bars.empty else NO_DATA,
    }
