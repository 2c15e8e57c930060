from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import altair as alt

from agridash.charts import NO_MATCHING_DATA, placeholder, to_vega_spec
from agridash.datasets import DATASET_ORDER, DATASETS, SCATTER_PARTNER
from agridash.filters import Selection
from agridash.join import correlation_matrix, join_datasets, matrix_records


def compute_correlation(selection: Selection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    x_cfg = DATASETS[selection.dataset]
    y_cfg = DATASETS[SCATTER_PARTNER[selection.dataset]]
    charts: Dict[str, Any] = {}

    pairs = join_datasets(ctx["filtered"][x_cfg.key], ctx["filtered"][y_cfg.key])
    if pairs.empty:
        charts["scatter"] = placeholder("Resource Correlation", NO_MATCHING_DATA)
    else:
        pairs = pairs.assign(label=pairs["country"] + " (" + pairs["year"].astype(str) + ")")
        scatter = (
            alt.Chart(pairs)
            .mark_circle(size=140, opacity=0.7, color=x_cfg.color, stroke="white", strokeWidth=1)
            .encode(
                x=alt.X("left:Q", title=x_cfg.unit),
                y=alt.Y("right:Q", title=y_cfg.unit),
                tooltip=[
                    alt.Tooltip("label:N", title="Country"),
                    alt.Tooltip("left:Q", title=x_cfg.unit, format=",.1f"),
                    alt.Tooltip("right:Q", title=y_cfg.unit, format=",.1f"),
                ],
            )
            .properties(title="Resource Correlation", height=300)
        )
        charts["scatter"] = to_vega_spec(scatter)

    matrix = correlation_matrix(ctx["datasets"], selection.year, selection.country, order=DATASET_ORDER)
    cells = matrix_records(matrix)
    if (matrix == 0).all().all():
        charts["heatmap"] = placeholder("Resource Correlation Matrix")
    else:
        names = [DATASETS[k].name for k in matrix.index]
        heat = (
            alt.Chart(alt.Data(values=cells))
            .mark_rect()
            .encode(
                x=alt.X("x:N", title="Resources", sort=names),
                y=alt.Y("y:N", title="Resources", sort=names),
                color=alt.Color(
                    "correlation:Q",
                    scale=alt.Scale(domain=[-1, 0, 1], range=["#0284c7", "#ffffff", "#0ea5e9"]),
                    title="Correlation",
                ),
                tooltip=["x:N", "y:N", alt.Tooltip("correlation:Q", format=".2f")],
            )
            .properties(title="Resource Correlation Matrix", height=280)
        )
        charts["heatmap"] = to_vega_spec(heat)

    return {
        "selection": asdict(selection),
        "label": selection.label(),
        "axes": {
            "x": {"key": x_cfg.key, "name": x_cfg.name, "unit": x_cfg.unit},
            "y": {"key": y_cfg.key, "name": y_cfg.name, "unit": y_cfg.unit},
        },
        "pairs": pairs.drop(columns=["label"], errors="ignore").to_dict(orient="records"),
        "matrix": {
            "labels": [DATASETS[k].name for k in matrix.index],
            "keys": list(matrix.index),
            "values": matrix.values.tolist(),
        },
        "charts": charts,
    }
