from __future__ import annotations

import json
from typing import Any, Dict

import altair as alt
import plotly.graph_objects as go
import plotly.io as pio

alt.data_transformers.disable_max_rows()

NO_DATA = "No data available"
NO_MATCHING_DATA = "No matching data available"


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def to_plotly_json(fig: go.Figure) -> Dict[str, Any]:
    """Convert a Plotly figure into a plain dict (JSON-serializable)."""
    return json.loads(pio.to_json(fig, validate=False))


def placeholder(title: str, message: str = NO_DATA) -> Dict[str, Any]:
    return {"title": title, "empty": True, "message": message}
