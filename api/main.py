from __future__ import annotations

from dataclasses import asdict
import logging
import math
import os

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from agridash.aggregate import prepare_context
from agridash.data import DataLoadError, load_dashboard_data
from agridash.datasets import DATASET_ORDER, dataset_options
from agridash.filters import Selection, normalize_selection
from agridash.metrics_correlation import compute_correlation
from agridash.metrics_debug import compute_debug
from agridash.metrics_geo import compute_geo
from agridash.metrics_insights import compute_insights
from agridash.metrics_overview import compute_overview
from agridash.metrics_trends import compute_trends
from api.schemas import MetaCountriesResponse, MetaYearsResponse, SelectionModel


app = FastAPI(title="Agricultural Resource Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("AGRIDASH_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _selection_from_model(model: SelectionModel, *, available_years: list[int]) -> Selection:
    raw = model.model_dump()
    return normalize_selection(raw, available_years=available_years)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


def _error(exc: Exception, where: str) -> JSONResponse:
    logger.exception("%s failed", where)
    status = 503 if isinstance(exc, DataLoadError) else 500
    return JSONResponse(status_code=status, content={"error": str(exc), "type": type(exc).__name__})


def _context(selection: SelectionModel):
    data_ctx = load_dashboard_data()
    sel = _selection_from_model(selection, available_years=data_ctx.get("years", []))
    return sel, prepare_context(sel, data_ctx)


@app.get("/meta/years")
def meta_years():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaYearsResponse(years=data_ctx.get("years", [])).model_dump())
    except Exception as exc:
        return _error(exc, "meta_years")


@app.get("/meta/countries")
def meta_countries():
    try:
        data_ctx = load_dashboard_data()
        return _json(MetaCountriesResponse(countries=data_ctx.get("countries", [])).model_dump())
    except Exception as exc:
        return _error(exc, "meta_countries")


@app.get("/meta/datasets")
def meta_datasets():
    return _json({"datasets": dataset_options()})


@app.post("/overview")
def overview(selection: SelectionModel):
    try:
        sel, ctx = _context(selection)
        return _json(compute_overview(sel, ctx))
    except Exception as exc:
        return _error(exc, "overview")


@app.post("/trends")
def trends(selection: SelectionModel):
    try:
        sel, ctx = _context(selection)
        return _json(compute_trends(sel, ctx))
    except Exception as exc:
        return _error(exc, "trends")


@app.post("/correlation")
def correlation(selection: SelectionModel):
    try:
        sel, ctx = _context(selection)
        return _json(compute_correlation(sel, ctx))
    except Exception as exc:
        return _error(exc, "correlation")


@app.post("/geo")
def geo(selection: SelectionModel):
    try:
        sel, ctx = _context(selection)
        return _json(compute_geo(sel, ctx))
    except Exception as exc:
        return _error(exc, "geo")


@app.post("/insights")
def insights(selection: SelectionModel):
    try:
        sel, ctx = _context(selection)
        return _json(compute_insights(sel, ctx))
    except Exception as exc:
        return _error(exc, "insights")


@app.post("/debug")
def debug(selection: SelectionModel):
    try:
        sel, ctx = _context(selection)
        return _json(compute_debug(sel, ctx))
    except Exception as exc:
        return _error(exc, "debug")


@app.post("/export/{dataset}")
def export_dataset(dataset: str, selection: SelectionModel):
    if dataset not in DATASET_ORDER:
        return JSONResponse(status_code=404, content={"error": f"Unknown dataset {dataset!r}", "type": "NotFound"})
    try:
        sel, ctx = _context(selection)
    except Exception as exc:
        return _error(exc, "export")
    export_df = ctx["filtered"].get(dataset, pd.DataFrame())
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    filename = f"{dataset}.csv"
    logger.info("Exporting %d rows for %s (%s)", len(export_df), dataset, asdict(sel))
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
