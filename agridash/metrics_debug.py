from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from agridash.datasets import DATASET_ORDER
from agridash.filters import Selection


def compute_debug(selection: Selection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    datasets: Dict[str, pd.DataFrame] = ctx.get("datasets", {}) or {}
    payload: Dict[str, Any] = {
        "selection": asdict(selection),
        "files": list(ctx.get("files", []) or []),
        "row_counts": {},
        "filtered_counts": {},
        "missing_values": {},
        "year_coverage": [],
        "duplicate_keys": {},
        "country_count": len(ctx.get("countries", []) or []),
    }
    for key in DATASET_ORDER:
        df = datasets.get(key, pd.DataFrame())
        payload["row_counts"][key] = int(len(df))
        payload["filtered_counts"][key] = int(len(ctx.get("filtered", {}).get(key, pd.DataFrame())))
        if df.empty:
            payload["missing_values"][key] = 0
            payload["duplicate_keys"][key] = 0
            continue
        payload["missing_values"][key] = int(df["value"].isna().sum())
        payload["duplicate_keys"][key] = int(df.duplicated(subset=["countryCode", "year"]).sum())
        payload["year_coverage"].append(
            {
                "dataset": key,
                "min": int(df["year"].min()),
                "max": int(df["year"].max()),
                "years_present": int(df["year"].nunique()),
            }
        )
    return payload
