from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import pandas as pd

from agridash.data import RawInput, as_frame, empty_frame, round_half_up
from agridash.datasets import DATASET_ORDER
from agridash.filters import Selection, as_year, is_all, normalize_selection


@dataclass(frozen=True)
class Stats:
    total: float
    average: float
    maximum: float
    minimum: float
    count: int


def numeric_only(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return df
    return df[pd.to_numeric(df["value"], errors="coerce").notna()]


def filter_records(
    df: RawInput,
    year: Optional[Union[int, str]] = None,
    country: Optional[str] = None,
) -> pd.DataFrame:
    """Subset by exact year and country code; non-numeric values are dropped.

    `None`, the "all" sentinel or an unparseable year disables the
    corresponding filter, as in `normalize_selection`. Matching never uses
    the display name.
    """
    df = as_frame(df) if df is not None else empty_frame()
    if df.empty:
        return empty_frame()
    out = numeric_only(df)
    year_value = as_year(year)
    if year_value is not None:
        out = out[out["year"] == year_value]
    if not is_all(country):
        out = out[out["countryCode"] == str(country)]
    return out


def compute_stats_raw(df: RawInput) -> Optional[Stats]:
    df = as_frame(df) if df is not None else empty_frame()
    if df.empty or "value" not in df.columns:
        return None
    values = pd.to_numeric(df["value"], errors="coerce").dropna()
    if values.empty:
        return None
    total = float(values.sum())
    count = int(len(values))
    return Stats(
        total=total,
        average=total / count,
        maximum=float(values.max()),
        minimum=float(values.min()),
        count=count,
    )


def compute_stats(df: RawInput) -> Optional[Stats]:
    """Summary statistics rounded to 2 decimals, or None when there is no data."""
    raw = compute_stats_raw(df)
    if raw is None:
        return None
    return Stats(
        total=round_half_up(raw.total, 2),
        average=round_half_up(raw.average, 2),
        maximum=round_half_up(raw.maximum, 2),
        minimum=round_half_up(raw.minimum, 2),
        count=raw.count,
    )


def yearly_means(df: pd.DataFrame) -> pd.Series:
    """Mean value per year, ascending; duplicate rows within a year are averaged."""
    valid = numeric_only(df)
    if valid.empty:
        return pd.Series(dtype=float)
    return valid.groupby("year")["value"].mean().sort_index()


def compute_trend(df: pd.DataFrame) -> Optional[float]:
    """Percentage change between the first and last year present.

    None when fewer than two distinct years exist or the first value is 0.
    """
    series = yearly_means(df)
    if len(series) < 2:
        return None
    first = float(series.iloc[0])
    last = float(series.iloc[-1])
    if first == 0:
        return None
    return (last - first) / first * 100


def regional_average(df: pd.DataFrame, year: Optional[Union[int, str]] = None) -> Optional[float]:
    stats = compute_stats_raw(filter_records(df, year, None))
    return stats.average if stats is not None else None


def group_total(df: pd.DataFrame, by: str = "country") -> pd.DataFrame:
    valid = numeric_only(df)
    if valid.empty:
        return pd.DataFrame(columns=[by, "value"])
    return valid.groupby(by, as_index=False)["value"].sum()


def color_intensity(value: float, lo: float, hi: float) -> float:
    if hi == lo:
        return 0.5
    return (value - lo) / (hi - lo)


def stats_dict(stats: Optional[Stats]) -> Optional[Dict[str, Any]]:
    if stats is None:
        return None
    return {
        "total": stats.total,
        "average": stats.average,
        "maximum": stats.maximum,
        "minimum": stats.minimum,
        "count": stats.count,
    }


# ---------------- Public API ----------------
def prepare_context(selection: Union[dict, Selection], data_ctx: Dict[str, object]) -> Dict[str, object]:
    """Apply the selection to every normalized dataset.

    Returns the full frames plus three views per dataset: filtered by year and
    country, by year only (regional figures, maps) and by country only
    (time series).
    """
    datasets: Dict[str, pd.DataFrame] = data_ctx.get("datasets", {}) or {}
    sel = selection if isinstance(selection, Selection) else normalize_selection(selection, available_years=data_ctx.get("years"))

    filtered: Dict[str, pd.DataFrame] = {}
    by_year: Dict[str, pd.DataFrame] = {}
    by_country: Dict[str, pd.DataFrame] = {}
    for key in DATASET_ORDER:
        df = datasets.get(key, empty_frame()).copy()
        filtered[key] = filter_records(df, sel.year, sel.country)
        by_year[key] = filter_records(df, sel.year, None)
        by_country[key] = filter_records(df, None, sel.country)

    return {
        "selection": sel,
        "datasets": datasets,
        "filtered": filtered,
        "by_year": by_year,
        "by_country": by_country,
        "years": data_ctx.get("years", []),
        "countries": data_ctx.get("countries", []),
        "files": data_ctx.get("files", []),
    }
