from __future__ import annotations

import math
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from agridash.aggregate import filter_records, numeric_only
from agridash.data import RawInput, as_frame
from agridash.datasets import DATASET_ORDER, DATASETS

JOIN_KEYS = ["countryCode", "year"]
PAIR_COLUMNS = ["left", "right", "country", "countryCode", "year"]


def build_key_index(df: RawInput) -> Dict[Tuple[str, int], float]:
    """Map (countryCode, year) to the mean numeric value for that key."""
    frame = numeric_only(as_frame(df))
    if frame.empty:
        return {}
    means = frame.groupby(JOIN_KEYS)["value"].mean()
    return {(str(code), int(year)): float(value) for (code, year), value in means.items()}


def _dedupe_right(right: pd.DataFrame) -> pd.DataFrame:
    # Duplicate country+year rows are averaged so each key has one value.
    return right.groupby(JOIN_KEYS, as_index=False)["value"].mean().rename(columns={"value": "right"})


def pair_records(left: RawInput, right: RawInput) -> pd.DataFrame:
    """Inner join on exact country code and year, both sides numeric."""
    lhs = numeric_only(as_frame(left))
    rhs = numeric_only(as_frame(right))
    if lhs.empty or rhs.empty:
        return pd.DataFrame(columns=PAIR_COLUMNS)
    lhs = lhs[["country", "countryCode", "year", "value"]].rename(columns={"value": "left"})
    merged = lhs.merge(_dedupe_right(rhs), on=JOIN_KEYS, how="inner")
    return merged[PAIR_COLUMNS].reset_index(drop=True)


def join_datasets(left: RawInput, right: RawInput) -> pd.DataFrame:
    """Pairs for the correlation scatter.

    Right values that are not strictly positive are dropped, since they make
    no sense as a ratio denominator or on a log axis.
    """
    pairs = pair_records(left, right)
    if pairs.empty:
        return pairs
    return pairs[pairs["right"] > 0].reset_index(drop=True)


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Population Pearson coefficient; 0.0 for fewer than 2 points or no variance."""
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)
    if len(xs) < 2 or len(xs) != len(ys):
        return 0.0
    # ptp is exact for constant input; std can leave rounding noise
    if np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return 0.0
    sx = xs.std(ddof=0)
    sy = ys.std(ddof=0)
    corr = float(np.mean((xs - xs.mean()) * (ys - ys.mean())) / (sx * sy))
    if math.isnan(corr):
        return 0.0
    return max(-1.0, min(1.0, corr))


def correlation(
    left: RawInput,
    right: RawInput,
    year: Optional[Union[int, str]] = None,
    country: Optional[str] = None,
) -> float:
    """Pearson correlation over shared (country, year) keys within the filter.

    Both sides are reduced to one mean value per key, so the result is
    symmetric in its arguments.
    """
    lhs = build_key_index(filter_records(left, year, country))
    rhs = build_key_index(filter_records(right, year, country))
    shared = sorted(set(lhs) & set(rhs))
    return pearson([lhs[k] for k in shared], [rhs[k] for k in shared])


def correlation_matrix(
    datasets: Mapping[str, RawInput],
    year: Optional[Union[int, str]] = None,
    country: Optional[str] = None,
    order: Sequence[str] = DATASET_ORDER,
) -> pd.DataFrame:
    """Square matrix of pairwise correlations, labelled by dataset key."""
    keys = [k for k in order if k in datasets]
    filtered = {k: filter_records(datasets[k], year, country) for k in keys}
    matrix = pd.DataFrame(0.0, index=keys, columns=keys)
    for i, a in enumerate(keys):
        for b in keys[i:]:
            value = correlation(filtered[a], filtered[b])
            matrix.loc[a, b] = value
            matrix.loc[b, a] = value
    return matrix


def matrix_records(matrix: pd.DataFrame) -> list:
    """Long-form rows (x, y, correlation) with display names, for charting."""
    rows = []
    for a in matrix.index:
        for b in matrix.columns:
            rows.append(
                {
                    "x": DATASETS[b].name if b in DATASETS else str(b),
                    "y": DATASETS[a].name if a in DATASETS else str(a),
                    "correlation": float(matrix.loc[a, b]),
                }
            )
    return rows
