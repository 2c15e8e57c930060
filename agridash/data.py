from __future__ import annotations

import logging
import math
import os
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from agridash.datasets import DATASET_ORDER, DATASETS, DatasetConfig, get_dataset

logger = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = ROOT_DIR / "data"
DATA_DIR_ENV = "AGRIDASH_DATA_DIR"
FILE_SUFFIXES = (".json", ".csv")

NORMALIZED_COLUMNS = ["country", "countryCode", "year", "value", "status"]

AREA_CODE = "REF_AREA_CODE"
AREA_NAME = "REF_AREA_NAME"
PERIOD = "TIME_PERIOD"
STATUS_CODE = "OBS_STATUS_CODE"
STATUS_NAME = "OBS_STATUS_NAME"

RawInput = Union[pd.DataFrame, Iterable[Mapping[str, object]]]


class DataLoadError(Exception):
    """Raised when the dashboard datasets cannot be loaded or normalize to nothing."""


def get_data_dir() -> Path:
    override = os.getenv(DATA_DIR_ENV)
    return Path(override) if override else DATA_DIR


def get_source_files(data_dir: Optional[Path] = None) -> Dict[str, Path]:
    """Locate one file per dataset, preferring JSON over CSV."""
    data_dir = Path(data_dir) if data_dir is not None else get_data_dir()
    found: Dict[str, Path] = {}
    missing: List[str] = []
    for key in DATASET_ORDER:
        stem = DATASETS[key].file_stem
        for suffix in FILE_SUFFIXES:
            path = data_dir / f"{stem}{suffix}"
            if path.exists():
                found[key] = path
                break
        else:
            missing.append(stem)
    if missing:
        raise DataLoadError(f"Missing dataset files in {data_dir}: {', '.join(missing)}")
    return found


def file_signature(files: Dict[str, Path]) -> Tuple[Tuple[str, str, float], ...]:
    return tuple((key, str(path), path.stat().st_mtime) for key, path in sorted(files.items()))


# ---------------- Parsing ----------------
def parse_value(raw: object) -> float:
    """Coerce a raw observation into a float.

    Numbers pass through unchanged. Strings lose their thousands separators
    before parsing. Anything unparseable becomes NaN, which marks a missing
    observation rather than an error.
    """
    if raw is None or isinstance(raw, bool):
        return math.nan
    if isinstance(raw, (int, float, np.integer, np.floating)):
        return float(raw)
    s = str(raw).replace(",", "").strip()
    if not s:
        return math.nan
    try:
        out = float(s)
    except ValueError:
        return math.nan
    return out if math.isfinite(out) else math.nan


def parse_value_series(series: pd.Series) -> pd.Series:
    return series.map(parse_value).astype(float)


def parse_year(raw: object) -> Optional[int]:
    value = parse_value(raw)
    if math.isnan(value) or not value.is_integer():
        return None
    year = int(value)
    if year < 1000 or year > 9999:
        return None
    return year


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    try:
        return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return None


def format_value(value: object, decimals: int = 2) -> str:
    if value is None or pd.isna(value):
        return "0"
    return f"{float(value):,.{decimals}f}"


def format_compact(value: object) -> str:
    if value is None or pd.isna(value):
        return "0"
    num = float(value)
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    return f"{num:.1f}"


# ---------------- Normalization ----------------
def empty_frame() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "country": pd.Series(dtype=object),
            "countryCode": pd.Series(dtype=object),
            "year": pd.Series(dtype="int64"),
            "value": pd.Series(dtype=float),
            "status": pd.Series(dtype=object),
        }
    )


def coalesce_columns(df: pd.DataFrame, cols: Sequence[str]) -> pd.Series:
    """First non-blank value across `cols`, in order of precedence."""
    out = pd.Series(None, index=df.index, dtype=object)
    for col in cols:
        if col not in df.columns:
            continue
        candidate = df[col]
        if isinstance(candidate, pd.DataFrame):
            candidate = candidate.iloc[:, 0]
        blank = out.isna() | out.astype(str).str.strip().eq("")
        out = out.where(~blank, candidate)
    return out


def _clean_text(series: pd.Series) -> pd.Series:
    return series.map(lambda v: "" if v is None or (isinstance(v, float) and math.isnan(v)) else str(v).strip())


def as_frame(raw: RawInput) -> pd.DataFrame:
    if isinstance(raw, pd.DataFrame):
        return raw.copy()
    return pd.DataFrame(list(raw))


def normalize(raw: RawInput, dataset: Union[str, DatasetConfig]) -> pd.DataFrame:
    """Map one raw dataset onto the unified record shape.

    The dataset's inclusion predicate runs before any mapping. Rows without a
    usable 4-digit year are dropped; unparseable values are kept as NaN.
    The input is never modified.
    """
    cfg = dataset if isinstance(dataset, DatasetConfig) else get_dataset(dataset)
    df = as_frame(raw)
    if df.empty:
        return empty_frame()

    df = df.loc[cfg.include(df)]
    if df.empty:
        return empty_frame()

    out = pd.DataFrame(index=df.index)
    out["country"] = _clean_text(coalesce_columns(df, (AREA_NAME,) + cfg.name_aliases))
    out["countryCode"] = _clean_text(coalesce_columns(df, (AREA_CODE,)))
    out["year"] = coalesce_columns(df, (PERIOD,)).map(parse_year)
    out["value"] = parse_value_series(coalesce_columns(df, cfg.value_fields))
    out["status"] = _clean_text(coalesce_columns(df, (STATUS_NAME, STATUS_CODE)))

    dropped = int(out["year"].isna().sum())
    if dropped:
        logger.debug("%s: dropped %d rows without a valid year", cfg.key, dropped)
    out = out.dropna(subset=["year"])
    out["year"] = out["year"].astype("int64")
    return out[NORMALIZED_COLUMNS].reset_index(drop=True)


def normalize_all(raw_by_dataset: Mapping[str, RawInput]) -> Dict[str, pd.DataFrame]:
    """Normalize every dataset; any dataset that ends up empty is fatal."""
    normalized: Dict[str, pd.DataFrame] = {}
    for key in DATASET_ORDER:
        if key not in raw_by_dataset:
            raise DataLoadError(f"Dataset {key!r} was not provided")
        normalized[key] = normalize(raw_by_dataset[key], key)
    empty = [key for key, df in normalized.items() if df.empty]
    if empty:
        raise DataLoadError(f"Missing or invalid data: {', '.join(empty)} normalized to no rows")
    return normalized


# ---------------- Loaders ----------------
def load_raw_dataset(path: Path) -> pd.DataFrame:
    try:
        if path.suffix.lower() == ".json":
            df = pd.read_json(path, orient="records", dtype=False, convert_dates=False)
        else:
            df = pd.read_csv(path, dtype=str)
    except (OSError, ValueError) as exc:
        raise DataLoadError(f"Could not read {path.name}: {exc}") from exc
    logger.info("Loaded %s (%d rows)", path.name, len(df))
    return df


def unique_years(frames: Iterable[pd.DataFrame]) -> List[int]:
    years = set()
    for df in frames:
        if not df.empty and "year" in df.columns:
            years.update(int(y) for y in df["year"].dropna().unique())
    return sorted(years)


def unique_countries(frames: Iterable[pd.DataFrame]) -> List[Dict[str, str]]:
    by_code: Dict[str, str] = {}
    for df in frames:
        if df.empty:
            continue
        valid = df[(df["countryCode"].astype(str).str.len() > 0) & (df["country"].astype(str).str.len() > 0)]
        for code, name in zip(valid["countryCode"], valid["country"]):
            by_code[str(code)] = str(name)
    countries = [{"code": code, "name": name} for code, name in by_code.items()]
    return sorted(countries, key=lambda c: c["name"])


# ---------------- Public API (Streamlit parity + FastAPI use) ----------------
@lru_cache(maxsize=4)
def _load_dashboard_data_cached(files_sig: Tuple[Tuple[str, str, float], ...]) -> Dict[str, object]:
    raw = {key: load_raw_dataset(Path(path)) for key, path, _ in files_sig}
    datasets = normalize_all(raw)
    for key, df in datasets.items():
        logger.info("Normalized %s: %d of %d rows kept", key, len(df), len(raw[key]))
    frames = list(datasets.values())
    return {
        "files": [Path(path).name for _, path, _ in files_sig],
        "years": unique_years(frames),
        "countries": unique_countries(frames),
        "datasets": datasets,
    }


def load_dashboard_data(data_dir: Optional[Path] = None) -> Dict[str, object]:
    """Load and normalize all four datasets, cached by file name and mtime."""
    files = get_source_files(data_dir)
    return _load_dashboard_data_cached(file_signature(files))


def clear_cache() -> None:
    _load_dashboard_data_cached.cache_clear()
