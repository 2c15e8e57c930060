from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional

from agridash.datasets import DATASET_ORDER

ALL_YEARS = "all"
ALL_COUNTRIES = "all"
_ALL_TOKENS = {"", "all", "all years", "all countries", "none", "null"}


@dataclass(frozen=True)
class Limits:
    top_series: int = 3
    top_bar: int = 10
    top_pie: int = 5
    top_radar: int = 3
    top_treemap: int = 12


@dataclass(frozen=True)
class Selection:
    """The user's current (year, country, dataset) choice.

    `year=None` selects every year and `country="all"` every country. A new
    selection replaces the old one; use `with_changes` instead of mutating.
    """

    year: Optional[int] = None
    country: str = ALL_COUNTRIES
    dataset: str = "nutrient"
    limits: Limits = field(default_factory=Limits)

    @property
    def all_years(self) -> bool:
        return self.year is None

    @property
    def all_countries(self) -> bool:
        return self.country == ALL_COUNTRIES

    def with_changes(self, **changes) -> "Selection":
        return replace(self, **changes)

    def label(self) -> str:
        year = "All Years" if self.all_years else str(self.year)
        country = "All Countries" if self.all_countries else self.country
        return f"{year} • {country} • {self.dataset.capitalize()}"


def is_all(value: object) -> bool:
    return value is None or str(value).strip().lower() in _ALL_TOKENS


def as_year(value: object, available_years: Optional[Iterable[int]] = None) -> Optional[int]:
    if is_all(value):
        return None
    try:
        year = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    if available_years is not None and year not in set(available_years):
        return None
    return year


def _as_limit(value: object, default: int) -> int:
    try:
        out = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(50, out))


def normalize_selection(raw: dict, *, available_years: Optional[List[int]] = None) -> Selection:
    year = as_year(raw.get("year"), available_years)

    country_raw = raw.get("country")
    country = ALL_COUNTRIES if is_all(country_raw) else str(country_raw).strip().upper()

    dataset = str(raw.get("dataset") or "nutrient").strip().lower()
    if dataset not in DATASET_ORDER:
        dataset = "nutrient"

    lim = raw.get("limits") or {}
    defaults = Limits()
    limits = Limits(
        top_series=_as_limit(lim.get("top_series", defaults.top_series), defaults.top_series),
        top_bar=_as_limit(lim.get("top_bar", defaults.top_bar), defaults.top_bar),
        top_pie=_as_limit(lim.get("top_pie", defaults.top_pie), defaults.top_pie),
        top_radar=_as_limit(lim.get("top_radar", defaults.top_radar), defaults.top_radar),
        top_treemap=_as_limit(lim.get("top_treemap", defaults.top_treemap), defaults.top_treemap),
    )
    return Selection(year=year, country=country, dataset=dataset, limits=limits)
