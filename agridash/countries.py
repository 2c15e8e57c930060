"""Static country name -> ISO-3 lookup used by the choropleth."""

from __future__ import annotations

from typing import Dict, Optional

COUNTRY_NAME_TO_ISO3: Dict[str, str] = {
    "Argentina": "ARG",
    "Australia": "AUS",
    "Austria": "AUT",
    "Belgium": "BEL",
    "Bulgaria": "BGR",
    "Brazil": "BRA",
    "Canada": "CAN",
    "Switzerland": "CHE",
    "Chile": "CHL",
    "China": "CHN",
    "Colombia": "COL",
    "Costa Rica": "CRI",
    "Cyprus": "CYP",
    "Czechia": "CZE",
    "Germany": "DEU",
    "Denmark": "DNK",
    "Spain": "ESP",
    "Estonia": "EST",
    "European Union": "EU",
    "European Union (27 countries from 01/02/2020)": "EU27_2020",
    "European Union (28 countries)": "EU28",
    "Finland": "FIN",
    "France": "FRA",
    "United Kingdom": "GBR",
    "Greece": "GRC",
    "Croatia": "HRV",
    "Hungary": "HUN",
    "Indonesia": "IDN",
    "India": "IND",
    "Ireland": "IRL",
    "Iceland": "ISL",
    "Israel": "ISR",
    "Italy": "ITA",
    "Japan": "JPN",
    "Kazakhstan": "KAZ",
    "Korea": "KOR",
    "Lithuania": "LTU",
    "Luxembourg": "LUX",
    "Latvia": "LVA",
    "Mexico": "MEX",
    "Malta": "MLT",
    "Netherlands": "NLD",
    "Norway": "NOR",
    "New Zealand": "NZL",
    "Peru": "PER",
    "Philippines": "PHL",
    "Poland": "POL",
    "Portugal": "PRT",
    "Romania": "ROU",
    "Russia": "RUS",
    "Slovak Republic": "SVK",
    "Slovenia": "SVN",
    "Sweden": "SWE",
    "Turkey": "TUR",
    "Ukraine": "UKR",
    "United States": "USA",
    "Viet Nam": "VNM",
    "South Africa": "ZAF",
}

_BY_LOWER = {name.lower(): code for name, code in COUNTRY_NAME_TO_ISO3.items()}


def to_iso3(name: object) -> Optional[str]:
    """ISO-3 code for a display name; regional aggregates return None."""
    if name is None:
        return None
    code = _BY_LOWER.get(str(name).strip().lower())
    if code is None or len(code) != 3:
        return None
    return code


def is_iso3(code: object) -> bool:
    s = str(code or "")
    return len(s) == 3 and s.isalpha() and s.isupper()
