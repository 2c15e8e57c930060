from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Literal, Tuple

import pandas as pd

DatasetType = Literal["nutrient", "water", "energy", "agricultural"]

DATASET_ORDER: Tuple[str, ...] = ("nutrient", "water", "energy", "agricultural")

RowPredicate = Callable[[pd.DataFrame], pd.Series]


def _keep_all(df: pd.DataFrame) -> pd.Series:
    return pd.Series(True, index=df.index)


def _column_in(column: str, accepted: Tuple[str, ...]) -> RowPredicate:
    """Keep rows whose discriminant is one of `accepted`.

    A file without the discriminant column is treated as already filtered.
    """

    def predicate(df: pd.DataFrame) -> pd.Series:
        if column not in df.columns:
            return pd.Series(True, index=df.index)
        return df[column].astype("string").str.strip().isin(accepted).fillna(False).astype(bool)

    return predicate


@dataclass(frozen=True)
class DatasetConfig:
    key: str
    name: str
    unit: str
    description: str
    color: str
    icon: str
    value_field: str
    file_stem: str
    value_aliases: Tuple[str, ...] = ()
    name_aliases: Tuple[str, ...] = ()
    include: RowPredicate = field(default=_keep_all, compare=False, repr=False)

    @property
    def value_fields(self) -> Tuple[str, ...]:
        """Candidate value headers, corrected name first."""
        return (self.value_field,) + self.value_aliases


WATER_TOTAL_CODES = ("*T", "_T")

DATASETS: Dict[str, DatasetConfig] = {
    "nutrient": DatasetConfig(
        key="nutrient",
        name="Nutrient Balance",
        unit="kg/ha",
        description="Agricultural nutrient balance per hectare",
        color="#10b981",
        icon="🌱",
        value_field="OBS_VALUE_UNIT_KG",
        file_stem="nutrients_data",
        include=_column_in("NUTRIENTS", ("NITROGEN",)),
    ),
    "water": DatasetConfig(
        key="water",
        name="Water Use",
        unit="Million m³",
        description="Total water consumption",
        color="#0ea5e9",
        icon="💧",
        value_field="OBS_VALUE_MIL_M3",
        file_stem="water_data",
        include=_column_in("WATER_TYPE_CODE", WATER_TOTAL_CODES),
    ),
    "energy": DatasetConfig(
        key="energy",
        name="Energy Use",
        unit="Thousand TOE",
        description="Energy consumption in agriculture",
        color="#f59e0b",
        icon="⚡",
        value_field="OBS_VALUE_THOUSANDS",
        file_stem="energy_data",
        include=_column_in("MEASURE_CODE", ("TOTNRJ",)),
    ),
    "agricultural": DatasetConfig(
        key="agricultural",
        name="Agricultural Land",
        unit="Thousand ha",
        description="Total agricultural land area",
        color="#8b5cf6",
        icon="🌾",
        value_field="OBS_VALUE_THOUSAND_HA",
        file_stem="land_data",
        value_aliases=("OBS_VALUE_THOUSAND_H2",),
        name_aliases=("REF_CODE_ NAME",),
    ),
}

# Partner dataset plotted on the y axis of the correlation scatter.
SCATTER_PARTNER: Dict[str, str] = {
    "water": "agricultural",
    "nutrient": "water",
    "energy": "nutrient",
    "agricultural": "energy",
}


def get_dataset(key: str) -> DatasetConfig:
    try:
        return DATASETS[key]
    except KeyError:
        raise ValueError(f"Unknown dataset {key!r}; expected one of {list(DATASET_ORDER)}") from None


def dataset_options() -> List[Dict[str, str]]:
    return [
        {"key": cfg.key, "name": cfg.name, "unit": cfg.unit, "description": cfg.description, "icon": cfg.icon}
        for cfg in (DATASETS[k] for k in DATASET_ORDER)
    ]
