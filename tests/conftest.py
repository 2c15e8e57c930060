"""Shared fixtures: small raw datasets in each source shape and a data directory."""

import json
from pathlib import Path
from typing import Dict, List

import pytest

from agridash.data import clear_cache, normalize_all


def _row(code: str, name: str, year, **extra) -> Dict[str, object]:
    row = {
        "REF_AREA_CODE": code,
        "REF_AREA_NAME": name,
        "TIME_PERIOD": year,
        "OBS_STATUS_CODE": "A",
        "OBS_STATUS_NAME": "Normal value",
    }
    row.update(extra)
    return row


@pytest.fixture
def raw_water() -> List[Dict[str, object]]:
    return [
        _row("USA", "United States", 2010, WATER_TYPE_CODE="_T", OBS_VALUE_MIL_M3="100"),
        _row("USA", "United States", 2020, WATER_TYPE_CODE="_T", OBS_VALUE_MIL_M3="1,150.5"),
        _row("USA", "United States", 2020, WATER_TYPE_CODE="GW", OBS_VALUE_MIL_M3="999"),
        _row("CAN", "Canada", 2010, WATER_TYPE_CODE="*T", OBS_VALUE_MIL_M3="50"),
        _row("CAN", "Canada", 2020, WATER_TYPE_CODE="*T", OBS_VALUE_MIL_M3="n/a"),
        _row("FRA", "France", "", WATER_TYPE_CODE="_T", OBS_VALUE_MIL_M3="70"),
    ]


@pytest.fixture
def raw_nutrient() -> List[Dict[str, object]]:
    return [
        _row("USA", "United States", 2010, NUTRIENTS="NITROGEN", OBS_VALUE_UNIT_KG="40"),
        _row("USA", "United States", 2020, NUTRIENTS="NITROGEN", OBS_VALUE_UNIT_KG="44"),
        _row("USA", "United States", 2020, NUTRIENTS="PHOSPHORUS", OBS_VALUE_UNIT_KG="3"),
        _row("CAN", "Canada", 2010, NUTRIENTS="NITROGEN", OBS_VALUE_UNIT_KG="20"),
        _row("CAN", "Canada", 2020, NUTRIENTS="NITROGEN", OBS_VALUE_UNIT_KG="26"),
    ]


@pytest.fixture
def raw_energy() -> List[Dict[str, object]]:
    return [
        _row("USA", "United States", 2010, MEASURE_CODE="TOTNRJ", OBS_VALUE_THOUSANDS="2,000"),
        _row("USA", "United States", 2020, MEASURE_CODE="TOTNRJ", OBS_VALUE_THOUSANDS="2,400"),
        _row("USA", "United States", 2020, MEASURE_CODE="ELEC", OBS_VALUE_THOUSANDS="500"),
        _row("CAN", "Canada", 2010, MEASURE_CODE="TOTNRJ", OBS_VALUE_THOUSANDS="300"),
        _row("CAN", "Canada", 2020, MEASURE_CODE="TOTNRJ", OBS_VALUE_THOUSANDS="330"),
    ]


@pytest.fixture
def raw_land() -> List[Dict[str, object]]:
    rows = []
    for code, name, year, value in [
        ("USA", "United States", 2010, "400,000"),
        ("USA", "United States", 2020, "405,000"),
        ("CAN", "Canada", 2010, "60,000"),
        ("CAN", "Canada", 2020, "62,000"),
    ]:
        row = _row(code, "", year, OBS_VALUE_THOUSAND_H2=value)
        row["REF_CODE_ NAME"] = name
        rows.append(row)
    return rows


@pytest.fixture
def raw_datasets(raw_water, raw_nutrient, raw_energy, raw_land) -> Dict[str, List[Dict[str, object]]]:
    return {"water": raw_water, "nutrient": raw_nutrient, "energy": raw_energy, "agricultural": raw_land}


@pytest.fixture
def data_ctx(raw_datasets):
    datasets = normalize_all(raw_datasets)
    return {
        "files": [],
        "years": [2010, 2020],
        "countries": [{"code": "CAN", "name": "Canada"}, {"code": "USA", "name": "United States"}],
        "datasets": datasets,
    }


@pytest.fixture
def data_dir(tmp_path: Path, raw_datasets, monkeypatch) -> Path:
    stems = {"water": "water_data", "nutrient": "nutrients_data", "energy": "energy_data", "agricultural": "land_data"}
    for key, rows in raw_datasets.items():
        (tmp_path / f"{stems[key]}.json").write_text(json.dumps(rows), encoding="utf-8")
    monkeypatch.setenv("AGRIDASH_DATA_DIR", str(tmp_path))
    clear_cache()
    yield tmp_path
    clear_cache()
