from __future__ import annotations

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


class LimitsModel(BaseModel):
    top_series: int = 3
    top_bar: int = 10
    top_pie: int = 5
    top_radar: int = 3
    top_treemap: int = 12


class SelectionModel(BaseModel):
    year: Optional[Union[int, str]] = None
    country: Optional[str] = "all"
    dataset: Literal["nutrient", "water", "energy", "agricultural"] = "nutrient"
    limits: LimitsModel = Field(default_factory=LimitsModel)


class CountryOption(BaseModel):
    code: str
    name: str


class MetaYearsResponse(BaseModel):
    years: List[int]


class MetaCountriesResponse(BaseModel):
    countries: List[CountryOption]
