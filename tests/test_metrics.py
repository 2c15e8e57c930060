"""Page payloads computed from the shared fixture datasets."""

import pytest

from agridash.aggregate import prepare_context
from agridash.countries import is_iso3, to_iso3
from agridash.filters import Limits, Selection
from agridash.metrics_correlation import compute_correlation
from agridash.metrics_debug import compute_debug
from agridash.metrics_geo import compute_geo
from agridash.metrics_insights import compute_insights
from agridash.metrics_overview import compute_overview
from agridash.metrics_trends import compute_trends


@pytest.fixture
def page(data_ctx):
    """Build a page context for a selection."""

    def _build(**kwargs):
        selection = Selection(**kwargs)
        return selection, prepare_context(selection, data_ctx)

    return _build


class TestOverview:
    def test_cards_for_single_year(self, page):
        sel, ctx = page(year=2020, dataset="water")
        payload = compute_overview(sel, ctx)
        cards = {c["dataset"]: c for c in payload["cards"]}
        assert cards["water"]["active"]
        assert cards["water"]["stats"] == {"total": 1150.5, "average": 1150.5, "maximum": 1150.5, "minimum": 1150.5, "count": 1}
        assert cards["energy"]["stats"]["total"] == 2730.0
        assert payload["label"] == "2020 • All Countries • Water"
        assert payload["selection"]["year"] == 2020

    def test_card_without_data(self, page):
        sel, ctx = page(country="FRA")
        payload = compute_overview(sel, ctx)
        assert all(c["stats"] is None for c in payload["cards"])
        assert payload["cards"][0]["message"] == "No data for current filters"
        assert "totals_trend" not in payload["charts"]

    def test_kpi_trend_and_regional_average(self, page):
        sel, ctx = page(country="USA")
        kpi = compute_overview(sel, ctx)["kpis"]["nutrient"]
        assert kpi["value"] == pytest.approx(42.0)
        assert kpi["trend_pct"] == 10.0
        assert kpi["trend_text"] == "+10.0% trend"
        assert kpi["trend_direction"] == "up"
        assert kpi["regional_average"] == pytest.approx(32.5)

    def test_kpi_without_trend(self, page):
        sel, ctx = page(year=2020)
        kpi = compute_overview(sel, ctx)["kpis"]["water"]
        assert kpi["trend_pct"] is None
        assert kpi["trend_text"] == "Insufficient data for trend"
        assert kpi["value"] == 1150.5

    def test_country_comparison_needs_a_year(self, page):
        sel, ctx = page()
        assert "country_comparison" not in compute_overview(sel, ctx)["charts"]
        sel, ctx = page(year=2010)
        payload = compute_overview(sel, ctx)
        assert "country_comparison" in payload["charts"]
        assert {r["country"] for r in payload["country_comparison"]} == {"Canada", "United States"}


class TestTrends:
    def test_top_series_limit(self, page):
        sel, ctx = page(dataset="energy", limits=Limits(top_series=1))
        payload = compute_trends(sel, ctx)
        assert [(r["countryCode"], r["year"]) for r in payload["time_series"]] == [("USA", 2010), ("USA", 2020)]
        assert payload["charts"]["time_series"]["mark"]["type"] == "line"

    def test_bar_ranking(self, page):
        sel, ctx = page(dataset="energy")
        bars = compute_trends(sel, ctx)["bar"]
        assert [(b["rank"], b["countryCode"]) for b in bars] == [(1, "USA"), (2, "CAN")]
        assert bars[0]["value"] == pytest.approx(2200.0)

    def test_selected_country_is_appended_to_composition(self, page):
        sel, ctx = page(country="CAN", limits=Limits(top_bar=1))
        rows = compute_trends(sel, ctx)["stacked_bar"]
        assert [r["countryCode"] for r in rows] == ["USA", "USA", "CAN", "CAN"]
        assert [r["highlight"] for r in rows] == [False, False, True, True]

    def test_empty_selection_gives_placeholders(self, page):
        sel, ctx = page(country="FRA")
        charts = compute_trends(sel, ctx)["charts"]
        assert charts["time_series"]["empty"]
        assert charts["bar"]["empty"]


class TestCorrelation:
    def test_scatter_pairs_and_axes(self, page):
        sel, ctx = page(dataset="nutrient")
        payload = compute_correlation(sel, ctx)
        assert payload["axes"]["x"]["key"] == "nutrient"
        assert payload["axes"]["y"]["key"] == "water"
        assert len(payload["pairs"]) == 3
        assert all(p["right"] > 0 for p in payload["pairs"])
        assert payload["matrix"]["keys"] == ["nutrient", "water", "energy", "agricultural"]
        assert "empty" not in payload["charts"]["heatmap"]

    def test_no_matching_pairs(self, page):
        sel, ctx = page(dataset="water", country="FRA")
        scatter = compute_correlation(sel, ctx)["charts"]["scatter"]
        assert scatter["empty"]
        assert scatter["message"] == "No matching data available"

    def test_all_zero_matrix_is_a_placeholder(self, page):
        sel, ctx = page(year=2020, country="USA")
        assert compute_correlation(sel, ctx)["charts"]["heatmap"]["empty"]


class TestGeo:
    def test_choropleth_and_tiles(self, page):
        sel, ctx = page(year=2010, dataset="water")
        payload = compute_geo(sel, ctx)
        assert sorted(r["iso3"] for r in payload["choropleth"]) == ["CAN", "USA"]
        figure = payload["charts"]["choropleth"]
        assert figure["data"][0]["type"] == "choropleth"
        assert len(figure["data"]) == 1
        tiles = payload["heat_tree"]
        assert [t["code"] for t in tiles] == ["USA", "CAN"]
        assert tiles[0]["intensity"] == 1.0
        assert tiles[1]["size"] == 20.0

    def test_selected_country_is_outlined(self, page):
        sel, ctx = page(year=2010, country="USA", dataset="water")
        figure = compute_geo(sel, ctx)["charts"]["choropleth"]
        assert len(figure["data"]) == 2
        assert figure["data"][1]["locations"] == ["USA"]

    def test_no_data(self, page):
        sel, ctx = page(year=1990)
        payload = compute_geo(sel, ctx)
        assert payload["charts"]["choropleth"]["empty"]
        assert payload["heat_tree"] == []
        assert payload["heat_tree_message"]

    def test_country_lookup(self):
        assert to_iso3("united states") == "USA"
        assert to_iso3("European Union (28 countries)") is None
        assert to_iso3("Atlantis") is None
        assert is_iso3("CAN")
        assert not is_iso3("EU28")


class TestInsights:
    def test_pie_radar_and_text(self, page):
        sel, ctx = page(dataset="energy")
        payload = compute_insights(sel, ctx)
        assert [p["name"] for p in payload["pie"]] == ["United States", "Canada"]
        assert payload["stats"]["average"] == 1257.5
        assert "United States has the highest consumption at 4,400.00 Thousand TOE" in payload["insight"]
        assert [r["year"] for r in payload["radar"]] == [2010, 2020]
        assert payload["charts"]["radar"]["data"][0]["type"] == "scatterpolar"
        assert payload["title"] == "Key Insights: Energy Use"

    def test_nutrient_wording(self, page):
        sel, ctx = page(dataset="nutrient")
        assert compute_insights(sel, ctx)["insight"].startswith("Nutrient balance analysis reveals United States leads with 84.00 kg/ha")

    def test_no_data(self, page):
        sel, ctx = page(country="FRA")
        payload = compute_insights(sel, ctx)
        assert payload["insight"] == "No data available for the current selection."
        assert payload["charts"]["pie"]["empty"]
        assert payload["charts"]["radar"]["empty"]


def test_debug_counts(page):
    sel, ctx = page(year=2020)
    payload = compute_debug(sel, ctx)
    assert payload["row_counts"]["water"] == 4
    assert payload["filtered_counts"]["water"] == 1
    assert payload["missing_values"]["water"] == 1
    assert payload["duplicate_keys"] == {"nutrient": 0, "water": 0, "energy": 0, "agricultural": 0}
    assert len(payload["year_coverage"]) == 4
    assert payload["country_count"] == 2
