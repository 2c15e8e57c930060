import pytest

from agridash.join import (
    build_key_index,
    correlation,
    correlation_matrix,
    join_datasets,
    matrix_records,
    pair_records,
    pearson,
)


def _records(*rows):
    return [{"country": code, "countryCode": code, "year": y, "value": v, "status": ""} for code, y, v in rows]


class TestJoin:
    def test_inner_join_on_code_and_year(self):
        left = _records(("USA", 2020, 1.0), ("CAN", 2020, 2.0), ("FRA", 2020, 3.0))
        right = _records(("USA", 2020, 10.0), ("CAN", 2019, 20.0))
        pairs = join_datasets(left, right)
        assert pairs[["countryCode", "year", "left", "right"]].values.tolist() == [["USA", 2020, 1.0, 10.0]]

    def test_drops_non_positive_right_values(self):
        left = _records(("USA", 2020, 1.0), ("CAN", 2020, 2.0))
        right = _records(("USA", 2020, 0.0), ("CAN", 2020, -4.0))
        assert join_datasets(left, right).empty
        assert len(pair_records(left, right)) == 2

    def test_duplicate_right_keys_are_averaged(self):
        left = _records(("USA", 2020, 1.0))
        right = _records(("USA", 2020, 10.0), ("USA", 2020, 20.0))
        pairs = join_datasets(left, right)
        assert len(pairs) == 1
        assert pairs["right"].iloc[0] == 15.0

    def test_empty_side(self):
        assert join_datasets([], _records(("USA", 2020, 1.0))).empty

    def test_build_key_index(self):
        index = build_key_index(_records(("USA", 2020, 2.0), ("USA", 2020, 4.0), ("CAN", 2020, float("nan"))))
        assert index == {("USA", 2020): 3.0}


class TestCorrelation:
    def test_pearson(self):
        assert pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
        assert pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_degenerate_inputs(self):
        assert pearson([1], [1]) == 0.0
        assert pearson([1, 1, 1], [1, 2, 3]) == 0.0
        # float constants whose std is not exactly zero
        assert pearson([0.1] * 3, [0.1] * 3) == 0.0
        assert pearson([12.3] * 3, [1.0, 2.0, 3.0]) == 0.0

    def test_constant_series_over_years(self):
        years = (2010, 2015, 2020)
        left = _records(*[("USA", y, 12.3) for y in years])
        right = _records(*[("USA", y, 0.7) for y in years])
        assert correlation(left, right) == 0.0
        assert correlation(left, left) == 0.0

    def test_fewer_than_two_shared_keys(self):
        left = _records(("USA", 2020, 1.0), ("CAN", 2020, 2.0))
        right = _records(("USA", 2020, 5.0))
        assert correlation(left, right) == 0.0

    def test_symmetric_and_filtered(self):
        left = _records(("USA", 2010, 1.0), ("USA", 2020, 2.0), ("CAN", 2010, 3.0), ("CAN", 2020, 5.0))
        right = _records(("USA", 2010, 2.0), ("USA", 2020, 3.0), ("CAN", 2010, 9.0), ("CAN", 2020, 4.0))
        assert correlation(left, right) == pytest.approx(correlation(right, left))
        assert correlation(left, right, country="USA") == pytest.approx(1.0)
        assert correlation(left, right, year=2010) == pytest.approx(1.0)


class TestCorrelationMatrix:
    def test_diagonal_and_bounds(self, data_ctx):
        matrix = correlation_matrix(data_ctx["datasets"])
        assert list(matrix.index) == ["nutrient", "water", "energy", "agricultural"]
        for key in matrix.index:
            assert matrix.loc[key, key] == pytest.approx(1.0)
        assert ((matrix >= -1) & (matrix <= 1)).all().all()
        assert (matrix == matrix.T).all().all()

    def test_filter_with_too_few_points_gives_zero(self, data_ctx):
        matrix = correlation_matrix(data_ctx["datasets"], year=2020, country="USA")
        assert (matrix == 0.0).all().all()

    def test_records_use_display_names(self, data_ctx):
        rows = matrix_records(correlation_matrix(data_ctx["datasets"]))
        assert len(rows) == 16
        assert {"x": "Water Use", "y": "Water Use", "correlation": pytest.approx(1.0)} in rows
