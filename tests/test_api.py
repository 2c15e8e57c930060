import pytest
from fastapi.testclient import TestClient

from api.main import app


@pytest.fixture
def client(data_dir):
    """Test client reading the fixture datasets from a temporary directory."""
    return TestClient(app)


class TestMeta:
    def test_years(self, client):
        resp = client.get("/meta/years")
        assert resp.status_code == 200
        assert resp.json() == {"years": [2010, 2020]}

    def test_countries(self, client):
        resp = client.get("/meta/countries")
        assert resp.json()["countries"] == [
            {"code": "CAN", "name": "Canada"},
            {"code": "USA", "name": "United States"},
        ]

    def test_datasets(self, client):
        keys = [d["key"] for d in client.get("/meta/datasets").json()["datasets"]]
        assert keys == ["nutrient", "water", "energy", "agricultural"]


class TestPages:
    @pytest.mark.parametrize("path", ["/overview", "/trends", "/correlation", "/geo", "/insights", "/debug"])
    def test_page_endpoints(self, client, path):
        resp = client.post(path, json={"year": "2020", "country": "all", "dataset": "water"})
        assert resp.status_code == 200, resp.text
        assert resp.json()["selection"]["year"] == 2020

    def test_unknown_year_means_all_years(self, client):
        resp = client.post("/overview", json={"year": 1999})
        assert resp.json()["selection"]["year"] is None

    def test_invalid_dataset_is_rejected(self, client):
        assert client.post("/overview", json={"dataset": "forestry"}).status_code == 422

    def test_missing_values_serialize_as_null(self, client):
        resp = client.post("/overview", json={"year": 1990, "country": "FRA"})
        assert resp.status_code == 200
        cards = resp.json()["cards"]
        assert all(c["stats"] is None for c in cards)


class TestExport:
    def test_csv(self, client):
        resp = client.post("/export/energy", json={"year": 2020})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        lines = resp.text.strip().splitlines()
        assert lines[0] == "country,countryCode,year,value,status"
        assert len(lines) == 3

    def test_unknown_dataset(self, client):
        assert client.post("/export/forestry", json={}).status_code == 404


def test_missing_data_files_return_503(client, data_dir):
    (data_dir / "water_data.json").unlink()
    resp = client.get("/meta/years")
    assert resp.status_code == 503
    assert resp.json()["type"] == "DataLoadError"
