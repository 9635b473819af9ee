import importlib.util
import os

import pytest
from fastapi.testclient import TestClient

from marketlens.bonds.service import BondAnalyzer
from marketlens.data.providers import FredClient

APP_PATH = os.path.join(os.path.dirname(__file__), "..", "apps", "insight_api", "app.py")


@pytest.fixture
def api(tmp_path):
    spec = importlib.util.spec_from_file_location("insight_app", APP_PATH)
    mod = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(mod)
    mod.bonds = BondAnalyzer(FredClient(cache_dir=str(tmp_path), offline=True))
    return mod


@pytest.fixture
def client(api):
    return TestClient(api.app)


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy", "service": "insight_api"}


def test_sections(client):
    sections = client.get("/sections").json()["sections"]
    assert len(sections) == 9
    assert sections[0] == {"id": "summary", "title": "Investment Summary Dashboard"}


def test_analyze(client):
    r = client.get("/analyze", params={"ticker": "aapl", "days": 200})
    assert r.status_code == 200
    data = r.json()
    assert data["symbol"] == "AAPL"
    assert data["quote"]["source"] == "generated"
    assert data["fundamentals"]["financialData"]["currentPrice"] == 51.0
    assert [s["id"] for s in data["sections"]][-1] == "sentiment"
    assert data["technicalSummary"]["overall"]["summary"]


def test_analyze_rejects_bad_input(client):
    assert client.get("/analyze", params={"ticker": "  "}).status_code == 400
    assert client.get("/analyze", params={"ticker": "AAPL", "days": 0}).status_code == 400
    assert client.get("/analyze", params={"ticker": "AAPL", "days": 5000}).status_code == 400
    assert client.get("/analyze").status_code == 422


def test_analyze_reports_failures(client, api, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(api, "analyze_asset", boom)
    r = client.get("/analyze", params={"ticker": "AAPL"})
    assert r.status_code == 500
    assert r.json()["detail"] == "Analysis failed: boom"


def test_technicals(client):
    r = client.get("/technicals", params={"ticker": "MSFT", "days": 400})
    assert r.status_code == 200
    data = r.json()
    assert "sections" not in data
    assert data["levels"]["support"] <= data["levels"]["resistance"]
    assert len(data["series"]["close"]) == 60
    assert data["series"]["ma200"][-1] is not None
    assert data["technicals"]["movingAverages"]["sma200"] is not None


def test_crypto_analyze(client):
    r = client.get("/crypto/analyze", params={"symbol": "btc"})
    assert r.status_code == 200
    data = r.json()
    assert data["symbol"] == "BTC"
    assert data["quote"]["source"] == "generated"
    assert data["points"] > 0


def test_bond_endpoints(client):
    cats = client.get("/bonds/categories").json()
    assert set(cats) == {"TREASURY", "CORPORATE", "MUNICIPAL", "INTERNATIONAL"}

    r = client.get("/bonds/analytics", params={"symbol": "gs10"})
    assert r.status_code == 200
    assert r.json()["overview"]["name"] == "10-Year Treasury Rate"

    r = client.get("/bonds/analytics", params={"symbol": "NOPE"})
    assert r.status_code == 404
    assert r.json()["detail"] == "Unknown bond symbol: NOPE"

    curve = client.get("/bonds/curve").json()
    assert len(curve["yields"]) == 8
    assert set(curve["flightToQuality"]) == {"spread", "active"}
