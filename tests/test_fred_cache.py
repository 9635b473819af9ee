import json
import os

import pytest
import requests

from marketlens.data.providers import FredClient, synthetic_series


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status
        self.text = json.dumps(payload)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def _no_network(*args, **kwargs):
    raise AssertionError("network should not be used")


@pytest.fixture
def client(tmp_path):
    return FredClient(api_key="k", cache_dir=str(tmp_path), ttl_seconds=3600, offline=False)


def _write_cache(client, series_id, observations, start=None, end=None):
    path = client.cache_path(series_id, start, end)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        json.dump({"observations": observations}, f)
    return path


def test_cache_path_is_keyed_by_series_and_dates(client):
    assert client.cache_path("GS10", "2024-01-01", "2024-06-30").endswith("GS10__2024-01-01__2024-06-30.json")
    assert client.cache_path("GS10", None, None).endswith("GS10.json")


def test_cache_hit_skips_network(client, monkeypatch):
    _write_cache(client, "GS10", [{"date": "2024-01-02", "value": "4.1"},
                                  {"date": "2024-01-03", "value": "."}], start="2024-01-01")
    monkeypatch.setattr(requests, "get", _no_network)
    obs = client.observations("GS10", start="2024-01-01")
    assert obs == [{"date": "2024-01-02", "value": 4.1}, {"date": "2024-01-03", "value": None}]


def test_fetch_writes_cache(client, monkeypatch):
    seen = {}

    def fake_get(url, params=None, timeout=None):
        seen.update(params)
        return FakeResponse({"observations": [{"date": "2024-01-02", "value": "4.2"}]})

    monkeypatch.setattr(requests, "get", fake_get)
    assert client.observations("GS2", start="2024-01-01") == [{"date": "2024-01-02", "value": 4.2}]
    assert seen["series_id"] == "GS2"
    assert seen["observation_start"] == "2024-01-01"
    assert os.path.exists(client.cache_path("GS2", "2024-01-01", None))

    monkeypatch.setattr(requests, "get", _no_network)
    assert client.observations("GS2", start="2024-01-01")[0]["value"] == 4.2


def test_expired_cache_and_refresh(client, monkeypatch):
    path = _write_cache(client, "GS5", [{"date": "2024-01-02", "value": "1.0"}])
    monkeypatch.setattr(
        requests, "get",
        lambda url, params=None, timeout=None: FakeResponse({"observations": [{"date": "2024-01-05", "value": "2.0"}]}),
    )
    # fresh cache is used unless a refresh is requested
    assert client.observations("GS5")[0]["value"] == 1.0
    assert client.observations("GS5", refresh=True)[0]["value"] == 2.0

    _write_cache(client, "GS5", [{"date": "2024-01-02", "value": "1.0"}])
    os.utime(path, (0, 0))
    assert client.observations("GS5")[0]["value"] == 2.0


def test_fallback_without_key(tmp_path, monkeypatch):
    monkeypatch.delenv("FRED_API_KEY", raising=False)
    monkeypatch.setattr(requests, "get", _no_network)
    fred = FredClient(cache_dir=str(tmp_path), offline=False)
    obs = fred.observations("GS10")
    assert len(obs) == 260
    assert obs == synthetic_series("GS10")
    assert 4.0 < fred.latest("GS10") < 4.6
    assert not os.listdir(tmp_path)  # synthetic data is never cached


def test_fallback_on_api_error(client, monkeypatch):
    def down(url, params=None, timeout=None):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(requests, "get", down)
    assert client.observations("T5YIEM")[0]["value"] is not None

    monkeypatch.setattr(requests, "get", lambda url, params=None, timeout=None: FakeResponse({"error_message": "bad series"}))
    assert client.observations("NOPE") == synthetic_series("NOPE")


def test_values_drop_missing(client, monkeypatch):
    monkeypatch.setattr(
        requests, "get",
        lambda url, params=None, timeout=None: FakeResponse({"observations": [
            {"date": "2024-01-02", "value": "4.0"}, {"date": "2024-01-03", "value": "."},
            {"date": "2024-01-04", "value": "4.4"},
        ]}),
    )
    assert client.values("GS30") == [4.0, 4.4]
    assert client.latest("GS30") == 4.4
