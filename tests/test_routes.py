import json
import logging

import pytest
from fastapi.testclient import TestClient

from main import app
from location_signals.exceptions import SignalUnavailable
from location_signals.services import SignalCacheGateway

from .conftest import FakeBusinessProvider, FakeTrafficProvider

BODY = {"location_key": "bb-7f3a9c", "latitude": 32.6245, "longitude": -115.4523}


class StubProviderClient:
    def __init__(self, configured=True):
        self.is_configured = configured


@pytest.fixture
def client(store, gateway):
    app.state.cache_store = store
    app.state.gateway = gateway
    app.state.traffic_client = StubProviderClient()
    app.state.denue_client = StubProviderClient()
    yield TestClient(app)
    for name in ("cache_store", "gateway", "traffic_client", "denue_client"):
        if hasattr(app.state, name):
            delattr(app.state, name)


def test_traffic_signal_fresh_then_cached(client):
    first = client.post("/v1/signals/traffic", json=BODY)

    assert first.status_code == 200
    assert first.headers["X-Signal-Source"] == "fresh"
    assert "X-Request-ID" in first.headers
    payload = first.json()
    assert payload["location_key"] == "bb-7f3a9c"
    assert payload["source"] == "fresh"
    assert payload["persisted"] is True
    assert payload["data"]["road_class"] == "highway"
    assert payload["data"]["estimated_daily_traffic"] > 0

    second = client.post("/v1/signals/traffic", json=BODY)

    assert second.status_code == 200
    assert second.json()["source"] == "cache"
    assert second.json()["data"] == payload["data"]


def test_force_refresh_flag(client, traffic_provider):
    client.post("/v1/signals/traffic", json=BODY)
    refreshed = client.post("/v1/signals/traffic", json={**BODY, "force_refresh": True})

    assert refreshed.json()["source"] == "fresh"
    assert len(traffic_provider.calls) == 2


def test_demographic_signal(client):
    response = client.post("/v1/signals/demographics", json=BODY)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["nearby_business_count"] == 3
    assert data["socioeconomic_tier"] == "bajo"
    assert data["dominant_sector"] == "commerce-retail"
    assert data["sector_counts"]["financial-services"] == 1


def test_unavailable_provider_returns_503(store, clock):
    app.state.cache_store = store
    app.state.gateway = SignalCacheGateway(
        store=store,
        traffic_provider=FakeTrafficProvider(error=SignalUnavailable("traffic", "no road segment found")),
        business_provider=FakeBusinessProvider(),
        clock=clock,
    )
    try:
        response = TestClient(app).post("/v1/signals/traffic", json=BODY)
    finally:
        del app.state.gateway
        del app.state.cache_store

    assert response.status_code == 503
    body = response.json()
    assert body["error"] is True
    assert body["code"] == "SIGNAL_UNAVAILABLE"
    assert body["details"] == {"kind": "traffic", "reason": "no road segment found"}


@pytest.mark.parametrize(
    "body",
    [
        {**BODY, "location_key": "bad key"},
        {**BODY, "location_key": ""},
        {**BODY, "latitude": 120},
        {"location_key": "bb-1"},
    ],
)
def test_invalid_requests_return_422(client, body, traffic_provider):
    response = client.post("/v1/signals/traffic", json=body)

    assert response.status_code == 422
    assert response.json()["code"] == "VALIDATION_ERROR"
    assert traffic_provider.calls == []


def test_delete_cached_signal(client):
    client.post("/v1/signals/traffic", json=BODY)

    deleted = client.delete("/v1/signals/traffic/bb-7f3a9c")
    assert deleted.status_code == 200
    assert deleted.json()["kind"] == "traffic"

    missing = client.delete("/v1/signals/traffic/bb-7f3a9c")
    assert missing.status_code == 404


def test_delete_with_malformed_key_returns_400(client):
    response = client.delete("/v1/signals/traffic/bad key")

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_INPUT"


def test_health_and_ready(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert health.json()["checks"]["cache"] == "ok"

    assert client.get("/ready").json() == {"ready": True}
    assert client.get("/cache/stats").json()["status"] == "ready"


def test_health_degraded_without_provider_key(client):
    app.state.traffic_client = StubProviderClient(configured=False)

    body = client.get("/health").json()

    assert body["status"] == "degraded"
    assert body["checks"]["traffic_provider"] == "unconfigured"


def test_not_ready_without_cache():
    response = TestClient(app).get("/ready")

    assert response.status_code == 503
    assert response.json()["ready"] is False


def test_request_log_carries_location_key(client, caplog):
    with caplog.at_level(logging.INFO, logger="api.requests"):
        client.post("/v1/signals/traffic", json=BODY)

    entries = [json.loads(r.getMessage()) for r in caplog.records if r.name == "api.requests"]
    assert entries[-1]["location_key"] == "bb-7f3a9c"
    assert entries[-1]["signal_source"] == "fresh"
    assert entries[-1]["status_code"] == 200
