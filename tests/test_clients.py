import httpx
import pytest

from location_signals.clients import DenueClient, TomTomTrafficClient
from location_signals.config import Settings
from location_signals.exceptions import InvalidInput, SignalUnavailable


def make_settings(**overrides):
    values = {
        "tomtom_api_key": "tt-key",
        "denue_token": "denue-token",
        "tomtom_base_url": "https://tomtom.test/flowSegmentData",
        "denue_base_url": "https://denue.test/Buscar/todos",
        "request_log_file": None,
    }
    values.update(overrides)
    return Settings(**values)


def flow_payload(current, free_flow, confidence=0.9):
    segment = {"currentSpeed": current, "freeFlowSpeed": free_flow}
    if confidence is not None:
        segment["confidence"] = confidence
    return {"flowSegmentData": segment}


# ============== TomTom ==============


@pytest.mark.asyncio
async def test_tomtom_returns_sample():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=flow_payload(22, 64, 0.93))

    client = TomTomTrafficClient(make_settings(), transport=httpx.MockTransport(handler))
    try:
        sample = await client.fetch_flow(32.62, -115.45)
    finally:
        await client.close()

    assert sample.current_speed_kmh == 22
    assert sample.free_flow_speed_kmh == 64
    assert sample.confidence == pytest.approx(0.93)
    assert len(seen) == 1
    assert "/relative0/10/json" in seen[0].url.path
    assert seen[0].url.params["point"] == "32.62,-115.45"
    assert seen[0].url.params["key"] == "tt-key"


@pytest.mark.asyncio
async def test_tomtom_falls_back_to_absolute_endpoint():
    def handler(request: httpx.Request) -> httpx.Response:
        if "relative0" in request.url.path:
            return httpx.Response(500, text="upstream error")
        return httpx.Response(200, json=flow_payload(40, 80))

    client = TomTomTrafficClient(make_settings(), transport=httpx.MockTransport(handler))
    try:
        sample = await client.fetch_flow(19.43, -99.13)
    finally:
        await client.close()

    assert sample.current_speed_kmh == 40


@pytest.mark.asyncio
async def test_tomtom_missing_confidence_defaults():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=flow_payload(40, 80, confidence=None))

    client = TomTomTrafficClient(make_settings(), transport=httpx.MockTransport(handler))
    try:
        sample = await client.fetch_flow(19.43, -99.13)
    finally:
        await client.close()

    assert sample.confidence == 0.5


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "make_response",
    [
        lambda: httpx.Response(200, json=flow_payload(0, 0)),
        lambda: httpx.Response(200, json={"error": "Point too far from nearest existing segment."}),
        lambda: httpx.Response(403, text="Forbidden"),
        lambda: httpx.Response(200, text="not json"),
        lambda: httpx.Response(200, json={"flowSegmentData": "oops"}),
        lambda: httpx.Response(200, json={"flowSegmentData": {"currentSpeed": {"v": 1}, "freeFlowSpeed": 60}}),
        lambda: httpx.Response(200, json={"flowSegmentData": {"currentSpeed": 20, "freeFlowSpeed": 60, "confidence": [1]}}),
    ],
)
async def test_tomtom_unusable_responses_are_unavailable(make_response):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return make_response()

    client = TomTomTrafficClient(make_settings(), transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(SignalUnavailable) as excinfo:
            await client.fetch_flow(19.43, -99.13)
    finally:
        await client.close()

    assert excinfo.value.kind == "traffic"
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_tomtom_transport_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = TomTomTrafficClient(make_settings(), transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(SignalUnavailable):
            await client.fetch_flow(19.43, -99.13)
    finally:
        await client.close()


@pytest.mark.asyncio
async def test_tomtom_without_key_is_unavailable():
    client = TomTomTrafficClient(make_settings(tomtom_api_key=None))

    assert client.is_configured is False
    with pytest.raises(SignalUnavailable):
        await client.fetch_flow(19.43, -99.13)


# ============== DENUE ==============


DENUE_ROWS = [
    {"Nombre": "BANCO DEL NORTE", "Codigo_act": "522110", "Estrato": "51 a 100 personas"},
    {"Nombre": " FARMACIA SAN JUAN ", "Codigo_act": "464111", "Estrato": "0 a 5 personas"},
    {"Nombre": "TALLER MECANICO", "Codigo_act": None},
]


@pytest.mark.asyncio
async def test_denue_returns_business_records():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=DENUE_ROWS)

    client = DenueClient(make_settings(), transport=httpx.MockTransport(handler))
    try:
        businesses = await client.fetch_businesses(32.62, -115.45)
    finally:
        await client.close()

    assert [b.name for b in businesses] == ["BANCO DEL NORTE", "FARMACIA SAN JUAN", "TALLER MECANICO"]
    assert businesses[0].sector_code == "522110"
    assert businesses[0].employee_range_label == "51 a 100 personas"
    assert businesses[2].sector_code == ""
    assert seen[0].url.path.endswith("/32.62,-115.45/500/denue-token")


@pytest.mark.asyncio
async def test_denue_empty_list_is_valid():
    client = DenueClient(
        make_settings(),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])),
    )
    try:
        assert await client.fetch_businesses(32.62, -115.45) == []
    finally:
        await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "make_response",
    [
        lambda: httpx.Response(502, text="Bad Gateway"),
        lambda: httpx.Response(200, json={"message": "token invalido"}),
        lambda: httpx.Response(200, text="<html>"),
    ],
)
async def test_denue_failures_are_unavailable(make_response):
    client = DenueClient(
        make_settings(),
        transport=httpx.MockTransport(lambda request: make_response()),
    )
    try:
        with pytest.raises(SignalUnavailable) as excinfo:
            await client.fetch_businesses(32.62, -115.45)
    finally:
        await client.close()

    assert excinfo.value.kind == "demographics"


@pytest.mark.asyncio
@pytest.mark.parametrize("radius", [0, -1, 5001])
async def test_denue_rejects_out_of_range_radius(radius):
    client = DenueClient(make_settings())

    with pytest.raises(InvalidInput):
        await client.fetch_businesses(32.62, -115.45, radius_meters=radius)


@pytest.mark.asyncio
async def test_denue_without_token_is_unavailable():
    client = DenueClient(make_settings(denue_token=None))

    with pytest.raises(SignalUnavailable):
        await client.fetch_businesses(32.62, -115.45)
