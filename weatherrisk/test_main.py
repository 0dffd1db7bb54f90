import pytest
from fastapi.testclient import TestClient

from conftest import connection_refused, hazard_payload, weather_payload
from weatherrisk.engine import RouteWeatherEngine
from weatherrisk.main import app, get_engine

ROUTE_BODY = {
    "coordinates": [
        {"lat": 55.7558, "lon": 37.6173},
        {"lat": 55.9, "lon": 37.9},
        {"lat": 56.13, "lon": 38.2},
    ],
    "distance_m": 100000,
    "duration_s": 7200,
    "departure_time": "2026-01-15T08:00:00Z",
    "route_id": "route-1",
}


@pytest.fixture
def client(gateway):
    engine = RouteWeatherEngine(gateway, use_synthetic_fallback=True)
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_route_weather_risk(client, provider):
    provider.point_weather = lambda p: weather_payload(temperature=-15)
    provider.hazards = [hazard_payload(severity="LOW", time_start="2026-01-15T10:10:00Z",
                                       recommendation="Watch for debris")]

    resp = client.post("/api/route-weather-risk", json=ROUTE_BODY)

    assert resp.status_code == 200
    data = resp.json()
    assessment = data["assessment"]
    assert assessment["overall_risk"] == 40
    assert assessment["band"] == "MEDIUM"
    assert assessment["recommendations"] == ["Check vehicle technical condition", "Watch for debris"]
    assert [len(p["hazards"]) for p in data["timeline"]] == [0, 0, 1]
    assert data["route_id"] == "route-1"


def test_route_from_polyline(client):
    body = dict(ROUTE_BODY)
    del body["coordinates"]
    body["polyline"] = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"

    resp = client.post("/api/route-weather-risk", json=body)

    assert resp.status_code == 200
    first = resp.json()["timeline"][0]["point"]["coordinate"]
    assert (first["lat"], first["lon"]) == pytest.approx((38.5, -120.2))


def test_single_coordinate_is_bad_request(client, provider):
    body = dict(ROUTE_BODY, coordinates=[{"lat": 55.0, "lon": 37.0}])
    resp = client.post("/api/route-weather-risk", json=body)
    assert resp.status_code == 400
    assert provider.calls == []


def test_missing_geometry_is_bad_request(client):
    body = dict(ROUTE_BODY)
    del body["coordinates"]
    assert client.post("/api/route-weather-risk", json=body).status_code == 400


def test_provider_rejection_is_bad_gateway(client, provider):
    provider.failures["route-forecast"] = 400
    resp = client.post("/api/route-weather-risk", json=ROUTE_BODY)
    assert resp.status_code == 502
    assert resp.json()["detail"] == "route-forecast failed"


def test_provider_outage_is_service_unavailable(client, provider):
    provider.failures["route-forecast"] = 500
    assert client.post("/api/route-weather-risk", json=ROUTE_BODY).status_code == 503


def test_unreachable_provider_returns_synthetic_report(client, provider):
    provider.failures["route-forecast"] = connection_refused
    resp = client.post("/api/route-weather-risk", json=ROUTE_BODY)
    assert resp.status_code == 200
    assert resp.json()["synthetic"] is True


def test_route_analysis(client):
    resp = client.post("/api/route-analysis", json={
        "start": {"lat": 55.0, "lon": 37.0},
        "end": {"lat": 56.0, "lng": 38.0},
    })
    assert resp.status_code == 200
    assert resp.json()["assessment"]["overall_risk"] == 35


@pytest.mark.parametrize("score,band,label", [(10, "LOW", "Low"), (80, "EXTREME", "Critical")])
def test_risk_band_endpoint(client, score, band, label):
    resp = client.get("/api/risk-band", params={"score": score})
    assert resp.json() == {"score": score, "band": band, "label": label}


def test_risk_band_out_of_range(client):
    assert client.get("/api/risk-band", params={"score": 120}).status_code == 422


def test_oversized_point_count_is_bad_request(client, provider):
    resp = client.post("/api/route-weather-risk", json=dict(ROUTE_BODY, point_count=5000))
    assert resp.status_code == 400
    assert provider.calls == []


def test_malformed_current_weather_still_returns_assessment(client, provider):
    provider.current = {"humidity": 50}
    body = dict(ROUTE_BODY, current_location={"lat": 55.7, "lon": 37.6})
    resp = client.post("/api/route-weather-risk", json=body)
    assert resp.status_code == 200
    assert resp.json()["current"] is None
