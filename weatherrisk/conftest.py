"""Shared fixtures: a sample route and an in-memory weather provider."""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from weatherrisk.gateway import WeatherGateway
from weatherrisk.models import Coordinate, RoutePlan

PROVIDER_URL = "http://provider.test/api"
DEPARTURE = datetime(2026, 1, 15, 8, 0, tzinfo=timezone.utc)


def weather_payload(
    temperature: float = 12.0,
    humidity: float = 50.0,
    wind_speed: float = 3.0,
    visibility: Optional[float] = None,
    weather_main: str = "CLEAR",
    **extra: Any,
) -> Dict[str, Any]:
    payload = {
        "temperature": temperature,
        "humidity": humidity,
        "windSpeed": wind_speed,
        "pressure": 1012,
        "weatherMain": weather_main,
        "weatherDescription": weather_main.lower(),
        "timestamp": "2026-01-15T08:00:00Z",
    }
    if visibility is not None:
        payload["visibility"] = visibility
    payload.update(extra)
    return payload


def hazard_payload(severity: str = "HIGH", time_start: str = "2026-01-15T09:00:00Z", **extra: Any) -> Dict[str, Any]:
    payload = {
        "type": "STORM",
        "severity": severity,
        "timeStart": time_start,
        "timeEnd": "2026-01-15T12:00:00Z",
        "location": {"lat": 55.9, "lon": 37.9},
        "description": "Storm front",
    }
    payload.update(extra)
    return payload


class FakeProvider:
    """
    Scriptable stand-in for the weather service, served through httpx.MockTransport.

    `failures` maps an endpoint name to an HTTP status code or an exception
    factory taking the request.
    """

    def __init__(self) -> None:
        self.calls: List[str] = []
        self.point_weather: Callable[[Dict[str, Any]], Dict[str, Any]] = lambda point: weather_payload()
        self.hazards: List[Dict[str, Any]] = []
        self.current: Dict[str, Any] = weather_payload()
        self.analysis: Dict[str, Any] = {
            "current": {"temperature": 4, "humidity": 60, "windSpeed": 4, "visibility": 10,
                        "description": "cloudy", "icon": "03d"},
            "forecast": [
                {"date": "2026-01-15", "temperatureMin": -2, "temperatureMax": 6, "humidity": 70,
                 "windSpeed": 5, "description": "snow", "icon": "13d"},
            ],
        }
        self.risk: Dict[str, Any] = {
            "overallRisk": 35,
            "factors": [{"name": "Snowfall", "impact": 35, "description": "Snow on the road"}],
            "recommendations": ["Fit winter tyres"],
        }
        self.failures: Dict[str, Any] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        name = request.url.path.rsplit("/", 1)[-1]
        self.calls.append(name)

        failure = self.failures.get(name)
        if isinstance(failure, int):
            return httpx.Response(failure, json={"error": {"message": f"{name} failed"}})
        if failure is not None:
            raise failure(request)

        if name == "route-forecast":
            body = json.loads(request.content)
            return httpx.Response(200, json={
                "pointForecasts": [
                    {"pointIndex": p["pointIndex"], "weatherData": self.point_weather(p)}
                    for p in body["points"]
                ]
            })
        if name == "hazard-warnings":
            return httpx.Response(200, json=self.hazards)
        if name == "current":
            return httpx.Response(200, json=self.current)
        if name == "route-analysis":
            return httpx.Response(200, json=self.analysis)
        if name == "risk-assessment":
            return httpx.Response(200, json=self.risk)
        return httpx.Response(404, json={"error": "unknown endpoint"})


def connection_refused(request: httpx.Request) -> Exception:
    return httpx.ConnectError("Connection refused", request=request)


def read_timeout(request: httpx.Request) -> Exception:
    return httpx.ReadTimeout("Read timed out", request=request)


@pytest.fixture
def route() -> RoutePlan:
    return RoutePlan(
        coordinates=[
            Coordinate(lat=55.7558, lon=37.6173),
            Coordinate(lat=55.9000, lon=37.9000),
            Coordinate(lat=56.1300, lon=38.2000),
        ],
        distance_m=100000,
        duration_s=7200,
        departure_time=DEPARTURE,
        route_id="route-1",
    )


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def gateway(provider: FakeProvider) -> WeatherGateway:
    return WeatherGateway(base_url=PROVIDER_URL, transport=httpx.MockTransport(provider.handler))
