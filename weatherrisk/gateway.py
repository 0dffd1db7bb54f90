import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx
from pydantic import ValidationError

from . import config
from .errors import GatewayRejectedError, GatewayUnavailableError, RiskAssessmentError
from .models import (
    Coordinate,
    DailyForecast,
    HazardType,
    HazardWarning,
    RiskAssessment,
    RiskFactor,
    Severity,
    TimelinePoint,
    WeatherCondition,
    WeatherSample,
    hazard_label,
)

logger = logging.getLogger(__name__)


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_time(raw: Any, default: Optional[datetime] = None) -> datetime:
    if raw is None or raw == "":
        if default is None:
            raise ValueError("missing timestamp")
        return default
    if isinstance(raw, datetime):
        parsed = raw
    else:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coordinate(raw: Any) -> Optional[Coordinate]:
    if not isinstance(raw, dict):
        return None
    lat = raw.get("lat", raw.get("latitude"))
    lon = raw.get("lon", raw.get("lng", raw.get("longitude")))
    if lat is None or lon is None:
        return None
    return Coordinate(lat=float(lat), lon=float(lon))


def _route_body(start: Coordinate, end: Coordinate, waypoints: Sequence[Coordinate]) -> dict:
    return {
        "startLat": start.lat,
        "startLon": start.lon,
        "endLat": end.lat,
        "endLon": end.lon,
        "waypoints": [{"lat": w.lat, "lon": w.lon} for w in waypoints],
    }


def _points_body(points: Sequence[TimelinePoint], departure_time: datetime) -> dict:
    return {
        "departureTime": _iso(departure_time),
        "points": [
            {
                "pointIndex": p.index,
                "lat": p.coordinate.lat,
                "lon": p.coordinate.lon,
                "estimatedTime": _iso(p.estimated_time),
                "distanceFromStart": p.distance_from_start,
            }
            for p in points
        ],
    }


def parse_weather_sample(
    payload: Dict[str, Any],
    coordinate: Optional[Coordinate] = None,
    timestamp: Optional[datetime] = None,
    visibility_in_km: bool = False,
) -> WeatherSample:
    """Build a WeatherSample from a provider weather payload."""
    visibility = payload.get("visibility")
    if visibility is not None:
        visibility = float(visibility) * (1000.0 if visibility_in_km else 1.0)

    risk_score = payload.get("riskScore")
    return WeatherSample(
        timestamp=_parse_time(payload.get("timestamp"), timestamp or datetime.now(timezone.utc)),
        coordinate=_coordinate(payload.get("location")) or coordinate,
        temperature=float(payload["temperature"]),
        humidity=float(payload.get("humidity", 0.0)),
        wind_speed=float(payload.get("windSpeed", 0.0)),
        visibility=visibility,
        pressure=float(payload.get("pressure", 1013.0)),
        condition=WeatherCondition.parse(payload.get("weatherMain") or payload.get("condition")),
        description=payload.get("weatherDescription") or payload.get("description") or "",
        risk_score=None if risk_score is None else float(risk_score),
        risk_level=payload.get("riskLevel"),
        risk_description=payload.get("riskDescription"),
    )


def parse_hazard_warning(payload: Dict[str, Any]) -> HazardWarning:
    hazard_type = HazardType.parse(payload.get("type") or payload.get("hazardType") or "")
    start = _parse_time(payload.get("timeStart") or payload.get("expectedTime"))
    end = _parse_time(payload.get("timeEnd"), start)

    recommendation = payload.get("recommendation")
    if not recommendation and payload.get("recommendations"):
        recommendation = "; ".join(str(r) for r in payload["recommendations"])

    distance = payload.get("distanceFromStart")
    return HazardWarning(
        type=hazard_type,
        severity=Severity(str(payload.get("severity", "LOW")).upper()),
        time_start=start,
        time_end=end,
        coordinate=_coordinate(payload.get("location") or payload.get("coordinate")),
        description=payload.get("description") or hazard_label(hazard_type),
        recommendation=recommendation or None,
        distance_from_start=None if distance is None else float(distance),
    )


def _provider_message(resp: httpx.Response) -> str:
    try:
        error_data = resp.json()
    except ValueError:
        return resp.text
    if not isinstance(error_data, dict):
        return resp.text
    error_msg = error_data.get("error") or error_data.get("message") or resp.text
    if isinstance(error_msg, dict):
        return str(error_msg.get("message", error_msg))
    return str(error_msg)


class WeatherGateway:
    """
    Thin async wrapper around the weather/hazard provider.

    - One httpx.AsyncClient reused for all calls
    - Transport and status failures translated into the engine's error taxonomy
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or config.WEATHER_API_BASE_URL).rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else config.WEATHER_API_TIMEOUT_S,
            transport=transport,
        )

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "WeatherGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            raise GatewayUnavailableError(
                f"Weather provider unreachable at {self.base_url}: {exc}", reason="unreachable"
            ) from exc
        except httpx.TimeoutException as exc:
            raise GatewayUnavailableError(f"Weather provider timed out on {path}", reason="timeout") from exc
        except httpx.TransportError as exc:
            raise GatewayUnavailableError(f"Weather provider transport error on {path}: {exc}") from exc

        if resp.status_code == 404:
            raise GatewayUnavailableError(
                f"Weather endpoint {path} not found", reason="not_found", status_code=404
            )
        if resp.status_code >= 500:
            raise GatewayUnavailableError(
                f"Weather provider failed on {path}: {resp.status_code}",
                reason="server",
                status_code=resp.status_code,
            )
        if resp.status_code >= 400:
            raise GatewayRejectedError(resp.status_code, _provider_message(resp))

        try:
            return resp.json()
        except ValueError as exc:
            raise RiskAssessmentError(f"Weather provider returned invalid JSON on {path}") from exc

    async def fetch_forecast(
        self, points: Sequence[TimelinePoint], departure_time: datetime
    ) -> List[WeatherSample]:
        """One WeatherSample per timeline point, in the same order as `points`."""
        data = await self._request(
            "POST", "/weather/route-forecast", json=_points_body(points, departure_time)
        )
        entries = data.get("pointForecasts", []) if isinstance(data, dict) else data
        if not isinstance(entries, list) or len(entries) != len(points):
            raise RiskAssessmentError(
                f"Forecast returned {len(entries) if isinstance(entries, list) else 'no'} "
                f"samples for {len(points)} points"
            )

        samples: List[WeatherSample] = []
        try:
            by_index: Dict[int, Dict[str, Any]] = {}
            for position, entry in enumerate(entries):
                by_index[int(entry.get("pointIndex", position))] = entry

            for p in points:
                entry = by_index[p.index]
                samples.append(
                    parse_weather_sample(
                        entry.get("weatherData", entry), p.coordinate, p.estimated_time
                    )
                )
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
            raise RiskAssessmentError(f"Malformed forecast payload: {exc}") from exc
        return samples

    async def fetch_hazards(
        self, points: Sequence[TimelinePoint], departure_time: datetime
    ) -> List[HazardWarning]:
        data = await self._request(
            "POST",
            "/weather/hazard-warnings",
            params={"departureTime": _iso(departure_time)},
            json=_points_body(points, departure_time),
        )
        entries = data.get("hazardWarnings", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise RiskAssessmentError("Hazard warnings payload is not a list")

        warnings: List[HazardWarning] = []
        for entry in entries:
            if not isinstance(entry, dict):
                logger.warning(f"Skipping hazard warning that is not an object: {entry!r}")
                continue
            try:
                warnings.append(parse_hazard_warning(entry))
            except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
                logger.warning(f"Skipping malformed hazard warning {entry!r}: {exc}")
        return warnings

    async def fetch_current(self, coordinate: Coordinate) -> WeatherSample:
        data = await self._request(
            "GET", "/weather/current", params={"lat": coordinate.lat, "lon": coordinate.lon}
        )
        try:
            return parse_weather_sample(data, coordinate)
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
            raise RiskAssessmentError(f"Malformed current weather payload: {exc}") from exc

    async def analyze_route(
        self, start: Coordinate, end: Coordinate, waypoints: Sequence[Coordinate] = ()
    ) -> Tuple[Optional[WeatherSample], List[DailyForecast]]:
        """Current weather at the start plus a daily forecast for the route."""
        data = await self._request(
            "POST", "/weather/route-analysis", json=_route_body(start, end, waypoints)
        )
        try:
            current = None
            if data.get("current"):
                # route-analysis reports visibility in kilometers
                current = parse_weather_sample(data["current"], start, visibility_in_km=True)
            forecast = [
                DailyForecast(
                    date=date.fromisoformat(str(item["date"])[:10]),
                    temperature_min=float(item["temperatureMin"]),
                    temperature_max=float(item["temperatureMax"]),
                    humidity=float(item.get("humidity", 0.0)),
                    wind_speed=float(item.get("windSpeed", 0.0)),
                    description=item.get("description") or "",
                    icon=item.get("icon") or "",
                )
                for item in data.get("forecast") or []
            ]
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
            raise RiskAssessmentError(f"Malformed route analysis payload: {exc}") from exc
        return current, forecast

    async def fetch_risk_assessment(
        self, start: Coordinate, end: Coordinate, waypoints: Sequence[Coordinate] = ()
    ) -> RiskAssessment:
        """Provider-computed assessment for the route."""
        data = await self._request(
            "POST", "/weather/risk-assessment", json=_route_body(start, end, waypoints)
        )
        try:
            factors = [
                RiskFactor(
                    name=f["name"],
                    impact=min(max(float(f.get("impact", 0)), 0.0), 100.0),
                    description=f.get("description") or "",
                )
                for f in data.get("factors") or []
            ]
            recommendations = list(dict.fromkeys(data.get("recommendations") or []))
            overall = min(max(float(data.get("overallRisk") or 0), 0.0), 100.0)
        except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
            raise RiskAssessmentError(f"Malformed risk assessment payload: {exc}") from exc
        return RiskAssessment(overall_risk=overall, factors=factors, recommendations=recommendations)
