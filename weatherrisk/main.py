import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from weatherrisk import config
from weatherrisk.cache import AssessmentCache
from weatherrisk.engine import RouteWeatherEngine
from weatherrisk.errors import (
    GatewayRejectedError,
    GatewayUnavailableError,
    InvalidRouteError,
    RiskAssessmentError,
    WeatherRiskError,
)
from weatherrisk.gateway import WeatherGateway
from weatherrisk.geo import decode_polyline
from weatherrisk.models import (
    Coordinate,
    RiskBandResponse,
    RouteAnalysisRequest,
    RoutePlan,
    RouteRiskRequest,
    RouteWeatherReport,
    WeatherAnalysis,
    risk_band,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    gateway = WeatherGateway()
    app.state.engine = RouteWeatherEngine(gateway, cache=AssessmentCache())
    logger.info(f"Weather provider: {gateway.base_url}")
    try:
        yield
    finally:
        await gateway.close()


app = FastAPI(title="Route Weather Risk", version="0.1.0", lifespan=lifespan)

# CORS: allow dashboard dev server, adjust via CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_engine(request: Request) -> RouteWeatherEngine:
    return request.app.state.engine


def _to_coordinates_list(payload: RouteRiskRequest) -> List[Coordinate]:
    if payload.coordinates:
        return list(payload.coordinates)
    if payload.polyline:
        try:
            return [Coordinate(lat=lat, lon=lon) for lat, lon in decode_polyline(payload.polyline)]
        except (ValueError, ValidationError) as exc:
            raise InvalidRouteError(f"Invalid polyline geometry: {exc}") from exc
    raise InvalidRouteError("Either coordinates or polyline is required")


def _to_route_plan(payload: RouteRiskRequest) -> RoutePlan:
    return RoutePlan(
        coordinates=_to_coordinates_list(payload),
        distance_m=payload.distance_m,
        duration_s=payload.duration_s,
        departure_time=payload.departure_time or datetime.now(timezone.utc),
        route_id=payload.route_id,
    )


def _to_http_error(exc: WeatherRiskError) -> HTTPException:
    if isinstance(exc, InvalidRouteError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, GatewayRejectedError):
        return HTTPException(status_code=502, detail=exc.provider_message)
    if isinstance(exc, GatewayUnavailableError):
        return HTTPException(status_code=503, detail=str(exc))
    if isinstance(exc, RiskAssessmentError):
        return HTTPException(status_code=500, detail=str(exc))
    return HTTPException(status_code=500, detail=f"Risk assessment failed: {exc}")


@app.post("/api/route-weather-risk", response_model=RouteWeatherReport)
async def route_weather_risk(
    payload: RouteRiskRequest,
    engine: RouteWeatherEngine = Depends(get_engine),
) -> RouteWeatherReport:
    """
    Weather timeline, correlated hazards and aggregate risk for a planned route.

    The route is validated and sampled before the provider is contacted, so a
    malformed route never costs a network call.
    """
    try:
        route = _to_route_plan(payload)
        return await engine.build_report(
            route,
            current_location=payload.current_location,
            point_count=payload.point_count,
        )
    except WeatherRiskError as exc:
        logger.warning(f"Route weather risk request failed: {exc}")
        raise _to_http_error(exc) from exc


@app.post("/api/route-analysis", response_model=WeatherAnalysis)
async def route_analysis(
    payload: RouteAnalysisRequest,
    engine: RouteWeatherEngine = Depends(get_engine),
) -> WeatherAnalysis:
    try:
        return await engine.analyze_route_weather(payload.start, payload.end, payload.waypoints)
    except WeatherRiskError as exc:
        logger.warning(f"Route analysis request failed: {exc}")
        raise _to_http_error(exc) from exc


@app.get("/api/risk-band", response_model=RiskBandResponse)
async def get_risk_band(score: float = Query(..., ge=0, le=100)) -> RiskBandResponse:
    band = risk_band(score)
    return RiskBandResponse(score=score, band=band, label=band.label)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("weatherrisk.main:app", host=config.APP_HOST, port=config.APP_PORT)
