"""
Route weather-risk pipeline:

  RoutePlan -> sample -> (forecast | hazards | current weather) -> correlate
            -> score -> recommendations

Validation and sampling run before any network call. The three gateway calls
run concurrently and each has its own failure policy:

- forecast: synthetic weather when the provider is unreachable/not provisioned
  and synthetic fallback is enabled, otherwise the error propagates
- hazards: an unavailable provider or a malformed payload means "no known hazards"
- current weather: an unavailable provider or a malformed payload means no
  current-location blend

A rejected request (4xx) always propagates.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence, Tuple

from . import config
from .cache import AssessmentCache
from .correlator import correlate, correlation_window, matched_hazards
from .errors import GatewayUnavailableError, RiskAssessmentError
from .fallback import FallbackSynthesizer
from .gateway import WeatherGateway
from .models import (
    Coordinate,
    HazardWarning,
    RiskAssessment,
    RoutePlan,
    RouteWeatherReport,
    TimelinePoint,
    WeatherAnalysis,
    WeatherSample,
)
from .sampler import sample
from .scoring import score

logger = logging.getLogger(__name__)


async def _nothing() -> None:
    return None


def _reraise_cancellation(result: Any) -> None:
    if isinstance(result, BaseException) and not isinstance(result, Exception):
        raise result


class RouteWeatherEngine:
    def __init__(
        self,
        gateway: WeatherGateway,
        cache: Optional[AssessmentCache] = None,
        use_synthetic_fallback: Optional[bool] = None,
        synthesizer: Optional[FallbackSynthesizer] = None,
        hazard_window: Optional[timedelta] = None,
    ) -> None:
        self.gateway = gateway
        self.cache = cache
        self.use_synthetic_fallback = (
            config.USE_SYNTHETIC_FALLBACK if use_synthetic_fallback is None else use_synthetic_fallback
        )
        self.synthesizer = synthesizer or FallbackSynthesizer()
        self.hazard_window = hazard_window if hazard_window is not None else correlation_window()

    def _can_synthesize(self, exc: BaseException) -> bool:
        return (
            self.use_synthetic_fallback
            and isinstance(exc, GatewayUnavailableError)
            and exc.fallback_eligible
        )

    def _resolve_forecast(
        self, result: Any, timeline: Sequence[TimelinePoint]
    ) -> Tuple[List[WeatherSample], bool]:
        if not isinstance(result, BaseException):
            return result, False
        if self._can_synthesize(result):
            logger.warning(f"Forecast unavailable ({result}); using synthetic weather")
            return self.synthesizer.timeline(timeline), True
        raise result

    def _resolve_hazards(self, result: Any) -> List[HazardWarning]:
        if not isinstance(result, BaseException):
            return result
        if isinstance(result, (GatewayUnavailableError, RiskAssessmentError)):
            logger.warning(f"Hazard warnings unavailable ({result}); assuming no known hazards")
            return []
        raise result

    def _resolve_current(self, result: Any) -> Optional[WeatherSample]:
        if not isinstance(result, BaseException):
            return result
        if isinstance(result, (GatewayUnavailableError, RiskAssessmentError)):
            logger.warning(f"Current weather unavailable ({result}); scoring from route forecast")
            return None
        raise result

    async def build_report(
        self,
        route: RoutePlan,
        departure_time: Optional[datetime] = None,
        current_location: Optional[Coordinate] = None,
        point_count: Optional[int] = None,
        use_cache: bool = True,
    ) -> RouteWeatherReport:
        if departure_time is not None:
            route = RoutePlan.model_validate({**route.model_dump(), "departure_time": departure_time})

        timeline = sample(route, point_count)

        route_key, departure = route.cache_key()
        cache_key = (route_key, departure, current_location, point_count)
        if use_cache and self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        logger.info(
            f"Assessing route {route_key} departing {departure.isoformat()} "
            f"over {len(timeline)} points"
        )
        results = await asyncio.gather(
            self.gateway.fetch_forecast(timeline, departure),
            self.gateway.fetch_hazards(timeline, departure),
            self.gateway.fetch_current(current_location) if current_location else _nothing(),
            return_exceptions=True,
        )
        for r in results:
            _reraise_cancellation(r)

        weather, synthetic = self._resolve_forecast(results[0], timeline)
        hazards = self._resolve_hazards(results[1])
        current = self._resolve_current(results[2])

        correlated = [
            cp.model_copy(update={"assessment": score(cp.weather, cp.hazards)})
            for cp in correlate(timeline, weather, hazards, self.hazard_window)
        ]
        matched = matched_hazards(hazards, correlated)
        representative = current if current is not None else weather[0]

        assessment = score(representative, matched)
        if synthetic and not assessment.synthetic:
            assessment = assessment.model_copy(update={"synthetic": True})

        report = RouteWeatherReport(
            route_id=route_key,
            departure_time=departure,
            timeline=correlated,
            current=current,
            hazards=hazards,
            assessment=assessment,
            generated_at=datetime.now(timezone.utc),
            synthetic=synthetic,
        )
        logger.info(
            f"Route {route_key}: risk {assessment.overall_risk:.0f} ({assessment.band.label}), "
            f"{len(matched)}/{len(hazards)} hazards on timeline"
            + (", synthetic weather" if synthetic else "")
        )

        if self.cache is not None and not synthetic:
            self.cache.put(cache_key, report)
        return report

    async def get_route_weather_risk(
        self,
        route: RoutePlan,
        departure_time: Optional[datetime] = None,
        current_location: Optional[Coordinate] = None,
    ) -> RiskAssessment:
        report = await self.build_report(route, departure_time, current_location)
        return report.assessment

    async def analyze_route_weather(
        self,
        start: Coordinate,
        end: Coordinate,
        waypoints: Sequence[Coordinate] = (),
    ) -> WeatherAnalysis:
        """Provider route analysis plus provider risk assessment, with local fallbacks."""
        analysis, provider_risk = await asyncio.gather(
            self.gateway.analyze_route(start, end, waypoints),
            self.gateway.fetch_risk_assessment(start, end, waypoints),
            return_exceptions=True,
        )
        _reraise_cancellation(analysis)
        _reraise_cancellation(provider_risk)

        if isinstance(analysis, BaseException):
            if not self._can_synthesize(analysis):
                raise analysis
            logger.warning(f"Route analysis unavailable ({analysis}); using synthetic weather")
            current = self.synthesizer.current(start)
            return WeatherAnalysis(
                current=current,
                forecast=self.synthesizer.daily_forecast(),
                assessment=score(current),
                synthetic=True,
            )

        current, forecast = analysis
        if isinstance(provider_risk, BaseException):
            if not isinstance(provider_risk, GatewayUnavailableError):
                raise provider_risk
            logger.warning(f"Provider risk assessment unavailable ({provider_risk}); scoring locally")
            provider_risk = score(current)
        return WeatherAnalysis(current=current, forecast=forecast, assessment=provider_risk)
