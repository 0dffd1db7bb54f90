"""
Synthetic weather for when the provider cannot be reached.

Values are random but always in plausible ranges:
- temperature -10..20 °C
- humidity 40..80 %
- wind 0..15 m/s
- visibility 5..15 km
Every sample is flagged `synthetic` so callers can label the result.
"""

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from .models import (
    Coordinate,
    DailyForecast,
    TimelinePoint,
    WeatherCondition,
    WeatherSample,
    condition_label,
)

logger = logging.getLogger(__name__)

_SYNTHETIC_CONDITIONS = (
    WeatherCondition.CLEAR,
    WeatherCondition.CLOUDS,
    WeatherCondition.RAIN,
    WeatherCondition.SNOW,
)


class FallbackSynthesizer:
    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def sample(self, coordinate: Optional[Coordinate], timestamp: datetime) -> WeatherSample:
        rng = self._rng
        condition = rng.choice(_SYNTHETIC_CONDITIONS)
        return WeatherSample(
            timestamp=timestamp,
            coordinate=coordinate,
            temperature=round(rng.uniform(-10, 20)),
            humidity=round(rng.uniform(40, 80)),
            wind_speed=round(rng.uniform(0, 15)),
            visibility=round(rng.uniform(5, 15)) * 1000.0,
            pressure=round(rng.uniform(995, 1030)),
            condition=condition,
            description=f"{condition_label(condition)} (synthetic)",
            synthetic=True,
        )

    def current(self, coordinate: Optional[Coordinate]) -> WeatherSample:
        return self.sample(coordinate, datetime.now(timezone.utc))

    def timeline(self, points: Sequence[TimelinePoint]) -> List[WeatherSample]:
        logger.warning(f"Synthesizing weather for {len(points)} timeline points")
        return [self.sample(p.coordinate, p.estimated_time) for p in points]

    def daily_forecast(self, days: int = 5, start: Optional[datetime] = None) -> List[DailyForecast]:
        rng = self._rng
        base = (start or datetime.now(timezone.utc)).date()
        forecast: List[DailyForecast] = []
        for i in range(days):
            condition = rng.choice(_SYNTHETIC_CONDITIONS)
            forecast.append(
                DailyForecast(
                    date=base + timedelta(days=i),
                    temperature_min=round(rng.uniform(-5, 15)),
                    temperature_max=round(rng.uniform(5, 25)),
                    humidity=round(rng.uniform(40, 80)),
                    wind_speed=round(rng.uniform(0, 15)),
                    description=f"{condition_label(condition)} (synthetic)",
                    icon="01d",
                    synthetic=True,
                )
            )
        return forecast
