"""
Hazard correlation: attaches hazard warnings to timeline points by time.

A warning belongs to every point whose ETA is within the correlation window
of the warning's start time:

    |warning.time_start - point.estimated_time| <= window

One warning can attach to several points and one point can collect several
warnings. Warnings keep the order the provider returned them in.
"""

from datetime import timedelta
from typing import List, Optional, Sequence

from . import config
from .errors import RiskAssessmentError
from .models import CorrelatedPoint, HazardWarning, TimelinePoint, WeatherSample


def correlation_window(minutes: Optional[float] = None) -> timedelta:
    return timedelta(minutes=config.HAZARD_WINDOW_MIN if minutes is None else minutes)


def hazards_near(
    point: TimelinePoint,
    hazards: Sequence[HazardWarning],
    window: timedelta,
) -> List[HazardWarning]:
    return [h for h in hazards if abs(h.time_start - point.estimated_time) <= window]


def correlate(
    timeline: Sequence[TimelinePoint],
    weather: Sequence[WeatherSample],
    hazards: Sequence[HazardWarning],
    window: Optional[timedelta] = None,
) -> List[CorrelatedPoint]:
    if len(timeline) != len(weather):
        raise RiskAssessmentError(
            f"Cannot correlate {len(weather)} weather samples with {len(timeline)} timeline points"
        )
    window = window if window is not None else correlation_window()
    return [
        CorrelatedPoint(point=point, weather=sample, hazards=hazards_near(point, hazards, window))
        for point, sample in zip(timeline, weather)
    ]


def matched_hazards(
    hazards: Sequence[HazardWarning], correlated: Sequence[CorrelatedPoint]
) -> List[HazardWarning]:
    """Hazards attached to at least one point, in provider order."""
    attached = {h for cp in correlated for h in cp.hazards}
    return [h for h in hazards if h in attached]
