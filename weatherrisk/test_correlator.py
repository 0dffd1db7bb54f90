from datetime import timedelta

import pytest

from conftest import DEPARTURE
from weatherrisk.correlator import correlate, matched_hazards
from weatherrisk.errors import RiskAssessmentError
from weatherrisk.models import Coordinate, HazardType, HazardWarning, RoutePlan, Severity, WeatherSample
from weatherrisk.sampler import sample


def sample_three():
    """Timeline points at 0, 60 and 120 minutes after departure."""
    route = RoutePlan(
        coordinates=[Coordinate(lat=50.0, lon=30.0), Coordinate(lat=50.5, lon=30.5)],
        distance_m=50000,
        duration_s=7200,
        departure_time=DEPARTURE,
    )
    return sample(route, point_count=3)


def _weather(n):
    return [
        WeatherSample(timestamp=DEPARTURE, temperature=10, humidity=50, wind_speed=2)
        for _ in range(n)
    ]


def _hazard(offset_min, severity=Severity.MEDIUM, hazard_type=HazardType.FOG):
    start = DEPARTURE + timedelta(minutes=offset_min)
    return HazardWarning(
        type=hazard_type,
        severity=severity,
        time_start=start,
        time_end=start + timedelta(hours=1),
        description=f"hazard at +{offset_min}min",
    )


def test_weather_is_joined_by_index(route):
    timeline = sample(route)
    weather = [
        WeatherSample(timestamp=p.estimated_time, temperature=i, humidity=50, wind_speed=2)
        for i, p in enumerate(timeline)
    ]
    correlated = correlate(timeline, weather, [])
    assert [cp.weather.temperature for cp in correlated] == [0, 1, 2]
    assert all(cp.hazards == [] for cp in correlated)


def test_hazard_at_exact_eta_attaches():
    timeline = sample_three()
    hazard = _hazard(60)
    correlated = correlate(timeline, _weather(3), [hazard])
    assert correlated[1].hazards == [hazard]


def test_hazard_31_minutes_off_does_not_attach():
    timeline = sample_three()
    hazard = _hazard(60 + 31)
    correlated = correlate(timeline, _weather(3), [hazard])
    assert correlated[1].hazards == []


def test_window_boundary_is_inclusive():
    timeline = sample_three()
    hazard = _hazard(30)
    correlated = correlate(timeline, _weather(3), [hazard])
    assert correlated[0].hazards == [hazard]
    assert correlated[1].hazards == [hazard]
    assert correlated[2].hazards == []


def test_hazards_keep_provider_order():
    timeline = sample_three()
    first = _hazard(65, Severity.LOW, HazardType.RAIN)
    second = _hazard(55, Severity.EXTREME, HazardType.STORM)
    correlated = correlate(timeline, _weather(3), [first, second])
    assert correlated[1].hazards == [first, second]


def test_correlate_does_not_mutate_inputs():
    timeline = sample_three()
    weather = _weather(3)
    hazards = [_hazard(0), _hazard(120)]
    before = (list(timeline), list(weather), list(hazards))
    correlate(timeline, weather, hazards)
    assert (timeline, weather, hazards) == before


def test_length_mismatch_rejected():
    with pytest.raises(RiskAssessmentError):
        correlate(sample_three(), _weather(2), [])


def test_matched_hazards_only_returns_attached_ones():
    timeline = sample_three()
    far = _hazard(600)
    near = _hazard(5)
    hazards = [far, near]
    correlated = correlate(timeline, _weather(3), hazards)
    assert matched_hazards(hazards, correlated) == [near]
