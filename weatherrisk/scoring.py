"""
Risk scoring for a single weather sample plus the hazards that apply to it.

Two independent paths are summed and clamped to 100:

1. Condition factors from the sample (thresholds below). A provider-supplied
   risk score, when the sample carries one, stands in for the threshold
   factors.
2. A fixed contribution per hazard warning by severity.
"""

from typing import Dict, List, Optional, Sequence

from .models import (
    HazardWarning,
    RiskAssessment,
    RiskFactor,
    Severity,
    WeatherCondition,
    WeatherSample,
)
from .recommendations import recommend

MAX_RISK = 100.0

LOW_TEMPERATURE_C = -10.0
HIGH_TEMPERATURE_C = 35.0
STRONG_WIND_MS = 10.0
LOW_VISIBILITY_M = 5000.0
HIGH_HUMIDITY_PCT = 80.0

SEVERITY_POINTS: Dict[Severity, float] = {
    Severity.LOW: 10.0,
    Severity.MEDIUM: 25.0,
    Severity.HIGH: 40.0,
    Severity.EXTREME: 60.0,
}

# Listed for context only; they carry no score of their own
_CONDITION_NOTES = {
    WeatherCondition.RAIN: ("Precipitation", "Rain can reduce visibility and road grip"),
    WeatherCondition.DRIZZLE: ("Precipitation", "Rain can reduce visibility and road grip"),
    WeatherCondition.SNOW: ("Snowfall", "Snow makes road conditions hazardous"),
    WeatherCondition.ICE: ("Icy road", "Black ice reduces braking grip"),
    WeatherCondition.FOG: ("Fog", "Fog limits how far ahead the driver can see"),
    WeatherCondition.STORM: ("Storm", "Storm conditions along the route"),
    WeatherCondition.THUNDERSTORM: ("Storm", "Thunderstorm activity along the route"),
}


def _threshold_factors(sample: WeatherSample) -> List[RiskFactor]:
    factors: List[RiskFactor] = []
    if sample.temperature < LOW_TEMPERATURE_C:
        factors.append(RiskFactor(name="Low temperature", impact=30, description="Road icing risk"))
    elif sample.temperature > HIGH_TEMPERATURE_C:
        factors.append(RiskFactor(name="High temperature", impact=15, description="Engine overheating risk"))
    if sample.wind_speed > STRONG_WIND_MS:
        factors.append(RiskFactor(name="Strong wind", impact=25, description="Vehicle handling is harder"))
    if sample.visibility is not None and sample.visibility < LOW_VISIBILITY_M:
        factors.append(RiskFactor(name="Low visibility", impact=40, description="Limited visibility on the road"))
    if sample.humidity > HIGH_HUMIDITY_PCT:
        factors.append(RiskFactor(name="High humidity", impact=10, description="Fog may form"))
    return factors


def condition_factors(sample: WeatherSample) -> List[RiskFactor]:
    if sample.risk_score is not None:
        factors = [
            RiskFactor(
                name="Reported conditions",
                impact=min(max(sample.risk_score, 0.0), MAX_RISK),
                description=sample.risk_description or sample.risk_level or "Provider risk score",
            )
        ]
    else:
        factors = _threshold_factors(sample)

    note = _CONDITION_NOTES.get(sample.condition)
    if note is not None:
        factors.append(RiskFactor(name=note[0], impact=0, description=note[1]))
    return factors


def hazard_points(hazards: Sequence[HazardWarning]) -> float:
    return sum(SEVERITY_POINTS[h.severity] for h in hazards)


def score(current: Optional[WeatherSample], hazards: Sequence[HazardWarning] = ()) -> RiskAssessment:
    """Aggregate risk for one representative sample and its hazards."""
    factors = condition_factors(current) if current is not None else []
    total = sum(f.impact for f in factors) + hazard_points(hazards)
    overall = min(MAX_RISK, total)
    return RiskAssessment(
        overall_risk=overall,
        factors=factors,
        recommendations=recommend(factors, overall, hazards),
        synthetic=bool(current is not None and current.synthetic),
    )
