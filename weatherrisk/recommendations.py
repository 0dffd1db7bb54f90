from typing import Iterable, List, Sequence

from .models import HazardWarning, RiskFactor

POSTPONE = "Consider postponing the trip"
KEEP_DISTANCE = "Increase following distance"
CHECK_VEHICLE = "Check vehicle technical condition"
REDUCE_SPEED = "Reduce travel speed"
USE_HEADLIGHTS = "Use headlights and increase attentiveness"

HIGH_RISK_THRESHOLD = 50


def _any_named(factors: Sequence[RiskFactor], keyword: str) -> bool:
    return any(keyword in f.name.lower() for f in factors)


def _dedupe(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(i for i in items if i))


def recommend(
    factors: Sequence[RiskFactor],
    overall_risk: float,
    hazards: Sequence[HazardWarning] = (),
) -> List[str]:
    """Advice derived from triggered factors, plus provider advice from hazards."""
    out: List[str] = []
    if overall_risk > HIGH_RISK_THRESHOLD:
        out.append(POSTPONE)
        out.append(KEEP_DISTANCE)
    if _any_named(factors, "temperature"):
        out.append(CHECK_VEHICLE)
    if _any_named(factors, "wind"):
        out.append(REDUCE_SPEED)
    if _any_named(factors, "visibility"):
        out.append(USE_HEADLIGHTS)
    out.extend(h.recommendation for h in hazards if h.recommendation)
    return _dedupe(out)
