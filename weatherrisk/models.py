import hashlib
import logging
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field, field_validator

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180, validation_alias=AliasChoices("lon", "lng"))

    def as_tuple(self) -> Tuple[float, float]:
        return (self.lat, self.lon)


class WeatherCondition(str, Enum):
    CLEAR = "CLEAR"
    CLOUDS = "CLOUDS"
    RAIN = "RAIN"
    DRIZZLE = "DRIZZLE"
    SNOW = "SNOW"
    ICE = "ICE"
    FOG = "FOG"
    WIND = "WIND"
    STORM = "STORM"
    THUNDERSTORM = "THUNDERSTORM"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "WeatherCondition":
        if not raw:
            return cls.CLEAR
        key = raw.strip().upper()
        if key in cls.__members__:
            return cls[key]
        if key in _CONDITION_ALIASES:
            return _CONDITION_ALIASES[key]
        logger.warning(f"Unknown weather condition '{raw}', treating as CLOUDS")
        return cls.CLOUDS


_CONDITION_ALIASES = {
    "MIST": WeatherCondition.FOG,
    "HAZE": WeatherCondition.FOG,
    "SMOKE": WeatherCondition.FOG,
    "DUST": WeatherCondition.FOG,
    "SAND": WeatherCondition.FOG,
    "SQUALL": WeatherCondition.STORM,
    "TORNADO": WeatherCondition.STORM,
    "SLEET": WeatherCondition.SNOW,
    "FREEZING_RAIN": WeatherCondition.ICE,
}


def condition_label(condition: WeatherCondition) -> str:
    if condition is WeatherCondition.CLEAR:
        return "Clear"
    if condition is WeatherCondition.CLOUDS:
        return "Cloudy"
    if condition is WeatherCondition.RAIN:
        return "Rain"
    if condition is WeatherCondition.DRIZZLE:
        return "Drizzle"
    if condition is WeatherCondition.SNOW:
        return "Snow"
    if condition is WeatherCondition.ICE:
        return "Black ice"
    if condition is WeatherCondition.FOG:
        return "Fog"
    if condition is WeatherCondition.WIND:
        return "Windy"
    if condition is WeatherCondition.STORM:
        return "Storm"
    if condition is WeatherCondition.THUNDERSTORM:
        return "Thunderstorm"
    raise ValueError(f"Unhandled weather condition: {condition!r}")


class HazardType(str, Enum):
    RAIN = "RAIN"
    SNOW = "SNOW"
    ICE = "ICE"
    FOG = "FOG"
    WIND = "WIND"
    STORM = "STORM"

    @classmethod
    def parse(cls, raw: str) -> "HazardType":
        key = raw.strip().upper()
        if key in cls.__members__:
            return cls[key]
        if key in _HAZARD_ALIASES:
            return _HAZARD_ALIASES[key]
        raise ValueError(f"Unknown hazard type: {raw!r}")


_HAZARD_ALIASES = {
    "HEAVY_RAIN": HazardType.RAIN,
    "HEAVY_SNOW": HazardType.SNOW,
    "ICE_RISK": HazardType.ICE,
    "LOW_VISIBILITY": HazardType.FOG,
    "STRONG_WIND": HazardType.WIND,
}


def hazard_label(hazard_type: HazardType) -> str:
    if hazard_type is HazardType.RAIN:
        return "Heavy rain"
    if hazard_type is HazardType.SNOW:
        return "Heavy snow"
    if hazard_type is HazardType.ICE:
        return "Ice"
    if hazard_type is HazardType.FOG:
        return "Fog"
    if hazard_type is HazardType.WIND:
        return "Strong wind"
    if hazard_type is HazardType.STORM:
        return "Storm"
    raise ValueError(f"Unhandled hazard type: {hazard_type!r}")


_SEVERITY_RANK = {"LOW": 0, "MEDIUM": 1, "HIGH": 2, "EXTREME": 3}


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.value]


class RiskBand(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"

    @property
    def label(self) -> str:
        if self is RiskBand.LOW:
            return "Low"
        if self is RiskBand.MEDIUM:
            return "Medium"
        if self is RiskBand.HIGH:
            return "High"
        return "Critical"


def risk_band(score: float) -> RiskBand:
    """Presentational band for a 0-100 risk score."""
    if score < 25:
        return RiskBand.LOW
    if score < 50:
        return RiskBand.MEDIUM
    if score < 75:
        return RiskBand.HIGH
    return RiskBand.EXTREME


class RoutePlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    coordinates: List[Coordinate]
    distance_m: float
    duration_s: float
    departure_time: datetime
    route_id: Optional[str] = None

    @field_validator("departure_time")
    @classmethod
    def normalize_departure(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def cache_key(self) -> Tuple[str, datetime]:
        if self.route_id:
            return (self.route_id, self.departure_time)
        digest = hashlib.sha1(
            ";".join(f"{c.lat:.5f},{c.lon:.5f}" for c in self.coordinates).encode("utf-8")
        ).hexdigest()[:16]
        return (f"geom:{digest}", self.departure_time)


class TimelinePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    coordinate: Coordinate
    estimated_time: datetime
    distance_from_start: float


class WeatherSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    coordinate: Optional[Coordinate] = None
    temperature: float
    humidity: float
    wind_speed: float
    visibility: Optional[float] = Field(
        default=None, description="Meters; absent means unrestricted visibility."
    )
    pressure: float = 1013.0
    condition: WeatherCondition = WeatherCondition.CLEAR
    description: str = ""
    # Provider-side scoring, preferred over local thresholds when present
    risk_score: Optional[float] = None
    risk_level: Optional[str] = None
    risk_description: Optional[str] = None
    synthetic: bool = False

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class HazardWarning(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: HazardType
    severity: Severity
    time_start: datetime
    time_end: datetime
    coordinate: Optional[Coordinate] = None
    description: str = ""
    recommendation: Optional[str] = None
    distance_from_start: Optional[float] = None

    @field_validator("time_start", "time_end")
    @classmethod
    def normalize_times(cls, value: datetime) -> datetime:
        return _as_utc(value)


class RiskFactor(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    impact: float = Field(ge=0, le=100)
    description: str = ""


class RiskAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall_risk: float = Field(ge=0, le=100)
    factors: List[RiskFactor] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    synthetic: bool = False

    @computed_field
    @property
    def band(self) -> RiskBand:
        return risk_band(self.overall_risk)


class CorrelatedPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    point: TimelinePoint
    weather: WeatherSample
    hazards: List[HazardWarning] = Field(default_factory=list)
    assessment: Optional[RiskAssessment] = None


class RouteWeatherReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    route_id: str
    departure_time: datetime
    timeline: List[CorrelatedPoint]
    current: Optional[WeatherSample] = None
    hazards: List[HazardWarning] = Field(default_factory=list)
    assessment: RiskAssessment
    generated_at: datetime
    synthetic: bool = False


class DailyForecast(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: date
    temperature_min: float
    temperature_max: float
    humidity: float
    wind_speed: float
    description: str = ""
    icon: str = ""
    synthetic: bool = False


class WeatherAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: Optional[WeatherSample] = None
    forecast: List[DailyForecast] = Field(default_factory=list)
    assessment: RiskAssessment
    synthetic: bool = False


class RouteRiskRequest(BaseModel):
    coordinates: Optional[List[Coordinate]] = Field(
        default=None, description="Route geometry as ordered lat/lon points."
    )
    polyline: Optional[str] = Field(
        default=None,
        description="Encoded polyline geometry. Used when coordinates are not given.",
    )
    distance_m: float
    duration_s: float
    departure_time: Optional[datetime] = Field(
        default=None, description="Defaults to the time of the request."
    )
    route_id: Optional[str] = None
    current_location: Optional[Coordinate] = None
    point_count: Optional[int] = None


class RouteAnalysisRequest(BaseModel):
    start: Coordinate
    end: Coordinate
    waypoints: List[Coordinate] = Field(default_factory=list)


class RiskBandResponse(BaseModel):
    score: float
    band: RiskBand
    label: str
