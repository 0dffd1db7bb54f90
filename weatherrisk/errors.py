"""Exception taxonomy for the weather-risk pipeline."""

from typing import Optional


class WeatherRiskError(Exception):
    """Base class for every error raised by the engine."""


class InvalidRouteError(WeatherRiskError):
    """Route input is malformed; raised before any network call."""


class GatewayUnavailableError(WeatherRiskError):
    """
    The weather provider could not be reached or failed on its side.

    `reason` is one of "unreachable", "timeout", "not_found" or "server".
    Only "unreachable" and "not_found" are eligible for synthetic fallback.
    """

    FALLBACK_REASONS = ("unreachable", "not_found")

    def __init__(self, message: str, reason: str = "server", status_code: Optional[int] = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code

    @property
    def fallback_eligible(self) -> bool:
        return self.reason in self.FALLBACK_REASONS


class GatewayRejectedError(WeatherRiskError):
    """The provider refused the request (4xx other than 404)."""

    def __init__(self, status_code: int, provider_message: str):
        super().__init__(f"Weather provider rejected request ({status_code}): {provider_message}")
        self.status_code = status_code
        self.provider_message = provider_message


class RiskAssessmentError(WeatherRiskError):
    """Provider data could not be turned into an assessment."""
