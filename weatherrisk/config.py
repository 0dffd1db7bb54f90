import os
from pathlib import Path
from dotenv import load_dotenv

# Always load .env from the package folder
load_dotenv(Path(__file__).resolve().parent / ".env")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


WEATHER_API_BASE_URL = os.getenv("WEATHER_API_BASE_URL", "http://localhost:8080/api").rstrip("/")
WEATHER_API_TIMEOUT_S = float(os.getenv("WEATHER_API_TIMEOUT_S", "10"))

# Synthetic weather is used instead of a hard failure when the provider is unreachable
USE_SYNTHETIC_FALLBACK = _env_bool("USE_SYNTHETIC_FALLBACK", True)

# Polling period is kept within 5..10 minutes
POLL_INTERVAL_MIN_S = 300.0
POLL_INTERVAL_MAX_S = 600.0
POLL_INTERVAL_S = min(
    max(float(os.getenv("POLL_INTERVAL_S", "600")), POLL_INTERVAL_MIN_S),
    POLL_INTERVAL_MAX_S,
)

CACHE_TTL_S = float(os.getenv("CACHE_TTL_S", "300"))
HAZARD_WINDOW_MIN = float(os.getenv("HAZARD_WINDOW_MIN", "30"))
MAX_TIMELINE_POINTS = int(os.getenv("MAX_TIMELINE_POINTS", "24"))

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
    if o.strip()
]

APP_HOST = os.getenv("APP_HOST", "127.0.0.1")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
