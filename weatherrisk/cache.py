import logging
import time
from typing import Callable, Dict, Hashable, Optional, Tuple

from . import config
from .models import RouteWeatherReport

logger = logging.getLogger(__name__)


class AssessmentCache:
    """
    Last good report per (route key, departure time), valid for `ttl_s` seconds.

    Entries are replaced whole; a report is never merged into an older one.
    """

    def __init__(self, ttl_s: Optional[float] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_s = config.CACHE_TTL_S if ttl_s is None else ttl_s
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, RouteWeatherReport]] = {}

    def get(self, key: Hashable) -> Optional[RouteWeatherReport]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, report = entry
        if self._clock() - stored_at >= self.ttl_s:
            del self._entries[key]
            return None
        logger.debug(f"Assessment cache hit for {key}")
        return report

    def put(self, key: Hashable, report: RouteWeatherReport) -> None:
        self._entries[key] = (self._clock(), report)

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
