"""
Refresh controller: keeps a route's risk report current.

States: IDLE -> LOADING -> READY | ERROR

- start() loads once (when a route is set) and begins polling
- refresh() re-runs the pipeline; a no-op while already LOADING
- polling re-runs the pipeline every `poll_interval_s` while READY
- stop() cancels polling; an in-flight HTTP call is left to finish

Every run gets a sequence number. When inputs change mid-run the sequence
moves on, the older result is discarded and the pipeline runs again with the
new inputs. The last READY report stays readable while in ERROR.
"""

import asyncio
import contextlib
import logging
from enum import Enum
from typing import Callable, Optional

from . import config
from .engine import RouteWeatherEngine
from .errors import WeatherRiskError
from .models import Coordinate, RiskAssessment, RoutePlan, RouteWeatherReport

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    READY = "READY"
    ERROR = "ERROR"


class RefreshController:
    def __init__(
        self,
        engine: RouteWeatherEngine,
        route: Optional[RoutePlan] = None,
        current_location: Optional[Coordinate] = None,
        poll_interval_s: Optional[float] = None,
        on_update: Optional[Callable[[RouteWeatherReport], None]] = None,
    ) -> None:
        self.engine = engine
        self.poll_interval_s = config.POLL_INTERVAL_S if poll_interval_s is None else poll_interval_s
        self.on_update = on_update
        self._route = route
        self._current_location = current_location
        self._state = RefreshState.IDLE
        self._report: Optional[RouteWeatherReport] = None
        self._error: Optional[WeatherRiskError] = None
        self._seq = 0
        self._poll_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def report(self) -> Optional[RouteWeatherReport]:
        return self._report

    @property
    def assessment(self) -> Optional[RiskAssessment]:
        return self._report.assessment if self._report is not None else None

    @property
    def error(self) -> Optional[WeatherRiskError]:
        return self._error

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def start(self) -> Optional[RouteWeatherReport]:
        if self.polling:
            return self._report
        report = None
        if self._route is not None:
            report = await self._load(use_cache=True)
        self._poll_task = asyncio.create_task(self._poll())
        return report

    async def stop(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def refresh(self) -> Optional[RouteWeatherReport]:
        return await self._load(use_cache=False)

    async def set_route(self, route: RoutePlan) -> Optional[RouteWeatherReport]:
        self._route = route
        return await self._inputs_changed()

    async def set_current_location(self, location: Optional[Coordinate]) -> Optional[RouteWeatherReport]:
        self._current_location = location
        return await self._inputs_changed()

    async def _inputs_changed(self) -> Optional[RouteWeatherReport]:
        if self._state is RefreshState.LOADING:
            # the running load notices the new sequence and re-runs
            self._seq += 1
            return self._report
        return await self._load(use_cache=False)

    async def _load(self, use_cache: bool) -> Optional[RouteWeatherReport]:
        if self._route is None:
            return None
        if self._state is RefreshState.LOADING:
            logger.debug("Refresh requested while loading; ignored")
            return self._report

        self._state = RefreshState.LOADING
        while True:
            self._seq += 1
            seq = self._seq
            try:
                report = await self.engine.build_report(
                    self._route, current_location=self._current_location, use_cache=use_cache
                )
            except WeatherRiskError as exc:
                if seq != self._seq:
                    continue
                self._error = exc
                self._state = RefreshState.ERROR
                logger.warning(f"Route weather refresh failed: {exc}")
                return None
            except BaseException:
                self._state = RefreshState.READY if self._report is not None else RefreshState.IDLE
                raise

            if seq != self._seq:
                logger.debug(f"Discarding stale report #{seq}, inputs changed")
                use_cache = False
                continue

            self._report = report
            self._error = None
            self._state = RefreshState.READY
            if self.on_update is not None:
                self.on_update(report)
            return report

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval_s)
            if self._state is not RefreshState.READY:
                continue
            try:
                await self.refresh()
            except Exception:
                logger.exception("Polling refresh failed")
