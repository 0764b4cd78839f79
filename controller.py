"""Dashboard controller: owns the current TimeRange and derives what the views show."""
from __future__ import annotations

import datetime as dt
import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

import pytz

from labels import axis_formatter, value_label
from telemetry import PowerReading, SeriesColumns, TelemetryPayload, unpack
from telemetry_cache import CacheState, Error, Pending, Success, TelemetryCache
from time_range import TZ_BERLIN, TimeRange

logger = logging.getLogger(__name__)

NO_VALUE = "–"
READING_CAPTIONS = {
    "power_pv": "PV",
    "power_used": "Usage",
    "power_to_grid": "To Grid",
    "power_from_grid": "From Grid",
}


class DashboardStatus(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    DISPLAYING = "displaying"
    FAILED = "failed"


@dataclass(frozen=True)
class SummaryLabels:
    title: str
    labels: dict[str, str]


@dataclass(frozen=True)
class DashboardView:
    status: DashboardStatus
    time_range: TimeRange
    columns: SeriesColumns = field(default_factory=SeriesColumns)
    axis_formatter: Optional[Callable[[int], str]] = None
    summaries: tuple[SummaryLabels, ...] = ()
    error: Optional[str] = None

    @property
    def has_samples(self) -> bool:
        return len(self.columns) > 0


def reading_labels(reading: Optional[PowerReading], unit: str = "W", scale: float = 1.0) -> dict[str, str]:
    if reading is None:
        return {caption: NO_VALUE for caption in READING_CAPTIONS.values()}
    return {
        caption: value_label(getattr(reading, name) * scale, unit)
        for name, caption in READING_CAPTIONS.items()
    }


def build_summaries(payload: TelemetryPayload) -> tuple[SummaryLabels, ...]:
    latest = payload.latest
    summaries = [
        SummaryLabels("Current Power Flow", reading_labels(latest.reading if latest else None)),
        # energy arrives in kWh; label it as Wh so the kilo prefix lands on "kWh"
        SummaryLabels("Energy", reading_labels(payload.energy_kwh, unit="Wh", scale=1000.0)),
        SummaryLabels("Maximal Power", reading_labels(payload.maxes)),
    ]
    if payload.average is not None:
        summaries.append(SummaryLabels("Average Power", reading_labels(payload.average)))
    return tuple(summaries)


class DashboardController:
    """
    Idle -> Loading -> {Displaying, Failed}; every range change re-enters Loading.

    The view is always derived from the cache entry of the *current* range, so a
    response that arrives for a range the user already left is stored in the cache
    but never shown.
    """

    def __init__(
        self,
        cache: TelemetryCache,
        time_range: Optional[TimeRange] = None,
        tz=TZ_BERLIN,
        on_change: Optional[Callable[[DashboardView], None]] = None,
    ):
        self._cache = cache
        self._tz = pytz.timezone(tz) if isinstance(tz, str) else tz
        self._time_range = time_range or TimeRange.today(self._tz)
        self._requested = False
        self._on_change = on_change
        # reentrant: range changes, resolutions and on_change pushes are serialised
        # through this lock, and a synchronous executor may resolve inside set_range
        self._lock = threading.RLock()
        self._unsubscribe = cache.subscribe(self._on_resolved)

    @property
    def time_range(self) -> TimeRange:
        return self._time_range

    @property
    def tz(self):
        return self._tz

    @property
    def status(self) -> DashboardStatus:
        return self.view().status

    def start(self) -> DashboardView:
        return self.set_range(self._time_range)

    def set_range(self, time_range: TimeRange) -> DashboardView:
        if time_range.is_inverted:
            logger.info("Selected range starts after it ends: %s", time_range.describe(self._tz))
        with self._lock:
            self._time_range = time_range
            self._requested = True
            self._cache.get(time_range)
            view = self.view()
            self._notify(view)
        return view

    def select_start(self, day: dt.date) -> DashboardView:
        return self.set_range(self._time_range.with_start(day, self._tz))

    def select_end(self, day: dt.date) -> DashboardView:
        return self.set_range(self._time_range.with_end(day, self._tz))

    def shift_days(self, n: int) -> DashboardView:
        return self.set_range(self._time_range.shift_by_days(n))

    def show_today(self) -> DashboardView:
        return self.set_range(TimeRange.today(self._tz))

    def reload(self) -> DashboardView:
        """Explicit re-fetch of the current range, also after a failure."""
        with self._lock:
            self._cache.refresh(self._time_range)
            view = self.view()
            self._notify(view)
        return view

    def view(self) -> DashboardView:
        with self._lock:
            time_range = self._time_range
            requested = self._requested
        if not requested:
            return DashboardView(DashboardStatus.IDLE, time_range)
        return self._derive(time_range, self._cache.peek(time_range))

    def close(self) -> None:
        self._unsubscribe()

    def _derive(self, time_range: TimeRange, state: Optional[CacheState]) -> DashboardView:
        if state is None or isinstance(state, Pending):
            return DashboardView(DashboardStatus.LOADING, time_range)
        if isinstance(state, Error):
            return DashboardView(DashboardStatus.FAILED, time_range, error=state.reason)
        if isinstance(state, Success):
            columns = unpack(state.payload.values)
            return DashboardView(
                status=DashboardStatus.DISPLAYING,
                time_range=time_range,
                columns=columns,
                axis_formatter=axis_formatter(columns.timestamps, self._tz),
                summaries=build_summaries(state.payload),
            )
        raise TypeError(f"Unknown cache state: {state!r}")

    def _on_resolved(self, key: TimeRange, state: CacheState) -> None:
        with self._lock:
            if key != self._time_range:
                logger.debug("Ignoring %s for superseded range %s", type(state).__name__, key)
                return
            self._notify(self._derive(key, state))

    def _notify(self, view: DashboardView) -> None:
        if self._on_change is not None:
            self._on_change(view)
