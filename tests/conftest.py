"""Shared fixtures: a hand-driven executor and canned collector payloads."""

from __future__ import annotations

import datetime as dt

import pytest

from telemetry import PowerReading, Sample, TelemetryPayload
from time_range import TZ_BERLIN, TimeRange, to_epoch_ms


class ManualExecutor:
    """Executor stand-in: submitted work runs only when the test says so."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def submit(self, fn, *args, **kwargs):
        self.calls.append((fn, args, kwargs))

    def run(self, index: int = 0) -> None:
        fn, args, kwargs = self.calls.pop(index)
        fn(*args, **kwargs)

    def run_all(self) -> None:
        while self.calls:
            self.run(0)


class RecordingFetcher:
    def __init__(self, responses=None) -> None:
        self.requested: list[TimeRange] = []
        self.responses = responses or {}

    def __call__(self, key: TimeRange) -> TelemetryPayload:
        self.requested.append(key)
        result = self.responses.get(key, TelemetryPayload())
        if isinstance(result, Exception):
            raise result
        return result


def local_ms(year, month, day, hour=0, minute=0) -> int:
    return to_epoch_ms(TZ_BERLIN.localize(dt.datetime(year, month, day, hour, minute)))


def reading(pv=0.0, from_grid=0.0, to_grid=0.0, used=0.0) -> PowerReading:
    return PowerReading(power_pv=pv, power_from_grid=from_grid, power_to_grid=to_grid, power_used=used)


@pytest.fixture()
def executor() -> ManualExecutor:
    return ManualExecutor()


@pytest.fixture()
def day_range() -> TimeRange:
    return TimeRange(start=local_ms(2024, 6, 1), end=local_ms(2024, 6, 1, 23, 59))


@pytest.fixture()
def day_payload() -> TelemetryPayload:
    """Three samples on 2024-06-01 at 08:00, 12:00 and 16:00."""
    return TelemetryPayload(
        values=(
            Sample(local_ms(2024, 6, 1, 8), reading(pv=500, used=800, from_grid=300)),
            Sample(local_ms(2024, 6, 1, 12), reading(pv=4000, used=1000, to_grid=3000)),
            Sample(local_ms(2024, 6, 1, 16), reading(pv=1200, used=999, to_grid=201)),
        ),
        energy_kwh=reading(pv=12.5, from_grid=0.4, to_grid=8.1, used=4.8),
        maxes=reading(pv=4000, from_grid=300, to_grid=3000, used=1000),
    )


def payload_json(payload: TelemetryPayload) -> dict:
    def _r(r: PowerReading) -> dict:
        return {
            "power_pv": r.power_pv,
            "power_from_grid": r.power_from_grid,
            "power_to_grid": r.power_to_grid,
            "power_used": r.power_used,
        }

    body = {"values": [[s.timestamp, _r(s.reading)] for s in payload.values]}
    if payload.energy_kwh is not None:
        body["energy_kwh"] = _r(payload.energy_kwh)
    if payload.maxes is not None:
        body["maxes"] = _r(payload.maxes)
    return body
