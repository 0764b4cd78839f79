from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import pandas as pd

POWER_FIELDS = ("power_pv", "power_from_grid", "power_to_grid", "power_used")


class TelemetryError(Exception):
    """Base class for failures while retrieving telemetry."""


class NetworkFailure(TelemetryError):
    """Transport error or non-2xx answer from the collector."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponse(TelemetryError):
    """Body present but not shaped like a values-with-stats response."""


@dataclass(frozen=True)
class PowerReading:
    power_pv: float
    power_from_grid: float
    power_to_grid: float
    power_used: float

    @classmethod
    def from_json(cls, raw: Any, where: str) -> "PowerReading":
        if not isinstance(raw, Mapping):
            raise MalformedResponse(f"{where}: expected an object, got {type(raw).__name__}")
        values = {}
        for name in POWER_FIELDS:
            if name not in raw:
                raise MalformedResponse(f"{where}: missing field '{name}'")
            val = raw[name]
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise MalformedResponse(f"{where}.{name}: not a number ({val!r})")
            values[name] = float(val)
        return cls(**values)


@dataclass(frozen=True)
class Sample:
    timestamp: int
    reading: PowerReading


@dataclass(frozen=True)
class TelemetryPayload:
    values: tuple[Sample, ...] = ()
    energy_kwh: Optional[PowerReading] = None
    maxes: Optional[PowerReading] = None
    average: Optional[PowerReading] = None

    @property
    def latest(self) -> Optional[Sample]:
        return self.values[-1] if self.values else None


@dataclass(frozen=True)
class SeriesColumns:
    """Per-series columns in kW, index-aligned with `timestamps`."""

    timestamps: list[int] = field(default_factory=list)
    power_pv: list[float] = field(default_factory=list)
    power_from_grid: list[float] = field(default_factory=list)
    power_to_grid: list[float] = field(default_factory=list)
    power_used: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.timestamps)

    def to_frame(self, tz: str = "Europe/Berlin") -> pd.DataFrame:
        df = pd.DataFrame({name: getattr(self, name) for name in POWER_FIELDS}, dtype=float)
        df.insert(0, "ts", pd.to_datetime(pd.Series(self.timestamps, dtype="int64"), unit="ms", utc=True).dt.tz_convert(tz))
        return df


def _parse_sample(raw: Any, idx: int) -> Sample:
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise MalformedResponse(f"values[{idx}]: expected [timestamp, reading]")
    ts, reading = raw
    if isinstance(ts, bool) or not isinstance(ts, int):
        raise MalformedResponse(f"values[{idx}]: timestamp must be an integer ({ts!r})")
    return Sample(timestamp=ts, reading=PowerReading.from_json(reading, f"values[{idx}]"))


def parse_payload(data: Any) -> TelemetryPayload:
    """
    Validate a decoded values-with-stats body and convert it to a TelemetryPayload.

    The collector answers an empty window with `{ }`; that becomes an empty payload.
    Sample order is taken as delivered.
    """
    if not isinstance(data, Mapping):
        raise MalformedResponse(f"expected a JSON object, got {type(data).__name__}")
    if not data:
        return TelemetryPayload()
    if "values" not in data:
        raise MalformedResponse("missing 'values'")
    values = data["values"]
    if not isinstance(values, list):
        raise MalformedResponse("'values' must be a list")

    samples = tuple(_parse_sample(raw, i) for i, raw in enumerate(values))

    def _optional(name: str) -> Optional[PowerReading]:
        raw = data.get(name)
        return None if raw is None else PowerReading.from_json(raw, name)

    return TelemetryPayload(
        values=samples,
        energy_kwh=_optional("energy_kwh"),
        maxes=_optional("maxes"),
        average=_optional("average"),
    )


def unpack(samples: Sequence[Sample]) -> SeriesColumns:
    """Split samples into columns, converting W to kW. No filtering or gap filling."""
    columns = SeriesColumns()
    for sample in samples:
        columns.timestamps.append(sample.timestamp)
        for name in POWER_FIELDS:
            getattr(columns, name).append(getattr(sample.reading, name) / 1000.0)
    return columns
