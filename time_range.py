from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Optional, Union

import pytz

TZ_BERLIN = pytz.timezone("Europe/Berlin")
DAY_MS = 86_400_000
EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)

DateLike = Union[dt.date, dt.datetime]


def to_epoch_ms(ts: dt.datetime) -> int:
    """Exact integer milliseconds since the epoch for a tz-aware datetime."""
    if ts.tzinfo is None:
        raise ValueError("Timestamp must be timezone-aware")
    return (ts - EPOCH) // dt.timedelta(milliseconds=1)


def from_epoch_ms(ms: int, tz=TZ_BERLIN) -> dt.datetime:
    return (EPOCH + dt.timedelta(milliseconds=ms)).astimezone(tz)


def _local_date(value: DateLike, tz) -> dt.date:
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None:
            return value.astimezone(tz).date()
        return value.date()
    return value


def start_of_day(value: DateLike, tz=TZ_BERLIN) -> int:
    day = _local_date(value, tz)
    return to_epoch_ms(tz.localize(dt.datetime.combine(day, dt.time.min)))


def end_of_day(value: DateLike, tz=TZ_BERLIN) -> int:
    """Last millisecond of the calendar day (23:59:59.999 local)."""
    day = _local_date(value, tz)
    return to_epoch_ms(tz.localize(dt.datetime.combine(day, dt.time(23, 59, 59, 999000))))


@dataclass(frozen=True)
class TimeRange:
    """Closed window [start, end] in epoch milliseconds; used as the cache key."""

    start: int
    end: int

    @classmethod
    def today(cls, tz=TZ_BERLIN, now: Optional[dt.datetime] = None) -> "TimeRange":
        now = now or dt.datetime.now(tz=tz)
        return cls(start=start_of_day(now, tz), end=end_of_day(now, tz))

    @property
    def duration_ms(self) -> int:
        return self.end - self.start

    @property
    def is_inverted(self) -> bool:
        return self.start > self.end

    def shift_by_days(self, n: int) -> "TimeRange":
        offset = n * DAY_MS
        return TimeRange(start=self.start + offset, end=self.end + offset)

    def with_start(self, value: DateLike, tz=TZ_BERLIN) -> "TimeRange":
        # no ordering check against end; inverted ranges are accepted
        return TimeRange(start=start_of_day(value, tz), end=self.end)

    def with_end(self, value: DateLike, tz=TZ_BERLIN) -> "TimeRange":
        return TimeRange(start=self.start, end=end_of_day(value, tz))

    def start_date(self, tz=TZ_BERLIN) -> dt.date:
        return from_epoch_ms(self.start, tz).date()

    def end_date(self, tz=TZ_BERLIN) -> dt.date:
        return from_epoch_ms(self.end, tz).date()

    def describe(self, tz=TZ_BERLIN) -> str:
        start = from_epoch_ms(self.start, tz)
        end = from_epoch_ms(self.end, tz)
        return f"{start.strftime('%d.%m.%Y %H:%M')} – {end.strftime('%d.%m.%Y %H:%M')}"
