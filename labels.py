from __future__ import annotations

from typing import Callable, Sequence

from time_range import TZ_BERLIN, from_epoch_ms

FMT_WITH_YEAR = "%d.%m.%Y %H:%M"
FMT_WITH_DATE = "%d.%m %H:%M"
FMT_TIME_ONLY = "%H:%M"


def to_precision(value: float, digits: int = 3) -> str:
    """Significant-digit formatting that keeps trailing zeros: 1.5 -> '1.50', 999 -> '999'."""
    text = f"{value:#.{digits}g}"
    if "e" in text:
        mantissa, exponent = text.split("e")
        exp = int(exponent)
        # fixed notation down to 1e-6, exponent form only for exp < -6 or exp >= digits
        if -6 <= exp < -4:
            return f"{value:.{digits - 1 - exp}f}"
        return f"{mantissa.rstrip('.')}e{exp:+d}"
    return text.rstrip(".")


def value_label(value: float, unit: str) -> str:
    # strictly greater: exactly 1000 stays in the base unit
    if value > 1000:
        return f"{to_precision(value / 1000.0)} k{unit}"
    return f"{to_precision(value)} {unit}"


def axis_label_format(timestamps: Sequence[int], tz=TZ_BERLIN) -> str:
    """
    Choose the strftime pattern for x-axis labels from the first and last sample.

    Different years -> day.month.year, different month or day -> day.month,
    otherwise time of day only.
    """
    if not timestamps:
        return FMT_TIME_ONLY
    first = from_epoch_ms(timestamps[0], tz)
    last = from_epoch_ms(timestamps[-1], tz)
    if first.year != last.year:
        return FMT_WITH_YEAR
    if first.month != last.month or first.day != last.day:
        return FMT_WITH_DATE
    return FMT_TIME_ONLY


def axis_formatter(timestamps: Sequence[int], tz=TZ_BERLIN) -> Callable[[int], str]:
    fmt = axis_label_format(timestamps, tz)

    def _format(timestamp: int) -> str:
        return from_epoch_ms(timestamp, tz).strftime(fmt)

    return _format
