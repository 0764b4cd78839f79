from __future__ import annotations

import pytest

from conftest import local_ms
from labels import (
    FMT_TIME_ONLY,
    FMT_WITH_DATE,
    FMT_WITH_YEAR,
    axis_formatter,
    axis_label_format,
    to_precision,
    value_label,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (999, "999 W"),
        (1500, "1.50 kW"),
        (1200, "1.20 kW"),
        (0, "0.00 W"),
        (0.5, "0.500 W"),
        (12.345, "12.3 W"),
        (45678, "45.7 kW"),
    ],
)
def test_value_label(value, expected):
    assert value_label(value, "W") == expected


def test_value_label_boundary_is_strict():
    assert "kW" not in value_label(1000, "W")
    assert value_label(1000, "W") == "1.00e+3 W"
    assert value_label(1000.01, "W") == "1.00 kW"


def test_to_precision_exponent_form():
    assert to_precision(1234567.0) == "1.23e+6"
    assert to_precision(-1500) == "-1.50e+3"


def test_axis_same_day_has_no_date():
    ts = [local_ms(2024, 6, 1, 8), local_ms(2024, 6, 1, 12), local_ms(2024, 6, 1, 16)]
    assert axis_label_format(ts) == FMT_TIME_ONLY
    fmt = axis_formatter(ts)
    assert [fmt(t) for t in ts] == ["08:00", "12:00", "16:00"]


def test_axis_two_days_same_month_shows_date():
    ts = [local_ms(2024, 6, 1, 8), local_ms(2024, 6, 2, 8)]
    assert axis_label_format(ts) == FMT_WITH_DATE
    assert axis_formatter(ts)(ts[1]) == "02.06 08:00"


def test_axis_two_months_shows_day_and_month():
    ts = [local_ms(2024, 5, 31, 22), local_ms(2024, 6, 1, 2)]
    assert axis_label_format(ts) == FMT_WITH_DATE
    assert axis_formatter(ts)(ts[0]) == "31.05 22:00"


def test_axis_two_years_shows_year():
    ts = [local_ms(2023, 12, 31, 23), local_ms(2024, 1, 1, 1)]
    assert axis_label_format(ts) == FMT_WITH_YEAR
    assert axis_formatter(ts)(ts[1]) == "01.01.2024 01:00"


def test_axis_uses_first_and_last_sample_only():
    ts = [local_ms(2024, 6, 1, 1), local_ms(2024, 6, 1, 23)]
    assert axis_label_format(ts) == FMT_TIME_ONLY


def test_axis_empty_series():
    assert axis_label_format([]) == FMT_TIME_ONLY


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.00005, "0.0000500"),
        (0.0000012345, "0.00000123"),
        (0.00012, "0.000120"),
        (0.00000099, "9.90e-7"),
    ],
)
def test_to_precision_small_values_stay_fixed_down_to_micro(value, expected):
    assert to_precision(value) == expected


def test_value_label_tiny_power():
    assert value_label(0.00005, "W") == "0.0000500 W"
