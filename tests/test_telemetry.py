from __future__ import annotations

import pytest

from conftest import payload_json, reading
from telemetry import (
    MalformedResponse,
    PowerReading,
    Sample,
    TelemetryPayload,
    parse_payload,
    unpack,
)

GOOD_READING = {"power_pv": 1500, "power_from_grid": 0, "power_to_grid": 700.5, "power_used": 800}


def test_parse_full_body(day_payload):
    parsed = parse_payload(payload_json(day_payload))
    assert parsed == day_payload
    assert parsed.latest.timestamp == day_payload.values[-1].timestamp


def test_parse_empty_object_is_empty_payload():
    parsed = parse_payload({})
    assert parsed == TelemetryPayload()
    assert parsed.latest is None


def test_parse_optional_average():
    body = {"values": [], "energy_kwh": None, "maxes": None, "average": GOOD_READING}
    parsed = parse_payload(body)
    assert parsed.average == PowerReading(1500.0, 0.0, 700.5, 800.0)
    assert parsed.maxes is None


def test_parse_keeps_delivered_order():
    body = {"values": [[3, GOOD_READING], [1, GOOD_READING]]}
    assert [s.timestamp for s in parse_payload(body).values] == [3, 1]


@pytest.mark.parametrize(
    "body",
    [
        [],
        "oops",
        {"energy_kwh": GOOD_READING},
        {"values": {"a": 1}},
        {"values": [[1]]},
        {"values": [["1", GOOD_READING]]},
        {"values": [[1.5, GOOD_READING]]},
        {"values": [[1, {"power_pv": 1}]]},
        {"values": [[1, dict(GOOD_READING, power_used="high")]]},
        {"values": [[1, dict(GOOD_READING, power_used=True)]]},
        {"values": [], "maxes": [1, 2, 3, 4]},
    ],
)
def test_parse_rejects_malformed(body):
    with pytest.raises(MalformedResponse):
        parse_payload(body)


def test_unpack_converts_to_kilowatts():
    samples = [
        Sample(1, reading(pv=500, from_grid=20, to_grid=0, used=1234)),
        Sample(2, reading(pv=4000, from_grid=0, to_grid=2500, used=1500)),
    ]
    cols = unpack(samples)
    assert cols.timestamps == [1, 2]
    assert cols.power_pv == pytest.approx([0.5, 4.0])
    assert cols.power_from_grid == pytest.approx([0.02, 0.0])
    assert cols.power_to_grid == pytest.approx([0.0, 2.5])
    assert cols.power_used == pytest.approx([1.234, 1.5])
    assert [v * 1000 for v in cols.power_used] == pytest.approx([1234, 1500])


@pytest.mark.parametrize("n", [0, 1, 7, 250])
def test_unpack_column_lengths_match(n):
    cols = unpack([Sample(i, reading(pv=i)) for i in range(n)])
    assert len(cols) == n
    for name in ("power_pv", "power_from_grid", "power_to_grid", "power_used"):
        assert len(getattr(cols, name)) == n


def test_unpack_keeps_negative_values():
    cols = unpack([Sample(1, reading(to_grid=-250))])
    assert cols.power_to_grid == [-0.25]


def test_to_frame_localises_timestamps(day_payload):
    df = unpack(day_payload.values).to_frame("Europe/Berlin")
    assert list(df.columns) == ["ts", "power_pv", "power_from_grid", "power_to_grid", "power_used"]
    assert [t.strftime("%H:%M") for t in df["ts"]] == ["08:00", "12:00", "16:00"]


def test_to_frame_empty():
    df = unpack([]).to_frame()
    assert df.empty
