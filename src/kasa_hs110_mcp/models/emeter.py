"""Energy meter reading with unit normalization.

Firmware generations report ``emeter.get_realtime`` in one of two
schemas::

    hw 1.x:  current (A)     voltage (V)      power (W)      total (kWh)
    hw 2.x:  current_ma (mA) voltage_mv (mV)  power_mw (mW)  total_wh (Wh)

The schema is detected by which field names are present in the response,
and whichever side is missing is derived so that both are always
available.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# (si field, milli field); milli = si * 1000
UNIT_PAIRS: list[tuple[str, str]] = [
    ("current", "current_ma"),
    ("voltage", "voltage_mv"),
    ("power", "power_mw"),
    ("total", "total_wh"),
]

MILLI = 1000.0


def normalize_units(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with both unit representations filled in.

    Fields present in ``data`` are passed through untouched; only missing
    counterparts are computed.
    """
    result = dict(data)
    for si, milli in UNIT_PAIRS:
        if si in data and milli not in data:
            result[milli] = data[si] * MILLI
        elif milli in data and si not in data:
            result[si] = data[milli] / MILLI
    return result


@dataclass
class EmeterReading:
    """A normalized realtime energy meter reading."""

    current: float
    voltage: float
    power: float
    total: float
    current_ma: float
    voltage_mv: float
    power_mw: float
    total_wh: float
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Raw device fields plus every derived counterpart."""
        return normalize_units(self.raw)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmeterReading:
        values = normalize_units(data)
        return cls(
            current=values["current"],
            voltage=values["voltage"],
            power=values["power"],
            total=values["total"],
            current_ma=values["current_ma"],
            voltage_mv=values["voltage_mv"],
            power_mw=values["power_mw"],
            total_wh=values["total_wh"],
            raw=dict(data),
        )
