"""System information model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class PowerState(Enum):
    """Relay state of the outlet."""

    ON = "ON"
    OFF = "OFF"

    def __str__(self) -> str:
        return self.value

    def __bool__(self) -> bool:
        return self is PowerState.ON


class LedState(Enum):
    """State of the indicator LED."""

    ON = "ON"
    OFF = "OFF"

    def __str__(self) -> str:
        return self.value

    def __bool__(self) -> bool:
        return self is LedState.ON


class HwVersion(Enum):
    """Hardware revision. Revisions differ in their emeter unit schema."""

    VERSION_1 = "1.0"
    VERSION_2 = "2.0"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_string(cls, hw_ver: str) -> HwVersion:
        for version in (cls.VERSION_1, cls.VERSION_2):
            if hw_ver == version.value:
                return version
        return cls.UNSUPPORTED


@dataclass
class SysInfo:
    """Result of ``system.get_sysinfo``.

    Only ``relay_state`` and ``led_off`` are required; every other field
    falls back to an empty value because firmware revisions differ in
    what they report. ``raw`` keeps the result exactly as received.
    """

    relay_state: int
    led_off: int
    alias: str = ""
    model: str = ""
    dev_name: str = ""
    hw_ver: str = ""
    sw_ver: str = ""
    mac: str = ""
    device_id: str = ""
    feature: str = ""
    on_time: int = 0
    rssi: int = 0
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def power_state(self) -> PowerState:
        return PowerState.ON if self.relay_state == 1 else PowerState.OFF

    @property
    def led_state(self) -> LedState:
        # led_off == 0 means the light is on
        return LedState.ON if self.led_off == 0 else LedState.OFF

    @property
    def hw_version(self) -> HwVersion:
        return HwVersion.from_string(self.hw_ver)

    @property
    def has_emeter(self) -> bool:
        """HS110 advertises its energy meter as ``ENE`` in ``feature``."""
        return "ENE" in self.feature.split(":")

    def to_dict(self) -> dict[str, Any]:
        return dict(self.raw)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SysInfo:
        return cls(
            relay_state=data["relay_state"],
            led_off=data["led_off"],
            alias=data.get("alias", ""),
            model=data.get("model", ""),
            dev_name=data.get("dev_name", ""),
            hw_ver=data.get("hw_ver", ""),
            sw_ver=data.get("sw_ver", ""),
            mac=data.get("mac", data.get("mic_mac", "")),
            device_id=data.get("deviceId", ""),
            feature=data.get("feature", ""),
            on_time=data.get("on_time", 0),
            rssi=data.get("rssi", 0),
            raw=dict(data),
        )
