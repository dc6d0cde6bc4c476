"""Cloud binding and WiFi access point models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class CloudInfo:
    """Result of ``cnCloud.get_info``."""

    binded: bool = False
    cld_connection: bool = False
    server: str = ""
    username: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.raw)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CloudInfo:
        return cls(
            binded=bool(data.get("binded", 0)),
            cld_connection=bool(data.get("cld_connection", 0)),
            server=data.get("server", ""),
            username=data.get("username", ""),
            raw=dict(data),
        )


@dataclass
class AccessPoint:
    """One entry of the ``netif.get_scaninfo`` access point list."""

    ssid: str
    key_type: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"ssid": self.ssid, "key_type": self.key_type}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AccessPoint:
        return cls(ssid=data["ssid"], key_type=data.get("key_type", 0))
