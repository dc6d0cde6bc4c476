"""Module/action constants and command builders.

Every request addresses one action of one device module and is
serialized as ``{"<module>": {"<action>": {<params>}}}``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Module(str, Enum):
    """Device subsystems addressed by the first level of the envelope."""

    SYSTEM = "system"
    EMETER = "emeter"
    NETIF = "netif"
    CLOUD = "cnCloud"
    TIME = "time"
    SCHEDULE = "schedule"
    COUNTDOWN = "count_down"
    ANTITHEFT = "anti_theft"


# Modules that expose a ``get_rules`` action
RULE_MODULES: dict[str, Module] = {
    "schedule": Module.SCHEDULE,
    "countdown": Module.COUNTDOWN,
    "antitheft": Module.ANTITHEFT,
}


@dataclass(frozen=True)
class CommandSpec:
    """A single device command."""

    module: str
    action: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_envelope(self) -> dict[str, Any]:
        return {self.module: {self.action: dict(self.params)}}

    def to_json(self) -> bytes:
        """Compact UTF-8 JSON, the form the device expects on the wire."""
        return json.dumps(self.to_envelope(), separators=(",", ":")).encode("utf-8")

    def __str__(self) -> str:
        return f"{self.module}.{self.action}"


def build_command(module: Module, action: str, **params: Any) -> CommandSpec:
    return CommandSpec(module.value, action, params)


def build_get_sysinfo() -> CommandSpec:
    """Build a ``system.get_sysinfo`` query."""
    return build_command(Module.SYSTEM, "get_sysinfo")


def build_set_relay_state(on: bool) -> CommandSpec:
    """Build a ``system.set_relay_state`` command switching the outlet."""
    return build_command(Module.SYSTEM, "set_relay_state", state=1 if on else 0)


def build_set_led_off(off: bool) -> CommandSpec:
    """Build a ``system.set_led_off`` command.

    The device models the LED inverted: ``off=1`` turns the light off.
    """
    return build_command(Module.SYSTEM, "set_led_off", off=1 if off else 0)


def build_reboot(delay: int = 0) -> CommandSpec:
    """Build a ``system.reboot`` command.

    Args:
        delay: Seconds the device waits before rebooting.
    """
    if delay < 0:
        raise ValueError(f"Reboot delay must be >= 0, got {delay}")
    return build_command(Module.SYSTEM, "reboot", delay=delay)


def build_reset(delay: int = 0) -> CommandSpec:
    """Build a ``system.reset`` (factory reset) command.

    Args:
        delay: Seconds the device waits before wiping its configuration.
    """
    if delay < 0:
        raise ValueError(f"Reset delay must be >= 0, got {delay}")
    return build_command(Module.SYSTEM, "reset", delay=delay)


def build_get_cloud_info() -> CommandSpec:
    return build_command(Module.CLOUD, "get_info")


def build_get_scaninfo(refresh: bool) -> CommandSpec:
    """Build a ``netif.get_scaninfo`` command.

    ``refresh=True`` asks the radio to start a new scan; ``False`` returns
    the list gathered by the last scan.
    """
    return build_command(Module.NETIF, "get_scaninfo", refresh=1 if refresh else 0)


def build_get_realtime() -> CommandSpec:
    return build_command(Module.EMETER, "get_realtime")


def build_get_time() -> CommandSpec:
    return build_command(Module.TIME, "get_time")


def build_get_rules(kind: str) -> CommandSpec:
    """Build a ``get_rules`` query for a rule-based module.

    Args:
        kind: One of ``schedule``, ``countdown`` or ``antitheft``.
    """
    if kind not in RULE_MODULES:
        raise ValueError(
            f"Unknown rule module '{kind}'. Valid: {list(RULE_MODULES)}"
        )
    return build_command(RULE_MODULES[kind], "get_rules")
