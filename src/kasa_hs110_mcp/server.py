"""MCP server entry point for TP-Link Kasa HS100/HS110 smart plugs.

Exposes the plug operations as tools via the Model Context Protocol
using the official Python MCP SDK with stdio transport. Every tool runs
exactly one client operation against the plug selected with ``connect``.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from .client import SmartPlug, resolve_toggle
from .transport.tcp_connection import DEFAULT_PORT, DEFAULT_TIMEOUT, DeviceAddress

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "kasa-hs110",
    instructions="Local-network control of TP-Link Kasa HS100/HS110 smart plugs",
)

# Plug selected by the last successful ``connect``
_plug: SmartPlug | None = None


def _get_plug() -> SmartPlug:
    """Get the selected plug, raising if none was selected."""
    if _plug is None:
        raise RuntimeError(
            "No plug selected. Use the 'connect' tool first."
        )
    return _plug


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(
    host: str,
    port: int = DEFAULT_PORT,
    timeout: float = DEFAULT_TIMEOUT,
) -> dict[str, Any]:
    """Select the smart plug to control and confirm it answers.

    Reads the system info once to verify the address, and reports the
    model and firmware of the plug.

    Args:
        host: Hostname or IP address of the plug.
        port: TCP port (default 9999).
        timeout: Network timeout in seconds.
    """
    global _plug
    plug = SmartPlug(DeviceAddress(host, port), timeout=timeout)
    info = plug.get_system_info()
    _plug = plug
    logger.info("Selected plug %s (%s)", plug.address, info.model)
    return {
        "connected": True,
        "address": str(plug.address),
        "alias": info.alias,
        "model": info.model,
        "hw_ver": info.hw_ver,
        "sw_ver": info.sw_ver,
        "has_emeter": info.has_emeter,
    }


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Forget the selected plug."""
    global _plug
    _plug = None
    return {"disconnected": True}


# ─── INFO TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def get_info() -> dict[str, Any]:
    """Return the raw ``system.get_sysinfo`` result of the plug."""
    return _get_plug().get_system_info().to_dict()


@mcp.tool()
def get_cloud_info() -> dict[str, Any]:
    """Return the plug's TP-Link cloud binding information."""
    return _get_plug().get_cloud_info().to_dict()


@mcp.tool()
def get_energy() -> dict[str, Any]:
    """Return the realtime energy meter reading (HS110 only).

    Both unit systems are always present: current/voltage/power/total in
    A/V/W/kWh and current_ma/voltage_mv/power_mw/total_wh in mA/mV/mW/Wh.
    """
    return _get_plug().get_emeter_reading().to_dict()


@mcp.tool()
def get_time() -> dict[str, str]:
    """Return the plug's clock in its local time."""
    return {"time": _get_plug().get_time().isoformat()}


@mcp.tool()
def get_rules(kind: str) -> dict[str, Any]:
    """Return the rules of a rule-based module.

    Args:
        kind: One of schedule, countdown, antitheft.
    """
    plug = _get_plug()
    getters = {
        "schedule": plug.get_schedule_rules,
        "countdown": plug.get_countdown_rules,
        "antitheft": plug.get_antitheft_rules,
    }
    if kind not in getters:
        return {"error": f"Unknown rule kind '{kind}'. Valid: {list(getters)}"}
    return {"kind": kind, "rules": getters[kind]()}


# ─── TOGGLE TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def led(on: bool = False, off: bool = False) -> dict[str, Any]:
    """Query or switch the indicator LED.

    With no flag the state is only queried. After switching, the state is
    read back from the plug.

    Args:
        on: Turn the LED on.
        off: Turn the LED off.
    """
    try:
        requested = resolve_toggle(on, off)
    except ValueError as e:
        return {"error": str(e)}
    state = _get_plug().set_led_state(requested)
    return {"led": str(state), "status": f"LED is {state}"}


@mcp.tool()
def relay(on: bool = False, off: bool = False) -> dict[str, Any]:
    """Query or switch the outlet relay.

    With no flag the state is only queried. After switching, the state is
    read back from the plug.

    Args:
        on: Power the outlet.
        off: Cut power to the outlet.
    """
    try:
        requested = resolve_toggle(on, off)
    except ValueError as e:
        return {"error": str(e)}
    state = _get_plug().set_relay_state(requested)
    return {"relay": str(state), "status": f"Relay is {state}"}


# ─── LIFECYCLE TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def reboot(delay: int = 0) -> dict[str, Any]:
    """Reboot the plug.

    Args:
        delay: Seconds before the plug reboots.
    """
    if delay < 0:
        return {"error": "Delay must be >= 0"}
    _get_plug().reboot(delay)
    return {"rebooting": True, "delay": delay}


@mcp.tool()
def factory_reset(confirm: bool = False, delay: int = 0) -> dict[str, Any]:
    """Restore factory settings. The plug forgets its WiFi network.

    Args:
        confirm: Must be true for the reset to be sent.
        delay: Seconds before the plug resets.
    """
    if not confirm:
        return {"error": "Factory reset requires confirm=true"}
    if delay < 0:
        return {"error": "Delay must be >= 0"}
    _get_plug().factory_reset(delay)
    return {"resetting": True, "delay": delay}


# ─── WIFI TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def wifi_scan() -> dict[str, Any]:
    """Run a fresh WiFi scan on the plug and list the access points seen."""
    access_points = _get_plug().wifi_scan()
    return {"ap_list": [ap.to_dict() for ap in access_points]}


@mcp.tool()
def wifi_list() -> dict[str, Any]:
    """List the access points from the plug's last scan, without rescanning."""
    access_points = _get_plug().wifi_list_cached()
    return {"ap_list": [ap.to_dict() for ap in access_points]}


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    logging.basicConfig(level=logging.INFO)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
