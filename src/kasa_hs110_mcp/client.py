"""High-level operations on a single HS100/HS110 smart plug.

Each operation opens its own connection, performs exactly one
request/response exchange, and closes the connection again. Multi-step
operations (set-then-verify toggles, scan-then-poll) are sequences of
such exchanges. No exchange is retried except the bounded poll for WiFi
scan results.
"""

from __future__ import annotations

import datetime
import logging
import time
from typing import Any, Callable, TypeVar

from .errors import ResponseError
from .models.emeter import EmeterReading
from .models.network import AccessPoint, CloudInfo
from .models.system import HwVersion, LedState, PowerState, SysInfo
from .protocol.commands import (
    CommandSpec,
    build_get_cloud_info,
    build_get_realtime,
    build_get_rules,
    build_get_scaninfo,
    build_get_sysinfo,
    build_get_time,
    build_reboot,
    build_reset,
    build_set_led_off,
    build_set_relay_state,
)
from .protocol.parser import (
    Envelope,
    parse_ack,
    parse_ap_list,
    parse_cloud_info,
    parse_emeter,
    parse_rules,
    parse_sysinfo,
    parse_time,
)
from .transport.tcp_connection import DEFAULT_TIMEOUT, DeviceAddress, TCPConnection

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCAN_POLL_ATTEMPTS = 5
SCAN_POLL_INTERVAL = 1.0  # seconds before the first poll
SCAN_POLL_BACKOFF = 2.0
SCAN_POLL_MAX_INTERVAL = 8.0


def resolve_toggle(on: bool = False, off: bool = False) -> bool | None:
    """Turn a pair of ``on``/``off`` flags into a requested state.

    Returns ``None`` for a pure query.

    Raises:
        ValueError: If both flags are set.
    """
    if on and off:
        raise ValueError("'on' and 'off' are mutually exclusive")
    if on:
        return True
    if off:
        return False
    return None


class SmartPlug:
    """Client for one plug at a known address.

    Args:
        address: ``DeviceAddress`` or ``"host[:port]"`` text.
        timeout: Connect, read and write timeout in seconds.
    """

    def __init__(
        self,
        address: DeviceAddress | str,
        timeout: float = DEFAULT_TIMEOUT,
        scan_attempts: int = SCAN_POLL_ATTEMPTS,
        scan_interval: float = SCAN_POLL_INTERVAL,
    ) -> None:
        if isinstance(address, str):
            address = DeviceAddress.parse(address)
        if scan_attempts < 1:
            raise ValueError(f"scan_attempts must be >= 1, got {scan_attempts}")
        self._address = address
        self._timeout = timeout
        self._scan_attempts = scan_attempts
        self._scan_interval = scan_interval

    @property
    def address(self) -> DeviceAddress:
        return self._address

    def __repr__(self) -> str:
        return f"SmartPlug({str(self._address)!r})"

    # ─── EXCHANGE ────────────────────────────────────────────────────

    def _exchange(
        self, spec: CommandSpec, parse: Callable[[Envelope, CommandSpec], T]
    ) -> T:
        """Run one request/response exchange and parse its result."""
        logger.debug("%s: sending %s", self._address, spec)
        with TCPConnection(self._address, self._timeout) as conn:
            response = conn.call(spec.to_envelope())
        try:
            result = parse(response, spec)
        except ResponseError as e:
            logger.debug("%s: %s failed: %s", self._address, spec, e)
            raise
        logger.debug("%s: %s done", self._address, spec)
        return result

    # ─── QUERIES ─────────────────────────────────────────────────────

    def get_system_info(self) -> SysInfo:
        """Read ``system.get_sysinfo``."""
        return self._exchange(build_get_sysinfo(), parse_sysinfo)

    def get_alias(self) -> str:
        """Name given to the plug during setup."""
        return self.get_system_info().alias

    def get_hw_version(self) -> HwVersion:
        """Hardware revision; the raw string stays in ``SysInfo.hw_ver``."""
        return self.get_system_info().hw_version

    def get_cloud_info(self) -> CloudInfo:
        """Read the plug's cloud binding (``cnCloud.get_info``)."""
        return self._exchange(build_get_cloud_info(), parse_cloud_info)

    def get_emeter_reading(self) -> EmeterReading:
        """Read the realtime energy meter. Only the HS110 has one."""
        return self._exchange(build_get_realtime(), parse_emeter)

    def get_time(self) -> datetime.datetime:
        return self._exchange(build_get_time(), parse_time)

    def get_schedule_rules(self) -> list[dict[str, Any]]:
        return self._exchange(build_get_rules("schedule"), parse_rules)

    def get_countdown_rules(self) -> list[dict[str, Any]]:
        return self._exchange(build_get_rules("countdown"), parse_rules)

    def get_antitheft_rules(self) -> list[dict[str, Any]]:
        return self._exchange(build_get_rules("antitheft"), parse_rules)

    # ─── TOGGLES ─────────────────────────────────────────────────────

    def set_led_state(self, on: bool | None = None) -> LedState:
        """Query, or set and then re-query, the indicator LED.

        Args:
            on: ``None`` to only query, ``True``/``False`` to switch.

        Returns:
            The LED state reported by the device after the operation, which
            is not necessarily the state that was requested.
        """
        if on is not None:
            self._exchange(build_set_led_off(not on), parse_ack)
        return self.get_system_info().led_state

    def set_relay_state(self, on: bool | None = None) -> PowerState:
        """Query, or set and then re-query, the outlet relay.

        Args:
            on: ``None`` to only query, ``True``/``False`` to switch.

        Returns:
            The relay state reported by the device after the operation.
        """
        if on is not None:
            self._exchange(build_set_relay_state(on), parse_ack)
        return self.get_system_info().power_state

    # ─── LIFECYCLE ───────────────────────────────────────────────────

    def reboot(self, delay: int | None = None) -> None:
        """Reboot the plug.

        The device does not say goodbye before power-cycling; once the
        acknowledgement reports success the connection may drop at any
        time, and that is not treated as a failure.
        """
        self._exchange(build_reboot(delay or 0), parse_ack)
        logger.info("%s: reboot acknowledged", self._address)

    def factory_reset(self, delay: int | None = None) -> None:
        """Wipe the plug's configuration, including its WiFi credentials."""
        self._exchange(build_reset(delay or 0), parse_ack)
        logger.warning("%s: factory reset acknowledged", self._address)

    # ─── WIFI ────────────────────────────────────────────────────────

    def wifi_list_cached(self) -> list[AccessPoint]:
        """Return the access points found by the plug's last scan."""
        access_points = self._exchange(build_get_scaninfo(False), parse_ap_list)
        if access_points is None:
            raise ResponseError(
                "missing_field", module="netif", action="get_scaninfo",
                message="field 'ap_list' is absent",
            )
        return access_points

    def wifi_scan(self) -> list[AccessPoint]:
        """Trigger a fresh radio scan and wait for its results.

        The trigger response only confirms that scanning started, so the
        cached list is polled with exponential backoff until it is
        populated.

        Raises:
            ResponseError: With ``kind="scan_timeout"`` if no results
                appear within the configured number of attempts.
        """
        access_points = self._exchange(build_get_scaninfo(True), parse_ap_list)
        if access_points:
            return access_points

        interval = self._scan_interval
        for attempt in range(1, self._scan_attempts + 1):
            time.sleep(interval)
            access_points = self._exchange(build_get_scaninfo(False), parse_ap_list)
            if access_points:
                logger.debug(
                    "%s: scan results ready after %d polls", self._address, attempt
                )
                return access_points
            logger.debug(
                "%s: scan results not ready (poll %d/%d)",
                self._address, attempt, self._scan_attempts,
            )
            interval = min(interval * SCAN_POLL_BACKOFF, SCAN_POLL_MAX_INTERVAL)

        raise ResponseError(
            "scan_timeout", module="netif", action="get_scaninfo",
            message=f"no access points after {self._scan_attempts} polls",
        )
