"""Tests for SmartPlug operations against a simulated plug."""

import datetime
from unittest.mock import patch

import pytest

from kasa_hs110_mcp.client import SCAN_POLL_ATTEMPTS, SmartPlug, resolve_toggle
from kasa_hs110_mcp.errors import ConnectError, DeviceIOError, ResponseError
from kasa_hs110_mcp.models.system import HwVersion, LedState, PowerState
from kasa_hs110_mcp.transport.tcp_connection import DeviceAddress

AP_LIST = [{"ssid": "TP-Link_C1F3", "key_type": 3}, {"ssid": "RADIO", "key_type": 2}]


@pytest.fixture
def plug(fake_plug):
    return SmartPlug("192.0.2.10", timeout=1.0)


@pytest.fixture
def no_sleep():
    with patch("kasa_hs110_mcp.client.time.sleep") as sleep:
        yield sleep


# ─── CONSTRUCTION ────────────────────────────────────────────────────

def test_address_parsing():
    assert SmartPlug("plug.local:10000").address == DeviceAddress("plug.local", 10000)
    assert SmartPlug(DeviceAddress("plug.local")).address.port == 9999


def test_scan_attempts_must_be_positive():
    with pytest.raises(ValueError):
        SmartPlug("plug.local", scan_attempts=0)


# ─── QUERIES ─────────────────────────────────────────────────────────

def test_get_system_info(plug, fake_plug):
    info = plug.get_system_info()
    assert info.model == "HS110(EU)"
    assert info.has_emeter
    assert fake_plug.requests == [{"system": {"get_sysinfo": {}}}]


def test_one_connection_per_exchange(plug, fake_plug):
    plug.get_system_info()
    plug.get_cloud_info()
    assert len(fake_plug.sockets) == 2
    assert all(sock.closed for sock in fake_plug.sockets)


def test_alias_and_hw_version(plug):
    assert plug.get_alias() == "Bathroom"
    assert plug.get_hw_version() is HwVersion.VERSION_1


def test_get_cloud_info(plug, fake_plug):
    fake_plug.responses[("cnCloud", "get_info")] = {
        "binded": 1, "cld_connection": 0, "server": "n-devs.tplinkcloud.com",
        "username": "user@example.com", "err_code": 0,
    }
    info = plug.get_cloud_info()
    assert info.binded
    assert not info.cld_connection
    assert info.username == "user@example.com"


def test_get_emeter_reading(plug, fake_plug):
    fake_plug.responses[("emeter", "get_realtime")] = {
        "current": 0.027566, "voltage": 232.835569, "power": 0.775979,
        "total": 188.23, "err_code": 0,
    }
    reading = plug.get_emeter_reading()
    assert reading.current_ma == pytest.approx(27.566)
    assert reading.voltage_mv == pytest.approx(232835.569)
    assert reading.power_mw == pytest.approx(775.979)
    assert reading.total_wh == pytest.approx(188230.0)


def test_emeter_unsupported(plug, fake_plug):
    fake_plug.envelopes[("emeter", "get_realtime")] = {
        "emeter": {"err_code": -1, "err_msg": "module not support"}
    }
    with pytest.raises(ResponseError) as exc_info:
        plug.get_emeter_reading()
    assert exc_info.value.err_code == -1


def test_get_time(plug, fake_plug):
    fake_plug.responses[("time", "get_time")] = {
        "year": 2023, "month": 11, "mday": 2, "hour": 8, "min": 30, "sec": 0, "err_code": 0,
    }
    assert plug.get_time() == datetime.datetime(2023, 11, 2, 8, 30, 0)


def test_rule_queries(plug, fake_plug):
    rule = {"id": "R1", "enable": 1}
    for module in ("schedule", "count_down", "anti_theft"):
        fake_plug.responses[(module, "get_rules")] = {"rule_list": [rule], "err_code": 0}
    assert plug.get_schedule_rules() == [rule]
    assert plug.get_countdown_rules() == [rule]
    assert plug.get_antitheft_rules() == [rule]
    assert fake_plug.actions() == [
        ("schedule", "get_rules"),
        ("count_down", "get_rules"),
        ("anti_theft", "get_rules"),
    ]


# ─── TOGGLES ─────────────────────────────────────────────────────────

def test_resolve_toggle():
    assert resolve_toggle() is None
    assert resolve_toggle(on=True) is True
    assert resolve_toggle(off=True) is False
    with pytest.raises(ValueError):
        resolve_toggle(on=True, off=True)


def test_led_query_only(plug, fake_plug):
    assert plug.set_led_state() is LedState.ON
    assert fake_plug.actions() == [("system", "get_sysinfo")]


def test_led_set_then_query(plug, fake_plug):
    assert plug.set_led_state(False) is LedState.OFF
    assert fake_plug.actions() == [("system", "set_led_off"), ("system", "get_sysinfo")]
    assert fake_plug.requests[0] == {"system": {"set_led_off": {"off": 1}}}


def test_led_reports_device_state_not_request(plug, fake_plug):
    """A set the device claims to accept but ignores is reported as ignored."""
    fake_plug.responses[("system", "set_led_off")] = {"err_code": 0}
    assert plug.set_led_state(False) is LedState.ON


def test_led_set_failure_skips_query(plug, fake_plug):
    fake_plug.responses[("system", "set_led_off")] = {"err_code": -3}
    with pytest.raises(ResponseError) as exc_info:
        plug.set_led_state(True)
    assert exc_info.value.err_code == -3
    assert fake_plug.actions() == [("system", "set_led_off")]


def test_relay_set_then_query(plug, fake_plug):
    assert plug.set_relay_state(False) is PowerState.OFF
    assert fake_plug.requests[0] == {"system": {"set_relay_state": {"state": 0}}}
    assert plug.set_relay_state(True) is PowerState.ON
    assert plug.set_relay_state() is PowerState.ON


def test_relay_reports_device_state(plug, fake_plug):
    fake_plug.responses[("system", "set_relay_state")] = {"err_code": 0}
    fake_plug.sysinfo["relay_state"] = 0
    assert plug.set_relay_state(True) is PowerState.OFF


# ─── LIFECYCLE ───────────────────────────────────────────────────────

def test_reboot(plug, fake_plug):
    plug.reboot()
    assert fake_plug.requests == [{"system": {"reboot": {"delay": 0}}}]
    plug.reboot(3)
    assert fake_plug.requests[1] == {"system": {"reboot": {"delay": 3}}}


def test_reboot_tolerates_drop_after_ack(plug, fake_plug):
    fake_plug.shutdown_error = ConnectionResetError(104, "Connection reset by peer")
    plug.reboot(1)
    assert fake_plug.sockets[0].closed


def test_reboot_drop_before_ack_fails(plug, fake_plug):
    def drop(params):
        raise ConnectionResetError(104, "Connection reset by peer")

    fake_plug.responses[("system", "reboot")] = drop
    with pytest.raises(DeviceIOError):
        plug.reboot()


def test_reboot_error_code(plug, fake_plug):
    fake_plug.responses[("system", "reboot")] = {"err_code": -10}
    with pytest.raises(ResponseError) as exc_info:
        plug.reboot()
    assert exc_info.value.err_code == -10


def test_factory_reset(plug, fake_plug):
    fake_plug.shutdown_error = ConnectionResetError(104, "Connection reset by peer")
    plug.factory_reset()
    plug.factory_reset(2)
    assert fake_plug.requests == [
        {"system": {"reset": {"delay": 0}}},
        {"system": {"reset": {"delay": 2}}},
    ]


def test_unreachable_plug():
    with patch(
        "kasa_hs110_mcp.transport.tcp_connection.socket.create_connection",
        side_effect=ConnectionRefusedError(111, "Connection refused"),
    ):
        with pytest.raises(ConnectError):
            SmartPlug("192.0.2.10").get_system_info()


# ─── WIFI ────────────────────────────────────────────────────────────

def test_wifi_list_cached(plug, fake_plug):
    fake_plug.responses[("netif", "get_scaninfo")] = {"ap_list": AP_LIST, "err_code": 0}
    access_points = plug.wifi_list_cached()
    assert [ap.ssid for ap in access_points] == ["TP-Link_C1F3", "RADIO"]
    assert fake_plug.requests == [{"netif": {"get_scaninfo": {"refresh": 0}}}]


def test_wifi_list_cached_missing_list(plug, fake_plug):
    fake_plug.responses[("netif", "get_scaninfo")] = {"err_code": 0}
    with pytest.raises(ResponseError) as exc_info:
        plug.wifi_list_cached()
    assert exc_info.value.kind == "missing_field"


def test_wifi_scan_immediate_results(plug, fake_plug, no_sleep):
    fake_plug.responses[("netif", "get_scaninfo")] = {"ap_list": AP_LIST, "err_code": 0}
    assert len(plug.wifi_scan()) == 2
    assert fake_plug.requests == [{"netif": {"get_scaninfo": {"refresh": 1}}}]
    no_sleep.assert_not_called()


def test_wifi_scan_polls_until_ready(plug, fake_plug, no_sleep):
    answers = iter([
        {"err_code": 0},
        {"ap_list": [], "err_code": 0},
        {"err_code": 0},
        {"ap_list": AP_LIST, "err_code": 0},
    ])
    fake_plug.responses[("netif", "get_scaninfo")] = lambda params: next(answers)

    access_points = plug.wifi_scan()

    assert [ap.ssid for ap in access_points] == ["TP-Link_C1F3", "RADIO"]
    refresh = [r["netif"]["get_scaninfo"]["refresh"] for r in fake_plug.requests]
    assert refresh == [1, 0, 0, 0]
    delays = [call.args[0] for call in no_sleep.call_args_list]
    assert delays == [1.0, 2.0, 4.0]


def test_wifi_scan_gives_up(plug, fake_plug, no_sleep):
    fake_plug.responses[("netif", "get_scaninfo")] = {"err_code": 0}
    with pytest.raises(ResponseError) as exc_info:
        plug.wifi_scan()
    assert exc_info.value.kind == "scan_timeout"
    assert len(fake_plug.requests) == 1 + SCAN_POLL_ATTEMPTS
    assert no_sleep.call_count == SCAN_POLL_ATTEMPTS
    assert max(call.args[0] for call in no_sleep.call_args_list) <= 8.0


def test_wifi_scan_device_error_is_not_retried(plug, fake_plug, no_sleep):
    fake_plug.responses[("netif", "get_scaninfo")] = {"err_code": -5}
    with pytest.raises(ResponseError) as exc_info:
        plug.wifi_scan()
    assert exc_info.value.err_code == -5
    assert len(fake_plug.requests) == 1
