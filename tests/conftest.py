"""Shared fixtures: an in-memory plug that speaks the real framing."""

from __future__ import annotations

import io
import json
import struct
from typing import Any, Callable
from unittest.mock import patch

import pytest

from kasa_hs110_mcp.protocol.framing import build_frame, decrypt


class FakeSocket:
    """Stands in for the socket returned by ``socket.create_connection``.

    ``handler`` receives the decoded request envelope and returns either
    a response envelope, raw frame bytes, or raises to simulate a socket
    failure.
    """

    def __init__(self, handler: Callable[[dict], Any]) -> None:
        self._handler = handler
        self._response = b""
        self.closed = False
        self.shutdown_error: OSError | None = None
        self.timeout = None

    def settimeout(self, timeout):
        self.timeout = timeout

    def sendall(self, data: bytes) -> None:
        (length,) = struct.unpack(">I", data[:4])
        assert length == len(data) - 4
        request = json.loads(decrypt(data[4:]).decode("utf-8"))
        response = self._handler(request)
        if isinstance(response, bytes):
            self._response = response
        else:
            self._response = build_frame(
                json.dumps(response, separators=(",", ":")).encode("utf-8")
            )

    def makefile(self, mode: str = "rb"):
        return io.BytesIO(self._response)

    def shutdown(self, how: int) -> None:
        if self.shutdown_error is not None:
            raise self.shutdown_error

    def close(self) -> None:
        self.closed = True


class FakePlug:
    """A scripted HS110 that records every request it receives."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.sockets: list[FakeSocket] = []
        self.sysinfo: dict[str, Any] = {
            "alias": "Bathroom",
            "dev_name": "Wi-Fi Smart Plug With Energy Monitoring",
            "deviceId": "800644100000BB3AC70000FB15245D6C190F936B",
            "err_code": 0,
            "feature": "TIM:ENE",
            "hw_ver": "1.0",
            "led_off": 0,
            "mac": "70:4F:57:57:A1:14",
            "model": "HS110(EU)",
            "on_time": 8819452,
            "relay_state": 1,
            "rssi": -64,
            "sw_ver": "1.2.6 Build 200727 Rel.120821",
            "type": "IOT.SMARTPLUGSWITCH",
        }
        # (module, action) -> result dict, or callable(params) -> result dict
        self.responses: dict[tuple[str, str], Any] = {}
        # (module, action) -> whole response envelope, or raw frame bytes
        self.envelopes: dict[tuple[str, str], Any] = {}
        self.shutdown_error: OSError | None = None

    def actions(self) -> list[tuple[str, str]]:
        return [
            (module, action)
            for request in self.requests
            for module, actions in request.items()
            for action in actions
        ]

    def handle(self, request: dict) -> Any:
        self.requests.append(request)
        ((module, actions),) = request.items()
        ((action, params),) = actions.items()
        key = (module, action)
        if key in self.envelopes:
            return self.envelopes[key]
        if key in self.responses:
            result = self.responses[key]
            if callable(result):
                result = result(params)
        elif key == ("system", "get_sysinfo"):
            result = dict(self.sysinfo)
        elif key == ("system", "set_led_off"):
            self.sysinfo["led_off"] = params["off"]
            result = {"err_code": 0}
        elif key == ("system", "set_relay_state"):
            self.sysinfo["relay_state"] = params["state"]
            result = {"err_code": 0}
        else:
            result = {"err_code": 0}
        return {module: {action: result}}

    def create_connection(self, address, timeout=None):
        sock = FakeSocket(self.handle)
        sock.shutdown_error = self.shutdown_error
        sock.timeout = timeout
        self.sockets.append(sock)
        return sock


@pytest.fixture
def fake_plug():
    plug = FakePlug()
    with patch(
        "kasa_hs110_mcp.transport.tcp_connection.socket.create_connection",
        side_effect=plug.create_connection,
    ):
        yield plug
