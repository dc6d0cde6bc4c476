"""TCP connection to a Kasa smart plug.

The device speaks a strict request/response protocol on port 9999: one
framed JSON request, one framed JSON response. A connection carries a
single exchange and is closed afterwards.
"""

from __future__ import annotations

import json
import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import ConnectError, DeviceIOError, DeviceTimeoutError, KasaError
from ..protocol.framing import MAX_FRAME_SIZE, build_frame, read_frame
from ..protocol.parser import Envelope, decode_envelope

logger = logging.getLogger(__name__)

DEFAULT_PORT = 9999
DEFAULT_TIMEOUT = 5.0


@dataclass(frozen=True)
class DeviceAddress:
    """Network location of a plug."""

    host: str
    port: int = DEFAULT_PORT

    @classmethod
    def parse(cls, text: str) -> DeviceAddress:
        """Parse ``host`` or ``host:port``; the port defaults to 9999.

        IPv6 literals need brackets to carry a port (``[fe80::1]:9999``);
        unbracketed ones are taken whole as the host.
        """
        if text.startswith("[") and text.endswith("]"):
            return cls(text[1:-1])
        if text.count(":") > 1 and not text.startswith("["):
            return cls(text)
        host, sep, port = text.rpartition(":")
        if not sep:
            return cls(text)
        if not port.isdigit() or not 0 < int(port) < 65536:
            raise ValueError(f"Invalid port in address '{text}'")
        if not host:
            raise ValueError(f"Missing host in address '{text}'")
        if host.startswith("[") != host.endswith("]"):
            raise ValueError(f"Unbalanced brackets in address '{text}'")
        return cls(host.strip("[]"), int(port))

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class ExchangeState(Enum):
    IDLE = "idle"
    CONNECTED = "connected"
    REQUEST_SENT = "request_sent"
    RESPONSE_RECEIVED = "response_received"
    FAILED = "failed"
    CLOSED = "closed"


class TCPConnection:
    """Owns the socket for one request/response exchange with a plug.

    Usage::

        with TCPConnection(DeviceAddress("192.168.0.10")) as conn:
            response = conn.call({"system": {"get_sysinfo": {}}})
    """

    def __init__(
        self,
        address: DeviceAddress,
        timeout: float = DEFAULT_TIMEOUT,
        max_frame_size: int = MAX_FRAME_SIZE,
    ) -> None:
        self._address = address
        self._timeout = timeout
        self._max_frame_size = max_frame_size
        self._sock: socket.socket | None = None
        self._state = ExchangeState.IDLE

    @property
    def address(self) -> DeviceAddress:
        return self._address

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def open(self) -> None:
        """Connect to the plug.

        Raises:
            ConnectError: If the host cannot be resolved, refuses the
                connection, or does not accept it within the timeout.
        """
        try:
            self._sock = socket.create_connection(
                (self._address.host, self._address.port), timeout=self._timeout
            )
        except socket.timeout as e:
            self._state = ExchangeState.FAILED
            raise ConnectError(
                f"Timed out connecting to {self._address} after {self._timeout}s"
            ) from e
        except OSError as e:
            self._state = ExchangeState.FAILED
            raise ConnectError(f"Could not connect to {self._address}: {e}") from e

        self._state = ExchangeState.CONNECTED
        logger.debug("Connected to %s", self._address)

    def close(self) -> None:
        """Close the socket.

        The plug may already have dropped the connection (it does so right
        after acknowledging a reboot), so teardown failures are only logged.
        """
        if self._sock is None:
            return

        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug("Peer %s already gone at shutdown: %s", self._address, e)
        finally:
            self._sock.close()
            self._sock = None
            if self._state is not ExchangeState.FAILED:
                self._state = ExchangeState.CLOSED
            logger.debug("Disconnected from %s", self._address)

    def call(self, request: Envelope) -> Envelope:
        """Send one request envelope and return the response envelope.

        Raises:
            ConnectError: If the connection is not open.
            DeviceTimeoutError: If the plug does not answer in time.
            DeviceIOError: If the socket fails mid-exchange.
            ProtocolError: If the response frame or JSON is malformed.
        """
        if self._sock is None:
            raise ConnectError("Not connected to device")

        payload = json.dumps(request, separators=(",", ":")).encode("utf-8")
        logger.debug("-> %s %s", self._address, payload)
        try:
            self._sock.sendall(build_frame(payload))
            self._state = ExchangeState.REQUEST_SENT
            with self._sock.makefile("rb") as stream:
                plaintext = read_frame(stream, self._max_frame_size)
        except socket.timeout as e:
            self._state = ExchangeState.FAILED
            raise DeviceTimeoutError(
                f"No response from {self._address} within {self._timeout}s"
            ) from e
        except KasaError:
            self._state = ExchangeState.FAILED
            raise
        except OSError as e:
            self._state = ExchangeState.FAILED
            raise DeviceIOError(f"Socket error talking to {self._address}: {e}") from e

        self._state = ExchangeState.RESPONSE_RECEIVED
        logger.debug("<- %s %s", self._address, plaintext)
        try:
            return decode_envelope(plaintext)
        except KasaError:
            self._state = ExchangeState.FAILED
            raise

    def __enter__(self) -> TCPConnection:
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
