"""Transport layer: one TCP connection per request/response exchange."""

from .tcp_connection import DEFAULT_PORT, DEFAULT_TIMEOUT, DeviceAddress, TCPConnection
