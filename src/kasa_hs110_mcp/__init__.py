"""Local-network client for TP-Link Kasa HS100/HS110 smart plugs."""

from .client import SmartPlug, resolve_toggle
from .errors import (
    ConnectError,
    DeviceIOError,
    DeviceTimeoutError,
    KasaError,
    ProtocolError,
    ResponseError,
)
from .transport.tcp_connection import DeviceAddress
