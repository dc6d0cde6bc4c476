"""Exception hierarchy for device communication failures."""

from __future__ import annotations


class KasaError(Exception):
    """Base class for every error raised while talking to a smart plug."""


class ConnectError(KasaError, ConnectionError):
    """The plug could not be reached (DNS failure, refused, connect timeout)."""


class DeviceTimeoutError(KasaError, TimeoutError):
    """The plug did not answer within the configured timeout."""


class DeviceIOError(KasaError, OSError):
    """The socket failed in the middle of an exchange."""


class ProtocolError(KasaError):
    """A frame or its plaintext could not be decoded."""


class ResponseError(KasaError):
    """The plug answered, but the result is a failure or is malformed.

    Attributes:
        kind: ``"device_error"`` when the plug reported a nonzero
            ``err_code``, ``"missing_field"`` or ``"bad_type"`` when the
            result does not have the expected shape, ``"scan_timeout"``
            when WiFi scan results never became available.
        err_code: The device-reported code, or ``None`` when the plug did
            not report one.
    """

    def __init__(
        self,
        kind: str,
        err_code: int | None = None,
        module: str = "",
        action: str = "",
        message: str = "",
    ) -> None:
        self.kind = kind
        self.err_code = err_code
        self.module = module
        self.action = action
        text = f"{module}.{action}: {kind}" if module else kind
        if err_code is not None:
            text += f" (err_code={err_code})"
        if message:
            text += f": {message}"
        super().__init__(text)
