"""Response parsing for device messages.

A response mirrors the nesting of its request, so every parser first
locates the result object under ``module.action`` and checks its
``err_code`` before reading module-specific fields.
"""

from __future__ import annotations

import datetime
import json
from typing import Any

from ..errors import ProtocolError, ResponseError
from ..models.emeter import UNIT_PAIRS, EmeterReading
from ..models.network import AccessPoint, CloudInfo
from ..models.system import SysInfo
from .commands import CommandSpec

Envelope = dict[str, Any]


def decode_envelope(plaintext: bytes) -> Envelope:
    """Decode a decrypted frame into a JSON object.

    Raises:
        ProtocolError: If the plaintext is not UTF-8, not JSON, or not a
            JSON object at the top level.
    """
    try:
        text = plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Response is not valid UTF-8: {e}") from e
    try:
        envelope = json.loads(text)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Response is not valid JSON: {e}") from e
    if not isinstance(envelope, dict):
        raise ProtocolError(
            f"Response must be a JSON object, got {type(envelope).__name__}"
        )
    return envelope


def extract_result(envelope: Envelope, spec: CommandSpec) -> dict[str, Any]:
    """Return the result object for ``spec`` after checking its ``err_code``.

    A missing ``err_code`` counts as success. Devices that do not support
    a module answer with the error directly under the module key, e.g.
    ``{"emeter": {"err_code": -1, "err_msg": "module not support"}}``.

    Raises:
        ResponseError: On a nonzero ``err_code`` or a missing result.
    """
    module = envelope.get(spec.module)
    if not isinstance(module, dict):
        raise ResponseError(
            "missing_field", module=spec.module, action=spec.action,
            message=f"no '{spec.module}' object in response",
        )

    result = module.get(spec.action)
    if result is None:
        if "err_code" in module:
            _check_err_code(module, spec)
        raise ResponseError(
            "missing_field", module=spec.module, action=spec.action,
            message=f"no '{spec.action}' object in response",
        )
    if not isinstance(result, dict):
        raise ResponseError(
            "bad_type", module=spec.module, action=spec.action,
            message=f"result is {type(result).__name__}, expected object",
        )

    _check_err_code(result, spec)
    return result


def _check_err_code(result: dict[str, Any], spec: CommandSpec) -> None:
    err_code = result.get("err_code", 0)
    if not isinstance(err_code, int) or isinstance(err_code, bool):
        raise ResponseError(
            "bad_type", module=spec.module, action=spec.action,
            message=f"err_code is {err_code!r}",
        )
    if err_code != 0:
        raise ResponseError(
            "device_error", err_code, spec.module, spec.action,
            result.get("err_msg", ""),
        )


def require_field(
    result: dict[str, Any], name: str, types: type | tuple[type, ...], spec: CommandSpec
) -> Any:
    """Return ``result[name]``, failing if it is absent or of the wrong type.

    ``bool`` is never accepted where a number is expected.
    """
    if name not in result:
        raise ResponseError(
            "missing_field", module=spec.module, action=spec.action,
            message=f"field '{name}' is absent",
        )
    value = result[name]
    if isinstance(value, bool) and bool not in _as_tuple(types):
        ok = False
    else:
        ok = isinstance(value, types)
    if not ok:
        raise ResponseError(
            "bad_type", module=spec.module, action=spec.action,
            message=f"field '{name}' is {value!r}",
        )
    return value


def _as_tuple(types: type | tuple[type, ...]) -> tuple[type, ...]:
    return types if isinstance(types, tuple) else (types,)


def parse_ack(envelope: Envelope, spec: CommandSpec) -> dict[str, Any]:
    """Parse a response whose only content is the ``err_code``."""
    return extract_result(envelope, spec)


def parse_sysinfo(envelope: Envelope, spec: CommandSpec) -> SysInfo:
    result = extract_result(envelope, spec)
    require_field(result, "relay_state", int, spec)
    require_field(result, "led_off", int, spec)
    return SysInfo.from_dict(result)


def parse_emeter(envelope: Envelope, spec: CommandSpec) -> EmeterReading:
    """Parse ``emeter.get_realtime`` in either unit schema.

    Each quantity must be present in at least one of its two forms.
    """
    result = extract_result(envelope, spec)
    for si, milli in UNIT_PAIRS:
        present = [name for name in (si, milli) if name in result]
        if not present:
            raise ResponseError(
                "missing_field", module=spec.module, action=spec.action,
                message=f"neither '{si}' nor '{milli}' is present",
            )
        for name in present:
            require_field(result, name, (int, float), spec)
    return EmeterReading.from_dict(result)


def parse_cloud_info(envelope: Envelope, spec: CommandSpec) -> CloudInfo:
    return CloudInfo.from_dict(extract_result(envelope, spec))


def parse_ap_list(envelope: Envelope, spec: CommandSpec) -> list[AccessPoint] | None:
    """Parse the access point list of ``netif.get_scaninfo``.

    Returns ``None`` when the result carries no ``ap_list`` yet, which is
    how the device answers while a scan is still running.
    """
    result = extract_result(envelope, spec)
    if "ap_list" not in result:
        return None
    entries = require_field(result, "ap_list", list, spec)
    access_points = []
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("ssid"), str):
            raise ResponseError(
                "bad_type", module=spec.module, action=spec.action,
                message=f"malformed access point entry {entry!r}",
            )
        access_points.append(AccessPoint.from_dict(entry))
    return access_points


def parse_time(envelope: Envelope, spec: CommandSpec) -> datetime.datetime:
    """Parse ``time.get_time`` into a naive datetime in device local time."""
    result = extract_result(envelope, spec)
    parts = [
        require_field(result, name, int, spec)
        for name in ("year", "month", "mday", "hour", "min", "sec")
    ]
    try:
        return datetime.datetime(*parts)
    except ValueError as e:
        raise ResponseError(
            "bad_type", module=spec.module, action=spec.action,
            message=f"invalid device time {parts}: {e}",
        ) from e


def parse_rules(envelope: Envelope, spec: CommandSpec) -> list[dict[str, Any]]:
    """Parse a ``get_rules`` response into its list of rule objects."""
    result = extract_result(envelope, spec)
    return list(require_field(result, "rule_list", list, spec))
