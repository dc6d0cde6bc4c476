"""Data models for device responses."""

from .system import SysInfo, PowerState, LedState, HwVersion
from .emeter import EmeterReading, normalize_units
from .network import AccessPoint, CloudInfo
