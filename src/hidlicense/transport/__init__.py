"""HID transport layer."""

from .base import DeviceFilter, HIDBackend, HIDConnection, ReportListener
from .connection import HIDApiBackend, HIDApiConnection
from .mock import MockTargetBackend, MockTargetConnection

__all__ = [
    "DeviceFilter",
    "HIDBackend",
    "HIDConnection",
    "ReportListener",
    "HIDApiBackend",
    "HIDApiConnection",
    "MockTargetBackend",
    "MockTargetConnection",
]
