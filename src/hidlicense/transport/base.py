"""Abstract HID transport boundary.

A backend opens a connection to one physical interface matching a filter.
The connection writes reports and pushes every inbound report to a single
listener, asyncio-protocol style. How a device is discovered or granted is
the backend's business; sessions only see this interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from ..exceptions import InvalidArgumentError, NotConnectedError
from ..protocol.reports import REPORT_DATA_SIZE, Report

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeviceFilter:
    """USB identity a backend must match when opening a device."""

    vendor_id: int
    product_id: int
    usage_page: int | None = None

    def matches(self, info: Mapping[str, Any]) -> bool:
        """Check an enumeration record (``hid.enumerate()`` layout)."""
        if info.get("vendor_id") != self.vendor_id:
            return False
        if info.get("product_id") != self.product_id:
            return False
        if self.usage_page is not None and info.get("usage_page") != self.usage_page:
            return False
        return True

    def __str__(self) -> str:
        return f"{self.vendor_id:04x}:{self.product_id:04x}"


class ReportListener(Protocol):
    """Receiver of inbound reports and connection loss."""

    def report_received(self, report: Report) -> None:
        """Called for every report the peripheral pushes."""

    def connection_lost(self, exc: Exception | None) -> None:
        """Called once when the connection closes or the device goes away."""


class HIDConnection(ABC):
    """Open handle to one HID peripheral.

    Subclasses implement the raw writes and call ``_deliver_report`` /
    ``_deliver_connection_lost`` from their read path.
    """

    def __init__(self, max_report_size: int = REPORT_DATA_SIZE):
        self._max_report_size = max_report_size
        self._listener: ReportListener | None = None

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while the device handle is usable."""

    @property
    def product_name(self) -> str | None:
        """Product string reported by the device, if known."""
        return None

    @property
    def max_report_size(self) -> int:
        """Maximum payload bytes per report (report id excluded)."""
        return self._max_report_size

    def set_listener(self, listener: ReportListener | None) -> None:
        """Install the receiver for inbound reports."""
        self._listener = listener

    async def send_report(self, report_id: int, data: bytes) -> None:
        """Write an output report.

        Raises:
            NotConnectedError: If the connection is not open (no I/O performed)
            InvalidArgumentError: If data exceeds max_report_size
        """
        data = self._check_outbound(report_id, data)
        await self._write_report(report_id, data)

    async def send_feature_report(self, report_id: int, data: bytes) -> None:
        """Write a feature report.

        Raises:
            NotConnectedError: If the connection is not open (no I/O performed)
            InvalidArgumentError: If data exceeds max_report_size
        """
        data = self._check_outbound(report_id, data)
        await self._write_feature_report(report_id, data)

    @abstractmethod
    async def close(self) -> None:
        """Close the device handle. Safe to call more than once."""

    @abstractmethod
    async def _write_report(self, report_id: int, data: bytes) -> None:
        """Backend-specific output report write."""

    @abstractmethod
    async def _write_feature_report(self, report_id: int, data: bytes) -> None:
        """Backend-specific feature report write."""

    def _check_outbound(self, report_id: int, data: bytes) -> bytes:
        if not self.is_open:
            raise NotConnectedError("Device not connected")
        data = bytes(data)
        if len(data) > self._max_report_size:
            raise InvalidArgumentError(
                f"Report 0x{report_id:02X} is {len(data)} bytes "
                f"(max {self._max_report_size})"
            )
        return data

    def _deliver_report(self, report: Report) -> None:
        if self._listener is None:
            _LOGGER.debug("Dropping report 0x%02X: no listener", report.report_id)
            return
        self._listener.report_received(report)

    def _deliver_connection_lost(self, exc: Exception | None) -> None:
        if self._listener is not None:
            self._listener.connection_lost(exc)


class HIDBackend(ABC):
    """Factory for connections to physical HID interfaces."""

    @abstractmethod
    async def open(
            self,
            device_filter: DeviceFilter | None,
            max_report_size: int = REPORT_DATA_SIZE,
    ) -> HIDConnection:
        """Open the first device matching the filter.

        Args:
            device_filter: USB identity to match, or None to accept any device
            max_report_size: Payload bytes per report for this peripheral

        Raises:
            NoDeviceSelectedError: If no matching device is available
            NotSupportedError: If the HID capability is absent
        """
