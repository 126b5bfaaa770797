"""Simulated target peripheral for running without hardware."""

from __future__ import annotations

import asyncio
import logging
import os

from ..protocol.reports import (
    LICENSE_LENGTH,
    REPORT_DATA_SIZE,
    UUID_LENGTH,
    Report,
    TargetReportId,
)
from .base import DeviceFilter, HIDBackend, HIDConnection

_LOGGER = logging.getLogger(__name__)


class MockTargetConnection(HIDConnection):
    """In-memory target answering identifier requests and storing licenses.

    The identifier reply is split into raw reports of ``response_size``
    bytes. A ``response_size`` of 128 or more answers with one report, the
    way single-report firmware does.
    """

    def __init__(
            self,
            identifier: bytes | None = None,
            max_report_size: int = REPORT_DATA_SIZE,
            response_size: int = UUID_LENGTH,
            response_delay: float = 0.0,
    ):
        super().__init__(max_report_size)
        self.identifier = identifier if identifier is not None else os.urandom(UUID_LENGTH)
        self.response_size = response_size
        self.response_delay = response_delay
        self.sent: list[Report] = []
        self.feature_reports: list[Report] = []
        self._license = bytearray()
        self._tasks: set[asyncio.Task[None]] = set()
        self._open = True

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def product_name(self) -> str | None:
        return "Mock Target"

    @property
    def stored_license(self) -> bytes:
        """License bytes received so far, padding beyond 256 bytes dropped."""
        return bytes(self._license[:LICENSE_LENGTH])

    async def close(self) -> None:
        if self._open:
            self._open = False
            self._deliver_connection_lost(None)

    def simulate_disconnect(self) -> None:
        """Drop the connection as if the cable was pulled."""
        if self._open:
            self._open = False
            self._deliver_connection_lost(ConnectionResetError("device unplugged"))

    async def _write_report(self, report_id: int, data: bytes) -> None:
        report = Report(report_id, data)
        self.sent.append(report)
        if report_id == TargetReportId.IDENTIFIER_REQUEST:
            self._license.clear()
            task = asyncio.get_running_loop().create_task(self._answer_identifier())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif report_id == TargetReportId.STORE_LICENSE:
            self._license += data
        else:
            _LOGGER.debug("Mock target ignoring report 0x%02X", report_id)

    async def _write_feature_report(self, report_id: int, data: bytes) -> None:
        self.feature_reports.append(Report(report_id, data))

    async def _answer_identifier(self) -> None:
        if self.response_delay:
            await asyncio.sleep(self.response_delay)
        for start in range(0, len(self.identifier), self.response_size):
            if not self._open:
                return
            chunk = self.identifier[start:start + self.response_size]
            self._deliver_report(Report(TargetReportId.IDENTIFIER_RESPONSE, chunk))
            await asyncio.sleep(0)


class MockTargetBackend(HIDBackend):
    """Backend that always "finds" one simulated target."""

    def __init__(self, **connection_kwargs):
        self._connection_kwargs = connection_kwargs
        self.connection: MockTargetConnection | None = None

    async def open(
            self,
            device_filter: DeviceFilter | None,
            max_report_size: int = REPORT_DATA_SIZE,
    ) -> MockTargetConnection:
        kwargs = {"max_report_size": max_report_size, **self._connection_kwargs}
        self.connection = MockTargetConnection(**kwargs)
        _LOGGER.debug("Mock target opened (filter=%s)", device_filter)
        return self.connection
