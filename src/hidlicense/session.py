"""Generic peripheral session engine.

``PeripheralSession`` owns at most one open connection and turns a
``PeripheralProfile`` into framed sends and correlated receives. The dongle
and target sessions are thin compositions of this engine with their own
profile; neither inherits from the other.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from .correlator import ReportCorrelator, ReportSubscription
from .exceptions import DeviceDisconnectedError, HIDLicenseError, NotConnectedError
from .log import LogEntry, LogKind, LogSink, LoggingSink, format_packet
from .profiles import PeripheralProfile, ReportExchange
from .protocol.chunking import ChunkingScheme, ReportAssembler, split_for_send
from .protocol.reports import Report
from .transport.base import HIDBackend, HIDConnection

_LOGGER = logging.getLogger(__name__)


class _ConnectionListener:
    """Binds one connection's callbacks to the session that opened it."""

    def __init__(self, session: PeripheralSession, connection: HIDConnection):
        self._session = session
        self._connection = connection

    def report_received(self, report: Report) -> None:
        self._session._on_report(self._connection, report)

    def connection_lost(self, exc: Exception | None) -> None:
        self._session._on_connection_lost(self._connection, exc)


class PeripheralSession:
    """Connection lifecycle plus framed request/response over HID reports.

    Usage:
        session = PeripheralSession(DONGLE_PROFILE, HIDApiBackend())
        async with session:
            async with session.subscribe(0x03) as replies:
                await session.send_report(0x04, bytes(63))
                report = await replies.receive(timeout=2.0)
    """

    def __init__(
            self,
            profile: PeripheralProfile,
            backend: HIDBackend,
            log_sink: LogSink | None = None,
    ):
        """Initialize session.

        Args:
            profile: Wire configuration of the peripheral
            backend: Transport backend used to open the device
            log_sink: Receiver of trace entries (default: stdlib logging)
        """
        self.profile = profile
        self._backend = backend
        self._log_sink = log_sink if log_sink is not None else LoggingSink()
        self._connection: HIDConnection | None = None
        self._correlator: ReportCorrelator | None = None
        self._lost = False

    async def __aenter__(self) -> PeripheralSession:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    @property
    def name(self) -> str:
        return self.profile.name

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.is_open

    @property
    def product_name(self) -> str | None:
        return self._connection.product_name if self._connection else None

    @property
    def max_report_size(self) -> int:
        """Report payload capacity of the open connection."""
        return self._require_connection().max_report_size

    def log(self, kind: LogKind, message: str, data: bytes | None = None) -> None:
        """Emit a trace entry prefixed with the peripheral name."""
        self._log_sink(LogEntry.create(kind, f"[{self.name}] {message}", data))

    async def connect(self) -> None:
        """Open a connection to the profile's device.

        Raises:
            NoDeviceSelectedError: If no matching device is available
            NotSupportedError: If the HID capability is absent
        """
        if self.is_connected:
            return

        _LOGGER.debug("Connecting to %s (filter=%s)", self.name, self.profile.device_filter)
        connection = await self._backend.open(
            self.profile.device_filter, self.profile.max_report_size
        )
        self._correlator = ReportCorrelator()
        self._connection = connection
        self._lost = False
        connection.set_listener(_ConnectionListener(self, connection))
        self.log(LogKind.SUCCESS, f"Connected: {connection.product_name or 'unknown device'}")

    async def disconnect(self) -> None:
        """Close the connection. Safe to call when already disconnected."""
        self._lost = False
        connection = self._connection
        if connection is None:
            return
        self._connection = None
        try:
            await connection.close()
        finally:
            if self._correlator is not None:
                self._correlator.connection_lost(None)
            self.log(LogKind.INFO, "Disconnected")

    @asynccontextmanager
    async def operation(self, name: str) -> AsyncIterator[None]:
        """Stamp the operation name on any error escaping the block."""
        try:
            yield
        except HIDLicenseError as err:
            if err.operation is None:
                err.operation = name
            self.log(LogKind.ERROR, f"{name} failed: {err.message}")
            raise

    async def send_report(self, report_id: int, data: bytes) -> None:
        """Send one output report.

        Raises:
            NotConnectedError: If not connected (no transport call made)
            DeviceDisconnectedError: If the device went away since connect
        """
        connection = self._require_connection()
        self.log(LogKind.OUTBOUND, format_packet(report_id, data))
        await connection.send_report(report_id, data)

    async def send_feature_report(self, report_id: int, data: bytes) -> None:
        """Send one feature report.

        Raises:
            NotConnectedError: If not connected (no transport call made)
            DeviceDisconnectedError: If the device went away since connect
        """
        connection = self._require_connection()
        self.log(
            LogKind.INFO,
            f"Sending Feature Report [{report_id:02X}]",
            bytes(data),
        )
        await connection.send_feature_report(report_id, data)

    async def send_reports(self, reports: Iterable[Report], delay: float = 0.0) -> None:
        """Send reports in order, pausing ``delay`` seconds between them."""
        reports = list(reports)
        for index, report in enumerate(reports):
            await self.send_report(report.report_id, report.data)
            if delay and index < len(reports) - 1:
                await asyncio.sleep(delay)

    def subscribe(self, report_id: int) -> ReportSubscription:
        """Register interest in an inbound report identifier.

        Raises:
            NotConnectedError: If not connected
            RuntimeError: If the identifier already has a waiter
        """
        return self._require_correlator().subscribe(report_id)

    async def await_report(self, report_id: int, timeout: float) -> Report:
        """Wait for the next report with the given identifier.

        Raises:
            NotConnectedError: If not connected
            HIDTimeoutError: If no matching report arrives in time
            DeviceDisconnectedError: If the device goes away first
        """
        return await self._require_correlator().await_report(report_id, timeout)

    async def send_payload(
            self,
            exchange: ReportExchange,
            payload: bytes,
            scheme: ChunkingScheme | None = None,
    ) -> int:
        """Frame a payload per the exchange and send every report.

        Args:
            exchange: Wire plan of the operation
            payload: Payload of exactly the scheme's declared length
            scheme: Overrides ``exchange.request_scheme``

        Returns:
            Number of reports sent

        Raises:
            InvalidArgumentError: If the payload length does not match
            NotConnectedError: If not connected
        """
        if scheme is None:
            scheme = exchange.request_scheme
        if scheme is None:
            raise ValueError(f"Report 0x{exchange.request_id:02X} has no request framing")
        reports = split_for_send(scheme, payload, exchange.request_id)
        self._require_connection()
        await self.send_reports(reports, exchange.inter_chunk_delay)
        return len(reports)

    async def receive_payload(
            self,
            exchange: ReportExchange,
            subscription: ReportSubscription,
    ) -> bytes:
        """Collect reports until the response scheme is satisfied.

        Every report must arrive within ``exchange.timeout``; the first
        missed deadline aborts the whole receive.

        Raises:
            HIDTimeoutError: If any expected report does not arrive in time
            DataIncompleteError: If the reports end short of the declared length
            DeviceDisconnectedError: If the device goes away first
        """
        if exchange.response_scheme is None:
            raise ValueError(f"Report 0x{exchange.request_id:02X} has no response framing")
        assembler = ReportAssembler(exchange.response_scheme)
        while not assembler.is_done:
            report = await subscription.receive(exchange.timeout)
            assembler.add_report(report)
        return assembler.get_payload()

    def _require_connection(self) -> HIDConnection:
        if self._connection is None or not self._connection.is_open:
            if self._lost:
                raise DeviceDisconnectedError(f"{self.name} disconnected")
            raise NotConnectedError(f"{self.name} not connected")
        return self._connection

    def _require_correlator(self) -> ReportCorrelator:
        self._require_connection()
        if self._correlator is None:
            raise NotConnectedError(f"{self.name} not connected")
        return self._correlator

    def _on_report(self, connection: HIDConnection, report: Report) -> None:
        if connection is not self._connection or self._correlator is None:
            return
        self.log(LogKind.INBOUND, format_packet(report.report_id, report.data))
        self._correlator.report_received(report)

    def _on_connection_lost(self, connection: HIDConnection, exc: Exception | None) -> None:
        if connection is not self._connection:
            return
        _LOGGER.info("%s connection lost: %s", self.name, exc)
        self._connection = None
        self._lost = True
        if self._correlator is not None:
            self._correlator.connection_lost(
                exc or DeviceDisconnectedError(f"{self.name} disconnected")
            )
        self.log(LogKind.ERROR, "Device disconnected")
