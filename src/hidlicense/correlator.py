"""Correlation of pushed input reports with the request awaiting them.

The transport pushes every inbound report; a session waits for one specific
report identifier at a time. ``ReportCorrelator`` sits in between: each
awaited identifier gets a subscription whose queue collects matching reports
until the subscription is closed. Reports nobody subscribed to are dropped.

Subscriptions stay open across several receives when a reply spans multiple
reports, so a report arriving between two receives is not lost. Closing a
subscription discards anything still buffered, which makes a reply that
arrives after its deadline a no-op.
"""

from __future__ import annotations

import asyncio
import logging

from .exceptions import DeviceDisconnectedError, HIDTimeoutError
from .protocol.reports import Report

_LOGGER = logging.getLogger(__name__)


class ReportSubscription:
    """Registered interest in one report identifier.

    Usage:
        async with correlator.subscribe(0x01) as subscription:
            await connection.send_report(0x02, request)
            first = await subscription.receive(timeout=3.0)
            second = await subscription.receive(timeout=3.0)
    """

    def __init__(self, correlator: ReportCorrelator, report_id: int):
        self.report_id = report_id
        self._correlator = correlator
        self._queue: asyncio.Queue[Report | None] = asyncio.Queue()
        self._lost: Exception | None = None
        self._closed = False

    async def __aenter__(self) -> ReportSubscription:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    async def receive(self, timeout: float) -> Report:
        """Wait for the next matching report.

        Args:
            timeout: Deadline in seconds

        Returns:
            The next report carrying this subscription's identifier

        Raises:
            HIDTimeoutError: If no matching report arrives in time
            DeviceDisconnectedError: If the device goes away first
        """
        if self._closed:
            raise RuntimeError(f"Subscription for report 0x{self.report_id:02X} is closed")

        try:
            report = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError as e:
            raise HIDTimeoutError(
                f"Timeout waiting for report 0x{self.report_id:02X} after {timeout}s",
                report_id=self.report_id,
                timeout=timeout,
            ) from e

        if report is None:
            # Leave the marker in place so later receives fail the same way
            self._queue.put_nowait(None)
            raise DeviceDisconnectedError(
                f"Device disconnected while waiting for report 0x{self.report_id:02X}"
            ) from self._lost
        return report

    def close(self) -> None:
        """Deregister and discard buffered reports. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._correlator._unsubscribe(self)
        dropped = self._queue.qsize()
        if dropped and self._lost is None:
            _LOGGER.debug(
                "Discarding %d unread report(s) 0x%02X", dropped, self.report_id
            )

    def _push(self, report: Report) -> None:
        self._queue.put_nowait(report)

    def _fail(self, exc: Exception) -> None:
        self._lost = exc
        self._queue.put_nowait(None)


class ReportCorrelator:
    """Routes inbound reports to the subscription expecting them.

    One subscription per report identifier at a time. Implements the
    transport's ``ReportListener`` interface.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[int, ReportSubscription] = {}
        self._lost: Exception | None = None

    def subscribe(self, report_id: int) -> ReportSubscription:
        """Register interest in a report identifier.

        Raises:
            RuntimeError: If the identifier already has a waiter
            DeviceDisconnectedError: If the connection was already lost
        """
        if self._lost is not None:
            raise DeviceDisconnectedError("Device disconnected") from self._lost
        if report_id in self._subscriptions:
            raise RuntimeError(
                f"Report 0x{report_id:02X} already has a pending waiter"
            )
        subscription = ReportSubscription(self, report_id)
        self._subscriptions[report_id] = subscription
        return subscription

    async def await_report(self, report_id: int, timeout: float) -> Report:
        """Wait for a single report with the given identifier.

        A matching report that arrives after the deadline is ignored.

        Raises:
            HIDTimeoutError: If no matching report arrives in time
            DeviceDisconnectedError: If the device goes away first
            RuntimeError: If the identifier already has a waiter
        """
        async with self.subscribe(report_id) as subscription:
            return await subscription.receive(timeout)

    @property
    def pending(self) -> tuple[int, ...]:
        """Report identifiers currently awaited."""
        return tuple(self._subscriptions)

    @property
    def is_lost(self) -> bool:
        return self._lost is not None

    def report_received(self, report: Report) -> None:
        subscription = self._subscriptions.get(report.report_id)
        if subscription is None:
            _LOGGER.debug("Ignoring unexpected report 0x%02X", report.report_id)
            return
        subscription._push(report)

    def connection_lost(self, exc: Exception | None) -> None:
        if self._lost is not None:
            return
        self._lost = exc if exc is not None else DeviceDisconnectedError("Connection closed")
        for subscription in list(self._subscriptions.values()):
            subscription._fail(self._lost)

    def _unsubscribe(self, subscription: ReportSubscription) -> None:
        if self._subscriptions.get(subscription.report_id) is subscription:
            del self._subscriptions[subscription.report_id]
