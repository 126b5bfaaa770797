"""Outbound report builders for dongle and target peripherals."""

from __future__ import annotations

from .reports import REPORT_DATA_SIZE, DongleReportId, Report, TargetReportId


def build_counter_request() -> Report:
    """Build the dongle counter query.

    Returns:
        Report 0x04 carrying 63 zero bytes
    """
    return Report(DongleReportId.COUNTER_REQUEST, bytes(REPORT_DATA_SIZE))


def build_identifier_request(padded: bool = False) -> Report:
    """Build the target identifier query.

    Args:
        padded: Send a zero-filled full report instead of an empty one.
            Some target firmware builds only accept full-size output reports.

    Returns:
        Report 0x80
    """
    data = bytes(REPORT_DATA_SIZE) if padded else b""
    return Report(TargetReportId.IDENTIFIER_REQUEST, data)
