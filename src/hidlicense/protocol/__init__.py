"""HID report protocol implementation."""

from .chunking import (
    ChunkingScheme,
    LengthPrefixedScheme,
    RawScheme,
    ReportAssembler,
    SingleReportScheme,
    reassemble,
    split_for_send,
)
from .commands import build_counter_request, build_identifier_request
from .reports import (
    LICENSE_LENGTH,
    REPORT_DATA_SIZE,
    REPORT_SIZE,
    UUID_LENGTH,
    DongleReportId,
    Report,
    TargetReportId,
)
from .responses import COUNTER_OFFSET, parse_counter_response

__all__ = [
    "Report",
    "DongleReportId",
    "TargetReportId",
    "REPORT_SIZE",
    "REPORT_DATA_SIZE",
    "UUID_LENGTH",
    "LICENSE_LENGTH",
    "COUNTER_OFFSET",
    "ChunkingScheme",
    "LengthPrefixedScheme",
    "RawScheme",
    "SingleReportScheme",
    "ReportAssembler",
    "split_for_send",
    "reassemble",
    "build_counter_request",
    "build_identifier_request",
    "parse_counter_response",
]
