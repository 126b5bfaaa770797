"""Wire configurations of the supported peripherals.

A ``PeripheralProfile`` is everything the generic session engine needs to
talk to one kind of peripheral: its USB identity, report size and, per
operation, which reports carry the request and reply and how payloads are
framed. Dongle and target differ only in their profile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from .protocol.chunking import (
    ChunkingScheme,
    LengthPrefixedScheme,
    RawScheme,
    SingleReportScheme,
)
from .protocol.commands import build_counter_request, build_identifier_request
from .protocol.reports import (
    LICENSE_LENGTH,
    REPORT_DATA_SIZE,
    UUID_LENGTH,
    DongleReportId,
    TargetReportId,
)
from .transport.base import DeviceFilter

# USB identities
DONGLE_VENDOR_ID = 0x0483
DONGLE_PRODUCT_ID = 0x5732
DONGLE_USAGE_PAGE = 0xFF00
TARGET_VENDOR_ID = 0x0A12
TARGET_PRODUCT_ID = 0x4007

# Deadlines (seconds)
COUNTER_TIMEOUT = 2.0
LICENSE_PACKET_TIMEOUT = 3.0
IDENTIFIER_TIMEOUT = 2.0

# Dongle returns the 256-byte license in exactly this many reports
LICENSE_RESPONSE_PACKETS = 5

# Pause between license chunks so target firmware can ingest each one
LICENSE_CHUNK_DELAY = 0.02


@dataclass(frozen=True)
class ReportExchange:
    """Wire plan of one operation.

    Attributes:
        request_id: Report id the request is sent on
        response_id: Report id the reply arrives on (None: no reply)
        request_scheme: Framing of a multi-report request payload
        response_scheme: Framing of the reply payload
        request_data: Fixed payload for requests that carry no caller data
        timeout: Deadline per awaited reply report, in seconds
        inter_chunk_delay: Pause between request reports, in seconds
    """

    request_id: int
    response_id: int | None = None
    request_scheme: ChunkingScheme | None = None
    response_scheme: ChunkingScheme | None = None
    request_data: bytes = b""
    timeout: float = 2.0
    inter_chunk_delay: float = 0.0


@dataclass(frozen=True)
class PeripheralProfile:
    """Static description of one peripheral kind."""

    name: str
    device_filter: DeviceFilter | None
    exchanges: Mapping[str, ReportExchange] = field(default_factory=dict)
    max_report_size: int = REPORT_DATA_SIZE

    def exchange(self, operation: str) -> ReportExchange:
        """Get the wire plan for an operation.

        Raises:
            KeyError: If this peripheral does not support the operation
        """
        try:
            return self.exchanges[operation]
        except KeyError:
            raise KeyError(f"{self.name} has no '{operation}' exchange") from None


DONGLE_PROFILE = PeripheralProfile(
    name="Dongle",
    device_filter=DeviceFilter(DONGLE_VENDOR_ID, DONGLE_PRODUCT_ID, DONGLE_USAGE_PAGE),
    exchanges={
        "counter": ReportExchange(
            request_id=DongleReportId.COUNTER_REQUEST,
            response_id=DongleReportId.COUNTER_RESPONSE,
            request_data=build_counter_request().data,
            timeout=COUNTER_TIMEOUT,
        ),
        "license": ReportExchange(
            request_id=DongleReportId.LICENSE_REQUEST,
            response_id=DongleReportId.LICENSE_RESPONSE,
            request_scheme=LengthPrefixedScheme(UUID_LENGTH),
            response_scheme=LengthPrefixedScheme(
                LICENSE_LENGTH, packet_count=LICENSE_RESPONSE_PACKETS
            ),
            timeout=LICENSE_PACKET_TIMEOUT,
        ),
    },
)

_STORE_LICENSE = ReportExchange(
    request_id=TargetReportId.STORE_LICENSE,
    request_scheme=RawScheme(LICENSE_LENGTH, chunk_size=REPORT_DATA_SIZE),
    inter_chunk_delay=LICENSE_CHUNK_DELAY,
)

# Target firmware with 256-byte reports: the identifier comes back in one
# report and the license goes out in one report
TARGET_PROFILE = PeripheralProfile(
    name="Target",
    device_filter=DeviceFilter(TARGET_VENDOR_ID, TARGET_PRODUCT_ID),
    exchanges={
        "identifier": ReportExchange(
            request_id=TargetReportId.IDENTIFIER_REQUEST,
            response_id=TargetReportId.IDENTIFIER_RESPONSE,
            request_data=build_identifier_request().data,
            response_scheme=SingleReportScheme(UUID_LENGTH),
            timeout=IDENTIFIER_TIMEOUT,
        ),
        "store_license": _STORE_LICENSE,
    },
    max_report_size=LICENSE_LENGTH,
)

# Any device the backend returns, with 64-byte reports; identifier
# accumulated over several raw reports, request padded to a full report,
# license sent as paced raw chunks
PERMISSIVE_TARGET_PROFILE = PeripheralProfile(
    name="Target",
    device_filter=None,
    exchanges={
        "identifier": ReportExchange(
            request_id=TargetReportId.IDENTIFIER_REQUEST,
            response_id=TargetReportId.IDENTIFIER_RESPONSE,
            request_data=build_identifier_request(padded=True).data,
            response_scheme=RawScheme(UUID_LENGTH),
            timeout=IDENTIFIER_TIMEOUT,
        ),
        "store_license": _STORE_LICENSE,
    },
)
