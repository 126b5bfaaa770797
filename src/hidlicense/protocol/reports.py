"""HID report value type and report identifier layouts."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

# Transport budget: 64-byte reports, first byte is the report id on the wire
REPORT_SIZE = 64
REPORT_DATA_SIZE = REPORT_SIZE - 1

# Fixed payload sizes
UUID_LENGTH = 128
LICENSE_LENGTH = 256


class DongleReportId(IntEnum):
    """Report identifiers exposed by the license dongle."""

    LICENSE_RESPONSE = 0x01  # Dongle -> host, length-prefixed license chunk
    LICENSE_REQUEST = 0x02   # Host -> dongle, length-prefixed UUID chunk
    COUNTER_RESPONSE = 0x03  # Dongle -> host, remaining credits
    COUNTER_REQUEST = 0x04   # Host -> dongle, zero-filled


class TargetReportId(IntEnum):
    """Report identifiers exposed by the target peripheral."""

    IDENTIFIER_REQUEST = 0x80
    IDENTIFIER_RESPONSE = 0x81
    STORE_LICENSE = 0x82


@dataclass(frozen=True, slots=True)
class Report:
    """One HID report: identifier plus payload bytes (report id excluded)."""

    report_id: int
    data: bytes = b""

    def __post_init__(self) -> None:
        if not 0 <= self.report_id <= 0xFF:
            raise ValueError(
                f"report_id out of range: {self.report_id} (must be 0-255)"
            )
        if not isinstance(self.data, bytes):
            # Frozen dataclass: normalise bytearray/memoryview/list payloads
            object.__setattr__(self, "data", bytes(self.data))

    def __len__(self) -> int:
        return len(self.data)

    @property
    def id_hex(self) -> str:
        """Report id as two upper-case hex digits."""
        return f"{self.report_id:02X}"
