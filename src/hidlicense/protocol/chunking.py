"""Multi-report framing for payloads larger than one HID report.

Three conventions are in use across the supported firmware:

- Length-prefixed: every report is [len:1][data:len][zero padding]. The
  dongle uses it in both directions (128-byte UUID out as 62+62+4, 256-byte
  license back as exactly 5 reports).
- Raw: unprefixed fixed-size chunks, last chunk zero-padded. The target
  accepts its license this way and some builds return their identifier in
  several raw reports.
- Single report: the whole payload travels in one report.

The scheme is always chosen by the caller for the operation at hand; it is
never guessed from the data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Union

from ..exceptions import DataIncompleteError, InvalidArgumentError, ProtocolError
from .reports import REPORT_DATA_SIZE, Report

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LengthPrefixedScheme:
    """[len:1][data][padding] reports of ``report_size`` bytes.

    Attributes:
        total_length: Declared payload length
        report_size: Bytes per report, length byte included (default: 63)
        packet_count: Receive stops after exactly this many reports when set,
            otherwise once ``total_length`` bytes were collected
    """

    total_length: int
    report_size: int = REPORT_DATA_SIZE
    packet_count: int | None = None

    def __post_init__(self) -> None:
        if self.total_length <= 0:
            raise ValueError(f"total_length must be positive, got {self.total_length}")
        if not 2 <= self.report_size <= 256:
            raise ValueError(
                f"report_size out of range: {self.report_size} (must be 2-256)"
            )
        if self.packet_count is not None and self.packet_count < 1:
            raise ValueError(f"packet_count must be >= 1, got {self.packet_count}")

    @property
    def chunk_size(self) -> int:
        """Maximum data bytes carried per report."""
        return self.report_size - 1


@dataclass(frozen=True, slots=True)
class RawScheme:
    """Unprefixed chunks of ``chunk_size`` bytes.

    A ``chunk_size`` at least as large as ``total_length`` sends the whole
    payload as one unpadded report.
    """

    total_length: int
    chunk_size: int = REPORT_DATA_SIZE
    pad: bool = True

    def __post_init__(self) -> None:
        if self.total_length <= 0:
            raise ValueError(f"total_length must be positive, got {self.total_length}")
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")

    @property
    def report_size(self) -> int:
        if self.chunk_size >= self.total_length:
            return self.total_length
        return self.chunk_size

    @property
    def packet_count(self) -> int:
        return -(-self.total_length // self.chunk_size)


@dataclass(frozen=True, slots=True)
class SingleReportScheme:
    """Whole payload in a single report."""

    total_length: int

    def __post_init__(self) -> None:
        if self.total_length <= 0:
            raise ValueError(f"total_length must be positive, got {self.total_length}")

    @property
    def report_size(self) -> int:
        return self.total_length


ChunkingScheme = Union[LengthPrefixedScheme, RawScheme, SingleReportScheme]


def _check_declared_length(scheme: ChunkingScheme, length: int, what: str) -> None:
    if length != scheme.total_length:
        raise InvalidArgumentError(
            f"{what} must be {scheme.total_length} bytes (got {length})"
        )


def split_for_send(
        scheme: ChunkingScheme,
        payload: bytes,
        report_id: int,
) -> list[Report]:
    """Split a payload into the ordered reports for one outbound transfer.

    Args:
        scheme: Framing convention of the receiving firmware
        payload: Exactly ``scheme.total_length`` bytes
        report_id: Report identifier stamped on every chunk

    Returns:
        Reports in transmission order

    Raises:
        InvalidArgumentError: If payload length differs from the scheme total
    """
    payload = bytes(payload)
    _check_declared_length(scheme, len(payload), "Payload")

    if isinstance(scheme, LengthPrefixedScheme):
        reports = []
        for start in range(0, len(payload), scheme.chunk_size):
            chunk = payload[start:start + scheme.chunk_size]
            data = bytes([len(chunk)]) + chunk
            reports.append(Report(report_id, data.ljust(scheme.report_size, b"\x00")))
        return reports

    if isinstance(scheme, RawScheme):
        if scheme.chunk_size >= len(payload):
            return [Report(report_id, payload)]
        reports = []
        for start in range(0, len(payload), scheme.chunk_size):
            chunk = payload[start:start + scheme.chunk_size]
            if scheme.pad:
                chunk = chunk.ljust(scheme.chunk_size, b"\x00")
            reports.append(Report(report_id, chunk))
        return reports

    return [Report(report_id, payload)]


class ReportAssembler:
    """Incrementally reassembles a payload from inbound reports.

    Only bytes actually present in a report are copied; nothing is
    zero-filled. Data beyond the declared total is dropped.

    Example:
        >>> assembler = ReportAssembler(LengthPrefixedScheme(256, packet_count=5))
        >>> for report in reports:
        ...     if assembler.add_report(report):
        ...         break
        >>> license_blob = assembler.get_payload()
    """

    def __init__(self, scheme: ChunkingScheme, expected_length: int | None = None):
        """Initialize assembler.

        Args:
            scheme: Framing convention of the sending firmware
            expected_length: Payload length the caller's operation requires;
                must equal the scheme total when given

        Raises:
            InvalidArgumentError: If expected_length differs from the scheme total
        """
        if expected_length is not None:
            _check_declared_length(scheme, expected_length, "Expected payload")
        self.scheme = scheme
        self._buffer = bytearray()
        self._packets = 0
        self._done = False

    def add_report(self, report: Report) -> bool:
        """Consume one inbound report.

        Args:
            report: Next report in arrival order

        Returns:
            True once the scheme expects no further reports

        Raises:
            ProtocolError: If the assembly already finished
        """
        if self._done:
            raise ProtocolError("Assembly already finished")

        self._packets += 1
        data = report.data
        remaining = self.scheme.total_length - len(self._buffer)

        if isinstance(self.scheme, LengthPrefixedScheme):
            if not data:
                _LOGGER.warning("Empty report %d in length-prefixed transfer", self._packets)
                chunk = b""
            else:
                declared = data[0]
                chunk = data[1:1 + declared]
                if len(chunk) < declared:
                    _LOGGER.debug(
                        "Report %d declares %d bytes but carries %d",
                        self._packets,
                        declared,
                        len(chunk),
                    )
            self._buffer += chunk[:remaining]
            if self.scheme.packet_count is not None:
                self._done = self._packets >= self.scheme.packet_count
            else:
                self._done = len(self._buffer) >= self.scheme.total_length

        elif isinstance(self.scheme, RawScheme):
            self._buffer += data[:remaining]
            self._done = len(self._buffer) >= self.scheme.total_length

        else:
            # Single report: whatever arrived is all there will be
            self._buffer += data[:remaining]
            self._done = True

        return self._done

    def get_payload(self) -> bytes:
        """Get the reassembled payload.

        Returns:
            Exactly ``scheme.total_length`` bytes

        Raises:
            DataIncompleteError: If fewer bytes were collected, carrying the
                partial payload
        """
        if not self.is_complete:
            raise DataIncompleteError(
                f"Assembly incomplete: have {len(self._buffer)}/"
                f"{self.scheme.total_length} bytes from {self._packets} reports",
                partial=bytes(self._buffer),
                expected=self.scheme.total_length,
            )
        return bytes(self._buffer)

    @property
    def is_done(self) -> bool:
        """True once no further reports are expected."""
        return self._done

    @property
    def is_complete(self) -> bool:
        """True once the full declared payload has been collected."""
        return len(self._buffer) == self.scheme.total_length

    @property
    def received(self) -> int:
        """Payload bytes collected so far."""
        return len(self._buffer)

    @property
    def packets_received(self) -> int:
        """Reports consumed so far."""
        return self._packets


def reassemble(
        scheme: ChunkingScheme,
        reports: Iterable[Report],
        expected_length: int | None = None,
) -> bytes:
    """Reassemble a payload from inbound reports in arrival order.

    Reports past the point where the scheme stops are ignored.

    Args:
        scheme: Framing convention of the sending firmware
        reports: Inbound reports
        expected_length: Payload length the caller requires (optional)

    Returns:
        Exactly ``scheme.total_length`` bytes

    Raises:
        InvalidArgumentError: If expected_length differs from the scheme total
        DataIncompleteError: If the reports end short of the declared total
    """
    assembler = ReportAssembler(scheme, expected_length)
    for report in reports:
        if assembler.add_report(report):
            break
    return assembler.get_payload()
