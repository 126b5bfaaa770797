"""Test report framing and reassembly."""

import pytest

from hidlicense.exceptions import DataIncompleteError, InvalidArgumentError, ProtocolError
from hidlicense.protocol.chunking import (
    LengthPrefixedScheme,
    RawScheme,
    ReportAssembler,
    SingleReportScheme,
    reassemble,
    split_for_send,
)
from hidlicense.protocol.reports import Report

UUID_SCHEME = LengthPrefixedScheme(128)
LICENSE_SCHEME = LengthPrefixedScheme(256, packet_count=5)


def _lp(chunk: bytes, report_id: int = 0x01) -> Report:
    return Report(report_id, (bytes([len(chunk)]) + chunk).ljust(63, b"\x00"))


class TestSplitLengthPrefixed:
    """Test the 128-byte UUID framing sent to the dongle."""

    def test_uuid_splits_into_62_62_4(self):
        """128 bytes always yield exactly 3 reports carrying 62, 62 and 4 bytes."""
        payload = bytes(range(128))
        reports = split_for_send(UUID_SCHEME, payload, report_id=0x02)

        assert [r.data[0] for r in reports] == [62, 62, 4]
        assert all(r.report_id == 0x02 for r in reports)
        assert all(len(r.data) == 63 for r in reports)

    def test_chunk_layout_and_zero_padding(self):
        """Each report is [len][data][zeros]."""
        payload = bytes(range(1, 129))
        reports = split_for_send(UUID_SCHEME, payload, report_id=0x02)

        assert reports[0].data[1:63] == payload[0:62]
        assert reports[1].data[1:63] == payload[62:124]
        assert reports[2].data[1:5] == payload[124:128]
        assert reports[2].data[5:] == bytes(58)

    @pytest.mark.parametrize("length", [0, 127, 129, 256])
    def test_rejects_wrong_payload_length(self, length):
        """Payloads not matching the declared total are caller errors."""
        with pytest.raises(InvalidArgumentError, match="must be 128 bytes"):
            split_for_send(UUID_SCHEME, bytes(length), report_id=0x02)

    def test_invalid_argument_is_value_error(self):
        with pytest.raises(ValueError):
            split_for_send(UUID_SCHEME, bytes(127), report_id=0x02)

    def test_license_splits_into_five_reports(self):
        reports = split_for_send(LICENSE_SCHEME, bytes(256), report_id=0x01)
        assert [r.data[0] for r in reports] == [62, 62, 62, 62, 8]


class TestReassembleLengthPrefixed:
    """Test length-prefixed receive."""

    def test_round_trip_uuid(self):
        payload = bytes((i * 3) % 256 for i in range(128))
        reports = split_for_send(UUID_SCHEME, payload, report_id=0x02)
        assert reassemble(UUID_SCHEME, reports) == payload

    def test_round_trip_license(self):
        payload = bytes((255 - i) % 256 for i in range(256))
        reports = split_for_send(LICENSE_SCHEME, payload, report_id=0x01)
        assert reassemble(LICENSE_SCHEME, reports) == payload

    def test_stops_after_packet_count(self):
        """Reports past the fixed packet count are not consumed."""
        reports = [_lp(bytes([n]) * 62) for n in range(4)] + [_lp(b"\xAA" * 8), _lp(b"\xBB" * 8)]
        result = reassemble(LICENSE_SCHEME, reports)

        assert len(result) == 256
        assert result[-8:] == b"\xAA" * 8

    def test_oversized_fragment_is_truncated(self):
        """A fragment reporting more than the remaining capacity is cut to fit."""
        reports = [_lp(bytes([n]) * 62) for n in range(5)]  # 310 bytes declared
        result = reassemble(LICENSE_SCHEME, reports)

        assert len(result) == 256
        assert result[248:] == bytes([4]) * 8

    def test_short_total_is_data_incomplete(self):
        """Five reports carrying fewer than 256 bytes surface the partial payload."""
        reports = [_lp(b"\x11" * 40) for _ in range(5)]

        with pytest.raises(DataIncompleteError) as exc_info:
            reassemble(LICENSE_SCHEME, reports)

        assert exc_info.value.received == 200
        assert exc_info.value.expected == 256
        assert exc_info.value.partial == b"\x11" * 200

    def test_declared_length_beyond_report_copies_real_bytes_only(self):
        """No zero-fill is invented when a report is shorter than its length byte."""
        assembler = ReportAssembler(LengthPrefixedScheme(128))
        assembler.add_report(Report(0x01, bytes([62]) + b"\x22" * 10))

        assert assembler.received == 10
        assert not assembler.is_done

    def test_empty_report_counts_as_packet(self):
        assembler = ReportAssembler(LICENSE_SCHEME)
        assembler.add_report(Report(0x01, b""))
        assert assembler.packets_received == 1
        assert assembler.received == 0

    def test_expected_length_must_match_scheme(self):
        with pytest.raises(InvalidArgumentError):
            reassemble(UUID_SCHEME, [], expected_length=129)

    def test_no_reports_is_data_incomplete(self):
        with pytest.raises(DataIncompleteError) as exc_info:
            reassemble(UUID_SCHEME, [])
        assert exc_info.value.partial == b""


class TestRawScheme:
    """Test unprefixed fixed-size framing."""

    def test_license_split_into_63_byte_chunks(self):
        payload = bytes(range(256))
        reports = split_for_send(RawScheme(256, chunk_size=63), payload, report_id=0x82)

        assert len(reports) == 5
        assert all(len(r.data) == 63 for r in reports)
        assert b"".join(r.data for r in reports)[:256] == payload
        assert reports[-1].data[4:] == bytes(59)

    def test_unpadded_last_chunk(self):
        reports = split_for_send(RawScheme(256, chunk_size=63, pad=False), bytes(256), 0x82)
        assert [len(r.data) for r in reports] == [63, 63, 63, 63, 4]

    def test_single_report_when_chunk_fits_payload(self):
        payload = bytes(range(256))
        reports = split_for_send(RawScheme(256, chunk_size=256), payload, report_id=0x82)
        assert reports == [Report(0x82, payload)]

    def test_first_report_with_full_payload_is_truncated(self):
        data = bytes(range(130))
        assert reassemble(RawScheme(128), [Report(0x81, data)]) == data[:128]

    def test_accumulates_over_several_reports(self):
        reports = [Report(0x81, bytes([1]) * 63), Report(0x81, bytes([2]) * 63), Report(0x81, bytes([3]) * 63)]
        result = reassemble(RawScheme(128), reports)
        assert result == bytes([1]) * 63 + bytes([2]) * 63 + bytes([3]) * 2

    def test_packet_count(self):
        assert RawScheme(256, chunk_size=63).packet_count == 5


class TestSingleReportScheme:
    """Test whole-payload-in-one-report framing."""

    def test_truncates_to_declared_length(self):
        data = bytes(range(200))
        assert reassemble(SingleReportScheme(128), [Report(0x81, data)]) == data[:128]

    def test_short_report_is_data_incomplete(self):
        with pytest.raises(DataIncompleteError) as exc_info:
            reassemble(SingleReportScheme(128), [Report(0x81, bytes(100))])
        assert exc_info.value.received == 100

    def test_add_after_done_raises(self):
        assembler = ReportAssembler(SingleReportScheme(128))
        assert assembler.add_report(Report(0x81, bytes(128))) is True
        with pytest.raises(ProtocolError, match="already finished"):
            assembler.add_report(Report(0x81, bytes(128)))


class TestSchemeValidation:
    def test_report_size_must_fit_length_byte(self):
        with pytest.raises(ValueError):
            LengthPrefixedScheme(128, report_size=300)

    def test_total_length_positive(self):
        with pytest.raises(ValueError):
            RawScheme(0)
