"""Test report values, builders and counter parsing."""

import pytest

from hidlicense.exceptions import DataIncompleteError
from hidlicense.protocol.commands import build_counter_request, build_identifier_request
from hidlicense.protocol.reports import DongleReportId, Report, TargetReportId
from hidlicense.protocol.responses import parse_counter_response


class TestReport:
    def test_coerces_bytearray(self):
        report = Report(0x01, bytearray(b"\x01\x02"))
        assert isinstance(report.data, bytes)
        assert len(report) == 2

    def test_rejects_out_of_range_id(self):
        with pytest.raises(ValueError, match="out of range"):
            Report(0x100, b"")

    def test_is_immutable(self):
        report = Report(0x01, b"\x00")
        with pytest.raises(AttributeError):
            report.report_id = 0x02

    def test_id_hex(self):
        assert Report(0x8A).id_hex == "8A"


class TestReportIds:
    def test_dongle_layout(self):
        assert DongleReportId.LICENSE_RESPONSE == 0x01
        assert DongleReportId.LICENSE_REQUEST == 0x02
        assert DongleReportId.COUNTER_RESPONSE == 0x03
        assert DongleReportId.COUNTER_REQUEST == 0x04

    def test_target_layout(self):
        assert TargetReportId.IDENTIFIER_REQUEST == 0x80
        assert TargetReportId.IDENTIFIER_RESPONSE == 0x81
        assert TargetReportId.STORE_LICENSE == 0x82


class TestBuilders:
    def test_counter_request_is_zero_filled(self):
        report = build_counter_request()
        assert report.report_id == 0x04
        assert report.data == bytes(63)

    def test_identifier_request_empty_by_default(self):
        assert build_identifier_request() == Report(0x80, b"")

    def test_identifier_request_padded(self):
        assert build_identifier_request(padded=True).data == bytes(63)


class TestParseCounterResponse:
    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            (b"\x05\x00", 5),
            (b"\xFF\x00", 255),
            (b"\x00\x01", 256),
            (b"\xFF\xFF", 65535),
        ],
    )
    def test_little_endian_counter(self, payload, expected):
        assert parse_counter_response(payload + bytes(61)) == expected

    def test_trailing_bytes_ignored(self):
        assert parse_counter_response(b"\x02\x00\xDE\xAD\xBE\xEF") == 2

    def test_alternative_offset(self):
        data = bytes(10) + b"\x34\x12"
        assert parse_counter_response(data, offset=10) == 0x1234

    def test_too_short(self):
        with pytest.raises(DataIncompleteError, match="too short"):
            parse_counter_response(b"\x05")
