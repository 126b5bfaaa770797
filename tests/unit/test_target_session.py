"""Test TargetSession identifier read and license write."""

from __future__ import annotations

import pytest
from fakes import FakeBackend, FakeConnection, fast_profile

from hidlicense import (
    PERMISSIVE_TARGET_PROFILE,
    TARGET_PROFILE,
    TargetSession,
)
from hidlicense.exceptions import (
    DataIncompleteError,
    DeviceDisconnectedError,
    HIDTimeoutError,
    InvalidArgumentError,
    NotConnectedError,
)
from hidlicense.log import LogKind
from hidlicense.protocol.reports import Report, TargetReportId


def _answer(*chunks: bytes):
    def respond(report: Report) -> list[Report]:
        if report.report_id != TargetReportId.IDENTIFIER_REQUEST:
            return []
        return [Report(TargetReportId.IDENTIFIER_RESPONSE, chunk) for chunk in chunks]

    return respond


async def _connected(profile=TARGET_PROFILE, responder=None, sink=None, max_report_size=63):
    fake = FakeConnection(responder=responder, max_report_size=max_report_size)
    target = TargetSession(FakeBackend(fake), log_sink=sink, profile=fast_profile(profile))
    await target.connect()
    return target, fake


class TestReadIdentifier:
    @pytest.mark.asyncio
    async def test_single_report_truncated_to_128(self, sink) -> None:
        identifier = bytes(range(130))
        target, fake = await _connected(responder=_answer(identifier), sink=sink)

        assert await target.read_identifier() == identifier[:128]
        assert fake.sent == [Report(0x80, b"")]
        assert sink.of_kind(LogKind.SUCCESS)[-1].message == "[Target] UUID Read Complete"

    @pytest.mark.asyncio
    async def test_short_single_report_is_data_incomplete(self) -> None:
        target, _ = await _connected(responder=_answer(bytes(100)))

        with pytest.raises(DataIncompleteError) as exc_info:
            await target.read_identifier()

        assert exc_info.value.received == 100
        assert exc_info.value.operation == "read_identifier"

    @pytest.mark.asyncio
    async def test_no_reply_times_out(self) -> None:
        target, _ = await _connected()

        with pytest.raises(HIDTimeoutError) as exc_info:
            await target.read_identifier()

        assert exc_info.value.report_id == 0x81

    @pytest.mark.asyncio
    async def test_permissive_accumulates_reports(self, uuid_bytes) -> None:
        target, fake = await _connected(
            PERMISSIVE_TARGET_PROFILE,
            responder=_answer(uuid_bytes[:63], uuid_bytes[63:126], uuid_bytes[126:] + bytes(61)),
        )

        assert await target.read_identifier() == uuid_bytes
        assert fake.sent == [Report(0x80, bytes(63))]

    @pytest.mark.asyncio
    async def test_permissive_single_full_report(self, uuid_bytes) -> None:
        target, _ = await _connected(PERMISSIVE_TARGET_PROFILE, responder=_answer(uuid_bytes + b"\xFF"))
        assert await target.read_identifier() == uuid_bytes

    @pytest.mark.asyncio
    async def test_permissive_partial_surfaces_received_bytes(self, uuid_bytes, sink) -> None:
        """Timeout after some packets yields DataIncomplete carrying them."""
        target, _ = await _connected(
            PERMISSIVE_TARGET_PROFILE, responder=_answer(uuid_bytes[:63]), sink=sink
        )

        with pytest.raises(DataIncompleteError) as exc_info:
            await target.read_identifier()

        assert exc_info.value.partial == uuid_bytes[:63]
        assert any("63/128" in entry.message for entry in sink.of_kind(LogKind.ERROR))

    @pytest.mark.asyncio
    async def test_permissive_nothing_received_times_out(self) -> None:
        target, _ = await _connected(PERMISSIVE_TARGET_PROFILE)

        with pytest.raises(HIDTimeoutError):
            await target.read_identifier()

    @pytest.mark.asyncio
    async def test_permissive_connects_without_filter(self) -> None:
        backend = FakeBackend(FakeConnection())
        await TargetSession(backend, profile=PERMISSIVE_TARGET_PROFILE).connect()
        assert backend.opened == [None]


class TestWriteLicense:
    @pytest.mark.asyncio
    async def test_chunked_write(self, license_bytes) -> None:
        target, fake = await _connected(PERMISSIVE_TARGET_PROFILE)

        await target.write_license(license_bytes)

        assert [r.report_id for r in fake.sent] == [0x82] * 5
        assert all(len(r.data) == 63 for r in fake.sent)
        assert b"".join(r.data for r in fake.sent)[:256] == license_bytes

    @pytest.mark.asyncio
    async def test_chunks_are_paced(self, license_bytes, monkeypatch) -> None:
        delays: list[float] = []

        async def fake_sleep(delay: float) -> None:
            delays.append(delay)

        fake = FakeConnection()
        target = TargetSession(FakeBackend(fake), profile=PERMISSIVE_TARGET_PROFILE)
        await target.connect()
        monkeypatch.setattr("hidlicense.session.asyncio.sleep", fake_sleep)

        await target.write_license(license_bytes)

        assert delays == [0.02] * 4

    @pytest.mark.asyncio
    async def test_single_report_when_capacity_allows(self, license_bytes) -> None:
        target, fake = await _connected(TARGET_PROFILE, max_report_size=256)

        await target.write_license(license_bytes)

        assert fake.sent == [Report(0x82, license_bytes)]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("length", [0, 255, 257])
    async def test_rejects_wrong_length(self, length) -> None:
        target, fake = await _connected()

        with pytest.raises(InvalidArgumentError, match="License must be 256 bytes"):
            await target.write_license(bytes(length))

        assert fake.sent == []

    @pytest.mark.asyncio
    async def test_requires_connection(self, license_bytes) -> None:
        fake = FakeConnection()
        target = TargetSession(FakeBackend(fake))

        with pytest.raises(NotConnectedError):
            await target.write_license(license_bytes)
        with pytest.raises(NotConnectedError):
            await target.read_identifier()

        assert fake.sent == []

    @pytest.mark.asyncio
    async def test_disconnect_mid_write(self, license_bytes) -> None:
        def respond(report: Report) -> list[Report]:
            if len(fake.sent) == 2:
                fake.drop()
            return []

        target, fake = await _connected(PERMISSIVE_TARGET_PROFILE, responder=respond)

        with pytest.raises(DeviceDisconnectedError) as exc_info:
            await target.write_license(license_bytes)

        assert exc_info.value.operation == "write_license"
        assert len(fake.sent) == 2
        assert not target.is_connected

    @pytest.mark.asyncio
    async def test_lost_target_stays_disconnected_until_reconnect(self, license_bytes) -> None:
        fake = FakeConnection()
        backend = FakeBackend(fake)
        target = TargetSession(backend, profile=fast_profile(PERMISSIVE_TARGET_PROFILE))
        await target.connect()
        fake.drop()

        with pytest.raises(DeviceDisconnectedError):
            await target.read_identifier()

        backend.connection = FakeConnection()
        await target.connect()
        await target.write_license(license_bytes)
        await target.disconnect()

        with pytest.raises(NotConnectedError):
            await target.write_license(license_bytes)
