"""Target peripheral session."""

from __future__ import annotations

import logging

from .exceptions import DataIncompleteError, HIDTimeoutError, InvalidArgumentError
from .log import LogKind, LogSink
from .profiles import TARGET_PROFILE, PeripheralProfile
from .protocol.chunking import RawScheme, ReportAssembler
from .protocol.reports import LICENSE_LENGTH
from .session import PeripheralSession
from .transport.base import HIDBackend

_LOGGER = logging.getLogger(__name__)


class TargetSession:
    """Peripheral that supplies its identifier and stores the license.

    How the identifier comes back depends on the firmware and is set by the
    profile: ``TARGET_PROFILE`` (256-byte reports) expects one report of at
    least 128 bytes, ``PERMISSIVE_TARGET_PROFILE`` (64-byte reports)
    accumulates raw reports up to 128 bytes.
    """

    def __init__(
            self,
            backend: HIDBackend,
            log_sink: LogSink | None = None,
            profile: PeripheralProfile = TARGET_PROFILE,
    ):
        self.session = PeripheralSession(profile, backend, log_sink)

    async def __aenter__(self) -> TargetSession:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self.session.is_connected

    async def connect(self) -> None:
        """Open the target.

        Raises:
            NoDeviceSelectedError: If no target is available
            NotSupportedError: If the HID capability is absent
        """
        async with self.session.operation("connect"):
            await self.session.connect()

    async def disconnect(self) -> None:
        await self.session.disconnect()

    async def read_identifier(self) -> bytes:
        """Read the target's 128-byte identifier.

        Returns:
            Exactly 128 bytes

        Raises:
            NotConnectedError: If the target is not connected
            HIDTimeoutError: If no identifier report arrives within 2 s
            DataIncompleteError: If fewer than 128 bytes arrived; ``partial``
                holds what was received
            DeviceDisconnectedError: If the target goes away
        """
        exchange = self.session.profile.exchange("identifier")
        self.session.log(LogKind.INFO, f"Sending UUID Request (0x{exchange.request_id:02X})...")

        async with self.session.operation("read_identifier"):
            async with self.session.subscribe(exchange.response_id) as replies:
                await self.session.send_report(exchange.request_id, exchange.request_data)
                self.session.log(
                    LogKind.INFO, f"Waiting for UUID Response (0x{exchange.response_id:02X})..."
                )
                assembler = ReportAssembler(exchange.response_scheme)
                while not assembler.is_done:
                    try:
                        report = await replies.receive(exchange.timeout)
                    except HIDTimeoutError:
                        if assembler.packets_received == 0:
                            raise
                        # Firmware stopped early; report what did arrive
                        break
                    assembler.add_report(report)

                try:
                    identifier = assembler.get_payload()
                except DataIncompleteError as err:
                    self.session.log(
                        LogKind.ERROR,
                        f"UUID read incomplete: got {err.received}/{err.expected} bytes",
                    )
                    raise

        self.session.log(LogKind.SUCCESS, "UUID Read Complete", identifier)
        return identifier

    async def write_license(self, license_blob: bytes) -> None:
        """Store a 256-byte license on the target.

        Sent as a single report when the connection's report size allows it,
        otherwise as raw 63-byte chunks with a short pause between them. No
        acknowledgement is awaited; completing every send is success.

        Raises:
            InvalidArgumentError: If the license is not 256 bytes (nothing is sent)
            NotConnectedError: If the target is not connected
            DeviceDisconnectedError: If the target goes away mid-write
        """
        if len(license_blob) != LICENSE_LENGTH:
            raise InvalidArgumentError(
                f"License must be {LICENSE_LENGTH} bytes (got {len(license_blob)})",
                operation="write_license",
            )
        exchange = self.session.profile.exchange("store_license")

        async with self.session.operation("write_license"):
            scheme = None
            if self.session.max_report_size >= LICENSE_LENGTH:
                scheme = RawScheme(LICENSE_LENGTH, chunk_size=LICENSE_LENGTH)
            self.session.log(
                LogKind.INFO,
                f"Writing License (0x{exchange.request_id:02X}) - {LICENSE_LENGTH} bytes...",
            )
            sent = await self.session.send_payload(exchange, license_blob, scheme)
            _LOGGER.debug("License written in %d report(s)", sent)

        self.session.log(LogKind.SUCCESS, "License Write Complete")
