"""License dongle session."""

from __future__ import annotations

import logging

from .exceptions import InvalidArgumentError
from .log import LogKind, LogSink
from .profiles import DONGLE_PROFILE, PeripheralProfile
from .protocol.reports import UUID_LENGTH
from .protocol.responses import COUNTER_OFFSET, parse_counter_response
from .session import PeripheralSession
from .transport.base import HIDBackend

_LOGGER = logging.getLogger(__name__)


class DongleSession:
    """USB HID license dongle used as a signing oracle.

    The dongle signs a 128-byte device UUID into a 256-byte license and
    exposes a counter of remaining issuance credits.

    Usage:
        async with DongleSession(HIDApiBackend()) as dongle:
            credits = await dongle.query_counter()
            license_blob = await dongle.exchange_uuid_for_license(uuid)
    """

    def __init__(
            self,
            backend: HIDBackend,
            log_sink: LogSink | None = None,
            profile: PeripheralProfile = DONGLE_PROFILE,
            counter_offset: int = COUNTER_OFFSET,
    ):
        """Initialize dongle session.

        Args:
            backend: Transport backend used to open the dongle
            log_sink: Receiver of trace entries (default: stdlib logging)
            profile: Wire configuration (default: DONGLE_PROFILE)
            counter_offset: Byte offset of the counter in its response
        """
        self.session = PeripheralSession(profile, backend, log_sink)
        self.counter_offset = counter_offset

    async def __aenter__(self) -> DongleSession:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()

    @property
    def is_connected(self) -> bool:
        return self.session.is_connected

    async def connect(self) -> None:
        """Open the dongle.

        Raises:
            NoDeviceSelectedError: If no dongle is available
            NotSupportedError: If the HID capability is absent
        """
        async with self.session.operation("connect"):
            await self.session.connect()

    async def disconnect(self) -> None:
        await self.session.disconnect()

    async def query_counter(self) -> int:
        """Read remaining license-issuance credits.

        A failure means the counter is unknown, not zero.

        Returns:
            Remaining credits (16-bit)

        Raises:
            NotConnectedError: If the dongle is not connected
            HIDTimeoutError: If the dongle does not answer within 2 s
            DeviceDisconnectedError: If the dongle goes away
        """
        exchange = self.session.profile.exchange("counter")
        async with self.session.operation("query_counter"):
            async with self.session.subscribe(exchange.response_id) as replies:
                await self.session.send_report(exchange.request_id, exchange.request_data)
                response = await replies.receive(exchange.timeout)
            counter = parse_counter_response(response.data, self.counter_offset)

        self.session.log(LogKind.SUCCESS, f"Counter: {counter}")
        return counter

    async def send_uuid(self, uuid: bytes) -> None:
        """Send the 128-byte UUID as three length-prefixed reports.

        Raises:
            InvalidArgumentError: If uuid is not 128 bytes
            NotConnectedError: If the dongle is not connected
        """
        self._check_uuid(uuid, "send_uuid")
        exchange = self.session.profile.exchange("license")
        async with self.session.operation("send_uuid"):
            await self.session.send_payload(exchange, uuid)

    async def receive_license(self) -> bytes:
        """Collect the 256-byte license from five length-prefixed reports.

        Only meaningful right after ``send_uuid``; a license reply that
        arrived before this call is not seen. Prefer
        ``exchange_uuid_for_license`` which subscribes before sending.

        Raises:
            HIDTimeoutError: If any of the five reports is missing
            DataIncompleteError: If the five reports carry fewer than 256 bytes
        """
        exchange = self.session.profile.exchange("license")
        async with self.session.operation("receive_license"):
            async with self.session.subscribe(exchange.response_id) as replies:
                return await self.session.receive_payload(exchange, replies)

    async def exchange_uuid_for_license(self, uuid: bytes) -> bytes:
        """Have the dongle sign a device UUID into a license.

        All five reply reports must arrive, each within 3 s; a partial
        license is never returned.

        Args:
            uuid: 128-byte device identifier

        Returns:
            256-byte license

        Raises:
            InvalidArgumentError: If uuid is not 128 bytes (nothing is sent)
            NotConnectedError: If the dongle is not connected
            HIDTimeoutError: If any reply report is missing
            DataIncompleteError: If the replies carry fewer than 256 bytes
            DeviceDisconnectedError: If the dongle goes away
        """
        self._check_uuid(uuid, "exchange_uuid_for_license")
        exchange = self.session.profile.exchange("license")

        async with self.session.operation("exchange_uuid_for_license"):
            async with self.session.subscribe(exchange.response_id) as replies:
                sent = await self.session.send_payload(exchange, uuid)
                _LOGGER.debug("Sent UUID in %d reports, awaiting license", sent)
                license_blob = await self.session.receive_payload(exchange, replies)

        self.session.log(LogKind.SUCCESS, f"License received ({len(license_blob)} bytes)")
        return license_blob

    @staticmethod
    def _check_uuid(uuid: bytes, operation: str) -> None:
        if len(uuid) != UUID_LENGTH:
            raise InvalidArgumentError(
                f"UUID must be {UUID_LENGTH} bytes (got {len(uuid)})",
                operation=operation,
            )

