"""HID connection management over hidapi."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import (
    DeviceDisconnectedError,
    HIDConnectionError,
    NoDeviceSelectedError,
    NotSupportedError,
)
from ..protocol.reports import REPORT_DATA_SIZE, Report
from .base import DeviceFilter, HIDBackend, HIDConnection

if TYPE_CHECKING:
    import hid

_LOGGER = logging.getLogger(__name__)

# Blocking read slice; bounds how long close() waits for the reader
READ_POLL_MS = 100


class HIDApiConnection(HIDConnection):
    """Connection to one HID interface opened through hidapi.

    Features:
    - Background reader publishing every input report to the listener
    - Blocking native calls run in the default executor
    - Read/write failures close the connection and report connection loss
    """

    def __init__(
            self,
            device: hid.device,
            info: dict[str, Any],
            max_report_size: int = REPORT_DATA_SIZE,
    ):
        """Initialize connection around an already opened device.

        Args:
            device: Opened ``hid.device`` handle
            info: Enumeration record the device was opened from
            max_report_size: Payload bytes per report (report id excluded)
        """
        super().__init__(max_report_size)
        self._device = device
        self._info = info
        self._open = True
        self._reader: asyncio.Task[None] | None = None

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def product_name(self) -> str | None:
        return self._info.get("product_string") or None

    def start(self) -> None:
        """Start the background input report reader."""
        if self._reader is None:
            self._reader = asyncio.get_running_loop().create_task(self._read_loop())

    async def close(self) -> None:
        if not self._open:
            return
        _LOGGER.debug("Closing %s", self._info.get("path"))
        self._open = False
        if self._reader is not None:
            await self._reader
            self._reader = None
        try:
            self._device.close()
        except (OSError, ValueError) as e:
            _LOGGER.warning("Error during close: %s", e)
        self._deliver_connection_lost(None)

    async def _write_report(self, report_id: int, data: bytes) -> None:
        await self._write(self._device.write, report_id, data)

    async def _write_feature_report(self, report_id: int, data: bytes) -> None:
        await self._write(self._device.send_feature_report, report_id, data)

    async def _write(self, writer, report_id: int, data: bytes) -> None:
        try:
            written = await asyncio.to_thread(writer, bytes([report_id]) + data)
        except (OSError, ValueError) as e:
            await self._lost(e)
            raise DeviceDisconnectedError(f"Write failed: {e}") from e
        if written < 0:
            err = DeviceDisconnectedError(f"Write of report 0x{report_id:02X} failed")
            await self._lost(err)
            raise err

    async def _read_loop(self) -> None:
        loop = asyncio.get_running_loop()
        # Numbered reports come back as [report_id][data...]
        size = self._max_report_size + 1
        while self._open:
            try:
                raw = await loop.run_in_executor(
                    None, self._device.read, size, READ_POLL_MS
                )
            except (OSError, ValueError) as e:
                if self._open:
                    _LOGGER.warning("Read failed, device gone: %s", e)
                    self._open = False
                    self._close_quietly()
                    self._deliver_connection_lost(DeviceDisconnectedError(str(e)))
                return
            if raw:
                self._deliver_report(Report(raw[0], bytes(raw[1:])))

    async def _lost(self, exc: Exception) -> None:
        if not self._open:
            return
        self._open = False
        if self._reader is not None and self._reader is not asyncio.current_task():
            await self._reader
            self._reader = None
        self._close_quietly()
        self._deliver_connection_lost(exc)

    def _close_quietly(self) -> None:
        try:
            self._device.close()
        except (OSError, ValueError) as e:
            _LOGGER.debug("Ignoring close error on lost device: %s", e)


class HIDApiBackend(HIDBackend):
    """Opens HID interfaces through the hidapi native library."""

    async def open(
            self,
            device_filter: DeviceFilter | None,
            max_report_size: int = REPORT_DATA_SIZE,
    ) -> HIDApiConnection:
        try:
            import hid
        except ImportError as e:
            raise NotSupportedError(f"HID support is not available: {e}") from e

        if device_filter is None:
            candidates = await asyncio.to_thread(hid.enumerate)
        else:
            found = await asyncio.to_thread(
                hid.enumerate, device_filter.vendor_id, device_filter.product_id
            )
            candidates = [info for info in found if device_filter.matches(info)]
        if not candidates:
            raise NoDeviceSelectedError(
                "No device selected" if device_filter is None
                else f"No device matching {device_filter}"
            )

        info = candidates[0]
        _LOGGER.debug(
            "Opening %04x:%04x at %s",
            info.get("vendor_id", 0),
            info.get("product_id", 0),
            info.get("path"),
        )
        device = hid.device()
        try:
            await asyncio.to_thread(device.open_path, info["path"])
            device.set_nonblocking(0)
        except (OSError, ValueError) as e:
            raise HIDConnectionError(f"Failed to open device: {e}") from e

        connection = HIDApiConnection(device, info, max_report_size)
        connection.start()
        return connection
