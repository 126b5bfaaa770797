"""Exception hierarchy for HID license provisioning."""

from __future__ import annotations


class HIDLicenseError(Exception):
    """Base exception for all hidlicense errors.

    Attributes:
        operation: Name of the session operation the error escaped from,
            stamped by the session (None when raised outside an operation)
    """

    def __init__(self, message: str = "", *, operation: str | None = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message


class HIDConnectionError(HIDLicenseError):
    """Base for connection lifecycle failures."""


class NotSupportedError(HIDConnectionError):
    """HID transport capability is not available on this host."""


class NoDeviceSelectedError(HIDConnectionError):
    """No matching device was provided by the user or backend."""


class NotConnectedError(HIDConnectionError):
    """Operation attempted without an open connection."""


class DeviceDisconnectedError(HIDConnectionError):
    """Peripheral went away while an operation was in flight."""


class HIDTimeoutError(HIDLicenseError):
    """Expected report did not arrive before its deadline."""

    def __init__(
            self,
            message: str = "",
            *,
            report_id: int | None = None,
            timeout: float | None = None,
            operation: str | None = None,
    ):
        super().__init__(message, operation=operation)
        self.report_id = report_id
        self.timeout = timeout


class ProtocolError(HIDLicenseError):
    """Peripheral replied with data that violates the report protocol."""


class DataIncompleteError(ProtocolError):
    """Fewer bytes were reassembled than the declared payload length.

    Attributes:
        partial: Bytes actually received, in order
        expected: Declared total payload length
    """

    def __init__(
            self,
            message: str = "",
            *,
            partial: bytes = b"",
            expected: int = 0,
            operation: str | None = None,
    ):
        super().__init__(message, operation=operation)
        self.partial = bytes(partial)
        self.expected = expected

    @property
    def received(self) -> int:
        """Number of payload bytes actually received."""
        return len(self.partial)


class NoCreditsError(ProtocolError):
    """Dongle has no license-issuance credits left."""


class InvalidArgumentError(HIDLicenseError, ValueError):
    """Caller passed a payload that does not match the declared scheme."""
