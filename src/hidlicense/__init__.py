"""HID License Provisioning Package.

  Pure Python package for provisioning signed license blobs onto USB HID
  peripherals using a license dongle as signing oracle.
  """

from .correlator import ReportCorrelator, ReportSubscription
from .dongle import DongleSession
from .exceptions import (
    DataIncompleteError,
    DeviceDisconnectedError,
    HIDConnectionError,
    HIDLicenseError,
    HIDTimeoutError,
    InvalidArgumentError,
    NoCreditsError,
    NoDeviceSelectedError,
    NotConnectedError,
    NotSupportedError,
    ProtocolError,
)
from .log import LogEntry, LogKind, LoggingSink, LogSink, MemorySink, format_hex, format_packet
from .profiles import (
    DONGLE_PROFILE,
    PERMISSIVE_TARGET_PROFILE,
    TARGET_PROFILE,
    PeripheralProfile,
    ReportExchange,
)
from .protocol import (
    LICENSE_LENGTH,
    UUID_LENGTH,
    DongleReportId,
    LengthPrefixedScheme,
    RawScheme,
    Report,
    ReportAssembler,
    SingleReportScheme,
    TargetReportId,
    reassemble,
    split_for_send,
)
from .provisioning import ProvisioningResult, ProvisioningStep, provision_license
from .session import PeripheralSession
from .target import TargetSession
from .transport import (
    DeviceFilter,
    HIDApiBackend,
    HIDBackend,
    HIDConnection,
    MockTargetBackend,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "DongleSession",
    "TargetSession",
    "PeripheralSession",
    "provision_license",
    "ProvisioningResult",
    "ProvisioningStep",
    # Exceptions
    "HIDLicenseError",
    "HIDConnectionError",
    "NotSupportedError",
    "NoDeviceSelectedError",
    "NotConnectedError",
    "DeviceDisconnectedError",
    "HIDTimeoutError",
    "ProtocolError",
    "DataIncompleteError",
    "NoCreditsError",
    "InvalidArgumentError",
    # Profiles
    "PeripheralProfile",
    "ReportExchange",
    "DONGLE_PROFILE",
    "TARGET_PROFILE",
    "PERMISSIVE_TARGET_PROFILE",
    # Protocol
    "Report",
    "DongleReportId",
    "TargetReportId",
    "LengthPrefixedScheme",
    "RawScheme",
    "SingleReportScheme",
    "ReportAssembler",
    "split_for_send",
    "reassemble",
    "ReportCorrelator",
    "ReportSubscription",
    # Transport
    "DeviceFilter",
    "HIDBackend",
    "HIDConnection",
    "HIDApiBackend",
    "MockTargetBackend",
    # Logging
    "LogEntry",
    "LogKind",
    "LogSink",
    "LoggingSink",
    "MemorySink",
    "format_hex",
    "format_packet",
    # Constants
    "UUID_LENGTH",
    "LICENSE_LENGTH",
]
