"""Provision a license onto a target using a license dongle.

Usage:
    uv run python examples/provision.py
    uv run python examples/provision.py --counter-only
    uv run python examples/provision.py --mock-target --verbose
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from datetime import datetime

from hidlicense import (
    DONGLE_PROFILE,
    PERMISSIVE_TARGET_PROFILE,
    TARGET_PROFILE,
    DeviceFilter,
    DongleSession,
    HIDApiBackend,
    HIDLicenseError,
    LogEntry,
    LogKind,
    MockTargetBackend,
    ProvisioningStep,
    TargetSession,
    provision_license,
)

_MARKS = {
    LogKind.INFO: " ",
    LogKind.SUCCESS: "+",
    LogKind.ERROR: "!",
    LogKind.OUTBOUND: ">",
    LogKind.INBOUND: "<",
}


def _print_entry(entry: LogEntry) -> None:
    """Print one trace entry, console style."""
    stamp = datetime.fromtimestamp(entry.timestamp).strftime("%H:%M:%S.%f")[:-3]
    line = f"[{stamp}] {_MARKS[entry.kind]} {entry.message}"
    if entry.data:
        line += f" | {entry.data}"
    print(line)


def _print_step(step: ProvisioningStep) -> None:
    print(f"--- {step.name.replace('_', ' ').title()} ({step.progress}%)")


async def run(args: argparse.Namespace) -> int:
    """Connect both peripherals and run the requested operation."""
    sink = _print_entry if args.verbose else None

    dongle_profile = replace(
        DONGLE_PROFILE,
        device_filter=replace(
            DONGLE_PROFILE.device_filter, vendor_id=args.dongle_vid, product_id=args.dongle_pid
        ),
    )
    dongle = DongleSession(HIDApiBackend(), log_sink=sink, profile=dongle_profile)

    async with dongle:
        credits = await dongle.query_counter()
        print(f"Dongle credits remaining: {credits}")
        if args.counter_only:
            return 0

        if args.mock_target:
            target_backend = MockTargetBackend()
            target_profile = TARGET_PROFILE
        else:
            target_backend = HIDApiBackend()
            target_profile = (
                PERMISSIVE_TARGET_PROFILE if args.permissive_target
                else replace(
                    TARGET_PROFILE,
                    device_filter=DeviceFilter(args.target_vid, args.target_pid),
                )
            )

        async with TargetSession(target_backend, log_sink=sink, profile=target_profile) as target:
            result = await provision_license(dongle, target, on_step=_print_step)

    print(f"Identifier: {result.identifier.hex()}")
    print(f"License:    {result.license.hex()}")
    print(f"Credits before issuing: {result.credits_before}")
    return 0


def _hex_int(value: str) -> int:
    return int(value, 16)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Issue a license from a USB HID dongle and store it on a target device."
    )
    parser.add_argument(
        "--dongle-vid", type=_hex_int, default=DONGLE_PROFILE.device_filter.vendor_id,
        help="Dongle USB vendor id in hex. Default: %(default)04x",
    )
    parser.add_argument(
        "--dongle-pid", type=_hex_int, default=DONGLE_PROFILE.device_filter.product_id,
        help="Dongle USB product id in hex. Default: %(default)04x",
    )
    parser.add_argument(
        "--target-vid", type=_hex_int, default=TARGET_PROFILE.device_filter.vendor_id,
        help="Target USB vendor id in hex. Default: %(default)04x",
    )
    parser.add_argument(
        "--target-pid", type=_hex_int, default=TARGET_PROFILE.device_filter.product_id,
        help="Target USB product id in hex. Default: %(default)04x",
    )
    parser.add_argument(
        "--permissive-target",
        action="store_true",
        help="Accept any HID device as target and accumulate multi-report identifiers.",
    )
    parser.add_argument(
        "--mock-target",
        action="store_true",
        help="Use a simulated target instead of real hardware.",
    )
    parser.add_argument(
        "--counter-only",
        action="store_true",
        help="Only read the dongle credit counter.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print every report sent and received.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    try:
        sys.exit(asyncio.run(run(args)))
    except HIDLicenseError as err:
        print(f"Failed: {err}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
