"""End-to-end license provisioning: target identifier -> dongle -> target."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .dongle import DongleSession
from .exceptions import NoCreditsError, NotConnectedError
from .target import TargetSession

_LOGGER = logging.getLogger(__name__)


class ProvisioningStep(Enum):
    """Stages of one provisioning run, valued by progress percentage."""

    READ_IDENTIFIER = 25
    CHECK_COUNTER = 40
    GENERATE_LICENSE = 60
    WRITE_LICENSE = 85
    COMPLETE = 100

    @property
    def progress(self) -> int:
        return self.value


@dataclass(frozen=True)
class ProvisioningResult:
    """Outcome of a successful provisioning run."""

    identifier: bytes
    license: bytes
    credits_before: int


async def provision_license(
        dongle: DongleSession,
        target: TargetSession,
        on_step: Callable[[ProvisioningStep], None] | None = None,
) -> ProvisioningResult:
    """Issue a license for the connected target and store it there.

    Steps: read the target identifier, check the dongle has credits left,
    have the dongle sign the identifier, write the license back. Any failure
    aborts the run and propagates unchanged; nothing is retried.

    Args:
        dongle: Connected dongle session
        target: Connected target session
        on_step: Called as each step starts

    Returns:
        Identifier, license and the credit count seen before issuing

    Raises:
        NotConnectedError: If either peripheral is not connected
        NoCreditsError: If the dongle has no credits left
    """
    if not dongle.is_connected or not target.is_connected:
        raise NotConnectedError("Both dongle and target must be connected")

    def step(current: ProvisioningStep) -> None:
        _LOGGER.info("Provisioning step %s (%d%%)", current.name, current.progress)
        if on_step is not None:
            on_step(current)

    step(ProvisioningStep.READ_IDENTIFIER)
    identifier = await target.read_identifier()

    step(ProvisioningStep.CHECK_COUNTER)
    credits = await dongle.query_counter()
    if credits <= 0:
        raise NoCreditsError("No licenses available on dongle", operation="provision_license")

    step(ProvisioningStep.GENERATE_LICENSE)
    license_blob = await dongle.exchange_uuid_for_license(identifier)

    step(ProvisioningStep.WRITE_LICENSE)
    await target.write_license(license_blob)

    step(ProvisioningStep.COMPLETE)
    return ProvisioningResult(
        identifier=identifier,
        license=license_blob,
        credits_before=credits,
    )
