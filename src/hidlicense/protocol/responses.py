"""Inbound report parsing."""

from __future__ import annotations

import struct

from ..exceptions import DataIncompleteError

# Counter field position inside the counter response. Firmware history shows
# both 0 and 10; 0 matches current dongle builds.
COUNTER_OFFSET = 0


def parse_counter_response(data: bytes, offset: int = COUNTER_OFFSET) -> int:
    """Decode remaining license credits from a counter response.

    Format: [counter_lo][counter_hi][ignored...] at ``offset``

    Args:
        data: Counter response payload (report id stripped)
        offset: Byte offset of the little-endian uint16 counter

    Returns:
        Remaining credits (0-65535)

    Raises:
        DataIncompleteError: If the payload is too short to hold the counter
    """
    if len(data) < offset + 2:
        raise DataIncompleteError(
            f"Counter response too short: {len(data)} bytes (need {offset + 2})",
            partial=data,
            expected=offset + 2,
        )
    return struct.unpack_from("<H", data, offset)[0]
