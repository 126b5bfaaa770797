"""Structured transaction trace for a log viewer.

Sessions emit ``LogEntry`` records to an injected sink. The default sink
forwards them to the standard ``logging`` tree; ``MemorySink`` keeps a
bounded history for an on-screen debug console.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator

_LOGGER = logging.getLogger(__name__)


class LogKind(str, Enum):
    """Severity or direction tag of a trace entry."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"
    OUTBOUND = "outbound"
    INBOUND = "inbound"


def format_hex(data: bytes, upper: bool = False) -> str:
    """Format bytes as space-separated hex pairs ("0a 1b 2c")."""
    text = data.hex(" ")
    return text.upper() if upper else text


def format_packet(report_id: int, data: bytes) -> str:
    """Format one report for the trace: "(N bytes) [ID] [HEX ...]"."""
    return f"({len(data)} bytes) [{report_id:02X}] [{format_hex(data, upper=True)}]"


@dataclass(frozen=True)
class LogEntry:
    """One trace event."""

    kind: LogKind
    message: str
    data: str | None = None
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def create(cls, kind: LogKind, message: str, data: bytes | None = None) -> LogEntry:
        """Build an entry, hex-encoding an optional byte dump."""
        return cls(kind=kind, message=message, data=format_hex(data) if data is not None else None)


LogSink = Callable[[LogEntry], None]

_LEVELS = {
    LogKind.INFO: logging.INFO,
    LogKind.SUCCESS: logging.INFO,
    LogKind.ERROR: logging.ERROR,
    LogKind.OUTBOUND: logging.DEBUG,
    LogKind.INBOUND: logging.DEBUG,
}


class LoggingSink:
    """Forwards trace entries to a standard library logger."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or _LOGGER

    def __call__(self, entry: LogEntry) -> None:
        if entry.data is not None:
            self.logger.log(_LEVELS[entry.kind], "%s %s: %s", entry.kind.value, entry.message, entry.data)
        else:
            self.logger.log(_LEVELS[entry.kind], "%s %s", entry.kind.value, entry.message)


class MemorySink:
    """Keeps the most recent trace entries in memory."""

    def __init__(self, maxlen: int | None = 1000):
        self._entries: deque[LogEntry] = deque(maxlen=maxlen)

    def __call__(self, entry: LogEntry) -> None:
        self._entries.append(entry)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def of_kind(self, kind: LogKind) -> list[LogEntry]:
        return [entry for entry in self._entries if entry.kind is kind]

    def clear(self) -> None:
        self._entries.clear()
