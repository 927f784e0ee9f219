"""Status surface seam between the sync cycle and whatever displays it.

WHY: The cycle reports progress ("Syncing... 3/10"), prominent notices
("Starting Klarity sync..."), and per-note problems. Who shows them (a
status bar, a terminal, a test) is not the cycle's business.

HOW: StatusSink is an ABC with three methods. ConsoleStatusSink writes to
stderr for the CLI. RecordingStatusSink keeps an in-memory history for
embedding hosts and tests.

RULES:
- Status text is transient and replaces the previous status text
- Notices are discrete, user-facing messages
- Nothing here goes to stdout
"""

from __future__ import annotations

import sys
from abc import ABC, abstractmethod
from typing import List, Optional, TextIO, Tuple


class StatusSink(ABC):
    """Where the sync cycle sends its user-facing output."""

    @abstractmethod
    def set_status(self, text: str) -> None:
        """Replace the transient status text."""

    @abstractmethod
    def clear_status(self) -> None:
        """Remove the transient status text."""

    @abstractmethod
    def notice(self, text: str) -> None:
        """Show a prominent, discrete message."""


class ConsoleStatusSink(StatusSink):
    """Print status lines and notices to stderr, flushing after each."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def set_status(self, text: str) -> None:
        print(text, file=self.stream, flush=True)

    def clear_status(self) -> None:
        # Each status is its own line; nothing to erase
        pass

    def notice(self, text: str) -> None:
        print(text, file=self.stream, flush=True)


class RecordingStatusSink(StatusSink):
    """Keep every status change and notice in memory.

    ``status`` holds the current status text (None once cleared) and
    ``events`` the full history as ``(kind, text)`` tuples, where kind is
    "status", "clear", or "notice".
    """

    def __init__(self) -> None:
        self.status: Optional[str] = None
        self.events: List[Tuple[str, str]] = []

    def set_status(self, text: str) -> None:
        self.status = text
        self.events.append(("status", text))

    def clear_status(self) -> None:
        self.status = None
        self.events.append(("clear", ""))

    def notice(self, text: str) -> None:
        self.events.append(("notice", text))

    @property
    def notices(self) -> List[str]:
        return [text for kind, text in self.events if kind == "notice"]

    @property
    def statuses(self) -> List[str]:
        return [text for kind, text in self.events if kind == "status"]
