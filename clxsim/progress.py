"""Per-event progress reporting during a run."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import TextIO


def progress_interval(num_events: int) -> int:
    """How many events pass between progress lines for a run of the given size."""
    if num_events < 1001:
        return 1
    if num_events < 10001:
        return 100
    if num_events < 100001:
        return 500
    if num_events < 1000001:
        return 1000
    if num_events < 10000001:
        return 2000
    return 3000


@dataclass
class EventProgress:
    """Writes a carriage-return progress line every few events."""

    num_events: int
    stream: TextIO = field(default_factory=lambda: sys.stdout)
    interval: int = field(init=False)

    def __post_init__(self) -> None:
        self.interval = progress_interval(self.num_events)

    def begin_event(self, event_id: int) -> str | None:
        """Report the start of a zero-based event; returns the line written, if any."""
        number = event_id + 1
        if number % self.interval:
            return None
        message = f"Event {number} ({int(100 * number / self.num_events)}%)\r"
        self.stream.write(message)
        self.stream.flush()
        return message