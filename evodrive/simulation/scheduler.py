"""Tick-driven fire-once timers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from evodrive.errors import InvalidConfiguration


@dataclass
class ScheduledEvent:
    """Handle for a pending callback."""

    due: int
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True


class TickScheduler:
    """Runs callbacks after a number of ticks.

    Time only moves when :meth:`advance` is called, so delays are
    deterministic and independent of wall-clock time.
    """

    def __init__(self) -> None:
        self.now = 0
        self._events: list[ScheduledEvent] = []

    @property
    def pending(self) -> bool:
        return any(event.pending for event in self._events)

    def schedule(self, delay: int, callback: Callable[[], None]) -> ScheduledEvent:
        """Run ``callback`` once, ``delay`` ticks from now.

        Args:
            delay: Number of ticks to wait, at least 1
            callback: Function to call

        Returns:
            Handle that can cancel the event
        """
        if delay < 1:
            raise InvalidConfiguration(f"delay must be at least one tick, got {delay}")
        event = ScheduledEvent(due=self.now + delay, callback=callback)
        self._events.append(event)
        return event

    def advance(self) -> int:
        """Move one tick forward and fire due events.

        Returns:
            Number of callbacks fired
        """
        self.now += 1
        due = [e for e in self._events if e.pending and e.due <= self.now]
        self._events = [e for e in self._events if e.pending and e.due > self.now]
        for event in due:
            event.fired = True
            event.callback()
        return len(due)

    def cancel_all(self) -> None:
        for event in self._events:
            event.cancel()
        self._events.clear()
