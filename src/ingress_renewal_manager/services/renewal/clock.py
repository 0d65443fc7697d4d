"""Cancellable time source.

Every suspension in the engine (challenge polling, the audit interval, the
settle pause after deleting a secret) goes through ``Clock.sleep`` so a
single shutdown event interrupts all of them.
"""

from __future__ import annotations

import threading
import time


class Clock:
    """Monotonic clock whose sleeps end early on shutdown."""

    def __init__(self, stop_event: threading.Event | None = None) -> None:
        self._stop_event = stop_event or threading.Event()

    @property
    def stop_event(self) -> threading.Event:
        """The process-wide shutdown signal."""
        return self._stop_event

    @property
    def stopped(self) -> bool:
        """Whether shutdown has been requested."""
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request shutdown, waking every sleeper."""
        self._stop_event.set()

    def monotonic(self) -> float:
        """Seconds from an arbitrary fixed origin."""
        return time.monotonic()

    def sleep(self, seconds: float) -> bool:
        """Sleep up to ``seconds``.

        Returns:
            True if shutdown was requested before or during the sleep.
        """
        return self._stop_event.wait(max(seconds, 0.0))
