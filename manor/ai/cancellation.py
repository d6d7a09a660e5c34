"""
Cooperative cancellation for search.

Search polls the token between sibling evaluations; it never sets timers
itself. Callers that want a wall-clock limit use `cancel_after`.
"""

from __future__ import annotations

import threading


class CancellationToken:
    """Thread-safe flag that a caller trips to stop a running search."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class NeverCancel(CancellationToken):
    """Token that can never be tripped."""

    def cancel(self) -> None:
        pass

    @property
    def cancelled(self) -> bool:
        return False


class TimedCancellation(CancellationToken):
    """Token tripped automatically after a number of seconds."""

    def __init__(self, seconds: float):
        super().__init__()
        self._timer = threading.Timer(seconds, self.cancel)
        self._timer.daemon = True
        self._timer.start()

    def stop(self) -> None:
        """Stop the timer without tripping the token."""
        self._timer.cancel()


def cancel_after(seconds: float) -> TimedCancellation:
    return TimedCancellation(seconds)
