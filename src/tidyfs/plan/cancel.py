"""Cancellation signal shared by long-running batch calls."""

from __future__ import annotations

import threading
import time


class CancelToken:
    """A cancellation flag with an optional deadline.

    The token is polled between units of work; it never interrupts an
    operation that is already running. It is safe to cancel from any thread.
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize cancel token.

        Args:
            timeout: Seconds from now after which the token counts as
                cancelled; ``None`` for no deadline
        """
        self._event = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + timeout

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self.deadline_exceeded

    @property
    def deadline_exceeded(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def reason(self) -> str:
        if self._event.is_set():
            return "cancelled"
        if self.deadline_exceeded:
            return "deadline exceeded"
        return ""
