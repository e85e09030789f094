"""
Cancellation and deadline context passed to every operation.
"""

import threading
import time
from typing import Optional

from .errors import OperationCancelledError, DeadlineExceededError


class Context:
    """
    Carries cancellation and an optional deadline across a call chain.

    Long-running callers create one Context per operation (or share one
    across a batch) and call ``cancel()`` from another thread to stop it.
    Dependent services call ``check()`` between steps.
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Args:
            timeout: Seconds from now until the deadline (None = no deadline)
        """
        self._cancelled = threading.Event()
        self.deadline: Optional[float] = None
        if timeout is not None:
            self.deadline = time.monotonic() + timeout

    @classmethod
    def background(cls) -> "Context":
        """Context that is never cancelled and has no deadline."""
        return cls()

    def cancel(self):
        self._cancelled.set()

    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def done(self) -> bool:
        return self.cancelled() or self.expired()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self):
        """
        Raise if the context is no longer live.

        Raises:
            OperationCancelledError: cancel() was called
            DeadlineExceededError: the deadline has passed
        """
        if self.cancelled():
            raise OperationCancelledError("operation cancelled")
        if self.expired():
            raise DeadlineExceededError("deadline exceeded")
