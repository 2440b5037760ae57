from __future__ import annotations

import threading
import time
from typing import Optional

from radiocast.domain.errors import ContextCancelledError


class RequestContext:
    """
    Cancellation token with an optional deadline.

    A child context is cancelled whenever its parent is, and never outlives
    the parent's deadline. Blocking code calls check() between steps and
    sizes its own timeouts with remaining().
    """

    def __init__(self, timeout: Optional[float] = None, parent: Optional["RequestContext"] = None):
        self._event = threading.Event()
        self._parent = parent
        deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self.deadline = deadline

    @staticmethod
    def background() -> "RequestContext":
        return RequestContext()

    def child(self, timeout: Optional[float] = None) -> "RequestContext":
        return RequestContext(timeout=timeout, parent=self)

    def cancel(self) -> None:
        self._event.set()

    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._parent is not None and self._parent.cancelled():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def timeout(self, cap: float) -> float:
        """Smaller of `cap` and the time left before the deadline."""
        left = self.remaining()
        return cap if left is None else min(cap, left)

    def check(self) -> None:
        if self.cancelled():
            raise ContextCancelledError("context cancelled or deadline exceeded")

    def wait(self, seconds: float) -> bool:
        """Sleeps up to `seconds`; returns True if the context got cancelled meanwhile."""
        end = time.monotonic() + seconds
        while True:
            if self.cancelled():
                return True
            left = end - time.monotonic()
            if left <= 0:
                return False
            self._event.wait(min(left, 0.05))
