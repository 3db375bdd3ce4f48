"""
FILE: nextup/core/cancellation.py
PURPOSE: Caller-supplied cancellation and deadline signal
EXPORTS:
  - CancelToken (class)
  - check(token) -> None
DEPENDENCIES:
  - threading, time (stdlib)
  - nextup.core.exceptions (OperationCancelledError)
NOTES:
  - Every engine operation takes an optional token
  - UnitOfWork checks the token right before COMMIT, so a cancelled write rolls back
"""

import threading
import time
from typing import Optional

from .exceptions import OperationCancelledError


class CancelToken:
    """
    Cancellation signal shared between a caller and an in-flight operation.

    A token is cancelled either explicitly via cancel() or implicitly once its
    deadline (monotonic seconds) has passed.
    """

    def __init__(self, deadline: Optional[float] = None):
        self._event = threading.Event()
        self._deadline = deadline
        self._reason = "Operation cancelled"

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self, reason: str = "Operation cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._reason = "Deadline exceeded"
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError(self._reason)


def check(token: Optional[CancelToken]) -> None:
    """Raise OperationCancelledError if token is set and cancelled."""
    if token is not None:
        token.raise_if_cancelled()
