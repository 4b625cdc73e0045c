"""Cancellation and deadline signal passed into every filesystem call."""

from __future__ import annotations

import threading
import time
from typing import Optional

from .exceptions import OperationCancelled


class CallContext:
    """Checked before each remote call so a cancelled request stops promptly.

    Cancellation is cooperative: a call already on the wire is bounded by the
    client's connect/read timeouts, not interrupted.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self, operation: str = '') -> None:
        if self.cancelled:
            raise OperationCancelled(f"{operation or 'operation'} cancelled")
        if self.expired:
            raise OperationCancelled(f"{operation or 'operation'} exceeded its deadline")


def check_context(ctx: Optional[CallContext], operation: str = '') -> None:
    if ctx is not None:
        ctx.check(operation)
