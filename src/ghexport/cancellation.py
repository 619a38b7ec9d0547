"""Cooperative cancellation for export requests.

One AbortController is owned by whoever started an export; the matching
AbortSignal is threaded through the pipeline, the bounded executor and the
GitHub client. Aborting never interrupts a coroutine by force: the client
races each HTTP call against the signal and the executor stops claiming
new tasks. Whatever observes the abort raises AbortError.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger("ghexport.cancellation")

__all__ = [
    "ABORT_MESSAGE",
    "AbortController",
    "AbortError",
    "AbortSignal",
    "is_abort_error",
]

ABORT_MESSAGE = "The operation was aborted."


class AbortError(Exception):
    """Raised when an export is canceled through its AbortSignal."""

    def __init__(self, message: str = ABORT_MESSAGE):
        super().__init__(message)


class AbortSignal:
    """Read side of a cancellation token.

    The underlying asyncio.Event is created lazily so a signal can be built
    outside a running event loop (e.g. by a CLI before asyncio.run).
    """

    def __init__(self) -> None:
        self._aborted = False
        self._event: Optional[asyncio.Event] = None
        self.reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    def throw_if_aborted(self) -> None:
        if self._aborted:
            raise AbortError()

    async def wait(self) -> None:
        """Suspend until the signal is aborted."""
        if self._aborted:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def _fire(self, reason: Optional[str]) -> None:
        if self._aborted:
            return
        self._aborted = True
        self.reason = reason
        if self._event is not None:
            self._event.set()


class AbortController:
    """Write side: owns exactly one AbortSignal."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Optional[str] = None) -> None:
        logger.info("abort_requested", extra={"reason": reason or ""})
        self.signal._fire(reason)


def is_abort_error(error: object) -> bool:
    """Return True when *error* is a cancellation condition.

    Matched by name so any exception class called AbortError counts, not
    only ours. asyncio task cancellation is a cancellation too.
    """
    if isinstance(error, (AbortError, asyncio.CancelledError)):
        return True
    if isinstance(error, BaseException):
        return type(error).__name__ == "AbortError"
    return False
