from __future__ import annotations

import asyncio
from typing import Any

from .errors import SetupCancelledError


class CancellationToken:
    """
    One-shot, broadcast abort flag shared by every wait inside a run.

    Once `cancel()` is called the token stays set; a new run always gets a
    fresh token.
    """

    def __init__(self, reason: str = "Auto-setup cancelled") -> None:
        self._event = asyncio.Event()
        self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        if reason:
            self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SetupCancelledError(self._reason)

    async def sleep(self, seconds: float) -> None:
        """Settle delay that wakes early and raises if the token is set."""
        self.raise_if_cancelled()
        if seconds <= 0:
            # Still yield so other tasks (and cancellers) get a turn.
            await asyncio.sleep(0)
            self.raise_if_cancelled()
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        raise SetupCancelledError(self._reason)

    async def wait_for(self, future: asyncio.Future[Any], timeout: float | None) -> bool:
        """
        Wait until `future` is done, the timeout passes, or the token is set.

        Never cancels `future`. Returns True when `future` finished.
        """
        self.raise_if_cancelled()
        if future.done():
            return True
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait(
                {future, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
        if future.done():
            return True
        self.raise_if_cancelled()
        return False
