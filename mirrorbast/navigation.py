from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from .errors import AutoSetupError, FaultedError, SessionUnavailableError, StepTimeoutError

if TYPE_CHECKING:
    from .backends.protocol import SessionHandle
    from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


@contextmanager
def _load_outcome(session: SessionHandle, description: str) -> Iterator[asyncio.Future[None]]:
    """
    Subscribe to the session's load events for the duration of the block.

    The future resolves on the first success or fails on the first failure;
    listeners are always removed on exit so retries never leak them.
    """
    outcome: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    def _on_success() -> None:
        if not outcome.done():
            outcome.set_result(None)

    def _on_failure(reason: str) -> None:
        if not outcome.done():
            outcome.set_exception(
                FaultedError(f"{description} failed in session {session.label}: {reason}")
            )

    unsubscribe = session.subscribe_load(_on_success, _on_failure)
    try:
        yield outcome
    finally:
        unsubscribe()
        if not outcome.done():
            outcome.cancel()
        elif not outcome.cancelled():
            # Mark a failure as retrieved when an earlier error already won.
            outcome.exception()


async def load_and_wait(
    session: SessionHandle,
    trigger: Callable[[], Awaitable[Any]],
    *,
    token: CancellationToken,
    timeout_s: float,
    poll_s: float = 0.1,
    description: str = "load",
) -> None:
    """
    Run `trigger` (a navigation or reload) and wait for exactly one load outcome.

    Raises:
        FaultedError: the trigger raised or a failure outcome fired.
        SessionUnavailableError: the session died before a success outcome.
        StepTimeoutError: no outcome within `timeout_s`.
        SetupCancelledError: the token was set while waiting.
    """
    token.raise_if_cancelled()
    if not session.is_alive():
        raise SessionUnavailableError(f"Session {session.label} unavailable for {description}")

    deadline = time.monotonic() + float(timeout_s)
    poll = max(float(poll_s), 0.01)

    async def _wait(future: asyncio.Future[Any]) -> None:
        while not future.done():
            if not session.is_alive():
                raise SessionUnavailableError(
                    f"Session {session.label} destroyed during {description}"
                )
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise StepTimeoutError(
                    f"Timed out waiting for {description} in session {session.label}"
                )
            await token.wait_for(future, timeout=min(poll, remaining))

    with _load_outcome(session, description) as outcome:
        # The trigger shares the deadline and the token with the load outcome.
        triggered = asyncio.ensure_future(trigger())
        try:
            await _wait(triggered)
        finally:
            if not triggered.done():
                triggered.cancel()
        try:
            triggered.result()
        except AutoSetupError:
            raise
        except Exception as exc:
            if not session.is_alive():
                raise SessionUnavailableError(
                    f"Session {session.label} destroyed during {description}"
                ) from exc
            raise FaultedError(
                f"{description} failed in session {session.label}: {exc}"
            ) from exc

        await _wait(outcome)
        outcome.result()
        if not session.is_alive():
            raise SessionUnavailableError(f"Session {session.label} destroyed after {description}")
    logger.info("%s finished in session %s", description, session.label)


async def navigate_and_wait(
    session: SessionHandle,
    uri: str,
    *,
    token: CancellationToken,
    timeout_s: float,
    poll_s: float = 0.1,
    description: str | None = None,
) -> None:
    await load_and_wait(
        session,
        lambda: session.navigate(uri, timeout_s=timeout_s),
        token=token,
        timeout_s=timeout_s,
        poll_s=poll_s,
        description=description or f"Navigate to {uri}",
    )


async def reload_and_wait(
    session: SessionHandle,
    *,
    token: CancellationToken,
    timeout_s: float,
    poll_s: float = 0.1,
    description: str = "Reload",
) -> None:
    await load_and_wait(
        session,
        lambda: session.reload(timeout_s=timeout_s),
        token=token,
        timeout_s=timeout_s,
        poll_s=poll_s,
        description=description,
    )
