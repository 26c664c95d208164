"""
Condition polling against a remote session.

`wait_until` is the single retry loop of the core: every other wait (element
actuation, handoff extraction, input discovery) is expressed through it.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from .errors import FaultedError, SessionUnavailableError, StepTimeoutError
from .models import RetryAttempt
from .remote import execute_script

if TYPE_CHECKING:
    from .backends.protocol import SessionHandle
    from .cancellation import CancellationToken

logger = logging.getLogger(__name__)


async def wait_until(
    session: SessionHandle,
    expression: str,
    *,
    token: CancellationToken,
    timeout_s: float,
    interval_s: float,
    grace_s: float = 0.5,
    description: str = "condition",
    timeout_message: str | None = None,
) -> Any:
    """
    Evaluate `expression` once per tick until it returns something truthy.

    Ticks never overlap: each evaluation is awaited before the next sleep.
    The token and the session's liveness are checked at the top of every tick.

    Remote errors are treated as transient and swallowed while at least
    `grace_s` remains before the deadline; inside that window they propagate
    as `FaultedError`.

    Args:
        session: Session to evaluate against.
        expression: Remote expression (see `mirrorbast.scripts`).
        token: Cancellation token of the current run.
        timeout_s: Deadline for the whole wait (must be finite).
        interval_s: Delay between ticks.
        grace_s: Window before the deadline in which remote errors surface.
        description: Human readable step name used in logs and errors.
        timeout_message: Overrides the default timeout error text.

    Returns:
        The first truthy value returned by the expression.

    Raises:
        SetupCancelledError, SessionUnavailableError, FaultedError, StepTimeoutError
    """
    started = time.monotonic()
    deadline = started + float(timeout_s)
    attempt = RetryAttempt(description=description)

    while True:
        token.raise_if_cancelled()
        if not session.is_alive():
            raise SessionUnavailableError(
                f"Session {session.label} unavailable while waiting for {description}"
            )

        attempt.attempts += 1
        value: Any = None
        try:
            value = await execute_script(session, expression, description)
        except SessionUnavailableError:
            raise
        except FaultedError as exc:
            attempt.last_error = str(exc)
            if deadline - time.monotonic() < grace_s:
                logger.error("Persistent error during %s: %s", description, exc)
                raise
            logger.warning(
                "Temporary error during %s (attempt %d, will retry): %s",
                description,
                attempt.attempts,
                exc,
            )

        if value:
            logger.debug("%s satisfied after %d attempt(s)", description, attempt.attempts)
            return value

        now = time.monotonic()
        attempt.elapsed_s = now - started
        remaining = deadline - now
        if remaining <= 0:
            raise StepTimeoutError(
                timeout_message
                or f"Timed out waiting for {description} after {float(timeout_s):.1f}s",
                attempt=attempt,
            )
        await token.sleep(min(float(interval_s), remaining))
