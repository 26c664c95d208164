from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from . import scripts
from .poller import wait_until

if TYPE_CHECKING:
    from .backends.protocol import SessionHandle
    from .cancellation import CancellationToken
    from .models import SetupTimings

logger = logging.getLogger(__name__)


async def find_and_activate(
    session: SessionHandle,
    match_text: str,
    *,
    token: CancellationToken,
    timings: SetupTimings,
    selector: str = "button",
    timeout_s: float | None = None,
    description: str | None = None,
) -> None:
    """
    Find a visible, enabled element by text and click it, retrying until timeout.

    "Not found yet" is not an error: the remote command returns false and the
    loop backs off and tries again. Only a remote fault inside the grace
    window, a dead session, or cancellation end the loop early.

    Raises:
        StepTimeoutError: no matching element was clicked before the deadline.
        FaultedError: the remote command itself kept failing near the deadline.
    """
    step = description or f"Click {match_text}"
    timeout = float(timeout_s if timeout_s is not None else timings.actuator_timeout_s)

    await wait_until(
        session,
        scripts.find_and_click(selector, match_text),
        token=token,
        timeout_s=timeout,
        interval_s=timings.actuator_backoff_s,
        grace_s=timings.error_grace_s,
        description=step,
        timeout_message=(
            f'Timed out waiting for "{match_text}" element ({selector}) in step: {step}'
        ),
    )
    logger.info('Clicked "%s" in session %s', match_text, session.label)
