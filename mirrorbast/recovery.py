from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .actuator import find_and_activate
from .errors import AutoSetupError, FaultedError, SetupCancelledError, StepTimeoutError
from .navigation import reload_and_wait

if TYPE_CHECKING:
    from .backends.protocol import SessionHandle
    from .cancellation import CancellationToken
    from .models import SetupTimings
    from .tracing import Tracer

logger = logging.getLogger(__name__)


async def activate_with_reload(
    session: SessionHandle,
    match_text: str,
    *,
    token: CancellationToken,
    timings: SetupTimings,
    selector: str = "button",
    first_timeout_s: float | None = None,
    retry_timeout_s: float | None = None,
    tracer: Tracer | None = None,
    description: str | None = None,
) -> None:
    """
    Click `match_text`, reloading the session once if the first attempt times out.

    Attempt 1 uses a short deadline. A `StepTimeoutError` there triggers a
    single reload, waits for its load outcome and a settle delay, then makes
    attempt 2 with a longer deadline. Any failure of the recovery path is
    raised as `FaultedError` chained to its cause. Errors other than a timeout
    on attempt 1 propagate untouched and never cause a reload.
    """
    step = description or f"Click {match_text}"
    first_timeout = float(
        first_timeout_s if first_timeout_s is not None else timings.import_first_timeout_s
    )
    retry_timeout = float(
        retry_timeout_s if retry_timeout_s is not None else timings.import_retry_timeout_s
    )

    try:
        await find_and_activate(
            session,
            match_text,
            token=token,
            timings=timings,
            selector=selector,
            timeout_s=first_timeout,
            description=step,
        )
        return
    except StepTimeoutError as exc:
        first_error = exc

    logger.warning(
        '"%s" not clickable within %.1fs in session %s; reloading once and retrying',
        match_text,
        first_timeout,
        session.label,
    )
    if tracer is not None:
        tracer.emit(
            "recovery_reload",
            {"session": session.label, "match_text": match_text, "reason": str(first_error)},
        )

    try:
        await reload_and_wait(
            session,
            token=token,
            timeout_s=timings.navigation_timeout_s,
            poll_s=timings.poll_interval_s,
            description=f"Reload before retrying {step}",
        )
        await token.sleep(timings.reload_settle_s)
        await find_and_activate(
            session,
            match_text,
            token=token,
            timings=timings,
            selector=selector,
            timeout_s=retry_timeout,
            description=f"{step} (after reload)",
        )
    except SetupCancelledError:
        raise
    except AutoSetupError as exc:
        raise FaultedError(f"{step} failed after reload: {exc}") from exc
