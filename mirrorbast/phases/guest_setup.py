"""
Guest (participant B) setup: join the host's lobby, import a deck, mark ready.

This is the only phase that combines cross-session navigation, a foreground
switch, and the reload-and-retry recovery at the "Import New Deck" step.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .. import scripts
from ..actuator import find_and_activate
from ..errors import InputNotFoundError
from ..models import Phase
from ..navigation import navigate_and_wait
from ..poller import wait_until
from ..recovery import activate_with_reload
from ..remote import execute_script

if TYPE_CHECKING:
    from ..backends.protocol import SessionHandle, ViewCoordinator
    from ..run import OrchestrationRun

logger = logging.getLogger(__name__)


async def setup_guest(
    run: OrchestrationRun,
    session: SessionHandle,
    views: ViewCoordinator,
    handoff_address: str,
) -> None:
    timings = run.timings
    token = run.token

    # Give the freshly created lobby time to settle before joining it.
    await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.LOAD_HANDOFF_TARGET, f"Load {handoff_address}")
    await navigate_and_wait(
        session,
        handoff_address,
        token=token,
        timeout_s=timings.navigation_timeout_s,
        poll_s=timings.poll_interval_s,
        description="Load lobby in guest session",
    )
    await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.FOREGROUND_GUEST)
    await views.foreground(session)
    await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.IMPORT_CONTENT, 'Click "Import New Deck"')
    await activate_with_reload(
        session,
        "Import New Deck",
        token=token,
        timings=timings,
        selector="p, button",
        first_timeout_s=timings.import_first_timeout_s,
        retry_timeout_s=timings.import_retry_timeout_s,
        tracer=run.tracer,
        description="Click Import New Deck (guest)",
    )
    await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.AWAIT_CONTENT_INPUT)
    await wait_until(
        session,
        scripts.has_empty_unlabelled_input(),
        token=token,
        timeout_s=timings.guest_input_timeout_s,
        interval_s=timings.poll_interval_s,
        grace_s=timings.error_grace_s,
        description="empty guest deck input",
    )
    await run.settle(timings.settle_short_s)

    run.begin_step(Phase.FILL_CONTENT)
    await _fill_deck_input(run, session)
    await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.SUBMIT_IMPORT, 'Click "Import Deck"')
    await find_and_activate(
        session,
        "Import Deck",
        token=token,
        timings=timings,
        timeout_s=timings.element_timeout_s,
        description="Click Import Deck (guest)",
    )
    await run.settle(timings.settle_long_s)

    run.begin_step(Phase.MARK_READY, 'Click "Ready"')
    await find_and_activate(
        session,
        "Ready",
        token=token,
        timings=timings,
        timeout_s=timings.element_timeout_s,
        description="Click Ready (guest)",
    )
    await run.settle(timings.settle_medium_s)


async def _fill_deck_input(run: OrchestrationRun, session: SessionHandle) -> None:
    """Write the guest deck link, retrying if the input went stale after discovery."""
    attempts = run.timings.input_write_attempts
    expression = scripts.fill_empty_unlabelled_input(run.guest_deck)
    for attempt in range(1, attempts + 1):
        filled = await execute_script(session, expression, "Fill guest deck input")
        if filled:
            logger.info("Guest deck link set (attempt %d)", attempt)
            return
        if attempt < attempts:
            logger.info("Guest deck input not found, retrying")
            await run.settle(run.timings.stale_input_retry_s)
    raise InputNotFoundError("Guest empty deck input (no placeholder) not found")
