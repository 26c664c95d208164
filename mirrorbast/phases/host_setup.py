"""
Host (participant A) setup: create a private lobby and extract its invite address.
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
from ..remote import execute_script

if TYPE_CHECKING:
    from ..backends.protocol import SessionHandle
    from ..run import OrchestrationRun

logger = logging.getLogger(__name__)


async def setup_host(run: OrchestrationRun, session: SessionHandle) -> str:
    """
    Drive the host session from the home page to a created private lobby.

    Returns:
        The invite address read from the lobby page.
    """
    timings = run.timings
    config = run.config
    token = run.token

    run.begin_step(Phase.NAVIGATE_HOME)
    if config.is_home(session.url):
        logger.info("Host already at %s", config.home_url)
    else:
        await navigate_and_wait(
            session,
            config.home_url,
            token=token,
            timeout_s=timings.navigation_timeout_s,
            poll_s=timings.poll_interval_s,
            description="Navigate host to home",
        )
        await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.CREATE_LOBBY, 'Click "Create Lobby"')
    await find_and_activate(
        session,
        "Create Lobby",
        token=token,
        timings=timings,
        timeout_s=timings.element_timeout_s,
        description="Click Create Lobby (host)",
    )
    await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.SELECT_VISIBILITY, 'Select "Private"')
    await wait_until(
        session,
        scripts.select_radio("Private"),
        token=token,
        timeout_s=timings.element_timeout_s,
        interval_s=timings.poll_interval_s,
        grace_s=timings.error_grace_s,
        description="private visibility radio",
    )
    await run.settle(timings.settle_short_s)

    run.begin_step(Phase.FILL_IDENTIFIER)
    filled = await execute_script(
        session, scripts.fill_empty_text_input(run.host_deck), "Fill host deck input"
    )
    if not filled:
        raise InputNotFoundError("Visible empty deck input not found in host session")
    await run.settle(timings.settle_short_s)

    run.begin_step(Phase.CREATE_SESSION, 'Click "Create Game"')
    await find_and_activate(
        session,
        "Create Game",
        token=token,
        timings=timings,
        description="Click Create Game (host)",
    )
    await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.EXTRACT_HANDOFF)
    invite = await wait_until(
        session,
        scripts.find_input_value_containing(config.handoff_fragment),
        token=token,
        timeout_s=timings.handoff_timeout_s,
        interval_s=timings.poll_interval_s,
        grace_s=timings.error_grace_s,
        description="invite link input",
    )
    invite = str(invite).strip()
    run.handoff_address = invite
    logger.info("Invite link found: %s", invite)

    # The lobby backend needs a moment before a second player can join.
    await run.settle(timings.lobby_prepare_s)
    return invite
