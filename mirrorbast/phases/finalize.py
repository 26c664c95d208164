from __future__ import annotations

from typing import TYPE_CHECKING

from ..actuator import find_and_activate
from ..models import Phase

if TYPE_CHECKING:
    from ..backends.protocol import SessionHandle, ViewCoordinator
    from ..run import OrchestrationRun


async def finalize(run: OrchestrationRun, session: SessionHandle, views: ViewCoordinator) -> None:
    """Bring the host back, mark it ready, start the game, collapse the side panel."""
    timings = run.timings

    run.begin_step(Phase.FOREGROUND_HOST)
    await views.foreground(session)
    await run.settle(timings.finalize_focus_s)

    run.begin_step(Phase.HOST_READY, 'Click "Ready"')
    await find_and_activate(
        session, "Ready", token=run.token, timings=timings, description="Click Ready (host)"
    )
    await run.settle(timings.settle_medium_s)

    run.begin_step(Phase.START, 'Click "Start Game"')
    await find_and_activate(
        session,
        "Start Game",
        token=run.token,
        timings=timings,
        description="Click Start Game (host)",
    )
    await run.settle(timings.settle_long_s)

    run.begin_step(Phase.COLLAPSE_PANEL)
    await views.notify_collapse_request()
