from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field

from .cancellation import CancellationToken
from .config import AutoSetupConfig
from .models import OrchestrationOutcome, Phase, SetupTimings
from .tracing import Tracer

logger = logging.getLogger(__name__)


def _new_run_id() -> str:
    return f"setup-{uuid.uuid4().hex[:12]}"


@dataclass
class OrchestrationRun:
    """
    One execution of the host -> guest -> finalize pipeline.

    The orchestrator creates a run per request and hands it to every phase;
    phases read decks, timings and the token from it and record their steps
    on it. Nothing about a run lives in module or global state.
    """

    host_deck: str
    guest_deck: str
    config: AutoSetupConfig = field(default_factory=AutoSetupConfig)
    tracer: Tracer = field(default_factory=lambda: Tracer(run_id="mirrorbast"))
    run_id: str = field(default_factory=_new_run_id)
    token: CancellationToken = field(default_factory=CancellationToken)

    handoff_address: str | None = None
    steps: list[Phase] = field(default_factory=list)
    outcome: OrchestrationOutcome | None = None
    started_at: float = field(default_factory=time.monotonic)

    _finished: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)

    @property
    def timings(self) -> SetupTimings:
        return self.config.timings

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def begin_step(self, phase: Phase, detail: str | None = None) -> None:
        """Record entry into `phase`; refuses to start a step once cancelled."""
        self.token.raise_if_cancelled()
        self.steps.append(phase)
        logger.info(
            "[%s] %s step %d: %s",
            self.run_id,
            phase.module.capitalize(),
            phase.ordinal,
            detail or phase.value,
        )
        self.tracer.emit(
            "step",
            {
                "run_id": self.run_id,
                "module": phase.module,
                "phase": phase.value,
                "ordinal": phase.ordinal,
                "detail": detail,
            },
            step_id=f"{phase.module}-{phase.ordinal}",
        )

    async def settle(self, seconds: float) -> None:
        """Fixed settle delay; checks the token first and wakes early on cancel."""
        await self.token.sleep(seconds)

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started_at) * 1000)

    def finish(self, outcome: OrchestrationOutcome) -> None:
        self.outcome = outcome
        self._finished.set()

    async def wait_finished(self) -> None:
        await self._finished.wait()
