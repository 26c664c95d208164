"""
Auto-setup orchestrator.

Sequences host setup -> guest setup -> finalization for one request at a time,
owns each run's cancellation token, coordinates the foreground slot, and turns
the result into exactly one `ready` or `failed(message)` notification.

Example:
    orchestrator = AutoSetupOrchestrator(
        host, guest, views,
        on_ready=lambda: print("lobby ready"),
        on_failed=lambda message: print("auto-setup failed:", message),
    )
    orchestrator.start_orchestration(host_deck_url, guest_deck_url)
    ...
    orchestrator.cancel_orchestration()   # safe even when nothing is running
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Optional

from .cancellation import CancellationToken
from .config import AutoSetupConfig
from .errors import ResetError, SessionUnavailableError, SetupCancelledError
from .models import OrchestrationOutcome
from .navigation import navigate_and_wait
from .phases import finalize, setup_guest, setup_host
from .run import OrchestrationRun
from .tracing import Tracer

if TYPE_CHECKING:
    from .backends.protocol import SessionHandle, ViewCoordinator

logger = logging.getLogger(__name__)

ReadyCallback = Callable[[], Optional[Awaitable[None]]]
FailedCallback = Callable[[str], Optional[Awaitable[None]]]


class _TrackedViews:
    """Forwards to the shell's view coordinator and remembers foreground/switch state."""

    def __init__(self, inner: ViewCoordinator) -> None:
        self._inner = inner
        self.current: SessionHandle | None = None
        self.switching_enabled = True

    async def foreground(self, session: SessionHandle) -> None:
        await self._inner.foreground(session)
        self.current = session

    async def set_auxiliary_panel_expanded(self, expanded: bool) -> None:
        await self._inner.set_auxiliary_panel_expanded(expanded)

    async def notify_collapse_request(self) -> None:
        await self._inner.notify_collapse_request()

    async def set_sessions_visible(self, visible: bool) -> None:
        await self._inner.set_sessions_visible(visible)

    async def set_switching_enabled(self, enabled: bool) -> None:
        await self._inner.set_switching_enabled(enabled)
        self.switching_enabled = enabled


class AutoSetupOrchestrator:
    """
    Drives the two participant sessions into a started lobby.

    Attributes:
        host: Session of participant A (creates the lobby).
        guest: Session of participant B (joins via the invite address).
        config: Timings and site constants shared by every run.
        tracer: Receives run_start / step / recovery_reload / run_end events.
        last_outcome: Outcome of the most recently finished run.
    """

    def __init__(
        self,
        host: SessionHandle,
        guest: SessionHandle,
        views: ViewCoordinator,
        *,
        config: AutoSetupConfig | None = None,
        tracer: Tracer | None = None,
        on_ready: ReadyCallback | None = None,
        on_failed: FailedCallback | None = None,
    ) -> None:
        self.host = host
        self.guest = guest
        self.views = _TrackedViews(views)
        self.config = config or AutoSetupConfig()
        self.tracer = tracer or Tracer(run_id=f"mirrorbast-{uuid.uuid4().hex[:8]}")
        self.on_ready = on_ready
        self.on_failed = on_failed

        self.last_outcome: OrchestrationOutcome | None = None
        self._lock = asyncio.Lock()
        self._active: OrchestrationRun | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def active_run(self) -> OrchestrationRun | None:
        run = self._active
        if run is None or run.finished:
            return None
        return run

    @property
    def is_running(self) -> bool:
        return self.active_run is not None

    def start_orchestration(self, host_deck: str, guest_deck: str) -> asyncio.Task:
        """
        Schedule a run and return its task.

        A run already in flight is cancelled immediately; the new run waits for
        its teardown before touching either session. The new run is active as
        soon as this returns, so `cancel_orchestration()` and `reset()` reach it
        even before its task starts.
        """
        run, previous = self._submit(host_deck, guest_deck)
        task = asyncio.get_running_loop().create_task(self._run(run, previous))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def cancel_orchestration(self) -> None:
        """Cancel the active (or pending) run, if any. Idempotent."""
        run = self.active_run
        if run is None:
            return
        logger.info("Cancelling auto-setup run %s", run.run_id)
        run.token.cancel("Auto-setup cancelled")

    async def run(self, host_deck: str, guest_deck: str) -> OrchestrationOutcome:
        """Run the full pipeline, superseding any run still in flight."""
        run, previous = self._submit(host_deck, guest_deck)
        return await self._run(run, previous)

    def _submit(
        self, host_deck: str, guest_deck: str
    ) -> tuple[OrchestrationRun, OrchestrationRun | None]:
        """Create a run and publish it as active, cancelling the one it replaces."""
        previous = self.active_run
        if previous is not None:
            logger.info("Superseding auto-setup run %s", previous.run_id)
            previous.token.cancel("Superseded by a new auto-setup request")
        run = OrchestrationRun(
            host_deck=host_deck,
            guest_deck=guest_deck,
            config=self.config,
            tracer=self.tracer,
        )
        self._active = run
        return run, previous

    async def _run(
        self, run: OrchestrationRun, previous: OrchestrationRun | None
    ) -> OrchestrationOutcome:
        try:
            if previous is not None and not previous.finished:
                # Let in-flight polls of the old run observe its token.
                await asyncio.sleep(self.config.cancel_grace_s)
            # Held for the whole run: runs and resets never overlap.
            async with self._lock:
                if run.token.cancelled:
                    logger.info("Auto-setup run %s cancelled before it started", run.run_id)
                    return self._complete(run, "cancelled", run.token.reason, "cancelled")
                return await self._execute(run)
        finally:
            if not run.finished:
                self._complete(run, "cancelled", "Auto-setup interrupted", "cancelled")

    async def _execute(self, run: OrchestrationRun) -> OrchestrationOutcome:
        logger.info("Starting auto-setup run %s", run.run_id)
        self.tracer.emit(
            "run_start",
            {"run_id": run.run_id, "host_deck": run.host_deck, "guest_deck": run.guest_deck},
        )
        try:
            run.token.raise_if_cancelled()
            if not self.host.is_alive() or not self.guest.is_alive():
                raise SessionUnavailableError("Required sessions are not available")
            await self._prepare_views(run)
            handoff = await setup_host(run, self.host)
            await setup_guest(run, self.guest, self.views, handoff)
            await finalize(run, self.host, self.views)
            await self.views.set_switching_enabled(True)
        except SetupCancelledError as exc:
            logger.info("Auto-setup run %s cancelled: %s", run.run_id, exc)
            await self._rollback(run)
            return self._complete(run, "cancelled", str(exc), exc.reason_code)
        except asyncio.CancelledError:
            logger.info("Auto-setup task for run %s cancelled", run.run_id)
            run.token.cancel("Auto-setup task cancelled")
            try:
                await asyncio.shield(self._rollback(run))
            finally:
                self._complete(run, "cancelled", "Auto-setup task cancelled", "cancelled")
            raise
        except Exception as exc:
            message = str(exc) or exc.__class__.__name__
            logger.error("Auto-setup run %s failed: %s", run.run_id, message, exc_info=True)
            await self._rollback(run)
            outcome = self._complete(
                run, "failed", message, getattr(exc, "reason_code", "error")
            )
            await self._notify(self.on_failed, message)
            return outcome

        logger.info("Auto-setup run %s completed successfully", run.run_id)
        outcome = self._complete(run, "ready", None, None)
        await self._notify(self.on_ready)
        return outcome

    async def _prepare_views(self, run: OrchestrationRun) -> None:
        """Sessions visible, switching locked, host in front, side panel expanded."""
        await self.views.set_sessions_visible(True)
        await self.views.set_switching_enabled(False)
        await self.views.foreground(self.host)
        await self.views.set_auxiliary_panel_expanded(True)
        await run.settle(run.timings.prelude_settle_s)

    async def _rollback(self, run: OrchestrationRun) -> None:
        """Best effort: put the host back in front. Never raises."""
        try:
            if self.host.is_alive():
                await self.views.foreground(self.host)
            await self.views.set_auxiliary_panel_expanded(True)
            await self.views.set_switching_enabled(True)
        except Exception:
            logger.exception("Failed to restore view state after run %s", run.run_id)

    def _complete(
        self,
        run: OrchestrationRun,
        status: str,
        error: str | None,
        reason_code: str | None,
    ) -> OrchestrationOutcome:
        outcome = OrchestrationOutcome(
            run_id=run.run_id,
            status=status,
            error=error,
            reason_code=reason_code,
            handoff_address=run.handoff_address,
            steps=list(run.steps),
            duration_ms=run.elapsed_ms(),
        )
        run.finish(outcome)
        self.last_outcome = outcome
        if self._active is run:
            self._active = None
        self.tracer.emit("run_end", outcome.model_dump(mode="json"))
        return outcome

    async def _notify(self, callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception("Auto-setup notification callback failed")

    async def reset(self) -> None:
        """
        Cancel any run, reload both sessions to the home page, restore the views.

        Raises:
            ResetError: one or both sessions failed to reload. The host is still
                brought to the front if its own reload succeeded.
        """
        run = self.active_run
        self.cancel_orchestration()
        if run is not None:
            await run.wait_finished()

        async with self._lock:
            timings = self.config.timings
            token = CancellationToken()
            sessions = (self.host, self.guest)
            results = await asyncio.gather(
                *(
                    navigate_and_wait(
                        session,
                        self.config.home_url,
                        token=token,
                        timeout_s=timings.navigation_timeout_s,
                        poll_s=timings.poll_interval_s,
                        description=f"Reset {session.label}",
                    )
                    for session in sessions
                ),
                return_exceptions=True,
            )
            failures = {
                session.label: str(result) or result.__class__.__name__
                for session, result in zip(sessions, results)
                if isinstance(result, BaseException)
            }

            if self.host.label not in failures:
                await self.views.set_sessions_visible(True)
                await self.views.foreground(self.host)
                await self.views.set_auxiliary_panel_expanded(True)
                await self.views.set_switching_enabled(True)

        if failures:
            detail = "; ".join(f"{label}: {message}" for label, message in failures.items())
            logger.error("Reset failed: %s", detail)
            raise ResetError(f"Failed reload: {detail}", failures=failures)
        logger.info("Sessions reset to %s", self.config.home_url)

    async def switch_participant(self) -> SessionHandle | None:
        """
        Toggle which session is in front.

        Ignored while a run is active or switching is locked; returns the newly
        foregrounded session, or None when nothing changed.
        """
        if self.is_running or not self.views.switching_enabled:
            logger.info("Switch ignored: auto-setup in progress or switching disabled")
            return None
        target = self.guest if self.views.current is self.host else self.host
        if not target.is_alive():
            logger.error("Cannot switch: session %s unavailable", target.label)
            return None
        await self.views.foreground(target)
        return target
