from __future__ import annotations

import asyncio
import re

import pytest
from fakes import FakeSession, FakeViews, MockTracer, fast_timings

from mirrorbast.config import AutoSetupConfig
from mirrorbast.errors import ResetError
from mirrorbast.models import PHASES_BY_MODULE
from mirrorbast.orchestrator import AutoSetupOrchestrator

HOST_DECK = "https://swudb.com/deck/host-deck"
GUEST_DECK = "https://swudb.com/deck/guest-deck"


class Notifications:
    def __init__(self) -> None:
        self.ready = 0
        self.failed: list[str] = []

    def on_ready(self) -> None:
        self.ready += 1

    def on_failed(self, message: str) -> None:
        self.failed.append(message)


def _build(**timing_overrides):
    log: list[str] = []
    host = FakeSession("host", log=log)
    guest = FakeSession("guest", log=log)
    views = FakeViews(log=log)
    notes = Notifications()
    tracer = MockTracer()
    orchestrator = AutoSetupOrchestrator(
        host,
        guest,
        views,
        config=AutoSetupConfig(timings=fast_timings(**timing_overrides), cancel_grace_s=0.0),
        tracer=tracer,
        on_ready=notes.on_ready,
        on_failed=notes.on_failed,
    )
    return orchestrator, host, guest, views, notes, tracer, log


@pytest.mark.asyncio
async def test_happy_path_reaches_ready_once() -> None:
    orchestrator, host, guest, views, notes, tracer, log = _build()

    outcome = await orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)

    assert outcome.status == "ready"
    assert outcome.ok
    assert notes.ready == 1
    assert notes.failed == []
    assert re.match(r"^https://karabast\.net/lobby\?", outcome.handoff_address)
    expected = (
        PHASES_BY_MODULE["host"] + PHASES_BY_MODULE["guest"] + PHASES_BY_MODULE["finalize"]
    )
    assert tuple(outcome.steps) == expected

    # Host work is done before the guest loads the lobby, which is before finalization.
    assert log.index("host:click:create game") < log.index("guest:navigate")
    assert log.index("guest:click:ready") < log.index("host:click:ready")
    assert log[-1] == "views:collapse"

    assert ("switching", False) in views.calls
    assert views.calls[-1] == ("switching", True)
    assert orchestrator.views.current is host
    assert tracer.types()[0] == "run_start"
    assert tracer.types()[-1] == "run_end"
    assert orchestrator.last_outcome == outcome
    assert orchestrator.is_running is False


@pytest.mark.asyncio
async def test_handoff_timeout_fails_without_touching_guest() -> None:
    orchestrator, host, guest, views, notes, _tracer, _log = _build(handoff_timeout_s=0.05)
    host.handlers["handoff"] = lambda _fragment: None

    outcome = await orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)

    assert outcome.status == "failed"
    assert outcome.reason_code == "timeout"
    assert notes.ready == 0
    assert len(notes.failed) == 1
    assert notes.failed[0].startswith("Timed out")
    assert guest.navigations == []
    assert guest.calls == []
    # Rollback puts the host back in front and unlocks switching.
    assert views.foregrounded()[-1] == "host"
    assert views.calls[-1] == ("switching", True)


@pytest.mark.asyncio
async def test_import_recovers_with_single_reload() -> None:
    orchestrator, _host, guest, _views, notes, tracer, _log = _build()

    def import_after_reload(text):
        if text == "import new deck":
            return guest.reloads > 0
        return True

    guest.handlers["click"] = import_after_reload

    outcome = await orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)

    assert outcome.status == "ready"
    assert guest.reloads == 1
    assert notes.ready == 1
    assert notes.failed == []
    assert "recovery_reload" in tracer.types()


@pytest.mark.asyncio
async def test_new_request_supersedes_run_in_flight() -> None:
    orchestrator, _host, guest, _views, notes, _tracer, _log = _build(guest_input_timeout_s=5.0)
    waiting = asyncio.Event()
    state = {"block": True}

    def input_ready(_arg):
        waiting.set()
        return not state["block"]

    guest.handlers["input_check"] = input_ready

    first = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    await asyncio.wait_for(waiting.wait(), timeout=2.0)

    second = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    state["block"] = False

    second_outcome = await asyncio.wait_for(second, timeout=5.0)
    first_outcome = await first

    assert first_outcome.status == "cancelled"
    assert second_outcome.status == "ready"
    assert notes.ready == 1
    assert notes.failed == []


@pytest.mark.asyncio
async def test_back_to_back_requests_run_one_at_a_time() -> None:
    orchestrator, _host, _guest, _views, notes, _tracer, _log = _build()

    first = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    second = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    outcomes = await asyncio.gather(first, second)

    assert [o.status for o in outcomes] == ["cancelled", "ready"]
    assert notes.ready == 1
    assert notes.failed == []


@pytest.mark.asyncio
async def test_cancel_is_idempotent() -> None:
    orchestrator, _host, guest, _views, notes, _tracer, _log = _build(guest_input_timeout_s=5.0)
    orchestrator.cancel_orchestration()

    waiting = asyncio.Event()

    def input_ready(_arg):
        waiting.set()
        return False

    guest.handlers["input_check"] = input_ready
    task = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    await asyncio.wait_for(waiting.wait(), timeout=2.0)

    orchestrator.cancel_orchestration()
    orchestrator.cancel_orchestration()
    outcome = await asyncio.wait_for(task, timeout=2.0)

    assert outcome.status == "cancelled"
    assert outcome.reason_code == "cancelled"
    assert notes.ready == 0
    assert notes.failed == []
    orchestrator.cancel_orchestration()


@pytest.mark.asyncio
async def test_dead_session_fails_immediately() -> None:
    orchestrator, host, guest, _views, notes, _tracer, _log = _build()
    guest.alive = False

    outcome = await orchestrator.run(HOST_DECK, GUEST_DECK)

    assert outcome.status == "failed"
    assert outcome.reason_code == "session_unavailable"
    assert notes.failed == ["Required sessions are not available"]
    assert host.calls == []


@pytest.mark.asyncio
async def test_rollback_error_does_not_mask_original_failure() -> None:
    orchestrator, host, _guest, views, notes, _tracer, _log = _build()

    def broken(_value):
        views.foreground_error = RuntimeError("window gone")
        return False

    host.handlers["fill_host"] = broken

    outcome = await orchestrator.run(HOST_DECK, GUEST_DECK)

    assert outcome.status == "failed"
    assert outcome.reason_code == "input_not_found"
    assert len(notes.failed) == 1
    assert "window gone" not in notes.failed[0]


@pytest.mark.asyncio
async def test_async_callbacks_are_awaited() -> None:
    received: list[str] = []

    async def on_ready() -> None:
        await asyncio.sleep(0)
        received.append("ready")

    host = FakeSession("host")
    guest = FakeSession("guest")
    orchestrator = AutoSetupOrchestrator(
        host,
        guest,
        FakeViews(),
        config=AutoSetupConfig(timings=fast_timings(), cancel_grace_s=0.0),
        on_ready=on_ready,
    )

    await orchestrator.run(HOST_DECK, GUEST_DECK)

    assert received == ["ready"]


@pytest.mark.asyncio
async def test_reset_reloads_both_sessions_home() -> None:
    orchestrator, host, guest, views, _notes, _tracer, _log = _build()

    await orchestrator.reset()

    assert host.navigations == ["https://karabast.net"]
    assert guest.navigations == ["https://karabast.net"]
    assert views.foregrounded() == ["host"]
    assert ("panel_expanded", True) in views.calls
    assert views.calls[-1] == ("switching", True)


@pytest.mark.asyncio
async def test_reset_reports_failed_session_but_restores_host() -> None:
    orchestrator, _host, guest, views, _notes, _tracer, _log = _build()
    guest.navigation_failure = "ERR_CONNECTION_REFUSED"

    with pytest.raises(ResetError) as exc_info:
        await orchestrator.reset()

    assert list(exc_info.value.failures) == ["guest"]
    assert "Failed reload" in str(exc_info.value)
    assert views.foregrounded() == ["host"]


@pytest.mark.asyncio
async def test_switch_is_ignored_while_running_and_toggles_after() -> None:
    orchestrator, host, guest, _views, _notes, _tracer, _log = _build(guest_input_timeout_s=5.0)
    waiting = asyncio.Event()
    state = {"block": True}

    def input_ready(_arg):
        waiting.set()
        return not state["block"]

    guest.handlers["input_check"] = input_ready
    task = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    await asyncio.wait_for(waiting.wait(), timeout=2.0)

    assert await orchestrator.switch_participant() is None

    state["block"] = False
    outcome = await asyncio.wait_for(task, timeout=5.0)
    assert outcome.status == "ready"

    assert await orchestrator.switch_participant() is guest
    assert await orchestrator.switch_participant() is host


@pytest.mark.asyncio
async def test_cancel_right_after_start_prevents_the_run() -> None:
    orchestrator, host, guest, views, notes, _tracer, _log = _build()

    task = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    assert orchestrator.is_running
    orchestrator.cancel_orchestration()
    outcome = await task

    assert outcome.status == "cancelled"
    assert outcome.steps == []
    assert notes.ready == 0
    assert notes.failed == []
    assert host.calls == [] and host.navigations == []
    assert guest.calls == [] and guest.navigations == []
    assert views.calls == []


@pytest.mark.asyncio
async def test_reset_right_after_start_cancels_pending_run() -> None:
    orchestrator, host, guest, _views, notes, _tracer, _log = _build()

    task = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    await orchestrator.reset()
    outcome = await task

    assert outcome.status == "cancelled"
    assert notes.ready == 0
    assert host.navigations == ["https://karabast.net"]
    assert guest.navigations == ["https://karabast.net"]
    assert host.calls == []
    assert orchestrator.is_running is False


@pytest.mark.asyncio
async def test_cancelling_the_task_rolls_back_views() -> None:
    orchestrator, host, guest, _views, notes, _tracer, _log = _build(guest_input_timeout_s=5.0)
    waiting = asyncio.Event()

    def input_ready(_arg):
        waiting.set()
        return False

    guest.handlers["input_check"] = input_ready
    task = orchestrator.start_orchestration(HOST_DECK, GUEST_DECK)
    await asyncio.wait_for(waiting.wait(), timeout=2.0)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert orchestrator.last_outcome.status == "cancelled"
    assert orchestrator.views.switching_enabled is True
    assert orchestrator.views.current is host
    assert notes.failed == []
    assert await orchestrator.switch_participant() is guest
