from __future__ import annotations

import time

import pytest
from fakes import FakeSession

from mirrorbast.cancellation import CancellationToken
from mirrorbast.errors import FaultedError, SessionUnavailableError, SetupCancelledError, StepTimeoutError
from mirrorbast.poller import wait_until


def _counting_handler(succeed_on: int):
    calls = {"n": 0}

    def handler(_arg):
        calls["n"] += 1
        return "found" if calls["n"] >= succeed_on else None

    return handler, calls


@pytest.mark.asyncio
async def test_returns_value_after_exactly_k_evaluations() -> None:
    handler, calls = _counting_handler(succeed_on=4)
    session = FakeSession("host", handlers={"input_check": handler})

    value = await wait_until(
        session,
        "unlabelledInputs().length",
        token=CancellationToken(),
        timeout_s=2.0,
        interval_s=0.0,
        grace_s=0.0,
        description="input check",
    )

    assert value == "found"
    assert calls["n"] == 4


@pytest.mark.asyncio
async def test_timeout_is_not_raised_before_deadline() -> None:
    session = FakeSession("host", handlers={"input_check": lambda _arg: False})

    started = time.monotonic()
    with pytest.raises(StepTimeoutError) as exc_info:
        await wait_until(
            session,
            "unlabelledInputs().length",
            token=CancellationToken(),
            timeout_s=0.1,
            interval_s=0.01,
            grace_s=0.0,
            description="guest input",
        )

    assert time.monotonic() - started >= 0.1
    assert "Timed out waiting for guest input" in str(exc_info.value)
    assert exc_info.value.attempt is not None
    assert exc_info.value.attempt.attempts >= 2
    assert exc_info.value.reason_code == "timeout"


@pytest.mark.asyncio
async def test_custom_timeout_message() -> None:
    session = FakeSession("host", handlers={"input_check": lambda _arg: None})

    with pytest.raises(StepTimeoutError, match="custom message"):
        await wait_until(
            session,
            "unlabelledInputs().length",
            token=CancellationToken(),
            timeout_s=0.02,
            interval_s=0.01,
            timeout_message="custom message",
        )


@pytest.mark.asyncio
async def test_transient_remote_errors_are_swallowed_outside_grace_window() -> None:
    calls = {"n": 0}

    def flaky(_arg):
        calls["n"] += 1
        if calls["n"] < 3:
            return RuntimeError("Execution context was destroyed")
        return True

    session = FakeSession("guest", handlers={"input_check": flaky})

    assert (
        await wait_until(
            session,
            "unlabelledInputs().length",
            token=CancellationToken(),
            timeout_s=2.0,
            interval_s=0.0,
            grace_s=0.5,
        )
        is True
    )
    assert calls["n"] == 3


@pytest.mark.asyncio
async def test_remote_error_inside_grace_window_is_faulted() -> None:
    session = FakeSession(
        "guest", handlers={"input_check": lambda _arg: RuntimeError("boom")}
    )

    with pytest.raises(FaultedError, match="boom"):
        await wait_until(
            session,
            "unlabelledInputs().length",
            token=CancellationToken(),
            timeout_s=0.2,
            interval_s=0.01,
            grace_s=1.0,
        )


@pytest.mark.asyncio
async def test_dead_session_raises_session_unavailable() -> None:
    session = FakeSession("guest", handlers={"input_check": lambda _arg: False})
    session.alive = False

    with pytest.raises(SessionUnavailableError):
        await wait_until(
            session,
            "unlabelledInputs().length",
            token=CancellationToken(),
            timeout_s=1.0,
            interval_s=0.01,
        )
    assert session.calls == []


@pytest.mark.asyncio
async def test_session_dying_mid_poll_raises_session_unavailable() -> None:
    session = FakeSession("guest")

    def die(_arg):
        session.alive = False
        return RuntimeError("Target closed")

    session.handlers["input_check"] = die

    with pytest.raises(SessionUnavailableError):
        await wait_until(
            session,
            "unlabelledInputs().length",
            token=CancellationToken(),
            timeout_s=1.0,
            interval_s=0.01,
        )


@pytest.mark.asyncio
async def test_cancelled_token_stops_before_evaluating() -> None:
    session = FakeSession("host")
    token = CancellationToken()
    token.cancel()

    with pytest.raises(SetupCancelledError):
        await wait_until(
            session,
            "unlabelledInputs().length",
            token=token,
            timeout_s=1.0,
            interval_s=0.01,
        )
    assert session.calls == []
