from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RetryAttempt


class AutoSetupError(RuntimeError):
    """Base class for every failure raised by the auto-setup core."""

    reason_code = "error"

    def __init__(self, message: str, *, reason_code: str | None = None) -> None:
        super().__init__(message)
        if reason_code is not None:
            self.reason_code = reason_code


class StepTimeoutError(AutoSetupError):
    """A poll or actuation deadline elapsed without success."""

    reason_code = "timeout"

    def __init__(self, message: str, *, attempt: RetryAttempt | None = None) -> None:
        super().__init__(message)
        self.attempt = attempt


class FaultedError(AutoSetupError):
    """A remote evaluation or navigation itself errored."""

    reason_code = "faulted"


class SessionUnavailableError(FaultedError):
    """The session handle was destroyed mid-operation."""

    reason_code = "session_unavailable"


class InputNotFoundError(AutoSetupError):
    """The session answered but the required input could not be matched."""

    reason_code = "input_not_found"


class SetupCancelledError(AutoSetupError):
    """The run's cancellation token was observed set."""

    reason_code = "cancelled"


class ResetError(AutoSetupError):
    reason_code = "reset_failed"

    def __init__(self, message: str, *, failures: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.failures = failures or {}
