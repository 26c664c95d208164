"""
Pydantic models and step descriptors for the auto-setup core.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Phase(str, Enum):
    """Step identity within one of the three setup modules."""

    # Host (participant A)
    NAVIGATE_HOME = "navigate_home"
    CREATE_LOBBY = "create_lobby"
    SELECT_VISIBILITY = "select_visibility"
    FILL_IDENTIFIER = "fill_identifier"
    CREATE_SESSION = "create_session"
    EXTRACT_HANDOFF = "extract_handoff"

    # Guest (participant B)
    LOAD_HANDOFF_TARGET = "load_handoff_target"
    FOREGROUND_GUEST = "foreground_guest"
    IMPORT_CONTENT = "import_content"
    AWAIT_CONTENT_INPUT = "await_content_input"
    FILL_CONTENT = "fill_content"
    SUBMIT_IMPORT = "submit_import"
    MARK_READY = "mark_ready"

    # Finalization
    FOREGROUND_HOST = "foreground_host"
    HOST_READY = "host_ready"
    START = "start"
    COLLAPSE_PANEL = "collapse_panel"

    @property
    def module(self) -> str:
        return _PHASE_MODULE[self]

    @property
    def ordinal(self) -> int:
        """1-based position inside the owning module."""
        return PHASES_BY_MODULE[self.module].index(self) + 1


PHASES_BY_MODULE: dict[str, tuple[Phase, ...]] = {
    "host": (
        Phase.NAVIGATE_HOME,
        Phase.CREATE_LOBBY,
        Phase.SELECT_VISIBILITY,
        Phase.FILL_IDENTIFIER,
        Phase.CREATE_SESSION,
        Phase.EXTRACT_HANDOFF,
    ),
    "guest": (
        Phase.LOAD_HANDOFF_TARGET,
        Phase.FOREGROUND_GUEST,
        Phase.IMPORT_CONTENT,
        Phase.AWAIT_CONTENT_INPUT,
        Phase.FILL_CONTENT,
        Phase.SUBMIT_IMPORT,
        Phase.MARK_READY,
    ),
    "finalize": (
        Phase.FOREGROUND_HOST,
        Phase.HOST_READY,
        Phase.START,
        Phase.COLLAPSE_PANEL,
    ),
}

_PHASE_MODULE: dict[Phase, str] = {
    phase: module for module, phases in PHASES_BY_MODULE.items() for phase in phases
}


@dataclass
class RetryAttempt:
    """Transient record of one polling/actuation call."""

    description: str
    attempts: int = 0
    elapsed_s: float = 0.0
    last_error: Optional[str] = None


class SetupTimings(BaseModel):
    """
    Every delay and deadline used by a run, in seconds.

    Timeouts must be finite and positive; delays may be zero (tests inject
    fast timings through `scaled()` or by passing zeros directly).
    """

    poll_interval_s: float = Field(0.15, ge=0)
    settle_short_s: float = Field(0.3, ge=0)
    settle_medium_s: float = Field(0.6, ge=0)
    settle_long_s: float = Field(1.2, ge=0)
    prelude_settle_s: float = Field(0.3, ge=0)
    lobby_prepare_s: float = Field(2.4, ge=0)
    reload_settle_s: float = Field(1.2, ge=0)
    finalize_focus_s: float = Field(2.7, ge=0)
    stale_input_retry_s: float = Field(0.5, ge=0)

    actuator_backoff_s: float = Field(0.5, ge=0)
    error_grace_s: float = Field(0.5, ge=0)

    actuator_timeout_s: float = Field(5.0, gt=0)
    element_timeout_s: float = Field(7.0, gt=0)
    handoff_timeout_s: float = Field(15.0, gt=0)
    navigation_timeout_s: float = Field(30.0, gt=0)
    guest_input_timeout_s: float = Field(9.0, gt=0)
    import_first_timeout_s: float = Field(7.0, gt=0)
    import_retry_timeout_s: float = Field(15.0, gt=0)

    input_write_attempts: int = Field(2, ge=1, le=10)

    def scaled(self, factor: float) -> SetupTimings:
        """Return a copy with every duration multiplied by `factor`."""
        if factor <= 0:
            raise ValueError("timing scale factor must be > 0")
        data = self.model_dump()
        for key, value in data.items():
            if isinstance(value, float):
                data[key] = value * factor
        return SetupTimings(**data)


class OrchestrationOutcome(BaseModel):
    """Terminal outcome of one orchestration run."""

    run_id: str
    status: Literal["ready", "failed", "cancelled"]
    error: Optional[str] = None
    reason_code: Optional[str] = None
    handoff_address: Optional[str] = None
    steps: list[Phase] = Field(default_factory=list)
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "ready"


class DeckMetadata(BaseModel):
    """Name and author shown next to a saved deck link."""

    name: str
    author: str
