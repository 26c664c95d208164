"""
Protocols for the collaborators the auto-setup core borrows from the host shell.

The core never creates, closes, or owns a session; it only drives the two
handles it was given and asks the view coordinator to move the foreground.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

LoadSuccessCallback = Callable[[], None]
LoadFailureCallback = Callable[[str], None]


@runtime_checkable
class SessionHandle(Protocol):
    """One remotely scriptable document context (one per participant)."""

    session_id: str
    label: str

    @property
    def url(self) -> str:
        """Current location (empty string before the first navigation)."""
        ...

    def is_alive(self) -> bool: ...

    async def navigate(self, uri: str, *, timeout_s: float | None = None) -> None:
        """Start loading `uri`; `timeout_s` bounds the backend's own navigation wait."""
        ...

    async def reload(self, *, timeout_s: float | None = None) -> None: ...

    async def evaluate(self, expression: str) -> Any:
        """Run a remote expression; must raise if the session is dead."""
        ...

    def subscribe_load(
        self, on_success: LoadSuccessCallback, on_failure: LoadFailureCallback
    ) -> Callable[[], None]:
        """Register load-outcome listeners and return the unsubscribe callable."""
        ...


@runtime_checkable
class ViewCoordinator(Protocol):
    """Decides which session is visible and interactive in the host shell."""

    async def foreground(self, session: SessionHandle) -> None: ...

    async def set_auxiliary_panel_expanded(self, expanded: bool) -> None: ...

    async def notify_collapse_request(self) -> None: ...

    async def set_sessions_visible(self, visible: bool) -> None: ...

    async def set_switching_enabled(self, enabled: bool) -> None: ...
