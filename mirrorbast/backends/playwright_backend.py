"""
Playwright binding for the session and view-coordinator protocols.

Each participant gets its own browser context (separate cookies/storage, the
equivalent of a persisted partition) and one page inside it:

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=False)
        host_page = await (await browser.new_context()).new_page()
        guest_page = await (await browser.new_context()).new_page()

        host = PlaywrightSession(host_page, label="host")
        guest = PlaywrightSession(guest_page, label="guest")
        views = PlaywrightViewCoordinator()
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..errors import SessionUnavailableError
from .protocol import LoadFailureCallback, LoadSuccessCallback, SessionHandle

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


def _timeout_kwargs(timeout_s: float | None) -> dict[str, float]:
    """Playwright takes milliseconds; None keeps the page default."""
    if timeout_s is None:
        return {}
    return {"timeout": float(timeout_s) * 1000}


class PlaywrightSession:
    """SessionHandle over a Playwright `Page`."""

    def __init__(self, page: Page, *, label: str, session_id: str | None = None) -> None:
        self.page = page
        self.label = label
        self.session_id = session_id or f"{label}-{uuid.uuid4().hex[:8]}"
        self._crashed = False
        self._listeners: list[tuple[LoadSuccessCallback, LoadFailureCallback]] = []

        page.on("load", self._on_load)
        page.on("crash", self._on_crash)
        page.on("close", self._on_close)

    @property
    def url(self) -> str:
        if not self.is_alive():
            return ""
        url = self.page.url
        return "" if url == "about:blank" else url

    def is_alive(self) -> bool:
        return not self._crashed and not self.page.is_closed()

    async def navigate(self, uri: str, *, timeout_s: float | None = None) -> None:
        self._ensure_alive("navigate")
        try:
            await self.page.goto(uri, wait_until="load", **_timeout_kwargs(timeout_s))
        except Exception as exc:
            self._emit_failure(f"navigation to {uri} failed: {exc}")
            raise

    async def reload(self, *, timeout_s: float | None = None) -> None:
        self._ensure_alive("reload")
        try:
            await self.page.reload(wait_until="load", **_timeout_kwargs(timeout_s))
        except Exception as exc:
            self._emit_failure(f"reload failed: {exc}")
            raise

    async def evaluate(self, expression: str) -> Any:
        self._ensure_alive("evaluate")
        return await self.page.evaluate(expression)

    def subscribe_load(
        self, on_success: LoadSuccessCallback, on_failure: LoadFailureCallback
    ) -> Callable[[], None]:
        entry = (on_success, on_failure)
        self._listeners.append(entry)

        def _unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return _unsubscribe

    def _ensure_alive(self, operation: str) -> None:
        if not self.is_alive():
            raise SessionUnavailableError(
                f"Session {self.label} is not available for {operation}"
            )

    def _on_load(self, _page: Any = None) -> None:
        for on_success, _ in list(self._listeners):
            on_success()

    def _on_crash(self, _page: Any = None) -> None:
        self._crashed = True
        self._emit_failure("page crashed")

    def _on_close(self, _page: Any = None) -> None:
        self._emit_failure("page closed")

    def _emit_failure(self, reason: str) -> None:
        logger.warning("Session %s load failure: %s", self.label, reason)
        for _, on_failure in list(self._listeners):
            on_failure(reason)


class PlaywrightViewCoordinator:
    """
    Minimal view coordinator for a Playwright-hosted pair of sessions.

    Foregrounding maps to `page.bring_to_front()`; the panel and visibility
    flags are tracked so a shell (or a test) can render them.
    """

    def __init__(self) -> None:
        self.active: SessionHandle | None = None
        self.panel_expanded = True
        self.sessions_visible = True
        self.switching_enabled = True
        self.collapse_requests = 0

    async def foreground(self, session: SessionHandle) -> None:
        page = getattr(session, "page", None)
        if page is not None:
            await page.bring_to_front()
        self.active = session
        logger.info("Foreground session: %s", session.label)

    async def set_auxiliary_panel_expanded(self, expanded: bool) -> None:
        self.panel_expanded = bool(expanded)

    async def notify_collapse_request(self) -> None:
        self.collapse_requests += 1
        self.panel_expanded = False

    async def set_sessions_visible(self, visible: bool) -> None:
        self.sessions_visible = bool(visible)

    async def set_switching_enabled(self, enabled: bool) -> None:
        self.switching_enabled = bool(enabled)
