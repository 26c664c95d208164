"""
Session backends for Mirrorbast.

The auto-setup core talks to sessions only through the `SessionHandle` and
`ViewCoordinator` protocols. The Playwright binding is the reference backend:

    from mirrorbast.backends import PlaywrightSession, PlaywrightViewCoordinator

    host = PlaywrightSession(host_page, label="host")
    guest = PlaywrightSession(guest_page, label="guest")
    views = PlaywrightViewCoordinator()
"""

from .playwright_backend import PlaywrightSession, PlaywrightViewCoordinator
from .protocol import SessionHandle, ViewCoordinator

__all__ = [
    # Protocols
    "SessionHandle",
    "ViewCoordinator",
    # Playwright backend
    "PlaywrightSession",
    "PlaywrightViewCoordinator",
]
