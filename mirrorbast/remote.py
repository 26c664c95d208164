from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .errors import AutoSetupError, FaultedError, SessionUnavailableError

if TYPE_CHECKING:
    from .backends.protocol import SessionHandle

logger = logging.getLogger(__name__)


async def execute_script(session: SessionHandle, expression: str, description: str) -> Any:
    """
    Evaluate a remote expression, normalizing failures.

    Raises:
        SessionUnavailableError: the session is dead before or during the call.
        FaultedError: the remote evaluation itself raised.
    """
    if not session.is_alive():
        raise SessionUnavailableError(
            f"Session {session.label} is not available for step: {description}"
        )
    try:
        return await session.evaluate(expression)
    except AutoSetupError:
        raise
    except Exception as exc:
        if not session.is_alive():
            raise SessionUnavailableError(
                f"Session {session.label} became unavailable during step: {description}"
            ) from exc
        logger.debug("Script failed in session %s (%s): %s", session.label, description, exc)
        raise FaultedError(
            f"Script execution failed in session {session.label} ({description}): {exc}"
        ) from exc
