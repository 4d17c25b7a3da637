"""
Flash notices for admin actions.

The notice is queued after the change has committed. A session store
failure at that point is logged and the request still succeeds, since
the change itself is already durable.
"""

from aloha.core.errors import StoreUnavailable
from aloha.core.logging import get_logger
from aloha.services.sessions import SessionManager

logger = get_logger(__name__)


async def flash(
    sessions: SessionManager, token: str | None, message: str, level: str = "success"
) -> None:
    if not token:
        return
    try:
        await sessions.add_flash(token, message, level)
    except StoreUnavailable:
        logger.warning("flash_not_queued", message=message)
