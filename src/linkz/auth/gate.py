"""Per-request authentication verdict for a session cookie."""

import logging
from typing import Callable, Optional

from linkz.auth.cookies import verify_cookie
from linkz.auth.session import Session, is_session_valid, now_ms
from linkz.storage.store import DocumentStore

logger = logging.getLogger(__name__)


async def resolve_session_token(
    store: DocumentStore,
    cookie: Optional[str],
    clock: Callable[[], int] = now_ms,
) -> Optional[str]:
    """
    Return the session token behind a cookie if it names a live session.

    Pure read: an expired entry is reported as invalid but left in the table.
    Every failure, including storage errors and malformed session entries,
    yields None.
    """
    if not cookie:
        return None
    try:
        document = await store.read()
        token = verify_cookie(cookie, document.get("secret", ""))
        if token is None:
            return None
        entry = (document.get("sessions") or {}).get(token)
        if entry is None:
            return None
        if not is_session_valid(Session.from_dict(entry), now=clock()):
            return None
        return token
    except Exception as exc:
        logger.warning("Session check failed closed: %s", exc)
        return None


async def is_authenticated(
    store: DocumentStore,
    cookie: Optional[str],
    clock: Callable[[], int] = now_ms,
) -> bool:
    """Authenticated / unauthenticated verdict. Never raises."""
    return await resolve_session_token(store, cookie, clock) is not None
