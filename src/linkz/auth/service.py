"""Account lifecycle: setup, login, logout and credential reset."""

import asyncio
import logging
from typing import Callable, Optional

from linkz.auth import gate
from linkz.auth.cookies import sign_cookie, verify_cookie
from linkz.auth.passwords import hash_password, verify_password
from linkz.auth.session import Session, create_session, is_session_valid, now_ms
from linkz.storage.store import DocumentStore

logger = logging.getLogger(__name__)

# Compared against on unknown usernames so a miss costs the same as a wrong password.
_DUMMY_HASH = hash_password("dummy-password")


class CredentialError(Exception):
    """Raised for rejected credentials or a second account setup. Message is user-safe."""


class AccountService:
    """
    Single-account authentication on top of the DocumentStore.

    bcrypt runs in a worker thread so hashing never stalls the event loop.

    Args:
        store: Document store holding user, sessions and secret.
        clock: Epoch-millisecond clock, injectable for expiry tests.
    """

    def __init__(self, store: DocumentStore, clock: Callable[[], int] = now_ms) -> None:
        self.store = store
        self._clock = clock

    async def check_has_account(self) -> bool:
        return await self.store.get_user() is not None

    async def create_account(self, username: str, password: str) -> None:
        """Create the one account. Raises CredentialError if it already exists."""
        if await self.check_has_account():
            raise CredentialError("User already exists")
        password_hash = await asyncio.to_thread(hash_password, password)
        await self.store.set_user(username, password_hash)
        logger.info("Account created")

    async def login(self, username: str, password: str) -> str:
        """
        Check credentials and open a session.

        Returns:
            Signed cookie value for the new session.

        Raises:
            CredentialError: On a wrong username or password (not distinguished).
        """
        user = await self.store.get_user()
        if user is None or user.get("username") != username:
            await asyncio.to_thread(verify_password, password, _DUMMY_HASH)
            raise CredentialError("Invalid credentials")
        if not await asyncio.to_thread(verify_password, password, user.get("passwordHash", "")):
            raise CredentialError("Invalid credentials")

        token, session = create_session(now=self._clock())
        sessions = await self.store.get_sessions()
        sessions[token] = session.to_dict()
        await self.store.save_sessions(sessions)

        secret = await self.store.get_secret()
        logger.info("Login succeeded, %d session(s) on record", len(sessions))
        return sign_cookie(token, secret)

    async def logout(self, cookie: Optional[str]) -> None:
        """Drop the session named by a correctly signed cookie. Bad cookies are ignored."""
        if not cookie:
            return
        token = verify_cookie(cookie, await self.store.get_secret())
        if token is None:
            return
        sessions = await self.store.get_sessions()
        if sessions.pop(token, None) is not None:
            await self.store.save_sessions(sessions)
            logger.info("Session closed")

    async def reset_credentials(self, cookie: Optional[str]) -> bool:
        """
        Clear the account and every session.

        Two separate document writes: the user first, then the session table.

        Returns:
            False if the cookie is not authenticated (nothing is changed).
        """
        if not await self.is_authenticated(cookie):
            return False
        await clear_credentials(self.store)
        return True

    async def is_authenticated(self, cookie: Optional[str]) -> bool:
        return await gate.is_authenticated(self.store, cookie, self._clock)

    async def prune_expired_sessions(self) -> int:
        """Remove expired entries from the session table. Returns how many were removed."""
        sessions = await self.store.get_sessions()
        now = self._clock()
        live = {token: entry for token, entry in sessions.items() if _is_live(entry, now)}
        removed = len(sessions) - len(live)
        if removed:
            await self.store.save_sessions(live)
            logger.info("Pruned %d expired session(s)", removed)
        return removed


async def clear_credentials(store: DocumentStore) -> None:
    """Clear the user, then the session table, as two independent writes."""
    await store.set_user(None, None)
    await store.save_sessions({})
    logger.warning("Credentials reset, all sessions invalidated")


def _is_live(entry: dict, now: int) -> bool:
    try:
        return is_session_valid(Session.from_dict(entry), now=now)
    except (KeyError, TypeError, ValueError):
        return False
