"""Session tokens with a fixed seven-day lifetime."""

import secrets
import time
from dataclasses import dataclass
from typing import Any, Optional

SESSION_DURATION_MS = 7 * 24 * 60 * 60 * 1000  # 7 days


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_token() -> str:
    """Generate an opaque 32-byte hex session token (64 chars)."""
    return secrets.token_hex(32)


@dataclass(frozen=True)
class Session:
    """One entry of the session table. Carries no user reference: the system has one account."""

    created_at: int
    expires_at: int

    def to_dict(self) -> dict[str, int]:
        return {"createdAt": self.created_at, "expiresAt": self.expires_at}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Session":
        return cls(created_at=int(d["createdAt"]), expires_at=int(d["expiresAt"]))


def create_session(now: Optional[int] = None) -> tuple[str, Session]:
    """
    Create a new session.

    Args:
        now: Creation time in epoch ms. Defaults to the current time.

    Returns:
        (token, session) where the token is the session-table key.
    """
    created = now_ms() if now is None else now
    return generate_token(), Session(created_at=created, expires_at=created + SESSION_DURATION_MS)


def is_session_valid(session: Optional[Session], now: Optional[int] = None) -> bool:
    """True if the session exists and `now` is strictly before its expiry."""
    if session is None:
        return False
    current = now_ms() if now is None else now
    return current < session.expires_at
