"""Async access to the single persisted data document."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from linkz.storage.loader import load_document
from linkz.storage.writer import DEFAULT_PREFERENCES, build_document, create_document, write_document

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "LINKZ_DATA_DIR"
DATA_FILE_NAME = "data.json"

# Fields that may be replaced through write_field(). "secret" is written
# once by initialize() and never again.
WRITABLE_FIELDS = ("user", "preferences", "links", "sessions")


def resolve_data_dir(data_dir: Optional[Union[str, Path]] = None) -> Path:
    """Return the data directory: explicit argument, then $LINKZ_DATA_DIR, then ./data."""
    if data_dir:
        return Path(data_dir)
    return Path(os.getenv(DATA_DIR_ENV) or "data")


class DocumentStore:
    """
    Owner of data.json.

    Every accessor is a full read → mutate one field → full write cycle.
    Nothing serializes those cycles, so two overlapping calls can interleave
    and the later write discards the earlier call's change (lost update).
    Each individual write is atomic.

    Args:
        data_dir: Directory holding data.json.
    """

    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)
        self.path = self.data_dir / DATA_FILE_NAME

    # ── Whole-document operations ─────────────────────────────────────────────

    async def initialize(self) -> bool:
        """
        Create data.json with a fresh secret if it does not exist yet.

        Returns:
            True if a new document was written, False if one already existed.
        """
        return await asyncio.to_thread(self._initialize)

    def _initialize(self) -> bool:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        if not create_document(self.path, build_document()):
            return False
        logger.info("Created data document at %s", self.path)
        return True

    async def read(self) -> dict[str, Any]:
        """Load the whole document. Raises StorageError on any failure."""
        return await asyncio.to_thread(load_document, self.path)

    async def write(self, document: dict[str, Any]) -> None:
        """Atomically replace the whole document. Raises StorageError on any failure."""
        await asyncio.to_thread(write_document, self.path, document)

    # ── Generic field access ──────────────────────────────────────────────────

    async def read_field(self, name: str, default: Any = None) -> Any:
        document = await self.read()
        return document.get(name, default)

    async def write_field(self, name: str, value: Any) -> None:
        if name not in WRITABLE_FIELDS:
            raise ValueError(f"Field '{name}' cannot be written")
        document = await self.read()
        document[name] = value
        await self.write(document)

    # ── Typed accessors ───────────────────────────────────────────────────────

    async def get_secret(self) -> str:
        return str(await self.read_field("secret", ""))

    async def get_user(self) -> Optional[dict[str, str]]:
        return await self.read_field("user") or None

    async def set_user(self, username: Optional[str], password_hash: Optional[str]) -> None:
        """Store the account, or clear it when both arguments are None."""
        if username is None and password_hash is None:
            await self.write_field("user", None)
            return
        if not username or not password_hash:
            raise ValueError("username and password_hash must both be set or both be None")
        await self.write_field("user", {"username": username, "passwordHash": password_hash})

    async def get_sessions(self) -> dict[str, dict[str, int]]:
        return await self.read_field("sessions") or {}

    async def save_sessions(self, sessions: dict[str, dict[str, int]]) -> None:
        await self.write_field("sessions", sessions)

    async def get_links(self) -> list[dict[str, Any]]:
        return await self.read_field("links") or []

    async def save_links(self, links: list[dict[str, Any]]) -> None:
        await self.write_field("links", links)

    async def get_preferences(self) -> dict[str, Any]:
        return await self.read_field("preferences") or dict(DEFAULT_PREFERENCES)

    async def save_preferences(self, preferences: dict[str, Any]) -> None:
        await self.write_field("preferences", preferences)
