"""Atomic JSON write-back for the Simple Linkz data document."""

import json
import logging
import os
import secrets
import tempfile
from pathlib import Path
from typing import Any, Optional

from linkz.storage.loader import StorageError

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES: dict[str, Any] = {
    "layout": "grid",
    "theme": "dark",
    "accentColor": "blue",
    # Light: white/gray/slate, Dark: gray/slate/zinc
    "backgroundColor": "gray",
    "pageTitle": "Simple Linkz",
}


def generate_secret() -> str:
    """Generate a 32-byte hex secret used as the cookie signing key."""
    return secrets.token_hex(32)


def build_document(
    secret: Optional[str] = None,
    preferences: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """
    Build a fresh data document.

    Args:
        secret: Signing secret. A new one is generated when omitted.
        preferences: Initial preferences. Defaults to DEFAULT_PREFERENCES.

    Returns:
        Document dict ready for write_document().
    """
    return {
        "secret": secret or generate_secret(),
        "user": None,
        "preferences": dict(preferences or DEFAULT_PREFERENCES),
        "links": [],
        "sessions": {},
    }


def _write_temp(path: Path, document: dict[str, Any]) -> Path:
    """Serialize the document into a fsynced temp file beside ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            # NaN and Infinity are not valid JSON
            json.dump(document, f, indent=2, ensure_ascii=False, allow_nan=False)
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    return tmp


def write_document(path: Path, document: dict[str, Any]) -> None:
    """
    Atomically write the data document to a JSON file.

    The content goes to a uniquely named temp file in the same directory,
    is fsynced, then moved over the canonical path with os.replace, so a
    reader only ever sees the old or the new document.

    Args:
        path: Destination data.json path.
        document: Full document dict.

    Raises:
        StorageError: On any serialization or I/O failure. The previous
            document is left untouched.
    """
    tmp: Optional[Path] = None
    try:
        tmp = _write_temp(path, document)
        os.replace(tmp, path)
    except (OSError, TypeError, ValueError) as exc:
        # Clean up temp file on failure
        if tmp is not None and tmp.exists():
            tmp.unlink(missing_ok=True)
        logger.error("Error writing data file %s: %s", path, exc)
        raise StorageError(f"Could not write {path}: {exc}") from exc


def create_document(path: Path, document: dict[str, Any]) -> bool:
    """
    Write the data document only if ``path`` does not exist yet.

    The fully written temp file is hard-linked onto the canonical path,
    which fails if another writer got there first. Concurrent callers
    therefore agree on a single document.

    Returns:
        True if this call created the document, False if one already existed.

    Raises:
        StorageError: On any serialization or I/O failure.
    """
    tmp: Optional[Path] = None
    try:
        tmp = _write_temp(path, document)
        os.link(tmp, path)
        return True
    except FileExistsError:
        return False
    except (OSError, TypeError, ValueError) as exc:
        logger.error("Error creating data file %s: %s", path, exc)
        raise StorageError(f"Could not create {path}: {exc}") from exc
    finally:
        if tmp is not None:
            tmp.unlink(missing_ok=True)
