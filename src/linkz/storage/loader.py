"""JSON document loader and validator."""

import json
import logging
import re
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_HEX64_RE = re.compile(r"^[0-9a-f]{64}$")


class StorageError(Exception):
    """Raised when the data document cannot be read, parsed or written."""


def load_document(path: Path) -> dict[str, Any]:
    """
    Load the data document from a JSON file.

    Args:
        path: Path to data.json

    Returns:
        Parsed document dictionary

    Raises:
        StorageError: If the file is missing, unreadable, not JSON,
            or not a JSON object
    """
    try:
        with open(path, encoding="utf-8") as f:
            document = json.load(f)
    except FileNotFoundError as exc:
        raise StorageError(f"Data document not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error reading data file %s: %s", path, exc)
        raise StorageError(f"Could not read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        logger.error("Data file %s is not valid JSON: %s", path, exc)
        raise StorageError(f"Invalid JSON in {path}: {exc}") from exc

    if not isinstance(document, dict):
        raise StorageError(f"Data document root must be an object: {path}")
    return document


def validate_document(document: Any) -> list[str]:
    """
    Validate a loaded data document.

    Returns:
        List of validation error messages (empty list = valid)
    """
    if not isinstance(document, dict):
        return ["Document root must be a JSON object"]

    errors: list[str] = []

    secret = document.get("secret")
    if not isinstance(secret, str) or not _HEX64_RE.match(secret):
        errors.append("'secret' must be a 64-character hex string")

    user = document.get("user")
    if user is not None:
        if not isinstance(user, dict):
            errors.append("'user' must be null or an object")
        else:
            for field in ("username", "passwordHash"):
                if not isinstance(user.get(field), str) or not user.get(field):
                    errors.append(f"user: missing required field '{field}'")

    sessions = document.get("sessions", {})
    if not isinstance(sessions, dict):
        errors.append("'sessions' must be an object")
    else:
        for token, entry in sessions.items():
            prefix = f"sessions[{token[:8]}…]"
            if not isinstance(entry, dict):
                errors.append(f"{prefix}: must be an object")
                continue
            for field in ("createdAt", "expiresAt"):
                value = entry.get(field)
                if not isinstance(value, int) or isinstance(value, bool):
                    errors.append(f"{prefix}: '{field}' must be an integer timestamp")

    if not isinstance(document.get("links", []), list):
        errors.append("'links' must be a list")

    if not isinstance(document.get("preferences", {}), dict):
        errors.append("'preferences' must be an object")

    return errors
