"""Password hashing helpers (bcrypt)."""

import bcrypt

BCRYPT_ROUNDS = 10
# bcrypt only uses the first 72 bytes of a password; newer releases raise instead of truncating.
_MAX_PASSWORD_BYTES = 72


def _password_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(plain: str) -> str:
    """Hash a password with a fresh salt. Two calls never return the same string."""
    return bcrypt.hashpw(_password_bytes(plain), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, password_hash: str) -> bool:
    """
    Check a plaintext password against a stored bcrypt hash.

    Returns False for a wrong password and for a malformed or empty hash.
    """
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(plain), password_hash.encode("utf-8"))
    except ValueError:
        return False
