"""Signed session cookies: ``<token>.<hex HMAC-SHA256>`` (itsdangerous)."""

import hashlib
import re
from dataclasses import dataclass
from typing import Optional, Union

from itsdangerous import Signer
from itsdangerous.encoding import want_bytes

COOKIE_NAME = "session"
COOKIE_MAX_AGE = 604800  # 7 days, matches the session lifetime
SEPARATOR = "."

_HEX_SIGNATURE_RE = re.compile(rb"^[0-9a-f]{64}$")


class HexSigner(Signer):
    """
    HMAC-SHA256 signer that emits lowercase hex instead of base64.

    The secret is used as the raw HMAC key (no key derivation), so a cookie
    is exactly ``value + "." + hmac_sha256(secret, value).hexdigest()``.
    Verification goes through the algorithm's constant-time compare.
    """

    def __init__(self, secret: Union[str, bytes]) -> None:
        super().__init__(
            secret,
            sep=SEPARATOR,
            key_derivation="none",
            digest_method=hashlib.sha256,
        )

    def get_signature(self, value: Union[str, bytes]) -> bytes:
        key = self.derive_key()
        return self.algorithm.get_signature(key, want_bytes(value)).hex().encode("ascii")

    def verify_signature(self, value: Union[str, bytes], sig: Union[str, bytes]) -> bool:
        sig = want_bytes(sig)
        if not _HEX_SIGNATURE_RE.match(sig):
            return False
        key = self.derive_key()
        return self.algorithm.verify_signature(key, want_bytes(value), bytes.fromhex(sig.decode("ascii")))


@dataclass(frozen=True)
class SignedCookie:
    """A session token together with its MAC, as carried in the cookie."""

    token: str
    signature: str

    def encode(self) -> str:
        return f"{self.token}{SEPARATOR}{self.signature}"

    @classmethod
    def decode(cls, raw: Optional[str]) -> Optional["SignedCookie"]:
        """Parse a cookie value; None unless it is exactly two non-empty parts."""
        if not raw or not isinstance(raw, str):
            return None
        parts = raw.split(SEPARATOR)
        if len(parts) != 2 or not all(parts):
            return None
        return cls(token=parts[0], signature=parts[1])


def sign_cookie(value: str, secret: str) -> str:
    """
    Sign a session token.

    Args:
        value: Session token. Must be non-empty and free of the separator.
        secret: Document secret used as the HMAC key.

    Returns:
        ``value.<64 hex chars>``
    """
    if not value or SEPARATOR in value:
        raise ValueError("Cookie value must be non-empty and must not contain '.'")
    signature = HexSigner(secret).get_signature(value).decode("ascii")
    return SignedCookie(token=value, signature=signature).encode()


def verify_cookie(signed_value: Optional[str], secret: str) -> Optional[str]:
    """
    Verify a signed cookie.

    Returns:
        The session token if the signature matches, otherwise None.
    """
    cookie = SignedCookie.decode(signed_value)
    if cookie is None:
        return None
    if not HexSigner(secret).verify_signature(cookie.token, cookie.signature):
        return None
    return cookie.token
