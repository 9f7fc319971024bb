"""
Peroxide - Session Token Management

A session token is a signed JWT carrying:
- username (who the token was issued to)
- confirmation_hash (base64 SHA3-512 of the stored password hash)
- exp (absolute expiry, issuance + 24 hours)

The token never carries the stored hash itself, only a digest of it.
Verification recomputes that digest from the current database row, so
changing a user's stored hash invalidates every token issued before.
"""

import base64
import binascii
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from peroxide.auth.errors import InvalidTokenError
from peroxide.auth.keyring import SecretKeyring
from peroxide.auth.models import User


# Token configuration
SESSION_EXPIRE_HOURS = 24


class SessionToken(BaseModel):
    """
    Session token payload.

    Attributes:
        username: Subject of the token
        confirmation_hash: base64(SHA3-512(stored password hash))
        expires_at: Expiration time (UTC)
    """
    username: str = Field(..., min_length=1, description="Username")
    confirmation_hash: str = Field(..., min_length=1, description="Digest of the stored hash")
    expires_at: datetime = Field(..., description="Expiration time")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at <= now


def confirmation_hash(password_hash: bytes) -> str:
    """
    Second-order digest of a stored password hash.

    Returns:
        Standard base64 of SHA3-512(password_hash)
    """
    digest = hashlib.sha3_512(bytes(password_hash)).digest()
    return base64.b64encode(digest).decode("ascii")


def confirmation_matches(token: SessionToken, password_hash: bytes) -> bool:
    """
    Check a token's confirmation hash against a stored password hash.

    Compares decoded digests in constant time. A confirmation hash that
    is not valid base64 never matches.
    """
    try:
        presented = base64.b64decode(token.confirmation_hash, validate=True)
    except (binascii.Error, ValueError):
        return False
    expected = hashlib.sha3_512(bytes(password_hash)).digest()
    return hmac.compare_digest(presented, expected)


def derive_session_token(
    user: User,
    expires_delta: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> SessionToken:
    """
    Derive a session token from a verified credential.

    Args:
        user: Credential the token is issued for
        expires_delta: Optional custom lifetime (default 24 hours)
        now: Issuance time override

    Returns:
        Unsigned SessionToken payload
    """
    now = now or datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(hours=SESSION_EXPIRE_HOURS)

    return SessionToken(
        username=user.username,
        confirmation_hash=confirmation_hash(user.password_hash),
        expires_at=now + expires_delta,
    )


def encode_session_token(token: SessionToken, keyring: SecretKeyring) -> str:
    """Sign a session token for transmission."""
    payload = {
        "username": token.username,
        "confirmation_hash": token.confirmation_hash,
        "exp": int(token.expires_at.timestamp()),
    }
    return keyring.sign(payload)


def decode_session_token(encoded: str, keyring: SecretKeyring) -> SessionToken:
    """
    Verify and decode a signed session token.

    Args:
        encoded: Signed token string
        keyring: Keyring holding the signing key

    Returns:
        Decoded SessionToken

    Raises:
        InvalidTokenError: If token is tampered, malformed, missing
            claims, or expired
    """
    claims = keyring.verify(encoded)
    try:
        token = SessionToken(
            username=claims["username"],
            confirmation_hash=claims["confirmation_hash"],
            expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
        )
    except (KeyError, TypeError, ValueError, OverflowError, ValidationError) as e:
        raise InvalidTokenError(f"Token claims are malformed: {e}") from e

    # jose already rejects a past exp; checked again against the parsed value
    if token.is_expired():
        raise InvalidTokenError("Token has expired")

    return token
