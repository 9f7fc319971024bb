"""
Peroxide - Session Signing Keyring

Holds the symmetric key used to sign and verify every session token.
Built once at startup from settings and attached to the application state;
it is never rotated while the process runs and is safe to share between
concurrent requests (it is read-only after construction).

Security:
- Refuses to exist without a secret (no default or empty key)
- Verification pins the configured algorithm
- Any verification failure yields InvalidTokenError, never a partial payload
"""

from typing import Any, Dict

from jose import jwt, JWTError

from peroxide.auth.errors import InvalidTokenError, MissingSecretError
from peroxide.config import Settings


class SecretKeyring:
    """Immutable holder of the token signing key."""

    __slots__ = ("_secret", "_algorithm")

    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise MissingSecretError(
                "JWT_SECRET environment variable is not set; refusing to start"
            )
        object.__setattr__(self, "_secret", secret)
        object.__setattr__(self, "_algorithm", algorithm)

    def __setattr__(self, name, value):
        raise AttributeError("SecretKeyring is immutable")

    def __repr__(self) -> str:
        return f"SecretKeyring(algorithm={self._algorithm!r})"

    @classmethod
    def from_settings(cls, settings: Settings) -> "SecretKeyring":
        return cls(settings.JWT_SECRET, settings.JWT_ALGORITHM)

    @property
    def algorithm(self) -> str:
        return self._algorithm

    def sign(self, payload: Dict[str, Any]) -> str:
        """
        Sign a claims dictionary.

        Args:
            payload: JSON-serializable claims (datetimes allowed for exp)

        Returns:
            Compact signed token string
        """
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify a token's signature and expiry and return its claims.

        Raises:
            InvalidTokenError: On malformed structure, bad signature,
                unexpected algorithm, missing or past expiry
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError("Token is empty")
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require_exp": True},
            )
        except JWTError as e:
            raise InvalidTokenError(f"Token validation failed: {e}") from e
