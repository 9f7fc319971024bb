"""
Peroxide - Authentication Package

Credential and session authentication with:
- Salted SHA3-512 password hashing
- Signed session tokens bound to the stored password hash
- Per-request re-verification against the credential store
- Two-tier rank authorization (User / Admin)
"""

from peroxide.auth.models import User, Rank
from peroxide.auth.keyring import SecretKeyring
from peroxide.auth.dependencies import Principal, get_current_user, require_rank
from peroxide.auth.tokens import encode_session_token, decode_session_token

__all__ = [
    "User",
    "Rank",
    "SecretKeyring",
    "Principal",
    "get_current_user",
    "require_rank",
    "encode_session_token",
    "decode_session_token",
]
