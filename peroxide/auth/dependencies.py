"""
Peroxide - Security Dependencies

Per-request session authentication and rank-based authorization.

Usage:
    @router.get("/protected")
    async def protected_route(user: Principal = Depends(get_current_user)):
        ...

    @router.post("/admin-only")
    @require_rank(Rank.ADMIN)
    async def admin_route(user: Principal = Depends(get_current_user)):
        ...

Security:
- Every protected request re-verifies the token against the current
  database row (nothing is cached between requests)
- Every rejection reason is logged, but callers only ever see a generic
  401/403 so they cannot tell which step failed
"""

import logging
from functools import wraps
from typing import Generator, Optional

from fastapi import HTTPException, status, Depends, Request
from pydantic import BaseModel, ConfigDict
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session as DBSession
from starlette.requests import cookie_parser

from peroxide.auth.errors import (
    AuthFailure,
    AuthzFailure,
    AuthenticationError,
    AuthorizationError,
    InvalidTokenError,
)
from peroxide.auth.keyring import SecretKeyring
from peroxide.auth.models import User, Rank
from peroxide.auth.tokens import decode_session_token, confirmation_matches


logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "jwt-token"

NOT_AUTHENTICATED = "Not authenticated"
NOT_AUTHORIZED = "Not authorized"


class Principal(BaseModel):
    """
    The authenticated identity for one request.

    Available in route handlers via Depends(get_current_user).
    """
    model_config = ConfigDict(frozen=True)

    username: str
    name: str
    email: str
    profile_pic: Optional[str] = None
    rank: Rank

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(
            username=user.username,
            name=user.name,
            email=user.email,
            profile_pic=user.profile_pic,
            rank=Rank.parse(user.rank),
        )


def _is_cookie_header_text(raw: str) -> bool:
    # Headers arrive latin-1 decoded; anything outside visible ASCII is garbage
    return all(ch == "\t" or 32 <= ord(ch) < 127 for ch in raw)


def extract_session_cookie(
    cookie_header: Optional[str],
    cookie_name: str = SESSION_COOKIE_NAME,
) -> str:
    """
    Find the session token in a raw Cookie header.

    Raises:
        AuthenticationError: NO_SESSION_COOKIE if the header or the named
            cookie is absent, MALFORMED_COOKIES if the header is not
            valid cookie text
    """
    if cookie_header is None:
        raise AuthenticationError(AuthFailure.NO_SESSION_COOKIE, "no Cookie header")
    if not _is_cookie_header_text(cookie_header):
        raise AuthenticationError(AuthFailure.MALFORMED_COOKIES, "non-ASCII Cookie header")

    value = cookie_parser(cookie_header).get(cookie_name)
    if not value:
        raise AuthenticationError(
            AuthFailure.NO_SESSION_COOKIE, f"{cookie_name} cookie not present"
        )
    return value


def authenticate(
    cookie_header: Optional[str],
    keyring: SecretKeyring,
    db: DBSession,
    cookie_name: str = SESSION_COOKIE_NAME,
) -> Principal:
    """
    Resolve the principal for a request from its Cookie header.

    Steps:
    1. Extract the session cookie
    2. Verify token signature and expiry
    3. Load the credential named by the token
    4. Recompute the confirmation hash from the stored password hash
    5. Compare against the token's confirmation hash

    Args:
        cookie_header: Raw Cookie header value (None when absent)
        keyring: Process signing keyring
        db: Database session
        cookie_name: Reserved session cookie name

    Returns:
        Principal for the stored credential

    Raises:
        AuthenticationError: With the failing step's reason
    """
    encoded = extract_session_cookie(cookie_header, cookie_name)

    try:
        token = decode_session_token(encoded, keyring)
    except InvalidTokenError as e:
        raise AuthenticationError(AuthFailure.INVALID_TOKEN, str(e)) from e

    try:
        user = db.get(User, token.username)
    except SQLAlchemyError as e:
        logger.error("Credential store error while authenticating %r: %s", token.username, e)
        raise AuthenticationError(
            AuthFailure.UNKNOWN_USER_OR_STORE_ERROR, "credential store unavailable"
        ) from e

    if user is None:
        raise AuthenticationError(
            AuthFailure.UNKNOWN_USER_OR_STORE_ERROR, f"no credential for {token.username!r}"
        )

    if not confirmation_matches(token, user.password_hash):
        raise AuthenticationError(
            AuthFailure.HASH_MISMATCH, f"stale or forged token for {token.username!r}"
        )

    return Principal.from_user(user)


def authorize(principal: Principal, required: Rank) -> Principal:
    """
    Decide whether a principal's rank satisfies a requirement.

    Admin satisfies every requirement; User satisfies only User.

    Raises:
        AuthorizationError: INSUFFICIENT_RANK
    """
    if required == Rank.ADMIN and principal.rank != Rank.ADMIN:
        raise AuthorizationError(
            AuthzFailure.INSUFFICIENT_RANK,
            f"{principal.username!r} has rank {principal.rank.value}",
        )
    return principal


def get_db(request: Request) -> Generator[DBSession, None, None]:
    """Database session from app state, closed after the request."""
    db = request.app.state.db_session_factory()
    try:
        yield db
    finally:
        db.close()


async def get_current_user(
    request: Request,
    db: DBSession = Depends(get_db),
) -> Principal:
    """
    Validate request authentication and return current principal.

    Raises:
        HTTPException 401: For every authentication failure
    """
    settings = request.app.state.settings
    try:
        return authenticate(
            request.headers.get("cookie"),
            request.app.state.keyring,
            db,
            cookie_name=settings.SESSION_COOKIE_NAME,
        )
    except AuthenticationError as e:
        logger.warning(
            "Authentication rejected for %s %s: %s",
            request.method, request.url.path, e,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED,
        )


def require_rank(rank: Rank):
    """
    Decorator requiring a minimum rank.

    Usage:
        @require_rank(Rank.ADMIN)
        async def admin_only(user: Principal = Depends(get_current_user)):
            ...

    Raises:
        HTTPException 401: If no principal was injected
        HTTPException 403: If the principal's rank is insufficient
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            # Extract user from kwargs (injected by Depends)
            user: Optional[Principal] = kwargs.get("user")

            if user is None:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail=NOT_AUTHENTICATED,
                )

            try:
                authorize(user, rank)
            except AuthorizationError as e:
                logger.warning("Authorization denied for %s: %s", func.__name__, e)
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=NOT_AUTHORIZED,
                )

            return await func(*args, **kwargs)
        return wrapper
    return decorator
