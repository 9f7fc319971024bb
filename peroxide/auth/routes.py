"""
Peroxide - Authentication Routes

API endpoints for authentication:
- POST /api/sign_up  - Create a User account and sign in
- POST /api/sign_in  - Authenticate and set the session cookie
- GET  /api/me       - Current principal
- GET  /api/user     - Public profile lookup
- POST /api/users    - Create an account of any rank (admin only)

Failures are reported with stable generic messages; the detailed reason
is only logged.
"""

import logging
from datetime import timedelta

from fastapi import APIRouter, HTTPException, status, Depends, Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session as DBSession

from peroxide.auth.dependencies import (
    Principal,
    get_current_user,
    get_db,
    require_rank,
    NOT_AUTHORIZED,
)
from peroxide.auth.errors import ProvisionError, ProvisionFailure, SignInError
from peroxide.auth.models import User, Rank
from peroxide.auth.provisioning import self_service_signup, privileged_create, sign_in
from peroxide.auth.schemas import (
    SignInRequest,
    SignUpRequest,
    CreateUserRequest,
    UserInfo,
    ErrorResponse,
)
from peroxide.auth.tokens import SessionToken, encode_session_token


logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])

INVALID_CREDENTIALS = "Invalid username or password"


def _session_lifetime(request: Request) -> timedelta:
    return timedelta(hours=request.app.state.settings.SESSION_EXPIRE_HOURS)


def set_session_cookie(request: Request, response: Response, token: SessionToken) -> None:
    """Sign a session token and attach it as the session cookie."""
    settings = request.app.state.settings
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=encode_session_token(token, request.app.state.keyring),
        max_age=settings.SESSION_COOKIE_MAX_AGE_SECONDS,
        path="/",
        secure=settings.SESSION_COOKIE_SECURE,
        httponly=True,
        samesite=settings.SESSION_COOKIE_SAMESITE,
    )


def _provision_http_error(e: ProvisionError) -> HTTPException:
    if e.reason == ProvisionFailure.DUPLICATE_USERNAME:
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username or email already registered",
        )
    if e.reason == ProvisionFailure.UNAUTHORIZED:
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=NOT_AUTHORIZED,
        )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Could not sign up, try again later",
    )


@router.post(
    "/sign_up",
    response_model=UserInfo,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
    summary="Create an account and sign in",
)
async def sign_up_route(
    request: Request,
    response: Response,
    body: SignUpRequest,
    db: DBSession = Depends(get_db),
):
    """
    Self-service sign-up.

    The new account always has rank User. On success the response
    carries the session cookie, so the caller is already signed in.
    """
    try:
        user, token = self_service_signup(
            db,
            name=body.name,
            username=body.username,
            password=body.password,
            email=body.email,
            expires_delta=_session_lifetime(request),
        )
    except ProvisionError as e:
        raise _provision_http_error(e)

    set_session_cookie(request, response, token)
    return UserInfo.model_validate(user)


@router.post(
    "/sign_in",
    response_model=UserInfo,
    responses={401: {"model": ErrorResponse}},
    summary="Authenticate and set the session cookie",
)
async def sign_in_route(
    request: Request,
    response: Response,
    body: SignInRequest,
    db: DBSession = Depends(get_db),
):
    """
    Authenticate with username and password.

    Unknown user, wrong password and store failure all produce the same
    401 response and no cookie.
    """
    try:
        user, token = sign_in(
            db,
            username=body.username,
            password=body.password,
            expires_delta=_session_lifetime(request),
        )
    except SignInError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS,
        )

    set_session_cookie(request, response, token)
    return UserInfo.model_validate(user)


@router.get(
    "/me",
    response_model=UserInfo,
    responses={401: {"model": ErrorResponse}},
    summary="Get the current principal",
)
async def get_me(user: Principal = Depends(get_current_user)):
    return UserInfo.model_validate(user)


@router.get(
    "/user",
    response_model=UserInfo,
    responses={404: {"model": ErrorResponse}},
    summary="Look up a public profile",
)
async def get_user(username: str, db: DBSession = Depends(get_db)):
    try:
        db_user = db.get(User, username)
    except SQLAlchemyError as e:
        logger.error("Credential store error while looking up %r: %s", username, e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unavailable",
        )

    if db_user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return UserInfo.model_validate(db_user)


@router.post(
    "/users",
    response_model=UserInfo,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="Create an account of any rank (admin only)",
)
@require_rank(Rank.ADMIN)
async def create_user(
    body: CreateUserRequest,
    db: DBSession = Depends(get_db),
    user: Principal = Depends(get_current_user),
):
    """
    Create a new account.

    Admin only. No session is issued for the new account.
    """
    try:
        new_user = privileged_create(
            db,
            name=body.name,
            username=body.username,
            password=body.password,
            email=body.email,
            rank=body.rank,
            actor=user,
        )
    except ProvisionError as e:
        raise _provision_http_error(e)

    return UserInfo.model_validate(new_user)
