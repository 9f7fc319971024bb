"""
Peroxide - Credential Provisioning

Account creation and password sign-in.

- self_service_signup: anyone may create a User-rank account and is
  signed in immediately
- privileged_create: an Admin creates an account of any rank
- sign_in: exchange username + password for a session token

Every write is a single transaction: the credential row is either fully
committed or rolled back.
"""

import logging
from datetime import timedelta
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session as DBSession

from peroxide.auth.dependencies import Principal, authorize
from peroxide.auth.errors import (
    AuthorizationError,
    ProvisionError,
    ProvisionFailure,
    SignInError,
    SignInFailure,
)
from peroxide.auth.models import User, Rank
from peroxide.auth.password import generate_salt, hash_password, verify_password
from peroxide.auth.tokens import SessionToken, derive_session_token


logger = logging.getLogger(__name__)

# Stand-in credential verified against when the username is unknown
_DUMMY_SALT = generate_salt()
_DUMMY_HASH = hash_password(_DUMMY_SALT, "")


def build_credential(
    name: str,
    username: str,
    password: str,
    email: str,
    rank: Rank = Rank.USER,
) -> User:
    """
    Build an unsaved credential with a fresh salt and hash.

    The plaintext password is not kept on the returned object.
    """
    salt = generate_salt()
    return User(
        username=username,
        name=name,
        email=email,
        profile_pic=None,
        salt=salt,
        password_hash=hash_password(salt, password),
        rank=rank.value,
    )


def create_credential(
    db: DBSession,
    name: str,
    username: str,
    password: str,
    email: str,
    rank: Rank = Rank.USER,
) -> User:
    """
    Build and persist a credential.

    No authorization check happens here; callers are either the
    self-service path (always User rank), privileged_create (Admin
    actor verified) or an operator script.

    Raises:
        ProvisionError: DUPLICATE_USERNAME if username or email is taken,
            STORE_UNAVAILABLE on any other store failure
    """
    try:
        existing = db.get(User, username)
    except SQLAlchemyError as e:
        logger.error("Credential store error while creating %r: %s", username, e)
        raise ProvisionError(ProvisionFailure.STORE_UNAVAILABLE, str(e)) from e

    if existing is not None:
        logger.info("Account %r not created: username already registered", username)
        raise ProvisionError(ProvisionFailure.DUPLICATE_USERNAME, username)

    user = build_credential(name, username, password, email, rank)

    # Unique constraints still decide races and duplicate emails
    try:
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as e:
        db.rollback()
        logger.info("Account %r not created: username or email already registered", username)
        raise ProvisionError(ProvisionFailure.DUPLICATE_USERNAME, username) from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Credential store error while creating %r: %s", username, e)
        raise ProvisionError(ProvisionFailure.STORE_UNAVAILABLE, str(e)) from e

    logger.info("Created account %r with rank %s", user.username, user.rank)
    return user


def self_service_signup(
    db: DBSession,
    name: str,
    username: str,
    password: str,
    email: str,
    expires_delta: Optional[timedelta] = None,
) -> Tuple[User, SessionToken]:
    """
    Create a User-rank account and a session token for it.

    Returns:
        Tuple of (stored credential, unsigned session token)
    """
    user = create_credential(db, name, username, password, email, Rank.USER)
    return user, derive_session_token(user, expires_delta)


def privileged_create(
    db: DBSession,
    name: str,
    username: str,
    password: str,
    email: str,
    rank: Rank,
    actor: Principal,
) -> User:
    """
    Create an account of any rank on behalf of an Admin.

    Raises:
        ProvisionError: UNAUTHORIZED if the actor is not an Admin,
            otherwise as create_credential
    """
    try:
        authorize(actor, Rank.ADMIN)
    except AuthorizationError as e:
        logger.warning("Privileged create of %r refused: %s", username, e)
        raise ProvisionError(ProvisionFailure.UNAUTHORIZED, actor.username) from e

    user = create_credential(db, name, username, password, email, rank)
    logger.info("Account %r created by admin %r", user.username, actor.username)
    return user


def sign_in(
    db: DBSession,
    username: str,
    password: str,
    expires_delta: Optional[timedelta] = None,
) -> Tuple[User, SessionToken]:
    """
    Verify a username and password.

    Returns:
        Tuple of (stored credential, unsigned session token)

    Raises:
        SignInError: USER_NOT_FOUND, PASSWORD_MISMATCH or
            STORE_UNAVAILABLE (callers must not reveal which)
    """
    try:
        user = db.get(User, username)
    except SQLAlchemyError as e:
        logger.error("Credential store error while signing in %r: %s", username, e)
        raise SignInError(SignInFailure.STORE_UNAVAILABLE, str(e)) from e

    if user is None:
        verify_password(_DUMMY_SALT, _DUMMY_HASH, password)
        logger.info("Sign-in failed for %r: no such user", username)
        raise SignInError(SignInFailure.USER_NOT_FOUND, username)

    if not verify_password(user.salt, user.password_hash, password):
        logger.info("Sign-in failed for %r: wrong password", username)
        raise SignInError(SignInFailure.PASSWORD_MISMATCH, username)

    logger.info("Signed in %r", username)
    return user, derive_session_token(user, expires_delta)
