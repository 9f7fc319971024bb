"""
Peroxide - Authentication Failure Taxonomy

Every failure in the credential/session core is raised as one of the
exceptions below, carrying a reason enum. Reasons are for server-side logs
only; the HTTP layer collapses them into stable generic messages so callers
cannot tell which step failed or whether a username exists.
"""

from enum import Enum


class AuthFailure(str, Enum):
    """Why a request could not be authenticated."""
    NO_SESSION_COOKIE = "no_session_cookie"
    MALFORMED_COOKIES = "malformed_cookies"
    INVALID_TOKEN = "invalid_token"
    UNKNOWN_USER_OR_STORE_ERROR = "unknown_user_or_store_error"
    HASH_MISMATCH = "hash_mismatch"


class AuthzFailure(str, Enum):
    INSUFFICIENT_RANK = "insufficient_rank"


class ProvisionFailure(str, Enum):
    """Why an account could not be created."""
    DUPLICATE_USERNAME = "duplicate_username"
    UNAUTHORIZED = "unauthorized"
    STORE_UNAVAILABLE = "store_unavailable"


class SignInFailure(str, Enum):
    USER_NOT_FOUND = "user_not_found"
    PASSWORD_MISMATCH = "password_mismatch"
    STORE_UNAVAILABLE = "store_unavailable"


class InvalidTokenError(Exception):
    """Raised when a session token fails signature, structure or expiry checks."""
    pass


class MissingSecretError(RuntimeError):
    """Raised at startup when no signing secret is configured."""
    pass


class _ReasonError(Exception):
    """Base for failures that carry a reason enum."""

    def __init__(self, reason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason.value}: {detail}" if detail else reason.value)


class AuthenticationError(_ReasonError):
    pass


class AuthorizationError(_ReasonError):
    pass


class ProvisionError(_ReasonError):
    pass


class SignInError(_ReasonError):
    pass
