"""
Peroxide - Authentication Request/Response Schemas

Pydantic models for API request validation and response serialization.
Separates API contracts from database models.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from peroxide.auth.models import Rank


EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class SignInRequest(BaseModel):
    """Request body for POST /api/sign_in."""
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=1)


class SignUpRequest(BaseModel):
    """Request body for POST /api/sign_up."""
    name: str = Field(..., min_length=1, max_length=128, description="Display name")
    username: str = Field(..., min_length=1, max_length=64, description="Login identifier")
    password: str = Field(..., min_length=1, description="Plaintext password")
    email: str = Field(..., max_length=254, description="Email address")

    @field_validator("username")
    @classmethod
    def username_format(cls, v):
        if not USERNAME_PATTERN.match(v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return v

    @field_validator("email")
    @classmethod
    def email_format(cls, v):
        """Basic email format validation (allows .local for development)."""
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email format")
        return v.lower()


class CreateUserRequest(SignUpRequest):
    """Request body for POST /api/users (admin only)."""
    rank: Rank = Field(default=Rank.USER, description="Rank of the new account")


class UserInfo(BaseModel):
    """Public view of a credential; never includes salt or hashes."""
    name: str
    username: str
    profile_pic: Optional[str] = None
    email: str
    rank: Rank

    model_config = ConfigDict(from_attributes=True)

    @field_validator("rank", mode="before")
    @classmethod
    def decode_rank(cls, v):
        """Stored rank text other than the exact literals reads as User."""
        return Rank.parse(v)


class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
