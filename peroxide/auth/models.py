"""
Peroxide - Authentication Database Models

SQLModel table for stored credentials.

Security:
- Passwords stored only as salted SHA3-512 digests
- Salt is generated once per credential and never changes
- Rank is stored as the literal text "User" or "Admin"
"""

from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, String, LargeBinary


class Rank(str, Enum):
    """
    Coarse authorization level.

    Admin satisfies every requirement User does.
    """
    USER = "User"
    ADMIN = "Admin"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Rank":
        """Anything other than the literal "Admin" is a plain User."""
        return cls.ADMIN if value == cls.ADMIN.value else cls.USER


class User(SQLModel, table=True):
    """
    Stored credential, keyed by username.

    Attributes:
        username: Login identifier (primary key)
        name: Display name
        email: Contact address (unique)
        profile_pic: Optional profile picture path
        salt: 64 random bytes, unique per credential
        password_hash: SHA3-512(salt || password)
        rank: "User" or "Admin"
    """
    __tablename__ = "users"

    username: str = Field(
        sa_column=Column(String, primary_key=True, nullable=False),
        description="Unique login identifier",
    )
    name: str = Field(
        sa_column=Column(String, nullable=False),
        description="Display name",
    )
    email: str = Field(
        sa_column=Column(String, unique=True, nullable=False),
        description="User email address",
    )
    profile_pic: Optional[str] = Field(
        default=None,
        sa_column=Column(String, nullable=True),
        description="Profile picture path",
    )
    salt: bytes = Field(
        sa_column=Column(LargeBinary, unique=True, nullable=False),
        description="Per-credential random salt",
    )
    password_hash: bytes = Field(
        sa_column=Column(LargeBinary, nullable=False),
        description="Salted SHA3-512 password digest",
    )
    rank: str = Field(
        default=Rank.USER.value,
        sa_column=Column(String, nullable=False, default=Rank.USER.value),
        description="Authorization rank",
    )