"""
Peroxide - Password Hashing Utilities

Salted SHA3-512 password hashing.

The stored form is SHA3-512(salt || password) with a 64-byte random salt
per credential. This is a single unstretched pass, kept for compatibility
with existing stored hashes; moving to a memory-hard KDF would change the
stored format and needs a migration plan.

Security:
- Never log or expose plaintext passwords
- Salt comes from the OS CSPRNG (secrets module)
- Verification uses constant-time comparison
"""

import hashlib
import hmac
import secrets


SALT_LENGTH = 64
HASH_LENGTH = 64  # SHA3-512 digest size in bytes


def generate_salt() -> bytes:
    """
    Generate a fresh random salt.

    Returns:
        64 bytes from the operating system CSPRNG
    """
    return secrets.token_bytes(SALT_LENGTH)


def hash_password(salt: bytes, password: str) -> bytes:
    """
    Hash a password with its salt.

    Args:
        salt: Per-credential salt, always prefixed to the password
        password: Plaintext password

    Returns:
        64-byte SHA3-512 digest

    Example:
        >>> salt = generate_salt()
        >>> len(hash_password(salt, "correct horse"))
        64
    """
    if not salt:
        raise ValueError("A salt is required to hash a password")
    hasher = hashlib.sha3_512()
    hasher.update(salt)
    hasher.update(password.encode("utf-8"))
    return hasher.digest()


def verify_password(salt: bytes, password_hash: bytes, password: str) -> bool:
    """
    Verify a candidate password against a stored salt and hash.

    Args:
        salt: Stored salt
        password_hash: Stored digest
        password: Candidate plaintext

    Returns:
        True if the candidate hashes to the stored digest
    """
    try:
        candidate = hash_password(salt, password)
    except (ValueError, TypeError, AttributeError):
        return False
    return hmac.compare_digest(candidate, bytes(password_hash))
