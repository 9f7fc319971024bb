"""
Peroxide - Keyring and Session Token Tests

Unit tests for token signing, verification, derivation and expiry.

Run with: pytest tests/test_tokens.py -v
"""

import base64
import hashlib
import json
from datetime import datetime, timedelta, timezone

import pytest

from peroxide.auth.errors import InvalidTokenError, MissingSecretError
from peroxide.auth.keyring import SecretKeyring
from peroxide.auth.models import User
from peroxide.auth.password import generate_salt, hash_password
from peroxide.auth.tokens import (
    SessionToken,
    confirmation_hash,
    confirmation_matches,
    derive_session_token,
    encode_session_token,
    decode_session_token,
)
from peroxide.config import Settings
from tests.conftest import TEST_SECRET


def make_user(password: str = "correct horse") -> User:
    salt = generate_salt()
    return User(
        username="ann",
        name="Ann",
        email="a@x.com",
        salt=salt,
        password_hash=hash_password(salt, password),
    )


def _b64url(data: dict) -> str:
    raw = json.dumps(data).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


# =============================================================================
# KEYRING TESTS
# =============================================================================

class TestSecretKeyring:

    def test_missing_secret_fails_fast(self):
        with pytest.raises(MissingSecretError):
            SecretKeyring("")

        with pytest.raises(MissingSecretError):
            SecretKeyring.from_settings(Settings(JWT_SECRET=""))

    def test_keyring_is_immutable(self, keyring):
        with pytest.raises(AttributeError):
            keyring._secret = "other"

    def test_repr_hides_secret(self, keyring):
        assert TEST_SECRET not in repr(keyring)

    def test_sign_and_verify(self, keyring):
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        token = keyring.sign({"username": "ann", "exp": exp})

        assert keyring.verify(token)["username"] == "ann"

    def test_other_key_rejected(self, keyring):
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        token = SecretKeyring("some-other-secret").sign({"username": "ann", "exp": exp})

        with pytest.raises(InvalidTokenError):
            keyring.verify(token)

    def test_other_algorithm_rejected(self, keyring):
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        token = SecretKeyring(TEST_SECRET, "HS512").sign({"username": "ann", "exp": exp})

        with pytest.raises(InvalidTokenError):
            keyring.verify(token)

    def test_unsigned_token_rejected(self, keyring):
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        token = ".".join([
            _b64url({"alg": "none", "typ": "JWT"}),
            _b64url({"username": "ann", "exp": exp}),
            "",
        ])

        with pytest.raises(InvalidTokenError):
            keyring.verify(token)

    def test_token_without_expiry_rejected(self, keyring):
        token = keyring.sign({"username": "ann"})

        with pytest.raises(InvalidTokenError):
            keyring.verify(token)

    @pytest.mark.parametrize("garbage", ["", "invalid.token.here", "a.b", "..."])
    def test_garbage_rejected(self, keyring, garbage):
        with pytest.raises(InvalidTokenError):
            keyring.verify(garbage)


# =============================================================================
# CONFIRMATION HASH TESTS
# =============================================================================

class TestConfirmationHash:

    def test_is_base64_sha3_of_stored_hash(self):
        user = make_user()

        expected = base64.b64encode(hashlib.sha3_512(user.password_hash).digest()).decode()

        assert confirmation_hash(user.password_hash) == expected

    def test_differs_from_stored_hash(self):
        user = make_user()

        assert confirmation_hash(user.password_hash) != base64.b64encode(user.password_hash).decode()

    def test_matches_only_same_stored_hash(self):
        user = make_user()
        token = derive_session_token(user)

        assert confirmation_matches(token, user.password_hash) is True
        assert confirmation_matches(token, make_user().password_hash) is False

    def test_non_base64_never_matches(self):
        user = make_user()
        token = SessionToken(
            username="ann",
            confirmation_hash="not base64 at all!",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )

        assert confirmation_matches(token, user.password_hash) is False


# =============================================================================
# SESSION TOKEN TESTS
# =============================================================================

class TestSessionToken:

    def test_derive_sets_24_hour_expiry(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)

        token = derive_session_token(make_user(), now=now)

        assert token.username == "ann"
        assert token.expires_at == now + timedelta(hours=24)

    def test_derive_custom_lifetime(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)

        token = derive_session_token(make_user(), expires_delta=timedelta(minutes=5), now=now)

        assert token.expires_at == now + timedelta(minutes=5)

    def test_encode_decode(self, keyring):
        token = derive_session_token(make_user())

        decoded = decode_session_token(encode_session_token(token, keyring), keyring)

        assert decoded.username == token.username
        assert decoded.confirmation_hash == token.confirmation_hash
        # exp travels as whole seconds
        assert abs((decoded.expires_at - token.expires_at).total_seconds()) < 1

    def test_encoded_token_does_not_carry_stored_hash(self, keyring):
        user = make_user()
        encoded = encode_session_token(derive_session_token(user), keyring)

        payload = encoded.split(".")[1]
        claims = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))

        assert set(claims) == {"username", "confirmation_hash", "exp"}
        assert base64.b64encode(user.password_hash).decode() not in encoded

    def test_expired_token_rejected(self, keyring):
        token = derive_session_token(
            make_user(),
            now=datetime.now(timezone.utc) - timedelta(days=2),
        )
        encoded = encode_session_token(token, keyring)

        with pytest.raises(InvalidTokenError):
            decode_session_token(encoded, keyring)

    def test_missing_claims_rejected(self, keyring):
        exp = int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp())
        encoded = keyring.sign({"username": "ann", "exp": exp})

        with pytest.raises(InvalidTokenError):
            decode_session_token(encoded, keyring)

    def test_tampered_payload_rejected(self, keyring):
        encoded = encode_session_token(derive_session_token(make_user()), keyring)

        header, payload, signature = encoded.split(".")
        forged = _b64url({
            "username": "root",
            "confirmation_hash": "AAAA",
            "exp": 9999999999,
        })

        with pytest.raises(InvalidTokenError):
            decode_session_token(".".join([header, forged, signature]), keyring)

    def test_every_character_change_detected(self, keyring):
        """Changing any character of the token invalidates it."""
        encoded = encode_session_token(derive_session_token(make_user()), keyring)

        # The final signature character carries unused padding bits
        for i, ch in enumerate(encoded[:-1]):
            if ch == ".":
                continue
            replacement = "A" if ch != "A" else "B"
            tampered = encoded[:i] + replacement + encoded[i + 1:]

            with pytest.raises(InvalidTokenError):
                decode_session_token(tampered, keyring)
