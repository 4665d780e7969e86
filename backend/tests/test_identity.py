"""
Tests for the identity service and token handling.

Uses freezegun for token expiration.
"""

import jwt
import pytest
from freezegun import freeze_time

from chattrix.core.config import settings
from chattrix.core.errors import ConflictError, InvalidCredentials, UsernameTaken, ValidationError
from chattrix.core.security import create_access_token, decode_token, hash_password, verify_password
from chattrix.services import identity


class TestPasswords:
    def test_hash_roundtrip(self):
        hashed = hash_password("s3cret")
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)

    def test_garbage_hash_does_not_verify(self):
        assert verify_password("s3cret", "not-a-bcrypt-hash") is False


class TestTokens:
    def test_token_carries_subject(self):
        token = create_access_token("user-1", extra={"username": "alice"})
        payload = decode_token(token)
        assert payload["sub"] == "user-1"
        assert payload["username"] == "alice"

    def test_token_expires(self):
        with freeze_time("2026-01-01 12:00:00"):
            token = create_access_token("user-1", expires_minutes=5)
        with freeze_time("2026-01-01 12:04:00"):
            assert decode_token(token)["sub"] == "user-1"
        with freeze_time("2026-01-01 12:06:00"):
            with pytest.raises(jwt.ExpiredSignatureError):
                decode_token(token)

    def test_extra_claims_cannot_replace_subject(self):
        token = create_access_token("user-1", extra={"sub": "someone-else", "username": "alice"})
        assert decode_token(token)["sub"] == "user-1"

    def test_token_without_expiry_is_rejected(self):
        token = jwt.encode({"sub": "user-1", "iat": 0}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
        with pytest.raises(jwt.MissingRequiredClaimError):
            decode_token(token)


class TestRegistration:
    def test_register_then_sign_in(self, db):
        user = identity.register(db, "Alice@Example.com", "pw")

        assert user.email == "alice@example.com"
        assert user.username is None
        assert identity.sign_in_with_password(db, "alice@example.com", "pw").id == user.id

    def test_duplicate_email(self, db):
        identity.register(db, "alice@example.com", "pw")
        with pytest.raises(ConflictError):
            identity.register(db, "alice@example.com", "pw2")

    def test_wrong_password(self, db):
        identity.register(db, "alice@example.com", "pw")
        with pytest.raises(InvalidCredentials):
            identity.sign_in_with_password(db, "alice@example.com", "nope")

    def test_unknown_email(self, db):
        with pytest.raises(InvalidCredentials):
            identity.sign_in_with_password(db, "ghost@example.com", "pw")


class TestUsername:
    def test_set_username_trims_and_sets_display_name(self, db):
        user = identity.register(db, "alice@example.com", "pw")

        identity.set_username(db, user, "  alice ")

        assert user.username == "alice"
        assert user.display_name == "alice"

    def test_username_required(self, db):
        user = identity.register(db, "alice@example.com", "pw")
        with pytest.raises(ValidationError, match="Username is required"):
            identity.set_username(db, user, "   ")

    def test_username_unique(self, db):
        a = identity.register(db, "alice@example.com", "pw")
        b = identity.register(db, "bob@example.com", "pw")
        identity.set_username(db, a, "alice")

        with pytest.raises(UsernameTaken):
            identity.set_username(db, b, "alice")

    def test_update_display_name(self, db):
        user = identity.register(db, "alice@example.com", "pw")
        identity.update_display_name(db, user, "Alice A.")
        assert user.display_name == "Alice A."
