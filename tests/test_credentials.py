"""Tests for auth/credentials.py -- validation, hashing, register and login.

Uses the user_store fixture (isolated in-memory SQLite) from conftest.py.
"""

import pytest
from sqlalchemy.exc import OperationalError

from auth.credentials import authenticate_user, hash_password, register_user, verify_password
from auth.tokens import create_access_token, verify_access_token
from core.errors import ConflictError, InternalError, InvalidCredentials, ValidationError


def _disk_error(*args, **kwargs):
    raise OperationalError("INSERT INTO users", {}, Exception("disk I/O error"))


class TestRegister:
    def test_register_then_login_yields_same_user(self, user_store):
        created = register_user(user_store, "alice01", "password123")
        user = authenticate_user(user_store, "alice01", "password123")
        assert user.id == created.id
        assert verify_access_token(create_access_token(user.id, user.username)).user_id == created.id

    def test_password_is_stored_hashed(self, user_store):
        register_user(user_store, "alice01", "password123")
        stored = user_store.get_by_username("alice01")
        assert stored.hashed_password != "password123"
        assert stored.hashed_password.startswith("$2")
        assert verify_password("password123", stored.hashed_password)

    def test_returned_user_carries_no_hash(self, user_store):
        created = register_user(user_store, "alice01", "password123")
        assert created.hashed_password is None

    @pytest.mark.parametrize(
        "username, password, fragment",
        [
            ("ab", "password123", "username must be at least 3"),
            ("a" * 33, "password123", "username must be no more than 32"),
            ("alice01", "short", "password must be at least 8"),
            ("alice01", "p" * 73, "password must be no more than 72 bytes"),
            ("alice01", "é" * 37, "password must be no more than 72 bytes"),
            ("é" * 17, "password123", "username must be no more than 32"),
            ("é", "password123", "username must be at least 3"),
            ("alice01", "ééé", "password must be at least 8"),
        ],
    )
    def test_invalid_fields_fail_before_storage(self, user_store, username, password, fragment):
        with pytest.raises(ValidationError) as exc_info:
            register_user(user_store, username, password)
        assert fragment in exc_info.value.message
        assert exc_info.value.status_code == 400
        assert user_store.get_by_username(username) is None

    def test_boundary_lengths_are_accepted(self, user_store):
        register_user(user_store, "abc", "12345678")
        register_user(user_store, "u" * 32, "p" * 72)

    def test_lengths_are_counted_in_utf8_bytes(self, user_store):
        register_user(user_store, "é" * 16, "éééé")
        register_user(user_store, "éé", "password123")
        assert authenticate_user(user_store, "é" * 16, "éééé").username == "é" * 16

    def test_duplicate_username_is_conflict(self, user_store):
        register_user(user_store, "alice01", "password123")
        with pytest.raises(ConflictError) as exc_info:
            register_user(user_store, "alice01", "another-password")
        assert exc_info.value.status_code == 409

    def test_storage_failure_is_internal_error(self, user_store, monkeypatch):
        monkeypatch.setattr(user_store, "create_user", _disk_error)
        with pytest.raises(InternalError) as exc_info:
            register_user(user_store, "alice01", "password123")
        assert exc_info.value.status_code == 500
        assert "disk" not in exc_info.value.message


class TestAuthenticate:
    def test_wrong_password_and_unknown_user_are_indistinguishable(self, user_store):
        register_user(user_store, "alice01", "password123")
        with pytest.raises(InvalidCredentials) as wrong_password:
            authenticate_user(user_store, "alice01", "wrong-password")
        with pytest.raises(InvalidCredentials) as unknown_user:
            authenticate_user(user_store, "nobody99", "password123")
        assert wrong_password.value.message == unknown_user.value.message
        assert wrong_password.value.code == unknown_user.value.code
        assert wrong_password.value.status_code == unknown_user.value.status_code == 401

    def test_overlong_password_is_a_plain_mismatch(self, user_store):
        register_user(user_store, "alice01", "password123")
        with pytest.raises(InvalidCredentials):
            authenticate_user(user_store, "alice01", "x" * 200)

    def test_lookup_failure_is_internal_error(self, user_store, monkeypatch):
        monkeypatch.setattr(user_store, "get_by_username", _disk_error)
        with pytest.raises(InternalError):
            authenticate_user(user_store, "alice01", "password123")


class TestHashing:
    def test_hashes_are_salted(self):
        assert hash_password("password123") != hash_password("password123")

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("password123", "not-a-bcrypt-hash") is False
