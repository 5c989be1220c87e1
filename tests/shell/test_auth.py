"""Unit tests for auth module - key/password helpers and AuthClient."""

import bcrypt
import pytest

from recipekitchen.core.errors import DuplicateUsername, Forbidden, NotFound, Unauthenticated
from recipekitchen.core.models import UserCreate
from recipekitchen.shell.auth import (
    API_KEY_PREFIX,
    AuthClient,
    generate_api_key,
    hash_api_key,
    hash_password,
    validate_api_key_format,
    verify_password,
)


class TestGenerateApiKey:
    """Tests for generate_api_key."""

    def test_starts_with_prefix(self):
        """Generated key starts with rk_ prefix."""
        key = generate_api_key()
        assert key.startswith(API_KEY_PREFIX)

    def test_sufficient_length(self):
        """Generated key has sufficient length for security."""
        key = generate_api_key()
        # prefix (3) + base64 encoded 32 bytes (~43 chars)
        assert len(key) >= 40

    def test_unique_keys(self):
        """Each generated key is unique."""
        keys = [generate_api_key() for _ in range(100)]
        assert len(set(keys)) == 100


class TestHashApiKey:
    """Tests for hash_api_key."""

    def test_returns_64_char_hash(self):
        """Hash is a full SHA256 hex digest."""
        hashed = hash_api_key("rk_test_key_12345678901234567890")
        assert len(hashed) == 64

    def test_deterministic(self):
        """Same key always produces same hash."""
        key = "rk_test_key_12345678901234567890"
        assert hash_api_key(key) == hash_api_key(key)

    def test_different_keys_different_hashes(self):
        key1 = "rk_key1_1234567890123456789012345"
        key2 = "rk_key2_1234567890123456789012345"
        assert hash_api_key(key1) != hash_api_key(key2)

    def test_hash_is_hex(self):
        hashed = hash_api_key("rk_test_key_12345678901234567890")
        assert all(c in "0123456789abcdef" for c in hashed)


class TestValidateApiKeyFormat:
    """Tests for validate_api_key_format."""

    def test_valid_key(self):
        assert validate_api_key_format(generate_api_key()) is True

    def test_none(self):
        assert validate_api_key_format(None) is False

    def test_empty(self):
        assert validate_api_key_format("") is False

    def test_wrong_prefix(self):
        """Keys from other services are rejected."""
        assert validate_api_key_format("flr_" + "x" * 43) is False

    def test_too_short(self):
        assert validate_api_key_format("rk_short") is False


class TestPasswordHashing:
    """Tests for hash_password / verify_password."""

    def test_roundtrip(self):
        stored = hash_password("correct horse")
        assert verify_password("correct horse", stored) is True

    def test_wrong_password(self):
        stored = hash_password("correct horse")
        assert verify_password("battery staple", stored) is False

    def test_salted(self):
        """The same password hashes differently each time."""
        assert hash_password("password123") != hash_password("password123")

    def test_never_contains_plaintext(self):
        assert "password123" not in hash_password("password123")

    def test_bcrypt_format(self):
        """Stored hashes are standard bcrypt strings."""
        stored = hash_password("password123")
        assert stored.startswith("$2b$")
        assert bcrypt.checkpw(b"password123", stored.encode())

    def test_verifies_hash_made_elsewhere(self):
        stored = bcrypt.hashpw(b"password123", bcrypt.gensalt(rounds=4)).decode()
        assert verify_password("password123", stored) is True

    def test_malformed_hash(self):
        assert verify_password("anything", "not-a-hash") is False

    def test_overlong_candidate(self):
        """A candidate past bcrypt's input limit is a failed match, not an error."""
        stored = hash_password("password123")
        assert verify_password("x" * 100, stored) is False


@pytest.fixture
def auth(store):
    return AuthClient(store)


def registration(**overrides) -> UserCreate:
    data = {"username": "chef", "email": "chef@example.com", "password": "password123"}
    data.update(overrides)
    return UserCreate(**data)


class TestAuthClient:
    """Tests for AuthClient over the in-memory store."""

    def test_register_returns_working_key(self, auth):
        """The key returned at registration resolves to the new user."""
        api_key, user = auth.register_user(registration())

        assert api_key.startswith(API_KEY_PREFIX)
        assert auth.validate_api_key(api_key) == user.id

    def test_register_stores_hashes_only(self, auth, store):
        api_key, user = auth.register_user(registration())
        stored = store.get_user(user.id)

        assert stored.api_key_hash == hash_api_key(api_key)
        assert stored.credential_hash != "password123"

    def test_register_duplicate_username(self, auth):
        auth.register_user(registration())
        with pytest.raises(DuplicateUsername):
            auth.register_user(registration(email="other@example.com"))

    def test_unknown_key(self, auth):
        assert auth.validate_api_key(generate_api_key()) is None

    def test_malformed_key(self, auth):
        assert auth.validate_api_key("garbage") is None

    def test_login_rotates_key(self, auth):
        """Logging in issues a new key and revokes the old one."""
        old_key, user = auth.register_user(registration())

        new_key, logged_in = auth.login("chef", "password123")

        assert logged_in.id == user.id
        assert new_key != old_key
        assert auth.validate_api_key(new_key) == user.id
        assert auth.validate_api_key(old_key) is None

    def test_login_wrong_password(self, auth):
        auth.register_user(registration())
        with pytest.raises(Unauthenticated):
            auth.login("chef", "wrong-password")

    def test_login_unknown_user(self, auth):
        """Unknown users get the same error as wrong passwords."""
        with pytest.raises(Unauthenticated) as exc_info:
            auth.login("nobody", "password123")
        assert exc_info.value.message == "Invalid credentials"

    def test_change_password(self, auth):
        _, user = auth.register_user(registration())

        assert auth.change_password(user.id, "password123", "new-password") is True

        auth.login("chef", "new-password")
        with pytest.raises(Unauthenticated):
            auth.login("chef", "password123")

    def test_change_password_wrong_current(self, auth):
        _, user = auth.register_user(registration())
        with pytest.raises(Forbidden):
            auth.change_password(user.id, "not-it", "new-password")

    def test_change_password_unknown_user(self, auth):
        with pytest.raises(NotFound):
            auth.change_password("missing", "password123", "new-password")
