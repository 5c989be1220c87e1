"""Authentication - credential hashing, API keys and identity resolution.

Handles password hashing, API key creation and validation. Never stores
plaintext passwords or keys.
"""

import hashlib
import logging
import secrets

import bcrypt

from ..core.errors import Forbidden, NotFound, Unauthenticated
from ..core.models import User, UserCreate
from .store import RecipeStore


logger = logging.getLogger(__name__)

# API key prefix for identification
API_KEY_PREFIX = "rk_"

# bcrypt work factor
BCRYPT_ROUNDS = 12


def generate_api_key() -> str:
    """Generate a cryptographically secure API key.

    Returns:
        API key in format: rk_<random_chars>
    """
    random_part = secrets.token_urlsafe(32)
    return f"{API_KEY_PREFIX}{random_part}"


def hash_api_key(api_key: str) -> str:
    """Hash an API key for storage and lookup.

    Args:
        api_key: The plaintext API key

    Returns:
        64-character SHA256 hex digest
    """
    return hashlib.sha256(api_key.encode()).hexdigest()


def validate_api_key_format(api_key: str | None) -> bool:
    """Check if API key has valid format.

    Args:
        api_key: The API key to validate

    Returns:
        True if format is valid
    """
    if not api_key:
        return False
    if not api_key.startswith(API_KEY_PREFIX):
        return False
    if len(api_key) < 40:  # prefix + at least some random chars
        return False
    return True


def hash_password(password: str) -> str:
    """Hash a password with bcrypt and a random salt.

    Returns:
        bcrypt hash string (``$2b$...``)
    """
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(candidate: str, stored: str) -> bool:
    """Check a candidate password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(candidate.encode(), stored.encode())
    except ValueError:
        # Malformed hash, or a candidate over bcrypt's 72-byte input limit.
        logger.warning("Password check rejected")
        return False


class AuthClient:
    """Client for registration, login and API key validation.

    Each user holds one active API key; logging in issues a fresh key and
    invalidates the previous one.
    """

    def __init__(self, store: RecipeStore) -> None:
        """Initialize auth client.

        Args:
            store: Entity store holding user records
        """
        self._store = store

    def register_user(self, request: UserCreate) -> tuple[str, User]:
        """Register a new user and generate their API key.

        Args:
            request: Validated registration request

        Returns:
            Tuple of (api_key, user) - api_key is only returned once!

        Raises:
            DuplicateUsername / DuplicateEmail: if either is already registered
        """
        logger.info("Registering new user: %s", request.username)

        api_key = generate_api_key()
        user = self._store.create_user(
            username=request.username,
            email=str(request.email),
            credential_hash=hash_password(request.password),
            display_name=request.display_name,
            api_key_hash=hash_api_key(api_key),
        )

        logger.info("User registered successfully: %s", user.id[:8])
        return api_key, user

    def login(self, username: str, password: str) -> tuple[str, User]:
        """Verify credentials and issue a new API key.

        Raises:
            Unauthenticated: for an unknown user or a wrong password alike
        """
        user = self._store.get_user_by_username(username)
        if user is None or not verify_password(password, user.credential_hash):
            logger.warning("Failed login attempt")
            raise Unauthenticated("Invalid credentials")

        api_key = generate_api_key()
        updated = self._store.update_user(user.id, {"api_key_hash": hash_api_key(api_key)})
        if updated is None:
            raise Unauthenticated("Invalid credentials")

        logger.info("User logged in: %s", user.id[:8])
        return api_key, updated

    def validate_api_key(self, api_key: str | None) -> str | None:
        """Validate an API key and return the user_id if valid.

        Args:
            api_key: The API key to validate

        Returns:
            user_id if valid, None if invalid
        """
        if not validate_api_key_format(api_key):
            logger.debug("Invalid API key format")
            return None

        user = self._store.get_user_by_api_key_hash(hash_api_key(api_key))
        if user is None:
            logger.warning("API key not found in database")
            return None

        logger.debug("API key validated for user: %s", user.id[:8])
        return user.id

    def change_password(self, user_id: str, current_password: str, new_password: str) -> bool:
        """Replace a user's password after verifying the current one.

        Raises:
            NotFound: user does not exist
            Forbidden: current password is wrong
        """
        user = self._store.get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        if not verify_password(current_password, user.credential_hash):
            logger.warning("Password change rejected for user: %s", user_id[:8])
            raise Forbidden("Current password is incorrect")

        self._store.update_user(user_id, {"credential_hash": hash_password(new_password)})
        logger.info("Password changed for user: %s", user_id[:8])
        return True
