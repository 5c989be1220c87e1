"""In-process Entity Store for local development and tests.

Rows carry a version stamp. ``transform_recipe`` computes against a
snapshot without holding the lock and commits with compare-and-set,
retrying on conflict.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.errors import ConcurrentUpdateError, duplicate_error
from ..core.models import Recipe, RecipeCreate, User, utcnow
from .environment import EnvironmentPartition
from .store import PROTECTED_USER_FIELDS, RecipeStore, RecipeTransform


logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5


@dataclass
class _Row:
    version: int
    data: dict[str, Any]


@dataclass
class InMemoryDatabase:
    """Physical tables shared by every partition, keyed by ``{env}:{id}``."""

    users: dict[str, _Row] = field(default_factory=dict)
    recipes: dict[str, _Row] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)


class InMemoryRecipeStore(RecipeStore):
    """Entity Store backed by process memory."""

    def __init__(
        self,
        partition: EnvironmentPartition,
        database: InMemoryDatabase | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        """Initialize the store.

        Args:
            partition: Environment this store reads and writes
            database: Shared tables (a fresh one if omitted)
            max_attempts: Compare-and-set attempts before giving up
        """
        super().__init__(partition)
        self.database = database or InMemoryDatabase()
        self.max_attempts = max_attempts

    # ==================== Helpers ====================

    def _rows(self, table: dict[str, _Row]) -> list[dict[str, Any]]:
        """Snapshot every row of a table in this partition. Caller holds the lock."""
        return [row.data for row in table.values() if self.partition.contains(row.data)]

    def _find_user(self, field_name: str, value: str) -> User | None:
        with self.database.lock:
            for data in self._rows(self.database.users):
                if data.get(field_name) == value:
                    return User(**data)
        return None

    def _collisions(self, username: str | None, email: str | None, exclude_id: str | None = None) -> list[str]:
        """Fields already taken by another user. Caller holds the lock."""
        fields: list[str] = []
        rows = [d for d in self._rows(self.database.users) if d["id"] != exclude_id]
        if username is not None and any(d["username"] == username for d in rows):
            fields.append("username")
        if email is not None and any(d["email"] == email for d in rows):
            fields.append("email")
        return fields

    # ==================== User Operations ====================

    def create_user(
        self,
        username: str,
        email: str,
        credential_hash: str,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
        api_key_hash: Optional[str] = None,
    ) -> User:
        user = User(
            username=username,
            email=email,
            credential_hash=credential_hash,
            api_key_hash=api_key_hash,
            display_name=display_name,
            bio=bio,
            environment=self.partition.environment,
        )
        with self.database.lock:
            collisions = self._collisions(username, email)
            if collisions:
                logger.warning("Rejected user creation, duplicate %s", ", ".join(collisions))
                raise duplicate_error(collisions)
            self.database.users[self.partition.key(user.id)] = _Row(1, self.partition.stamp(user.model_dump()))

        logger.info("Created user: %s", user.id[:8])
        return user

    def get_user(self, user_id: str) -> User | None:
        with self.database.lock:
            row = self.database.users.get(self.partition.key(user_id))
            if row is None or not self.partition.contains(row.data):
                return None
            return User(**row.data)

    def get_user_by_username(self, username: str) -> User | None:
        return self._find_user("username", username)

    def get_user_by_email(self, email: str) -> User | None:
        return self._find_user("email", email)

    def get_user_by_api_key_hash(self, api_key_hash: str) -> User | None:
        return self._find_user("api_key_hash", api_key_hash)

    def update_user(self, user_id: str, updates: dict[str, Any]) -> User | None:
        changes = {k: v for k, v in updates.items() if k not in PROTECTED_USER_FIELDS}
        key = self.partition.key(user_id)

        with self.database.lock:
            row = self.database.users.get(key)
            if row is None or not self.partition.contains(row.data):
                return None

            new_username = changes.get("username")
            new_email = changes.get("email")
            collisions = self._collisions(
                new_username if new_username != row.data["username"] else None,
                new_email if new_email != row.data["email"] else None,
                exclude_id=user_id,
            )
            if collisions:
                logger.warning("Rejected update for %s, duplicate %s", user_id[:8], ", ".join(collisions))
                raise duplicate_error(collisions)

            user = User.model_validate({**row.data, **changes, "updated_at": utcnow()})
            self.database.users[key] = _Row(row.version + 1, self.partition.stamp(user.model_dump()))

        logger.info("Updated user: %s", user_id[:8])
        return user

    def delete_user(self, user_id: str) -> bool:
        key = self.partition.key(user_id)
        with self.database.lock:
            row = self.database.users.get(key)
            if row is None or not self.partition.contains(row.data):
                return False
            del self.database.users[key]
            owned = [
                k for k, r in self.database.recipes.items()
                if self.partition.contains(r.data) and r.data.get("owner_id") == user_id
            ]
            for k in owned:
                del self.database.recipes[k]

        logger.info("Deleted user %s and %d recipes", user_id[:8], len(owned))
        return True

    # ==================== Recipe Operations ====================

    def get_recipe(self, recipe_id: str) -> Recipe | None:
        with self.database.lock:
            row = self.database.recipes.get(self.partition.key(recipe_id))
            if row is None or not self.partition.contains(row.data):
                return None
            return Recipe(**row.data)

    def _query_recipes(self, owner_id: str | None) -> list[Recipe]:
        with self.database.lock:
            return [
                Recipe(**data)
                for data in self._rows(self.database.recipes)
                if data.get("owner_id") == owner_id
            ]

    def create_recipe(self, fields: RecipeCreate, owner_id: str | None) -> Recipe:
        recipe = Recipe(
            **fields.model_dump(),
            owner_id=owner_id,
            rating=0,
            cooking_log=[],
            environment=self.partition.environment,
        )
        with self.database.lock:
            self.database.recipes[self.partition.key(recipe.id)] = _Row(1, self.partition.stamp(recipe.model_dump()))

        logger.info("Created recipe %s for %s", recipe.id[:8], (owner_id or "seed")[:8])
        return recipe

    def delete_recipe(self, recipe_id: str, owner_id: str) -> bool:
        key = self.partition.key(recipe_id)
        with self.database.lock:
            row = self.database.recipes.get(key)
            if not self.partition.contains(row.data if row else None) or not self._owns(row.data, owner_id):
                return False
            del self.database.recipes[key]

        logger.info("Deleted recipe: %s", recipe_id[:8])
        return True

    def transform_recipe(self, recipe_id: str, owner_id: str, transform: RecipeTransform) -> Recipe | None:
        key = self.partition.key(recipe_id)

        for attempt in range(1, self.max_attempts + 1):
            with self.database.lock:
                row = self.database.recipes.get(key)
                if row is None or not self.partition.contains(row.data) or not self._owns(row.data, owner_id):
                    return None
                version = row.version
                snapshot = Recipe(**row.data)

            updated = transform(snapshot)

            with self.database.lock:
                current = self.database.recipes.get(key)
                if current is not None and current.version == version:
                    self.database.recipes[key] = _Row(version + 1, self.partition.stamp(updated.model_dump()))
                    logger.debug("Committed recipe %s at version %d", recipe_id[:8], version + 1)
                    return updated

            logger.warning(
                "Write conflict on recipe %s (attempt %d/%d)", recipe_id[:8], attempt, self.max_attempts
            )

        raise ConcurrentUpdateError(f"Recipe {recipe_id} changed during {self.max_attempts} attempts")
