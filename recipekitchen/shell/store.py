"""Entity Store - environment-scoped CRUD for users and recipes.

Backends implement the abstract methods. Owned mutations report "not found"
and "not owned" identically (None / False); telling them apart is the
Ownership Guard's job.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Optional

from ..core.cooking_log import sort_recipes
from ..core.models import Recipe, RecipeCreate, User
from .environment import EnvironmentPartition


RecipeTransform = Callable[[Recipe], Recipe]

# Fields a recipe update may never touch.
PROTECTED_RECIPE_FIELDS = frozenset({"id", "owner_id", "rating", "cooking_log", "created_at", "environment"})
PROTECTED_USER_FIELDS = frozenset({"id", "created_at", "environment"})


class RecipeStore(ABC):
    """Durable store for users and recipes within one environment partition."""

    def __init__(self, partition: EnvironmentPartition) -> None:
        self.partition = partition

    # ==================== User Operations ====================

    @abstractmethod
    def create_user(
        self,
        username: str,
        email: str,
        credential_hash: str,
        display_name: Optional[str] = None,
        bio: Optional[str] = None,
        api_key_hash: Optional[str] = None,
    ) -> User:
        """Create a user.

        Raises:
            DuplicateUsername: username already present in this environment
            DuplicateEmail: email already present in this environment
        """

    @abstractmethod
    def get_user(self, user_id: str) -> User | None:
        """Fetch a user by id."""

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None:
        """Fetch a user by exact, case-sensitive username."""

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None:
        """Fetch a user by exact email."""

    @abstractmethod
    def get_user_by_api_key_hash(self, api_key_hash: str) -> User | None:
        """Fetch the user holding an API key."""

    @abstractmethod
    def update_user(self, user_id: str, updates: dict[str, Any]) -> User | None:
        """Apply a partial update and refresh ``updated_at``.

        Raises:
            DuplicateUsername / DuplicateEmail: if a changed value is taken
        """

    @abstractmethod
    def delete_user(self, user_id: str) -> bool:
        """Delete a user and every recipe they own."""

    # ==================== Recipe Operations ====================

    @abstractmethod
    def get_recipe(self, recipe_id: str) -> Recipe | None:
        """Fetch a recipe by id. Reads are not owner-scoped."""

    @abstractmethod
    def create_recipe(self, fields: RecipeCreate, owner_id: str | None) -> Recipe:
        """Create a recipe with an empty log and rating 0.

        ``owner_id`` None creates a seed recipe.
        """

    @abstractmethod
    def delete_recipe(self, recipe_id: str, owner_id: str) -> bool:
        """Hard-delete an owned recipe. False if missing or not owned."""

    @abstractmethod
    def transform_recipe(self, recipe_id: str, owner_id: str, transform: RecipeTransform) -> Recipe | None:
        """Atomically read, transform and write back an owned recipe.

        The transform runs against a consistent snapshot; the write only
        lands if no other write hit the row in between (retried otherwise).
        Exceptions raised by ``transform`` abort without writing.

        Returns:
            The stored result, or None if missing or not owned
        """

    @abstractmethod
    def _query_recipes(self, owner_id: str | None) -> list[Recipe]:
        """Unordered recipes for an owner (None selects seed recipes)."""

    def list_recipes(self, owner_id: str | None = None) -> list[Recipe]:
        """List an owner's recipes, or seed recipes when no owner is given.

        Cooked recipes come first (newest session first), then uncooked
        recipes (newest first).
        """
        return sort_recipes(self._query_recipes(owner_id))

    def update_recipe(self, recipe_id: str, updates: dict[str, Any], owner_id: str) -> Recipe | None:
        """Apply a partial update to an owned recipe.

        Returns:
            Updated recipe, or None if missing or not owned
        """
        changes = {k: v for k, v in updates.items() if k not in PROTECTED_RECIPE_FIELDS}

        def _apply(recipe: Recipe) -> Recipe:
            return Recipe.model_validate({**recipe.model_dump(), **changes})

        return self.transform_recipe(recipe_id, owner_id, _apply)

    @staticmethod
    def _owns(data: dict[str, Any] | None, owner_id: str | None) -> bool:
        # Seed recipes (owner None) are never mutable through the owner path.
        return data is not None and owner_id is not None and data.get("owner_id") == owner_id
