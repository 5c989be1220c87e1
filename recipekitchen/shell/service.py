"""Recipe Service - the operations callers (HTTP routes, MCP tools) invoke.

Every recipe mutation passes the Ownership Guard before reaching the store.
Payloads are validated into request models before any store call, so a
rejected request never leaves partial state.
"""

import logging
from collections.abc import Mapping
from typing import Any

from ..core.errors import NotFound
from ..core.models import (
    Account,
    CookingLogInput,
    LoginRequest,
    PasswordChange,
    Recipe,
    RecipeCreate,
    RecipeUpdate,
    UserCreate,
    UserProfile,
    UserUpdate,
)
from ..core.seed import SEED_RECIPES
from ..core.validation import parse_log_index, parse_request
from .aggregator import CookingLogAggregator
from .auth import AuthClient
from .guard import OwnershipGuard
from .store import RecipeStore


logger = logging.getLogger(__name__)

NULLABLE_RECIPE_FIELDS = frozenset({"photo_ref"})
NULLABLE_USER_FIELDS = frozenset({"display_name", "bio"})


class RecipeService:
    """Caller-facing recipe and user operations.

    Built once at process start and handed to every route and tool.
    """

    def __init__(self, store: RecipeStore, auth: AuthClient | None = None) -> None:
        """Initialize the service.

        Args:
            store: Entity store for the process environment
            auth: Auth client (built over ``store`` if omitted)
        """
        self.store = store
        self.auth = auth or AuthClient(store)
        self.guard = OwnershipGuard(store)
        self.cooking_log = CookingLogAggregator(store)

    # ==================== Public Reads ====================

    def list_recipes(self, owner_id: str | None = None) -> list[Recipe]:
        return self.store.list_recipes(owner_id)

    def list_user_recipes(self, username: str) -> list[Recipe]:
        user = self.store.get_user_by_username(username)
        if user is None:
            raise NotFound("User not found")
        return self.store.list_recipes(user.id)

    def get_recipe(self, recipe_id: str) -> Recipe:
        recipe = self.store.get_recipe(recipe_id)
        if recipe is None:
            raise NotFound("Recipe not found")
        return recipe

    def get_profile(self, username: str) -> UserProfile:
        user = self.store.get_user_by_username(username)
        if user is None:
            raise NotFound("User not found")
        return user.to_profile()

    # ==================== Recipe Mutations ====================

    def create_recipe(self, actor_id: str | None, payload: Mapping[str, Any]) -> Recipe:
        owner_id = self.guard.require_authenticated(actor_id)
        fields = parse_request(RecipeCreate, payload, "Invalid recipe data")
        return self.store.create_recipe(fields, owner_id)

    def update_recipe(self, actor_id: str | None, recipe_id: str, payload: Mapping[str, Any]) -> Recipe:
        self.guard.require_owner(actor_id, recipe_id)
        updates = parse_request(RecipeUpdate, payload, "Invalid update data")

        # Only photo_ref may be cleared; null for any other field means "unchanged".
        changes = {
            k: v for k, v in updates.model_dump(exclude_unset=True).items()
            if v is not None or k in NULLABLE_RECIPE_FIELDS
        }
        recipe = self.store.update_recipe(recipe_id, changes, actor_id)
        if recipe is None:
            # Deleted between the guard check and the write.
            raise NotFound("Recipe not found")
        return recipe

    def delete_recipe(self, actor_id: str | None, recipe_id: str) -> bool:
        self.guard.require_owner(actor_id, recipe_id)
        if not self.store.delete_recipe(recipe_id, actor_id):
            raise NotFound("Recipe not found")
        return True

    def add_cooking_log(self, actor_id: str | None, recipe_id: str, payload: Mapping[str, Any]) -> Recipe:
        self.guard.require_owner(actor_id, recipe_id)
        entry = parse_request(
            CookingLogInput, payload, "Timestamp/date, notes, and rating are required"
        ).to_entry()

        recipe = self.cooking_log.add_cooking_log(recipe_id, entry, actor_id)
        if recipe is None:
            raise NotFound("Recipe not found")
        return recipe

    def remove_cooking_log(self, actor_id: str | None, recipe_id: str, index: Any) -> Recipe:
        self.guard.require_owner(actor_id, recipe_id)
        log_index = parse_log_index(index)

        recipe = self.cooking_log.remove_cooking_log(recipe_id, log_index, actor_id)
        if recipe is None:
            raise NotFound("Recipe not found")
        return recipe

    # ==================== Users ====================

    def register(self, payload: Mapping[str, Any]) -> tuple[str, Account]:
        """Create a user.

        Returns:
            Tuple of (api_key, account) - the key is shown only once
        """
        request = parse_request(UserCreate, payload)
        api_key, user = self.auth.register_user(request)
        return api_key, user.to_account()

    def login(self, payload: Mapping[str, Any]) -> tuple[str, Account]:
        request = parse_request(LoginRequest, payload)
        api_key, user = self.auth.login(request.username, request.password)
        return api_key, user.to_account()

    def resolve_actor(self, api_key: str | None) -> str | None:
        return self.auth.validate_api_key(api_key)

    def get_account(self, actor_id: str | None) -> Account:
        user_id = self.guard.require_authenticated(actor_id)
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        return user.to_account()

    def update_user(self, actor_id: str | None, payload: Mapping[str, Any]) -> Account:
        user_id = self.guard.require_authenticated(actor_id)
        updates = parse_request(UserUpdate, payload, "Invalid user data")

        changes = {
            k: v for k, v in updates.model_dump(exclude_unset=True).items()
            if v is not None or k in NULLABLE_USER_FIELDS
        }
        if "email" in changes:
            changes["email"] = str(changes["email"])

        user = self.store.update_user(user_id, changes)
        if user is None:
            raise NotFound("User not found")
        return user.to_account()

    def change_password(self, actor_id: str | None, payload: Mapping[str, Any]) -> bool:
        user_id = self.guard.require_authenticated(actor_id)
        request = parse_request(PasswordChange, payload, "Current password and new password are required")
        return self.auth.change_password(user_id, request.current_password, request.new_password)

    def delete_account(self, actor_id: str | None) -> bool:
        user_id = self.guard.require_authenticated(actor_id)
        if not self.store.delete_user(user_id):
            raise NotFound("User not found")
        return True

    # ==================== Seeding ====================

    def load_seed_recipes(self) -> int:
        """Create the built-in seed recipes if this environment has none.

        Returns:
            Number of recipes created
        """
        if self.store.list_recipes():
            logger.debug("Seed recipes already present")
            return 0
        for fields in SEED_RECIPES:
            self.store.create_recipe(fields, owner_id=None)
        logger.info("Loaded %d seed recipes", len(SEED_RECIPES))
        return len(SEED_RECIPES)
