"""Ownership Guard - authorization in front of every recipe mutation.

The check order is fixed: authentication, then existence, then ownership.
An authenticated non-owner therefore learns that a recipe exists (Forbidden)
while a missing id reports NotFound.
"""

import logging

from ..core.errors import Forbidden, NotFound, Unauthenticated
from ..core.models import Recipe
from .store import RecipeStore


logger = logging.getLogger(__name__)


class OwnershipGuard:
    """Discriminates unauthenticated, missing and not-owned recipe access."""

    def __init__(self, store: RecipeStore) -> None:
        self._store = store

    def require_authenticated(self, actor_id: str | None) -> str:
        """Return the actor id or raise Unauthenticated."""
        if not actor_id:
            raise Unauthenticated()
        return actor_id

    def require_owner(self, actor_id: str | None, recipe_id: str) -> Recipe:
        """Authorize a mutation of ``recipe_id`` by ``actor_id``.

        Returns:
            The recipe as read during the check

        Raises:
            Unauthenticated: no actor
            NotFound: no such recipe in this environment
            Forbidden: recipe belongs to someone else (or is a seed recipe)
        """
        actor_id = self.require_authenticated(actor_id)

        recipe = self._store.get_recipe(recipe_id)
        if recipe is None:
            raise NotFound("Recipe not found")

        if recipe.owner_id != actor_id:
            logger.warning("User %s denied access to recipe %s", actor_id[:8], recipe_id[:8])
            raise Forbidden()

        return recipe
