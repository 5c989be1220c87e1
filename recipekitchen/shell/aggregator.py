"""Cooking Log Aggregator - keeps a recipe's log and rating consistent.

Both operations go through the store's atomic read-modify-write, so a
reader never sees a new log with a stale rating (or the reverse), and
concurrent additions never overwrite each other.
"""

import logging

from ..core.cooking_log import add_entry, remove_entry
from ..core.models import CookingLogEntry, Recipe
from .store import RecipeStore


logger = logging.getLogger(__name__)


class CookingLogAggregator:
    def __init__(self, store: RecipeStore) -> None:
        self._store = store

    def add_cooking_log(self, recipe_id: str, entry: CookingLogEntry, owner_id: str) -> Recipe | None:
        """Prepend a cooking session and recompute the rating.

        Returns:
            Updated recipe, or None if missing or not owned by ``owner_id``
        """
        recipe = self._store.transform_recipe(recipe_id, owner_id, lambda r: add_entry(r, entry))
        if recipe is not None:
            logger.info("Logged cooking session on %s, rating now %d", recipe_id[:8], recipe.rating)
        return recipe

    def remove_cooking_log(self, recipe_id: str, index: int, owner_id: str) -> Recipe | None:
        """Remove the session at ``index`` and recompute the rating.

        Returns:
            Updated recipe, or None if missing or not owned by ``owner_id``

        Raises:
            LogIndexError: index outside the current log
        """
        recipe = self._store.transform_recipe(recipe_id, owner_id, lambda r: remove_entry(r, index))
        if recipe is not None:
            logger.info("Removed cooking session %d from %s, rating now %d", index, recipe_id[:8], recipe.rating)
        return recipe
