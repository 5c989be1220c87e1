"""Cooking Log Math - Pure functions for log mutation, rating and ordering.

All functions are pure: same input always produces same output, no side effects.
Recipes are never mutated in place; every function returns a new copy.
"""

from datetime import datetime

from .errors import LogIndexError
from .models import CookingLogEntry, Recipe


def calculate_rating(entries: list[CookingLogEntry]) -> int:
    """Calculate the derived rating for a cooking log.

    Mean of all entry ratings rounded half-up, computed in integer
    arithmetic so 4.5 always rounds to 5.

    Args:
        entries: Cooking log entries (any order)

    Returns:
        0 for an empty log, otherwise an integer in [1, 5]
    """
    if not entries:
        return 0
    total = sum(e.rating for e in entries)
    count = len(entries)
    # floor(total / count + 1/2)
    return (2 * total + count) // (2 * count)


def add_entry(recipe: Recipe, entry: CookingLogEntry) -> Recipe:
    """Prepend an entry and recompute the rating.

    Args:
        recipe: Current recipe state
        entry: New cooking session

    Returns:
        Recipe copy with ``entry`` at index 0 and a consistent rating
    """
    log = [entry, *recipe.cooking_log]
    return recipe.model_copy(update={"cooking_log": log, "rating": calculate_rating(log)})


def remove_entry(recipe: Recipe, index: int) -> Recipe:
    """Remove the entry at ``index`` and recompute the rating.

    Args:
        recipe: Current recipe state
        index: Position in the newest-first log

    Returns:
        Recipe copy without the entry; later entries shift left by one

    Raises:
        LogIndexError: If index is outside [0, len(cooking_log))
    """
    if not 0 <= index < len(recipe.cooking_log):
        raise LogIndexError(f"Log index {index} out of range for {len(recipe.cooking_log)} entries")
    log = recipe.cooking_log[:index] + recipe.cooking_log[index + 1:]
    return recipe.model_copy(update={"cooking_log": log, "rating": calculate_rating(log)})


def latest_cooked_at(recipe: Recipe) -> datetime | None:
    """Timestamp of the most recently added log entry, if any."""
    if not recipe.cooking_log:
        return None
    return recipe.cooking_log[0].timestamp


def sort_recipes(recipes: list[Recipe]) -> list[Recipe]:
    """Order recipes by cooking activity.

    Recipes that have been cooked come first, newest session first. Recipes
    never cooked follow, newest created first. The two groups never mix.
    """
    cooked = [r for r in recipes if r.cooking_log]
    uncooked = [r for r in recipes if not r.cooking_log]

    cooked.sort(key=lambda r: r.cooking_log[0].timestamp, reverse=True)
    uncooked.sort(key=lambda r: r.created_at, reverse=True)
    return cooked + uncooked
