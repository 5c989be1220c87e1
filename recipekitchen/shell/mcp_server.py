"""MCP Server - Tool definitions for Claude integration.

Defines the MCP tools Claude can invoke to browse recipes and record
cooking sessions. Authentication happens in the HTTP middleware, which
stores the caller's user id in ``current_user_id`` for the request.
"""

import logging
from contextvars import ContextVar

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from ..core.errors import RecipeKitchenError
from ..core.models import Recipe
from .service import RecipeService


logger = logging.getLogger(__name__)

# Context variable to store current user_id per request
current_user_id: ContextVar[str | None] = ContextVar("current_user_id", default=None)

INSTRUCTIONS = """Recipe Kitchen - Personal recipe catalog and cooking journal.

Use these tools to browse the user's recipes and record cooking sessions.
Ratings are derived from the cooking log: add a session with a 1-5 rating
and the recipe's rating is recalculated automatically.
The cooking log is newest first; index 0 is the most recent session."""


def _summary(recipe: Recipe) -> dict:
    return {
        "id": recipe.id,
        "name": recipe.name,
        "hero_ingredient": recipe.hero_ingredient,
        "cook_time_minutes": recipe.cook_time_minutes,
        "servings": recipe.servings,
        "rating": recipe.rating,
        "times_cooked": len(recipe.cooking_log),
    }


def build_mcp(service: RecipeService, allowed_hosts: list[str] | None = None) -> FastMCP:
    """Create the MCP server with tools bound to ``service``.

    Args:
        service: Recipe service shared with the HTTP routes
        allowed_hosts: Host headers accepted by DNS rebinding protection

    Returns:
        Configured FastMCP instance
    """
    transport_security = TransportSecuritySettings(
        enable_dns_rebinding_protection=True,
        allowed_hosts=allowed_hosts or ["localhost:*", "127.0.0.1:*", "*.run.app:*", "*.run.app"],
    )

    # Stateless HTTP for cloud deployments
    mcp = FastMCP(
        "recipekitchen",
        instructions=INSTRUCTIONS,
        stateless_http=True,
        transport_security=transport_security,
    )

    # ==================== Recipe Tools ====================

    @mcp.tool()
    def list_my_recipes() -> dict:
        """List the user's recipes, most recently cooked first.

        Returns:
            Dictionary with recipe summaries (id, name, rating, times cooked)
        """
        user_id = current_user_id.get()
        if user_id is None:
            return {"error": "No authenticated user. Ensure API key is provided."}
        return {"recipes": [_summary(r) for r in service.list_recipes(user_id)]}

    @mcp.tool()
    def get_recipe(recipe_id: str) -> dict:
        """Get a recipe with its ingredients, instructions and cooking log.

        Args:
            recipe_id: The recipe ID

        Returns:
            Full recipe, or an error message
        """
        try:
            return service.get_recipe(recipe_id).to_public()
        except RecipeKitchenError as e:
            return e.to_dict()

    # ==================== Cooking Log Tools ====================

    @mcp.tool()
    def log_cooking_session(recipe_id: str, notes: str, rating: int, timestamp: str | None = None) -> dict:
        """Record that the user cooked one of their recipes.

        Args:
            recipe_id: The recipe ID
            notes: How it went (e.g., "Added extra garlic, family loved it")
            rating: 1-5 rating for this session
            timestamp: Optional ISO timestamp (defaults to now)

        Returns:
            Updated recipe summary with the recalculated rating
        """
        payload: dict = {"notes": notes, "rating": rating}
        if timestamp:
            payload["timestamp"] = timestamp
        try:
            recipe = service.add_cooking_log(current_user_id.get(), recipe_id, payload)
        except RecipeKitchenError as e:
            logger.warning("log_cooking_session failed: %s", e.kind.value)
            return e.to_dict()
        return _summary(recipe)

    @mcp.tool()
    def remove_cooking_session(recipe_id: str, index: int) -> dict:
        """Remove a cooking session from a recipe's log.

        Args:
            recipe_id: The recipe ID
            index: Position in the log (0 is the most recent session)

        Returns:
            Updated recipe summary with the recalculated rating
        """
        try:
            recipe = service.remove_cooking_log(current_user_id.get(), recipe_id, index)
        except RecipeKitchenError as e:
            logger.warning("remove_cooking_session failed: %s", e.kind.value)
            return e.to_dict()
        return _summary(recipe)

    return mcp
