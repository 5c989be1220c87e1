"""Recipe Kitchen API - Entry point.

Runs the JSON API and the MCP server with HTTP transport.
Uses Starlette with the MCP HTTP app mounted at root.
"""

import functools
import logging
import os
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

import uvicorn
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Mount, Route

from .core.errors import ErrorKind, RecipeKitchenError, RecipeValidationError
from .core.models import Recipe
from .shell.config import Settings, build_store
from .shell.mcp_server import build_mcp, current_user_id
from .shell.service import RecipeService


logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INDEX: 400,
    ErrorKind.INTERNAL: 500,
}

Endpoint = Callable[[Request], Awaitable[Response]]


def error_response(error: RecipeKitchenError) -> JSONResponse:
    return JSONResponse(error.to_dict(), status_code=STATUS_BY_KIND[error.kind])


def api_endpoint(action: str) -> Callable[[Endpoint], Endpoint]:
    """Map core errors to status codes; log anything unexpected as a 500."""

    def decorator(handler: Endpoint) -> Endpoint:
        @functools.wraps(handler)
        async def wrapper(request: Request) -> Response:
            try:
                return await handler(request)
            except RecipeKitchenError as e:
                if e.kind is ErrorKind.INTERNAL:
                    logger.error("Failed to %s: %s", action, e.message)
                return error_response(e)
            except Exception as e:
                logger.error("Failed to %s: %s", action, str(e))
                return JSONResponse({"error": f"Failed to {action}"}, status_code=500)

        return wrapper

    return decorator


def get_service(request: Request) -> RecipeService:
    return request.app.state.service


async def read_json(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError as e:
        raise RecipeValidationError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise RecipeValidationError("Request body must be a JSON object")
    return body


def recipe_list(recipes: list[Recipe]) -> JSONResponse:
    return JSONResponse([r.to_public() for r in recipes])


# ==================== Route Handlers ====================


async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse({"status": "healthy", "service": "recipekitchen"})


@api_endpoint("register")
async def register_user(request: Request) -> JSONResponse:
    """Register a new user and return their API key."""
    body = await read_json(request)
    api_key, account = await run_in_threadpool(get_service(request).register, body)
    return JSONResponse(
        {
            "api_key": api_key,
            "user": account.model_dump(mode="json"),
            "message": "Registration successful! Save your API key - it won't be shown again.",
        },
        status_code=201,
    )


@api_endpoint("log in")
async def login(request: Request) -> JSONResponse:
    """Exchange username and password for a fresh API key."""
    body = await read_json(request)
    api_key, account = await run_in_threadpool(get_service(request).login, body)
    return JSONResponse({"api_key": api_key, "user": account.model_dump(mode="json")})


@api_endpoint("fetch user")
async def get_current_user(request: Request) -> JSONResponse:
    account = await run_in_threadpool(get_service(request).get_account, current_user_id.get())
    return JSONResponse(account.model_dump(mode="json"))


@api_endpoint("update user")
async def update_current_user(request: Request) -> JSONResponse:
    actor_id = current_user_id.get()
    body = await read_json(request)
    account = await run_in_threadpool(get_service(request).update_user, actor_id, body)
    return JSONResponse(account.model_dump(mode="json"))


@api_endpoint("delete user")
async def delete_current_user(request: Request) -> Response:
    await run_in_threadpool(get_service(request).delete_account, current_user_id.get())
    return Response(status_code=204)


@api_endpoint("update password")
async def change_password(request: Request) -> JSONResponse:
    actor_id = current_user_id.get()
    body = await read_json(request)
    await run_in_threadpool(get_service(request).change_password, actor_id, body)
    return JSONResponse({"success": True})


@api_endpoint("fetch user")
async def get_user_profile(request: Request) -> JSONResponse:
    profile = await run_in_threadpool(get_service(request).get_profile, request.path_params["username"])
    return JSONResponse(profile.model_dump(mode="json"))


@api_endpoint("fetch recipes")
async def list_user_recipes(request: Request) -> JSONResponse:
    recipes = await run_in_threadpool(get_service(request).list_user_recipes, request.path_params["username"])
    return recipe_list(recipes)


@api_endpoint("fetch recipes")
async def list_recipes(request: Request) -> JSONResponse:
    """Public listing of seed recipes."""
    recipes = await run_in_threadpool(get_service(request).list_recipes)
    return recipe_list(recipes)


@api_endpoint("fetch recipe")
async def get_recipe(request: Request) -> JSONResponse:
    recipe = await run_in_threadpool(get_service(request).get_recipe, request.path_params["recipe_id"])
    return JSONResponse(recipe.to_public())


@api_endpoint("create recipe")
async def create_recipe(request: Request) -> JSONResponse:
    actor_id = current_user_id.get()
    body = await read_json(request)
    recipe = await run_in_threadpool(get_service(request).create_recipe, actor_id, body)
    return JSONResponse(recipe.to_public(), status_code=201)


@api_endpoint("update recipe")
async def update_recipe(request: Request) -> JSONResponse:
    actor_id = current_user_id.get()
    body = await read_json(request)
    recipe = await run_in_threadpool(
        get_service(request).update_recipe, actor_id, request.path_params["recipe_id"], body
    )
    return JSONResponse(recipe.to_public())


@api_endpoint("delete recipe")
async def delete_recipe(request: Request) -> Response:
    await run_in_threadpool(
        get_service(request).delete_recipe, current_user_id.get(), request.path_params["recipe_id"]
    )
    return Response(status_code=204)


@api_endpoint("add cooking log")
async def add_cooking_log(request: Request) -> JSONResponse:
    actor_id = current_user_id.get()
    body = await read_json(request)
    recipe = await run_in_threadpool(
        get_service(request).add_cooking_log, actor_id, request.path_params["recipe_id"], body
    )
    return JSONResponse(recipe.to_public())


@api_endpoint("remove cooking log entry")
async def remove_cooking_log(request: Request) -> JSONResponse:
    recipe = await run_in_threadpool(
        get_service(request).remove_cooking_log,
        current_user_id.get(),
        request.path_params["recipe_id"],
        request.path_params["index"],
    )
    return JSONResponse(recipe.to_public())


# ==================== Auth Middleware ====================


class AuthMiddleware(BaseHTTPMiddleware):
    """Resolve the caller from the API key in the Authorization header."""

    def __init__(self, app, service: RecipeService) -> None:
        super().__init__(app)
        self.service = service

    async def dispatch(self, request: Request, call_next):
        user_id = None
        auth_header = request.headers.get("Authorization", "")

        if auth_header.startswith("Bearer "):
            api_key = auth_header.removeprefix("Bearer ")
            try:
                user_id = await run_in_threadpool(self.service.resolve_actor, api_key)
            except Exception as e:
                logger.error("API key lookup failed: %s", str(e))
            if user_id:
                logger.debug("Authenticated user: %s", user_id[:8])

        # Set user context for this request
        current_user_id.set(user_id)
        return await call_next(request)


# ==================== Create ASGI App ====================


def create_app(settings: Settings | None = None, service: RecipeService | None = None) -> Starlette:
    """Create the Starlette application.

    Args:
        settings: Process settings (read from the environment if omitted)
        service: Prebuilt service; otherwise one is built from ``settings``

    Returns:
        The ASGI app, with the service available as ``app.state.service``
    """
    settings = settings or Settings.from_env()
    if service is None:
        service = RecipeService(build_store(settings))

    mcp_app = build_mcp(service).streamable_http_app()

    @asynccontextmanager
    async def lifespan(app: Starlette):
        if settings.seed_recipes:
            await run_in_threadpool(service.load_seed_recipes)
        async with mcp_app.router.lifespan_context(app):
            yield

    routes = [
        Route("/health", health_check, methods=["GET"]),
        Route("/api/register", register_user, methods=["POST"]),
        Route("/api/login", login, methods=["POST"]),
        Route("/api/user", get_current_user, methods=["GET"]),
        Route("/api/user", update_current_user, methods=["PATCH"]),
        Route("/api/user", delete_current_user, methods=["DELETE"]),
        Route("/api/user/password", change_password, methods=["PATCH"]),
        Route("/api/users/{username}", get_user_profile, methods=["GET"]),
        Route("/api/users/{username}/recipes", list_user_recipes, methods=["GET"]),
        Route("/api/recipes", list_recipes, methods=["GET"]),
        Route("/api/recipes", create_recipe, methods=["POST"]),
        Route("/api/recipes/{recipe_id}", get_recipe, methods=["GET"]),
        Route("/api/recipes/{recipe_id}", update_recipe, methods=["PATCH"]),
        Route("/api/recipes/{recipe_id}", delete_recipe, methods=["DELETE"]),
        Route("/api/recipes/{recipe_id}/cooking-log", add_cooking_log, methods=["POST"]),
        Route("/api/recipes/{recipe_id}/cooking-log/{index}", remove_cooking_log, methods=["DELETE"]),
        # Mount MCP app at root - it handles /mcp/ path internally
        Mount("/", app=mcp_app),
    ]

    app = Starlette(
        routes=routes,
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=settings.cors_origins,
                allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
                allow_headers=["*"],
            ),
            Middleware(AuthMiddleware, service=service),
        ],
        lifespan=lifespan,
    )
    app.state.service = service
    return app


def main() -> None:
    """Run the server."""
    settings = Settings.from_env()
    logger.info("Starting Recipe Kitchen on %s:%d (%s)", settings.host, settings.port, settings.environment.value)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
