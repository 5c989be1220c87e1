"""Configuration - process settings read from environment variables."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from ..core.models import Environment
from .environment import EnvironmentPartition, resolve_environment
from .firestore_client import FirestoreConfig, RecipeFirestoreClient
from .memory_store import InMemoryRecipeStore
from .store import RecipeStore


logger = logging.getLogger(__name__)

DEFAULT_CORS_ORIGINS = ["http://localhost:5173"]


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Process settings.

    Attributes:
        environment: Partition every read and write is confined to
        storage_backend: "firestore" (default) or "memory"
        firestore: Firestore connection settings
        host: Bind address for the HTTP server
        port: Bind port for the HTTP server
        log_level: Root logging level name
        cors_origins: Browser origins allowed to call the API
        seed_recipes: Load built-in seed recipes into an empty partition on startup
    """

    environment: Environment = Environment.DEVELOPMENT
    storage_backend: str = "firestore"
    firestore: FirestoreConfig = field(default_factory=FirestoreConfig)
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    seed_recipes: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        environ = os.environ if environ is None else environ
        origins = environ.get("CORS_ORIGINS")
        return cls(
            environment=resolve_environment(environ),
            storage_backend=environ.get("STORAGE_BACKEND", "firestore").lower(),
            firestore=FirestoreConfig(
                project_id=environ.get("FIRESTORE_PROJECT") or None,
                database=environ.get("FIRESTORE_DATABASE", "recipekitchen"),
                max_attempts=int(environ.get("FIRESTORE_MAX_ATTEMPTS", 5)),
            ),
            host=environ.get("HOST", "0.0.0.0"),
            port=int(environ.get("PORT", 8080)),
            log_level=environ.get("LOG_LEVEL", "INFO").upper(),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()] if origins else list(DEFAULT_CORS_ORIGINS),
            seed_recipes=_flag(environ.get("SEED_RECIPES")),
        )


def build_store(settings: Settings) -> RecipeStore:
    """Construct the entity store selected by ``settings``.

    Raises:
        ValueError: for an unknown storage backend
    """
    partition = EnvironmentPartition(settings.environment)
    logger.info(
        "Using %s storage with %s environment isolation",
        settings.storage_backend,
        partition.tag,
    )
    if settings.storage_backend == "firestore":
        return RecipeFirestoreClient(partition, settings.firestore)
    if settings.storage_backend == "memory":
        return InMemoryRecipeStore(partition)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend}")
