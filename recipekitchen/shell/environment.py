"""Environment Partitioner - tenancy tag for every stored row.

Test fixtures, development and production data share one physical store.
Every write is stamped with the process environment and every read filters
on it. The tag is fixed at process start and never accepted from clients.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..core.models import Environment


logger = logging.getLogger(__name__)

ENVIRONMENT_VARIABLES = ("RECIPEKITCHEN_ENV", "NODE_ENV")

_ALIASES = {
    "test": Environment.TEST,
    "testing": Environment.TEST,
    "dev": Environment.DEVELOPMENT,
    "development": Environment.DEVELOPMENT,
    "prod": Environment.PRODUCTION,
    "production": Environment.PRODUCTION,
}


def resolve_environment(environ: Mapping[str, str] | None = None) -> Environment:
    """Resolve the process environment from configuration.

    Args:
        environ: Variables to read (defaults to os.environ)

    Returns:
        The first recognised value of RECIPEKITCHEN_ENV or NODE_ENV,
        otherwise Environment.DEVELOPMENT
    """
    environ = os.environ if environ is None else environ
    for name in ENVIRONMENT_VARIABLES:
        raw = environ.get(name)
        if not raw:
            continue
        env = _ALIASES.get(raw.strip().lower())
        if env is not None:
            return env
        logger.warning("Unknown %s value %r, falling back to development", name, raw)
        break
    return Environment.DEVELOPMENT


@dataclass(frozen=True)
class EnvironmentPartition:
    """A single environment's view of the shared store."""

    environment: Environment

    @property
    def tag(self) -> str:
        return Environment(self.environment).value

    def stamp(self, data: dict[str, Any]) -> dict[str, Any]:
        """Return a copy of ``data`` tagged with this partition."""
        return {**data, "environment": self.tag}

    def contains(self, data: Mapping[str, Any] | None) -> bool:
        """True if a stored row belongs to this partition."""
        return data is not None and data.get("environment") == self.tag

    def key(self, value: str) -> str:
        """Partition-scoped key for uniqueness claims and physical row ids."""
        return f"{self.tag}:{value}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EnvironmentPartition":
        return cls(resolve_environment(environ))
