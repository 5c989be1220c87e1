"""Error kinds raised by the recipe core.

Each exception carries an ``ErrorKind``; the HTTP layer maps kinds 1:1 to
status codes and never inspects messages.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    INDEX = "index_error"
    INTERNAL = "internal_error"


class RecipeKitchenError(Exception):
    """Base class for every error the core raises on purpose."""

    kind: ErrorKind = ErrorKind.INTERNAL
    default_message = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "kind": self.kind.value}


class Unauthenticated(RecipeKitchenError):
    kind = ErrorKind.UNAUTHENTICATED
    default_message = "Authentication required"


class Forbidden(RecipeKitchenError):
    kind = ErrorKind.FORBIDDEN
    default_message = "Not authorized to modify this recipe"


class NotFound(RecipeKitchenError):
    kind = ErrorKind.NOT_FOUND
    default_message = "Not found"


class RecipeValidationError(RecipeKitchenError):
    """Malformed or out-of-range input, raised before any store call.

    Attributes:
        details: One dict per failing field with ``field``, ``message`` and ``type``
    """

    kind = ErrorKind.VALIDATION
    default_message = "Invalid input"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.details = details or []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["details"] = self.details
        return data


class ConflictError(RecipeKitchenError):
    """A uniqueness constraint was violated.

    Attributes:
        fields: Every field that collided, in check order (username first)
    """

    kind = ErrorKind.CONFLICT
    default_message = "Username or email already exists"

    def __init__(self, message: str | None = None, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class DuplicateUsername(ConflictError):
    default_message = "Username already taken"


class DuplicateEmail(ConflictError):
    default_message = "Email already registered"


def duplicate_error(fields: list[str]) -> ConflictError:
    """Build the conflict error for the colliding fields, naming the first."""
    if fields and fields[0] == "username":
        return DuplicateUsername(fields=fields)
    if fields and fields[0] == "email":
        return DuplicateEmail(fields=fields)
    return ConflictError(fields=fields)


class LogIndexError(RecipeKitchenError):
    kind = ErrorKind.INDEX
    default_message = "Invalid log index"


class ConcurrentUpdateError(RecipeKitchenError):
    """A write conflict persisted after every retry."""

    kind = ErrorKind.INTERNAL
    default_message = "Concurrent update conflict, please retry"
