"""Boundary validation - turns caller payloads into typed request models."""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .errors import RecipeValidationError


ModelT = TypeVar("ModelT", bound=BaseModel)


def field_errors(exc: ValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into ``{field, message, type}`` dicts."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]) or "__root__",
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]


def parse_request(model: type[ModelT], payload: Any, message: str = "Invalid input") -> ModelT:
    """Validate a payload against a request model.

    Args:
        model: Request model class
        payload: Decoded request body (should be a mapping)
        message: Top-level error message

    Returns:
        The validated model instance

    Raises:
        RecipeValidationError: With field-level details if validation fails
    """
    if not isinstance(payload, Mapping):
        raise RecipeValidationError(
            message,
            details=[{"field": "__root__", "message": "Expected a JSON object", "type": "type_error"}],
        )
    try:
        return model.model_validate(dict(payload))
    except ValidationError as e:
        raise RecipeValidationError(message, details=field_errors(e)) from e


def parse_log_index(raw: Any) -> int:
    """Parse a cooking log index from a path segment or tool argument."""
    if isinstance(raw, bool):
        raise RecipeValidationError("Invalid log index")
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise RecipeValidationError(
            "Invalid log index",
            details=[{"field": "index", "message": "Must be an integer", "type": "int_parsing"}],
        ) from e
