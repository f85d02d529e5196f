"""
Request Validator
=================
Turns a loosely typed payload into an immutable GenerationRequest.

Every violation is collected in one pass and reported together, so a
caller can fix all problems in a single round trip. No side effect
happens before this step succeeds.

Architecture: Pydantic validation + error translation layer
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError

from config.constants import MESSAGES
from core.enums import enum_values
from core.exceptions import InvalidInputError
from core.models import GenerationRequest

REQUIRED_FIELDS: tuple[str, ...] = ("topic", "audience", "industry", "contentTone", "wordCount")


# =============================================================================
# FIELD INTROSPECTION
# =============================================================================


def _field_info(alias: str):
    for name, info in GenerationRequest.model_fields.items():
        if info.alias == alias or name == alias:
            return info
    return None


def _max_items(alias: str) -> Optional[int]:
    """Cardinality bound declared on a list field."""
    info = _field_info(alias)
    if info is None:
        return None
    for constraint in info.metadata:
        limit = getattr(constraint, "max_length", None)
        if limit is not None:
            return limit
    return None


def _allowed_values(alias: str) -> Optional[str]:
    info = _field_info(alias)
    if info is not None and isinstance(info.annotation, type) and issubclass(info.annotation, Enum):
        return ", ".join(enum_values(info.annotation))
    return None


# =============================================================================
# ERROR TRANSLATION
# =============================================================================


def _describe(error: dict[str, Any]) -> str:
    """Render one pydantic error as a caller-facing sentence."""
    loc = error.get("loc") or ("request",)
    field = str(loc[0])
    ctx = error.get("ctx") or {}
    kind = error["type"]

    # Errors on list members, e.g. keywords[3] not being a string
    if len(loc) > 1 and isinstance(loc[1], int):
        return f"{field} must contain only text values"

    if kind == "missing":
        return f"{field} is required"
    if kind == "string_too_short":
        return f"{field} must be at least {ctx['min_length']} characters"
    if kind == "string_too_long":
        return f"{field} must be no more than {ctx['max_length']} characters"
    if kind == "greater_than_equal":
        return f"{field} must be at least {ctx['ge']}"
    if kind == "less_than_equal":
        return f"{field} must be no more than {ctx['le']}"
    if kind in ("too_long", "list_type"):
        return f"{field} must be an array with no more than {_max_items(field)} items"
    if kind == "bool_type":
        return f"{field} must be a boolean value"
    if kind == "string_type":
        return f"{field} must be a string value"
    if kind in ("enum", "literal_error"):
        allowed = _allowed_values(field) or ctx.get("expected", "")
        return f"{field} must be one of: {allowed}"
    if kind == "string_pattern_mismatch":
        return f"{field} must be a language tag such as 'en' or 'en-US'"
    if kind in ("int_type", "int_parsing", "int_from_float"):
        return f"{field} must be a whole number"
    return f"{field}: {error.get('msg', 'invalid value')}"


def _normalize(raw: Mapping[str, Any]) -> dict[str, Any]:
    """
    Drop absent values so defaults apply.

    Required fields given as None or "" are treated as missing.
    """
    payload: dict[str, Any] = {}
    for key, value in raw.items():
        if value is None:
            continue
        if key in REQUIRED_FIELDS and value == "":
            continue
        payload[key] = value
    return payload


# =============================================================================
# PUBLIC API
# =============================================================================


def validate_request(raw: Any) -> GenerationRequest:
    """
    Validate and normalize a generation payload.

    Args:
        raw: Untyped inbound payload (decoded JSON body)

    Returns:
        Frozen GenerationRequest

    Raises:
        InvalidInputError: With every violation joined into one message
    """
    if not isinstance(raw, Mapping):
        errors = ["request body must be an object"]
        raise InvalidInputError(MESSAGES.VALIDATION_PREFIX + ", ".join(errors), errors=errors)

    try:
        return GenerationRequest.model_validate(_normalize(raw))
    except ValidationError as e:
        errors: list[str] = []
        for item in e.errors():
            message = _describe(item)
            if message not in errors:
                errors.append(message)

        logger.info(f"Rejected generation request | violations={len(errors)}")
        raise InvalidInputError(
            MESSAGES.VALIDATION_PREFIX + ", ".join(errors), errors=errors
        ) from e


__all__ = ["validate_request", "REQUIRED_FIELDS"]
