"""Inbound request sanitization and schema validation."""

from __future__ import annotations

import logging
from typing import Any, Type, TypeVar

from pydantic import BaseModel, ValidationError as PydanticValidationError

from careerroutine.errors import ValidationError
from careerroutine.schemas.plan import Plan
from careerroutine.schemas.profile import Profile
from careerroutine.utils.constants import PROMPT_DELIMITER_RE, PROMPT_OVERRIDE_RE, WEEKDAY_ALIASES

logger = logging.getLogger("uvicorn.error")

T = TypeVar("T", bound=BaseModel)

DEFAULT_MAX_CHARS = 2000


def sanitize(text: Any, max_chars: int = DEFAULT_MAX_CHARS) -> str:
    """Strip prompt delimiters and neutralize override phrases.

    Override attempts are deleted and logged, never rejected.
    """
    if not isinstance(text, str) or not text:
        return ""
    cleaned = PROMPT_DELIMITER_RE.sub("", text).strip()[:max_chars]
    if PROMPT_OVERRIDE_RE.search(cleaned):
        logger.warning("Potential prompt injection neutralized: %r", cleaned[:100])
        cleaned = PROMPT_OVERRIDE_RE.sub("", cleaned)
        cleaned = " ".join(cleaned.split())
    return cleaned


def error_paths(exc: PydanticValidationError) -> list[dict[str, str]]:
    errors = []
    for error in exc.errors():
        path = ".".join(str(part) for part in error.get("loc", ())) or "$"
        errors.append({"path": path, "message": error.get("msg", "invalid")})
    return errors


def assert_valid(payload: Any, schema: Type[T], label: str = "Payload") -> T:
    """Validate ``payload`` against ``schema`` or raise ValidationError listing each violating path."""
    if not isinstance(payload, dict):
        raise ValidationError(f"{label} validation failed", [{"path": "$", "message": "Expected an object"}])
    try:
        return schema.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"{label} validation failed", error_paths(exc)) from exc


def _normalize_days(days: Any) -> Any:
    if not isinstance(days, list):
        return days
    normalized = []
    for day in days:
        if isinstance(day, str):
            normalized.append(WEEKDAY_ALIASES.get(day.strip().lower(), day))
        else:
            normalized.append(day)
    return normalized


def validate_profile(payload: Any, max_chars: int = DEFAULT_MAX_CHARS) -> Profile:
    if not isinstance(payload, dict):
        return assert_valid(payload, Profile, "Profile")

    cleaned = dict(payload)
    for key in ("name", "stage", "targetRole"):
        if isinstance(cleaned.get(key), str):
            cleaned[key] = sanitize(cleaned[key], max_chars)
    if isinstance(cleaned.get("constraints"), list):
        constraints = [sanitize(item, max_chars) if isinstance(item, str) else item for item in cleaned["constraints"]]
        cleaned["constraints"] = [item for item in constraints if item != ""]
    cleaned["availableDays"] = _normalize_days(cleaned.get("availableDays"))
    if cleaned["availableDays"] is None:
        cleaned.pop("availableDays")
    return assert_valid(cleaned, Profile, "Profile")


def sanitize_preferences(preferences: dict[str, Any] | None, max_chars: int = DEFAULT_MAX_CHARS) -> dict[str, Any]:
    if not preferences:
        return {}
    cleaned: dict[str, Any] = {}
    for key, value in preferences.items():
        safe_key = sanitize(key, 100)
        if not safe_key:
            continue
        cleaned[safe_key] = sanitize(value, max_chars) if isinstance(value, str) else value
    return cleaned


def validate_current_plan(payload: Any, section: str) -> dict[str, Any]:
    """Validate the plan a reroll starts from and return it in canonical form.

    The requested section must be present, even where the Plan schema treats
    it as optional.
    """
    plan = assert_valid(payload, Plan, "Current plan")
    canonical = plan.model_dump(mode="json", exclude_none=True)
    if section not in canonical:
        raise ValidationError(
            "Current plan validation failed",
            [{"path": f"currentPlan.{section}", "message": "Field required"}],
        )
    return canonical
