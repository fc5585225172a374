"""Repair and schema-validate raw model output."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Type

from json_repair import repair_json
from pydantic import BaseModel, ValidationError

from careerroutine.errors import ParseError, SchemaError
from careerroutine.utils.constants import JSON_FENCE_RE

logger = logging.getLogger("uvicorn.error")

DEFAULT_SNIPPET_CHARS = 200


def _sanitize_invalid_escapes(raw: str) -> str:
    return re.sub(r'\\([^"\\/bfnrtu])', r"\1", raw)


def _extract_json_object(raw: str) -> str | None:
    if not raw:
        return None
    start = raw.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for idx in range(start, len(raw)):
        char = raw[idx]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return raw[start : idx + 1]
    return None


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def repair_and_parse(raw: str, snippet_chars: int = DEFAULT_SNIPPET_CHARS) -> dict[str, Any]:
    """Parse model text into a JSON object, repairing it when needed.

    Cheap cleanups run first (fences, invalid escapes, surrounding prose);
    structural damage such as unbalanced braces, unterminated strings or
    trailing commas is left to ``json_repair``. Raises ParseError carrying a
    length-capped snippet, never the full text.
    """
    text = JSON_FENCE_RE.sub("", raw or "").strip()
    data = _loads_object(text)
    if data is not None:
        return data

    logger.warning("Initial JSON parse failed, attempting repair (chars=%d)", len(text))
    candidates = [_sanitize_invalid_escapes(text)]
    extracted = _extract_json_object(text)
    if extracted:
        candidates.append(_sanitize_invalid_escapes(extracted))
    for candidate in candidates:
        data = _loads_object(candidate)
        if data is not None:
            logger.info("Recovered JSON with local cleanup")
            return data

    start = text.find("{")
    repaired = repair_json(text[start:] if start != -1 else text)
    data = _loads_object(repaired) if isinstance(repaired, str) else None
    if data:
        logger.info("Successfully repaired and parsed JSON")
        return data

    logger.error("JSON parse failed after repair attempt")
    raise ParseError("Unable to parse model output as a JSON object", snippet=text[:snippet_chars])


def validate_against_schema(data: Any, schema: Type[BaseModel]) -> dict[str, Any]:
    """Check ``data`` against ``schema`` and return it in canonical JSON form.

    Raises SchemaError listing every violating instance path.
    """
    try:
        instance = schema.model_validate(data)
    except ValidationError as exc:
        paths = [".".join(str(part) for part in error.get("loc", ())) or "$" for error in exc.errors()]
        raise SchemaError(f"Output does not match {schema.__name__} schema", paths) from exc
    return instance.model_dump(mode="json", exclude_none=True)
