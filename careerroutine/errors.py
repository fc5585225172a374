"""Typed failures raised by the generation pipeline.

Every stage between INVOKE and SAFETY_GATE raises one of these; the pipeline
boundary turns them into a fallback payload. Only ``ValidationError`` is
surfaced to the caller (as HTTP 400).
"""

from __future__ import annotations

from typing import Any, Literal

ErrorCode = Literal[
    "validation_error",
    "timeout",
    "service_error",
    "parse_error",
    "schema_error",
    "safety_rejection",
]


class PipelineError(Exception):
    code: ErrorCode = "service_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(PipelineError):
    """Caller-fixable input problem. Not retryable."""

    code = "validation_error"

    def __init__(self, message: str, errors: list[dict[str, str]] | None = None):
        super().__init__(message, {"errors": errors or []})
        self.errors = errors or []


class ModelTimeout(PipelineError):
    """The model did not answer within the configured bound."""

    code = "timeout"

    def __init__(self, timeout_ms: int):
        super().__init__(f"Model call exceeded {timeout_ms}ms", {"timeoutMs": timeout_ms})
        self.timeout_ms = timeout_ms


class ServiceError(PipelineError):
    """Transport or HTTP failure reported by the generation backend."""

    code = "service_error"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message, {"status": status_code})
        self.status_code = status_code


class ParseError(PipelineError):
    """Model text could not be turned into JSON, even after repair."""

    code = "parse_error"

    def __init__(self, message: str, snippet: str = ""):
        super().__init__(message, {"snippet": snippet})
        self.snippet = snippet


class SchemaError(PipelineError):
    """Valid JSON with the wrong shape."""

    code = "schema_error"

    def __init__(self, message: str, paths: list[str]):
        super().__init__(message, {"paths": paths})
        self.paths = paths


class SafetyRejection(PipelineError):
    """Risk too high or confidence too low to return the content."""

    code = "safety_rejection"

    def __init__(self, message: str, assessment: dict[str, Any], issues: list[str] | None = None):
        super().__init__(message, {"assessment": assessment, "issues": issues or []})
        self.assessment = assessment
        self.issues = issues or []
