"""Append-only structured log of every generation interaction."""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class InteractionLogEntry:
    """One metrics record per request. Lengths only, never raw prompt/response text."""

    traceId: str
    operation: str
    model: str
    riskLevel: str | None
    riskScore: int | None
    confidence: float | None
    latencyMs: int
    hasHighRisk: bool
    usedFallback: bool
    fallbackReason: str | None = None
    section: str | None = None
    modelLatencyMs: int | None = None
    tokens: int = 0
    promptTokens: int = 0
    completionTokens: int = 0
    promptLength: int = 0
    responseLength: int = 0
    hasURLs: bool = False
    reasons: list[str] = field(default_factory=list)
    qualityIssues: list[str] = field(default_factory=list)
    redactions: int = 0
    cancelled: bool = False
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class EvalLogger:
    """Writes one JSON line per interaction to the metrics sink.

    Raw prompt/response text, when enabled, goes to a separate transcript
    store keyed by trace id. Each record is a single ``O_APPEND`` write, so
    concurrent writers never read-modify-write. Failures are logged and
    swallowed; they must never fail the user-facing request.
    """

    def __init__(self, log_path: str, transcript_path: str | None = None, store_transcripts: bool = False):
        self.log_path = Path(log_path)
        self.transcript_path = Path(transcript_path) if transcript_path else None
        self.store_transcripts = store_transcripts and self.transcript_path is not None
        self._lock = threading.Lock()

    def _append(self, path: Path, record: dict[str, Any]) -> None:
        line = json.dumps(record, ensure_ascii=False) + "\n"
        path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
            try:
                os.write(fd, line.encode("utf-8"))
            finally:
                os.close(fd)

    def record(self, entry: InteractionLogEntry, transcript: dict[str, str] | None = None) -> bool:
        """Append ``entry`` (and optionally its transcript). Returns False if the write failed."""
        try:
            self._append(self.log_path, entry.to_dict())
        except OSError as exc:
            logger.warning("Failed to store eval log traceId=%s: %s", entry.traceId, exc)
            return False
        logger.info(
            "LLM interaction logged traceId=%s risk=%s fallback=%s",
            entry.traceId,
            entry.riskLevel,
            entry.fallbackReason if entry.usedFallback else None,
        )

        if self.store_transcripts and transcript is not None:
            try:
                self._append(self.transcript_path, {"traceId": entry.traceId, "timestamp": entry.timestamp, **transcript})
            except OSError as exc:
                logger.warning("Failed to store transcript traceId=%s: %s", entry.traceId, exc)
        return True
