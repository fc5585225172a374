"""Heuristic risk and confidence scoring over generated text."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

from careerroutine.config import SafetyPolicy
from careerroutine.utils.constants import INSECURE_URL_RE, PLACEHOLDER_BRACKET_RE


class RiskLevel(str, Enum):
    SAFE = "SAFE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass
class RiskAssessment:
    level: RiskLevel
    score: int
    reasons: list[str] = field(default_factory=list)
    confidence: float = 1.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "score": self.score,
            "reasons": list(self.reasons),
            "confidence": round(self.confidence, 3),
        }


def iter_strings(value: Any, path: str = "") -> Iterator[tuple[str, str]]:
    """Yield ``(path, text)`` for every string leaf of a JSON value."""
    if isinstance(value, str):
        yield path, value
    elif isinstance(value, dict):
        for key, item in value.items():
            yield from iter_strings(item, f"{path}.{key}" if path else str(key))
    elif isinstance(value, list):
        for idx, item in enumerate(value):
            yield from iter_strings(item, f"{path}.{idx}" if path else str(idx))


def joined_text(value: Any) -> str:
    return "\n".join(text for _, text in iter_strings(value))


class RiskScorer:
    """Evaluates the policy's (category, pattern, weight) table uniformly."""

    def __init__(self, policy: SafetyPolicy):
        self.policy = policy
        self._rules = [(rule, re.compile(rule.pattern, re.IGNORECASE)) for rule in policy.risk_rules]

    def level_for(self, score: int) -> RiskLevel:
        if score <= 0:
            return RiskLevel.SAFE
        if score <= self.policy.low_max_score:
            return RiskLevel.LOW
        if score <= self.policy.medium_max_score:
            return RiskLevel.MEDIUM
        return RiskLevel.HIGH

    def scan(self, text: str) -> tuple[int, list[str]]:
        score = 0
        reasons = []
        for rule, pattern in self._rules:
            if pattern.search(text):
                score += rule.weight
                reasons.append(f"{rule.category}: {rule.pattern}")
        return score, reasons

    def confidence(self, text: str) -> float:
        policy = self.policy
        value = 1.0
        if PLACEHOLDER_BRACKET_RE.search(text):
            value -= policy.placeholder_penalty
        if len(text) < policy.short_content_chars:
            value -= policy.short_content_penalty
        if len(text) > policy.long_content_chars:
            value -= policy.long_content_penalty
        if INSECURE_URL_RE.search(text):
            value -= policy.insecure_url_penalty
        return max(0.0, min(1.0, value))

    def assess(self, text: str) -> RiskAssessment:
        if not text or not text.strip():
            return RiskAssessment(RiskLevel.HIGH, self.policy.medium_max_score + 1, ["Empty or invalid content"], 0.0)
        score, reasons = self.scan(text)
        return RiskAssessment(self.level_for(score), score, reasons, self.confidence(text))
