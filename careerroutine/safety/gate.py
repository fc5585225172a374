"""Risk-scores, filters and quality-checks a schema-valid payload."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Type

from pydantic import BaseModel

from careerroutine.config import SafetyPolicy
from careerroutine.errors import SafetyRejection, SchemaError
from careerroutine.safety.risk import RiskAssessment, RiskLevel, RiskScorer, iter_strings, joined_text
from careerroutine.safety.urls import filter_resources
from careerroutine.schemas.profile import Profile
from careerroutine.utils.constants import WEEKDAYS
from careerroutine.utils.llm_parse import validate_against_schema

logger = logging.getLogger("uvicorn.error")

MIN_PAYLOAD_CHARS = 50


@dataclass
class GateResult:
    payload: dict[str, Any]
    assessment: RiskAssessment
    redactions: list[dict[str, Any]] = field(default_factory=list)
    dropped_resources: list[int] = field(default_factory=list)
    quality_issues: list[str] = field(default_factory=list)

    @property
    def has_high_risk(self) -> bool:
        return self.assessment.level is RiskLevel.HIGH or bool(self.redactions)

    def summary(self) -> dict[str, Any]:
        data = self.assessment.to_dict()
        data["hasHighRisk"] = self.has_high_risk
        data["redactions"] = len(self.redactions)
        data["droppedResources"] = len(self.dropped_resources)
        return data


def _set_path(payload: Any, path: str, value: Any) -> None:
    parts = path.split(".")
    target = payload
    for part in parts[:-1]:
        target = target[int(part)] if isinstance(target, list) else target[part]
    last = parts[-1]
    if isinstance(target, list):
        target[int(last)] = value
    else:
        target[last] = value


def duration_issues(time_blocks: dict[str, Any], profile: Profile, tolerance: float) -> list[str]:
    """Per-day check that active days sum to the budget and inactive days are empty."""
    issues = []
    budget = profile.timeBudgetHoursPerDay
    for day in WEEKDAYS:
        blocks = time_blocks.get(day) or []
        if not profile.is_active(day):
            if blocks:
                issues.append(f"{day}: inactive day has {len(blocks)} blocks")
            continue
        total = sum(float(block.get("durationHours") or 0) for block in blocks)
        difference = abs(total - budget)
        if difference > tolerance:
            issues.append(f"{day}: total duration is {total:.2f}h, expected {budget:g}h (difference: {difference:.2f}h)")
    return issues


class SafetyGate:
    """Pure function of (payload, profile, policy); no shared mutable state.

    Content passes only when the aggregate risk level is not HIGH and the
    confidence reaches the policy minimum. Duration mismatches are
    non-fatal on their own but reject the payload when they coincide with
    any other failure signal.
    """

    def __init__(self, policy: SafetyPolicy):
        self.policy = policy
        self.scorer = RiskScorer(policy)

    def redact_fields(self, payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Replace every string field whose own risk is HIGH with the redaction marker."""
        redactions = []
        for path, text in list(iter_strings(payload)):
            score, reasons = self.scorer.scan(text)
            if self.scorer.level_for(score) is RiskLevel.HIGH:
                _set_path(payload, path, self.policy.redaction_marker)
                redactions.append({"path": path, "reasons": reasons})
                logger.warning("High-risk content redacted field=%s reasons=%s", path, reasons)
        return redactions

    def filter_urls(self, payload: dict[str, Any]) -> list[int]:
        resources = payload.get("resources")
        if not isinstance(resources, list):
            return []
        kept, dropped = filter_resources(resources, self.policy.shortener_domains)
        if dropped:
            logger.warning("Dropped %d resources with disallowed URLs", len(dropped))
        payload["resources"] = kept
        return dropped

    def review(
        self,
        payload: dict[str, Any],
        profile: Profile,
        schema_model: Type[BaseModel],
        *,
        enforce_budget: bool = False,
    ) -> GateResult:
        """Filter ``payload`` and decide whether it may be returned.

        With ``enforce_budget`` any remaining per-day duration mismatch is
        fatal; use it once durations have already been normalized, so a
        mismatch can only mean a day the model left empty.

        Raises SafetyRejection when the caller must use the fallback.
        """
        filtered = copy.deepcopy(payload)
        redactions = self.redact_fields(filtered)
        dropped = self.filter_urls(filtered)

        text = joined_text(filtered)
        assessment = self.scorer.assess(text)
        for redaction in redactions:
            assessment.reasons.append(f"redacted {redaction['path']}")

        domain_issues: list[str] = []
        if isinstance(filtered.get("timeBlocks"), dict):
            domain_issues = duration_issues(filtered["timeBlocks"], profile, self.policy.duration_tolerance_hours)
            if domain_issues:
                logger.warning("Time budget validation failed: %s", domain_issues)

        other_issues: list[str] = []
        if len(json.dumps(filtered)) < MIN_PAYLOAD_CHARS:
            other_issues.append("Data too short, likely incomplete")
        try:
            filtered = validate_against_schema(filtered, schema_model)
        except SchemaError as exc:
            other_issues.append(f"Filtered output violates schema at {', '.join(exc.paths)}")

        result = GateResult(
            payload=filtered,
            assessment=assessment,
            redactions=redactions,
            dropped_resources=dropped,
            quality_issues=domain_issues + other_issues,
        )

        reasons = []
        if assessment.level is RiskLevel.HIGH:
            reasons.append(f"risk level {assessment.level.value} (score {assessment.score})")
        if assessment.confidence < self.policy.min_confidence:
            reasons.append(f"confidence {assessment.confidence:.2f} below {self.policy.min_confidence}")
        if any(issue.startswith("Filtered output violates schema") for issue in other_issues):
            reasons.append("filtered output is no longer schema-valid")
        combined = other_issues or redactions or assessment.level is RiskLevel.MEDIUM
        if domain_issues and enforce_budget:
            reasons.append("time budget not met after normalization")
        elif domain_issues and combined:
            reasons.append("time budget mismatch combined with other quality failures")

        if reasons:
            raise SafetyRejection("; ".join(reasons), result.summary(), result.quality_issues)
        return result
