"""Offline analysis of the interaction log for prompt and policy tuning."""

from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path
from typing import Any

logger = logging.getLogger("uvicorn.error")


def load_entries(path: str | Path) -> list[dict[str, Any]]:
    """Read every JSON line; malformed lines are skipped with a warning."""
    path = Path(path)
    if not path.exists():
        return []
    entries = []
    with path.open(encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                logger.warning("Skipping malformed eval log line %d in %s", lineno, path)
    return entries


def _avg(entries: list[dict[str, Any]], key: str) -> float:
    values = [entry.get(key) or 0 for entry in entries]
    return sum(values) / len(values) if values else 0.0


def _rate(count: int, total: int) -> float:
    return round(count / total * 100, 2) if total else 0.0


def summarize(entries: list[dict[str, Any]]) -> dict[str, Any] | None:
    if not entries:
        return None
    total = len(entries)
    high_risk = sum(1 for entry in entries if entry.get("hasHighRisk"))
    fallbacks = [entry for entry in entries if entry.get("usedFallback")]
    with_urls = sum(1 for entry in entries if entry.get("hasURLs"))
    timestamps = sorted(entry.get("timestamp", "") for entry in entries)
    scored = [entry for entry in entries if entry.get("riskScore") is not None]
    return {
        "summary": {
            "totalInteractions": total,
            "dateRange": {"earliest": timestamps[0], "latest": timestamps[-1]},
        },
        "performance": {
            "avgLatencyMs": round(_avg(entries, "latencyMs")),
            "avgTokens": round(_avg(entries, "tokens")),
            "avgResponseLength": round(_avg(entries, "responseLength")),
        },
        "quality": {
            "avgRiskScore": round(_avg(scored, "riskScore"), 2),
            "avgConfidence": round(_avg(scored, "confidence"), 2),
            "highRiskRate": _rate(high_risk, total),
        },
        "content": {
            "responsesWithURLs": with_urls,
            "urlRate": _rate(with_urls, total),
        },
        "safety": {
            "highRiskCount": high_risk,
            "highRiskRate": _rate(high_risk, total),
        },
        "fallback": {
            "count": len(fallbacks),
            "rate": _rate(len(fallbacks), total),
            "byReason": dict(Counter(entry.get("fallbackReason") or "unknown" for entry in fallbacks)),
        },
    }


def find_by_trace_id(entries: list[dict[str, Any]], trace_id: str) -> dict[str, Any] | None:
    for entry in entries:
        if entry.get("traceId") == trace_id:
            return entry
    return None


def high_risk_entries(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [entry for entry in entries if entry.get("hasHighRisk")]


def slowest_entries(entries: list[dict[str, Any]], limit: int = 5) -> list[dict[str, Any]]:
    return sorted(entries, key=lambda entry: entry.get("latencyMs") or 0, reverse=True)[:limit]


def detect_regression(latest: dict[str, Any], baseline: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Compare one entry against baseline averages for latency, risk and confidence."""
    if not baseline:
        return []
    issues = []
    avg_latency = _avg(baseline, "latencyMs")
    if (latest.get("latencyMs") or 0) > avg_latency * 1.5:
        issues.append({
            "type": "performance",
            "message": f"Latency spike: {latest.get('latencyMs')}ms (baseline: {avg_latency:.0f}ms)",
        })
    avg_risk = _avg(baseline, "riskScore")
    if (latest.get("riskScore") or 0) > avg_risk * 1.3:
        issues.append({
            "type": "safety",
            "message": f"Risk score increase: {latest.get('riskScore')} (baseline: {avg_risk:.2f})",
        })
    avg_confidence = _avg(baseline, "confidence")
    if latest.get("confidence") is not None and latest["confidence"] < avg_confidence * 0.9:
        issues.append({
            "type": "quality",
            "message": f"Confidence drop: {latest['confidence']} (baseline: {avg_confidence:.2f})",
        })
    return issues
