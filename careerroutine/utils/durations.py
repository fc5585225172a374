"""Rescale generated time blocks so each active day meets the daily budget."""

from __future__ import annotations

import logging
from typing import Any

from careerroutine.schemas.profile import Profile
from careerroutine.utils.constants import WEEKDAYS

logger = logging.getLogger("uvicorn.error")

MIN_BLOCK_HOURS = 0.1


def _merge_short_blocks(blocks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Grow blocks shorter than MIN_BLOCK_HOURS by absorbing the following block.

    A short final block is folded into the one before it.
    """
    merged = [dict(block) for block in blocks]
    while len(merged) > 1:
        short = next(
            (idx for idx, block in enumerate(merged) if block["durationHours"] < MIN_BLOCK_HOURS - 1e-9),
            None,
        )
        if short is None:
            break
        if short + 1 < len(merged):
            merged[short]["durationHours"] += merged.pop(short + 1)["durationHours"]
        else:
            merged[short - 1]["durationHours"] += merged.pop(short)["durationHours"]
    return merged


def normalize_day(blocks: list[dict[str, Any]], target_hours: float) -> list[dict[str, Any]]:
    """Proportionally rescale one day's blocks to sum to ``target_hours``.

    Blocks that would fall under MIN_BLOCK_HOURS are merged into a
    neighbour. Durations are rounded to two decimals on cumulative
    boundaries, so the day always sums to the rounded target.
    """
    if not blocks:
        return []
    current = sum(float(block.get("durationHours") or 0) for block in blocks)
    if current <= 0:
        share = target_hours / len(blocks)
        scaled = [{**block, "durationHours": share} for block in blocks]
    else:
        scale = target_hours / current
        scaled = [{**block, "durationHours": float(block.get("durationHours") or 0) * scale} for block in blocks]
    scaled = _merge_short_blocks(scaled)

    normalized = []
    cumulative = 0.0
    previous = 0.0
    for block in scaled:
        cumulative += block["durationHours"]
        boundary = round(cumulative, 2)
        normalized.append({**block, "durationHours": round(boundary - previous, 2)})
        previous = boundary
    normalized[-1]["durationHours"] = round(round(target_hours, 2) - sum(b["durationHours"] for b in normalized[:-1]), 2)
    return normalized


def normalize_time_blocks(
    time_blocks: dict[str, list[dict[str, Any]]],
    profile: Profile,
    trace_id: str | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Return a full seven-day map: active days rescaled, inactive days emptied."""
    target = profile.timeBudgetHoursPerDay
    normalized: dict[str, list[dict[str, Any]]] = {}
    for day in WEEKDAYS:
        blocks = time_blocks.get(day) or []
        if not profile.is_active(day):
            if blocks:
                logger.info("[%s] Cleared %d blocks on inactive day %s", trace_id, len(blocks), day)
            normalized[day] = []
            continue
        normalized[day] = normalize_day(blocks, target)
    return normalized


def normalize_day_map(day_map: dict[str, list[Any]], profile: Profile) -> dict[str, list[Any]]:
    """Seven-day map with inactive days emptied; used for dailyTasks."""
    return {day: list(day_map.get(day) or []) if profile.is_active(day) else [] for day in WEEKDAYS}


def normalize_plan_durations(plan: dict[str, Any], profile: Profile, trace_id: str | None = None) -> dict[str, Any]:
    """Apply duration and inactive-day normalization to a plan or section payload."""
    normalized = dict(plan)
    if isinstance(plan.get("timeBlocks"), dict):
        normalized["timeBlocks"] = normalize_time_blocks(plan["timeBlocks"], profile, trace_id)
        logger.info("[%s] Normalized durations to %sh/day", trace_id, profile.timeBudgetHoursPerDay)
    if isinstance(plan.get("dailyTasks"), dict):
        normalized["dailyTasks"] = normalize_day_map(plan["dailyTasks"], profile)
    return normalized
