"""Builds system/user prompts and the output JSON Schema for each operation."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date
from typing import Any

from pydantic import BaseModel

from careerroutine.models.state import OperationKind
from careerroutine.prompts.prep import PREP_SYSTEM_PROMPT, PREP_USER_PROMPT
from careerroutine.prompts.reroll import (
    REROLL_CURRENT_SECTION,
    REROLL_PROFILE_BLOCK,
    REROLL_SECTION_PROMPTS,
    REROLL_SYSTEM_PROMPT,
)
from careerroutine.prompts.routine import ROUTINE_SYSTEM_PROMPT, ROUTINE_USER_PROMPT
from careerroutine.prompts.safety import add_safety_guidelines
from careerroutine.schemas.plan import Plan
from careerroutine.schemas.prep import PrepPack
from careerroutine.schemas.profile import Profile
from careerroutine.schemas.reroll import SECTION_MODELS
from careerroutine.utils.constants import WEEKDAYS
from careerroutine.utils.weeks import blocks_per_day, monday_of


@dataclass(frozen=True)
class ComposedPrompt:
    system_prompt: str
    user_prompt: str
    output_schema: dict[str, Any]
    schema_model: type[BaseModel]
    section: str | None = None


def output_schema_for(model: type[BaseModel]) -> dict[str, Any]:
    """JSON Schema for ``model`` with weekday-keyed maps spelled out as fixed properties.

    Grammar-constrained backends handle explicit properties far better than
    ``propertyNames``, and the expansion forces all seven days to be present.
    """
    return _expand_weekday_maps(model.model_json_schema())


def _expand_weekday_maps(node: Any) -> Any:
    if isinstance(node, list):
        return [_expand_weekday_maps(item) for item in node]
    if not isinstance(node, dict):
        return node
    expanded = {key: _expand_weekday_maps(value) for key, value in node.items()}
    names = (expanded.get("propertyNames") or {}).get("enum")
    value_schema = expanded.get("additionalProperties")
    if expanded.get("type") == "object" and names and isinstance(value_schema, dict):
        expanded.pop("propertyNames")
        expanded["properties"] = {name: value_schema for name in names}
        expanded["required"] = list(names)
        expanded["additionalProperties"] = False
    return expanded


def _profile_context(profile: Profile) -> dict[str, Any]:
    constraints = ""
    if profile.constraints:
        constraints = "\nConstraints: " + ", ".join(profile.constraints)
    inactive = [day for day in WEEKDAYS if not profile.is_active(day)]
    return {
        "name": profile.name,
        "stage": profile.stage,
        "target_role": profile.targetRole,
        "budget": f"{profile.timeBudgetHoursPerDay:g}",
        "available_days": ", ".join(profile.availableDays),
        "inactive_days": ", ".join(inactive) or "no other days",
        "constraints": constraints,
        "blocks_per_day": blocks_per_day(profile.timeBudgetHoursPerDay),
    }


class PromptComposer:
    """Pure function of (operation, profile, inputs) to prompt text and schema.

    Structural constraints (slot counts, schema shape) are deterministic for
    identical inputs.
    """

    def compose(
        self,
        kind: OperationKind,
        profile: Profile,
        *,
        preferences: dict[str, Any] | None = None,
        section: str | None = None,
        current_plan: dict[str, Any] | None = None,
        today: date | None = None,
    ) -> ComposedPrompt:
        if kind == "routine":
            return self.compose_routine(profile, preferences, today)
        if kind == "prep":
            return self.compose_prep(profile)
        if kind == "reroll":
            if section is None or current_plan is None:
                raise ValueError("reroll requires section and current_plan")
            return self.compose_reroll(section, profile, current_plan)
        raise ValueError(f"Unknown operation: {kind}")

    def compose_routine(
        self,
        profile: Profile,
        preferences: dict[str, Any] | None = None,
        today: date | None = None,
    ) -> ComposedPrompt:
        context = _profile_context(profile)
        prefs = ""
        if preferences:
            prefs = "\nPreferences: " + ", ".join(f"{key}={value}" for key, value in sorted(preferences.items()))
        user_prompt = ROUTINE_USER_PROMPT.format(
            **context,
            preferences=prefs,
            milestone_count="3-6",
            resource_count="4-8",
            week_of=monday_of(today).isoformat(),
        )
        return ComposedPrompt(
            system_prompt=add_safety_guidelines(ROUTINE_SYSTEM_PROMPT),
            user_prompt=user_prompt,
            output_schema=output_schema_for(Plan),
            schema_model=Plan,
        )

    def compose_prep(self, profile: Profile) -> ComposedPrompt:
        context = _profile_context(profile)
        user_prompt = PREP_USER_PROMPT.format(
            **context,
            section_count="4-6",
            question_count="5-7",
            resource_count="5-8",
        )
        return ComposedPrompt(
            system_prompt=add_safety_guidelines(PREP_SYSTEM_PROMPT),
            user_prompt=user_prompt,
            output_schema=output_schema_for(PrepPack),
            schema_model=PrepPack,
        )

    def compose_reroll(self, section: str, profile: Profile, current_plan: dict[str, Any]) -> ComposedPrompt:
        if section not in SECTION_MODELS:
            raise ValueError(f"Invalid section: {section}. Must be one of: {', '.join(SECTION_MODELS)}")
        context = _profile_context(profile)
        current = json.dumps(current_plan.get(section), indent=2, ensure_ascii=False)
        user_prompt = "\n".join(
            [
                REROLL_PROFILE_BLOCK.format(**context),
                f"Current Plan Week: {current_plan.get('weekOf', '')}\n",
                REROLL_SECTION_PROMPTS[section].format(**context, resource_count="4-8"),
                REROLL_CURRENT_SECTION.format(section=section, current=current),
            ]
        )
        model = SECTION_MODELS[section]
        return ComposedPrompt(
            system_prompt=add_safety_guidelines(REROLL_SYSTEM_PROMPT),
            user_prompt=user_prompt,
            output_schema=output_schema_for(model),
            schema_model=model,
            section=section,
        )
