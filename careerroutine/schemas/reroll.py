"""Single-section models used when rerolling part of a Plan.

Each model admits exactly one key, the section name, and nothing else.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from careerroutine.schemas.plan import Resource, TimeBlock
from careerroutine.schemas.profile import Weekday


class TimeBlocksSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeBlocks: dict[Weekday, list[TimeBlock]]


class ResourcesSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    resources: list[Resource] = Field(min_length=4, max_length=8)


class DailyTasksSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dailyTasks: dict[Weekday, list[str]]


SECTION_MODELS: dict[str, type[BaseModel]] = {
    "timeBlocks": TimeBlocksSection,
    "resources": ResourcesSection,
    "dailyTasks": DailyTasksSection,
}
