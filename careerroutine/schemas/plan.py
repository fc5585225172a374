"""Plan contract: the generated weekly routine."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from careerroutine.schemas.profile import Weekday


class TimeBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    durationHours: float = Field(gt=0, le=24)
    label: str = Field(min_length=1)


class Resource(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    url: str = Field(min_length=1)
    description: str | None = None


class Plan(BaseModel):
    """Weekly schedule.

    For each active day the block durations sum to the profile's daily
    budget (within tolerance); inactive days map to empty lists.
    """

    model_config = ConfigDict(extra="forbid")

    weekOf: date
    timeBlocks: dict[Weekday, list[TimeBlock]]
    dailyTasks: dict[Weekday, list[str]] | None = None
    milestones: list[str] = Field(min_length=3, max_length=6)
    resources: list[Resource] = Field(min_length=4, max_length=8)
    version: int = Field(ge=1)
