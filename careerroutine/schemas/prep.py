"""PrepPack contract: the generated interview-preparation pack."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from careerroutine.schemas.plan import Resource
from careerroutine.schemas.profile import Weekday


class OutlineSection(BaseModel):
    model_config = ConfigDict(extra="forbid")

    section: str = Field(min_length=1)
    items: list[str] = Field(min_length=1)


class DrillDay(BaseModel):
    model_config = ConfigDict(extra="forbid")

    day: Weekday
    drills: list[str] = Field(min_length=1)


class PrepPack(BaseModel):
    model_config = ConfigDict(extra="forbid")

    prepOutline: list[OutlineSection] = Field(min_length=4, max_length=6)
    weeklyDrillPlan: list[DrillDay] = Field(min_length=5, max_length=5)
    starterQuestions: list[str] = Field(min_length=5, max_length=7)
    resources: list[Resource] = Field(min_length=5)
