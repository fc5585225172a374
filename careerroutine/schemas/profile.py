"""Profile contract: who the plan is for and how much time they have."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from careerroutine.utils.constants import WEEKDAYS

Weekday = Literal["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


class Profile(BaseModel):
    """Validated input describing the user's scheduling constraints and target role.

    Immutable per request and never persisted by the service.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1, max_length=200)
    stage: str = Field(min_length=1, max_length=200)
    targetRole: str = Field(min_length=1, max_length=200)
    timeBudgetHoursPerDay: float = Field(ge=0.5, le=24)
    availableDays: tuple[Weekday, ...] = Field(min_length=1)
    constraints: tuple[str, ...] | None = None

    @field_validator("availableDays")
    @classmethod
    def _unique_in_week_order(cls, days: tuple[str, ...]) -> tuple[str, ...]:
        present = set(days)
        return tuple(day for day in WEEKDAYS if day in present)

    def is_active(self, day: str) -> bool:
        return day in self.availableDays
