"""Request and response bodies for the HTTP endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from careerroutine.schemas.plan import Plan
from careerroutine.schemas.prep import PrepPack


class RoutineRequest(BaseModel):
    profile: dict[str, Any]
    preferences: dict[str, str | int | float | bool] | None = None


class PrepRequest(BaseModel):
    profile: dict[str, Any]


class RerollRequest(BaseModel):
    profile: dict[str, Any]
    currentPlan: dict[str, Any]


class RoutineResponse(BaseModel):
    plan: Plan


class PrepResponse(BaseModel):
    prep: PrepPack
