"""Deterministic, pre-vetted payloads substituted on any pipeline failure."""

from __future__ import annotations

import copy
import logging
from datetime import date
from typing import Any

from careerroutine.models.state import OperationKind
from careerroutine.schemas.profile import Profile
from careerroutine.utils.constants import WEEKDAYS
from careerroutine.utils.durations import normalize_day
from careerroutine.utils.weeks import monday_of

logger = logging.getLogger("uvicorn.error")

# Pre-vetted links only; every URL here is https and outside any shortener.
VETTED_RESOURCES: tuple[dict[str, str], ...] = (
    {"title": "LeetCode", "url": "https://leetcode.com", "description": "Practice coding problems by topic and difficulty"},
    {"title": "NeetCode Roadmap", "url": "https://neetcode.io/roadmap", "description": "Structured problem list with video explanations"},
    {"title": "Tech Interview Handbook", "url": "https://www.techinterviewhandbook.org", "description": "Free guide covering coding, behavioral and resume prep"},
    {"title": "InterviewBit", "url": "https://www.interviewbit.com", "description": "Interview practice problems and mock tests"},
    {"title": "System Design Primer", "url": "https://github.com/donnemartin/system-design-primer", "description": "Open reference for system design fundamentals"},
)

ROUTINE_BLOCKS: tuple[tuple[str, float], ...] = (
    ("Data structures and algorithms practice", 0.4),
    ("Role-specific interview preparation", 0.3),
    ("Applications and networking", 0.3),
)

DAILY_TASKS: dict[str, list[str]] = {
    "Mon": ["Solve two array or string problems", "Send two job applications"],
    "Tue": ["Solve two linked list or tree problems", "Review one core topic for your target role"],
    "Wed": ["Solve one graph problem", "Update one portfolio project README"],
    "Thu": ["Solve one dynamic programming problem", "Reach out to one engineer for a referral chat"],
    "Fri": ["Do a timed mock interview", "Write down one behavioral story in STAR format"],
    "Sat": ["Revisit the hardest problem of the week", "Polish your resume bullet points"],
    "Sun": ["Plan next week's focus areas", "Review notes from the week"],
}

ROUTINE_MILESTONES: tuple[str, ...] = (
    "Solve 10 easy or medium coding problems",
    "Review the core data structures: arrays, hash maps, trees and graphs",
    "Prepare two behavioral stories in STAR format",
    "Submit five targeted job applications",
)

PREP_OUTLINE: tuple[dict[str, Any], ...] = (
    {
        "section": "Data Structures & Algorithms",
        "items": ["Arrays and strings", "Linked lists", "Trees and graphs", "Dynamic programming"],
    },
    {
        "section": "Problem-Solving Patterns",
        "items": ["Two pointers", "Sliding window", "Breadth-first and depth-first search", "Binary search"],
    },
    {
        "section": "Behavioral Interviews",
        "items": ["STAR story structure", "Conflict and teamwork stories", "Project deep dives", "Questions to ask interviewers"],
    },
    {
        "section": "Resume & Portfolio",
        "items": ["Quantify project impact", "Keep the resume to one page", "Document one flagship project", "Tidy public repositories"],
    },
)

PREP_DRILLS: tuple[dict[str, Any], ...] = (
    {"day": "Mon", "drills": ["Warm-up array and string problems", "Review hash map patterns"]},
    {"day": "Tue", "drills": ["Tree traversal problems", "Graph search practice"]},
    {"day": "Wed", "drills": ["Topics specific to your target role", "Explain one past project out loud"]},
    {"day": "Thu", "drills": ["One hard problem or a system design sketch", "Dynamic programming review"]},
    {"day": "Fri", "drills": ["Timed mock interview", "Write down lessons learned this week"]},
)

PREP_QUESTIONS: tuple[str, ...] = (
    "Reverse a singly linked list",
    "Find the longest substring without repeating characters",
    "Return the level order traversal of a binary tree",
    "Merge overlapping intervals",
    "Design an LRU cache",
)


class FallbackProvider:
    """Pure function of (operation, profile) to a canonical schema-valid payload.

    For rerolls the current section is returned unchanged, so a failed
    reroll is a no-op rather than a degraded replacement. Only ``weekOf`` is
    time-derived.
    """

    def provide(
        self,
        kind: OperationKind,
        profile: Profile,
        *,
        section: str | None = None,
        current_plan: dict[str, Any] | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        if kind == "routine":
            return self.routine(profile, today)
        if kind == "prep":
            return self.prep(profile)
        if kind == "reroll":
            if section is None or current_plan is None:
                raise ValueError("reroll fallback requires section and current_plan")
            return self.reroll(section, current_plan)
        raise ValueError(f"Unknown operation: {kind}")

    def routine(self, profile: Profile, today: date | None = None) -> dict[str, Any]:
        budget = profile.timeBudgetHoursPerDay
        time_blocks: dict[str, list[dict[str, Any]]] = {}
        daily_tasks: dict[str, list[str]] = {}
        for day in WEEKDAYS:
            if not profile.is_active(day):
                time_blocks[day] = []
                daily_tasks[day] = []
                continue
            blocks = [{"durationHours": budget * share, "label": label} for label, share in ROUTINE_BLOCKS]
            time_blocks[day] = normalize_day(blocks, budget)
            daily_tasks[day] = list(DAILY_TASKS[day])
        return {
            "weekOf": monday_of(today).isoformat(),
            "timeBlocks": time_blocks,
            "dailyTasks": daily_tasks,
            "milestones": list(ROUTINE_MILESTONES),
            "resources": [dict(resource) for resource in VETTED_RESOURCES[:4]],
            "version": 1,
        }

    def prep(self, profile: Profile) -> dict[str, Any]:
        return {
            "prepOutline": copy.deepcopy(list(PREP_OUTLINE)),
            "weeklyDrillPlan": copy.deepcopy(list(PREP_DRILLS)),
            "starterQuestions": list(PREP_QUESTIONS),
            "resources": [dict(resource) for resource in VETTED_RESOURCES],
        }

    def reroll(self, section: str, current_plan: dict[str, Any]) -> dict[str, Any]:
        return {section: copy.deepcopy(current_plan[section])}
