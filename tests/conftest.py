"""Shared fixtures: profiles, canonical payloads and a fake chat model."""

from __future__ import annotations

import asyncio
import copy
import json
from types import SimpleNamespace

import pytest

from careerroutine.config import Settings
from careerroutine.evals.logger import EvalLogger
from careerroutine.fallback import FallbackProvider
from careerroutine.llm.invoker import ModelInvoker
from careerroutine.pipeline import GenerationPipeline, PipelineComponents
from careerroutine.prompts.composer import PromptComposer
from careerroutine.safety.gate import SafetyGate
from careerroutine.schemas.profile import Profile

PROFILE_DATA = {
    "name": "Alex Chen",
    "stage": "recent_grad",
    "targetRole": "iOS Engineer",
    "timeBudgetHoursPerDay": 2.0,
    "availableDays": ["Mon", "Tue", "Wed", "Thu", "Fri"],
    "constraints": ["SwiftUI"],
}

RESOURCES = [
    {"title": "LeetCode", "url": "https://leetcode.com"},
    {"title": "NeetCode", "url": "https://neetcode.io"},
    {"title": "SwiftUI Documentation", "url": "https://developer.apple.com/documentation/swiftui"},
    {"title": "Tech Interview Handbook", "url": "https://www.techinterviewhandbook.org"},
    {"title": "Hacking with Swift", "url": "https://www.hackingwithswift.com"},
]


def _day_blocks():
    return [
        {"durationHours": 1.0, "label": "Arrays and hashing practice"},
        {"durationHours": 0.5, "label": "SwiftUI state management review"},
        {"durationHours": 0.5, "label": "Apply to two roles"},
    ]


PLAN = {
    "weekOf": "2025-10-13",
    "timeBlocks": {
        **{day: _day_blocks() for day in ("Mon", "Tue", "Wed", "Thu", "Fri")},
        "Sat": [],
        "Sun": [],
    },
    "dailyTasks": {
        **{day: ["Solve two medium problems", "Read one SwiftUI article"] for day in ("Mon", "Tue", "Wed", "Thu", "Fri")},
        "Sat": [],
        "Sun": [],
    },
    "milestones": [
        "Solve 10 medium LeetCode problems",
        "Build one SwiftUI demo screen",
        "Send five applications",
    ],
    "resources": RESOURCES,
    "version": 1,
}

PREP = {
    "prepOutline": [
        {"section": "Data Structures", "items": ["Arrays", "Trees", "Graphs"]},
        {"section": "Swift", "items": ["Optionals", "Protocols", "Concurrency"]},
        {"section": "Behavioral", "items": ["STAR stories", "Conflict stories", "Project deep dive"]},
        {"section": "System Design", "items": ["Caching", "Pagination", "Offline sync"]},
    ],
    "weeklyDrillPlan": [
        {"day": day, "drills": ["Two timed problems", "Review mistakes"]}
        for day in ("Mon", "Tue", "Wed", "Thu", "Fri")
    ],
    "starterQuestions": [
        "Reverse a linked list",
        "Two sum with a hash map",
        "Validate a binary search tree",
        "Explain ARC in Swift",
        "Design an image cache",
    ],
    "resources": RESOURCES,
}


class FakeChatModel:
    """Stands in for ChatOllama: returns canned content, raises, or stalls."""

    def __init__(self, content=None, exc=None, delay=0.0, usage=None):
        self.content = content
        self.exc = exc
        self.delay = delay
        self.usage = usage if usage is not None else {"input_tokens": 120, "output_tokens": 80, "total_tokens": 200}
        self.calls = []
        self.cancelled = False
        self.schemas = []

    def factory(self, _config, output_schema=None):
        self.schemas.append(output_schema)
        return self

    async def ainvoke(self, messages):
        self.calls.append(messages)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.exc is not None:
            raise self.exc
        content = self.content if isinstance(self.content, str) else json.dumps(self.content)
        return SimpleNamespace(content=content, usage_metadata=self.usage)


@pytest.fixture
def profile_data():
    return copy.deepcopy(PROFILE_DATA)


@pytest.fixture
def profile():
    return Profile.model_validate(PROFILE_DATA)


@pytest.fixture
def plan():
    return copy.deepcopy(PLAN)


@pytest.fixture
def prep():
    return copy.deepcopy(PREP)


@pytest.fixture
def app_settings(tmp_path):
    return Settings(
        model="test-model",
        model_timeout_ms=15000,
        eval_log_path=str(tmp_path / "interactions.jsonl"),
        eval_transcript_path=str(tmp_path / "transcripts.jsonl"),
        store_transcripts=False,
    )


@pytest.fixture
def make_pipeline(app_settings):
    """Build a pipeline around a FakeChatModel; returns (pipeline, settings)."""

    def _make(llm: FakeChatModel, **overrides):
        config = app_settings.model_copy(update=overrides)
        components = PipelineComponents(
            composer=PromptComposer(),
            invoker=ModelInvoker(config, chat_model_factory=llm.factory),
            gate=SafetyGate(config.safety),
            fallback=FallbackProvider(),
            eval_logger=EvalLogger(
                config.eval_log_path,
                config.eval_transcript_path,
                store_transcripts=config.store_transcripts,
            ),
            snippet_chars=config.snippet_max_chars,
        )
        return GenerationPipeline(components), config

    return _make


def read_log(path):
    with open(path, encoding="utf-8") as handle:
        return [json.loads(line) for line in handle if line.strip()]


@pytest.fixture
def log_reader():
    return read_log
