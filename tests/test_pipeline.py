"""End-to-end pipeline behaviour against a fake chat model."""

import asyncio
import json
import threading
import time

import pytest
from ollama import ResponseError

import careerroutine.graph.builder as builder
from careerroutine.graph.nodes import invoke_node
from careerroutine.prompts.composer import PromptComposer
from careerroutine.schemas.plan import Plan
from careerroutine.schemas.prep import PrepPack
from careerroutine.schemas.profile import Profile
from careerroutine.utils.llm_parse import validate_against_schema
from conftest import PROFILE_DATA, RESOURCES, FakeChatModel

MARKER = "[Content filtered for safety]"


def _offtopic_plan(plan):
    plan["milestones"] = ["Review investment basics", "Learn crypto trading", "Offer financial advice to peers"]
    return plan


FAILURES = [
    ("timeout", lambda plan: FakeChatModel(content=plan, delay=5), {"model_timeout_ms": 50}),
    ("service_error", lambda plan: FakeChatModel(exc=ResponseError("model not found", 404)), {}),
    ("service_error", lambda plan: FakeChatModel(exc=ConnectionError("connection refused")), {}),
    ("parse_error", lambda plan: FakeChatModel(content="Sorry, I can't help with that."), {}),
    ("schema_error", lambda plan: FakeChatModel(content={"plan": "a week of study"}), {}),
    ("safety_rejection", lambda plan: FakeChatModel(content=_offtopic_plan(plan)), {}),
]


def test_routine_success_returns_model_plan_and_logs_once(make_pipeline, log_reader, profile, plan):
    llm = FakeChatModel(content=plan)
    pipeline, config = make_pipeline(llm)

    outcome = asyncio.run(pipeline.run("routine", profile, trace_id="trace-ok"))

    assert outcome.used_fallback is False
    assert outcome.payload == plan
    assert outcome.assessment["level"] == "SAFE"

    entries = log_reader(config.eval_log_path)
    assert len(entries) == 1
    entry = entries[0]
    assert entry["traceId"] == "trace-ok"
    assert entry["operation"] == "routine"
    assert entry["model"] == "test-model"
    assert entry["usedFallback"] is False
    assert entry["fallbackReason"] is None
    assert entry["tokens"] == 200
    assert entry["hasURLs"] is True
    assert entry["promptLength"] > 0
    assert "Alex Chen" not in str(entry)


def test_prep_success(make_pipeline, profile, prep):
    pipeline, _ = make_pipeline(FakeChatModel(content=prep))

    outcome = asyncio.run(pipeline.run("prep", profile))

    assert outcome.used_fallback is False
    assert outcome.payload == prep


@pytest.mark.parametrize("reason, make_llm, overrides", FAILURES)
def test_any_stage_failure_resolves_to_fallback(reason, make_llm, overrides, make_pipeline, log_reader, profile, plan):
    pipeline, config = make_pipeline(make_llm(plan), **overrides)

    outcome = asyncio.run(pipeline.run("routine", profile))

    assert outcome.used_fallback is True
    assert outcome.fallback_reason == reason
    validate_against_schema(outcome.payload, Plan)
    assert outcome.payload["milestones"][0] == "Solve 10 easy or medium coding problems"

    entries = log_reader(config.eval_log_path)
    assert len(entries) == 1
    assert entries[0]["usedFallback"] is True
    assert entries[0]["fallbackReason"] == reason


def test_prep_failure_returns_canonical_prep(make_pipeline, profile):
    pipeline, _ = make_pipeline(FakeChatModel(content="not json at all"))

    outcome = asyncio.run(pipeline.run("prep", profile))

    assert outcome.used_fallback is True
    validate_against_schema(outcome.payload, PrepPack)


def test_timeout_returns_fallback_promptly(make_pipeline, profile, plan):
    llm = FakeChatModel(content=plan, delay=5)
    pipeline, _ = make_pipeline(llm, model_timeout_ms=50)

    started = time.monotonic()
    outcome = asyncio.run(pipeline.run("routine", profile))

    assert time.monotonic() - started < 2
    assert outcome.fallback_reason == "timeout"
    assert llm.cancelled is True


def test_model_called_exactly_once_even_on_failure(make_pipeline, profile):
    llm = FakeChatModel(exc=ResponseError("overloaded", 503))
    pipeline, _ = make_pipeline(llm)

    asyncio.run(pipeline.run("routine", profile))

    assert len(llm.calls) == 1


def test_reroll_success_returns_only_the_section(make_pipeline, profile, plan):
    new_resources = [
        {"title": "Swift by Sundell", "url": "https://www.swiftbysundell.com"},
        {"title": "Kodeco iOS Interview Questions", "url": "https://www.kodeco.com/ios"},
        {"title": "Exercism Swift Track", "url": "https://exercism.org/tracks/swift"},
        {"title": "Pramp", "url": "https://www.pramp.com"},
    ]
    llm = FakeChatModel(content={"resources": new_resources})
    pipeline, _ = make_pipeline(llm)

    outcome = asyncio.run(pipeline.run("reroll", profile, section="resources", current_plan=plan))

    assert outcome.used_fallback is False
    assert outcome.payload == {"resources": new_resources}
    assert list(llm.schemas[0]["properties"]) == ["resources"]


def test_reroll_time_blocks_are_normalized_to_budget(make_pipeline, profile, plan):
    doubled = {
        day: [{**block, "durationHours": block["durationHours"] * 2} for block in blocks]
        for day, blocks in plan["timeBlocks"].items()
    }
    doubled["Sat"] = [{"durationHours": 1.0, "label": "Weekend review"}]
    pipeline, _ = make_pipeline(FakeChatModel(content={"timeBlocks": doubled}))

    outcome = asyncio.run(pipeline.run("reroll", profile, section="timeBlocks", current_plan=plan))

    assert outcome.used_fallback is False
    assert outcome.payload == {"timeBlocks": plan["timeBlocks"]}


def test_routine_with_empty_active_day_falls_back(make_pipeline, profile, plan):
    plan["timeBlocks"]["Mon"] = []
    pipeline, _ = make_pipeline(FakeChatModel(content=plan))

    outcome = asyncio.run(pipeline.run("routine", profile))

    assert outcome.used_fallback is True
    assert outcome.fallback_reason == "safety_rejection"
    mon = outcome.payload["timeBlocks"]["Mon"]
    assert sum(block["durationHours"] for block in mon) == pytest.approx(2.0, abs=0.1)


def test_routine_with_many_tiny_blocks_still_meets_budget(make_pipeline, plan):
    profile = Profile.model_validate({**PROFILE_DATA, "timeBudgetHoursPerDay": 0.5})
    for day in profile.availableDays:
        plan["timeBlocks"][day] = [{"durationHours": 0.1, "label": f"Drill {i}"} for i in range(20)]
    pipeline, _ = make_pipeline(FakeChatModel(content=plan))

    outcome = asyncio.run(pipeline.run("routine", profile))

    assert outcome.used_fallback is False
    for day, blocks in outcome.payload["timeBlocks"].items():
        if profile.is_active(day):
            assert abs(sum(block["durationHours"] for block in blocks) - 0.5) <= 0.1
        else:
            assert blocks == []


def test_time_blocks_reroll_with_empty_active_day_keeps_current_section(make_pipeline, profile, plan):
    blocks = {day: list(value) for day, value in plan["timeBlocks"].items()}
    blocks["Fri"] = []
    pipeline, _ = make_pipeline(FakeChatModel(content={"timeBlocks": blocks}))

    outcome = asyncio.run(pipeline.run("reroll", profile, section="timeBlocks", current_plan=plan))

    assert outcome.used_fallback is True
    assert outcome.payload == {"timeBlocks": plan["timeBlocks"]}


@pytest.mark.parametrize("section", ["timeBlocks", "resources", "dailyTasks"])
def test_reroll_failure_returns_current_section_unchanged(section, make_pipeline, profile, plan):
    pipeline, _ = make_pipeline(FakeChatModel(content='{"unexpected": true}'))

    outcome = asyncio.run(pipeline.run("reroll", profile, section=section, current_plan=plan))

    assert outcome.used_fallback is True
    assert outcome.payload == {section: plan[section]}


def test_reroll_with_extra_sections_is_rejected(make_pipeline, profile, plan):
    content = {"resources": RESOURCES, "milestones": plan["milestones"]}
    pipeline, _ = make_pipeline(FakeChatModel(content=content))

    outcome = asyncio.run(pipeline.run("reroll", profile, section="resources", current_plan=plan))

    assert outcome.fallback_reason == "schema_error"
    assert outcome.payload == {"resources": plan["resources"]}


def test_redacted_field_is_returned_filtered_and_logged_high_risk(make_pipeline, log_reader, profile, plan):
    plan["milestones"][0] = "Lorem ipsum dolor sit amet"
    pipeline, config = make_pipeline(FakeChatModel(content=plan))

    outcome = asyncio.run(pipeline.run("routine", profile))

    assert outcome.used_fallback is False
    assert outcome.payload["milestones"][0] == MARKER
    entry = log_reader(config.eval_log_path)[0]
    assert entry["hasHighRisk"] is True
    assert entry["redactions"] == 1


def test_repaired_model_output_is_accepted(make_pipeline, profile, plan):
    broken = "```json\n" + json.dumps(plan)[:-1] + ",}\n```"
    pipeline, _ = make_pipeline(FakeChatModel(content=broken))

    outcome = asyncio.run(pipeline.run("routine", profile))

    assert outcome.used_fallback is False
    assert outcome.payload == plan


def test_eval_logger_failure_does_not_fail_request(monkeypatch, make_pipeline, profile, plan):
    pipeline, _ = make_pipeline(FakeChatModel(content=plan))

    def explode(*_args, **_kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(pipeline.components.eval_logger, "record", explode)

    outcome = asyncio.run(pipeline.run("routine", profile))

    assert outcome.used_fallback is False


def test_transcripts_go_to_separate_store_when_enabled(make_pipeline, log_reader, profile, plan):
    pipeline, config = make_pipeline(FakeChatModel(content=plan), store_transcripts=True)

    asyncio.run(pipeline.run("routine", profile, trace_id="trace-t"))

    transcripts = log_reader(config.eval_transcript_path)
    assert transcripts[0]["traceId"] == "trace-t"
    assert "iOS Engineer" in transcripts[0]["userPrompt"]
    assert "userPrompt" not in log_reader(config.eval_log_path)[0]


def test_cancelled_request_still_logs_completed_model_call(make_pipeline, log_reader, profile, plan):
    pipeline, config = make_pipeline(FakeChatModel(content=plan, delay=0.2))
    state = {
        "trace_id": "trace-cancel",
        "kind": "routine",
        "profile": profile,
        "prompt": PromptComposer().compose("routine", profile),
        "started_at": time.perf_counter(),
    }
    run_config = {"configurable": {"components": pipeline.components}}

    async def scenario():
        task = asyncio.ensure_future(invoke_node(state, run_config))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.5)

    asyncio.run(scenario())

    entries = log_reader(config.eval_log_path)
    assert len(entries) == 1
    assert entries[0]["traceId"] == "trace-cancel"
    assert entries[0]["cancelled"] is True
    assert entries[0]["tokens"] == 200


def test_eval_record_is_written_off_the_event_loop_thread(monkeypatch, make_pipeline, profile, plan):
    pipeline, _ = make_pipeline(FakeChatModel(content=plan))
    eval_logger = pipeline.components.eval_logger
    original = eval_logger.record
    threads = []

    def recording(entry, transcript=None):
        threads.append(threading.current_thread())
        return original(entry, transcript)

    monkeypatch.setattr(eval_logger, "record", recording)

    asyncio.run(pipeline.run("routine", profile))

    assert len(threads) == 1
    assert threads[0] is not threading.main_thread()


def test_cancel_after_model_call_still_logs_once(monkeypatch, make_pipeline, log_reader, profile, plan):
    async def stalled_gate(state, config):
        await asyncio.sleep(5)
        return {}

    monkeypatch.setattr(builder, "safety_gate_node", stalled_gate)
    pipeline, config = make_pipeline(FakeChatModel(content=plan))

    async def scenario():
        task = asyncio.ensure_future(pipeline.run("routine", profile, trace_id="trace-late-cancel"))
        await asyncio.sleep(0.3)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    entries = log_reader(config.eval_log_path)
    assert len(entries) == 1
    assert entries[0]["traceId"] == "trace-late-cancel"
    assert entries[0]["cancelled"] is True
    assert entries[0]["tokens"] == 200
    assert entries[0]["responseLength"] > 0


def test_cancel_during_model_call_logs_exactly_once(make_pipeline, log_reader, profile, plan):
    pipeline, config = make_pipeline(FakeChatModel(content=plan, delay=0.3))

    async def scenario():
        task = asyncio.ensure_future(pipeline.run("routine", profile, trace_id="trace-early-cancel"))
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0.6)

    asyncio.run(scenario())

    entries = log_reader(config.eval_log_path)
    assert [entry["traceId"] for entry in entries] == ["trace-early-cancel"]
    assert entries[0]["cancelled"] is True
