"""Tests for pipeline graph routing and topology."""

import asyncio

import careerroutine.graph.builder as builder
from careerroutine.graph.routing import route_after_stage
from conftest import FakeChatModel


def test_route_continues_without_error():
    assert route_after_stage({"error": None}) == "continue"
    assert route_after_stage({}) == "continue"


def test_route_falls_back_on_error():
    assert route_after_stage({"error": {"code": "timeout"}, "trace_id": "t"}) == "fallback"


def test_invoke_failure_skips_later_stages(monkeypatch, make_pipeline, profile):
    visited = []

    def recording(name):
        async def node(state, config):
            visited.append(name)
            return {}

        return node

    monkeypatch.setattr(builder, "repair_node", recording("repair"))
    monkeypatch.setattr(builder, "schema_validate_node", recording("schema_validate"))
    monkeypatch.setattr(builder, "safety_gate_node", recording("safety_gate"))
    pipeline, _ = make_pipeline(FakeChatModel(exc=ConnectionError("down")))

    outcome = asyncio.run(pipeline.run("routine", profile))

    assert visited == []
    assert outcome.used_fallback is True
    assert outcome.fallback_reason == "service_error"


def test_safety_gate_failure_routes_to_fallback(monkeypatch, make_pipeline, profile, plan):
    async def rejecting_gate(state, config):
        return {"error": {"code": "safety_rejection", "message": "nope", "details": {}}}

    monkeypatch.setattr(builder, "safety_gate_node", rejecting_gate)
    pipeline, _ = make_pipeline(FakeChatModel(content=plan))

    outcome = asyncio.run(pipeline.run("routine", profile))

    assert outcome.used_fallback is True
    assert outcome.fallback_reason == "safety_rejection"
