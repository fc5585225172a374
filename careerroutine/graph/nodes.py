"""Pipeline node functions.

Each node takes the shared state plus the LangGraph run config, pulls its
collaborators from ``config["configurable"]["components"]`` and returns a
partial state update. Stage failures are recorded in ``error`` instead of
raised so the graph can route to the fallback node.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from langchain_core.runnables import RunnableConfig

from careerroutine.errors import PipelineError, SafetyRejection
from careerroutine.evals.logger import InteractionLogEntry
from careerroutine.llm.invoker import ModelResponse
from careerroutine.models.state import PipelineState
from careerroutine.utils.constants import URL_RE
from careerroutine.utils.durations import normalize_plan_durations
from careerroutine.utils.llm_parse import repair_and_parse, validate_against_schema

logger = logging.getLogger("uvicorn.error")


def _components(config: RunnableConfig):
    return config["configurable"]["components"]


def _failure(exc: Exception, trace_id: str | None, stage: str) -> dict[str, Any]:
    if isinstance(exc, PipelineError):
        logger.warning("[%s] %s failed: %s %s", trace_id, stage, exc.code, exc.message)
        return exc.to_dict()
    logger.exception("[%s] Unexpected failure in %s", trace_id, stage)
    return {"code": "service_error", "message": f"Unexpected {type(exc).__name__} in {stage}", "details": {}}


def _elapsed_ms(started: float | None) -> int:
    return int((time.perf_counter() - started) * 1000) if started else 0


async def compose_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Build prompts and the output schema. Populates: prompt."""
    prompt = _components(config).composer.compose(
        state["kind"],
        state["profile"],
        preferences=state.get("preferences"),
        section=state.get("section"),
        current_plan=state.get("current_plan"),
    )
    return {"prompt": prompt}


async def invoke_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Single model call. Populates: raw_text, usage, model_latency_ms (or error)."""
    components = _components(config)
    trace_id = state.get("trace_id")
    started = time.perf_counter()
    task = asyncio.ensure_future(components.invoker.invoke(state["prompt"]))
    try:
        # Shielded so a cancelled request does not kill an already-dispatched
        # call; the invoker's own timeout still bounds it.
        response = await asyncio.shield(task)
    except asyncio.CancelledError:
        logger.warning("[%s] Request cancelled while model call in flight", trace_id)
        task.add_done_callback(lambda done: _log_orphaned(done, state, components))
        raise
    except Exception as exc:
        return {"error": _failure(exc, trace_id, "invoke"), "model_latency_ms": _elapsed_ms(started)}
    return {
        "raw_text": response.text,
        "usage": response.usage,
        "model_latency_ms": _elapsed_ms(started),
    }


def _log_orphaned(task: asyncio.Future, state: PipelineState, components) -> None:
    if task.cancelled() or task.exception() is not None:
        return
    entry = build_entry(state, components, response=task.result(), cancelled=True)
    components.eval_logger.record(entry)


async def repair_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Turn raw text into a JSON object. Populates: parsed (or error)."""
    components = _components(config)
    try:
        parsed = repair_and_parse(state.get("raw_text", ""), components.snippet_chars)
    except Exception as exc:
        return {"error": _failure(exc, state.get("trace_id"), "repair")}
    return {"parsed": parsed}


async def schema_validate_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Check the parsed object against the operation schema and normalize durations.

    Populates: payload (or error).
    """
    prompt = state["prompt"]
    try:
        payload = validate_against_schema(state.get("parsed"), prompt.schema_model)
    except Exception as exc:
        return {"error": _failure(exc, state.get("trace_id"), "schema_validate")}
    if state["kind"] == "routine" or state.get("section") in ("timeBlocks", "dailyTasks"):
        payload = normalize_plan_durations(payload, state["profile"], state.get("trace_id"))
    return {"payload": payload}


async def safety_gate_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Filter and score the payload. Populates: payload, assessment, quality_issues (or error)."""
    gate = _components(config).gate
    try:
        result = gate.review(
            state["payload"],
            state["profile"],
            state["prompt"].schema_model,
            enforce_budget=True,
        )
    except SafetyRejection as exc:
        return {
            "error": _failure(exc, state.get("trace_id"), "safety_gate"),
            "assessment": exc.assessment,
            "quality_issues": exc.issues,
        }
    except Exception as exc:
        return {"error": _failure(exc, state.get("trace_id"), "safety_gate")}
    return {
        "payload": result.payload,
        "assessment": result.summary(),
        "quality_issues": result.quality_issues,
    }


async def fallback_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Substitute the deterministic safe payload. Populates: payload, used_fallback."""
    error = state.get("error") or {}
    logger.warning(
        "[%s] Using fallback response kind=%s reason=%s",
        state.get("trace_id"),
        state["kind"],
        error.get("code"),
    )
    payload = _components(config).fallback.provide(
        state["kind"],
        state["profile"],
        section=state.get("section"),
        current_plan=state.get("current_plan"),
    )
    return {"payload": payload, "used_fallback": True}


def build_entry(
    state: PipelineState,
    components,
    *,
    response: ModelResponse | None = None,
    cancelled: bool = False,
) -> InteractionLogEntry:
    prompt = state.get("prompt")
    raw_text = response.text if response is not None else state.get("raw_text", "")
    usage = (response.usage if response is not None else state.get("usage")) or {}
    assessment = state.get("assessment") or {}
    error = state.get("error") or {}
    used_fallback = bool(state.get("used_fallback"))
    prompt_length = len(prompt.system_prompt) + len(prompt.user_prompt) if prompt is not None else 0
    return InteractionLogEntry(
        traceId=state.get("trace_id", ""),
        operation=state.get("kind", ""),
        section=state.get("section"),
        model=components.invoker.model_id,
        riskLevel=assessment.get("level"),
        riskScore=assessment.get("score"),
        confidence=assessment.get("confidence"),
        reasons=list(assessment.get("reasons") or []),
        latencyMs=_elapsed_ms(state.get("started_at")),
        modelLatencyMs=state.get("model_latency_ms"),
        tokens=usage.get("total_tokens", 0),
        promptTokens=usage.get("input_tokens", 0),
        completionTokens=usage.get("output_tokens", 0),
        promptLength=prompt_length,
        responseLength=len(raw_text or ""),
        hasURLs=bool(URL_RE.search(raw_text or "")),
        hasHighRisk=bool(assessment.get("hasHighRisk")),
        usedFallback=used_fallback,
        fallbackReason=error.get("code") if used_fallback else None,
        qualityIssues=list(state.get("quality_issues") or []),
        redactions=assessment.get("redactions", 0),
        cancelled=cancelled,
    )


async def log_node(state: PipelineState, config: RunnableConfig) -> dict:
    """Append exactly one interaction record. Never fails the request.

    The write runs in a worker thread. ``run_status["logged"]`` is claimed
    before it starts so a cancelled pipeline does not write a second record.
    """
    components = _components(config)
    run_status = config["configurable"].get("run_status")
    if run_status is not None:
        run_status["logged"] = True
    entry = build_entry(state, components)
    transcript = None
    prompt = state.get("prompt")
    if prompt is not None:
        transcript = {
            "systemPrompt": prompt.system_prompt,
            "userPrompt": prompt.user_prompt,
            "response": state.get("raw_text", ""),
        }
    try:
        await asyncio.to_thread(components.eval_logger.record, entry, transcript)
    except Exception as exc:
        logger.warning("[%s] Eval logging failed: %s", state.get("trace_id"), exc)
    return {}
