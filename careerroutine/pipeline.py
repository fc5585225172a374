"""Wires the pipeline components together and runs one request through the graph."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

from careerroutine.config import Settings
from careerroutine.evals.logger import EvalLogger
from careerroutine.fallback import FallbackProvider
from careerroutine.graph.builder import build_graph
from careerroutine.graph.nodes import build_entry
from careerroutine.llm.invoker import ModelInvoker
from careerroutine.models.state import OperationKind, PipelineState
from careerroutine.prompts.composer import PromptComposer
from careerroutine.safety.gate import SafetyGate
from careerroutine.schemas.profile import Profile

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class PipelineComponents:
    composer: PromptComposer
    invoker: ModelInvoker
    gate: SafetyGate
    fallback: FallbackProvider
    eval_logger: EvalLogger
    snippet_chars: int = 200


@dataclass
class PipelineOutcome:
    trace_id: str
    payload: dict[str, Any]
    used_fallback: bool
    fallback_reason: str | None = None
    assessment: dict[str, Any] | None = None


def build_components(config: Settings) -> PipelineComponents:
    """Instantiate every collaborator from the injected settings."""
    return PipelineComponents(
        composer=PromptComposer(),
        invoker=ModelInvoker(config),
        gate=SafetyGate(config.safety),
        fallback=FallbackProvider(),
        eval_logger=EvalLogger(
            config.eval_log_path,
            config.eval_transcript_path,
            store_transcripts=config.store_transcripts,
        ),
        snippet_chars=config.snippet_max_chars,
    )


def new_trace_id() -> str:
    return str(uuid.uuid4())


class GenerationPipeline:
    """Runs validated input through compose → invoke → repair → validate → gate.

    Any failure from invoke onwards resolves to the fallback payload; the
    result is always logged exactly once.
    """

    def __init__(self, components: PipelineComponents, graph=None):
        self.components = components
        self.graph = graph if graph is not None else build_graph()

    async def run(
        self,
        kind: OperationKind,
        profile: Profile,
        *,
        trace_id: str | None = None,
        preferences: dict[str, Any] | None = None,
        section: str | None = None,
        current_plan: dict[str, Any] | None = None,
    ) -> PipelineOutcome:
        trace_id = trace_id or new_trace_id()
        state: PipelineState = {
            "trace_id": trace_id,
            "kind": kind,
            "profile": profile,
            "preferences": preferences or {},
            "section": section,
            "current_plan": current_plan,
            "error": None,
            "used_fallback": False,
            "assessment": None,
            "quality_issues": [],
            "started_at": time.perf_counter(),
        }
        logger.info("[%s] Pipeline started kind=%s section=%s", trace_id, kind, section)
        run_status = {"logged": False}
        config = {"configurable": {"components": self.components, "run_status": run_status}}
        result: dict[str, Any] = dict(state)
        try:
            async for result in self.graph.astream(state, config=config, stream_mode="values"):
                pass
        except asyncio.CancelledError:
            self._record_cancelled(result, run_status)
            raise
        error = result.get("error") or {}
        logger.info("[%s] Pipeline finished fallback=%s", trace_id, bool(result.get("used_fallback")))
        return PipelineOutcome(
            trace_id=trace_id,
            payload=result["payload"],
            used_fallback=bool(result.get("used_fallback")),
            fallback_reason=error.get("code"),
            assessment=result.get("assessment"),
        )

    def _record_cancelled(self, state: dict[str, Any], run_status: dict[str, bool]) -> None:
        """Log a model call that finished before the caller went away.

        A call still in flight at cancellation is logged by the invoke node
        once it completes.
        """
        if run_status["logged"] or not state.get("raw_text"):
            return
        logger.warning("[%s] Pipeline cancelled after model call, logging partial interaction", state.get("trace_id"))
        self.components.eval_logger.record(build_entry(state, self.components, cancelled=True))
