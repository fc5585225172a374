"""LangGraph shared state definition for one generation request."""

from typing import Any, Literal
from typing_extensions import TypedDict

from careerroutine.schemas.profile import Profile

OperationKind = Literal["routine", "prep", "reroll"]


class PipelineState(TypedDict, total=False):
    """State passed between the pipeline nodes.

    Fields
    ------
    trace_id : str
        Per-request correlation id used in logs and the eval record.
    kind : OperationKind
        Which operation is being served.
    profile : Profile
        Validated, sanitized profile.
    preferences : dict[str, Any]
        Optional routine hints, already sanitized.
    section : str | None
        Reroll section name (timeBlocks | resources | dailyTasks).
    current_plan : dict[str, Any] | None
        Canonical current plan for reroll.
    prompt : ComposedPrompt
        Output of the compose node.
    raw_text : str
        Raw model response text.
    usage : dict[str, int]
        Token usage reported by the backend, when available.
    parsed : Any
        Repaired JSON value.
    payload : dict[str, Any]
        Current candidate payload; after the fallback node this is the fallback.
    assessment : dict[str, Any] | None
        RiskAssessment produced by the safety gate.
    quality_issues : list[str]
        Non-fatal issues recorded by the safety gate.
    error : dict[str, Any] | None
        ``PipelineError.to_dict()`` of the failure that triggered fallback.
    used_fallback : bool
        Whether ``payload`` came from the fallback provider.
    started_at : float
        ``time.perf_counter()`` at pipeline start.
    model_latency_ms : int
        Wall-clock time of the model call, successful or not.
    """

    trace_id: str
    kind: OperationKind
    profile: Profile
    preferences: dict[str, Any]
    section: str | None
    current_plan: dict[str, Any] | None
    prompt: Any
    raw_text: str
    usage: dict[str, int]
    parsed: Any
    payload: dict[str, Any]
    assessment: dict[str, Any] | None
    quality_issues: list[str]
    error: dict[str, Any] | None
    used_fallback: bool
    started_at: float
    model_latency_ms: int
