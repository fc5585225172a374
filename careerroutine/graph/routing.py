"""Conditional edge functions for the pipeline graph."""

import logging

from careerroutine.models.state import PipelineState

logger = logging.getLogger("uvicorn.error")


def route_after_stage(state: PipelineState) -> str:
    """Continue down the happy path unless the last stage recorded a failure.

    Returns one of: 'continue', 'fallback'.
    """
    error = state.get("error")
    if error:
        logger.info("[%s] routing to fallback after %s", state.get("trace_id"), error.get("code"))
        return "fallback"
    return "continue"
