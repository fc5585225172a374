"""LangGraph graph builder for the generation pipeline."""

from langgraph.graph import StateGraph, START, END

from careerroutine.models.state import PipelineState
from careerroutine.graph.nodes import (
    compose_node,
    invoke_node,
    repair_node,
    schema_validate_node,
    safety_gate_node,
    fallback_node,
    log_node,
)
from careerroutine.graph.routing import route_after_stage


def build_graph():
    """Construct and compile the per-request state machine.

    Graph topology::

        START → compose → invoke → repair → schema_validate → safety_gate → log → END
                            ↓         ↓            ↓               ↓
                            └─────────┴──── fallback ──────────────┘→ log

    Returns
    -------
    langgraph.graph.CompiledGraph
        The compiled, ready-to-invoke graph.
    """
    graph = StateGraph(PipelineState)

    # --- Add nodes ---
    graph.add_node("compose", compose_node)
    graph.add_node("invoke", invoke_node)
    graph.add_node("repair", repair_node)
    graph.add_node("schema_validate", schema_validate_node)
    graph.add_node("safety_gate", safety_gate_node)
    graph.add_node("fallback", fallback_node)
    graph.add_node("log", log_node)

    # --- Entry point ---
    graph.add_edge(START, "compose")
    graph.add_edge("compose", "invoke")

    # --- Each stage either continues or falls back ---
    graph.add_conditional_edges("invoke", route_after_stage, {"continue": "repair", "fallback": "fallback"})
    graph.add_conditional_edges("repair", route_after_stage, {"continue": "schema_validate", "fallback": "fallback"})
    graph.add_conditional_edges("schema_validate", route_after_stage, {"continue": "safety_gate", "fallback": "fallback"})
    graph.add_conditional_edges("safety_gate", route_after_stage, {"continue": "log", "fallback": "fallback"})

    # --- Fallback is never retried ---
    graph.add_edge("fallback", "log")
    graph.add_edge("log", END)

    return graph.compile()
