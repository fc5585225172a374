"""Factory for the Ollama-backed chat model."""

from __future__ import annotations

from typing import Any

from langchain_ollama import ChatOllama

from careerroutine.config import Settings


def get_chat_model(config: Settings, output_schema: dict[str, Any] | None = None):
    """Return a ChatOllama instance in schema-constrained output mode.

    Parameters
    ----------
    config : Settings
        Injected application settings.
    output_schema : dict | None
        JSON Schema the backend must constrain its output to. Falls back to
        plain JSON mode when omitted.

    Returns
    -------
    langchain_ollama.ChatOllama
        A chat model connected to the configured Ollama server.
    """
    return ChatOllama(
        base_url=config.ollama_base_url,
        model=config.model,
        temperature=config.temperature,
        format=output_schema or "json",
    )
