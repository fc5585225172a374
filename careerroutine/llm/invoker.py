"""Single schema-constrained model call under a hard timeout."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from langchain_core.messages import HumanMessage, SystemMessage
from ollama import ResponseError

from careerroutine.config import Settings
from careerroutine.errors import ModelTimeout, ServiceError
from careerroutine.llm.ollama_client import get_chat_model
from careerroutine.prompts.composer import ComposedPrompt

logger = logging.getLogger("uvicorn.error")


@dataclass
class ModelResponse:
    text: str
    model: str
    usage: dict[str, int] = field(default_factory=dict)


def _usage_from(response: Any) -> dict[str, int]:
    metadata = getattr(response, "usage_metadata", None) or {}
    usage = {}
    for key in ("input_tokens", "output_tokens", "total_tokens"):
        value = metadata.get(key)
        if isinstance(value, int):
            usage[key] = value
    return usage


class ModelInvoker:
    """Makes exactly one generation call per ``invoke``.

    Never retries: retry policy belongs to the caller. On timeout the
    in-flight call is cancelled and ``ModelTimeout`` raised; transport and
    HTTP failures become ``ServiceError``.
    """

    def __init__(self, config: Settings, chat_model_factory: Callable[..., Any] = get_chat_model):
        self._config = config
        self._chat_model_factory = chat_model_factory

    @property
    def model_id(self) -> str:
        return self._config.model

    async def invoke(self, prompt: ComposedPrompt) -> ModelResponse:
        llm = self._chat_model_factory(self._config, prompt.output_schema)
        messages = [
            SystemMessage(content=prompt.system_prompt),
            HumanMessage(content=prompt.user_prompt),
        ]
        timeout_ms = self._config.model_timeout_ms
        logger.info("Model call started model=%s timeout_ms=%s", self.model_id, timeout_ms)
        try:
            # wait_for cancels the pending ainvoke when the bound expires.
            response = await asyncio.wait_for(llm.ainvoke(messages), timeout=self._config.model_timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error("Model call timed out after %sms", timeout_ms)
            raise ModelTimeout(timeout_ms) from exc
        except ResponseError as exc:
            logger.error("Model backend returned %s: %s", exc.status_code, exc.error)
            raise ServiceError(str(exc.error), status_code=exc.status_code) from exc
        except Exception as exc:
            logger.error("Model call failed: %s", exc)
            raise ServiceError(str(exc) or exc.__class__.__name__) from exc

        content = getattr(response, "content", response)
        if not isinstance(content, str):
            content = str(content)
        if not content.strip():
            raise ServiceError("Empty response from model")

        usage = _usage_from(response)
        logger.info("Model call finished tokens=%s", usage.get("total_tokens"))
        return ModelResponse(text=content, model=self.model_id, usage=usage)
