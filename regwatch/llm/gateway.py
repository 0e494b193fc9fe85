"""Thin async wrapper around LiteLLM for LLM completions."""

import logging
from typing import Any

import litellm
from pydantic import BaseModel

from config.settings import settings

logger = logging.getLogger(__name__)


class CompletionResult(BaseModel):
    """Result from an LLM completion, carrying both content and tool calls."""

    content: str | None = None
    tool_calls: list[Any] | None = None
    raw_message: Any = None
    model: str = ""


class LLMGateway:
    """Async LLM completion via LiteLLM."""

    def __init__(self, model: str | None = None, temperature: float = 0.1) -> None:
        self.model = model or settings.llm_default_model
        self.temperature = temperature

    async def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        json_mode: bool = False,
    ) -> CompletionResult:
        """Send messages to the LLM and return the response.

        Args:
            messages: OpenAI-format message list (system/user/assistant/tool).
            tools: Optional tool definitions in OpenAI format.
            json_mode: Ask the provider for a single JSON object response.

        Returns:
            CompletionResult with content, tool_calls, and raw message.
        """
        logger.info(
            "Calling LLM model=%s tools=%s json=%s", self.model, bool(tools), json_mode
        )
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
        }
        if tools:
            kwargs["tools"] = tools
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        response = await litellm.acompletion(**kwargs)
        message = response.choices[0].message

        return CompletionResult(
            content=message.content,
            tool_calls=message.tool_calls,
            raw_message=message,
            model=response.model or self.model,
        )
