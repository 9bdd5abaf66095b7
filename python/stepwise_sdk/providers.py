"""Model clients for the agent runtime.

A :class:`ModelClient` receives the ordered thread history and the
model-visible tool definitions and returns one
:class:`~stepwise_sdk.types.StepResult`. Retries, rate limiting and
backoff are the client's own business; the runtime only sees a result
or :class:`~stepwise_sdk.exceptions.ModelUnavailableError`.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import openai
from openai import AsyncOpenAI

from stepwise_sdk.exceptions import ModelUnavailableError
from stepwise_sdk.options import AgentOptions
from stepwise_sdk.types import (
    FinalAnswer,
    Message,
    MessageRole,
    StepResult,
    ToolCall,
    ToolInvocations,
)

logger = logging.getLogger(__name__)

__all__ = ["ModelClient", "OpenAIModelClient"]


class ModelClient(ABC):
    """Base model client interface."""

    @abstractmethod
    async def invoke(
        self,
        history: Sequence[Message],
        tools: Sequence[dict[str, Any]],
        *,
        instructions: str | None = None,
    ) -> StepResult:
        """Run one model turn over ``history``.

        Parameters
        ----------
        history:
            The full thread, oldest first.
        tools:
            Tool definitions as returned by
            :meth:`ToolRegistry.definitions`.
        instructions:
            Optional system prompt.
        """

    async def close(self) -> None:
        """Release transport resources."""


class OpenAIModelClient(ModelClient):
    """Client for OpenAI-compatible chat-completions APIs.

    Parameters
    ----------
    options:
        Model, sampling and transport settings.
    client:
        Pre-built ``AsyncOpenAI`` instance. Created from ``options`` on
        first use when omitted.
    """

    def __init__(self, options: AgentOptions | None = None, *, client: AsyncOpenAI | None = None) -> None:
        self._options = options or AgentOptions()
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            client_kwargs: dict[str, Any] = {
                "timeout": self._options.timeout,
                "max_retries": self._options.max_retries,
            }
            if self._options.api_key:
                client_kwargs["api_key"] = self._options.api_key
            if self._options.base_url:
                client_kwargs["base_url"] = self._options.base_url
            try:
                self._client = AsyncOpenAI(**client_kwargs)
            except openai.OpenAIError as exc:
                raise ModelUnavailableError(f"cannot create OpenAI client: {exc}") from exc
        return self._client

    @property
    def model(self) -> str:
        return self._options.model

    async def invoke(
        self,
        history: Sequence[Message],
        tools: Sequence[dict[str, Any]],
        *,
        instructions: str | None = None,
    ) -> StepResult:
        request_kwargs: dict[str, Any] = {
            "model": self._options.model,
            "messages": self.to_chat_messages(history, instructions),
        }
        if tools:
            request_kwargs["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": definition["name"],
                        "description": definition["description"],
                        "parameters": definition["input_schema"],
                    },
                }
                for definition in tools
            ]
            request_kwargs["tool_choice"] = "auto"
            request_kwargs["parallel_tool_calls"] = self._options.parallel_tool_calls
        if self._options.temperature is not None:
            request_kwargs["temperature"] = self._options.temperature
        if self._options.max_tokens is not None:
            request_kwargs["max_tokens"] = self._options.max_tokens

        try:
            response = await self.client.chat.completions.create(**request_kwargs)
        except openai.APIError as exc:
            logger.warning("Model request failed model=%s error=%s", self._options.model, exc)
            raise ModelUnavailableError(str(exc)) from exc

        if not response.choices:
            raise ModelUnavailableError("model returned no choices")
        return self.parse_message(response.choices[0].message)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    # -- Conversion ----------------------------------------------------------

    @staticmethod
    def to_chat_messages(
        history: Sequence[Message], instructions: str | None = None
    ) -> list[dict[str, Any]]:
        """Convert a thread to chat-completions messages."""
        messages: list[dict[str, Any]] = []
        if instructions:
            messages.append({"role": "system", "content": instructions})

        for msg in history:
            if msg.role is MessageRole.USER:
                messages.append({"role": "user", "content": msg.content})
            elif msg.role is MessageRole.ASSISTANT:
                entry: dict[str, Any] = {"role": "assistant", "content": msg.content or None}
                if msg.tool_calls:
                    entry["tool_calls"] = [
                        {
                            "id": call.call_id,
                            "type": "function",
                            "function": {
                                "name": call.tool_id,
                                "arguments": json.dumps(call.arguments, ensure_ascii=False),
                            },
                        }
                        for call in msg.tool_calls
                    ]
                messages.append(entry)
            elif msg.role is MessageRole.TOOL and msg.tool_result is not None:
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": msg.tool_result.call_id,
                        "content": msg.content,
                    }
                )
        return messages

    @classmethod
    def parse_message(cls, message: Any) -> StepResult:
        """Turn a chat-completions message into a step result."""
        text = (message.content or "").strip()
        calls = [
            ToolCall(
                call_id=call.id,
                tool_id=call.function.name,
                arguments=cls._safe_parse_arguments(call.function.arguments),
            )
            for call in (message.tool_calls or [])
        ]
        if calls:
            return ToolInvocations(calls=tuple(calls), text=text)
        return FinalAnswer(text)

    @staticmethod
    def _safe_parse_arguments(raw: str | None) -> dict[str, Any]:
        if not raw:
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding malformed tool arguments: %.200s", raw)
            return {}
        return parsed if isinstance(parsed, dict) else {}
