"""Shared fixtures: scripted model clients that drive the agent loop."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Any

import pytest

from stepwise_sdk.memory import InMemoryStore
from stepwise_sdk.providers import ModelClient
from stepwise_sdk.types import (
    FinalAnswer,
    MemoryScope,
    Message,
    StepResult,
    ToolCall,
    ToolInvocations,
)


def invoke_tools(*calls: ToolCall, text: str = "") -> ToolInvocations:
    return ToolInvocations(calls=tuple(calls), text=text)


class ScriptedModel(ModelClient):
    """Returns a fixed sequence of step results.

    Entries may be a :class:`StepResult`, an exception instance to raise,
    or a callable receiving the history and returning a step result.
    """

    def __init__(self, script: Sequence[StepResult | BaseException | Callable]) -> None:
        self._script = list(script)
        self.histories: list[tuple[Message, ...]] = []
        self.tool_lists: list[list[dict[str, Any]]] = []
        self.instructions: list[str | None] = []
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.histories)

    async def invoke(self, history, tools, *, instructions=None) -> StepResult:
        self.histories.append(tuple(history))
        self.tool_lists.append(list(tools))
        self.instructions.append(instructions)
        if not self._script:
            raise AssertionError("scripted model ran out of steps")
        step = self._script.pop(0)
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step(history)
        return step

    async def close(self) -> None:
        self.closed = True


class LoopingModel(ModelClient):
    """Requests the same tool forever."""

    def __init__(self, tool_id: str = "echo", text: str = "still working") -> None:
        self.tool_id = tool_id
        self.text = text
        self.call_count = 0

    async def invoke(self, history, tools, *, instructions=None) -> StepResult:
        self.call_count += 1
        call = ToolCall(f"call-{self.call_count}", self.tool_id, {"text": f"round {self.call_count}"})
        return ToolInvocations(calls=(call,), text=f"{self.text} {self.call_count}")


class SlowModel(ModelClient):
    """Sleeps before answering, to exercise timeouts."""

    def __init__(self, delay: float, result: StepResult | None = None) -> None:
        self.delay = delay
        self.result = result or FinalAnswer("late")

    async def invoke(self, history, tools, *, instructions=None) -> StepResult:
        await asyncio.sleep(self.delay)
        return self.result


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def scope() -> MemoryScope:
    return MemoryScope("demo-user", "thread-1")
