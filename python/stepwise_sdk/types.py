"""Public type definitions for stepwise-agent-sdk.

Conversation messages, model step results, run configuration and the
value types the agent runtime returns.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

__all__ = [
    "MessageRole",
    "MemoryScope",
    "ToolCall",
    "ToolResult",
    "Message",
    "FinalAnswer",
    "ToolInvocations",
    "StepResult",
    "BudgetExhausted",
    "RunOutcome",
    "RunConfig",
    "RunState",
    "StepEvent",
    "HookContext",
]


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class RunState(str, Enum):
    """State a :class:`StepEvent` reports for the step it closes."""

    TOOL_DISPATCH = "tool_dispatch"
    DONE = "done"
    BUDGET_EXHAUSTED = "budget_exhausted"


@dataclass(frozen=True)
class MemoryScope:
    """Key of a conversation thread: ``(resource_id, thread_id)``."""

    resource_id: str
    thread_id: str

    def __str__(self) -> str:
        return f"{self.resource_id}/{self.thread_id}"


# ---------------------------------------------------------------------------
# Tool call payloads
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    call_id: str
    tool_id: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"call_id": self.call_id, "tool_id": self.tool_id, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        return cls(
            call_id=data["call_id"],
            tool_id=data["tool_id"],
            arguments=data.get("arguments") or {},
        )


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool call: either ``output`` or ``error`` is set."""

    call_id: str
    tool_id: str
    output: dict[str, Any] | None = None
    error: dict[str, Any] | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"call_id": self.call_id, "tool_id": self.tool_id}
        if self.error is not None:
            d["error"] = self.error
        else:
            d["output"] = self.output
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolResult:
        return cls(
            call_id=data["call_id"],
            tool_id=data["tool_id"],
            output=data.get("output"),
            error=data.get("error"),
        )

    def to_json(self) -> str:
        """Content string shown to the model."""
        body = {"error": self.error} if self.error is not None else self.output
        return json.dumps(body, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Message:
    """One entry of a conversation thread.

    ``ordinal`` is ``-1`` until the memory store persists the message and
    assigns its position in the thread.
    """

    role: MessageRole
    content: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_result: ToolResult | None = None
    ordinal: int = -1
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(MessageRole.USER, content=text)

    @classmethod
    def assistant(cls, text: str, tool_calls: tuple[ToolCall, ...] = ()) -> Message:
        return cls(MessageRole.ASSISTANT, content=text, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, result: ToolResult) -> Message:
        return cls(MessageRole.TOOL, content=result.to_json(), tool_result=result)

    @property
    def is_tool_dispatch(self) -> bool:
        return self.role is MessageRole.ASSISTANT and bool(self.tool_calls)

    def with_ordinal(self, ordinal: int) -> Message:
        return replace(self, ordinal=ordinal)

    def text(self) -> str:
        return self.content


# ---------------------------------------------------------------------------
# Model step results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FinalAnswer:
    """The model finished with a text answer."""

    text: str


@dataclass(frozen=True)
class ToolInvocations:
    """The model requested one or more tool calls.

    ``text`` carries any assistant text emitted alongside the calls.
    """

    calls: tuple[ToolCall, ...]
    text: str = ""

    def __post_init__(self) -> None:
        if not self.calls:
            raise ValueError("ToolInvocations requires at least one call")


StepResult = Union[FinalAnswer, ToolInvocations]


@dataclass(frozen=True)
class BudgetExhausted:
    """The step budget ran out before the model produced a final answer.

    This is a reported condition, not an error.
    """

    partial_text: str
    steps: int


RunOutcome = Union[FinalAnswer, BudgetExhausted]


@dataclass(frozen=True)
class RunConfig:
    """Per-run settings: step budget and memory scope."""

    max_steps: int
    scope: MemoryScope

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be positive, got {self.max_steps}")


# ---------------------------------------------------------------------------
# Events and hook context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepEvent:
    """Published after every completed step of a run."""

    scope: MemoryScope
    step: int
    state: RunState
    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    tool_results: tuple[ToolResult, ...] = ()


@dataclass
class HookContext:
    """Context object passed to lifecycle hook callbacks."""

    hook_type: str
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value
