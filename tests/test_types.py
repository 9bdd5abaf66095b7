"""Tests for stepwise_sdk type definitions."""

from __future__ import annotations

import json

import pytest

from stepwise_sdk import (
    BudgetExhausted,
    FinalAnswer,
    HookContext,
    MemoryScope,
    Message,
    MessageRole,
    RunConfig,
    ToolCall,
    ToolInvocations,
    ToolResult,
)


class TestMemoryScope:
    def test_equality_and_hash(self):
        a = MemoryScope("user", "t1")
        b = MemoryScope("user", "t1")
        assert a == b
        assert len({a, b}) == 1

    def test_str(self):
        assert str(MemoryScope("user", "t1")) == "user/t1"


class TestMessage:
    def test_user_message(self):
        msg = Message.user("hello")
        assert msg.role is MessageRole.USER
        assert msg.text() == "hello"
        assert msg.ordinal == -1
        assert not msg.is_tool_dispatch

    def test_assistant_with_tool_calls(self):
        call = ToolCall("c1", "save-file", {"filename": "a.txt"})
        msg = Message.assistant("saving", (call,))
        assert msg.is_tool_dispatch
        assert msg.tool_calls[0].tool_id == "save-file"

    def test_tool_message_content_is_json(self):
        result = ToolResult("c1", "save-file", output={"success": True})
        msg = Message.tool(result)
        assert msg.role is MessageRole.TOOL
        assert json.loads(msg.content) == {"success": True}

    def test_with_ordinal_returns_copy(self):
        msg = Message.user("hi")
        stored = msg.with_ordinal(3)
        assert stored.ordinal == 3
        assert msg.ordinal == -1

    def test_frozen(self):
        msg = Message.user("hi")
        with pytest.raises(AttributeError):
            msg.content = "changed"  # type: ignore[misc]


class TestToolResult:
    def test_error_result(self):
        result = ToolResult("c1", "nope", error={"type": "UnknownTool", "message": "x"})
        assert result.is_error
        assert json.loads(result.to_json()) == {"error": {"type": "UnknownTool", "message": "x"}}

    def test_dict_round_trip_keeps_error(self):
        result = ToolResult("c1", "nope", error={"type": "UnknownTool", "message": "x"})
        assert ToolResult.from_dict(result.to_dict()) == result


class TestStepResults:
    def test_tool_invocations_requires_calls(self):
        with pytest.raises(ValueError):
            ToolInvocations(calls=())

    def test_final_answer(self):
        assert FinalAnswer("Done.").text == "Done."

    def test_budget_exhausted(self):
        outcome = BudgetExhausted(partial_text="half", steps=2)
        assert outcome.partial_text == "half"
        assert outcome.steps == 2


class TestRunConfig:
    def test_rejects_non_positive_budget(self):
        with pytest.raises(ValueError, match="positive"):
            RunConfig(max_steps=0, scope=MemoryScope("u", "t"))

    def test_valid(self):
        config = RunConfig(max_steps=3, scope=MemoryScope("u", "t"))
        assert config.max_steps == 3


class TestHookContext:
    def test_get_set(self):
        ctx = HookContext(hook_type="test", data={"key": "value"})
        assert ctx.get("key") == "value"
        assert ctx.get("missing", "default") == "default"

        ctx.set("new_key", 42)
        assert ctx.get("new_key") == 42
