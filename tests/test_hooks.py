"""Tests for stepwise_sdk.hooks (HookRunner and decorators)."""

from __future__ import annotations

import pytest

from stepwise_sdk import HookRunner, HookType, hook
from stepwise_sdk.exceptions import HookError
from stepwise_sdk.types import HookContext


class TestHookRunner:
    def test_init(self):
        runner = HookRunner()
        assert runner._hooks == []
        assert len(runner) == 0

    def test_on_decorator_collects_hooks(self):
        runner = HookRunner()

        @runner.on(HookType.PreToolUse)
        async def my_hook(ctx: HookContext) -> HookContext:
            return ctx

        assert len(runner._hooks) == 1
        ht, cb, priority = runner._hooks[0]
        assert ht == HookType.PreToolUse
        assert cb is my_hook
        assert priority == 0

    def test_priority_ordering(self):
        runner = HookRunner()

        @runner.on(HookType.PromptSubmit, priority=10)
        async def late_hook(ctx: HookContext) -> HookContext:
            return ctx

        @runner.on(HookType.PromptSubmit, priority=1)
        async def early_hook(ctx: HookContext) -> HookContext:
            return ctx

        assert runner.callbacks(HookType.PromptSubmit) == [early_hook, late_hook]

    def test_clear_all(self):
        runner = HookRunner()

        @runner.on(HookType.StepFinish)
        async def h(ctx: HookContext) -> HookContext:
            return ctx

        runner.clear()
        assert runner._hooks == []

    def test_clear_by_type(self):
        runner = HookRunner()

        @runner.on(HookType.StepFinish)
        async def h1(ctx: HookContext) -> HookContext:
            return ctx

        @runner.on(HookType.RunFinish)
        async def h2(ctx: HookContext) -> HookContext:
            return ctx

        runner.clear(HookType.StepFinish)
        assert len(runner._hooks) == 1
        assert runner._hooks[0][0] == HookType.RunFinish


class TestDispatch:
    @pytest.mark.asyncio
    async def test_dispatch_chains_context(self):
        runner = HookRunner()
        seen: list[str] = []

        @runner.on(HookType.PreToolUse, priority=2)
        async def second(ctx: HookContext) -> HookContext:
            seen.append(f"second:{ctx.get('count')}")
            return ctx

        @runner.on(HookType.PreToolUse, priority=1)
        def first(ctx: HookContext) -> HookContext:
            seen.append("first")
            ctx.set("count", 1)
            return ctx

        result = await runner.dispatch(HookType.PreToolUse, HookContext("pre_tool_use"))
        assert seen == ["first", "second:1"]
        assert result.get("count") == 1

    @pytest.mark.asyncio
    async def test_none_passes_through(self):
        runner = HookRunner()

        @runner.on(HookType.RunFinish)
        async def observer(ctx: HookContext) -> None:
            return None

        ctx = HookContext("run_finish", {"k": "v"})
        assert await runner.dispatch(HookType.RunFinish, ctx) is ctx

    @pytest.mark.asyncio
    async def test_other_types_not_dispatched(self):
        runner = HookRunner()
        calls: list[str] = []

        @runner.on(HookType.PostToolUse)
        async def post(ctx: HookContext) -> None:
            calls.append("post")

        await runner.dispatch(HookType.PreToolUse, HookContext("pre_tool_use"))
        assert calls == []

    @pytest.mark.asyncio
    async def test_failing_hook_is_logged_not_raised(self, caplog):
        runner = HookRunner()
        calls: list[str] = []

        @runner.on(HookType.StepFinish, priority=0)
        async def broken(ctx: HookContext) -> None:
            raise ValueError("boom")

        @runner.on(HookType.StepFinish, priority=1)
        async def after(ctx: HookContext) -> None:
            calls.append("after")

        await runner.dispatch(HookType.StepFinish, HookContext("step_finish"))
        assert calls == ["after"]
        assert "broken" in caplog.text

    @pytest.mark.asyncio
    async def test_strict_runner_raises(self):
        runner = HookRunner(strict=True)

        @runner.on(HookType.StepFinish)
        async def broken(ctx: HookContext) -> None:
            raise ValueError("boom")

        with pytest.raises(HookError, match="boom"):
            await runner.dispatch(HookType.StepFinish, HookContext("step_finish"))


class TestStandaloneHookDecorator:
    def test_hook_decorator_sets_attributes(self):
        @hook(HookType.PostToolUse, priority=5)
        async def my_hook(ctx: HookContext) -> HookContext:
            return ctx

        assert my_hook._hook_type == HookType.PostToolUse
        assert my_hook._hook_priority == 5

    @pytest.mark.asyncio
    async def test_add_registers_with_priority(self):
        @hook(HookType.RunFinish, priority=3)
        async def audit(ctx: HookContext) -> HookContext:
            ctx.set("audited", True)
            return ctx

        runner = HookRunner()
        runner.add(audit)
        assert runner._hooks[0][2] == 3
        result = await runner.dispatch(HookType.RunFinish, HookContext("run_finish"))
        assert result.get("audited") is True

    def test_add_undecorated_raises(self):
        async def bare(ctx: HookContext) -> None:
            return None

        with pytest.raises(HookError, match="not decorated"):
            HookRunner().add(bare)
