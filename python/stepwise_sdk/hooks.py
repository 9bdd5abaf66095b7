"""Lifecycle hook system for stepwise-agent-sdk.

Hooks observe the agent loop at fixed points (prompt submitted, before
and after each tool call, after each step, run finished). They are an
observer channel: a failing hook is logged and never changes the
outcome of a run unless the runner is created with ``strict=True``.

Example::

    runner = agent.hooks

    @runner.on(HookType.PreToolUse)
    async def log_tool(ctx: HookContext) -> HookContext:
        print(f"Tool called: {ctx.get('tool_id')}")
        return ctx
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from enum import Enum

from stepwise_sdk.exceptions import HookError
from stepwise_sdk.types import HookContext

logger = logging.getLogger(__name__)

__all__ = ["HookType", "HookRunner", "hook"]


class HookType(str, Enum):
    PromptSubmit = "prompt_submit"
    PreToolUse = "pre_tool_use"
    PostToolUse = "post_tool_use"
    StepFinish = "step_finish"
    RunFinish = "run_finish"


class HookRunner:
    """Collects hook callbacks and dispatches them in priority order.

    Parameters
    ----------
    strict:
        Re-raise hook failures as :class:`HookError` instead of logging
        them.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self._hooks: list[tuple[HookType, Callable, int]] = []
        self._strict = strict

    def on(
        self,
        hook_type: HookType,
        *,
        priority: int = 0,
    ) -> Callable:
        """Decorator to register a hook callback.

        Parameters
        ----------
        hook_type:
            The lifecycle event to hook into.
        priority:
            Execution order (lower = earlier). Default 0.

        The decorated function (sync or async) receives a
        :class:`HookContext` and returns a possibly modified context, or
        ``None`` to pass it through unchanged.
        """

        def decorator(fn: Callable) -> Callable:
            self._hooks.append((hook_type, fn, priority))
            return fn

        return decorator

    def add(self, fn: Callable) -> None:
        """Register a function decorated with the standalone :func:`hook`."""
        hook_type = getattr(fn, "_hook_type", None)
        if hook_type is None:
            raise HookError(f"{fn.__name__} is not decorated with @hook")
        self._hooks.append((hook_type, fn, getattr(fn, "_hook_priority", 0)))

    def callbacks(self, hook_type: HookType) -> list[Callable]:
        """Registered callbacks for ``hook_type``, in dispatch order."""
        matching = [(p, i, cb) for i, (ht, cb, p) in enumerate(self._hooks) if ht == hook_type]
        return [cb for _, _, cb in sorted(matching, key=lambda item: (item[0], item[1]))]

    async def dispatch(self, hook_type: HookType, context: HookContext) -> HookContext:
        """Run hooks of the given type over ``context``.

        Returns the (possibly modified) context after all hooks run.
        """
        for callback in self.callbacks(hook_type):
            try:
                result = callback(context)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:  # noqa: BLE001
                if self._strict:
                    raise HookError(f"{hook_type.value} hook {callback.__name__} failed: {exc}") from exc
                logger.exception("Hook %s for %s failed", callback.__name__, hook_type.value)
                continue
            if isinstance(result, HookContext):
                context = result
        return context

    def clear(self, hook_type: HookType | None = None) -> None:
        """Remove hooks, optionally filtered by type."""
        if hook_type is not None:
            self._hooks = [(ht, cb, p) for ht, cb, p in self._hooks if ht != hook_type]
        else:
            self._hooks.clear()

    def __len__(self) -> int:
        return len(self._hooks)


def hook(
    hook_type: HookType,
    *,
    priority: int = 0,
) -> Callable:
    """Standalone decorator for defining hooks outside an agent.

    Register the decorated function later with :meth:`HookRunner.add`.
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(ctx: HookContext):
            return fn(ctx)

        wrapper._hook_type = hook_type  # type: ignore[attr-defined]
        wrapper._hook_priority = priority  # type: ignore[attr-defined]
        return wrapper

    return decorator
