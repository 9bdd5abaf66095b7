"""Agent runtime: the bounded tool-calling loop.

A run moves through ``Thinking -> (ToolDispatch -> Thinking)* -> Done``
or ends in ``BudgetExhausted`` when ``max_steps`` model calls pass
without a final answer.

Usage::

    agent = Agent(OpenAIModelClient(options), registry, InMemoryStore(), options=options)
    outcome = await agent.run("write hello.txt", MemoryScope("demo-user", "t1"))
    if isinstance(outcome, FinalAnswer):
        print(outcome.text)
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Callable, Iterable, Sequence
from typing import Any

from stepwise_sdk.exceptions import CancelledError as RunCancelledError
from stepwise_sdk.exceptions import TimeoutError as RunTimeoutError
from stepwise_sdk.exceptions import ToolExecutionError
from stepwise_sdk.hooks import HookRunner, HookType
from stepwise_sdk.memory import InMemoryStore, MemoryStore
from stepwise_sdk.options import AgentOptions
from stepwise_sdk.providers import ModelClient
from stepwise_sdk.tools import ToolRegistry, ToolSpec
from stepwise_sdk.types import (
    BudgetExhausted,
    FinalAnswer,
    HookContext,
    MemoryScope,
    Message,
    RunConfig,
    RunOutcome,
    RunState,
    StepEvent,
    ToolCall,
    ToolResult,
)

logger = logging.getLogger(__name__)

__all__ = ["Agent"]

StepCallback = Callable[[StepEvent], Any]


class Agent:
    """Runs the model/tool loop against a memory thread.

    Parameters
    ----------
    model:
        The model client consulted once per step.
    tools:
        A :class:`ToolRegistry` or an iterable of :class:`ToolSpec`.
    store:
        Conversation store. A private :class:`InMemoryStore` is used when
        omitted.
    options:
        Name, instructions, default step budget and tool concurrency.
    hooks:
        Hook runner to publish lifecycle events to. A new one is created
        when omitted and is reachable through :attr:`hooks`.
    """

    def __init__(
        self,
        model: ModelClient,
        tools: ToolRegistry | Iterable[ToolSpec] = (),
        store: MemoryStore | None = None,
        *,
        options: AgentOptions | None = None,
        hooks: HookRunner | None = None,
    ) -> None:
        self._model = model
        self._tools = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        self._store = store if store is not None else InMemoryStore()
        self._options = options or AgentOptions()
        self._hooks = hooks or HookRunner()

    # -- Properties ----------------------------------------------------------

    @property
    def name(self) -> str:
        return self._options.name

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def options(self) -> AgentOptions:
        return self._options

    @property
    def hooks(self) -> HookRunner:
        return self._hooks

    async def history(self, scope: MemoryScope) -> tuple[Message, ...]:
        """Snapshot of a thread this agent has written to."""
        return await self._store.read(scope)

    # -- Running -------------------------------------------------------------

    async def run(
        self,
        user_message: str,
        scope: MemoryScope | None = None,
        *,
        config: RunConfig | None = None,
        max_steps: int | None = None,
        timeout: float | None = None,
        cancel_event: asyncio.Event | None = None,
        on_step: StepCallback | None = None,
    ) -> RunOutcome:
        """Process one user message and return the outcome.

        Parameters
        ----------
        user_message:
            Text appended to the thread as the user turn.
        scope:
            Thread to read from and append to. A fresh thread is used when
            neither ``scope`` nor ``config`` is given.
        config:
            Explicit budget and scope; overrides ``scope`` and
            ``max_steps``.
        max_steps:
            Step budget. Defaults to ``options.max_steps``.
        timeout:
            Wall-clock limit in seconds for the whole run. Tool results
            that completed before the deadline are still persisted.
        cancel_event:
            Checked before every step; once set the run raises
            :class:`~stepwise_sdk.exceptions.CancelledError`.
        on_step:
            Called with a :class:`StepEvent` after every step.

        Returns
        -------
        :class:`FinalAnswer` or :class:`BudgetExhausted`.

        Raises
        ------
        ModelUnavailableError
            The model client failed; the run is aborted.
        """
        if config is None:
            config = RunConfig(
                max_steps=max_steps if max_steps is not None else self._options.max_steps,
                scope=scope or MemoryScope("default", uuid.uuid4().hex),
            )

        if timeout is None:
            return await self._run(user_message, config, cancel_event, on_step)
        try:
            return await asyncio.wait_for(
                self._run(user_message, config, cancel_event, on_step), timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Run on %s timed out after %.1fs", config.scope, timeout)
            raise RunTimeoutError(f"run on {config.scope} exceeded {timeout}s") from None

    async def stream(
        self,
        user_message: str,
        scope: MemoryScope | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[StepEvent | RunOutcome]:
        """Run and yield each :class:`StepEvent`, then the outcome.

        Accepts the same keyword arguments as :meth:`run` except
        ``on_step``.
        """
        queue: asyncio.Queue = asyncio.Queue()
        done = object()

        task = asyncio.create_task(
            self.run(user_message, scope, on_step=queue.put_nowait, **kwargs)
        )
        task.add_done_callback(lambda _: queue.put_nowait(done))
        try:
            while True:
                item = await queue.get()
                if item is done:
                    break
                yield item
            yield task.result()
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

    # -- Loop ----------------------------------------------------------------

    async def _run(
        self,
        user_message: str,
        config: RunConfig,
        cancel_event: asyncio.Event | None,
        on_step: StepCallback | None,
    ) -> RunOutcome:
        scope = config.scope
        logger.info("Run started agent=%s scope=%s max_steps=%d", self.name, scope, config.max_steps)

        await self._store.append(scope, Message.user(user_message))
        await self._hooks.dispatch(
            HookType.PromptSubmit,
            HookContext(HookType.PromptSubmit.value, {"scope": scope, "text": user_message}),
        )

        partial_text = ""
        for step in range(1, config.max_steps + 1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Run cancelled scope=%s before step %d", scope, step)
                raise RunCancelledError(f"run on {scope} cancelled before step {step}")

            history = await self._store.read(scope)
            result = await self._model.invoke(
                history, self._tools.definitions(), instructions=self._options.instructions
            )

            if isinstance(result, FinalAnswer):
                await self._store.append(scope, Message.assistant(result.text))
                await self._publish(StepEvent(scope, step, RunState.DONE, text=result.text), on_step)
                await self._finish(scope, result)
                return result

            partial_text = result.text
            logger.debug("Step %d on %s requested %d tool call(s)", step, scope, len(result.calls))
            await self._store.append(scope, Message.assistant(result.text, result.calls))
            tool_results = await self._dispatch(scope, result.calls)
            await self._publish(
                StepEvent(
                    scope,
                    step,
                    RunState.TOOL_DISPATCH,
                    text=result.text,
                    tool_calls=result.calls,
                    tool_results=tuple(tool_results),
                ),
                on_step,
            )

        logger.warning("Run on %s exhausted its budget of %d steps", scope, config.max_steps)
        outcome = BudgetExhausted(partial_text=partial_text, steps=config.max_steps)
        await self._publish(
            StepEvent(scope, config.max_steps, RunState.BUDGET_EXHAUSTED, text=partial_text), on_step
        )
        await self._finish(scope, outcome)
        return outcome

    async def _dispatch(self, scope: MemoryScope, calls: Sequence[ToolCall]) -> list[ToolResult]:
        """Execute one step's tool calls and persist every result.

        All results are appended in request order before returning. If
        the dispatch is interrupted (timeout, task cancellation or an
        error escaping a call) every call still gets a result message:
        finished calls keep theirs, unfinished ones are recorded as
        failures, then the interruption propagates.
        """
        finished: list[ToolResult | None] = [None] * len(calls)
        tasks: list[asyncio.Future] = []
        try:
            if self._options.parallel_tool_calls:
                tasks = [asyncio.ensure_future(self._execute_call(scope, call)) for call in calls]
                finished = list(await asyncio.gather(*tasks))
            else:
                for i, call in enumerate(calls):
                    finished[i] = await self._execute_call(scope, call)
            results = [r for r in finished if r is not None]
            await self._store.append_many(scope, [Message.tool(r) for r in results])
        except BaseException:
            if tasks:
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                finished = [
                    None if task.cancelled() or task.exception() is not None else task.result()
                    for task in tasks
                ]
            await self._flush(scope, calls, finished)
            raise
        return results

    async def _flush(
        self,
        scope: MemoryScope,
        calls: Sequence[ToolCall],
        finished: Sequence[ToolResult | None],
    ) -> None:
        results = [
            result if result is not None else _interrupted(call)
            for call, result in zip(calls, finished)
        ]
        unfinished = sum(1 for result in finished if result is None)
        logger.info(
            "Persisting %d tool result(s) on %s after interruption, %d unfinished",
            len(results),
            scope,
            unfinished,
        )
        await self._store.append_many(scope, [Message.tool(r) for r in results])

    async def _execute_call(self, scope: MemoryScope, call: ToolCall) -> ToolResult:
        await self._hooks.dispatch(
            HookType.PreToolUse,
            HookContext(
                HookType.PreToolUse.value,
                {"scope": scope, "call_id": call.call_id, "tool_id": call.tool_id, "tool_input": call.arguments},
            ),
        )
        result = await self._tools.execute(call)
        await self._hooks.dispatch(
            HookType.PostToolUse,
            HookContext(
                HookType.PostToolUse.value,
                {"scope": scope, "call_id": call.call_id, "tool_id": call.tool_id, "result": result},
            ),
        )
        return result

    async def _publish(self, event: StepEvent, on_step: StepCallback | None) -> None:
        if on_step is not None:
            try:
                on_step(event)
            except Exception:  # noqa: BLE001
                logger.exception("Step callback failed on %s step %d", event.scope, event.step)
        await self._hooks.dispatch(
            HookType.StepFinish, HookContext(HookType.StepFinish.value, {"event": event})
        )

    async def _finish(self, scope: MemoryScope, outcome: RunOutcome) -> None:
        logger.info("Run finished agent=%s scope=%s outcome=%s", self.name, scope, type(outcome).__name__)
        await self._hooks.dispatch(
            HookType.RunFinish,
            HookContext(HookType.RunFinish.value, {"scope": scope, "outcome": outcome}),
        )

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, tools={self._tools.ids()!r})"


def _interrupted(call: ToolCall) -> ToolResult:
    error = ToolExecutionError(f"{call.tool_id}: interrupted before completion")
    return ToolResult(call.call_id, call.tool_id, error=error.to_payload())
