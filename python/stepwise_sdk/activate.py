"""Top-level convenience function for one-shot agent runs.

Usage::

    from stepwise_sdk import query

    async for item in query(prompt="Write hello.py", tools=file_tools()):
        print(item)
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable

from stepwise_sdk.options import AgentOptions
from stepwise_sdk.providers import ModelClient, OpenAIModelClient
from stepwise_sdk.runtime import Agent
from stepwise_sdk.tools import ToolSpec
from stepwise_sdk.types import MemoryScope, RunOutcome, StepEvent


async def query(
    *,
    prompt: str,
    tools: Iterable[ToolSpec] = (),
    options: AgentOptions | None = None,
    model: ModelClient | None = None,
    scope: MemoryScope | None = None,
    max_steps: int | None = None,
    timeout: float | None = None,
) -> AsyncIterator[StepEvent | RunOutcome]:
    """Run a single prompt through a throwaway agent and stream the steps.

    Builds an :class:`Agent` with a private in-memory store, runs it and
    closes the model client afterwards when it created one.

    Parameters
    ----------
    prompt:
        The user message.
    tools:
        Tools the model may call.
    options:
        Agent and model options. Defaults to :meth:`AgentOptions.from_env`.
    model:
        Model client to use instead of an :class:`OpenAIModelClient`.
    scope:
        Thread to write to; a fresh one when ``None``.
    max_steps:
        Step budget override.
    timeout:
        Wall-clock limit for the run in seconds.

    Yields
    ------
    :class:`StepEvent` for each step, then the final outcome.
    """
    options = options or AgentOptions.from_env()
    owns_model = model is None
    client = model or OpenAIModelClient(options)
    agent = Agent(client, tools, options=options)
    try:
        async for item in agent.stream(prompt, scope, max_steps=max_steps, timeout=timeout):
            yield item
    finally:
        if owns_model:
            await client.close()
