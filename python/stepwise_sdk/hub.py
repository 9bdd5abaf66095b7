"""Composition root for stepwise agents.

An :class:`AgentHub` is built once at process start and handed to
whatever entry point needs agents. It owns the shared model client,
memory store, tool catalogue and hook runner, and keeps agents by name.

Usage::

    async with AgentHub.create_default(AgentOptions.from_env()) as hub:
        agent = hub.get_agent("universal-code")
        outcome = await agent.run("Write hello.py", MemoryScope("demo-user", "python-demo"))
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from typing import Any

from stepwise_sdk.exceptions import AgentNotFoundError
from stepwise_sdk.fs_tools import file_tools
from stepwise_sdk.hooks import HookRunner
from stepwise_sdk.memory import InMemoryStore, MemoryStore
from stepwise_sdk.options import AgentOptions, FileToolConfig
from stepwise_sdk.providers import ModelClient, OpenAIModelClient
from stepwise_sdk.runtime import Agent
from stepwise_sdk.tools import ToolRegistry

logger = logging.getLogger(__name__)

__all__ = ["AgentHub", "CODE_AGENT_INSTRUCTIONS", "CODE_AGENT_MAX_STEPS"]

CODE_AGENT_MAX_STEPS = 15

CODE_AGENT_INSTRUCTIONS = """\
You are a code generation assistant for any programming language.

Work in steps: understand the request, write the code, then call
save-file to store every file in the out directory. Use list-files to
check what already exists before overwriting or when asked about the
project. Finish with a short summary of what you saved and how to use it.
"""


class AgentHub:
    """Holds the shared collaborators and the named agents built on them.

    Parameters
    ----------
    model:
        Model client shared by every agent of the hub.
    store:
        Memory store shared by every agent. Defaults to an
        :class:`InMemoryStore`.
    tools:
        Tool catalogue agents pick their tools from.
    hooks:
        Hook runner shared by every agent.
    """

    def __init__(
        self,
        model: ModelClient,
        *,
        store: MemoryStore | None = None,
        tools: ToolRegistry | None = None,
        hooks: HookRunner | None = None,
    ) -> None:
        self._model = model
        self._store = store if store is not None else InMemoryStore()
        self._tools = tools if tools is not None else ToolRegistry()
        self._hooks = hooks or HookRunner()
        self._agents: dict[str, Agent] = {}

    @classmethod
    def create_default(
        cls,
        options: AgentOptions | None = None,
        *,
        model: ModelClient | None = None,
        store: MemoryStore | None = None,
        file_config: FileToolConfig | None = None,
    ) -> AgentHub:
        """Hub with the filesystem tools and a ``universal-code`` agent.

        Without ``options`` the agent gets a budget of
        :data:`CODE_AGENT_MAX_STEPS`; explicit options keep their own.
        """
        options = options or AgentOptions(max_steps=CODE_AGENT_MAX_STEPS)
        hub = cls(
            model or OpenAIModelClient(options),
            store=store,
            tools=ToolRegistry(file_tools(file_config)),
        )
        hub.create_agent(
            "universal-code",
            replace(
                options,
                name="universal-code",
                instructions=options.instructions or CODE_AGENT_INSTRUCTIONS,
            ),
        )
        return hub

    # -- Agents --------------------------------------------------------------

    def create_agent(
        self,
        key: str,
        options: AgentOptions | None = None,
        *,
        tool_ids: Iterable[str] | None = None,
    ) -> Agent:
        """Build and register an agent over the hub's collaborators.

        ``tool_ids`` restricts the agent to part of the catalogue; by
        default it sees every tool.
        """
        tools = self._tools.subset(tool_ids) if tool_ids is not None else self._tools
        agent = Agent(
            self._model,
            tools,
            self._store,
            options=options or AgentOptions(name=key),
            hooks=self._hooks,
        )
        return self.add_agent(key, agent)

    def add_agent(self, key: str, agent: Agent) -> Agent:
        if key in self._agents:
            logger.warning("Replacing agent %r", key)
        self._agents[key] = agent
        return agent

    def get_agent(self, key: str) -> Agent:
        try:
            return self._agents[key]
        except KeyError:
            raise AgentNotFoundError(f"agent {key!r} not found (available: {sorted(self._agents)})") from None

    @property
    def agents(self) -> dict[str, Agent]:
        return dict(self._agents)

    @property
    def store(self) -> MemoryStore:
        return self._store

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def hooks(self) -> HookRunner:
        return self._hooks

    # -- Lifecycle -----------------------------------------------------------

    async def close(self) -> None:
        await self._model.close()
        await self._store.close()

    async def __aenter__(self) -> AgentHub:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"AgentHub(agents={sorted(self._agents)!r}, store={self._store!r})"

