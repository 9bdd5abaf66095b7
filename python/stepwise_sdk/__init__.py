"""stepwise-agent-sdk: a bounded tool-calling loop for LLM agents.

Runs a model against a conversation thread, dispatches the tool calls
it requests, feeds the results back and stops at a final answer or when
the step budget runs out.

Quick start (one-shot)::

    import asyncio
    from stepwise_sdk import file_tools, query

    async def main():
        async for item in query(prompt="Write hello.py", tools=file_tools()):
            print(item)

    asyncio.run(main())

With a composition root and persistent memory::

    from stepwise_sdk import AgentHub, AgentOptions, MemoryScope, SQLiteMemoryStore

    async with AgentHub.create_default(
        AgentOptions.from_env(), store=SQLiteMemoryStore("stepwise.db")
    ) as hub:
        agent = hub.get_agent("universal-code")
        outcome = await agent.run("Write server.go", MemoryScope("demo-user", "go-demo"))
"""

from __future__ import annotations

__version__ = "0.1.0"

# Public API: high-level classes.
from stepwise_sdk.activate import query
from stepwise_sdk.exceptions import (
    AgentNotFoundError,
    CancelledError,
    DuplicateToolError,
    HookError,
    MemoryStoreError,
    ModelUnavailableError,
    SchemaValidationError,
    StepwiseError,
    TimeoutError,
    ToolError,
    ToolExecutionError,
    UnknownToolError,
)
from stepwise_sdk.fs_tools import file_tools, make_list_files_tool, make_save_file_tool
from stepwise_sdk.hooks import HookRunner, HookType, hook
from stepwise_sdk.hub import AgentHub
from stepwise_sdk.memory import InMemoryStore, MemoryStore, SQLiteMemoryStore
from stepwise_sdk.options import AgentOptions, FileToolConfig
from stepwise_sdk.providers import ModelClient, OpenAIModelClient
from stepwise_sdk.runtime import Agent
from stepwise_sdk.tools import ToolRegistry, ToolSpec, tool
from stepwise_sdk.types import (
    BudgetExhausted,
    FinalAnswer,
    HookContext,
    MemoryScope,
    Message,
    MessageRole,
    RunConfig,
    RunOutcome,
    RunState,
    StepEvent,
    StepResult,
    ToolCall,
    ToolInvocations,
    ToolResult,
)

__all__ = [
    # Core
    "__version__",
    "Agent",
    "AgentHub",
    "query",
    # Options
    "AgentOptions",
    "FileToolConfig",
    # Model clients
    "ModelClient",
    "OpenAIModelClient",
    # Memory
    "MemoryStore",
    "InMemoryStore",
    "SQLiteMemoryStore",
    # Tools
    "tool",
    "ToolSpec",
    "ToolRegistry",
    "file_tools",
    "make_save_file_tool",
    "make_list_files_tool",
    # Hooks
    "hook",
    "HookRunner",
    "HookType",
    # Types
    "BudgetExhausted",
    "FinalAnswer",
    "HookContext",
    "MemoryScope",
    "Message",
    "MessageRole",
    "RunConfig",
    "RunOutcome",
    "RunState",
    "StepEvent",
    "StepResult",
    "ToolCall",
    "ToolInvocations",
    "ToolResult",
    # Exceptions
    "StepwiseError",
    "ToolError",
    "DuplicateToolError",
    "UnknownToolError",
    "SchemaValidationError",
    "ToolExecutionError",
    "AgentNotFoundError",
    "ModelUnavailableError",
    "MemoryStoreError",
    "HookError",
    "TimeoutError",
    "CancelledError",
]
