"""Agent configuration options for stepwise-agent-sdk.

Provides the ``AgentOptions`` dataclass (instructions, model selection,
step budget, sampling and transport settings) and ``FileToolConfig``
for the filesystem tools.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_STEPS = 10


@dataclass
class AgentOptions:
    """Configuration for an agent and its model client.

    Parameters
    ----------
    name:
        Display name of the agent.
    instructions:
        System prompt prepended to every model call.
    model:
        Model identifier passed to the provider (e.g. ``"gpt-4o"``).
    max_steps:
        Default step budget for :meth:`Agent.run`.
    temperature:
        Sampling temperature.
    max_tokens:
        Maximum tokens per model response.
    parallel_tool_calls:
        Execute the tool calls of one step concurrently. When ``False``
        they run one after another in request order.
    api_key:
        Provider API key. Falls back to the provider's own environment
        lookup when ``None``.
    base_url:
        Alternative endpoint for OpenAI-compatible providers.
    timeout:
        Per-request transport timeout in seconds.
    max_retries:
        Transport-level retries performed by the provider client.
    """

    name: str = "agent"
    instructions: str | None = None
    model: str = DEFAULT_MODEL
    max_steps: int = DEFAULT_MAX_STEPS
    temperature: float | None = None
    max_tokens: int | None = None
    parallel_tool_calls: bool = True
    api_key: str | None = field(default=None, repr=False)
    base_url: str | None = None
    timeout: float = 90.0
    max_retries: int = 2

    def __post_init__(self) -> None:
        if self.max_steps < 1:
            raise ValueError(f"max_steps must be positive, got {self.max_steps}")

    @classmethod
    def from_env(cls, prefix: str = "STEPWISE_", **overrides: Any) -> AgentOptions:
        """Build options from environment variables.

        Reads ``{prefix}MODEL``, ``{prefix}MAX_STEPS``,
        ``{prefix}TEMPERATURE``, ``{prefix}BASE_URL`` and
        ``OPENAI_API_KEY``. Keyword arguments win over the environment.
        """
        values: dict[str, Any] = {}
        if model := os.environ.get(f"{prefix}MODEL"):
            values["model"] = model
        if max_steps := os.environ.get(f"{prefix}MAX_STEPS"):
            values["max_steps"] = int(max_steps)
        if temperature := os.environ.get(f"{prefix}TEMPERATURE"):
            values["temperature"] = float(temperature)
        if base_url := os.environ.get(f"{prefix}BASE_URL"):
            values["base_url"] = base_url
        if api_key := os.environ.get("OPENAI_API_KEY"):
            values["api_key"] = api_key
        values.update(overrides)
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize non-None fields, leaving out the API key."""
        result: dict[str, Any] = {
            "name": self.name,
            "model": self.model,
            "maxSteps": self.max_steps,
            "parallelToolCalls": self.parallel_tool_calls,
        }
        if self.instructions is not None:
            result["instructions"] = self.instructions
        if self.temperature is not None:
            result["temperature"] = self.temperature
        if self.max_tokens is not None:
            result["maxTokens"] = self.max_tokens
        if self.base_url is not None:
            result["baseUrl"] = self.base_url
        return result


@dataclass(frozen=True)
class FileToolConfig:
    """Where the filesystem tools read and write.

    Relative ``directory`` arguments given by the model are resolved
    against ``root``.
    """

    root: Path = field(default_factory=Path.cwd)
    default_directory: str = "out"

    def resolve(self, directory: str) -> Path:
        path = Path(directory)
        return path if path.is_absolute() else self.root / path
