"""Exception hierarchy for stepwise-agent-sdk.

All exceptions inherit from :class:`StepwiseError` so callers can
catch broadly or narrowly as needed.

Tool-layer errors (:class:`UnknownToolError`,
:class:`SchemaValidationError`, :class:`ToolExecutionError`) are
recovered inside the agent loop and reported back to the model as
tool results. Only :class:`ModelUnavailableError`, :class:`CancelledError`
and :class:`TimeoutError` escape :meth:`Agent.run`.
"""

from __future__ import annotations

from typing import Any


class StepwiseError(Exception):
    """Base exception for all stepwise SDK errors."""


# -- Tool errors -------------------------------------------------------------


class ToolError(StepwiseError):
    """Error during tool registration or invocation."""

    #: Name reported to the model in error tool results.
    kind = "ToolError"

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the ``error`` payload of a tool result."""
        return {"type": self.kind, "message": str(self)}


class DuplicateToolError(ToolError):
    """A tool with the same id is already registered."""

    kind = "DuplicateToolId"


class UnknownToolError(ToolError):
    """The requested tool id is not in the registry."""

    kind = "UnknownTool"

    def __init__(self, tool_id: str) -> None:
        super().__init__(f"tool {tool_id!r} is not registered")
        self.tool_id = tool_id


class SchemaValidationError(ToolError):
    """Tool input (or output) failed schema validation.

    Parameters
    ----------
    tool_id:
        The tool whose schema rejected the payload.
    fields:
        One entry per violation, each ``{"field": "a.b", "message": ...}``.
    """

    kind = "SchemaValidationError"

    def __init__(self, tool_id: str, fields: list[dict[str, str]]) -> None:
        names = ", ".join(f["field"] for f in fields) or "<root>"
        super().__init__(f"invalid input for tool {tool_id!r}: {names}")
        self.tool_id = tool_id
        self.fields = fields

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["fields"] = self.fields
        return payload


class ToolExecutionError(ToolError):
    """A tool's execute function raised or returned an invalid result."""

    kind = "ToolExecutionFailure"


# -- Runtime errors ----------------------------------------------------------


class AgentNotFoundError(StepwiseError):
    """No agent is registered under the requested name."""


class ModelUnavailableError(StepwiseError):
    """The model client failed at the transport level."""


class MemoryStoreError(StepwiseError):
    """The conversation store could not read or persist messages."""


class HookError(StepwiseError):
    """Error in a lifecycle hook callback."""


class TimeoutError(StepwiseError):
    """Operation exceeded the configured timeout."""


class CancelledError(StepwiseError):
    """Operation was cancelled."""
