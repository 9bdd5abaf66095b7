"""Tool registration and invocation.

Provides :class:`ToolSpec` (a named, schema-validated function), the
``@tool`` decorator for building specs from plain functions, and
:class:`ToolRegistry`, the lookup table the agent runtime dispatches
through.

Example::

    @tool("save-note", description="Save a short note")
    async def save_note(title: str, body: str = "") -> dict:
        ...

    registry = ToolRegistry([save_note])
    result = await registry.execute(ToolCall("c1", "save-note", {"title": "hi"}))
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, create_model

from stepwise_sdk.exceptions import (
    DuplicateToolError,
    SchemaValidationError,
    ToolError,
    ToolExecutionError,
    UnknownToolError,
)
from stepwise_sdk.types import ToolCall, ToolResult

logger = logging.getLogger(__name__)

__all__ = ["ToolSpec", "ToolRegistry", "tool"]


@dataclass(frozen=True)
class ToolSpec:
    """A tool the model may request by id.

    Parameters
    ----------
    id:
        Identifier exposed to the model. Unique within a registry.
    description:
        Human-readable description of what the tool does.
    input_model:
        Pydantic model validating the tool's arguments.
    execute:
        Callable receiving a validated ``input_model`` instance. May be
        sync (run in a worker thread) or async.
    output_model:
        Optional pydantic model validating what ``execute`` returns.
    """

    id: str
    description: str
    input_model: type[BaseModel]
    execute: Callable[[Any], Any]
    output_model: type[BaseModel] | None = None

    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()

    def definition(self) -> dict[str, Any]:
        """Model-visible definition of this tool."""
        return {
            "name": self.id,
            "description": self.description,
            "input_schema": self.input_schema(),
        }


def tool(
    name: str | None = None,
    *,
    description: str = "",
    input_model: type[BaseModel] | None = None,
    output_model: type[BaseModel] | None = None,
) -> Callable[[Callable], ToolSpec]:
    """Decorator turning a function into a :class:`ToolSpec`.

    Parameters
    ----------
    name:
        Tool id exposed to the model. Defaults to the function name with
        underscores replaced by dashes.
    description:
        Human-readable description. Defaults to the docstring.
    input_model:
        Pydantic model for the arguments. If omitted, one is generated
        from the function signature.
    output_model:
        Optional pydantic model for the return value.

    The decorated function is called with the validated fields as
    keyword arguments.

    Example::

        @tool(description="Add two numbers")
        def add(a: int, b: int) -> dict:
            return {"sum": a + b}
    """

    def decorator(fn: Callable) -> ToolSpec:
        tool_id = name or fn.__name__.replace("_", "-")
        model = input_model or _infer_input_model(fn, tool_id)

        if inspect.iscoroutinefunction(fn):

            async def execute(args: BaseModel) -> Any:
                return await fn(**_fields(args))

        else:

            def execute(args: BaseModel) -> Any:
                return fn(**_fields(args))

        return ToolSpec(
            id=tool_id,
            description=description or inspect.getdoc(fn) or "",
            input_model=model,
            execute=execute,
            output_model=output_model,
        )

    return decorator


def _fields(args: BaseModel) -> dict[str, Any]:
    return {key: getattr(args, key) for key in type(args).model_fields}


def _infer_input_model(fn: Callable, tool_id: str) -> type[BaseModel]:
    """Generate a pydantic model from a function's signature."""
    sig = inspect.signature(fn)
    hints = inspect.get_annotations(fn, eval_str=True)
    fields: dict[str, Any] = {}

    for param_name, param in sig.parameters.items():
        if param_name == "self":
            continue
        hint = hints.get(param_name, Any)
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[param_name] = (hint, default)

    model_name = "".join(part.capitalize() for part in tool_id.replace("_", "-").split("-")) + "Input"
    return create_model(model_name, __config__=ConfigDict(extra="forbid"), **fields)


def _violations(error: ValidationError) -> list[dict[str, str]]:
    return [
        {
            "field": ".".join(str(loc) for loc in item["loc"]) or "<root>",
            "message": item["msg"],
        }
        for item in error.errors()
    ]


def _normalize_output(result: Any) -> dict[str, Any]:
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True)
    if isinstance(result, dict):
        return result
    if isinstance(result, list):
        return {"items": result}
    return {"result": result}


class ToolRegistry:
    """Maps tool ids to :class:`ToolSpec` entries.

    Pure lookup table; no runtime state beyond registration bookkeeping.
    """

    def __init__(self, specs: Iterable[ToolSpec] = ()) -> None:
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            self.register(spec)

    # -- Registration --------------------------------------------------------

    def register(self, spec: ToolSpec) -> ToolSpec:
        """Add a tool. Raises :class:`DuplicateToolError` on id collision."""
        if spec.id in self._specs:
            raise DuplicateToolError(f"tool {spec.id!r} is already registered")
        self._specs[spec.id] = spec
        logger.debug("Registered tool: %s", spec.id)
        return spec

    def subset(self, ids: Iterable[str]) -> ToolRegistry:
        """Return a new registry holding only the named tools."""
        return ToolRegistry(self.lookup(tool_id) for tool_id in ids)

    # -- Lookup --------------------------------------------------------------

    def lookup(self, tool_id: str) -> ToolSpec:
        """Return the registered tool for ``tool_id`` or raise :class:`UnknownToolError`."""
        try:
            return self._specs[tool_id]
        except KeyError:
            raise UnknownToolError(tool_id) from None

    def validate_input(self, tool_id: str, raw: Any) -> BaseModel:
        """Validate raw arguments against the tool's input model."""
        spec = self.lookup(tool_id)
        try:
            return spec.input_model.model_validate(raw if raw is not None else {})
        except ValidationError as exc:
            raise SchemaValidationError(tool_id, _violations(exc)) from exc

    def definitions(self) -> list[dict[str, Any]]:
        """Model-visible definitions of every registered tool."""
        return [spec.definition() for spec in self._specs.values()]

    def ids(self) -> list[str]:
        return list(self._specs)

    def all(self) -> list[ToolSpec]:
        return list(self._specs.values())

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def __repr__(self) -> str:
        return f"ToolRegistry({', '.join(self._specs) or 'empty'})"

    # -- Invocation ----------------------------------------------------------

    async def execute(self, call: ToolCall) -> ToolResult:
        """Run a tool call and capture any failure as an error result.

        Never raises for tool-level problems: unknown ids, invalid input,
        exceptions from the tool and invalid output all become a
        :class:`ToolResult` carrying an ``error`` payload.
        """
        try:
            args = self.validate_input(call.tool_id, call.arguments)
            spec = self.lookup(call.tool_id)
            output = await self._invoke(spec, args)
        except ToolError as exc:
            logger.warning("Tool call failed tool=%s error=%s", call.tool_id, exc)
            return ToolResult(call.call_id, call.tool_id, error=exc.to_payload())
        return ToolResult(call.call_id, call.tool_id, output=output)

    @staticmethod
    async def _invoke(spec: ToolSpec, args: BaseModel) -> dict[str, Any]:
        try:
            if inspect.iscoroutinefunction(spec.execute):
                result = await spec.execute(args)
            else:
                result = await asyncio.to_thread(spec.execute, args)
                if inspect.isawaitable(result):
                    result = await result
        except ToolError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ToolExecutionError(f"{spec.id}: {exc}") from exc

        if spec.output_model is None:
            return _normalize_output(result)
        try:
            validated = spec.output_model.model_validate(
                result.model_dump() if isinstance(result, BaseModel) else result
            )
        except ValidationError as exc:
            fields = ", ".join(v["field"] for v in _violations(exc))
            raise ToolExecutionError(f"{spec.id} returned invalid output: {fields}") from exc
        return validated.model_dump(mode="json", by_alias=True)
