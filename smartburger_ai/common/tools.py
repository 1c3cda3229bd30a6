"""Provides in-process tool registration and dispatch for tool-calling agents."""

import dataclasses
import inspect
import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import pydantic

from smartburger_ai.common import types

logger = logging.getLogger(__name__)

Executor = Callable[[Any], types.ToolResult | Awaitable[types.ToolResult]]


# -------------------------------------------------------------------------
# Tool declarations
# -------------------------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class ToolSpec:
    """One tool: name, model-facing description, argument model and executor."""

    name: str
    description: str
    args_model: type[pydantic.BaseModel]
    executor: Executor
    read_only: bool = False

    def schema(self) -> types.Tool:
        return types.Tool(
            type="function",
            function=types.Function(
                name=self.name,
                description=self.description,
                parameters=parameters_schema(self.args_model),
            ),
        )


@dataclasses.dataclass
class ToolOutcome:
    """What one tool call produced: the chat message and the structured result."""

    message: types.ToolMessage
    result: types.ToolResult


# -------------------------------------------------------------------------
# Tool Manager
# -------------------------------------------------------------------------

class ToolManager:
    """Dispatches model tool calls to registered executors by name."""

    def __init__(
        self,
        specs: Iterable[ToolSpec],
        allowed_tools: set[str] | None = None,
    ) -> None:
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if spec.name in self._specs:
                raise ValueError(f"Duplicate tool name: {spec.name}")
            self._specs[spec.name] = spec
        if allowed_tools is not None:
            unknown = allowed_tools - self._specs.keys()
            if unknown:
                raise ValueError(f"Unknown tools in allow-list: {sorted(unknown)}")
        self._allowed_tools = allowed_tools

    @property
    def names(self) -> list[str]:
        return [name for name in self._specs if self._is_allowed(name)]

    def _is_allowed(self, name: str) -> bool:
        return self._allowed_tools is None or name in self._allowed_tools

    async def tools(self) -> list[types.Tool]:
        return [spec.schema() for spec in self._specs.values() if self._is_allowed(spec.name)]

    async def execute(self, name: str, args: dict[str, Any]) -> types.ToolResult:
        """Validates args against the tool's model and runs its executor."""
        spec = self._specs.get(name)
        if spec is None or not self._is_allowed(name):
            return types.ToolResult(type=name, description=f"Herramienta desconocida: {name}", success=False)

        try:
            parsed = spec.args_model.model_validate(args)
        except pydantic.ValidationError as err:
            fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in err.errors())
            return types.ToolResult(
                type=name,
                description=f"Argumentos inválidos para {name}: {fields or err}",
                success=False,
            )

        result = spec.executor(parsed)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def __call__(self, tool_call: types.ToolCall) -> ToolOutcome:
        tool_name = tool_call.function.name
        try:
            args = json.loads(tool_call.function.arguments or "{}")
        except json.JSONDecodeError:
            args = None

        if not isinstance(args, dict):
            result = types.ToolResult(
                type=tool_name,
                description=f"Argumentos no legibles para {tool_name}",
                success=False,
            )
        else:
            logger.info("Executing tool %s with %s", tool_name, args)
            result = await self.execute(tool_name, args)

        return ToolOutcome(message=tool_result_message(tool_call.id, result), result=result)


# -------------------------------------------------------------------------
# Conversion helpers
# -------------------------------------------------------------------------

def tool_result_message(call_id: str, result: types.ToolResult) -> types.ToolMessage:
    return types.ToolMessage(
        role="tool",
        tool_call_id=call_id,
        content=json.dumps(
            {"result": result.description, "success": result.success},
            ensure_ascii=False,
        ),
    )


def parameters_schema(model: type[pydantic.BaseModel]) -> dict[str, Any]:
    """JSON schema for a tool's parameters, flattened for function calling.

    Inlines ``$ref`` definitions, drops titles and defaults and collapses
    ``X | None`` unions to ``X``.
    """
    raw = model.model_json_schema()
    defs = raw.pop("$defs", {})

    def clean(node: Any) -> Any:
        if isinstance(node, list):
            return [clean(item) for item in node]
        if not isinstance(node, dict):
            return node

        if "$ref" in node:
            target = defs[node["$ref"].rsplit("/", 1)[-1]]
            merged = {**target, **{k: v for k, v in node.items() if k != "$ref"}}
            return clean(merged)

        if "anyOf" in node:
            options = [opt for opt in node["anyOf"] if opt.get("type") != "null"]
            if len(options) == 1:
                rest = {k: v for k, v in node.items() if k != "anyOf"}
                return clean({**options[0], **rest})

        return {
            key: clean(value)
            for key, value in node.items()
            if key not in ("title", "default")
        }

    schema = clean(raw)
    schema.setdefault("properties", {})
    schema["type"] = "object"
    return schema
