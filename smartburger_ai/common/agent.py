"""Agent logic for interacting with LLMs + registered tools."""

import dataclasses
import logging
from collections.abc import Callable
from typing import Any

from smartburger_ai.common import chat as chat_lib
from smartburger_ai.common import tools as tools_lib
from smartburger_ai.common import types

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class AgentRun:
    """State of one agent turn. Filled in place so partial progress survives cancellation."""

    text: str = ""
    actions: list[types.ToolResult] = dataclasses.field(default_factory=list)
    outputs: list[types.Message] = dataclasses.field(default_factory=list)
    iterations: int = 0
    exhausted: bool = False


def default_summary(actions: list[types.ToolResult]) -> str:
    return "\n".join(f"- {a.description}" for a in actions)


class Agent:
    """
    Generic agent that communicates with an LLM and executes tools.

    Tool flow (iterative):
    1) LLM responds → may include tool_calls
    2) Tools executed sequentially, in the order requested
    3) LLM is called AGAIN using updated chat history
    4) Repeat until no more tool_calls or max iterations reached
    """

    # Maximum tool call iterations to prevent infinite loops
    MAX_TOOL_ITERATIONS = 10

    def __init__(
        self,
        backend,
        tool_manager: tools_lib.ToolManager | None = None,
        *,
        max_iterations: int | None = None,
        summarize: Callable[[list[types.ToolResult]], str] = default_summary,
    ) -> None:
        self._backend = backend
        self._tool_manager = tool_manager
        self._max_iterations = max_iterations or self.MAX_TOOL_ITERATIONS
        self._summarize = summarize

    # -------------------------------------------------------------
    async def tools(self) -> list[types.Tool]:
        if not self._tool_manager:
            return []
        return await self._tool_manager.tools()

    # -------------------------------------------------------------
    async def __call__(
        self,
        *,
        chat: chat_lib.Chat,
        run: AgentRun | None = None,
        **kwargs: Any,
    ) -> AgentRun:
        run = run if run is not None else AgentRun()

        tools = await self.tools()
        if tools:
            kwargs["tools"] = tools

        final_text: str | None = None

        while run.iterations < self._max_iterations:
            run.iterations += 1

            # LLM CALL; provider errors propagate to the caller
            response = await self._backend.generate(chat, **kwargs)

            if not response.choices:
                logger.warning("Model returned no choices in iteration %d", run.iterations)
                break

            msg = response.choices[0].message
            message = types.message_to_dict(msg)
            chat.append(message)
            run.outputs.append(message)

            if not msg.tool_calls:
                final_text = msg.content
                break

            # -------------------------------------------------
            # TOOL CALL EXECUTION
            # -------------------------------------------------
            for tool_call in msg.tool_calls:
                outcome = await self._execute(tool_call)
                chat.append(outcome.message)
                run.outputs.append(outcome.message)
                run.actions.append(outcome.result)
        else:
            run.exhausted = True
            logger.warning(
                "Tool loop stopped after %d iterations without a final answer",
                run.iterations,
            )

        run.text = self._final_text(final_text, run)
        return run

    async def _execute(self, tool_call: types.ToolCall) -> tools_lib.ToolOutcome:
        tool_name = tool_call.function.name
        if self._tool_manager is None:
            result = types.ToolResult(type=tool_name, description="No tools available", success=False)
            return tools_lib.ToolOutcome(
                message=tools_lib.tool_result_message(tool_call.id, result), result=result
            )
        try:
            return await self._tool_manager(tool_call)
        except Exception as e:
            logger.exception("Tool %s execution failed", tool_name)
            # The model still needs a result for this call id
            result = types.ToolResult(type=tool_name, description=f"Error: {e}", success=False)
            return tools_lib.ToolOutcome(
                message=tools_lib.tool_result_message(tool_call.id, result), result=result
            )

    def _final_text(self, text: str | None, run: AgentRun) -> str:
        if run.exhausted and run.actions:
            return self._summarize(run.actions)
        if text and text.strip():
            return text.strip()
        if run.actions:
            return run.actions[-1].description
        return ""
