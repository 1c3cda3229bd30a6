"""Max, the admin agent: tool-calling loop over the restaurant's live data."""

import asyncio
import dataclasses
from collections.abc import Sequence

import openai

from smartburger_ai.common import agent as agent_lib
from smartburger_ai.common import chat as chat_lib
from smartburger_ai.common.types import ChatTurn, ToolResult
from src.agents import fallback
from src.agents.prompts_admin import build_system_context
from src.config import AGENT_TURN_TIMEOUT_SECONDS, MAX_TOOL_ITERATIONS
from src.database import db
from src.tools import alerts, registry
from src.tools.admin_tools import admin_metrics
from src.utils.logger import get_logger

logger = get_logger(__name__)

NO_KEY_PREFIX = "⚠️ GEMINI_API_KEY no configurada. Respuesta básica:\n\n"
PROVIDER_ERROR_PREFIX = "⚠️ Error con Gemini. Respuesta básica:\n\n"
QUOTA_PREFIX = "⚠️ Cuota de Gemini agotada. Respuesta básica:\n\n"
TIMEOUT_PREFIX = "⚠️ Gemini tardó demasiado. Respuesta básica:\n\n"


@dataclasses.dataclass
class AdminReply:
    message: str
    actions: list[ToolResult]
    success: bool = True
    mock: bool = False
    quota_error: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "success": self.success,
            "message": self.message,
            "actions": [a.to_dict() for a in self.actions],
            "mock": self.mock,
        }
        if self.quota_error:
            data["quotaError"] = True
        if self.error:
            data["error"] = self.error
        return data


def spanish_summary(actions: list[ToolResult]) -> str:
    lines = ["Alcancé el límite de pasos para esta petición. Esto es lo que hice:"]
    lines += [f"- {'✓' if a.success else '✗'} {a.description}" for a in actions]
    return "\n".join(lines)


class AdminAgent:
    def __init__(self, backend=None, *, max_iterations: int = MAX_TOOL_ITERATIONS) -> None:
        self._backend = backend
        self._max_iterations = max_iterations

    async def __call__(
        self,
        message: str,
        history: Sequence[ChatTurn] = (),
        *,
        observers: Sequence[chat_lib.ChatObserver] = (),
    ) -> AdminReply:
        metrics = admin_metrics()
        snapshot = alerts.build_snapshot(db.list_products(), db.list_ingredients())

        if self._backend is None:
            return AdminReply(
                message=NO_KEY_PREFIX + fallback.admin_fallback(message, metrics, snapshot),
                actions=[],
                mock=True,
            )

        context = build_system_context(
            metrics,
            snapshot,
            db.list_ingredients(),
            db.list_promotions(),
            db.list_products(),
            db.list_orders(limit=8),
        )
        chat = chat_lib.Chat.from_turns(
            [*history, ChatTurn(role="user", content=message)],
            system_prompt=context,
        )
        for observer in observers:
            chat.add_observer(observer)
        agent = agent_lib.Agent(
            self._backend,
            registry.tool_manager(),
            max_iterations=self._max_iterations,
            summarize=spanish_summary,
        )

        run = agent_lib.AgentRun()
        try:
            await asyncio.wait_for(agent(chat=chat, run=run), timeout=AGENT_TURN_TIMEOUT_SECONDS)
        except openai.RateLimitError as err:
            logger.warning("Admin agent hit the provider quota: %s", err)
            return self._degraded(QUOTA_PREFIX, message, metrics, run, quota_error=True, error=str(err))
        except asyncio.TimeoutError:
            logger.warning("Admin turn timed out after %.0fs", AGENT_TURN_TIMEOUT_SECONDS)
            return self._degraded(TIMEOUT_PREFIX, message, metrics, run, error="timeout")
        except openai.APIError as err:
            logger.error("Admin agent provider error: %s", err)
            return self._degraded(PROVIDER_ERROR_PREFIX, message, metrics, run, error=str(err))

        logger.info(
            "Admin turn finished in %d iterations with %d actions",
            run.iterations,
            len(run.actions),
        )
        return AdminReply(
            message=run.text or "No tengo una respuesta para eso ahora mismo.",
            actions=run.actions,
        )

    def _degraded(
        self,
        prefix: str,
        message: str,
        metrics: dict,
        run: agent_lib.AgentRun,
        *,
        quota_error: bool = False,
        error: str | None = None,
    ) -> AdminReply:
        # Stock may have changed during the partial run
        snapshot = alerts.build_snapshot(db.list_products(), db.list_ingredients())
        text = prefix + fallback.admin_fallback(message, metrics, snapshot)
        if run.actions:
            text += "\n\n" + agent_lib.default_summary(run.actions)
        return AdminReply(
            message=text,
            actions=run.actions,
            mock=True,
            quota_error=quota_error,
            error=error,
        )
