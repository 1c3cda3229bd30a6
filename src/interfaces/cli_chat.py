import uuid
from typing import Literal

import openai

from smartburger_ai.common import chat as chat_lib
from smartburger_ai.common import types
from src.agents import fallback
from src.config import ADMIN_AGENT_NAME, ORDERING_AGENT_NAME
from src.database import db
from src.interfaces.rich_chat_display import RichChatDisplay
from src.utils.chat_history_logger import ChatHistoryLogger, ToolUseLogger
from src.utils.logger import get_logger

logger = get_logger(__name__)


async def run_cli_chat(
    which: Literal["maria", "max"],
    agent,
    *,
    user_email: str | None = None,
    display: RichChatDisplay | None = None,
):
    """
    Terminal chat with one of the two agents, using a Rich-based UI.
    The transcript is kept as a Chat so the history logger can observe it.
    """
    display = display or RichChatDisplay()
    display.clear()

    name = ORDERING_AGENT_NAME if which == "maria" else ADMIN_AGENT_NAME
    display.console.print(f"\n[bold magenta]=== SmartBurger AI – {name} ===[/]")
    display.console.print("Presiona ENTER sin texto para terminar.\n")

    history_logger = ChatHistoryLogger(session_name=which)
    transcript = chat_lib.Chat(observers=[history_logger])
    tool_logger = ToolUseLogger(session_name=which) if which == "max" else None
    session_id = f"cli-{uuid.uuid4().hex[:8]}"

    while True:
        # ---------- User input ----------
        try:
            user_input = input("Tú: ").strip()
        except (KeyboardInterrupt, EOFError):
            display.console.print("\nChat terminado por el usuario.")
            break

        if not user_input:
            display.console.print("\nChat terminado.")
            break

        history = [
            types.ChatTurn(role=types.message_role(m), content=types.message_content(m) or "")
            for m in transcript.messages
        ]
        transcript.append(types.UserMessage(role="user", content=user_input))
        display.display_user(user_input)
        logger.info("[%s] User input: %s", which, user_input)

        # ---------- Call agent ----------
        if which == "maria":
            try:
                turn = await agent(
                    [*history, types.ChatTurn(role="user", content=user_input)],
                    session_id=session_id,
                    user_email=user_email,
                )
            except (openai.APIError, TimeoutError) as e:
                logger.error("Ordering agent error: %s", e)
                reply_text = fallback.customer_fallback(db.list_active_products())
                display.display_system(reply_text)
            else:
                reply_text = turn.display_text
                display.display_ordering_turn(turn)
        else:
            reply = await agent(user_input, history, observers=[tool_logger])
            reply_text = reply.message
            display.display_admin_reply(reply)

        transcript.append(types.AssistantMessageParam(role="assistant", content=reply_text))
        display.console.rule()

    if which == "maria":
        await agent.drain()
    history_logger.log_session_end()
    if tool_logger is not None:
        logger.info("Tool usage: %s", tool_logger.get_stats())
