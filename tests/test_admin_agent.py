import asyncio

from smartburger_ai.common import agent as agent_lib
from smartburger_ai.common import chat as chat_lib
from smartburger_ai.common.types import ChatTurn
from src.agents.admin_agent import (
    NO_KEY_PREFIX,
    PROVIDER_ERROR_PREFIX,
    QUOTA_PREFIX,
    TIMEOUT_PREFIX,
    AdminAgent,
)
from src.tools import registry
from src.utils.chat_history_logger import ToolUseLogger
from tests.fakes import ScriptedChatBackend, completion, connection_error, rate_limit_error


def _queso(db):
    return next(i for i in db.list_ingredients() if i["name"] == "Queso cheddar")


def test_stock_request_dispatches_tool_and_confirms(seeded):
    backend = ScriptedChatBackend(
        [
            completion(tool_calls=[("update_ingredient_stock", {"ingredient_name": "queso", "quantity": 50})]),
            completion("Listo, el queso cheddar quedó en 50 rebanadas."),
        ]
    )

    reply = asyncio.run(AdminAgent(backend)("sube el stock de queso a 50"))

    assert reply.success and not reply.mock
    assert "50" in reply.message
    assert [a.type for a in reply.actions] == ["update_ingredient_stock"]
    assert reply.actions[0].success
    assert _queso(seeded)["stock_quantity"] == 50

    # the second call sees the tool result
    second_call = backend.calls[1]["messages"]
    assert second_call[-1]["role"] == "tool"
    assert "Queso cheddar" in second_call[-1]["content"]
    assert len(backend.calls[0]["tools"]) == len(registry.TOOLS)


def test_tools_run_in_requested_order(seeded):
    backend = ScriptedChatBackend(
        [
            completion(
                tool_calls=[
                    ("update_ingredient_stock", {"ingredient_name": "queso", "quantity": 10}),
                    ("update_ingredient_stock", {"ingredient_name": "queso", "quantity": 20}),
                ]
            ),
            completion("Hecho."),
        ]
    )
    reply = asyncio.run(AdminAgent(backend)("ajusta el queso"))
    assert len(reply.actions) == 2
    assert _queso(seeded)["stock_quantity"] == 20


def test_loop_stops_at_iteration_bound(seeded):
    backend = ScriptedChatBackend(
        [completion(tool_calls=[("analyze_stock", {})])],
        repeat_last=True,
    )

    reply = asyncio.run(AdminAgent(backend, max_iterations=3)("revisa todo"))

    assert len(backend.calls) == 3
    assert len(reply.actions) == 3
    assert reply.message.startswith("Alcancé el límite de pasos")


def test_empty_final_text_falls_back_to_last_action(seeded):
    backend = ScriptedChatBackend(
        [
            completion(tool_calls=[("update_product_price", {"product_name": "agua", "price": 1.25})]),
            completion(""),
        ]
    )
    reply = asyncio.run(AdminAgent(backend)("agua a 1.25"))
    assert reply.message == 'Precio de "Agua" actualizado: $0.99 → $1.25'


def test_invalid_tool_arguments_are_reported_to_the_model(seeded):
    backend = ScriptedChatBackend(
        [
            completion(tool_calls=[("update_product_price", {"product_name": "agua"})]),
            completion("Me faltó el precio."),
        ]
    )
    reply = asyncio.run(AdminAgent(backend)("cambia el agua"))
    assert reply.actions[0].success is False
    assert reply.message == "Me faltó el precio."


def test_provider_error_uses_fallback(seeded):
    backend = ScriptedChatBackend([connection_error()])
    reply = asyncio.run(AdminAgent(backend)("¿cómo va el stock?"))
    assert reply.mock
    assert reply.message.startswith(PROVIDER_ERROR_PREFIX)
    assert "Inventario en orden" in reply.message
    assert reply.to_dict()["error"]


def test_quota_error_keeps_partial_actions(seeded):
    backend = ScriptedChatBackend(
        [
            completion(tool_calls=[("update_ingredient_stock", {"ingredient_name": "bacon", "quantity": 0})]),
            rate_limit_error(),
        ]
    )
    reply = asyncio.run(AdminAgent(backend)("bacon agotado, ¿cómo va el stock?"))

    body = reply.to_dict()
    assert body["mock"] is True
    assert body["quotaError"] is True
    assert reply.message.startswith(QUOTA_PREFIX)
    assert "SIN STOCK: Bacon" in reply.message
    assert [a["type"] for a in body["actions"]] == ["update_ingredient_stock"]


def test_turn_timeout_uses_fallback(seeded, monkeypatch):
    monkeypatch.setattr("src.agents.admin_agent.AGENT_TURN_TIMEOUT_SECONDS", 0.05)
    backend = ScriptedChatBackend([completion("demasiado tarde")], delay=1.0)

    reply = asyncio.run(AdminAgent(backend)("¿cómo va el stock?"))

    assert reply.mock
    assert reply.error == "timeout"
    assert reply.message.startswith(TIMEOUT_PREFIX)
    assert "Inventario en orden" in reply.message
    assert reply.actions == []


def test_without_backend_answers_in_basic_mode(seeded):
    reply = asyncio.run(AdminAgent(None)("hola Max"))
    assert reply.mock and reply.actions == []
    assert reply.message.startswith(NO_KEY_PREFIX)


def test_history_is_sent_before_the_new_message(seeded):
    backend = ScriptedChatBackend([completion("Claro.")])
    history = [ChatTurn("user", "hola"), ChatTurn("assistant", "Max aquí.")]
    asyncio.run(AdminAgent(backend)("¿y las ventas?", history))

    messages = backend.calls[0]["messages"]
    assert messages[0]["role"] == "system"
    assert [m["content"] for m in messages[1:]] == ["hola", "Max aquí.", "¿y las ventas?"]


def test_tool_use_logger_observes_the_run(seeded, tmp_path):
    backend = ScriptedChatBackend(
        [
            completion(tool_calls=[("analyze_stock", {})]),
            completion("Todo bien."),
        ]
    )
    tool_logger = ToolUseLogger(session_name="test", directory=tmp_path)
    asyncio.run(AdminAgent(backend)("stock", observers=[tool_logger]))

    (call,) = tool_logger.calls
    assert call["function_name"] == "analyze_stock"
    assert call["success"] is True
    assert tool_logger.get_stats()["total_calls"] == 1
    assert tool_logger.filepath.exists()


def test_agent_without_tools_returns_text():
    backend = ScriptedChatBackend([completion("hola")])
    run = asyncio.run(agent_lib.Agent(backend)(chat=chat_lib.Chat()))
    assert run.text == "hola"
    assert run.iterations == 1 and not run.exhausted
    assert "tools" not in backend.calls[0]
