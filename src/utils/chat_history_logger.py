"""
Chat observers implementing the ChatObserver protocol.
Includes: transcript logging and tool use tracking for terminal sessions.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from smartburger_ai.common import types
from smartburger_ai.common.chat import ChatObserver
from src.config import CHAT_HISTORY_DIR, TOOL_LOG_DIR
from src.utils.logger import get_logger

logger = get_logger(__name__)


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, default=str)


class ChatHistoryLogger(ChatObserver):
    """
    Persists chat messages to disk.
    Each session creates a timestamped JSON file that is rewritten on every message.
    """

    def __init__(self, session_name: str | None = None, directory: Path = CHAT_HISTORY_DIR):
        self._session_name = session_name or "chat"
        self._timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._filepath = directory / f"{self._session_name}_{self._timestamp}.json"
        self._messages: list[dict[str, Any]] = []

        self._save()
        logger.info("Chat history logger initialized: %s", self._filepath)

    @property
    def filepath(self) -> Path:
        return self._filepath

    @property
    def messages(self) -> list[dict[str, Any]]:
        return list(self._messages)

    def update(self, message: types.Message) -> None:
        msg_dict = types.message_to_dict(message)
        msg_dict["timestamp"] = datetime.now().isoformat()
        self._messages.append(msg_dict)
        self._save()

    def _save(self, **extra: Any) -> None:
        try:
            _write_json(
                self._filepath,
                {
                    "session": self._session_name,
                    "started": self._timestamp,
                    **extra,
                    "messages": self._messages,
                },
            )
        except OSError as e:
            logger.error("Failed to save chat history: %s", e)

    def log_session_end(self) -> None:
        """Mark the session as ended and save final state."""
        self._save(ended=datetime.now().isoformat())
        logger.info("Chat session ended, saved to: %s", self._filepath)


class ToolUseLogger(ChatObserver):
    """
    Tracks the admin agent's tool usage:
    - which tools are called, with their arguments
    - the success flag and description each one returned
    """

    def __init__(self, session_name: str = "tools", directory: Path = TOOL_LOG_DIR):
        self._session_name = session_name
        self._timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._filepath = directory / f"tools_{session_name}_{self._timestamp}.json"

        self._tool_calls: list[dict[str, Any]] = []
        self._pending_calls: dict[str, dict[str, Any]] = {}  # tool_call_id -> call info

        self._save()
        logger.info("Tool use logger initialized: %s", self._filepath)

    @property
    def filepath(self) -> Path:
        return self._filepath

    @property
    def calls(self) -> list[dict[str, Any]]:
        return list(self._tool_calls)

    def update(self, message: types.Message) -> None:
        msg = types.message_to_dict(message)

        for tc in msg.get("tool_calls") or []:
            function = tc.get("function") or {}
            call_info = {
                "call_id": tc.get("id", "unknown"),
                "function_name": function.get("name", "unknown"),
                "arguments": self._parse_json(function.get("arguments") or "{}"),
                "called_at": datetime.now().isoformat(),
                "result": None,
                "success": None,
                "duration_ms": None,
            }
            self._pending_calls[call_info["call_id"]] = call_info
            self._tool_calls.append(call_info)

        if msg.get("role") == "tool":
            call_info = self._pending_calls.pop(msg.get("tool_call_id"), None)
            if call_info is not None:
                result = self._parse_json(msg.get("content") or "")
                call_info["result"] = result.get("result", result)
                call_info["success"] = result.get("success")
                called = datetime.fromisoformat(call_info["called_at"])
                call_info["duration_ms"] = int((datetime.now() - called).total_seconds() * 1000)

        self._save()

    @staticmethod
    def _parse_json(raw: str) -> dict[str, Any]:
        try:
            parsed = json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            return {"raw": raw}
        return parsed if isinstance(parsed, dict) else {"raw": parsed}

    def get_stats(self) -> dict[str, Any]:
        by_function: dict[str, int] = {}
        failed = 0
        for call in self._tool_calls:
            name = call["function_name"]
            by_function[name] = by_function.get(name, 0) + 1
            if call["success"] is False:
                failed += 1
        return {
            "total_calls": len(self._tool_calls),
            "failed_calls": failed,
            "pending_calls": len(self._pending_calls),
            "by_function": by_function,
        }

    def _save(self) -> None:
        try:
            _write_json(
                self._filepath,
                {
                    "session": self._session_name,
                    "started": self._timestamp,
                    "last_updated": datetime.now().isoformat(),
                    "stats": self.get_stats(),
                    "calls": self._tool_calls,
                },
            )
        except OSError as e:
            logger.error("Failed to save tool use log: %s", e)
