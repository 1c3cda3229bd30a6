"""Provides a chat abstraction."""

import json
from collections.abc import Iterable
from typing import IO, Protocol

from smartburger_ai.common import types


class ChatObserver(Protocol):
    """A protocol for chat observers."""

    def update(self, message: types.Message) -> None:
        """Updates the observer with the latest chat messages."""
        raise NotImplementedError


class Chat:
    """An append-only chat transcript."""

    _messages: list[types.Message]
    _observers: list[ChatObserver]

    def __init__(
        self,
        messages: Iterable[types.Message] | None = None,
        observers: Iterable[ChatObserver] | None = None,
    ) -> None:
        """Initializes a Chat instance."""
        self._messages = []
        self._observers = list(observers or [])
        if messages:
            self.append(*messages)

    @classmethod
    def from_turns(
        cls,
        turns: Iterable[types.ChatTurn],
        *,
        system_prompt: str | None = None,
    ) -> "Chat":
        """Builds a chat from HTTP-level turns, optionally led by a system prompt."""
        messages: list[types.Message] = []
        if system_prompt:
            messages.append(types.SystemMessage(role="system", content=system_prompt))
        messages.extend(turn.to_message() for turn in turns)
        return cls(messages=messages)

    def append(self, *messages: types.Message) -> None:
        """Appends messages to the chat."""
        for message in messages:
            self._messages.append(message)
            for observer in self._observers:
                observer.update(message)

    def add_observer(self, observer: ChatObserver) -> bool:
        """Adds an observer to the chat."""
        if observer in self._observers:
            return False
        self._observers.append(observer)
        return True

    def serialize(self) -> bytes:
        """Serializes the chat to JSON."""
        return json.dumps(
            [types.message_to_dict(message) for message in self.messages]
        ).encode()

    def save(self, fp: IO[bytes]) -> None:
        """Saves the chat to a file-like object."""
        fp.write(self.serialize())

    @property
    def messages(self) -> list[types.Message]:
        """Returns the messages in the chat."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
