"""Fake model backends and provider errors for agent tests."""

import asyncio
import json

import httpx
import openai
from openai.types.chat import ChatCompletion


def completion(
    content: str | None = None,
    tool_calls: list[tuple[str, dict]] | None = None,
    usage: tuple[int, int] | None = None,
) -> ChatCompletion:
    """A provider response with either text or function calls."""
    message: dict = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": f"call_{i}",
                "type": "function",
                "function": {"name": name, "arguments": json.dumps(args)},
            }
            for i, (name, args) in enumerate(tool_calls)
        ]
    payload = {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 0,
        "model": "fake-model",
        "choices": [
            {
                "index": 0,
                "finish_reason": "tool_calls" if tool_calls else "stop",
                "message": message,
            }
        ],
    }
    if usage:
        prompt_tokens, completion_tokens = usage
        payload["usage"] = {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        }
    return ChatCompletion.model_validate(payload)


def connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=httpx.Request("POST", "https://example.invalid/v1"))


def rate_limit_error() -> openai.RateLimitError:
    request = httpx.Request("POST", "https://example.invalid/v1")
    return openai.RateLimitError(
        "quota exceeded",
        response=httpx.Response(429, request=request),
        body=None,
    )


class ScriptedChatBackend:
    """Plays back canned responses to generate(); an exception in the script is raised."""

    def __init__(self, responses, repeat_last: bool = False, delay: float = 0.0):
        self._responses = list(responses)
        self._repeat_last = repeat_last
        self._delay = delay
        self.calls = []

    async def generate(self, chat, **kwargs):
        self.calls.append({"messages": list(chat.messages), **kwargs})
        if self._delay:
            await asyncio.sleep(self._delay)
        if len(self._responses) > 1 or not self._repeat_last:
            response = self._responses.pop(0)
        else:
            response = self._responses[0]
        if isinstance(response, BaseException):
            raise response
        return response


class FakeCompletionBackend:
    """Returns canned text from complete() and records every prompt."""

    def __init__(self, *replies, delay: float = 0.0):
        self._replies = list(replies)
        self._delay = delay
        self.prompts = []

    async def complete(self, prompt, /, **kwargs):
        self.prompts.append(prompt)
        if self._delay:
            await asyncio.sleep(self._delay)
        reply = self._replies.pop(0) if len(self._replies) > 1 else self._replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply
