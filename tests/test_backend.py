import asyncio
import dataclasses
from types import SimpleNamespace

import openai
import pytest
from pydantic import BaseModel

from smartburger_ai.common import backend as backend_lib
from smartburger_ai.common import chat as chat_lib
from smartburger_ai.common import metrics as metrics_lib
from smartburger_ai.common.util.ratelimit import RateLimiter
from tests.fakes import completion, rate_limit_error


class FakeCompletions:
    def __init__(self, replies, delay=0.0):
        self._replies = list(replies)
        self._delay = delay
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self._delay:
            await asyncio.sleep(self._delay)
        reply = self._replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def parse(self, **kwargs):
        return await self.create(parsed=True, **kwargs)


def fake_client(replies, delay=0.0):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(replies, delay)))


@dataclasses.dataclass(kw_only=True)
class FakeLiteConfig(backend_lib.LLMBackendConfig):
    name: str = "Fake Lite"
    base_url: str = "http://localhost:0/v1"
    model_name: str = "fake-lite"
    api_key: str | None = "test-key"
    is_free: bool = True
    replies: list = dataclasses.field(default_factory=list)

    def get_async_backend(self, *, metrics=None, **kwargs):
        return backend_lib.AsyncLLMBackend(
            client=fake_client(self.replies),
            model=self.model_name,
            ratelimiter=None,
            metrics=metrics,
        )


def test_complete_returns_text_and_records_usage():
    metrics = metrics_lib.InMemoryMetrics({"fake-main": (1.0, 2.0)})
    client = fake_client([completion("¡Hola!", usage=(1000, 500))])
    llm = backend_lib.AsyncLLMBackend(client=client, model="fake-main", ratelimiter=None, metrics=metrics)

    assert asyncio.run(llm.complete("hola", temperature=0.7)) == "¡Hola!"

    (request,) = client.chat.completions.requests
    assert request["model"] == "fake-main"
    assert request["temperature"] == 0.7
    assert request["messages"] == [{"role": "user", "content": "hola"}]

    snapshot = metrics.snapshot()
    assert snapshot["total_tokens"] == 1500
    assert snapshot["models"]["fake-main"]["estimated_cost_usd"] == pytest.approx(0.002)


class Verdict(BaseModel):
    ok: bool


def test_response_format_uses_structured_parsing():
    client = fake_client([completion('{"ok": true}'), completion("hola")])
    llm = backend_lib.AsyncLLMBackend(client=client, model="fake-main", ratelimiter=None)
    chat = chat_lib.Chat(messages=[{"role": "user", "content": "¿todo bien?"}])

    asyncio.run(llm.generate(chat, response_format=Verdict))
    asyncio.run(llm.complete("hola"))

    structured, plain = client.chat.completions.requests
    assert structured["parsed"] is True
    assert structured["response_format"] is Verdict
    assert "parsed" not in plain and "response_format" not in plain


def test_rate_limit_switches_to_free_fallback(tmp_path):
    metrics = metrics_lib.InMemoryMetrics()
    llm = backend_lib.AsyncLLMBackend(
        client=fake_client([rate_limit_error()]),
        model="fake-main",
        ratelimiter=None,
        fallbacks=[FakeLiteConfig(replies=[completion("desde el respaldo", usage=(10, 5))])],
        chat_store_dir=tmp_path,
        metrics=metrics,
    )

    assert asyncio.run(llm.complete("hola")) == "desde el respaldo"

    models = metrics.snapshot()["models"]
    assert models["fake-main"]["errors"] == {"rate_limit": 1}
    assert models["fake-lite"]["calls"] == 1
    assert len(list(tmp_path.glob("*_fake-main_rate-limit.json"))) == 1


def test_rate_limit_without_fallback_is_raised():
    llm = backend_lib.AsyncLLMBackend(client=fake_client([rate_limit_error()]), model="fake-main", ratelimiter=None)
    with pytest.raises(openai.RateLimitError):
        asyncio.run(llm.complete("hola"))


def test_slow_call_times_out():
    metrics = metrics_lib.InMemoryMetrics()
    llm = backend_lib.AsyncLLMBackend(
        client=fake_client([completion("tarde")], delay=1.0),
        model="fake-main",
        ratelimiter=None,
        metrics=metrics,
        call_timeout=0.01,
    )
    with pytest.raises(TimeoutError):
        asyncio.run(llm.complete("hola"))
    assert metrics.snapshot()["models"]["fake-main"]["errors"] == {"timeout": 1}


def test_api_key_lookup_order(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    assert backend_lib.gemini_api_key() is None

    monkeypatch.setenv("GOOGLE_API_KEY", "google")
    assert backend_lib.gemini_api_key() == "google"
    monkeypatch.setenv("GEMINI_API_KEY", "gemini")
    assert backend_lib.gemini_api_key() == "gemini"


def test_rate_limiter_spacing():
    clock = SimpleNamespace(now=0.0)
    limiter = RateLimiter(2.0, clock=lambda: clock.now)
    assert limiter.delay() == 0.0

    async def enter():
        async with limiter:
            pass

    asyncio.run(enter())
    clock.now = 0.2
    assert limiter.delay() == pytest.approx(0.3)
    clock.now = 1.0
    assert limiter.delay() == 0.0
    assert RateLimiter(None).delay() == 0.0
