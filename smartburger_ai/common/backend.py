"""This file provides abstractions for interacting with the Gemini LLM backends."""

import asyncio
import dataclasses
import logging
import os
import time
from dataclasses import field
from pathlib import Path
from typing import Any

import openai

from smartburger_ai.common import chat as chat_lib
from smartburger_ai.common import metrics as metrics_lib
from smartburger_ai.common import types
from smartburger_ai.common.util import ratelimit

logger = logging.getLogger(__name__)


_GOOGLE_OPENAI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
_GEMINI_API_KEY_ENV_VARS = ("GEMINI_API_KEY", "GOOGLE_API_KEY")

# Upper bound for a provider-suggested retry delay.
_MAX_RETRY_AFTER_SECONDS = 10.0


def gemini_api_key() -> str | None:
    """Returns the first configured Gemini key, if any."""
    for var in _GEMINI_API_KEY_ENV_VARS:
        value = os.environ.get(var)
        if value:
            return value
    return None


class AsyncLLMBackend:
    """
    Asynchronous wrapper around Gemini chat models (OpenAI-compatible API).

    Exposes a plain prompt completion for the ordering agent and a
    chat-with-tools call for the admin agent.
    """

    _client: openai.AsyncClient
    _model: str
    _ratelimiter: ratelimit.RateLimiter | None
    _fallback_configs: list["LLMBackendConfig"]
    _chat_store_dir: Path | None
    _metrics: metrics_lib.MetricsSink
    _call_timeout: float | None

    def __init__(
        self,
        *,
        client: openai.AsyncClient,
        model: str,
        ratelimiter: ratelimit.RateLimiter | None,
        fallbacks: list["LLMBackendConfig"] | None = None,
        chat_store_dir: Path | None = None,
        metrics: metrics_lib.MetricsSink | None = None,
        call_timeout: float | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._ratelimiter = ratelimiter
        self._fallback_configs = fallbacks or []
        self._chat_store_dir = chat_store_dir
        self._metrics = metrics or metrics_lib.NullMetrics()
        self._call_timeout = call_timeout

    @property
    def model(self) -> str:
        return self._model

    async def __call__(
        self,
        *,
        response_format: type | None = None,
        **kwargs: Any,
    ) -> types.ModelResponse:
        """
        Calls the model asynchronously.
        """

        if self._ratelimiter:
            async with self._ratelimiter:
                return await self._call_internal(response_format=response_format, **kwargs)

        return await self._call_internal(response_format=response_format, **kwargs)

    async def _call_internal(
        self,
        *,
        response_format: type | None = None,
        **kwargs: Any,
    ) -> types.ModelResponse:
        if response_format is not None:
            kwargs["response_format"] = response_format
            fn = self._client.chat.completions.parse
        else:
            fn = self._client.chat.completions.create
        try:
            response = await asyncio.wait_for(
                fn(model=self._model, **kwargs), timeout=self._call_timeout
            )
        except openai.RateLimitError:
            self._metrics.record_error(model=self._model, kind="rate_limit")
            raise
        except asyncio.TimeoutError:
            self._metrics.record_error(model=self._model, kind="timeout")
            raise
        except openai.APIError:
            self._metrics.record_error(model=self._model, kind="api_error")
            raise
        self._record_usage(response)
        return response

    def _record_usage(self, response: types.ModelResponse) -> None:
        usage = getattr(response, "usage", None)
        if usage is None:
            return
        self._metrics.record_usage(
            model=self._model,
            prompt_tokens=usage.prompt_tokens or 0,
            completion_tokens=usage.completion_tokens or 0,
        )

    async def generate(
        self,
        chat: chat_lib.Chat,
        /,
        **kwargs: Any,
    ) -> types.ModelResponse:
        try:
            return await self(messages=chat.messages, **kwargs)
        except openai.RateLimitError as err:
            return await self._handle_rate_limit(chat=chat, kwargs=kwargs, error=err)

    async def complete(self, prompt: str, /, **kwargs: Any) -> str:
        """Single-shot completion of a prompt string. Returns the text ('' if none)."""
        chat = chat_lib.Chat(messages=[types.UserMessage(role="user", content=prompt)])
        response = await self.generate(chat, **kwargs)
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    # ------------------------------------------------------------------
    # Rate limit handling
    # ------------------------------------------------------------------
    def _persist_chat(self, chat: chat_lib.Chat, reason: str) -> Path | None:
        if not self._chat_store_dir:
            return None

        try:
            self._chat_store_dir.mkdir(parents=True, exist_ok=True)
            safe_model = self._model.replace("/", "-")
            path = self._chat_store_dir / f"{int(time.time())}_{safe_model}_{reason}.json"
            with path.open("wb") as fp:
                chat.save(fp)
            logger.info("Saved chat history for retry: %s", path)
            return path
        except (OSError, TypeError, ValueError):
            logger.exception("Failed to persist chat after rate limit")
            return None

    @staticmethod
    def _extract_retry_after(error: openai.RateLimitError) -> float | None:
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            try:
                return max(float(retry_after), 0.0)
            except (TypeError, ValueError):
                pass

        response = getattr(error, "response", None)
        headers = getattr(response, "headers", None) if response else None
        if headers:
            header_val = headers.get("retry-after") or headers.get("Retry-After")
            if header_val:
                try:
                    return max(float(header_val), 0.0)
                except (TypeError, ValueError):
                    return None
        return None

    async def _try_fallbacks(
        self,
        *,
        chat: chat_lib.Chat,
        kwargs: dict[str, Any],
    ) -> types.ModelResponse | None:
        for idx, cfg in enumerate(self._fallback_configs):
            if not cfg.is_free:
                continue
            if not cfg.api_key:
                logger.debug("Skipping fallback %s: missing API key", cfg.model_name)
                continue
            if cfg.model_name == self._model:
                continue

            remaining = self._fallback_configs[idx + 1 :]
            backend = cfg.get_async_backend(
                fallback_configs=remaining,
                chat_store_dir=self._chat_store_dir,
                metrics=self._metrics,
                call_timeout=self._call_timeout,
            )
            try:
                logger.info(
                    "Rate limit hit on %s, switching to model %s",
                    self._model,
                    cfg.model_name,
                )
                return await backend.generate(chat, **kwargs)
            except openai.RateLimitError:
                logger.warning(
                    "Fallback model %s also rate-limited, trying next model",
                    cfg.model_name,
                )
                continue
            except openai.APIError:
                logger.exception(
                    "Fallback model %s failed, attempting next option", cfg.model_name
                )
                continue
        return None

    async def _handle_rate_limit(
        self,
        *,
        chat: chat_lib.Chat,
        kwargs: dict[str, Any],
        error: openai.RateLimitError,
    ) -> types.ModelResponse:
        self._persist_chat(chat, "rate-limit")

        retry_after = self._extract_retry_after(error)
        if retry_after is not None and retry_after <= _MAX_RETRY_AFTER_SECONDS:
            logger.warning(
                "Rate limit for %s. Retrying after %.2f seconds.", self._model, retry_after
            )
            await asyncio.sleep(retry_after)
            try:
                return await self(messages=chat.messages, **kwargs)
            except openai.RateLimitError as err:
                error = err  # use latest error

        fallback_response = await self._try_fallbacks(chat=chat, kwargs=kwargs)
        if fallback_response is not None:
            return fallback_response

        # No fallback available → re-raise
        raise error


# -------------------------------------------------------------------------
# Backend configuration classes
# -------------------------------------------------------------------------

@dataclasses.dataclass(kw_only=True)
class LLMBackendConfig:
    """
    Base class for all backend configs.
    """

    name: str
    base_url: str
    model_name: str
    api_key: str | None = None
    ratelimit: float | None = None
    is_free: bool = False

    def get_async_backend(
        self,
        *,
        fallback_configs: list["LLMBackendConfig"] | None = None,
        chat_store_dir: Path | None = None,
        metrics: metrics_lib.MetricsSink | None = None,
        call_timeout: float | None = None,
    ) -> AsyncLLMBackend:
        client = openai.AsyncClient(base_url=self.base_url, api_key=self.api_key)
        rate = ratelimit.RateLimiter(self.ratelimit) if self.ratelimit else None
        return AsyncLLMBackend(
            client=client,
            model=self.model_name,
            ratelimiter=rate,
            fallbacks=fallback_configs,
            chat_store_dir=chat_store_dir,
            metrics=metrics,
            call_timeout=call_timeout,
        )


# -------------------------------------------------------------------------
# Concrete Backends
# -------------------------------------------------------------------------

@dataclasses.dataclass(kw_only=True)
class Gemini2p5Flash(LLMBackendConfig):
    name: str = "Gemini 2.5 Flash"
    base_url: str = _GOOGLE_OPENAI_API_BASE_URL
    model_name: str = "gemini-2.5-flash"
    api_key: str | None = field(default_factory=gemini_api_key)
    ratelimit: float | None = 10.
    is_free: bool = True


@dataclasses.dataclass(kw_only=True)
class Gemini2p0Flash(LLMBackendConfig):
    name: str = "Gemini 2.0 Flash"
    base_url: str = _GOOGLE_OPENAI_API_BASE_URL
    model_name: str = "gemini-2.0-flash"
    api_key: str | None = field(default_factory=gemini_api_key)
    ratelimit: float | None = 15.
    is_free: bool = True


@dataclasses.dataclass(kw_only=True)
class Gemini2p5FlashLite(LLMBackendConfig):
    name: str = "Gemini 2.5 Flash Lite"
    base_url: str = _GOOGLE_OPENAI_API_BASE_URL
    model_name: str = "gemini-2.5-flash-lite"
    api_key: str | None = field(default_factory=gemini_api_key)
    ratelimit: float | None = 15.
    is_free: bool = True
