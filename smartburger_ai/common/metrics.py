"""Token and cost accounting for model calls.

The backend reports every completion's usage to a ``MetricsSink``. The
default sink keeps counters in memory; swap it for a real observability
backend by implementing the protocol.
"""

import dataclasses
import threading
from typing import Any, Protocol


class MetricsSink(Protocol):
    """Receives usage reports from the LLM backend."""

    def record_usage(
        self,
        *,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
    ) -> None:
        raise NotImplementedError

    def record_error(self, *, model: str, kind: str) -> None:
        raise NotImplementedError


class NullMetrics:
    """Discards everything."""

    def record_usage(self, *, model: str, prompt_tokens: int, completion_tokens: int) -> None:
        return None

    def record_error(self, *, model: str, kind: str) -> None:
        return None


@dataclasses.dataclass
class ModelUsage:
    calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    errors: dict[str, int] = dataclasses.field(default_factory=dict)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class InMemoryMetrics:
    """Per-model counters with an optional price table (USD per 1M tokens)."""

    def __init__(self, prices: dict[str, tuple[float, float]] | None = None) -> None:
        self._prices = prices or {}
        self._usage: dict[str, ModelUsage] = {}
        self._lock = threading.Lock()

    def record_usage(self, *, model: str, prompt_tokens: int, completion_tokens: int) -> None:
        with self._lock:
            usage = self._usage.setdefault(model, ModelUsage())
            usage.calls += 1
            usage.prompt_tokens += prompt_tokens
            usage.completion_tokens += completion_tokens

    def record_error(self, *, model: str, kind: str) -> None:
        with self._lock:
            usage = self._usage.setdefault(model, ModelUsage())
            usage.errors[kind] = usage.errors.get(kind, 0) + 1

    def cost(self, model: str) -> float:
        usage = self._usage.get(model)
        if usage is None or model not in self._prices:
            return 0.0
        input_price, output_price = self._prices[model]
        return (
            usage.prompt_tokens * input_price + usage.completion_tokens * output_price
        ) / 1_000_000

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            models = {
                model: {
                    "calls": usage.calls,
                    "prompt_tokens": usage.prompt_tokens,
                    "completion_tokens": usage.completion_tokens,
                    "total_tokens": usage.total_tokens,
                    "errors": dict(usage.errors),
                }
                for model, usage in self._usage.items()
            }
        for model, data in models.items():
            data["estimated_cost_usd"] = round(self.cost(model), 6)
        return {
            "models": models,
            "total_tokens": sum(m["total_tokens"] for m in models.values()),
            "total_calls": sum(m["calls"] for m in models.values()),
        }
