# src/agents/factory.py

from smartburger_ai.common import backend as backend_lib
from smartburger_ai.common import metrics as metrics_lib
from smartburger_ai.common.cache import TTLCache

from src.agents.admin_agent import AdminAgent
from src.agents.insights import BusinessAnalyst
from src.agents.ordering_agent import OrderingAgent
from src.config import LLM_CALL_TIMEOUT_SECONDS, RATE_LIMIT_CHAT_DIR
from src.utils.logger import get_logger

logger = get_logger(__name__)


def build_backend(metrics: metrics_lib.MetricsSink | None = None):
    """Gemini Flash with the other free tiers behind it. None without an API key."""
    if not backend_lib.gemini_api_key():
        logger.error("GEMINI_API_KEY not found in environment. Chat features will run degraded.")
        return None

    backend = backend_lib.Gemini2p5Flash().get_async_backend(
        fallback_configs=[backend_lib.Gemini2p0Flash(), backend_lib.Gemini2p5FlashLite()],
        chat_store_dir=RATE_LIMIT_CHAT_DIR,
        metrics=metrics,
        call_timeout=LLM_CALL_TIMEOUT_SECONDS,
    )
    logger.info("Backend initialized (%s).", backend.model)
    return backend


def build_agents(backend, cache: TTLCache | None = None) -> dict:
    """
    The agents over one backend.

    María needs a backend to answer at all; Max and the analyst degrade to
    answers built from the data when there is none.
    """
    cache = cache if cache is not None else TTLCache()
    return {
        "maria": OrderingAgent(backend, cache=cache) if backend is not None else None,
        "max": AdminAgent(backend),
        "analyst": BusinessAnalyst(backend),
    }
