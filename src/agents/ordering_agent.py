"""María, the customer ordering agent.

One plain completion per turn. The reply carries inline cart markers which
are parsed, resolved against the live catalog and checked against the cart
rules before anything reaches the caller.
"""

import asyncio
import dataclasses
from collections.abc import Sequence
from datetime import datetime

from smartburger_ai.common.cache import TTLCache
from smartburger_ai.common.types import ChatTurn
from src.agents import prompts_ordering
from src.catalog import resolver, snapshot
from src.config import (
    AGENT_TURN_TIMEOUT_SECONDS,
    BEST_SELLERS_LIMIT,
    BEST_SELLERS_TTL_SECONDS,
    ORDERING_MAX_TOKENS,
    ORDERING_TEMPERATURE,
    USER_PROFILE_TTL_SECONDS,
)
from src.database import db
from src.ordering import markers, policy, preferences
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclasses.dataclass
class OrderingTurn:
    display_text: str
    lines: list[policy.ResolvedCartLine]
    confirm_order: bool
    notices: list[str] = dataclasses.field(default_factory=list)
    unresolved: list[str] = dataclasses.field(default_factory=list)

    def cart_actions(self) -> list[dict]:
        return [line.to_dict() for line in self.lines]


def resolve_actions(
    actions: Sequence[markers.CartAction],
    catalog: Sequence[resolver.CatalogItem],
) -> tuple[list[policy.ResolvedCartLine], list[str]]:
    """Maps parsed actions to catalog items, in order. Returns (lines, unresolved names)."""
    lines = []
    unresolved = []
    for action in actions:
        match = resolver.resolve(action.product_name, catalog)
        if match is None:
            logger.warning("No catalog match for %r, dropping cart action", action.product_name)
            unresolved.append(action.product_name)
            continue
        logger.info(
            "Resolved %r → %s (%s, score %d)",
            action.product_name,
            match.item.name,
            match.item.source,
            match.score,
        )
        lines.append(
            policy.ResolvedCartLine(
                item=match.item,
                quantity=action.quantity,
                additions=list(action.additions or []),
                removals=list(action.removals or []),
                notes=action.notes,
            )
        )
    return lines, unresolved


class OrderingAgent:
    def __init__(self, backend, *, cache: TTLCache | None = None) -> None:
        self._backend = backend
        self._cache = cache if cache is not None else TTLCache()
        self._background: set[asyncio.Task] = set()

    # -------------------------------------------------------------
    # Stale-tolerant context
    # -------------------------------------------------------------
    def _best_sellers(self) -> list[dict]:
        return self._cache.get_or_set(
            "best_sellers",
            lambda: db.best_selling_products(BEST_SELLERS_LIMIT),
            BEST_SELLERS_TTL_SECONDS,
        )

    def _profile(self, user_email: str | None) -> preferences.UserProfile | None:
        if not user_email:
            return None
        return self._cache.get_or_set(
            f"profile:{user_email.lower()}",
            lambda: preferences.build_user_profile(user_email),
            USER_PROFILE_TTL_SECONDS,
        )

    # -------------------------------------------------------------
    async def __call__(
        self,
        turns: Sequence[ChatTurn],
        *,
        session_id: str,
        user_email: str | None = None,
        now: datetime | None = None,
    ) -> OrderingTurn:
        _, last_message = prompts_ordering.split_last_user_turn(turns)
        likes = preferences.detect_explicit_likes(last_message)

        system = prompts_ordering.build_system_prompt(
            products=db.list_active_products(),
            ingredients=db.list_ingredients(),
            day_part=preferences.day_part(now),
            best_sellers=self._best_sellers(),
            profile=self._profile(user_email),
            likes_text=preferences.format_likes_for_prompt(likes),
        )
        prompt = prompts_ordering.build_conversation_prompt(system, turns)

        raw = await asyncio.wait_for(
            self._backend.complete(
                prompt,
                temperature=ORDERING_TEMPERATURE,
                max_tokens=ORDERING_MAX_TOKENS,
            ),
            timeout=AGENT_TURN_TIMEOUT_SECONDS,
        )
        parsed = markers.parse_response(raw)
        if not parsed.actions:
            logger.info("No cart markers in reply (confirm=%s)", parsed.confirm_order)

        lines, unresolved = resolve_actions(parsed.actions, snapshot.sellable_catalog())
        checked = policy.apply_policies(lines)

        display = parsed.display_text
        if checked.notices:
            display = "\n\n".join(filter(None, [display, "\n".join(checked.notices)]))

        self._spawn(self._persist(session_id, last_message, display, user_email, likes))

        return OrderingTurn(
            display_text=display,
            lines=checked.lines,
            confirm_order=parsed.confirm_order,
            notices=checked.notices,
            unresolved=unresolved,
        )

    # -------------------------------------------------------------
    # Fire-and-forget persistence
    # -------------------------------------------------------------
    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _persist(
        self,
        session_id: str,
        user_message: str,
        reply: str,
        user_email: str | None,
        likes: list[preferences.ExplicitLike],
    ) -> None:
        try:
            await asyncio.to_thread(db.append_chat_message, session_id, "user", user_message)
            await asyncio.to_thread(db.append_chat_message, session_id, "assistant", reply)
            if user_email and likes:
                saved = await asyncio.to_thread(preferences.save_detected_likes, user_email, likes)
                self._cache.delete(f"profile:{user_email.lower()}")
                logger.info("Saved %d explicit likes for %s", saved, user_email)
        except Exception:
            logger.exception("Failed to persist chat turn for session %s (non-fatal)", session_id)

    async def drain(self) -> None:
        """Waits for pending background writes."""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
