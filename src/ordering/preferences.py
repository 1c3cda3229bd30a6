"""Customer preferences: explicit likes in a message and the order-history profile."""

import dataclasses
import re
from collections import Counter
from datetime import datetime
from typing import Literal

from src.database import db

Confidence = Literal["high", "medium", "low"]
DayPart = Literal["morning", "afternoon", "evening", "night"]

DAY_PART_LABELS = {
    "morning": "mañana",
    "afternoon": "tarde",
    "evening": "noche",
    "night": "madrugada",
}

_ARTICLE = r"(?:(?:el|la|los|las|un|una|unos|unas)\s+)?"
_ITEM = r"([a-záéíóúñü\s]+?)"
_END = r"(?=\s+y\b|\s*[,.!?¿]|\s*$)"

_LIKE_PATTERNS: list[tuple[re.Pattern, Confidence]] = [
    (re.compile(rf"me (?:gusta mucho|encanta|fascina|apasiona)\s+{_ARTICLE}{_ITEM}{_END}"), "high"),
    (re.compile(rf"(?:siempre|normalmente|generalmente) (?:pido|ordeno|como)\s+{_ARTICLE}{_ITEM}{_END}"), "high"),
    (re.compile(rf"me (?:gusta|agrada|cae bien)\s+{_ARTICLE}{_ITEM}{_END}"), "medium"),
    (re.compile(rf"(?:prefiero|me quedo con)\s+{_ARTICLE}{_ITEM}{_END}"), "medium"),
    (re.compile(rf"(?:quiero|dame|deme)\s+{_ARTICLE}{_ITEM}\s+(?:siempre|cada vez)"), "low"),
]

_STOP_WORDS = {"algo", "esto", "eso", "aquello", "una", "un", "unos", "unas"}


@dataclasses.dataclass(frozen=True)
class ExplicitLike:
    item: str
    context: str
    confidence: Confidence


def detect_explicit_likes(message: str) -> list[ExplicitLike]:
    """Finds phrases like "me encanta X" or "siempre pido X"."""
    text = message.lower()
    taken: list[tuple[int, int]] = []
    detected = []
    for pattern, confidence in _LIKE_PATTERNS:
        for match in pattern.finditer(text):
            start, end = match.span()
            if any(start < t_end and t_start < end for t_start, t_end in taken):
                continue
            item = match.group(1).strip()
            if not 3 <= len(item) <= 50 or item in _STOP_WORDS:
                continue
            taken.append((start, end))
            detected.append(
                ExplicitLike(
                    item=" ".join(word.capitalize() for word in item.split()),
                    context=match.group(0).strip(),
                    confidence=confidence,
                )
            )
    return detected


def format_likes_for_prompt(likes: list[ExplicitLike]) -> str:
    if not likes:
        return ""
    high = [like.item for like in likes if like.confidence == "high"]
    medium = [like.item for like in likes if like.confidence == "medium"]
    lines = ["GUSTOS QUE EL CLIENTE ACABA DE MENCIONAR:"]
    if high:
        lines.append(f"- Le encanta: {', '.join(high)}")
    if medium:
        lines.append(f"- Le gusta: {', '.join(medium)}")
    lines.append("- Usa esto para personalizar tu respuesta ahora mismo.")
    return "\n".join(lines)


def day_part(now: datetime | None = None) -> DayPart:
    hour = (now or datetime.now()).hour
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 22:
        return "evening"
    return "night"


@dataclasses.dataclass
class UserProfile:
    user_email: str
    has_history: bool = False
    total_orders: int = 0
    average_order_value: float = 0.0
    favorite_products: list[str] = dataclasses.field(default_factory=list)
    common_additions: list[str] = dataclasses.field(default_factory=list)
    common_removals: list[str] = dataclasses.field(default_factory=list)
    never_orders: list[str] = dataclasses.field(default_factory=list)
    preferred_time: DayPart | None = None
    last_order_date: str | None = None
    explicit_likes: list[str] = dataclasses.field(default_factory=list)

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


def build_user_profile(user_email: str, history_limit: int = 20) -> UserProfile:
    """Summarizes a customer's recent orders and saved likes."""
    profile = UserProfile(user_email=user_email)
    profile.explicit_likes = [row["item_name"] for row in db.list_explicit_likes(user_email)]

    orders = [o for o in db.list_user_orders(user_email, history_limit) if o["status"] != "cancelled"]
    if not orders:
        return profile

    products: Counter[str] = Counter()
    additions: Counter[str] = Counter()
    removals: Counter[str] = Counter()
    categories: set[str] = set()
    product_categories = {p["id"]: p.get("category_name") for p in db.list_products()}
    for order in orders:
        for item in order["items"]:
            if item.get("product_name"):
                products[item["product_name"]] += item["quantity"]
            category = product_categories.get(item["product_id"])
            if category:
                categories.add(category)
            custom = item.get("customizations") or {}
            additions.update(custom.get("additions") or [])
            removals.update(custom.get("removals") or [])

    hours = [datetime.fromisoformat(o["created_at"]).hour for o in orders]
    avg_hour = int(sum(hours) / len(hours))

    profile.has_history = True
    profile.total_orders = len(orders)
    profile.average_order_value = round(
        sum(o["final_amount"] or 0 for o in orders) / len(orders), 2
    )
    profile.favorite_products = [name for name, _ in products.most_common(3)]
    profile.common_additions = [name for name, _ in additions.most_common(3)]
    profile.common_removals = [name for name, _ in removals.most_common(3)]
    profile.never_orders = sorted(
        c["name"] for c in db.list_categories() if c["name"] not in categories
    )
    profile.preferred_time = day_part(datetime.now().replace(hour=avg_hour))
    profile.last_order_date = orders[0]["created_at"]
    return profile


def save_detected_likes(user_email: str, likes: list[ExplicitLike]) -> int:
    for like in likes:
        db.save_explicit_like(user_email, like.item, like.context, like.confidence)
    return len(likes)
