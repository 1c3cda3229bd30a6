"""Rule-based upselling for the cart.

No model call: the rules look at the cart's categories, the hour and the
active promotions, and only ever suggest products that are in stock.
"""

import dataclasses
from collections.abc import Sequence
from datetime import datetime

from src.catalog.resolver import normalize
from src.config import (
    BEVERAGE_CATEGORY_KEYWORDS,
    BURGER_CATEGORY_KEYWORDS,
    COMBO_CATEGORY_KEYWORDS,
    HAPPY_HOUR_DISCOUNT_PERCENT,
    HAPPY_HOUR_END,
    HAPPY_HOUR_START,
    POPULAR_PRODUCTS_LIMIT,
    SIDE_CATEGORY_KEYWORDS,
    THRESHOLD_NUDGE_MAX_GAP,
    UPSELL_PRODUCTS_LIMIT,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclasses.dataclass
class Recommendation:
    type: str
    reason: str
    message: str
    products: list[dict] = dataclasses.field(default_factory=list)
    discount: float | None = None

    def to_dict(self) -> dict:
        data = {"type": self.type, "reason": self.reason, "message": self.message}
        if self.products:
            data["products"] = self.products
        if self.discount is not None:
            data["discount"] = self.discount
        return data


def category_of(product: dict) -> str:
    """Normalized category name; rows carry category_name, cart payloads a nested category."""
    category = product.get("category_name") or product.get("category") or ""
    if isinstance(category, dict):
        category = category.get("name") or ""
    return normalize(category)


def price_of(product: dict) -> float:
    price = product.get("base_price")
    if price is None:
        price = product.get("price")
    return float(price or 0)


def _in(product: dict, keywords: Sequence[str]) -> bool:
    category = category_of(product)
    return any(keyword in category for keyword in keywords)


def _in_stock(product: dict) -> bool:
    return bool(product.get("active", True)) and (product.get("stock_quantity") or 0) > 0


def cart_total(cart: Sequence[dict]) -> float:
    return round(sum(price_of(line.get("product") or {}) * (line.get("quantity") or 0) for line in cart), 2)


def _discount_text(promotion: dict) -> str:
    value = promotion.get("discount_value") or 0
    if promotion.get("discount_type") == "percentage":
        return f"{value:g}% de descuento"
    return f"${value:.2f} de descuento"


def _threshold_nudge(total: float, promotions: Sequence[dict]) -> Recommendation | None:
    """The active promotion whose minimum purchase is closest above the cart total."""
    gaps = []
    for promotion in promotions:
        minimum = promotion.get("min_purchase") or 0
        gap = round(minimum - total, 2)
        if 0 < gap <= THRESHOLD_NUDGE_MAX_GAP:
            gaps.append((gap, promotion))
    if not gaps:
        return None
    gap, promotion = min(gaps, key=lambda pair: pair[0])
    return Recommendation(
        type="threshold",
        reason="Cerca de descuento",
        message=f"💡 ¡Agrega ${gap:.2f} más y obtén {_discount_text(promotion)} ({promotion['name']})!",
    )


def is_happy_hour(now: datetime) -> bool:
    return HAPPY_HOUR_START <= now.hour <= HAPPY_HOUR_END


def recommend(
    cart: Sequence[dict],
    products: Sequence[dict],
    promotions: Sequence[dict] = (),
    now: datetime | None = None,
) -> list[Recommendation]:
    """
    Suggestions for a cart of ``{"product": {...}, "quantity": n}`` lines.

    ``products`` are catalog rows; out-of-stock ones are never suggested.
    ``promotions`` should be the currently active ones.
    """
    now = now or datetime.now()
    available = [p for p in products if _in_stock(p)]
    in_cart = [line.get("product") or {} for line in cart]
    recommendations: list[Recommendation] = []

    if in_cart:
        has_burger = any(_in(p, BURGER_CATEGORY_KEYWORDS) for p in in_cart)
        has_side = any(_in(p, SIDE_CATEGORY_KEYWORDS) for p in in_cart)
        has_drink = any(_in(p, BEVERAGE_CATEGORY_KEYWORDS) for p in in_cart)

        if has_burger and not has_side:
            sides = [p for p in available if _in(p, SIDE_CATEGORY_KEYWORDS)]
            if sides:
                recommendations.append(
                    Recommendation(
                        type="upsell",
                        reason="Complementa tu hamburguesa",
                        message="🍟 ¿Qué tal unas papas fritas con tu hamburguesa?",
                        products=sides[:UPSELL_PRODUCTS_LIMIT],
                    )
                )

        if has_burger and not has_drink:
            drinks = [p for p in available if _in(p, BEVERAGE_CATEGORY_KEYWORDS)]
            if drinks:
                recommendations.append(
                    Recommendation(
                        type="upsell",
                        reason="Agrega una bebida",
                        message="🥤 ¿Te gustaría una bebida refrescante?",
                        products=drinks[:UPSELL_PRODUCTS_LIMIT],
                    )
                )

        if has_burger and (has_side or has_drink):
            combos = [p for p in available if _in(p, COMBO_CATEGORY_KEYWORDS)]
            if combos:
                recommendations.append(
                    Recommendation(
                        type="savings",
                        reason="Ahorra con un combo",
                        message="💰 Ahorra con nuestros combos especiales",
                        products=combos,
                    )
                )

    featured = [p for p in available if p.get("featured")]

    if is_happy_hour(now) and featured:
        recommendations.append(
            Recommendation(
                type="promotion",
                reason="Happy Hour",
                message=(
                    f"🎉 Happy Hour: {HAPPY_HOUR_DISCOUNT_PERCENT}% de descuento "
                    f"({HAPPY_HOUR_START}:00-{HAPPY_HOUR_END}:00)"
                ),
                products=featured,
                discount=HAPPY_HOUR_DISCOUNT_PERCENT,
            )
        )

    if featured and not recommendations:
        recommendations.append(
            Recommendation(
                type="popular",
                reason="Más vendidos",
                message="🔥 Los favoritos de nuestros clientes",
                products=featured[:POPULAR_PRODUCTS_LIMIT],
            )
        )

    if in_cart:
        nudge = _threshold_nudge(cart_total(cart), promotions)
        if nudge is not None:
            recommendations.append(nudge)

    logger.info(
        "%d recommendations for a cart of %d lines: %s",
        len(recommendations),
        len(cart),
        ", ".join(r.type for r in recommendations) or "none",
    )
    return recommendations
