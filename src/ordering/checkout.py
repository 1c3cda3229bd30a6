"""Order placement: subtotal, best promotion, order rows."""

import dataclasses

from src.database import db
from src.utils.logger import get_logger

logger = get_logger(__name__)


class CheckoutError(ValueError):
    """The order request cannot be placed as given."""


@dataclasses.dataclass
class OrderLine:
    product_id: int
    quantity: int
    unit_price: float | None = None
    customizations: dict | None = None


@dataclasses.dataclass
class Customer:
    name: str | None = None
    email: str | None = None
    phone: str | None = None


def promotion_discount(promotion: dict, subtotal: float) -> float:
    """Discount a promotion gives on ``subtotal`` (0 when it does not apply)."""
    if subtotal < (promotion.get("min_purchase") or 0):
        return 0.0
    max_uses = promotion.get("max_uses")
    if max_uses is not None and (promotion.get("current_uses") or 0) >= max_uses:
        return 0.0
    value = promotion.get("discount_value") or 0
    if promotion.get("discount_type") == "percentage":
        return round(subtotal * value / 100, 2)
    if promotion.get("discount_type") == "fixed":
        return round(min(value, subtotal), 2)
    return 0.0


def select_promotion(subtotal: float, promotions: list[dict]) -> tuple[dict | None, float]:
    """The single promotion with the largest discount; earlier ones win ties."""
    best, best_discount = None, 0.0
    for promotion in promotions:
        discount = promotion_discount(promotion, subtotal)
        if discount > best_discount:
            best, best_discount = promotion, discount
    return best, best_discount


def place_order(customer: Customer, lines: list[OrderLine], notes: str | None = None) -> dict:
    if not lines:
        raise CheckoutError("El pedido no tiene productos")

    priced = []
    for line in lines:
        if line.quantity <= 0:
            raise CheckoutError(f"Cantidad inválida para el producto {line.product_id}")
        unit_price = line.unit_price
        if unit_price is None:
            product = db.get_product(line.product_id)
            if product is None:
                raise CheckoutError(f"Producto {line.product_id} no existe")
            unit_price = product["base_price"]
        priced.append(
            {
                "product_id": line.product_id,
                "quantity": line.quantity,
                "unit_price": unit_price,
                "customizations": line.customizations,
            }
        )

    subtotal = round(sum(item["unit_price"] * item["quantity"] for item in priced), 2)
    promotion, discount = select_promotion(subtotal, db.list_active_promotions())

    order = db.create_order(
        total_amount=subtotal,
        discount_amount=discount,
        final_amount=round(max(0.0, subtotal - discount), 2),
        customer_name=customer.name,
        customer_email=customer.email,
        customer_phone=customer.phone,
        notes=notes,
        promotion_id=promotion["id"] if promotion else None,
    )
    order["items"] = db.create_order_items(order["id"], priced)
    if promotion:
        db.increment_promotion_uses(promotion["id"])
    order["appliedPromotion"] = promotion

    logger.info(
        "Order %s created: subtotal %.2f, discount %.2f (%s)",
        order["order_number"],
        subtotal,
        discount,
        promotion["name"] if promotion else "sin promoción",
    )
    return order
