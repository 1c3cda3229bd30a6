"""Canned replies for when the model is unavailable.

Both are built from live data so the answers stay correct, just less chatty.
"""

from collections.abc import Sequence

from src.config import ADMIN_AGENT_NAME
from src.tools.alerts import AlertSnapshot

GREETING_KEYWORDS = ("hola", "buen")
STOCK_KEYWORDS = ("stock", "inventario", "reponer")
SALES_KEYWORDS = ("vend", "top", "producto")
PROMO_KEYWORDS = ("promo",)


def _mentions(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def admin_fallback(message: str, metrics: dict, alerts: AlertSnapshot) -> str:
    """Keyword-matched answer for Max."""
    msg = message.lower()

    if _mentions(msg, GREETING_KEYWORDS):
        return (
            f"{ADMIN_AGENT_NAME} aquí. Sin conexión a IA activa, pero puedo responder "
            "preguntas básicas sobre ventas, stock y promociones."
        )

    if _mentions(msg, STOCK_KEYWORDS):
        if alerts.total_count == 0:
            return "Inventario en orden. Sin alertas activas."
        out = [r["name"] for r in alerts.out_of_stock_ingredients + alerts.out_of_stock_products]
        low = [r["name"] for r in alerts.low_stock_ingredients + alerts.low_stock_products]
        parts = []
        if out:
            parts.append(f"SIN STOCK: {', '.join(out)}.")
        if low:
            parts.append(f"Stock bajo: {', '.join(low)}.")
        return "\n".join(parts)

    if _mentions(msg, SALES_KEYWORDS):
        sales = metrics.get("sales_by_product") or []
        if not sales:
            return "Sin ventas esta semana."
        return "\n".join(
            f"{pos}. {row['product_name']} — {row['total_quantity']} uds"
            for pos, row in enumerate(sales[:3], start=1)
        )

    if _mentions(msg, PROMO_KEYWORDS):
        promotions = metrics.get("promotions") or []
        if not promotions:
            return "Sin promociones registradas."
        listed = ", ".join(
            f"{p['name']} ({'activa' if p['active'] else 'inactiva'})" for p in promotions
        )
        return f"{len(promotions)} promoción(es): {listed}."

    return (
        "Sin IA activa: puedo responder sobre ventas, stock o promociones. "
        "Para ejecutar acciones necesito GEMINI_API_KEY configurada."
    )


def customer_fallback(products: Sequence[dict], limit: int = 3) -> str:
    """Friendly menu for María when the model call fails."""
    featured = [p for p in products if p.get("featured")] or list(products)
    lines = [
        "¡Ay perdón! Se me fue la señal un segundo 😅",
        "",
        "Pero no te preocupes, estoy aquí para ayudarte. Estos son nuestros productos más populares:",
        "",
    ]
    for product in featured[:limit]:
        lines.append(f"🍔 **{product['name']}** - ${product['base_price']:.2f}")
        if product.get("description"):
            lines.append(product["description"])
        lines.append("")
    lines.append("¿Qué te provoca hoy? 😊")
    return "\n".join(lines)
