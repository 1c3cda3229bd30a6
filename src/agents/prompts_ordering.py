from collections.abc import Sequence

from smartburger_ai.common.types import ChatTurn
from src.config import ORDERING_AGENT_NAME, RESTAURANT_NAME
from src.ordering.preferences import DAY_PART_LABELS, DayPart, UserProfile

ORDERING_SYSTEM_PROMPT = """
INSTRUCCIÓN CRÍTICA: Responde SIEMPRE en español, agrega productos al carrito,
sugiere complementos y confirma órdenes.

Eres {agent} de {restaurant}. Tus misiones:
1. Cuando el cliente diga "quiero" → genera [ADD_TO_CART:...]
2. Siempre sugiere una bebida o acompañamiento (máximo 2 opciones).
3. Si el cliente confirma → genera [CONFIRM_ORDER] para crear la orden.

MOMENTO DEL DÍA: {day_part}

MENÚ (precios y stock en tiempo real):
{menu}

DISPONIBILIDAD DE INGREDIENTES (datos en vivo, esta orden):
{ingredients}
{best_sellers}{profile}{likes}

FORMATO DE MARCADORES (exactamente 5 campos separados por ":"):
[ADD_TO_CART:NombreProducto:Cantidad:Extras:Quitar:Notas]
- Extras y Quitar son listas separadas por comas; déjalas vacías si no hay.
- Usa el nombre del producto tal como aparece en el menú.
[CONFIRM_ORDER] - para crear la orden inmediatamente.

EJEMPLOS:
Cliente: "quiero una hamburguesa"
Tú: "[ADD_TO_CART:SmartBurger Clásica:1:::]
¡Perfecto! 1 SmartBurger Clásica 🛒 ¿Te gustaría agregar una bebida o papas?
O mejor aún, ¿prefieres un combo que incluye todo?"

Cliente: "quiero un Combo Deluxe con doble carne sin cebolla"
Tú: "[ADD_TO_CART:Combo Deluxe:1:carne de res:cebolla:]
¡Genial! 1 Combo Deluxe con doble carne, sin cebolla 🛒
Tu combo incluye papas y bebida. ¿Prefieres Coca-Cola, Sprite o Fanta?"

Cliente: "sí, confirma mi orden"
Tú: "[CONFIRM_ORDER]
¡Orden confirmada! 🎉 Tu pedido va a cocina ahora mismo."

REGLAS OBLIGATORIAS:
1. Los combos ya incluyen bebida: NUNCA agregues una línea de bebida aparte
   para la bebida del combo. Anota la bebida elegida en las Notas del combo.
2. No se puede quitar el ingrediente principal de un producto (por ejemplo,
   aros de cebolla sin cebolla). Explica amablemente por qué no es posible.
3. Si piden más de lo que queda en stock, di la cantidad exacta disponible y
   pregunta si aceptan esa cantidad. No recortes ni rechaces en silencio.
4. Nunca ofrezcas ingredientes NO DISPONIBLES.
5. La disponibilidad se refiere solo a esta orden: no te disculpes por pedidos
   anteriores ni menciones faltantes que ya se resolvieron.
6. "confirma" o "sí" después de tener productos → [CONFIRM_ORDER].
7. Usa emojis con moderación: 🍔 🥤 🍟 🛒 🎉
"""

CONVERSATION_TEMPLATE = """{system}

HISTORIAL DE LA CONVERSACIÓN:
{history}

Cliente: {last}

{agent} (responde de forma natural, cálida y conversacional, recordando todo lo anterior):"""


def _qty(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def render_menu(products: Sequence[dict]) -> str:
    by_category: dict[str, list[dict]] = {}
    for product in products:
        by_category.setdefault(product.get("category_name") or "Otros", []).append(product)

    lines = []
    for category, rows in by_category.items():
        lines.append(f"{category}:")
        for p in rows:
            stock = p.get("stock_quantity") or 0
            if stock <= 0:
                note = " (AGOTADO, no ofrecer)"
            elif stock <= (p.get("min_stock_alert") or 0):
                note = f" (quedan solo {stock})"
            else:
                note = ""
            desc = f" — {p['description']}" if p.get("description") else ""
            lines.append(f"- {p['name']} ${p['base_price']:.2f}{note}{desc}")
    return "\n".join(lines) or "Menú no disponible en este momento."


def render_ingredients(ingredients: Sequence[dict]) -> str:
    unavailable = [i for i in ingredients if not i.get("available") or (i.get("stock_quantity") or 0) <= 0]
    low = [
        i
        for i in ingredients
        if i.get("available") and 0 < (i.get("stock_quantity") or 0) <= (i.get("min_stock_alert") or 0)
    ]
    low_ids = {i["id"] for i in low}
    extras = [
        i
        for i in ingredients
        if i.get("available")
        and (i.get("stock_quantity") or 0) > 0
        and (i.get("price") or 0) > 0
        and i["id"] not in low_ids
    ]

    lines = []
    if unavailable:
        lines.append("NO DISPONIBLES (nunca ofrecer): " + ", ".join(i["name"] for i in unavailable))
    if low:
        lines.append(
            "STOCK BAJO (ofrecer indicando lo que queda): "
            + ", ".join(f"{i['name']} (quedan {_qty(i['stock_quantity'])} {i['unit']})" for i in low)
        )
    if extras:
        lines.append(
            "EXTRAS DISPONIBLES: " + ", ".join(f"{i['name']} +${i['price']:.2f}" for i in extras)
        )
    return "\n".join(lines) or "Todos los ingredientes disponibles."


def render_best_sellers(best_sellers: Sequence[dict]) -> str:
    if not best_sellers:
        return ""
    ranked = ", ".join(
        f"{pos}. {row['product_name']} (${row['base_price']:.2f})"
        for pos, row in enumerate(best_sellers, start=1)
    )
    return f"\nPOPULARES: {ranked}\n"


def render_profile(profile: UserProfile | None) -> str:
    if profile is None or not (profile.has_history or profile.explicit_likes):
        return ""
    lines = ["\nPERFIL DEL CLIENTE:"]
    if profile.has_history:
        lines.append(
            f"- {profile.total_orders} pedidos, ticket promedio ${profile.average_order_value:.2f}"
        )
    if profile.favorite_products:
        lines.append(f"- Favoritos: {', '.join(profile.favorite_products)}")
    if profile.common_additions:
        lines.append(f"- Suele agregar: {', '.join(profile.common_additions)}")
    if profile.common_removals:
        lines.append(f"- Suele quitar: {', '.join(profile.common_removals)}")
    if profile.never_orders:
        lines.append(f"- Nunca pide: {', '.join(profile.never_orders)}")
    if profile.preferred_time:
        lines.append(f"- Suele pedir por la {DAY_PART_LABELS[profile.preferred_time]}")
    if profile.explicit_likes:
        lines.append(f"- Le gusta: {', '.join(profile.explicit_likes)}")
    return "\n".join(lines) + "\n"


def build_system_prompt(
    *,
    products: Sequence[dict],
    ingredients: Sequence[dict],
    day_part: DayPart,
    best_sellers: Sequence[dict] = (),
    profile: UserProfile | None = None,
    likes_text: str = "",
) -> str:
    return ORDERING_SYSTEM_PROMPT.format(
        agent=ORDERING_AGENT_NAME,
        restaurant=RESTAURANT_NAME,
        day_part=DAY_PART_LABELS[day_part],
        menu=render_menu(products),
        ingredients=render_ingredients(ingredients),
        best_sellers=render_best_sellers(best_sellers),
        profile=render_profile(profile),
        likes=f"\n{likes_text}\n" if likes_text else "",
    ).strip()


def split_last_user_turn(turns: Sequence[ChatTurn]) -> tuple[list[ChatTurn], str]:
    """Turns before the newest customer message, and that message ('' if none).

    Assistant turns after the newest customer message are left out.
    """
    for index in range(len(turns) - 1, -1, -1):
        if turns[index].role == "user":
            return list(turns[:index]), turns[index].content
    return list(turns), ""


def build_conversation_prompt(system: str, turns: Sequence[ChatTurn]) -> str:
    """The whole turn as one plain prompt: context, earlier turns, newest message."""
    earlier, last = split_last_user_turn(turns)
    speaker = {"user": "Cliente", "assistant": ORDERING_AGENT_NAME}
    history = "\n\n".join(f"{speaker[t.role]}: {t.content}" for t in earlier)
    return CONVERSATION_TEMPLATE.format(
        system=system,
        history=history or "(inicio de la conversación)",
        last=last,
        agent=ORDERING_AGENT_NAME,
    )
