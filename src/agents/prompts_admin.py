from collections.abc import Sequence

from src.config import ADMIN_AGENT_NAME, RESTAURANT_NAME
from src.tools.alerts import AlertSnapshot, summary_line

ADMIN_SYSTEM_PROMPT = """
Eres {agent}, el analista y asistente operativo de {restaurant}.

IDENTIDAD:
- Directo, preciso, con datos. Sin relleno.
- Cuando hay un problema lo dices primero.
- Cuando el admin pide una acción, la ejecutas con tus herramientas y confirmas brevemente.
- Si algo no está en los datos, lo dices sin inventar.
- Siempre en español.

CAPACIDADES:
Ingredientes: actualizar stock (uno o varios), disponible/no disponible, editar datos, crear
Productos: activar/desactivar, destacar, precio, detalles, stock, crear, eliminar, consultar ventas
Promociones: activar/desactivar, crear, editar valor/mínimo/usos, eliminar
Pedidos: cambiar estado, ver detalle, ver pedidos activos
Análisis: inventario y ventas por período

REGLAS DE HERRAMIENTAS:
- Los datos de abajo son una foto del inicio de la conversación. Para decisiones
  de stock usa analyze_stock, que siempre consulta en vivo.
- Ante varias actualizaciones de stock usa bulk_update_ingredient_stock.
- Nunca elimines nada sin que el admin lo confirme.
- Informa con exactitud el resultado de cada herramienta, incluidos los errores.

DATOS DEL RESTAURANTE:

VENTAS ESTA SEMANA:
{top_products}

PEDIDOS DE HOY: Total {today_total} | Completados {today_completed} | Cancelados {today_cancelled}
Ticket promedio: ${avg_ticket:.2f} | Ayer: ${yesterday:.2f}
{peak_hour}

ALERTAS DE INVENTARIO:
{alerts}

INGREDIENTES:
{ingredients}

PROMOCIONES:
{promotions}

PRODUCTOS:
{products}

PEDIDOS RECIENTES:
{recent_orders}
"""


def _qty(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def build_system_context(
    metrics: dict,
    alerts: AlertSnapshot,
    ingredients: Sequence[dict],
    promotions: Sequence[dict],
    products: Sequence[dict],
    orders: Sequence[dict],
) -> str:
    top_products = "\n".join(
        f"  - {row['product_name']}: {row['total_quantity']} uds · ${row['total_revenue']:.2f}"
        for row in metrics["sales_by_product"][:8]
    ) or "  Sin ventas esta semana."

    active_hours = [h for h in metrics["sales_by_hour"] if h["orders"] > 0]
    if active_hours:
        peak = max(active_hours, key=lambda h: h["orders"])
        peak_hour = f"Hora pico: {peak['hour']}:00 h ({peak['orders']} pedidos)"
    else:
        peak_hour = "Sin pedidos hoy"

    ingredient_list = "\n".join(
        f"  - {i['name']} (stock: {_qty(i['stock_quantity'])} {i['unit']}, "
        f"disponible: {'sí' if i['available'] else 'NO'})"
        for i in ingredients
    ) or "  Sin ingredientes."

    promotion_list = "\n".join(
        f"  - \"{p['name']}\" ({'ACTIVA' if p['active'] else 'inactiva'}, "
        f"{p['discount_type']} {_qty(p['discount_value'])}, mín ${p['min_purchase']:.2f})"
        for p in promotions
    ) or "  Sin promociones."

    product_list = "\n".join(
        f"  - \"{p['name']}\" ${p['base_price']:.2f} "
        f"({'activo' if p['active'] else 'inactivo'}{', destacado' if p['featured'] else ''}, "
        f"stock {p['stock_quantity']})"
        for p in products[:15]
    ) or "  Sin productos."

    recent = "\n".join(
        f"  - {o['order_number']} | {o['customer_name'] or 'cliente'} | "
        f"${(o['final_amount'] or 0):.2f} | {o['status']}"
        for o in orders[:8]
    ) or "  Sin pedidos recientes."

    today = metrics["today"]
    return ADMIN_SYSTEM_PROMPT.format(
        agent=ADMIN_AGENT_NAME,
        restaurant=RESTAURANT_NAME,
        top_products=top_products,
        today_total=today["total"],
        today_completed=today["completed"],
        today_cancelled=today["cancelled"],
        avg_ticket=today["avg_ticket"],
        yesterday=metrics["yesterday_sales"],
        peak_hour=peak_hour,
        alerts=f"  {summary_line(alerts)}",
        ingredients=ingredient_list,
        promotions=promotion_list,
        products=product_list,
        recent_orders=recent,
    ).strip()


ANALYSIS_SYSTEM_PROMPT = (
    "Eres {agent}, analista de negocio de {restaurant}. "
    "Responde SOLO con JSON válido, sin markdown, sin texto extra."
)

ANALYSIS_PROMPT = """
Eres {agent}, el analista de negocio de {restaurant}.

PERSONALIDAD:
- Directo y preciso. Sin frases de relleno ni elogios vacíos.
- Hablas con datos específicos, no con generalidades.
- Cuando algo está mal, lo dices primero, sin suavizarlo.
- Cuando no tienes datos suficientes para una conclusión, lo dices en lugar de inventar.
- Máximo 2 oraciones por punto.

DATOS A ANALIZAR:

VENTAS POR PRODUCTO (últimos 7 días):
{sales}

VENTAS POR HORA (hoy):
{hours}

INVENTARIO CRÍTICO:
{stock}

MÉTRICAS DE HOY:
- Pedidos: {today_total} ({today_completed} completados, {today_cancelled} cancelados)
- Ticket promedio: ${avg_ticket:.2f}
- Ventas ayer: ${yesterday:.2f}

PROMOCIONES ACTIVAS ({promotion_count}):
{promotions}

RESPONDE EXCLUSIVAMENTE con este JSON:
{{
  "summary": "2-3 oraciones. El dato más importante primero. Sin introducciones.",
  "topProducts": ["1. Nombre — X uds · $Y · conclusión operativa"],
  "stockAlerts": ["Sin stock — Nombre: impacto concreto", "Stock bajo — Nombre: cuándo actuar"],
  "peakHours": "Una sola conclusión operativa sobre el horario.",
  "promotionEffectiveness": "Si hay promociones: usos reales. Si no: qué activar y por qué.",
  "recommendations": ["Acción concreta 1 con número o plazo", "Acción 2", "Acción 3"],
  "urgentAlerts": ["Solo lo que requiere acción HOY, con consecuencia si no se actúa"]
}}
"""


def build_analysis_prompt(metrics: dict, alerts: AlertSnapshot, limit: int = 10) -> str:
    sales = "\n".join(
        f"  - {row['product_name']}: {row['total_quantity']} uds · ${row['total_revenue']:.2f} "
        f"(${row['total_revenue'] / row['total_quantity'] if row['total_quantity'] else 0:.2f}/ud)"
        for row in metrics["sales_by_product"][:limit]
    ) or "  Sin ventas esta semana."

    hours = "\n".join(
        f"  - {h['hour']}:00 → {h['orders']} pedidos · ${h['sales']:.2f}"
        for h in metrics["sales_by_hour"]
        if h["orders"] > 0
    ) or "  Sin pedidos hoy."

    stock = [
        f"  - SIN STOCK: {row['name']}"
        for row in alerts.out_of_stock_ingredients + alerts.out_of_stock_products
    ] + [
        f"  - STOCK BAJO: {row['name']} (quedan {_qty(row.get('stock_quantity') or 0)})"
        for row in alerts.low_stock_ingredients + alerts.low_stock_products
    ]

    active = [p for p in metrics["promotions"] if p.get("active")]
    promotions = "\n".join(
        f"  - \"{p['name']}\" {p['discount_type']} {_qty(p['discount_value'])}, "
        f"{p.get('current_uses') or 0} usos"
        for p in active
    ) or "  Ninguna activa."

    today = metrics["today"]
    return ANALYSIS_PROMPT.format(
        agent=ADMIN_AGENT_NAME,
        restaurant=RESTAURANT_NAME,
        sales=sales,
        hours=hours,
        stock="\n".join(stock) or "  Inventario en niveles normales.",
        today_total=today["total"],
        today_completed=today["completed"],
        today_cancelled=today["cancelled"],
        avg_ticket=today["avg_ticket"],
        yesterday=metrics["yesterday_sales"],
        promotion_count=len(active),
        promotions=promotions,
    ).strip()
