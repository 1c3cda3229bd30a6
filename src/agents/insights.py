"""Max's business analysis: live metrics in, structured insights out.

The model answers with a ``BusinessInsights`` JSON object. Without a model,
or when the call fails, the same shape is built straight from the numbers.
"""

import asyncio
import dataclasses

import openai
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from smartburger_ai.common import chat as chat_lib
from smartburger_ai.common import types
from src.agents.prompts_admin import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from src.config import (
    ADMIN_AGENT_NAME,
    AGENT_TURN_TIMEOUT_SECONDS,
    INSIGHTS_PROMPT_PRODUCTS,
    INSIGHTS_TOP_PRODUCTS,
    LOW_AVERAGE_TICKET,
    RESTAURANT_NAME,
)
from src.database import db
from src.tools import alerts
from src.tools.admin_tools import admin_metrics
from src.tools.alerts import AlertSnapshot
from src.utils.logger import get_logger

logger = get_logger(__name__)


class BusinessInsights(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    summary: str
    top_products: list[str] = Field(alias="topProducts")
    stock_alerts: list[str] = Field(alias="stockAlerts")
    peak_hours: str = Field(alias="peakHours")
    promotion_effectiveness: str = Field(alias="promotionEffectiveness")
    recommendations: list[str]
    urgent_alerts: list[str] = Field(alias="urgentAlerts")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True)


@dataclasses.dataclass
class Analysis:
    insights: BusinessInsights
    metrics: dict
    alerts: dict
    mock: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "success": True,
            "mock": self.mock,
            "insights": self.insights.to_dict(),
            "metrics": self.metrics,
            "alerts": self.alerts,
        }
        if self.error:
            data["error"] = self.error
        return data


def _money(value: float) -> str:
    return f"${value:.2f}"


def data_insights(metrics: dict, snapshot: AlertSnapshot) -> BusinessInsights:
    """Deterministic insights from the numbers alone."""
    sales = metrics["sales_by_product"]
    today = metrics["today"]
    yesterday = metrics["yesterday_sales"]
    promotions = [p for p in metrics["promotions"] if p.get("active")]

    top_products = []
    for pos, row in enumerate(sales[:INSIGHTS_TOP_PRODUCTS], start=1):
        qty = row["total_quantity"]
        avg = row["total_revenue"] / qty if qty else 0
        top_products.append(
            f"{pos}. {row['product_name']} — {qty} uds · {_money(row['total_revenue'])} · ticket/ud {_money(avg)}"
        )

    out = snapshot.out_of_stock_ingredients + snapshot.out_of_stock_products
    low = snapshot.low_stock_ingredients + snapshot.low_stock_products
    urgent_alerts = [f"{row['name']} sin stock." for row in out]
    stock_alerts = [
        f"Sin stock — {row['name']}. Bloquea pedidos ahora mismo." for row in out
    ] + [f"Stock bajo — {row['name']}. Quedan pocas unidades." for row in low]

    active_hours = [h for h in metrics["sales_by_hour"] if h["orders"] > 0]
    if active_hours:
        peak = max(active_hours, key=lambda h: h["orders"])
        peak_hours = (
            f"Pico hoy a las {peak['hour']}:00 h — {peak['orders']} pedido(s), "
            f"{_money(peak['sales'])} generados. "
        )
        if len(active_hours) > 1:
            peak_hours += f"Total horas activas: {len(active_hours)}. Concentra personal en ese rango."
        else:
            peak_hours += "Solo una hora con actividad hoy."
    else:
        peak_hours = "Sin pedidos hoy todavía."

    if yesterday <= 0:
        trend = "Sin datos de ayer para comparar."
    elif today["total"] == 0:
        trend = f"Ayer fueron {_money(yesterday)}. Hoy sin ventas aún."
    else:
        trend = f"Comparado con ayer ({_money(yesterday)}), hoy llevas {today['total']} pedido(s)."

    if promotions:
        promotion_effectiveness = (
            f"{len(promotions)} promoción(es) activa(s): {', '.join(p['name'] for p in promotions)}. "
            f"Usos registrados: {sum(p.get('current_uses') or 0 for p in promotions)}."
        )
    else:
        promotion_effectiveness = (
            "No hay promociones activas. Si el ticket promedio es bajo, considera activar un combo."
        )

    if sales and today["total"] > 0:
        if out:
            stock_note = f"HAY {len(out)} producto(s) o ingrediente(s) sin stock: acción inmediata."
        elif low:
            stock_note = f"{len(low)} alerta(s) de inventario activas."
        else:
            stock_note = "Inventario en orden."
        summary = (
            f"Esta semana lidera {sales[0]['product_name']} con {sales[0]['total_quantity']} unidades. "
            f"Hoy: {today['total']} pedido(s), ticket promedio {_money(today['avg_ticket'])}. {stock_note}"
        )
    elif sales:
        summary = (
            f"Esta semana el más vendido es {sales[0]['product_name']} con "
            f"{sales[0]['total_quantity']} unidades. Hoy sin pedidos registrados. {trend}"
        )
    else:
        summary = f"Sin ventas registradas esta semana. {trend}"
        if snapshot.total_count:
            summary += f" Hay {snapshot.total_count} alerta(s) de stock activas."

    recommendations = []
    if out:
        recommendations.append(
            f"Reabastecer ahora: {len(out)} producto(s) o ingrediente(s) en cero bloquean el menú."
        )
    if low:
        recommendations.append(
            f"Planificar compra de {len(low)} producto(s) o ingrediente(s) con stock bajo antes de que se agoten."
        )
    if not promotions and today["avg_ticket"] < LOW_AVERAGE_TICKET:
        recommendations.append(
            f"Ticket promedio bajo ({_money(today['avg_ticket'])}). Activa un combo o descuento para subirlo."
        )
    if len(sales) > 3:
        recommendations.append(
            f"{sales[-1]['product_name']} tiene baja rotación. Agrégalo a un combo o baja su visibilidad."
        )
    if not recommendations:
        recommendations.append("Métricas dentro de parámetros normales. Monitorear tendencia mañana.")

    return BusinessInsights(
        summary=summary,
        top_products=top_products or ["Sin ventas registradas esta semana."],
        stock_alerts=stock_alerts or ["Todo el inventario está en niveles normales."],
        peak_hours=peak_hours,
        promotion_effectiveness=promotion_effectiveness,
        recommendations=recommendations,
        urgent_alerts=urgent_alerts,
    )


def parse_insights(response: types.ModelResponse) -> BusinessInsights:
    """The parsed object when the provider returned one, else the message JSON."""
    message = response.choices[0].message if response.choices else None
    parsed = getattr(message, "parsed", None)
    if isinstance(parsed, BusinessInsights):
        return parsed
    content = (message.content if message is not None else None) or ""
    return BusinessInsights.model_validate_json(content)


class BusinessAnalyst:
    def __init__(self, backend=None) -> None:
        self._backend = backend

    async def __call__(self) -> Analysis:
        metrics = admin_metrics()
        snapshot = alerts.build_snapshot(db.list_products(), db.list_ingredients())
        counts = snapshot.counts()

        if self._backend is None:
            logger.info("No LLM backend, building insights from the data")
            return Analysis(data_insights(metrics, snapshot), metrics, counts, mock=True)

        chat = chat_lib.Chat(
            messages=[
                types.SystemMessage(
                    role="system",
                    content=ANALYSIS_SYSTEM_PROMPT.format(agent=ADMIN_AGENT_NAME, restaurant=RESTAURANT_NAME),
                ),
                types.UserMessage(
                    role="user",
                    content=build_analysis_prompt(metrics, snapshot, INSIGHTS_PROMPT_PRODUCTS),
                ),
            ]
        )
        try:
            response = await asyncio.wait_for(
                self._backend.generate(chat, response_format=BusinessInsights),
                timeout=AGENT_TURN_TIMEOUT_SECONDS,
            )
            insights = parse_insights(response)
        except asyncio.TimeoutError:
            logger.warning("Analysis timed out after %.0fs, using data insights", AGENT_TURN_TIMEOUT_SECONDS)
            return Analysis(data_insights(metrics, snapshot), metrics, counts, mock=True, error="timeout")
        except openai.APIError as err:
            logger.error("Analysis provider error, using data insights: %s", err)
            return Analysis(data_insights(metrics, snapshot), metrics, counts, mock=True, error=str(err))
        except ValidationError as err:
            logger.warning("Model insights did not validate, using data insights: %s", err)
            return Analysis(
                data_insights(metrics, snapshot), metrics, counts, mock=True, error="invalid_insights"
            )

        logger.info("Analysis finished with %d recommendations", len(insights.recommendations))
        return Analysis(insights, metrics, counts)
