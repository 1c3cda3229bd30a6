"""Proactive stock alerts.

Pure functions over product and ingredient rows; safe to poll as often as
the UI wants.
"""

import dataclasses

from src.config import DEFAULT_MIN_STOCK_ALERT


@dataclasses.dataclass(frozen=True)
class AlertSnapshot:
    out_of_stock_products: list[dict]
    low_stock_products: list[dict]
    out_of_stock_ingredients: list[dict]
    low_stock_ingredients: list[dict]

    @property
    def total_count(self) -> int:
        return (
            len(self.out_of_stock_products)
            + len(self.low_stock_products)
            + len(self.out_of_stock_ingredients)
            + len(self.low_stock_ingredients)
        )

    @property
    def urgent_count(self) -> int:
        return len(self.out_of_stock_products) + len(self.out_of_stock_ingredients)

    def counts(self) -> dict[str, int]:
        return {
            "prodAgotados": len(self.out_of_stock_products),
            "prodBajos": len(self.low_stock_products),
            "ingAgotados": len(self.out_of_stock_ingredients),
            "ingBajos": len(self.low_stock_ingredients),
        }


def _threshold(row: dict) -> float:
    value = row.get("min_stock_alert")
    return DEFAULT_MIN_STOCK_ALERT if value is None else value


def _stock(row: dict) -> float:
    return row.get("stock_quantity") or 0


def _qty(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def build_snapshot(products: list[dict], ingredients: list[dict]) -> AlertSnapshot:
    active = [p for p in products if p.get("active")]
    available = [i for i in ingredients if i.get("available")]
    return AlertSnapshot(
        out_of_stock_products=[p for p in active if _stock(p) <= 0],
        low_stock_products=[p for p in active if 0 < _stock(p) <= _threshold(p)],
        out_of_stock_ingredients=[
            i for i in ingredients if not i.get("available") or _stock(i) <= 0
        ],
        low_stock_ingredients=[i for i in available if 0 < _stock(i) <= _threshold(i)],
    )


def render_message(snapshot: AlertSnapshot) -> str:
    lines = ["⚠️ Revisé el inventario y hay cosas que necesitan atención:"]

    if snapshot.out_of_stock_products:
        lines += ["", f"🚫 PRODUCTOS AGOTADOS ({len(snapshot.out_of_stock_products)}):"]
        lines += [f"  • {p['name']} — 0 unidades" for p in snapshot.out_of_stock_products]

    if snapshot.low_stock_products:
        lines += ["", f"⚠️ PRODUCTOS CON STOCK BAJO ({len(snapshot.low_stock_products)}):"]
        lines += [f"  • {p['name']} — {_qty(_stock(p))} und." for p in snapshot.low_stock_products]

    if snapshot.out_of_stock_ingredients:
        lines += [
            "",
            f"🚫 INGREDIENTES AGOTADOS / NO DISPONIBLES ({len(snapshot.out_of_stock_ingredients)}):",
        ]
        lines += [
            f"  • {i['name']} — {_qty(_stock(i))} und." for i in snapshot.out_of_stock_ingredients
        ]

    if snapshot.low_stock_ingredients:
        lines += ["", f"⚠️ INGREDIENTES CON STOCK BAJO ({len(snapshot.low_stock_ingredients)}):"]
        lines += [
            f"  • {i['name']} — {_qty(_stock(i))} und. (alerta: ≤{_qty(_threshold(i))})"
            for i in snapshot.low_stock_ingredients
        ]

    lines.append("")
    urgent = snapshot.urgent_count
    if urgent:
        plural = "s" if urgent != 1 else ""
        lines.append(
            f"Hay {urgent} ítem{plural} completamente agotado{plural}. "
            "Dime si quieres que actualice el stock o te ayude a gestionar algo."
        )
    else:
        lines.append(
            "Sin agotados urgentes, pero vale la pena reponer lo que está bajo. ¿Quieres que lo gestione?"
        )
    return "\n".join(lines)


def build_alert(snapshot: AlertSnapshot) -> dict:
    """Response body for the alerts endpoint."""
    if snapshot.total_count == 0:
        return {"hasAlerts": False}
    return {
        "hasAlerts": True,
        "message": render_message(snapshot),
        "critical": snapshot.counts(),
    }


def summary_line(snapshot: AlertSnapshot) -> str:
    """One-line digest for the admin agent's context."""
    if snapshot.total_count == 0:
        return "Sin alertas de inventario."
    parts = []
    if snapshot.out_of_stock_products:
        parts.append("agotados: " + ", ".join(p["name"] for p in snapshot.out_of_stock_products))
    if snapshot.low_stock_products:
        parts.append("productos bajos: " + ", ".join(p["name"] for p in snapshot.low_stock_products))
    if snapshot.out_of_stock_ingredients:
        parts.append(
            "ingredientes agotados: "
            + ", ".join(i["name"] for i in snapshot.out_of_stock_ingredients)
        )
    if snapshot.low_stock_ingredients:
        parts.append(
            "ingredientes bajos: " + ", ".join(i["name"] for i in snapshot.low_stock_ingredients)
        )
    return f"{snapshot.total_count} alertas ({'; '.join(parts)})"
