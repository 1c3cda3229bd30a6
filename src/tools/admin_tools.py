"""Executors for Max's tools.

Every executor takes its validated argument model and returns a ToolResult.
Collections are re-read from the database on every call; names are matched
against what is there now, never against an earlier snapshot.
"""

import functools
import sqlite3
from datetime import date, datetime, timedelta
from typing import Literal

from pydantic import BaseModel, Field

from smartburger_ai.common.types import ToolResult
from src.catalog.resolver import find_by_name, normalize
from src.config import ACTIVE_ORDER_STATUSES, DEFAULT_MIN_STOCK_ALERT
from src.database import db
from src.utils.logger import get_logger

logger = get_logger(__name__)

LAST_ORDER_WORDS = {"ultimo", "ultima", "last", "latest"}

STATUS_LABELS = {
    "pending": "Pendiente",
    "confirmed": "Confirmado",
    "preparing": "En preparación",
    "completed": "Completado",
    "cancelled": "Cancelado",
}


def _contained(fn):
    """Turns database failures into a failed ToolResult."""

    @functools.wraps(fn)
    def wrapper(args):
        try:
            return fn(args)
        except sqlite3.Error as err:
            logger.exception("Database error in tool %s", fn.__name__)
            return ToolResult(type=fn.__name__, description=f"Error de base de datos: {err}", success=False)

    return wrapper


def _ok(tool: str, description: str) -> ToolResult:
    return ToolResult(type=tool, description=description, success=True)


def _fail(tool: str, description: str) -> ToolResult:
    return ToolResult(type=tool, description=description, success=False)


def _qty(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def _money(value: float | None) -> str:
    return f"${(value or 0):.2f}"


# -----------------------------
# Ingredients
# -----------------------------
class UpdateIngredientStockArgs(BaseModel):
    ingredient_name: str = Field(description="Nombre exacto o parcial del ingrediente")
    quantity: float = Field(description="Nueva cantidad de stock")


@_contained
def update_ingredient_stock(args: UpdateIngredientStockArgs) -> ToolResult:
    tool = "update_ingredient_stock"
    if args.quantity < 0:
        return _fail(tool, "El stock no puede ser negativo")
    match = find_by_name(db.list_ingredients(), args.ingredient_name)
    if match is None:
        return _fail(tool, f'No encontré ingrediente "{args.ingredient_name}"')
    db.update_ingredient(match["id"], stock_quantity=args.quantity)
    return _ok(
        tool,
        f'Stock de "{match["name"]}" actualizado: {_qty(match["stock_quantity"])} → '
        f'{_qty(args.quantity)} {match["unit"]}',
    )


class StockItem(BaseModel):
    ingredient_name: str = Field(description="Nombre exacto o parcial del ingrediente")
    quantity: float = Field(description="Nueva cantidad de stock (mayor a 0)")


class BulkUpdateIngredientStockArgs(BaseModel):
    items: list[StockItem] = Field(description="Lista de ingredientes con su nueva cantidad")


@_contained
def bulk_update_ingredient_stock(args: BulkUpdateIngredientStockArgs) -> ToolResult:
    tool = "bulk_update_ingredient_stock"
    if not args.items:
        return _fail(tool, "No se indicaron ingredientes")

    lines = []
    succeeded = 0
    for item in args.items:
        if item.quantity <= 0:
            lines.append(f'  ✗ "{item.ingredient_name}": la cantidad debe ser mayor a 0')
            continue
        ingredients = db.list_ingredients()
        match = find_by_name(ingredients, item.ingredient_name)
        if match is None:
            lines.append(f'  ✗ No encontré ingrediente "{item.ingredient_name}"')
            continue
        try:
            db.update_ingredient(match["id"], stock_quantity=item.quantity)
        except sqlite3.Error as err:
            logger.exception("Bulk stock update failed for %s", match["name"])
            lines.append(f'  ✗ "{match["name"]}": {err}')
            continue
        succeeded += 1
        lines.append(
            f'  ✓ {match["name"]}: {_qty(match["stock_quantity"])} → {_qty(item.quantity)} {match["unit"]}'
        )

    failed = len(args.items) - succeeded
    header = f"Stock actualizado: {succeeded} correctos, {failed} con error"
    return ToolResult(type=tool, description="\n".join([header, *lines]), success=succeeded > 0)


class ToggleIngredientArgs(BaseModel):
    ingredient_name: str = Field(description="Nombre exacto o parcial del ingrediente")
    available: bool = Field(description="true = disponible, false = no disponible")


@_contained
def toggle_ingredient_available(args: ToggleIngredientArgs) -> ToolResult:
    tool = "toggle_ingredient_available"
    match = find_by_name(db.list_ingredients(), args.ingredient_name)
    if match is None:
        return _fail(tool, f'No encontré ingrediente "{args.ingredient_name}"')
    db.update_ingredient(match["id"], available=args.available)
    state = "disponible" if args.available else "no disponible"
    return _ok(tool, f'Ingrediente "{match["name"]}" marcado como {state}')


class UpdateIngredientInfoArgs(BaseModel):
    ingredient_name: str = Field(description="Nombre exacto o parcial del ingrediente a editar")
    new_name: str | None = Field(default=None, description="Nuevo nombre (opcional)")
    price: float | None = Field(default=None, description="Nuevo precio como extra (opcional)")
    unit: str | None = Field(default=None, description="Nueva unidad de medida (opcional)")
    min_stock_alert: float | None = Field(default=None, description="Nuevo umbral de alerta de stock (opcional)")
    is_allergen: bool | None = Field(default=None, description="Marcar como alérgeno (opcional)")


@_contained
def update_ingredient_info(args: UpdateIngredientInfoArgs) -> ToolResult:
    tool = "update_ingredient_info"
    match = find_by_name(db.list_ingredients(), args.ingredient_name)
    if match is None:
        return _fail(tool, f'No encontré ingrediente "{args.ingredient_name}"')

    updates = {}
    changes = []
    if args.new_name:
        updates["name"] = args.new_name
        changes.append(f'nombre "{match["name"]}" → "{args.new_name}"')
    if args.price is not None:
        if args.price < 0:
            return _fail(tool, "El precio no puede ser negativo")
        updates["price"] = args.price
        changes.append(f"precio {_money(match['price'])} → {_money(args.price)}")
    if args.unit:
        updates["unit"] = args.unit
        changes.append(f"unidad {match['unit']} → {args.unit}")
    if args.min_stock_alert is not None:
        if args.min_stock_alert < 0:
            return _fail(tool, "El umbral de alerta no puede ser negativo")
        updates["min_stock_alert"] = args.min_stock_alert
        changes.append(f"alerta {_qty(match['min_stock_alert'])} → {_qty(args.min_stock_alert)}")
    if args.is_allergen is not None:
        updates["is_allergen"] = args.is_allergen
        changes.append("alérgeno" if args.is_allergen else "no alérgeno")

    if not updates:
        return _fail(tool, "No se especificaron campos a actualizar")
    db.update_ingredient(match["id"], **updates)
    return _ok(tool, f'"{match["name"]}" actualizado: {", ".join(changes)}')


class CreateIngredientArgs(BaseModel):
    name: str = Field(description="Nombre del nuevo ingrediente")
    unit: str = Field(default="unidades", description="Unidad de medida (unidades, porciones, kg…)")
    stock_quantity: float = Field(default=0, description="Stock inicial")
    min_stock_alert: float = Field(default=DEFAULT_MIN_STOCK_ALERT, description="Umbral de alerta de stock bajo")
    price: float = Field(default=0, description="Precio como extra (0 si no se vende aparte)")
    is_allergen: bool = Field(default=False, description="true si es alérgeno")


@_contained
def create_ingredient(args: CreateIngredientArgs) -> ToolResult:
    tool = "create_ingredient"
    if args.stock_quantity < 0 or args.price < 0 or args.min_stock_alert < 0:
        return _fail(tool, "Stock, precio y alerta no pueden ser negativos")
    target = normalize(args.name)
    if any(normalize(i["name"]) == target for i in db.list_ingredients()):
        return _fail(tool, f'Ya existe un ingrediente llamado "{args.name}"')
    created = db.create_ingredient(
        args.name,
        price=args.price,
        stock_quantity=args.stock_quantity,
        min_stock_alert=args.min_stock_alert,
        unit=args.unit,
        is_allergen=args.is_allergen,
    )
    return _ok(
        tool,
        f'Ingrediente "{created["name"]}" creado con {_qty(created["stock_quantity"])} {created["unit"]}',
    )


# -----------------------------
# Products
# -----------------------------
class ToggleProductArgs(BaseModel):
    product_name: str = Field(description="Nombre exacto o parcial del producto")
    active: bool = Field(description="true = activo (visible), false = desactivado")


@_contained
def toggle_product(args: ToggleProductArgs) -> ToolResult:
    tool = "toggle_product"
    match = find_by_name(db.list_products(), args.product_name)
    if match is None:
        return _fail(tool, f'No encontré producto "{args.product_name}"')
    db.update_product(match["id"], active=args.active)
    state = "activado" if args.active else "desactivado"
    return _ok(tool, f'Producto "{match["name"]}" {state} en el menú')


class SetFeaturedArgs(BaseModel):
    product_name: str = Field(description="Nombre exacto o parcial del producto")
    featured: bool = Field(description="true = destacado, false = normal")


@_contained
def set_product_featured(args: SetFeaturedArgs) -> ToolResult:
    tool = "set_product_featured"
    match = find_by_name(db.list_products(), args.product_name)
    if match is None:
        return _fail(tool, f'No encontré producto "{args.product_name}"')
    db.update_product(match["id"], featured=args.featured)
    state = "marcado como destacado" if args.featured else "quitado de destacados"
    return _ok(tool, f'"{match["name"]}" {state}')


class UpdatePriceArgs(BaseModel):
    product_name: str = Field(description="Nombre exacto o parcial del producto")
    price: float = Field(description="Nuevo precio base (número positivo)")


@_contained
def update_product_price(args: UpdatePriceArgs) -> ToolResult:
    tool = "update_product_price"
    if args.price <= 0:
        return _fail(tool, "El precio debe ser mayor a 0")
    match = find_by_name(db.list_products(), args.product_name)
    if match is None:
        return _fail(tool, f'No encontré producto "{args.product_name}"')
    db.update_product(match["id"], base_price=args.price)
    return _ok(
        tool,
        f'Precio de "{match["name"]}" actualizado: {_money(match["base_price"])} → {_money(args.price)}',
    )


class UpdateProductDetailsArgs(BaseModel):
    product_name: str = Field(description="Nombre exacto o parcial del producto a editar")
    new_name: str | None = Field(default=None, description="Nuevo nombre (opcional)")
    description: str | None = Field(default=None, description="Nueva descripción (opcional)")
    calories: int | None = Field(default=None, description="Nuevas calorías (opcional)")
    preparation_time: int | None = Field(default=None, description="Nuevo tiempo de preparación en minutos (opcional)")


@_contained
def update_product_details(args: UpdateProductDetailsArgs) -> ToolResult:
    tool = "update_product_details"
    match = find_by_name(db.list_products(), args.product_name)
    if match is None:
        return _fail(tool, f'No encontré producto "{args.product_name}"')

    updates = {}
    changes = []
    if args.new_name:
        updates["name"] = args.new_name
        changes.append(f'nombre → "{args.new_name}"')
    if args.description is not None:
        updates["description"] = args.description
        changes.append("descripción actualizada")
    if args.calories is not None:
        updates["calories"] = args.calories
        changes.append(f"{match['calories'] or 0} → {args.calories} kcal")
    if args.preparation_time is not None:
        updates["preparation_time"] = args.preparation_time
        changes.append(f"{match['preparation_time']} → {args.preparation_time} min prep")

    if not updates:
        return _fail(tool, "No se especificaron campos a actualizar")
    db.update_product(match["id"], **updates)
    return _ok(tool, f'"{match["name"]}" actualizado: {", ".join(changes)}')


class UpdateProductStockArgs(BaseModel):
    product_name: str = Field(description="Nombre exacto o parcial del producto")
    quantity: int = Field(description="Nuevas unidades en stock")


@_contained
def update_product_stock(args: UpdateProductStockArgs) -> ToolResult:
    tool = "update_product_stock"
    if args.quantity < 0:
        return _fail(tool, "El stock no puede ser negativo")
    match = find_by_name(db.list_products(), args.product_name)
    if match is None:
        return _fail(tool, f'No encontré producto "{args.product_name}"')
    db.update_product(match["id"], stock_quantity=args.quantity)
    return _ok(
        tool,
        f'Stock de "{match["name"]}" actualizado: {match["stock_quantity"]} → {args.quantity} unidades',
    )


class CreateProductArgs(BaseModel):
    name: str = Field(description="Nombre del producto")
    price: float = Field(description="Precio base (número positivo)")
    category: str | None = Field(default=None, description="Categoría: Hamburguesas, Combos, Acompañamientos, Bebidas…")
    description: str | None = Field(default=None, description="Descripción (opcional)")
    stock_quantity: int = Field(default=100, description="Unidades iniciales en stock")
    preparation_time: int = Field(default=10, description="Tiempo de preparación en minutos")
    calories: int | None = Field(default=None, description="Calorías (opcional)")
    active: bool = Field(default=True, description="true = visible en el menú")


@_contained
def create_product(args: CreateProductArgs) -> ToolResult:
    tool = "create_product"
    if args.price <= 0:
        return _fail(tool, "El precio debe ser mayor a 0")
    if args.stock_quantity < 0:
        return _fail(tool, "El stock no puede ser negativo")
    target = normalize(args.name)
    if any(normalize(p["name"]) == target for p in db.list_products()):
        return _fail(tool, f'Ya existe un producto llamado "{args.name}"')

    category_id = None
    if args.category:
        category = find_by_name(db.list_categories(), args.category)
        if category is None:
            return _fail(tool, f'No encontré categoría "{args.category}"')
        category_id = category["id"]

    created = db.create_product(
        args.name,
        args.price,
        category_id=category_id,
        description=args.description,
        preparation_time=args.preparation_time,
        calories=args.calories,
        stock_quantity=args.stock_quantity,
        active=args.active,
    )
    where = f" en {created['category_name']}" if created.get("category_name") else ""
    return _ok(tool, f'Producto "{created["name"]}" creado{where} a {_money(created["base_price"])}')


class DeleteProductArgs(BaseModel):
    product_name: str = Field(description="Nombre exacto o parcial del producto a eliminar")


@_contained
def delete_product(args: DeleteProductArgs) -> ToolResult:
    tool = "delete_product"
    match = find_by_name(db.list_products(), args.product_name)
    if match is None:
        return _fail(tool, f'No encontré producto "{args.product_name}"')
    db.delete_product(match["id"])
    return _ok(tool, f'Producto "{match["name"]}" eliminado permanentemente')


class ProductDetailArgs(BaseModel):
    product_name: str = Field(description="Nombre exacto o parcial del producto")
    days: int = Field(default=30, description="Días de histórico a analizar (por defecto 30)")


@_contained
def get_product_detail(args: ProductDetailArgs) -> ToolResult:
    tool = "get_product_detail"
    match = find_by_name(db.list_products(), args.product_name)
    if match is None:
        return _fail(tool, f'No encontré producto "{args.product_name}"')

    days = max(args.days, 1)
    to_date = date.today()
    sales = db.sales_by_product(to_date - timedelta(days=days), to_date)
    ranked = {row["product_id"]: (pos, row) for pos, row in enumerate(sales, start=1)}

    state = "activo" if match["active"] else "inactivo"
    if match["featured"]:
        state += ", destacado"
    lines = [
        f'Detalle de "{match["name"]}" (últimos {days} días):',
        f"  Precio actual: {_money(match['base_price'])}",
        f"  Estado: {state}",
        f"  Stock: {match['stock_quantity']} unidades",
    ]
    if match["id"] in ranked:
        pos, row = ranked[match["id"]]
        qty = row["total_quantity"]
        avg = row["total_revenue"] / qty if qty else 0
        lines += [
            f"  Unidades vendidas: {qty}",
            f"  Ingresos totales: {_money(row['total_revenue'])}",
            f"  Ticket promedio: {_money(avg)}",
            f"  Rank en ventas: #{pos} de {len(sales)} productos",
        ]
    else:
        lines.append("  Sin ventas registradas en el período.")
    return _ok(tool, "\n".join(lines))


# -----------------------------
# Promotions
# -----------------------------
class TogglePromotionArgs(BaseModel):
    promotion_name: str = Field(description="Nombre exacto o parcial de la promoción")
    active: bool = Field(description="true = activar, false = desactivar")


@_contained
def toggle_promotion(args: TogglePromotionArgs) -> ToolResult:
    tool = "toggle_promotion"
    match = find_by_name(db.list_promotions(), args.promotion_name)
    if match is None:
        return _fail(tool, f'No encontré promoción "{args.promotion_name}"')
    db.update_promotion(match["id"], active=args.active)
    state = "activada" if args.active else "desactivada"
    return _ok(tool, f'Promoción "{match["name"]}" {state}')


class CreatePromotionArgs(BaseModel):
    name: str = Field(description="Nombre de la promoción")
    discount_type: Literal["percentage", "fixed"] = Field(description="Tipo: percentage (%) o fixed (monto fijo)")
    discount_value: float = Field(description="Valor del descuento (% o monto)")
    min_purchase: float = Field(default=0, description="Compra mínima para aplicar (0 si no hay mínimo)")
    end_date: str = Field(description="Fecha de fin en formato YYYY-MM-DD")
    description: str | None = Field(default=None, description="Descripción de la promoción (opcional)")
    max_uses: int | None = Field(default=None, description="Número máximo de usos (omitir para ilimitado)")


@_contained
def create_promotion(args: CreatePromotionArgs) -> ToolResult:
    tool = "create_promotion"
    if args.discount_value <= 0:
        return _fail(tool, "El descuento debe ser mayor a 0")
    if args.discount_type == "percentage" and args.discount_value > 100:
        return _fail(tool, "Un descuento porcentual no puede superar 100%")
    if args.min_purchase < 0:
        return _fail(tool, "La compra mínima no puede ser negativa")
    try:
        end = date.fromisoformat(args.end_date)
    except ValueError:
        return _fail(tool, f'Fecha de fin inválida "{args.end_date}" (usa YYYY-MM-DD)')
    if end < date.today():
        return _fail(tool, f"La fecha de fin {args.end_date} ya pasó")

    db.create_promotion(
        args.name,
        args.discount_type,
        args.discount_value,
        end_date=end.isoformat(),
        min_purchase=args.min_purchase,
        description=args.description,
        max_uses=args.max_uses,
    )
    label = (
        f"{_qty(args.discount_value)}% dto"
        if args.discount_type == "percentage"
        else f"{_money(args.discount_value)} dto"
    )
    return _ok(
        tool,
        f'Promoción "{args.name}" creada ({label}, mínimo {_money(args.min_purchase)}, '
        f"válida hasta {end.isoformat()})",
    )


class UpdatePromotionArgs(BaseModel):
    promotion_name: str = Field(description="Nombre exacto o parcial de la promoción")
    discount_value: float | None = Field(default=None, description="Nuevo valor de descuento (opcional)")
    min_purchase: float | None = Field(default=None, description="Nueva compra mínima requerida (opcional)")
    max_uses: int | None = Field(default=None, description="Nuevo máximo de usos (opcional)")


@_contained
def update_promotion_value(args: UpdatePromotionArgs) -> ToolResult:
    tool = "update_promotion_value"
    match = find_by_name(db.list_promotions(), args.promotion_name)
    if match is None:
        return _fail(tool, f'No encontré promoción "{args.promotion_name}"')

    updates = {}
    changes = []
    if args.discount_value is not None:
        if args.discount_value <= 0:
            return _fail(tool, "El descuento debe ser mayor a 0")
        updates["discount_value"] = args.discount_value
        changes.append(f"descuento {_qty(match['discount_value'])} → {_qty(args.discount_value)}")
    if args.min_purchase is not None:
        updates["min_purchase"] = args.min_purchase
        changes.append(f"mínimo {_money(match['min_purchase'])} → {_money(args.min_purchase)}")
    if args.max_uses is not None:
        updates["max_uses"] = args.max_uses
        changes.append(f"máx usos {match['max_uses'] or '∞'} → {args.max_uses}")

    if not updates:
        return _fail(tool, "No se especificaron campos a actualizar")
    db.update_promotion(match["id"], **updates)
    return _ok(tool, f'Promoción "{match["name"]}" actualizada: {", ".join(changes)}')


class DeletePromotionArgs(BaseModel):
    promotion_name: str = Field(description="Nombre exacto o parcial de la promoción a eliminar")


@_contained
def delete_promotion(args: DeletePromotionArgs) -> ToolResult:
    tool = "delete_promotion"
    match = find_by_name(db.list_promotions(), args.promotion_name)
    if match is None:
        return _fail(tool, f'No encontré promoción "{args.promotion_name}"')
    db.delete_promotion(match["id"])
    return _ok(tool, f'Promoción "{match["name"]}" eliminada permanentemente')


# -----------------------------
# Orders
# -----------------------------
def find_order(orders: list[dict], identifier: str) -> dict | None:
    """Order by number, customer name or email; "último" is the newest.

    ``orders`` must be sorted newest first.
    """
    key = normalize(identifier)
    if not key:
        return None
    if LAST_ORDER_WORDS.intersection(key.split()):
        return orders[0] if orders else None
    for order in orders:
        fields = (order.get("order_number"), order.get("customer_name"), order.get("customer_email"))
        if any(key in normalize(value) for value in fields if value):
            return order
    return None


class UpdateOrderStatusArgs(BaseModel):
    order_identifier: str = Field(
        description='Número de pedido (ej: "001"), nombre o email del cliente, o "último" para el más reciente'
    )
    status: Literal["confirmed", "preparing", "completed", "cancelled"] = Field(
        description="Nuevo estado del pedido"
    )


@_contained
def update_order_status(args: UpdateOrderStatusArgs) -> ToolResult:
    tool = "update_order_status"
    match = find_order(db.list_orders(), args.order_identifier)
    if match is None:
        return _fail(tool, f'No encontré pedido "{args.order_identifier}"')
    db.update_order_status(match["id"], args.status)
    return _ok(
        tool,
        f"Pedido {match['order_number']} ({match['customer_name'] or 'cliente'}): "
        f"{STATUS_LABELS.get(match['status'], match['status'])} → {STATUS_LABELS[args.status]}",
    )


class OrderDetailArgs(BaseModel):
    order_identifier: str = Field(
        description='Número de pedido, nombre o email del cliente, o "último" para el más reciente'
    )


@_contained
def get_order_detail(args: OrderDetailArgs) -> ToolResult:
    tool = "get_order_detail"
    match = find_order(db.list_orders(), args.order_identifier)
    if match is None:
        return _fail(tool, f'No encontré pedido "{args.order_identifier}"')
    order = db.get_order(match["id"])

    lines = [
        f"Pedido {order['order_number']} | {STATUS_LABELS.get(order['status'], order['status'])}",
        f"  Cliente: {order['customer_name'] or 'sin nombre'}"
        + (f" <{order['customer_email']}>" if order["customer_email"] else ""),
        f"  Creado: {order['created_at']}",
    ]
    for item in order["items"]:
        line = f"  • {item['quantity']}x {item['product_name'] or '(producto eliminado)'} {_money(item['total_price'])}"
        custom = item.get("customizations") or {}
        extras = [f"+{a}" for a in custom.get("additions") or []] + [
            f"sin {r}" for r in custom.get("removals") or []
        ]
        if custom.get("notes"):
            extras.append(custom["notes"])
        if extras:
            line += f" ({', '.join(extras)})"
        lines.append(line)
    lines.append(
        f"  Subtotal {_money(order['total_amount'])} · descuento {_money(order['discount_amount'])} "
        f"· total {_money(order['final_amount'])}"
    )
    if order["notes"]:
        lines.append(f"  Notas: {order['notes']}")
    return _ok(tool, "\n".join(lines))


class NoArgs(BaseModel):
    pass


@_contained
def get_active_orders(args: NoArgs) -> ToolResult:
    tool = "get_active_orders"
    active = [o for o in db.list_orders() if o["status"] in ACTIVE_ORDER_STATUSES]
    if not active:
        return _ok(tool, "No hay pedidos activos en este momento.")

    now = datetime.now()
    lines = [f"Pedidos activos: {len(active)}"]
    for order in active:
        minutes = round((now - datetime.fromisoformat(order["created_at"])).total_seconds() / 60)
        lines.append(
            f"  • {order['order_number']} | {order['customer_name'] or 'sin nombre'} | "
            f"{_money(order['final_amount'])} | {STATUS_LABELS.get(order['status'], order['status'])} | "
            f"hace {minutes} min"
        )
    return _ok(tool, "\n".join(lines))


# -----------------------------
# Analytics (read-only)
# -----------------------------
@_contained
def analyze_stock(args: NoArgs) -> ToolResult:
    tool = "analyze_stock"
    ingredients = db.list_ingredients()
    open_alerts = db.list_inventory_alerts(resolved=False)

    out = [i for i in ingredients if i["stock_quantity"] <= 0 or not i["available"]]
    low = [
        i
        for i in ingredients
        if i["available"] and 0 < i["stock_quantity"] <= i["min_stock_alert"]
    ]
    ok = [i for i in ingredients if i["available"] and i["stock_quantity"] > i["min_stock_alert"]]
    low_products = [
        p
        for p in db.list_products()
        if p["active"] and p["stock_quantity"] <= p["min_stock_alert"]
    ]

    lines = [f"Inventario actualizado ({len(ingredients)} ingredientes):"]
    lines.append(f"⛔ Sin stock / no disponible: {len(out)}")
    lines += [
        f"  • {i['name']}: {_qty(i['stock_quantity'])} {i['unit']} — reponer mín {_qty(i['min_stock_alert'])} {i['unit']}"
        for i in out
    ]
    lines.append(f"⚠️ Stock bajo: {len(low)}")
    lines += [
        f"  • {i['name']}: {_qty(i['stock_quantity'])}/{_qty(i['min_stock_alert'])} {i['unit']}"
        for i in low
    ]
    lines.append(f"✅ En orden: {len(ok)} ingredientes")
    if low_products:
        lines.append(f"📦 Productos con stock bajo: {len(low_products)}")
        lines += [f"  • {p['name']}: {p['stock_quantity']} und." for p in low_products]
    lines.append(f"Alertas activas: {len(open_alerts)}" if open_alerts else "Sin alertas sin resolver")
    return _ok(tool, "\n".join(lines))


class SalesPeriodArgs(BaseModel):
    days: int = Field(default=7, description="Número de días a analizar hacia atrás (7, 14 o 30). Por defecto 7.")


@_contained
def analyze_sales_period(args: SalesPeriodArgs) -> ToolResult:
    tool = "analyze_sales_period"
    days = max(args.days, 1)
    to_date = date.today()
    from_date = to_date - timedelta(days=days)

    products = db.sales_by_product(from_date, to_date)
    hourly = [h for h in db.sales_by_hour() if h["orders"] > 0]
    by_day = [d for d in db.sales_by_day_of_week(days) if d["orders"] > 0]

    lines = [
        f"Análisis ventas últimos {days} días ({from_date.isoformat()} → {to_date.isoformat()}):",
        "",
        f"TOP PRODUCTOS ({len(products)} en total):",
    ]
    for pos, row in enumerate(products[:8], start=1):
        qty = row["total_quantity"]
        avg = row["total_revenue"] / qty if qty else 0
        lines.append(
            f"  {pos}. {row['product_name']}: {qty} uds · {_money(row['total_revenue'])} · {_money(avg)}/ud"
        )
    if not products:
        lines.append("  Sin ventas en el período")

    lines += ["", "HORARIOS (hoy):"]
    if hourly:
        top_hours = sorted(hourly, key=lambda h: h["orders"], reverse=True)[:3]
        lines += [
            f"  • {h['hour']}:00h — {h['orders']} pedidos · {_money(h['sales'])}" for h in top_hours
        ]
        lines.append(f"  → Pico: {top_hours[0]['hour']}:00h")
    else:
        lines.append("  Sin datos de hoy todavía")

    lines += ["", f"DÍAS DE LA SEMANA (últimos {days} días):"]
    if by_day:
        ranked = sorted(by_day, key=lambda d: d["orders"], reverse=True)
        lines += [f"  • {d['day']}: {d['orders']} pedidos · {_money(d['sales'])}" for d in ranked]
        lines.append(f"  → Día más activo: {ranked[0]['day']} ({ranked[0]['orders']} pedidos)")
    else:
        lines.append("  Sin datos suficientes")
    return _ok(tool, "\n".join(lines))


def admin_metrics() -> dict:
    """Live numbers for Max's context and the fallback responder."""
    today = date.today()
    return {
        "sales_by_product": db.sales_by_product(today - timedelta(days=7), today),
        "sales_by_hour": db.sales_by_hour(today),
        "today": db.order_stats_for_day(today),
        "yesterday_sales": db.order_stats_for_day(today - timedelta(days=1))["revenue"],
        "promotions": db.list_promotions(),
    }
