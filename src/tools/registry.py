"""Max's tool table: name → (description, argument model, executor)."""

from smartburger_ai.common.tools import ToolManager, ToolSpec
from smartburger_ai.common.types import Tool
from src.tools import admin_tools as t

_SPECS = [
    # -- Ingredients
    ToolSpec(
        name="update_ingredient_stock",
        description="MODIFICA el stock (cantidad) de un ingrediente. Úsalo cuando el admin indique la nueva cantidad de un ingrediente.",
        args_model=t.UpdateIngredientStockArgs,
        executor=t.update_ingredient_stock,
    ),
    ToolSpec(
        name="bulk_update_ingredient_stock",
        description="MODIFICA el stock de varios ingredientes a la vez. Cada ingrediente se procesa por separado; un error en uno no detiene a los demás.",
        args_model=t.BulkUpdateIngredientStockArgs,
        executor=t.bulk_update_ingredient_stock,
    ),
    ToolSpec(
        name="toggle_ingredient_available",
        description="MODIFICA la disponibilidad de un ingrediente. Úsalo cuando un ingrediente no puede usarse temporalmente aunque tenga stock.",
        args_model=t.ToggleIngredientArgs,
        executor=t.toggle_ingredient_available,
    ),
    ToolSpec(
        name="update_ingredient_info",
        description="MODIFICA los datos de un ingrediente: nombre, precio como extra, unidad, umbral de alerta o alérgeno.",
        args_model=t.UpdateIngredientInfoArgs,
        executor=t.update_ingredient_info,
    ),
    ToolSpec(
        name="create_ingredient",
        description="CREA un ingrediente nuevo en el inventario.",
        args_model=t.CreateIngredientArgs,
        executor=t.create_ingredient,
    ),
    # -- Products
    ToolSpec(
        name="toggle_product",
        description="MODIFICA la visibilidad de un producto: lo activa o desactiva en el menú para clientes.",
        args_model=t.ToggleProductArgs,
        executor=t.toggle_product,
    ),
    ToolSpec(
        name="set_product_featured",
        description="MODIFICA si un producto aparece como destacado en el menú.",
        args_model=t.SetFeaturedArgs,
        executor=t.set_product_featured,
    ),
    ToolSpec(
        name="update_product_price",
        description="MODIFICA el precio base de un producto del menú.",
        args_model=t.UpdatePriceArgs,
        executor=t.update_product_price,
    ),
    ToolSpec(
        name="update_product_details",
        description="MODIFICA los detalles de un producto: nombre, descripción, calorías o tiempo de preparación.",
        args_model=t.UpdateProductDetailsArgs,
        executor=t.update_product_details,
    ),
    ToolSpec(
        name="update_product_stock",
        description="MODIFICA las unidades en stock de un producto del menú.",
        args_model=t.UpdateProductStockArgs,
        executor=t.update_product_stock,
    ),
    ToolSpec(
        name="create_product",
        description="CREA un producto nuevo en el menú.",
        args_model=t.CreateProductArgs,
        executor=t.create_product,
    ),
    ToolSpec(
        name="delete_product",
        description="ELIMINA permanentemente un producto. Úsalo solo si el admin confirma que quiere borrarlo; para ocultarlo usa toggle_product.",
        args_model=t.DeleteProductArgs,
        executor=t.delete_product,
    ),
    ToolSpec(
        name="get_product_detail",
        description="SOLO LECTURA. Detalle de ventas de un producto: unidades vendidas, ingresos, ticket promedio y ranking en el período.",
        args_model=t.ProductDetailArgs,
        executor=t.get_product_detail,
        read_only=True,
    ),
    # -- Promotions
    ToolSpec(
        name="toggle_promotion",
        description="MODIFICA el estado de una promoción existente: la activa o desactiva.",
        args_model=t.TogglePromotionArgs,
        executor=t.toggle_promotion,
    ),
    ToolSpec(
        name="create_promotion",
        description="CREA una promoción nueva. Úsala cuando el admin quiera lanzar un descuento.",
        args_model=t.CreatePromotionArgs,
        executor=t.create_promotion,
    ),
    ToolSpec(
        name="update_promotion_value",
        description="MODIFICA el valor de descuento, la compra mínima o el máximo de usos de una promoción.",
        args_model=t.UpdatePromotionArgs,
        executor=t.update_promotion_value,
    ),
    ToolSpec(
        name="delete_promotion",
        description="ELIMINA permanentemente una promoción. Úsala solo si el admin confirma que quiere borrarla.",
        args_model=t.DeletePromotionArgs,
        executor=t.delete_promotion,
    ),
    # -- Orders
    ToolSpec(
        name="update_order_status",
        description="MODIFICA el estado de un pedido: confirmar, preparando, completado o cancelado.",
        args_model=t.UpdateOrderStatusArgs,
        executor=t.update_order_status,
    ),
    ToolSpec(
        name="get_order_detail",
        description="SOLO LECTURA. Detalle completo de un pedido: cliente, productos, personalizaciones y montos.",
        args_model=t.OrderDetailArgs,
        executor=t.get_order_detail,
        read_only=True,
    ),
    ToolSpec(
        name="get_active_orders",
        description="SOLO LECTURA. Pedidos activos ahora mismo (pendientes, confirmados y en preparación).",
        args_model=t.NoArgs,
        executor=t.get_active_orders,
        read_only=True,
    ),
    # -- Analytics
    ToolSpec(
        name="analyze_stock",
        description="SOLO LECTURA. Estado actualizado del inventario: ingredientes sin stock, con stock bajo y recomendaciones de reposición.",
        args_model=t.NoArgs,
        executor=t.analyze_stock,
        read_only=True,
    ),
    ToolSpec(
        name="analyze_sales_period",
        description="SOLO LECTURA. Ventas por producto, por hora del día y por día de la semana en un período.",
        args_model=t.SalesPeriodArgs,
        executor=t.analyze_sales_period,
        read_only=True,
    ),
]

TOOLS: dict[str, ToolSpec] = {spec.name: spec for spec in _SPECS}

if len(TOOLS) != len(_SPECS):
    raise RuntimeError("Duplicate tool names in the admin tool table")
_mismatched = [s.name for s in _SPECS if s.executor.__name__ != s.name]
if _mismatched:
    raise RuntimeError(f"Tools wired to the wrong executor: {_mismatched}")

READ_ONLY_TOOLS = {name for name, spec in TOOLS.items() if spec.read_only}


def tool_manager(allowed_tools: set[str] | None = None) -> ToolManager:
    return ToolManager(TOOLS.values(), allowed_tools=allowed_tools)


def tool_schemas() -> list[Tool]:
    return [spec.schema() for spec in TOOLS.values()]
