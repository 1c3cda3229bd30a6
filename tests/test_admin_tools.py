import asyncio
import sqlite3

import pytest

from smartburger_ai.common.types import ToolResult
from src.ordering import checkout
from src.tools import admin_tools as t
from src.tools import registry


def _ingredient(db, name):
    return next(i for i in db.list_ingredients() if i["name"] == name)


def _product(db, name):
    return next(p for p in db.list_products() if p["name"] == name)


def _order(db, name, email, product="SmartBurger Clásica"):
    return checkout.place_order(
        checkout.Customer(name=name, email=email),
        [checkout.OrderLine(product_id=_product(db, product)["id"], quantity=1)],
    )


# -----------------------------
# Registry
# -----------------------------
def test_registry_has_every_tool_once():
    assert len(registry.TOOLS) == 22
    for name, spec in registry.TOOLS.items():
        assert spec.executor.__name__ == name
        assert spec.description.split()[0] in {"MODIFICA", "CREA", "ELIMINA", "SOLO"}


def test_read_only_tools():
    assert registry.READ_ONLY_TOOLS == {
        "get_product_detail",
        "get_order_detail",
        "get_active_orders",
        "analyze_stock",
        "analyze_sales_period",
    }


def test_schemas_are_function_tools():
    schemas = registry.tool_schemas()
    stock = next(s for s in schemas if s["function"]["name"] == "update_ingredient_stock")
    assert stock["type"] == "function"
    assert set(stock["function"]["parameters"]["required"]) == {"ingredient_name", "quantity"}


def test_unknown_tool_and_bad_arguments(seeded):
    manager = registry.tool_manager()
    unknown = asyncio.run(manager.execute("drop_tables", {}))
    assert not unknown.success

    bad = asyncio.run(manager.execute("update_ingredient_stock", {"ingredient_name": "queso"}))
    assert not bad.success
    assert "quantity" in bad.description


def test_allow_list_hides_other_tools(seeded):
    manager = registry.tool_manager(allowed_tools=registry.READ_ONLY_TOOLS)
    result = asyncio.run(manager.execute("delete_product", {"product_name": "Agua"}))
    assert not result.success
    assert _product(seeded, "Agua")


# -----------------------------
# Ingredients
# -----------------------------
def test_update_ingredient_stock(seeded):
    result = t.update_ingredient_stock(t.UpdateIngredientStockArgs(ingredient_name="queso", quantity=50))
    assert result == ToolResult(
        type="update_ingredient_stock",
        description='Stock de "Queso cheddar" actualizado: 100 → 50 rebanadas',
        success=True,
    )
    assert _ingredient(seeded, "Queso cheddar")["stock_quantity"] == 50


def test_update_ingredient_stock_rejects_negative_and_unknown(seeded):
    negative = t.update_ingredient_stock(t.UpdateIngredientStockArgs(ingredient_name="queso", quantity=-1))
    missing = t.update_ingredient_stock(t.UpdateIngredientStockArgs(ingredient_name="trufa", quantity=3))
    assert not negative.success
    assert not missing.success and "trufa" in missing.description
    assert _ingredient(seeded, "Queso cheddar")["stock_quantity"] == 100


def test_bulk_update_reports_partial_failure(seeded):
    result = t.bulk_update_ingredient_stock(
        t.BulkUpdateIngredientStockArgs(
            items=[
                t.StockItem(ingredient_name="bacon", quantity=70),
                t.StockItem(ingredient_name="caviar", quantity=5),
            ]
        )
    )
    assert result.success
    assert result.description.startswith("Stock actualizado: 1 correctos, 1 con error")
    assert "✓ Bacon: 45 → 70 tiras" in result.description
    assert '✗ No encontré ingrediente "caviar"' in result.description
    assert _ingredient(seeded, "Bacon")["stock_quantity"] == 70


def test_bulk_update_all_failing_is_a_failure(seeded):
    result = t.bulk_update_ingredient_stock(
        t.BulkUpdateIngredientStockArgs(items=[t.StockItem(ingredient_name="bacon", quantity=0)])
    )
    assert not result.success
    assert _ingredient(seeded, "Bacon")["stock_quantity"] == 45


def test_stock_change_opens_and_resolves_alerts(seeded):
    t.update_ingredient_stock(t.UpdateIngredientStockArgs(ingredient_name="aguacate", quantity=0))
    open_alerts = seeded.list_inventory_alerts()
    assert [a["alert_type"] for a in open_alerts] == ["out_of_stock"]

    t.update_ingredient_stock(t.UpdateIngredientStockArgs(ingredient_name="aguacate", quantity=40))
    assert seeded.list_inventory_alerts() == []


def test_toggle_ingredient_available(seeded):
    result = t.toggle_ingredient_available(t.ToggleIngredientArgs(ingredient_name="pepinillos", available=False))
    assert result.success
    assert _ingredient(seeded, "Pepinillos")["available"] is False


def test_create_ingredient(seeded):
    result = t.create_ingredient(t.CreateIngredientArgs(name="Jalapeños", price=0.5, stock_quantity=20))
    assert result.success
    assert _ingredient(seeded, "Jalapeños")["price"] == 0.5


# -----------------------------
# Products
# -----------------------------
def test_update_product_price(seeded):
    result = t.update_product_price(t.UpdatePriceArgs(product_name="combo deluxe", price=13.5))
    assert result.description == 'Precio de "Combo Deluxe" actualizado: $12.99 → $13.50'
    assert _product(seeded, "Combo Deluxe")["base_price"] == 13.5


@pytest.mark.parametrize("price", [0, -4])
def test_update_product_price_must_be_positive(seeded, price):
    result = t.update_product_price(t.UpdatePriceArgs(product_name="combo deluxe", price=price))
    assert result == ToolResult(type="update_product_price", description="El precio debe ser mayor a 0", success=False)
    assert _product(seeded, "Combo Deluxe")["base_price"] == 12.99


def test_toggle_and_feature_product(seeded):
    assert t.toggle_product(t.ToggleProductArgs(product_name="agua", active=False)).success
    assert t.set_product_featured(t.SetFeaturedArgs(product_name="aros", featured=True)).success
    assert _product(seeded, "Agua")["active"] is False
    assert _product(seeded, "Aros de Cebolla")["featured"] is True


def test_delete_product_keeps_order_history(seeded):
    order = _order(seeded, "Ana", "ana@example.com", product="Aros de Cebolla")
    assert t.delete_product(t.DeleteProductArgs(product_name="aros de cebolla")).success

    detail = t.get_order_detail(t.OrderDetailArgs(order_identifier=order["order_number"]))
    assert "(producto eliminado)" in detail.description


def test_get_product_detail_unknown(seeded):
    result = t.get_product_detail(t.ProductDetailArgs(product_name="pizza"))
    assert not result.success


# -----------------------------
# Promotions
# -----------------------------
def test_create_promotion_validates_date(seeded):
    bad = t.create_promotion(
        t.CreatePromotionArgs(name="Martes", discount_type="fixed", discount_value=2, end_date="mañana")
    )
    assert not bad.success
    assert len(seeded.list_promotions()) == 1


def test_toggle_and_delete_promotion(seeded):
    assert t.toggle_promotion(t.TogglePromotionArgs(promotion_name="bienvenida", active=False)).success
    assert seeded.list_active_promotions() == []
    assert t.delete_promotion(t.DeletePromotionArgs(promotion_name="bienvenida")).success
    assert seeded.list_promotions() == []


# -----------------------------
# Orders
# -----------------------------
def test_find_order_last_alias():
    orders = [{"order_number": "ORD-0002"}, {"order_number": "ORD-0001"}]
    assert t.find_order(orders, "último")["order_number"] == "ORD-0002"
    assert t.find_order([], "último") is None
    assert t.find_order(orders, "0001")["order_number"] == "ORD-0001"


@pytest.mark.parametrize("wording", ["el último pedido", "la última orden", "Último", "the last order"])
def test_find_order_last_in_natural_wording(wording):
    orders = [{"order_number": "ORD-0002"}, {"order_number": "ORD-0001"}]
    assert t.find_order(orders, wording)["order_number"] == "ORD-0002"


def test_update_last_order_status(seeded):
    _order(seeded, "Ana", "ana@example.com")
    newest = _order(seeded, "Luis", "luis@example.com")

    result = t.update_order_status(t.UpdateOrderStatusArgs(order_identifier="último", status="preparing"))

    assert result.success
    assert result.description == f"Pedido {newest['order_number']} (Luis): Pendiente → En preparación"
    assert seeded.get_order(newest["id"])["status"] == "preparing"


def test_order_by_customer_email(seeded):
    ana = _order(seeded, "Ana", "ana@example.com")
    _order(seeded, "Luis", "luis@example.com")
    result = t.get_order_detail(t.OrderDetailArgs(order_identifier="ana@example"))
    assert ana["order_number"] in result.description


def test_active_orders(seeded):
    assert t.get_active_orders(t.NoArgs()).description == "No hay pedidos activos en este momento."
    _order(seeded, "Ana", "ana@example.com")
    assert "Pedidos activos: 1" in t.get_active_orders(t.NoArgs()).description


# -----------------------------
# Analytics
# -----------------------------
def test_analyze_stock_is_live(seeded):
    seeded.update_ingredient(_ingredient(seeded, "Bacon")["id"], stock_quantity=3)
    result = t.analyze_stock(t.NoArgs())
    assert "Bacon: 3/10 tiras" in result.description


def test_analyze_sales_period(seeded):
    _order(seeded, "Ana", "ana@example.com")
    result = t.analyze_sales_period(t.SalesPeriodArgs(days=7))
    assert "1. SmartBurger Clásica: 1 uds" in result.description


def test_database_errors_become_failed_results(seeded, monkeypatch):
    def broken(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(t.db, "list_ingredients", broken)
    result = t.update_ingredient_stock(t.UpdateIngredientStockArgs(ingredient_name="queso", quantity=5))
    assert result == ToolResult(
        type="update_ingredient_stock",
        description="Error de base de datos: database is locked",
        success=False,
    )
