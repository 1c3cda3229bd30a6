"""Live catalog views. Built from fresh queries on every call, never cached."""

from src.catalog.resolver import CatalogItem, normalize
from src.config import BEVERAGE_CATEGORY_KEYWORDS, BEVERAGE_DENYLIST, COMBO_CATEGORY_KEYWORDS
from src.database import db


def _is_beverage_like(name: str) -> bool:
    normalized = normalize(name)
    return any(normalize(word) in normalized for word in BEVERAGE_DENYLIST)


def product_items(products: list[dict] | None = None) -> list[CatalogItem]:
    rows = products if products is not None else db.list_active_products()
    return [
        CatalogItem(
            id=row["id"],
            name=row["name"],
            price=row["base_price"],
            source="product",
            active=bool(row.get("active", True)),
            category=row.get("category_name"),
            stock=row.get("stock_quantity"),
        )
        for row in rows
        if row.get("active", True)
    ]


def ingredient_items(ingredients: list[dict] | None = None) -> list[CatalogItem]:
    """Sellable ingredients: available, in stock, and not a drink in disguise."""
    rows = ingredients if ingredients is not None else db.list_available_ingredients()
    return [
        CatalogItem(
            id=row["id"],
            name=row["name"],
            price=row["price"],
            source="ingredient",
            active=True,
            stock=row.get("stock_quantity"),
        )
        for row in rows
        if row.get("available", True)
        and (row.get("stock_quantity") or 0) > 0
        and not _is_beverage_like(row["name"])
    ]


def sellable_catalog() -> list[CatalogItem]:
    """Products first, then sellable ingredients, both freshly queried."""
    return product_items() + ingredient_items()


def is_combo(item: CatalogItem) -> bool:
    return _category_matches(item, COMBO_CATEGORY_KEYWORDS)


def is_beverage(item: CatalogItem) -> bool:
    return _category_matches(item, BEVERAGE_CATEGORY_KEYWORDS)


def _category_matches(item: CatalogItem, keywords: tuple[str, ...]) -> bool:
    if not item.is_product:
        return False
    category = normalize(item.category or "")
    return any(keyword in category for keyword in keywords)
