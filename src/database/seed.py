"""Demo menu for a fresh SmartBurger database."""

from datetime import date, timedelta

from src.database import db
from src.utils.logger import get_logger

logger = get_logger(__name__)

CATEGORIES = [
    ("Hamburguesas", "Nuestras hamburguesas de la casa", "🍔"),
    ("Combos", "Hamburguesa + papas + bebida", "🎁"),
    ("Acompañamientos", "Para compartir o acompañar", "🍟"),
    ("Bebidas", "Refrescos y agua", "🥤"),
]

# name, price, stock, min_stock_alert, unit, allergen
INGREDIENTS = [
    ("Pan brioche", 0.0, 120, 20, "unidades", True),
    ("Carne de res", 2.00, 80, 15, "unidades", False),
    ("Queso cheddar", 0.75, 100, 15, "rebanadas", True),
    ("Lechuga", 0.0, 60, 10, "porciones", False),
    ("Tomate", 0.0, 60, 10, "porciones", False),
    ("Cebolla", 0.0, 50, 10, "porciones", False),
    ("Pepinillos", 0.50, 40, 10, "porciones", False),
    ("Bacon", 1.50, 45, 10, "tiras", False),
    ("Aguacate", 1.00, 25, 8, "porciones", False),
    ("Salsa BBQ", 0.25, 30, 5, "porciones", False),
    ("Mostaza", 0.0, 30, 5, "porciones", False),
    ("Ketchup", 0.0, 30, 5, "porciones", False),
    ("Papas", 0.0, 90, 20, "porciones", False),
]

# name, category, price, description, prep minutes, calories, featured,
# [(ingredient, removable)]
PRODUCTS = [
    (
        "SmartBurger Clásica",
        "Hamburguesas",
        5.99,
        "Carne jugosa, vegetales frescos y nuestra salsa especial.",
        10,
        650,
        True,
        [
            ("Pan brioche", False),
            ("Carne de res", False),
            ("Queso cheddar", True),
            ("Lechuga", True),
            ("Tomate", True),
            ("Cebolla", True),
            ("Pepinillos", True),
            ("Ketchup", True),
        ],
    ),
    (
        "Doble Queso Deluxe",
        "Hamburguesas",
        8.99,
        "Doble carne, doble queso y bacon.",
        12,
        980,
        True,
        [
            ("Pan brioche", False),
            ("Carne de res", False),
            ("Queso cheddar", False),
            ("Bacon", True),
            ("Cebolla", True),
            ("Mostaza", True),
        ],
    ),
    (
        "Combo SmartBurger",
        "Combos",
        9.99,
        "SmartBurger Clásica + papas + bebida.",
        12,
        1100,
        True,
        [("Pan brioche", False), ("Carne de res", False), ("Papas", False), ("Cebolla", True)],
    ),
    (
        "Combo Deluxe",
        "Combos",
        12.99,
        "Doble Queso Deluxe + papas + bebida.",
        14,
        1450,
        False,
        [("Pan brioche", False), ("Carne de res", False), ("Papas", False), ("Cebolla", True)],
    ),
    ("Papas Fritas", "Acompañamientos", 2.99, "Crujientes y doradas.", 6, 365, False, [("Papas", False)]),
    ("Aros de Cebolla", "Acompañamientos", 3.49, "Aros empanizados.", 7, 410, False, [("Cebolla", False)]),
    ("Coca-Cola 500ml", "Bebidas", 1.99, None, 1, 210, False, []),
    ("Sprite 500ml", "Bebidas", 1.99, None, 1, 200, False, []),
    ("Fanta 500ml", "Bebidas", 1.99, None, 1, 220, False, []),
    ("Agua", "Bebidas", 0.99, None, 1, 0, False, []),
]


def seed_demo_data(force: bool = False) -> bool:
    """Loads the demo menu. Does nothing when products already exist unless forced."""
    with db.get_connection() as conn:
        existing = conn.execute("SELECT COUNT(*) FROM products").fetchone()[0]
    if existing and not force:
        logger.info("Database already has %d products, skipping seed", existing)
        return False

    category_ids = {}
    for order, (name, description, icon) in enumerate(CATEGORIES):
        category = db.get_category_by_name(name)
        category_ids[name] = category["id"] if category else db.create_category(name, description, icon, order)

    ingredient_ids = {}
    for name, price, stock, min_alert, unit, allergen in INGREDIENTS:
        ingredient = db.create_ingredient(
            name,
            price=price,
            stock_quantity=stock,
            min_stock_alert=min_alert,
            unit=unit,
            is_allergen=allergen,
        )
        ingredient_ids[name] = ingredient["id"]

    for name, category, price, description, prep, calories, featured, recipe in PRODUCTS:
        product = db.create_product(
            name,
            price,
            category_id=category_ids[category],
            description=description,
            preparation_time=prep,
            calories=calories,
            featured=featured,
        )
        for ingredient_name, removable in recipe:
            db.add_product_ingredient(
                product["id"],
                ingredient_ids[ingredient_name],
                is_required=not removable,
                is_removable=removable,
            )

    db.create_promotion(
        "Bienvenida SmartBurger",
        "percentage",
        10,
        end_date=(date.today() + timedelta(days=30)).isoformat(),
        min_purchase=15,
        description="10% en pedidos desde $15",
    )

    logger.info(
        "Seeded %d categories, %d ingredients, %d products",
        len(CATEGORIES),
        len(INGREDIENTS),
        len(PRODUCTS),
    )
    return True
