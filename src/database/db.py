import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Any

from src.config import DB_PATH, DEFAULT_MIN_STOCK_ALERT

_BOOL_COLUMNS = {
    "active",
    "featured",
    "available",
    "is_allergen",
    "is_required",
    "is_removable",
    "resolved",
}


@contextmanager
def get_connection():
    """Context manager for one SQLite connection; commits on success."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _row(row: sqlite3.Row | None) -> dict | None:
    if row is None:
        return None
    data = dict(row)
    for key in _BOOL_COLUMNS & data.keys():
        if data[key] is not None:
            data[key] = bool(data[key])
    if "customizations" in data and isinstance(data["customizations"], str):
        data["customizations"] = json.loads(data["customizations"])
    return data


def _rows(rows: list[sqlite3.Row]) -> list[dict]:
    return [_row(r) for r in rows]


def _update(table: str, row_id: int, fields: dict[str, Any]) -> dict | None:
    """Applies a partial update and returns the updated row (None if missing)."""
    fields = {k: v for k, v in fields.items() if v is not None}
    with get_connection() as conn:
        cur = conn.cursor()
        if fields:
            fields["updated_at"] = _now()
            assignments = ", ".join(f"{col} = ?" for col in fields)
            cur.execute(
                f"UPDATE {table} SET {assignments} WHERE id = ?",
                [*fields.values(), row_id],
            )
        cur.execute(f"SELECT * FROM {table} WHERE id = ?", (row_id,))
        return _row(cur.fetchone())


def init_db() -> None:
    """Creates the tables if they don't exist."""
    with get_connection() as conn:
        cur = conn.cursor()
        cur.executescript(
            f"""
            CREATE TABLE IF NOT EXISTS categories (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                description TEXT,
                icon TEXT,
                active INTEGER NOT NULL DEFAULT 1,
                sort_order INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS products (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                category_id INTEGER REFERENCES categories(id),
                name TEXT NOT NULL,
                description TEXT,
                base_price REAL NOT NULL,
                image_url TEXT,
                active INTEGER NOT NULL DEFAULT 1,
                featured INTEGER NOT NULL DEFAULT 0,
                preparation_time INTEGER NOT NULL DEFAULT 10,
                calories INTEGER,
                stock_quantity INTEGER NOT NULL DEFAULT 100,
                min_stock_alert INTEGER NOT NULL DEFAULT {DEFAULT_MIN_STOCK_ALERT},
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS ingredients (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                price REAL NOT NULL DEFAULT 0,
                available INTEGER NOT NULL DEFAULT 1,
                is_allergen INTEGER NOT NULL DEFAULT 0,
                stock_quantity REAL NOT NULL DEFAULT 0,
                min_stock_alert REAL NOT NULL DEFAULT {DEFAULT_MIN_STOCK_ALERT},
                unit TEXT NOT NULL DEFAULT 'unidades',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS product_ingredients (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                product_id INTEGER NOT NULL REFERENCES products(id),
                ingredient_id INTEGER NOT NULL REFERENCES ingredients(id),
                quantity REAL NOT NULL DEFAULT 1,
                is_required INTEGER NOT NULL DEFAULT 1,
                is_removable INTEGER NOT NULL DEFAULT 1
            );

            CREATE TABLE IF NOT EXISTS promotions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                description TEXT,
                discount_type TEXT NOT NULL,
                discount_value REAL NOT NULL,
                min_purchase REAL NOT NULL DEFAULT 0,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                active INTEGER NOT NULL DEFAULT 1,
                max_uses INTEGER,
                current_uses INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS orders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                order_number TEXT UNIQUE,
                customer_name TEXT,
                customer_email TEXT,
                customer_phone TEXT,
                total_amount REAL NOT NULL,
                discount_amount REAL NOT NULL DEFAULT 0,
                final_amount REAL NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                payment_status TEXT NOT NULL DEFAULT 'pending',
                payment_method TEXT,
                notes TEXT,
                promotion_id INTEGER REFERENCES promotions(id),
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS order_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                order_id INTEGER NOT NULL REFERENCES orders(id),
                product_id INTEGER NOT NULL,
                quantity INTEGER NOT NULL,
                unit_price REAL NOT NULL,
                total_price REAL NOT NULL,
                customizations TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS chat_messages (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                role TEXT NOT NULL,
                content TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS user_preferences (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_email TEXT NOT NULL,
                item_name TEXT NOT NULL,
                context TEXT,
                confidence TEXT NOT NULL DEFAULT 'medium',
                created_at TEXT NOT NULL,
                UNIQUE(user_email, item_name)
            );

            CREATE TABLE IF NOT EXISTS inventory_alerts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ingredient_id INTEGER NOT NULL REFERENCES ingredients(id),
                alert_type TEXT NOT NULL,
                message TEXT NOT NULL,
                resolved INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                resolved_at TEXT
            );

            CREATE INDEX IF NOT EXISTS idx_orders_created ON orders(created_at);
            CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id);
            CREATE INDEX IF NOT EXISTS idx_chat_session ON chat_messages(session_id);
            """
        )


# -----------------------------
# Categories
# -----------------------------
def create_category(name: str, description: str | None = None, icon: str | None = None, sort_order: int = 0) -> int:
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            "INSERT INTO categories (name, description, icon, sort_order) VALUES (?, ?, ?, ?)",
            (name, description, icon, sort_order),
        )
        return cur.lastrowid


def list_categories() -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute("SELECT * FROM categories ORDER BY sort_order, name").fetchall()
    return _rows(rows)


def get_category_by_name(name: str) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(
            "SELECT * FROM categories WHERE lower(name) = lower(?)", (name,)
        ).fetchone()
    return _row(row)


# -----------------------------
# Products
# -----------------------------
_PRODUCT_SELECT = """
    SELECT p.*, c.name AS category_name
    FROM products p
    LEFT JOIN categories c ON c.id = p.category_id
"""


def list_products() -> list[dict]:
    """All products, active or not, by category then name."""
    with get_connection() as conn:
        rows = conn.execute(
            _PRODUCT_SELECT + " ORDER BY c.sort_order, p.name"
        ).fetchall()
    return _rows(rows)


def list_active_products() -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            _PRODUCT_SELECT + " WHERE p.active = 1 ORDER BY c.sort_order, p.name"
        ).fetchall()
    return _rows(rows)


def get_product(product_id: int) -> dict | None:
    with get_connection() as conn:
        row = conn.execute(_PRODUCT_SELECT + " WHERE p.id = ?", (product_id,)).fetchone()
    return _row(row)


def search_products(query: str, limit: int = 10) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            _PRODUCT_SELECT + " WHERE p.name LIKE ? ORDER BY p.name LIMIT ?",
            (f"%{query}%", limit),
        ).fetchall()
    return _rows(rows)


def create_product(
    name: str,
    base_price: float,
    category_id: int | None = None,
    description: str | None = None,
    preparation_time: int = 10,
    calories: int | None = None,
    stock_quantity: int = 100,
    min_stock_alert: int = DEFAULT_MIN_STOCK_ALERT,
    active: bool = True,
    featured: bool = False,
) -> dict:
    now = _now()
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO products (
                category_id, name, description, base_price, active, featured,
                preparation_time, calories, stock_quantity, min_stock_alert,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                category_id,
                name,
                description,
                base_price,
                int(active),
                int(featured),
                preparation_time,
                calories,
                stock_quantity,
                min_stock_alert,
                now,
                now,
            ),
        )
        product_id = cur.lastrowid
    return get_product(product_id)


def update_product(product_id: int, **fields: Any) -> dict | None:
    for key in ("active", "featured"):
        if key in fields and fields[key] is not None:
            fields[key] = int(fields[key])
    if _update("products", product_id, fields) is None:
        return None
    return get_product(product_id)


def delete_product(product_id: int) -> bool:
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute("DELETE FROM product_ingredients WHERE product_id = ?", (product_id,))
        cur.execute("DELETE FROM products WHERE id = ?", (product_id,))
        return cur.rowcount > 0


def add_product_ingredient(
    product_id: int,
    ingredient_id: int,
    quantity: float = 1,
    is_required: bool = True,
    is_removable: bool = True,
) -> int:
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO product_ingredients (product_id, ingredient_id, quantity, is_required, is_removable)
            VALUES (?, ?, ?, ?, ?)
            """,
            (product_id, ingredient_id, quantity, int(is_required), int(is_removable)),
        )
        return cur.lastrowid


def list_product_ingredients(product_id: int) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT pi.*, i.name AS ingredient_name, i.available, i.stock_quantity
            FROM product_ingredients pi
            JOIN ingredients i ON i.id = pi.ingredient_id
            WHERE pi.product_id = ?
            ORDER BY i.name
            """,
            (product_id,),
        ).fetchall()
    return _rows(rows)


# -----------------------------
# Ingredients
# -----------------------------
def list_ingredients() -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute("SELECT * FROM ingredients ORDER BY name").fetchall()
    return _rows(rows)


def list_available_ingredients() -> list[dict]:
    """Ingredients that can be sold right now: available and in stock."""
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM ingredients WHERE available = 1 AND stock_quantity > 0 ORDER BY name"
        ).fetchall()
    return _rows(rows)


def get_ingredient(ingredient_id: int) -> dict | None:
    with get_connection() as conn:
        row = conn.execute("SELECT * FROM ingredients WHERE id = ?", (ingredient_id,)).fetchone()
    return _row(row)


def create_ingredient(
    name: str,
    price: float = 0.0,
    stock_quantity: float = 0,
    min_stock_alert: float = DEFAULT_MIN_STOCK_ALERT,
    unit: str = "unidades",
    available: bool = True,
    is_allergen: bool = False,
) -> dict:
    now = _now()
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO ingredients (
                name, price, available, is_allergen, stock_quantity,
                min_stock_alert, unit, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                price,
                int(available),
                int(is_allergen),
                stock_quantity,
                min_stock_alert,
                unit,
                now,
                now,
            ),
        )
        ingredient_id = cur.lastrowid
    ingredient = get_ingredient(ingredient_id)
    sync_inventory_alerts(ingredient)
    return ingredient


def update_ingredient(ingredient_id: int, **fields: Any) -> dict | None:
    """Updates an ingredient and keeps its inventory alerts in sync."""
    for key in ("available", "is_allergen"):
        if key in fields and fields[key] is not None:
            fields[key] = int(fields[key])
    updated = _update("ingredients", ingredient_id, fields)
    if updated is not None and (
        "stock_quantity" in fields or "available" in fields or "min_stock_alert" in fields
    ):
        sync_inventory_alerts(updated)
    return updated


# -----------------------------
# Inventory alerts
# -----------------------------
def sync_inventory_alerts(ingredient: dict) -> None:
    """Opens an alert when an ingredient runs low, resolves open ones once it recovers."""
    stock = ingredient.get("stock_quantity") or 0
    threshold = ingredient.get("min_stock_alert") or 0
    if not ingredient.get("available") or stock <= 0:
        alert_type = "out_of_stock"
        message = f"{ingredient['name']} sin stock o no disponible"
    elif stock <= threshold:
        alert_type = "low_stock"
        message = f"{ingredient['name']} con stock bajo ({stock}/{threshold})"
    else:
        alert_type = None
        message = ""

    now = _now()
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE inventory_alerts SET resolved = 1, resolved_at = ?
            WHERE ingredient_id = ? AND resolved = 0 AND alert_type IS NOT ?
            """,
            (now, ingredient["id"], alert_type),
        )
        if alert_type is None:
            return
        cur.execute(
            "SELECT 1 FROM inventory_alerts WHERE ingredient_id = ? AND resolved = 0",
            (ingredient["id"],),
        )
        if cur.fetchone() is None:
            cur.execute(
                """
                INSERT INTO inventory_alerts (ingredient_id, alert_type, message, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (ingredient["id"], alert_type, message, now),
            )


def list_inventory_alerts(resolved: bool = False) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT a.*, i.name AS ingredient_name
            FROM inventory_alerts a
            JOIN ingredients i ON i.id = a.ingredient_id
            WHERE a.resolved = ?
            ORDER BY a.created_at DESC, a.id DESC
            """,
            (int(resolved),),
        ).fetchall()
    return _rows(rows)


# -----------------------------
# Promotions
# -----------------------------
def list_promotions() -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute("SELECT * FROM promotions ORDER BY created_at DESC, id DESC").fetchall()
    return _rows(rows)


def list_active_promotions(today: date | None = None) -> list[dict]:
    """Active promotions inside their date window that still have uses left."""
    day = (today or date.today()).isoformat()
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT * FROM promotions
            WHERE active = 1
              AND start_date <= ? AND end_date >= ?
              AND (max_uses IS NULL OR current_uses < max_uses)
            ORDER BY id
            """,
            (day, day),
        ).fetchall()
    return _rows(rows)


def get_promotion(promotion_id: int) -> dict | None:
    with get_connection() as conn:
        row = conn.execute("SELECT * FROM promotions WHERE id = ?", (promotion_id,)).fetchone()
    return _row(row)


def create_promotion(
    name: str,
    discount_type: str,
    discount_value: float,
    end_date: str,
    min_purchase: float = 0.0,
    description: str | None = None,
    start_date: str | None = None,
    max_uses: int | None = None,
    active: bool = True,
) -> dict:
    now = _now()
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO promotions (
                name, description, discount_type, discount_value, min_purchase,
                start_date, end_date, active, max_uses, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                description,
                discount_type,
                discount_value,
                min_purchase,
                start_date or date.today().isoformat(),
                end_date,
                int(active),
                max_uses,
                now,
                now,
            ),
        )
        promotion_id = cur.lastrowid
    return get_promotion(promotion_id)


def update_promotion(promotion_id: int, **fields: Any) -> dict | None:
    if "active" in fields and fields["active"] is not None:
        fields["active"] = int(fields["active"])
    return _update("promotions", promotion_id, fields)


def delete_promotion(promotion_id: int) -> bool:
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute("DELETE FROM promotions WHERE id = ?", (promotion_id,))
        return cur.rowcount > 0


def increment_promotion_uses(promotion_id: int) -> None:
    with get_connection() as conn:
        conn.execute(
            "UPDATE promotions SET current_uses = current_uses + 1 WHERE id = ?",
            (promotion_id,),
        )


# -----------------------------
# Orders
# -----------------------------
def list_orders(status: str | None = None, limit: int | None = None) -> list[dict]:
    """Orders, newest first."""
    sql = "SELECT * FROM orders"
    params: list[object] = []
    if status:
        sql += " WHERE status = ?"
        params.append(status)
    sql += " ORDER BY created_at DESC, id DESC"
    if limit:
        sql += " LIMIT ?"
        params.append(limit)
    with get_connection() as conn:
        rows = conn.execute(sql, params).fetchall()
    return _rows(rows)


def list_order_items(order_id: int) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT oi.*, p.name AS product_name
            FROM order_items oi
            LEFT JOIN products p ON p.id = oi.product_id
            WHERE oi.order_id = ?
            ORDER BY oi.id
            """,
            (order_id,),
        ).fetchall()
    return _rows(rows)


def get_order(order_id: int) -> dict | None:
    with get_connection() as conn:
        row = conn.execute("SELECT * FROM orders WHERE id = ?", (order_id,)).fetchone()
    order = _row(row)
    if order is not None:
        order["items"] = list_order_items(order_id)
    return order


def create_order(
    total_amount: float,
    discount_amount: float,
    final_amount: float,
    customer_name: str | None = None,
    customer_email: str | None = None,
    customer_phone: str | None = None,
    notes: str | None = None,
    promotion_id: int | None = None,
    status: str = "pending",
    payment_status: str = "pending",
    created_at: str | None = None,
) -> dict:
    """Inserts an order and assigns its ORD-NNNN number."""
    created = created_at or _now()
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO orders (
                customer_name, customer_email, customer_phone,
                total_amount, discount_amount, final_amount,
                status, payment_status, notes, promotion_id,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                customer_name,
                customer_email,
                customer_phone,
                total_amount,
                discount_amount,
                final_amount,
                status,
                payment_status,
                notes,
                promotion_id,
                created,
                created,
            ),
        )
        order_id = cur.lastrowid
        cur.execute(
            "UPDATE orders SET order_number = ? WHERE id = ?",
            (f"ORD-{order_id:04d}", order_id),
        )
    return get_order(order_id)


def create_order_items(order_id: int, items: list[dict], created_at: str | None = None) -> list[dict]:
    created = created_at or _now()
    with get_connection() as conn:
        cur = conn.cursor()
        for item in items:
            customizations = item.get("customizations")
            cur.execute(
                """
                INSERT INTO order_items (
                    order_id, product_id, quantity, unit_price, total_price,
                    customizations, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    order_id,
                    item["product_id"],
                    item["quantity"],
                    item["unit_price"],
                    item["unit_price"] * item["quantity"],
                    json.dumps(customizations, ensure_ascii=False) if customizations else None,
                    created,
                ),
            )
    return list_order_items(order_id)


def update_order_status(order_id: int, status: str) -> dict | None:
    return _update("orders", order_id, {"status": status})


def list_user_orders(user_email: str, limit: int = 20) -> list[dict]:
    """A customer's orders, newest first, each with its items."""
    orders = [
        o
        for o in list_orders()
        if (o.get("customer_email") or "").lower() == user_email.lower()
    ][:limit]
    for order in orders:
        order["items"] = list_order_items(order["id"])
    return orders


# -----------------------------
# Sales analytics
# -----------------------------
def sales_by_product(from_date: date, to_date: date) -> list[dict]:
    """Units and revenue per product between two dates (inclusive), cancelled orders excluded."""
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT oi.product_id,
                   COALESCE(p.name, '(producto eliminado)') AS product_name,
                   p.base_price AS base_price,
                   SUM(oi.quantity) AS total_quantity,
                   SUM(oi.total_price) AS total_revenue
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            LEFT JOIN products p ON p.id = oi.product_id
            WHERE o.status != 'cancelled'
              AND date(o.created_at) BETWEEN ? AND ?
            GROUP BY oi.product_id
            ORDER BY total_quantity DESC, total_revenue DESC
            """,
            (from_date.isoformat(), to_date.isoformat()),
        ).fetchall()
    return _rows(rows)


def best_selling_products(limit: int = 5) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT oi.product_id, p.name AS product_name, p.base_price,
                   SUM(oi.quantity) AS count
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            JOIN products p ON p.id = oi.product_id
            WHERE o.status != 'cancelled' AND p.active = 1
            GROUP BY oi.product_id
            ORDER BY count DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
    return _rows(rows)


def _orders_between(start: datetime, end: datetime) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT * FROM orders WHERE created_at >= ? AND created_at < ?",
            (start.isoformat(timespec="seconds"), end.isoformat(timespec="seconds")),
        ).fetchall()
    return _rows(rows)


def sales_by_hour(day: date | None = None) -> list[dict]:
    """24 buckets of non-cancelled orders for one day."""
    start = datetime.combine(day or date.today(), datetime.min.time())
    hours = [{"hour": h, "orders": 0, "sales": 0.0} for h in range(24)]
    for order in _orders_between(start, start + timedelta(days=1)):
        if order["status"] == "cancelled":
            continue
        bucket = hours[datetime.fromisoformat(order["created_at"]).hour]
        bucket["orders"] += 1
        bucket["sales"] += order["final_amount"] or 0
    return hours


DAY_NAMES = ["Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado", "Domingo"]


def sales_by_day_of_week(days: int = 30) -> list[dict]:
    end = datetime.now() + timedelta(seconds=1)
    buckets = [{"day": name, "orders": 0, "sales": 0.0} for name in DAY_NAMES]
    for order in _orders_between(end - timedelta(days=days), end):
        if order["status"] == "cancelled":
            continue
        bucket = buckets[datetime.fromisoformat(order["created_at"]).weekday()]
        bucket["orders"] += 1
        bucket["sales"] += order["final_amount"] or 0
    return buckets


def order_stats_for_day(day: date | None = None) -> dict:
    start = datetime.combine(day or date.today(), datetime.min.time())
    orders = _orders_between(start, start + timedelta(days=1))
    completed = [o for o in orders if o["status"] == "completed"]
    cancelled = [o for o in orders if o["status"] == "cancelled"]
    revenue = sum(o["final_amount"] or 0 for o in orders if o["status"] != "cancelled")
    return {
        "total": len(orders),
        "completed": len(completed),
        "cancelled": len(cancelled),
        "revenue": round(revenue, 2),
        "avg_ticket": round(revenue / len(completed), 2) if completed else 0.0,
    }


# -----------------------------
# Conversations and preferences
# -----------------------------
def append_chat_message(session_id: str, role: str, content: str) -> int:
    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute(
            "INSERT INTO chat_messages (session_id, role, content, created_at) VALUES (?, ?, ?, ?)",
            (session_id, role, content, _now()),
        )
        return cur.lastrowid


def get_chat_history(session_id: str, limit: int = 50) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            """
            SELECT role, content, created_at FROM (
                SELECT * FROM chat_messages WHERE session_id = ?
                ORDER BY id DESC LIMIT ?
            ) ORDER BY id
            """,
            (session_id, limit),
        ).fetchall()
    return _rows(rows)


def save_explicit_like(user_email: str, item_name: str, context: str | None = None, confidence: str = "medium") -> None:
    with get_connection() as conn:
        conn.execute(
            """
            INSERT INTO user_preferences (user_email, item_name, context, confidence, created_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_email, item_name)
            DO UPDATE SET context = excluded.context, confidence = excluded.confidence
            """,
            (user_email.lower(), item_name, context, confidence, _now()),
        )


def list_explicit_likes(user_email: str) -> list[dict]:
    with get_connection() as conn:
        rows = conn.execute(
            "SELECT item_name, context, confidence, created_at FROM user_preferences WHERE user_email = ? ORDER BY id",
            (user_email.lower(),),
        ).fetchall()
    return _rows(rows)
