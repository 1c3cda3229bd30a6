import os
from pathlib import Path

# ---------------------------------------------------------------------
# Database Configuration
# ---------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.environ.get("SMARTBURGER_DATA_DIR", BASE_DIR / "data"))

DB_PATH = Path(os.environ.get("SMARTBURGER_DB_PATH", DATA_DIR / "smartburger.db"))

# Seed the demo menu on startup when the database is empty
SEED_ON_STARTUP = os.environ.get("SMARTBURGER_SEED", "1") != "0"

# ---------------------------------------------------------------------
# Chat transcripts
# ---------------------------------------------------------------------
RATE_LIMIT_CHAT_DIR = DATA_DIR / "rate_limit_chats"
CHAT_HISTORY_DIR = DATA_DIR / "chat_history"
TOOL_LOG_DIR = DATA_DIR / "tool_logs"

# ---------------------------------------------------------------------
# Agents
# ---------------------------------------------------------------------
RESTAURANT_NAME = "SmartBurger"
ORDERING_AGENT_NAME = "María"
ADMIN_AGENT_NAME = "Max"

# Upper bound on model round-trips in one admin turn
MAX_TOOL_ITERATIONS = int(os.environ.get("SMARTBURGER_MAX_TOOL_ITERATIONS", "10"))

# Seconds; the turn timeout covers every round of the tool loop
AGENT_TURN_TIMEOUT_SECONDS = float(os.environ.get("SMARTBURGER_TURN_TIMEOUT", "90"))
LLM_CALL_TIMEOUT_SECONDS = float(os.environ.get("SMARTBURGER_LLM_TIMEOUT", "45"))

ORDERING_TEMPERATURE = 0.9
ORDERING_MAX_TOKENS = 2000

# ---------------------------------------------------------------------
# Stale-tolerant cache (never used for stock or catalog reads)
# ---------------------------------------------------------------------
BEST_SELLERS_TTL_SECONDS = 5 * 60
USER_PROFILE_TTL_SECONDS = 10 * 60
BEST_SELLERS_LIMIT = 3

# ---------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------
# Used when a row carries no min_stock_alert of its own
DEFAULT_MIN_STOCK_ALERT = 5

# Ingredients with these words are never resolved as a sellable extra;
# the customer means the product form of the drink.
BEVERAGE_DENYLIST = (
    "coca",
    "cola",
    "sprite",
    "fanta",
    "pepsi",
    "agua",
    "bebida",
    "refresco",
    "soda",
    "jugo",
    "te helado",
    "limonada",
)

# Category names (normalized) that mark combos and drinks
COMBO_CATEGORY_KEYWORDS = ("combo",)
BEVERAGE_CATEGORY_KEYWORDS = ("bebida",)
BURGER_CATEGORY_KEYWORDS = ("hamburguesa",)
SIDE_CATEGORY_KEYWORDS = ("acompanamiento",)

# ---------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------
# Inclusive hours, local time
HAPPY_HOUR_START = 14
HAPPY_HOUR_END = 16
HAPPY_HOUR_DISCOUNT_PERCENT = 15
# How far below a promotion's minimum purchase the cart may be to get a nudge
THRESHOLD_NUDGE_MAX_GAP = 5.0
UPSELL_PRODUCTS_LIMIT = 2
POPULAR_PRODUCTS_LIMIT = 3

# ---------------------------------------------------------------------
# Business insights
# ---------------------------------------------------------------------
INSIGHTS_TOP_PRODUCTS = 5
INSIGHTS_PROMPT_PRODUCTS = 10
# Below this average ticket with no promotions, suggest one
LOW_AVERAGE_TICKET = 8.0

ACTIVE_ORDER_STATUSES = ("pending", "confirmed", "preparing")

# ---------------------------------------------------------------------
# Model pricing (USD per 1M tokens: input, output) for usage estimates
# ---------------------------------------------------------------------
MODEL_PRICES = {
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.0-flash": (0.10, 0.40),
    "gemini-2.5-flash-lite": (0.10, 0.40),
}
