"""
SmartBurger AI – terminal entry point.

    python main.py           # chat with María (customer ordering)
    python main.py max       # chat with Max (restaurant admin)
"""

import argparse
import asyncio

from dotenv import load_dotenv
load_dotenv()

from smartburger_ai.common import metrics as metrics_lib
from src.agents.factory import build_agents, build_backend
from src.config import MODEL_PRICES, SEED_ON_STARTUP
from src.database import init_db, seed_demo_data
from src.interfaces.cli_chat import run_cli_chat
from src.interfaces.rich_chat_display import RichChatDisplay
from src.utils.logger import get_logger

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SmartBurger AI terminal chat")
    parser.add_argument("agent", nargs="?", choices=("maria", "max"), default="maria")
    parser.add_argument("--email", help="customer email used for personalization")
    return parser.parse_args(argv)


# ================================================================
# Main Chat Loop
# ================================================================
async def main(argv=None):
    args = parse_args(argv)
    print("\n=== SmartBurger AI ===\n")

    init_db()
    logger.info("Database initialized.")
    if SEED_ON_STARTUP and seed_demo_data():
        logger.info("Demo menu seeded.")

    metrics = metrics_lib.InMemoryMetrics(MODEL_PRICES)
    backend = build_backend(metrics)
    agents = build_agents(backend)

    display = RichChatDisplay()
    agent = agents[args.agent]
    if agent is None:
        display.display_system("María necesita GEMINI_API_KEY en el archivo .env para atender pedidos.")
        return

    await run_cli_chat(args.agent, agent, user_email=args.email, display=display)

    usage = metrics.snapshot()
    if usage.get("models"):
        display.display_system(f"Uso de tokens: {usage}")


# ================================================================
# ENTRY POINT
# ================================================================
if __name__ == "__main__":
    asyncio.run(main())
