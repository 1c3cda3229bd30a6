from src.database.db import (
    # Connection management
    get_connection,
    init_db,
)
from src.database.seed import seed_demo_data

__all__ = [
    "get_connection",
    "init_db",
    "seed_demo_data",
]
