"""
Demo Data Seeder

Creates the schema and a small floor plan and menu, so the API has something
to serve. Safe to re-run: skips everything when products already exist.
Run from project root: python scripts/seed.py
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from table_orders.core.config import get_settings, setup_logging  # noqa: E402
from table_orders.database import Database  # noqa: E402
from table_orders.services import CatalogService  # noqa: E402

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

TABLES = [
    # name, capacity, single_tab
    ("Window 1", 2, True),
    ("Window 2", 2, True),
    ("Booth 1", 4, True),
    ("Booth 2", 6, True),
    ("Terrace", 8, False),
    ("Bar", 12, False),
]

MENU = [
    # name, price, stock
    ("Pizza Margherita", 14.99, 40),
    ("Pepperoni Pizza", 16.99, 30),
    ("Caesar Salad", 8.99, 25),
    ("Garlic Bread", 5.99, 60),
    ("Pasta Carbonara", 13.99, 20),
    ("Tiramisu", 7.99, 15),
    ("Sparkling Water", 3.49, 100),
]


async def seed() -> None:
    settings = get_settings()
    logger = setup_logging(settings=settings)

    database = Database(settings)
    try:
        await database.init_models()

        async with database.session() as session:
            catalog = CatalogService(session)
            if await catalog.list_products():
                logger.info("Catalog already seeded, nothing to do")
                return

            for name, capacity, single_tab in TABLES:
                await catalog.create_table(name, capacity, single_tab)
            for name, price, stock in MENU:
                await catalog.create_product(name, price, stock)

        logger.info(f"✅ Seeded {len(TABLES)} tables and {len(MENU)} products")
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
