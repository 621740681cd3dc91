"""
Seed a development database with synthetic marketplace data.

Usage:
    python -m analytics_engine.ingestion.seed_db --users 200 --businesses 40
"""

import argparse
import asyncio
from typing import Any, Dict, List

import polars as pl
import structlog
from sqlalchemy import insert

from analytics_engine.config.logging import configure_logging
from analytics_engine.data.generators import TABLE_ORDER, MarketplaceDataGenerator
from analytics_engine.database.connection import (
    close_database,
    create_schema,
    get_db,
    init_database,
)
from analytics_engine.database.models import (
    Appointment,
    Business,
    Category,
    DailyCounter,
    Favorite,
    Review,
    User,
)

logger = structlog.get_logger(__name__)

MODELS = {
    "categories": Category,
    "users": User,
    "businesses": Business,
    "reviews": Review,
    "appointments": Appointment,
    "favorites": Favorite,
    "daily_counters": DailyCounter,
}

CHUNK_SIZE = 1000


async def execute_batch_insert(model: Any, records: List[Dict[str, Any]]) -> None:
    """Insert records in chunks using Core insert"""
    if not records:
        return

    async with get_db() as db:
        for i in range(0, len(records), CHUNK_SIZE):
            await db.execute(insert(model), records[i:i + CHUNK_SIZE])
    logger.info("Inserted records", table=model.__tablename__, rows=len(records))


async def seed(data: Dict[str, pl.DataFrame]) -> None:
    for name in TABLE_ORDER:
        await execute_batch_insert(MODELS[name], data[name].to_dicts())


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the marketplace analytics database")
    parser.add_argument("--users", type=int, default=200)
    parser.add_argument("--businesses", type=int, default=40)
    parser.add_argument("--reviews", type=int, default=600)
    parser.add_argument("--appointments", type=int, default=1500)
    parser.add_argument("--favorites", type=int, default=400)
    parser.add_argument("--days", type=int, default=30, help="Days of daily counters per business")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--database-url", default=None, help="Override DATABASE_URL")
    return parser.parse_args(argv)


async def main(argv=None) -> None:
    args = parse_args(argv)
    configure_logging()
    logger.info("Starting database seeding...")

    engine = await init_database(args.database_url)
    try:
        await create_schema(engine)
        data = MarketplaceDataGenerator(seed=args.seed).generate_all(
            n_users=args.users,
            n_businesses=args.businesses,
            n_reviews=args.reviews,
            n_appointments=args.appointments,
            n_favorites=args.favorites,
            counter_days=args.days,
        )
        await seed(data)
        logger.info(
            "Database seeding completed",
            **{name: len(df) for name, df in data.items()},
        )
    except Exception as e:
        logger.error("Seeding failed", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        await close_database()


def run() -> None:
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
