#!/usr/bin/env python3
"""Set up the booking database and seed a sample tour."""

import asyncio
import logging
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from norseman_booking.core.database import async_session_factory, close_db  # noqa: E402
from norseman_booking.models import Tour  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def run_migrations() -> None:
    """Upgrade the schema to the latest revision."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Create a sample tour when the database is empty."""
    logger.info("Creating sample data...")

    try:
        async with async_session_factory() as db:
            existing = await db.scalar(select(func.count(Tour.id)))
            if existing:
                logger.info("Sample data already exists, skipping...")
                return

            db.add(
                Tour(
                    title="Nordlys i Lyngen",
                    description="Fem dager med toppturer og nordlys i Lyngsalpene",
                    price=14900,
                    total_seats=12,
                    seats_available=12,
                )
            )
            await db.commit()
            logger.info("Sample data created successfully!")
    finally:
        await close_db()


def main() -> None:
    """Main setup function."""
    logger.info("Starting booking service setup...")

    run_migrations()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("Start the API with: cd server && uvicorn norseman_booking.main:app --reload")


if __name__ == "__main__":
    main()
