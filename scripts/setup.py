#!/usr/bin/env python3
"""Setup script for the travel booking API."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from sqlalchemy import func, select

from travelbook.core.config import settings
from travelbook.core.database import async_session_factory, close_db, init_db
from travelbook.core.security import hash_password
from travelbook.models import Package, User, UserRole

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_ROUTES = [
    ("Berlin", "Lisbon", 1200.0, "A week of tiled streets and Atlantic sunsets"),
    ("Munich", "Rome", 950.0, "Five days among ruins and trattorias"),
    ("Hamburg", "Oslo", 1400.0, "Fjord cruise with a night in the capital"),
]


async def setup_database():
    """Create the schema and the upload directories."""
    logger.info("Setting up database...")

    try:
        await init_db()
        logger.info("Database tables created")

        (settings.upload_dir / "package").mkdir(parents=True, exist_ok=True)
        logger.info(f"Upload directory ready at {settings.upload_dir.resolve()}")

        logger.info("Database setup completed successfully!")

    except Exception as e:
        logger.error(f"Database setup failed: {e}")
        raise


async def create_admin(email: str, password: str, name: str) -> User:
    """Create the administrator account unless the email is already taken."""
    email = email.strip().lower()

    async with async_session_factory() as db:
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()
        if existing is not None:
            logger.info(f"Account {email} already exists, skipping...")
            return existing

        admin = User(
            email=email,
            password_hash=hash_password(password),
            name=name,
            role=UserRole.ADMIN.value,
        )
        db.add(admin)
        await db.commit()
        logger.info(f"Admin account {email} created")
        return admin


async def create_sample_data(admin: User):
    """Create a few upcoming packages for local testing."""
    from datetime import datetime, timedelta

    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            # Check if sample data already exists
            existing = await db.execute(select(func.count(Package.id)))
            if existing.scalar_one() > 0:
                logger.info("Sample data already exists, skipping...")
                return

            base_date = datetime.utcnow() + timedelta(days=30)
            for i, (origin, destination, price, description) in enumerate(SAMPLE_ROUTES):
                start = base_date + timedelta(days=i * 14)
                db.add(Package(
                    from_location=origin,
                    to_location=destination,
                    start_date=start,
                    end_date=start + timedelta(days=6),
                    base_price=price,
                    includes_food=i % 2 == 0,
                    includes_accommodation=True,
                    food_price=150.0,
                    accommodation_price=400.0,
                    description=description,
                    images=[],
                    created_by_id=admin.id,
                ))

            await db.commit()
            logger.info("Sample data created successfully!")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise


def parse_args():
    parser = argparse.ArgumentParser(description="Initialise the travel booking database")
    parser.add_argument("--admin-email", default=os.getenv("ADMIN_EMAIL", "admin@example.com"))
    parser.add_argument("--admin-password", default=os.getenv("ADMIN_PASSWORD"))
    parser.add_argument("--admin-name", default=os.getenv("ADMIN_NAME", "Administrator"))
    parser.add_argument("--sample-data", action="store_true", help="Create sample packages")
    return parser.parse_args()


async def main():
    """Main setup function."""
    args = parse_args()
    logger.info("Starting travel booking API setup...")

    try:
        # Setup database
        await setup_database()

        if args.admin_password:
            admin = await create_admin(args.admin_email, args.admin_password, args.admin_name)
            if args.sample_data:
                await create_sample_data(admin)
        else:
            logger.warning("No admin password given (--admin-password or ADMIN_PASSWORD), skipping admin account")
    finally:
        await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn travelbook.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
