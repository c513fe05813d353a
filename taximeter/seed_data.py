"""
Database seeding script for local development.

Creates a taxi company, two vehicles and two drivers with login accounts.
Run this script after the database is set up but before first use.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from taximeter.app.db.session import AsyncSessionLocal, engine, Base
from taximeter.app.core.security import get_password_hash
from taximeter.app.models.company import Company
from taximeter.app.models.vehicle import Vehicle
from taximeter.app.models.user import User
from taximeter.app.models.driver import Driver
from taximeter.app.models.enums import AccountStatus, UserRole

logger = logging.getLogger("taximeter.seed")

DRIVERS = [
    {
        "email": "jan@brusselstaxi.be",
        "first_name": "Jan",
        "last_name": "Janssen",
        "phone": "+32 477 123 456",
        "license": "DL-001-2023",
        "plate": "ABC-123",
    },
    {
        "email": "marie@brusselstaxi.be",
        "first_name": "Marie",
        "last_name": "Dubois",
        "phone": "+32 478 987 654",
        "license": "DL-002-2023",
        "plate": "XYZ-789",
    },
]

VEHICLES = [
    {"license_plate": "ABC-123", "brand": "Mercedes", "model": "E-Class", "color": "Black"},
    {"license_plate": "XYZ-789", "brand": "BMW", "model": "5 Series", "color": "Silver"},
]

DEFAULT_PASSWORD = "driver123"


async def seed_data():
    """
    Seed a company with vehicles and drivers.

    Skips everything if the company already exists.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Company).where(Company.name == "Brussels Taxi Co."))
        if result.scalar_one_or_none():
            logger.info("Seed data already present, nothing to do")
            return

        company = Company(
            name="Brussels Taxi Co.",
            taxi_license_number="TC-BRU-001",
            phone="+32 2 123 4567",
            email="info@brusselstaxi.be",
            status=AccountStatus.ACTIVE,
        )
        db.add(company)
        await db.flush()

        vehicles = {}
        for data in VEHICLES:
            vehicle = Vehicle(company_id=company.id, status=AccountStatus.ACTIVE, **data)
            db.add(vehicle)
            vehicles[data["license_plate"]] = vehicle
        await db.flush()

        for data in DRIVERS:
            user = User(
                email=data["email"],
                name=f"{data['first_name']} {data['last_name']}",
                phone=data["phone"],
                hashed_password=get_password_hash(DEFAULT_PASSWORD),
                role=UserRole.DRIVER,
                is_active=True,
            )
            db.add(user)
            await db.flush()

            db.add(Driver(
                user_id=user.id,
                company_id=company.id,
                vehicle_id=vehicles[data["plate"]].id,
                first_name=data["first_name"],
                last_name=data["last_name"],
                phone=data["phone"],
                taxi_driver_license=data["license"],
                status=AccountStatus.ACTIVE,
            ))

        await db.commit()
        logger.info(
            "Seeded company, vehicles and drivers",
            extra={"company_id": company.id, "drivers": len(DRIVERS), "password": DEFAULT_PASSWORD},
        )


if __name__ == "__main__":
    from taximeter.app.core.observability import setup_logging

    setup_logging("INFO")
    asyncio.run(seed_data())
