"""
Seed script -- populates the database with sample data for reviewers.

Run with:
    python seed.py

Creates (only when the users table is empty):
  - 1 admin    (admin@rental.com / admin123)
  - 1 customer (customer@rental.com / customer123)
  - 5 vehicles, all available
"""

import asyncio
from decimal import Decimal

from src.domain.enums import AvailabilityStatus, UserRole, VehicleType
from src.infrastructure.database import create_tables, engine
from src.infrastructure.models import UserModel, VehicleModel
from src.infrastructure.unit_of_work import unit_of_work_factory
from src.services.auth import PasswordHasher

USERS = [
    {
        "name": "Admin User",
        "email": "admin@rental.com",
        "password": "admin123",
        "phone": "+1234567890",
        "role": UserRole.ADMIN,
    },
    {
        "name": "John Customer",
        "email": "customer@rental.com",
        "password": "customer123",
        "phone": "+1987654321",
        "role": UserRole.CUSTOMER,
    },
]

VEHICLES = [
    {"vehicle_name": "Toyota Camry 2024", "type": VehicleType.CAR, "registration_number": "ABC-1234", "daily_rent_price": Decimal("50.00")},
    {"vehicle_name": "Honda Civic 2023", "type": VehicleType.CAR, "registration_number": "XYZ-5678", "daily_rent_price": Decimal("45.00")},
    {"vehicle_name": "Yamaha R15", "type": VehicleType.BIKE, "registration_number": "BIKE-001", "daily_rent_price": Decimal("20.00")},
    {"vehicle_name": "Ford Transit", "type": VehicleType.VAN, "registration_number": "VAN-2024", "daily_rent_price": Decimal("80.00")},
    {"vehicle_name": "Toyota RAV4", "type": VehicleType.SUV, "registration_number": "SUV-9999", "daily_rent_price": Decimal("70.00")},
]


async def seed():
    await create_tables()
    hasher = PasswordHasher()

    async with unit_of_work_factory()() as uow:
        # Check if already seeded
        if await uow.users.list_all():
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        for u in USERS:
            await uow.users.add(
                UserModel(
                    name=u["name"],
                    email=u["email"],
                    password_hash=await hasher.hash(u["password"]),
                    phone=u["phone"],
                    role=u["role"],
                )
            )
        print(f"  Created {len(USERS)} users")

        # ── Vehicles ──────────────────────────────────────────────────
        for v in VEHICLES:
            await uow.vehicles.add(
                VehicleModel(**v, availability_status=AvailabilityStatus.AVAILABLE)
            )
        print(f"  Created {len(VEHICLES)} vehicles")

    print("\nSeed complete!")
    print("  Admin:    admin@rental.com / admin123")
    print("  Customer: customer@rental.com / customer123")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
