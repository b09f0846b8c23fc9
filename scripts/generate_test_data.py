"""
Generate demo data for a Polish road transport company.

Creates:
- 1 tenant with an admin, a dispatcher and a viewer account
- 8 drivers (the first one with a driver app account)
- 6 tractor units and 6 trailers
- 10 contractors (clients and carriers)
- 40 orders spread over the last and the next weeks, each with its
  primary crew assignment

All accounts share the password given with ``--password``.
"""
import argparse
import asyncio
import random
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Add parent directory to path
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import settings
from app.core.database import Base
from app.core.security import get_password_hash
from app.models import (
    Contractor,
    ContractorType,
    Driver,
    Order,
    OrderAssignment,
    OrderStatus,
    Tenant,
    Trailer,
    TrailerType,
    User,
    UserRole,
    Vehicle,
    VehicleType,
)

FIRST_NAMES = ["Jan", "Piotr", "Krzysztof", "Andrzej", "Tomasz", "Pawel", "Marek", "Michal", "Grzegorz", "Adam"]
LAST_NAMES = ["Kowalski", "Nowak", "Wisniewski", "Wojcik", "Kaminski", "Lewandowski", "Zielinski", "Szymanski"]

CITIES = [
    ("Warszawa", "PL"), ("Krakow", "PL"), ("Poznan", "PL"), ("Wroclaw", "PL"), ("Gdansk", "PL"),
    ("Lodz", "PL"), ("Berlin", "DE"), ("Hamburg", "DE"), ("Praga", "CZ"), ("Wieden", "AT"),
]

CARGO = ["Palety z AGD", "Materialy budowlane", "Opony", "Napoje", "Meble", "Czesci samochodowe"]

TRUCKS = [("Volvo", "FH"), ("Scania", "R450"), ("DAF", "XF"), ("MAN", "TGX"), ("Mercedes", "Actros")]

# Statuses of past orders, weighted towards closed work
PAST_STATUSES = [OrderStatus.COMPLETED] * 5 + [OrderStatus.DELIVERED] * 2 + [OrderStatus.CANCELLED]
FUTURE_STATUSES = [OrderStatus.NEW, OrderStatus.PLANNED, OrderStatus.ASSIGNED, OrderStatus.CONFIRMED]


def random_phone() -> str:
    """Generate random Polish mobile number."""
    return f"+48 {random.randint(500, 799)} {random.randint(100, 999)} {random.randint(100, 999)}"


def random_registration(prefix: str) -> str:
    return f"{prefix}{random.randint(10000, 99999)}"


def random_nip() -> str:
    """Random NIP with a valid checksum."""
    weights = (6, 5, 7, 2, 3, 4, 5, 6, 7)
    while True:
        digits = [random.randint(0, 9) for _ in range(9)]
        check = sum(d * w for d, w in zip(digits, weights)) % 11
        if check != 10:
            return "".join(map(str, digits)) + str(check)


async def create_tenant(session: AsyncSession, password: str) -> Tenant:
    """Create the company and its office accounts."""
    tenant = Tenant(
        name="Trans-Pol Sp. z o.o.",
        nip=random_nip(),
        address="ul. Logistyczna 5",
        city="Warszawa",
        postal_code="02-001",
        phone=random_phone(),
        email="biuro@transpol.pl",
        bank_account="PL61109010140000071219812874",
    )
    session.add(tenant)
    await session.flush()

    hashed = get_password_hash(password)
    for email, name, role in (
        ("admin@transpol.pl", "Anna Administrator", UserRole.ADMIN),
        ("dyspozytor@transpol.pl", "Marek Dyspozytor", UserRole.DISPATCHER),
        ("ksiegowosc@transpol.pl", "Ewa Podglad", UserRole.VIEWER),
    ):
        session.add(User(tenant_id=tenant.id, email=email, name=name, role=role, hashed_password=hashed))

    await session.flush()
    print(f"Created tenant {tenant.name} with 3 office accounts")
    return tenant


async def create_fleet(
    session: AsyncSession,
    tenant: Tenant,
    count: int = 6,
) -> tuple[list[Vehicle], list[Trailer]]:
    """Create tractor units and trailers."""
    vehicles = []
    trailers = []

    for i in range(count):
        brand, model = TRUCKS[i % len(TRUCKS)]
        trailer = Trailer(
            tenant_id=tenant.id,
            registration_number=random_registration("WPR"),
            type=random.choice([TrailerType.CURTAIN, TrailerType.MEGA, TrailerType.REFRIGERATOR]),
            brand="Schmitz",
            year=random.randint(2016, 2024),
            load_capacity=24000,
            axles=3,
        )
        vehicle = Vehicle(
            tenant_id=tenant.id,
            registration_number=random_registration("WI"),
            type=VehicleType.TRUCK,
            brand=brand,
            model=model,
            year=random.randint(2017, 2025),
            euro_class="EURO6",
        )
        session.add_all([trailer, vehicle])
        trailers.append(trailer)
        vehicles.append(vehicle)

    await session.flush()
    for vehicle, trailer in zip(vehicles, trailers):
        vehicle.current_trailer_id = trailer.id

    print(f"Created {len(vehicles)} vehicles and {len(trailers)} trailers")
    return vehicles, trailers


async def create_drivers(
    session: AsyncSession,
    tenant: Tenant,
    vehicles: list[Vehicle],
    password: str,
    count: int = 8,
) -> list[Driver]:
    """Create drivers; the first ones get a vehicle, the first one an app account."""
    drivers = []
    today = date.today()

    for i in range(count):
        driver = Driver(
            tenant_id=tenant.id,
            first_name=random.choice(FIRST_NAMES),
            last_name=random.choice(LAST_NAMES),
            phone=random_phone(),
            employment_date=today - timedelta(days=random.randint(100, 3000)),
            license_number=f"{random.randint(10000, 99999)}/{random.randint(10, 99)}/{random.randint(1000, 9999)}",
            license_expiry=today + timedelta(days=random.randint(10, 2000)),
            license_categories="C,CE",
            medical_expiry=today + timedelta(days=random.randint(10, 700)),
        )
        session.add(driver)
        drivers.append(driver)

    await session.flush()
    for driver, vehicle in zip(drivers, vehicles):
        driver.current_vehicle_id = vehicle.id
        vehicle.current_driver_id = driver.id

    first = drivers[0]
    session.add(
        User(
            tenant_id=tenant.id,
            email="kierowca@transpol.pl",
            name=f"{first.first_name} {first.last_name}",
            role=UserRole.DRIVER,
            driver_id=first.id,
            hashed_password=get_password_hash(password),
        )
    )

    await session.flush()
    print(f"Created {len(drivers)} drivers (app account: kierowca@transpol.pl)")
    return drivers


async def create_contractors(session: AsyncSession, tenant: Tenant, count: int = 10) -> list[Contractor]:
    """Create clients and a few carriers."""
    contractors = []

    for i in range(count):
        city, country = random.choice(CITIES)
        contractor = Contractor(
            tenant_id=tenant.id,
            name=f"{random.choice(LAST_NAMES)} Logistyka {i + 1} Sp. z o.o.",
            type=ContractorType.CARRIER if i % 4 == 3 else ContractorType.CLIENT,
            nip=random_nip() if country == "PL" else None,
            city=city,
            country=country,
            phone=random_phone(),
            payment_days=random.choice([14, 30, 45, 60]),
        )
        session.add(contractor)
        contractors.append(contractor)

    await session.flush()
    print(f"Created {len(contractors)} contractors")
    return contractors


async def create_orders(
    session: AsyncSession,
    tenant: Tenant,
    drivers: list[Driver],
    contractors: list[Contractor],
    count: int = 40,
) -> list[Order]:
    """Create orders around today, each with its primary assignment."""
    orders = []
    today = date.today()
    clients = [c for c in contractors if c.type == ContractorType.CLIENT]

    for i in range(count):
        loading = today + timedelta(days=random.randint(-21, 14))
        unloading = loading + timedelta(days=random.randint(0, 3))
        origin, origin_country = random.choice(CITIES[:6])
        destination, destination_country = random.choice([c for c in CITIES if c[0] != origin])
        driver = drivers[i % len(drivers)]
        price = Decimal(random.randrange(1800, 9000, 50))
        status = random.choice(PAST_STATUSES if unloading < today else FUTURE_STATUSES)

        order = Order(
            tenant_id=tenant.id,
            order_number=f"ZL/{loading.year}/{loading.month:02d}/{i + 1:03d}",
            status=status,
            contractor_id=random.choice(clients).id,
            driver_id=driver.id,
            vehicle_id=driver.current_vehicle_id,
            origin=f"{origin}, magazyn {random.randint(1, 9)}",
            origin_city=origin,
            origin_country=origin_country,
            destination=f"{destination}, centrum dystrybucyjne",
            destination_city=destination,
            destination_country=destination_country,
            loading_date=loading,
            unloading_date=unloading,
            cargo_description=random.choice(CARGO),
            cargo_weight=float(random.randrange(2000, 24000, 500)),
            cargo_pallets=random.randint(4, 33),
            price_net=price,
        )
        order.assignments = [
            OrderAssignment(
                tenant_id=tenant.id,
                driver_id=driver.id,
                vehicle_id=driver.current_vehicle_id,
                start_date=loading,
                revenue_share=1.0,
                allocated_amount=price,
                is_primary=True,
            )
        ]
        session.add(order)
        orders.append(order)

    await session.flush()
    print(f"Created {len(orders)} orders between {today - timedelta(days=21)} and {today + timedelta(days=17)}")
    return orders


async def main(password: str):
    """Generate all demo data."""
    print("=" * 50)
    print("Generating demo data")
    print("=" * 50)

    # Create engine
    engine = create_async_engine(settings.DATABASE_URL, echo=False)

    # Create tables if needed
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Create session
    async_session = async_sessionmaker(engine, expire_on_commit=False)

    async with async_session() as session:
        try:
            tenant = await create_tenant(session, password)
            vehicles, trailers = await create_fleet(session, tenant)
            drivers = await create_drivers(session, tenant, vehicles, password)
            contractors = await create_contractors(session, tenant)
            orders = await create_orders(session, tenant, drivers, contractors)

            await session.commit()

            print("=" * 50)
            print("Demo data generation complete!")
            print(f"  - Drivers: {len(drivers)}")
            print(f"  - Vehicles: {len(vehicles)}")
            print(f"  - Trailers: {len(trailers)}")
            print(f"  - Contractors: {len(contractors)}")
            print(f"  - Orders: {len(orders)}")
            print("=" * 50)

        except Exception as e:
            await session.rollback()
            print(f"Error: {e}")
            raise

    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--password", default="Demo12345", help="Password for every created account")
    args = parser.parse_args()
    asyncio.run(main(args.password))
