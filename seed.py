"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - every station of the built-in directory (upserted, safe to re-run)
  - 1 demo passport (Seoul -> Busan -> Gyeongju) with a share link
"""

import asyncio
from datetime import date, datetime, timezone

from sqlalchemy import text

from carbon_passport.config import settings
from carbon_passport.domain.entities import Leg, PassportMetadata
from carbon_passport.domain.enums import CreatedVia
from carbon_passport.domain.passport import new_passport, share_url
from carbon_passport.domain.routes import assemble
from carbon_passport.domain.stations import DEFAULT_DIRECTORY
from carbon_passport.infrastructure.database import async_session_factory, engine
from carbon_passport.infrastructure.repositories import (
    PassportRepository,
    RouteRepository,
    StationRepository,
)

DEMO_KEY = "seed-demo-passport"

DEMO_LEGS = [
    Leg("SEOUL", "BUSAN"),
    Leg("BUSAN", "GYEONGJU"),
    Leg("GYEONGJU", "SEOUL"),
]


async def seed():
    async with async_session_factory() as session:
        # ── Stations ──────────────────────────────────────────────────
        count = await StationRepository(session).upsert_many(DEFAULT_DIRECTORY)
        print(f"  Upserted {count} stations")

        # ── Demo passport ─────────────────────────────────────────────
        passports = PassportRepository(session)
        if await passports.get_by_idempotency_key(DEMO_KEY):
            await session.commit()
            print("Demo passport already present. Skipping.")
            return

        result = assemble(DEMO_LEGS)
        passport = new_passport(
            traveler_name="Kim Minji",
            country="KR",
            travel_date=date(2026, 5, 1),
            metadata=PassportMetadata(
                frequency="monthly",
                purpose="leisure",
                esg_interest=True,
                created_via=CreatedVia.API.value,
            ),
            now=datetime.now(timezone.utc),
            expiry_days=settings.passport_expiry_days,
        )
        row = await passports.create_passport(passport, idempotency_key=DEMO_KEY)
        await RouteRepository(session).create_routes(row.id, result.routes)
        await session.commit()

        print(f"  Created demo passport {row.id}: {result.summary()}")
        print(f"  Share link: {share_url(settings.public_base_url, 'ko', row.share_hash)}")


async def main():
    # Verify connection
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
    print("Connected to database.")

    print("Seeding...")
    await seed()
    print("Done!")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
