#!/usr/bin/env python
"""Insert a sample expert with weekday availability and a few products."""

import asyncio
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import select

from app.database import async_session_maker
from app.models.expert import Expert, ExpertAvailability
from app.models.product import Product

SAMPLE_PRODUCTS = [
    ("Rose Quartz Tower", "crystals", Decimal("24.00"), 12),
    ("Amethyst Cluster", "crystals", Decimal("38.50"), 6),
    ("White Sage Bundle", "incense", Decimal("9.90"), 40),
]


async def seed_storefront():
    async with async_session_maker() as db:
        result = await db.execute(select(Expert).where(Expert.name == "Luna Marchetti").limit(1))
        if result.scalar_one_or_none():
            print("Sample expert already present, nothing to do")
            return

        expert = Expert(
            id=uuid4(),
            name="Luna Marchetti",
            title="Tarot & astrology reader",
            bio="Fifteen years of readings, gentle and practical.",
            specialties=["tarot", "astrology"],
            hourly_rate=Decimal("80.00"),
            rating=4.9,
            review_count=128,
            featured=True,
        )
        db.add(expert)

        # Monday to Friday, 09:00-17:00
        db.add_all(
            ExpertAvailability(
                expert_id=expert.id,
                day_of_week=day,
                start_time="09:00",
                end_time="17:00",
                is_available=True,
            )
            for day in range(1, 6)
        )

        db.add_all(
            Product(name=name, category=category, price=price, stock=stock, is_active=True)
            for name, category, price, stock in SAMPLE_PRODUCTS
        )

        await db.commit()
        print(f"✓ Seeded expert {expert.id} and {len(SAMPLE_PRODUCTS)} products")


if __name__ == "__main__":
    asyncio.run(seed_storefront())
