"""Seed script to populate the database with templates and a demo user."""

import asyncio
import sys

sys.path.insert(0, ".")

from sqlalchemy import select

from memeboard.db import close_db, get_db_context, init_db
from memeboard.models import Template, User
from memeboard.services.password import hash_password

TEMPLATES = [
    ("Distracted Boyfriend", "https://i.imgflip.com/1ur9b0.jpg", "Relatable"),
    ("Drake Hotline Bling", "https://i.imgflip.com/30b1gx.jpg", "Funny"),
    ("Two Buttons", "https://i.imgflip.com/1g8my4.jpg", "Relatable"),
    ("Change My Mind", "https://i.imgflip.com/24y43o.jpg", "Funny"),
    ("Woman Yelling At Cat", "https://i.imgflip.com/345v97.jpg", "Animals"),
    ("This Is Fine", "https://i.imgflip.com/wxica.jpg", "Tech"),
    ("Expanding Brain", "https://i.imgflip.com/1jwhww.jpg", None),
]


async def seed_database():
    """Seed the database with sample data."""
    await init_db()

    async with get_db_context() as session:
        # Check if already seeded
        existing = await session.execute(select(Template).limit(1))
        if existing.scalar_one_or_none():
            print("Database already seeded. Skipping.")
            return

        print("Seeding database...")

        demo = User(
            email="demo@example.com",
            display_name="Demo User",
            hashed_password=hash_password("password123"),
        )
        session.add(demo)

        session.add_all([
            Template(name=name, url=url, category=category)
            for name, url, category in TEMPLATES
        ])

        await session.flush()
        print(f"Created user: {demo.email}")
        print(f"Created {len(TEMPLATES)} templates")

    print("\nSeeding complete!")
    print("\nDemo credentials:")
    print("  Email: demo@example.com")
    print("  Password: password123")


async def main():
    try:
        await seed_database()
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
