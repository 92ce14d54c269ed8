"""Seed the database with a demo host, reference data and sample listings.

Creates the tables if they do not exist yet, then (re)creates:
- the demo host ``host@stayhub.local`` / ``demo1234`` with a profile
- home page categories and experiences
- a dozen available listings spread over price, size and type

Run from the backend directory:
    python -m scripts.seed_data
"""

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import delete, select, update

from stayhub.auth.security import hash_password
from stayhub.database import Base, async_session_factory, engine
from stayhub.models.conversation import Conversation
from stayhub.models.favorite import Favorite
from stayhub.models.profile import UserProfile
from stayhub.models.property import STATUS_AVAILABLE, Property
from stayhub.models.reference import Category, Experience
from stayhub.models.user import User

# ---------------------------------------------------------------------------
# Seed data definitions
# ---------------------------------------------------------------------------

DEMO_HOST = {
    "email": "host@stayhub.local",
    "password": "demo1234",
    "name": "Maya Hartono",
    "avatar_url": "https://images.unsplash.com/photo-1494790108377-be9c29b29330?w=200",
}

_IMG = "https://images.unsplash.com/photo-{}?w=1200"

CATEGORIES = [
    {"name": "Beachfront", "image": _IMG.format("1507525428034-b723cf961d3e"), "count": 3},
    {"name": "Cabins", "image": _IMG.format("1449158743715-0a90ebb6d2d8"), "count": 2},
    {"name": "City Apartments", "image": _IMG.format("1502672260266-1c1ef2d93688"), "count": 4},
    {"name": "Villas", "image": _IMG.format("1613490493576-7fde63acd811"), "count": 3},
]

EXPERIENCES = [
    {
        "title": "Sunrise trek on Mount Batur",
        "description": "Hike an active volcano before dawn and have breakfast cooked on volcanic steam.",
        "location": "Kintamani",
        "price": Decimal("45.00"),
        "image": _IMG.format("1537996194471-e657df975ab4"),
        "rating": 4.9,
        "review_count": 312,
        "host_name": "Komang",
        "duration": 6,
        "languages": ["English", "Indonesian"],
    },
    {
        "title": "Balinese cooking class",
        "description": "Shop at a morning market, then cook six traditional dishes in a family compound.",
        "location": "Ubud",
        "price": Decimal("35.00"),
        "image": _IMG.format("1556910103-1c02745aae4d"),
        "rating": 4.8,
        "review_count": 540,
        "host_name": "Wayan",
        "duration": 4,
        "languages": ["English"],
    },
    {
        "title": "Surf lesson for beginners",
        "description": "Two hours in the whitewater with a certified instructor, board and rash guard included.",
        "location": "Canggu",
        "price": Decimal("30.00"),
        "image": _IMG.format("1502680390469-be75c86b636f"),
        "rating": 4.7,
        "review_count": 198,
        "host_name": "Gede",
        "duration": 2,
        "languages": ["English", "Japanese"],
    },
    {
        "title": "Old town walking tour",
        "description": "Alleys, temples and coffee roasters with a local historian.",
        "location": "Denpasar",
        "price": Decimal("20.00"),
        "image": _IMG.format("1555400038-63f5ba517a47"),
        "rating": 4.6,
        "review_count": 87,
        "host_name": "Ayu",
        "duration": 3,
        "languages": ["English", "Dutch"],
    },
]

_DESCRIPTION = (
    "Bright and quiet {kind} with everything needed for a longer stay: fast wifi, "
    "a proper workspace, a fully equipped kitchen and a host who answers quickly."
)

# (title, location, price, price_type, bedrooms, bathrooms, type, featured, rating, reviews)
PROPERTIES = [
    ("Ocean view villa with private pool", "Canggu", "350", "night", 3, "3", "Villa", True, 4.9, 128),
    ("Rice field cabin near the monkey forest", "Ubud", "86", "night", 1, "1", "Cabin", True, 4.8, 64),
    ("Modern loft above the old market", "Denpasar", "120", "night", 1, "1", "Loft", False, 4.5, 22),
    ("Family house two minutes from the beach", "Sanur", "210", "night", 3, "2", "House", True, 4.7, 93),
    ("Compact studio for digital nomads", "Canggu", "55", "night", 1, "1", "Studio", False, 4.4, 51),
    ("Clifftop penthouse with sunset terrace", "Uluwatu", "480", "night", 4, "3.5", "Penthouse", True, 5.0, 17),
    ("Garden condo with shared pool", "Seminyak", "140", "night", 2, "2", "Condo", False, 4.6, 38),
    ("Quiet apartment for a month away", "Ubud", "1400", "month", 2, "1", "Apartment", False, 4.3, 12),
    ("Jungle villa with yoga shala", "Ubud", "260", "night", 2, "2", "Villa", False, 4.9, 76),
    ("Surf house shared with friends", "Canggu", "900", "week", 4, "2", "House", False, 4.2, 9),
    ("Two bedroom apartment by the harbour", "Benoa", "150", "night", 2, "1.5", "Apartment", False, 4.5, 30),
    ("Lake cabin in the highlands", "Bedugul", "95", "night", 2, "1", "Cabin", False, 4.7, 41),
]

AMENITIES = ["wifi", "kitchen", "air_conditioning", "washer", "workspace"]


def _property_rows(host: User) -> list[Property]:
    rows = []
    for index, (title, location, price, price_type, beds, baths, kind, featured, rating, reviews) in enumerate(
        PROPERTIES
    ):
        photo = f"{_IMG.format('1566073771259-6a8506099945')}&sig={index}"
        rows.append(
            Property(
                owner_id=host.id,
                owner_name=host.name,
                owner_image=host.avatar_url,
                title=title,
                description=_DESCRIPTION.format(kind=kind.lower()),
                location=location,
                price=Decimal(price),
                price_type=price_type,
                images=[photo],
                image_keys=[],
                bedrooms=beds,
                bathrooms=Decimal(baths),
                guests=beds * 2,
                amenities=AMENITIES[: 3 + index % 3],
                property_type=kind,
                featured=featured,
                rating=rating,
                review_count=reviews,
                status=STATUS_AVAILABLE,
            )
        )
    return rows


async def seed() -> None:
    """Populate the database with demo data.

    Idempotent: an existing demo host is deleted together with its listings
    before everything is re-created. Reference tables are replaced wholesale.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        result = await session.execute(select(User).where(User.email == DEMO_HOST["email"]))
        existing = result.scalar_one_or_none()

        if existing is not None:
            print(f"Demo host '{DEMO_HOST['email']}' already exists. Deleting and re-seeding...")
            property_ids = select(Property.id).where(Property.owner_id == existing.id)
            await session.execute(delete(Favorite).where(Favorite.property_id.in_(property_ids)))
            await session.execute(
                update(Conversation).where(Conversation.property_id.in_(property_ids)).values(property_id=None)
            )
            await session.execute(delete(Property).where(Property.owner_id == existing.id))
            await session.execute(delete(UserProfile).where(UserProfile.id == existing.id))
            await session.execute(delete(User).where(User.id == existing.id))
            await session.flush()

        await session.execute(delete(Category))
        await session.execute(delete(Experience))

        # 1. Demo host and profile
        host = User(
            email=DEMO_HOST["email"],
            hashed_password=hash_password(DEMO_HOST["password"]),
            name=DEMO_HOST["name"],
            avatar_url=DEMO_HOST["avatar_url"],
            auth_provider="local",
            is_active=True,
        )
        session.add(host)
        await session.flush()
        session.add(UserProfile(id=host.id, email=host.email, display_name=host.name, photo_url=host.avatar_url))
        print(f"Created demo host: {host.email} (id={host.id})")

        # 2. Reference data
        session.add_all(Category(**data) for data in CATEGORIES)
        session.add_all(Experience(**data) for data in EXPERIENCES)

        # 3. Listings
        properties = _property_rows(host)
        session.add_all(properties)
        await session.commit()

        for prop in properties:
            print(f"   {prop.title} ({prop.location}, ${prop.price}/{prop.price_type})")

    print()
    print("=" * 60)
    print("Seed Summary")
    print("=" * 60)
    print(f"   Host:        {DEMO_HOST['email']} / {DEMO_HOST['password']}")
    print(f"   Categories:  {len(CATEGORIES)}")
    print(f"   Experiences: {len(EXPERIENCES)}")
    print(f"   Properties:  {len(PROPERTIES)}")
    print("=" * 60)

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
