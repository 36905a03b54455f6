#!/usr/bin/env python3
"""Seed script to load a demo user and races into the calendar.

Usage:
    # Default demo data
    python scripts/seed_races.py

    # Custom owner
    python scripts/seed_races.py --email user@example.com --name "User Name"

    # Also open a Redis session for the owner and print its cookie
    python scripts/seed_races.py --session

    # List what is stored
    python scripts/seed_races.py --list
"""

import argparse
import asyncio
import os
import sys
from datetime import date
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from racecalendar.core.database import async_session_maker
from racecalendar.core.exceptions import RaceCalendarError
from racecalendar.core.session import SessionUser, create_session
from racecalendar.models.user import User
from racecalendar.services.race_access import RaceAccess
from racecalendar.services.user_access import UserAccess


DEMO_RACES = [
    {
        "title": "Dolomiti Trail",
        "description": "Anello attorno alle Tre Cime di Lavaredo",
        "length": 21.5,
        "race_date": date(2025, 6, 1),
        "typology": "trail",
        "latitude": 46.61,
        "longitude": 12.30,
    },
    {
        "title": "Garda Half Marathon",
        "description": "Lungolago da Riva a Torbole",
        "length": 21.1,
        "race_date": date(2025, 4, 6),
        "typology": "road",
        "latitude": 45.88,
        "longitude": 10.84,
    },
    {
        "title": "Vertical Monte Bondone",
        "description": "1000 metri di dislivello in 3 km",
        "length": 3.0,
        "race_date": date(2025, 7, 20),
        "typology": "vertical",
        "latitude": 46.02,
        "longitude": 11.04,
    },
]


async def get_or_create_owner(email: str, name: str) -> UserAccess:
    """Return the user with ``email``, creating it if needed."""
    async with async_session_maker() as session:
        result = await session.execute(select(User.id).where(User.email == email))
        user_id = result.scalar_one_or_none()
        if user_id:
            return await UserAccess.load(session, user_id)

        user = UserAccess(session, {"name": name, "email": email, "interests": ["trail", "road"]})
        return await user.save_user()


async def seed_races(owner_id: str) -> list[RaceAccess]:
    """Insert the demo races for ``owner_id``, skipping titles already stored."""
    async with async_session_maker() as session:
        existing = {race.title for race in await RaceAccess.get_all_races(session)}
        created = []
        for properties in DEMO_RACES:
            if properties["title"] in existing:
                continue
            race = RaceAccess(session, {**properties, "owner_id": owner_id})
            created.append(await race.save_race())
        return created


async def list_races() -> list[RaceAccess]:
    async with async_session_maker() as session:
        races = await RaceAccess.get_all_races(session)
    return sorted(races, key=lambda race: race.race_date)


async def main() -> None:
    """Main entry point for the seed script."""
    parser = argparse.ArgumentParser(description="Load demo data into RaceCalendar")
    parser.add_argument(
        "--email",
        help="Owner email address",
        default=os.environ.get("SEED_EMAIL", "demo@racecalendar.local"),
    )
    parser.add_argument(
        "--name",
        help="Owner display name",
        default=os.environ.get("SEED_NAME", "Demo Runner"),
    )
    parser.add_argument(
        "--session",
        action="store_true",
        help="Create a Redis session for the owner and print the cookie",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="List stored races",
    )

    args = parser.parse_args()

    if args.list:
        print("\nStored races:")
        print("-" * 50)
        races = await list_races()
        if not races:
            print("No races found")
        for race in races:
            print(f"  {race.race_date}  {race.title} ({race.length} km, {race.typology or '-'})")
            print(f"  ID: {race.id}  Owner: {race.owner_id}")
            print("-" * 50)
        return

    try:
        owner = await get_or_create_owner(args.email, args.name)
        created = await seed_races(owner.id)
    except (RaceCalendarError, SQLAlchemyError) as e:
        print(f"\nDatabase error: {e}")
        print("\nMake sure the database is running and migrations are applied.")
        sys.exit(1)

    print(f"\nOwner: {owner.name} <{owner.email}> ({owner.id})")
    print(f"Created {len(created)} race(s)")
    for race in created:
        print(f"   {race.race_date}  {race.title}")

    if args.session:
        session_id = await create_session(
            SessionUser(id=owner.id, name=owner.name, email=owner.email)
        )
        print(f"\nsession_id cookie: {session_id}")


if __name__ == "__main__":
    asyncio.run(main())
