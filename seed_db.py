"""Seed a local database with one organizer, a few users and a running hackathon."""

import asyncio
from datetime import timedelta

from sqlalchemy import select

import hackhub.models  # noqa: F401
from hackhub.database import Base, async_session, engine
from hackhub.models.category import Category
from hackhub.models.hackathon import Hackathon, HackathonStatus, HackathonType
from hackhub.models.user import RoleEnum, User
from hackhub.routers.auth import hash_password
from hackhub.services.timeline import current_phase, sync_legacy_deadlines, utcnow

PASSWORD = "password123"

USERS = [
    ("organizer@hackhub.dev", "Olivia Organizer", [RoleEnum.ORGANIZER]),
    ("admin@hackhub.dev", "Ada Admin", [RoleEnum.SUPER_ADMIN]),
    ("mentor@hackhub.dev", "Marco Mentor", [RoleEnum.MENTOR]),
    ("judge@hackhub.dev", "Jules Judge", [RoleEnum.JUDGE]),
    ("alice@hackhub.dev", "Alice Hacker", [RoleEnum.PARTICIPANT]),
    ("bob@hackhub.dev", "Bob Builder", [RoleEnum.PARTICIPANT]),
]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        existing = await db.execute(select(User).where(User.email == USERS[0][0]))
        if existing.scalar_one_or_none():
            print("Database already seeded.")
            return

        users = []
        for email, name, roles in USERS:
            user = User(email=email, full_name=name, password_hash=hash_password(PASSWORD))
            user.roles = roles
            db.add(user)
            users.append(user)
        await db.flush()

        now = utcnow()
        hackathon = Hackathon(
            title="Open Source Climate Hack",
            slug="open-source-climate-hack",
            description="Tools that help communities measure and cut emissions.",
            type=HackathonType.HYBRID,
            location="Addis Ababa + online",
            status=HackathonStatus.PUBLISHED,
            max_team_size=4,
            created_by=users[0].id,
            team_joining_start=now - timedelta(days=1),
            team_joining_end=now + timedelta(days=6),
            mentor_assignment_start=now + timedelta(days=6),
            mentor_assignment_end=now + timedelta(days=8),
            submission_start=now + timedelta(days=2),
            submission_end=now + timedelta(days=9),
            judging_start=now + timedelta(days=10),
            judging_end=now + timedelta(days=12),
            winner_announcement_time=now + timedelta(days=13),
        )
        sync_legacy_deadlines(hackathon)
        hackathon.lifecycle_status = current_phase(hackathon, now)
        db.add(hackathon)
        await db.flush()

        for name in ("Energy", "Agriculture", "Open Data"):
            db.add(Category(hackathon_id=hackathon.id, name=name, max_teams=20))

        await db.commit()
        print(f"Seeded {len(users)} users (password: {PASSWORD}) and hackathon #{hackathon.id}.")


if __name__ == "__main__":
    asyncio.run(seed())
