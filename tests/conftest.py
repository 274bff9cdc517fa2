"""Shared fixtures: in-memory database, frozen clock, API client and factories."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import hackhub.models  # noqa: F401
from hackhub.config import settings
from hackhub.database import Base, get_db
from hackhub.main import app
from hackhub.models.assignment import (
    AssignmentStatus,
    HackathonJudge,
    HackathonMentor,
    TeamJudge,
    TeamMentor,
)
from hackhub.models.category import Category
from hackhub.models.hackathon import Hackathon, HackathonStatus, HackathonType
from hackhub.models.submission import Submission
from hackhub.models.team import Team
from hackhub.models.team_membership import TeamMembership
from hackhub.models.user import RoleEnum, User
from hackhub.routers.auth import create_access_token
from hackhub.services.timeline import get_now, sync_legacy_deadlines

# Reference instant every test timeline is laid out around.
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def timeline(**overrides) -> dict:
    """Window timeline around ``T0``; team joining and submission are open at T0.

    Submission ends at T0+8d and judging starts at T0+10d, leaving a 48h gap.
    """
    values = dict(
        team_joining_start=T0 - timedelta(days=1),
        team_joining_end=T0 + timedelta(days=5),
        mentor_assignment_start=T0 + timedelta(days=5),
        mentor_assignment_end=T0 + timedelta(days=7),
        submission_start=T0 - timedelta(hours=1),
        submission_end=T0 + timedelta(days=8),
        judging_start=T0 + timedelta(days=10),
        judging_end=T0 + timedelta(days=12),
    )
    values.update(overrides)
    return values


@dataclass
class Clock:
    now: datetime = T0

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)

    def set(self, value: datetime) -> None:
        self.now = value


# ═══════════════════════════════════════════════════════════════
#  Database / app
# ═══════════════════════════════════════════════════════════════

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """A session for direct service calls; tests commit or roll back themselves."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    return tmp_path / "uploads"


@pytest.fixture
async def client(session_factory, clock):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: clock.now
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test/api/v1") as ac:
        yield ac
    app.dependency_overrides.clear()


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


# ═══════════════════════════════════════════════════════════════
#  Factories
# ═══════════════════════════════════════════════════════════════

class Factory:
    """Creates committed rows through short-lived sessions."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._counter = 0

    async def save(self, *objects):
        async with self.session_factory() as session:
            session.add_all(objects)
            await session.commit()
            for obj in objects:
                await session.refresh(obj)
        return objects[0]

    async def user(self, name: Optional[str] = None, roles: Iterable[RoleEnum] = (RoleEnum.PARTICIPANT,)) -> User:
        self._counter += 1
        name = name or f"User {self._counter}"
        user = User(email=f"user{self._counter}@example.com", full_name=name)
        user.roles = roles
        return await self.save(user)

    async def organizer(self) -> User:
        return await self.user(roles=[RoleEnum.ORGANIZER])

    async def hackathon(self, owner: User, legacy: bool = False, **overrides) -> Hackathon:
        self._counter += 1
        fields = dict(
            title=f"Hackathon {self._counter}",
            slug=f"hackathon-{self._counter}",
            description="Build things.",
            type=HackathonType.ONLINE,
            status=HackathonStatus.PUBLISHED,
            max_team_size=4,
            created_by=owner.id,
        )
        if not legacy:
            fields.update(timeline())
        fields.update(overrides)
        hackathon = Hackathon(**fields)
        if not legacy:
            sync_legacy_deadlines(hackathon)
        return await self.save(hackathon)

    async def category(self, hackathon: Hackathon, name: str = "General", max_teams: Optional[int] = None) -> Category:
        return await self.save(Category(hackathon_id=hackathon.id, name=name, max_teams=max_teams))

    async def team(self, hackathon: Hackathon, leader: User, members: Iterable[User] = (), **overrides) -> Team:
        self._counter += 1
        fields = dict(
            hackathon_id=hackathon.id,
            leader_id=leader.id,
            name=f"Team {self._counter}",
            is_locked=False,
            is_solo=False,
        )
        fields.update(overrides)
        team = await self.save(Team(**fields))
        for member in [leader, *members]:
            await self.save(TeamMembership(team_id=team.id, user_id=member.id))
        return team

    async def submission(self, team: Team, **overrides) -> Submission:
        fields = dict(
            hackathon_id=team.hackathon_id,
            team_id=team.id,
            title=f"{team.name} project",
            description="What we built.",
            github_url="https://github.com/example/project",
            video_url="https://youtu.be/demo",
            rating_count=0,
            is_winner=False,
        )
        fields.update(overrides)
        return await self.save(Submission(**fields))

    async def judge(self, hackathon: Hackathon, user: User, teams: Iterable[Team] = (),
                    status: AssignmentStatus = AssignmentStatus.ACCEPTED) -> None:
        await self.save(HackathonJudge(hackathon_id=hackathon.id, user_id=user.id, status=status))
        for team in teams:
            await self.save(TeamJudge(team_id=team.id, user_id=user.id, status=status))

    async def mentor(self, hackathon: Hackathon, user: User, teams: Iterable[Team] = (),
                     status: AssignmentStatus = AssignmentStatus.ACCEPTED) -> None:
        await self.save(HackathonMentor(hackathon_id=hackathon.id, user_id=user.id, status=status))
        for team in teams:
            await self.save(TeamMentor(team_id=team.id, user_id=user.id, status=status))


@pytest.fixture
def make(session_factory):
    return Factory(session_factory)


@pytest.fixture
def fetch(session_factory):
    """Run a select in a fresh session and return the scalars."""
    async def run(statement):
        async with session_factory() as session:
            result = await session.execute(statement)
            return list(result.scalars().all())
    return run
