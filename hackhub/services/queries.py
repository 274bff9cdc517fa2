"""Shared lookups used by the workflow services and routers."""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import NotFound
from hackhub.models.hackathon import Hackathon
from hackhub.models.submission import Submission
from hackhub.models.team import Team
from hackhub.models.team_membership import TeamMembership


async def get_hackathon_or_404(db: AsyncSession, hackathon_id: int) -> Hackathon:
    result = await db.execute(select(Hackathon).where(Hackathon.id == hackathon_id))
    hackathon = result.scalar_one_or_none()
    if not hackathon:
        raise NotFound("Hackathon not found.")
    return hackathon


async def get_team_or_404(db: AsyncSession, team_id: int, for_update: bool = False) -> Team:
    query = select(Team).where(Team.id == team_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    team = result.scalar_one_or_none()
    if not team:
        raise NotFound("Team not found.")
    return team


async def get_submission_or_404(db: AsyncSession, submission_id: int) -> Submission:
    result = await db.execute(select(Submission).where(Submission.id == submission_id))
    submission = result.scalar_one_or_none()
    if not submission:
        raise NotFound("Submission not found.")
    return submission


async def team_submission(db: AsyncSession, team_id: int) -> Optional[Submission]:
    result = await db.execute(select(Submission).where(Submission.team_id == team_id))
    return result.scalar_one_or_none()


async def member_count(db: AsyncSession, team_id: int) -> int:
    result = await db.execute(
        select(func.count(TeamMembership.user_id)).where(TeamMembership.team_id == team_id)
    )
    return result.scalar() or 0


async def member_ids(db: AsyncSession, team_id: int) -> List[int]:
    result = await db.execute(
        select(TeamMembership.user_id)
        .where(TeamMembership.team_id == team_id)
        .order_by(TeamMembership.joined_at, TeamMembership.user_id)
    )
    return list(result.scalars().all())


async def is_member(db: AsyncSession, team_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(TeamMembership).where(
            TeamMembership.team_id == team_id,
            TeamMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def team_for_user(db: AsyncSession, hackathon_id: int, user_id: int) -> Optional[Team]:
    """The user's team in this hackathon, if any (at most one by invariant)."""
    result = await db.execute(
        select(Team)
        .join(TeamMembership, Team.id == TeamMembership.team_id)
        .where(Team.hackathon_id == hackathon_id, TeamMembership.user_id == user_id)
    )
    return result.scalars().first()


async def participant_ids(db: AsyncSession, hackathon_id: int) -> set:
    result = await db.execute(
        select(TeamMembership.user_id)
        .join(Team, Team.id == TeamMembership.team_id)
        .where(Team.hackathon_id == hackathon_id)
    )
    return set(result.scalars().all())
