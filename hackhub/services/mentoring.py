"""
Mentor dashboard — the teams a mentor has accepted.

Access follows ``can_mentor_access``: during the mentor assignment window
and until judging starts.
"""

from datetime import datetime
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import AuthorizationError, TimelineViolation
from hackhub.models.assignment import AssignmentStatus, TeamMentor
from hackhub.models.hackathon import Hackathon
from hackhub.models.team import Team
from hackhub.models.user import User
from hackhub.services import queries
from hackhub.services.timeline import can_mentor_access


async def assigned_teams(db: AsyncSession, user: User, now: datetime) -> List[Tuple[Team, Hackathon]]:
    result = await db.execute(
        select(Team, Hackathon)
        .join(TeamMentor, TeamMentor.team_id == Team.id)
        .join(Hackathon, Hackathon.id == Team.hackathon_id)
        .where(TeamMentor.user_id == user.id, TeamMentor.status == AssignmentStatus.ACCEPTED)
        .order_by(Hackathon.id, Team.id)
    )
    return [(team, hackathon) for team, hackathon in result.all() if can_mentor_access(hackathon, now)]


async def mentored_team(db: AsyncSession, user: User, team_id: int, now: datetime) -> Tuple[Team, Hackathon]:
    team = await queries.get_team_or_404(db, team_id)
    result = await db.execute(
        select(TeamMentor.id).where(
            TeamMentor.team_id == team.id,
            TeamMentor.user_id == user.id,
            TeamMentor.status == AssignmentStatus.ACCEPTED,
        )
    )
    if result.first() is None:
        raise AuthorizationError("You are not a mentor for this team.")

    hackathon = await queries.get_hackathon_or_404(db, team.hackathon_id)
    if not can_mentor_access(hackathon, now):
        raise TimelineViolation("Mentor access to this team has ended.")
    return team, hackathon
