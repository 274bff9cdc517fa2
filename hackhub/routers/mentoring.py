"""
Mentor dashboard router.

Endpoints:
    GET /mentor/teams        → teams I mentor that are still accessible
    GET /mentor/teams/{id}   → one of those teams
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.database import get_db
from hackhub.models.hackathon import Hackathon
from hackhub.models.team import Team
from hackhub.models.user import User
from hackhub.routers.auth import require_user
from hackhub.routers.teams import team_out
from hackhub.schemas.team import MentoredTeamOut
from hackhub.services import mentoring
from hackhub.services.timeline import get_now

router = APIRouter(prefix="/mentor", tags=["mentoring"])


async def _mentored_out(db: AsyncSession, team: Team, hackathon: Hackathon) -> MentoredTeamOut:
    base = await team_out(db, team)
    return MentoredTeamOut(**base.model_dump(), hackathon_title=hackathon.title)


@router.get("/teams", response_model=List[MentoredTeamOut])
async def my_teams(
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    pairs = await mentoring.assigned_teams(db, current_user, now)
    return [await _mentored_out(db, team, hackathon) for team, hackathon in pairs]


@router.get("/teams/{team_id}", response_model=MentoredTeamOut)
async def team_detail(
    team_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    team, hackathon = await mentoring.mentored_team(db, current_user, team_id, now)
    return await _mentored_out(db, team, hackathon)
