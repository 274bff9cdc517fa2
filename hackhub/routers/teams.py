"""
Teams router — assembly, membership and locking.

Endpoints:
    POST   /hackathons/{id}/teams             → create team (or solo entry)
    GET    /hackathons/{id}/teams             → all teams (organizer / super_admin)
    GET    /teams/{id}                        → team detail
    POST   /teams/{id}/join                   → join
    POST   /teams/{id}/leave                  → leave
    POST   /teams/{id}/lock | /unlock         → organizer toggle
    POST   /teams/{id}/transfer-leadership    → hand over leadership
    DELETE /teams/{id}/members/{user_id}      → kick a member
    DELETE /teams/{id}                        → dissolve the team
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.database import get_db
from hackhub.models.team import Team
from hackhub.models.user import User
from hackhub.routers.auth import require_user
from hackhub.schemas.team import LeadershipTransfer, TeamCreate, TeamOut
from hackhub.services import queries, teams as team_service
from hackhub.services.notifications import send_team_created_email
from hackhub.services.policy import Action, authorize, load_relations
from hackhub.services.timeline import get_now

router = APIRouter(tags=["teams"])


async def team_out(db: AsyncSession, team: Team) -> TeamOut:
    return TeamOut.model_validate(team).model_copy(
        update={
            "member_ids": await queries.member_ids(db, team.id),
            "has_submission": await queries.team_submission(db, team.id) is not None,
        }
    )


@router.post("/hackathons/{hackathon_id}/teams", response_model=TeamOut, status_code=status.HTTP_201_CREATED)
async def create_team(
    hackathon_id: int,
    data: TeamCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    team = await team_service.create_team(db, current_user, hackathon, data, now)
    await db.commit()

    background_tasks.add_task(send_team_created_email, current_user.email, team.name, hackathon.title)
    return await team_out(db, team)


@router.get("/hackathons/{hackathon_id}/teams", response_model=List[TeamOut])
async def list_teams(
    hackathon_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, current_user, hackathon))

    result = await db.execute(select(Team).where(Team.hackathon_id == hackathon.id).order_by(Team.id))
    return [await team_out(db, team) for team in result.scalars().all()]


@router.get("/teams/{team_id}", response_model=TeamOut)
async def get_team(
    team_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    team = await queries.get_team_or_404(db, team_id)
    hackathon = await queries.get_hackathon_or_404(db, team.hackathon_id)
    authorize(Action.VIEW_TEAM, await load_relations(db, current_user, hackathon, team))
    return await team_out(db, team)


@router.post("/teams/{team_id}/join", response_model=TeamOut)
async def join_team(
    team_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    team = await queries.get_team_or_404(db, team_id, for_update=True)
    await team_service.join_team(db, current_user, team, now)
    await db.commit()
    return await team_out(db, team)


@router.post("/teams/{team_id}/leave")
async def leave_team(
    team_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    team = await queries.get_team_or_404(db, team_id)
    await team_service.leave_team(db, current_user, team)
    await db.commit()
    return {"ok": True}


@router.post("/teams/{team_id}/lock", response_model=TeamOut)
async def lock_team(
    team_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    team = await queries.get_team_or_404(db, team_id)
    await team_service.set_locked(db, current_user, team, True)
    await db.commit()
    return await team_out(db, team)


@router.post("/teams/{team_id}/unlock", response_model=TeamOut)
async def unlock_team(
    team_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    team = await queries.get_team_or_404(db, team_id)
    await team_service.set_locked(db, current_user, team, False)
    await db.commit()
    return await team_out(db, team)


@router.post("/teams/{team_id}/transfer-leadership", response_model=TeamOut)
async def transfer_leadership(
    team_id: int,
    data: LeadershipTransfer,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    team = await queries.get_team_or_404(db, team_id)
    await team_service.transfer_leadership(db, current_user, team, data.new_leader_id)
    await db.commit()
    return await team_out(db, team)


@router.delete("/teams/{team_id}/members/{member_id}", response_model=TeamOut)
async def kick_member(
    team_id: int,
    member_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    team = await queries.get_team_or_404(db, team_id)
    await team_service.kick_member(db, current_user, team, member_id)
    await db.commit()
    return await team_out(db, team)


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    team = await queries.get_team_or_404(db, team_id)
    await team_service.delete_team(db, current_user, team)
    await db.commit()
