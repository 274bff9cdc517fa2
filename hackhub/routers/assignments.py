"""
Assignments router — mentor and judge invitations and responses.

Endpoints:
    POST /hackathons/{id}/mentors                 → invite a mentor to teams
    POST /hackathons/{id}/mentors/category        → invite mentors to a whole category
    POST /hackathons/{id}/mentors/remove          → withdraw mentors from teams
    GET  /hackathons/{id}/mentors                 → mentor roster
    POST /hackathons/{id}/judges                  → invite judges (after submissions close)
    GET  /hackathons/{id}/judges                  → judge roster
    GET  /assignments/pending                     → my pending requests
    POST /assignments/{kind}/{id}/accept|reject   → respond to a request
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.database import get_db
from hackhub.errors import NotFound
from hackhub.models.user import User
from hackhub.routers.auth import require_user
from hackhub.schemas.assignment import (
    AssignmentOut,
    JudgeAssign,
    MentorAssign,
    MentorCategoryAssign,
    MentorRemove,
    PendingRequestOut,
    StaffOut,
)
from hackhub.services import assignments as assignment_service
from hackhub.services import queries
from hackhub.services.notifications import send_judge_assigned_email
from hackhub.services.timeline import get_now

router = APIRouter(tags=["assignments"])


def _kind(kind: str) -> assignment_service.AssignmentKind:
    try:
        return assignment_service.KINDS[kind]
    except KeyError:
        raise NotFound("Unknown assignment type.")


# ═══════════════════════════════════════════════════════════════
#  Organizer side
# ═══════════════════════════════════════════════════════════════

@router.post("/hackathons/{hackathon_id}/mentors")
async def assign_mentor(
    hackathon_id: int,
    data: MentorAssign,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    created = await assignment_service.assign_mentor(db, current_user, hackathon, data.team_ids, data.mentor_id)
    await db.commit()
    return {"message": "Mentor assigned successfully", "mentor_id": data.mentor_id, "created": created}


@router.post("/hackathons/{hackathon_id}/mentors/category")
async def assign_mentors_to_category(
    hackathon_id: int,
    data: MentorCategoryAssign,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    team_count = await assignment_service.assign_mentors_to_category(
        db, current_user, hackathon, data.category_id, data.mentor_ids
    )
    await db.commit()
    return {
        "message": "Mentors assigned to all teams in category",
        "category_id": data.category_id,
        "team_count": team_count,
    }


@router.post("/hackathons/{hackathon_id}/mentors/remove")
async def remove_mentors(
    hackathon_id: int,
    data: MentorRemove,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    await assignment_service.remove_mentors(db, current_user, hackathon, data.team_ids, data.mentor_ids)
    await db.commit()
    return {"message": "Mentors removed successfully"}


@router.get("/hackathons/{hackathon_id}/mentors", response_model=List[StaffOut])
async def list_mentors(
    hackathon_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    return await assignment_service.list_staff(db, current_user, hackathon, assignment_service.MENTOR)


@router.post("/hackathons/{hackathon_id}/judges")
async def assign_judges(
    hackathon_id: int,
    data: JudgeAssign,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    judges = await assignment_service.assign_judges(
        db, current_user, hackathon, data.team_ids, data.judge_ids, now
    )
    await db.commit()

    for judge in judges:
        background_tasks.add_task(send_judge_assigned_email, judge.email, hackathon.title, len(data.team_ids))
    return {"message": "Judges assigned successfully", "judge_ids": data.judge_ids, "team_ids": data.team_ids}


@router.get("/hackathons/{hackathon_id}/judges", response_model=List[StaffOut])
async def list_judges(
    hackathon_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    return await assignment_service.list_staff(db, current_user, hackathon, assignment_service.JUDGE)


# ═══════════════════════════════════════════════════════════════
#  Invitee side
# ═══════════════════════════════════════════════════════════════

@router.get("/assignments/pending", response_model=List[PendingRequestOut])
async def my_pending_requests(
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    return await assignment_service.pending_requests(db, current_user)


@router.post("/assignments/{kind}/{assignment_id}/accept", response_model=AssignmentOut)
async def accept(
    kind: str,
    assignment_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    row = await assignment_service.accept_assignment(db, current_user, _kind(kind), assignment_id)
    await db.commit()
    return row


@router.post("/assignments/{kind}/{assignment_id}/reject", response_model=AssignmentOut)
async def reject(
    kind: str,
    assignment_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    row = await assignment_service.reject_assignment(db, current_user, _kind(kind), assignment_id)
    await db.commit()
    return row
