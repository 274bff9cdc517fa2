"""
Hackathons router — CRUD, categories and winners.

Endpoints:
    POST   /hackathons                         → create (organizer / super_admin)
    GET    /hackathons                         → list (drafts only for their creator)
    GET    /hackathons/{id}                    → detail with the derived phase
    PATCH  /hackathons/{id}                    → update, timeline re-validated
    DELETE /hackathons/{id}                    → delete while no team exists
    GET    /hackathons/{id}/categories         → categories
    POST   /hackathons/{id}/categories         → add category
    DELETE /hackathons/{id}/categories/{cid}   → remove unused category
    POST   /hackathons/{id}/winners            → announce winners
    GET    /hackathons/{id}/winners            → published winners
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.database import get_db
from hackhub.errors import AuthorizationError, NotFound, StateConflict, TimelineViolation, ValidationFailed
from hackhub.models.assignment import HackathonJudge, HackathonMentor
from hackhub.models.category import Category
from hackhub.models.hackathon import Hackathon, HackathonStatus
from hackhub.models.organization import Organization
from hackhub.models.submission import Submission
from hackhub.models.team import Team
from hackhub.models.user import RoleEnum, User
from hackhub.routers.auth import get_current_user, require_user
from hackhub.schemas.hackathon import (
    CategoryCreate,
    CategoryOut,
    HackathonCreate,
    HackathonOut,
    HackathonUpdate,
    WinnerOut,
)
from hackhub.services import queries
from hackhub.services.lifecycle import announce_winners, results_recipients
from hackhub.services.notifications import send_results_published_email
from hackhub.services.policy import Action, authorize, load_relations, role_relations
from hackhub.services.timeline import (
    as_utc,
    current_phase,
    get_now,
    sync_legacy_deadlines,
    timeline_errors,
)
from hackhub.utils.slug import unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hackathons", tags=["hackathons"])

TIMELINE_FIELDS = (
    "team_joining_start",
    "team_joining_end",
    "mentor_assignment_start",
    "mentor_assignment_end",
    "submission_start",
    "submission_end",
    "judging_start",
    "judging_end",
    "winner_announcement_time",
)
# Columns that cannot be cleared through an update.
REQUIRED_FIELDS = {"title", "type", "status", "max_team_size", "submission_judging_gap_hours"}


# ═══════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════

def _out(hackathon: Hackathon, now: datetime) -> HackathonOut:
    return HackathonOut.model_validate(hackathon).model_copy(
        update={"phase": current_phase(hackathon, now)}
    )


def _can_see_draft(user: Optional[User], hackathon: Hackathon) -> bool:
    return user is not None and (
        user.id == hackathon.created_by or user.has_role(RoleEnum.SUPER_ADMIN)
    )


async def _visible_hackathon(db: AsyncSession, user: Optional[User], hackathon_id: int) -> Hackathon:
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    if hackathon.status == HackathonStatus.DRAFT and not _can_see_draft(user, hackathon):
        raise NotFound("Hackathon not found.")
    return hackathon


async def _check_organization(db: AsyncSession, user: User, organization_id: Optional[int]) -> None:
    if organization_id is None:
        return
    result = await db.execute(select(Organization).where(Organization.id == organization_id))
    organization = result.scalar_one_or_none()
    if organization is None:
        raise NotFound("Organization not found.")
    if organization.owner_id != user.id and not user.has_role(RoleEnum.SUPER_ADMIN):
        raise AuthorizationError("You can only host hackathons under your own organization.")


# ═══════════════════════════════════════════════════════════════
#  CRUD
# ═══════════════════════════════════════════════════════════════

@router.post("", response_model=HackathonOut, status_code=status.HTTP_201_CREATED)
async def create_hackathon(
    data: HackathonCreate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    authorize(Action.CREATE_HACKATHON, role_relations(current_user))
    await _check_organization(db, current_user, data.organization_id)

    values = data.model_dump()
    for field in TIMELINE_FIELDS:
        values[field] = as_utc(values[field])

    hackathon = Hackathon(
        **values,
        created_by=current_user.id,
        slug=await unique_slug(db, Hackathon, data.title),
    )
    sync_legacy_deadlines(hackathon)
    hackathon.lifecycle_status = current_phase(hackathon, now)
    db.add(hackathon)
    await db.commit()
    await db.refresh(hackathon)

    logger.info("Hackathon %s (%s) created by user %s", hackathon.id, hackathon.slug, current_user.id)
    return _out(hackathon, now)


@router.get("", response_model=List[HackathonOut])
async def list_hackathons(
    status_filter: Optional[HackathonStatus] = None,
    current_user: Optional[User] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    query = select(Hackathon).order_by(Hackathon.created_at.desc(), Hackathon.id.desc())
    if current_user is None:
        query = query.where(Hackathon.status != HackathonStatus.DRAFT)
    elif not current_user.has_role(RoleEnum.SUPER_ADMIN):
        query = query.where(
            or_(Hackathon.status != HackathonStatus.DRAFT, Hackathon.created_by == current_user.id)
        )
    if status_filter is not None:
        query = query.where(Hackathon.status == status_filter)

    result = await db.execute(query)
    return [_out(h, now) for h in result.scalars().all()]


@router.get("/{hackathon_id}", response_model=HackathonOut)
async def get_hackathon(
    hackathon_id: int,
    current_user: Optional[User] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return _out(await _visible_hackathon(db, current_user, hackathon_id), now)


@router.patch("/{hackathon_id}", response_model=HackathonOut)
async def update_hackathon(
    hackathon_id: int,
    data: HackathonUpdate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, current_user, hackathon))

    changes = data.model_dump(exclude_unset=True)
    for field in REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            del changes[field]
    for field in TIMELINE_FIELDS:
        if field in changes:
            changes[field] = as_utc(changes[field])
    if "organization_id" in changes:
        await _check_organization(db, current_user, changes["organization_id"])

    merged = {field: changes.get(field, getattr(hackathon, field)) for field in TIMELINE_FIELDS}
    errors = timeline_errors(merged)
    if errors:
        raise ValidationFailed(" ".join(errors))

    for field, value in changes.items():
        setattr(hackathon, field, value)
    sync_legacy_deadlines(hackathon)
    hackathon.lifecycle_status = current_phase(hackathon, now)
    await db.commit()
    await db.refresh(hackathon)

    logger.info("Hackathon %s updated by user %s: %s", hackathon.id, current_user.id, sorted(changes))
    return _out(hackathon, now)


@router.delete("/{hackathon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hackathon(
    hackathon_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, current_user, hackathon))

    result = await db.execute(select(Team.id).where(Team.hackathon_id == hackathon.id).limit(1))
    if result.first() is not None:
        raise StateConflict("Hackathons with registered teams cannot be deleted.")

    await db.execute(delete(Category).where(Category.hackathon_id == hackathon.id))
    await db.execute(delete(HackathonMentor).where(HackathonMentor.hackathon_id == hackathon.id))
    await db.execute(delete(HackathonJudge).where(HackathonJudge.hackathon_id == hackathon.id))
    await db.delete(hackathon)
    await db.commit()
    logger.info("Hackathon %s deleted by user %s", hackathon_id, current_user.id)


# ═══════════════════════════════════════════════════════════════
#  Categories
# ═══════════════════════════════════════════════════════════════

@router.get("/{hackathon_id}/categories", response_model=List[CategoryOut])
async def list_categories(
    hackathon_id: int,
    current_user: Optional[User] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await _visible_hackathon(db, current_user, hackathon_id)
    result = await db.execute(
        select(Category).where(Category.hackathon_id == hackathon.id).order_by(Category.id)
    )
    return result.scalars().all()


@router.post("/{hackathon_id}/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(
    hackathon_id: int,
    data: CategoryCreate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, current_user, hackathon))

    category = Category(hackathon_id=hackathon.id, **data.model_dump())
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


@router.delete("/{hackathon_id}/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    hackathon_id: int,
    category_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, current_user, hackathon))

    result = await db.execute(
        select(Category).where(Category.id == category_id, Category.hackathon_id == hackathon.id)
    )
    category = result.scalar_one_or_none()
    if category is None:
        raise NotFound("Category not found.")
    in_use = await db.execute(select(Team.id).where(Team.category_id == category.id).limit(1))
    if in_use.first() is not None:
        raise StateConflict("Categories with teams cannot be deleted.")

    await db.delete(category)
    await db.commit()


# ═══════════════════════════════════════════════════════════════
#  Winners
# ═══════════════════════════════════════════════════════════════

async def _winner_rows(db: AsyncSession, hackathon: Hackathon) -> List[WinnerOut]:
    result = await db.execute(
        select(Submission, Team)
        .join(Team, Team.id == Submission.team_id)
        .where(Submission.hackathon_id == hackathon.id, Submission.is_winner.is_(True))
        .order_by(Submission.winner_position)
    )
    return [
        WinnerOut(
            position=submission.winner_position,
            submission_id=submission.id,
            team_id=team.id,
            team_name=team.name,
            submission_title=submission.title,
            average_score=submission.average_score,
            rating_count=submission.rating_count,
        )
        for submission, team in result.all()
    ]


@router.post("/{hackathon_id}/winners", response_model=List[WinnerOut])
async def announce(
    hackathon_id: int,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, current_user, hackathon))

    if hackathon.status not in (HackathonStatus.JUDGING, HackathonStatus.RESULTS_PUBLISHED):
        raise StateConflict("Winners can only be announced once judging has started.")
    judging_closes = as_utc(hackathon.judging_end or hackathon.judging_deadline)
    if judging_closes is None or as_utc(now) <= judging_closes:
        raise TimelineViolation("Winners can only be announced after the judging deadline.")

    await announce_winners(db, hackathon)
    recipients = await results_recipients(db, hackathon)
    await db.commit()

    for recipient in recipients:
        background_tasks.add_task(
            send_results_published_email,
            recipient.email,
            hackathon.id,
            hackathon.title,
            recipient.team_name,
            recipient.position,
            recipient.is_leader,
        )
    return await _winner_rows(db, hackathon)


@router.get("/{hackathon_id}/winners", response_model=List[WinnerOut])
async def list_winners(
    hackathon_id: int,
    current_user: Optional[User] = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await _visible_hackathon(db, current_user, hackathon_id)
    if hackathon.status != HackathonStatus.RESULTS_PUBLISHED:
        return []
    return await _winner_rows(db, hackathon)
