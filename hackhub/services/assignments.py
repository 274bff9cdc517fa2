"""
Mentor and judge assignment workflow.

Organizers invite users to teams; every (team, user) pair moves through
``pending -> accepted | rejected`` exactly once.  The hackathon-level roster
row mirrors whether the user currently holds an assignment in the event.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import NotFound, StateConflict, ValidationFailed
from hackhub.models.assignment import (
    AssignmentStatus,
    HackathonJudge,
    HackathonMentor,
    TeamJudge,
    TeamMentor,
)
from hackhub.models.category import Category
from hackhub.models.hackathon import Hackathon
from hackhub.models.team import Team
from hackhub.models.user import User
from hackhub.services import queries
from hackhub.services.notifications import notify
from hackhub.services.policy import Action, authorize, load_relations
from hackhub.services.timeline import ensure_open, judge_assignment_gate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentKind:
    name: str
    team_model: type
    roster_model: type
    view_action: Action


MENTOR = AssignmentKind("mentor", TeamMentor, HackathonMentor, Action.VIEW_MENTORS)
JUDGE = AssignmentKind("judge", TeamJudge, HackathonJudge, Action.VIEW_JUDGES)
KINDS: Dict[str, AssignmentKind] = {MENTOR.name: MENTOR, JUDGE.name: JUDGE}


# ── Validation helpers ──

async def _teams_in_hackathon(db: AsyncSession, hackathon: Hackathon, team_ids: Iterable[int]) -> List[Team]:
    wanted = set(team_ids)
    result = await db.execute(select(Team).where(Team.id.in_(wanted)))
    teams = list(result.scalars().all())
    if len(teams) != len(wanted) or any(t.hackathon_id != hackathon.id for t in teams):
        raise ValidationFailed("One or more teams do not belong to this hackathon.")
    return teams


async def _check_candidates(db: AsyncSession, hackathon: Hackathon, user_ids: Iterable[int], kind: AssignmentKind) -> List[User]:
    wanted = set(user_ids)
    result = await db.execute(select(User).where(User.id.in_(wanted)))
    users = list(result.scalars().all())
    if len(users) != len(wanted):
        raise ValidationFailed("One or more users do not exist.")

    participants = await queries.participant_ids(db, hackathon.id)
    for candidate in users:
        if candidate.id in participants:
            raise ValidationFailed(f"User #{candidate.id} is a participant and cannot be a {kind.name}.")
        if candidate.id == hackathon.created_by:
            raise ValidationFailed(f"Organizers cannot be {kind.name}s for their own hackathon.")
    return users


async def _invite(
    db: AsyncSession,
    kind: AssignmentKind,
    hackathon: Hackathon,
    teams: Sequence[Team],
    users: Sequence[User],
) -> int:
    """Insert missing pending roster and team rows; returns how many team rows were created.

    A roster row left rejected by an earlier refusal goes back to pending
    when the user receives a new invitation.
    """
    created = 0
    for candidate in users:
        new_for_user = 0
        for team in teams:
            result = await db.execute(
                select(kind.team_model).where(
                    kind.team_model.team_id == team.id,
                    kind.team_model.user_id == candidate.id,
                )
            )
            if result.scalar_one_or_none() is None:
                db.add(kind.team_model(team_id=team.id, user_id=candidate.id, status=AssignmentStatus.PENDING))
                new_for_user += 1

        roster = await _roster_row(db, kind, hackathon.id, candidate.id)
        if roster is None:
            db.add(kind.roster_model(hackathon_id=hackathon.id, user_id=candidate.id, status=AssignmentStatus.PENDING))
        elif roster.status == AssignmentStatus.REJECTED and new_for_user:
            roster.status = AssignmentStatus.PENDING

        if new_for_user:
            notify(
                db,
                candidate.id,
                f"You have been invited to {kind.name} {new_for_user} team(s) in {hackathon.title}.",
                "/assignments/pending",
            )
        created += new_for_user

    await db.flush()
    return created


# ═══════════════════════════════════════════════════════════════
#  Mentors
# ═══════════════════════════════════════════════════════════════

async def assign_mentor(db: AsyncSession, user: User, hackathon: Hackathon, team_ids: List[int], mentor_id: int) -> int:
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, user, hackathon))
    users = await _check_candidates(db, hackathon, [mentor_id], MENTOR)
    teams = await _teams_in_hackathon(db, hackathon, team_ids)

    created = await _invite(db, MENTOR, hackathon, teams, users)
    logger.info("Mentor %s invited to %d team(s) of hackathon %s", mentor_id, created, hackathon.id)
    return created


async def assign_mentors_to_category(
    db: AsyncSession, user: User, hackathon: Hackathon, category_id: int, mentor_ids: List[int]
) -> int:
    """Invite mentors to every team of a category; returns the number of teams covered."""
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, user, hackathon))

    result = await db.execute(
        select(Category).where(Category.id == category_id, Category.hackathon_id == hackathon.id)
    )
    if result.scalar_one_or_none() is None:
        raise ValidationFailed("Selected category does not belong to this hackathon.")
    users = await _check_candidates(db, hackathon, mentor_ids, MENTOR)

    result = await db.execute(
        select(Team).where(Team.hackathon_id == hackathon.id, Team.category_id == category_id)
    )
    teams = list(result.scalars().all())
    if not teams:
        raise NotFound("No teams found in this category.")

    await _invite(db, MENTOR, hackathon, teams, users)
    logger.info("Mentors %s invited to category %s (%d teams)", mentor_ids, category_id, len(teams))
    return len(teams)


async def remove_mentors(
    db: AsyncSession, user: User, hackathon: Hackathon, team_ids: List[int], mentor_ids: List[int]
) -> None:
    """Drop team assignments; the roster row goes once the mentor has no team left."""
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, user, hackathon))
    teams = await _teams_in_hackathon(db, hackathon, team_ids)

    await db.execute(
        delete(TeamMentor).where(
            TeamMentor.team_id.in_([t.id for t in teams]),
            TeamMentor.user_id.in_(mentor_ids),
        )
    )
    for mentor_id in set(mentor_ids):
        result = await db.execute(
            select(func.count(TeamMentor.id))
            .join(Team, Team.id == TeamMentor.team_id)
            .where(Team.hackathon_id == hackathon.id, TeamMentor.user_id == mentor_id)
        )
        if not result.scalar():
            await db.execute(
                delete(HackathonMentor).where(
                    HackathonMentor.hackathon_id == hackathon.id,
                    HackathonMentor.user_id == mentor_id,
                )
            )
    await db.flush()
    logger.info("Mentors %s removed from teams %s", mentor_ids, [t.id for t in teams])


# ═══════════════════════════════════════════════════════════════
#  Judges
# ═══════════════════════════════════════════════════════════════

async def assign_judges(
    db: AsyncSession,
    user: User,
    hackathon: Hackathon,
    team_ids: List[int],
    judge_ids: List[int],
    now: datetime,
) -> List[User]:
    """Invite judges to teams once submissions have closed.

    The deadline is checked before anything else, so the answer is the same
    for every caller until then.
    """
    ensure_open(judge_assignment_gate(hackathon, now), "Judge assignment")
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, user, hackathon))
    users = await _check_candidates(db, hackathon, judge_ids, JUDGE)
    teams = await _teams_in_hackathon(db, hackathon, team_ids)

    created = await _invite(db, JUDGE, hackathon, teams, users)
    logger.info("Judges %s invited to %d team assignment(s) in hackathon %s", judge_ids, created, hackathon.id)
    return users


# ═══════════════════════════════════════════════════════════════
#  Responding to requests
# ═══════════════════════════════════════════════════════════════

async def _pending_row(db: AsyncSession, kind: AssignmentKind, user: User, assignment_id: int):
    result = await db.execute(
        select(kind.team_model).where(
            kind.team_model.id == assignment_id,
            kind.team_model.user_id == user.id,
            kind.team_model.status == AssignmentStatus.PENDING,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        raise NotFound("Assignment request not found or already processed.")
    return row


async def _roster_row(db: AsyncSession, kind: AssignmentKind, hackathon_id: int, user_id: int):
    result = await db.execute(
        select(kind.roster_model).where(
            kind.roster_model.hackathon_id == hackathon_id,
            kind.roster_model.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def accept_assignment(db: AsyncSession, user: User, kind: AssignmentKind, assignment_id: int):
    row = await _pending_row(db, kind, user, assignment_id)
    team = await queries.get_team_or_404(db, row.team_id)
    if await queries.team_for_user(db, team.hackathon_id, user.id) is not None:
        raise StateConflict(f"Participants of this hackathon cannot be a {kind.name}.")

    row.status = AssignmentStatus.ACCEPTED
    roster = await _roster_row(db, kind, team.hackathon_id, user.id)
    if roster is None:
        db.add(kind.roster_model(hackathon_id=team.hackathon_id, user_id=user.id, status=AssignmentStatus.ACCEPTED))
    else:
        roster.status = AssignmentStatus.ACCEPTED
    await db.flush()

    logger.info("%s assignment %s accepted by user %s", kind.name.capitalize(), assignment_id, user.id)
    return row


async def reject_assignment(db: AsyncSession, user: User, kind: AssignmentKind, assignment_id: int):
    row = await _pending_row(db, kind, user, assignment_id)
    team = await queries.get_team_or_404(db, row.team_id)

    row.status = AssignmentStatus.REJECTED

    result = await db.execute(
        select(func.count(kind.team_model.id))
        .join(Team, Team.id == kind.team_model.team_id)
        .where(
            Team.hackathon_id == team.hackathon_id,
            kind.team_model.user_id == user.id,
            kind.team_model.id != row.id,
            kind.team_model.status == AssignmentStatus.ACCEPTED,
        )
    )
    if not result.scalar():
        roster = await _roster_row(db, kind, team.hackathon_id, user.id)
        if roster is not None:
            roster.status = AssignmentStatus.REJECTED
    await db.flush()

    logger.info("%s assignment %s rejected by user %s", kind.name.capitalize(), assignment_id, user.id)
    return row


# ═══════════════════════════════════════════════════════════════
#  Listings
# ═══════════════════════════════════════════════════════════════

async def pending_requests(db: AsyncSession, user: User) -> List[dict]:
    requests = []
    for kind in (MENTOR, JUDGE):
        result = await db.execute(
            select(kind.team_model, Team, Hackathon)
            .join(Team, Team.id == kind.team_model.team_id)
            .join(Hackathon, Hackathon.id == Team.hackathon_id)
            .where(
                kind.team_model.user_id == user.id,
                kind.team_model.status == AssignmentStatus.PENDING,
            )
            .order_by(kind.team_model.created_at, kind.team_model.id)
        )
        for row, team, hackathon in result.all():
            requests.append({
                "assignment_id": row.id,
                "type": kind.name,
                "team_id": team.id,
                "team_name": team.name,
                "hackathon_id": hackathon.id,
                "hackathon_title": hackathon.title,
                "requested_at": row.created_at,
            })
    return requests


async def list_staff(db: AsyncSession, user: User, hackathon: Hackathon, kind: AssignmentKind) -> List[dict]:
    """Roster of mentors or judges with the number of teams each is assigned to."""
    authorize(kind.view_action, await load_relations(db, user, hackathon))

    team_counts = (
        select(kind.team_model.user_id, func.count(kind.team_model.id).label("team_count"))
        .join(Team, Team.id == kind.team_model.team_id)
        .where(Team.hackathon_id == hackathon.id)
        .group_by(kind.team_model.user_id)
        .subquery()
    )
    result = await db.execute(
        select(User, kind.roster_model.status, team_counts.c.team_count)
        .join(kind.roster_model, kind.roster_model.user_id == User.id)
        .outerjoin(team_counts, team_counts.c.user_id == User.id)
        .where(kind.roster_model.hackathon_id == hackathon.id)
        .order_by(User.full_name)
    )
    return [
        {
            "user_id": staff.id,
            "full_name": staff.full_name,
            "email": staff.email,
            "status": status,
            "team_count": team_count or 0,
        }
        for staff, status, team_count in result.all()
    ]
