"""
Team assembly — creation, membership changes and locking.

All checks run before the first write; a failed check leaves the session
untouched.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import StateConflict, ValidationFailed
from hackhub.models.assignment import TeamJudge, TeamMentor
from hackhub.models.category import Category
from hackhub.models.hackathon import Hackathon, HackathonStatus
from hackhub.models.team import Team
from hackhub.models.team_membership import TeamMembership
from hackhub.models.user import User
from hackhub.schemas.team import TeamCreate
from hackhub.services import queries
from hackhub.services.policy import Action, Relation, authorize, load_relations
from hackhub.services.timeline import ensure_open, team_joining_gate

logger = logging.getLogger(__name__)


async def _name_taken(db: AsyncSession, hackathon_id: int, name: str) -> bool:
    result = await db.execute(
        select(Team.id).where(Team.hackathon_id == hackathon_id, Team.name == name)
    )
    return result.first() is not None


async def _solo_team_name(db: AsyncSession, hackathon_id: int, leader: User) -> str:
    base = f"{leader.full_name} (Solo)"
    name, counter = base, 2
    while await _name_taken(db, hackathon_id, name):
        name = f"{base}-{counter}"
        counter += 1
    return name


async def _check_category(db: AsyncSession, hackathon: Hackathon, category_id: Optional[int], required: bool) -> Optional[int]:
    result = await db.execute(select(Category).where(Category.hackathon_id == hackathon.id))
    categories = {c.id: c for c in result.scalars().all()}

    if category_id is None:
        if required and categories:
            raise ValidationFailed("Please choose a category for your team.")
        return None

    category = categories.get(category_id)
    if category is None:
        raise ValidationFailed("Selected category does not belong to this hackathon.")

    if category.max_teams is not None:
        count_result = await db.execute(
            select(func.count(Team.id)).where(Team.category_id == category.id)
        )
        if (count_result.scalar() or 0) >= category.max_teams:
            raise StateConflict(f"Category '{category.name}' has no team slots left.")
    return category.id


async def create_team(
    db: AsyncSession,
    user: User,
    hackathon: Hackathon,
    data: TeamCreate,
    now: datetime,
) -> Team:
    """Create a team (or a solo entry) with the requester as leader and first member."""
    if hackathon.status == HackathonStatus.DRAFT:
        raise StateConflict("This hackathon has not been published yet.")
    ensure_open(team_joining_gate(hackathon, now), "Team joining")

    relations = await load_relations(db, user, hackathon)
    if Relation.PARTICIPANT in relations:
        raise StateConflict("You are already in a team for this hackathon.")
    authorize(Action.CREATE_TEAM, relations)

    if data.is_solo:
        category_id = await _check_category(db, hackathon, data.category_id, required=False)
        name = await _solo_team_name(db, hackathon.id, user)
    else:
        name = (data.name or "").strip()
        if not name:
            raise ValidationFailed("Team name is required.")
        category_id = await _check_category(db, hackathon, data.category_id, required=True)
        if await _name_taken(db, hackathon.id, name):
            raise StateConflict("A team with this name already exists in this hackathon.")

    team = Team(
        hackathon_id=hackathon.id,
        category_id=category_id,
        leader_id=user.id,
        name=name,
        description=data.description,
        is_solo=data.is_solo,
        is_locked=False,
    )
    db.add(team)
    await db.flush()  # to get team.id

    db.add(TeamMembership(team_id=team.id, user_id=user.id))
    await db.flush()

    logger.info("Team %s created in hackathon %s by user %s (solo=%s)", team.id, hackathon.id, user.id, team.is_solo)
    return team


async def join_team(db: AsyncSession, user: User, team: Team, now: datetime) -> Team:
    """Add the requester to ``team``; joining a team you are already on is a no-op."""
    hackathon = await queries.get_hackathon_or_404(db, team.hackathon_id)
    ensure_open(team_joining_gate(hackathon, now), "Team joining")

    if team.is_locked:
        raise StateConflict("Team is locked.")
    if team.is_solo:
        raise StateConflict("Solo teams cannot accept members.")

    relations = await load_relations(db, user, hackathon, team)
    if Relation.MEMBER in relations:
        return team
    if Relation.PARTICIPANT in relations:
        raise StateConflict("You are already in a team for this hackathon.")
    authorize(Action.JOIN_TEAM, relations)

    if await queries.member_count(db, team.id) >= hackathon.max_team_size:
        raise StateConflict("Team is full.")

    db.add(TeamMembership(team_id=team.id, user_id=user.id))
    await db.flush()
    logger.info("User %s joined team %s", user.id, team.id)
    return team


async def leave_team(db: AsyncSession, user: User, team: Team) -> None:
    if team.is_locked:
        raise StateConflict("Team is locked.")
    if not await queries.is_member(db, team.id, user.id):
        raise StateConflict("You are not a member of this team.")
    if team.leader_id == user.id:
        raise StateConflict("The team leader cannot leave the team. Transfer leadership first.")

    await db.execute(
        delete(TeamMembership).where(
            TeamMembership.team_id == team.id,
            TeamMembership.user_id == user.id,
        )
    )
    logger.info("User %s left team %s", user.id, team.id)


async def set_locked(db: AsyncSession, user: User, team: Team, locked: bool) -> Team:
    """Organizer toggle that freezes membership (join, leave, kick)."""
    hackathon = await queries.get_hackathon_or_404(db, team.hackathon_id)
    authorize(Action.MANAGE_HACKATHON, await load_relations(db, user, hackathon))

    team.is_locked = locked
    await db.flush()
    logger.info("Team %s %s by user %s", team.id, "locked" if locked else "unlocked", user.id)
    return team


async def transfer_leadership(db: AsyncSession, user: User, team: Team, new_leader_id: int) -> Team:
    hackathon = await queries.get_hackathon_or_404(db, team.hackathon_id)
    authorize(Action.LEAD_TEAM, await load_relations(db, user, hackathon, team))

    if team.is_locked:
        raise StateConflict("Team is locked.")
    if new_leader_id == team.leader_id:
        raise StateConflict("This user already leads the team.")
    if not await queries.is_member(db, team.id, new_leader_id):
        raise StateConflict("The new leader must already be a member of the team.")

    team.leader_id = new_leader_id
    await db.flush()
    logger.info("Leadership of team %s transferred from %s to %s", team.id, user.id, new_leader_id)
    return team


async def kick_member(db: AsyncSession, user: User, team: Team, member_id: int) -> None:
    hackathon = await queries.get_hackathon_or_404(db, team.hackathon_id)
    authorize(Action.LEAD_TEAM, await load_relations(db, user, hackathon, team))

    if team.is_locked:
        raise StateConflict("Team is locked.")
    if member_id == user.id:
        raise StateConflict("You cannot remove yourself from the team.")
    if not await queries.is_member(db, team.id, member_id):
        raise StateConflict("User is not a member of this team.")

    await db.execute(
        delete(TeamMembership).where(
            TeamMembership.team_id == team.id,
            TeamMembership.user_id == member_id,
        )
    )
    logger.info("User %s removed from team %s by leader %s", member_id, team.id, user.id)


async def delete_team(db: AsyncSession, user: User, team: Team) -> None:
    """Leader dissolves the team; impossible once a submission exists."""
    hackathon = await queries.get_hackathon_or_404(db, team.hackathon_id)
    authorize(Action.LEAD_TEAM, await load_relations(db, user, hackathon, team))

    if await queries.team_submission(db, team.id) is not None:
        raise StateConflict("Teams with a submission cannot be deleted.")

    await db.execute(delete(TeamMentor).where(TeamMentor.team_id == team.id))
    await db.execute(delete(TeamJudge).where(TeamJudge.team_id == team.id))
    await db.execute(delete(TeamMembership).where(TeamMembership.team_id == team.id))
    await db.delete(team)
    await db.flush()
    logger.info("Team %s deleted by leader %s", team.id, user.id)
