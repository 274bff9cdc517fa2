"""
Capability table for every gated action.

Relations between the current user and the hackathon/team are loaded once
per request (``load_relations``) and every action is decided from a single
table keyed by action, returning an explicit ``Decision``.
"""

import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import AuthorizationError
from hackhub.models.assignment import AssignmentStatus, HackathonJudge, HackathonMentor
from hackhub.models.hackathon import Hackathon
from hackhub.models.team import Team
from hackhub.models.team_membership import TeamMembership
from hackhub.models.user import RoleEnum, User


class Relation(str, enum.Enum):
    # account roles
    SUPER_ADMIN = "super_admin"
    ORGANIZER = "organizer"
    SPONSOR = "sponsor"
    PARTICIPANT_ROLE = "participant_role"  # may enter hackathons as a competitor
    # relationship to the hackathon
    OWNER = "owner"
    JUDGE = "judge"                  # accepted on the judge roster
    MENTOR = "mentor"                # accepted on the mentor roster
    STAFF_INVITEE = "staff_invitee"  # pending or accepted on either roster
    PARTICIPANT = "participant"      # member of any team of the hackathon
    # relationship to the team
    LEADER = "leader"
    MEMBER = "member"


class Action(str, enum.Enum):
    CREATE_HACKATHON = "create_hackathon"
    MANAGE_HACKATHON = "manage_hackathon"
    CREATE_TEAM = "create_team"
    JOIN_TEAM = "join_team"
    VIEW_TEAM = "view_team"
    LEAD_TEAM = "lead_team"
    SUBMIT = "submit"
    VIEW_ALL_SUBMISSIONS = "view_all_submissions"
    VIEW_MENTORS = "view_mentors"
    VIEW_JUDGES = "view_judges"
    RATE = "rate"


@dataclass(frozen=True)
class Rule:
    allow: Optional[FrozenSet[Relation]]  # None: any authenticated user
    deny: FrozenSet[Relation] = frozenset()
    message: str = "You are not allowed to perform this action."
    deny_message: Optional[str] = None


POLICY: Dict[Action, Rule] = {
    Action.CREATE_HACKATHON: Rule(
        frozenset({Relation.SUPER_ADMIN, Relation.ORGANIZER}),
        message="Only organizers can create hackathons.",
    ),
    Action.MANAGE_HACKATHON: Rule(
        frozenset({Relation.SUPER_ADMIN, Relation.OWNER}),
        message="Only the hackathon organizer can do this.",
    ),
    Action.CREATE_TEAM: Rule(
        frozenset({Relation.PARTICIPANT_ROLE}),
        deny=frozenset({Relation.OWNER, Relation.STAFF_INVITEE}),
        message="Only participants can create teams.",
        deny_message="Staff of this hackathon cannot create teams.",
    ),
    Action.JOIN_TEAM: Rule(
        frozenset({Relation.PARTICIPANT_ROLE}),
        deny=frozenset({Relation.OWNER, Relation.STAFF_INVITEE}),
        message="Only participants can join teams.",
        deny_message="Staff of this hackathon cannot join teams.",
    ),
    Action.VIEW_TEAM: Rule(
        frozenset({Relation.SUPER_ADMIN, Relation.OWNER, Relation.MEMBER, Relation.JUDGE, Relation.MENTOR}),
        message="You cannot view this team.",
    ),
    Action.LEAD_TEAM: Rule(
        frozenset({Relation.LEADER}),
        message="Only the team leader can do this.",
    ),
    Action.SUBMIT: Rule(
        frozenset({Relation.LEADER}),
        message="Only the team leader can submit.",
    ),
    Action.VIEW_ALL_SUBMISSIONS: Rule(
        frozenset({Relation.SUPER_ADMIN, Relation.OWNER, Relation.JUDGE}),
        message="You cannot view submissions for this hackathon.",
    ),
    Action.VIEW_MENTORS: Rule(
        frozenset({Relation.SUPER_ADMIN, Relation.OWNER, Relation.MENTOR}),
        message="You cannot view mentors for this hackathon.",
    ),
    Action.VIEW_JUDGES: Rule(
        frozenset({Relation.SUPER_ADMIN, Relation.OWNER, Relation.JUDGE}),
        message="You cannot view judges for this hackathon.",
    ),
    Action.RATE: Rule(
        frozenset({Relation.JUDGE}),
        message="You are not an accepted judge for this hackathon.",
    ),
}


@dataclass(frozen=True)
class Decision:
    action: Action
    allowed: bool
    reason: str = ""

    def ensure(self) -> None:
        if not self.allowed:
            raise AuthorizationError(self.reason)


def decide(action: Action, relations: FrozenSet[Relation]) -> Decision:
    rule = POLICY[action]
    if relations & rule.deny:
        return Decision(action, False, rule.deny_message or rule.message)
    if rule.allow is not None and not (relations & rule.allow):
        return Decision(action, False, rule.message)
    return Decision(action, True)


def authorize(action: Action, relations: FrozenSet[Relation]) -> None:
    decide(action, relations).ensure()


# ═══════════════════════════════════════════════════════════════
#  Relation loading
# ═══════════════════════════════════════════════════════════════

def role_relations(user: User) -> FrozenSet[Relation]:
    found = set()
    if user.has_role(RoleEnum.SUPER_ADMIN):
        found.add(Relation.SUPER_ADMIN)
    if user.has_role(RoleEnum.ORGANIZER):
        found.add(Relation.ORGANIZER)
    if user.has_role(RoleEnum.SPONSOR):
        found.add(Relation.SPONSOR)
    if user.has_role(RoleEnum.PARTICIPANT):
        found.add(Relation.PARTICIPANT_ROLE)
    return frozenset(found)


async def load_relations(
    db: AsyncSession,
    user: User,
    hackathon: Hackathon,
    team: Optional[Team] = None,
) -> FrozenSet[Relation]:
    """Collect every relation ``user`` holds towards ``hackathon`` (and ``team``)."""
    found = set(role_relations(user))

    if hackathon.created_by == user.id:
        found.add(Relation.OWNER)

    for roster, accepted_relation in ((HackathonJudge, Relation.JUDGE), (HackathonMentor, Relation.MENTOR)):
        result = await db.execute(
            select(roster.status).where(
                roster.hackathon_id == hackathon.id,
                roster.user_id == user.id,
            )
        )
        roster_status = result.scalar_one_or_none()
        if roster_status is None or roster_status == AssignmentStatus.REJECTED:
            continue
        found.add(Relation.STAFF_INVITEE)
        if roster_status == AssignmentStatus.ACCEPTED:
            found.add(accepted_relation)

    result = await db.execute(
        select(TeamMembership.team_id)
        .join(Team, Team.id == TeamMembership.team_id)
        .where(Team.hackathon_id == hackathon.id, TeamMembership.user_id == user.id)
    )
    own_team_ids = set(result.scalars().all())
    if own_team_ids:
        found.add(Relation.PARTICIPANT)

    if team is not None:
        if team.leader_id == user.id:
            found.add(Relation.LEADER)
        if team.id in own_team_ids:
            found.add(Relation.MEMBER)

    return frozenset(found)
