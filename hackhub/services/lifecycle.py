"""
Lifecycle refresh, winner announcement and judging reminders.

``refresh_lifecycle`` and ``judging_reminders`` are run periodically by
``update_lifecycle_status.py``; ``announce_winners`` is also reachable from
the winners endpoint. Mail goes out after commit, so these functions only
select recipients.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import StateConflict
from hackhub.models.assignment import AssignmentStatus, HackathonJudge
from hackhub.models.hackathon import Hackathon, HackathonStatus, LifecyclePhase
from hackhub.models.submission import Submission
from hackhub.models.team import Team
from hackhub.models.team_membership import TeamMembership
from hackhub.models.user import User
from hackhub.services import queries
from hackhub.services.notifications import notify
from hackhub.services.timeline import as_utc, current_phase

logger = logging.getLogger(__name__)

WINNER_COUNT = 3
REMINDER_WINDOW = timedelta(hours=24)


class ResultsRecipient(NamedTuple):
    email: str
    team_name: str
    position: Optional[int]
    is_leader: bool


class JudgingReminder(NamedTuple):
    email: str
    hackathon_id: int
    hackathon_title: str
    deadline: datetime


@dataclass
class RefreshResult:
    changed: int = 0
    announced: List[Hackathon] = field(default_factory=list)


async def announce_winners(db: AsyncSession, hackathon: Hackathon) -> List[Submission]:
    """Mark the three best scored submissions and publish results."""
    result = await db.execute(
        select(Submission)
        .where(
            Submission.hackathon_id == hackathon.id,
            Submission.average_score.is_not(None),
            Submission.average_score > 0,
        )
        .order_by(Submission.average_score.desc(), Submission.id)
        .limit(WINNER_COUNT)
    )
    winners = list(result.scalars().all())
    if not winners:
        raise StateConflict("No submissions with scores found for this hackathon.")

    await db.execute(
        update(Submission)
        .where(Submission.hackathon_id == hackathon.id)
        .values(is_winner=False, winner_position=None)
        .execution_options(synchronize_session="fetch")
    )
    for position, submission in enumerate(winners, start=1):
        submission.is_winner = True
        submission.winner_position = position
        for member_id in await queries.member_ids(db, submission.team_id):
            notify(
                db,
                member_id,
                f"Congratulations! Your team placed #{position} in {hackathon.title}.",
                f"/hackathons/{hackathon.id}/winners",
            )

    hackathon.status = HackathonStatus.RESULTS_PUBLISHED
    hackathon.lifecycle_status = LifecyclePhase.ENDED
    await db.flush()

    logger.info(
        "Winners announced for hackathon %s: %s",
        hackathon.id, [(s.winner_position, s.id) for s in winners],
    )
    return winners


async def results_recipients(db: AsyncSession, hackathon: Hackathon) -> List[ResultsRecipient]:
    """Every team member of the hackathon with their team's placing, leaders flagged."""
    result = await db.execute(
        select(User.email, User.id, Team.name, Team.leader_id, Submission.winner_position)
        .join(TeamMembership, TeamMembership.user_id == User.id)
        .join(Team, Team.id == TeamMembership.team_id)
        .outerjoin(Submission, Submission.team_id == Team.id)
        .where(Team.hackathon_id == hackathon.id)
        .order_by(Team.id, User.id)
    )
    return [
        ResultsRecipient(email, team_name, position, user_id == leader_id)
        for email, user_id, team_name, leader_id, position in result.all()
    ]


async def judging_reminders(db: AsyncSession, now: datetime) -> List[JudgingReminder]:
    """Accepted judges of hackathons whose judging deadline falls within the next 24 hours.

    Each hackathon is reminded once; the hackathon is stamped so later runs skip it.
    """
    now = as_utc(now)
    result = await db.execute(
        select(Hackathon).where(
            Hackathon.status == HackathonStatus.JUDGING,
            Hackathon.judging_reminder_sent_at.is_(None),
        )
    )
    reminders = []
    for hackathon in result.scalars().all():
        deadline = as_utc(hackathon.judging_end or hackathon.judging_deadline)
        if deadline is None or not now < deadline <= now + REMINDER_WINDOW:
            continue

        judges = await db.execute(
            select(User.email)
            .join(HackathonJudge, HackathonJudge.user_id == User.id)
            .where(
                HackathonJudge.hackathon_id == hackathon.id,
                HackathonJudge.status == AssignmentStatus.ACCEPTED,
            )
            .order_by(User.id)
        )
        emails = list(judges.scalars().all())
        if not emails:
            continue

        hackathon.judging_reminder_sent_at = now
        reminders.extend(JudgingReminder(email, hackathon.id, hackathon.title, deadline) for email in emails)
        logger.info("Judging reminder queued for hackathon %s (%d judge(s))", hackathon.id, len(emails))

    await db.flush()
    return reminders


async def refresh_lifecycle(db: AsyncSession, now: datetime) -> RefreshResult:
    """Store the derived phase on every published hackathon and announce due winners."""
    result = await db.execute(
        select(Hackathon).where(
            Hackathon.status != HackathonStatus.DRAFT,
            or_(
                Hackathon.team_joining_start.is_not(None),
                Hackathon.team_deadline.is_not(None),
            ),
        )
    )
    refresh = RefreshResult()
    for hackathon in result.scalars().all():
        phase = current_phase(hackathon, now)
        if hackathon.lifecycle_status != phase:
            logger.info("Hackathon %s: %s -> %s", hackathon.id, hackathon.lifecycle_status, phase.value)
            hackathon.lifecycle_status = phase
            refresh.changed += 1

        announce_at = as_utc(hackathon.winner_announcement_time)
        if (
            announce_at is not None
            and as_utc(now) >= announce_at
            and hackathon.status != HackathonStatus.RESULTS_PUBLISHED
        ):
            try:
                await announce_winners(db, hackathon)
            except StateConflict as e:
                logger.warning("Could not announce winners for hackathon %s: %s", hackathon.id, e.detail)
            else:
                refresh.announced.append(hackathon)

    await db.flush()
    return refresh
