"""Judge ratings — update-or-create keyed on (submission, judge)."""

import logging
from datetime import datetime
from typing import List

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.errors import StateConflict
from hackhub.models.assignment import AssignmentStatus, TeamJudge
from hackhub.models.hackathon import Hackathon, HackathonStatus
from hackhub.models.rating import Rating
from hackhub.models.submission import Submission
from hackhub.models.team import Team
from hackhub.models.user import User
from hackhub.schemas.submission import RatingCreate
from hackhub.services import queries
from hackhub.services.policy import Action, authorize, load_relations
from hackhub.services.timeline import ensure_open, judging_gate

logger = logging.getLogger(__name__)


async def recompute_score(db: AsyncSession, submission: Submission) -> None:
    result = await db.execute(
        select(func.avg(Rating.total_score), func.count(Rating.id)).where(
            Rating.submission_id == submission.id
        )
    )
    average, count = result.one()
    submission.average_score = float(average) if average is not None else None
    submission.rating_count = count or 0


async def rate_submission(
    db: AsyncSession, user: User, submission: Submission, data: RatingCreate, now: datetime
) -> Rating:
    """Store the judge's scores for ``submission``, replacing any earlier rating."""
    hackathon = await queries.get_hackathon_or_404(db, submission.hackathon_id)
    authorize(Action.RATE, await load_relations(db, user, hackathon))
    if hackathon.status != HackathonStatus.JUDGING:
        raise StateConflict("Ratings are only allowed during the judging phase.")
    ensure_open(judging_gate(hackathon, now), "Judging")

    result = await db.execute(
        select(Rating).where(Rating.submission_id == submission.id, Rating.judge_id == user.id)
    )
    rating = result.scalar_one_or_none()
    if rating is None:
        rating = Rating(submission_id=submission.id, judge_id=user.id)
        db.add(rating)

    rating.innovation = data.innovation
    rating.execution = data.execution
    rating.ux_ui = data.ux_ui
    rating.feasibility = data.feasibility
    rating.total_score = data.innovation + data.execution + data.ux_ui + data.feasibility
    rating.comments = data.comments
    await db.flush()

    await recompute_score(db, submission)
    await db.flush()
    logger.info(
        "Judge %s rated submission %s (total=%s, average=%s)",
        user.id, submission.id, rating.total_score, submission.average_score,
    )
    return rating


async def submissions_to_rate(db: AsyncSession, user: User, hackathon: Hackathon) -> List[Submission]:
    """Submissions of the teams this judge accepted."""
    authorize(Action.RATE, await load_relations(db, user, hackathon))
    result = await db.execute(
        select(Submission)
        .join(TeamJudge, TeamJudge.team_id == Submission.team_id)
        .join(Team, Team.id == Submission.team_id)
        .where(
            Team.hackathon_id == hackathon.id,
            TeamJudge.user_id == user.id,
            TeamJudge.status == AssignmentStatus.ACCEPTED,
        )
        .order_by(Submission.id)
    )
    return list(result.scalars().all())


async def my_ratings(db: AsyncSession, user: User, hackathon: Hackathon) -> List[Rating]:
    authorize(Action.RATE, await load_relations(db, user, hackathon))
    result = await db.execute(
        select(Rating)
        .join(Submission, Submission.id == Rating.submission_id)
        .where(Submission.hackathon_id == hackathon.id, Rating.judge_id == user.id)
        .order_by(Rating.id.desc())
    )
    return list(result.scalars().all())
