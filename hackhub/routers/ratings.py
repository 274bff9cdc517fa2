"""
Ratings router — judges score submissions during judging.

Endpoints:
    PUT /submissions/{id}/rating                 → create or replace my rating
    GET /hackathons/{id}/submissions-to-rate     → submissions of my accepted teams
    GET /hackathons/{id}/my-ratings              → ratings I gave in this hackathon
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.database import get_db
from hackhub.models.user import User
from hackhub.routers.auth import require_user
from hackhub.schemas.submission import RatingCreate, RatingOut, SubmissionOut
from hackhub.services import queries, ratings as rating_service
from hackhub.services.timeline import get_now

router = APIRouter(tags=["ratings"])


@router.put("/submissions/{submission_id}/rating", response_model=RatingOut)
async def rate_submission(
    submission_id: int,
    data: RatingCreate,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    submission = await queries.get_submission_or_404(db, submission_id)
    rating = await rating_service.rate_submission(db, current_user, submission, data, now)
    await db.commit()
    await db.refresh(rating)
    return rating


@router.get("/hackathons/{hackathon_id}/submissions-to-rate", response_model=List[SubmissionOut])
async def submissions_to_rate(
    hackathon_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    return await rating_service.submissions_to_rate(db, current_user, hackathon)


@router.get("/hackathons/{hackathon_id}/my-ratings", response_model=List[RatingOut])
async def my_ratings(
    hackathon_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    return await rating_service.my_ratings(db, current_user, hackathon)
