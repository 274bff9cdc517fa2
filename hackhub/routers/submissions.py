"""
Submissions router — multipart create/update, visibility-filtered reads.

Endpoints:
    POST  /teams/{id}/submission          → create (team leader)
    PATCH /submissions/{id}               → update (team leader)
    GET   /hackathons/{id}/submissions    → submissions visible to the caller
    GET   /submissions/{id}               → single submission
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.database import get_db
from hackhub.models.user import User
from hackhub.routers.auth import require_user
from hackhub.schemas.submission import SubmissionOut
from hackhub.services import queries, submissions as submission_service
from hackhub.services.notifications import send_submission_received_email
from hackhub.services.timeline import get_now

router = APIRouter(tags=["submissions"])


@router.post("/teams/{team_id}/submission", response_model=SubmissionOut, status_code=status.HTTP_201_CREATED)
async def create_submission(
    team_id: int,
    background_tasks: BackgroundTasks,
    title: str = Form(...),
    description: str = Form(...),
    github_url: str = Form(...),
    video_url: str = Form(...),
    live_url: Optional[str] = Form(None),
    readme: Optional[UploadFile] = File(None),
    ppt: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    team = await queries.get_team_or_404(db, team_id)
    submission = await submission_service.create_submission(
        db, current_user, team, now,
        title=title,
        description=description,
        github_url=github_url,
        video_url=video_url,
        live_url=live_url,
        readme=readme,
        ppt=ppt,
    )
    await db.commit()

    background_tasks.add_task(send_submission_received_email, current_user.email, team.name, submission.title)
    return submission


@router.patch("/submissions/{submission_id}", response_model=SubmissionOut)
async def update_submission(
    submission_id: int,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    github_url: Optional[str] = Form(None),
    video_url: Optional[str] = Form(None),
    live_url: Optional[str] = Form(None),
    remove_github_url: bool = Form(False),
    remove_video_url: bool = Form(False),
    remove_live_url: bool = Form(False),
    remove_readme: bool = Form(False),
    remove_ppt: bool = Form(False),
    readme: Optional[UploadFile] = File(None),
    ppt: Optional[UploadFile] = File(None),
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    submission = await queries.get_submission_or_404(db, submission_id)
    await submission_service.update_submission(
        db, current_user, submission, now,
        title=title,
        description=description,
        github_url=github_url,
        video_url=video_url,
        live_url=live_url,
        readme=readme,
        ppt=ppt,
        remove_github_url=remove_github_url,
        remove_video_url=remove_video_url,
        remove_live_url=remove_live_url,
        remove_readme=remove_readme,
        remove_ppt=remove_ppt,
    )
    await db.commit()
    return submission


@router.get("/hackathons/{hackathon_id}/submissions", response_model=List[SubmissionOut])
async def list_submissions(
    hackathon_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    hackathon = await queries.get_hackathon_or_404(db, hackathon_id)
    return await submission_service.list_submissions(db, current_user, hackathon, now)


@router.get("/submissions/{submission_id}", response_model=SubmissionOut)
async def get_submission(
    submission_id: int,
    current_user: User = Depends(require_user),
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return await submission_service.get_visible_submission(db, current_user, submission_id, now)
