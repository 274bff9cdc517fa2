"""
Submission workflow — create, update and visibility of team submissions.

A team has at most one submission.  The leader may create it and keep
editing it while the submission window is open; during the gap between
submission end and judging start the submission is locked.
"""

import asyncio
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import FrozenSet, List, Optional

from fastapi import UploadFile
from pydantic import HttpUrl, TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackhub.config import settings
from hackhub.errors import AuthorizationError, StateConflict, ValidationFailed
from hackhub.models.hackathon import Hackathon, HackathonStatus
from hackhub.models.submission import Submission
from hackhub.models.team import Team
from hackhub.models.user import User
from hackhub.services import queries
from hackhub.services.policy import Action, Relation, authorize, decide, load_relations
from hackhub.services.timeline import as_utc, ensure_open, submission_gate

logger = logging.getLogger(__name__)

README_EXTENSIONS = {".md", ".txt", ".pdf"}
PPT_EXTENSIONS = {".ppt", ".pptx", ".pdf"}

_url_adapter = TypeAdapter(HttpUrl)


# ── Input helpers ──

def _clean_url(field: str, value: Optional[str], required: bool = False) -> Optional[str]:
    value = (value or "").strip()
    if not value:
        if required:
            raise ValidationFailed(f"{field} is required.")
        return None
    try:
        _url_adapter.validate_python(value)
    except ValidationError:
        raise ValidationFailed(f"{field} must be a valid URL.")
    return value


async def _read_upload(field: str, upload: Optional[UploadFile], allowed: set) -> Optional[tuple]:
    """Validate an upload and return ``(extension, bytes)``; nothing is written yet."""
    if upload is None or not upload.filename:
        return None
    extension = os.path.splitext(upload.filename)[1].lower()
    if extension not in allowed:
        raise ValidationFailed(
            f"{field} must be one of: {', '.join(sorted(allowed))}."
        )
    content = await upload.read()
    if len(content) > settings.MAX_UPLOAD_MB * 1024 * 1024:
        raise ValidationFailed(f"{field} must not exceed {settings.MAX_UPLOAD_MB} MB.")
    return extension, content


async def _store(team_id: int, kind: str, upload: tuple) -> str:
    extension, content = upload
    directory = Path(settings.UPLOAD_DIR) / "submissions" / str(team_id)
    path = directory / f"{kind}-{uuid.uuid4().hex}{extension}"

    def write() -> None:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)

    await asyncio.to_thread(write)
    return str(path)


def _discard(path: Optional[str]) -> None:
    if path and os.path.isfile(path):
        os.remove(path)


async def _flush_or_discard(db: AsyncSession, written: List[str]) -> None:
    """Flush; on failure remove the files written for this request."""
    try:
        await db.flush()
    except Exception:
        for path in written:
            await asyncio.to_thread(_discard, path)
        raise


# ═══════════════════════════════════════════════════════════════
#  Create / update
# ═══════════════════════════════════════════════════════════════

async def create_submission(
    db: AsyncSession,
    user: User,
    team: Team,
    now: datetime,
    *,
    title: str,
    description: str,
    github_url: str,
    video_url: str,
    live_url: Optional[str] = None,
    readme: Optional[UploadFile] = None,
    ppt: Optional[UploadFile] = None,
) -> Submission:
    hackathon = await queries.get_hackathon_or_404(db, team.hackathon_id)
    authorize(Action.SUBMIT, await load_relations(db, user, hackathon, team))
    ensure_open(submission_gate(hackathon, now), "Submission")

    if await queries.team_submission(db, team.id) is not None:
        raise StateConflict("This team already submitted. Use the update endpoint to make changes.")

    title = (title or "").strip()
    description = (description or "").strip()
    if not title:
        raise ValidationFailed("title is required.")
    if not description:
        raise ValidationFailed("description is required.")
    github_url = _clean_url("github_url", github_url, required=True)
    video_url = _clean_url("video_url", video_url, required=True)
    live_url = _clean_url("live_url", live_url)
    readme_upload = await _read_upload("readme", readme, README_EXTENSIONS)
    ppt_upload = await _read_upload("ppt", ppt, PPT_EXTENSIONS)

    submission = Submission(
        hackathon_id=hackathon.id,
        team_id=team.id,
        title=title,
        description=description,
        github_url=github_url,
        video_url=video_url,
        live_url=live_url,
        rating_count=0,
        is_winner=False,
    )
    written = []
    if readme_upload:
        submission.readme_path = await _store(team.id, "readme", readme_upload)
        written.append(submission.readme_path)
    if ppt_upload:
        submission.ppt_path = await _store(team.id, "ppt", ppt_upload)
        written.append(submission.ppt_path)

    db.add(submission)
    await _flush_or_discard(db, written)
    logger.info("Submission %s created for team %s", submission.id, team.id)
    return submission


async def update_submission(
    db: AsyncSession,
    user: User,
    submission: Submission,
    now: datetime,
    *,
    title: Optional[str] = None,
    description: Optional[str] = None,
    github_url: Optional[str] = None,
    video_url: Optional[str] = None,
    live_url: Optional[str] = None,
    readme: Optional[UploadFile] = None,
    ppt: Optional[UploadFile] = None,
    remove_github_url: bool = False,
    remove_video_url: bool = False,
    remove_live_url: bool = False,
    remove_readme: bool = False,
    remove_ppt: bool = False,
) -> Submission:
    """Apply a partial update.

    ``None`` leaves a field untouched; the ``remove_*`` flags clear a URL or
    file (an empty string also clears a URL).  The merged result must keep
    at least one file or URL.
    """
    team = await queries.get_team_or_404(db, submission.team_id)
    hackathon = await queries.get_hackathon_or_404(db, submission.hackathon_id)
    authorize(Action.SUBMIT, await load_relations(db, user, hackathon, team))
    ensure_open(submission_gate(hackathon, now), "Submission")

    changes = {}
    if title is not None:
        if not title.strip():
            raise ValidationFailed("title cannot be empty.")
        changes["title"] = title.strip()
    if description is not None:
        if not description.strip():
            raise ValidationFailed("description cannot be empty.")
        changes["description"] = description.strip()
    for field, value, remove in (
        ("github_url", github_url, remove_github_url),
        ("video_url", video_url, remove_video_url),
        ("live_url", live_url, remove_live_url),
    ):
        if remove:
            changes[field] = None
        elif value is not None:
            changes[field] = _clean_url(field, value)

    readme_upload = await _read_upload("readme", readme, README_EXTENSIONS)
    ppt_upload = await _read_upload("ppt", ppt, PPT_EXTENSIONS)

    # Work out the merged content references before touching anything.
    merged = {
        "github_url": changes.get("github_url", submission.github_url),
        "video_url": changes.get("video_url", submission.video_url),
        "live_url": changes.get("live_url", submission.live_url),
        "readme_path": submission.readme_path if not remove_readme else None,
        "ppt_path": submission.ppt_path if not remove_ppt else None,
    }
    if not (any(merged.values()) or readme_upload or ppt_upload):
        raise StateConflict("A submission must keep at least one file or URL.")

    for field, value in changes.items():
        setattr(submission, field, value)

    old_readme, old_ppt = submission.readme_path, submission.ppt_path
    written = []
    if readme_upload:
        submission.readme_path = await _store(team.id, "readme", readme_upload)
        written.append(submission.readme_path)
    elif remove_readme:
        submission.readme_path = None
    if ppt_upload:
        submission.ppt_path = await _store(team.id, "ppt", ppt_upload)
        written.append(submission.ppt_path)
    elif remove_ppt:
        submission.ppt_path = None

    await _flush_or_discard(db, written)
    for old, new in ((old_readme, submission.readme_path), (old_ppt, submission.ppt_path)):
        if old and old != new:
            await asyncio.to_thread(_discard, old)

    logger.info("Submission %s updated by user %s", submission.id, user.id)
    return submission


# ═══════════════════════════════════════════════════════════════
#  Visibility
# ═══════════════════════════════════════════════════════════════

def _submission_closed(hackathon: Hackathon, now: datetime) -> bool:
    closes_at = as_utc(hackathon.submission_end or hackathon.submission_deadline)
    return closes_at is not None and as_utc(now) > closes_at


async def visible_team_ids(
    db: AsyncSession, user: User, hackathon: Hackathon, now: datetime
) -> Optional[FrozenSet[int]]:
    """Team ids whose submission ``user`` may see; ``None`` means every team."""
    relations = await load_relations(db, user, hackathon)
    if decide(Action.VIEW_ALL_SUBMISSIONS, relations).allowed:
        return None

    if Relation.PARTICIPANT in relations:
        if hackathon.status == HackathonStatus.RESULTS_PUBLISHED or _submission_closed(hackathon, now):
            return None
        own_team = await queries.team_for_user(db, hackathon.id, user.id)
        return frozenset({own_team.id})

    if relations & {Relation.MENTOR, Relation.SPONSOR} and hackathon.status == HackathonStatus.JUDGING:
        return None

    raise AuthorizationError("You cannot view submissions for this hackathon.")


async def list_submissions(
    db: AsyncSession, user: User, hackathon: Hackathon, now: datetime
) -> List[Submission]:
    scope = await visible_team_ids(db, user, hackathon, now)
    query = select(Submission).where(Submission.hackathon_id == hackathon.id)
    if scope is not None:
        query = query.where(Submission.team_id.in_(scope))
    result = await db.execute(query.order_by(Submission.id))
    return list(result.scalars().all())


async def get_visible_submission(
    db: AsyncSession, user: User, submission_id: int, now: datetime
) -> Submission:
    submission = await queries.get_submission_or_404(db, submission_id)
    hackathon = await queries.get_hackathon_or_404(db, submission.hackathon_id)
    scope = await visible_team_ids(db, user, hackathon, now)
    if scope is not None and submission.team_id not in scope:
        raise AuthorizationError("You cannot view this submission.")
    return submission
