"""Hackathon, category and organization Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from hackhub.models.hackathon import HackathonStatus, HackathonType, LifecyclePhase
from hackhub.services.timeline import timeline_errors


class HackathonCreate(BaseModel):
    organization_id: Optional[int] = None
    title: str = Field(min_length=1, max_length=255)
    description: str
    type: HackathonType
    location: Optional[str] = Field(None, max_length=500)
    status: HackathonStatus = HackathonStatus.DRAFT
    max_team_size: int = Field(4, ge=1, le=10)

    # ── Timeline ──
    team_joining_start: datetime
    team_joining_end: datetime
    mentor_assignment_start: datetime
    mentor_assignment_end: datetime
    submission_start: datetime
    submission_end: Optional[datetime] = None  # defaults to judging_start
    judging_start: datetime
    judging_end: datetime
    submission_judging_gap_hours: int = Field(24, ge=0)
    winner_announcement_time: Optional[datetime] = None

    @model_validator(mode="after")
    def check_timeline(self):
        if self.status not in (HackathonStatus.DRAFT, HackathonStatus.PUBLISHED):
            raise ValueError("A new hackathon starts as draft or published.")
        errors = timeline_errors(self.model_dump())
        if errors:
            raise ValueError(" ".join(errors))
        return self


class HackathonUpdate(BaseModel):
    """Partial update; the merged timeline is re-validated by the router."""
    organization_id: Optional[int] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[HackathonType] = None
    location: Optional[str] = Field(None, max_length=500)
    status: Optional[HackathonStatus] = None
    max_team_size: Optional[int] = Field(None, ge=1, le=10)

    team_joining_start: Optional[datetime] = None
    team_joining_end: Optional[datetime] = None
    mentor_assignment_start: Optional[datetime] = None
    mentor_assignment_end: Optional[datetime] = None
    submission_start: Optional[datetime] = None
    submission_end: Optional[datetime] = None
    judging_start: Optional[datetime] = None
    judging_end: Optional[datetime] = None
    submission_judging_gap_hours: Optional[int] = Field(None, ge=0)
    winner_announcement_time: Optional[datetime] = None


class HackathonOut(BaseModel):
    id: int
    title: str
    slug: str
    description: Optional[str] = None
    type: HackathonType
    location: Optional[str] = None
    status: HackathonStatus
    lifecycle_status: Optional[LifecyclePhase] = None
    phase: Optional[LifecyclePhase] = None
    max_team_size: int
    created_by: int
    organization_id: Optional[int] = None

    team_joining_start: Optional[datetime] = None
    team_joining_end: Optional[datetime] = None
    mentor_assignment_start: Optional[datetime] = None
    mentor_assignment_end: Optional[datetime] = None
    submission_start: Optional[datetime] = None
    submission_end: Optional[datetime] = None
    submission_judging_gap_hours: Optional[int] = None
    judging_start: Optional[datetime] = None
    judging_end: Optional[datetime] = None
    winner_announcement_time: Optional[datetime] = None

    team_deadline: Optional[datetime] = None
    submission_deadline: Optional[datetime] = None
    judging_deadline: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    max_teams: Optional[int] = Field(None, ge=1)


class CategoryOut(BaseModel):
    id: int
    hackathon_id: int
    name: str
    description: Optional[str] = None
    max_teams: Optional[int] = None

    model_config = {"from_attributes": True}


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class OrganizationOut(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    owner_id: int

    model_config = {"from_attributes": True}


class WinnerOut(BaseModel):
    position: int
    submission_id: int
    team_id: int
    team_name: str
    submission_title: str
    average_score: Optional[float] = None
    rating_count: int = 0
