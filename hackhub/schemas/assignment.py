"""Mentor / judge assignment Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from hackhub.models.assignment import AssignmentStatus


class MentorAssign(BaseModel):
    team_ids: List[int] = Field(min_length=1)
    mentor_id: int


class MentorCategoryAssign(BaseModel):
    category_id: int
    mentor_ids: List[int] = Field(min_length=1)


class MentorRemove(BaseModel):
    team_ids: List[int] = Field(min_length=1)
    mentor_ids: List[int] = Field(min_length=1)


class JudgeAssign(BaseModel):
    team_ids: List[int] = Field(min_length=1)
    judge_ids: List[int] = Field(min_length=1)


class AssignmentOut(BaseModel):
    id: int
    team_id: int
    user_id: int
    status: AssignmentStatus

    model_config = {"from_attributes": True}


class PendingRequestOut(BaseModel):
    assignment_id: int
    type: str
    team_id: int
    team_name: str
    hackathon_id: int
    hackathon_title: str
    requested_at: Optional[datetime] = None


class StaffOut(BaseModel):
    user_id: int
    full_name: str
    email: str
    status: AssignmentStatus
    team_count: int = 0
