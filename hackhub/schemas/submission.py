"""Submission and rating Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SubmissionOut(BaseModel):
    id: int
    hackathon_id: int
    team_id: int
    title: str
    description: Optional[str] = None
    github_url: Optional[str] = None
    video_url: Optional[str] = None
    live_url: Optional[str] = None
    readme_path: Optional[str] = None
    ppt_path: Optional[str] = None
    average_score: Optional[float] = None
    rating_count: int = 0
    is_winner: bool = False
    winner_position: Optional[int] = None

    model_config = {"from_attributes": True}


class RatingCreate(BaseModel):
    innovation: int = Field(ge=1, le=10)
    execution: int = Field(ge=1, le=10)
    ux_ui: int = Field(ge=1, le=10)
    feasibility: int = Field(ge=1, le=10)
    comments: Optional[str] = Field(None, max_length=1000)


class RatingOut(BaseModel):
    id: int
    submission_id: int
    judge_id: int
    innovation: int
    execution: int
    ux_ui: int
    feasibility: int
    total_score: int
    comments: Optional[str] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
