"""Team Pydantic schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field


class TeamCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)  # ignored for solo teams
    description: Optional[str] = None
    category_id: Optional[int] = None
    is_solo: bool = False


class TeamOut(BaseModel):
    id: int
    hackathon_id: int
    category_id: Optional[int] = None
    leader_id: int
    name: str
    description: Optional[str] = None
    is_locked: bool
    is_solo: bool
    member_ids: List[int] = []
    has_submission: bool = False

    model_config = {"from_attributes": True}


class LeadershipTransfer(BaseModel):
    new_leader_id: int


class MentoredTeamOut(TeamOut):
    hackathon_title: str
