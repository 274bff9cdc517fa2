"""Hackathon model — status flag, phase windows and legacy deadlines."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from hackhub.database import Base


class HackathonType(str, enum.Enum):
    ONLINE = "online"
    IN_PERSON = "in_person"
    HYBRID = "hybrid"


class HackathonStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    REGISTRATION_CLOSED = "registration_closed"
    SUBMISSION_CLOSED = "submission_closed"
    JUDGING = "judging"
    RESULTS_PUBLISHED = "results_published"


class LifecyclePhase(str, enum.Enum):
    UPCOMING = "upcoming"
    TEAM_JOINING = "team_joining"
    MENTOR_ASSIGNMENT = "mentor_assignment"
    SUBMISSION = "submission"
    SUBMISSION_JUDGING_GAP = "submission_judging_gap"
    JUDGING = "judging"
    ENDED = "ended"


class Hackathon(Base):
    __tablename__ = "hackathons"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    created_by: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    organization_id: Mapped[Optional[int]] = mapped_column(ForeignKey("organizations.id"))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[HackathonType] = mapped_column(Enum(HackathonType), default=HackathonType.ONLINE)
    location: Mapped[Optional[str]] = mapped_column(String(500))

    # ── Status (organizer controlled) ──
    status: Mapped[HackathonStatus] = mapped_column(
        Enum(HackathonStatus), default=HackathonStatus.DRAFT
    )
    # ── Phase derived from the timeline, refreshed by update_lifecycle_status.py ──
    lifecycle_status: Mapped[Optional[LifecyclePhase]] = mapped_column(Enum(LifecyclePhase))

    # ── Team constraints ──
    max_team_size: Mapped[int] = mapped_column(Integer, default=4)

    # ── Timeline windows ──
    team_joining_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    team_joining_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    mentor_assignment_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    mentor_assignment_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    submission_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    submission_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    submission_judging_gap_hours: Mapped[int] = mapped_column(Integer, default=24)
    judging_start: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    judging_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    winner_announcement_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # ── Legacy single deadlines, kept in sync with the windows ──
    team_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    submission_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    judging_deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    # ── Set once judges were reminded of the judging deadline ──
    judging_reminder_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
