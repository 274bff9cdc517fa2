"""Judge rating model — one row per (submission, judge)."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from hackhub.database import Base


class Rating(Base):
    __tablename__ = "ratings"
    __table_args__ = (UniqueConstraint("submission_id", "judge_id", name="uq_rating_submission_judge"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    submission_id: Mapped[int] = mapped_column(
        ForeignKey("submissions.id", ondelete="CASCADE"), nullable=False
    )
    judge_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)

    # ── Dimension scores (1-10 each) ──
    innovation: Mapped[int] = mapped_column(Integer, nullable=False)
    execution: Mapped[int] = mapped_column(Integer, nullable=False)
    ux_ui: Mapped[int] = mapped_column(Integer, nullable=False)
    feasibility: Mapped[int] = mapped_column(Integer, nullable=False)
    total_score: Mapped[int] = mapped_column(Integer, nullable=False)

    comments: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
