"""User model — identity plus the role set used for capability checks."""

import enum
import json
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from hackhub.database import Base


class RoleEnum(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    ORGANIZER = "organizer"
    PARTICIPANT = "participant"
    JUDGE = "judge"
    MENTOR = "mentor"
    SPONSOR = "sponsor"


class User(Base):
    __tablename__ = "users"

    # ── Identity ──
    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255))

    # ── Roles (JSON list stored as Text for SQLite compat) ──
    roles_json: Mapped[str] = mapped_column(Text, default='["participant"]')

    # ── Timestamps ──
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── JSON helpers ──
    @property
    def roles(self) -> List[str]:
        try:
            return json.loads(self.roles_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    @roles.setter
    def roles(self, value: Iterable[str]) -> None:
        self.roles_json = json.dumps([getattr(r, "value", r) for r in value])

    def has_role(self, role) -> bool:
        return getattr(role, "value", role) in self.roles
