"""
HackHub – SQLAlchemy ORM models package.

Imports all model classes so the app and the test suite can register
every table through a single ``import hackhub.models``.
"""

from hackhub.models.user import User                         # noqa: F401
from hackhub.models.organization import Organization         # noqa: F401
from hackhub.models.hackathon import Hackathon               # noqa: F401
from hackhub.models.category import Category                 # noqa: F401
from hackhub.models.team import Team                         # noqa: F401
from hackhub.models.team_membership import TeamMembership    # noqa: F401
from hackhub.models.assignment import (                      # noqa: F401
    HackathonJudge,
    HackathonMentor,
    TeamJudge,
    TeamMentor,
)
from hackhub.models.submission import Submission             # noqa: F401
from hackhub.models.rating import Rating                     # noqa: F401
from hackhub.models.notification import Notification         # noqa: F401
