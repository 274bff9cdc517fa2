"""
Timeline gate — decides which actions a hackathon allows at a given instant.

Every gate is a pure function of ``(hackathon, now)`` and returns a ``Gate``
that says *why* an action is blocked (not started, ended, gap period, not
configured) instead of a bare boolean.  The ``is_*`` predicates are thin
views over those results.

Hackathons created before the phase windows existed only carry the single
legacy deadlines (``team_deadline``, ``submission_deadline``,
``judging_deadline``); a window is used only when both of its boundaries
are set, otherwise the legacy deadline decides.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from hackhub.errors import TimelineViolation
from hackhub.models.hackathon import Hackathon, LifecyclePhase


class GateState(str, enum.Enum):
    OPEN = "open"
    NOT_STARTED = "not_started"
    ENDED = "ended"
    GAP = "gap"
    UNCONFIGURED = "unconfigured"


@dataclass(frozen=True)
class Gate:
    """Outcome of a gate evaluation; ``at`` is the boundary that decided it."""

    state: GateState
    at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.state is GateState.OPEN


# ═══════════════════════════════════════════════════════════════
#  Clock
# ═══════════════════════════════════════════════════════════════

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_now() -> datetime:
    """FastAPI dependency for the current instant; overridden in tests."""
    return utcnow()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalise to an aware UTC datetime (SQLite hands back naive values)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ═══════════════════════════════════════════════════════════════
#  Gates
# ═══════════════════════════════════════════════════════════════

def _window(
    start: Optional[datetime],
    end: Optional[datetime],
    legacy_deadline: Optional[datetime],
    now: datetime,
) -> Gate:
    start, end, legacy_deadline, now = (
        as_utc(start), as_utc(end), as_utc(legacy_deadline), as_utc(now)
    )
    if start is not None and end is not None:
        if now < start:
            return Gate(GateState.NOT_STARTED, start)
        if now > end:
            return Gate(GateState.ENDED, end)
        return Gate(GateState.OPEN, end)
    if legacy_deadline is not None:
        if now <= legacy_deadline:
            return Gate(GateState.OPEN, legacy_deadline)
        return Gate(GateState.ENDED, legacy_deadline)
    return Gate(GateState.UNCONFIGURED)


def team_joining_gate(hackathon: Hackathon, now: datetime) -> Gate:
    return _window(
        hackathon.team_joining_start, hackathon.team_joining_end, hackathon.team_deadline, now
    )


def submission_gate(hackathon: Hackathon, now: datetime) -> Gate:
    # The gap is reported first: after submission_end and before judging
    # starts the answer is "locked", not merely "closed".
    if is_in_submission_judging_gap(hackathon, now):
        return Gate(GateState.GAP, as_utc(hackathon.judging_start))
    return _window(
        hackathon.submission_start, effective_submission_end(hackathon), hackathon.submission_deadline, now
    )


def effective_submission_end(hackathon: Hackathon) -> Optional[datetime]:
    """``submission_end`` when set, otherwise ``judging_start`` (no gap)."""
    return hackathon.submission_end or hackathon.judging_start


def judging_gate(hackathon: Hackathon, now: datetime) -> Gate:
    return _window(
        hackathon.judging_start, hackathon.judging_end, hackathon.judging_deadline, now
    )


def judge_assignment_gate(hackathon: Hackathon, now: datetime) -> Gate:
    """Judges may only be assigned once submissions have closed."""
    closes_at = as_utc(hackathon.submission_deadline or hackathon.submission_end)
    if closes_at is None:
        return Gate(GateState.UNCONFIGURED)
    if as_utc(now) < closes_at:
        return Gate(GateState.NOT_STARTED, closes_at)
    return Gate(GateState.OPEN, closes_at)


# ═══════════════════════════════════════════════════════════════
#  Boolean predicates
# ═══════════════════════════════════════════════════════════════

def is_team_joining_open(hackathon: Hackathon, now: datetime) -> bool:
    return team_joining_gate(hackathon, now).is_open


def is_submission_open(hackathon: Hackathon, now: datetime) -> bool:
    return submission_gate(hackathon, now).is_open


def is_judging_open(hackathon: Hackathon, now: datetime) -> bool:
    return judging_gate(hackathon, now).is_open


def is_in_submission_judging_gap(hackathon: Hackathon, now: datetime) -> bool:
    closed_at = as_utc(hackathon.submission_end or hackathon.submission_deadline)
    judging_start = as_utc(hackathon.judging_start)
    if closed_at is None or judging_start is None:
        return False
    return closed_at < as_utc(now) < judging_start


def can_mentor_access(hackathon: Hackathon, now: datetime) -> bool:
    """Mentors keep access during their window and until judging begins."""
    now = as_utc(now)
    start = as_utc(hackathon.mentor_assignment_start)
    end = as_utc(hackathon.mentor_assignment_end)
    judging_start = as_utc(hackathon.judging_start)

    if start is not None and end is not None and start <= now <= end:
        return True
    if judging_start is not None:
        return now < judging_start
    if end is None:
        judging_deadline = as_utc(hackathon.judging_deadline)
        return judging_deadline is None or now < judging_deadline
    return False


# ═══════════════════════════════════════════════════════════════
#  Derived phase
# ═══════════════════════════════════════════════════════════════

def current_phase(hackathon: Hackathon, now: datetime) -> LifecyclePhase:
    """Single phase computed from timestamps only (``status`` is ignored)."""
    now = as_utc(now)

    if hackathon.team_joining_start is None:
        # Legacy hackathon: walk the single deadlines in order.
        for phase, deadline in (
            (LifecyclePhase.TEAM_JOINING, hackathon.team_deadline),
            (LifecyclePhase.SUBMISSION, hackathon.submission_deadline),
            (LifecyclePhase.JUDGING, hackathon.judging_deadline),
        ):
            if deadline is not None and now <= as_utc(deadline):
                return phase
        return LifecyclePhase.ENDED

    judging_start = as_utc(hackathon.judging_start)
    judging_end = as_utc(hackathon.judging_end)
    if judging_end is not None and now > judging_end:
        return LifecyclePhase.ENDED
    if judging_start is not None and now >= judging_start:
        return LifecyclePhase.JUDGING
    if is_in_submission_judging_gap(hackathon, now):
        return LifecyclePhase.SUBMISSION_JUDGING_GAP
    if is_submission_open(hackathon, now):
        return LifecyclePhase.SUBMISSION
    if _window(hackathon.mentor_assignment_start, hackathon.mentor_assignment_end, None, now).is_open:
        return LifecyclePhase.MENTOR_ASSIGNMENT
    if is_team_joining_open(hackathon, now):
        return LifecyclePhase.TEAM_JOINING

    # Between windows: stay in the latest phase that has begun.
    for phase, start in (
        (LifecyclePhase.SUBMISSION, hackathon.submission_start),
        (LifecyclePhase.MENTOR_ASSIGNMENT, hackathon.mentor_assignment_start),
        (LifecyclePhase.TEAM_JOINING, hackathon.team_joining_start),
    ):
        if start is not None and now >= as_utc(start):
            return phase
    return LifecyclePhase.UPCOMING


def sync_legacy_deadlines(hackathon: Hackathon) -> None:
    """Re-derive the legacy deadline aliases from the window boundaries."""
    if hackathon.mentor_assignment_start is not None:
        hackathon.team_deadline = hackathon.mentor_assignment_start
    if hackathon.judging_start is not None:
        hackathon.submission_deadline = hackathon.judging_start
    if hackathon.judging_end is not None:
        hackathon.judging_deadline = hackathon.judging_end


# (earlier, later, strict)
_ORDERING = (
    ("team_joining_start", "team_joining_end", False),
    ("team_joining_end", "mentor_assignment_start", False),
    ("mentor_assignment_start", "mentor_assignment_end", False),
    ("mentor_assignment_end", "judging_start", False),
    ("team_joining_start", "submission_start", False),
    ("submission_start", "submission_end", False),
    ("submission_end", "judging_start", False),
    ("judging_start", "judging_end", True),
    ("judging_end", "winner_announcement_time", False),
)


def timeline_errors(values: Dict[str, Optional[datetime]]) -> List[str]:
    """Ordering violations in a mapping of timeline fields (unset pairs are skipped)."""
    values = dict(values)
    if values.get("submission_end") is None:
        values["submission_end"] = values.get("judging_start")

    errors = []
    for earlier, later, strict in _ORDERING:
        a, b = as_utc(values.get(earlier)), as_utc(values.get(later))
        if a is None or b is None:
            continue
        if (a >= b) if strict else (a > b):
            relation = "before" if strict else "on or before"
            errors.append(f"{earlier} must be {relation} {later}.")
    return errors


# ═══════════════════════════════════════════════════════════════
#  Gate → error
# ═══════════════════════════════════════════════════════════════

def _fmt(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC") if value else "an unknown time"


def ensure_open(gate: Gate, action: str) -> None:
    """Raise a ``TimelineViolation`` describing why ``action`` is blocked."""
    if gate.state is GateState.OPEN:
        return
    if gate.state is GateState.NOT_STARTED:
        raise TimelineViolation(f"{action} has not started yet. It opens at {_fmt(gate.at)}.")
    if gate.state is GateState.ENDED:
        raise TimelineViolation(f"{action} deadline has passed ({_fmt(gate.at)}).")
    if gate.state is GateState.GAP:
        raise TimelineViolation(
            "Submissions are locked during the gap period between submission end "
            f"and judging start (until {_fmt(gate.at)})."
        )
    raise TimelineViolation(f"{action} timeline is not configured for this hackathon.")
