from datetime import timedelta

import pytest
from sqlalchemy import select

from hackhub.models.assignment import AssignmentStatus
from hackhub.models.hackathon import Hackathon, HackathonStatus, LifecyclePhase
from hackhub.models.submission import Submission
from hackhub.models.team import Team
from hackhub.models.team_membership import TeamMembership
from hackhub.models.user import RoleEnum, User
from hackhub.services import notifications
from hackhub.services.lifecycle import judging_reminders, refresh_lifecycle

from tests.conftest import T0, auth, timeline


def payload(**overrides) -> dict:
    data = {
        "title": "Green Code Jam",
        "description": "Sustainable software.",
        "type": "online",
        **{k: v.isoformat() for k, v in timeline().items()},
    }
    data.update(overrides)
    return data


def _ids(resp) -> set:
    return {h["id"] for h in resp.json()}


# ── Create ──

async def test_create_syncs_legacy_deadlines(client, make):
    organizer = await make.organizer()
    resp = await client.post("/hackathons", json=payload(submission_end=None), headers=auth(organizer))
    assert resp.status_code == 201, resp.text
    body = resp.json()

    assert body["slug"] == "green-code-jam"
    assert body["status"] == "draft"
    assert body["created_by"] == organizer.id
    assert body["submission_end"] is None
    assert body["team_deadline"] == body["mentor_assignment_start"]
    assert body["submission_deadline"] == body["judging_start"]
    assert body["judging_deadline"] == body["judging_end"]
    assert body["phase"] == "submission"


async def test_create_generates_unique_slug(client, make):
    organizer = await make.organizer()
    await client.post("/hackathons", json=payload(), headers=auth(organizer))
    resp = await client.post("/hackathons", json=payload(), headers=auth(organizer))
    assert resp.json()["slug"] == "green-code-jam-1"


async def test_create_requires_organizer(client, make):
    resp = await client.post("/hackathons", json=payload(), headers=auth(await make.user()))
    assert resp.status_code == 403


async def test_create_rejects_unordered_timeline(client, make):
    organizer = await make.organizer()
    bad = payload(judging_end=(T0 + timedelta(days=9)).isoformat())
    resp = await client.post("/hackathons", json=bad, headers=auth(organizer))
    assert resp.status_code == 422


async def test_create_under_someone_elses_organization(client, make):
    owner, other = await make.organizer(), await make.organizer()
    resp = await client.post("/organizations", json={"name": "Green Guild"}, headers=auth(owner))
    assert resp.status_code == 201
    organization_id = resp.json()["id"]

    resp = await client.post("/hackathons", json=payload(organization_id=organization_id), headers=auth(other))
    assert resp.status_code == 403
    resp = await client.post("/hackathons", json=payload(organization_id=organization_id), headers=auth(owner))
    assert resp.status_code == 201


# ── Read ──

async def test_drafts_hidden_from_others(client, make):
    organizer = await make.organizer()
    draft = await make.hackathon(organizer, status=HackathonStatus.DRAFT)
    published = await make.hackathon(organizer)
    admin = await make.user(roles=[RoleEnum.SUPER_ADMIN])

    assert _ids(await client.get("/hackathons")) == {published.id}
    assert _ids(await client.get("/hackathons", headers=auth(await make.user()))) == {published.id}
    assert _ids(await client.get("/hackathons", headers=auth(organizer))) == {draft.id, published.id}
    assert _ids(await client.get("/hackathons", headers=auth(admin))) == {draft.id, published.id}

    assert (await client.get(f"/hackathons/{draft.id}")).status_code == 404
    assert (await client.get(f"/hackathons/{draft.id}", headers=auth(organizer))).status_code == 200


# ── Update / delete ──

async def test_update_revalidates_and_resyncs(client, make, fetch):
    organizer = await make.organizer()
    hackathon = await make.hackathon(organizer)

    resp = await client.patch(
        f"/hackathons/{hackathon.id}",
        json={"judging_start": (T0 + timedelta(days=13)).isoformat()},
        headers=auth(organizer),
    )
    assert resp.status_code == 422

    new_start = T0 + timedelta(days=11)
    resp = await client.patch(
        f"/hackathons/{hackathon.id}",
        json={"judging_start": new_start.isoformat(), "status": "judging"},
        headers=auth(organizer),
    )
    assert resp.status_code == 200, resp.text

    stored = (await fetch(select(Hackathon).where(Hackathon.id == hackathon.id)))[0]
    assert stored.status == HackathonStatus.JUDGING
    assert stored.submission_deadline.replace(tzinfo=None) == new_start.replace(tzinfo=None)


async def test_update_moves_defaulted_submission_end_with_judging(client, make, clock):
    organizer = await make.organizer()
    resp = await client.post("/hackathons", json=payload(submission_end=None), headers=auth(organizer))
    hackathon_id = resp.json()["id"]

    resp = await client.patch(
        f"/hackathons/{hackathon_id}",
        json={"judging_start": (T0 + timedelta(days=9)).isoformat()},
        headers=auth(organizer),
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["submission_end"] is None

    resp = await client.patch(
        f"/hackathons/{hackathon_id}",
        json={"judging_start": (T0 + timedelta(days=11)).isoformat()},
        headers=auth(organizer),
    )
    assert resp.status_code == 200, resp.text

    clock.set(T0 + timedelta(days=10, hours=12))
    assert (await client.get(f"/hackathons/{hackathon_id}", headers=auth(organizer))).json()["phase"] == "submission"


async def test_update_requires_owner(client, make):
    hackathon = await make.hackathon(await make.organizer())
    resp = await client.patch(
        f"/hackathons/{hackathon.id}", json={"title": "Mine"}, headers=auth(await make.organizer())
    )
    assert resp.status_code == 403


async def test_delete_only_without_teams(client, make):
    organizer = await make.organizer()
    busy = await make.hackathon(organizer)
    await make.team(busy, await make.user())
    empty = await make.hackathon(organizer)
    await make.category(empty)

    assert (await client.delete(f"/hackathons/{busy.id}", headers=auth(organizer))).status_code == 422
    assert (await client.delete(f"/hackathons/{empty.id}", headers=auth(organizer))).status_code == 204
    assert (await client.get(f"/hackathons/{empty.id}")).status_code == 404


# ── Categories ──

async def test_categories(client, make):
    organizer = await make.organizer()
    hackathon = await make.hackathon(organizer)

    resp = await client.post(
        f"/hackathons/{hackathon.id}/categories",
        json={"name": "Health", "max_teams": 5},
        headers=auth(organizer),
    )
    assert resp.status_code == 201
    category_id = resp.json()["id"]

    resp = await client.get(f"/hackathons/{hackathon.id}/categories")
    assert [c["name"] for c in resp.json()] == ["Health"]

    await make.team(hackathon, await make.user(), category_id=category_id)
    resp = await client.delete(f"/hackathons/{hackathon.id}/categories/{category_id}", headers=auth(organizer))
    assert resp.status_code == 422


# ── Winners / lifecycle ──

async def _scored_hackathon(make, status=HackathonStatus.JUDGING):
    organizer = await make.organizer()
    hackathon = await make.hackathon(organizer, status=status)
    scores = [20.0, 35.5, None, 31.0, 12.0]
    submissions = []
    for score in scores:
        team = await make.team(hackathon, await make.user())
        submissions.append(await make.submission(team, average_score=score, rating_count=1 if score else 0))
    return organizer, hackathon, submissions


async def test_announce_winners(client, make, clock, fetch):
    organizer, hackathon, submissions = await _scored_hackathon(make)

    resp = await client.post(f"/hackathons/{hackathon.id}/winners", headers=auth(organizer))
    assert resp.status_code == 422
    assert "after the judging deadline" in resp.json()["detail"]

    clock.set(T0 + timedelta(days=13))
    resp = await client.post(f"/hackathons/{hackathon.id}/winners", headers=auth(organizer))
    assert resp.status_code == 200, resp.text
    assert [(w["position"], w["submission_id"]) for w in resp.json()] == [
        (1, submissions[1].id),
        (2, submissions[3].id),
        (3, submissions[0].id),
    ]

    stored = (await fetch(select(Hackathon).where(Hackathon.id == hackathon.id)))[0]
    assert stored.status == HackathonStatus.RESULTS_PUBLISHED
    assert stored.lifecycle_status == LifecyclePhase.ENDED
    losers = await fetch(select(Submission).where(Submission.is_winner.is_(False)))
    assert len(losers) == 2

    resp = await client.get(f"/hackathons/{hackathon.id}/winners")
    assert len(resp.json()) == 3


async def test_announce_requires_judging_status_and_scores(client, make, clock):
    organizer, published, _ = await _scored_hackathon(make, status=HackathonStatus.PUBLISHED)
    clock.set(T0 + timedelta(days=13))
    assert (await client.post(f"/hackathons/{published.id}/winners", headers=auth(organizer))).status_code == 422

    unscored = await make.hackathon(organizer, status=HackathonStatus.JUDGING)
    await make.submission(await make.team(unscored, await make.user()))
    resp = await client.post(f"/hackathons/{unscored.id}/winners", headers=auth(organizer))
    assert resp.status_code == 422
    assert "No submissions with scores" in resp.json()["detail"]


async def test_refresh_lifecycle(db, make, fetch):
    organizer = await make.organizer()
    running = await make.hackathon(organizer)
    draft = await make.hackathon(organizer, status=HackathonStatus.DRAFT)
    _, due, _ = await _scored_hackathon(make)
    async with db.begin():
        (await db.get(Hackathon, due.id)).winner_announcement_time = T0 + timedelta(days=12, hours=1)

    refresh = await refresh_lifecycle(db, T0 + timedelta(days=12, hours=2))
    await db.commit()
    assert refresh.changed == 2
    assert [h.id for h in refresh.announced] == [due.id]

    stored = {h.id: h for h in await fetch(select(Hackathon))}
    assert stored[running.id].lifecycle_status == LifecyclePhase.ENDED
    assert stored[draft.id].lifecycle_status is None
    assert stored[due.id].status == HackathonStatus.RESULTS_PUBLISHED


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def record(recipient_email, subject, body):
        sent.append((recipient_email, subject, body))

    monkeypatch.setattr(notifications, "_send", record)
    return sent


async def test_announce_emails_every_participant(client, make, clock, fetch, outbox):
    organizer, hackathon, submissions = await _scored_hackathon(make)
    teammate = await make.user()
    await make.save(TeamMembership(team_id=submissions[1].team_id, user_id=teammate.id))
    leader_email = (await fetch(
        select(User.email).join(Team, Team.leader_id == User.id).where(Team.id == submissions[1].team_id)
    ))[0]

    clock.set(T0 + timedelta(days=13))
    resp = await client.post(f"/hackathons/{hackathon.id}/winners", headers=auth(organizer))
    assert resp.status_code == 200, resp.text

    assert len(outbox) == 6
    assert {subject for _, subject, _ in outbox} == {f"Results published for {hackathon.title}"}
    bodies = {email: body for email, _, body in outbox}
    assert "placed <strong>#1</strong>" in bodies[leader_email] and "As team lead" in bodies[leader_email]
    assert "placed <strong>#1</strong>" in bodies[teammate.email] and "As team lead" not in bodies[teammate.email]
    assert sum("Congratulations" in body for body in bodies.values()) == 4


async def test_judging_reminders_once_per_hackathon(db, make):
    organizer = await make.organizer()
    judging = await make.hackathon(organizer, status=HackathonStatus.JUDGING)
    published = await make.hackathon(organizer)
    accepted, pending, other = await make.user(), await make.user(), await make.user()
    await make.judge(judging, accepted)
    await make.judge(judging, pending, status=AssignmentStatus.PENDING)
    await make.judge(published, other)

    assert await judging_reminders(db, T0 + timedelta(days=10)) == []

    now = T0 + timedelta(days=11, hours=12)
    reminders = await judging_reminders(db, now)
    await db.commit()
    assert [(r.email, r.hackathon_id) for r in reminders] == [(accepted.email, judging.id)]
    assert reminders[0].deadline == T0 + timedelta(days=12)

    assert await judging_reminders(db, now + timedelta(hours=1)) == []


async def test_judging_reminder_email(outbox):
    await notifications.send_judging_reminder_email("judge@example.com", 7, "Green Code Jam", T0)

    [(recipient, subject, body)] = outbox
    assert recipient == "judge@example.com"
    assert subject == "Judging deadline reminder - Green Code Jam"
    assert "01 Mar 2026, 12:00 UTC" in body
    assert "/hackathons/7/judging" in body
