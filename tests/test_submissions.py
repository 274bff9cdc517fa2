import io
import os
from datetime import timedelta

import pytest
from fastapi import UploadFile
from sqlalchemy import select

from hackhub.models.hackathon import HackathonStatus
from hackhub.models.submission import Submission
from hackhub.services import submissions as submission_service

from tests.conftest import T0, auth

FORM = {
    "title": "Carbon Lens",
    "description": "Emission tracking for small farms.",
    "github_url": "https://github.com/example/carbon-lens",
    "video_url": "https://youtu.be/carbon-lens",
}


async def _setup(make, **hackathon_fields):
    organizer = await make.organizer()
    hackathon = await make.hackathon(organizer, **hackathon_fields)
    leader, member = await make.user(), await make.user()
    team = await make.team(hackathon, leader, members=[member])
    return organizer, hackathon, team, leader, member


# ── Create ──

async def test_leader_creates_submission_with_readme(client, make, upload_dir):
    _, _, team, leader, _ = await _setup(make)

    resp = await client.post(
        f"/teams/{team.id}/submission",
        data=FORM,
        files={"readme": ("README.md", b"# Carbon Lens", "text/markdown")},
        headers=auth(leader),
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["title"] == "Carbon Lens"
    assert body["live_url"] is None
    assert body["readme_path"].startswith(str(upload_dir))
    assert os.path.isfile(body["readme_path"])


async def test_only_leader_submits(client, make):
    _, _, team, _, member = await _setup(make)
    resp = await client.post(f"/teams/{team.id}/submission", data=FORM, headers=auth(member))
    assert resp.status_code == 403


async def test_second_submission_is_a_conflict(client, make):
    _, _, team, leader, _ = await _setup(make)
    await make.submission(team)

    resp = await client.post(f"/teams/{team.id}/submission", data=FORM, headers=auth(leader))
    assert resp.status_code == 422
    assert "update endpoint" in resp.json()["detail"]


async def test_required_fields_and_urls(client, make):
    _, _, team, leader, _ = await _setup(make)

    missing = {k: v for k, v in FORM.items() if k != "video_url"}
    assert (await client.post(f"/teams/{team.id}/submission", data=missing, headers=auth(leader))).status_code == 422

    bad_url = dict(FORM, github_url="not a url")
    resp = await client.post(f"/teams/{team.id}/submission", data=bad_url, headers=auth(leader))
    assert resp.status_code == 422
    assert "github_url" in resp.json()["detail"]


async def test_upload_rules(client, make, monkeypatch):
    from hackhub.config import settings

    _, _, team, leader, _ = await _setup(make)

    resp = await client.post(
        f"/teams/{team.id}/submission",
        data=FORM,
        files={"ppt": ("deck.key", b"keynote", "application/octet-stream")},
        headers=auth(leader),
    )
    assert resp.status_code == 422
    assert ".pptx" in resp.json()["detail"]

    monkeypatch.setattr(settings, "MAX_UPLOAD_MB", 0)
    resp = await client.post(
        f"/teams/{team.id}/submission",
        data=FORM,
        files={"readme": ("README.txt", b"too big", "text/plain")},
        headers=auth(leader),
    )
    assert resp.status_code == 422
    assert "MB" in resp.json()["detail"]


async def test_create_after_deadline(client, make, clock):
    _, _, team, leader, _ = await _setup(make)
    clock.set(T0 + timedelta(days=11))

    resp = await client.post(f"/teams/{team.id}/submission", data=FORM, headers=auth(leader))
    assert resp.status_code == 422
    assert "deadline has passed" in resp.json()["detail"]


async def test_gap_period_locks_create_and_update(client, make, clock):
    # submission_end = T0+8d, judging_start = T0+10d
    _, _, team, leader, _ = await _setup(make)
    _, _, other_team, other_leader, _ = await _setup(make)
    submission = await make.submission(other_team)
    clock.set(T0 + timedelta(days=8, hours=1))

    resp = await client.post(f"/teams/{team.id}/submission", data=FORM, headers=auth(leader))
    assert resp.status_code == 422
    assert "locked during the gap period" in resp.json()["detail"]

    resp = await client.patch(
        f"/submissions/{submission.id}", data={"title": "Renamed"}, headers=auth(other_leader)
    )
    assert resp.status_code == 422
    assert "locked during the gap period" in resp.json()["detail"]


# ── Update ──

async def test_update_swaps_url(client, make, fetch):
    _, _, team, leader, _ = await _setup(make)
    submission = await make.submission(team)

    resp = await client.patch(
        f"/submissions/{submission.id}",
        data={"github_url": "https://gitlab.com/example/project", "live_url": "https://demo.example.com"},
        headers=auth(leader),
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["github_url"] == "https://gitlab.com/example/project"

    stored = (await fetch(select(Submission).where(Submission.id == submission.id)))[0]
    assert stored.live_url == "https://demo.example.com"
    assert stored.video_url == "https://youtu.be/demo"


async def test_update_cannot_strip_every_reference(client, make, fetch):
    _, _, team, leader, _ = await _setup(make)
    submission = await make.submission(team)

    resp = await client.patch(
        f"/submissions/{submission.id}",
        data={"remove_github_url": "true", "remove_video_url": "true"},
        headers=auth(leader),
    )
    assert resp.status_code == 422
    assert "at least one file or URL" in resp.json()["detail"]

    stored = (await fetch(select(Submission).where(Submission.id == submission.id)))[0]
    assert stored.github_url == "https://github.com/example/project"


async def test_update_replaces_url_with_file(client, make):
    _, _, team, leader, _ = await _setup(make)
    submission = await make.submission(team)

    resp = await client.patch(
        f"/submissions/{submission.id}",
        data={"remove_github_url": "true", "remove_video_url": "true"},
        files={"ppt": ("pitch.pdf", b"%PDF-1.4", "application/pdf")},
        headers=auth(leader),
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["github_url"] is None
    assert resp.json()["ppt_path"].endswith(".pdf")

    resp = await client.patch(
        f"/submissions/{submission.id}", data={"remove_ppt": "true"}, headers=auth(leader)
    )
    assert resp.status_code == 422


async def test_update_clears_optional_live_url(client, make, fetch):
    _, _, team, leader, _ = await _setup(make)
    submission = await make.submission(team, live_url="https://carbon-lens.example.com")

    resp = await client.patch(
        f"/submissions/{submission.id}", data={"remove_live_url": "true"}, headers=auth(leader)
    )
    assert resp.status_code == 200, resp.text

    stored = (await fetch(select(Submission).where(Submission.id == submission.id)))[0]
    assert stored.live_url is None
    assert stored.github_url == "https://github.com/example/project"


async def test_failed_write_leaves_no_upload_behind(db, make, monkeypatch, upload_dir):
    _, _, team, leader, _ = await _setup(make)

    async def failing_flush(*args, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(db, "flush", failing_flush)
    readme = UploadFile(file=io.BytesIO(b"# Carbon Lens"), filename="README.md")
    with pytest.raises(RuntimeError):
        await submission_service.create_submission(
            db, leader, team, T0,
            title="Carbon Lens",
            description="Emission tracking.",
            github_url="https://github.com/example/carbon-lens",
            video_url="https://youtu.be/carbon-lens",
            readme=readme,
        )

    stored = [p for p in upload_dir.rglob("*") if p.is_file()] if upload_dir.exists() else []
    assert stored == []


async def test_update_by_member_forbidden(client, make):
    _, _, team, _, member = await _setup(make)
    submission = await make.submission(team)
    resp = await client.patch(f"/submissions/{submission.id}", data={"title": "Mine"}, headers=auth(member))
    assert resp.status_code == 403


# ── Visibility ──

async def test_member_sees_own_submission_until_deadline(client, make, clock):
    organizer, hackathon, team, leader, _ = await _setup(make)
    own = await make.submission(team)
    other_team = await make.team(hackathon, await make.user())
    other = await make.submission(other_team)

    resp = await client.get(f"/hackathons/{hackathon.id}/submissions", headers=auth(leader))
    assert [s["id"] for s in resp.json()] == [own.id]
    assert (await client.get(f"/submissions/{other.id}", headers=auth(leader))).status_code == 403

    clock.set(T0 + timedelta(days=8, minutes=1))
    resp = await client.get(f"/hackathons/{hackathon.id}/submissions", headers=auth(leader))
    assert {s["id"] for s in resp.json()} == {own.id, other.id}

    resp = await client.get(f"/hackathons/{hackathon.id}/submissions", headers=auth(organizer))
    assert len(resp.json()) == 2


async def test_members_see_everything_once_results_are_published(client, make):
    _, hackathon, team, leader, _ = await _setup(make, status=HackathonStatus.RESULTS_PUBLISHED)
    await make.submission(team)
    await make.submission(await make.team(hackathon, await make.user()))

    resp = await client.get(f"/hackathons/{hackathon.id}/submissions", headers=auth(leader))
    assert len(resp.json()) == 2


async def test_mentors_and_sponsors_only_during_judging(client, make):
    from hackhub.models.user import RoleEnum

    organizer = await make.organizer()
    published = await make.hackathon(organizer)
    judging = await make.hackathon(organizer, status=HackathonStatus.JUDGING)
    mentor = await make.user()
    await make.mentor(published, mentor)
    await make.mentor(judging, mentor)
    sponsor = await make.user(roles=[RoleEnum.SPONSOR])

    for user in (mentor, sponsor):
        assert (await client.get(f"/hackathons/{published.id}/submissions", headers=auth(user))).status_code == 403
        assert (await client.get(f"/hackathons/{judging.id}/submissions", headers=auth(user))).status_code == 200


async def test_accepted_judge_sees_all_and_strangers_none(client, make):
    _, hackathon, team, _, _ = await _setup(make)
    await make.submission(team)
    judge, stranger = await make.user(), await make.user()
    await make.judge(hackathon, judge)

    assert len((await client.get(f"/hackathons/{hackathon.id}/submissions", headers=auth(judge))).json()) == 1
    assert (await client.get(f"/hackathons/{hackathon.id}/submissions", headers=auth(stranger))).status_code == 403
