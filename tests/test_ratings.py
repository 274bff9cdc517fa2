from datetime import timedelta

from sqlalchemy import select

from hackhub.models.assignment import AssignmentStatus
from hackhub.models.hackathon import HackathonStatus
from hackhub.models.rating import Rating
from hackhub.models.submission import Submission

from tests.conftest import T0, auth

DURING_JUDGING = T0 + timedelta(days=11)
SCORES = {"innovation": 8, "execution": 7, "ux_ui": 6, "feasibility": 9, "comments": "Solid."}


async def _judging_setup(make, clock, status=HackathonStatus.JUDGING):
    organizer = await make.organizer()
    hackathon = await make.hackathon(organizer, status=status)
    team = await make.team(hackathon, await make.user())
    submission = await make.submission(team)
    judge = await make.user()
    await make.judge(hackathon, judge, teams=[team])
    clock.set(DURING_JUDGING)
    return hackathon, team, submission, judge


async def test_rating_upsert_keeps_one_row(client, make, clock, fetch):
    _, _, submission, judge = await _judging_setup(make, clock)

    resp = await client.put(f"/submissions/{submission.id}/rating", json=SCORES, headers=auth(judge))
    assert resp.status_code == 200, resp.text
    assert resp.json()["total_score"] == 30

    resp = await client.put(
        f"/submissions/{submission.id}/rating",
        json=dict(SCORES, innovation=10, comments=None),
        headers=auth(judge),
    )
    assert resp.json()["total_score"] == 32

    ratings = await fetch(select(Rating).where(Rating.submission_id == submission.id))
    assert len(ratings) == 1
    assert ratings[0].total_score == 32
    assert ratings[0].comments is None


async def test_average_score_is_recomputed(client, make, clock, fetch):
    hackathon, team, submission, judge = await _judging_setup(make, clock)
    second_judge = await make.user()
    await make.judge(hackathon, second_judge, teams=[team])

    await client.put(f"/submissions/{submission.id}/rating", json=SCORES, headers=auth(judge))
    await client.put(
        f"/submissions/{submission.id}/rating",
        json={"innovation": 5, "execution": 5, "ux_ui": 5, "feasibility": 5},
        headers=auth(second_judge),
    )

    stored = (await fetch(select(Submission).where(Submission.id == submission.id)))[0]
    assert stored.rating_count == 2
    assert stored.average_score == 25.0


async def test_rating_requires_accepted_judge(client, make, clock):
    hackathon, _, submission, _ = await _judging_setup(make, clock)
    pending = await make.user()
    await make.judge(hackathon, pending, status=AssignmentStatus.PENDING)

    for user in (pending, await make.user()):
        resp = await client.put(f"/submissions/{submission.id}/rating", json=SCORES, headers=auth(user))
        assert resp.status_code == 403


async def test_rating_requires_judging_status(client, make, clock):
    _, _, submission, judge = await _judging_setup(make, clock, status=HackathonStatus.SUBMISSION_CLOSED)
    resp = await client.put(f"/submissions/{submission.id}/rating", json=SCORES, headers=auth(judge))
    assert resp.status_code == 422
    assert "judging phase" in resp.json()["detail"]


async def test_rating_after_judging_closed(client, make, clock):
    _, _, submission, judge = await _judging_setup(make, clock)
    clock.set(T0 + timedelta(days=12, seconds=1))
    resp = await client.put(f"/submissions/{submission.id}/rating", json=SCORES, headers=auth(judge))
    assert resp.status_code == 422
    assert "deadline has passed" in resp.json()["detail"]


async def test_rating_scores_are_bounded(client, make, clock):
    _, _, submission, judge = await _judging_setup(make, clock)
    for bad in (dict(SCORES, ux_ui=0), dict(SCORES, feasibility=11), dict(SCORES, comments="x" * 1001)):
        resp = await client.put(f"/submissions/{submission.id}/rating", json=bad, headers=auth(judge))
        assert resp.status_code == 422


async def test_submissions_to_rate_and_my_ratings(client, make, clock):
    hackathon, team, submission, judge = await _judging_setup(make, clock)
    unassigned_team = await make.team(hackathon, await make.user())
    await make.submission(unassigned_team)

    resp = await client.get(f"/hackathons/{hackathon.id}/submissions-to-rate", headers=auth(judge))
    assert [s["id"] for s in resp.json()] == [submission.id]

    await client.put(f"/submissions/{submission.id}/rating", json=SCORES, headers=auth(judge))
    resp = await client.get(f"/hackathons/{hackathon.id}/my-ratings", headers=auth(judge))
    assert [r["submission_id"] for r in resp.json()] == [submission.id]

    outsider = await make.user()
    assert (await client.get(f"/hackathons/{hackathon.id}/my-ratings", headers=auth(outsider))).status_code == 403
