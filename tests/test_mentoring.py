from datetime import timedelta

from hackhub.models.assignment import AssignmentStatus

from tests.conftest import T0, auth


async def _mentored(make):
    hackathon = await make.hackathon(await make.organizer())
    team = await make.team(hackathon, await make.user())
    other_team = await make.team(hackathon, await make.user())
    mentor = await make.user()
    await make.mentor(hackathon, mentor, teams=[team])
    return hackathon, team, other_team, mentor


async def test_mentor_lists_accepted_teams_until_judging(client, make, clock):
    hackathon, team, _, mentor = await _mentored(make)

    for moment in (T0 + timedelta(days=6), T0 + timedelta(days=9)):
        clock.set(moment)
        resp = await client.get("/mentor/teams", headers=auth(mentor))
        assert resp.status_code == 200
        assert [(t["id"], t["hackathon_title"]) for t in resp.json()] == [(team.id, hackathon.title)]

    clock.set(T0 + timedelta(days=10))
    assert (await client.get("/mentor/teams", headers=auth(mentor))).json() == []


async def test_pending_mentor_sees_nothing(client, make):
    hackathon = await make.hackathon(await make.organizer())
    team = await make.team(hackathon, await make.user())
    invitee = await make.user()
    await make.mentor(hackathon, invitee, teams=[team], status=AssignmentStatus.PENDING)

    assert (await client.get("/mentor/teams", headers=auth(invitee))).json() == []
    assert (await client.get(f"/mentor/teams/{team.id}", headers=auth(invitee))).status_code == 403


async def test_team_detail_requires_assignment_and_access(client, make, clock):
    _, team, other_team, mentor = await _mentored(make)

    clock.set(T0 + timedelta(days=6))
    resp = await client.get(f"/mentor/teams/{team.id}", headers=auth(mentor))
    assert resp.status_code == 200
    assert resp.json()["member_ids"] == [team.leader_id]
    assert (await client.get(f"/mentor/teams/{other_team.id}", headers=auth(mentor))).status_code == 403

    clock.set(T0 + timedelta(days=10, hours=1))
    resp = await client.get(f"/mentor/teams/{team.id}", headers=auth(mentor))
    assert resp.status_code == 422
    assert "ended" in resp.json()["detail"]
