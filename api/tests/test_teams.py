"""Tests for direct team administration endpoints."""
from datetime import date

from teamhub.core.time import utc_today
from teamhub.models.team_member import TeamMembership


def test_list_teams_with_member_count(client, db_session, member_headers, team_a, team_b, member_user):
    db_session.add(TeamMembership(team_id=team_a.team_id, user_id=member_user.user_id,
                                  start_date=date(2024, 1, 1), is_active=True))
    db_session.commit()

    response = client.get("/teams/", headers=member_headers)
    assert response.status_code == 200
    counts = {t["name"]: t["member_count"] for t in response.json()}
    assert counts == {"Alpha": 1, "Bravo": 0}


def test_create_team(client, admin_headers, lead_user):
    response = client.post(
        "/teams/",
        headers=admin_headers,
        json={"name": "Delta", "description": "Fourth", "lead_id": lead_user.user_id},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Delta"
    assert data["lead_id"] == lead_user.user_id


def test_create_team_requires_super_admin(client, lead_headers):
    response = client.post("/teams/", headers=lead_headers, json={"name": "Delta"})
    assert response.status_code == 403


def test_duplicate_name_rejected(client, admin_headers, team_a):
    response = client.post("/teams/", headers=admin_headers, json={"name": "ALPHA"})
    assert response.status_code == 400
    assert response.json()["error"] == "conflict"


def test_unknown_lead_rejected(client, admin_headers):
    response = client.post("/teams/", headers=admin_headers, json={"name": "Delta", "lead_id": 999})
    assert response.status_code == 400


def test_update_team(client, admin_headers, team_a, other_lead_user):
    response = client.patch(
        f"/teams/{team_a.team_id}",
        headers=admin_headers,
        json={"description": "Updated", "lead_id": other_lead_user.user_id},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Alpha"
    assert data["description"] == "Updated"
    assert data["lead_id"] == other_lead_user.user_id


def test_rename_to_existing_name(client, admin_headers, team_a, team_b):
    response = client.patch(f"/teams/{team_a.team_id}", headers=admin_headers, json={"name": "Bravo"})
    assert response.status_code == 400


def test_team_name_whitespace_stripped(client, admin_headers, team_a, team_b):
    response = client.post("/teams/", headers=admin_headers, json={"name": "  Delta  "})
    assert response.status_code == 201
    assert response.json()["name"] == "Delta"

    response = client.patch(f"/teams/{team_a.team_id}", headers=admin_headers, json={"name": " bravo "})
    assert response.status_code == 400

    response = client.post("/teams/", headers=admin_headers, json={"name": "   "})
    assert response.status_code == 422


def test_get_missing_team(client, admin_headers):
    assert client.get("/teams/999", headers=admin_headers).status_code == 404


def test_delete_team(client, admin_headers, team_c):
    response = client.delete(f"/teams/{team_c.team_id}", headers=admin_headers)
    assert response.status_code == 204
    assert client.get(f"/teams/{team_c.team_id}", headers=admin_headers).status_code == 404


def test_delete_team_with_members_blocked(client, db_session, admin_headers, team_a, member_user):
    db_session.add(TeamMembership(team_id=team_a.team_id, user_id=member_user.user_id,
                                  start_date=date(2024, 1, 1), is_active=True))
    db_session.commit()

    response = client.delete(f"/teams/{team_a.team_id}", headers=admin_headers)
    assert response.status_code == 400
    assert client.get(f"/teams/{team_a.team_id}", headers=admin_headers).status_code == 200


def test_team_members_endpoints(client, db_session, member_headers, team_a, team_b, member_user):
    db_session.add_all([
        TeamMembership(team_id=team_a.team_id, user_id=member_user.user_id,
                       start_date=date(2023, 1, 1), end_date=date(2023, 12, 31), is_active=False),
        TeamMembership(team_id=team_b.team_id, user_id=member_user.user_id,
                       start_date=date(2024, 1, 1), is_active=True),
    ])
    db_session.commit()

    members = client.get(f"/team-members/team/{team_b.team_id}", headers=member_headers).json()
    assert [(m["user_name"], m["user_email"]) for m in members] == [("Mia Member", "member@example.com")]
    assert client.get(f"/team-members/team/{team_a.team_id}", headers=member_headers).json() == []

    history = client.get(f"/team-members/user/{member_user.user_id}/history", headers=member_headers).json()
    assert [h["team_name"] for h in history] == ["Bravo", "Alpha"]

    assert client.get("/team-members/team/999", headers=member_headers).status_code == 404


def test_team_member_stats(client, db_session, member_headers, team_a, member_user, second_member):
    today = utc_today()
    member_user.hire_date = date(today.year - 4, 1, 1)
    second_member.hire_date = date(today.year - 2, 1, 1)
    db_session.add_all([
        TeamMembership(team_id=team_a.team_id, user_id=member_user.user_id,
                       start_date=date(2024, 1, 1), is_active=True),
        TeamMembership(team_id=team_a.team_id, user_id=second_member.user_id,
                       start_date=date(2024, 1, 1), is_active=True),
    ])
    db_session.commit()

    response = client.get(f"/team-members/team/{team_a.team_id}/stats", headers=member_headers)
    assert response.status_code == 200
    assert response.json() == {
        "team_id": team_a.team_id,
        "total_members": 2,
        "by_role": {"member": 2},
        "avg_tenure_years": 3.0,
    }
    assert client.get("/team-members/team/999/stats", headers=member_headers).status_code == 404
