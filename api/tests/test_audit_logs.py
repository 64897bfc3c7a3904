"""Tests for audit log endpoints."""
from datetime import date

from teamhub.core.audit import AuditEntry, record_audit
from teamhub.core.time import utc_today
from teamhub.models.audit_log import AuditLog


def _seed(db, user_id):
    record_audit(db, [
        AuditEntry(table_name="teams", record_id=1, action="CREATE", actor_id=user_id,
                   new_values={"name": "Alpha"}, summary="Created team 'Alpha'"),
        AuditEntry(table_name="teams", record_id=1, action="UPDATE", actor_id=user_id,
                   old_values={"name": "Alpha"}, new_values={"name": "Alpha Prime"}),
        AuditEntry(table_name="team_hierarchy", record_id=7, action="CREATE", actor_id=user_id),
    ])


def test_list_audit_logs(client, db_session, admin_user, member_headers):
    _seed(db_session, admin_user.user_id)

    response = client.get("/audit-logs/", headers=member_headers)
    assert response.status_code == 200
    logs = response.json()
    assert len(logs) == 3
    assert all(log["user_name"] == "Ada Admin" for log in logs)


def test_filters(client, db_session, admin_user, member_headers):
    _seed(db_session, admin_user.user_id)

    teams = client.get("/audit-logs/", params={"table_name": "teams"}, headers=member_headers).json()
    assert len(teams) == 2

    updates = client.get("/audit-logs/", params={"action": "UPDATE"}, headers=member_headers).json()
    assert len(updates) == 1
    assert updates[0]["old_values"] == {"name": "Alpha"}
    assert updates[0]["new_values"] == {"name": "Alpha Prime"}

    by_record = client.get("/audit-logs/", params={"table_name": "team_hierarchy", "record_id": 7},
                           headers=member_headers).json()
    assert len(by_record) == 1

    paged = client.get("/audit-logs/", params={"limit": 1, "offset": 1}, headers=member_headers).json()
    assert len(paged) == 1


def test_summary(client, db_session, admin_user, member_headers):
    _seed(db_session, admin_user.user_id)

    rows = client.get("/audit-logs/summary", headers=member_headers).json()
    assert [(r["table_name"], r["action"], r["count"]) for r in rows] == [
        ("team_hierarchy", "CREATE", 1),
        ("teams", "CREATE", 1),
        ("teams", "UPDATE", 1),
    ]


def test_record_audit_serializes_dates(db_session, admin_user):
    record_audit(db_session, [AuditEntry(
        table_name="team_members", record_id=3, action="UPDATE", actor_id=admin_user.user_id,
        new_values={"end_date": date(2024, 5, 1)},
    )])
    log = db_session.query(AuditLog).one()
    assert log.new_values == {"end_date": "2024-05-01"}


def test_record_audit_empty_is_noop(db_session):
    record_audit(db_session, [])


def test_recent(client, db_session, admin_user, member_headers):
    _seed(db_session, admin_user.user_id)

    recent = client.get("/audit-logs/recent", params={"limit": 2}, headers=member_headers).json()
    assert len(recent) == 2
    assert recent[0]["table_name"] == "team_hierarchy"
    assert client.get("/audit-logs/recent", params={"limit": 0}, headers=member_headers).status_code == 422


def test_date_range(client, db_session, admin_user, member_headers):
    _seed(db_session, admin_user.user_id)
    today = utc_today()

    same_day = client.get(
        "/audit-logs/date-range",
        params={"start_date": today.isoformat(), "end_date": today.isoformat()},
        headers=member_headers,
    )
    assert same_day.status_code == 200
    assert len(same_day.json()) == 3

    earlier = client.get(
        "/audit-logs/date-range",
        params={"start_date": "2020-01-01", "end_date": "2020-12-31"},
        headers=member_headers,
    ).json()
    assert earlier == []


def test_date_range_rejects_reversed_dates(client, member_headers):
    response = client.get(
        "/audit-logs/date-range",
        params={"start_date": "2024-05-02", "end_date": "2024-05-01"},
        headers=member_headers,
    )
    assert response.status_code == 400
    assert client.get("/audit-logs/date-range", headers=member_headers).status_code == 422
