"""Postgres-backed concurrency tests for decisions, memberships and hierarchy edges."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest
from sqlalchemy.orm import sessionmaker

from teamhub.core.change_requests import ChangeRequestService
from teamhub.core.errors import TeamHubError
from teamhub.core.roles import RoleCode
from teamhub.core.security import get_password_hash
from teamhub.core.team_hierarchy import TeamHierarchyService
from teamhub.models.change_request import ChangeRequest
from teamhub.models.team import Team
from teamhub.models.team_hierarchy import TeamHierarchy
from teamhub.models.team_member import TeamMembership
from teamhub.models.user import User


def _seed_users(db) -> tuple[User, User]:
    admin = User(
        email="pg-admin@example.com",
        full_name="PG Admin",
        password_hash=get_password_hash("testpass123"),
        role=RoleCode.SUPER_ADMIN.value,
    )
    member = User(
        email="pg-member@example.com",
        full_name="PG Member",
        password_hash=get_password_hash("testpass123"),
        role=RoleCode.MEMBER.value,
    )
    db.add_all([admin, member])
    db.commit()
    return admin, member


def _run_parallel(worker, count: int):
    with ThreadPoolExecutor(max_workers=count) as executor:
        return list(executor.map(worker, range(count)))


@pytest.mark.postgres
def test_concurrent_approvals_apply_once(postgres_db_session, postgres_engine):
    """Parallel approvals of one request should apply it exactly once."""
    admin, member = _seed_users(postgres_db_session)
    team = Team(name="Concurrent Team")
    postgres_db_session.add(team)
    postgres_db_session.commit()

    request, _ = ChangeRequestService(postgres_db_session).submit(
        "add_member", member.user_id, team_id=team.team_id, user_id=member.user_id
    )

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=postgres_engine)
    barrier = Barrier(5)

    def worker(_):
        session = SessionLocal()
        try:
            barrier.wait()
            ChangeRequestService(session).approve(request.request_id, admin.user_id)
            return ("success", None)
        except TeamHubError as exc:
            return ("error", exc.code)
        finally:
            session.close()

    results = _run_parallel(worker, 5)

    successes = [r for r in results if r[0] == "success"]
    assert len(successes) == 1
    assert {r[1] for r in results if r[0] == "error"} == {"already_decided"}

    postgres_db_session.expire_all()
    assert postgres_db_session.get(ChangeRequest, request.request_id).status == "approved"
    assert postgres_db_session.query(TeamMembership).filter(
        TeamMembership.user_id == member.user_id
    ).count() == 1


@pytest.mark.postgres
def test_concurrent_add_member_single_active(postgres_db_session, postgres_engine):
    """Requests adding one user to different teams leave at most one active membership."""
    admin, member = _seed_users(postgres_db_session)
    teams = [Team(name=f"Team {i}") for i in range(4)]
    postgres_db_session.add_all(teams)
    postgres_db_session.commit()

    service = ChangeRequestService(postgres_db_session)
    request_ids = [
        service.submit("add_member", member.user_id, team_id=t.team_id, user_id=member.user_id)[0].request_id
        for t in teams
    ]

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=postgres_engine)
    barrier = Barrier(len(request_ids))

    def worker(index):
        session = SessionLocal()
        try:
            barrier.wait()
            ChangeRequestService(session).approve(request_ids[index], admin.user_id)
            return ("success", None)
        except TeamHubError as exc:
            return ("error", exc.code)
        finally:
            session.close()

    results = _run_parallel(worker, len(request_ids))

    assert len([r for r in results if r[0] == "success"]) == 1
    assert {r[1] for r in results if r[0] == "error"} == {"conflict"}
    assert postgres_db_session.query(TeamMembership).filter(
        TeamMembership.user_id == member.user_id,
        TeamMembership.is_active.is_(True),
    ).count() == 1


@pytest.mark.postgres
def test_concurrent_opposite_edges(postgres_db_session, postgres_engine):
    """A->B and B->A inserted concurrently: only one may land."""
    admin, _ = _seed_users(postgres_db_session)
    a = Team(name="Edge A")
    b = Team(name="Edge B")
    postgres_db_session.add_all([a, b])
    postgres_db_session.commit()
    pairs = [(a.team_id, b.team_id), (b.team_id, a.team_id)]

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=postgres_engine)
    barrier = Barrier(2)

    def worker(index):
        session = SessionLocal()
        try:
            barrier.wait()
            parent_id, child_id = pairs[index]
            TeamHierarchyService(session).add_edge(parent_id, child_id, actor_id=admin.user_id)
            return ("success", None)
        except TeamHubError as exc:
            return ("error", exc.code)
        finally:
            session.close()

    results = _run_parallel(worker, 2)

    assert len([r for r in results if r[0] == "success"]) == 1
    assert postgres_db_session.query(TeamHierarchy).count() == 1
