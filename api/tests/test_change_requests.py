"""Tests for the change request workflow service."""
from datetime import date

import pytest

from teamhub.core.change_requests import ChangeRequestService
from teamhub.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from teamhub.core.memberships import TeamMembershipService
from teamhub.models.change_request import ChangeRequest
from teamhub.models.team import Team
from teamhub.models.team_hierarchy import TeamHierarchy
from teamhub.models.team_member import TeamMembership


def _active_memberships(db, user_id):
    return db.query(TeamMembership).filter(
        TeamMembership.user_id == user_id,
        TeamMembership.is_active.is_(True),
    ).all()


def _put_in_team(db, team, user, start=date(2024, 1, 1)):
    membership = TeamMembershipService(db).add_member(team.team_id, user.user_id, start)
    db.commit()
    return membership


class TestSubmit:
    """Submitting records a pending request and nothing else."""

    def test_submit_is_pending(self, db_session, member_user, second_member, team_a):
        service = ChangeRequestService(db_session)
        request, entry = service.submit(
            "add_member", member_user.user_id,
            team_id=team_a.team_id, user_id=second_member.user_id,
            details={"note": "joining"},
        )

        assert request.status == "pending"
        assert request.approver_id is None
        assert request.approved_at is None
        assert request.details == {"note": "joining"}
        assert _active_memberships(db_session, second_member.user_id) == []
        assert entry.table_name == "change_requests"
        assert entry.action == "SUBMIT"
        assert entry.record_id == request.request_id

    def test_unknown_type_rejected(self, db_session, member_user):
        service = ChangeRequestService(db_session)
        with pytest.raises(ValidationError):
            service.submit("rename_everything", member_user.user_id)
        assert db_session.query(ChangeRequest).count() == 0

    def test_move_without_details_rejected(self, db_session, member_user):
        service = ChangeRequestService(db_session)
        with pytest.raises(ValidationError) as exc_info:
            service.submit("move_member", member_user.user_id, user_id=member_user.user_id, details={})
        assert exc_info.value.details["errors"]

    def test_add_member_requires_user(self, db_session, member_user, team_a):
        service = ChangeRequestService(db_session)
        with pytest.raises(ValidationError):
            service.submit("add_member", member_user.user_id, team_id=team_a.team_id)

    def test_read_only_cannot_submit(self, db_session, read_only_user, team_a):
        service = ChangeRequestService(db_session)
        with pytest.raises(ForbiddenError):
            service.submit(
                "update_team", read_only_user.user_id,
                team_id=team_a.team_id, details={"description": "nope"},
            )

    def test_move_defaults_team_to_source(self, db_session, member_user, team_a, team_b):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "move_member", member_user.user_id,
            user_id=member_user.user_id,
            details={"from_team_id": team_a.team_id, "to_team_id": team_b.team_id, "move_date": "2024-06-01"},
        )
        assert request.team_id == team_a.team_id
        assert request.details["move_date"] == "2024-06-01"


class TestDecide:
    """Approve/reject transitions and the single-decision guarantee."""

    def test_approve_add_member(self, db_session, admin_user, member_user, second_member, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "add_member", member_user.user_id,
            team_id=team_a.team_id, user_id=second_member.user_id,
        )

        outcome = service.approve(request.request_id, admin_user.user_id, notes="welcome")

        assert outcome.request.status == "approved"
        assert outcome.request.approver_id == admin_user.user_id
        assert outcome.request.approved_at is not None
        assert outcome.request.notes == "welcome"
        active = _active_memberships(db_session, second_member.user_id)
        assert len(active) == 1
        assert active[0].team_id == team_a.team_id
        actions = [(e.table_name, e.action) for e in outcome.audit_entries]
        assert ("team_members", "CREATE") in actions
        assert ("change_requests", "APPROVE") in actions

    def test_second_decision_fails(self, db_session, admin_user, member_user, second_member, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "add_member", member_user.user_id,
            team_id=team_a.team_id, user_id=second_member.user_id,
        )
        service.approve(request.request_id, admin_user.user_id)

        with pytest.raises(InvalidStateError):
            service.approve(request.request_id, admin_user.user_id)
        with pytest.raises(InvalidStateError):
            service.reject(request.request_id, admin_user.user_id)

        assert db_session.get(ChangeRequest, request.request_id).status == "approved"
        assert len(_active_memberships(db_session, second_member.user_id)) == 1

    def test_reject_changes_nothing(self, db_session, lead_user, member_user, second_member, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "add_member", member_user.user_id,
            team_id=team_a.team_id, user_id=second_member.user_id,
        )

        outcome = service.reject(request.request_id, lead_user.user_id, notes="not now")

        assert outcome.request.status == "rejected"
        assert outcome.request.approver_id == lead_user.user_id
        assert outcome.request.notes == "not now"
        assert _active_memberships(db_session, second_member.user_id) == []
        assert [e.action for e in outcome.audit_entries] == ["REJECT"]

        with pytest.raises(InvalidStateError):
            service.approve(request.request_id, lead_user.user_id)

    def test_unknown_request(self, db_session, admin_user):
        with pytest.raises(NotFoundError):
            ChangeRequestService(db_session).approve(9999, admin_user.user_id)

    def test_unknown_decision(self, db_session, admin_user, member_user, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit("delete_team", member_user.user_id, team_id=team_a.team_id)
        with pytest.raises(ValidationError):
            service.decide(request.request_id, admin_user.user_id, "maybe")

    def test_add_member_conflict_rolls_back(
        self, db_session, admin_user, member_user, second_member, team_a, team_b
    ):
        _put_in_team(db_session, team_b, second_member)
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "add_member", member_user.user_id,
            team_id=team_a.team_id, user_id=second_member.user_id,
        )

        with pytest.raises(ConflictError) as exc_info:
            service.approve(request.request_id, admin_user.user_id)

        assert "another team" in exc_info.value.message
        assert db_session.get(ChangeRequest, request.request_id).status == "pending"
        active = _active_memberships(db_session, second_member.user_id)
        assert [m.team_id for m in active] == [team_b.team_id]

    def test_remove_member(self, db_session, lead_user, member_user, second_member, team_a):
        _put_in_team(db_session, team_a, second_member)
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "remove_member", member_user.user_id,
            team_id=team_a.team_id, user_id=second_member.user_id,
        )

        service.approve(request.request_id, lead_user.user_id)

        assert _active_memberships(db_session, second_member.user_id) == []
        history = TeamMembershipService(db_session).history_for_user(second_member.user_id)
        assert len(history) == 1
        assert history[0].end_date is not None

    def test_remove_member_not_in_team(self, db_session, lead_user, member_user, second_member, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "remove_member", member_user.user_id,
            team_id=team_a.team_id, user_id=second_member.user_id,
        )
        with pytest.raises(NotFoundError):
            service.approve(request.request_id, lead_user.user_id)
        assert db_session.get(ChangeRequest, request.request_id).status == "pending"


class TestMoveMember:
    """Moves end the old membership and start the new one together."""

    def test_move_is_atomic_success(self, db_session, lead_user, member_user, second_member, team_a, team_b):
        _put_in_team(db_session, team_a, second_member)
        service = ChangeRequestService(db_session)
        move_date = date(2024, 6, 1)
        request, _ = service.submit(
            "move_member", member_user.user_id,
            user_id=second_member.user_id,
            details={"from_team_id": team_a.team_id, "to_team_id": team_b.team_id, "move_date": move_date.isoformat()},
        )

        outcome = service.approve(request.request_id, lead_user.user_id)

        history = TeamMembershipService(db_session).history_for_user(second_member.user_id)
        new, old = history
        assert old.team_id == team_a.team_id
        assert old.end_date == move_date
        assert old.is_active is False
        assert new.team_id == team_b.team_id
        assert new.start_date == move_date
        assert new.is_active is True
        assert len([e for e in outcome.audit_entries if e.table_name == "team_members"]) == 2

    def test_move_to_missing_team_leaves_source(self, db_session, admin_user, member_user, second_member, team_a):
        original = _put_in_team(db_session, team_a, second_member)
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "move_member", member_user.user_id,
            user_id=second_member.user_id,
            details={"from_team_id": team_a.team_id, "to_team_id": 424242, "move_date": "2024-06-01"},
        )

        with pytest.raises(NotFoundError):
            service.approve(request.request_id, admin_user.user_id)

        db_session.refresh(original)
        assert original.is_active is True
        assert original.end_date is None
        assert db_session.query(TeamMembership).count() == 1
        assert db_session.get(ChangeRequest, request.request_id).status == "pending"

    def test_move_to_same_team(self, db_session, admin_user, member_user, second_member, team_a):
        _put_in_team(db_session, team_a, second_member)
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "move_member", member_user.user_id,
            user_id=second_member.user_id,
            details={"from_team_id": team_a.team_id, "to_team_id": team_a.team_id, "move_date": "2024-06-01"},
        )
        with pytest.raises(ValidationError):
            service.approve(request.request_id, admin_user.user_id)

    def test_move_before_start_date(self, db_session, admin_user, member_user, second_member, team_a, team_b):
        _put_in_team(db_session, team_a, second_member, start=date(2024, 3, 1))
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "move_member", member_user.user_id,
            user_id=second_member.user_id,
            details={"from_team_id": team_a.team_id, "to_team_id": team_b.team_id, "move_date": "2024-01-01"},
        )
        with pytest.raises(ValidationError):
            service.approve(request.request_id, admin_user.user_id)
        assert [m.team_id for m in _active_memberships(db_session, second_member.user_id)] == [team_a.team_id]


class TestTeamChanges:
    """create_team, update_team and delete_team requests."""

    def test_create_team_platform(self, db_session, admin_user, member_user):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "create_team", member_user.user_id,
            details={"name": "Platform", "description": "Infra team"},
        )

        outcome = service.approve(request.request_id, admin_user.user_id)

        team = db_session.query(Team).filter(Team.name == "Platform").one()
        assert team.description == "Infra team"
        assert outcome.request.status == "approved"
        assert outcome.request.approver_id == admin_user.user_id

    def test_create_team_needs_super_admin(self, db_session, lead_user, member_user, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "create_team", member_user.user_id,
            details={"name": "Platform", "description": None},
        )
        with pytest.raises(ForbiddenError):
            service.approve(request.request_id, lead_user.user_id)

    def test_create_team_duplicate_name(self, db_session, admin_user, member_user, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "create_team", member_user.user_id,
            details={"name": "alpha", "description": None},
        )
        with pytest.raises(ConflictError):
            service.approve(request.request_id, admin_user.user_id)
        assert db_session.query(Team).count() == 1

    def test_team_name_is_stripped_before_checks(self, db_session, admin_user, member_user, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "create_team", member_user.user_id,
            details={"name": "  Platform  ", "description": None},
        )
        assert request.details["name"] == "Platform"
        service.approve(request.request_id, admin_user.user_id)
        assert db_session.query(Team).filter(Team.name == "Platform").count() == 1

        rename, _ = service.submit(
            "update_team", member_user.user_id,
            team_id=team_a.team_id, details={"name": " platform "},
        )
        with pytest.raises(ConflictError):
            service.approve(rename.request_id, admin_user.user_id)

    def test_blank_team_name_rejected(self, db_session, member_user):
        with pytest.raises(ValidationError):
            ChangeRequestService(db_session).submit(
                "create_team", member_user.user_id,
                details={"name": "   ", "description": None},
            )

    def test_update_team(self, db_session, lead_user, member_user, team_a):
        service = ChangeRequestService(db_session)
        request, _ = service.submit(
            "update_team", member_user.user_id,
            team_id=team_a.team_id, details={"description": "Renamed charter"},
        )

        outcome = service.approve(request.request_id, lead_user.user_id)

        db_session.refresh(team_a)
        assert team_a.name == "Alpha"
        assert team_a.description == "Renamed charter"
        entry = next(e for e in outcome.audit_entries if e.table_name == "teams")
        assert entry.old_values["description"] == "Team Alpha"
        assert entry.new_values["description"] == "Renamed charter"

    def test_delete_team_with_members_blocked(self, db_session, admin_user, member_user, second_member, team_a):
        _put_in_team(db_session, team_a, second_member)
        service = ChangeRequestService(db_session)
        request, _ = service.submit("delete_team", member_user.user_id, team_id=team_a.team_id)

        with pytest.raises(ConflictError):
            service.approve(request.request_id, admin_user.user_id)
        assert db_session.get(Team, team_a.team_id) is not None

    def test_delete_team_removes_edges(self, db_session, admin_user, member_user, team_a, team_b, team_c):
        db_session.add_all([
            TeamHierarchy(parent_team_id=team_a.team_id, child_team_id=team_b.team_id),
            TeamHierarchy(parent_team_id=team_b.team_id, child_team_id=team_c.team_id),
        ])
        db_session.commit()
        team_b_id = team_b.team_id
        service = ChangeRequestService(db_session)
        request, _ = service.submit("delete_team", member_user.user_id, team_id=team_b_id)

        outcome = service.approve(request.request_id, admin_user.user_id)

        assert outcome.request.status == "approved"
        assert db_session.get(Team, team_b_id) is None
        assert db_session.query(TeamHierarchy).count() == 0
        # The decided request outlives the team it referenced
        assert db_session.get(ChangeRequest, request.request_id).team_id == team_b_id


class TestDecisionAuthority:
    """Only a super admin or the team's lead may decide."""

    @pytest.mark.parametrize("approver_fixture,allowed", [
        ("admin_user", True),
        ("lead_user", True),
        ("other_lead_user", False),
        ("member_user", False),
        ("read_only_user", False),
    ])
    def test_authority_by_role(self, request, db_session, second_member, team_a, team_b, approver_fixture, allowed):
        approver = request.getfixturevalue(approver_fixture)
        service = ChangeRequestService(db_session)
        change, _ = service.submit(
            "update_team", second_member.user_id,
            team_id=team_a.team_id, details={"description": "Updated"},
        )

        if allowed:
            outcome = service.approve(change.request_id, approver.user_id)
            assert outcome.request.status == "approved"
        else:
            with pytest.raises(ForbiddenError):
                service.approve(change.request_id, approver.user_id)
            with pytest.raises(ForbiddenError):
                service.reject(change.request_id, approver.user_id)
            assert db_session.get(ChangeRequest, change.request_id).status == "pending"

    def test_inactive_super_admin_forbidden(self, db_session, admin_user, member_user, team_a):
        admin_user.is_active = False
        db_session.commit()
        service = ChangeRequestService(db_session)
        change, _ = service.submit("delete_team", member_user.user_id, team_id=team_a.team_id)
        with pytest.raises(ForbiddenError):
            service.approve(change.request_id, admin_user.user_id)

    def test_move_deciding_team_must_be_source_or_destination(
        self, db_session, lead_user, second_member, team_a, team_b, team_c
    ):
        _put_in_team(db_session, team_b, second_member)
        service = ChangeRequestService(db_session)
        with pytest.raises(ValidationError):
            service.submit(
                "move_member", lead_user.user_id,
                team_id=team_a.team_id, user_id=second_member.user_id,
                details={"from_team_id": team_b.team_id, "to_team_id": team_c.team_id, "move_date": "2024-06-01"},
            )
        assert db_session.query(ChangeRequest).count() == 0
        assert _active_memberships(db_session, second_member.user_id)[0].team_id == team_b.team_id

    def test_destination_lead_decides_move_into_their_team(
        self, db_session, lead_user, second_member, team_a, team_b
    ):
        _put_in_team(db_session, team_b, second_member)
        service = ChangeRequestService(db_session)
        change, _ = service.submit(
            "move_member", lead_user.user_id,
            team_id=team_a.team_id, user_id=second_member.user_id,
            details={"from_team_id": team_b.team_id, "to_team_id": team_a.team_id, "move_date": "2024-06-01"},
        )

        outcome = service.approve(change.request_id, lead_user.user_id)

        assert outcome.request.status == "approved"
        assert _active_memberships(db_session, second_member.user_id)[0].team_id == team_a.team_id


class TestQueries:

    def test_list_and_count(self, db_session, admin_user, member_user, team_a):
        service = ChangeRequestService(db_session)
        first, _ = service.submit("update_team", member_user.user_id, team_id=team_a.team_id, details={"description": "x"})
        second, _ = service.submit("update_team", member_user.user_id, team_id=team_a.team_id, details={"description": "y"})
        service.reject(first.request_id, admin_user.user_id)

        assert service.pending_count() == 1
        assert [r.request_id for r in service.list_requests("pending")] == [second.request_id]
        assert [r.request_id for r in service.list_requests("rejected")] == [first.request_id]
        assert {r.request_id for r in service.list_requests()} == {first.request_id, second.request_id}

    def test_bad_status_filter(self, db_session):
        with pytest.raises(ValidationError):
            ChangeRequestService(db_session).list_requests("archived")
