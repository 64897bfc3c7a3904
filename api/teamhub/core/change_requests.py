"""Change request workflow: submit, then approve or reject exactly once.

Approval applies the requested team mutation and the status change in one
transaction. The request row is locked for the duration so two approvers
racing on the same request cannot both apply it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from teamhub.core.audit import AuditEntry, snapshot
from teamhub.core.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    TeamHubError,
    ValidationError,
)
from teamhub.core.memberships import TeamMembershipService
from teamhub.core.roles import can_decide_for_team, is_read_only
from teamhub.core.team_utils import TEAM_FIELDS, assert_team_name_available, delete_team
from teamhub.core.time import utc_now
from teamhub.models.change_request import ChangeRequest, ChangeRequestStatus, ChangeRequestType
from teamhub.models.team import Team
from teamhub.models.user import User
from teamhub.schemas.change_request import (
    AddMemberChange,
    CreateTeamChange,
    DeleteTeamChange,
    MoveMemberChange,
    RemoveMemberChange,
    UpdateTeamChange,
    change_payload_adapter,
)

logger = logging.getLogger(__name__)

APPROVE = "approve"
REJECT = "reject"

MEMBERSHIP_FIELDS = ("team_id", "user_id", "start_date", "end_date", "is_active")
REQUEST_FIELDS = ("status", "approver_id", "approved_at", "notes")


@dataclass
class DecisionOutcome:
    """Decided request plus the audit entries describing what changed."""
    request: ChangeRequest
    audit_entries: List[AuditEntry] = field(default_factory=list)


def _format_errors(exc: PydanticValidationError) -> List[dict]:
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
        for err in exc.errors()
    ]


def parse_change(request_type: str, team_id: Optional[int], user_id: Optional[int], details: Optional[dict]):
    """Build the typed payload for a request, raising ValidationError on bad shape."""
    valid_types = {t.value for t in ChangeRequestType}
    if request_type not in valid_types:
        raise ValidationError(
            f"Unknown request type '{request_type}'",
            {"allowed": sorted(valid_types)},
        )
    try:
        return change_payload_adapter.validate_python({
            "request_type": request_type,
            "team_id": team_id,
            "user_id": user_id,
            "details": details if details is not None else {},
        })
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid payload for {request_type}",
            {"errors": _format_errors(exc)},
        ) from exc


class ChangeRequestService:
    """Owns the change request lifecycle."""

    def __init__(self, db: Session):
        self.db = db
        self.memberships = TeamMembershipService(db)
        self._handlers: Dict[type, Callable[[Any, ChangeRequest, User], List[AuditEntry]]] = {
            AddMemberChange: self._apply_add_member,
            RemoveMemberChange: self._apply_remove_member,
            MoveMemberChange: self._apply_move_member,
            CreateTeamChange: self._apply_create_team,
            UpdateTeamChange: self._apply_update_team,
            DeleteTeamChange: self._apply_delete_team,
        }

    # Queries

    def get_request(self, request_id: int) -> ChangeRequest:
        request = self.db.get(ChangeRequest, request_id)
        if request is None:
            raise NotFoundError("Change request not found", {"request_id": request_id})
        return request

    def list_requests(self, status: Optional[str] = None) -> List[ChangeRequest]:
        query = self.db.query(ChangeRequest)
        if status is not None:
            if status not in {s.value for s in ChangeRequestStatus}:
                raise ValidationError(f"Unknown status '{status}'")
            query = query.filter(ChangeRequest.status == status)
        return query.order_by(ChangeRequest.created_at.desc(), ChangeRequest.request_id.desc()).all()

    def pending_count(self) -> int:
        return self.db.query(func.count(ChangeRequest.request_id)).filter(
            ChangeRequest.status == ChangeRequestStatus.PENDING.value
        ).scalar() or 0

    # Submission

    def submit(
        self,
        request_type: str,
        requester_id: int,
        team_id: Optional[int] = None,
        user_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> tuple[ChangeRequest, AuditEntry]:
        """Persist a pending request. Nothing else is changed until approval."""
        payload = parse_change(request_type, team_id, user_id, details)

        requester = self.db.get(User, requester_id)
        if requester is None or not requester.is_active:
            raise NotFoundError("Requester not found", {"user_id": requester_id})
        if is_read_only(requester):
            raise ForbiddenError("Read-only users cannot submit change requests")

        if isinstance(payload.details, dict):
            stored_details = dict(payload.details)
        else:
            stored_details = payload.details.model_dump(mode="json", exclude_unset=True)

        stored_team_id = payload.team_id
        if isinstance(payload, MoveMemberChange) and stored_team_id is None:
            # Moves are decided by the lead of the team the member leaves
            stored_team_id = payload.details.from_team_id

        request = ChangeRequest(
            request_type=payload.request_type,
            requester_id=requester.user_id,
            team_id=stored_team_id,
            user_id=payload.user_id,
            details=stored_details,
            status=ChangeRequestStatus.PENDING.value,
        )
        self.db.add(request)
        self.db.flush()
        entry = AuditEntry(
            table_name="change_requests",
            record_id=request.request_id,
            action="SUBMIT",
            actor_id=requester.user_id,
            new_values={
                "request_type": request.request_type,
                "team_id": request.team_id,
                "user_id": request.user_id,
                "details": stored_details,
                "status": request.status,
            },
            summary=f"Submitted {request.request_type} request",
        )
        self.db.commit()
        self.db.refresh(request)
        logger.info(
            "Change request %s (%s) submitted by user %s",
            request.request_id, request.request_type, requester.user_id,
        )
        return request, entry

    # Decision

    def _lock_request(self, request_id: int) -> Optional[ChangeRequest]:
        return self.db.query(ChangeRequest).filter(
            ChangeRequest.request_id == request_id
        ).populate_existing().with_for_update().first()

    def approve(self, request_id: int, approver_id: int, notes: Optional[str] = None) -> DecisionOutcome:
        return self.decide(request_id, approver_id, APPROVE, notes)

    def reject(self, request_id: int, approver_id: int, notes: Optional[str] = None) -> DecisionOutcome:
        return self.decide(request_id, approver_id, REJECT, notes)

    def decide(
        self,
        request_id: int,
        approver_id: int,
        decision: str,
        notes: Optional[str] = None,
    ) -> DecisionOutcome:
        """Approve or reject a pending request inside a single transaction."""
        if decision not in (APPROVE, REJECT):
            raise ValidationError(f"Unknown decision '{decision}'")

        try:
            request = self._lock_request(request_id)
            if request is None:
                raise NotFoundError("Change request not found", {"request_id": request_id})
            if not request.is_pending:
                raise InvalidStateError(
                    f"Change request already {request.status}",
                    {"request_id": request_id, "status": request.status},
                )

            approver = self.db.get(User, approver_id)
            if approver is None:
                raise NotFoundError("Approver not found", {"user_id": approver_id})
            team = self.db.get(Team, request.team_id) if request.team_id is not None else None
            if not can_decide_for_team(approver, team):
                raise ForbiddenError(
                    "Only a super admin or the team's lead can decide this request",
                    {"request_id": request_id, "team_id": request.team_id},
                )

            entries: List[AuditEntry] = []
            if decision == APPROVE:
                payload = parse_change(request.request_type, request.team_id, request.user_id, request.details)
                entries.extend(self._handlers[type(payload)](payload, request, approver))

            before = snapshot(request, REQUEST_FIELDS)
            request.status = (
                ChangeRequestStatus.APPROVED.value if decision == APPROVE
                else ChangeRequestStatus.REJECTED.value
            )
            request.approver_id = approver.user_id
            request.approved_at = utc_now()
            request.notes = notes
            self.db.flush()
            entries.append(AuditEntry(
                table_name="change_requests",
                record_id=request.request_id,
                action="APPROVE" if decision == APPROVE else "REJECT",
                actor_id=approver.user_id,
                old_values=before,
                new_values=snapshot(request, REQUEST_FIELDS),
                summary=f"{request.status.capitalize()} {request.request_type} request",
            ))
            self.db.commit()
        except TeamHubError as exc:
            self.db.rollback()
            logger.warning("Decision %s on change request %s failed: %s", decision, request_id, exc.message)
            raise
        except Exception:
            self.db.rollback()
            logger.exception("Decision %s on change request %s aborted", decision, request_id)
            raise

        self.db.refresh(request)
        logger.info("Change request %s %s by user %s", request_id, request.status, approver_id)
        return DecisionOutcome(request=request, audit_entries=entries)

    # Mutations applied on approval

    def _require_team(self, team_id: Optional[int]) -> Team:
        team = self.db.get(Team, team_id) if team_id is not None else None
        if team is None:
            raise NotFoundError("Team not found", {"team_id": team_id})
        return team

    def _apply_add_member(self, payload: AddMemberChange, request: ChangeRequest, actor: User) -> List[AuditEntry]:
        membership = self.memberships.add_member(payload.team_id, payload.user_id)
        return [AuditEntry(
            table_name="team_members",
            record_id=membership.membership_id,
            action="CREATE",
            actor_id=actor.user_id,
            new_values=snapshot(membership, MEMBERSHIP_FIELDS),
            summary=f"Added user {payload.user_id} to team {payload.team_id} (request {request.request_id})",
        )]

    def _apply_remove_member(self, payload: RemoveMemberChange, request: ChangeRequest, actor: User) -> List[AuditEntry]:
        active = self.memberships.active_membership_for_user(payload.user_id)
        before = snapshot(active, MEMBERSHIP_FIELDS) if active else None
        membership = self.memberships.end_membership(payload.team_id, payload.user_id)
        return [AuditEntry(
            table_name="team_members",
            record_id=membership.membership_id,
            action="UPDATE",
            actor_id=actor.user_id,
            old_values=before,
            new_values=snapshot(membership, MEMBERSHIP_FIELDS),
            summary=f"Removed user {payload.user_id} from team {payload.team_id} (request {request.request_id})",
        )]

    def _apply_move_member(self, payload: MoveMemberChange, request: ChangeRequest, actor: User) -> List[AuditEntry]:
        details = payload.details
        active = self.memberships.active_membership_for_user(payload.user_id)
        before = snapshot(active, MEMBERSHIP_FIELDS) if active else None
        old_membership, new_membership = self.memberships.move_member(
            payload.user_id, details.from_team_id, details.to_team_id, details.move_date
        )
        return [
            AuditEntry(
                table_name="team_members",
                record_id=old_membership.membership_id,
                action="UPDATE",
                actor_id=actor.user_id,
                old_values=before,
                new_values=snapshot(old_membership, MEMBERSHIP_FIELDS),
                summary=f"Ended membership in team {details.from_team_id} for move (request {request.request_id})",
            ),
            AuditEntry(
                table_name="team_members",
                record_id=new_membership.membership_id,
                action="CREATE",
                actor_id=actor.user_id,
                new_values=snapshot(new_membership, MEMBERSHIP_FIELDS),
                summary=f"Started membership in team {details.to_team_id} for move (request {request.request_id})",
            ),
        ]

    def _apply_create_team(self, payload: CreateTeamChange, request: ChangeRequest, actor: User) -> List[AuditEntry]:
        details = payload.details
        assert_team_name_available(self.db, details.name)
        team = Team(name=details.name, description=details.description)
        self.db.add(team)
        self.db.flush()
        return [AuditEntry(
            table_name="teams",
            record_id=team.team_id,
            action="CREATE",
            actor_id=actor.user_id,
            new_values=snapshot(team, TEAM_FIELDS),
            summary=f"Created team '{team.name}' (request {request.request_id})",
        )]

    def _apply_update_team(self, payload: UpdateTeamChange, request: ChangeRequest, actor: User) -> List[AuditEntry]:
        team = self._require_team(payload.team_id)
        before = snapshot(team, TEAM_FIELDS)
        updates = {
            name: value
            for name, value in payload.details.model_dump().items()
            if value is not None
        }
        if "name" in updates and updates["name"].lower() != team.name.lower():
            assert_team_name_available(self.db, updates["name"], exclude_team_id=team.team_id)
        for name, value in updates.items():
            setattr(team, name, value)
        team.updated_at = utc_now()
        self.db.flush()
        return [AuditEntry(
            table_name="teams",
            record_id=team.team_id,
            action="UPDATE",
            actor_id=actor.user_id,
            old_values=before,
            new_values=snapshot(team, TEAM_FIELDS),
            summary=f"Updated team '{team.name}' (request {request.request_id})",
        )]

    def _apply_delete_team(self, payload: DeleteTeamChange, request: ChangeRequest, actor: User) -> List[AuditEntry]:
        team = self._require_team(payload.team_id)
        before = snapshot(team, TEAM_FIELDS)
        delete_team(self.db, team)
        return [AuditEntry(
            table_name="teams",
            record_id=payload.team_id,
            action="DELETE",
            actor_id=actor.user_id,
            old_values=before,
            summary=f"Deleted team '{before['name']}' (request {request.request_id})",
        )]
