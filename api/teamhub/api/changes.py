"""Change request endpoints: submit, list and decide."""
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from teamhub.core.audit import record_audit
from teamhub.core.change_requests import APPROVE, REJECT, ChangeRequestService
from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user
from teamhub.models.change_request import ChangeRequest
from teamhub.models.team import Team
from teamhub.models.user import User
from teamhub.schemas.change_request import (
    ChangeDecision,
    ChangeRequestResponse,
    ChangeRequestSubmit,
    PendingCount,
)

router = APIRouter()


def _build_responses(db: Session, requests: List[ChangeRequest]) -> List[ChangeRequestResponse]:
    """Attach requester, approver, team and user names."""
    user_ids = set()
    team_ids = set()
    for request in requests:
        user_ids.update(i for i in (request.requester_id, request.approver_id, request.user_id) if i)
        if request.team_id:
            team_ids.add(request.team_id)

    user_names: Dict[int, str] = {}
    if user_ids:
        user_names = dict(db.query(User.user_id, User.full_name).filter(User.user_id.in_(user_ids)).all())
    team_names: Dict[int, str] = {}
    if team_ids:
        team_names = dict(db.query(Team.team_id, Team.name).filter(Team.team_id.in_(team_ids)).all())

    responses = []
    for request in requests:
        response = ChangeRequestResponse.model_validate(request)
        response.requester_name = user_names.get(request.requester_id)
        response.approver_name = user_names.get(request.approver_id) if request.approver_id else None
        response.user_name = user_names.get(request.user_id) if request.user_id else None
        if request.team_id:
            # Deleted teams keep the name captured in the request details
            response.team_name = team_names.get(request.team_id) or (request.details or {}).get("name")
        else:
            response.team_name = (request.details or {}).get("name")
        responses.append(response)
    return responses


@router.post("/", response_model=ChangeRequestResponse, status_code=status.HTTP_201_CREATED)
def submit_change(
    payload: ChangeRequestSubmit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Submit a change request. Nothing changes until it is approved."""
    service = ChangeRequestService(db)
    request, entry = service.submit(
        request_type=payload.request_type,
        requester_id=current_user.user_id,
        team_id=payload.team_id,
        user_id=payload.user_id,
        details=payload.details,
    )
    record_audit(db, [entry])
    return _build_responses(db, [request])[0]


@router.get("/", response_model=List[ChangeRequestResponse])
def list_changes(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, approved or rejected"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    requests = ChangeRequestService(db).list_requests(status_filter)
    return _build_responses(db, requests)


@router.get("/status/{request_status}", response_model=List[ChangeRequestResponse])
def list_changes_by_status(
    request_status: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    requests = ChangeRequestService(db).list_requests(request_status)
    return _build_responses(db, requests)


@router.get("/pending/count", response_model=PendingCount)
def get_pending_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"count": ChangeRequestService(db).pending_count()}


@router.get("/{request_id}", response_model=ChangeRequestResponse)
def get_change(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    request = ChangeRequestService(db).get_request(request_id)
    return _build_responses(db, [request])[0]


def _decide(db: Session, request_id: int, current_user: User, decision: str, body: Optional[ChangeDecision]):
    outcome = ChangeRequestService(db).decide(
        request_id,
        approver_id=current_user.user_id,
        decision=decision,
        notes=body.notes if body else None,
    )
    record_audit(db, outcome.audit_entries)
    return _build_responses(db, [outcome.request])[0]


@router.put("/{request_id}/approve", response_model=ChangeRequestResponse)
def approve_change(
    request_id: int,
    body: Optional[ChangeDecision] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Approve a pending request and apply its change."""
    return _decide(db, request_id, current_user, APPROVE, body)


@router.put("/{request_id}/reject", response_model=ChangeRequestResponse)
def reject_change(
    request_id: int,
    body: Optional[ChangeDecision] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Reject a pending request; nothing else changes."""
    return _decide(db, request_id, current_user, REJECT, body)
