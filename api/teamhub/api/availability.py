"""User availability routes."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from teamhub.core.audit import AuditEntry, record_audit, snapshot
from teamhub.core.availability import current_availability
from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user
from teamhub.core.errors import ForbiddenError, NotFoundError, ValidationError
from teamhub.core.memberships import TeamMembershipService
from teamhub.core.roles import can_manage_user
from teamhub.core.time import utc_today
from teamhub.models.availability import UserAvailability
from teamhub.models.team import Team
from teamhub.models.team_member import TeamMembership
from teamhub.models.user import User
from teamhub.schemas.availability import (
    AvailabilityCreate,
    AvailabilityRead,
    AvailabilitySummaryRow,
    AvailabilityUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

AVAILABILITY_FIELDS = ("user_id", "status", "start_date", "end_date", "notes")


def _get_record_or_404(db: Session, availability_id: int) -> UserAvailability:
    record = db.get(UserAvailability, availability_id)
    if not record:
        raise NotFoundError("Availability record not found", {"availability_id": availability_id})
    return record


def _require_user_access(current_user: User, user_id: int) -> None:
    if not can_manage_user(current_user, user_id):
        raise ForbiddenError("You can only manage your own availability", {"user_id": user_id})


def _to_read(record: UserAvailability, team_name: Optional[str] = None) -> AvailabilityRead:
    response = AvailabilityRead.model_validate(record)
    response.user_name = record.user.full_name if record.user else None
    response.team_name = team_name
    return response


@router.get("/", response_model=List[AvailabilityRead])
def list_availability(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Every availability record, latest start first, with the user's current team."""
    records = db.query(UserAvailability).options(joinedload(UserAvailability.user)).order_by(
        UserAvailability.start_date.desc(), UserAvailability.availability_id.desc()
    ).all()
    team_names = TeamMembershipService(db).current_team_names()
    return [_to_read(r, team_names.get(r.user_id)) for r in records]


@router.get("/user/{user_id}", response_model=List[AvailabilityRead])
def list_user_availability(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not db.get(User, user_id):
        raise NotFoundError("User not found", {"user_id": user_id})
    records = db.query(UserAvailability).filter(
        UserAvailability.user_id == user_id
    ).order_by(UserAvailability.start_date.desc(), UserAvailability.availability_id.desc()).all()
    return [_to_read(r) for r in records]


@router.get("/user/{user_id}/current", response_model=Optional[AvailabilityRead])
def get_current_availability(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """The user's availability today, or null when no record covers today."""
    if not db.get(User, user_id):
        raise NotFoundError("User not found", {"user_id": user_id})
    record = current_availability(db, user_id)
    return _to_read(record) if record else None


@router.get("/team/{team_id}/summary", response_model=List[AvailabilitySummaryRow])
def get_team_availability_summary(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Count of not-yet-ended availability records per status across the team's active members."""
    if not db.get(Team, team_id):
        raise NotFoundError("Team not found", {"team_id": team_id})
    today = utc_today()
    rows = db.query(UserAvailability.status, func.count(UserAvailability.availability_id)).join(
        TeamMembership, TeamMembership.user_id == UserAvailability.user_id
    ).filter(
        TeamMembership.team_id == team_id,
        TeamMembership.is_active.is_(True),
        or_(UserAvailability.end_date.is_(None), UserAvailability.end_date >= today),
    ).group_by(UserAvailability.status).order_by(UserAvailability.status).all()
    return [AvailabilitySummaryRow(status=s, count=count) for s, count in rows]


@router.post("/", response_model=AvailabilityRead, status_code=status.HTTP_201_CREATED)
def create_availability(
    payload: AvailabilityCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _require_user_access(current_user, payload.user_id)
    if not db.get(User, payload.user_id):
        raise NotFoundError("User not found", {"user_id": payload.user_id})

    record = UserAvailability(
        user_id=payload.user_id,
        status=payload.status.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        notes=payload.notes,
    )
    db.add(record)
    db.commit()
    db.refresh(record)

    record_audit(db, [AuditEntry(
        table_name="user_availability",
        record_id=record.availability_id,
        action="CREATE",
        actor_id=current_user.user_id,
        new_values=snapshot(record, AVAILABILITY_FIELDS),
        summary=f"Set user {record.user_id} {record.status} from {record.start_date.isoformat()}",
    )])
    return _to_read(record)


@router.patch("/{availability_id}", response_model=AvailabilityRead)
def update_availability(
    availability_id: int,
    payload: AvailabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    record = _get_record_or_404(db, availability_id)
    _require_user_access(current_user, record.user_id)

    update_data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "status" in update_data:
        update_data["status"] = update_data["status"].value
    start_date = update_data.get("start_date", record.start_date)
    end_date = update_data.get("end_date", record.end_date)
    if end_date is not None and end_date < start_date:
        raise ValidationError(
            "end_date cannot be before start_date",
            {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )

    before = snapshot(record, AVAILABILITY_FIELDS)
    for field, value in update_data.items():
        setattr(record, field, value)
    db.commit()
    db.refresh(record)

    record_audit(db, [AuditEntry(
        table_name="user_availability",
        record_id=record.availability_id,
        action="UPDATE",
        actor_id=current_user.user_id,
        old_values=before,
        new_values=snapshot(record, AVAILABILITY_FIELDS),
        summary=f"Updated availability {record.availability_id} for user {record.user_id}",
    )])
    return _to_read(record)


@router.delete("/{availability_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(
    availability_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    record = _get_record_or_404(db, availability_id)
    _require_user_access(current_user, record.user_id)

    before = snapshot(record, AVAILABILITY_FIELDS)
    db.delete(record)
    db.commit()

    record_audit(db, [AuditEntry(
        table_name="user_availability",
        record_id=availability_id,
        action="DELETE",
        actor_id=current_user.user_id,
        old_values=before,
        summary=f"Deleted availability {availability_id} for user {before['user_id']}",
    )])
    logger.info("Availability %s deleted by user %s", availability_id, current_user.user_id)
