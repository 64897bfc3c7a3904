"""Team management API endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from teamhub.core.audit import AuditEntry, record_audit, snapshot
from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user, require_super_admin
from teamhub.core.errors import NotFoundError, ValidationError
from teamhub.core.team_utils import (
    TEAM_FIELDS,
    active_member_counts,
    assert_team_name_available,
    delete_team as delete_team_record,
)
from teamhub.models.team import Team
from teamhub.models.team_hierarchy import TeamHierarchy
from teamhub.models.user import User
from teamhub.schemas.team import TeamBasic, TeamCreate, TeamDetail, TeamRead, TeamUpdate

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_team_or_404(db: Session, team_id: int) -> Team:
    team = db.get(Team, team_id)
    if not team:
        raise NotFoundError("Team not found", {"team_id": team_id})
    return team


def _validate_lead(db: Session, lead_id: int | None) -> None:
    if lead_id is not None and db.get(User, lead_id) is None:
        raise ValidationError("Team lead must be an existing user", {"lead_id": lead_id})


@router.get("/", response_model=List[TeamRead])
def list_teams(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    teams = db.query(Team).order_by(Team.name).all()
    counts = active_member_counts(db)

    results = []
    for team in teams:
        team_data = TeamRead.model_validate(team).model_dump()
        team_data["member_count"] = counts.get(team.team_id, 0)
        results.append(team_data)
    return results


@router.get("/{team_id}", response_model=TeamDetail)
def get_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Team with member count and its direct parents and children."""
    team = _get_team_or_404(db, team_id)

    parents = db.query(Team).join(
        TeamHierarchy, TeamHierarchy.parent_team_id == Team.team_id
    ).filter(TeamHierarchy.child_team_id == team_id).order_by(Team.name).all()
    children = db.query(Team).join(
        TeamHierarchy, TeamHierarchy.child_team_id == Team.team_id
    ).filter(TeamHierarchy.parent_team_id == team_id).order_by(Team.name).all()

    team_data = TeamRead.model_validate(team).model_dump()
    team_data["member_count"] = active_member_counts(db).get(team.team_id, 0)
    team_data["parent_teams"] = [TeamBasic.model_validate(t) for t in parents]
    team_data["child_teams"] = [TeamBasic.model_validate(t) for t in children]
    return team_data


@router.post("/", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
def create_team(
    payload: TeamCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    assert_team_name_available(db, payload.name)
    _validate_lead(db, payload.lead_id)

    team = Team(**payload.model_dump())
    db.add(team)
    db.commit()
    db.refresh(team)

    record_audit(db, [AuditEntry(
        table_name="teams",
        record_id=team.team_id,
        action="CREATE",
        actor_id=current_user.user_id,
        new_values=snapshot(team, TEAM_FIELDS),
        summary=f"Created team '{team.name}'",
    )])
    logger.info("Team %s created by user %s", team.team_id, current_user.user_id)
    return team


@router.patch("/{team_id}", response_model=TeamRead)
def update_team(
    team_id: int,
    payload: TeamUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    team = _get_team_or_404(db, team_id)
    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data:
        if update_data["name"] is None:
            raise ValidationError("Team name cannot be empty")
        assert_team_name_available(db, update_data["name"], exclude_team_id=team_id)
    if "lead_id" in update_data:
        _validate_lead(db, update_data["lead_id"])

    before = snapshot(team, TEAM_FIELDS)
    for field, value in update_data.items():
        setattr(team, field, value)
    db.commit()
    db.refresh(team)

    record_audit(db, [AuditEntry(
        table_name="teams",
        record_id=team.team_id,
        action="UPDATE",
        actor_id=current_user.user_id,
        old_values=before,
        new_values=snapshot(team, TEAM_FIELDS),
        summary=f"Updated team '{team.name}'",
    )])
    team_data = TeamRead.model_validate(team).model_dump()
    team_data["member_count"] = active_member_counts(db).get(team.team_id, 0)
    return team_data


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_team(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    team = _get_team_or_404(db, team_id)
    before = snapshot(team, TEAM_FIELDS)
    try:
        delete_team_record(db, team)
        db.commit()
    except Exception:
        db.rollback()
        raise

    record_audit(db, [AuditEntry(
        table_name="teams",
        record_id=team_id,
        action="DELETE",
        actor_id=current_user.user_id,
        old_values=before,
        summary=f"Deleted team '{before['name']}'",
    )])
    logger.info("Team %s deleted by user %s", team_id, current_user.user_id)
