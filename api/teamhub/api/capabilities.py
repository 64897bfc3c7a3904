"""Capability catalogue and team capability routes."""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session, joinedload

from teamhub.core.audit import AuditEntry, record_audit, snapshot
from teamhub.core.catalogue import assert_name_available, usage_counts
from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user, require_super_admin
from teamhub.core.errors import ConflictError, ForbiddenError, NotFoundError
from teamhub.core.roles import can_decide_for_team
from teamhub.core.team_utils import active_member_counts
from teamhub.models.capability import Capability, TeamCapability
from teamhub.models.team import Team
from teamhub.models.user import User
from teamhub.schemas.capability import (
    CapabilityCreate,
    CapabilityDetail,
    CapabilityRead,
    CapabilityTeam,
    CapabilityUpdate,
    TeamCapabilityAssign,
    TeamCapabilityRead,
    TeamCapabilityUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()

CAPABILITY_FIELDS = ("name", "category", "description")
TEAM_CAPABILITY_FIELDS = ("team_id", "capability_id", "strength_level")


def _get_capability_or_404(db: Session, capability_id: int) -> Capability:
    capability = db.get(Capability, capability_id)
    if not capability:
        raise NotFoundError("Capability not found", {"capability_id": capability_id})
    return capability


def _get_team_for_edit(db: Session, team_id: int, current_user: User) -> Team:
    """Load the team and check the user may rate its capabilities."""
    team = db.get(Team, team_id)
    if not team:
        raise NotFoundError("Team not found", {"team_id": team_id})
    if not can_decide_for_team(current_user, team):
        raise ForbiddenError(
            "Only a super admin or the team's lead can change its capabilities",
            {"team_id": team_id},
        )
    return team


def _get_team_capability_or_404(db: Session, team_id: int, capability_id: int) -> TeamCapability:
    team_capability = db.query(TeamCapability).options(joinedload(TeamCapability.capability)).filter(
        TeamCapability.team_id == team_id,
        TeamCapability.capability_id == capability_id,
    ).first()
    if not team_capability:
        raise NotFoundError(
            "Team capability not found",
            {"team_id": team_id, "capability_id": capability_id},
        )
    return team_capability


def _team_capability_read(team_capability: TeamCapability) -> TeamCapabilityRead:
    response = TeamCapabilityRead.model_validate(team_capability)
    response.capability_name = team_capability.capability.name if team_capability.capability else None
    return response


@router.get("/", response_model=List[CapabilityRead])
def list_capabilities(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List capabilities with the number of teams providing each."""
    capabilities = db.query(Capability).order_by(Capability.name).all()
    counts = usage_counts(db, TeamCapability.capability_id, TeamCapability.team_id)

    results = []
    for capability in capabilities:
        capability_data = CapabilityRead.model_validate(capability).model_dump()
        capability_data["team_count"] = counts.get(capability.capability_id, 0)
        results.append(capability_data)
    return results


@router.get("/team/{team_id}", response_model=List[TeamCapabilityRead])
def list_team_capabilities(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not db.get(Team, team_id):
        raise NotFoundError("Team not found", {"team_id": team_id})
    team_capabilities = db.query(TeamCapability).options(
        joinedload(TeamCapability.capability)
    ).filter(TeamCapability.team_id == team_id).order_by(
        TeamCapability.strength_level.desc(), TeamCapability.capability_id
    ).all()
    return [_team_capability_read(tc) for tc in team_capabilities]


@router.get("/{capability_id}", response_model=CapabilityDetail)
def get_capability(
    capability_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Capability with the teams providing it, strongest first."""
    capability = _get_capability_or_404(db, capability_id)
    rows = db.query(TeamCapability, Team).join(
        Team, TeamCapability.team_id == Team.team_id
    ).filter(TeamCapability.capability_id == capability_id).order_by(
        TeamCapability.strength_level.desc(), Team.name
    ).all()
    member_counts = active_member_counts(db)

    capability_data = CapabilityRead.model_validate(capability).model_dump()
    capability_data["team_count"] = len(rows)
    capability_data["teams"] = [
        CapabilityTeam(
            team_id=team.team_id,
            name=team.name,
            description=team.description,
            strength_level=team_capability.strength_level,
            member_count=member_counts.get(team.team_id, 0),
        )
        for team_capability, team in rows
    ]
    return capability_data


@router.post("/", response_model=CapabilityRead, status_code=status.HTTP_201_CREATED)
def create_capability(
    payload: CapabilityCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    assert_name_available(db, Capability, payload.name, "Capability")
    capability = Capability(**payload.model_dump())
    db.add(capability)
    db.commit()
    db.refresh(capability)

    record_audit(db, [AuditEntry(
        table_name="capabilities",
        record_id=capability.capability_id,
        action="CREATE",
        actor_id=current_user.user_id,
        new_values=snapshot(capability, CAPABILITY_FIELDS),
        summary=f"Created capability '{capability.name}'",
    )])
    return capability


@router.patch("/{capability_id}", response_model=CapabilityRead)
def update_capability(
    capability_id: int,
    payload: CapabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    capability = _get_capability_or_404(db, capability_id)
    update_data = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
    if "name" in update_data:
        assert_name_available(db, Capability, update_data["name"], "Capability", exclude_id=capability_id)

    before = snapshot(capability, CAPABILITY_FIELDS)
    for field, value in update_data.items():
        setattr(capability, field, value)
    db.commit()
    db.refresh(capability)

    record_audit(db, [AuditEntry(
        table_name="capabilities",
        record_id=capability.capability_id,
        action="UPDATE",
        actor_id=current_user.user_id,
        old_values=before,
        new_values=snapshot(capability, CAPABILITY_FIELDS),
        summary=f"Updated capability '{capability.name}'",
    )])
    capability_data = CapabilityRead.model_validate(capability).model_dump()
    capability_data["team_count"] = db.query(TeamCapability).filter(
        TeamCapability.capability_id == capability_id
    ).count()
    return capability_data


@router.delete("/{capability_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_capability(
    capability_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_super_admin)
):
    """Delete a capability no team provides."""
    capability = _get_capability_or_404(db, capability_id)
    teams = db.query(TeamCapability).filter(TeamCapability.capability_id == capability_id).count()
    if teams:
        raise ConflictError(
            "Cannot delete capability that is assigned to teams",
            {"capability_id": capability_id, "teams": teams},
        )

    before = snapshot(capability, CAPABILITY_FIELDS)
    db.delete(capability)
    db.commit()

    record_audit(db, [AuditEntry(
        table_name="capabilities",
        record_id=capability_id,
        action="DELETE",
        actor_id=current_user.user_id,
        old_values=before,
        summary=f"Deleted capability '{before['name']}'",
    )])


@router.post("/team/{team_id}", response_model=TeamCapabilityRead, status_code=status.HTTP_201_CREATED)
def add_team_capability(
    team_id: int,
    payload: TeamCapabilityAssign,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Rate a team on a capability."""
    _get_team_for_edit(db, team_id, current_user)
    _get_capability_or_404(db, payload.capability_id)

    team_capability = TeamCapability(team_id=team_id, **payload.model_dump())
    db.add(team_capability)
    try:
        db.commit()
    except sa_exc.IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            "Team already has this capability",
            {"team_id": team_id, "capability_id": payload.capability_id},
        ) from exc
    db.refresh(team_capability)

    record_audit(db, [AuditEntry(
        table_name="team_capabilities",
        record_id=team_capability.id,
        action="CREATE",
        actor_id=current_user.user_id,
        new_values=snapshot(team_capability, TEAM_CAPABILITY_FIELDS),
        summary=f"Added capability {payload.capability_id} to team {team_id}",
    )])
    return _team_capability_read(team_capability)


@router.patch("/team/{team_id}/{capability_id}", response_model=TeamCapabilityRead)
def update_team_capability(
    team_id: int,
    capability_id: int,
    payload: TeamCapabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _get_team_for_edit(db, team_id, current_user)
    team_capability = _get_team_capability_or_404(db, team_id, capability_id)

    before = snapshot(team_capability, TEAM_CAPABILITY_FIELDS)
    team_capability.strength_level = payload.strength_level
    db.commit()
    db.refresh(team_capability)

    record_audit(db, [AuditEntry(
        table_name="team_capabilities",
        record_id=team_capability.id,
        action="UPDATE",
        actor_id=current_user.user_id,
        old_values=before,
        new_values=snapshot(team_capability, TEAM_CAPABILITY_FIELDS),
        summary=f"Updated capability {capability_id} for team {team_id}",
    )])
    return _team_capability_read(team_capability)


@router.delete("/team/{team_id}/{capability_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_team_capability(
    team_id: int,
    capability_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    _get_team_for_edit(db, team_id, current_user)
    team_capability = _get_team_capability_or_404(db, team_id, capability_id)

    record_id = team_capability.id
    before = snapshot(team_capability, TEAM_CAPABILITY_FIELDS)
    db.delete(team_capability)
    db.commit()

    record_audit(db, [AuditEntry(
        table_name="team_capabilities",
        record_id=record_id,
        action="DELETE",
        actor_id=current_user.user_id,
        old_values=before,
        summary=f"Removed capability {capability_id} from team {team_id}",
    )])
    logger.info("Capability %s removed from team %s by user %s", capability_id, team_id, current_user.user_id)
