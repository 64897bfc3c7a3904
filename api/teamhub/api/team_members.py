"""Team membership read endpoints. Writes go through change requests."""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user
from teamhub.core.memberships import TeamMembershipService
from teamhub.models.team_member import TeamMembership
from teamhub.models.user import User
from teamhub.schemas.team_member import TeamMemberStats, TeamMembershipRead

router = APIRouter()


def _to_read(membership: TeamMembership) -> TeamMembershipRead:
    response = TeamMembershipRead.model_validate(membership)
    response.team_name = membership.team.name if membership.team else None
    if membership.user:
        response.user_name = membership.user.full_name
        response.user_email = membership.user.email
    return response


@router.get("/team/{team_id}", response_model=List[TeamMembershipRead])
def list_team_members(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Active members of a team, by name."""
    memberships = TeamMembershipService(db).members_of_team(team_id)
    return [_to_read(m) for m in memberships]


@router.get("/user/{user_id}/history", response_model=List[TeamMembershipRead])
def get_membership_history(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Every membership the user has held, newest first."""
    memberships = TeamMembershipService(db).history_for_user(user_id)
    return [_to_read(m) for m in memberships]


@router.get("/team/{team_id}/stats", response_model=TeamMemberStats)
def get_team_member_stats(
    team_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Active headcount by role and average tenure of the team's members."""
    return TeamMembershipService(db).team_stats(team_id)
