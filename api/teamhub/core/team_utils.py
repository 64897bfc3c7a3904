"""Team helpers shared by direct admin edits and approved change requests."""
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from teamhub.core.catalogue import assert_name_available
from teamhub.core.errors import ConflictError
from teamhub.core.memberships import TeamMembershipService
from teamhub.models.team import Team
from teamhub.models.team_hierarchy import TeamHierarchy
from teamhub.models.team_member import TeamMembership

TEAM_FIELDS = ("name", "description", "lead_id")


def assert_team_name_available(db: Session, name: str, exclude_team_id: Optional[int] = None) -> None:
    assert_name_available(db, Team, name, "Team", exclude_id=exclude_team_id)


def active_member_counts(db: Session) -> Dict[int, int]:
    """Map of team_id -> number of active members."""
    return dict(
        db.query(TeamMembership.team_id, func.count(TeamMembership.membership_id))
        .filter(TeamMembership.is_active.is_(True))
        .group_by(TeamMembership.team_id)
        .all()
    )


def delete_team(db: Session, team: Team) -> None:
    """Delete a team with no active members together with its hierarchy edges.

    Flushes only; the caller commits.
    """
    active = TeamMembershipService(db).active_member_count(team.team_id)
    if active:
        raise ConflictError(
            "Cannot delete team with active members",
            {"team_id": team.team_id, "active_members": active},
        )
    db.query(TeamHierarchy).filter(
        (TeamHierarchy.parent_team_id == team.team_id)
        | (TeamHierarchy.child_team_id == team.team_id)
    ).delete(synchronize_session=False)
    db.delete(team)
    db.flush()
