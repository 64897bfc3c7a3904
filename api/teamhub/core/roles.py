"""Role codes, display names and decision authority checks."""
from __future__ import annotations

import enum
from typing import Optional, Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from teamhub.models.team import Team
    from teamhub.models.user import User


class RoleCode(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    TEAM_LEAD = "team_lead"
    MEMBER = "member"
    READ_ONLY = "read_only"


ROLE_CODE_TO_DISPLAY: Dict[str, str] = {
    RoleCode.SUPER_ADMIN.value: "Super Admin",
    RoleCode.TEAM_LEAD.value: "Team Lead",
    RoleCode.MEMBER.value: "Member",
    RoleCode.READ_ONLY.value: "Read Only",
}


def get_role_display(role_code: str | None, fallback: str | None = None) -> Optional[str]:
    if not role_code:
        return fallback
    return ROLE_CODE_TO_DISPLAY.get(role_code, fallback)


def is_super_admin(user: "User") -> bool:
    return user.role == RoleCode.SUPER_ADMIN.value


def is_read_only(user: "User") -> bool:
    return user.role == RoleCode.READ_ONLY.value


def is_team_lead_of(user: "User", team: Optional["Team"]) -> bool:
    return team is not None and team.lead_id is not None and team.lead_id == user.user_id


def can_decide_for_team(user: "User", team: Optional["Team"]) -> bool:
    """Super admins decide everything; otherwise only the team's designated lead."""
    if not user.is_active:
        return False
    return is_super_admin(user) or is_team_lead_of(user, team)


def can_manage_user(actor: "User", user_id: int) -> bool:
    """Super admins manage anyone; other writers manage only their own skills and availability."""
    if not actor.is_active or is_read_only(actor):
        return False
    return is_super_admin(actor) or actor.user_id == user_id


def build_capabilities(role_code: str | None) -> dict:
    return {
        "is_super_admin": role_code == RoleCode.SUPER_ADMIN.value,
        "can_manage_users": role_code == RoleCode.SUPER_ADMIN.value,
        "can_manage_teams": role_code == RoleCode.SUPER_ADMIN.value,
        "can_manage_hierarchy": role_code == RoleCode.SUPER_ADMIN.value,
        "can_manage_catalogues": role_code == RoleCode.SUPER_ADMIN.value,
        "can_submit_changes": role_code != RoleCode.READ_ONLY.value,
        "can_approve_changes": role_code in {
            RoleCode.SUPER_ADMIN.value,
            RoleCode.TEAM_LEAD.value,
        },
    }
