"""Models package."""
from teamhub.models.base import Base
from teamhub.models.user import User
from teamhub.models.team import Team
from teamhub.models.team_member import TeamMembership
from teamhub.models.team_hierarchy import TeamHierarchy
from teamhub.models.change_request import ChangeRequest, ChangeRequestType, ChangeRequestStatus
from teamhub.models.audit_log import AuditLog
from teamhub.models.skill import Skill, UserSkill
from teamhub.models.capability import Capability, TeamCapability
from teamhub.models.availability import AvailabilityStatus, UserAvailability

__all__ = [
    "Base",
    "User",
    "Team",
    "TeamMembership",
    "TeamHierarchy",
    "ChangeRequest",
    "ChangeRequestType",
    "ChangeRequestStatus",
    "AuditLog",
    "Skill",
    "UserSkill",
    "Capability",
    "TeamCapability",
    "AvailabilityStatus",
    "UserAvailability",
]
