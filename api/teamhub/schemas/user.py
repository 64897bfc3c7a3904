"""User schemas."""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from teamhub.core.roles import RoleCode
from teamhub.schemas.availability import AvailabilityRead
from teamhub.schemas.skill import UserSkillRead
from teamhub.schemas.team_member import TeamMembershipRead


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8)
    role: RoleCode = RoleCode.MEMBER
    hire_date: Optional[date] = None


class UserUpdate(BaseModel):
    email: EmailStr | None = None
    full_name: str | None = Field(None, min_length=1, max_length=255)
    password: str | None = Field(None, min_length=8)
    role: RoleCode | None = None
    hire_date: date | None = None


class UserResponse(BaseModel):
    user_id: int
    email: str
    full_name: str
    role: str
    is_active: bool
    hire_date: Optional[date] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserSummary(UserResponse):
    """List row: the user's current team and skill names."""
    current_team: Optional[str] = None
    skills: List[str] = []


class UserDetail(UserResponse):
    """User with membership history, skills and current availability."""
    team_history: List[TeamMembershipRead] = []
    skills: List[UserSkillRead] = []
    availability: Optional[AvailabilityRead] = None


class CurrentUserResponse(UserResponse):
    role_display: Optional[str] = None
    capabilities: dict = {}
