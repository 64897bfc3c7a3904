"""Team schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from teamhub.schemas.common import clean_name


class TeamBase(BaseModel):
    """Base team schema."""
    name: str = Field(..., min_length=1, max_length=255, description="Team name")
    description: Optional[str] = Field(None, description="Team description")
    lead_id: Optional[int] = Field(None, description="User who approves this team's change requests")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return clean_name(v)


class TeamCreate(TeamBase):
    """Schema for creating a team."""
    pass


class TeamUpdate(BaseModel):
    """Schema for updating a team."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    lead_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return clean_name(v)


class TeamBasic(BaseModel):
    """Minimal team info for embedding in other responses."""
    team_id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


class TeamRead(TeamBase):
    """Team response schema."""
    team_id: int
    created_at: datetime
    updated_at: datetime
    member_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class TeamDetail(TeamRead):
    """Team detail with its immediate neighbours in the hierarchy."""
    parent_teams: List[TeamBasic] = []
    child_teams: List[TeamBasic] = []
