"""Capability schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from teamhub.schemas.common import clean_name


class CapabilityBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return clean_name(v)


class CapabilityCreate(CapabilityBase):
    pass


class CapabilityUpdate(BaseModel):
    """Fields left out keep their current value."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return clean_name(v)


class CapabilityRead(CapabilityBase):
    capability_id: int
    created_at: datetime
    updated_at: datetime
    team_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class CapabilityTeam(BaseModel):
    """A team providing a capability, strongest first on the capability detail."""
    team_id: int
    name: str
    description: Optional[str] = None
    strength_level: int
    member_count: int = 0


class CapabilityDetail(CapabilityRead):
    teams: List[CapabilityTeam] = []


class TeamCapabilityAssign(BaseModel):
    capability_id: int
    strength_level: int = Field(..., ge=1, le=5)


class TeamCapabilityUpdate(BaseModel):
    strength_level: int = Field(..., ge=1, le=5)


class TeamCapabilityRead(BaseModel):
    id: int
    team_id: int
    capability_id: int
    strength_level: int
    created_at: datetime
    updated_at: datetime
    capability_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
