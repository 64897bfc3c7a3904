"""Skill schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from teamhub.schemas.common import clean_name


class SkillBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return clean_name(v)


class SkillCreate(SkillBase):
    pass


class SkillUpdate(BaseModel):
    """Fields left out keep their current value."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return clean_name(v)


class SkillRead(SkillBase):
    skill_id: int
    created_at: datetime
    updated_at: datetime
    user_count: int = 0

    model_config = ConfigDict(from_attributes=True)


class SkillHolder(BaseModel):
    """A user holding a skill, as listed on the skill detail."""
    user_id: int
    full_name: str
    email: str
    role: str
    proficiency_level: int
    years_experience: Optional[float] = None
    team_name: Optional[str] = None


class SkillDetail(SkillRead):
    users: List[SkillHolder] = []


class UserSkillAssign(BaseModel):
    skill_id: int
    proficiency_level: int = Field(..., ge=1, le=5)
    years_experience: Optional[float] = Field(None, ge=0)


class UserSkillUpdate(BaseModel):
    proficiency_level: Optional[int] = Field(None, ge=1, le=5)
    years_experience: Optional[float] = Field(None, ge=0)


class UserSkillRead(BaseModel):
    id: int
    user_id: int
    skill_id: int
    proficiency_level: int
    years_experience: Optional[float] = None
    created_at: datetime
    updated_at: datetime
    skill_name: Optional[str] = None
    category: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
