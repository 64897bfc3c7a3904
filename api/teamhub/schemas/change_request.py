"""Change request schemas.

Each request type is its own model carrying a typed ``details`` payload; the
``ChangeRequestPayload`` union is discriminated on ``request_type``.
"""
from datetime import date, datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from teamhub.schemas.common import clean_name


class MemberNoteDetails(BaseModel):
    """Free-form context for member changes."""
    note: Optional[str] = Field(None, max_length=2000)

    model_config = ConfigDict(extra="allow")


class MoveMemberDetails(BaseModel):
    from_team_id: int
    to_team_id: int
    move_date: date
    note: Optional[str] = Field(None, max_length=2000)


class CreateTeamDetails(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str]

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return clean_name(v)


class UpdateTeamDetails(BaseModel):
    """Fields left out keep their current value."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return clean_name(v)


class AddMemberChange(BaseModel):
    request_type: Literal["add_member"]
    team_id: int
    user_id: int
    details: MemberNoteDetails = Field(default_factory=MemberNoteDetails)


class RemoveMemberChange(BaseModel):
    request_type: Literal["remove_member"]
    team_id: int
    user_id: int
    details: MemberNoteDetails = Field(default_factory=MemberNoteDetails)


class MoveMemberChange(BaseModel):
    request_type: Literal["move_member"]
    user_id: int
    team_id: Optional[int] = None
    details: MoveMemberDetails

    @model_validator(mode="after")
    def check_deciding_team(self):
        """The deciding team must be one of the two teams the move touches."""
        if self.team_id is not None and self.team_id not in (
            self.details.from_team_id, self.details.to_team_id
        ):
            raise ValueError("team_id must be the source or destination team of the move")
        return self


class CreateTeamChange(BaseModel):
    request_type: Literal["create_team"]
    team_id: Optional[int] = None
    user_id: Optional[int] = None
    details: CreateTeamDetails


class UpdateTeamChange(BaseModel):
    request_type: Literal["update_team"]
    team_id: int
    user_id: Optional[int] = None
    details: UpdateTeamDetails = Field(default_factory=UpdateTeamDetails)


class DeleteTeamChange(BaseModel):
    request_type: Literal["delete_team"]
    team_id: int
    user_id: Optional[int] = None
    details: Dict[str, Any] = Field(default_factory=dict)


ChangeRequestPayload = Annotated[
    Union[
        AddMemberChange,
        RemoveMemberChange,
        MoveMemberChange,
        CreateTeamChange,
        UpdateTeamChange,
        DeleteTeamChange,
    ],
    Field(discriminator="request_type"),
]

change_payload_adapter: TypeAdapter = TypeAdapter(ChangeRequestPayload)


class ChangeRequestSubmit(BaseModel):
    """Body for POST /changes. Shape is checked per type by the workflow service."""
    request_type: str
    team_id: Optional[int] = None
    user_id: Optional[int] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class ChangeDecision(BaseModel):
    """Body for approve/reject."""
    notes: Optional[str] = Field(None, max_length=2000)


class ChangeRequestResponse(BaseModel):
    request_id: int
    request_type: str
    requester_id: int
    team_id: Optional[int] = None
    user_id: Optional[int] = None
    details: Dict[str, Any]
    status: str
    approver_id: Optional[int] = None
    approved_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    requester_name: Optional[str] = None
    approver_name: Optional[str] = None
    team_name: Optional[str] = None
    user_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PendingCount(BaseModel):
    count: int
