"""Team hierarchy schemas."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict


class HierarchyEdgeCreate(BaseModel):
    parent_team_id: int
    child_team_id: int


class HierarchyEdgeRead(BaseModel):
    id: int
    parent_team_id: int
    child_team_id: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HierarchyTeam(BaseModel):
    """A team positioned relative to another; level 0 is the nearest."""
    team_id: int
    name: str
    description: Optional[str] = None
    level: int


class TreeNode(BaseModel):
    team_id: int
    name: str
    description: Optional[str] = None
    parent_team_id: Optional[int] = None
    level: int


class TeamHierarchyView(BaseModel):
    parents: List[HierarchyTeam]
    children: List[HierarchyTeam]
