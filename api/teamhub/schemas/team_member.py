"""Team membership schemas."""
from datetime import date, datetime
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict


class TeamMembershipRead(BaseModel):
    membership_id: int
    team_id: int
    user_id: int
    start_date: date
    end_date: Optional[date] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    team_name: Optional[str] = None
    user_name: Optional[str] = None
    user_email: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TeamMemberStats(BaseModel):
    """Headcount of a team's active members by role, with average tenure in whole years."""
    team_id: int
    total_members: int
    by_role: Dict[str, int] = {}
    avg_tenure_years: Optional[float] = None
