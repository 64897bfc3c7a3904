"""Team model."""
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import String, Integer, DateTime, Text, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamhub.models.base import Base
from teamhub.core.time import utc_now

if TYPE_CHECKING:
    from teamhub.models.capability import TeamCapability
    from teamhub.models.user import User
    from teamhub.models.team_member import TeamMembership


class Team(Base):
    """Team with an optional designated lead who approves its change requests."""
    __tablename__ = "teams"

    team_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    lead_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    lead: Mapped[Optional["User"]] = relationship("User", foreign_keys=[lead_id])
    memberships: Mapped[List["TeamMembership"]] = relationship(
        "TeamMembership", back_populates="team", cascade="all, delete-orphan", passive_deletes=True
    )
    capabilities: Mapped[List["TeamCapability"]] = relationship(
        "TeamCapability", back_populates="team", cascade="all, delete-orphan"
    )
