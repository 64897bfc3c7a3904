"""Capability catalogue and the capabilities teams provide."""
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import String, Integer, Text, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamhub.models.base import Base
from teamhub.core.time import utc_now

if TYPE_CHECKING:
    from teamhub.models.team import Team


class Capability(Base):
    """A business capability a team can provide."""
    __tablename__ = "capabilities"

    capability_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    team_capabilities: Mapped[List["TeamCapability"]] = relationship(
        "TeamCapability", back_populates="capability"
    )


class TeamCapability(Base):
    """Link between a team and a capability with a 1-5 strength rating."""
    __tablename__ = "team_capabilities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.team_id", ondelete="CASCADE"), nullable=False, index=True)
    capability_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("capabilities.capability_id"), nullable=False, index=True)
    strength_level: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("team_id", "capability_id", name="uq_team_capability"),
        CheckConstraint("strength_level BETWEEN 1 AND 5", name="ck_team_capabilities_strength"),
    )

    team: Mapped["Team"] = relationship("Team", back_populates="capabilities")
    capability: Mapped["Capability"] = relationship("Capability", back_populates="team_capabilities")
