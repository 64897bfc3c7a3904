"""Team hierarchy model - parent-child relationships between teams."""
from datetime import datetime

from sqlalchemy import Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamhub.models.base import Base
from teamhub.core.time import utc_now


class TeamHierarchy(Base):
    """Directed parent -> child edge in the team containment graph."""
    __tablename__ = "team_hierarchy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    parent_team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.team_id", ondelete="CASCADE"), nullable=False, index=True
    )
    child_team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.team_id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        UniqueConstraint('parent_team_id', 'child_team_id', name='uq_team_hierarchy'),
        CheckConstraint('parent_team_id != child_team_id', name='ck_team_hierarchy_no_self_ref'),
    )

    parent_team = relationship("Team", foreign_keys=[parent_team_id])
    child_team = relationship("Team", foreign_keys=[child_team_id])
