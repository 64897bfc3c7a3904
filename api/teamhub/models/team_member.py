"""Team membership ledger - one row per stint of a user on a team."""
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Integer, Boolean, Date, DateTime, ForeignKey, CheckConstraint, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamhub.models.base import Base
from teamhub.core.time import utc_now

if TYPE_CHECKING:
    from teamhub.models.team import Team
    from teamhub.models.user import User


class TeamMembership(Base):
    """A user's membership of a team; active rows have no end date."""
    __tablename__ = "team_members"

    membership_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("teams.team_id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_team_members_date_range"
        ),
        CheckConstraint(
            "(is_active AND end_date IS NULL) OR (NOT is_active AND end_date IS NOT NULL)",
            name="ck_team_members_active_open"
        ),
        # At most one active membership per user
        Index(
            "uq_team_members_active_user",
            "user_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    team: Mapped["Team"] = relationship("Team", back_populates="memberships")
    user: Mapped["User"] = relationship("User", back_populates="memberships")

    def __repr__(self):
        return (
            f"<TeamMembership(id={self.membership_id}, team_id={self.team_id}, "
            f"user_id={self.user_id}, active={self.is_active})>"
        )
