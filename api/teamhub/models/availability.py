"""User availability periods."""
import enum
from datetime import date, datetime
from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, Integer, Date, DateTime, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamhub.models.base import Base
from teamhub.core.time import utc_now

if TYPE_CHECKING:
    from teamhub.models.user import User


class AvailabilityStatus(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    UNAVAILABLE = "unavailable"
    ON_LEAVE = "on_leave"


class UserAvailability(Base):
    """
    A user's availability from start_date until end_date.

    An open end date means the status holds until a newer record replaces it.
    """
    __tablename__ = "user_availability"

    availability_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        CheckConstraint(
            "status IN ('available', 'busy', 'unavailable', 'on_leave')",
            name="ck_user_availability_status"
        ),
        CheckConstraint(
            "end_date IS NULL OR end_date >= start_date",
            name="ck_user_availability_date_range"
        ),
    )

    user: Mapped["User"] = relationship("User", back_populates="availability")
