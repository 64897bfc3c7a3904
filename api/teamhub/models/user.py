"""User model."""
from datetime import date, datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import String, Integer, Boolean, Date, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamhub.core.roles import RoleCode
from teamhub.core.time import utc_now
from teamhub.models.base import Base

if TYPE_CHECKING:
    from teamhub.models.availability import UserAvailability
    from teamhub.models.skill import UserSkill
    from teamhub.models.team_member import TeamMembership


class User(Base):
    """User model."""
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(50), nullable=False, default=RoleCode.MEMBER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    hire_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    memberships: Mapped[List["TeamMembership"]] = relationship(
        "TeamMembership", back_populates="user"
    )
    skills: Mapped[List["UserSkill"]] = relationship(
        "UserSkill", back_populates="user", cascade="all, delete-orphan"
    )
    availability: Mapped[List["UserAvailability"]] = relationship(
        "UserAvailability", back_populates="user", cascade="all, delete-orphan"
    )
