"""Skill catalogue and the skills held by users."""
from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import String, Integer, Float, Text, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamhub.models.base import Base
from teamhub.core.time import utc_now

if TYPE_CHECKING:
    from teamhub.models.user import User


class Skill(Base):
    """A named skill, optionally grouped by category."""
    __tablename__ = "skills"

    skill_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user_skills: Mapped[List["UserSkill"]] = relationship("UserSkill", back_populates="skill")


class UserSkill(Base):
    """Link between a user and a skill with a 1-5 proficiency rating."""
    __tablename__ = "user_skills"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    skill_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("skills.skill_id"), nullable=False, index=True)
    proficiency_level: Mapped[int] = mapped_column(Integer, nullable=False)
    years_experience: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        UniqueConstraint("user_id", "skill_id", name="uq_user_skill"),
        CheckConstraint("proficiency_level BETWEEN 1 AND 5", name="ck_user_skills_proficiency"),
        CheckConstraint(
            "years_experience IS NULL OR years_experience >= 0",
            name="ck_user_skills_experience"
        ),
    )

    user: Mapped["User"] = relationship("User", back_populates="skills")
    skill: Mapped["Skill"] = relationship("Skill", back_populates="user_skills")
