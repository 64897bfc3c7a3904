"""Change request - a proposed team mutation awaiting an approver's decision."""
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, DateTime, Text, ForeignKey, JSON, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamhub.models.base import Base
from teamhub.core.time import utc_now


class ChangeRequestType(str, enum.Enum):
    ADD_MEMBER = "add_member"
    REMOVE_MEMBER = "remove_member"
    MOVE_MEMBER = "move_member"
    CREATE_TEAM = "create_team"
    UPDATE_TEAM = "update_team"
    DELETE_TEAM = "delete_team"


class ChangeRequestStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ChangeRequest(Base):
    """
    Stores requested team changes.

    Rows are never deleted; status moves from pending to approved or rejected
    exactly once. team_id and user_id carry no foreign key so the decision
    record survives deletion of the team it referenced.
    """
    __tablename__ = "change_requests"

    request_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_type: Mapped[str] = mapped_column(String(30), nullable=False)
    requester_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.user_id"), nullable=False, index=True
    )
    team_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    details: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ChangeRequestStatus.PENDING.value, index=True
    )
    approver_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.user_id"), nullable=True
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_change_requests_status"
        ),
        CheckConstraint(
            "(status = 'pending' AND approver_id IS NULL AND approved_at IS NULL) "
            "OR (status != 'pending' AND approver_id IS NOT NULL AND approved_at IS NOT NULL)",
            name="ck_change_requests_decision_fields"
        ),
    )

    requester = relationship("User", foreign_keys=[requester_id])
    approver = relationship("User", foreign_keys=[approver_id])

    @property
    def is_pending(self) -> bool:
        return self.status == ChangeRequestStatus.PENDING.value

    def __repr__(self):
        return f"<ChangeRequest(id={self.request_id}, type={self.request_type}, status={self.status})>"
