"""Availability lookups shared by the user and availability routes."""
from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from teamhub.core.time import utc_today
from teamhub.models.availability import UserAvailability


def current_availability(db: Session, user_id: int, as_of: Optional[date] = None) -> Optional[UserAvailability]:
    """The record in force on as_of: started on or before it and not yet ended."""
    as_of = as_of or utc_today()
    return db.query(UserAvailability).filter(
        UserAvailability.user_id == user_id,
        UserAvailability.start_date <= as_of,
        or_(UserAvailability.end_date.is_(None), UserAvailability.end_date >= as_of),
    ).order_by(
        UserAvailability.start_date.desc(), UserAvailability.availability_id.desc()
    ).first()
