"""Helpers for the named catalogues (teams, skills, capabilities)."""
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from teamhub.core.errors import ConflictError


def assert_name_available(
    db: Session,
    model,
    name: str,
    label: str,
    exclude_id: Optional[int] = None,
) -> None:
    """Raise ConflictError if another row of model already uses name (case-insensitive)."""
    pk = model.__mapper__.primary_key[0]
    query = db.query(model).filter(func.lower(model.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(pk != exclude_id)
    if query.first():
        raise ConflictError(f"{label} name already exists", {"name": name})


def usage_counts(db: Session, key_column, counted_column) -> Dict[int, int]:
    """Map of key -> number of link rows, e.g. skill_id -> holders."""
    return dict(
        db.query(key_column, func.count(counted_column))
        .group_by(key_column)
        .all()
    )
