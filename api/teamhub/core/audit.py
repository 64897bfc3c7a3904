"""Audit entry value object and writer.

Services describe what they changed as ``AuditEntry`` values; routers persist
them after the operation with ``record_audit``.
"""
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Optional

from sqlalchemy.orm import Session

from teamhub.models.audit_log import AuditLog


@dataclass(frozen=True)
class AuditEntry:
    table_name: str
    record_id: int
    action: str
    actor_id: int
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    summary: Optional[str] = None


def _jsonable(values: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if values is None:
        return None
    result = {}
    for key, value in values.items():
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        result[key] = value
    return result


def snapshot(obj: Any, fields: Iterable[str]) -> dict[str, Any]:
    """Capture the named attributes of an ORM object as JSON-friendly values."""
    return _jsonable({name: getattr(obj, name) for name in fields})


def create_audit_log(db: Session, entry: AuditEntry) -> AuditLog:
    """Add an audit log row for the entry to the session."""
    audit_log = AuditLog(
        table_name=entry.table_name,
        record_id=entry.record_id,
        action=entry.action,
        user_id=entry.actor_id,
        old_values=_jsonable(entry.old_values),
        new_values=_jsonable(entry.new_values),
        summary=entry.summary,
    )
    db.add(audit_log)
    return audit_log


def record_audit(db: Session, entries: Iterable[AuditEntry]) -> None:
    """Persist audit entries in their own commit."""
    added = False
    for entry in entries:
        create_audit_log(db, entry)
        added = True
    if added:
        db.commit()
