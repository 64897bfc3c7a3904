"""Audit logs routes."""
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from teamhub.core.database import get_db
from teamhub.core.deps import get_current_user
from teamhub.core.errors import ValidationError
from teamhub.models.user import User
from teamhub.models.audit_log import AuditLog
from teamhub.schemas.audit_log import AuditLogResponse, AuditSummaryRow

router = APIRouter()


def _to_response(log: AuditLog) -> AuditLogResponse:
    response = AuditLogResponse.model_validate(log)
    response.user_name = log.user.full_name if log.user else None
    return response


@router.get("/", response_model=List[AuditLogResponse])
def list_audit_logs(
    table_name: Optional[str] = Query(None, description="Filter by table (e.g., teams, team_members)"),
    record_id: Optional[int] = Query(None, description="Filter by specific record ID"),
    action: Optional[str] = Query(None, description="Filter by action (CREATE, UPDATE, DELETE, APPROVE, REJECT)"),
    user_id: Optional[int] = Query(None, description="Filter by user who made the change"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of results"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List audit logs with optional filters."""
    query = db.query(AuditLog).options(joinedload(AuditLog.user))

    if table_name:
        query = query.filter(AuditLog.table_name == table_name)
    if record_id is not None:
        query = query.filter(AuditLog.record_id == record_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if user_id is not None:
        query = query.filter(AuditLog.user_id == user_id)

    logs = query.order_by(
        AuditLog.timestamp.desc(), AuditLog.log_id.desc()
    ).offset(offset).limit(limit).all()
    return [_to_response(log) for log in logs]


@router.get("/recent", response_model=List[AuditLogResponse])
def get_recent_audit_logs(
    limit: int = Query(50, ge=1, le=1000),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Most recent audit entries."""
    logs = db.query(AuditLog).options(joinedload(AuditLog.user)).order_by(
        AuditLog.timestamp.desc(), AuditLog.log_id.desc()
    ).limit(limit).all()
    return [_to_response(log) for log in logs]


@router.get("/date-range", response_model=List[AuditLogResponse])
def get_audit_logs_by_date_range(
    start_date: date = Query(..., description="First day, inclusive"),
    end_date: date = Query(..., description="Last day, inclusive"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Audit entries recorded between two days, inclusive."""
    if end_date < start_date:
        raise ValidationError(
            "end_date cannot be before start_date",
            {"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
    window_start = datetime.combine(start_date, time.min)
    window_end = datetime.combine(end_date + timedelta(days=1), time.min)
    logs = db.query(AuditLog).options(joinedload(AuditLog.user)).filter(
        AuditLog.timestamp >= window_start,
        AuditLog.timestamp < window_end,
    ).order_by(AuditLog.timestamp.desc(), AuditLog.log_id.desc()).all()
    return [_to_response(log) for log in logs]


@router.get("/summary", response_model=List[AuditSummaryRow])
def get_audit_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Count audit entries per table and action."""
    rows = db.query(
        AuditLog.table_name,
        AuditLog.action,
        func.count(AuditLog.log_id),
        func.max(AuditLog.timestamp),
    ).group_by(AuditLog.table_name, AuditLog.action).order_by(
        AuditLog.table_name, AuditLog.action
    ).all()
    return [
        AuditSummaryRow(table_name=table_name, action=action, count=count, last_activity=last_activity)
        for table_name, action, count, last_activity in rows
    ]
