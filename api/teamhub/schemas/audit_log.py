"""Audit log schemas."""
from datetime import datetime
from typing import Optional, Any, Dict
from pydantic import BaseModel, ConfigDict


class AuditLogResponse(BaseModel):
    log_id: int
    table_name: str
    record_id: int
    action: str
    user_id: int
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    summary: Optional[str] = None
    timestamp: datetime
    user_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AuditSummaryRow(BaseModel):
    table_name: str
    action: str
    count: int
    last_activity: Optional[datetime] = None
