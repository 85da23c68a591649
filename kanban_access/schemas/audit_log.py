from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from kanban_access.models.audit_log import AuditAction


class AuditLogFilters(BaseModel):
    """Filters for reading the audit trail of a board"""
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    action: Optional[AuditAction] = None
    target_user_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class AuditLogResponse(BaseModel):
    id: int
    admin_user_id: str
    target_user_id: Optional[str] = None
    board_id: Optional[int] = None
    action: AuditAction
    details: Optional[Dict[str, Any]] = None
    ip_address: str
    user_agent: str
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogPage(BaseModel):
    logs: List[AuditLogResponse]
    total: int
    page: int
    limit: int
    total_pages: int
