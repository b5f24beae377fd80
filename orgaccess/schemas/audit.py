from pydantic import BaseModel, field_validator
from typing import Optional, List, Any, Dict
from datetime import datetime
from uuid import UUID
import json

from orgaccess.models.audit_log import AuditAction


class AuditLogEntry(BaseModel):
    id: UUID
    organization_id: UUID
    user_id: UUID
    action: AuditAction
    details: Dict[str, Any] = {}
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    target_user_id: Optional[UUID] = None
    resource_id: Optional[str] = None
    resource_type: Optional[str] = None
    created_at: datetime

    @field_validator("details", mode="before")
    @classmethod
    def _decode_details(cls, v):
        # Stored as a JSON string
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            return json.loads(v)
        return v

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    limit: int
    page: int
    pages: int


class AuditLogPage(BaseModel):
    logs: List[AuditLogEntry]
    pagination: Pagination
