# sms_api/schemas/audit_schemas.py
from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field


class CustomAuditEvent(BaseModel):
    resource: str = Field(..., min_length=1, max_length=40)
    details: dict = {}
    success: bool = True
    error_message: Optional[str] = Field(default=None, max_length=500)


class AuditLogResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID] = None
    action: str
    resource: str
    resource_id: Optional[str] = None
    resource_model: Optional[str] = None
    details: Optional[dict] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    success: bool
    error_message: Optional[str] = None
    timestamp: datetime
    department: Optional[str] = None
    role: Optional[str] = None

    model_config = {"from_attributes": True}
