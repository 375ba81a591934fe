# sms_api/schemas/announcement_schemas.py
from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import Field

from .base import RequestSchema, ResponseSchema, UpdateSchema
from ..models.announcement import AnnouncementAudience, AnnouncementPriority, AnnouncementStatus


class AnnouncementCreate(RequestSchema):
    title: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=1000)
    audience: AnnouncementAudience
    priority: AnnouncementPriority = AnnouncementPriority.MEDIUM
    status: AnnouncementStatus = AnnouncementStatus.PUBLISHED
    is_pinned: bool = False
    scheduled_date: Optional[datetime] = None
    class_id: Optional[UUID] = None


class AnnouncementUpdate(UpdateSchema):
    nullable_fields = ("scheduled_date", "class_id")

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    content: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    audience: Optional[AnnouncementAudience] = None
    priority: Optional[AnnouncementPriority] = None
    status: Optional[AnnouncementStatus] = None
    is_pinned: Optional[bool] = None
    scheduled_date: Optional[datetime] = None
    class_id: Optional[UUID] = None


class AnnouncementResponse(ResponseSchema):
    title: str
    content: str
    audience: str
    priority: str
    status: str
    is_pinned: bool
    scheduled_date: Optional[datetime] = None
    class_id: Optional[UUID] = None
    created_by: UUID
