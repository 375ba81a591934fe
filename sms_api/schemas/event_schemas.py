# sms_api/schemas/event_schemas.py
from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import Field, model_validator

from .base import RequestSchema, ResponseSchema, UpdateSchema
from ..models.event import EventCategory, EventStatus


class EventCreate(RequestSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=2000)
    start_time: datetime
    end_time: datetime
    location: str = Field(..., min_length=1, max_length=200)
    category: EventCategory
    status: EventStatus = EventStatus.UPCOMING
    audience: str = Field(default="All Teachers", max_length=60)

    @model_validator(mode='after')
    def validate_times(self):
        if self.end_time <= self.start_time:
            raise ValueError('end_time must be after start_time')
        return self


class EventUpdate(UpdateSchema):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1, max_length=2000)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[EventCategory] = None
    status: Optional[EventStatus] = None
    audience: Optional[str] = Field(default=None, max_length=60)


class EventResponse(ResponseSchema):
    title: str
    description: str
    start_time: datetime
    end_time: datetime
    location: str
    category: str
    status: str
    audience: str
    class_id: Optional[UUID] = None
    created_by: UUID
