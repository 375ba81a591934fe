# sms_api/schemas/class_schemas.py
from typing import Optional
from uuid import UUID
from pydantic import Field

from .base import RequestSchema, ResponseSchema, UpdateSchema
from ..models.fee import Semester


class ClassCreate(RequestSchema):
    name: str = Field(..., min_length=1, max_length=50)
    grade_level: int = Field(..., ge=1, le=12)
    section: Optional[str] = Field(default=None, max_length=10)
    academic_year: str = Field(..., pattern=r"^\d{4}-\d{4}$", description="e.g. 2025-2026")
    semester: Optional[Semester] = None
    capacity: int = Field(default=30, ge=1, le=200)
    supervisor_id: Optional[UUID] = None


class ClassUpdate(UpdateSchema):
    nullable_fields = ("section", "semester", "supervisor_id")

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    grade_level: Optional[int] = Field(default=None, ge=1, le=12)
    section: Optional[str] = Field(default=None, max_length=10)
    academic_year: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{4}$")
    semester: Optional[Semester] = None
    capacity: Optional[int] = Field(default=None, ge=1, le=200)
    supervisor_id: Optional[UUID] = None


class ClassResponse(ResponseSchema):
    name: str
    grade_level: int
    section: Optional[str] = None
    academic_year: str
    semester: Optional[str] = None
    capacity: int
    supervisor_id: Optional[UUID] = None
