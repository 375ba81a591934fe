# sms_api/schemas/student_schemas.py
"""Pydantic schemas for Student entity."""
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field

from .base import RequestSchema, ResponseSchema, UpdateSchema
from ..models.student import Sex, StudentStatus


class EmergencyContact(BaseModel):
    name: str = Field(..., max_length=100)
    relationship: Optional[str] = Field(default=None, max_length=50)
    phone: str = Field(..., max_length=20)


class StudentBase(RequestSchema):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    sex: Sex
    birthday: Optional[datetime] = None
    class_id: Optional[UUID] = None
    grade_level: int = Field(..., ge=1, le=12)
    gpa: Optional[float] = Field(default=None, ge=0, le=4)
    status: StudentStatus = StudentStatus.ACTIVE
    emergency_contact: Optional[EmergencyContact] = None
    user_id: Optional[UUID] = None
    parent_user_id: Optional[UUID] = None


class StudentCreate(StudentBase):
    student_code: str = Field(..., min_length=1, max_length=20)


class StudentUpdate(UpdateSchema):
    """Schema for updating student - all fields optional"""
    nullable_fields = ("phone", "address", "birthday", "class_id", "gpa", "emergency_contact", "user_id", "parent_user_id")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    sex: Optional[Sex] = None
    birthday: Optional[datetime] = None
    class_id: Optional[UUID] = None
    grade_level: Optional[int] = Field(default=None, ge=1, le=12)
    gpa: Optional[float] = Field(default=None, ge=0, le=4)
    status: Optional[StudentStatus] = None
    emergency_contact: Optional[EmergencyContact] = None
    user_id: Optional[UUID] = None
    parent_user_id: Optional[UUID] = None


class StudentSelfUpdate(UpdateSchema):
    """Fields a student may change on their own record; anything else is ignored"""
    nullable_fields = ("phone", "address", "birthday")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    sex: Optional[Sex] = None
    birthday: Optional[datetime] = None


class ParentStudentsRequest(BaseModel):
    student_ids: List[UUID] = Field(..., min_length=1)
    allow_reassign: bool = True


class StudentResponse(ResponseSchema):
    student_code: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    sex: str
    birthday: Optional[datetime] = None
    class_id: Optional[UUID] = None
    grade_level: int
    gpa: Optional[float] = None
    status: str
    emergency_contact: Optional[dict] = None
    user_id: Optional[UUID] = None
    parent_user_id: Optional[UUID] = None


class StudentBrief(BaseModel):
    id: UUID
    student_code: str
    full_name: str
    grade_level: int
    class_id: Optional[UUID] = None

    model_config = {"from_attributes": True}


class BulkStudentRequest(BaseModel):
    students: List[dict] = Field(..., min_length=1, max_length=1000)
