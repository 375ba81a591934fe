# sms_api/schemas/teacher_schemas.py
from typing import List, Optional
from datetime import datetime
from pydantic import EmailStr, Field

from .base import RequestSchema, ResponseSchema, UpdateSchema
from ..models.student import Sex


class TeacherCreate(RequestSchema):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    blood_type: Optional[str] = Field(default=None, pattern=r"^(A|B|AB|O)[+-]$")
    sex: Sex
    birthday: Optional[datetime] = None
    salary: Optional[float] = Field(default=None, ge=0)
    hire_date: Optional[datetime] = None
    qualification: Optional[str] = Field(default=None, max_length=200)
    experience_years: int = Field(default=0, ge=0, le=60)
    subjects: List[str] = []
    status: str = Field(default="active", pattern=r"^(active|inactive|on_leave)$")


class TeacherUpdate(UpdateSchema):
    nullable_fields = ("phone", "address", "blood_type", "birthday", "salary", "hire_date", "qualification")

    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    blood_type: Optional[str] = Field(default=None, pattern=r"^(A|B|AB|O)[+-]$")
    sex: Optional[Sex] = None
    birthday: Optional[datetime] = None
    salary: Optional[float] = Field(default=None, ge=0)
    hire_date: Optional[datetime] = None
    qualification: Optional[str] = Field(default=None, max_length=200)
    experience_years: Optional[int] = Field(default=None, ge=0, le=60)
    subjects: Optional[List[str]] = None
    status: Optional[str] = Field(default=None, pattern=r"^(active|inactive|on_leave)$")


class TeacherResponse(ResponseSchema):
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    blood_type: Optional[str] = None
    sex: str
    birthday: Optional[datetime] = None
    salary: Optional[float] = None
    hire_date: Optional[datetime] = None
    qualification: Optional[str] = None
    experience_years: Optional[int] = None
    subjects: Optional[List[str]] = None
    status: str
