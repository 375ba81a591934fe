# sms_api/schemas/user_schemas.py
"""Pydantic schemas for users and authentication."""
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field, field_validator

from .base import RequestSchema, ResponseSchema, UpdateSchema
from ..models.user import UserRole, Department


def _check_password_policy(value: str) -> str:
    if not any(c.isalpha() for c in value) or not any(c.isdigit() for c in value):
        raise ValueError('Password must contain at least one letter and one number')
    return value


class UserCreate(RequestSchema):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole
    department: Optional[Department] = None
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    teacher_profile_id: Optional[UUID] = None

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        return v.lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        return _check_password_policy(v)


class UserUpdate(UpdateSchema):
    """Admin update - all fields optional"""
    nullable_fields = ("first_name", "last_name", "phone", "teacher_profile_id")

    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    department: Optional[Department] = None
    first_name: Optional[str] = Field(default=None, max_length=50)
    last_name: Optional[str] = Field(default=None, max_length=50)
    phone: Optional[str] = Field(default=None, max_length=20)
    is_active: Optional[bool] = None
    permissions: Optional[List[str]] = None
    teacher_profile_id: Optional[UUID] = None


class LoginRequest(RequestSchema):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        return v.lower()


class RefreshRequest(BaseModel):
    session_id: str
    refresh_token: str


class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=8, max_length=128)

    @field_validator('new_password')
    @classmethod
    def validate_password(cls, v):
        return _check_password_policy(v)


class UserResponse(ResponseSchema):
    username: str
    email: str
    role: str
    department: str
    permissions: List[str] = []
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    teacher_profile_id: Optional[UUID] = None

    @field_validator('permissions', mode='before')
    @classmethod
    def default_permissions(cls, v):
        return v or []


class SessionResponse(ResponseSchema):
    user_id: UUID
    session_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_info: Optional[dict] = None
    is_active: bool
    expires_at: datetime
    last_activity: Optional[datetime] = None
    login_time: Optional[datetime] = None
    logout_time: Optional[datetime] = None
    department: Optional[str] = None
    role: Optional[str] = None
