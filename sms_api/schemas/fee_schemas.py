# sms_api/schemas/fee_schemas.py
"""Pydantic schemas for fees, fee assignments, payments and reminders."""
from typing import List, Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field, model_validator

from .base import RequestSchema, ResponseSchema, UpdateSchema
from .student_schemas import StudentBrief
from ..models.fee import (
    FeeCategory, Semester, AssignmentStatus, PaymentMethod, PaymentStatus
)


class FeeCreate(RequestSchema):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    category: FeeCategory
    amount: float = Field(..., ge=0)
    academic_year: str = Field(..., pattern=r"^\d{4}-\d{4}$")
    semester: Semester = Semester.ANNUAL
    is_active: bool = True
    due_date: Optional[datetime] = None
    late_fee_amount: float = Field(default=0, ge=0)
    late_fee_days: int = Field(default=7, ge=0)
    applicable_classes: List[UUID] = []


class FeeUpdate(UpdateSchema):
    nullable_fields = ("description", "due_date", "applicable_classes")

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    category: Optional[FeeCategory] = None
    amount: Optional[float] = Field(default=None, ge=0)
    academic_year: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{4}$")
    semester: Optional[Semester] = None
    is_active: Optional[bool] = None
    due_date: Optional[datetime] = None
    late_fee_amount: Optional[float] = Field(default=None, ge=0)
    late_fee_days: Optional[int] = Field(default=None, ge=0)
    applicable_classes: Optional[List[UUID]] = None


class FeeResponse(ResponseSchema):
    name: str
    description: Optional[str] = None
    category: str
    amount: float
    academic_year: str
    semester: str
    is_active: bool
    due_date: Optional[datetime] = None
    late_fee_amount: float
    late_fee_days: int
    applicable_classes: Optional[List[str]] = None
    created_by: Optional[UUID] = None


class FeeBrief(BaseModel):
    id: UUID
    name: str
    category: str
    amount: float
    academic_year: str

    model_config = {"from_attributes": True}


class FeeAssignmentCreate(RequestSchema):
    student_id: UUID
    fee_id: UUID
    assigned_amount: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class FeeAssignmentBulkCreate(RequestSchema):
    fee_id: UUID
    assign_to: str = Field(..., pattern=r"^(all|classes|grades|students)$")
    class_ids: List[UUID] = []
    grade_levels: List[int] = []
    student_ids: List[UUID] = []
    assigned_amount: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None
    notes: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode='after')
    def validate_targets(self):
        required = {"classes": self.class_ids, "grades": self.grade_levels, "students": self.student_ids}
        if self.assign_to in required and not required[self.assign_to]:
            raise ValueError(f'{self.assign_to} must be provided when assign_to is {self.assign_to}')
        return self


class FeeAssignmentUpdate(UpdateSchema):
    nullable_fields = ("notes",)

    assigned_amount: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[datetime] = None
    status: Optional[AssignmentStatus] = None
    late_fee_applied: Optional[bool] = None
    late_fee_amount: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)


class FeeAssignmentResponse(ResponseSchema):
    student_id: UUID
    fee_id: UUID
    assigned_amount: float
    due_date: datetime
    status: str
    paid_amount: float
    remaining_amount: float
    total_amount: float
    is_overdue: bool
    late_fee_applied: bool
    late_fee_amount: float
    notes: Optional[str] = None
    assigned_by: Optional[UUID] = None
    student: Optional[StudentBrief] = None
    fee: Optional[FeeBrief] = None


class BankDetails(BaseModel):
    bank_name: Optional[str] = Field(default=None, max_length=100)
    account_number: Optional[str] = Field(default=None, max_length=50)
    transaction_id: Optional[str] = Field(default=None, max_length=100)


class PaymentCreate(RequestSchema):
    fee_assignment_id: UUID
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod
    payment_date: Optional[datetime] = None
    reference_number: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = Field(default=None, max_length=500)
    bank_details: Optional[BankDetails] = None


class PaymentUpdate(UpdateSchema):
    nullable_fields = ("reference_number", "notes", "bank_details")

    amount: Optional[float] = Field(default=None, gt=0)
    payment_method: Optional[PaymentMethod] = None
    payment_date: Optional[datetime] = None
    reference_number: Optional[str] = Field(default=None, max_length=100)
    status: Optional[PaymentStatus] = None
    notes: Optional[str] = Field(default=None, max_length=500)
    bank_details: Optional[BankDetails] = None


class PaymentResponse(ResponseSchema):
    fee_assignment_id: UUID
    student_id: UUID
    amount: float
    payment_date: datetime
    payment_method: str
    reference_number: Optional[str] = None
    receipt_number: str
    status: str
    notes: Optional[str] = None
    processed_by: Optional[UUID] = None
    bank_details: Optional[dict] = None
    student: Optional[StudentBrief] = None


class PaymentReminderResponse(ResponseSchema):
    student_id: UUID
    fee_assignment_id: UUID
    reminder_type: str
    message: str
    priority: str
    days_overdue: int
    is_read: bool
    read_at: Optional[datetime] = None
    is_dismissed: bool
    dismissed_at: Optional[datetime] = None
