# sms_api/models/fee.py
from sqlalchemy import Column, String, DateTime, Boolean, Integer, Text, JSON, Numeric, ForeignKey, Uuid, event
from sqlalchemy.orm import relationship
import enum

from .base import Base, utcnow


class FeeCategory(str, enum.Enum):
    TUITION = "tuition"
    TRANSPORT = "transport"
    MEALS = "meals"
    BOOKS = "books"
    ACTIVITIES = "activities"
    EXAM = "exam"
    OTHER = "other"


class Semester(str, enum.Enum):
    FIRST = "first"
    SECOND = "second"
    ANNUAL = "annual"


class AssignmentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


OPEN_ASSIGNMENT_STATUSES = (AssignmentStatus.PENDING.value, AssignmentStatus.OVERDUE.value)


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"
    CARD = "card"
    OTHER = "other"


class PaymentStatus(str, enum.Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ReminderType(str, enum.Enum):
    DUE_DATE = "due_date"
    OVERDUE = "overdue"
    LOGIN_REMINDER = "login_reminder"


class ReminderPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


Money = Numeric(12, 2, asdecimal=False)


class Fee(Base):
    __tablename__ = "fees"

    name = Column(String(100), nullable=False)
    description = Column(Text)
    category = Column(String(20), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    academic_year = Column(String(10), nullable=False, index=True)
    semester = Column(String(10), default=Semester.ANNUAL.value, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    due_date = Column(DateTime)

    late_fee_amount = Column(Money, default=0, nullable=False)
    late_fee_days = Column(Integer, default=7, nullable=False)
    applicable_classes = Column(JSON, default=list)  # class ids as strings

    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"))


class FeeAssignment(Base):
    __tablename__ = "fee_assignments"

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    fee_id = Column(Uuid(as_uuid=True), ForeignKey("fees.id"), nullable=False, index=True)

    assigned_amount = Column(Money, nullable=False)
    due_date = Column(DateTime, nullable=False, index=True)
    status = Column(String(20), default=AssignmentStatus.PENDING.value, nullable=False, index=True)
    paid_amount = Column(Money, default=0, nullable=False)
    remaining_amount = Column(Money, nullable=False, default=0)

    late_fee_applied = Column(Boolean, default=False, nullable=False)
    late_fee_amount = Column(Money, default=0, nullable=False)
    notes = Column(Text)
    assigned_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"))

    student = relationship("Student", lazy="selectin")
    fee = relationship("Fee", lazy="selectin")

    @property
    def total_amount(self) -> float:
        return round((self.assigned_amount or 0) + (self.late_fee_amount or 0), 2)

    @property
    def is_overdue(self) -> bool:
        return self.status != AssignmentStatus.PAID.value and self.due_date is not None and self.due_date < utcnow()

    def refresh_status(self):
        """Recompute remaining amount and derive status from payments and due date."""
        if self.paid_amount is None:
            self.paid_amount = 0
        assigned = self.assigned_amount or 0
        paid = self.paid_amount
        self.remaining_amount = round(max(assigned - paid, 0), 2)

        if self.status == AssignmentStatus.CANCELLED.value:
            return
        if paid >= assigned:
            self.status = AssignmentStatus.PAID.value
        elif self.due_date is not None and self.due_date < utcnow():
            self.status = AssignmentStatus.OVERDUE.value
        else:
            self.status = AssignmentStatus.PENDING.value


@event.listens_for(FeeAssignment, "before_insert")
@event.listens_for(FeeAssignment, "before_update")
def _fee_assignment_before_save(mapper, connection, target):
    target.refresh_status()


class Payment(Base):
    __tablename__ = "payments"

    fee_assignment_id = Column(Uuid(as_uuid=True), ForeignKey("fee_assignments.id"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)

    amount = Column(Money, nullable=False)
    payment_date = Column(DateTime, default=utcnow, nullable=False, index=True)
    payment_method = Column(String(20), nullable=False, index=True)
    reference_number = Column(String(100))
    receipt_number = Column(String(20), nullable=False, unique=True, index=True)
    status = Column(String(20), default=PaymentStatus.COMPLETED.value, nullable=False, index=True)
    notes = Column(Text)
    processed_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"))
    bank_details = Column(JSON)  # {bank_name, account_number, transaction_id}

    student = relationship("Student", lazy="selectin")
    fee_assignment = relationship("FeeAssignment", lazy="selectin")


class PaymentReminder(Base):
    __tablename__ = "payment_reminders"

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id"), nullable=False, index=True)
    fee_assignment_id = Column(Uuid(as_uuid=True), ForeignKey("fee_assignments.id"), nullable=False, index=True)

    reminder_type = Column(String(20), nullable=False)
    message = Column(String(500), nullable=False)
    priority = Column(String(10), default=ReminderPriority.MEDIUM.value, nullable=False)
    days_overdue = Column(Integer, default=0, nullable=False)

    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime)
    is_dismissed = Column(Boolean, default=False, nullable=False)
    dismissed_at = Column(DateTime)
