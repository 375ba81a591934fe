from .base import Base
from .user import User
from .session import UserSession
from .teacher import Teacher
from .class_model import ClassModel
from .student import Student
from .fee import Fee, FeeAssignment, Payment, PaymentReminder
from .announcement import Announcement
from .event import Event
from .audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "UserSession",
    "Teacher",
    "ClassModel",
    "Student",
    "Fee",
    "FeeAssignment",
    "Payment",
    "PaymentReminder",
    "Announcement",
    "Event",
    "AuditLog",
]
