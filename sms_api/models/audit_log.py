# sms_api/models/audit_log.py
from sqlalchemy import Column, String, Text, DateTime, Boolean, JSON, ForeignKey, Uuid
import enum

from .base import Base, utcnow


class AuditAction(str, enum.Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    LOGOUT_ALL = "LOGOUT_ALL"
    SESSION_END = "SESSION_END"
    FAILED_LOGIN = "FAILED_LOGIN"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    USER_CREATE = "USER_CREATE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    DATA_ACCESS = "DATA_ACCESS"
    FEE_CREATE = "FEE_CREATE"
    FEE_UPDATE = "FEE_UPDATE"
    FEE_DELETE = "FEE_DELETE"
    FEE_ASSIGNMENT_CREATE = "FEE_ASSIGNMENT_CREATE"
    FEE_ASSIGNMENT_UPDATE = "FEE_ASSIGNMENT_UPDATE"
    FEE_ASSIGNMENT_DELETE = "FEE_ASSIGNMENT_DELETE"
    FEE_ASSIGNMENT_BULK_CREATE = "FEE_ASSIGNMENT_BULK_CREATE"
    PAYMENT_CREATE = "PAYMENT_CREATE"
    PAYMENT_UPDATE = "PAYMENT_UPDATE"
    PAYMENT_DELETE = "PAYMENT_DELETE"
    PAYMENT_REMINDER_CREATE = "PAYMENT_REMINDER_CREATE"
    FINANCIAL_REPORT_GENERATED = "FINANCIAL_REPORT_GENERATED"
    CUSTOM_EVENT = "CUSTOM_EVENT"


FINANCIAL_ACTIONS = [
    action.value for action in AuditAction
    if action.value.startswith(("FEE_", "PAYMENT_", "FINANCIAL_"))
]


class AuditLog(Base):
    __tablename__ = "audit_logs"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String(40), nullable=False, index=True)
    resource = Column(String(40), nullable=False)
    resource_id = Column(String(64))
    resource_model = Column(String(40))
    details = Column(JSON)

    ip_address = Column(String(45))
    user_agent = Column(String(500))
    success = Column(Boolean, default=True, nullable=False, index=True)
    error_message = Column(Text)

    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)
    department = Column(String(30), index=True)
    role = Column(String(30))
