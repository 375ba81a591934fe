# sms_api/models/user.py
from sqlalchemy import Column, String, Integer, DateTime, Boolean, JSON, ForeignKey, Uuid
from datetime import timezone
import enum

from .base import Base, utcnow


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "super_admin"
    SCHOOL_ADMIN = "school_admin"
    ACADEMIC_ADMIN = "academic_admin"
    EXAM_ADMIN = "exam_admin"
    FINANCE_ADMIN = "finance_admin"
    STUDENT_AFFAIRS_ADMIN = "student_affairs_admin"
    IT_ADMIN = "it_admin"
    TEACHER = "teacher"
    STUDENT = "student"
    PARENT = "parent"


class Department(str, enum.Enum):
    ACADEMIC = "academic"
    EXAMINATION = "examination"
    FINANCE = "finance"
    STUDENT_AFFAIRS = "student_affairs"
    IT = "it"
    GENERAL = "general"


ADMIN_ROLES = {role.value for role in UserRole if role.value.endswith("_admin")}

ROLE_PERMISSIONS = {
    "super_admin": ["*"],
    "school_admin": [
        "manage_users", "view_all_data", "manage_academic", "manage_finance",
        "view_reports", "manage_announcements", "manage_events",
    ],
    "academic_admin": [
        "manage_curriculum", "manage_classes", "manage_teachers",
        "view_academic_reports", "manage_academic_calendar",
    ],
    "exam_admin": [
        "manage_exams", "manage_results", "view_exam_reports",
        "schedule_exams", "manage_grading",
    ],
    "finance_admin": [
        "view_financial_reports", "manage_fees", "process_payments",
        "generate_financial_reports",
    ],
    "student_affairs_admin": [
        "manage_students", "manage_discipline", "view_student_reports",
        "manage_student_services",
    ],
    "it_admin": ["manage_system", "view_logs", "manage_users", "configure_settings"],
    "teacher": ["view_student_progress", "manage_subjects", "approve_grades"],
    "student": ["view_dashboard", "manage_profile"],
    "parent": ["view_dashboard", "manage_profile"],
}


ADMIN_DEPARTMENTS = {
    "academic_admin": Department.ACADEMIC.value,
    "exam_admin": Department.EXAMINATION.value,
    "finance_admin": Department.FINANCE.value,
    "student_affairs_admin": Department.STUDENT_AFFAIRS.value,
    "it_admin": Department.IT.value,
}


def department_for_role(role: str, department: str = None) -> str:
    """Department admins belong to the department named by their role."""
    if role in ADMIN_DEPARTMENTS:
        return ADMIN_DEPARTMENTS[role]
    return department or Department.GENERAL.value


class User(Base):
    __tablename__ = "users"

    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    role = Column(String(30), nullable=False, index=True)
    department = Column(String(30), default=Department.GENERAL.value, nullable=False, index=True)
    permissions = Column(JSON, default=list)

    first_name = Column(String(50))
    last_name = Column(String(50))
    phone = Column(String(20))

    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime)
    login_attempts = Column(Integer, default=0, nullable=False)
    lock_until = Column(DateTime)
    password_changed_at = Column(DateTime)

    teacher_profile_id = Column(Uuid(as_uuid=True), ForeignKey("teachers.id"), nullable=True)

    @property
    def is_locked(self) -> bool:
        return bool(self.lock_until and self.lock_until > utcnow())

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part) or self.username

    def changed_password_after(self, issued_at: int) -> bool:
        if not self.password_changed_at or issued_at is None:
            return False
        changed_at = self.password_changed_at.replace(tzinfo=timezone.utc)
        return int(changed_at.timestamp()) > int(issued_at)

    def can_access_department(self, department: str) -> bool:
        if self.role in ("super_admin", "school_admin"):
            return True
        if self.role in ADMIN_ROLES:
            return department == department_for_role(self.role)
        return department == self.department
