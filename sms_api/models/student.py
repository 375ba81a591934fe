# sms_api/models/student.py
from sqlalchemy import Column, String, Integer, Float, DateTime, JSON, ForeignKey, Uuid
import enum

from .base import Base


class Sex(str, enum.Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class StudentStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    GRADUATED = "graduated"


class Student(Base):
    __tablename__ = "students"

    # Basic Information
    student_code = Column(String(20), nullable=False, unique=True, index=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), nullable=False, unique=True, index=True)
    phone = Column(String(20))
    address = Column(String(500))
    sex = Column(String(10), nullable=False)
    birthday = Column(DateTime)

    # Academic Information
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id"), nullable=True, index=True)
    grade_level = Column(Integer, nullable=False, index=True)
    gpa = Column(Float)
    status = Column(String(20), default=StudentStatus.ACTIVE.value, nullable=False, index=True)

    emergency_contact = Column(JSON)  # {name, relationship, phone}

    # Login accounts linked to this record
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)
    parent_user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
