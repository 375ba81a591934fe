# sms_api/models/teacher.py
from sqlalchemy import Column, String, Integer, DateTime, JSON, Numeric

from .base import Base


class Teacher(Base):
    __tablename__ = "teachers"

    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(100), nullable=False, unique=True, index=True)
    phone = Column(String(20))
    address = Column(String(500))
    blood_type = Column(String(5))
    sex = Column(String(10), nullable=False)
    birthday = Column(DateTime)

    # Employment
    salary = Column(Numeric(12, 2, asdecimal=False))
    hire_date = Column(DateTime)
    qualification = Column(String(200))
    experience_years = Column(Integer, default=0)
    subjects = Column(JSON, default=list)
    status = Column(String(20), default="active", nullable=False, index=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
