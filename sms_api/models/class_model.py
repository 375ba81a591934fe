# sms_api/models/class_model.py
from sqlalchemy import Column, String, Integer, ForeignKey, Uuid

from .base import Base


class ClassModel(Base):
    __tablename__ = "classes"

    name = Column(String(50), nullable=False, unique=True, index=True)
    grade_level = Column(Integer, nullable=False, index=True)
    section = Column(String(10))
    academic_year = Column(String(10), nullable=False)
    semester = Column(String(20))
    capacity = Column(Integer, default=30, nullable=False)

    supervisor_id = Column(Uuid(as_uuid=True), ForeignKey("teachers.id"), nullable=True)
