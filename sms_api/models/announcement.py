# sms_api/models/announcement.py
from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Uuid
import enum

from .base import Base


class AnnouncementAudience(str, enum.Enum):
    ALL_USERS = "All Users"
    SCHOOL_STAFF = "School Staff"
    ADMINISTRATIVE_STAFF = "Administrative Staff"
    TEACHERS = "Teachers"
    STUDENTS = "Students"
    PARENTS = "Parents"
    ALL_STUDENTS = "All Students"
    ALL_TEACHERS = "All Teachers"
    ALL_PARENTS = "All Parents"


class AnnouncementPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class AnnouncementStatus(str, enum.Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"
    SCHEDULED = "Scheduled"
    ARCHIVED = "Archived"


class Announcement(Base):
    __tablename__ = "announcements"

    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    audience = Column(String(30), nullable=False, index=True)
    priority = Column(String(10), default=AnnouncementPriority.MEDIUM.value, nullable=False)
    status = Column(String(20), default=AnnouncementStatus.PUBLISHED.value, nullable=False, index=True)
    is_pinned = Column(Boolean, default=False, nullable=False)
    scheduled_date = Column(DateTime)

    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id"), nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
