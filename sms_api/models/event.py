# sms_api/models/event.py
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Uuid
import enum

from .base import Base


class EventCategory(str, enum.Enum):
    PROFESSIONAL_DEVELOPMENT = "Professional Development"
    CURRICULUM = "Curriculum"
    ORIENTATION = "Orientation"
    MEETING = "Meeting"
    TRAINING = "Training"
    OTHER = "Other"


class EventStatus(str, enum.Enum):
    PLANNING = "Planning"
    UPCOMING = "Upcoming"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


CLASS_AUDIENCE_PREFIX = "class_"


class Event(Base):
    __tablename__ = "events"

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    location = Column(String(200), nullable=False)
    category = Column(String(40), nullable=False, index=True)
    status = Column(String(20), default=EventStatus.UPCOMING.value, nullable=False, index=True)

    # "All Teachers", "All Students", ... or "class_<uuid>"
    audience = Column(String(60), default="All Teachers", nullable=False, index=True)
    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id"), nullable=True)

    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
