# sms_api/services/event_service.py
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError
from ..models.class_model import ClassModel
from ..models.event import Event, CLASS_AUDIENCE_PREFIX
from ..models.user import User, ADMIN_ROLES
from ..utils.pagination import ListParams
from .base_service import BaseService
from .student_service import StudentService

GENERAL_AUDIENCES = ["All Users", "All Teachers", "All Students", "All Parents", "Teachers", "Students", "Parents"]

ROLE_EVENT_AUDIENCES = {
    "teacher": ["All Teachers", "All Users", "Teachers"],
    "student": ["All Students", "All Users", "Students"],
    "parent": ["All Parents", "All Users", "Parents"],
}


class EventService(BaseService[Event]):
    resource_name = "Event"
    allowed_filters = ("status", "category", "audience", "class_id", "start_time", "end_time", "created_at")

    def __init__(self, db: AsyncSession):
        super().__init__(Event, db)

    async def resolve_audience(self, audience: str) -> Dict[str, Any]:
        """Validate the audience; ``class_<id>`` also sets class_id"""
        if audience.startswith(CLASS_AUDIENCE_PREFIX):
            try:
                class_id = UUID(audience[len(CLASS_AUDIENCE_PREFIX):])
            except ValueError:
                raise BadRequestError(f"Invalid class audience: {audience}")
            if not await self.db.get(ClassModel, class_id):
                raise BadRequestError(f"Class {class_id} does not exist")
            return {"audience": audience, "class_id": class_id}
        if audience not in GENERAL_AUDIENCES:
            raise BadRequestError(f"Invalid audience: {audience}")
        return {"audience": audience, "class_id": None}

    async def list_visible(self, user: User, params: ListParams, query_params: Optional[Dict[str, str]] = None):
        stmt = select(Event)
        if user.role not in ADMIN_ROLES:
            clause = Event.audience.in_(ROLE_EVENT_AUDIENCES.get(user.role, []))
            if user.role in ("student", "parent"):
                students = await StudentService(self.db).get_by_user(user)
                class_ids = [s.class_id for s in students if s.class_id]
                if class_ids:
                    clause = or_(clause, Event.class_id.in_(class_ids))
            stmt = stmt.where(clause)
        return await self.get_paginated(params, query_params, stmt=stmt, default_sort="start_time")

    async def create_event(self, data: Dict[str, Any], user: User) -> Event:
        data = dict(data)
        data.update(await self.resolve_audience(data.get("audience") or "All Teachers"))
        data["created_by"] = user.id
        return await self.create(data)

    async def update_event(self, id: Any, data: Dict[str, Any]) -> Event:
        event = await self.get_or_404(id)
        data = dict(data)
        if data.get("audience"):
            data.update(await self.resolve_audience(data["audience"]))
        start_time = data.get("start_time", event.start_time)
        end_time = data.get("end_time", event.end_time)
        if end_time <= start_time:
            raise BadRequestError("end_time must be after start_time")
        return await self.update(id, data)

    async def audience_options(self) -> Dict[str, List[Dict[str, str]]]:
        classes = await self.db.execute(select(ClassModel).order_by(ClassModel.grade_level, ClassModel.name))
        return {
            "general": [{"value": "All Users", "label": "All Users"}],
            "classes": [
                {"value": f"{CLASS_AUDIENCE_PREFIX}{c.id}", "label": c.name}
                for c in classes.scalars().all()
            ],
            "teachers": [{"value": "All Teachers", "label": "All Teachers"}, {"value": "Teachers", "label": "Teachers"}],
            "students": [{"value": "All Students", "label": "All Students"}, {"value": "Students", "label": "Students"}],
            "parents": [{"value": "All Parents", "label": "All Parents"}, {"value": "Parents", "label": "Parents"}],
        }
