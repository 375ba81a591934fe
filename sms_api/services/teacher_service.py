# sms_api/services/teacher_service.py
from typing import Any, Optional

from sqlalchemy import select, func, or_, cast, String
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError
from ..models.class_model import ClassModel
from ..models.teacher import Teacher
from .base_service import BaseService


class TeacherService(BaseService[Teacher]):
    resource_name = "Teacher"
    allowed_filters = ("status", "sex", "experience_years", "hire_date", "created_at")
    unique_fields = ("email",)

    def __init__(self, db: AsyncSession):
        super().__init__(Teacher, db)

    def search_statement(self, search: Optional[str] = None, subject: Optional[str] = None):
        stmt = select(Teacher)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Teacher.first_name.ilike(pattern),
                Teacher.last_name.ilike(pattern),
                Teacher.email.ilike(pattern),
            ))
        if subject:
            # subjects is a JSON list; match on its serialised text
            stmt = stmt.where(cast(Teacher.subjects, String).ilike(f'%"{subject}"%'))
        return stmt

    async def delete_teacher(self, id: Any) -> Teacher:
        teacher = await self.get_or_404(id)
        supervised = await self.db.execute(
            select(func.count(ClassModel.id)).where(ClassModel.supervisor_id == teacher.id)
        )
        if supervised.scalar():
            raise BadRequestError("Cannot delete a teacher who supervises a class")
        return await self.delete(id)
