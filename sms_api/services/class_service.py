# sms_api/services/class_service.py
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError
from ..models.class_model import ClassModel
from ..models.student import Student
from .base_service import BaseService


class ClassService(BaseService[ClassModel]):
    resource_name = "Class"
    allowed_filters = ("grade_level", "academic_year", "semester", "section", "supervisor_id", "created_at")
    unique_fields = ("name",)

    def __init__(self, db: AsyncSession):
        super().__init__(ClassModel, db)

    async def student_count(self, class_id: Any) -> int:
        result = await self.db.execute(select(func.count(Student.id)).where(Student.class_id == class_id))
        return result.scalar() or 0

    async def get_with_enrollment(self, class_id: Any) -> Dict[str, Any]:
        class_obj = await self.get_or_404(class_id)
        enrolled = await self.student_count(class_id)
        return {
            "class": class_obj,
            "student_count": enrolled,
            "available_seats": max(class_obj.capacity - enrolled, 0),
        }

    async def update_class(self, class_id: Any, data: Dict[str, Any]) -> ClassModel:
        if data.get("capacity") is not None:
            enrolled = await self.student_count(class_id)
            if data["capacity"] < enrolled:
                raise BadRequestError(f"Capacity cannot be lower than the {enrolled} enrolled students")
        return await self.update(class_id, data)

    async def delete_class(self, class_id: Any) -> ClassModel:
        await self.get_or_404(class_id)
        if await self.student_count(class_id):
            raise BadRequestError("Cannot delete a class that still has students enrolled")
        return await self.delete(class_id)

    async def get_distribution(self) -> List[Dict[str, Any]]:
        """Students per class, for charts"""
        stmt = (
            select(ClassModel.id, ClassModel.name, ClassModel.grade_level, ClassModel.capacity,
                   func.count(Student.id))
            .outerjoin(Student, Student.class_id == ClassModel.id)
            .group_by(ClassModel.id, ClassModel.name, ClassModel.grade_level, ClassModel.capacity)
            .order_by(ClassModel.grade_level, ClassModel.name)
        )
        result = await self.db.execute(stmt)
        return [
            {
                "class_id": str(class_id),
                "name": name,
                "grade_level": grade_level,
                "capacity": capacity,
                "student_count": count,
            }
            for class_id, name, grade_level, capacity, count in result.all()
        ]
