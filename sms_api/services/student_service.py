# sms_api/services/student_service.py
from typing import Any, Dict, List, Optional
import logging

from pydantic import ValidationError
from sqlalchemy import func, select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import PermissionDeniedError, BadRequestError, NotFoundError
from ..models.class_model import ClassModel
from ..models.fee import FeeAssignment
from ..models.student import Student
from ..models.user import User
from ..schemas.student_schemas import StudentCreate
from .base_service import BaseService

logger = logging.getLogger(__name__)

STUDENT_DATA_ROLES = ("super_admin", "school_admin", "finance_admin", "exam_admin")
LINKED_USER_ROLES = {"user_id": "student", "parent_user_id": "parent"}


def ensure_student_access(user: User, student: Student, allowed_roles=STUDENT_DATA_ROLES):
    """Students see their own record, parents their children's, staff by role"""
    if user.role in allowed_roles:
        return
    if user.role == "student" and student.user_id == user.id:
        return
    if user.role == "parent" and student.parent_user_id == user.id:
        return
    raise PermissionDeniedError("You do not have permission to view this student's data")


class StudentService(BaseService[Student]):
    resource_name = "Student"
    allowed_filters = ("class_id", "grade_level", "sex", "status", "created_at")
    unique_fields = ("email", "student_code", "user_id")

    def __init__(self, db: AsyncSession):
        super().__init__(Student, db)

    def search_statement(self, search: Optional[str] = None):
        stmt = select(Student)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                Student.first_name.ilike(pattern),
                Student.last_name.ilike(pattern),
                Student.student_code.ilike(pattern),
                Student.email.ilike(pattern),
            ))
        return stmt

    async def _check_class(self, class_id: Any):
        if class_id is None:
            return
        class_obj = await self.db.get(ClassModel, class_id)
        if not class_obj:
            raise BadRequestError(f"Class {class_id} does not exist")
        enrolled = await self.count(class_id=class_id)
        if enrolled >= class_obj.capacity:
            raise BadRequestError(f"Class {class_obj.name} is full (capacity {class_obj.capacity})")

    async def _linked_user_error(self, field: str, user_id: Any) -> Optional[str]:
        role = LINKED_USER_ROLES[field]
        user = await self.db.get(User, user_id)
        if not user:
            return f"User {user_id} does not exist"
        if user.role != role:
            return f"{field} must reference a {role} account"
        return None

    async def _check_linked_users(self, data: Dict[str, Any]):
        for field in LINKED_USER_ROLES:
            if data.get(field) is None:
                continue
            error = await self._linked_user_error(field, data[field])
            if error:
                raise BadRequestError(error)

    async def create_student(self, data: Dict[str, Any]) -> Student:
        await self._check_class(data.get("class_id"))
        await self._check_linked_users(data)
        return await self.create(data)

    async def update_student(self, id: Any, data: Dict[str, Any]) -> Student:
        student = await self.get_or_404(id)
        if data.get("class_id") and data["class_id"] != student.class_id:
            await self._check_class(data["class_id"])
        await self._check_linked_users(data)
        return await self.update(id, data)

    async def get_own_profile(self, user: User) -> Student:
        result = await self.db.execute(select(Student).where(Student.user_id == user.id))
        student = result.scalars().first()
        if not student:
            raise NotFoundError("Student profile")
        return student

    async def update_own_profile(self, user: User, data: Dict[str, Any]) -> Student:
        if not data:
            raise BadRequestError("No valid fields to update")
        student = await self.get_own_profile(user)
        return await self.update(student.id, data)

    async def get_parent(self, parent_id: Any) -> User:
        parent = await self.db.get(User, parent_id)
        if not parent:
            raise NotFoundError("Parent", parent_id)
        if parent.role != "parent":
            raise BadRequestError("User is not a parent account")
        return parent

    async def _get_students(self, student_ids: List[Any]) -> List[Student]:
        wanted = set(student_ids)
        result = await self.db.execute(select(Student).where(Student.id.in_(wanted)))
        students = list(result.scalars().all())
        if len(students) != len(wanted):
            raise BadRequestError("Some students not found")
        return students

    async def assign_parent(self, parent_id: Any, student_ids: List[Any], allow_reassign: bool = True) -> List[Student]:
        """Link students to a parent account and return all of that parent's children"""
        parent = await self.get_parent(parent_id)
        students = await self._get_students(student_ids)
        if not allow_reassign and any(s.parent_user_id not in (None, parent.id) for s in students):
            raise BadRequestError("One or more students already have a different parent")
        for student in students:
            student.parent_user_id = parent.id
        await self._commit()
        logger.info(f"Linked {len(students)} student(s) to parent {parent.username}")
        return await self.get_by_user(parent)

    async def unassign_parent(self, parent_id: Any, student_ids: List[Any]) -> List[Student]:
        parent = await self.get_parent(parent_id)
        students = await self._get_students(student_ids)
        if any(s.parent_user_id != parent.id for s in students):
            raise BadRequestError("One or more students are not linked to this parent")
        for student in students:
            student.parent_user_id = None
        await self._commit()
        logger.info(f"Unlinked {len(students)} student(s) from parent {parent.username}")
        return await self.get_by_user(parent)

    async def delete_student(self, id: Any) -> Student:
        student = await self.get_or_404(id)
        assignments = await self.db.execute(
            select(func.count(FeeAssignment.id)).where(FeeAssignment.student_id == student.id)
        )
        if assignments.scalar():
            raise BadRequestError("Cannot delete a student with fee assignments")
        return await self.delete(id)

    async def get_by_user(self, user: User) -> List[Student]:
        """Students linked to a student or parent login"""
        if user.role == "student":
            stmt = select(Student).where(Student.user_id == user.id)
        elif user.role == "parent":
            stmt = select(Student).where(Student.parent_user_id == user.id)
        else:
            return []
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _check_class_seats(self, rows, valid_rows, errors: List[Dict[str, Any]]):
        """Drop rows whose class is missing or already full, counting rows accepted earlier in the batch"""
        class_ids = {student["class_id"] for _, student in valid_rows if student.get("class_id")}
        if not class_ids:
            return valid_rows
        result = await self.db.execute(select(ClassModel).where(ClassModel.id.in_(class_ids)))
        classes = {class_obj.id: class_obj for class_obj in result.scalars().all()}
        result = await self.db.execute(
            select(Student.class_id, func.count(Student.id))
            .where(Student.class_id.in_(class_ids))
            .group_by(Student.class_id)
        )
        enrolled = dict(result.all())

        accepted = []
        for row_number, student in valid_rows:
            class_id = student.get("class_id")
            error = None
            if class_id is not None:
                class_obj = classes.get(class_id)
                if class_obj is None:
                    error = f"Class {class_id} does not exist"
                elif enrolled.get(class_id, 0) >= class_obj.capacity:
                    error = f"Class {class_obj.name} is full (capacity {class_obj.capacity})"
                else:
                    enrolled[class_id] = enrolled.get(class_id, 0) + 1
            if error:
                errors.append({"row_number": row_number, "data": rows[row_number - 1], "error": error})
            else:
                accepted.append((row_number, student))
        return accepted

    async def _check_linked_rows(self, rows, valid_rows, errors: List[Dict[str, Any]]):
        accepted = []
        for row_number, student in valid_rows:
            error = None
            for field in LINKED_USER_ROLES:
                if student.get(field) is not None:
                    error = error or await self._linked_user_error(field, student[field])
            if error:
                errors.append({"row_number": row_number, "data": rows[row_number - 1], "error": error})
            else:
                accepted.append((row_number, student))
        return accepted

    async def preflight(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Validate import rows without writing anything.
        Returns valid rows plus per-row validation and duplicate errors.
        """
        valid_rows = []
        validation_errors = []
        duplicate_errors = []
        seen = {"email": set(), "student_code": set()}

        for index, row in enumerate(rows):
            row_number = index + 1
            try:
                student = StudentCreate(**row).model_dump(mode="python")
            except ValidationError as e:
                validation_errors.append({
                    "row_number": row_number,
                    "data": row,
                    "error": "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()),
                })
                continue

            duplicate_field = next(
                (field for field in seen if student[field].lower() in seen[field]), None
            )
            if duplicate_field:
                duplicate_errors.append({
                    "row_number": row_number,
                    "field": duplicate_field,
                    "value": student[duplicate_field],
                    "error": f"Duplicate {duplicate_field} within upload",
                })
                continue
            for field in seen:
                seen[field].add(student[field].lower())
            valid_rows.append((row_number, student))

        if valid_rows:
            emails = [student["email"] for _, student in valid_rows]
            codes = [student["student_code"] for _, student in valid_rows]
            existing = await self.db.execute(
                select(Student.email, Student.student_code).where(
                    or_(Student.email.in_(emails), Student.student_code.in_(codes))
                )
            )
            taken_emails, taken_codes = set(), set()
            for email, code in existing.all():
                taken_emails.add(email)
                taken_codes.add(code)

            remaining = []
            for row_number, student in valid_rows:
                if student["email"] in taken_emails or student["student_code"] in taken_codes:
                    field = "email" if student["email"] in taken_emails else "student_code"
                    duplicate_errors.append({
                        "row_number": row_number,
                        "field": field,
                        "value": student[field],
                        "error": f"A student with this {field} already exists",
                    })
                else:
                    remaining.append((row_number, student))
            valid_rows = remaining

        if valid_rows:
            valid_rows = await self._check_linked_rows(rows, valid_rows, validation_errors)
            valid_rows = await self._check_class_seats(rows, valid_rows, validation_errors)

        return {
            "valid_rows": valid_rows,
            "validation_errors": validation_errors,
            "duplicate_errors": duplicate_errors,
            "summary": {
                "total_rows": len(rows),
                "valid": len(valid_rows),
                "invalid": len(validation_errors),
                "duplicates": len(duplicate_errors),
            },
        }

    async def bulk_create(self, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
        report = await self.preflight(rows)
        created = []
        for _, student_data in report["valid_rows"]:
            student = Student(**student_data)
            self.db.add(student)
            created.append(student)
        if created:
            await self._commit()
            for student in created:
                await self.db.refresh(student)
        logger.info(f"Bulk student import: {len(created)} created out of {len(rows)} rows")

        return {
            "created": created,
            "validation_errors": report["validation_errors"],
            "duplicate_errors": report["duplicate_errors"],
            "summary": {**report["summary"], "created": len(created)},
        }
