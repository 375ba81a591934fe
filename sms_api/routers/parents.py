# sms_api/routers/parents.py
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import restrict_to
from ..core.database import get_db
from ..models.user import User
from ..schemas.student_schemas import ParentStudentsRequest, StudentResponse
from ..services.student_service import StudentService
from ..utils.responses import serialize
from .students import STUDENT_READERS, STUDENT_WRITERS

router = APIRouter(prefix="/api/v1/parents", tags=["Parents"])


def _children_response(students) -> dict:
    return {
        "status": "success",
        "results": len(students),
        "data": {"data": [serialize(StudentResponse, s) for s in students]},
    }


@router.get("/{parent_id}/students")
async def get_parent_students(
    parent_id: UUID,
    current_user: User = Depends(restrict_to(*STUDENT_READERS)),
    db: AsyncSession = Depends(get_db),
):
    service = StudentService(db)
    parent = await service.get_parent(parent_id)
    return _children_response(await service.get_by_user(parent))


@router.post("/{parent_id}/assign-students")
async def assign_students(
    parent_id: UUID,
    body: ParentStudentsRequest,
    current_user: User = Depends(restrict_to(*STUDENT_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    """Link existing students to a parent account"""
    students = await StudentService(db).assign_parent(parent_id, body.student_ids, body.allow_reassign)
    return _children_response(students)


@router.post("/{parent_id}/unassign-students")
async def unassign_students(
    parent_id: UUID,
    body: ParentStudentsRequest,
    current_user: User = Depends(restrict_to(*STUDENT_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    students = await StudentService(db).unassign_parent(parent_id, body.student_ids)
    return _children_response(students)
