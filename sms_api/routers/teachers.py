# sms_api/routers/teachers.py
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from ..core.auth import get_current_user, restrict_to, ADMINS
from ..core.database import get_db
from ..models.user import User
from ..schemas.teacher_schemas import TeacherCreate, TeacherUpdate, TeacherResponse
from ..services.teacher_service import TeacherService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

router = APIRouter(prefix="/api/v1/teachers", tags=["Teachers"])

TEACHER_WRITERS = ADMINS + ("academic_admin",)


@router.get("")
async def list_teachers(
    request: Request,
    search: Optional[str] = Query(None),
    subject: Optional[str] = Query(None, description="Teachers qualified for this subject"),
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = TeacherService(db)
    features = service.features(params, dict(request.query_params))
    items, total = await features.execute(db, service.search_statement(search, subject))
    data = [features.project(serialize(TeacherResponse, t)) for t in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.post("", status_code=201)
async def create_teacher(
    teacher_data: TeacherCreate,
    current_user: User = Depends(restrict_to(*TEACHER_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    teacher = await TeacherService(db).create(teacher_data.model_dump(mode="python"))
    await invalidate_counts(db, "teachers")
    return success_response(serialize(TeacherResponse, teacher))


add_count_route(router, "teachers")


@router.get("/{teacher_id}")
async def get_teacher(
    teacher_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    teacher = await TeacherService(db).get_or_404(teacher_id)
    return success_response(serialize(TeacherResponse, teacher))


@router.patch("/{teacher_id}")
async def update_teacher(
    teacher_id: UUID,
    teacher_data: TeacherUpdate,
    current_user: User = Depends(restrict_to(*TEACHER_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    teacher = await TeacherService(db).update(
        teacher_id, teacher_data.model_dump(mode="python", exclude_unset=True)
    )
    return success_response(serialize(TeacherResponse, teacher))


@router.delete("/{teacher_id}", status_code=204)
async def delete_teacher(
    teacher_id: UUID,
    current_user: User = Depends(restrict_to(*TEACHER_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    await TeacherService(db).delete_teacher(teacher_id)
    await invalidate_counts(db, "teachers")
    return Response(status_code=204)
