# sms_api/routers/classes.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from ..core.auth import get_current_user, restrict_to, ADMINS
from ..core.database import get_db
from ..models.user import User
from ..schemas.class_schemas import ClassCreate, ClassUpdate, ClassResponse
from ..services.class_service import ClassService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

router = APIRouter(prefix="/api/v1/classes", tags=["Classes"])

CLASS_WRITERS = ADMINS + ("academic_admin",)


@router.get("")
async def list_classes(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = ClassService(db)
    features = service.features(params, dict(request.query_params))
    items, total = await features.execute(db)
    data = [features.project(serialize(ClassResponse, c)) for c in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.post("", status_code=201)
async def create_class(
    class_data: ClassCreate,
    current_user: User = Depends(restrict_to(*CLASS_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    class_obj = await ClassService(db).create(class_data.model_dump(mode="python"))
    await invalidate_counts(db, "classes")
    return success_response(serialize(ClassResponse, class_obj))


add_count_route(router, "classes")


@router.get("/distribution")
async def class_distribution(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Students per class, for charts"""
    return success_response(await ClassService(db).get_distribution())


@router.get("/{class_id}")
async def get_class(
    class_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await ClassService(db).get_with_enrollment(class_id)
    data = serialize(ClassResponse, result["class"])
    data["student_count"] = result["student_count"]
    data["available_seats"] = result["available_seats"]
    return success_response(data)


@router.patch("/{class_id}")
async def update_class(
    class_id: UUID,
    class_data: ClassUpdate,
    current_user: User = Depends(restrict_to(*CLASS_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    class_obj = await ClassService(db).update_class(
        class_id, class_data.model_dump(mode="python", exclude_unset=True)
    )
    return success_response(serialize(ClassResponse, class_obj))


@router.delete("/{class_id}", status_code=204)
async def delete_class(
    class_id: UUID,
    current_user: User = Depends(restrict_to(*CLASS_WRITERS)),
    db: AsyncSession = Depends(get_db),
):
    await ClassService(db).delete_class(class_id)
    await invalidate_counts(db, "classes")
    return Response(status_code=204)
