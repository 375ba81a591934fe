# sms_api/routers/fees.py
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from ..core.auth import restrict_to, FINANCE_ROLES
from ..core.database import get_db
from ..models.fee import FeeCategory
from ..models.user import User
from ..schemas.fee_schemas import FeeCreate, FeeUpdate, FeeResponse
from ..services.fee_service import FeeService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

router = APIRouter(
    prefix="/api/v1/fees",
    tags=["Fees"],
)


@router.get("")
async def list_fees(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    service = FeeService(db)
    features = service.features(params, dict(request.query_params))
    items, total = await features.execute(db)
    data = [features.project(serialize(FeeResponse, fee)) for fee in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.post("", status_code=201)
async def create_fee(
    fee_data: FeeCreate,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    fee = await FeeService(db).create_fee(fee_data.model_dump(mode="python"), current_user, request)
    await invalidate_counts(db, "fees")
    return success_response(serialize(FeeResponse, fee), message="Fee created successfully")


add_count_route(router, "fees")


@router.get("/statistics")
async def fee_statistics(
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    stats = await FeeService(db).get_statistics()
    stats["upcoming_due"] = [serialize(FeeResponse, fee) for fee in stats["upcoming_due"]]
    return success_response(stats)


@router.get("/category/{category}")
async def fees_by_category(
    category: FeeCategory,
    active_only: bool = Query(True),
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    fees = await FeeService(db).get_by_category(category.value, active_only)
    return success_response([serialize(FeeResponse, fee) for fee in fees], results=len(fees))


@router.get("/{fee_id}")
async def get_fee(
    fee_id: UUID,
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    fee = await FeeService(db).get_or_404(fee_id)
    return success_response(serialize(FeeResponse, fee))


@router.patch("/{fee_id}")
async def update_fee(
    fee_id: UUID,
    fee_data: FeeUpdate,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    fee = await FeeService(db).update_fee(
        fee_id, fee_data.model_dump(mode="python", exclude_unset=True), current_user, request
    )
    return success_response(serialize(FeeResponse, fee), message="Fee updated successfully")


@router.delete("/{fee_id}", status_code=204)
async def delete_fee(
    fee_id: UUID,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a fee; existing assignments keep referencing it"""
    await FeeService(db).deactivate_fee(fee_id, current_user, request)
    await invalidate_counts(db, "fees")
    return Response(status_code=204)
