# sms_api/routers/payments.py
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from ..core.auth import get_current_user, restrict_to, FINANCE_OPERATORS
from ..core.database import get_db
from ..models.user import User
from ..schemas.base import to_naive_utc
from ..schemas.fee_schemas import PaymentCreate, PaymentUpdate, PaymentResponse
from ..services.payment_service import PaymentService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

router = APIRouter(prefix="/api/v1/payments", tags=["Payments"])


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(value) if value else None


@router.get("")
async def list_payments(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    service = PaymentService(db)
    features = service.features(params, dict(request.query_params), default_sort="-payment_date")
    items, total = await features.execute(db)
    data = [features.project(serialize(PaymentResponse, p)) for p in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.post("", status_code=201)
async def record_payment(
    payment_data: PaymentCreate,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    """Record a payment against a fee assignment"""
    payment = await PaymentService(db).create_payment(payment_data.model_dump(mode="python"), current_user, request)
    await invalidate_counts(db, "payments")
    await invalidate_counts(db, "fee-assignments")
    return success_response(serialize(PaymentResponse, payment), message="Payment recorded successfully")


add_count_route(router, "payments")


@router.get("/statistics")
async def payment_statistics(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    stats = await PaymentService(db).get_statistics(_naive(start_date), _naive(end_date))
    return success_response(stats)


@router.get("/student/{student_id}")
async def student_payments(
    student_id: UUID,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=1000),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total, total_amount = await PaymentService(db).get_student_payments(
        student_id, current_user, _naive(start_date), _naive(end_date), page, limit
    )
    return Paginator.create_response(
        [serialize(PaymentResponse, p) for p in items], page, limit, total,
        additional_info={"total_amount": total_amount},
    )


@router.get("/{payment_id}")
async def get_payment(
    payment_id: UUID,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentService(db).get_or_404(payment_id)
    return success_response(serialize(PaymentResponse, payment))


@router.patch("/{payment_id}")
async def update_payment(
    payment_id: UUID,
    payment_data: PaymentUpdate,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    payment = await PaymentService(db).update_payment(
        payment_id, payment_data.model_dump(mode="python", exclude_unset=True), current_user, request
    )
    return success_response(serialize(PaymentResponse, payment))


@router.delete("/{payment_id}", status_code=204)
async def delete_payment(
    payment_id: UUID,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    await PaymentService(db).delete_payment(payment_id, current_user, request)
    await invalidate_counts(db, "payments")
    return Response(status_code=204)
