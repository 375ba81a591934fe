# sms_api/routers/payment_reminders.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from ..core.auth import get_current_user
from ..core.database import get_db
from ..models.fee import PaymentReminder
from ..models.user import User
from ..schemas.fee_schemas import PaymentReminderResponse
from ..services.reminder_service import PaymentReminderService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response

router = APIRouter(prefix="/api/v1/payment-reminders", tags=["Payment Reminders"])


@router.get("")
async def list_reminders(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Finance staff see every reminder; students and parents their own undismissed ones"""
    service = PaymentReminderService(db)
    stmt = select(PaymentReminder)
    student_ids = await service.visible_student_ids(current_user)
    if student_ids is not None:
        stmt = stmt.where(
            PaymentReminder.student_id.in_(student_ids),
            PaymentReminder.is_dismissed.is_(False),
        )
    features = service.features(params, dict(request.query_params))
    items, total = await features.execute(db, stmt)
    data = [features.project(serialize(PaymentReminderResponse, r)) for r in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.patch("/{reminder_id}/read")
async def mark_reminder_read(
    reminder_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reminder = await PaymentReminderService(db).mark_read(reminder_id, current_user)
    return success_response(serialize(PaymentReminderResponse, reminder))


@router.patch("/{reminder_id}/dismiss")
async def dismiss_reminder(
    reminder_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reminder = await PaymentReminderService(db).dismiss(reminder_id, current_user)
    return success_response(serialize(PaymentReminderResponse, reminder))
