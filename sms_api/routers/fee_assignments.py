# sms_api/routers/fee_assignments.py
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID
import logging

from ..core.auth import get_current_user, restrict_to, FINANCE_OPERATORS
from ..core.database import get_db
from ..models.user import User
from ..schemas.fee_schemas import (
    FeeAssignmentCreate, FeeAssignmentBulkCreate, FeeAssignmentUpdate, FeeAssignmentResponse,
    PaymentReminderResponse,
)
from ..schemas.student_schemas import StudentBrief
from ..services.fee_assignment_service import FeeAssignmentService
from ..services.reminder_service import PaymentReminderService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/fee-assignments", tags=["Fee Assignments"])


def _format(assignment):
    return serialize(FeeAssignmentResponse, assignment)


@router.get("")
async def list_fee_assignments(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    service = FeeAssignmentService(db)
    features = service.features(params, dict(request.query_params))
    items, total = await features.execute(db)
    data = [features.project(_format(a)) for a in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.post("", status_code=201)
async def create_fee_assignment(
    assignment_data: FeeAssignmentCreate,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    assignment = await FeeAssignmentService(db).create_assignment(
        assignment_data.model_dump(mode="python"), current_user, request
    )
    await invalidate_counts(db, "fee-assignments")
    return success_response(_format(assignment), message="Fee assigned successfully")


add_count_route(router, "fee-assignments")


@router.post("/bulk", status_code=201)
async def bulk_assign_fees(
    bulk_data: FeeAssignmentBulkCreate,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    """Assign one fee to every student, whole classes, grade levels or a list of students"""
    result = await FeeAssignmentService(db).bulk_assign(bulk_data.model_dump(mode="python"), current_user, request)
    await invalidate_counts(db, "fee-assignments")
    return success_response(
        {
            "assignments": [_format(a) for a in result["assignments"]],
            "errors": result["errors"],
            "summary": result["summary"],
        },
        message=f"Fee assigned to {result['summary']['successfully_assigned']} students",
    )


@router.get("/overdue")
async def overdue_assignments(
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await FeeAssignmentService(db).get_overdue(params)
    return Paginator.create_response([_format(a) for a in items], params.page, params.limit, total)


@router.post("/generate-reminders")
async def generate_reminders(
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    result = await PaymentReminderService(db).generate_reminders(current_user, request)
    return success_response(
        [serialize(PaymentReminderResponse, r) for r in result["reminders"]],
        message=f"Generated {result['created']} reminders",
        created=result["created"],
        skipped=result["skipped"],
    )


@router.get("/student/{student_id}")
async def student_fee_assignments(
    student_id: UUID,
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await FeeAssignmentService(db).get_student_assignments(student_id, current_user, status)
    return success_response(
        [_format(a) for a in result["assignments"]],
        student=serialize(StudentBrief, result["student"]),
        summary=result["summary"],
    )


@router.get("/{assignment_id}")
async def get_fee_assignment(
    assignment_id: UUID,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    assignment = await FeeAssignmentService(db).get_or_404(assignment_id)
    return success_response(_format(assignment))


@router.patch("/{assignment_id}")
async def update_fee_assignment(
    assignment_id: UUID,
    assignment_data: FeeAssignmentUpdate,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    assignment = await FeeAssignmentService(db).update_assignment(
        assignment_id, assignment_data.model_dump(mode="python", exclude_unset=True), current_user, request
    )
    return success_response(_format(assignment))


@router.delete("/{assignment_id}", status_code=204)
async def delete_fee_assignment(
    assignment_id: UUID,
    request: Request,
    current_user: User = Depends(restrict_to(*FINANCE_OPERATORS)),
    db: AsyncSession = Depends(get_db),
):
    await FeeAssignmentService(db).delete_assignment(assignment_id, current_user, request)
    await invalidate_counts(db, "fee-assignments")
    return Response(status_code=204)
