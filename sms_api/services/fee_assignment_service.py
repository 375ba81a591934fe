# sms_api/services/fee_assignment_service.py
"""Fee assignment lifecycle: single and bulk assignment, updates, overdue queries."""
from typing import Any, Dict, List, Optional
import logging

from fastapi import Request
from sqlalchemy import delete, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError, NotFoundError
from ..models.audit_log import AuditAction
from ..models.base import utcnow
from ..models.fee import (
    Fee, FeeAssignment, Payment, PaymentReminder, AssignmentStatus, OPEN_ASSIGNMENT_STATUSES
)
from ..models.student import Student, StudentStatus
from ..models.user import User
from ..utils.pagination import ListParams
from .audit_service import AuditService
from .base_service import BaseService
from .student_service import ensure_student_access

logger = logging.getLogger(__name__)


class FeeAssignmentService(BaseService[FeeAssignment]):
    resource_name = "Fee assignment"
    allowed_filters = ("status", "student_id", "fee_id", "due_date", "late_fee_applied", "created_at")

    def __init__(self, db: AsyncSession):
        super().__init__(FeeAssignment, db)
        self.audit = AuditService(db)

    async def _get_fee(self, fee_id: Any) -> Fee:
        fee = await self.db.get(Fee, fee_id)
        if not fee:
            raise NotFoundError("Fee", fee_id)
        if not fee.is_active:
            raise BadRequestError("Cannot assign an inactive fee")
        return fee

    async def _open_assignment_student_ids(self, fee_id: Any, student_ids: List[Any]) -> set:
        if not student_ids:
            return set()
        result = await self.db.execute(
            select(FeeAssignment.student_id).where(
                FeeAssignment.fee_id == fee_id,
                FeeAssignment.student_id.in_(student_ids),
                FeeAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES),
            )
        )
        return {row[0] for row in result.all()}

    def _build(self, student: Student, fee: Fee, data: Dict[str, Any], user: User) -> FeeAssignment:
        assigned_amount = data.get("assigned_amount")
        due_date = data.get("due_date") or fee.due_date
        if due_date is None:
            raise BadRequestError("A due date is required when the fee has none")
        assignment = FeeAssignment(
            student_id=student.id,
            fee_id=fee.id,
            assigned_amount=fee.amount if assigned_amount is None else assigned_amount,
            due_date=due_date,
            status=AssignmentStatus.PENDING.value,
            paid_amount=0,
            late_fee_amount=0,
            late_fee_applied=False,
            notes=data.get("notes"),
            assigned_by=user.id,
        )
        assignment.refresh_status()
        return assignment

    async def create_assignment(self, data: Dict[str, Any], user: User, request: Optional[Request] = None) -> FeeAssignment:
        student = await self.db.get(Student, data["student_id"])
        if not student:
            raise NotFoundError("Student", data["student_id"])
        fee = await self._get_fee(data["fee_id"])

        if await self._open_assignment_student_ids(fee.id, [student.id]):
            raise BadRequestError("Student already has a pending assignment for this fee")

        assignment = self._build(student, fee, data, user)
        self.db.add(assignment)
        await self.db.commit()
        await self.db.refresh(assignment)

        await self.audit.log_event(
            AuditAction.FEE_ASSIGNMENT_CREATE, "FEE_ASSIGNMENT", user=user, request=request,
            resource_id=assignment.id, resource_model="FeeAssignment",
            details={"student_id": student.id, "fee_id": fee.id, "amount": assignment.assigned_amount},
        )
        return assignment

    async def _resolve_bulk_targets(self, data: Dict[str, Any]) -> List[Student]:
        stmt = select(Student)
        assign_to = data["assign_to"]
        if assign_to == "all":
            stmt = stmt.where(Student.status == StudentStatus.ACTIVE.value)
        elif assign_to == "classes":
            stmt = stmt.where(Student.class_id.in_(data["class_ids"]))
        elif assign_to == "grades":
            stmt = stmt.where(Student.grade_level.in_(data["grade_levels"]))
        elif assign_to == "students":
            stmt = stmt.where(Student.id.in_(data["student_ids"]))
        result = await self.db.execute(stmt.order_by(Student.last_name, Student.first_name))
        return list(result.scalars().all())

    async def bulk_assign(self, data: Dict[str, Any], user: User, request: Optional[Request] = None) -> Dict[str, Any]:
        fee = await self._get_fee(data["fee_id"])
        students = await self._resolve_bulk_targets(data)
        if not students:
            raise BadRequestError("No students found for the specified criteria")

        already_assigned = await self._open_assignment_student_ids(fee.id, [s.id for s in students])
        assignments = []
        errors = []
        for student in students:
            if student.id in already_assigned:
                errors.append({
                    "student_id": str(student.id),
                    "student_name": student.full_name,
                    "error": "Fee already assigned to this student",
                })
                continue
            assignments.append(self._build(student, fee, data, user))

        if assignments:
            self.db.add_all(assignments)
            await self.db.commit()
            for assignment in assignments:
                await self.db.refresh(assignment)

        summary = {
            "total_targeted": len(students),
            "successfully_assigned": len(assignments),
            "errors": len(errors),
        }
        logger.info(f"Bulk assignment of fee {fee.id}: {summary}")
        await self.audit.log_event(
            AuditAction.FEE_ASSIGNMENT_BULK_CREATE, "FEE_ASSIGNMENT", user=user, request=request,
            resource_model="FeeAssignment",
            details={"fee_id": fee.id, "assign_to": data["assign_to"], **summary},
        )
        return {"assignments": assignments, "errors": errors, "summary": summary}

    async def update_assignment(self, id: Any, data: Dict[str, Any], user: User, request: Optional[Request] = None) -> FeeAssignment:
        assignment = await self.get_or_404(id)
        assigned_amount = data.get("assigned_amount", assignment.assigned_amount)

        if assigned_amount is not None and assigned_amount < (assignment.paid_amount or 0):
            raise BadRequestError("Assigned amount cannot be lower than the amount already paid")
        if data.get("status") == AssignmentStatus.PAID.value and (assignment.paid_amount or 0) < assigned_amount:
            raise BadRequestError("Cannot mark as paid: paid amount is less than the assigned amount")

        for key, value in data.items():
            setattr(assignment, key, value)
        assignment.refresh_status()
        await self.db.commit()
        await self.db.refresh(assignment)

        await self.audit.log_event(
            AuditAction.FEE_ASSIGNMENT_UPDATE, "FEE_ASSIGNMENT", user=user, request=request,
            resource_id=assignment.id, resource_model="FeeAssignment",
            details={"updated_fields": sorted(data.keys()), "status": assignment.status},
        )
        return assignment

    async def delete_assignment(self, id: Any, user: User, request: Optional[Request] = None):
        assignment = await self.get_or_404(id)
        payments = await self.db.execute(
            select(func.count(Payment.id)).where(Payment.fee_assignment_id == assignment.id)
        )
        if payments.scalar():
            raise BadRequestError("Cannot delete fee assignment with existing payments")

        await self.db.execute(delete(PaymentReminder).where(PaymentReminder.fee_assignment_id == assignment.id))
        await self.db.delete(assignment)
        await self.db.commit()
        await self.audit.log_event(
            AuditAction.FEE_ASSIGNMENT_DELETE, "FEE_ASSIGNMENT", user=user, request=request,
            resource_id=id, resource_model="FeeAssignment",
            details={"student_id": assignment.student_id, "fee_id": assignment.fee_id},
        )

    async def get_student_assignments(self, student_id: Any, user: User, status: Optional[str] = None) -> Dict[str, Any]:
        student = await self.db.get(Student, student_id)
        if not student:
            raise NotFoundError("Student", student_id)
        ensure_student_access(user, student)

        stmt = select(FeeAssignment).where(FeeAssignment.student_id == student.id)
        if status:
            stmt = stmt.where(FeeAssignment.status == status)
        result = await self.db.execute(stmt.order_by(FeeAssignment.due_date.asc()))
        assignments = list(result.scalars().all())

        open_assignments = [a for a in assignments if a.status in OPEN_ASSIGNMENT_STATUSES]
        summary = {
            "total_assigned": round(sum(a.total_amount for a in assignments), 2),
            "total_paid": round(sum(a.paid_amount or 0 for a in assignments), 2),
            "total_remaining": round(sum(a.remaining_amount or 0 for a in open_assignments), 2),
            "overdue_count": sum(1 for a in assignments if a.status == AssignmentStatus.OVERDUE.value),
        }
        return {"student": student, "assignments": assignments, "summary": summary}

    async def get_overdue(self, params: ListParams):
        stmt = select(FeeAssignment).where(
            FeeAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES),
            FeeAssignment.due_date < utcnow(),
        )
        return await self.get_paginated(params, stmt=stmt, default_sort="due_date")
