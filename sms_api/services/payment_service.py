# sms_api/services/payment_service.py
"""Payment recording against fee assignments."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging

from fastapi import Request
from sqlalchemy import Integer, cast, select, func, extract
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError, NotFoundError
from ..models.audit_log import AuditAction
from ..models.base import utcnow
from ..models.fee import FeeAssignment, Payment, PaymentStatus, AssignmentStatus
from ..models.student import Student
from ..models.user import User
from .audit_service import AuditService
from .base_service import BaseService
from .student_service import ensure_student_access

logger = logging.getLogger(__name__)

RECEIPT_DIGITS = 6


def _counted(amount: float, status: str) -> float:
    """Only completed payments count towards the assignment balance"""
    return amount if status == PaymentStatus.COMPLETED.value else 0


class PaymentService(BaseService[Payment]):
    resource_name = "Payment"
    allowed_filters = ("status", "payment_method", "student_id", "fee_assignment_id", "payment_date", "amount", "created_at")

    def __init__(self, db: AsyncSession):
        super().__init__(Payment, db)
        self.audit = AuditService(db)

    async def next_receipt_number(self) -> str:
        result = await self.db.execute(select(func.max(cast(Payment.receipt_number, Integer))))
        last = result.scalar()
        next_number = int(last) + 1 if last else 1
        return str(next_number).zfill(RECEIPT_DIGITS)

    def _apply_to_assignment(self, assignment: FeeAssignment, delta: float):
        new_paid = round((assignment.paid_amount or 0) + delta, 2)
        if new_paid < 0:
            new_paid = 0
        if new_paid > round(assignment.assigned_amount, 2):
            remaining = round(assignment.assigned_amount - (assignment.paid_amount or 0), 2)
            raise BadRequestError(f"Payment amount exceeds remaining amount ({remaining:.2f})")
        assignment.paid_amount = new_paid
        assignment.refresh_status()

    async def create_payment(self, data: Dict[str, Any], user: User, request: Optional[Request] = None) -> Payment:
        assignment = await self.db.get(FeeAssignment, data["fee_assignment_id"])
        if not assignment:
            raise NotFoundError("Fee assignment", data["fee_assignment_id"])
        if assignment.status == AssignmentStatus.CANCELLED.value:
            raise BadRequestError("Cannot record a payment against a cancelled assignment")

        self._apply_to_assignment(assignment, data["amount"])

        payment = Payment(
            fee_assignment_id=assignment.id,
            student_id=assignment.student_id,
            amount=data["amount"],
            payment_date=data.get("payment_date") or utcnow(),
            payment_method=data["payment_method"],
            reference_number=data.get("reference_number"),
            receipt_number=await self.next_receipt_number(),
            status=PaymentStatus.COMPLETED.value,
            notes=data.get("notes"),
            processed_by=user.id,
            bank_details=data.get("bank_details"),
        )
        self.db.add(payment)
        await self._commit()
        await self.db.refresh(payment)
        await self.db.refresh(assignment)
        logger.info(f"Payment {payment.receipt_number} of {payment.amount} recorded for assignment {assignment.id}")

        await self.audit.log_event(
            AuditAction.PAYMENT_CREATE, "PAYMENT", user=user, request=request,
            resource_id=payment.id, resource_model="Payment",
            details={"amount": payment.amount, "receipt_number": payment.receipt_number,
                     "fee_assignment_id": assignment.id, "student_id": assignment.student_id},
        )
        return payment

    async def update_payment(self, id: Any, data: Dict[str, Any], user: User, request: Optional[Request] = None) -> Payment:
        payment = await self.get_or_404(id)
        assignment = await self.db.get(FeeAssignment, payment.fee_assignment_id)

        old_share = _counted(payment.amount, payment.status)
        new_share = _counted(data.get("amount", payment.amount), data.get("status", payment.status))
        if assignment and new_share != old_share:
            self._apply_to_assignment(assignment, new_share - old_share)

        for key, value in data.items():
            setattr(payment, key, value)
        await self.db.commit()
        await self.db.refresh(payment)
        if assignment:
            await self.db.refresh(assignment)

        await self.audit.log_event(
            AuditAction.PAYMENT_UPDATE, "PAYMENT", user=user, request=request,
            resource_id=payment.id, resource_model="Payment",
            details={"updated_fields": sorted(data.keys()), "amount": payment.amount},
        )
        return payment

    async def delete_payment(self, id: Any, user: User, request: Optional[Request] = None):
        payment = await self.get_or_404(id)
        assignment = await self.db.get(FeeAssignment, payment.fee_assignment_id)
        if assignment:
            self._apply_to_assignment(assignment, -_counted(payment.amount, payment.status))

        await self.db.delete(payment)
        await self.db.commit()
        await self.audit.log_event(
            AuditAction.PAYMENT_DELETE, "PAYMENT", user=user, request=request,
            resource_id=id, resource_model="Payment",
            details={"amount": payment.amount, "receipt_number": payment.receipt_number},
        )

    async def get_student_payments(
        self,
        student_id: Any,
        user: User,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[Payment], int, float]:
        student = await self.db.get(Student, student_id)
        if not student:
            raise NotFoundError("Student", student_id)
        ensure_student_access(user, student)

        stmt = select(Payment).where(Payment.student_id == student.id)
        if start_date:
            stmt = stmt.where(Payment.payment_date >= start_date)
        if end_date:
            stmt = stmt.where(Payment.payment_date <= end_date)

        totals = await self.db.execute(
            select(func.count(), func.sum(Payment.amount)).select_from(stmt.subquery())
        )
        total, total_amount = totals.one()
        result = await self.db.execute(
            stmt.order_by(Payment.payment_date.desc()).offset((page - 1) * limit).limit(limit)
        )
        return list(result.scalars().all()), total or 0, round(float(total_amount or 0), 2)

    async def get_statistics(self, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Dict[str, Any]:
        conditions = [Payment.status == PaymentStatus.COMPLETED.value]
        if start_date:
            conditions.append(Payment.payment_date >= start_date)
        if end_date:
            conditions.append(Payment.payment_date <= end_date)

        totals = await self.db.execute(select(func.count(Payment.id), func.sum(Payment.amount)).where(*conditions))
        total_payments, total_amount = totals.one()

        by_method = await self.db.execute(
            select(Payment.payment_method, func.count(Payment.id), func.sum(Payment.amount))
            .where(*conditions)
            .group_by(Payment.payment_method)
            .order_by(func.sum(Payment.amount).desc())
        )

        year = extract("year", Payment.payment_date)
        month = extract("month", Payment.payment_date)
        twelve_months_ago = utcnow() - timedelta(days=365)
        monthly = await self.db.execute(
            select(year, month, func.count(Payment.id), func.sum(Payment.amount))
            .where(Payment.status == PaymentStatus.COMPLETED.value, Payment.payment_date >= twelve_months_ago)
            .group_by(year, month)
            .order_by(year, month)
        )

        return {
            "total_payments": total_payments or 0,
            "total_amount": round(float(total_amount or 0), 2),
            "by_method": [
                {"method": method, "count": count, "total_amount": round(float(total or 0), 2)}
                for method, count, total in by_method.all()
            ],
            "monthly": [
                {"year": int(y), "month": int(m), "count": count, "total_amount": round(float(total or 0), 2)}
                for y, m, count, total in monthly.all()
            ],
        }
