# sms_api/services/financial_report_service.py
"""Finance aggregates: report dashboard, outstanding balances and CSV exports."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, extract, or_, and_, case
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError
from ..models import Fee, FeeAssignment, Payment, Student, ClassModel
from ..models.base import utcnow
from ..models.fee import AssignmentStatus, PaymentStatus, OPEN_ASSIGNMENT_STATUSES
from .csv_processor import CSVProcessor

DEFAULT_REPORT_DAYS = 30

PAYMENT_EXPORT_COLUMNS = [
    "receipt_number", "payment_date", "student_code", "student_name",
    "amount", "payment_method", "status", "reference_number",
]
OUTSTANDING_EXPORT_COLUMNS = [
    "student_code", "student_name", "class_name", "total_assigned",
    "total_paid", "total_remaining", "open_assignments", "overdue_assignments",
]


def _money(value) -> float:
    return round(float(value or 0), 2)


def resolve_date_range(start_date: Optional[datetime], end_date: Optional[datetime]) -> Tuple[datetime, datetime]:
    end = end_date or utcnow()
    start = start_date or end - timedelta(days=DEFAULT_REPORT_DAYS)
    if start > end:
        raise BadRequestError("start_date must be before end_date")
    return start, end


class FinancialReportService:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _overdue_clause(self, now: datetime):
        return or_(
            FeeAssignment.status == AssignmentStatus.OVERDUE.value,
            and_(FeeAssignment.status == AssignmentStatus.PENDING.value, FeeAssignment.due_date < now),
        )

    async def get_dashboard(self, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Dict[str, Any]:
        start, end = resolve_date_range(start_date, end_date)
        now = utcnow()
        in_range = (
            Payment.status == PaymentStatus.COMPLETED.value,
            Payment.payment_date >= start,
            Payment.payment_date <= end,
        )

        collected = await self.db.execute(select(func.sum(Payment.amount), func.count(Payment.id)).where(*in_range))
        total_collected, total_payments = collected.one()

        outstanding = await self.db.execute(
            select(func.sum(FeeAssignment.remaining_amount), func.count(FeeAssignment.id))
            .where(FeeAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES))
        )
        outstanding_amount, outstanding_count = outstanding.one()

        overdue_rows = (await self.db.execute(
            select(FeeAssignment.remaining_amount, FeeAssignment.due_date).where(self._overdue_clause(now))
        )).all()
        overdue_amount = sum(row[0] or 0 for row in overdue_rows)
        avg_days_overdue = (
            round(sum((now - due).days for _, due in overdue_rows) / len(overdue_rows), 1)
            if overdue_rows else 0
        )

        by_category = await self.db.execute(
            select(
                Fee.category,
                func.count(FeeAssignment.id),
                func.sum(FeeAssignment.assigned_amount),
                func.sum(FeeAssignment.paid_amount),
                func.sum(FeeAssignment.remaining_amount),
            )
            .join(Fee, Fee.id == FeeAssignment.fee_id)
            .where(FeeAssignment.status != AssignmentStatus.CANCELLED.value)
            .group_by(Fee.category)
            .order_by(func.sum(FeeAssignment.assigned_amount).desc())
        )

        year = extract("year", Payment.payment_date)
        month = extract("month", Payment.payment_date)
        trends = await self.db.execute(
            select(year, month, func.sum(Payment.amount), func.count(Payment.id))
            .where(*in_range)
            .group_by(year, month)
            .order_by(year, month)
        )
        methods = await self.db.execute(
            select(Payment.payment_method, func.sum(Payment.amount), func.count(Payment.id))
            .where(*in_range)
            .group_by(Payment.payment_method)
        )

        return {
            "summary": {
                "total_fees_collected": _money(total_collected),
                "total_payments": total_payments or 0,
                "outstanding_fees": _money(outstanding_amount),
                "outstanding_count": outstanding_count or 0,
                "overdue_fees": _money(overdue_amount),
                "overdue_count": len(overdue_rows),
                "avg_days_overdue": avg_days_overdue,
            },
            "fees_by_category": [
                {
                    "category": category,
                    "assignments": count,
                    "total_assigned": _money(assigned),
                    "total_paid": _money(paid),
                    "total_remaining": _money(remaining),
                }
                for category, count, assigned, paid, remaining in by_category.all()
            ],
            "payment_trends": [
                {"year": int(y), "month": int(m), "total_amount": _money(total), "count": count}
                for y, m, total, count in trends.all()
            ],
            "payment_methods": [
                {"method": method, "total_amount": _money(total), "count": count}
                for method, total, count in methods.all()
            ],
            "class_summary": await self.get_class_summary(),
            "date_range": {"start_date": start.isoformat(), "end_date": end.isoformat()},
        }

    async def get_class_summary(self) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(
                ClassModel.id,
                ClassModel.name,
                func.count(func.distinct(Student.id)),
                func.sum(FeeAssignment.assigned_amount),
                func.sum(FeeAssignment.paid_amount),
                func.sum(FeeAssignment.remaining_amount),
            )
            .join(Student, Student.class_id == ClassModel.id)
            .join(FeeAssignment, FeeAssignment.student_id == Student.id)
            .where(FeeAssignment.status != AssignmentStatus.CANCELLED.value)
            .group_by(ClassModel.id, ClassModel.name)
            .order_by(ClassModel.name)
        )
        return [
            {
                "class_id": str(class_id),
                "class_name": name,
                "students": students,
                "total_assigned": _money(assigned),
                "total_paid": _money(paid),
                "total_outstanding": _money(remaining),
            }
            for class_id, name, students, assigned, paid, remaining in result.all()
        ]

    async def get_outstanding_by_student(self) -> List[Dict[str, Any]]:
        now = utcnow()
        overdue = func.sum(case((self._overdue_clause(now), 1), else_=0))
        result = await self.db.execute(
            select(
                Student.student_code,
                Student.first_name,
                Student.last_name,
                ClassModel.name,
                func.sum(FeeAssignment.assigned_amount),
                func.sum(FeeAssignment.paid_amount),
                func.sum(FeeAssignment.remaining_amount),
                func.count(FeeAssignment.id),
                overdue,
            )
            .join(FeeAssignment, FeeAssignment.student_id == Student.id)
            .outerjoin(ClassModel, ClassModel.id == Student.class_id)
            .where(FeeAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES))
            .group_by(Student.id, Student.student_code, Student.first_name, Student.last_name, ClassModel.name)
            .order_by(func.sum(FeeAssignment.remaining_amount).desc())
        )
        return [
            {
                "student_code": code,
                "student_name": f"{first} {last}",
                "class_name": class_name,
                "total_assigned": _money(assigned),
                "total_paid": _money(paid),
                "total_remaining": _money(remaining),
                "open_assignments": open_count,
                "overdue_assignments": int(overdue_count or 0),
            }
            for code, first, last, class_name, assigned, paid, remaining, open_count, overdue_count in result.all()
        ]

    async def get_payment_rows(self, start: datetime, end: datetime) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(Payment, Student)
            .join(Student, Student.id == Payment.student_id)
            .where(Payment.payment_date >= start, Payment.payment_date <= end)
            .order_by(Payment.payment_date.asc())
        )
        return [
            {
                "receipt_number": payment.receipt_number,
                "payment_date": payment.payment_date.isoformat(),
                "student_code": student.student_code,
                "student_name": student.full_name,
                "amount": _money(payment.amount),
                "payment_method": payment.payment_method,
                "status": payment.status,
                "reference_number": payment.reference_number,
            }
            for payment, student in result.all()
        ]

    async def export_csv(self, report: str, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> str:
        if report == "payments":
            start, end = resolve_date_range(start_date, end_date)
            return CSVProcessor.to_csv(await self.get_payment_rows(start, end), PAYMENT_EXPORT_COLUMNS)
        if report == "outstanding":
            return CSVProcessor.to_csv(await self.get_outstanding_by_student(), OUTSTANDING_EXPORT_COLUMNS)
        raise BadRequestError(f"Unknown report: {report}")
