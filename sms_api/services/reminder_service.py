# sms_api/services/reminder_service.py
"""Payment reminders and the scheduled overdue sweep."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
import logging

from fastapi import Request
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import PermissionDeniedError
from ..models.audit_log import AuditAction
from ..models.base import utcnow
from ..models.fee import (
    FeeAssignment, PaymentReminder, AssignmentStatus, ReminderType, ReminderPriority,
    OPEN_ASSIGNMENT_STATUSES,
)
from ..models.user import User
from .audit_service import AuditService
from .base_service import BaseService
from .student_service import StudentService

logger = logging.getLogger(__name__)

FINANCE_REMINDER_ROLES = ("super_admin", "school_admin", "finance_admin", "exam_admin")
HIGH_PRIORITY_AFTER_DAYS = 30


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class PaymentReminderService(BaseService[PaymentReminder]):
    resource_name = "Payment reminder"
    allowed_filters = ("student_id", "fee_assignment_id", "reminder_type", "priority", "is_read", "is_dismissed", "created_at")

    def __init__(self, db: AsyncSession):
        super().__init__(PaymentReminder, db)
        self.audit = AuditService(db)

    async def _already_reminded(self, assignment_id: Any, reminder_type: str, since: datetime) -> bool:
        result = await self.db.execute(
            select(PaymentReminder.id).where(
                PaymentReminder.fee_assignment_id == assignment_id,
                PaymentReminder.reminder_type == reminder_type,
                PaymentReminder.is_dismissed.is_(False),
                PaymentReminder.created_at >= since,
            )
        )
        return result.first() is not None

    async def generate_reminders(self, user: Optional[User] = None, request: Optional[Request] = None) -> Dict[str, Any]:
        """Create overdue and due-tomorrow reminders, at most one per assignment and type per day"""
        now = utcnow()
        today = _start_of_day(now)
        tomorrow = today + timedelta(days=1)

        overdue = await self.db.execute(
            select(FeeAssignment).where(
                FeeAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES),
                FeeAssignment.due_date < now,
                FeeAssignment.remaining_amount > 0,
            )
        )
        due_tomorrow = await self.db.execute(
            select(FeeAssignment).where(
                FeeAssignment.status == AssignmentStatus.PENDING.value,
                FeeAssignment.due_date >= tomorrow,
                FeeAssignment.due_date < tomorrow + timedelta(days=1),
            )
        )

        candidates = []
        for assignment in overdue.scalars().all():
            days_overdue = max((now - assignment.due_date).days, 0)
            fee_name = assignment.fee.name if assignment.fee else "fee"
            candidates.append(PaymentReminder(
                student_id=assignment.student_id,
                fee_assignment_id=assignment.id,
                reminder_type=ReminderType.OVERDUE.value,
                message=f"Your {fee_name} payment of {assignment.remaining_amount:.2f} is "
                        f"{days_overdue} day(s) overdue. Please pay as soon as possible.",
                priority=(ReminderPriority.HIGH.value if days_overdue > HIGH_PRIORITY_AFTER_DAYS
                          else ReminderPriority.MEDIUM.value),
                days_overdue=days_overdue,
            ))
        for assignment in due_tomorrow.scalars().all():
            fee_name = assignment.fee.name if assignment.fee else "fee"
            candidates.append(PaymentReminder(
                student_id=assignment.student_id,
                fee_assignment_id=assignment.id,
                reminder_type=ReminderType.DUE_DATE.value,
                message=f"Your {fee_name} payment of {assignment.remaining_amount:.2f} is due tomorrow.",
                priority=ReminderPriority.MEDIUM.value,
                days_overdue=0,
            ))

        created: List[PaymentReminder] = []
        skipped = 0
        for reminder in candidates:
            if await self._already_reminded(reminder.fee_assignment_id, reminder.reminder_type, today):
                skipped += 1
                continue
            created.append(reminder)

        if created:
            self.db.add_all(created)
            await self.db.commit()
            for reminder in created:
                await self.db.refresh(reminder)
        logger.info(f"Payment reminders generated: {len(created)} created, {skipped} skipped")

        if created:
            await self.audit.log_event(
                AuditAction.PAYMENT_REMINDER_CREATE, "PAYMENT_REMINDER", user=user, request=request,
                resource_model="PaymentReminder", details={"created": len(created), "skipped": skipped},
            )
        return {"created": len(created), "skipped": skipped, "reminders": created}

    async def mark_overdue_assignments(self) -> int:
        """Flip pending, unpaid assignments past their due date to overdue"""
        stmt = (
            update(FeeAssignment)
            .where(
                FeeAssignment.status == AssignmentStatus.PENDING.value,
                FeeAssignment.due_date < utcnow(),
                FeeAssignment.paid_amount < FeeAssignment.assigned_amount,
            )
            .values(status=AssignmentStatus.OVERDUE.value, updated_at=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        logger.info(f"Marked {result.rowcount or 0} fee assignments overdue")
        return result.rowcount or 0

    async def visible_student_ids(self, user: User) -> Optional[List[Any]]:
        """None means every student"""
        if user.role in FINANCE_REMINDER_ROLES:
            return None
        students = await StudentService(self.db).get_by_user(user)
        return [student.id for student in students]

    async def _get_owned(self, id: Any, user: User) -> PaymentReminder:
        reminder = await self.get_or_404(id)
        student_ids = await self.visible_student_ids(user)
        if student_ids is not None and reminder.student_id not in student_ids:
            raise PermissionDeniedError("You can only manage your own reminders")
        return reminder

    async def mark_read(self, id: Any, user: User) -> PaymentReminder:
        reminder = await self._get_owned(id, user)
        reminder.is_read = True
        reminder.read_at = utcnow()
        await self.db.commit()
        await self.db.refresh(reminder)
        return reminder

    async def dismiss(self, id: Any, user: User) -> PaymentReminder:
        reminder = await self._get_owned(id, user)
        reminder.is_dismissed = True
        reminder.dismissed_at = utcnow()
        await self.db.commit()
        await self.db.refresh(reminder)
        return reminder

    async def unread_count(self, student_ids: List[Any]) -> int:
        if not student_ids:
            return 0
        result = await self.db.execute(
            select(func.count(PaymentReminder.id)).where(
                PaymentReminder.student_id.in_(student_ids),
                PaymentReminder.is_read.is_(False),
                PaymentReminder.is_dismissed.is_(False),
            )
        )
        return result.scalar() or 0
