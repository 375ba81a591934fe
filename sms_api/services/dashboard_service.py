# sms_api/services/dashboard_service.py
"""Summary cards and chart data for the role dashboards."""
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    User, UserSession, Student, Teacher, ClassModel, FeeAssignment, Payment, Event
)
from ..models.base import utcnow
from ..models.fee import AssignmentStatus, PaymentStatus, OPEN_ASSIGNMENT_STATUSES
from ..models.user import UserRole, ADMIN_ROLES
from .announcement_service import AnnouncementService
from .audit_service import AuditService
from .class_service import ClassService
from .reminder_service import PaymentReminderService
from .student_service import StudentService

FINANCE_DASHBOARD_ROLES = ("super_admin", "school_admin", "finance_admin")


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _scalar(self, stmt) -> Any:
        return (await self.db.execute(stmt)).scalar() or 0

    async def get_recent_activities(self, limit: int = 10):
        return await AuditService(self.db).get_recent(limit)

    async def get_user_stats(self) -> Dict[str, Any]:
        result = await self.db.execute(
            select(User.role, func.count(User.id)).where(User.is_active.is_(True)).group_by(User.role)
        )
        counts = dict(result.all())
        labels = [role.value for role in UserRole]
        return {
            "total": sum(counts.values()),
            "labels": labels,
            "datasets": [{"label": "Users by role", "data": [counts.get(role, 0) for role in labels]}],
        }

    async def get_class_distribution(self) -> List[Dict[str, Any]]:
        return await ClassService(self.db).get_distribution()

    async def _upcoming_events(self) -> int:
        now = utcnow()
        return await self._scalar(
            select(func.count(Event.id)).where(Event.start_time >= now, Event.start_time <= now + timedelta(days=30))
        )

    async def _finance_cards(self) -> Dict[str, Any]:
        collected = await self._scalar(
            select(func.sum(Payment.amount)).where(Payment.status == PaymentStatus.COMPLETED.value)
        )
        outstanding = await self._scalar(
            select(func.sum(FeeAssignment.remaining_amount)).where(FeeAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES))
        )
        overdue = await self._scalar(
            select(func.sum(FeeAssignment.remaining_amount)).where(FeeAssignment.status == AssignmentStatus.OVERDUE.value)
        )
        overdue_count = await self._scalar(
            select(func.count(FeeAssignment.id)).where(FeeAssignment.status == AssignmentStatus.OVERDUE.value)
        )
        return {
            "fees_collected": round(float(collected), 2),
            "outstanding_fees": round(float(outstanding), 2),
            "overdue_fees": round(float(overdue), 2),
            "overdue_assignments": overdue_count,
        }

    async def get_summary(self, user: User) -> Dict[str, Any]:
        """Role-aware summary cards merged from several counts"""
        cards: Dict[str, Any] = {}

        if user.role in ADMIN_ROLES or user.role == "teacher":
            cards["students"] = await self._scalar(select(func.count(Student.id)))
            cards["classes"] = await self._scalar(select(func.count(ClassModel.id)))
            cards["upcoming_events"] = await self._upcoming_events()

        if user.role in ADMIN_ROLES:
            cards["teachers"] = await self._scalar(select(func.count(Teacher.id)))
            cards["users"] = await self._scalar(select(func.count(User.id)).where(User.is_active.is_(True)))
            cards["active_sessions"] = await self._scalar(
                select(func.count(UserSession.id)).where(
                    UserSession.is_active.is_(True), UserSession.expires_at > utcnow()
                )
            )

        if user.role in FINANCE_DASHBOARD_ROLES:
            cards.update(await self._finance_cards())

        if user.role in ("student", "parent"):
            students = await StudentService(self.db).get_by_user(user)
            student_ids = [student.id for student in students]
            cards["students"] = len(student_ids)
            outstanding = 0
            if student_ids:
                outstanding = await self._scalar(
                    select(func.sum(FeeAssignment.remaining_amount)).where(
                        FeeAssignment.student_id.in_(student_ids),
                        FeeAssignment.status.in_(OPEN_ASSIGNMENT_STATUSES),
                    )
                )
            cards["outstanding_fees"] = round(float(outstanding), 2)
            cards["unread_reminders"] = await PaymentReminderService(self.db).unread_count(student_ids)

        if user.role not in ADMIN_ROLES:
            cards["announcements"] = await AnnouncementService(self.db).count_visible(user)

        return {"role": user.role, "cards": cards, "generated_at": utcnow().isoformat()}
