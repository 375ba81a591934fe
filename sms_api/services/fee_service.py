# sms_api/services/fee_service.py
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi import Request
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.audit_log import AuditAction
from ..models.base import utcnow
from ..models.fee import Fee
from ..models.user import User
from .audit_service import AuditService
from .base_service import BaseService


def _stringify_classes(data: Dict[str, Any]) -> Dict[str, Any]:
    if data.get("applicable_classes") is not None:
        data["applicable_classes"] = [str(class_id) for class_id in data["applicable_classes"]]
    return data


class FeeService(BaseService[Fee]):
    resource_name = "Fee"
    allowed_filters = ("category", "academic_year", "semester", "is_active", "amount", "due_date", "created_at")

    def __init__(self, db: AsyncSession):
        super().__init__(Fee, db)
        self.audit = AuditService(db)

    async def create_fee(self, data: Dict[str, Any], user: User, request: Optional[Request] = None) -> Fee:
        data = _stringify_classes(dict(data))
        data["created_by"] = user.id
        fee = await self.create(data)
        await self.audit.log_event(
            AuditAction.FEE_CREATE, "FEE", user=user, request=request,
            resource_id=fee.id, resource_model="Fee",
            details={"name": fee.name, "category": fee.category, "amount": fee.amount},
        )
        return fee

    async def update_fee(self, id: Any, data: Dict[str, Any], user: User, request: Optional[Request] = None) -> Fee:
        fee = await self.update(id, _stringify_classes(dict(data)))
        await self.audit.log_event(
            AuditAction.FEE_UPDATE, "FEE", user=user, request=request,
            resource_id=fee.id, resource_model="Fee", details={"updated_fields": sorted(data.keys())},
        )
        return fee

    async def deactivate_fee(self, id: Any, user: User, request: Optional[Request] = None) -> Fee:
        """Fees are never removed; deleting one only deactivates it"""
        fee = await self.get_or_404(id)
        fee.is_active = False
        await self.db.commit()
        await self.audit.log_event(
            AuditAction.FEE_DELETE, "FEE", user=user, request=request,
            resource_id=fee.id, resource_model="Fee", details={"name": fee.name},
        )
        return fee

    async def get_by_category(self, category: str, active_only: bool = True) -> List[Fee]:
        stmt = select(Fee).where(Fee.category == category)
        if active_only:
            stmt = stmt.where(Fee.is_active.is_(True))
        result = await self.db.execute(stmt.order_by(Fee.due_date.asc()))
        return list(result.scalars().all())

    async def get_statistics(self) -> Dict[str, Any]:
        by_category = await self.db.execute(
            select(Fee.category, func.count(Fee.id), func.sum(Fee.amount), func.avg(Fee.amount))
            .where(Fee.is_active.is_(True))
            .group_by(Fee.category)
            .order_by(func.sum(Fee.amount).desc())
        )
        now = utcnow()
        upcoming = await self.db.execute(
            select(Fee)
            .where(Fee.is_active.is_(True), Fee.due_date >= now, Fee.due_date <= now + timedelta(days=30))
            .order_by(Fee.due_date.asc())
        )
        totals = await self.db.execute(
            select(func.count(Fee.id), func.sum(Fee.amount)).where(Fee.is_active.is_(True))
        )
        total_count, total_amount = totals.one()

        return {
            "total_active_fees": total_count or 0,
            "total_amount": round(float(total_amount or 0), 2),
            "by_category": [
                {
                    "category": category,
                    "count": count,
                    "total_amount": round(float(total or 0), 2),
                    "average_amount": round(float(average or 0), 2),
                }
                for category, count, total, average in by_category.all()
            ],
            "upcoming_due": list(upcoming.scalars().all()),
        }
