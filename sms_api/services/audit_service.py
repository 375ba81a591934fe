# sms_api/services/audit_service.py
"""Audit trail: safe event logging and log queries."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy import select, func, or_, desc, asc
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError
from ..models.audit_log import AuditLog, AuditAction
from ..models.base import utcnow
from ..models.user import User, UserRole

logger = logging.getLogger(__name__)

_VALID_ROLES = {role.value for role in UserRole}
_SORTABLE = {"timestamp", "action", "resource", "department", "success"}


def client_info(request: Optional[Request]) -> Tuple[Optional[str], Optional[str]]:
    """Client IP (honouring X-Forwarded-For) and User-Agent of a request"""
    if request is None:
        return None, None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


class AuditService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_event(
        self,
        action: str,
        resource: str,
        user: Optional[User] = None,
        request: Optional[Request] = None,
        resource_id: Any = None,
        resource_model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True,
        error_message: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Record an audit event. Never raises; failures are logged and return None."""
        try:
            ip_address, user_agent = client_info(request)
            role = user.role if user is not None and user.role in _VALID_ROLES else None
            entry = AuditLog(
                user_id=user.id if user is not None else None,
                action=action.value if isinstance(action, AuditAction) else action,
                resource=resource,
                resource_id=str(resource_id) if resource_id is not None else None,
                resource_model=resource_model,
                details=jsonable_encoder(details or {}),
                ip_address=ip_address,
                user_agent=user_agent,
                success=success,
                error_message=error_message,
                timestamp=utcnow(),
                department=user.department if user is not None else None,
                role=role,
            )
            self.db.add(entry)
            await self.db.commit()
            return entry
        except Exception as e:
            logger.error(f"Audit logging failed for {action}: {e}")
            await self.db.rollback()
            return None

    def _apply_filters(
        self,
        stmt,
        action: Optional[str] = None,
        user_id: Any = None,
        department: Optional[str] = None,
        success: Optional[bool] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        search: Optional[str] = None,
        actions: Optional[List[str]] = None,
    ):
        if action:
            stmt = stmt.where(AuditLog.action == action)
        if actions:
            stmt = stmt.where(AuditLog.action.in_(actions))
        if user_id:
            stmt = stmt.where(AuditLog.user_id == user_id)
        if department:
            stmt = stmt.where(AuditLog.department == department)
        if success is not None:
            stmt = stmt.where(AuditLog.success == success)
        if start_date:
            stmt = stmt.where(AuditLog.timestamp >= start_date)
        if end_date:
            stmt = stmt.where(AuditLog.timestamp <= end_date)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(
                AuditLog.resource.ilike(pattern),
                AuditLog.action.ilike(pattern),
                AuditLog.error_message.ilike(pattern),
            ))
        return stmt

    async def get_logs(
        self,
        page: int = 1,
        limit: int = 50,
        sort_by: str = "timestamp",
        sort_order: str = "desc",
        **filters,
    ) -> Tuple[List[AuditLog], int]:
        if sort_by not in _SORTABLE:
            raise BadRequestError(f"Cannot sort by {sort_by}")
        stmt = self._apply_filters(select(AuditLog), **filters)

        count_stmt = select(func.count()).select_from(stmt.subquery())
        total = (await self.db.execute(count_stmt)).scalar() or 0

        order = desc if sort_order.lower() == "desc" else asc
        stmt = stmt.order_by(order(getattr(AuditLog, sort_by))).offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all()), total

    async def get_recent(self, limit: int = 10) -> List[AuditLog]:
        stmt = select(AuditLog).order_by(AuditLog.timestamp.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_filter_options(self) -> Dict[str, List[str]]:
        async def distinct(column):
            result = await self.db.execute(select(column).where(column.is_not(None)).distinct().order_by(column))
            return [row[0] for row in result.all()]

        return {
            "actions": [action.value for action in AuditAction],
            "used_actions": await distinct(AuditLog.action),
            "departments": await distinct(AuditLog.department),
            "resources": await distinct(AuditLog.resource),
        }

    async def _grouped_counts(self, column, since: datetime, actions: Optional[List[str]] = None) -> List[Dict]:
        stmt = (
            select(column, func.count(AuditLog.id))
            .where(AuditLog.timestamp >= since)
            .group_by(column)
            .order_by(func.count(AuditLog.id).desc())
        )
        if actions:
            stmt = stmt.where(AuditLog.action.in_(actions))
        result = await self.db.execute(stmt)
        return [{"_id": key, "count": count} for key, count in result.all()]

    async def get_stats(self, days: int = 7, actions: Optional[List[str]] = None) -> Dict[str, Any]:
        since = utcnow() - timedelta(days=days)

        total_stmt = select(func.count(AuditLog.id)).where(AuditLog.timestamp >= since)
        failed_stmt = total_stmt.where(AuditLog.success.is_(False))
        if actions:
            total_stmt = total_stmt.where(AuditLog.action.in_(actions))
            failed_stmt = failed_stmt.where(AuditLog.action.in_(actions))

        recent_stmt = select(AuditLog).where(AuditLog.timestamp >= since)
        if actions:
            recent_stmt = recent_stmt.where(AuditLog.action.in_(actions))
        recent_stmt = recent_stmt.order_by(AuditLog.timestamp.desc()).limit(10)

        return {
            "period_days": days,
            "total_logs": (await self.db.execute(total_stmt)).scalar() or 0,
            "failed_actions": (await self.db.execute(failed_stmt)).scalar() or 0,
            "action_stats": await self._grouped_counts(AuditLog.action, since, actions),
            "department_stats": await self._grouped_counts(AuditLog.department, since, actions),
            "recent_logs": list((await self.db.execute(recent_stmt)).scalars().all()),
        }
