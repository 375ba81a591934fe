# sms_api/routers/audit.py
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional
from uuid import UUID

from ..core.auth import get_current_user, restrict_to, ADMINS, FINANCE_ROLES
from ..core.database import get_db
from ..core.exceptions import PermissionDeniedError
from ..models.audit_log import AuditAction, AuditLog, FINANCIAL_ACTIONS
from ..models.user import Department, User
from ..schemas.audit_schemas import CustomAuditEvent, AuditLogResponse
from ..schemas.base import to_naive_utc
from ..services.audit_service import AuditService
from ..utils.pagination import Paginator
from ..utils.responses import serialize, success_response

router = APIRouter(prefix="/api/v1/audit", tags=["Audit"])

AUDIT_VIEWERS = ADMINS + ("it_admin",)


class AuditLogFilters:
    """Query parameters shared by the audit log listings"""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=1000),
        action: Optional[str] = Query(None),
        success: Optional[bool] = Query(None),
        start_date: Optional[datetime] = Query(None),
        end_date: Optional[datetime] = Query(None),
        search: Optional[str] = Query(None, description="Matches resource, action or error message"),
        sort_by: str = Query("timestamp"),
        sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    ):
        self.page = page
        self.limit = limit
        self.sort_by = sort_by
        self.sort_order = sort_order
        self.filters: Dict[str, Any] = {
            "action": action,
            "success": success,
            "start_date": to_naive_utc(start_date) if start_date else None,
            "end_date": to_naive_utc(end_date) if end_date else None,
            "search": search,
        }


def _format_logs(logs: List[AuditLog]) -> List[Dict[str, Any]]:
    return [serialize(AuditLogResponse, log) for log in logs]


async def _paginated_logs(service: AuditService, query: AuditLogFilters, **filters) -> Dict[str, Any]:
    logs, total = await service.get_logs(
        page=query.page, limit=query.limit, sort_by=query.sort_by, sort_order=query.sort_order,
        **{**query.filters, **filters},
    )
    return Paginator.create_response(_format_logs(logs), query.page, query.limit, total)


@router.get("/system")
async def system_logs(
    user_id: Optional[UUID] = Query(None),
    department: Optional[Department] = Query(None),
    query: AuditLogFilters = Depends(),
    current_user: User = Depends(restrict_to(*AUDIT_VIEWERS)),
    db: AsyncSession = Depends(get_db),
):
    return await _paginated_logs(
        AuditService(db), query, user_id=user_id, department=department.value if department else None
    )


@router.get("/filter-options")
async def filter_options(
    current_user: User = Depends(restrict_to(*AUDIT_VIEWERS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await AuditService(db).get_filter_options())


@router.get("/my-logs")
async def my_logs(
    query: AuditLogFilters = Depends(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await _paginated_logs(AuditService(db), query, user_id=current_user.id)


@router.get("/user/{user_id}")
async def user_logs(
    user_id: UUID,
    query: AuditLogFilters = Depends(),
    current_user: User = Depends(restrict_to(*AUDIT_VIEWERS)),
    db: AsyncSession = Depends(get_db),
):
    return await _paginated_logs(AuditService(db), query, user_id=user_id)


@router.get("/department/{department}")
async def department_logs(
    department: Department,
    query: AuditLogFilters = Depends(),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not current_user.can_access_department(department.value):
        raise PermissionDeniedError(f"You do not have access to {department.value} department logs")
    return await _paginated_logs(AuditService(db), query, department=department.value)


@router.get("/stats")
async def audit_stats(
    days: int = Query(7, ge=1, le=365),
    current_user: User = Depends(restrict_to(*AUDIT_VIEWERS)),
    db: AsyncSession = Depends(get_db),
):
    stats = await AuditService(db).get_stats(days)
    stats["recent_logs"] = _format_logs(stats["recent_logs"])
    return success_response(stats)


@router.post("/custom", status_code=201)
async def custom_event(
    event: CustomAuditEvent,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record a client side event against the current user"""
    log = await AuditService(db).log_event(
        AuditAction.CUSTOM_EVENT, event.resource.upper(), user=current_user, request=request,
        details=event.details, success=event.success, error_message=event.error_message,
    )
    return success_response(serialize(AuditLogResponse, log) if log else None, message="Event logged")


@router.get("/financial")
async def financial_logs(
    user_id: Optional[UUID] = Query(None),
    query: AuditLogFilters = Depends(),
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Fee and payment activity only"""
    return await _paginated_logs(AuditService(db), query, user_id=user_id, actions=FINANCIAL_ACTIONS)


@router.get("/financial/stats")
async def financial_stats(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    stats = await AuditService(db).get_stats(days, actions=FINANCIAL_ACTIONS)
    stats["recent_logs"] = _format_logs(stats["recent_logs"])
    return success_response(stats)
