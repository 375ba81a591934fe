# sms_api/routers/dashboard.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_current_user, restrict_to, ADMINS
from ..core.database import get_db
from ..models.user import User, ADMIN_ROLES
from ..schemas.audit_schemas import AuditLogResponse
from ..services.dashboard_service import DashboardService
from ..utils.responses import serialize, success_response

router = APIRouter(prefix="/api/v1/dashboard", tags=["Dashboard"])


@router.get("/activities")
async def recent_activities(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(restrict_to(*ADMIN_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    logs = await DashboardService(db).get_recent_activities(limit)
    return success_response([serialize(AuditLogResponse, log) for log in logs], results=len(logs))


@router.get("/user-stats")
async def user_stats(
    current_user: User = Depends(restrict_to(*ADMINS, "it_admin")),
    db: AsyncSession = Depends(get_db),
):
    """Active users per role, shaped for a chart"""
    return success_response(await DashboardService(db).get_user_stats())


@router.get("/class-distribution")
async def class_distribution(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await DashboardService(db).get_class_distribution())


@router.get("/summary")
async def dashboard_summary(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await DashboardService(db).get_summary(current_user))
