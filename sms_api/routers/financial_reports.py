# sms_api/routers/financial_reports.py
from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from ..core.auth import restrict_to, FINANCE_ROLES
from ..core.database import get_db
from ..models.audit_log import AuditAction
from ..models.base import utcnow
from ..models.user import User
from ..schemas.base import to_naive_utc
from ..services.audit_service import AuditService
from ..services.financial_report_service import FinancialReportService
from ..utils.responses import success_response

router = APIRouter(prefix="/api/v1/financial-reports", tags=["Financial Reports"])


def _naive(value: Optional[datetime]) -> Optional[datetime]:
    return to_naive_utc(value) if value else None


@router.get("/dashboard")
async def financial_dashboard(
    request: Request,
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Collections, outstanding balances and trends for a date range (default last 30 days)"""
    report = await FinancialReportService(db).get_dashboard(_naive(start_date), _naive(end_date))
    await AuditService(db).log_event(
        AuditAction.FINANCIAL_REPORT_GENERATED, "FINANCIAL_REPORT", user=current_user, request=request,
        details={"report": "dashboard", "date_range": report["date_range"]},
    )
    return success_response(report)


@router.get("/outstanding")
async def outstanding_fees(
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    rows = await FinancialReportService(db).get_outstanding_by_student()
    return success_response(rows, results=len(rows))


@router.get("/export")
async def export_report(
    request: Request,
    report: str = Query("payments", pattern="^(payments|outstanding)$"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: User = Depends(restrict_to(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    csv_content = await FinancialReportService(db).export_csv(report, _naive(start_date), _naive(end_date))
    await AuditService(db).log_event(
        AuditAction.FINANCIAL_REPORT_GENERATED, "FINANCIAL_REPORT", user=current_user, request=request,
        details={"report": report, "format": "csv"},
    )
    filename = f"{report}_report_{utcnow():%Y%m%d}.csv"
    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
