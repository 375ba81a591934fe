# sms_api/routers/sessions.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID
import logging

from ..core.auth import AuthContext, get_auth_context, restrict_to, ADMINS, SYSTEM_ADMINS
from ..core.database import get_db
from ..core.exceptions import NotFoundError, PermissionDeniedError
from ..models.audit_log import AuditAction
from ..models.user import User
from ..schemas.user_schemas import SessionResponse
from ..services.audit_service import AuditService
from ..services.session_service import SessionService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])


def _format(session, current_session_id=None):
    data = serialize(SessionResponse, session)
    data["is_current"] = session.session_id == current_session_id
    return data


@router.get("/my-sessions")
async def my_sessions(context: AuthContext = Depends(get_auth_context), db: AsyncSession = Depends(get_db)):
    sessions = await SessionService(db).get_user_sessions(context.user.id)
    return success_response(
        [_format(s, context.session.session_id) for s in sessions], results=len(sessions)
    )


@router.delete("/my-sessions")
async def end_my_other_sessions(
    request: Request,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    """End every session of the current user except this one"""
    count = await SessionService(db).invalidate_user_sessions(
        context.user.id, except_session_id=context.session.session_id
    )
    await AuditService(db).log_event(
        AuditAction.LOGOUT_ALL, "SESSION", user=context.user, request=request,
        details={"sessions_invalidated": count, "kept_current": True},
    )
    return {"status": "success", "message": f"Ended {count} other session(s)", "sessions_ended": count}


@router.get("/all")
async def all_sessions(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(restrict_to(*SYSTEM_ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    service = SessionService(db)
    features = service.features(params, dict(request.query_params), default_sort="-last_activity")
    items, total = await features.execute(db)
    data = [features.project(_format(s)) for s in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.get("/stats")
async def session_stats(
    current_user: User = Depends(restrict_to(*SYSTEM_ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await SessionService(db).get_stats())


@router.post("/clean-expired")
async def clean_expired(
    current_user: User = Depends(restrict_to(*SYSTEM_ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    count = await SessionService(db).clean_expired_sessions()
    return {"status": "success", "message": f"Cleaned {count} expired session(s)", "cleaned": count}


@router.get("/user/{user_id}")
async def user_sessions(
    user_id: UUID,
    current_user: User = Depends(restrict_to(*ADMINS, *SYSTEM_ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    sessions = await SessionService(db).get_user_sessions(user_id, active_only=False)
    return success_response([_format(s) for s in sessions], results=len(sessions))


@router.delete("/user/{user_id}")
async def end_user_sessions(
    user_id: UUID,
    request: Request,
    current_user: User = Depends(restrict_to(*SYSTEM_ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    count = await SessionService(db).invalidate_user_sessions(user_id)
    await AuditService(db).log_event(
        AuditAction.SESSION_END, "SESSION", user=current_user, request=request,
        resource_id=user_id, resource_model="User", details={"sessions_invalidated": count},
    )
    return {"status": "success", "message": f"Ended {count} session(s)", "sessions_ended": count}


@router.delete("/{session_id}", status_code=204)
async def end_session(
    session_id: str,
    request: Request,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    service = SessionService(db)
    session = await service.get_by_session_id(session_id)
    if not session:
        raise NotFoundError("Session", session_id)
    user = context.user
    if session.user_id != user.id and user.role not in SYSTEM_ADMINS:
        raise PermissionDeniedError("You can only end your own sessions")

    await service.end_session(session)
    await AuditService(db).log_event(
        AuditAction.SESSION_END, "SESSION", user=user, request=request,
        resource_id=session.id, resource_model="Session", details={"session_id": session_id},
    )
    return Response(status_code=204)
