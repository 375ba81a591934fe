# sms_api/routers/users.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, Optional
from uuid import UUID
import logging

from ..core.auth import AuthContext, get_auth_context, get_current_user, restrict_to, ADMINS
from ..core.database import get_db
from ..core.rate_limiter import auth_rate_limit
from ..models.user import User
from ..schemas.user_schemas import (
    UserCreate, UserUpdate, LoginRequest, RefreshRequest, PasswordUpdate, UserResponse
)
from ..services.auth_service import UserService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["Users"])

USER_MANAGERS = ADMINS + ("it_admin",)


def _token_response(result: Dict[str, Any], message: Optional[str] = None) -> Dict[str, Any]:
    response = {
        "status": "success",
        "token": result["token"],
        "refresh_token": result["refresh_token"],
        "session_id": result["session"].session_id,
        "data": {"user": serialize(UserResponse, result["user"])},
    }
    if message:
        response["message"] = message
    return response


@router.post("/signup", status_code=201)
async def signup(
    user_data: UserCreate,
    request: Request,
    current_user: User = Depends(restrict_to(*USER_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    """Create a user account (administrators only)"""
    user = await UserService(db).signup(user_data.model_dump(), created_by=current_user, request=request)
    await invalidate_counts(db, "users")
    return success_response(serialize(UserResponse, user), message="User created successfully")


@router.post("/login", dependencies=[Depends(auth_rate_limit)])
async def login(credentials: LoginRequest, request: Request, db: AsyncSession = Depends(get_db)):
    result = await UserService(db).authenticate(credentials.username, credentials.password, request)
    logger.info(f"User {result['user'].username} logged in")
    return _token_response(result)


@router.post("/refresh", dependencies=[Depends(auth_rate_limit)])
async def refresh_token(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new access token; the refresh token is rotated"""
    result = await UserService(db).refresh(body.session_id, body.refresh_token)
    return _token_response(result)


@router.post("/logout")
async def logout(
    request: Request,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    await UserService(db).logout(context.user, context.session, request)
    return {"status": "success", "message": "Logged out successfully"}


@router.post("/logout-all")
async def logout_all(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    count = await UserService(db).logout_all(current_user, request)
    return {"status": "success", "message": f"Logged out from {count} session(s)", "sessions_ended": count}


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return success_response(serialize(UserResponse, current_user))


@router.patch("/update-password")
async def update_password(
    body: PasswordUpdate,
    request: Request,
    context: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
):
    result = await UserService(db).change_password(
        context.user, context.session, body.current_password, body.new_password, request
    )
    return _token_response(result, message="Password updated successfully")


@router.get("")
async def list_users(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(restrict_to(*USER_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    service = UserService(db)
    features = service.features(params, dict(request.query_params))
    items, total = await features.execute(db)
    data = [features.project(serialize(UserResponse, user)) for user in items]
    return Paginator.create_response(data, params.page, params.limit, total)


add_count_route(router, "users")


@router.get("/{user_id}")
async def get_user(
    user_id: UUID,
    current_user: User = Depends(restrict_to(*USER_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).get_or_404(user_id)
    return success_response(serialize(UserResponse, user))


@router.patch("/{user_id}")
async def update_user(
    user_id: UUID,
    user_data: UserUpdate,
    request: Request,
    current_user: User = Depends(restrict_to(*USER_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    user = await UserService(db).update_user(
        user_id, user_data.model_dump(exclude_unset=True), current_user, request
    )
    await invalidate_counts(db, "users")
    return success_response(serialize(UserResponse, user))


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: UUID,
    request: Request,
    current_user: User = Depends(restrict_to(*USER_MANAGERS)),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a user and end their sessions"""
    await UserService(db).deactivate(user_id, current_user, request)
    await invalidate_counts(db, "users")
    return Response(status_code=204)
