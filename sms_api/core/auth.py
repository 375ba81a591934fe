# sms_api/core/auth.py
"""Authentication and role-based access dependencies."""
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from .database import get_db
from .exceptions import AuthenticationError, PermissionDeniedError
from .security import decode_token
from ..models.session import UserSession
from ..models.user import User
from ..services.session_service import SessionService

# Bearer token security
bearer_scheme = HTTPBearer(auto_error=False)

ADMINS = ("super_admin", "school_admin")
FINANCE_ROLES = ("finance_admin", "school_admin", "super_admin")
FINANCE_OPERATORS = FINANCE_ROLES + ("exam_admin",)
SYSTEM_ADMINS = ("super_admin", "it_admin")


@dataclass
class AuthContext:
    user: User
    session: UserSession


async def get_auth_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Resolve the bearer token to an active user and session"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("You are not logged in! Please log in to get access")

    payload = decode_token(credentials.credentials)
    try:
        user_id = UUID(payload.get("sub", ""))
    except ValueError:
        raise AuthenticationError("Invalid token. Please log in again!")

    user = await db.get(User, user_id)
    if not user:
        raise AuthenticationError("The user belonging to this token does no longer exist")
    if not user.is_active:
        raise AuthenticationError("Your account has been deactivated")
    if user.changed_password_after(payload.get("iat")):
        raise AuthenticationError("User recently changed password! Please log in again.")

    sessions = SessionService(db)
    session = await sessions.find_active(payload.get("sid", ""))
    if not session or session.user_id != user.id:
        raise AuthenticationError("Your session has expired. Please log in again.")
    await sessions.touch(session)

    request.state.user = user
    return AuthContext(user=user, session=session)


async def get_current_user(context: AuthContext = Depends(get_auth_context)) -> User:
    return context.user


def restrict_to(*roles: str):
    """Dependency factory allowing only the given roles; super_admin always passes"""
    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role == "super_admin" or user.role in roles:
            return user
        raise PermissionDeniedError()
    return checker
