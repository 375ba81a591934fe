# sms_api/services/auth_service.py
"""User accounts, login with lockout, token issuing and password changes."""
from datetime import timedelta
from typing import Any, Dict, Optional
import logging

from fastapi import Request
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import (
    AccountLockedError, AuthenticationError, BadRequestError, PermissionDeniedError
)
from ..core.security import create_access_token, get_password_hash, verify_password
from ..models.audit_log import AuditAction
from ..models.base import utcnow
from ..models.session import UserSession
from ..models.user import User, ROLE_PERMISSIONS, department_for_role
from .audit_service import AuditService
from .base_service import BaseService
from .session_service import SessionService

logger = logging.getLogger(__name__)


def issue_access_token(user: User, session: UserSession) -> str:
    return create_access_token({"sub": str(user.id), "sid": session.session_id, "role": user.role})


class UserService(BaseService[User]):
    resource_name = "User"
    allowed_filters = ("role", "department", "is_active", "created_at")
    unique_fields = ("username", "email")

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)
        self.audit = AuditService(db)
        self.sessions = SessionService(db)

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username.lower()))
        return result.scalar_one_or_none()

    async def signup(self, data: Dict[str, Any], created_by: Optional[User] = None, request: Optional[Request] = None) -> User:
        existing = await self.db.execute(
            select(User.id).where(or_(User.username == data["username"], User.email == data["email"]))
        )
        if existing.first():
            raise BadRequestError("User with this username or email already exists")

        role = data["role"]
        user = User(
            username=data["username"],
            email=data["email"],
            password_hash=get_password_hash(data["password"]),
            role=role,
            department=department_for_role(role, data.get("department")),
            permissions=list(ROLE_PERMISSIONS.get(role, [])),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            phone=data.get("phone"),
            teacher_profile_id=data.get("teacher_profile_id"),
            is_active=True,
            login_attempts=0,
        )
        self.db.add(user)
        await self._commit()
        await self.db.refresh(user)
        logger.info(f"User {user.username} created with role {user.role}")

        await self.audit.log_event(
            AuditAction.USER_CREATE, "USER", user=created_by or user, request=request,
            resource_id=user.id, resource_model="User",
            details={"username": user.username, "email": user.email, "role": user.role,
                     "department": user.department,
                     "created_by": str(created_by.id) if created_by else None},
        )
        return user

    async def _register_failed_attempt(self, user: User):
        user.login_attempts = (user.login_attempts or 0) + 1
        if user.login_attempts >= settings.max_login_attempts:
            user.lock_until = utcnow() + timedelta(minutes=settings.lock_time_minutes)
            user.login_attempts = 0
            logger.warning(f"User {user.username} locked after repeated failed logins")
        await self.db.commit()

    async def authenticate(self, username: str, password: str, request: Optional[Request] = None) -> Dict[str, Any]:
        """Check credentials, open a session and issue tokens"""
        user = await self.get_by_username(username)

        if user and user.is_locked:
            await self.audit.log_event(
                AuditAction.FAILED_LOGIN, "USER", user=user, request=request,
                details={"reason": "account_locked", "username": username},
                success=False, error_message="Account is locked",
            )
            raise AccountLockedError()

        if not user or not verify_password(password, user.password_hash):
            if user:
                await self._register_failed_attempt(user)
                await self.audit.log_event(
                    AuditAction.FAILED_LOGIN, "USER", user=user, request=request,
                    details={"reason": "bad_password", "username": username},
                    success=False, error_message="Incorrect username or password",
                )
            raise AuthenticationError("Incorrect username or password")

        if not user.is_active:
            raise PermissionDeniedError("Your account has been deactivated. Please contact administrator.")

        user.login_attempts = 0
        user.lock_until = None
        user.last_login = utcnow()
        await self.db.commit()

        session, refresh_token = await self.sessions.create_session(user, request)
        await self.audit.log_event(
            AuditAction.LOGIN, "USER", user=user, request=request,
            details={"username": user.username, "department": user.department, "role": user.role},
        )
        return {
            "user": user,
            "session": session,
            "token": issue_access_token(user, session),
            "refresh_token": refresh_token,
        }

    async def refresh(self, session_id: str, refresh_token: str) -> Dict[str, Any]:
        session = await self.sessions.verify_refresh_token(session_id, refresh_token)
        if not session:
            raise AuthenticationError("Invalid or expired session")
        user = await self.get(session.user_id)
        if not user or not user.is_active:
            raise AuthenticationError("User no longer exists")
        new_refresh_token = await self.sessions.rotate_refresh_token(session)
        return {
            "user": user,
            "session": session,
            "token": issue_access_token(user, session),
            "refresh_token": new_refresh_token,
        }

    async def logout(self, user: User, session: UserSession, request: Optional[Request] = None):
        await self.sessions.end_session(session)
        await self.audit.log_event(
            AuditAction.LOGOUT, "SESSION", user=user, request=request,
            resource_id=session.id, resource_model="Session",
            details={"session_id": session.session_id},
        )

    async def logout_all(self, user: User, request: Optional[Request] = None) -> int:
        count = await self.sessions.invalidate_user_sessions(user.id)
        await self.audit.log_event(
            AuditAction.LOGOUT_ALL, "SESSION", user=user, request=request,
            details={"sessions_invalidated": count},
        )
        return count

    async def change_password(
        self,
        user: User,
        session: UserSession,
        current_password: str,
        new_password: str,
        request: Optional[Request] = None,
    ) -> Dict[str, Any]:
        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Your current password is wrong")
        if current_password == new_password:
            raise BadRequestError("New password must be different from the current password")

        user.password_hash = get_password_hash(new_password)
        # One second back so the token issued below still validates
        user.password_changed_at = utcnow() - timedelta(seconds=1)
        await self.db.commit()

        await self.sessions.invalidate_user_sessions(user.id, except_session_id=session.session_id)
        refresh_token = await self.sessions.rotate_refresh_token(session)
        await self.audit.log_event(
            AuditAction.PASSWORD_CHANGE, "USER", user=user, request=request,
            resource_id=user.id, resource_model="User",
        )
        return {
            "user": user,
            "session": session,
            "token": issue_access_token(user, session),
            "refresh_token": refresh_token,
        }

    async def update_user(self, id: Any, data: Dict[str, Any], actor: User, request: Optional[Request] = None) -> User:
        if "role" in data and data["role"]:
            data.setdefault("permissions", list(ROLE_PERMISSIONS.get(data["role"], [])))
            data["department"] = department_for_role(data["role"], data.get("department"))
        user = await self.update(id, data)
        await self.audit.log_event(
            AuditAction.USER_UPDATE, "USER", user=actor, request=request,
            resource_id=user.id, resource_model="User", details={"fields": sorted(data.keys())},
        )
        return user

    async def deactivate(self, id: Any, actor: User, request: Optional[Request] = None) -> User:
        if str(id) == str(actor.id):
            raise BadRequestError("You cannot deactivate your own account")
        user = await self.get_or_404(id)
        user.is_active = False
        await self.db.commit()
        await self.sessions.invalidate_user_sessions(user.id)
        await self.audit.log_event(
            AuditAction.USER_DELETE, "USER", user=actor, request=request,
            resource_id=user.id, resource_model="User", details={"username": user.username},
        )
        return user
