# sms_api/services/session_service.py
"""Login session lifecycle: creation, refresh, invalidation and cleanup."""
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
import logging

from fastapi import Request
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.security import (
    generate_session_id, generate_refresh_token, hash_refresh_token, refresh_token_matches
)
from ..models.base import utcnow
from ..models.session import UserSession, extract_device_info
from ..models.user import User
from .audit_service import client_info
from .base_service import BaseService

logger = logging.getLogger(__name__)


class SessionService(BaseService[UserSession]):
    resource_name = "Session"
    allowed_filters = ("user_id", "role", "department", "is_active")

    def __init__(self, db: AsyncSession):
        super().__init__(UserSession, db)

    async def create_session(self, user: User, request: Optional[Request] = None) -> Tuple[UserSession, str]:
        """Open a session for the user; returns the session and its plain refresh token"""
        await self.enforce_session_limit(user.id, settings.max_sessions_per_user)

        ip_address, user_agent = client_info(request)
        refresh_token = generate_refresh_token()
        now = utcnow()
        session = UserSession(
            user_id=user.id,
            session_id=generate_session_id(),
            refresh_token_hash=hash_refresh_token(refresh_token),
            ip_address=ip_address,
            user_agent=user_agent,
            device_info=extract_device_info(user_agent),
            is_active=True,
            expires_at=now + timedelta(days=settings.session_expire_days),
            last_activity=now,
            login_time=now,
            department=user.department,
            role=user.role,
        )
        self.db.add(session)
        await self.db.commit()
        await self.db.refresh(session)
        logger.info(f"Session opened for user {user.id}")
        return session, refresh_token

    async def find_active(self, session_id: str) -> Optional[UserSession]:
        stmt = select(UserSession).where(
            UserSession.session_id == session_id,
            UserSession.is_active.is_(True),
            UserSession.expires_at > utcnow(),
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_session_id(self, session_id: str) -> Optional[UserSession]:
        result = await self.db.execute(select(UserSession).where(UserSession.session_id == session_id))
        return result.scalar_one_or_none()

    async def verify_refresh_token(self, session_id: str, refresh_token: str) -> Optional[UserSession]:
        session = await self.find_active(session_id)
        if session and refresh_token_matches(refresh_token, session.refresh_token_hash):
            return session
        return None

    async def rotate_refresh_token(self, session: UserSession) -> str:
        refresh_token = generate_refresh_token()
        session.refresh_token_hash = hash_refresh_token(refresh_token)
        session.last_activity = utcnow()
        await self.db.commit()
        return refresh_token

    async def touch(self, session: UserSession):
        session.last_activity = utcnow()
        await self.db.commit()

    async def get_user_sessions(self, user_id: Any, active_only: bool = True) -> List[UserSession]:
        stmt = select(UserSession).where(UserSession.user_id == user_id)
        if active_only:
            stmt = stmt.where(UserSession.is_active.is_(True), UserSession.expires_at > utcnow())
        stmt = stmt.order_by(UserSession.last_activity.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def end_session(self, session: UserSession):
        session.end()
        await self.db.commit()

    async def invalidate_user_sessions(self, user_id: Any, except_session_id: Optional[str] = None) -> int:
        stmt = (
            update(UserSession)
            .where(UserSession.user_id == user_id, UserSession.is_active.is_(True))
            .values(is_active=False, logout_time=utcnow())
        )
        if except_session_id:
            stmt = stmt.where(UserSession.session_id != except_session_id)
        result = await self.db.execute(stmt.execution_options(synchronize_session="fetch"))
        await self.db.commit()
        return result.rowcount or 0

    async def enforce_session_limit(self, user_id: Any, max_sessions: int) -> int:
        """Deactivate the least recently used sessions so a new one fits under the limit"""
        active = await self.get_user_sessions(user_id)
        overflow = len(active) - max_sessions + 1
        if overflow <= 0:
            return 0
        for session in sorted(active, key=lambda s: s.last_activity or s.login_time)[:overflow]:
            session.end()
        await self.db.commit()
        logger.info(f"Session limit reached for user {user_id}; ended {overflow} session(s)")
        return overflow

    async def clean_expired_sessions(self) -> int:
        stmt = (
            update(UserSession)
            .where(UserSession.is_active.is_(True), UserSession.expires_at <= utcnow())
            .values(is_active=False, logout_time=utcnow())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        logger.info(f"Cleaned {result.rowcount or 0} expired sessions")
        return result.rowcount or 0

    async def get_stats(self) -> Dict[str, Any]:
        now = utcnow()
        active_clause = (UserSession.is_active.is_(True), UserSession.expires_at > now)

        total = (await self.db.execute(select(func.count(UserSession.id)))).scalar() or 0
        active = (await self.db.execute(select(func.count(UserSession.id)).where(*active_clause))).scalar() or 0
        expired_active = (await self.db.execute(
            select(func.count(UserSession.id)).where(UserSession.is_active.is_(True), UserSession.expires_at <= now)
        )).scalar() or 0

        by_role = await self.db.execute(
            select(UserSession.role, func.count(UserSession.id)).where(*active_clause).group_by(UserSession.role)
        )
        active_sessions = await self.db.execute(select(UserSession.device_info).where(*active_clause))
        by_device: Dict[str, int] = {}
        for (device_info,) in active_sessions.all():
            device_type = (device_info or {}).get("type", "Desktop")
            by_device[device_type] = by_device.get(device_type, 0) + 1

        return {
            "total_sessions": total,
            "active_sessions": active,
            "expired_but_active": expired_active,
            "by_role": [{"role": role, "count": count} for role, count in by_role.all()],
            "by_device": [{"device": device, "count": count} for device, count in by_device.items()],
        }
