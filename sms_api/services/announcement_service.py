# sms_api/services/announcement_service.py
from typing import Any, Dict, List, Optional

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, PermissionDeniedError
from ..models.announcement import Announcement, AnnouncementAudience as Audience, AnnouncementStatus
from ..models.user import User, ADMIN_ROLES
from ..utils.pagination import ListParams
from .base_service import BaseService

ROLE_AUDIENCES = {
    "teacher": [Audience.TEACHERS, Audience.ALL_TEACHERS, Audience.SCHOOL_STAFF, Audience.ALL_USERS],
    "student": [Audience.STUDENTS, Audience.ALL_STUDENTS, Audience.ALL_USERS],
    "parent": [Audience.PARENTS, Audience.ALL_PARENTS, Audience.ALL_USERS],
}

TEACHER_TARGETS = [Audience.TEACHERS, Audience.SCHOOL_STAFF, Audience.ALL_USERS]


def audience_options_for(user: User) -> List[str]:
    if user.role in ADMIN_ROLES:
        return [audience.value for audience in Audience]
    if user.role == "teacher":
        return [audience.value for audience in TEACHER_TARGETS]
    return []


class AnnouncementService(BaseService[Announcement]):
    resource_name = "Announcement"
    allowed_filters = ("audience", "priority", "status", "is_pinned", "class_id", "created_by", "created_at")

    def __init__(self, db: AsyncSession):
        super().__init__(Announcement, db)

    def _visibility_clause(self, user: User):
        if user.role in ADMIN_ROLES:
            return None
        audiences = [audience.value for audience in ROLE_AUDIENCES.get(user.role, [])]
        clause = Announcement.audience.in_(audiences)
        if user.role == "teacher":
            clause = or_(clause, Announcement.created_by == user.id)
        return clause

    def _can_manage(self, user: User, announcement: Announcement) -> bool:
        return user.role in ADMIN_ROLES or announcement.created_by == user.id

    async def list_visible(self, user: User, params: ListParams, query_params: Optional[Dict[str, str]] = None):
        """Announcements the user may see; archived ones are hidden, pinned first then newest"""
        stmt = select(Announcement).where(Announcement.status != AnnouncementStatus.ARCHIVED.value)
        clause = self._visibility_clause(user)
        if clause is not None:
            stmt = stmt.where(clause)
        return await self.get_paginated(params, query_params, stmt=stmt, default_sort="-is_pinned,-created_at")

    async def get_visible(self, id: Any, user: User) -> Announcement:
        stmt = select(Announcement).where(Announcement.id == id)
        clause = self._visibility_clause(user)
        if clause is not None:
            stmt = stmt.where(clause)
        announcement = (await self.db.execute(stmt)).scalar_one_or_none()
        if not announcement:
            raise NotFoundError(self.resource_name, id)
        return announcement

    async def create_announcement(self, data: Dict[str, Any], user: User) -> Announcement:
        allowed = audience_options_for(user)
        if not allowed:
            raise PermissionDeniedError("You do not have permission to create announcements")
        if data["audience"] not in allowed:
            raise PermissionDeniedError(
                f"Teachers can only create announcements for: {', '.join(allowed)}"
            )
        data = dict(data, created_by=user.id)
        return await self.create(data)

    async def update_announcement(self, id: Any, data: Dict[str, Any], user: User) -> Announcement:
        announcement = await self.get_or_404(id)
        if not self._can_manage(user, announcement):
            raise PermissionDeniedError("You can only update your own announcements")
        if "audience" in data and data["audience"] not in audience_options_for(user):
            raise PermissionDeniedError("You cannot target this audience")
        return await self.update(id, data)

    async def delete_announcement(self, id: Any, user: User):
        announcement = await self.get_or_404(id)
        if not self._can_manage(user, announcement):
            raise PermissionDeniedError("You can only delete your own announcements")
        await self.delete(id)

    async def toggle_pin(self, id: Any, user: User) -> Announcement:
        announcement = await self.get_or_404(id)
        if not self._can_manage(user, announcement):
            raise PermissionDeniedError("You can only pin your own announcements")
        return await self.update(id, {"is_pinned": not announcement.is_pinned})

    async def count_visible(self, user: User) -> int:
        stmt = select(func.count(Announcement.id)).where(
            Announcement.status == AnnouncementStatus.PUBLISHED.value
        )
        clause = self._visibility_clause(user)
        if clause is not None:
            stmt = stmt.where(clause)
        return (await self.db.execute(stmt)).scalar() or 0
