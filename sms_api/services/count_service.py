# sms_api/services/count_service.py
"""Cached record counts behind the /count endpoints."""
from typing import Dict, Optional, Tuple
import logging

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.cache import CacheManager, cache_manager
from ..core.config import settings
from ..models import (
    User, Student, Teacher, ClassModel, Fee, FeeAssignment, Payment, Announcement, Event
)
from ..utils.pagination import ListParams, QueryFeatures

logger = logging.getLogger(__name__)

COUNTABLE = {
    "users": (User, ("role", "department", "is_active")),
    "students": (Student, ("grade_level", "class_id", "status", "sex")),
    "teachers": (Teacher, ("status", "sex")),
    "classes": (ClassModel, ("grade_level", "academic_year", "semester")),
    "fees": (Fee, ("category", "is_active", "academic_year", "semester")),
    "fee-assignments": (FeeAssignment, ("status", "student_id", "fee_id")),
    "payments": (Payment, ("status", "payment_method", "student_id")),
    "announcements": (Announcement, ("audience", "status", "priority")),
    "events": (Event, ("status", "category", "audience")),
}

RANGE_KEYS = ("created_at[gte]", "created_at[lte]")


class CountService:
    def __init__(self, db: AsyncSession, cache: Optional[CacheManager] = None):
        self.db = db
        self.cache = cache or cache_manager

    @staticmethod
    def select_filters(resource: str, query_params: Dict[str, str]) -> Dict[str, str]:
        _, allowed = COUNTABLE[resource]
        return {
            key: value for key, value in query_params.items()
            if (key in allowed or key in RANGE_KEYS) and value != ""
        }

    @staticmethod
    def cache_key(resource: str, filters: Dict[str, str]) -> str:
        model, _ = COUNTABLE[resource]
        parts = "|".join(f"{key}={filters[key]}" for key in sorted(filters))
        return f"{model.__name__}:{parts}"

    async def count(self, resource: str, query_params: Dict[str, str]) -> Tuple[int, bool]:
        """Return (total, served_from_cache)"""
        model, allowed = COUNTABLE[resource]
        filters = self.select_filters(resource, query_params)
        key = self.cache_key(resource, filters)

        cached = await self.cache.get(key)
        if cached is not None:
            return int(cached), True

        features = QueryFeatures(
            model, ListParams(), filters, allowed_filters=allowed + ("created_at",)
        )
        stmt = features.filter(select(func.count()).select_from(model))
        total = (await self.db.execute(stmt)).scalar() or 0

        await self.cache.set(key, total, expire=settings.count_cache_ttl_seconds)
        logger.debug(f"Count cache miss for {key}: {total}")
        return total, False

    async def invalidate(self, resource: str) -> int:
        model, _ = COUNTABLE[resource]
        return await self.cache.delete_pattern(f"{model.__name__}:*")
