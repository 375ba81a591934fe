# sms_api/services/base_service.py
"""Base service with common CRUD operations."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from typing import Type, Any, Dict, Optional, List, Tuple, TypeVar, Generic
import logging

from ..core.exceptions import BadRequestError, NotFoundError, DuplicateError
from ..utils.pagination import ListParams, QueryFeatures

logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_unique_violation(error: IntegrityError) -> bool:
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if sqlstate:
        return sqlstate == "23505"
    return "unique" in str(error.orig).lower()


class BaseService(Generic[T]):
    resource_name = "Record"
    allowed_filters: Tuple[str, ...] = ()
    unique_fields: Tuple[str, ...] = ()

    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    async def get(self, id: Any) -> Optional[T]:
        stmt = select(self.model).where(self.model.id == id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_404(self, id: Any) -> T:
        obj = await self.get(id)
        if not obj:
            raise NotFoundError(self.resource_name, id)
        return obj

    def features(self, params: ListParams, query_params: Optional[Dict[str, str]] = None, **kwargs) -> QueryFeatures:
        kwargs.setdefault("allowed_filters", self.allowed_filters)
        return QueryFeatures(self.model, params, query_params, **kwargs)

    async def get_paginated(
        self,
        params: ListParams,
        query_params: Optional[Dict[str, str]] = None,
        stmt=None,
        **kwargs
    ) -> Tuple[List[T], int]:
        """Filtered, sorted and paginated records plus the total match count"""
        return await self.features(params, query_params, **kwargs).execute(self.db, stmt)

    async def _check_unique(self, data: Dict, exclude_id: Any = None):
        for field in self.unique_fields:
            value = data.get(field)
            if value is None:
                continue
            stmt = select(self.model.id).where(getattr(self.model, field) == value)
            if exclude_id is not None:
                stmt = stmt.where(self.model.id != exclude_id)
            if (await self.db.execute(stmt)).first():
                raise DuplicateError(self.resource_name.lower(), field)

    async def _commit(self):
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Integrity error on {self.resource_name}: {e.orig}")
            if is_unique_violation(e):
                raise DuplicateError(self.resource_name.lower(), "value")
            raise BadRequestError(
                f"Invalid {self.resource_name.lower()} data: a referenced record is missing or a required value is empty"
            )

    async def create(self, obj_in: Dict) -> T:
        await self._check_unique(obj_in)
        obj = self.model(**obj_in)
        self.db.add(obj)
        await self._commit()
        await self.db.refresh(obj)
        return obj

    async def update(self, id: Any, obj_in: Dict) -> T:
        obj = await self.get_or_404(id)
        await self._check_unique(obj_in, exclude_id=obj.id)
        for key, value in obj_in.items():
            setattr(obj, key, value)
        await self._commit()
        await self.db.refresh(obj)
        return obj

    async def delete(self, id: Any) -> T:
        """Permanently delete record from database"""
        obj = await self.get_or_404(id)
        await self.db.delete(obj)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Delete of {self.resource_name} {id} blocked: {e.orig}")
            raise BadRequestError(f"{self.resource_name} is still referenced by other records")
        return obj

    async def count(self, **filters) -> int:
        stmt = select(func.count()).select_from(self.model)
        for key, value in filters.items():
            if hasattr(self.model, key) and value is not None:
                stmt = stmt.where(getattr(self.model, key) == value)
        result = await self.db.execute(stmt)
        return result.scalar() or 0
