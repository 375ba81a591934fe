# sms_api/utils/pagination.py
"""Filtering, sorting, projection and pagination for list endpoints."""
from datetime import datetime
from math import ceil
from typing import Any, Dict, Iterable, List, Optional, Tuple
import re
import uuid

from fastapi import Query
from pydantic import BaseModel, Field
from sqlalchemy import Select, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BadRequestError

_RANGE_PARAM = re.compile(r"^(?P<field>\w+)\[(?P<op>gte|gt|lte|lt)\]$")


class ListParams(BaseModel):
    """Standard list parameters."""
    page: int = Field(1, ge=1, description="Page number (starts from 1)")
    limit: int = Field(100, ge=1, le=1000, description="Items per page")
    sort: Optional[str] = None
    fields: Optional[str] = None


def get_list_params(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(100, ge=1, le=1000, description="Items per page"),
    sort: Optional[str] = Query(None, description="Comma separated fields, '-' prefix for descending"),
    fields: Optional[str] = Query(None, description="Comma separated fields to return"),
) -> ListParams:
    """FastAPI dependency for list parameters."""
    return ListParams(page=page, limit=limit, sort=sort, fields=fields)


def coerce_value(column, raw: str) -> Any:
    """Convert a query-string value to the column's Python type."""
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return raw
    try:
        if python_type is bool:
            if raw.lower() in ("true", "1", "yes"):
                return True
            if raw.lower() in ("false", "0", "no"):
                return False
            raise ValueError(raw)
        if python_type is datetime:
            return datetime.fromisoformat(raw.replace("Z", "+00:00")).replace(tzinfo=None)
        if python_type is uuid.UUID:
            return uuid.UUID(raw)
        if python_type in (int, float):
            return python_type(raw)
    except ValueError:
        raise BadRequestError(f"Invalid {column.key}: {raw}")
    return raw


class QueryFeatures:
    """Applies request query parameters to a select on one model.

    Only whitelisted columns can be filtered or sorted. Range filters use the
    ``field[gte]=value`` form.
    """

    def __init__(
        self,
        model,
        params: ListParams,
        query_params: Optional[Dict[str, str]] = None,
        allowed_filters: Iterable[str] = (),
        allowed_sorts: Optional[Iterable[str]] = None,
        default_sort: str = "-created_at",
    ):
        self.model = model
        self.params = params
        self.query_params = dict(query_params or {})
        self.allowed_filters = set(allowed_filters)
        self.allowed_sorts = set(allowed_sorts) if allowed_sorts is not None else None
        self.default_sort = default_sort

    def _column(self, name: str):
        if name not in inspect(self.model).column_attrs.keys():
            return None
        return getattr(self.model, name)

    def filter(self, stmt: Select) -> Select:
        for key, raw in self.query_params.items():
            match = _RANGE_PARAM.match(key)
            field, op = (match.group("field"), match.group("op")) if match else (key, "eq")
            if field not in self.allowed_filters:
                continue
            column = self._column(field)
            if column is None:
                continue
            value = coerce_value(column, raw)
            if op == "eq":
                stmt = stmt.where(column == value)
            elif op == "gte":
                stmt = stmt.where(column >= value)
            elif op == "gt":
                stmt = stmt.where(column > value)
            elif op == "lte":
                stmt = stmt.where(column <= value)
            elif op == "lt":
                stmt = stmt.where(column < value)
        return stmt

    def sort(self, stmt: Select) -> Select:
        sort = self.params.sort or self.default_sort
        for part in sort.split(","):
            part = part.strip()
            if not part:
                continue
            descending = part.startswith("-")
            name = part.lstrip("-")
            if self.allowed_sorts is not None and name not in self.allowed_sorts:
                raise BadRequestError(f"Cannot sort by {name}")
            column = self._column(name)
            if column is None:
                raise BadRequestError(f"Cannot sort by {name}")
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        return stmt

    def paginate(self, stmt: Select) -> Select:
        offset = (self.params.page - 1) * self.params.limit
        return stmt.offset(offset).limit(self.params.limit)

    def project(self, item: Dict[str, Any]) -> Dict[str, Any]:
        if not self.params.fields:
            return item
        wanted = {name.strip() for name in self.params.fields.split(",") if name.strip()}
        wanted.add("id")
        return {key: value for key, value in item.items() if key in wanted}

    async def execute(self, db: AsyncSession, stmt: Optional[Select] = None) -> Tuple[List[Any], int]:
        """Run the filtered count and the sorted, paginated page query."""
        if stmt is None:
            stmt = select(self.model)
        stmt = self.filter(stmt)

        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        total = (await db.execute(count_stmt)).scalar() or 0

        result = await db.execute(self.paginate(self.sort(stmt)))
        return list(result.scalars().all()), total


class Paginator:
    """Pagination utility class."""

    @staticmethod
    def total_pages(total: int, limit: int) -> int:
        return ceil(total / limit) if limit > 0 else 0

    @staticmethod
    def create_response(
        items: List[Any],
        page: int,
        limit: int,
        total: int,
        additional_info: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Create the standard list envelope."""
        response = {
            "status": "success",
            "results": len(items),
            "total": total,
            "page": page,
            "pages": Paginator.total_pages(total, limit),
            "data": {"data": items},
        }
        if additional_info:
            response.update(additional_info)
        return response
