# sms_api/routers/counts.py
"""GET/HEAD /count routes shared by the resource routers."""
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import get_current_user
from ..core.cache import cache_manager
from ..core.database import get_db
from ..services.count_service import CountService

router = APIRouter(prefix="/api/v1/cache", tags=["Cache"])


@router.get("/health")
async def cache_health():
    return {"status": "success", "data": await cache_manager.health()}


def add_count_route(resource_router: APIRouter, resource: str):
    """Register GET and HEAD /count on a resource router; call before any /{id} route"""

    @resource_router.api_route("/count", methods=["GET", "HEAD"], dependencies=[Depends(get_current_user)])
    async def count_records(request: Request, db: AsyncSession = Depends(get_db)):
        total, cached = await CountService(db).count(resource, dict(request.query_params))
        headers = {"X-Cache": "HIT" if cached else "MISS", "X-Total-Count": str(total)}
        if request.method == "HEAD":
            return Response(status_code=204, headers=headers)
        return JSONResponse(
            content={"status": "success", "total": total, "cached": cached},
            headers=headers,
        )
    return count_records


async def invalidate_counts(db: AsyncSession, resource: str):
    await CountService(db).invalidate(resource)
