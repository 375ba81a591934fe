# sms_api/routers/events.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from ..core.auth import get_current_user, restrict_to, ADMINS
from ..core.database import get_db
from ..models.user import User
from ..schemas.event_schemas import EventCreate, EventUpdate, EventResponse
from ..services.event_service import EventService
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

router = APIRouter(prefix="/api/v1/events", tags=["Events"])


@router.get("")
async def list_events(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    service = EventService(db)
    items, total = await service.list_visible(current_user, params, dict(request.query_params))
    features = service.features(params)
    data = [features.project(serialize(EventResponse, e)) for e in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.post("", status_code=201)
async def create_event(
    event_data: EventCreate,
    current_user: User = Depends(restrict_to(*ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    event = await EventService(db).create_event(event_data.model_dump(mode="python"), current_user)
    await invalidate_counts(db, "events")
    return success_response(serialize(EventResponse, event))


add_count_route(router, "events")


@router.get("/audience-options")
async def audience_options(
    current_user: User = Depends(restrict_to(*ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    return success_response(await EventService(db).audience_options())


@router.get("/{event_id}")
async def get_event(
    event_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    event = await EventService(db).get_or_404(event_id)
    return success_response(serialize(EventResponse, event))


@router.patch("/{event_id}")
async def update_event(
    event_id: UUID,
    event_data: EventUpdate,
    current_user: User = Depends(restrict_to(*ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    event = await EventService(db).update_event(
        event_id, event_data.model_dump(mode="python", exclude_unset=True)
    )
    return success_response(serialize(EventResponse, event))


@router.delete("/{event_id}", status_code=204)
async def delete_event(
    event_id: UUID,
    current_user: User = Depends(restrict_to(*ADMINS)),
    db: AsyncSession = Depends(get_db),
):
    await EventService(db).delete(event_id)
    await invalidate_counts(db, "events")
    return Response(status_code=204)
