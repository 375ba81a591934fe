# sms_api/routers/announcements.py
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from ..core.auth import get_current_user
from ..core.database import get_db
from ..models.user import User
from ..schemas.announcement_schemas import AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse
from ..services.announcement_service import AnnouncementService, audience_options_for
from ..utils.pagination import ListParams, Paginator, get_list_params
from ..utils.responses import serialize, success_response
from .counts import add_count_route, invalidate_counts

router = APIRouter(prefix="/api/v1/announcements", tags=["Announcements"])


@router.get("")
async def list_announcements(
    request: Request,
    params: ListParams = Depends(get_list_params),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Announcements visible to the current user, pinned first"""
    service = AnnouncementService(db)
    items, total = await service.list_visible(current_user, params, dict(request.query_params))
    features = service.features(params)
    data = [features.project(serialize(AnnouncementResponse, a)) for a in items]
    return Paginator.create_response(data, params.page, params.limit, total)


@router.post("", status_code=201)
async def create_announcement(
    announcement_data: AnnouncementCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService(db).create_announcement(
        announcement_data.model_dump(mode="python"), current_user
    )
    await invalidate_counts(db, "announcements")
    return success_response(serialize(AnnouncementResponse, announcement))


add_count_route(router, "announcements")


@router.get("/audience-options")
async def audience_options(current_user: User = Depends(get_current_user)):
    return success_response(audience_options_for(current_user))


@router.get("/{announcement_id}")
async def get_announcement(
    announcement_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService(db).get_visible(announcement_id, current_user)
    return success_response(serialize(AnnouncementResponse, announcement))


@router.patch("/{announcement_id}/toggle-pin")
async def toggle_pin(
    announcement_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService(db).toggle_pin(announcement_id, current_user)
    state = "pinned" if announcement.is_pinned else "unpinned"
    return success_response(serialize(AnnouncementResponse, announcement), message=f"Announcement {state}")


@router.patch("/{announcement_id}")
async def update_announcement(
    announcement_id: UUID,
    announcement_data: AnnouncementUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    announcement = await AnnouncementService(db).update_announcement(
        announcement_id, announcement_data.model_dump(mode="python", exclude_unset=True), current_user
    )
    return success_response(serialize(AnnouncementResponse, announcement))


@router.delete("/{announcement_id}", status_code=204)
async def delete_announcement(
    announcement_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await AnnouncementService(db).delete_announcement(announcement_id, current_user)
    await invalidate_counts(db, "announcements")
    return Response(status_code=204)
