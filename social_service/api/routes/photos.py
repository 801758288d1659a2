"""
Photo share routes
"""
from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from ...config import settings
from ...domain.models import PhotoEntry, PhotoShareDraft
from ...schemas import (
    CurrentUser,
    LikeResponse,
    MessageResponse,
    PhotoShareCreate,
    PhotoShareListResponse,
    PhotoShareResponse,
)
from ...application.photo_service import PhotoShareService
from ..dependencies import get_current_user, get_current_user_optional, get_photo_service


router = APIRouter(prefix="/api/v1/social", tags=["Photos"])


@router.post("/photos", response_model=PhotoShareResponse, status_code=status.HTTP_201_CREATED)
async def share_photo(
    body: PhotoShareCreate,
    current_user: CurrentUser = Depends(get_current_user),
    photo_service: PhotoShareService = Depends(get_photo_service),
):
    """
    Share one or more photos

    Either `photos` or the single `photo_url` shortcut must be given.
    """
    draft = PhotoShareDraft(
        privacy=body.privacy,
        caption=body.caption,
        photos=[PhotoEntry(url=p.url, order=p.order, caption=p.caption) for p in body.photos],
        photo_url=body.photo_url,
        trip_id=body.trip_id,
        destination_id=body.destination_id,
    )
    share = await photo_service.share_photo(current_user.id, draft)
    return PhotoShareResponse.from_share(share)


@router.get("/photos/{share_id}", response_model=PhotoShareResponse)
async def get_photo_share(
    share_id: int,
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    photo_service: PhotoShareService = Depends(get_photo_service),
):
    viewer_id = current_user.id if current_user else None
    share = await photo_service.get_photo_share(viewer_id, share_id)
    return PhotoShareResponse.from_share(share)


@router.get("/users/{user_id}/photos", response_model=PhotoShareListResponse)
async def get_user_photo_shares(
    user_id: int,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    photo_service: PhotoShareService = Depends(get_photo_service),
):
    """Photo shares of a user visible to the caller"""
    viewer_id = current_user.id if current_user else None
    shares = await photo_service.get_user_photo_shares(viewer_id, user_id, limit)
    items = [PhotoShareResponse.from_share(share) for share in shares]
    return PhotoShareListResponse(items=items, count=len(items))


@router.delete("/photos/{share_id}", response_model=MessageResponse)
async def delete_photo_share(
    share_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    photo_service: PhotoShareService = Depends(get_photo_service),
):
    await photo_service.delete_photo_share(current_user.id, share_id)
    return MessageResponse(message="Photo share deleted")


@router.post("/photos/{share_id}/like", response_model=LikeResponse)
async def like_photo(
    share_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    photo_service: PhotoShareService = Depends(get_photo_service),
):
    await photo_service.like_photo(current_user.id, share_id)
    return LikeResponse(
        photo_share_id=share_id,
        liked=True,
        like_count=await photo_service.get_like_count(share_id),
    )


@router.delete("/photos/{share_id}/like", response_model=LikeResponse)
async def unlike_photo(
    share_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    photo_service: PhotoShareService = Depends(get_photo_service),
):
    """Remove the current user's like; safe to repeat"""
    await photo_service.unlike_photo(current_user.id, share_id)
    return LikeResponse(
        photo_share_id=share_id,
        liked=False,
        like_count=await photo_service.get_like_count(share_id),
    )
