"""
Feed routes
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional

from ...config import settings
from ...domain.models import FeedCursor
from ...schemas import CurrentUser, FeedResponse
from ...application.feed_service import ActivityFeedService
from ..dependencies import get_current_user, get_current_user_optional, get_feed_service


router = APIRouter(prefix="/api/v1/social", tags=["Feed"])


def _cursor(token: Optional[str]) -> Optional[FeedCursor]:
    return FeedCursor.decode(token) if token else None


@router.get("/feed", response_model=FeedResponse)
async def get_feed(
    limit: int = Query(settings.DEFAULT_FEED_LIMIT, ge=1, le=settings.MAX_FEED_LIMIT),
    cursor: Optional[str] = Query(None, description="next_cursor of the previous page"),
    current_user: CurrentUser = Depends(get_current_user),
    feed_service: ActivityFeedService = Depends(get_feed_service),
):
    """
    Get the current user's feed

    Own activity and photo shares plus those of followed users, newest first.
    """
    page = await feed_service.get_feed(current_user.id, limit, _cursor(cursor))
    return FeedResponse.from_page(page)


@router.get("/users/{user_id}/activities", response_model=FeedResponse)
async def get_user_activities(
    user_id: int,
    limit: int = Query(settings.DEFAULT_FEED_LIMIT, ge=1, le=settings.MAX_FEED_LIMIT),
    cursor: Optional[str] = Query(None),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    feed_service: ActivityFeedService = Depends(get_feed_service),
):
    """
    Get a user's own activity timeline

    Public endpoint (authentication optional). Anonymous callers see public items only.
    """
    viewer_id = current_user.id if current_user else None
    page = await feed_service.get_user_feed(user_id, limit, viewer_id, _cursor(cursor))
    return FeedResponse.from_page(page)
