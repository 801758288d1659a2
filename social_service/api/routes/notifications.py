"""
Notification routes
"""
from fastapi import APIRouter, Depends, Query

from ...config import settings
from ...schemas import (
    CurrentUser,
    NotificationListResponse,
    NotificationResponse,
    NotificationsReadResponse,
    UnreadCountResponse,
)
from ...application.interaction_service import ActivityInteractionService
from ..dependencies import get_current_user, get_interaction_service


router = APIRouter(prefix="/api/v1/social/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    limit: int = Query(
        settings.DEFAULT_NOTIFICATION_LIMIT, ge=1, le=settings.MAX_NOTIFICATION_LIMIT
    ),
    current_user: CurrentUser = Depends(get_current_user),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    """
    Get the current user's notifications

    Likes and comments by others on the caller's activities, and likes on
    the caller's photos, newest first.
    """
    notifications = await interaction_service.get_activity_notifications(current_user.id, limit)
    return NotificationListResponse(
        items=[NotificationResponse.model_validate(n) for n in notifications],
        count=len(notifications),
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_notification_count(
    current_user: CurrentUser = Depends(get_current_user),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    count = await interaction_service.get_unread_notification_count(current_user.id)
    return UnreadCountResponse(count=count)


@router.post("/read", response_model=NotificationsReadResponse)
async def mark_notifications_read(
    current_user: CurrentUser = Depends(get_current_user),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    """Mark everything up to now as read"""
    last_read_at = await interaction_service.mark_notifications_read(current_user.id)
    return NotificationsReadResponse(last_read_at=last_read_at)
