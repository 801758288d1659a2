"""
Activity routes: trip planner lifecycle events, likes and comments
"""
from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional

from ...schemas import (
    ActivityCommentCreate,
    ActivityCommentResponse,
    ActivityLikeResponse,
    ActivityLikeSummaryResponse,
    ActivityResponse,
    CurrentUser,
    DestinationActivityCreate,
    MessageResponse,
    TripActivityCreate,
)
from ...application.activity_service import ActivityService
from ...application.interaction_service import ActivityInteractionService
from ..dependencies import (
    get_activity_service,
    get_current_user,
    get_current_user_optional,
    get_interaction_service,
)


router = APIRouter(prefix="/api/v1/social/activities", tags=["Activities"])


@router.post("/trips", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED)
async def record_trip_activity(
    body: TripActivityCreate,
    current_user: CurrentUser = Depends(get_current_user),
    activity_service: ActivityService = Depends(get_activity_service),
):
    """Record a trip created/started/completed/published/shared event"""
    activity = await activity_service.record_trip_activity(
        current_user.id,
        body.activity_type,
        body.trip_id,
        body.trip_name,
        body.destination,
    )
    return ActivityResponse.model_validate(activity)


@router.post(
    "/destinations", response_model=ActivityResponse, status_code=status.HTTP_201_CREATED
)
async def record_destination_activity(
    body: DestinationActivityCreate,
    current_user: CurrentUser = Depends(get_current_user),
    activity_service: ActivityService = Depends(get_activity_service),
):
    activity = await activity_service.record_destination_activity(
        current_user.id,
        body.activity_type,
        body.destination_id,
        body.destination_name,
        body.location,
        body.trip_id,
        body.trip_name,
    )
    return ActivityResponse.model_validate(activity)


async def _like_state(
    interaction_service: ActivityInteractionService, user_id: int, activity_id: int
) -> ActivityLikeResponse:
    summary = (await interaction_service.get_activity_likes(user_id, [activity_id]))[0]
    return ActivityLikeResponse(
        activity_id=activity_id, liked=summary.user_liked, like_count=summary.like_count
    )


@router.post("/{activity_id}/like", response_model=ActivityLikeResponse)
async def like_activity(
    activity_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    """Like an activity (409 if already liked)"""
    await interaction_service.like_activity(current_user.id, activity_id)
    return await _like_state(interaction_service, current_user.id, activity_id)


@router.delete("/{activity_id}/like", response_model=ActivityLikeResponse)
async def unlike_activity(
    activity_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    await interaction_service.unlike_activity(current_user.id, activity_id)
    return await _like_state(interaction_service, current_user.id, activity_id)


@router.post("/{activity_id}/like/toggle", response_model=ActivityLikeResponse)
async def toggle_activity_like(
    activity_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    await interaction_service.toggle_activity_like(current_user.id, activity_id)
    return await _like_state(interaction_service, current_user.id, activity_id)


@router.get("/likes", response_model=List[ActivityLikeSummaryResponse])
async def get_activity_likes(
    activity_ids: List[int] = Query(..., description="Activities to count likes for"),
    current_user: Optional[CurrentUser] = Depends(get_current_user_optional),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    """
    Like counters for a batch of activities

    user_liked is only ever true for authenticated callers.
    """
    viewer_id = current_user.id if current_user else None
    summaries = await interaction_service.get_activity_likes(viewer_id, activity_ids)
    return [ActivityLikeSummaryResponse.model_validate(summary) for summary in summaries]


@router.post(
    "/{activity_id}/comments",
    response_model=ActivityCommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_activity_comment(
    activity_id: int,
    body: ActivityCommentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    comment = await interaction_service.add_activity_comment(
        current_user.id, activity_id, body.content
    )
    return ActivityCommentResponse.model_validate(comment)


@router.get("/comments", response_model=List[ActivityCommentResponse])
async def get_activity_comments(
    activity_ids: List[int] = Query(...),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    """Comments on a batch of activities, oldest first"""
    comments = await interaction_service.get_activity_comments(activity_ids)
    return [ActivityCommentResponse.model_validate(comment) for comment in comments]


@router.delete("/comments/{comment_id}", response_model=MessageResponse)
async def delete_activity_comment(
    comment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    interaction_service: ActivityInteractionService = Depends(get_interaction_service),
):
    await interaction_service.delete_activity_comment(current_user.id, comment_id)
    return MessageResponse(message="Comment deleted")
