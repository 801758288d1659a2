"""
Relationship routes
"""
from fastapi import APIRouter, Depends, Query, status

from ...config import settings
from ...schemas import (
    CurrentUser,
    FollowEdgeResponse,
    FollowRequestAction,
    RelationshipResponse,
    RemoveFriendResponse,
    SocialStatsResponse,
    UnfollowResponse,
    UserListResponse,
    UserSummary,
)
from ...application.relationship_service import RelationshipService
from ..dependencies import get_current_user, get_relationship_service


router = APIRouter(prefix="/api/v1/social", tags=["Relationships"])


def _user_list(result, page: int, page_size: int) -> UserListResponse:
    items, total, has_more = result
    return UserListResponse(
        users=[UserSummary.from_connection(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        has_more=has_more,
    )


@router.post(
    "/follows/{user_id}",
    response_model=FollowEdgeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_follow(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """
    Send a follow request to another user

    The request stays pending until the other user accepts it.
    """
    edge = await service.request_follow(current_user.id, user_id)
    return FollowEdgeResponse.model_validate(edge)


@router.delete("/follows/{user_id}", response_model=UnfollowResponse)
async def unfollow(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Unfollow a user or cancel a pending request"""
    unfollowed = await service.unfollow(current_user.id, user_id)
    return UnfollowResponse(unfollowed=unfollowed)


@router.get("/follows/requests/pending", response_model=UserListResponse)
async def get_pending_requests(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Follow requests waiting for the current user"""
    result = await service.get_pending_requests(current_user.id, page, page_size)
    return _user_list(result, page, page_size)


@router.post("/follows/requests/{requester_id}", response_model=FollowEdgeResponse)
async def answer_follow_request(
    requester_id: int,
    body: FollowRequestAction,
    current_user: CurrentUser = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """
    Accept, decline or accept-and-follow-back a follow request

    Only the recipient of the request may answer it.
    """
    if body.action == "accept":
        edge = await service.accept_follow(current_user.id, requester_id)
    elif body.action == "decline":
        edge = await service.decline_follow(current_user.id, requester_id)
    else:
        edge = await service.accept_friend_request(current_user.id, requester_id)
    return FollowEdgeResponse.model_validate(edge)


@router.delete("/friends/{user_id}", response_model=RemoveFriendResponse)
async def remove_friend(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Remove both follow edges between the current user and user_id"""
    removed = await service.remove_friend(current_user.id, user_id)
    return RemoveFriendResponse(removed=removed)


@router.get("/relationships/{user_id}", response_model=RelationshipResponse)
async def get_relationship(
    user_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: RelationshipService = Depends(get_relationship_service),
):
    """Relationship between the current user and user_id"""
    relationship = await service.get_relationship(current_user.id, user_id)
    return RelationshipResponse.model_validate(relationship)


@router.get("/users/{user_id}/followers", response_model=UserListResponse)
async def get_followers(
    user_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: RelationshipService = Depends(get_relationship_service),
):
    result = await service.get_followers(user_id, page, page_size)
    return _user_list(result, page, page_size)


@router.get("/users/{user_id}/following", response_model=UserListResponse)
async def get_following(
    user_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: RelationshipService = Depends(get_relationship_service),
):
    result = await service.get_following(user_id, page, page_size)
    return _user_list(result, page, page_size)


@router.get("/users/{user_id}/friends", response_model=UserListResponse)
async def get_friends(
    user_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    service: RelationshipService = Depends(get_relationship_service),
):
    result = await service.get_friends(user_id, page, page_size)
    return _user_list(result, page, page_size)


@router.get("/users/{user_id}/stats", response_model=SocialStatsResponse)
async def get_social_stats(
    user_id: int,
    service: RelationshipService = Depends(get_relationship_service),
):
    """Follower, following, friend, pending request and trip counts"""
    stats = await service.get_social_stats(user_id)
    return SocialStatsResponse.model_validate(stats)
