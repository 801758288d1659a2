"""
Pydantic schemas for request/response validation
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from .domain.models import (
    ActivityType,
    Connection,
    NotificationType,
    FeedPage,
    FollowStatus,
    FriendshipStatus,
    PhotoPrivacy,
    PhotoShare,
    RelationshipStatus,
)


# Request Schemas
class FollowRequestAction(BaseModel):
    """Answer to an incoming follow request"""

    action: str = Field(..., description="Action: 'accept', 'decline' or 'accept_friend'")

    @field_validator("action")
    @classmethod
    def validate_action(cls, v):
        if v not in ("accept", "decline", "accept_friend"):
            raise ValueError("Action must be 'accept', 'decline' or 'accept_friend'")
        return v


class PhotoEntrySchema(BaseModel):
    """One image of a photo share"""

    url: str = Field(..., min_length=1)
    order: int = 0
    caption: Optional[str] = None


class PhotoShareCreate(BaseModel):
    """Request to share photos"""

    photos: List[PhotoEntrySchema] = Field(default_factory=list)
    photo_url: Optional[str] = Field(None, description="Single photo shortcut")
    caption: Optional[str] = Field(None, max_length=2000)
    privacy: PhotoPrivacy = PhotoPrivacy.PUBLIC
    trip_id: Optional[int] = None
    destination_id: Optional[int] = None


class TripActivityCreate(BaseModel):
    """Trip lifecycle event reported by the trip planner"""

    activity_type: ActivityType
    trip_id: int
    trip_name: str = Field(..., min_length=1)
    destination: Optional[str] = None


class DestinationActivityCreate(BaseModel):
    """Destination event reported by the trip planner"""

    activity_type: ActivityType
    destination_id: int
    destination_name: str = Field(..., min_length=1)
    location: Optional[str] = None
    trip_id: Optional[int] = None
    trip_name: Optional[str] = None


class ActivityCommentCreate(BaseModel):
    """Comment on an activity"""

    content: str = Field(..., description="Comment text, trimmed before storing")


# Response Schemas
class MessageResponse(BaseModel):
    """Generic message response"""

    message: str


class FollowEdgeResponse(BaseModel):
    """Directed follow edge"""

    model_config = ConfigDict(from_attributes=True)

    follower_id: int
    following_id: int
    status: FollowStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RemoveFriendResponse(BaseModel):
    removed: int


class UnfollowResponse(BaseModel):
    unfollowed: bool


class UserSummary(BaseModel):
    """Account as shown in listings"""

    user_id: int
    nickname: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: bool = False
    status: FollowStatus
    since: Optional[datetime] = None

    @classmethod
    def from_connection(cls, connection: Connection) -> "UserSummary":
        account = connection.account
        return cls(
            user_id=connection.user_id,
            nickname=account.nickname if account else None,
            display_name=account.display_name if account else None,
            avatar_url=account.avatar_url if account else None,
            is_verified=account.is_verified if account else False,
            status=connection.status,
            since=connection.since,
        )


class UserListResponse(BaseModel):
    """Paginated listing of accounts"""

    users: List[UserSummary]
    total: int
    page: int
    page_size: int
    has_more: bool


class RelationshipResponse(BaseModel):
    """Relationship between the caller and another account"""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    target_user_id: int
    status: RelationshipStatus
    reverse_status: RelationshipStatus
    friendship_status: FriendshipStatus
    is_following: bool
    is_followed_by: bool
    is_friends: bool


class SocialStatsResponse(BaseModel):
    """Live graph counters"""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    follower_count: int
    following_count: int
    friend_count: int
    pending_requests_count: int
    trip_count: int


class ActivityResponse(BaseModel):
    """Stored activity"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    activity_type: ActivityType
    title: str
    description: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    related_trip_id: Optional[int] = None
    related_destination_id: Optional[int] = None
    created_at: datetime


class FeedItemResponse(BaseModel):
    """Enriched feed entry"""

    model_config = ConfigDict(from_attributes=True)

    item_id: str
    user_id: int
    activity_type: ActivityType
    title: str
    description: Optional[str] = None
    created_at: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)
    related_trip_id: Optional[int] = None
    related_destination_id: Optional[int] = None
    photo_share_id: Optional[int] = None
    like_count: Optional[int] = None
    user_nickname: Optional[str] = None
    user_avatar_url: Optional[str] = None
    trip_name: Optional[str] = None
    destination_name: Optional[str] = None
    destination_location: Optional[str] = None


class FeedResponse(BaseModel):
    """Feed page with cursor"""

    items: List[FeedItemResponse]
    next_cursor: Optional[str] = None
    has_more: bool = False

    @classmethod
    def from_page(cls, page: FeedPage) -> "FeedResponse":
        return cls(
            items=[FeedItemResponse.model_validate(item) for item in page.items],
            next_cursor=page.next_cursor,
            has_more=page.next_cursor is not None,
        )


class PhotoShareResponse(BaseModel):
    """Photo share with derived counters"""

    id: int
    user_id: int
    photos: List[PhotoEntrySchema]
    photo_url: Optional[str] = None
    photo_count: int
    caption: Optional[str] = None
    privacy: PhotoPrivacy
    trip_id: Optional[int] = None
    destination_id: Optional[int] = None
    like_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_share(cls, share: PhotoShare) -> "PhotoShareResponse":
        return cls(
            id=share.id,
            user_id=share.user_id,
            photos=[PhotoEntrySchema(**photo.to_dict()) for photo in share.photos],
            photo_url=share.photo_url,
            photo_count=share.photo_count,
            caption=share.caption,
            privacy=share.privacy,
            trip_id=share.trip_id,
            destination_id=share.destination_id,
            like_count=share.like_count,
            created_at=share.created_at,
            updated_at=share.updated_at,
        )


class PhotoShareListResponse(BaseModel):
    items: List[PhotoShareResponse]
    count: int


class LikeResponse(BaseModel):
    """State of the caller's like after a like/unlike"""

    photo_share_id: int
    liked: bool
    like_count: int


class ActivityLikeResponse(BaseModel):
    """State of the caller's like on an activity after a like/unlike"""

    activity_id: int
    liked: bool
    like_count: int


class ActivityLikeSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    activity_id: int
    like_count: int
    user_liked: bool


class ActivityCommentResponse(BaseModel):
    """Comment with its author's display details"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    activity_id: int
    user_id: int
    content: str
    user_nickname: str
    user_avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NotificationResponse(BaseModel):
    """Interaction of another account with the caller's content"""

    model_config = ConfigDict(from_attributes=True)

    notification_id: str
    notification_type: NotificationType
    actor_id: int
    actor_nickname: Optional[str] = None
    actor_avatar_url: Optional[str] = None
    activity_id: Optional[int] = None
    activity_type: Optional[ActivityType] = None
    activity_title: Optional[str] = None
    photo_share_id: Optional[int] = None
    content: Optional[str] = None
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]
    count: int


class UnreadCountResponse(BaseModel):
    count: int


class NotificationsReadResponse(BaseModel):
    last_read_at: datetime


# Internal Models
class CurrentUser(BaseModel):
    """Caller identity decoded from the auth service's access token"""

    id: int
    nickname: Optional[str] = None
