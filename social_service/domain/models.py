"""
Domain models - Core business entities
"""
import base64
import binascii
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional

from ..exceptions import InvalidTargetError


class FollowStatus(str, Enum):
    """Stored status of a directed follow edge"""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class RelationshipStatus(str, Enum):
    """Status of the single directed edge viewer -> target"""
    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    SELF = "self"


class FriendshipStatus(str, Enum):
    """Friendship state derived from both directed edges"""
    NONE = "none"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"
    FRIENDS = "friends"


class PhotoPrivacy(str, Enum):
    """Photo share privacy level, mirrors trip privacy"""
    PUBLIC = "public"
    CONTACTS = "contacts"
    PRIVATE = "private"


class ActivityType(str, Enum):
    """Activity kinds"""
    TRIP_CREATED = "trip_created"
    TRIP_STARTED = "trip_started"
    TRIP_COMPLETED = "trip_completed"
    TRIP_PUBLISHED = "trip_published"
    TRIP_SHARED = "trip_shared"
    DESTINATION_VISITED = "destination_visited"
    DESTINATION_ADDED = "destination_added"
    PHOTO_UPLOADED = "photo_uploaded"
    PHOTO_SHARED = "photo_shared"
    PHOTO_LIKED = "photo_liked"
    USER_FOLLOWED = "user_followed"


TRIP_ACTIVITY_TYPES = frozenset({
    ActivityType.TRIP_CREATED,
    ActivityType.TRIP_STARTED,
    ActivityType.TRIP_COMPLETED,
    ActivityType.TRIP_PUBLISHED,
    ActivityType.TRIP_SHARED,
})

DESTINATION_ACTIVITY_TYPES = frozenset({
    ActivityType.DESTINATION_VISITED,
    ActivityType.DESTINATION_ADDED,
})

PHOTO_ACTIVITY_TYPES = frozenset({
    ActivityType.PHOTO_UPLOADED,
    ActivityType.PHOTO_SHARED,
    ActivityType.PHOTO_LIKED,
})


def can_view(
    privacy: PhotoPrivacy,
    author_id: int,
    viewer_id: Optional[int],
    is_friend: bool = False,
) -> bool:
    """
    Privacy rule shared by photo shares and photo activities

    public is visible to everyone, contacts only to the author and mutual
    friends, private only to the author.
    """
    if privacy == PhotoPrivacy.PUBLIC:
        return True
    if viewer_id is None:
        return False
    if viewer_id == author_id:
        return True
    if privacy == PhotoPrivacy.CONTACTS:
        return is_friend
    return False


@dataclass
class Account:
    """Account domain model (owned by the trip planner, read-only here)"""
    id: int
    nickname: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    is_public_profile: bool = True
    is_verified: bool = False
    created_at: Optional[datetime] = None

    @property
    def name(self) -> str:
        """Name shown to other users"""
        return self.display_name or self.nickname


@dataclass
class FollowEdge:
    """Directed follow edge domain model"""
    follower_id: int
    following_id: int
    status: FollowStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_pending(self) -> bool:
        return self.status == FollowStatus.PENDING

    def is_accepted(self) -> bool:
        return self.status == FollowStatus.ACCEPTED

    def is_declined(self) -> bool:
        return self.status == FollowStatus.DECLINED


@dataclass
class Relationship:
    """Both directions between a viewer and a target"""
    user_id: int
    target_user_id: int
    status: RelationshipStatus
    reverse_status: RelationshipStatus
    friendship_status: FriendshipStatus

    @property
    def is_following(self) -> bool:
        return self.status == RelationshipStatus.ACCEPTED

    @property
    def is_followed_by(self) -> bool:
        return self.reverse_status == RelationshipStatus.ACCEPTED

    @property
    def is_friends(self) -> bool:
        return self.friendship_status == FriendshipStatus.FRIENDS


@dataclass
class Connection:
    """Another account as it appears in a follower, following or friend listing"""
    user_id: int
    status: FollowStatus
    since: Optional[datetime] = None
    account: Optional[Account] = None


@dataclass
class SocialStats:
    """Live graph counters for an account"""
    user_id: int
    follower_count: int = 0
    following_count: int = 0
    friend_count: int = 0
    pending_requests_count: int = 0
    trip_count: int = 0


@dataclass
class TripRef:
    """Current name of a trip"""
    id: int
    name: str


@dataclass
class DestinationRef:
    """Current name and location of a destination"""
    id: int
    name: str
    location: Optional[str] = None


# Activity payloads, one variant per activity kind

@dataclass
class ActivityPayload:
    """Base for typed activity payloads"""

    def to_metadata(self) -> Dict[str, Any]:
        """Serialize to the JSON metadata column, dropping empty fields"""
        return {key: value for key, value in asdict(self).items() if value is not None}

    @classmethod
    def from_metadata(cls, metadata: Optional[Dict[str, Any]]):
        """Build the payload from stored metadata, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (metadata or {}).items() if k in known})


@dataclass
class TripActivityPayload(ActivityPayload):
    trip_name: Optional[str] = None
    destination: Optional[str] = None
    privacy_change: bool = False


@dataclass
class DestinationActivityPayload(ActivityPayload):
    destination_name: Optional[str] = None
    location: Optional[str] = None
    trip_name: Optional[str] = None


@dataclass
class PhotoActivityPayload(ActivityPayload):
    photo_share_id: Optional[int] = None
    photo_url: Optional[str] = None
    photos: Optional[List[Dict[str, Any]]] = None
    photo_count: Optional[int] = None
    caption: Optional[str] = None
    destination_name: Optional[str] = None
    location: Optional[str] = None
    trip_name: Optional[str] = None
    privacy: Optional[str] = None
    liker_id: Optional[int] = None
    liker_name: Optional[str] = None


@dataclass
class FollowActivityPayload(ActivityPayload):
    target_user_id: Optional[int] = None
    target_name: Optional[str] = None


def payload_type_for(activity_type: ActivityType) -> type:
    """Payload class carried by an activity kind"""
    if activity_type in TRIP_ACTIVITY_TYPES:
        return TripActivityPayload
    if activity_type in DESTINATION_ACTIVITY_TYPES:
        return DestinationActivityPayload
    if activity_type in PHOTO_ACTIVITY_TYPES:
        return PhotoActivityPayload
    return FollowActivityPayload


def payload_from_metadata(
    activity_type: ActivityType, metadata: Optional[Dict[str, Any]]
) -> ActivityPayload:
    """Deserialize stored metadata into the payload for its kind"""
    return payload_type_for(activity_type).from_metadata(metadata)


@dataclass
class ActivityDraft:
    """Activity about to be appended to the store"""
    user_id: int
    activity_type: ActivityType
    title: str
    payload: ActivityPayload
    description: Optional[str] = None
    related_trip_id: Optional[int] = None
    related_destination_id: Optional[int] = None

    def __post_init__(self):
        expected = payload_type_for(self.activity_type)
        if not isinstance(self.payload, expected):
            raise ValueError(
                f"{self.activity_type.value} activities carry {expected.__name__}, "
                f"got {type(self.payload).__name__}"
            )


@dataclass(frozen=True)
class Activity:
    """Immutable activity record"""
    id: int
    user_id: int
    activity_type: ActivityType
    title: str
    payload: ActivityPayload
    created_at: datetime
    description: Optional[str] = None
    related_trip_id: Optional[int] = None
    related_destination_id: Optional[int] = None

    @property
    def metadata(self) -> Dict[str, Any]:
        return self.payload.to_metadata()

    @property
    def privacy(self) -> Optional[PhotoPrivacy]:
        """Snapshotted privacy of the photo this activity is about, if any"""
        value = getattr(self.payload, "privacy", None)
        return PhotoPrivacy(value) if value else None


@dataclass
class PhotoEntry:
    """One image of a photo share"""
    url: str
    order: int = 0
    caption: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass
class PhotoShareDraft:
    """Input for sharing a photo"""
    privacy: PhotoPrivacy = PhotoPrivacy.PUBLIC
    caption: Optional[str] = None
    photos: List[PhotoEntry] = field(default_factory=list)
    photo_url: Optional[str] = None
    trip_id: Optional[int] = None
    destination_id: Optional[int] = None

    def normalized_photos(self) -> List[PhotoEntry]:
        """Photos sorted by their given order and re-indexed from 0"""
        photos = [p for p in self.photos if p.url]
        if not photos and self.photo_url:
            photos = [PhotoEntry(url=self.photo_url)]
        ordered = sorted(enumerate(photos), key=lambda item: (item[1].order, item[0]))
        return [
            PhotoEntry(url=photo.url, order=index, caption=photo.caption)
            for index, (_, photo) in enumerate(ordered)
        ]


@dataclass
class PhotoShare:
    """Photo share domain model"""
    id: int
    user_id: int
    photos: List[PhotoEntry]
    privacy: PhotoPrivacy = PhotoPrivacy.PUBLIC
    caption: Optional[str] = None
    trip_id: Optional[int] = None
    destination_id: Optional[int] = None
    like_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def photo_count(self) -> int:
        return len(self.photos)

    @property
    def photo_url(self) -> Optional[str]:
        """Cover photo"""
        return self.photos[0].url if self.photos else None

    def is_owner(self, user_id: Optional[int]) -> bool:
        return self.user_id == user_id

    def is_visible_to(self, viewer_id: Optional[int], is_friend: bool = False) -> bool:
        return can_view(self.privacy, self.user_id, viewer_id, is_friend)


@dataclass
class PhotoLike:
    """Like edge from an account to a photo share"""
    id: int
    photo_share_id: int
    user_id: int
    created_at: Optional[datetime] = None


# Activity interactions

@dataclass
class ActivityLike:
    """Like edge from an account to an activity"""
    id: int
    activity_id: int
    user_id: int
    created_at: Optional[datetime] = None


@dataclass
class ActivityLikeSummary:
    """Like counter of an activity and whether the viewer is among the likers"""
    activity_id: int
    like_count: int = 0
    user_liked: bool = False


@dataclass
class ActivityComment:
    """Comment on an activity"""
    id: int
    activity_id: int
    user_id: int
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    author: Optional[Account] = None

    @property
    def user_nickname(self) -> str:
        return self.author.name if self.author else "User"

    @property
    def user_avatar_url(self) -> Optional[str]:
        return self.author.avatar_url if self.author else None


class NotificationType(str, Enum):
    """What another account did to something the recipient owns"""
    LIKE = "like"
    COMMENT = "comment"
    PHOTO_LIKE = "photo_like"


@dataclass
class Notification:
    """Interaction of another account with the recipient's activity or photo"""
    notification_id: str
    notification_type: NotificationType
    actor_id: int
    created_at: datetime
    activity_id: Optional[int] = None
    activity_type: Optional[ActivityType] = None
    activity_title: Optional[str] = None
    photo_share_id: Optional[int] = None
    content: Optional[str] = None
    actor_nickname: Optional[str] = None
    actor_avatar_url: Optional[str] = None


# Feed

@dataclass(frozen=True)
class FeedScope:
    """Reader of a timeline; stores drop rows the reader may not see"""
    viewer_id: Optional[int] = None
    friend_ids: FrozenSet[int] = frozenset()

    def allows(self, privacy: Optional[PhotoPrivacy], author_id: int) -> bool:
        if privacy is None:
            return True
        return can_view(privacy, author_id, self.viewer_id, author_id in self.friend_ids)


@dataclass(frozen=True)
class FeedCursor:
    """(created_at, sequence) of the last item a client has seen"""
    created_at: datetime
    sequence: int

    def encode(self) -> str:
        raw = f"{self.created_at.isoformat()}|{self.sequence}".encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii")

    @classmethod
    def decode(cls, token: str) -> "FeedCursor":
        try:
            raw = base64.urlsafe_b64decode(token.encode("ascii")).decode("utf-8")
            created_at, sequence = raw.rsplit("|", 1)
            return cls(datetime.fromisoformat(created_at), int(sequence))
        except (ValueError, UnicodeError, binascii.Error):
            raise InvalidTargetError("Malformed feed cursor")


@dataclass
class FeedItem:
    """Enriched, presentation-ready feed entry"""
    item_id: str
    sequence: int
    user_id: int
    activity_type: ActivityType
    title: str
    created_at: datetime
    description: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    related_trip_id: Optional[int] = None
    related_destination_id: Optional[int] = None
    photo_share_id: Optional[int] = None
    like_count: Optional[int] = None
    user_nickname: Optional[str] = None
    user_avatar_url: Optional[str] = None
    trip_name: Optional[str] = None
    destination_name: Optional[str] = None
    destination_location: Optional[str] = None

    @property
    def sort_key(self):
        return (self.created_at, self.sequence)

    @property
    def cursor(self) -> FeedCursor:
        return FeedCursor(self.created_at, self.sequence)


@dataclass
class FeedPage:
    """One page of a feed"""
    items: List[FeedItem]
    next_cursor: Optional[str] = None
