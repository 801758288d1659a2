"""
Repository interfaces - Define contracts for data access
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from .models import (
    Account,
    Activity,
    ActivityComment,
    ActivityDraft,
    ActivityLike,
    ActivityLikeSummary,
    ActivityType,
    DestinationRef,
    FeedCursor,
    FeedScope,
    FollowEdge,
    FollowStatus,
    Notification,
    PhotoEntry,
    PhotoLike,
    PhotoPrivacy,
    PhotoShare,
    TripRef,
)


class IAccountRepository(ABC):
    """Account read access"""

    @abstractmethod
    async def find_by_id(self, user_id: int) -> Optional[Account]:
        """Find account by ID"""
        pass

    @abstractmethod
    async def find_many(self, user_ids: Iterable[int]) -> Dict[int, Account]:
        """Find accounts by IDs, keyed by ID"""
        pass

    @abstractmethod
    async def count_trips(self, user_id: int) -> int:
        """Count trips owned by the account"""
        pass


class IRelationshipRepository(ABC):
    """Follow edge store. At most one edge per (follower, following) pair."""

    @abstractmethod
    async def create(
        self, follower_id: int, following_id: int, status: FollowStatus
    ) -> FollowEdge:
        """
        Insert a new edge

        Raises:
            ConflictError: If an edge for the pair already exists
        """
        pass

    @abstractmethod
    async def find(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        """Find the edge follower -> following"""
        pass

    @abstractmethod
    async def transition(
        self,
        follower_id: int,
        following_id: int,
        from_statuses: Iterable[FollowStatus],
        to_status: FollowStatus,
    ) -> Optional[FollowEdge]:
        """
        Move an edge to to_status only if its current status is in from_statuses

        Returns the updated edge, or None if no edge matched.
        """
        pass

    @abstractmethod
    async def delete(self, follower_id: int, following_id: int) -> bool:
        """Delete the edge follower -> following"""
        pass

    @abstractmethod
    async def list_followers(
        self, user_id: int, status: FollowStatus, limit: int, offset: int = 0
    ) -> List[FollowEdge]:
        """Edges pointing at user_id, newest first"""
        pass

    @abstractmethod
    async def list_following(
        self, user_id: int, status: FollowStatus, limit: int, offset: int = 0
    ) -> List[FollowEdge]:
        """Edges leaving user_id, newest first"""
        pass

    @abstractmethod
    async def following_ids(self, user_id: int) -> List[int]:
        """IDs of accounts user_id follows with status accepted"""
        pass

    @abstractmethod
    async def friend_ids(self, user_id: int) -> List[int]:
        """IDs of accounts with accepted edges in both directions"""
        pass

    @abstractmethod
    async def count_followers(self, user_id: int, status: FollowStatus) -> int:
        pass

    @abstractmethod
    async def count_following(self, user_id: int, status: FollowStatus) -> int:
        pass


class IActivityRepository(ABC):
    """Append-only activity store"""

    @abstractmethod
    async def create(self, draft: ActivityDraft) -> Activity:
        """Append an activity; the store assigns id and created_at"""
        pass

    @abstractmethod
    async def find_by_id(self, activity_id: int) -> Optional[Activity]:
        pass

    @abstractmethod
    async def list_for_users(
        self,
        user_ids: Iterable[int],
        limit: int,
        before: Optional[FeedCursor] = None,
        scope: Optional[FeedScope] = None,
        exclude_types: Iterable[ActivityType] = (),
    ) -> List[Activity]:
        """
        Activities of the given actors ordered by (created_at, id) descending,
        strictly older than before when given

        With a scope, photo activities whose snapshotted privacy hides them
        from the scope's viewer are filtered out before the limit applies.
        """
        pass

    @abstractmethod
    async def find_photo_snapshots(
        self, share_ids: Iterable[int]
    ) -> Dict[int, Dict[str, Any]]:
        """Metadata of the photo_shared activities of the given shares, keyed by share ID"""
        pass


class IPhotoShareRepository(ABC):
    """Photo share and like store. At most one like per (share, user) pair."""

    @abstractmethod
    async def create(
        self,
        user_id: int,
        photos: List[PhotoEntry],
        privacy: PhotoPrivacy,
        caption: Optional[str] = None,
        trip_id: Optional[int] = None,
        destination_id: Optional[int] = None,
    ) -> PhotoShare:
        pass

    @abstractmethod
    async def find_by_id(self, share_id: int) -> Optional[PhotoShare]:
        """Find share with its live like_count"""
        pass

    @abstractmethod
    async def delete(self, share_id: int) -> bool:
        """Delete share and its likes"""
        pass

    @abstractmethod
    async def list_for_users(
        self,
        user_ids: Iterable[int],
        limit: int,
        before: Optional[FeedCursor] = None,
        scope: Optional[FeedScope] = None,
    ) -> List[PhotoShare]:
        """
        Shares of the given authors ordered by (created_at, id) descending,
        limited to those the scope's viewer may see when a scope is given
        """
        pass

    @abstractmethod
    async def add_like(self, share_id: int, user_id: int) -> PhotoLike:
        """
        Insert a like

        Raises:
            ConflictError: If the user already likes the share
        """
        pass

    @abstractmethod
    async def find_like(self, share_id: int, user_id: int) -> Optional[PhotoLike]:
        pass

    @abstractmethod
    async def remove_like(self, share_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    async def count_likes(self, share_id: int) -> int:
        pass


class ICatalogRepository(ABC):
    """Read access to trip planner trips and destinations"""

    @abstractmethod
    async def find_trips(self, trip_ids: Iterable[int]) -> Dict[int, TripRef]:
        pass

    @abstractmethod
    async def find_destinations(
        self, destination_ids: Iterable[int]
    ) -> Dict[int, DestinationRef]:
        pass


class IActivityInteractionRepository(ABC):
    """
    Likes and comments on activities, and the notification view over them.
    At most one like per (activity, user) pair.
    """

    @abstractmethod
    async def add_like(self, activity_id: int, user_id: int) -> ActivityLike:
        """
        Insert a like

        Raises:
            ConflictError: If the user already likes the activity
            NotFoundError: If the activity does not exist
        """
        pass

    @abstractmethod
    async def remove_like(self, activity_id: int, user_id: int) -> bool:
        pass

    @abstractmethod
    async def like_summaries(
        self, activity_ids: Iterable[int], viewer_id: Optional[int] = None
    ) -> Dict[int, ActivityLikeSummary]:
        """Like counters of the given activities, keyed by activity ID"""
        pass

    @abstractmethod
    async def add_comment(self, activity_id: int, user_id: int, content: str) -> ActivityComment:
        """
        Insert a comment

        Raises:
            NotFoundError: If the activity does not exist
        """
        pass

    @abstractmethod
    async def find_comment(self, comment_id: int) -> Optional[ActivityComment]:
        pass

    @abstractmethod
    async def delete_comment(self, comment_id: int) -> bool:
        pass

    @abstractmethod
    async def list_comments(self, activity_ids: Iterable[int]) -> List[ActivityComment]:
        """Comments on the given activities, oldest first"""
        pass

    @abstractmethod
    async def list_notifications(
        self, user_id: int, limit: int, since: Optional[datetime] = None
    ) -> List[Notification]:
        """
        Likes and comments by other accounts on user_id's activities, plus the
        photo_liked activities attributed to user_id, newest first
        """
        pass

    @abstractmethod
    async def last_read_at(self, user_id: int) -> Optional[datetime]:
        """When user_id last marked notifications as read"""
        pass

    @abstractmethod
    async def mark_read(self, user_id: int) -> datetime:
        pass
