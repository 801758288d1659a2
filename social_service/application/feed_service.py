"""
Activity feed aggregator
"""
import asyncio
import logging
from typing import FrozenSet, Iterable, List, Optional, Set

from ..config import settings
from ..domain.models import (
    Activity,
    ActivityType,
    FeedCursor,
    FeedItem,
    FeedPage,
    FeedScope,
    PhotoActivityPayload,
    PhotoShare,
)
from ..domain.repositories import (
    IAccountRepository,
    IActivityRepository,
    ICatalogRepository,
    IPhotoShareRepository,
)
from ..exceptions import DanglingReferenceError
from .activity_service import photo_title
from .relationship_service import RelationshipService

logger = logging.getLogger(__name__)

# Context a stored photo_shared row carries over onto the live share item
SNAPSHOT_KEYS = ("destination_name", "location", "trip_name")


class ActivityFeedService:
    """Merges activities and photo shares into one ranked, enriched timeline"""

    def __init__(
        self,
        activity_repository: IActivityRepository,
        photo_share_repository: IPhotoShareRepository,
        account_repository: IAccountRepository,
        catalog_repository: ICatalogRepository,
        relationship_service: RelationshipService,
    ):
        self.activity_repo = activity_repository
        self.photo_repo = photo_share_repository
        self.account_repo = account_repository
        self.catalog_repo = catalog_repository
        self.relationships = relationship_service

    @staticmethod
    def _clamp(limit: Optional[int]) -> int:
        if limit is None:
            return settings.DEFAULT_FEED_LIMIT
        return max(1, min(limit, settings.MAX_FEED_LIMIT))

    async def get_feed(
        self,
        viewer_id: int,
        limit: Optional[int] = None,
        before: Optional[FeedCursor] = None,
    ) -> FeedPage:
        """
        Home timeline of viewer_id

        Sources are the viewer's own items plus those of every account the
        viewer follows with an accepted edge.
        """
        following = await self.relationships.get_following_ids(viewer_id)
        actors = {viewer_id, *following}
        return await self._build_page(actors, viewer_id, self._clamp(limit), before)

    async def get_user_feed(
        self,
        subject_id: int,
        limit: Optional[int] = None,
        viewer_id: Optional[int] = None,
        before: Optional[FeedCursor] = None,
    ) -> FeedPage:
        """Profile timeline of subject_id as seen by viewer_id (None is anonymous)"""
        return await self._build_page({subject_id}, viewer_id, self._clamp(limit), before)

    async def _build_page(
        self,
        actors: Set[int],
        viewer_id: Optional[int],
        limit: int,
        before: Optional[FeedCursor],
    ) -> FeedPage:
        scope = FeedScope(viewer_id=viewer_id, friend_ids=await self._friend_ids(viewer_id))

        # The share source owns photo_shared items whenever it answers
        activities, shares = await asyncio.gather(
            self._fetch_activities(
                actors, limit, before, scope, exclude_types=(ActivityType.PHOTO_SHARED,)
            ),
            self._fetch_shares(actors, limit, before, scope),
        )
        if shares is None:
            activities = await self._fetch_activities(actors, limit, before, scope)

        items = [self._share_item(share) for share in shares or []]
        items.extend(self._activity_item(activity) for activity in activities)
        items.sort(key=lambda item: item.sort_key, reverse=True)
        items = items[:limit]

        # A full source may hold older rows; the page then holds at least limit items
        more = len(activities) == limit or (shares is not None and len(shares) == limit)

        await self._attach_snapshots(items)
        await self._enrich(items)

        next_cursor = items[-1].cursor.encode() if more and items else None
        return FeedPage(items=items, next_cursor=next_cursor)

    async def _fetch_activities(
        self,
        actors: Set[int],
        limit: int,
        before: Optional[FeedCursor],
        scope: FeedScope,
        exclude_types: Iterable[ActivityType] = (),
    ) -> List[Activity]:
        try:
            return await self.activity_repo.list_for_users(
                actors, limit, before, scope, exclude_types
            )
        except Exception as e:
            logger.error(f"Failed to fetch activities for feed: {e}")
            return []

    async def _fetch_shares(
        self,
        actors: Set[int],
        limit: int,
        before: Optional[FeedCursor],
        scope: FeedScope,
    ) -> Optional[List[PhotoShare]]:
        """Visible photo shares of actors, or None when the source is unavailable"""
        try:
            return await self.photo_repo.list_for_users(actors, limit, before, scope)
        except Exception as e:
            logger.error(f"Failed to fetch photo shares for feed: {e}")
            return None

    async def _friend_ids(self, viewer_id: Optional[int]) -> FrozenSet[int]:
        if viewer_id is None:
            return frozenset()
        try:
            return frozenset(await self.relationships.get_friend_ids(viewer_id))
        except Exception as e:
            # Without the friend set only public and own items qualify
            logger.warning(f"Failed to load friends of {viewer_id}: {e}")
            return frozenset()

    async def _attach_snapshots(self, items: List[FeedItem]):
        """Carry context captured at share time onto live share items"""
        share_items = {
            item.photo_share_id: item for item in items if item.item_id.startswith("photo:")
        }
        snapshots = await self._lookup(
            "photo snapshots", self.activity_repo.find_photo_snapshots, share_items
        )
        for share_id, metadata in (snapshots or {}).items():
            item = share_items.get(share_id)
            if item is None:
                continue
            for key in SNAPSHOT_KEYS:
                value = metadata.get(key)
                if value is not None:
                    item.metadata.setdefault(key, value)

    @staticmethod
    def _activity_item(activity: Activity) -> FeedItem:
        return FeedItem(
            item_id=f"activity:{activity.id}",
            sequence=activity.id,
            user_id=activity.user_id,
            activity_type=activity.activity_type,
            title=activity.title,
            description=activity.description,
            created_at=activity.created_at,
            metadata=activity.metadata,
            related_trip_id=activity.related_trip_id,
            related_destination_id=activity.related_destination_id,
            photo_share_id=getattr(activity.payload, "photo_share_id", None),
        )

    @staticmethod
    def _share_item(share: PhotoShare) -> FeedItem:
        payload = PhotoActivityPayload(
            photo_share_id=share.id,
            photo_url=share.photo_url,
            photos=[photo.to_dict() for photo in share.photos],
            photo_count=share.photo_count,
            caption=share.caption,
            privacy=share.privacy.value,
        )
        return FeedItem(
            item_id=f"photo:{share.id}",
            sequence=share.id,
            user_id=share.user_id,
            activity_type=ActivityType.PHOTO_SHARED,
            title=photo_title(share.photo_count),
            description=share.caption,
            created_at=share.created_at,
            metadata=payload.to_metadata(),
            related_trip_id=share.trip_id,
            related_destination_id=share.destination_id,
            photo_share_id=share.id,
            like_count=share.like_count,
        )

    async def _enrich(self, items: List[FeedItem]):
        """Attach current actor, trip and destination details in batches"""
        if not items:
            return

        accounts = await self._lookup(
            "accounts", self.account_repo.find_many, (item.user_id for item in items)
        )
        trips = await self._lookup(
            "trips",
            self.catalog_repo.find_trips,
            (item.related_trip_id for item in items if item.related_trip_id),
        )
        destinations = await self._lookup(
            "destinations",
            self.catalog_repo.find_destinations,
            (item.related_destination_id for item in items if item.related_destination_id),
        )

        for item in items:
            if accounts is not None:
                account = accounts.get(item.user_id)
                if account is not None:
                    item.user_nickname = account.nickname
                    item.user_avatar_url = account.avatar_url

            if trips is not None and item.related_trip_id:
                try:
                    trip = self._resolve(trips, item.related_trip_id, "trip", item)
                    item.trip_name = trip.name
                except DanglingReferenceError as e:
                    logger.debug(f"Skipping enrichment: {e.message}")

            if destinations is not None and item.related_destination_id:
                try:
                    destination = self._resolve(
                        destinations, item.related_destination_id, "destination", item
                    )
                    item.destination_name = destination.name
                    item.destination_location = destination.location
                except DanglingReferenceError as e:
                    logger.debug(f"Skipping enrichment: {e.message}")

    @staticmethod
    def _resolve(refs: dict, ref_id: int, kind: str, item: FeedItem):
        ref = refs.get(ref_id)
        if ref is None:
            raise DanglingReferenceError(
                f"{kind} {ref_id} of {item.item_id} no longer exists"
            )
        return ref

    @staticmethod
    async def _lookup(name: str, fetch, ids: Iterable[int]) -> Optional[dict]:
        wanted = set(ids)
        if not wanted:
            return {}
        try:
            return await fetch(wanted)
        except Exception as e:
            logger.warning(f"Feed enrichment of {name} failed: {e}")
            return None
