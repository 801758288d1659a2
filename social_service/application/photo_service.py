"""
Photo share and engagement service
"""
import logging
from typing import Dict, List, Optional

from ..config import settings
from ..domain.models import (
    FeedCursor,
    FeedScope,
    PhotoLike,
    PhotoPrivacy,
    PhotoShare,
    PhotoShareDraft,
)
from ..domain.repositories import (
    IAccountRepository,
    ICatalogRepository,
    IPhotoShareRepository,
)
from ..exceptions import InvalidTargetError, NotFoundError, UnauthorizedError
from ..kafka_producer import KafkaProducerManager
from .activity_service import ActivityService
from .relationship_service import RelationshipService

logger = logging.getLogger(__name__)


class PhotoShareService:
    """Business logic for photo shares and likes"""

    def __init__(
        self,
        photo_share_repository: IPhotoShareRepository,
        account_repository: IAccountRepository,
        catalog_repository: ICatalogRepository,
        relationship_service: RelationshipService,
        activity_service: ActivityService,
        kafka: KafkaProducerManager,
    ):
        self.photo_repo = photo_share_repository
        self.account_repo = account_repository
        self.catalog_repo = catalog_repository
        self.relationships = relationship_service
        self.activities = activity_service
        self.kafka = kafka

    async def share_photo(self, author_id: int, draft: PhotoShareDraft) -> PhotoShare:
        """
        Share one or more photos

        Args:
            author_id: Sharing user
            draft: Photos, caption, privacy and optional trip/destination

        Returns:
            The stored share

        Raises:
            InvalidTargetError: If no photo is given
        """
        photos = draft.normalized_photos()
        if not photos:
            raise InvalidTargetError("At least one photo is required")

        share = await self.photo_repo.create(
            user_id=author_id,
            photos=photos,
            privacy=draft.privacy,
            caption=draft.caption,
            trip_id=draft.trip_id,
            destination_id=draft.destination_id,
        )

        context = await self._snapshot_context(share)
        await self.activities.record_photo_shared(share, **context)
        await self.kafka.publish_photo_shared(share.id, author_id, share.privacy.value)
        logger.info(f"User {author_id} shared {share.photo_count} photo(s) as share {share.id}")
        return share

    async def _snapshot_context(self, share: PhotoShare) -> Dict[str, Optional[str]]:
        """Trip and destination names at share time, best-effort"""
        context: Dict[str, Optional[str]] = {}
        try:
            if share.trip_id:
                trip = (await self.catalog_repo.find_trips([share.trip_id])).get(share.trip_id)
                if trip:
                    context["trip_name"] = trip.name
            if share.destination_id:
                destination = (
                    await self.catalog_repo.find_destinations([share.destination_id])
                ).get(share.destination_id)
                if destination:
                    context["destination_name"] = destination.name
                    context["location"] = destination.location
        except Exception as e:
            logger.warning(f"Failed to resolve context of photo share {share.id}: {e}")
        return context

    async def _visible_share(self, viewer_id: Optional[int], share_id: int) -> PhotoShare:
        share = await self.photo_repo.find_by_id(share_id)
        if share is None:
            raise NotFoundError("Photo share not found")

        is_friend = False
        if share.privacy == PhotoPrivacy.CONTACTS and viewer_id is not None:
            is_friend = await self.relationships.are_friends(viewer_id, share.user_id)
        if not share.is_visible_to(viewer_id, is_friend):
            raise UnauthorizedError("You cannot view this photo share")
        return share

    async def get_photo_share(self, viewer_id: Optional[int], share_id: int) -> PhotoShare:
        return await self._visible_share(viewer_id, share_id)

    async def get_user_photo_shares(
        self,
        viewer_id: Optional[int],
        user_id: int,
        limit: Optional[int] = None,
        before: Optional[FeedCursor] = None,
    ) -> List[PhotoShare]:
        """Shares of user_id that viewer_id may see, newest first"""
        limit = max(1, min(limit or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE))
        friends = frozenset()
        if viewer_id is not None and viewer_id != user_id:
            if await self.relationships.are_friends(viewer_id, user_id):
                friends = frozenset({user_id})
        scope = FeedScope(viewer_id=viewer_id, friend_ids=friends)
        return await self.photo_repo.list_for_users([user_id], limit, before, scope)

    async def like_photo(self, liker_id: int, share_id: int) -> PhotoLike:
        """
        Like a photo share

        Raises:
            NotFoundError: If the share does not exist
            UnauthorizedError: If the liker cannot see the share
            ConflictError: If the liker already likes the share
        """
        share = await self._visible_share(liker_id, share_id)
        like = await self.photo_repo.add_like(share_id, liker_id)

        if not share.is_owner(liker_id):
            liker_name = await self._display_name(liker_id)
            await self.activities.record_photo_liked(share, liker_id, liker_name)

        await self.kafka.publish_photo_liked(share_id, liker_id, share.user_id)
        logger.info(f"User {liker_id} liked photo share {share_id}")
        return like

    async def _display_name(self, user_id: int) -> Optional[str]:
        try:
            account = await self.account_repo.find_by_id(user_id)
        except Exception as e:
            logger.warning(f"Failed to load account {user_id}: {e}")
            return None
        return account.name if account else None

    async def unlike_photo(self, liker_id: int, share_id: int) -> bool:
        """Remove a like; unliking twice is not an error"""
        removed = await self.photo_repo.remove_like(share_id, liker_id)
        if removed:
            logger.info(f"User {liker_id} unliked photo share {share_id}")
        return removed

    async def get_like_count(self, share_id: int) -> int:
        return await self.photo_repo.count_likes(share_id)

    async def delete_photo_share(self, author_id: int, share_id: int):
        """
        Delete a share together with its likes

        Raises:
            NotFoundError: If the share does not exist
            UnauthorizedError: If author_id did not create the share
        """
        share = await self.photo_repo.find_by_id(share_id)
        if share is None:
            raise NotFoundError("Photo share not found")
        if not share.is_owner(author_id):
            raise UnauthorizedError("You can only delete your own photo shares")

        await self.photo_repo.delete(share_id)
        await self.kafka.publish_photo_deleted(share_id, author_id)
        logger.info(f"User {author_id} deleted photo share {share_id}")
