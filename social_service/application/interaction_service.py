"""
Activity likes, comments and notifications
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ..config import settings
from ..domain.models import (
    Account,
    Activity,
    ActivityComment,
    ActivityLike,
    ActivityLikeSummary,
    Notification,
    PhotoPrivacy,
    can_view,
)
from ..domain.repositories import (
    IAccountRepository,
    IActivityInteractionRepository,
    IActivityRepository,
)
from ..exceptions import InvalidTargetError, NotFoundError, UnauthorizedError
from ..kafka_producer import KafkaProducerManager
from .relationship_service import RelationshipService

logger = logging.getLogger(__name__)


class ActivityInteractionService:
    """Business logic for reacting to activities and reading what others reacted to"""

    def __init__(
        self,
        interaction_repository: IActivityInteractionRepository,
        activity_repository: IActivityRepository,
        account_repository: IAccountRepository,
        relationship_service: RelationshipService,
        kafka: KafkaProducerManager,
    ):
        self.interaction_repo = interaction_repository
        self.activity_repo = activity_repository
        self.account_repo = account_repository
        self.relationships = relationship_service
        self.kafka = kafka

    async def _visible_activity(self, viewer_id: Optional[int], activity_id: int) -> Activity:
        activity = await self.activity_repo.find_by_id(activity_id)
        if activity is None:
            raise NotFoundError("Activity not found")

        privacy = activity.privacy
        if privacy is not None:
            is_friend = False
            if privacy == PhotoPrivacy.CONTACTS and viewer_id not in (None, activity.user_id):
                is_friend = await self.relationships.are_friends(viewer_id, activity.user_id)
            if not can_view(privacy, activity.user_id, viewer_id, is_friend):
                raise UnauthorizedError("You cannot view this activity")
        return activity

    async def like_activity(self, user_id: int, activity_id: int) -> ActivityLike:
        """
        Like an activity

        Raises:
            NotFoundError: If the activity does not exist
            UnauthorizedError: If the user cannot see the activity
            ConflictError: If the user already likes the activity
        """
        activity = await self._visible_activity(user_id, activity_id)
        like = await self.interaction_repo.add_like(activity_id, user_id)
        await self.kafka.publish_activity_liked(activity_id, user_id, activity.user_id)
        logger.info(f"User {user_id} liked activity {activity_id}")
        return like

    async def unlike_activity(self, user_id: int, activity_id: int) -> bool:
        """Remove a like; unliking twice is not an error"""
        removed = await self.interaction_repo.remove_like(activity_id, user_id)
        if removed:
            logger.info(f"User {user_id} unliked activity {activity_id}")
        return removed

    async def toggle_activity_like(self, user_id: int, activity_id: int) -> bool:
        """Like if not liked yet, unlike otherwise. Returns whether the user now likes it."""
        if await self.unlike_activity(user_id, activity_id):
            return False
        await self.like_activity(user_id, activity_id)
        return True

    async def get_activity_likes(
        self, viewer_id: Optional[int], activity_ids: Iterable[int]
    ) -> List[ActivityLikeSummary]:
        """Like counters in the order the IDs were given"""
        ids = list(dict.fromkeys(activity_ids))
        summaries = await self.interaction_repo.like_summaries(ids, viewer_id)
        return [summaries.get(activity_id, ActivityLikeSummary(activity_id)) for activity_id in ids]

    async def add_activity_comment(
        self, user_id: int, activity_id: int, content: str
    ) -> ActivityComment:
        """
        Comment on an activity

        Raises:
            InvalidTargetError: If the comment is blank or too long
            NotFoundError: If the activity does not exist
            UnauthorizedError: If the user cannot see the activity
        """
        text = (content or "").strip()
        if not text:
            raise InvalidTargetError("Comment must not be empty")
        if len(text) > settings.MAX_COMMENT_LENGTH:
            raise InvalidTargetError(
                f"Comment must be at most {settings.MAX_COMMENT_LENGTH} characters"
            )

        activity = await self._visible_activity(user_id, activity_id)
        comment = await self.interaction_repo.add_comment(activity_id, user_id, text)
        comment.author = (await self._accounts([user_id])).get(user_id)

        await self.kafka.publish_activity_commented(
            activity_id, comment.id, user_id, activity.user_id
        )
        logger.info(f"User {user_id} commented on activity {activity_id}")
        return comment

    async def get_activity_comments(self, activity_ids: Iterable[int]) -> List[ActivityComment]:
        """Comments on the given activities, oldest first, with their authors"""
        comments = await self.interaction_repo.list_comments(activity_ids)
        authors = await self._accounts(comment.user_id for comment in comments)
        for comment in comments:
            comment.author = authors.get(comment.user_id)
        return comments

    async def delete_activity_comment(self, user_id: int, comment_id: int):
        """
        Delete a comment

        Raises:
            NotFoundError: If the comment does not exist
            UnauthorizedError: If user_id did not write the comment
        """
        comment = await self.interaction_repo.find_comment(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")
        if comment.user_id != user_id:
            raise UnauthorizedError("You can only delete your own comments")

        await self.interaction_repo.delete_comment(comment_id)
        logger.info(f"User {user_id} deleted comment {comment_id}")

    async def get_activity_notifications(
        self, user_id: int, limit: Optional[int] = None
    ) -> List[Notification]:
        """
        What others did to user_id's activities and photos, newest first

        Covers likes and comments on activities plus photo likes.
        """
        if limit is None:
            limit = settings.DEFAULT_NOTIFICATION_LIMIT
        limit = max(1, min(limit, settings.MAX_NOTIFICATION_LIMIT))

        notifications = await self.interaction_repo.list_notifications(user_id, limit)
        actors = await self._accounts(n.actor_id for n in notifications)
        for notification in notifications:
            actor = actors.get(notification.actor_id)
            if actor is not None:
                notification.actor_nickname = actor.name
                notification.actor_avatar_url = actor.avatar_url
        return notifications

    async def get_unread_notification_count(self, user_id: int) -> int:
        """Notifications since the user last marked them read, capped at the page maximum"""
        since = await self.interaction_repo.last_read_at(user_id)
        unread = await self.interaction_repo.list_notifications(
            user_id, settings.MAX_NOTIFICATION_LIMIT, since
        )
        return len(unread)

    async def mark_notifications_read(self, user_id: int) -> datetime:
        return await self.interaction_repo.mark_read(user_id)

    async def _accounts(self, user_ids: Iterable[int]) -> Dict[int, Account]:
        wanted = set(user_ids)
        if not wanted:
            return {}
        try:
            return await self.account_repo.find_many(wanted)
        except Exception as e:
            logger.warning(f"Failed to load accounts {sorted(wanted)}: {e}")
            return {}
