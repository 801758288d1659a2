"""
Relationship service - follow and friendship state machine
"""
import logging
from dataclasses import asdict
from typing import List, Optional, Tuple

from ..cache import RedisCache
from ..domain.models import (
    Connection,
    FollowEdge,
    FollowStatus,
    FriendshipStatus,
    Relationship,
    RelationshipStatus,
    SocialStats,
)
from ..domain.repositories import IAccountRepository, IRelationshipRepository
from ..exceptions import (
    ConflictError,
    InvalidTargetError,
    NotFoundError,
    UnauthorizedError,
)
from ..kafka_producer import KafkaProducerManager
from .activity_service import ActivityService

logger = logging.getLogger(__name__)


class RelationshipService:
    """Business logic for follow requests, friendships and social counters"""

    def __init__(
        self,
        relationship_repository: IRelationshipRepository,
        account_repository: IAccountRepository,
        activity_service: ActivityService,
        cache: RedisCache,
        kafka: KafkaProducerManager,
    ):
        self.relationship_repo = relationship_repository
        self.account_repo = account_repository
        self.activities = activity_service
        self.cache = cache
        self.kafka = kafka

    async def request_follow(self, requester_id: int, target_id: int) -> FollowEdge:
        """
        Send a follow request

        Args:
            requester_id: User who wants to follow
            target_id: User to be followed

        Returns:
            The pending edge requester -> target

        Raises:
            InvalidTargetError: If requester and target are the same account
            ConflictError: If a pending or accepted edge already exists
        """
        if requester_id == target_id:
            raise InvalidTargetError("You cannot follow yourself")

        existing = await self.relationship_repo.find(requester_id, target_id)
        if existing is None:
            edge = await self.relationship_repo.create(
                requester_id, target_id, FollowStatus.PENDING
            )
        elif existing.is_declined():
            # Re-request reopens the declined edge in place
            edge = await self.relationship_repo.transition(
                requester_id, target_id, [FollowStatus.DECLINED], FollowStatus.PENDING
            )
            if edge is None:
                raise ConflictError("A follow request already exists")
        elif existing.is_accepted():
            raise ConflictError("You are already following this user")
        else:
            raise ConflictError("Follow request already pending")

        await self.cache.invalidate_user_cache(requester_id, target_id)
        await self.kafka.publish_follow_requested(requester_id, target_id)
        logger.info(f"User {requester_id} requested to follow {target_id}")
        return edge

    async def _incoming_edge(self, target_id: int, requester_id: int) -> FollowEdge:
        """
        Edge requester -> target that target is allowed to act on

        Raises:
            UnauthorizedError: If the only open request runs target -> requester
            NotFoundError: If requester never asked to follow target
        """
        if requester_id == target_id:
            raise InvalidTargetError("You cannot answer your own follow request")

        edge = await self.relationship_repo.find(requester_id, target_id)
        if edge is not None:
            return edge

        reverse = await self.relationship_repo.find(target_id, requester_id)
        if reverse is not None and reverse.is_pending():
            raise UnauthorizedError("Only the recipient can answer a follow request")
        raise NotFoundError("Follow request not found")

    async def accept_follow(self, target_id: int, requester_id: int) -> FollowEdge:
        """
        Accept a pending follow request addressed to target_id

        Accepting an already accepted request succeeds without side effects.
        """
        edge = await self._incoming_edge(target_id, requester_id)
        if edge.is_accepted():
            return edge
        if edge.is_declined():
            raise NotFoundError("No pending follow request from this user")

        updated = await self.relationship_repo.transition(
            requester_id, target_id, [FollowStatus.PENDING], FollowStatus.ACCEPTED
        )
        if updated is None:
            current = await self.relationship_repo.find(requester_id, target_id)
            if current is not None and current.is_accepted():
                return current
            raise NotFoundError("No pending follow request from this user")

        await self._on_accepted(requester_id, target_id)
        return updated

    async def decline_follow(self, target_id: int, requester_id: int) -> FollowEdge:
        """Decline a pending follow request addressed to target_id"""
        edge = await self._incoming_edge(target_id, requester_id)
        if edge.is_declined():
            return edge
        if edge.is_accepted():
            raise ConflictError("Follow request was already accepted")

        updated = await self.relationship_repo.transition(
            requester_id, target_id, [FollowStatus.PENDING], FollowStatus.DECLINED
        )
        if updated is None:
            current = await self.relationship_repo.find(requester_id, target_id)
            if current is None:
                raise NotFoundError("Follow request not found")
            if current.is_accepted():
                raise ConflictError("Follow request was already accepted")
            return current

        await self.cache.invalidate_user_cache(requester_id, target_id)
        await self.kafka.publish_follow_declined(requester_id, target_id)
        logger.info(f"User {target_id} declined follow request from {requester_id}")
        return updated

    async def accept_friend_request(self, target_id: int, requester_id: int) -> FollowEdge:
        """
        Accept requester's follow request and follow them back

        Each step is idempotent, so a retried call converges on a friendship.
        """
        edge = await self.accept_follow(target_id, requester_id)

        transitioned = False
        reverse = await self.relationship_repo.find(target_id, requester_id)
        if reverse is None:
            try:
                await self.relationship_repo.create(
                    target_id, requester_id, FollowStatus.ACCEPTED
                )
                transitioned = True
            except ConflictError:
                reverse = await self.relationship_repo.find(target_id, requester_id)

        if not transitioned and reverse is not None and not reverse.is_accepted():
            promoted = await self.relationship_repo.transition(
                target_id,
                requester_id,
                [FollowStatus.PENDING, FollowStatus.DECLINED],
                FollowStatus.ACCEPTED,
            )
            transitioned = promoted is not None

        if transitioned:
            await self._on_accepted(target_id, requester_id)
        return edge

    async def _on_accepted(self, follower_id: int, following_id: int):
        await self.cache.invalidate_user_cache(follower_id, following_id)
        await self.kafka.publish_follow_accepted(follower_id, following_id)
        target_name = await self._display_name(following_id)
        await self.activities.record_user_followed(follower_id, following_id, target_name)
        logger.info(f"User {follower_id} now follows {following_id}")

    async def _display_name(self, user_id: int) -> Optional[str]:
        try:
            account = await self.account_repo.find_by_id(user_id)
        except Exception as e:
            logger.warning(f"Failed to load account {user_id}: {e}")
            return None
        return account.name if account else None

    async def unfollow(self, caller_id: int, other_id: int) -> bool:
        """Delete caller -> other, cancelling a pending request too"""
        if caller_id == other_id:
            raise InvalidTargetError("You cannot unfollow yourself")

        deleted = await self.relationship_repo.delete(caller_id, other_id)
        if deleted:
            await self.cache.invalidate_user_cache(caller_id, other_id)
            await self.kafka.publish_follow_removed(caller_id, other_id)
            logger.info(f"User {caller_id} unfollowed {other_id}")
        return deleted

    async def remove_friend(self, caller_id: int, other_id: int) -> int:
        """Delete both directed edges, returning how many existed"""
        if caller_id == other_id:
            raise InvalidTargetError("You cannot unfriend yourself")

        removed = 0
        for follower_id, following_id in ((caller_id, other_id), (other_id, caller_id)):
            if await self.relationship_repo.delete(follower_id, following_id):
                removed += 1
                await self.kafka.publish_follow_removed(follower_id, following_id)

        if removed:
            await self.cache.invalidate_user_cache(caller_id, other_id)
            logger.info(f"User {caller_id} removed friend {other_id}")
        return removed

    async def get_status(self, viewer_id: int, target_id: int) -> RelationshipStatus:
        """Status of the directed edge viewer -> target"""
        if viewer_id == target_id:
            return RelationshipStatus.SELF
        edge = await self.relationship_repo.find(viewer_id, target_id)
        if edge is None:
            return RelationshipStatus.NONE
        return RelationshipStatus(edge.status.value)

    @staticmethod
    def _friendship(
        outgoing: Optional[FollowEdge], incoming: Optional[FollowEdge]
    ) -> FriendshipStatus:
        if outgoing is not None and incoming is not None:
            if outgoing.is_accepted() and incoming.is_accepted():
                return FriendshipStatus.FRIENDS
        if outgoing is not None and outgoing.is_pending():
            return FriendshipStatus.PENDING_SENT
        if incoming is not None and incoming.is_pending():
            return FriendshipStatus.PENDING_RECEIVED
        return FriendshipStatus.NONE

    async def get_friendship_status(
        self, viewer_id: int, target_id: int
    ) -> FriendshipStatus:
        """Four-state friendship derived from both directed edges"""
        if viewer_id == target_id:
            return FriendshipStatus.NONE
        outgoing = await self.relationship_repo.find(viewer_id, target_id)
        incoming = await self.relationship_repo.find(target_id, viewer_id)
        return self._friendship(outgoing, incoming)

    async def get_relationship(self, viewer_id: int, target_id: int) -> Relationship:
        if viewer_id == target_id:
            return Relationship(
                user_id=viewer_id,
                target_user_id=target_id,
                status=RelationshipStatus.SELF,
                reverse_status=RelationshipStatus.SELF,
                friendship_status=FriendshipStatus.NONE,
            )

        outgoing = await self.relationship_repo.find(viewer_id, target_id)
        incoming = await self.relationship_repo.find(target_id, viewer_id)
        return Relationship(
            user_id=viewer_id,
            target_user_id=target_id,
            status=RelationshipStatus(outgoing.status.value) if outgoing else RelationshipStatus.NONE,
            reverse_status=RelationshipStatus(incoming.status.value) if incoming else RelationshipStatus.NONE,
            friendship_status=self._friendship(outgoing, incoming),
        )

    async def _with_accounts(
        self, edges: List[FollowEdge], other_side: str
    ) -> List[Connection]:
        ids = [getattr(edge, other_side) for edge in edges]
        accounts = await self.account_repo.find_many(ids)
        return [
            Connection(
                user_id=getattr(edge, other_side),
                status=edge.status,
                since=edge.updated_at or edge.created_at,
                account=accounts.get(getattr(edge, other_side)),
            )
            for edge in edges
        ]

    async def get_followers(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> Tuple[List[Connection], int, bool]:
        """Accounts following user_id, with total count and has_more flag"""
        offset = (page - 1) * page_size
        edges = await self.relationship_repo.list_followers(
            user_id, FollowStatus.ACCEPTED, page_size, offset
        )
        total = await self.relationship_repo.count_followers(user_id, FollowStatus.ACCEPTED)
        items = await self._with_accounts(edges, "follower_id")
        return items, total, offset + len(items) < total

    async def get_following(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> Tuple[List[Connection], int, bool]:
        """Accounts user_id follows, with total count and has_more flag"""
        offset = (page - 1) * page_size
        edges = await self.relationship_repo.list_following(
            user_id, FollowStatus.ACCEPTED, page_size, offset
        )
        total = await self.relationship_repo.count_following(user_id, FollowStatus.ACCEPTED)
        items = await self._with_accounts(edges, "following_id")
        return items, total, offset + len(items) < total

    async def get_pending_requests(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> Tuple[List[Connection], int, bool]:
        """Follow requests waiting for user_id to answer"""
        offset = (page - 1) * page_size
        edges = await self.relationship_repo.list_followers(
            user_id, FollowStatus.PENDING, page_size, offset
        )
        total = await self.relationship_repo.count_followers(user_id, FollowStatus.PENDING)
        items = await self._with_accounts(edges, "follower_id")
        return items, total, offset + len(items) < total

    async def get_friends(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> Tuple[List[Connection], int, bool]:
        """Mutual follows of user_id"""
        friend_ids = await self.get_friend_ids(user_id)
        offset = (page - 1) * page_size
        page_ids = friend_ids[offset:offset + page_size]
        accounts = await self.account_repo.find_many(page_ids)
        items = [
            Connection(
                user_id=friend_id,
                status=FollowStatus.ACCEPTED,
                account=accounts.get(friend_id),
            )
            for friend_id in page_ids
        ]
        total = len(friend_ids)
        return items, total, offset + len(items) < total

    async def get_following_ids(self, user_id: int) -> List[int]:
        return await self.relationship_repo.following_ids(user_id)

    async def get_friend_ids(self, user_id: int) -> List[int]:
        """Friend ids of user_id, served from the cached friendship index"""
        cached = await self.cache.get_friend_ids(user_id)
        if cached is not None:
            return cached

        friend_ids = sorted(await self.relationship_repo.friend_ids(user_id))
        await self.cache.set_friend_ids(user_id, friend_ids)
        return friend_ids

    async def are_friends(self, user_id: int, other_id: int) -> bool:
        if user_id == other_id:
            return False
        return other_id in await self.get_friend_ids(user_id)

    async def get_social_stats(self, user_id: int) -> SocialStats:
        """Live graph counters, cached for a short TTL"""
        cached = await self.cache.get_stats(user_id)
        if cached is not None:
            return SocialStats(**cached)

        stats = SocialStats(
            user_id=user_id,
            follower_count=await self.relationship_repo.count_followers(
                user_id, FollowStatus.ACCEPTED
            ),
            following_count=await self.relationship_repo.count_following(
                user_id, FollowStatus.ACCEPTED
            ),
            friend_count=len(await self.relationship_repo.friend_ids(user_id)),
            pending_requests_count=await self.relationship_repo.count_followers(
                user_id, FollowStatus.PENDING
            ),
            trip_count=await self.account_repo.count_trips(user_id),
        )
        await self.cache.set_stats(user_id, asdict(stats))
        return stats
