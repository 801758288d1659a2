"""
Repository implementations - Data access layer
"""
import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import asyncpg

from ...domain.models import (
    PHOTO_ACTIVITY_TYPES,
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
    NotificationType,
    PhotoEntry,
    PhotoLike,
    PhotoPrivacy,
    PhotoShare,
    TripRef,
    payload_from_metadata,
)
from ...domain.repositories import (
    IAccountRepository,
    IActivityInteractionRepository,
    IActivityRepository,
    ICatalogRepository,
    IPhotoShareRepository,
    IRelationshipRepository,
)
from ...exceptions import ConflictError, NotFoundError
from .connection import Database


def _load_json(value: Any, default: Any) -> Any:
    """asyncpg returns JSONB columns as text unless a codec is registered"""
    if value is None:
        return default
    if isinstance(value, str):
        return json.loads(value)
    return value


def _before_clause(time_column: str, id_column: str, before: FeedCursor, values: List[Any]) -> str:
    """Keyset predicate for rows strictly older than the cursor"""
    values.extend([before.created_at, before.sequence])
    return f"({time_column}, {id_column}) < (${len(values) - 1}, ${len(values)})"


def _visibility_clause(privacy_expr: str, author_column: str, scope: FeedScope, values: List[Any]) -> str:
    """
    SQL form of can_view: public to everyone, contacts to the author and
    mutual friends, private to the author only
    """
    values.append(scope.viewer_id)
    viewer = len(values)
    values.append(sorted(scope.friend_ids))
    friends = len(values)
    return (
        f"({privacy_expr} = 'public'"
        f" OR {author_column} = ${viewer}::int"
        f" OR ({privacy_expr} = 'contacts' AND {author_column} = ANY(${friends}::int[])))"
    )


class AccountRepository(IAccountRepository):
    """Account reader over the trip planner's user_profiles table"""

    _COLUMNS = """
        id, nickname, display_name, avatar_url, bio, location, website,
        is_public_profile, is_verified, created_at
    """

    def __init__(self, db: Database):
        self.db = db

    async def find_by_id(self, user_id: int) -> Optional[Account]:
        row = await self.db.fetch_one(
            f"SELECT {self._COLUMNS} FROM user_profiles WHERE id = $1",
            user_id,
        )
        return Account(**row) if row else None

    async def find_many(self, user_ids: Iterable[int]) -> Dict[int, Account]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        rows = await self.db.fetch_all(
            f"SELECT {self._COLUMNS} FROM user_profiles WHERE id = ANY($1::int[])",
            ids,
        )
        return {row["id"]: Account(**row) for row in rows}

    async def count_trips(self, user_id: int) -> int:
        count = await self.db.fetch_value(
            "SELECT COUNT(*) FROM trips WHERE user_id = $1", user_id
        )
        return count or 0


class RelationshipRepository(IRelationshipRepository):
    """Follow edge repository implementation using PostgreSQL"""

    _COLUMNS = "follower_id, following_id, status, created_at, updated_at"

    def __init__(self, db: Database):
        self.db = db

    def _row_to_edge(self, row: Optional[Dict[str, Any]]) -> Optional[FollowEdge]:
        """Convert database row to FollowEdge model"""
        if not row:
            return None
        data = dict(row)
        data["status"] = FollowStatus(data["status"])
        return FollowEdge(**data)

    async def create(
        self, follower_id: int, following_id: int, status: FollowStatus
    ) -> FollowEdge:
        try:
            row = await self.db.fetch_one(
                f"""
                INSERT INTO follows (follower_id, following_id, status)
                VALUES ($1, $2, $3)
                RETURNING {self._COLUMNS}
                """,
                follower_id,
                following_id,
                status.value,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("A follow relationship already exists")
        return self._row_to_edge(row)

    async def find(self, follower_id: int, following_id: int) -> Optional[FollowEdge]:
        row = await self.db.fetch_one(
            f"""
            SELECT {self._COLUMNS}
            FROM follows
            WHERE follower_id = $1 AND following_id = $2
            """,
            follower_id,
            following_id,
        )
        return self._row_to_edge(row)

    async def transition(
        self,
        follower_id: int,
        following_id: int,
        from_statuses: Iterable[FollowStatus],
        to_status: FollowStatus,
    ) -> Optional[FollowEdge]:
        row = await self.db.fetch_one(
            f"""
            UPDATE follows
            SET status = $4, updated_at = NOW()
            WHERE follower_id = $1 AND following_id = $2
              AND status = ANY($3::text[])
            RETURNING {self._COLUMNS}
            """,
            follower_id,
            following_id,
            [s.value for s in from_statuses],
            to_status.value,
        )
        return self._row_to_edge(row)

    async def delete(self, follower_id: int, following_id: int) -> bool:
        row = await self.db.fetch_one(
            """
            DELETE FROM follows
            WHERE follower_id = $1 AND following_id = $2
            RETURNING follower_id
            """,
            follower_id,
            following_id,
        )
        return row is not None

    async def list_followers(
        self, user_id: int, status: FollowStatus, limit: int, offset: int = 0
    ) -> List[FollowEdge]:
        rows = await self.db.fetch_all(
            f"""
            SELECT {self._COLUMNS}
            FROM follows
            WHERE following_id = $1 AND status = $2
            ORDER BY created_at DESC, id DESC
            LIMIT $3 OFFSET $4
            """,
            user_id,
            status.value,
            limit,
            offset,
        )
        return [self._row_to_edge(row) for row in rows]

    async def list_following(
        self, user_id: int, status: FollowStatus, limit: int, offset: int = 0
    ) -> List[FollowEdge]:
        rows = await self.db.fetch_all(
            f"""
            SELECT {self._COLUMNS}
            FROM follows
            WHERE follower_id = $1 AND status = $2
            ORDER BY created_at DESC, id DESC
            LIMIT $3 OFFSET $4
            """,
            user_id,
            status.value,
            limit,
            offset,
        )
        return [self._row_to_edge(row) for row in rows]

    async def following_ids(self, user_id: int) -> List[int]:
        rows = await self.db.fetch_all(
            """
            SELECT following_id FROM follows
            WHERE follower_id = $1 AND status = 'accepted'
            """,
            user_id,
        )
        return [row["following_id"] for row in rows]

    async def friend_ids(self, user_id: int) -> List[int]:
        rows = await self.db.fetch_all(
            """
            SELECT f1.following_id
            FROM follows f1
            INNER JOIN follows f2
                ON f2.follower_id = f1.following_id AND f2.following_id = f1.follower_id
            WHERE f1.follower_id = $1
              AND f1.status = 'accepted' AND f2.status = 'accepted'
            """,
            user_id,
        )
        return [row["following_id"] for row in rows]

    async def count_followers(self, user_id: int, status: FollowStatus) -> int:
        count = await self.db.fetch_value(
            "SELECT COUNT(*) FROM follows WHERE following_id = $1 AND status = $2",
            user_id,
            status.value,
        )
        return count or 0

    async def count_following(self, user_id: int, status: FollowStatus) -> int:
        count = await self.db.fetch_value(
            "SELECT COUNT(*) FROM follows WHERE follower_id = $1 AND status = $2",
            user_id,
            status.value,
        )
        return count or 0


class ActivityRepository(IActivityRepository):
    """Activity repository implementation using PostgreSQL"""

    _COLUMNS = """
        id, user_id, activity_type, title, description, metadata,
        related_trip_id, related_destination_id, created_at
    """

    def __init__(self, db: Database):
        self.db = db

    def _row_to_activity(self, row: Optional[Dict[str, Any]]) -> Optional[Activity]:
        """Convert database row to Activity model"""
        if not row:
            return None
        data = dict(row)
        activity_type = ActivityType(data.pop("activity_type"))
        metadata = _load_json(data.pop("metadata"), {})
        return Activity(
            activity_type=activity_type,
            payload=payload_from_metadata(activity_type, metadata),
            **data,
        )

    async def create(self, draft: ActivityDraft) -> Activity:
        row = await self.db.fetch_one(
            f"""
            INSERT INTO user_activities (
                user_id, activity_type, title, description, metadata,
                related_trip_id, related_destination_id
            )
            VALUES ($1, $2, $3, $4, $5::jsonb, $6, $7)
            RETURNING {self._COLUMNS}
            """,
            draft.user_id,
            draft.activity_type.value,
            draft.title,
            draft.description,
            json.dumps(draft.payload.to_metadata()),
            draft.related_trip_id,
            draft.related_destination_id,
        )
        return self._row_to_activity(row)

    async def find_by_id(self, activity_id: int) -> Optional[Activity]:
        row = await self.db.fetch_one(
            f"SELECT {self._COLUMNS} FROM user_activities WHERE id = $1",
            activity_id,
        )
        return self._row_to_activity(row)

    async def list_for_users(
        self,
        user_ids: Iterable[int],
        limit: int,
        before: Optional[FeedCursor] = None,
        scope: Optional[FeedScope] = None,
        exclude_types: Iterable[ActivityType] = (),
    ) -> List[Activity]:
        ids = list(set(user_ids))
        if not ids or limit <= 0:
            return []

        values: List[Any] = [ids]
        conditions = ["user_id = ANY($1::int[])"]
        if before is not None:
            conditions.append(_before_clause("created_at", "id", before, values))

        excluded = [kind.value for kind in exclude_types]
        if excluded:
            values.append(excluded)
            conditions.append(f"activity_type <> ALL(${len(values)}::text[])")

        if scope is not None:
            # Only photo activities carry a privacy snapshot
            values.append([kind.value for kind in PHOTO_ACTIVITY_TYPES])
            photo_types = len(values)
            visible = _visibility_clause("metadata->>'privacy'", "user_id", scope, values)
            conditions.append(
                f"(activity_type <> ALL(${photo_types}::text[])"
                f" OR metadata->>'privacy' IS NULL OR {visible})"
            )

        values.append(limit)
        rows = await self.db.fetch_all(
            f"""
            SELECT {self._COLUMNS}
            FROM user_activities
            WHERE {" AND ".join(conditions)}
            ORDER BY created_at DESC, id DESC
            LIMIT ${len(values)}
            """,
            *values,
        )
        return [self._row_to_activity(row) for row in rows]

    async def find_photo_snapshots(
        self, share_ids: Iterable[int]
    ) -> Dict[int, Dict[str, Any]]:
        ids = list(set(share_ids))
        if not ids:
            return {}
        rows = await self.db.fetch_all(
            """
            SELECT DISTINCT ON ((metadata->>'photo_share_id')::bigint)
                   (metadata->>'photo_share_id')::bigint AS photo_share_id, metadata
            FROM user_activities
            WHERE activity_type = $1
              AND (metadata->>'photo_share_id')::bigint = ANY($2::bigint[])
            ORDER BY (metadata->>'photo_share_id')::bigint, id
            """,
            ActivityType.PHOTO_SHARED.value,
            ids,
        )
        return {row["photo_share_id"]: _load_json(row["metadata"], {}) for row in rows}


class PhotoShareRepository(IPhotoShareRepository):
    """Photo share repository implementation using PostgreSQL"""

    # like_count is derived from photo_likes on every read
    _SELECT = """
        SELECT ps.id, ps.user_id, ps.trip_id, ps.destination_id, ps.caption,
               ps.privacy, ps.photos, ps.created_at, ps.updated_at,
               (SELECT COUNT(*) FROM photo_likes pl
                WHERE pl.photo_share_id = ps.id) AS like_count
        FROM photo_shares ps
    """

    def __init__(self, db: Database):
        self.db = db

    def _row_to_share(self, row: Optional[Dict[str, Any]]) -> Optional[PhotoShare]:
        """Convert database row to PhotoShare model"""
        if not row:
            return None
        data = dict(row)
        data["privacy"] = PhotoPrivacy(data["privacy"])
        data["photos"] = [PhotoEntry(**photo) for photo in _load_json(data["photos"], [])]
        return PhotoShare(**data)

    async def create(
        self,
        user_id: int,
        photos: List[PhotoEntry],
        privacy: PhotoPrivacy,
        caption: Optional[str] = None,
        trip_id: Optional[int] = None,
        destination_id: Optional[int] = None,
    ) -> PhotoShare:
        row = await self.db.fetch_one(
            """
            INSERT INTO photo_shares (user_id, trip_id, destination_id, caption, privacy, photos)
            VALUES ($1, $2, $3, $4, $5, $6::jsonb)
            RETURNING id, user_id, trip_id, destination_id, caption, privacy, photos,
                      created_at, updated_at, 0 AS like_count
            """,
            user_id,
            trip_id,
            destination_id,
            caption,
            privacy.value,
            json.dumps([photo.to_dict() for photo in photos]),
        )
        return self._row_to_share(row)

    async def find_by_id(self, share_id: int) -> Optional[PhotoShare]:
        row = await self.db.fetch_one(f"{self._SELECT} WHERE ps.id = $1", share_id)
        return self._row_to_share(row)

    async def delete(self, share_id: int) -> bool:
        row = await self.db.fetch_one(
            "DELETE FROM photo_shares WHERE id = $1 RETURNING id", share_id
        )
        return row is not None

    async def list_for_users(
        self,
        user_ids: Iterable[int],
        limit: int,
        before: Optional[FeedCursor] = None,
        scope: Optional[FeedScope] = None,
    ) -> List[PhotoShare]:
        ids = list(set(user_ids))
        if not ids or limit <= 0:
            return []

        values: List[Any] = [ids]
        conditions = ["ps.user_id = ANY($1::int[])"]
        if before is not None:
            conditions.append(_before_clause("ps.created_at", "ps.id", before, values))
        if scope is not None:
            conditions.append(_visibility_clause("ps.privacy", "ps.user_id", scope, values))

        values.append(limit)
        rows = await self.db.fetch_all(
            f"""
            {self._SELECT}
            WHERE {" AND ".join(conditions)}
            ORDER BY ps.created_at DESC, ps.id DESC
            LIMIT ${len(values)}
            """,
            *values,
        )
        return [self._row_to_share(row) for row in rows]

    async def add_like(self, share_id: int, user_id: int) -> PhotoLike:
        try:
            row = await self.db.fetch_one(
                """
                INSERT INTO photo_likes (photo_share_id, user_id)
                VALUES ($1, $2)
                RETURNING id, photo_share_id, user_id, created_at
                """,
                share_id,
                user_id,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("Photo already liked")
        except asyncpg.ForeignKeyViolationError:
            raise NotFoundError("Photo share not found")
        return PhotoLike(**row)

    async def find_like(self, share_id: int, user_id: int) -> Optional[PhotoLike]:
        row = await self.db.fetch_one(
            """
            SELECT id, photo_share_id, user_id, created_at
            FROM photo_likes
            WHERE photo_share_id = $1 AND user_id = $2
            """,
            share_id,
            user_id,
        )
        return PhotoLike(**row) if row else None

    async def remove_like(self, share_id: int, user_id: int) -> bool:
        row = await self.db.fetch_one(
            """
            DELETE FROM photo_likes
            WHERE photo_share_id = $1 AND user_id = $2
            RETURNING id
            """,
            share_id,
            user_id,
        )
        return row is not None

    async def count_likes(self, share_id: int) -> int:
        count = await self.db.fetch_value(
            "SELECT COUNT(*) FROM photo_likes WHERE photo_share_id = $1", share_id
        )
        return count or 0


class CatalogRepository(ICatalogRepository):
    """Reader over the trip planner's trips and destinations tables"""

    def __init__(self, db: Database):
        self.db = db

    async def find_trips(self, trip_ids: Iterable[int]) -> Dict[int, TripRef]:
        ids = list(set(trip_ids))
        if not ids:
            return {}
        rows = await self.db.fetch_all(
            "SELECT id, name FROM trips WHERE id = ANY($1::int[])", ids
        )
        return {row["id"]: TripRef(**row) for row in rows}

    async def find_destinations(
        self, destination_ids: Iterable[int]
    ) -> Dict[int, DestinationRef]:
        ids = list(set(destination_ids))
        if not ids:
            return {}
        rows = await self.db.fetch_all(
            "SELECT id, name, location FROM destinations WHERE id = ANY($1::int[])",
            ids,
        )
        return {row["id"]: DestinationRef(**row) for row in rows}


class ActivityInteractionRepository(IActivityInteractionRepository):
    """Activity likes, comments and notifications using PostgreSQL"""

    _COMMENT_COLUMNS = "id, activity_id, user_id, content, created_at, updated_at"

    def __init__(self, db: Database):
        self.db = db

    async def add_like(self, activity_id: int, user_id: int) -> ActivityLike:
        try:
            row = await self.db.fetch_one(
                """
                INSERT INTO activity_likes (activity_id, user_id)
                VALUES ($1, $2)
                RETURNING id, activity_id, user_id, created_at
                """,
                activity_id,
                user_id,
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("Activity already liked")
        except asyncpg.ForeignKeyViolationError:
            raise NotFoundError("Activity not found")
        return ActivityLike(**row)

    async def remove_like(self, activity_id: int, user_id: int) -> bool:
        row = await self.db.fetch_one(
            """
            DELETE FROM activity_likes
            WHERE activity_id = $1 AND user_id = $2
            RETURNING id
            """,
            activity_id,
            user_id,
        )
        return row is not None

    async def like_summaries(
        self, activity_ids: Iterable[int], viewer_id: Optional[int] = None
    ) -> Dict[int, ActivityLikeSummary]:
        ids = list(set(activity_ids))
        if not ids:
            return {}
        rows = await self.db.fetch_all(
            """
            SELECT activity_id,
                   COUNT(*) AS like_count,
                   COALESCE(BOOL_OR(user_id = $2::int), FALSE) AS user_liked
            FROM activity_likes
            WHERE activity_id = ANY($1::bigint[])
            GROUP BY activity_id
            """,
            ids,
            viewer_id,
        )
        summaries = {activity_id: ActivityLikeSummary(activity_id) for activity_id in ids}
        for row in rows:
            summaries[row["activity_id"]] = ActivityLikeSummary(**row)
        return summaries

    async def add_comment(self, activity_id: int, user_id: int, content: str) -> ActivityComment:
        try:
            row = await self.db.fetch_one(
                f"""
                INSERT INTO activity_comments (activity_id, user_id, content)
                VALUES ($1, $2, $3)
                RETURNING {self._COMMENT_COLUMNS}
                """,
                activity_id,
                user_id,
                content,
            )
        except asyncpg.ForeignKeyViolationError:
            raise NotFoundError("Activity not found")
        return ActivityComment(**row)

    async def find_comment(self, comment_id: int) -> Optional[ActivityComment]:
        row = await self.db.fetch_one(
            f"SELECT {self._COMMENT_COLUMNS} FROM activity_comments WHERE id = $1",
            comment_id,
        )
        return ActivityComment(**row) if row else None

    async def delete_comment(self, comment_id: int) -> bool:
        row = await self.db.fetch_one(
            "DELETE FROM activity_comments WHERE id = $1 RETURNING id", comment_id
        )
        return row is not None

    async def list_comments(self, activity_ids: Iterable[int]) -> List[ActivityComment]:
        ids = list(set(activity_ids))
        if not ids:
            return []
        rows = await self.db.fetch_all(
            f"""
            SELECT {self._COMMENT_COLUMNS}
            FROM activity_comments
            WHERE activity_id = ANY($1::bigint[])
            ORDER BY created_at ASC, id ASC
            """,
            ids,
        )
        return [ActivityComment(**row) for row in rows]

    async def list_notifications(
        self, user_id: int, limit: int, since: Optional[datetime] = None
    ) -> List[Notification]:
        rows = await self.db.fetch_all(
            """
            SELECT * FROM (
                SELECT 'like' AS kind, al.id AS source_id, al.user_id AS actor_id,
                       al.created_at, ua.id AS activity_id, ua.activity_type,
                       ua.title AS activity_title, NULL::bigint AS photo_share_id,
                       NULL::text AS content
                FROM activity_likes al
                JOIN user_activities ua ON ua.id = al.activity_id
                WHERE ua.user_id = $1 AND al.user_id <> $1

                UNION ALL

                SELECT 'comment', ac.id, ac.user_id, ac.created_at, ua.id,
                       ua.activity_type, ua.title, NULL::bigint, ac.content
                FROM activity_comments ac
                JOIN user_activities ua ON ua.id = ac.activity_id
                WHERE ua.user_id = $1 AND ac.user_id <> $1

                UNION ALL

                SELECT 'photo_like', ua.id, (ua.metadata->>'liker_id')::int, ua.created_at,
                       NULL::bigint, NULL::text, NULL::text,
                       (ua.metadata->>'photo_share_id')::bigint, NULL::text
                FROM user_activities ua
                WHERE ua.user_id = $1
                  AND ua.activity_type = 'photo_liked'
                  AND ua.metadata ? 'liker_id'
            ) notifications
            WHERE $3::timestamptz IS NULL OR created_at > $3::timestamptz
            ORDER BY created_at DESC, source_id DESC
            LIMIT $2
            """,
            user_id,
            limit,
            since,
        )
        return [
            Notification(
                notification_id=f"{row['kind']}:{row['source_id']}",
                notification_type=NotificationType(row["kind"]),
                actor_id=row["actor_id"],
                created_at=row["created_at"],
                activity_id=row["activity_id"],
                activity_type=ActivityType(row["activity_type"]) if row["activity_type"] else None,
                activity_title=row["activity_title"],
                photo_share_id=row["photo_share_id"],
                content=row["content"],
            )
            for row in rows
        ]

    async def last_read_at(self, user_id: int) -> Optional[datetime]:
        return await self.db.fetch_value(
            "SELECT last_read_at FROM notification_reads WHERE user_id = $1", user_id
        )

    async def mark_read(self, user_id: int) -> datetime:
        return await self.db.fetch_value(
            """
            INSERT INTO notification_reads (user_id, last_read_at)
            VALUES ($1, NOW())
            ON CONFLICT (user_id) DO UPDATE SET last_read_at = EXCLUDED.last_read_at
            RETURNING last_read_at
            """,
            user_id,
        )
