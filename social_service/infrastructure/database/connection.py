"""
Database connection and schema for Social Service
"""
import asyncpg
from typing import Optional, List, Dict, Any
import logging

from ...config import settings

logger = logging.getLogger(__name__)


class Database:
    """PostgreSQL database connection manager using asyncpg"""

    def __init__(self):
        self.pool: Optional[asyncpg.Pool] = None

    async def connect(self):
        """Create database connection pool"""
        try:
            self.pool = await asyncpg.create_pool(
                settings.DATABASE_URL,
                min_size=1,
                max_size=settings.DB_POOL_SIZE,
                command_timeout=60,
            )
            logger.info("Database connection pool created successfully")

            if settings.DB_INIT_SCHEMA:
                await self._init_schema()
        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    async def disconnect(self):
        """Close database connection pool"""
        if self.pool:
            await self.pool.close()
            logger.info("Database connection pool closed")

    async def _init_schema(self):
        """Create the tables owned by this service"""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS follows (
                    id BIGSERIAL PRIMARY KEY,
                    follower_id INTEGER NOT NULL,
                    following_id INTEGER NOT NULL,
                    status VARCHAR(16) NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'accepted', 'declined')),
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    CONSTRAINT follows_pair_unique UNIQUE (follower_id, following_id),
                    CONSTRAINT follows_no_self CHECK (follower_id <> following_id)
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_follows_following_status
                ON follows (following_id, status)
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS user_activities (
                    id BIGSERIAL PRIMARY KEY,
                    user_id INTEGER NOT NULL,
                    activity_type VARCHAR(32) NOT NULL,
                    title TEXT NOT NULL,
                    description TEXT,
                    metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
                    related_trip_id INTEGER,
                    related_destination_id INTEGER,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_user_activities_user_created
                ON user_activities (user_id, created_at DESC, id DESC)
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS photo_shares (
                    id BIGSERIAL PRIMARY KEY,
                    user_id INTEGER NOT NULL,
                    trip_id INTEGER,
                    destination_id INTEGER,
                    caption TEXT,
                    privacy VARCHAR(16) NOT NULL DEFAULT 'public'
                        CHECK (privacy IN ('public', 'contacts', 'private')),
                    photos JSONB NOT NULL DEFAULT '[]'::jsonb,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_photo_shares_user_created
                ON photo_shares (user_id, created_at DESC, id DESC)
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS photo_likes (
                    id BIGSERIAL PRIMARY KEY,
                    photo_share_id BIGINT NOT NULL
                        REFERENCES photo_shares (id) ON DELETE CASCADE,
                    user_id INTEGER NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    CONSTRAINT photo_likes_pair_unique UNIQUE (photo_share_id, user_id)
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS activity_likes (
                    id BIGSERIAL PRIMARY KEY,
                    activity_id BIGINT NOT NULL
                        REFERENCES user_activities (id) ON DELETE CASCADE,
                    user_id INTEGER NOT NULL,
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    CONSTRAINT activity_likes_pair_unique UNIQUE (activity_id, user_id)
                )
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS activity_comments (
                    id BIGSERIAL PRIMARY KEY,
                    activity_id BIGINT NOT NULL
                        REFERENCES user_activities (id) ON DELETE CASCADE,
                    user_id INTEGER NOT NULL,
                    content TEXT NOT NULL
                        CHECK (length(content) > 0 AND length(content) <= 1000),
                    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)

            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_activity_comments_activity_created
                ON activity_comments (activity_id, created_at)
            """)

            await conn.execute("""
                CREATE TABLE IF NOT EXISTS notification_reads (
                    user_id INTEGER PRIMARY KEY,
                    last_read_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)

            logger.info("Database schema initialized successfully")

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """Fetch a single row"""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(query, *args)
            return dict(row) if row else None

    async def fetch_all(self, query: str, *args) -> List[Dict[str, Any]]:
        """Fetch all rows"""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
            return [dict(row) for row in rows]

    async def fetch_value(self, query: str, *args) -> Any:
        """Fetch the first column of the first row"""
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def execute(self, query: str, *args) -> str:
        """Execute a query"""
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *args)


# Global database instance
db = Database()


async def get_db() -> Database:
    """Dependency for getting database instance"""
    return db
