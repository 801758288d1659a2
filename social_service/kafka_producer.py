"""
Kafka producer for publishing social events
"""
from aiokafka import AIOKafkaProducer
from typing import Optional, Dict, Any
import json
import logging
from datetime import datetime, timezone

from .config import settings

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class KafkaProducerManager:
    """Kafka producer manager for publishing events"""

    def __init__(self):
        self.producer: Optional[AIOKafkaProducer] = None

    async def start(self):
        """Start Kafka producer"""
        if not settings.KAFKA_ENABLED:
            logger.info("Kafka is disabled")
            return

        try:
            self.producer = AIOKafkaProducer(
                bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
                value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                key_serializer=lambda v: str(v).encode("utf-8") if v else None,
            )
            await self.producer.start()
            logger.info("Kafka producer started successfully")
        except Exception as e:
            logger.warning(f"Failed to start Kafka producer: {e}. Continuing without Kafka.")
            self.producer = None

    async def stop(self):
        """Stop Kafka producer"""
        if self.producer:
            await self.producer.stop()
            self.producer = None
            logger.info("Kafka producer stopped")

    async def publish_event(self, topic: str, key: str, event_data: Dict[str, Any]):
        """
        Publish event to Kafka topic

        Args:
            topic: Kafka topic name
            key: Message key (usually the acting user id)
            event_data: Event data to publish
        """
        if not self.producer:
            logger.debug(f"Kafka disabled, skipping event: {topic}")
            return

        try:
            await self.producer.send(topic, value=event_data, key=key)
            logger.info(f"Published event to {topic}: {key}")
        except Exception as e:
            logger.error(f"Error publishing event to {topic}: {e}")

    # Relationship events
    async def publish_follow_requested(self, follower_id: int, following_id: int):
        await self.publish_event(
            settings.KAFKA_TOPIC_FOLLOW_REQUESTED,
            str(follower_id),
            {
                "event_type": "follow_requested",
                "follower_id": follower_id,
                "following_id": following_id,
                "timestamp": _now(),
            },
        )

    async def publish_follow_accepted(self, follower_id: int, following_id: int):
        await self.publish_event(
            settings.KAFKA_TOPIC_FOLLOW_ACCEPTED,
            str(follower_id),
            {
                "event_type": "follow_accepted",
                "follower_id": follower_id,
                "following_id": following_id,
                "timestamp": _now(),
            },
        )

    async def publish_follow_declined(self, follower_id: int, following_id: int):
        await self.publish_event(
            settings.KAFKA_TOPIC_FOLLOW_DECLINED,
            str(follower_id),
            {
                "event_type": "follow_declined",
                "follower_id": follower_id,
                "following_id": following_id,
                "timestamp": _now(),
            },
        )

    async def publish_follow_removed(self, follower_id: int, following_id: int):
        await self.publish_event(
            settings.KAFKA_TOPIC_FOLLOW_REMOVED,
            str(follower_id),
            {
                "event_type": "follow_removed",
                "follower_id": follower_id,
                "following_id": following_id,
                "timestamp": _now(),
            },
        )

    # Photo events
    async def publish_photo_shared(self, share_id: int, user_id: int, privacy: str):
        await self.publish_event(
            settings.KAFKA_TOPIC_PHOTO_SHARED,
            str(user_id),
            {
                "event_type": "photo_shared",
                "photo_share_id": share_id,
                "user_id": user_id,
                "privacy": privacy,
                "timestamp": _now(),
            },
        )

    async def publish_photo_liked(self, share_id: int, liker_id: int, owner_id: int):
        await self.publish_event(
            settings.KAFKA_TOPIC_PHOTO_LIKED,
            str(liker_id),
            {
                "event_type": "photo_liked",
                "photo_share_id": share_id,
                "user_id": liker_id,
                "owner_id": owner_id,
                "timestamp": _now(),
            },
        )

    async def publish_photo_deleted(self, share_id: int, user_id: int):
        await self.publish_event(
            settings.KAFKA_TOPIC_PHOTO_DELETED,
            str(user_id),
            {
                "event_type": "photo_deleted",
                "photo_share_id": share_id,
                "user_id": user_id,
                "timestamp": _now(),
            },
        )

    # Activity interaction events
    async def publish_activity_liked(self, activity_id: int, liker_id: int, owner_id: int):
        await self.publish_event(
            settings.KAFKA_TOPIC_ACTIVITY_LIKED,
            str(liker_id),
            {
                "event_type": "activity_liked",
                "activity_id": activity_id,
                "user_id": liker_id,
                "owner_id": owner_id,
                "timestamp": _now(),
            },
        )

    async def publish_activity_commented(
        self, activity_id: int, comment_id: int, user_id: int, owner_id: int
    ):
        await self.publish_event(
            settings.KAFKA_TOPIC_ACTIVITY_COMMENTED,
            str(user_id),
            {
                "event_type": "activity_commented",
                "activity_id": activity_id,
                "comment_id": comment_id,
                "user_id": user_id,
                "owner_id": owner_id,
                "timestamp": _now(),
            },
        )


# Global producer instance
kafka_producer = KafkaProducerManager()


async def get_kafka_producer() -> KafkaProducerManager:
    """Dependency for getting Kafka producer instance"""
    return kafka_producer
