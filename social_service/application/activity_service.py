"""
Activity recorder - single write path into the activity store
"""
import logging
from typing import Optional

from ..domain.models import (
    DESTINATION_ACTIVITY_TYPES,
    TRIP_ACTIVITY_TYPES,
    Activity,
    ActivityDraft,
    ActivityType,
    DestinationActivityPayload,
    FollowActivityPayload,
    PhotoActivityPayload,
    PhotoShare,
    TripActivityPayload,
)
from ..domain.repositories import IActivityRepository
from ..exceptions import InvalidTargetError

logger = logging.getLogger(__name__)


ACTIVITY_TITLES = {
    ActivityType.TRIP_CREATED: "Created a new trip",
    ActivityType.TRIP_STARTED: "Started a trip",
    ActivityType.TRIP_COMPLETED: "Completed a trip",
    ActivityType.TRIP_PUBLISHED: "Published a trip",
    ActivityType.TRIP_SHARED: "Shared a trip",
    ActivityType.DESTINATION_VISITED: "Visited a destination",
    ActivityType.DESTINATION_ADDED: "Added a destination",
    ActivityType.PHOTO_UPLOADED: "Uploaded photos",
    ActivityType.PHOTO_SHARED: "Shared photos",
    ActivityType.PHOTO_LIKED: "Photo liked",
    ActivityType.USER_FOLLOWED: "Followed a traveler",
}


def photo_title(photo_count: int) -> str:
    """Title of a photo_shared item"""
    return "Shared a photo" if photo_count == 1 else f"Shared {photo_count} photos"


class ActivityService:
    """Builds activity drafts with standard titles and appends them"""

    def __init__(self, activity_repository: IActivityRepository):
        self.activity_repo = activity_repository

    async def record(self, draft: ActivityDraft) -> Activity:
        """Append an activity; failures propagate"""
        activity = await self.activity_repo.create(draft)
        logger.debug(
            f"Recorded {activity.activity_type.value} activity {activity.id} "
            f"for user {activity.user_id}"
        )
        return activity

    async def record_best_effort(self, draft: ActivityDraft) -> Optional[Activity]:
        """Append an activity, logging instead of raising on failure"""
        try:
            return await self.record(draft)
        except Exception as e:
            logger.error(
                f"Failed to record {draft.activity_type.value} activity "
                f"for user {draft.user_id}: {e}"
            )
            return None

    async def record_trip_activity(
        self,
        user_id: int,
        activity_type: ActivityType,
        trip_id: int,
        trip_name: str,
        destination: Optional[str] = None,
    ) -> Activity:
        if activity_type not in TRIP_ACTIVITY_TYPES:
            raise InvalidTargetError(f"{activity_type.value} is not a trip activity")

        descriptions = {
            ActivityType.TRIP_CREATED: f"Started planning {trip_name}",
            ActivityType.TRIP_STARTED: f"Set off on {trip_name}",
            ActivityType.TRIP_COMPLETED: f"Finished {trip_name}",
            ActivityType.TRIP_PUBLISHED: f"Made {trip_name} public",
            ActivityType.TRIP_SHARED: f"Shared {trip_name}",
        }
        payload = TripActivityPayload(
            trip_name=trip_name,
            destination=destination,
            privacy_change=activity_type == ActivityType.TRIP_PUBLISHED,
        )
        return await self.record(
            ActivityDraft(
                user_id=user_id,
                activity_type=activity_type,
                title=ACTIVITY_TITLES[activity_type],
                description=descriptions[activity_type],
                payload=payload,
                related_trip_id=trip_id,
            )
        )

    async def record_destination_activity(
        self,
        user_id: int,
        activity_type: ActivityType,
        destination_id: int,
        destination_name: str,
        location: Optional[str] = None,
        trip_id: Optional[int] = None,
        trip_name: Optional[str] = None,
    ) -> Activity:
        if activity_type not in DESTINATION_ACTIVITY_TYPES:
            raise InvalidTargetError(f"{activity_type.value} is not a destination activity")

        if activity_type == ActivityType.DESTINATION_VISITED:
            description = f"Visited {destination_name}"
        else:
            description = f"Added {destination_name} to {trip_name or 'a trip'}"

        return await self.record(
            ActivityDraft(
                user_id=user_id,
                activity_type=activity_type,
                title=ACTIVITY_TITLES[activity_type],
                description=description,
                payload=DestinationActivityPayload(
                    destination_name=destination_name,
                    location=location,
                    trip_name=trip_name,
                ),
                related_trip_id=trip_id,
                related_destination_id=destination_id,
            )
        )

    async def record_photo_shared(
        self,
        share: PhotoShare,
        trip_name: Optional[str] = None,
        destination_name: Optional[str] = None,
        location: Optional[str] = None,
    ) -> Optional[Activity]:
        """photo_shared activity with the share's context snapshotted"""
        payload = PhotoActivityPayload(
            photo_share_id=share.id,
            photo_url=share.photo_url,
            photos=[photo.to_dict() for photo in share.photos],
            photo_count=share.photo_count,
            caption=share.caption,
            destination_name=destination_name,
            location=location,
            trip_name=trip_name,
            privacy=share.privacy.value,
        )
        return await self.record_best_effort(
            ActivityDraft(
                user_id=share.user_id,
                activity_type=ActivityType.PHOTO_SHARED,
                title=photo_title(share.photo_count),
                description=share.caption,
                payload=payload,
                related_trip_id=share.trip_id,
                related_destination_id=share.destination_id,
            )
        )

    async def record_photo_liked(
        self, share: PhotoShare, liker_id: int, liker_name: Optional[str]
    ) -> Optional[Activity]:
        """photo_liked activity attributed to the share's author"""
        name = liker_name or "Someone"
        payload = PhotoActivityPayload(
            photo_share_id=share.id,
            photo_url=share.photo_url,
            caption=share.caption,
            privacy=share.privacy.value,
            liker_id=liker_id,
            liker_name=liker_name,
        )
        return await self.record_best_effort(
            ActivityDraft(
                user_id=share.user_id,
                activity_type=ActivityType.PHOTO_LIKED,
                title=f"{name} liked your photo",
                description=share.caption,
                payload=payload,
                related_trip_id=share.trip_id,
                related_destination_id=share.destination_id,
            )
        )

    async def record_user_followed(
        self, user_id: int, target_user_id: int, target_name: Optional[str]
    ) -> Optional[Activity]:
        """user_followed activity attributed to the follower"""
        title = (
            f"Started following {target_name}"
            if target_name
            else ACTIVITY_TITLES[ActivityType.USER_FOLLOWED]
        )
        return await self.record_best_effort(
            ActivityDraft(
                user_id=user_id,
                activity_type=ActivityType.USER_FOLLOWED,
                title=title,
                payload=FollowActivityPayload(
                    target_user_id=target_user_id, target_name=target_name
                ),
            )
        )
