from datetime import datetime, timezone

import pytest

from social_service.domain.models import (
    ActivityType,
    FeedCursor,
    FollowActivityPayload,
    PhotoActivityPayload,
    PhotoPrivacy,
    TripActivityPayload,
    can_view,
    payload_from_metadata,
)
from social_service.exceptions import DanglingReferenceError, InvalidTargetError, SocialError


@pytest.mark.parametrize(
    "privacy, viewer, is_friend, expected",
    [
        (PhotoPrivacy.PUBLIC, None, False, True),
        (PhotoPrivacy.PUBLIC, 2, False, True),
        (PhotoPrivacy.CONTACTS, None, False, False),
        (PhotoPrivacy.CONTACTS, 2, False, False),
        (PhotoPrivacy.CONTACTS, 2, True, True),
        (PhotoPrivacy.CONTACTS, 1, False, True),
        (PhotoPrivacy.PRIVATE, 2, True, False),
        (PhotoPrivacy.PRIVATE, 1, False, True),
    ],
)
def test_can_view(privacy, viewer, is_friend, expected):
    assert can_view(privacy, 1, viewer, is_friend) is expected


def test_payload_from_metadata_picks_variant_and_ignores_unknown_keys():
    payload = payload_from_metadata(
        ActivityType.PHOTO_LIKED, {"liker_id": 2, "liker_name": "bo", "legacy_field": 1}
    )
    assert payload == PhotoActivityPayload(liker_id=2, liker_name="bo")

    follow = payload_from_metadata(ActivityType.USER_FOLLOWED, None)
    assert follow == FollowActivityPayload()

    trip = payload_from_metadata(ActivityType.TRIP_SHARED, {"trip_name": "Alps"})
    assert isinstance(trip, TripActivityPayload)


def test_to_metadata_drops_empty_fields():
    payload = PhotoActivityPayload(photo_share_id=5, caption="Alps")
    assert payload.to_metadata() == {"photo_share_id": 5, "caption": "Alps"}


def test_feed_cursor_is_opaque_and_decodable():
    cursor = FeedCursor(datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc), 42)
    token = cursor.encode()
    assert "|" not in token
    assert FeedCursor.decode(token) == cursor


@pytest.mark.parametrize("token", ["not-a-cursor", "bm9waXBl", ""])
def test_malformed_feed_cursor(token):
    with pytest.raises(InvalidTargetError):
        FeedCursor.decode(token)


def test_dangling_reference_is_not_an_http_error():
    assert not issubclass(DanglingReferenceError, SocialError)
    assert not hasattr(DanglingReferenceError("gone"), "status_code")
