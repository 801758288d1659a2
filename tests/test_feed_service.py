import pytest

from social_service.domain.models import (
    ActivityType,
    FeedCursor,
    PhotoEntry,
    PhotoPrivacy,
    PhotoShareDraft,
)

from tests.conftest import ALPS_TRIP, ANA, BO, CY, ZERMATT


def _alps(privacy=PhotoPrivacy.PUBLIC, **overrides):
    data = dict(
        privacy=privacy,
        caption="Alps",
        photos=[PhotoEntry(url="https://cdn.example.com/alps.jpg")],
        destination_id=ZERMATT,
    )
    data.update(overrides)
    return PhotoShareDraft(**data)


def _of_type(page, activity_type):
    return [item for item in page.items if item.activity_type == activity_type]


async def _follow(relationship_service, follower, target):
    await relationship_service.request_follow(follower, target)
    await relationship_service.accept_follow(target, follower)


@pytest.mark.asyncio
async def test_ana_bo_zermatt_scenario(
    relationship_service, photo_service, feed_service, catalog
):
    await _follow(relationship_service, ANA, BO)
    share = await photo_service.share_photo(ANA, _alps())

    page = await feed_service.get_feed(ANA, 50)
    shared = _of_type(page, ActivityType.PHOTO_SHARED)
    assert len(shared) == 1
    assert shared[0].photo_share_id == share.id
    assert shared[0].destination_name == "Zermatt"
    assert shared[0].destination_location == "Valais, Switzerland"
    assert shared[0].description == "Alps"

    await _follow(relationship_service, BO, ANA)
    await photo_service.like_photo(BO, share.id)

    ana_timeline = await feed_service.get_user_feed(ANA, 50, viewer_id=BO)
    liked = _of_type(ana_timeline, ActivityType.PHOTO_LIKED)
    assert len(liked) == 1
    assert liked[0].user_id == ANA
    assert liked[0].metadata["liker_name"] == "bo"
    assert "bo" in liked[0].title

    bo_feed = await feed_service.get_feed(BO, 50)
    assert _of_type(bo_feed, ActivityType.PHOTO_SHARED)[0].like_count == 1

    # Dangling reference: the destination disappears from the trip planner
    del catalog.destinations[ZERMATT]
    page = await feed_service.get_feed(ANA, 50)
    shared = _of_type(page, ActivityType.PHOTO_SHARED)
    assert len(shared) == 1
    assert shared[0].description == "Alps"
    assert shared[0].destination_name is None
    assert shared[0].destination_location is None
    assert shared[0].metadata["destination_name"] == "Zermatt"


@pytest.mark.asyncio
async def test_feed_is_newest_first(activity_service, feed_service):
    for name in ("Lisbon", "Porto", "Madeira"):
        await activity_service.record_trip_activity(
            ANA, ActivityType.TRIP_CREATED, ALPS_TRIP, name
        )

    page = await feed_service.get_feed(ANA, 3)
    assert [item.metadata["trip_name"] for item in page.items] == ["Madeira", "Porto", "Lisbon"]
    assert page.items[0].trip_name == "Alps Summer"
    assert page.items[0].user_nickname == "ana"


@pytest.mark.asyncio
async def test_timestamp_ties_fall_back_to_insertion_order(activity_service, feed_service, clock):
    clock.frozen = True
    first = await activity_service.record_trip_activity(ANA, ActivityType.TRIP_CREATED, 1, "One")
    second = await activity_service.record_trip_activity(ANA, ActivityType.TRIP_CREATED, 2, "Two")
    assert first.created_at == second.created_at

    page = await feed_service.get_feed(ANA, 10)
    assert [item.sequence for item in page.items] == [second.id, first.id]


@pytest.mark.asyncio
async def test_feed_only_includes_accepted_follows(
    relationship_service, activity_service, feed_service
):
    await _follow(relationship_service, ANA, BO)
    await relationship_service.request_follow(ANA, CY)
    await activity_service.record_trip_activity(BO, ActivityType.TRIP_STARTED, 1, "Bo trip")
    await activity_service.record_trip_activity(CY, ActivityType.TRIP_STARTED, 2, "Cy trip")

    page = await feed_service.get_feed(ANA, 50)
    authors = {item.user_id for item in page.items}
    assert BO in authors
    assert CY not in authors


@pytest.mark.asyncio
async def test_private_share_never_reaches_followers(
    relationship_service, photo_service, feed_service
):
    await _follow(relationship_service, BO, ANA)
    share = await photo_service.share_photo(ANA, _alps(PhotoPrivacy.PRIVATE))

    bo_feed = await feed_service.get_feed(BO, 50)
    assert all(item.photo_share_id != share.id for item in bo_feed.items)

    ana_feed = await feed_service.get_feed(ANA, 50)
    assert [item.photo_share_id for item in _of_type(ana_feed, ActivityType.PHOTO_SHARED)] == [share.id]


@pytest.mark.asyncio
async def test_contacts_share_requires_mutual_friendship(
    relationship_service, photo_service, feed_service
):
    await _follow(relationship_service, BO, ANA)
    share = await photo_service.share_photo(ANA, _alps(PhotoPrivacy.CONTACTS))

    page = await feed_service.get_feed(BO, 50)
    assert all(item.photo_share_id != share.id for item in page.items)

    await relationship_service.request_follow(ANA, BO)
    await relationship_service.accept_follow(BO, ANA)

    page = await feed_service.get_feed(BO, 50)
    assert [item.photo_share_id for item in _of_type(page, ActivityType.PHOTO_SHARED)] == [share.id]


@pytest.mark.asyncio
async def test_anonymous_profile_view_sees_public_items_only(photo_service, feed_service):
    public = await photo_service.share_photo(ANA, _alps())
    await photo_service.share_photo(ANA, _alps(PhotoPrivacy.CONTACTS, caption="Friends only"))

    page = await feed_service.get_user_feed(ANA, 50, viewer_id=None)
    assert [item.photo_share_id for item in page.items] == [public.id]


@pytest.mark.asyncio
async def test_cursor_pagination_never_repeats(activity_service, photo_service, feed_service):
    first = await photo_service.share_photo(ANA, _alps(caption="one"))
    await activity_service.record_trip_activity(ANA, ActivityType.TRIP_CREATED, ALPS_TRIP, "Trip")
    second = await photo_service.share_photo(ANA, _alps(caption="two"))

    page_one = await feed_service.get_feed(ANA, 2)
    assert len(page_one.items) == 2
    assert page_one.next_cursor is not None

    page_two = await feed_service.get_feed(ANA, 2, FeedCursor.decode(page_one.next_cursor))
    assert page_two.next_cursor is None

    seen = [item.item_id for item in page_one.items + page_two.items]
    assert seen == [f"photo:{second.id}", "activity:2", f"photo:{first.id}"]


@pytest.mark.asyncio
async def test_photo_source_failure_keeps_activities(
    photo_service, activity_service, feed_service, photo_repo
):
    await photo_service.share_photo(ANA, _alps())
    await activity_service.record_trip_activity(ANA, ActivityType.TRIP_COMPLETED, ALPS_TRIP, "Alps")
    photo_repo.failing = True

    page = await feed_service.get_feed(ANA, 50)
    kinds = [item.activity_type for item in page.items]
    assert kinds == [ActivityType.TRIP_COMPLETED, ActivityType.PHOTO_SHARED]
    assert page.items[1].item_id.startswith("activity:")


@pytest.mark.asyncio
async def test_activity_source_failure_keeps_shares(photo_service, feed_service, activity_repo):
    share = await photo_service.share_photo(ANA, _alps())
    activity_repo.failing = True

    page = await feed_service.get_feed(ANA, 50)
    assert [item.photo_share_id for item in page.items] == [share.id]


@pytest.mark.asyncio
async def test_enrichment_failure_returns_plain_items(activity_service, feed_service, catalog):
    await activity_service.record_destination_activity(
        ANA, ActivityType.DESTINATION_VISITED, ZERMATT, "Zermatt", trip_id=ALPS_TRIP
    )
    catalog.failing = True

    page = await feed_service.get_feed(ANA, 50)
    assert len(page.items) == 1
    assert page.items[0].destination_name is None
    assert page.items[0].trip_name is None
    assert page.items[0].user_nickname == "ana"
    assert page.items[0].metadata["destination_name"] == "Zermatt"


@pytest.mark.asyncio
async def test_hidden_shares_do_not_crowd_out_visible_activities(
    relationship_service, activity_service, photo_service, feed_service
):
    await _follow(relationship_service, BO, ANA)
    await activity_service.record_trip_activity(
        ANA, ActivityType.TRIP_CREATED, ALPS_TRIP, "Alps"
    )
    for _ in range(2):
        await photo_service.share_photo(ANA, _alps(PhotoPrivacy.PRIVATE))

    page = await feed_service.get_feed(BO, 2)
    assert [item.activity_type for item in page.items] == [ActivityType.TRIP_CREATED]
    assert _of_type(page, ActivityType.PHOTO_SHARED) == []


@pytest.mark.asyncio
async def test_private_shares_are_skipped_before_the_page_limit(
    relationship_service, photo_service, feed_service
):
    await _follow(relationship_service, BO, ANA)
    await photo_service.share_photo(ANA, _alps())
    for _ in range(3):
        await photo_service.share_photo(ANA, _alps(PhotoPrivacy.PRIVATE))

    page = await feed_service.get_feed(BO, 2)
    assert len(page.items) == 1
    assert page.items[0].photo_share_id is not None
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_contacts_photo_like_hidden_from_non_friend_follower(
    relationship_service, photo_service, feed_service, make_friends
):
    await make_friends(ANA, CY)
    await _follow(relationship_service, BO, ANA)
    share = await photo_service.share_photo(ANA, _alps(PhotoPrivacy.CONTACTS))
    await photo_service.like_photo(CY, share.id)

    ana_feed = await feed_service.get_feed(ANA, 50)
    liked = _of_type(ana_feed, ActivityType.PHOTO_LIKED)
    assert len(liked) == 1
    assert liked[0].metadata["privacy"] == PhotoPrivacy.CONTACTS.value

    cy_feed = await feed_service.get_feed(CY, 50)
    assert len(_of_type(cy_feed, ActivityType.PHOTO_LIKED)) == 1

    bo_feed = await feed_service.get_feed(BO, 50)
    assert _of_type(bo_feed, ActivityType.PHOTO_LIKED) == []
    assert _of_type(bo_feed, ActivityType.PHOTO_SHARED) == []


@pytest.mark.asyncio
async def test_private_share_stays_hidden_when_photo_store_is_down(
    relationship_service, photo_service, feed_service, photo_repo
):
    await _follow(relationship_service, BO, ANA)
    share = await photo_service.share_photo(ANA, _alps(PhotoPrivacy.PRIVATE))
    photo_repo.failing = True

    bo_feed = await feed_service.get_feed(BO, 50)
    assert _of_type(bo_feed, ActivityType.PHOTO_SHARED) == []

    ana_feed = await feed_service.get_feed(ANA, 50)
    shared = _of_type(ana_feed, ActivityType.PHOTO_SHARED)
    assert [item.photo_share_id for item in shared] == [share.id]
    assert shared[0].item_id.startswith("activity:")
