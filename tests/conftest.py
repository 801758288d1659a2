import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient
from jose import jwt

from social_service.api import dependencies
from social_service.application.activity_service import ActivityService
from social_service.application.feed_service import ActivityFeedService
from social_service.application.interaction_service import ActivityInteractionService
from social_service.application.photo_service import PhotoShareService
from social_service.application.relationship_service import RelationshipService
from social_service.cache import RedisCache, get_cache
from social_service.config import settings
from social_service.domain.models import Account, DestinationRef, TripRef
from social_service.kafka_producer import KafkaProducerManager, get_kafka_producer
from social_service.main import app

from tests.fakes import (
    Clock,
    FakeAccountRepository,
    FakeActivityInteractionRepository,
    FakeActivityRepository,
    FakeCatalogRepository,
    FakePhotoShareRepository,
    FakeRelationshipRepository,
)

ANA, BO, CY = 1, 2, 3
ZERMATT = 10
ALPS_TRIP = 100


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def accounts():
    repo = FakeAccountRepository()
    repo.add(Account(id=ANA, nickname="ana", display_name="Ana"))
    repo.add(Account(id=BO, nickname="bo", avatar_url="https://cdn.example.com/bo.png"))
    repo.add(Account(id=CY, nickname="cy"))
    return repo


@pytest.fixture
def relationship_repo(clock):
    return FakeRelationshipRepository(clock)


@pytest.fixture
def activity_repo(clock):
    return FakeActivityRepository(clock)


@pytest.fixture
def photo_repo(clock):
    return FakePhotoShareRepository(clock)


@pytest.fixture
def interaction_repo(clock, activity_repo):
    return FakeActivityInteractionRepository(clock, activity_repo)


@pytest.fixture
def catalog():
    repo = FakeCatalogRepository()
    repo.trips[ALPS_TRIP] = TripRef(id=ALPS_TRIP, name="Alps Summer")
    repo.destinations[ZERMATT] = DestinationRef(id=ZERMATT, name="Zermatt", location="Valais, Switzerland")
    return repo


@pytest_asyncio.fixture
async def fake_redis():
    client = FakeRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest.fixture
def cache(fake_redis):
    return RedisCache(fake_redis)


@pytest.fixture
def kafka():
    # Never started, so every publish is a logged no-op
    return KafkaProducerManager()


@pytest.fixture
def activity_service(activity_repo):
    return ActivityService(activity_repo)


@pytest.fixture
def relationship_service(relationship_repo, accounts, activity_service, cache, kafka):
    return RelationshipService(relationship_repo, accounts, activity_service, cache, kafka)


@pytest.fixture
def feed_service(activity_repo, photo_repo, accounts, catalog, relationship_service):
    return ActivityFeedService(activity_repo, photo_repo, accounts, catalog, relationship_service)


@pytest.fixture
def photo_service(photo_repo, accounts, catalog, relationship_service, activity_service, kafka):
    return PhotoShareService(
        photo_repo, accounts, catalog, relationship_service, activity_service, kafka
    )


@pytest.fixture
def interaction_service(interaction_repo, activity_repo, accounts, relationship_service, kafka):
    return ActivityInteractionService(
        interaction_repo, activity_repo, accounts, relationship_service, kafka
    )


@pytest.fixture
def make_friends(relationship_service):
    async def _make(a: int, b: int):
        await relationship_service.request_follow(a, b)
        await relationship_service.accept_friend_request(b, a)

    return _make


def make_token(user_id: int) -> str:
    return jwt.encode(
        {"sub": str(user_id), "type": "access"},
        settings.JWT_SECRET_KEY,
        algorithm=settings.JWT_ALGORITHM,
    )


def auth(user_id: int) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest_asyncio.fixture
async def api_client(
    accounts, relationship_repo, activity_repo, photo_repo, catalog, interaction_repo, cache, kafka
):
    overrides = {
        dependencies.get_account_repository: lambda: accounts,
        dependencies.get_relationship_repository: lambda: relationship_repo,
        dependencies.get_activity_repository: lambda: activity_repo,
        dependencies.get_photo_share_repository: lambda: photo_repo,
        dependencies.get_catalog_repository: lambda: catalog,
        dependencies.get_activity_interaction_repository: lambda: interaction_repo,
        get_cache: lambda: cache,
        get_kafka_producer: lambda: kafka,
    }
    app.dependency_overrides.update(overrides)
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
