"""
FastAPI dependencies
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from typing import Optional

from ..config import settings
from ..cache import RedisCache, get_cache
from ..kafka_producer import KafkaProducerManager, get_kafka_producer
from ..schemas import CurrentUser
from ..infrastructure.database.connection import Database, get_db
from ..infrastructure.database.repositories import (
    AccountRepository,
    ActivityInteractionRepository,
    ActivityRepository,
    CatalogRepository,
    PhotoShareRepository,
    RelationshipRepository,
)
from ..domain.repositories import (
    IAccountRepository,
    IActivityInteractionRepository,
    IActivityRepository,
    ICatalogRepository,
    IPhotoShareRepository,
    IRelationshipRepository,
)
from ..application.activity_service import ActivityService
from ..application.relationship_service import RelationshipService
from ..application.feed_service import ActivityFeedService
from ..application.photo_service import PhotoShareService
from ..application.interaction_service import ActivityInteractionService


# Security scheme
security = HTTPBearer(auto_error=False)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_access_token(token: str) -> CurrentUser:
    """
    Decode an access token issued by the auth service

    Raises:
        HTTPException: If the token is invalid or carries no subject
    """
    try:
        payload = jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise _credentials_exception()

    subject = payload.get("sub")
    if subject is None:
        raise _credentials_exception()
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        raise _credentials_exception("Invalid token payload")

    return CurrentUser(id=user_id, nickname=payload.get("nickname"))


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Validate the bearer token and return the caller"""
    if not credentials:
        raise _credentials_exception("Not authenticated")
    return decode_access_token(credentials.credentials)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CurrentUser]:
    """
    Optional authentication - returns None if no valid token provided
    """
    if not credentials:
        return None

    try:
        return decode_access_token(credentials.credentials)
    except HTTPException:
        return None


# Repositories
async def get_account_repository(db: Database = Depends(get_db)) -> IAccountRepository:
    return AccountRepository(db)


async def get_relationship_repository(
    db: Database = Depends(get_db),
) -> IRelationshipRepository:
    return RelationshipRepository(db)


async def get_activity_repository(db: Database = Depends(get_db)) -> IActivityRepository:
    return ActivityRepository(db)


async def get_photo_share_repository(
    db: Database = Depends(get_db),
) -> IPhotoShareRepository:
    return PhotoShareRepository(db)


async def get_catalog_repository(db: Database = Depends(get_db)) -> ICatalogRepository:
    return CatalogRepository(db)


async def get_activity_interaction_repository(
    db: Database = Depends(get_db),
) -> IActivityInteractionRepository:
    return ActivityInteractionRepository(db)


# Services
async def get_activity_service(
    activity_repo: IActivityRepository = Depends(get_activity_repository),
) -> ActivityService:
    return ActivityService(activity_repo)


async def get_relationship_service(
    relationship_repo: IRelationshipRepository = Depends(get_relationship_repository),
    account_repo: IAccountRepository = Depends(get_account_repository),
    activity_service: ActivityService = Depends(get_activity_service),
    cache: RedisCache = Depends(get_cache),
    kafka: KafkaProducerManager = Depends(get_kafka_producer),
) -> RelationshipService:
    return RelationshipService(relationship_repo, account_repo, activity_service, cache, kafka)


async def get_feed_service(
    activity_repo: IActivityRepository = Depends(get_activity_repository),
    photo_repo: IPhotoShareRepository = Depends(get_photo_share_repository),
    account_repo: IAccountRepository = Depends(get_account_repository),
    catalog_repo: ICatalogRepository = Depends(get_catalog_repository),
    relationship_service: RelationshipService = Depends(get_relationship_service),
) -> ActivityFeedService:
    return ActivityFeedService(
        activity_repo, photo_repo, account_repo, catalog_repo, relationship_service
    )


async def get_photo_service(
    photo_repo: IPhotoShareRepository = Depends(get_photo_share_repository),
    account_repo: IAccountRepository = Depends(get_account_repository),
    catalog_repo: ICatalogRepository = Depends(get_catalog_repository),
    relationship_service: RelationshipService = Depends(get_relationship_service),
    activity_service: ActivityService = Depends(get_activity_service),
    kafka: KafkaProducerManager = Depends(get_kafka_producer),
) -> PhotoShareService:
    return PhotoShareService(
        photo_repo, account_repo, catalog_repo, relationship_service, activity_service, kafka
    )


async def get_interaction_service(
    interaction_repo: IActivityInteractionRepository = Depends(
        get_activity_interaction_repository
    ),
    activity_repo: IActivityRepository = Depends(get_activity_repository),
    account_repo: IAccountRepository = Depends(get_account_repository),
    relationship_service: RelationshipService = Depends(get_relationship_service),
    kafka: KafkaProducerManager = Depends(get_kafka_producer),
) -> ActivityInteractionService:
    return ActivityInteractionService(
        interaction_repo, activity_repo, account_repo, relationship_service, kafka
    )
