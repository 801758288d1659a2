"""
FastAPI application for Social Service
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from .config import settings
from .cache import cache
from .kafka_producer import kafka_producer
from .exceptions import SocialError
from .infrastructure.database.connection import db
from .api.routes import activities, feed, notifications, photos, relationships

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info("Starting Social Service...")

    await db.connect()
    logger.info("Database connected")

    await cache.connect()
    logger.info("Redis cache initialized")

    await kafka_producer.start()
    logger.info("Kafka producer initialized")

    logger.info(f"Social Service started successfully on port {settings.PORT}")

    yield

    # Shutdown
    logger.info("Shutting down Social Service...")
    await kafka_producer.stop()
    await cache.disconnect()
    await db.disconnect()
    logger.info("Social Service shut down successfully")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Trip Planner Social Service - follows, friendships, activity feed and photo sharing",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SocialError)
async def social_error_handler(request: Request, exc: SocialError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message},
    )


app.include_router(relationships.router)
app.include_router(feed.router)
app.include_router(photos.router)
app.include_router(activities.router)
app.include_router(notifications.router)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get("/", tags=["Root"])
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "social_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
