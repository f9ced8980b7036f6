import asyncio
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from snooker_api import crud
from snooker_api.api.v1.router import api_router_v1
from snooker_api.core.config import settings
from snooker_api.database import SessionLocal, engine
from snooker_api.db import models  # noqa: F401  registers every table on Base.metadata
from snooker_api.db.base_class import Base
from snooker_api.services.redis_service import shutdown_redis_client, startup_redis_client

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Snooker house management API: tables, timed game sessions, inventory, sales and analytics",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    version=settings.PROJECT_VERSION,
    contact={
        "name": "Support",
        "email": settings.SUPPORT_EMAIL,
    },
    license_info={
        "name": "MIT",
    },
)

if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

_cleanup_task: Optional[asyncio.Task] = None


def sweep_auth_sessions() -> int:
    db = SessionLocal()
    try:
        return crud.user_session.cleanup_expired(db)
    finally:
        db.close()


async def auth_session_cleanup_loop(interval: int = settings.AUTH_SESSION_CLEANUP_INTERVAL_SECONDS):
    while True:
        await asyncio.sleep(interval)
        try:
            await run_in_threadpool(sweep_auth_sessions)
        except Exception as e:
            logger.error(f"Auth session cleanup failed: {e}")


@app.on_event("startup")
async def on_startup():
    global _cleanup_task
    # In production the schema is owned by Alembic migrations
    if settings.ENVIRONMENT == "development":
        Base.metadata.create_all(bind=engine)
        logger.info("Tables created (development only)")
    await startup_redis_client()
    _cleanup_task = asyncio.create_task(auth_session_cleanup_loop())


@app.on_event("shutdown")
async def on_shutdown():
    if _cleanup_task:
        _cleanup_task.cancel()
    await shutdown_redis_client()


app.include_router(api_router_v1, prefix=settings.API_V1_STR)


@app.get("/", tags=["Root"])
async def read_root():
    return {
        "message": f"Welcome to {settings.PROJECT_NAME} v{settings.PROJECT_VERSION}",
        "docs": "/docs",
        "status": "operational",
        "environment": settings.ENVIRONMENT,
    }


@app.get("/health", tags=["Health Check"])
async def health_check():
    """Liveness probe."""
    return {
        "status": "healthy",
        "database": "connected" if settings.DATABASE_URL else "disconnected",
        "environment": settings.ENVIRONMENT,
    }
