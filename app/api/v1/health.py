"""Health check endpoint with database and cache connectivity checks."""

from typing import Annotated

import redis
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.cache import check_cache_connected, get_redis
from app.core.config import settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[redis.Redis, Depends(get_redis)],
) -> HealthResponse:
    """
    Return service health status, database and cache connectivity.
    Used by load balancers and monitoring.
    """
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database="connected" if check_db_connected(db) else "disconnected",
        cache="connected" if check_cache_connected(cache) else "disconnected",
    )
