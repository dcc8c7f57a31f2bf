import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pickup_intake.config import settings
from pickup_intake.dependencies import get_db, get_registry
from pickup_intake.registry.client import Registry
from pickup_intake.schemas.health import HealthResponse

logger = logging.getLogger("intake.health")

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    registry: Registry = Depends(get_registry),
) -> HealthResponse:
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database health check failed: %s", e)
        db_status = "unhealthy"

    registry_status = "healthy" if await registry.ping() else "unhealthy"

    overall = "healthy" if db_status == "healthy" and registry_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        registry=registry_status,
        timestamp=datetime.now(timezone.utc),
        environment=settings.environment,
        version="0.1.0",
    )
