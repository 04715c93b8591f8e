"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from datetime import datetime, timezone
import logging

from skillsmatrix.config import settings
from skillsmatrix.database import get_db
from skillsmatrix.models.schemas import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint to verify system status.

    The LLM endpoint is not called; only its configuration is checked.

    Returns:
        HealthCheckResponse with status of database and LLM configuration
    """
    # Check database connection
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = "error"

    llm_status = "ok" if settings.LLM_API_KEY else "unconfigured"

    # Overall status
    overall_status = "healthy" if db_status == "ok" and llm_status == "ok" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        llm=llm_status,
        timestamp=datetime.now(timezone.utc),
    )
