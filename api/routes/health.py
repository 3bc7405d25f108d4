"""
Health check endpoint with database and sync checkpoint status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db, get_checkpoint_manager
from schemas.api import HealthCheckResponse, CheckpointInfo
from ingestion.checkpoint import CheckpointManager
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    checkpoints: CheckpointManager = Depends(get_checkpoint_manager)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Latest sync checkpoint per source
    """
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    latest = []
    if db_connected:
        try:
            latest = [
                CheckpointInfo.model_validate(checkpoint)
                for checkpoint in await checkpoints.load_latest_per_source()
            ]
        except Exception as e:
            logger.error(f"Failed to fetch sync checkpoints: {str(e)}")

    # Overall status is derived by the HealthCheckResponse validator
    return HealthCheckResponse(
        database_connected=db_connected,
        latest_checkpoints=latest,
        timestamp=datetime.utcnow()
    )
