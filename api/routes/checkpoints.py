"""
Sync checkpoint lookup endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from api.dependencies import get_checkpoint_manager
from schemas.api import CheckpointInfo
from models.base import SourceType
from ingestion.checkpoint import CheckpointManager
from core.exceptions import CheckpointNotFoundError
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Checkpoints"])


@router.get("/checkpoints/{session_id}", response_model=CheckpointInfo)
async def get_checkpoint(
    session_id: str,
    request: Request,
    checkpoints: CheckpointManager = Depends(get_checkpoint_manager)
):
    """Checkpoint for one sync session, e.g. the id printed in a resume hint."""
    request_id = getattr(request.state, "request_id", "-")

    try:
        checkpoint = await checkpoints.load_by_session(session_id)
    except CheckpointNotFoundError as e:
        logger.info(f"[{request_id}] {e.message}")
        raise HTTPException(status_code=404, detail=e.message)

    return CheckpointInfo.model_validate(checkpoint)


@router.get("/sources/{source}/checkpoint", response_model=CheckpointInfo)
async def get_latest_checkpoint(
    source: SourceType,
    checkpoints: CheckpointManager = Depends(get_checkpoint_manager)
):
    """Most recently started checkpoint for a source."""
    checkpoint = await checkpoints.load_latest_for_source(source)
    if checkpoint is None:
        raise HTTPException(status_code=404, detail=f"No checkpoint recorded for {source.value}")

    return CheckpointInfo.model_validate(checkpoint)
